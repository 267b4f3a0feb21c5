# Routes package init
"""
NoteGate — API Routes Package
===============================

Route Inventory:
    - stores.py:  POST /<store>/<method>   (dispatch an operation)
                  GET  /<store>            (operation catalogue)
    - health.py:  GET  /health             (service health check)

Routes stay thin: they read the request, hand it to the gateway and
encode the result. Store rules live in the services.
"""

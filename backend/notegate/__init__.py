"""
NoteGate — Application Package
================================

What: A JSON gateway in front of note store operations. Clients POST a JSON
      object to /<store>/<operation>; the gateway decodes each field into
      the named parameter of that operation, invokes it, and returns the
      result as JSON.

Architecture Note:

    ┌─────────────────────────────────────┐
    │     Routes (HTTP: body, status)     │  routes/stores.py, routes/health.py
    ├─────────────────────────────────────┤
    │  Gateway (name → operation → call)  │  services/gateway.py, registry.py
    ├─────────────────────────────────────┤
    │   Store operations (interfaces and  │  services/operations.py,
    │   local implementations)            │  note_store.py, user_store.py
    ├─────────────────────────────────────┤
    │  Models & Schemas (ORM + pydantic)  │  models/, schemas/
    ├─────────────────────────────────────┤
    │   Database (async SQLAlchemy)       │  database.py
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"

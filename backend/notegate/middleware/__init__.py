# Middleware package init
"""
NoteGate — Middleware Package
===============================

What:  Cross-cutting concerns applied to every request.

Middleware Chain (order matters!):
    Request → [Request ID] → [Rate Limit] → [Logging] → [GZip] → [CORS] → Route Handler

    1. Request ID first: every response, a 429 included, carries the id
    2. Rate Limit: reject abusive clients before a session is opened
    3. Logging: access line with store operation, status and duration

    Responses travel back through the chain in reverse order, so the
    request id header is present and the logged duration covers the
    whole dispatch.
"""

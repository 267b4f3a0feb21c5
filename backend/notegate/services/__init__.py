# Services package init
"""
NoteGate — Services Layer
===========================

Service Inventory:
    - OperationRegistry: static wire-name → operation table (registry.py)
    - NoteStoreOperations / UserStoreOperations: dispatchable interfaces
      (operations.py)
    - DispatchGateway: resolves names, decodes arguments, invokes (gateway.py)
    - LocalNoteStore: database-backed note store, personal or business
      scope (note_store.py)
    - LocalUserStore: account identity from settings (user_store.py)
    - Store accessors: per-request handles for the routes (store_accessor.py)
"""

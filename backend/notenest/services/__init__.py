# Services package init
"""
NoteNest Backend — Services Layer
==================================

What:  Business logic layer sitting between routes (HTTP) and database (persistence).
How:   Services receive a database session per call, apply business rules,
       and return Pydantic response models.

Service Inventory:
    - DocumentService: document tree queries and lifecycle mutations
    - FileService: upload validation, storage, URLs and cleanup
    - SidebarHub: live sidebar subscriptions over WebSocket
    - notifications: toast outcomes for tracked calls
"""

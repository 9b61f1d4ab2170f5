# Routes package init
"""
NoteNest Backend — API Routes Package
======================================

Route Inventory:
    - documents.py: /api/documents/...   (CRUD, trash, banner actions)
    - sidebar.py:   GET /api/sidebar     (rendered tree), WS /ws/sidebar
    - uploads.py:   POST /api/uploads, GET /api/files/{path}
    - marketing.py: GET /api/marketing/heroes
    - health.py:    GET /health

Routes stay thin: extract request data, call a service or view, shape the
response. Business rules live in services.
"""

# Views package init
"""
NoteNest Backend — Presentation Views
======================================

What:  Server-side models of the UI pieces of the application: the trash
       banner, the recursive sidebar list, the editor wrapper and the
       marketing hero images.
How:   Views compose services and return Pydantic schemas; routes serialize them.
"""

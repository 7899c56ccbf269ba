# Services package init
"""
QuickNotes Backend: Services Layer
==================================

What:  Business logic between the routes (HTTP) and the DAO (SQL).

Service Inventory:
    - NoteService: validation, transaction scopes and the existence-checked
      update/delete protocol over NoteDao
"""

# DAO package init
"""
QuickNotes Backend: Storage Access Layer
========================================

    - NoteDao: parameterized SQL against the notes table, rows → Note
"""

"""Core Layer — domain types, error taxonomy, and the SQL query catalog.

Invariants:
    - No module in core/ imports from services/, api/, or infrastructure/
    - Nothing in core/ opens a connection or touches the event loop

Design Decisions:
    - Query catalog lives here: it is pure data resolved once at startup
"""

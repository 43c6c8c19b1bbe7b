"""API Layer — FastAPI routes, templates, and error handlers.

Invariants:
    - Routes registered explicitly in main.py (no auto-discovery)
    - Routes talk to the database only through the WikiDatabase interface

Design Decisions:
    - Thin routes: HTML rendering and redirects only, no SQL
"""

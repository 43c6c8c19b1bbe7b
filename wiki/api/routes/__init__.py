"""Route Modules — one file per concern.

Invariants:
    - Each module defines its own APIRouter
    - Routes never contain persistence logic (delegate to WikiDatabase)

Design Decisions:
    - Explicit registration in main.py over auto-discovery
"""

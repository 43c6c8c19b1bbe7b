"""Infrastructure Layer — database gateway, message bus, external clients, logging.

Invariants:
    - Infrastructure never imports from services/ or api/
    - All external failures mapped to WikiError subclasses (core/errors.py)

Design Decisions:
    - The gateway is the sole owner of pooled connections
"""

"""Services Layer — page facade, action dispatch, bus client stub, deployment.

Invariants:
    - Action dispatch uses an explicit dict mapping (no auto-discovery)
    - Every dispatched message gets exactly one reply

Design Decisions:
    - Facade and proxy share the WikiDatabase protocol, so routes cannot tell them apart
"""

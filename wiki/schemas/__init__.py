"""Pydantic Schemas — action payloads and typed page results.

Invariants:
    - Payloads validated at the dispatch boundary, before any SQL runs

Design Decisions:
    - Schemas double as the reply codec for the bus client stub
"""

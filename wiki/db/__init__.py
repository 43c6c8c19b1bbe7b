"""Database Resources — embedded SQL query templates, one TOML file per dialect.

Invariants:
    - Every file defines all SqlQuery names (checked by QueryCatalog.load)
"""

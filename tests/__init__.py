"""
DPS log store test suite.

- unit/         fakes + in-memory SQLite, run by default
- integration/  PostgreSQL and Redis via testcontainers (`pytest -m integration`)
"""

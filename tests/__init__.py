"""
TaskDesk Test Suite.

This package contains:
- unit/: Unit tests (temporary SQLite file per test)
- integration/: Multi-account scenarios, seeding, HTTP API and admin CLI
"""

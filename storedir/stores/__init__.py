"""Data stores for persistence and caching.

Stores handle:
- PostgreSQL: engine, sessions, transactions
- Redis: catalog caches with TTL policies

No ranking or search logic in stores - that belongs in services.
"""

"""Infrastructure Layer — database sessions, the Rye client, and logging.

Invariants:
    - Infrastructure never imports services/ or api/
    - All external calls wrapped with retry/timeout/error mapping
"""

"""Database Base — declarative metadata shared by models and Alembic.

Invariants:
    - Single async engine per process (initialized via infrastructure.database.init_db)
"""

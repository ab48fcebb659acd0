"""Root conftest — shared test configuration."""

import os

# Ensure tests don't accidentally talk to real Rye or Postgres
os.environ.setdefault("RYE_SECRET_API_KEY", "Basic test-fake-key")
os.environ.setdefault("RYE_GRAPHQL_ENDPOINT", "https://rye.test/v1/query")
os.environ.setdefault("RYE_WEBHOOK_SECRET_KEY", "whsec-test")
os.environ.setdefault(
    "DATABASE_URL",
    "sqlite+aiosqlite:///test.db",
)

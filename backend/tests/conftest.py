"""Root conftest — shared test configuration."""

import os

# Tests never reach a real database or webhook
os.environ.setdefault(
    "DATABASE_URL",
    "sqlite+aiosqlite:///test.db",
)
os.environ.setdefault("NOTIFICATION_WEBHOOK_URL", "")

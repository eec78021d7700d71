# ruff: noqa: INP001
"""Pytest configuration shared across backend tests."""

import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Deterministic defaults for import-time settings initialization, regardless of
# shell env. The engine is created lazily, so no database is contacted.
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["AGENT_ID"] = "gideon"
os.environ["CALENDAR_TIMEZONE"] = "UTC"
os.environ["NOTIFICATION_WEBHOOK_URL"] = ""

# config.py
# Every environment-driven setting lives here. Nothing else reads os.environ.

import logging
import os
from pathlib import Path

from dotenv import load_dotenv

# Institutional Path Management: .env sits in the project root
env_path = Path(__file__).resolve().parent.parent / '.env'
load_dotenv(dotenv_path=env_path)

# ── Supabase ──────────────────────────────────────────────────────────────────
SUPABASE_URL: str | None = os.getenv("SUPABASE_URL")
SUPABASE_KEY: str | None = os.getenv("SUPABASE_KEY")
CASES_TABLE: str = os.getenv("CASES_TABLE", "cases")
SHIPMENTS_TABLE: str = os.getenv("SHIPMENTS_TABLE", "shipments")

# "memory" keeps cases in-process, "supabase" writes them to CASES_TABLE
CASE_STORE: str = os.getenv("CASE_STORE", "memory").strip().lower()

# ── Notifications ─────────────────────────────────────────────────────────────
NOTIFICATION_WEBHOOK_URL: str | None = os.getenv("NOTIFICATION_WEBHOOK_URL")
NOTIFICATION_TIMEOUT_SECONDS: float = float(os.getenv("NOTIFICATION_TIMEOUT_SECONDS", "10"))
ADMIN_EMAIL: str = os.getenv("ADMIN_EMAIL", "admin@example.com")
MANAGER_EMAIL: str = os.getenv("MANAGER_EMAIL", "manager@example.com")

# ── Cache ─────────────────────────────────────────────────────────────────────
CACHE_DEFAULT_TTL_SECONDS: float = float(os.getenv("CACHE_DEFAULT_TTL_SECONDS", "300"))
CACHE_SWEEP_INTERVAL_SECONDS: float = float(os.getenv("CACHE_SWEEP_INTERVAL_SECONDS", "60"))

# ── Clipboard ─────────────────────────────────────────────────────────────────
CLIPBOARD_MAX_ITEMS: int = int(os.getenv("CLIPBOARD_MAX_ITEMS", "50"))
CLIPBOARD_MAX_PINNED: int = int(os.getenv("CLIPBOARD_MAX_PINNED", "10"))

# ── Logging ───────────────────────────────────────────────────────────────────
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FORMAT: str = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str | None = None) -> None:
    logging.basicConfig(level=level or LOG_LEVEL, format=LOG_FORMAT)

# ledger/config.py
from __future__ import annotations
import os
from pathlib import Path


DEFAULT_API_URL = "http://localhost:3000/api"


class Config:
    # Optional "SECRET_KEY", with default dev key (signs the Flask session holding tokens)
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # Remote ledger backend. VITE_API_URL is honored so one .env serves both frontends.
    LEDGER_API_URL = os.environ.get(
        "LEDGER_API_URL",
        os.environ.get("VITE_API_URL", DEFAULT_API_URL),
    )
    LEDGER_API_TIMEOUT = float(os.environ.get("LEDGER_API_TIMEOUT", "10"))

    # Single timezone policy for every "today" calculation
    LEDGER_TIMEZONE = os.environ.get("LEDGER_TIMEZONE", "Asia/Manila")

    # Token file used by the CLI (the web app keeps tokens in the session)
    LEDGER_TOKEN_FILE = os.environ.get(
        "LEDGER_TOKEN_FILE",
        str(Path.home() / ".ledger" / "tokens.json"),
    )

    # Query cache: fresh for 30s, evicted after 5 minutes unused
    LEDGER_QUERY_STALE_SECONDS = float(os.environ.get("LEDGER_QUERY_STALE_SECONDS", "30"))
    LEDGER_QUERY_GC_SECONDS = float(os.environ.get("LEDGER_QUERY_GC_SECONDS", "300"))

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

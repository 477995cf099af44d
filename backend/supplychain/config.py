# backend/supplychain/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/custody.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///custody.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Identity allowed to approve registrations and enroll participants.
    # Persisted into system_state on first use; `flask system init --admin` replaces it.
    ADMIN_IDENTITY = os.environ.get("ADMIN_IDENTITY")

    # Header set by the authenticating gateway in front of this service
    IDENTITY_HEADER = os.environ.get("IDENTITY_HEADER", "X-Identity")

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Optimistic-lock / busy-database retry policy for atomic operations
    RETRY_ATTEMPTS = int(os.environ.get("RETRY_ATTEMPTS", "3"))
    RETRY_BACKOFF_BASE = float(os.environ.get("RETRY_BACKOFF_BASE", "0.1"))

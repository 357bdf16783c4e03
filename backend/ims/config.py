# backend/ims/config.py
from __future__ import annotations
import os


class Config:
    # SQLite DB stored in backend/instance/ims.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///ims.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Default page size for the audit trail "recent" read
    AUDIT_RECENT_LIMIT = int(os.environ.get("AUDIT_RECENT_LIMIT", "100"))

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

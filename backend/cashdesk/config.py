# backend/cashdesk/config.py
from __future__ import annotations
import os


def _parse_tokens(raw: str) -> dict[str, str]:
    """Parse "token:role,token:role" into a token -> role mapping."""
    tokens: dict[str, str] = {}
    for chunk in raw.split(","):
        chunk = chunk.strip()
        if not chunk or ":" not in chunk:
            continue
        token, role = chunk.split(":", 1)
        tokens[token.strip()] = role.strip().lower()
    return tokens


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/cashdesk.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///cashdesk.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Identical raw scan payloads inside this window count once
    SCAN_DEBOUNCE_SECONDS = float(os.environ.get("SCAN_DEBOUNCE_SECONDS", "0.7"))

    # Bearer tokens issued by the auth collaborator, e.g. "abc:admin,def:staff"
    API_TOKENS = _parse_tokens(os.environ.get("API_TOKENS", ""))

    CORS_ALLOWED_ORIGINS = {
        origin.strip()
        for origin in os.environ.get(
            "CORS_ALLOWED_ORIGINS",
            "http://localhost:5173,http://127.0.0.1:5173",
        ).split(",")
        if origin.strip()
    }

    SEED_DEMO_INVENTORY = os.environ.get("SEED_DEMO_INVENTORY", "false").lower() == "true"

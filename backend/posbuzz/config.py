# backend/posbuzz/config.py
from __future__ import annotations
import os


def _split_origins(raw: str | None) -> set[str]:
    if not raw:
        return {
            "http://localhost:5173",
            "http://127.0.0.1:5173",
            "http://localhost:4173",
            "http://127.0.0.1:4173",
        }
    return {origin.strip() for origin in raw.split(",") if origin.strip()}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/posbuzz.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///posbuzz.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Browser origins allowed to call the API (comma-separated in env)
    CORS_ORIGINS = _split_origins(os.environ.get("CORS_ORIGINS"))

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()

    # Mount point for the auth/products/sales blueprints ("" serves /products, "/api" serves /api/products)
    API_PREFIX = os.environ.get("API_PREFIX", "").rstrip("/")

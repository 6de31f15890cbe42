"""Database URL helpers for Alembic migrations.

Extracted so they can be tested without triggering alembic.context at import time.
"""

from __future__ import annotations

import os
from urllib.parse import quote_plus, urlparse, urlunparse

_SQLALCHEMY_SCHEME = "postgresql+psycopg2://"


def _normalize_scheme(url: str) -> str:
    """Map the libpq URL schemes onto the psycopg2 SQLAlchemy driver."""
    for scheme in ("postgres://", "postgresql://"):
        if url.startswith(scheme):
            return _SQLALCHEMY_SCHEME + url[len(scheme):]
    return url


def _inject_password(url: str, password: str) -> str:
    parsed = urlparse(url)
    if parsed.password or not password:
        return url
    netloc = f"{quote_plus(parsed.username or '')}:{quote_plus(password)}@{parsed.hostname or ''}"
    if parsed.port:
        netloc += f":{parsed.port}"
    return urlunparse(parsed._replace(netloc=netloc))


def _get_database_url() -> str:
    """Build the SQLAlchemy URL Alembic connects with.

    DATABASE_URL must be a URL (postgres://, postgresql:// or an explicit
    driver URL). DB_PASSWORD fills in a missing password.
    """
    url = os.environ.get("DATABASE_URL")
    if not url:
        raise RuntimeError("DATABASE_URL is required to run migrations")
    if "://" not in url:
        raise RuntimeError("DATABASE_URL must be a URL, e.g. postgresql://user@host/db")
    return _inject_password(_normalize_scheme(url), os.environ.get("DB_PASSWORD", ""))

"""
Application configuration.

All settings come from environment variables (optionally via a .env file).
Mandatory values have no defaults: load_config() refuses to continue when
they are missing so the server never starts with a guessable secret.
"""

import os
from typing import Any, Dict, Mapping, Optional

from dotenv import load_dotenv

# Load .env variables from the project root
load_dotenv()

DEFAULT_CORS_ORIGINS = "http://localhost:5173,http://localhost:3000"
TRUE_VALUES = ("1", "true", "yes", "on")
FALSE_VALUES = ("0", "false", "no", "off", "")


def _parse_int(env: Mapping[str, str], key: str, default: int) -> int:
    raw = env.get(key)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise RuntimeError(f"{key} must be an integer, got {raw!r}")


def _parse_bool(env: Mapping[str, str], key: str, default: bool) -> bool:
    raw = env.get(key)
    if raw is None:
        return default
    value = raw.strip().lower()
    if value in TRUE_VALUES:
        return True
    if value in FALSE_VALUES:
        return False
    raise RuntimeError(f"{key} must be a boolean, got {raw!r}")


def _dsn_value(value: str) -> str:
    """Quote a libpq keyword value when it is empty or holds spaces, quotes or backslashes."""
    if value and not any(c in value for c in " \t\n'\\"):
        return value
    escaped = value.replace("\\", "\\\\").replace("'", "\\'")
    return f"'{escaped}'"


def build_database_url(env: Mapping[str, str]) -> Optional[str]:
    """
    Resolve the database DSN.

    DATABASE_URL wins when set. Otherwise a libpq keyword DSN is composed from
    DB_HOST, DB_PORT, DB_NAME, DB_USER and DB_PASSWORD.

    Returns:
        str: The DSN, or None if neither form is fully configured.
    """
    url = env.get("DATABASE_URL")
    if url:
        return url

    host = env.get("DB_HOST")
    name = env.get("DB_NAME")
    user = env.get("DB_USER")
    if not (host and name and user):
        return None

    port = env.get("DB_PORT") or "5432"
    password = env.get("DB_PASSWORD", "")
    parts = [("host", host), ("port", port), ("dbname", name), ("user", user)]
    if password:
        parts.append(("password", password))
    return " ".join(f"{key}={_dsn_value(value)}" for key, value in parts)


def load_config(env: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
    """
    Read and validate settings from the environment.

    Args:
        env (Mapping, optional): Source of variables. Defaults to os.environ.

    Returns:
        dict: Upper-case keys ready for app.config.update().

    Raises:
        RuntimeError: If a mandatory setting is missing or a value is malformed.
    """
    if env is None:
        env = os.environ

    missing = []

    database_url = build_database_url(env)
    if not database_url:
        missing.append("DATABASE_URL (or DB_HOST, DB_NAME, DB_USER)")

    jwt_secret = env.get("JWT_SECRET")
    if not jwt_secret:
        missing.append("JWT_SECRET")

    if missing:
        raise RuntimeError(
            "Missing required configuration: " + ", ".join(missing) + ". Set it in .env"
        )

    expiration = _parse_int(env, "TOKEN_EXPIRATION_MINUTES", 60)
    if expiration <= 0:
        raise RuntimeError("TOKEN_EXPIRATION_MINUTES must be positive")

    pool_min = _parse_int(env, "DB_POOL_MIN", 1)
    pool_max = _parse_int(env, "DB_POOL_MAX", 10)
    if pool_min < 1 or pool_max < pool_min:
        raise RuntimeError("DB_POOL_MIN must be >= 1 and DB_POOL_MAX >= DB_POOL_MIN")

    origins = env.get("CORS_ORIGINS") or DEFAULT_CORS_ORIGINS

    return {
        "DATABASE_URL": database_url,
        "JWT_SECRET": jwt_secret,
        "TOKEN_EXPIRATION_MINUTES": expiration,
        "DB_POOL_MIN": pool_min,
        "DB_POOL_MAX": pool_max,
        "CORS_ORIGINS": [o.strip() for o in origins.split(",") if o.strip()],
        "ADMIN_ONLY_MUTATIONS": _parse_bool(env, "ADMIN_ONLY_MUTATIONS", False),
        "PORT": _parse_int(env, "PORT", 3000),
    }

# app/core/config.py

import os
import logging
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

load_dotenv()


def _flag(name: str, default: bool = False) -> bool:
    return os.getenv(name, str(default)).strip().lower() in {"1", "true", "yes", "on"}


def _choice(name: str, allowed: set[str]) -> str:
    value = os.getenv(name)
    if value not in allowed:
        raise ValueError(f"{name} must be {' | '.join(sorted(allowed))}")
    return value


# =====================================================
# APPLICATION
# =====================================================
APP_ENV = _choice("APP_ENV", {"development", "staging", "production"})
IS_PRODUCTION = APP_ENV == "production"

APP_VERSION = os.getenv("APP_VERSION", "1.0.0")
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "").split(",") if o.strip()]

# =====================================================
# DATABASE
# =====================================================
DB_TYPE = _choice("DB_TYPE", {"postgres", "sqlite"})

if DB_TYPE == "postgres":
    DATABASE_URL = os.getenv("DATABASE_URL")
    if not DATABASE_URL:
        raise ValueError("DATABASE_URL is required for Postgres")
else:
    if IS_PRODUCTION:
        raise ValueError("SQLite is NOT allowed in production")
    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./ledger.db")

DB_POOL_SIZE = int(os.getenv("DB_POOL_SIZE", 10))
DB_MAX_OVERFLOW = int(os.getenv("DB_MAX_OVERFLOW", 20))
DB_POOL_TIMEOUT = int(os.getenv("DB_POOL_TIMEOUT", 30))
DB_ECHO_POOL = _flag("DB_ECHO_POOL")

DB_SSL_VERIFY = _flag("DB_SSL_VERIFY", True)
if IS_PRODUCTION and not DB_SSL_VERIFY:
    logger.warning("Running in production with relaxed SSL verification")

# =====================================================
# LEDGER
# =====================================================
# When true, order/purchase lines that match no catalog item are rejected
# instead of being treated as untracked.
STRICT_LINE_MATCHING = _flag("STRICT_LINE_MATCHING")

DEFAULT_ACTOR = os.getenv("DEFAULT_ACTOR", "system")

# =====================================================
# LOGGING
# =====================================================
LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG" if APP_ENV == "development" else "INFO").upper()
LOG_SQL = _flag("LOG_SQL")

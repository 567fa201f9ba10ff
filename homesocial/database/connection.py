"""
HomeSocial Database Connection

CONNECTION METHOD - Pure asyncpg:
- asyncpg connection pool for ALL table operations
- Direct PostgreSQL protocol, minimal overhead
- One pool per process, created in the app lifespan and handed to the store
"""

import logging
import os
import urllib.parse

import asyncpg  # type: ignore

logger = logging.getLogger(__name__)

# Check if running on Cloud Run (K_SERVICE env var is set by Cloud Run)
IS_CLOUD_RUN = os.getenv("K_SERVICE") is not None

# Get database credentials from environment
DB_USER = os.getenv("HOMESOCIAL_DB_USER")
DB_PASSWORD = os.getenv("HOMESOCIAL_DB_PASSWORD")
DB_NAME = os.getenv("HOMESOCIAL_DATABASE_NAME")
DB_PORT = os.getenv("HOMESOCIAL_DB_PORT", "5432")

# Validate required env vars
if not all([DB_USER, DB_PASSWORD, DB_NAME]):
    raise ValueError("Missing required HOMESOCIAL database environment variables")

# URL encode password to handle special characters (already validated above)
if DB_PASSWORD is None:
    raise ValueError("DB_PASSWORD cannot be None")
encoded_password = urllib.parse.quote_plus(DB_PASSWORD)

# Build connection string based on environment
if IS_CLOUD_RUN:
    # Cloud Run: Use Unix socket for Cloud SQL Proxy
    CLOUD_SQL_CONNECTION = os.getenv("HOMESOCIAL_CLOUD_SQL_CONNECTION")
    if not CLOUD_SQL_CONNECTION:
        raise ValueError("Missing HOMESOCIAL_CLOUD_SQL_CONNECTION on Cloud Run")
    ASYNCPG_URL = f"postgresql://{DB_USER}:{encoded_password}@/{DB_NAME}?host=/cloudsql/{CLOUD_SQL_CONNECTION}"
    logger.info("Cloud Run mode: connecting via Cloud SQL Proxy")
else:
    DB_HOST = os.getenv("HOMESOCIAL_DB_HOST")
    if not DB_HOST:
        raise ValueError("Missing HOMESOCIAL_DB_HOST for local development")
    ASYNCPG_URL = f"postgresql://{DB_USER}:{encoded_password}@{DB_HOST}:{DB_PORT}/{DB_NAME}"
    logger.info(f"Local development mode: connecting to {DB_HOST}")


# Global pool instance
_db_pool: asyncpg.Pool | None = None


async def create_asyncpg_pool(dsn: str = ASYNCPG_URL) -> asyncpg.Pool:
    """Create the asyncpg connection pool used by the store and the message broker"""
    return await asyncpg.create_pool(
        dsn,
        min_size=1,  # the broker keeps one connection for LISTEN
        max_size=20,
        command_timeout=60,
    )

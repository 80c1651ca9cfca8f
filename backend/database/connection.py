"""
PostgreSQL Database Connection Module
Provides async PostgreSQL connection management with asyncpg
"""
import asyncpg
import logging
import time
from typing import Optional
from contextlib import asynccontextmanager

from config import settings
from utils.debug import Loggers

logger = logging.getLogger(__name__)

# Global database connection pool
_pool: Optional[asyncpg.Pool] = None

# SQL Schema
SCHEMA = """
CREATE TABLE IF NOT EXISTS users (
    id VARCHAR(255) PRIMARY KEY,
    username VARCHAR(50) UNIQUE NOT NULL,
    email VARCHAR(255) UNIQUE NOT NULL,
    password VARCHAR(255) NOT NULL,
    created_at TIMESTAMP NOT NULL
);

CREATE TABLE IF NOT EXISTS recipes (
    id VARCHAR(255) PRIMARY KEY,
    name VARCHAR(500) NOT NULL,
    ingredients TEXT NOT NULL DEFAULT '[]',
    time_to_cook VARCHAR(100) NOT NULL,
    steps TEXT NOT NULL DEFAULT '[]',
    image TEXT,
    user_id VARCHAR(255) NOT NULL,
    created_at TIMESTAMP NOT NULL,
    updated_at TIMESTAMP NOT NULL,
    FOREIGN KEY (user_id) REFERENCES users(id)
);

-- No ON DELETE CASCADE: favorites are removed explicitly before their recipe
CREATE TABLE IF NOT EXISTS favorites (
    id VARCHAR(255) PRIMARY KEY,
    user_id VARCHAR(255) NOT NULL,
    recipe_id VARCHAR(255) NOT NULL,
    created_at TIMESTAMP NOT NULL,
    FOREIGN KEY (user_id) REFERENCES users(id),
    FOREIGN KEY (recipe_id) REFERENCES recipes(id),
    UNIQUE (user_id, recipe_id)
);
"""

INDICES = """
CREATE INDEX IF NOT EXISTS idx_recipes_user_id ON recipes(user_id);
CREATE INDEX IF NOT EXISTS idx_recipes_created_at ON recipes(created_at DESC);
CREATE INDEX IF NOT EXISTS idx_favorites_user_id ON favorites(user_id);
CREATE INDEX IF NOT EXISTS idx_favorites_recipe_id ON favorites(recipe_id);
"""


async def init_db() -> asyncpg.Pool:
    """Initialize the database connection pool and create tables"""
    global _pool

    start_time = time.time()
    logger.info("Initializing PostgreSQL connection pool")
    # Log without credentials
    Loggers.db.info("Starting database initialization", database_url=settings.database_url.split("@")[-1])

    try:
        _pool = await asyncpg.create_pool(
            settings.database_url,
            min_size=settings.db_pool_min,
            max_size=settings.db_pool_max,
            command_timeout=60
        )
        pool_time = (time.time() - start_time) * 1000
        Loggers.db.debug("Connection pool created", duration_ms=f"{pool_time:.2f}",
                         min_size=settings.db_pool_min, max_size=settings.db_pool_max)
    except Exception as e:
        Loggers.db.error(f"Failed to create connection pool: {e}", exc_info=True)
        raise

    schema_start = time.time()
    async with _pool.acquire() as conn:
        await conn.execute(SCHEMA)
        await conn.execute(INDICES)
        schema_time = (time.time() - schema_start) * 1000
        Loggers.db.debug("Schema and indices created", duration_ms=f"{schema_time:.2f}")

    total_time = (time.time() - start_time) * 1000
    logger.info("Database initialized successfully")
    Loggers.db.info("Database initialization complete", total_duration_ms=f"{total_time:.2f}")

    return _pool


async def get_db() -> asyncpg.Pool:
    """Get the database connection pool"""
    global _pool
    if _pool is None:
        _pool = await init_db()
    return _pool


async def close_db():
    """Close the database connection pool"""
    global _pool
    if _pool is not None:
        Loggers.db.info("Closing database connection pool...")
        await _pool.close()
        _pool = None
        logger.info("Database connection pool closed")


@asynccontextmanager
async def get_db_context():
    """Context manager for a single pooled connection"""
    start_time = time.time()
    pool = await get_db()
    async with pool.acquire() as conn:
        acquire_time = (time.time() - start_time) * 1000
        if acquire_time > 100:
            Loggers.db.warning("Slow connection acquire", duration_ms=f"{acquire_time:.2f}")
        yield conn


@asynccontextmanager
async def transaction():
    """
    Context manager yielding a connection inside a transaction.

    Commits on normal exit, rolls back if the block raises.
    """
    async with get_db_context() as conn:
        async with conn.transaction():
            yield conn


def dict_from_row(row) -> Optional[dict]:
    """Convert a Record object to a dictionary"""
    if row is None:
        return None
    return dict(row)


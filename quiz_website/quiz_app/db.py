from pathlib import Path

import psycopg2
from psycopg2.pool import SimpleConnectionPool
from loguru import logger

from quiz_app.config import DATABASE_URL, get_settings

SCHEMA_PATH = Path(__file__).with_name("schema.sql")

# Created on first use so the in-memory backend never touches PostgreSQL
_connection_pool = None


def _get_pool():
    global _connection_pool
    if _connection_pool is None:
        settings = get_settings()
        _connection_pool = SimpleConnectionPool(
            settings.db_pool_min,
            settings.db_pool_max,
            dsn=DATABASE_URL,
            sslmode=settings.db_sslmode,
        )
        logger.info(
            "PostgreSQL pool ready (min={}, max={})",
            settings.db_pool_min,
            settings.db_pool_max,
        )
    return _connection_pool


def get_connection():
    """
    Get a database connection from the pool.
    MUST be returned using put_connection().
    """
    return _get_pool().getconn()


def put_connection(conn):
    """
    Return a connection to the pool.
    """
    _get_pool().putconn(conn)


def init_schema():
    """Create the quiz tables if they do not exist yet."""
    conn = get_connection()
    cur = conn.cursor()

    try:
        cur.execute(SCHEMA_PATH.read_text(encoding="utf-8"))
        conn.commit()
    except psycopg2.Error:
        conn.rollback()
        raise
    finally:
        cur.close()
        put_connection(conn)


def close_pool():
    global _connection_pool
    if _connection_pool is not None:
        _connection_pool.closeall()
        _connection_pool = None

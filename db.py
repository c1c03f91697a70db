"""
db.py — News Art Database Abstraction Layer
============================================
Works with SQLite (local dev) or PostgreSQL (production).
Set DATABASE_URL env var for Postgres. If not set, falls back to SQLite.

The daily_news_art table is written by the external generation workflow.
This service only reads it; db_init() and insert_entry() exist so a local
SQLite store can be created and seeded for development and tests.

Usage:
    from db import get_active_news

    entry = get_active_news()   # {"headline", "description", "image_url"} or None
"""

import os
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone

DATABASE_URL = os.getenv("DATABASE_URL", "")
DB_PATH = os.getenv("NEWS_DB_PATH", "/tmp/news_art.db")

NEWS_TABLE = "daily_news_art"
NEWS_FIELDS = ("headline", "description", "image_url")

# Detect which database to use
USE_POSTGRES = bool(DATABASE_URL)

if USE_POSTGRES:
    import psycopg2
    import psycopg2.extras
    from psycopg2 import pool

    # Fix Render's postgres:// → postgresql://
    if DATABASE_URL.startswith("postgres://"):
        DATABASE_URL = DATABASE_URL.replace("postgres://", "postgresql://", 1)

    # Connection pool — min 1, max 10 connections
    _pool = pool.ThreadedConnectionPool(1, 10, DATABASE_URL)

    def get_conn():
        conn = _pool.getconn()
        conn.autocommit = False
        # Use RealDictCursor so rows come back as dicts
        conn.cursor_factory = psycopg2.extras.RealDictCursor
        return conn

    def release_conn(conn):
        # Drop any open read transaction before handing the connection back
        conn.rollback()
        _pool.putconn(conn)

else:
    # SQLite fallback for local development
    def get_conn():
        conn = sqlite3.connect(DB_PATH)
        conn.row_factory = sqlite3.Row
        return conn

    def release_conn(conn):
        conn.close()


def backend_name():
    return "postgresql" if USE_POSTGRES else "sqlite"


@contextmanager
def db_connection():
    """Context manager for database connections.

    Usage:
        with db_connection() as conn:
            cur = conn.cursor()
            cur.execute(...)
            conn.commit()
    """
    conn = get_conn()
    try:
        yield conn
    finally:
        release_conn(conn)


def param_placeholder():
    """Returns the correct placeholder for the current database."""
    return "%s" if USE_POSTGRES else "?"


def utc_now_iso():
    return datetime.now(timezone.utc).isoformat()


def get_active_news():
    """Return the active entry's headline/description/image_url, or None.

    If more than one row is flagged active the first row the database hands
    back is returned; there is no tie-break ordering.
    """
    p = param_placeholder()
    with db_connection() as conn:
        cur = conn.cursor()
        cur.execute(
            f"SELECT headline, description, image_url FROM {NEWS_TABLE} "
            f"WHERE is_active = {p} LIMIT 1",
            (True,),
        )
        row = cur.fetchone()

    if row is None:
        return None
    return {field: row[field] for field in NEWS_FIELDS}


def db_init():
    """Create the daily_news_art table. Safe to call multiple times."""
    with db_connection() as conn:
        cur = conn.cursor()

        if USE_POSTGRES:
            cur.execute(f"""
            CREATE TABLE IF NOT EXISTS {NEWS_TABLE} (
                id SERIAL PRIMARY KEY,
                headline TEXT NOT NULL,
                description TEXT NOT NULL,
                image_url TEXT NOT NULL,
                is_active BOOLEAN NOT NULL DEFAULT FALSE,
                created_at TEXT NOT NULL
            )
            """)
        else:
            cur.execute(f"""
            CREATE TABLE IF NOT EXISTS {NEWS_TABLE} (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                headline TEXT NOT NULL,
                description TEXT NOT NULL,
                image_url TEXT NOT NULL,
                is_active INTEGER NOT NULL DEFAULT 0,
                created_at TEXT NOT NULL
            )
            """)

        cur.execute(f"CREATE INDEX IF NOT EXISTS idx_news_art_active ON {NEWS_TABLE}(is_active)")
        conn.commit()

    print(f"[DB] Initialized ({'PostgreSQL' if USE_POSTGRES else 'SQLite'})")


def insert_entry(headline, description, image_url, is_active=False, created_at=None):
    """Insert one entry. Activating it deactivates every other row first."""
    p = param_placeholder()
    with db_connection() as conn:
        cur = conn.cursor()
        if is_active:
            cur.execute(f"UPDATE {NEWS_TABLE} SET is_active = {p}", (False,))
        cur.execute(f"""
            INSERT INTO {NEWS_TABLE} (headline, description, image_url, is_active, created_at)
            VALUES ({p}, {p}, {p}, {p}, {p})
        """, (headline, description, image_url, bool(is_active), created_at or utc_now_iso()))
        conn.commit()

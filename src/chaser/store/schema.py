"""SQLite schema for users, payment requests, follow-ups, and voices.

Provides ``init_db()`` which opens the database with WAL mode and foreign keys
enabled, and ``init_schema()`` which creates every table and index
idempotently.
"""

from __future__ import annotations

import sqlite3
from pathlib import Path


def init_db(db_path: Path | str) -> sqlite3.Connection:
    """Open (and create if needed) the chaser database.

    The connection is shareable across threads (HTTP handlers run blocking
    work in worker threads); :class:`chaser.store.store.ChaserStore`
    serializes access with its own lock.

    Args:
        db_path: Path to the SQLite database file, or ``":memory:"``.

    Returns:
        An open sqlite3.Connection with WAL mode, foreign keys, and
        ``sqlite3.Row`` row factory enabled.
    """
    conn = sqlite3.connect(str(db_path), check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA foreign_keys=ON")
    init_schema(conn)
    return conn


def init_schema(conn: sqlite3.Connection) -> None:
    """Create all tables and indexes if they do not already exist.

    Args:
        conn: An open sqlite3.Connection.
    """
    conn.execute("""
        CREATE TABLE IF NOT EXISTS users (
            id TEXT PRIMARY KEY,
            email TEXT NOT NULL UNIQUE,
            gmail_access_token TEXT,
            gmail_refresh_token TEXT,
            token_expires_at TEXT,
            gmail_label_id TEXT,
            followup_action TEXT NOT NULL DEFAULT 'draft',
            created_at TEXT NOT NULL
        )
    """)

    conn.execute("""
        CREATE TABLE IF NOT EXISTS requests (
            id TEXT PRIMARY KEY,
            user_id TEXT NOT NULL REFERENCES users (id) ON DELETE CASCADE,
            recipient_email TEXT NOT NULL,
            recipient_name TEXT,
            subject TEXT,
            amount TEXT,
            original_message_id TEXT,
            thread_id TEXT,
            status TEXT NOT NULL DEFAULT 'active',
            followup_interval INTEGER DEFAULT 7,
            context TEXT,
            voice TEXT,
            initial_request_at TEXT,
            created_at TEXT NOT NULL,
            lease_token TEXT,
            lease_expires_at TEXT,
            UNIQUE (user_id, thread_id)
        )
    """)

    conn.execute("""
        CREATE TABLE IF NOT EXISTS followups (
            id TEXT PRIMARY KEY,
            request_id TEXT NOT NULL REFERENCES requests (id) ON DELETE CASCADE,
            email_id TEXT,
            followup_number INTEGER NOT NULL,
            mode TEXT NOT NULL DEFAULT 'draft',
            sent_at TEXT NOT NULL,
            UNIQUE (request_id, followup_number)
        )
    """)

    conn.execute("""
        CREATE TABLE IF NOT EXISTS voices (
            name TEXT PRIMARY KEY,
            label TEXT NOT NULL,
            description TEXT NOT NULL,
            examples TEXT,
            color TEXT,
            sort_order INTEGER NOT NULL DEFAULT 0,
            escalates INTEGER NOT NULL DEFAULT 1,
            created_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ', 'now'))
        )
    """)

    conn.execute("CREATE INDEX IF NOT EXISTS idx_requests_status ON requests (status)")
    conn.execute("CREATE INDEX IF NOT EXISTS idx_requests_user ON requests (user_id)")
    conn.execute(
        "CREATE INDEX IF NOT EXISTS idx_followups_request ON followups (request_id, sent_at)"
    )

    conn.commit()


def close_db(conn: sqlite3.Connection) -> None:
    """Close the database connection.

    Args:
        conn: The sqlite3.Connection to close.
    """
    conn.close()

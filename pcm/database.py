"""
SQLite persistence helpers for the PCM backend.

The record store and the identity provider each hold a database path and
open a short-lived connection per operation through get_db_connection(),
so the two collection reads can run on separate threads. Row access by
column name is enabled on every connection.
"""

import os
import sqlite3
import logging
from contextlib import contextmanager

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS companies (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    manager_email TEXT UNIQUE NOT NULL,
    plan TEXT NOT NULL DEFAULT 'basic',
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS equipment (
    id TEXT PRIMARY KEY,
    tenant_id TEXT NOT NULL,
    name TEXT NOT NULL,
    location TEXT NOT NULL DEFAULT '',
    maintenance_type TEXT NOT NULL,
    installed_at TEXT NOT NULL,
    created_at TEXT NOT NULL,
    FOREIGN KEY(tenant_id) REFERENCES companies(id)
);

CREATE INDEX IF NOT EXISTS idx_equipment_tenant ON equipment(tenant_id);

CREATE TABLE IF NOT EXISTS work_orders (
    id TEXT PRIMARY KEY,
    tenant_id TEXT NOT NULL,
    equipment_id TEXT NOT NULL,
    equipment_name TEXT NOT NULL DEFAULT '',
    technician_name TEXT NOT NULL,
    technician_tax_id TEXT NOT NULL DEFAULT '',
    opened_at TEXT NOT NULL,
    completed_at TEXT,
    maintenance_type TEXT NOT NULL,
    downtime_hours REAL NOT NULL DEFAULT 0,
    status TEXT NOT NULL DEFAULT 'open',
    notes TEXT,
    created_at TEXT NOT NULL,
    FOREIGN KEY(tenant_id) REFERENCES companies(id)
);

CREATE INDEX IF NOT EXISTS idx_work_orders_tenant ON work_orders(tenant_id);

CREATE TABLE IF NOT EXISTS identities (
    email TEXT PRIMARY KEY,
    password_hash TEXT NOT NULL,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS revoked_tokens (
    token_hash TEXT PRIMARY KEY,
    revoked_at TEXT NOT NULL
);
"""


def connect(db_path: str) -> sqlite3.Connection:
    """Open a connection with dict-like row access. Caller closes it."""
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    return conn


@contextmanager
def get_db_connection(db_path: str):
    """
    Context manager for a single unit of work.

    Usage:
        with get_db_connection(path) as conn:
            rows = conn.execute("SELECT * FROM equipment").fetchall()

    Commits on success, rolls back on error.
    """
    conn = connect(db_path)
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def init_db(db_path: str):
    """Create the schema if it does not exist yet."""
    directory = os.path.dirname(db_path)
    if directory and not os.path.exists(directory):
        os.makedirs(directory)

    with get_db_connection(db_path) as conn:
        conn.executescript(SCHEMA)
    logger.info(f"SQLite database initialized at {db_path}")


def get_database_info(db_path: str) -> dict:
    """Return information about the current database configuration."""
    return {
        'type': 'sqlite',
        'path': db_path,
        'exists': os.path.exists(db_path),
    }

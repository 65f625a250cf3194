"""Delivery history and persisted settings in a local SQLite database."""

import os
import sqlite3
import time
import uuid
from pathlib import Path
from typing import Optional

from pydantic import BaseModel

DATA_DIR = Path(os.environ.get("MEMSYNC_DATA_DIR", os.path.expanduser("~/.memsync")))
DB_PATH = DATA_DIR / "memsync.db"

SETTINGS_KEYS = ("api_url", "access_token")


def _get_conn() -> sqlite3.Connection:
    DB_PATH.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(DB_PATH), check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("""
        CREATE TABLE IF NOT EXISTS deliveries (
            id TEXT PRIMARY KEY,
            user_id TEXT NOT NULL,
            record_identifier TEXT,
            status TEXT NOT NULL DEFAULT 'pending',
            attempts INTEGER DEFAULT 0,
            status_code INTEGER,
            detail TEXT,
            created_at REAL NOT NULL,
            finished_at REAL,
            request_id TEXT
        )
    """)
    conn.execute("""
        CREATE INDEX IF NOT EXISTS idx_deliveries_user ON deliveries(user_id)
    """)
    conn.execute("""
        CREATE INDEX IF NOT EXISTS idx_deliveries_created ON deliveries(created_at DESC)
    """)
    conn.execute("""
        CREATE TABLE IF NOT EXISTS settings (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL,
            updated_at REAL NOT NULL
        )
    """)
    conn.commit()
    return conn


_conn: Optional[sqlite3.Connection] = None


def get_conn() -> sqlite3.Connection:
    global _conn
    if _conn is None:
        _conn = _get_conn()
    return _conn


def reset_conn(db_path: Optional[Path] = None) -> None:
    """Close the cached connection, optionally pointing the store at another file."""
    global _conn, DB_PATH
    if _conn is not None:
        _conn.close()
        _conn = None
    if db_path is not None:
        DB_PATH = Path(db_path)


class Delivery(BaseModel):
    id: str
    user_id: str
    record_identifier: Optional[str] = None
    status: str
    attempts: int = 0
    status_code: Optional[int] = None
    detail: Optional[str] = None
    created_at: float
    finished_at: Optional[float] = None
    request_id: Optional[str] = None


def create_delivery(user_id: str, request_id: str | None = None) -> Delivery:
    delivery = Delivery(
        id=uuid.uuid4().hex[:16],
        user_id=str(user_id),
        status="pending",
        created_at=time.time(),
        request_id=request_id,
    )
    conn = get_conn()
    conn.execute(
        """INSERT INTO deliveries (id, user_id, status, created_at, request_id)
           VALUES (?, ?, ?, ?, ?)""",
        (delivery.id, delivery.user_id, delivery.status, delivery.created_at, delivery.request_id),
    )
    conn.commit()
    return delivery


def finish_delivery(delivery_id: str, status: str, record_identifier: str | None = None,
                    attempts: int = 0, status_code: int | None = None,
                    detail: str | None = None) -> None:
    conn = get_conn()
    conn.execute(
        """UPDATE deliveries SET status=?, record_identifier=?, attempts=?, status_code=?, detail=?,
           finished_at=? WHERE id=?""",
        (status, record_identifier, attempts, status_code, detail, time.time(), delivery_id),
    )
    conn.commit()


def get_delivery(delivery_id: str) -> Delivery | None:
    conn = get_conn()
    row = conn.execute("SELECT * FROM deliveries WHERE id=?", (delivery_id,)).fetchone()
    if row is None:
        return None
    return _row_to_delivery(row)


def list_deliveries(limit: int = 50, user_id: str | None = None) -> list[Delivery]:
    conn = get_conn()
    if user_id:
        rows = conn.execute(
            "SELECT * FROM deliveries WHERE user_id=? ORDER BY created_at DESC LIMIT ?",
            (str(user_id), limit),
        ).fetchall()
    else:
        rows = conn.execute(
            "SELECT * FROM deliveries ORDER BY created_at DESC LIMIT ?",
            (limit,),
        ).fetchall()
    return [_row_to_delivery(r) for r in rows]


def _row_to_delivery(row: sqlite3.Row) -> Delivery:
    return Delivery(
        id=row["id"],
        user_id=row["user_id"],
        record_identifier=row["record_identifier"],
        status=row["status"],
        attempts=row["attempts"] or 0,
        status_code=row["status_code"],
        detail=row["detail"],
        created_at=row["created_at"],
        finished_at=row["finished_at"],
        request_id=row["request_id"],
    )


def get_settings() -> dict[str, str]:
    conn = get_conn()
    rows = conn.execute("SELECT key, value FROM settings").fetchall()
    return {r["key"]: r["value"] for r in rows if r["key"] in SETTINGS_KEYS}


def put_settings(values: dict[str, str]) -> None:
    conn = get_conn()
    now = time.time()
    for key, value in values.items():
        if key not in SETTINGS_KEYS:
            raise ValueError(f"unknown setting: {key}")
        conn.execute(
            """INSERT INTO settings (key, value, updated_at) VALUES (?, ?, ?)
               ON CONFLICT(key) DO UPDATE SET value=excluded.value, updated_at=excluded.updated_at""",
            (key, value, now),
        )
    conn.commit()

"""
database.py — SQLite database setup, queries, and helpers.
Stores the listings already delivered (for deduplication) and a per-run log.
"""

import json
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Iterable, Optional

from config import DB_PATH
from models import RunStats, SentJob

# Stay well under SQLite's bound-parameter limit for IN (...) lookups
URL_CHUNK_SIZE = 500


def get_connection(db_path: Optional[Path] = None) -> sqlite3.Connection:
    """Get a database connection, creating the DB file if needed."""
    path = Path(db_path or DB_PATH)
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(path))
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL")
    return conn


def init_db(db_path: Optional[Path] = None):
    """Create all tables if they don't exist."""
    conn = get_connection(db_path)
    conn.executescript("""
        CREATE TABLE IF NOT EXISTS sent_jobs (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            url TEXT NOT NULL UNIQUE,
            title TEXT NOT NULL,
            company TEXT NOT NULL,
            source TEXT NOT NULL,
            score INTEGER NOT NULL,
            location TEXT,
            sent_at TEXT NOT NULL
        );

        CREATE TABLE IF NOT EXISTS run_log (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            run_date TEXT,
            listings_found INTEGER DEFAULT 0,
            listings_new INTEGER DEFAULT 0,
            listings_qualified INTEGER DEFAULT 0,
            listings_sent INTEGER DEFAULT 0,
            dry_run INTEGER DEFAULT 0,
            errors TEXT,
            duration_seconds REAL
        );

        CREATE INDEX IF NOT EXISTS idx_sent_url ON sent_jobs(url);
        CREATE INDEX IF NOT EXISTS idx_sent_at ON sent_jobs(sent_at);
    """)
    conn.commit()
    conn.close()


def _chunks(items: list, size: int):
    for i in range(0, len(items), size):
        yield items[i:i + size]


# --- Sent Jobs ---

def find_existing_urls(urls: Iterable[str], since: datetime, db_path: Optional[Path] = None) -> set[str]:
    """Return the subset of `urls` sent at or after `since`."""
    unique = list(dict.fromkeys(u for u in urls if u))
    if not unique:
        return set()

    found: set[str] = set()
    conn = get_connection(db_path)
    try:
        for chunk in _chunks(unique, URL_CHUNK_SIZE):
            placeholders = ",".join("?" * len(chunk))
            rows = conn.execute(
                f"SELECT url FROM sent_jobs WHERE sent_at >= ? AND url IN ({placeholders})",
                [since.isoformat(), *chunk],
            ).fetchall()
            found.update(row["url"] for row in rows)
    finally:
        conn.close()
    return found


def store_sent_jobs(records: list[SentJob], db_path: Optional[Path] = None) -> int:
    """
    Persist sent records in a single transaction. Returns count written.
    A URL whose older record is still on disk gets that record replaced.
    """
    if not records:
        return 0
    conn = get_connection(db_path)
    try:
        with conn:
            conn.executemany(
                """INSERT OR REPLACE INTO sent_jobs
                   (url, title, company, source, score, location, sent_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?)""",
                [
                    (r.url, r.title, r.company, r.source, r.score, r.location, r.sent_at.isoformat())
                    for r in records
                ],
            )
    finally:
        conn.close()
    return len(records)


def get_sent_job(url: str, db_path: Optional[Path] = None) -> Optional[SentJob]:
    conn = get_connection(db_path)
    row = conn.execute("SELECT * FROM sent_jobs WHERE url = ?", (url,)).fetchone()
    conn.close()
    if not row:
        return None
    return SentJob(
        url=row["url"],
        title=row["title"],
        company=row["company"],
        source=row["source"],
        score=row["score"],
        location=row["location"] or "",
        sent_at=datetime.fromisoformat(row["sent_at"]),
    )


def url_sent_since(url: str, since: datetime, db_path: Optional[Path] = None) -> bool:
    conn = get_connection(db_path)
    result = conn.execute(
        "SELECT 1 FROM sent_jobs WHERE url = ? AND sent_at >= ?", (url, since.isoformat())
    ).fetchone()
    conn.close()
    return result is not None


def count_sent_since(since: datetime, db_path: Optional[Path] = None) -> int:
    conn = get_connection(db_path)
    count = conn.execute("SELECT COUNT(*) FROM sent_jobs WHERE sent_at >= ?", (since.isoformat(),)).fetchone()[0]
    conn.close()
    return count


def count_sent_jobs(db_path: Optional[Path] = None) -> int:
    conn = get_connection(db_path)
    count = conn.execute("SELECT COUNT(*) FROM sent_jobs").fetchone()[0]
    conn.close()
    return count


def count_sent_by_source(db_path: Optional[Path] = None) -> dict[str, int]:
    conn = get_connection(db_path)
    rows = conn.execute(
        "SELECT source, COUNT(*) AS n FROM sent_jobs GROUP BY source ORDER BY n DESC"
    ).fetchall()
    conn.close()
    return {row["source"]: row["n"] for row in rows}


def delete_sent_before(cutoff: datetime, db_path: Optional[Path] = None) -> int:
    """Delete sent records older than `cutoff`. Returns count deleted."""
    conn = get_connection(db_path)
    try:
        with conn:
            cursor = conn.execute("DELETE FROM sent_jobs WHERE sent_at < ?", (cutoff.isoformat(),))
        return cursor.rowcount
    finally:
        conn.close()


# --- Run Log ---

def log_run(stats: RunStats, db_path: Optional[Path] = None):
    """Store a run log entry."""
    conn = get_connection(db_path)
    conn.execute(
        """INSERT INTO run_log
           (run_date, listings_found, listings_new, listings_qualified,
            listings_sent, dry_run, errors, duration_seconds)
           VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
        (
            stats.run_date, stats.listings_found, stats.listings_new,
            stats.listings_qualified, stats.listings_sent, int(stats.dry_run),
            json.dumps(stats.errors), stats.duration_seconds,
        )
    )
    conn.commit()
    conn.close()


def get_last_run(db_path: Optional[Path] = None) -> Optional[dict]:
    """Get the most recent run log entry."""
    conn = get_connection(db_path)
    row = conn.execute("SELECT * FROM run_log ORDER BY id DESC LIMIT 1").fetchone()
    conn.close()
    return dict(row) if row else None

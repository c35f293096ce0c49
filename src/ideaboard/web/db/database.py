"""Async SQLite connection manager (singleton pattern)."""

from __future__ import annotations

from pathlib import Path

import aiosqlite

SCHEMA_PATH = Path(__file__).parent / "schema.sql"

_db: aiosqlite.Connection | None = None


async def init_db(db_path: str) -> aiosqlite.Connection:
    """Initialize the database connection and run schema."""
    global _db

    if db_path != ":memory:":
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    _db = await aiosqlite.connect(db_path)
    _db.row_factory = aiosqlite.Row
    await _db.execute("PRAGMA journal_mode=WAL")
    await apply_schema(_db)
    return _db


async def apply_schema(db: aiosqlite.Connection) -> None:
    """Create tables and bring older databases up to date."""
    await db.executescript(SCHEMA_PATH.read_text())
    await _run_migrations(db)
    await db.commit()


async def _run_migrations(db: aiosqlite.Connection) -> None:
    """Add columns that may be missing from older schemas."""
    cursor = await db.execute("PRAGMA table_info(cards)")
    existing = {row[1] for row in await cursor.fetchall()}
    new_cols = [
        ("idea_id", "TEXT"),
        ("priority", "TEXT"),
        ("due_date", "TEXT"),
        ("completed", "INTEGER NOT NULL DEFAULT 0"),
    ]
    for col_name, col_def in new_cols:
        if col_name not in existing:
            await db.execute(f"ALTER TABLE cards ADD COLUMN {col_name} {col_def}")


async def get_db() -> aiosqlite.Connection:
    """Get the active database connection."""
    if _db is None:
        raise RuntimeError("Database not initialized. Call init_db() first.")
    return _db


async def close_db() -> None:
    """Close the database connection."""
    global _db
    if _db is not None:
        await _db.close()
        _db = None

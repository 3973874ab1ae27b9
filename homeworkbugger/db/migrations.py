"""Database migration runner.

The schema version lives in SQLite's ``user_version`` pragma. Each migration
brings the database from the previous version to its own.
"""

import json
import logging
from pathlib import Path

import aiosqlite

from homeworkbugger.utils.constants import KEY_THEME

logger = logging.getLogger(__name__)


async def _create_schema(db: aiosqlite.Connection) -> None:
    schema_path = Path(__file__).parent / "schema.sql"
    with open(schema_path) as f:
        await db.executescript(f.read())


async def _quote_bare_theme(db: aiosqlite.Connection) -> None:
    """Early builds wrote the theme as a bare word instead of JSON."""
    async with db.execute("SELECT value FROM kv WHERE key = ?", (KEY_THEME,)) as cursor:
        row = await cursor.fetchone()

    if row is None:
        return

    try:
        json.loads(row[0])
    except json.JSONDecodeError:
        await db.execute(
            "UPDATE kv SET value = ? WHERE key = ?", (json.dumps(row[0]), KEY_THEME)
        )
        logger.info(f"Converted stored theme {row[0]!r} to JSON")


MIGRATIONS = [_create_schema, _quote_bare_theme]


async def run_migrations(db_path: Path) -> None:
    """Apply every migration newer than the database's version."""
    async with aiosqlite.connect(db_path) as db:
        async with db.execute("PRAGMA user_version") as cursor:
            (version,) = await cursor.fetchone()  # type: ignore

        for number, migration in enumerate(MIGRATIONS[version:], start=version + 1):
            await migration(db)
            await db.execute(f"PRAGMA user_version = {number}")
            logger.info(f"Applied migration {number}: {migration.__name__}")

        await db.commit()

    logger.info(f"Database ready at {db_path} (schema version {len(MIGRATIONS)})")

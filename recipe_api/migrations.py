"""Schema migrations for the relational recipe store.

Migrations are plain SQL applied in timestamp order. Applied migrations are
recorded in the ``migrations`` table so running them again is a no-op.

Run by hand with::

    flask --app main migrate
    flask --app main migrate-revert
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

from sqlalchemy import text
from sqlalchemy.engine import Connection, Engine

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Migration:
    timestamp: int
    title: str
    up: Sequence[str]
    down: Sequence[str]

    @property
    def name(self) -> str:
        return f"{self.title}{self.timestamp}"


CREATE_MIGRATIONS_TABLE = """
CREATE TABLE IF NOT EXISTS migrations (
    name VARCHAR(255) NOT NULL PRIMARY KEY,
    timestamp BIGINT NOT NULL
)
"""

# Portable across SQLite and PostgreSQL; ingredients and instructions hold JSON arrays.
CREATE_RECIPES_TABLE = """
CREATE TABLE IF NOT EXISTS recipes (
    id VARCHAR(36) NOT NULL PRIMARY KEY,
    title VARCHAR(200) NOT NULL,
    description VARCHAR(500) NOT NULL,
    ingredients TEXT NOT NULL,
    instructions TEXT NOT NULL,
    "prepTimeMinutes" INTEGER NOT NULL,
    "cookTimeMinutes" INTEGER NOT NULL,
    servings INTEGER NOT NULL,
    "createdAt" TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
)
"""

MIGRATIONS: Sequence[Migration] = (
    Migration(
        timestamp=1730822400000,
        title="CreateRecipesTable",
        up=(CREATE_RECIPES_TABLE,),
        down=("DROP TABLE IF EXISTS recipes",),
    ),
)


def applied_migrations(engine: Engine) -> List[str]:
    """Return the names of applied migrations, oldest first."""

    with engine.begin() as conn:
        return _applied(conn)


def run_migrations(engine: Engine, migrations: Sequence[Migration] = MIGRATIONS) -> List[Migration]:
    """Apply every pending migration and return the ones that ran."""

    ran: List[Migration] = []
    with engine.begin() as conn:
        done = set(_applied(conn))
        for migration in sorted(migrations, key=lambda m: m.timestamp):
            if migration.name in done:
                continue
            logger.info("Applying migration %s", migration.name)
            for statement in migration.up:
                conn.execute(text(statement))
            conn.execute(
                text("INSERT INTO migrations (name, timestamp) VALUES (:name, :timestamp)"),
                {"name": migration.name, "timestamp": migration.timestamp},
            )
            ran.append(migration)

    if not ran:
        logger.debug("No pending migrations")
    return ran


def revert_last_migration(
    engine: Engine, migrations: Sequence[Migration] = MIGRATIONS
) -> Optional[Migration]:
    """Undo the most recently applied migration, if any."""

    by_name = {migration.name: migration for migration in migrations}
    with engine.begin() as conn:
        applied = _applied(conn)
        if not applied:
            return None

        migration = by_name.get(applied[-1])
        if migration is None:
            raise KeyError(f"Migration '{applied[-1]}' is not known to this build.")

        logger.info("Reverting migration %s", migration.name)
        for statement in migration.down:
            conn.execute(text(statement))
        conn.execute(text("DELETE FROM migrations WHERE name = :name"), {"name": migration.name})
    return migration


def _applied(conn: Connection) -> List[str]:
    conn.execute(text(CREATE_MIGRATIONS_TABLE))
    rows = conn.execute(text("SELECT name FROM migrations ORDER BY timestamp"))
    return [row[0] for row in rows]


__all__ = [
    "MIGRATIONS",
    "Migration",
    "applied_migrations",
    "revert_last_migration",
    "run_migrations",
]

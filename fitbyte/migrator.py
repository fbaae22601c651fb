"""
Plain-SQL schema migrations.

Migrations live in ``fitbyte/migrations`` as pairs of files named
``<version>_<name>.up.sql`` / ``<version>_<name>.down.sql``. Applied versions
are recorded in the ``schema_migrations`` table; every migration runs in its
own transaction.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional

from sqlalchemy import text
from sqlalchemy.engine import Connection, Engine

from fitbyte.errors import MigrationError

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = Path(__file__).resolve().parent / "migrations"
MIGRATIONS_TABLE = "schema_migrations"

_FILENAME_PATTERN = re.compile(
    r"^(?P<version>\d+)_(?P<name>[A-Za-z0-9_]+)\.(?P<direction>up|down)\.sql$"
)


@dataclass(frozen=True)
class Migration:
    version: int
    name: str
    up_path: Path
    down_path: Optional[Path] = None

    def up_sql(self) -> str:
        return self.up_path.read_text(encoding="utf-8")

    def down_sql(self) -> str:
        if self.down_path is None:
            raise MigrationError(f"Migration {self.version} has no down script")
        return self.down_path.read_text(encoding="utf-8")


def discover_migrations(directory: Path = MIGRATIONS_DIR) -> list[Migration]:
    """Collect migrations from ``directory`` sorted by version."""
    found: dict[int, dict] = {}
    for path in sorted(Path(directory).glob("*.sql")):
        match = _FILENAME_PATTERN.match(path.name)
        if not match:
            logger.warning("Ignoring unrecognised migration file %s", path.name)
            continue
        version = int(match.group("version"))
        entry = found.setdefault(version, {"name": match.group("name")})
        if entry["name"] != match.group("name"):
            raise MigrationError(f"Conflicting names for migration {version}")
        entry[match.group("direction")] = path

    migrations = []
    for version in sorted(found):
        entry = found[version]
        if "up" not in entry:
            raise MigrationError(f"Migration {version} has no up script")
        migrations.append(
            Migration(
                version=version,
                name=entry["name"],
                up_path=entry["up"],
                down_path=entry.get("down"),
            )
        )
    return migrations


def split_statements(sql: str) -> list[str]:
    """
    Split a script into statements on ``;``. Line comments are dropped; the
    scripts here never contain ``;`` inside literals or function bodies.
    """
    lines = []
    for line in sql.splitlines():
        stripped = line.strip()
        if stripped.startswith("--"):
            continue
        lines.append(line)
    statements = [chunk.strip() for chunk in "\n".join(lines).split(";")]
    return [statement for statement in statements if statement]


class Migrator:
    def __init__(self, engine: Engine, migrations: Optional[Iterable[Migration]] = None):
        self.engine = engine
        self.migrations = (
            list(migrations) if migrations is not None else discover_migrations()
        )

    def _ensure_table(self, conn: Connection) -> None:
        conn.execute(
            text(
                f"CREATE TABLE IF NOT EXISTS {MIGRATIONS_TABLE} ("
                "version BIGINT PRIMARY KEY, "
                "name VARCHAR NOT NULL, "
                "applied_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP)"
            )
        )

    def applied_versions(self) -> list[int]:
        with self.engine.begin() as conn:
            self._ensure_table(conn)
            rows = conn.execute(
                text(f"SELECT version FROM {MIGRATIONS_TABLE} ORDER BY version")
            )
            return [int(row[0]) for row in rows]

    def pending(self) -> list[Migration]:
        applied = set(self.applied_versions())
        return [m for m in self.migrations if m.version not in applied]

    def status(self) -> list[tuple[Migration, bool]]:
        applied = set(self.applied_versions())
        return [(m, m.version in applied) for m in self.migrations]

    def upgrade(self) -> list[Migration]:
        """Apply every pending migration in version order."""
        applied = []
        for migration in self.pending():
            logger.info("Applying migration %s_%s", migration.version, migration.name)
            with self.engine.begin() as conn:
                for statement in split_statements(migration.up_sql()):
                    conn.exec_driver_sql(statement)
                conn.execute(
                    text(
                        f"INSERT INTO {MIGRATIONS_TABLE} (version, name) "
                        "VALUES (:version, :name)"
                    ),
                    {"version": migration.version, "name": migration.name},
                )
            applied.append(migration)
        return applied

    def downgrade(self, steps: Optional[int] = 1) -> list[Migration]:
        """
        Revert the most recently applied migrations. ``steps=None`` reverts
        all of them.
        """
        by_version = {m.version: m for m in self.migrations}
        applied = list(reversed(self.applied_versions()))
        if steps is not None:
            applied = applied[:steps]

        reverted = []
        for version in applied:
            migration = by_version.get(version)
            if migration is None:
                raise MigrationError(f"Applied migration {version} not found on disk")
            logger.info("Reverting migration %s_%s", migration.version, migration.name)
            with self.engine.begin() as conn:
                for statement in split_statements(migration.down_sql()):
                    conn.exec_driver_sql(statement)
                conn.execute(
                    text(f"DELETE FROM {MIGRATIONS_TABLE} WHERE version = :version"),
                    {"version": version},
                )
            reverted.append(migration)
        return reverted

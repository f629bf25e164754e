"""Bring the MathStreak schema up to date and report where it stands.

``python -m scripts.run_migrations`` waits for the database, upgrades it and prints a JSON
report with the revision before and after plus any engine tables still missing.
``--check`` only reports and exits non-zero when the schema is behind, so deploys can gate
the API start on it.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
import time
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import List, Optional

from alembic import command
from alembic.config import Config
from alembic.runtime.migration import MigrationContext
from alembic.script import ScriptDirectory
from sqlalchemy import create_engine, inspect, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError

import mathstreak.db.models  # noqa: F401
from mathstreak.config import get_settings
from mathstreak.db.base import Base
from mathstreak.logging_config import configure_logging

LOGGER = logging.getLogger("mathstreak.migrations")
BACKEND_ROOT = Path(__file__).resolve().parent.parent


@dataclass
class SchemaReport:
    head: Optional[str]
    revision_before: Optional[str]
    revision_after: Optional[str]
    missing_tables: List[str] = field(default_factory=list)

    @property
    def up_to_date(self) -> bool:
        return self.revision_after == self.head and not self.missing_tables


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Apply or verify MathStreak schema migrations.")
    parser.add_argument("--revision", default="head", help="Target revision (default: head).")
    parser.add_argument("--timeout", type=int, default=60, help="Seconds to wait for the database.")
    parser.add_argument("--poll-interval", type=float, default=3.0, help="Seconds between connection attempts.")
    parser.add_argument("--config", default=str(BACKEND_ROOT / "alembic.ini"), help="Path to alembic.ini.")
    parser.add_argument("--check", action="store_true", help="Report schema state without upgrading.")
    return parser.parse_args(argv)


def get_alembic_config(config_path: str) -> Config:
    config = Config(config_path)
    config.set_main_option("script_location", str(BACKEND_ROOT / "alembic"))
    # configure_logging() owns process logging; keep env.py from reapplying alembic.ini.
    config.attributes["configure_logger"] = False
    return config


def resolve_database_url(config: Config) -> str:
    """Prefer the URL in alembic.ini, then the application settings."""
    url = config.get_main_option("sqlalchemy.url") or get_settings().database_url
    if not url:
        raise RuntimeError("MATHSTREAK_DATABASE_URL must be set before running migrations.")
    config.set_main_option("sqlalchemy.url", url)
    return url


def wait_for_database(engine: Engine, *, timeout: int, poll_interval: float) -> None:
    deadline = time.monotonic() + timeout
    attempt = 0
    while True:
        attempt += 1
        try:
            with engine.connect() as connection:
                connection.execute(text("SELECT 1"))
            LOGGER.info("Database reachable after %d attempt(s).", attempt)
            return
        except OperationalError as exc:
            if time.monotonic() >= deadline:
                raise RuntimeError(f"Database unreachable after {attempt} attempt(s).") from exc
            LOGGER.warning("Database not ready (attempt %d): %s", attempt, exc.orig)
        time.sleep(poll_interval)


def current_revision(engine: Engine) -> Optional[str]:
    with engine.connect() as connection:
        return MigrationContext.configure(connection).get_current_revision()


def missing_tables(engine: Engine) -> List[str]:
    present = set(inspect(engine).get_table_names())
    return sorted(name for name in Base.metadata.tables if name not in present)


def run_migrations(
    revision: str = "head",
    *,
    timeout: int = 60,
    poll_interval: float = 3.0,
    config: Optional[Config] = None,
    check_only: bool = False,
) -> SchemaReport:
    config = config or get_alembic_config(str(BACKEND_ROOT / "alembic.ini"))
    engine = create_engine(resolve_database_url(config), future=True, pool_pre_ping=True)
    try:
        wait_for_database(engine, timeout=timeout, poll_interval=poll_interval)
        head = ScriptDirectory.from_config(config).get_current_head()
        before = current_revision(engine)
        if not check_only:
            LOGGER.info("Upgrading schema %s -> %s", before or "<empty>", revision)
            command.upgrade(config, revision)
        report = SchemaReport(
            head=head,
            revision_before=before,
            revision_after=current_revision(engine),
            missing_tables=missing_tables(engine),
        )
    finally:
        engine.dispose()

    if report.missing_tables:
        LOGGER.warning("Schema is missing tables: %s", ", ".join(report.missing_tables))
    return report


def main(argv: Optional[list[str]] = None) -> int:
    configure_logging()
    args = parse_args(argv)
    try:
        report = run_migrations(
            args.revision,
            timeout=args.timeout,
            poll_interval=args.poll_interval,
            config=get_alembic_config(args.config),
            check_only=args.check,
        )
    except Exception as exc:  # noqa: BLE001
        LOGGER.exception("Migration run failed: %s", exc)
        return 1
    print(json.dumps({**asdict(report), "up_to_date": report.up_to_date}))
    return 0 if report.up_to_date or args.revision != "head" else 1


if __name__ == "__main__":
    sys.exit(main())

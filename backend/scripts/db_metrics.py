"""Print a JSON snapshot of the connection pool and catalog size."""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone

from sqlalchemy import text

from mathstreak.db.monitoring import get_pool_snapshot, instrument_engine
from mathstreak.db.session import get_engine, session_scope
from mathstreak.repositories.lesson_catalog import lesson_catalog

LOGGER = logging.getLogger("mathstreak.db_metrics")


def collect_metrics() -> dict[str, object]:
    engine = get_engine()
    instrument_engine(engine)
    with engine.connect() as connection:
        connection.execute(text("SELECT 1"))
    with session_scope(commit=False) as session:
        active_lessons = lesson_catalog.count_active(session)
    return {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "pool": get_pool_snapshot(engine),
        "active_lessons": active_lessons,
    }


def main() -> int:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    try:
        print(json.dumps(collect_metrics()))
        return 0
    except Exception as exc:  # noqa: BLE001
        LOGGER.exception("Failed to collect database metrics: %s", exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())

"""Connection-pool counters published through telemetry."""

from __future__ import annotations

import os
import time
from dataclasses import dataclass, field
from typing import Dict, Tuple

from sqlalchemy import event
from sqlalchemy.engine import Engine

from ..telemetry import emit_event


_TELEMETRY_INTERVAL = float(os.getenv("MATHSTREAK_DB_TELEMETRY_INTERVAL", "30"))


@dataclass
class PoolCounters:
    connects: int = 0
    checkouts: int = 0
    checkins: int = 0
    last_emit: float = field(default=0.0, repr=False)

    def as_dict(self) -> Dict[str, int]:
        return {"connects": self.connects, "checkouts": self.checkouts, "checkins": self.checkins}


# Holding the engine keeps its id from being reused by a later engine.
_COUNTERS: Dict[int, Tuple[Engine, PoolCounters]] = {}


def _counters_for(engine: Engine) -> PoolCounters | None:
    entry = _COUNTERS.get(id(engine))
    if entry is None or entry[0] is not engine:
        return None
    return entry[1]


def instrument_engine(engine: Engine) -> PoolCounters:
    """Count pool connect/checkout/checkin events and emit throttled snapshots."""
    counters = _counters_for(engine)
    if counters is not None:
        return counters
    counters = PoolCounters()
    _COUNTERS[id(engine)] = (engine, counters)

    def _publish(trigger: str) -> None:
        now = time.time()
        if _TELEMETRY_INTERVAL > 0 and (now - counters.last_emit) < _TELEMETRY_INTERVAL:
            return
        counters.last_emit = now
        emit_event("db_pool_status", trigger=trigger, status=pool_status(engine), **counters.as_dict())

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record) -> None:  # type: ignore[no-untyped-def]
        counters.connects += 1
        _publish("connect")

    @event.listens_for(engine, "checkout")
    def _on_checkout(dbapi_connection, connection_record, connection_proxy) -> None:  # type: ignore[no-untyped-def]
        counters.checkouts += 1
        _publish("checkout")

    @event.listens_for(engine, "checkin")
    def _on_checkin(dbapi_connection, connection_record) -> None:  # type: ignore[no-untyped-def]
        counters.checkins += 1
        _publish("checkin")

    return counters


def get_pool_snapshot(engine: Engine) -> Dict[str, object]:
    counters = _counters_for(engine) or PoolCounters()
    return {"status": pool_status(engine), **counters.as_dict()}


def pool_status(engine: Engine) -> str:
    try:
        return engine.pool.status()  # type: ignore[no-untyped-call]
    except Exception as exc:  # pragma: no cover
        return f"unavailable: {exc}"


__all__ = [
    "PoolCounters",
    "get_pool_snapshot",
    "instrument_engine",
    "pool_status",
]

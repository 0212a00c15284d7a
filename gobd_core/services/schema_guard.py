"""Checks that optional tables exist before the AI features touch them."""

from __future__ import annotations

import time
from functools import lru_cache
from threading import RLock
from typing import Callable, Dict, Sequence, Tuple

from sqlalchemy import inspect
from sqlalchemy.engine import Engine

from gobd_core.core.config import get_settings

AI_SCHEMA: Dict[str, Tuple[str, ...]] = {
    "ai_insights": (
        "id",
        "company_id",
        "entity_type",
        "entity_id",
        "type",
        "severity",
        "confidence_score",
        "rule_id",
        "model_version",
    ),
    "ai_insight_decisions": ("id", "insight_id", "company_id", "actor_user_id", "decision", "reason"),
}

SchemaCacheKey = Tuple[str, Tuple[str, ...]]


class SchemaGuard:
    """Thread-safe, TTL-cached table and column presence checks."""

    def __init__(
        self,
        engine: Engine,
        *,
        ttl_seconds: int = 60,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._engine = engine
        self._ttl = max(ttl_seconds, 0)
        self._clock = clock
        self._store: Dict[SchemaCacheKey, Tuple[float, bool]] = {}
        self._lock = RLock()

    def check_table_and_columns(self, table: str, columns: Sequence[str] = ()) -> bool:
        key: SchemaCacheKey = (table, tuple(sorted(columns)))
        now = self._clock()
        with self._lock:
            cached = self._store.get(key)
            if cached is not None and now - cached[0] < self._ttl:
                return cached[1]

        available = self._inspect(table, key[1])
        with self._lock:
            self._store[key] = (now, available)
        return available

    def ai_schema_available(self) -> bool:
        return all(self.check_table_and_columns(table, columns) for table, columns in AI_SCHEMA.items())

    def clear(self) -> None:
        with self._lock:
            self._store.clear()

    def _inspect(self, table: str, columns: Tuple[str, ...]) -> bool:
        inspector = inspect(self._engine)
        if not inspector.has_table(table):
            return False
        existing = {column["name"] for column in inspector.get_columns(table)}
        return all(column in existing for column in columns)


@lru_cache
def get_schema_guard() -> SchemaGuard:
    from gobd_core.core.database import engine

    return SchemaGuard(engine, ttl_seconds=get_settings().schema_cache_ttl_seconds)

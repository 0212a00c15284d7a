from __future__ import annotations

from gobd_core.core.database import engine
from gobd_core.models import AIInsightDecision
from gobd_core.services.schema_guard import SchemaGuard


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def test_ai_schema_available_when_tables_exist() -> None:
    guard = SchemaGuard(engine)
    assert guard.ai_schema_available() is True
    assert guard.check_table_and_columns("ai_insights", ["rule_id", "model_version"]) is True


def test_missing_table_or_column_reported() -> None:
    guard = SchemaGuard(engine)
    assert guard.check_table_and_columns("ai_insight_feedback") is False
    assert guard.check_table_and_columns("ai_insights", ["embedding"]) is False


def test_results_cached_until_ttl_expires() -> None:
    clock = FakeClock()
    guard = SchemaGuard(engine, ttl_seconds=60, clock=clock)
    assert guard.ai_schema_available() is True

    AIInsightDecision.__table__.drop(bind=engine)

    clock.now += 30
    assert guard.ai_schema_available() is True

    clock.now += 31
    assert guard.ai_schema_available() is False


def test_clear_forces_recheck() -> None:
    guard = SchemaGuard(engine, ttl_seconds=3600)
    assert guard.ai_schema_available() is True

    AIInsightDecision.__table__.drop(bind=engine)
    assert guard.ai_schema_available() is True

    guard.clear()
    assert guard.ai_schema_available() is False

"""
Engine Facade Tests

End-to-end behavior through MistakeAnalyticsEngine: record, then read
summaries, insights, critical patterns, warnings and statistics.

Test Categories:
1. Scenario Tests
2. Read Surface Tests
3. Student Isolation Tests
4. Maintenance Tests
5. Factory / Configuration Tests
6. Degraded Storage Tests
"""

from datetime import timedelta

import pytest

from mistake_analytics import (
    EngineConfig,
    InMemoryStorageBackend,
    InsightType,
    MistakeAnalyticsEngine,
    PatternCatalog,
    Trend,
    create_error_pattern_engine,
    create_spot_mistake_engine,
)
from mistake_analytics.pattern_catalog import ERROR_PATTERN_CATALOG, SPOT_MISTAKE_CATALOG

from tests.conftest import NOW, OTHER_STUDENT_ID, STUDENT_ID, make_context, record_at


# =============================================================================
# 1. Scenario Tests
# =============================================================================

class TestScenarios:
    """The documented end-to-end scenarios."""

    def test_three_recent_repeats_warn(self, engine, clock):
        t0 = NOW - timedelta(days=3)
        for offset in range(3):
            record_at(engine, clock, t0 + timedelta(days=offset), "EP001")

        summary = engine.get_summary(STUDENT_ID, "EP001")
        assert summary.occurrences == 3
        assert summary.trend == Trend.PERSISTENT
        assert summary.mastered is False

        insights = engine.get_insights(STUDENT_ID)
        assert any(i.type == InsightType.WARNING and "3 times" in i.message for i in insights)

    def test_five_old_repeats_are_mastered(self, engine, clock):
        for offset in range(5):
            record_at(engine, clock, NOW - timedelta(days=10 + offset), "EP001")

        summary = engine.get_summary(STUDENT_ID, "EP001")
        assert summary.mastered is True

        insights = engine.get_insights(STUDENT_ID)
        assert any(i.type == InsightType.CELEBRATION and "Mastered" in i.message for i in insights)

    def test_corrupted_store_loads_empty(self, memory_backend, clock):
        memory_backend.set_item("error_patterns", "{{{ corrupted")
        engine = create_error_pattern_engine(memory_backend, clock=clock)

        assert engine.get_instances("S2") == []
        assert engine.get_summaries("S2") == []
        assert engine.get_statistics("S2").total_errors == 0

    def test_mastery_arrives_as_time_passes(self, engine, clock):
        for offset in range(5):
            record_at(engine, clock, NOW - timedelta(days=offset), "EP004")
        assert engine.should_warn(STUDENT_ID, "EP004") is True

        clock.advance(days=8)

        assert engine.get_summary(STUDENT_ID, "EP004").mastered is True
        assert engine.should_warn(STUDENT_ID, "EP004") is False


# =============================================================================
# 2. Read Surface Tests
# =============================================================================

class TestReadSurface:
    """Summaries, categories, critical patterns, warnings."""

    def test_summaries_are_ranked(self, engine, clock):
        for _ in range(4):
            engine.record(STUDENT_ID, "EP007", "P1", make_context())
        engine.record(STUDENT_ID, "EP010", "P2", make_context())

        assert [s.pattern_id for s in engine.get_summaries(STUDENT_ID)] == ["EP010", "EP007"]

    def test_category_filter(self, engine):
        engine.record(STUDENT_ID, "EP001", "P1", make_context())
        engine.record(STUDENT_ID, "EP011", "P2", make_context())
        engine.record(STUDENT_ID, "EP003", "P3", make_context())

        method = engine.get_summaries(STUDENT_ID, category="method-selection")
        assert {s.pattern_id for s in method} == {"EP001", "EP011"}
        assert engine.get_categories(STUDENT_ID) == ["method-selection", "sign-convention"]

    def test_critical_patterns(self, engine):
        for _ in range(2):
            engine.record(STUDENT_ID, "EP005", "P1", make_context())
            engine.record(STUDENT_ID, "EP006", "P1", make_context())

        assert [s.pattern_id for s in engine.get_critical_patterns(STUDENT_ID)] == ["EP005"]

    def test_should_warn_needs_two_occurrences(self, engine):
        engine.record(STUDENT_ID, "EP001", "P1", make_context())
        assert engine.should_warn(STUDENT_ID, "EP001") is False
        engine.record(STUDENT_ID, "EP001", "P2", make_context())
        assert engine.should_warn(STUDENT_ID, "EP001") is True

    def test_should_warn_unknown_pattern(self, engine):
        engine.record(STUDENT_ID, "EP999", "P1", make_context())
        engine.record(STUDENT_ID, "EP999", "P2", make_context())
        assert engine.should_warn(STUDENT_ID, "EP999") is False

    def test_unknown_pattern_counts_in_totals_only(self, engine):
        engine.record(STUDENT_ID, "EP999", "P1", make_context())
        engine.record(STUDENT_ID, "EP001", "P1", make_context())

        stats = engine.get_statistics(STUDENT_ID)
        assert stats.total_errors == 2
        assert stats.unique_patterns == 1
        assert len(engine.get_instances(STUDENT_ID)) == 2

    def test_insight_feed_can_be_truncated_by_caller(self, engine):
        for pattern_id in ("EP001", "EP002", "EP004", "EP005"):
            for _ in range(3):
                engine.record(STUDENT_ID, pattern_id, "P1", make_context())

        insights = engine.get_insights(STUDENT_ID)
        assert len(insights) == 4
        assert len(insights[:3]) == 3

    def test_statistics_to_dict(self, engine):
        engine.record(STUDENT_ID, "EP001", "P1", make_context())
        data = engine.get_statistics(STUDENT_ID).to_dict()
        assert data["total_errors"] == 1
        assert data["most_common_category"] == "method-selection"
        assert data["improvement_rate"] == 0


# =============================================================================
# 3. Student Isolation Tests
# =============================================================================

class TestStudentIsolation:
    """No cross-student leakage."""

    def test_statistics_are_independent(self, engine):
        for _ in range(3):
            engine.record(STUDENT_ID, "EP001", "P1", make_context())
        engine.record(OTHER_STUDENT_ID, "EP001", "P1", make_context())

        s1 = engine.get_statistics(STUDENT_ID)
        s2 = engine.get_statistics(OTHER_STUDENT_ID)
        assert s1.total_errors == 3
        assert s2.total_errors == 1
        assert engine.get_summary(OTHER_STUDENT_ID, "EP001").occurrences == 1
        assert engine.should_warn(OTHER_STUDENT_ID, "EP001") is False

    def test_insights_are_independent(self, engine):
        for _ in range(3):
            engine.record(STUDENT_ID, "EP002", "P1", make_context())
        assert engine.get_insights(OTHER_STUDENT_ID) == []


# =============================================================================
# 4. Maintenance Tests
# =============================================================================

class TestMaintenance:
    """cleanup, cleanup_if_due and clear."""

    def test_cleanup_uses_configured_age(self, engine, clock):
        record_at(engine, clock, NOW - timedelta(days=91), "EP001")
        record_at(engine, clock, NOW - timedelta(days=30), "EP001")

        assert engine.cleanup() == 1
        assert engine.get_summary(STUDENT_ID, "EP001").occurrences == 1

    def test_cleanup_if_due_runs_once_per_interval(self, engine, clock):
        record_at(engine, clock, NOW - timedelta(days=120), "EP001")

        assert engine.cleanup_if_due() == 1
        assert engine.cleanup_if_due() is None

        clock.advance(days=2)
        assert engine.cleanup_if_due() == 0

    def test_clear_wipes_log(self, engine):
        engine.record(STUDENT_ID, "EP001", "P1", make_context())
        engine.clear()
        assert engine.get_instances(STUDENT_ID) == []


# =============================================================================
# 5. Factory / Configuration Tests
# =============================================================================

class TestFactories:
    """One engine class, two catalogs."""

    def test_two_engines_share_backend_without_mixing(self, memory_backend, clock):
        errors = create_error_pattern_engine(memory_backend, clock=clock)
        spots = create_spot_mistake_engine(memory_backend, clock=clock)

        errors.record(STUDENT_ID, "EP001", "P1", make_context())
        spots.record(STUDENT_ID, "reference_frame", "S1", make_context(effort_count=1))

        assert [s.pattern_id for s in errors.get_summaries(STUDENT_ID)] == ["EP001"]
        assert [s.pattern_id for s in spots.get_summaries(STUDENT_ID)] == ["reference_frame"]

    def test_factory_configs(self, memory_backend):
        errors = create_error_pattern_engine(memory_backend)
        spots = create_spot_mistake_engine(memory_backend)

        assert errors.catalog is ERROR_PATTERN_CATALOG
        assert spots.catalog is SPOT_MISTAKE_CATALOG
        assert errors.config.cleanup_max_age_days == 90
        assert spots.config.cleanup_max_age_days == 30
        assert errors.config.store_key != spots.config.store_key

    def test_custom_mastery_threshold(self, clock):
        engine = MistakeAnalyticsEngine(
            ERROR_PATTERN_CATALOG,
            InMemoryStorageBackend(),
            config=EngineConfig(store_key="strict", mastery_min_occurrences=3),
            clock=clock,
        )
        for offset in range(3):
            record_at(engine, clock, NOW - timedelta(days=20 + offset), "EP001")

        assert engine.get_summary(STUDENT_ID, "EP001").mastered is True
        mastered = [i for i in engine.get_insights(STUDENT_ID) if "Mastered" in i.message]
        assert "last 3 problems" in mastered[0].message

    def test_custom_catalog(self, clock):
        catalog = PatternCatalog("tiny", [ERROR_PATTERN_CATALOG.get("EP007")])
        engine = MistakeAnalyticsEngine(catalog, InMemoryStorageBackend(), clock=clock)
        engine.record(STUDENT_ID, "EP001", "P1", make_context())
        engine.record(STUDENT_ID, "EP007", "P1", make_context())

        assert [s.pattern_id for s in engine.get_summaries(STUDENT_ID)] == ["EP007"]

    def test_invalid_config_is_rejected(self):
        with pytest.raises(ValueError):
            EngineConfig(store_key="")
        with pytest.raises(ValueError):
            EngineConfig(cleanup_max_age_days=-5)


# =============================================================================
# 6. Degraded Storage Tests
# =============================================================================

class TestDegradedStorage:
    """No medium or a reset never reaches the caller as an exception."""

    def test_engine_without_backend(self, clock):
        engine = create_error_pattern_engine(None, clock=clock)
        engine.record(STUDENT_ID, "EP001", "P1", make_context())

        assert engine.get_summaries(STUDENT_ID) == []
        assert engine.get_insights(STUDENT_ID) == []
        assert engine.should_warn(STUDENT_ID, "EP001") is False
        assert engine.get_statistics(STUDENT_ID).total_errors == 0
        assert engine.cleanup() == 0

    def test_reset_callback_reaches_host(self, memory_backend, clock):
        seen = []
        memory_backend.set_item("error_patterns", "nope")
        engine = create_error_pattern_engine(
            memory_backend, clock=clock, on_reset=lambda key, reason: seen.append(key)
        )

        assert engine.load_with_status(STUDENT_ID).reset is True
        assert seen == ["error_patterns"]

    def test_malformed_record_raises(self, engine):
        with pytest.raises(ValueError):
            engine.record(STUDENT_ID, "EP001", "P1", {"topic": "Mechanics", "difficulty": "easy"})

    def test_unhashable_pattern_id_is_rejected_as_malformed(self, engine):
        with pytest.raises(ValueError):
            engine.record(STUDENT_ID, ["EP001"], "P1", make_context())
        assert engine.get_instances(STUDENT_ID) == []

"""
Mistake Analytics Engine

Facade wiring the catalog, instance store, aggregator, trend classifier,
insight generator and statistics reducer into the library's public surface.

Inbound:
- record(student_id, pattern_id, problem_id, context, ...)

Outbound (pure reads, recomputed from the raw log on every call):
- get_summaries / get_insights / get_critical_patterns
- should_warn / get_statistics

There is no module-level singleton. The host builds one engine per catalog
and passes in the storage backend. The two tracking features of the tutor
share this class:
- create_error_pattern_engine() - physics error patterns, 90 day retention
- create_spot_mistake_engine() - spot-the-mistake types, 30 day retention
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional, Union

from .aggregator import aggregate_instances, rank_summaries
from .insight_generator import InsightGenerator, find_summary
from .instance_store import MistakeInstanceStore
from .mistake_model import (
    Insight,
    LoadResult,
    MistakeContext,
    MistakeInstance,
    MistakeStatistics,
    PatternSummary,
    parse_timestamp,
)
from .pattern_catalog import ERROR_PATTERN_CATALOG, SPOT_MISTAKE_CATALOG, PatternCatalog
from .statistics_reducer import reduce_statistics
from .storage_backend import StorageBackend
from .trend_classifier import (
    DEFAULT_MASTERY_MIN_OCCURRENCES,
    DEFAULT_RECENT_WINDOW_DAYS,
    TrendClassifier,
)

logger = logging.getLogger("mistake_analytics")


# -----------------------------------------------------------------------------
# Constants
# -----------------------------------------------------------------------------
ERROR_PATTERN_STORE_KEY = "error_patterns"
SPOT_MISTAKE_STORE_KEY = "spot_mistake_patterns"

DEFAULT_CLEANUP_MAX_AGE_DAYS = 90
SPOT_MISTAKE_CLEANUP_MAX_AGE_DAYS = 30
DEFAULT_CLEANUP_INTERVAL_DAYS = 1


# -----------------------------------------------------------------------------
# Engine Configuration (Frozen)
# -----------------------------------------------------------------------------
@dataclass(frozen=True)
class EngineConfig:
    store_key: str = ERROR_PATTERN_STORE_KEY
    recent_window_days: float = DEFAULT_RECENT_WINDOW_DAYS
    mastery_min_occurrences: int = DEFAULT_MASTERY_MIN_OCCURRENCES
    cleanup_max_age_days: float = DEFAULT_CLEANUP_MAX_AGE_DAYS
    cleanup_interval_days: float = DEFAULT_CLEANUP_INTERVAL_DAYS

    def __post_init__(self):
        if not self.store_key:
            raise ValueError("store_key cannot be empty")
        if self.cleanup_max_age_days < 0:
            raise ValueError(f"cleanup_max_age_days cannot be negative: {self.cleanup_max_age_days}")
        if self.cleanup_interval_days < 0:
            raise ValueError(f"cleanup_interval_days cannot be negative: {self.cleanup_interval_days}")


# -----------------------------------------------------------------------------
# Mistake Analytics Engine
# -----------------------------------------------------------------------------
class MistakeAnalyticsEngine:
    """
    One catalog, one store, one student log per student id.

    Args:
        catalog: Known failure modes.
        backend: Storage medium, or None when no persistent medium exists.
        config: Window sizes, thresholds and the storage key.
        clock: Returns the current time. Shared by the store and the reads.
        on_reset: Diagnostic callback, called as on_reset(key, reason)
            whenever stored state is discarded.
    """

    def __init__(
        self,
        catalog: PatternCatalog,
        backend: Optional[StorageBackend],
        config: Optional[EngineConfig] = None,
        clock: Optional[Callable[[], datetime]] = None,
        on_reset: Optional[Callable[[str, str], None]] = None,
    ):
        self._catalog = catalog
        self._config = config or EngineConfig()
        self._store = MistakeInstanceStore(
            backend,
            key=self._config.store_key,
            clock=clock,
            on_reset=on_reset,
        )
        self._classifier = TrendClassifier(
            recent_window_days=self._config.recent_window_days,
            mastery_min_occurrences=self._config.mastery_min_occurrences,
        )
        self._insights = InsightGenerator(
            mastery_min_occurrences=self._config.mastery_min_occurrences,
        )

    @property
    def catalog(self) -> PatternCatalog:
        return self._catalog

    @property
    def config(self) -> EngineConfig:
        return self._config

    @property
    def store(self) -> MistakeInstanceStore:
        return self._store

    # -------------------------------------------------------------------------
    # Inbound
    # -------------------------------------------------------------------------

    def record(
        self,
        student_id: str,
        pattern_id: str,
        problem_id: str,
        context: Union[MistakeContext, Dict[str, Any]],
        problem_text: str = "",
        student_attempt: str = "",
        correct_approach: str = "",
    ) -> MistakeInstance:
        """Record a mistake. Raises ValueError for malformed input."""
        instance = self._store.record(
            student_id=student_id,
            pattern_id=pattern_id,
            problem_id=problem_id,
            context=context,
            problem_text=problem_text,
            student_attempt=student_attempt,
            correct_approach=correct_approach,
        )
        if instance.pattern_id not in self._catalog:
            logger.debug(f"Pattern {instance.pattern_id} is not in catalog {self._catalog.name}; kept in raw log only")
        return instance

    # -------------------------------------------------------------------------
    # Outbound (Read-Only)
    # -------------------------------------------------------------------------

    def get_instances(self, student_id: str) -> List[MistakeInstance]:
        return self._store.load(student_id)

    def load_with_status(self, student_id: str) -> LoadResult:
        return self._store.load_with_status(student_id)

    def get_summaries(self, student_id: str, category: Optional[str] = None) -> List[PatternSummary]:
        """Ranked, classified summaries, optionally limited to one category."""
        summaries = self._summaries_from(self._store.load(student_id))
        if category is not None:
            summaries = [s for s in summaries if s.pattern.category == category]
        return summaries

    def get_summary(self, student_id: str, pattern_id: str) -> Optional[PatternSummary]:
        return find_summary(self.get_summaries(student_id), pattern_id)

    def get_categories(self, student_id: str) -> List[str]:
        categories: List[str] = []
        for summary in self.get_summaries(student_id):
            if summary.pattern.category not in categories:
                categories.append(summary.pattern.category)
        return categories

    def get_insights(self, student_id: str) -> List[Insight]:
        return self._insights.generate(self.get_summaries(student_id))

    def get_critical_patterns(self, student_id: str) -> List[PatternSummary]:
        return self._insights.select_critical(self.get_summaries(student_id))

    def should_warn(self, student_id: str, pattern_id: str) -> bool:
        return self._insights.should_warn(self.get_summaries(student_id), pattern_id)

    def get_statistics(self, student_id: str) -> MistakeStatistics:
        instances = self._store.load(student_id)
        return reduce_statistics(instances, self._summaries_from(instances), self._insights)

    # -------------------------------------------------------------------------
    # Maintenance
    # -------------------------------------------------------------------------

    def cleanup(self, max_age_days: Optional[float] = None) -> int:
        """Prune instances older than max_age_days (config default)."""
        if max_age_days is None:
            max_age_days = self._config.cleanup_max_age_days
        return self._store.cleanup(max_age_days)

    def cleanup_if_due(self) -> Optional[int]:
        """
        Run cleanup when the last one is older than cleanup_interval_days.

        Returns the number of removed instances, or None if cleanup was not due.
        """
        last = parse_timestamp(self._store.last_cleanup())
        interval = timedelta(days=self._config.cleanup_interval_days)
        if last is not None and self._store.now() - last < interval:
            return None
        return self.cleanup()

    def clear(self) -> None:
        self._store.clear()

    # -------------------------------------------------------------------------
    # Internal Helpers
    # -------------------------------------------------------------------------

    def _summaries_from(self, instances: List[MistakeInstance]) -> List[PatternSummary]:
        now = self._store.now()
        summaries = aggregate_instances(instances, self._catalog)
        return rank_summaries(self._classifier.classify_all(summaries, now))


# -----------------------------------------------------------------------------
# Factories
# -----------------------------------------------------------------------------
def create_error_pattern_engine(
    backend: Optional[StorageBackend],
    clock: Optional[Callable[[], datetime]] = None,
    on_reset: Optional[Callable[[str, str], None]] = None,
) -> MistakeAnalyticsEngine:
    """Engine over the physics error-pattern catalog."""
    return MistakeAnalyticsEngine(
        ERROR_PATTERN_CATALOG,
        backend,
        config=EngineConfig(
            store_key=ERROR_PATTERN_STORE_KEY,
            cleanup_max_age_days=DEFAULT_CLEANUP_MAX_AGE_DAYS,
        ),
        clock=clock,
        on_reset=on_reset,
    )


def create_spot_mistake_engine(
    backend: Optional[StorageBackend],
    clock: Optional[Callable[[], datetime]] = None,
    on_reset: Optional[Callable[[str, str], None]] = None,
) -> MistakeAnalyticsEngine:
    """Engine over the spot-the-mistake catalog."""
    return MistakeAnalyticsEngine(
        SPOT_MISTAKE_CATALOG,
        backend,
        config=EngineConfig(
            store_key=SPOT_MISTAKE_STORE_KEY,
            cleanup_max_age_days=SPOT_MISTAKE_CLEANUP_MAX_AGE_DAYS,
        ),
        clock=clock,
        on_reset=on_reset,
    )

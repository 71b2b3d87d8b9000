"""
Mistake Analytics

Per-student mistake-pattern analytics for the physics tutor.

Components (leaf-first):
- Pattern Catalog: immutable tables of known failure modes
- Instance Store: versioned, append-only mistake log with reset-on-corruption
- Aggregator: per-pattern summaries (occurrences, first/last seen)
- Trend Classifier: improving / persistent / worsening, plus mastery
- Insight Generator: warnings and celebrations, critical patterns, warning gate
- Statistics Reducer: dashboard totals, improvement rate, dominant category

Every read recomputes from the raw log. Nothing runs in the background.
"""

from .aggregator import aggregate_instances, rank_summaries
from .engine import (
    EngineConfig,
    MistakeAnalyticsEngine,
    create_error_pattern_engine,
    create_spot_mistake_engine,
)
from .insight_generator import InsightGenerator
from .instance_store import STORE_VERSION, MistakeInstanceStore
from .mistake_model import (
    Insight,
    InsightType,
    LoadResult,
    MistakeContext,
    MistakeInstance,
    MistakeStatistics,
    PatternSummary,
    Trend,
)
from .pattern_catalog import (
    ERROR_PATTERN_CATALOG,
    SPOT_MISTAKE_CATALOG,
    MistakePattern,
    PatternCatalog,
    Severity,
)
from .statistics_reducer import reduce_statistics
from .storage_backend import (
    FileStorageBackend,
    InMemoryStorageBackend,
    StorageBackend,
    StorageUnavailableError,
)
from .trend_classifier import TrendClassifier

__version__ = "1.0.0"

__all__ = [
    "aggregate_instances",
    "rank_summaries",
    "EngineConfig",
    "MistakeAnalyticsEngine",
    "create_error_pattern_engine",
    "create_spot_mistake_engine",
    "InsightGenerator",
    "STORE_VERSION",
    "MistakeInstanceStore",
    "Insight",
    "InsightType",
    "LoadResult",
    "MistakeContext",
    "MistakeInstance",
    "MistakeStatistics",
    "PatternSummary",
    "Trend",
    "ERROR_PATTERN_CATALOG",
    "SPOT_MISTAKE_CATALOG",
    "MistakePattern",
    "PatternCatalog",
    "Severity",
    "reduce_statistics",
    "FileStorageBackend",
    "InMemoryStorageBackend",
    "StorageBackend",
    "StorageUnavailableError",
    "TrendClassifier",
]

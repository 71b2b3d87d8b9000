"""
Aggregator

Pure function from (instances, catalog) to per-pattern summaries.

DETERMINISTIC: Same inputs = same summaries. Never raises.
Instances whose pattern is not catalogued are skipped here; they stay in the
raw log and still count toward total_errors.
"""

from datetime import datetime, timezone
from typing import Dict, Iterable, List

from .mistake_model import MistakeInstance, PatternSummary, parse_timestamp
from .pattern_catalog import PatternCatalog, SEVERITY_RANK

_EARLIEST = datetime.min.replace(tzinfo=timezone.utc)


def _sort_key(instance: MistakeInstance) -> datetime:
    return parse_timestamp(instance.timestamp) or _EARLIEST


def group_by_pattern(instances: Iterable[MistakeInstance]) -> Dict[str, List[MistakeInstance]]:
    """Group instances by pattern id, keeping first-encountered order."""
    groups: Dict[str, List[MistakeInstance]] = {}
    for instance in instances:
        groups.setdefault(instance.pattern_id, []).append(instance)
    return groups


def aggregate_instances(
    instances: Iterable[MistakeInstance],
    catalog: PatternCatalog,
) -> List[PatternSummary]:
    """
    Build one summary per catalogued pattern present in `instances`.

    Summaries come back unclassified (trend persistent, not mastered) and in
    first-encountered order; see rank_summaries for display order.
    """
    summaries: List[PatternSummary] = []

    for pattern_id, group in group_by_pattern(instances).items():
        pattern = catalog.get(pattern_id)
        if pattern is None:
            continue

        ordered = tuple(sorted(group, key=_sort_key))
        summaries.append(PatternSummary(
            pattern=pattern,
            occurrences=len(ordered),
            first_seen=ordered[0].timestamp,
            last_seen=ordered[-1].timestamp,
            instances=ordered,
        ))

    return summaries


def rank_summaries(summaries: Iterable[PatternSummary]) -> List[PatternSummary]:
    """Severity descending (high > medium > low), then occurrences descending."""
    return sorted(
        summaries,
        key=lambda s: (-SEVERITY_RANK.get(s.pattern.severity, 0), -s.occurrences),
    )

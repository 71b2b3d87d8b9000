"""
Statistics Reducer

Rolls one student's summaries into dashboard counts.

total_errors counts every raw instance, including ones whose pattern is not
catalogued; unique_patterns counts only catalogued summaries.
"""

from typing import Dict, Iterable, List, Optional, Sequence

from .aggregator import rank_summaries
from .insight_generator import InsightGenerator
from .mistake_model import MistakeInstance, MistakeStatistics, PatternSummary


def improvement_rate(mastered: int, unique: int) -> int:
    """Percent of patterns mastered, rounded half up. 0 when there are none."""
    if unique <= 0:
        return 0
    return int(mastered * 100 / unique + 0.5)


def category_occurrences(summaries: Iterable[PatternSummary]) -> Dict[str, int]:
    """Summed occurrences per category, in first-encountered order."""
    counts: Dict[str, int] = {}
    for summary in summaries:
        category = summary.pattern.category
        counts[category] = counts.get(category, 0) + summary.occurrences
    return counts


def most_common_category(counts: Dict[str, int]) -> Optional[str]:
    # Strict comparison keeps the first-encountered category on ties
    best: Optional[str] = None
    best_count = 0
    for category, count in counts.items():
        if count > best_count:
            best = category
            best_count = count
    return best


def reduce_statistics(
    instances: Sequence[MistakeInstance],
    summaries: Iterable[PatternSummary],
    insight_generator: Optional[InsightGenerator] = None,
) -> MistakeStatistics:
    generator = insight_generator or InsightGenerator()
    ranked: List[PatternSummary] = rank_summaries(summaries)

    unique = len(ranked)
    mastered = sum(1 for s in ranked if s.mastered)
    counts = category_occurrences(ranked)

    return MistakeStatistics(
        total_errors=len(instances),
        unique_patterns=unique,
        mastered_patterns=mastered,
        critical_patterns=len(generator.select_critical(ranked)),
        most_common_category=most_common_category(counts),
        improvement_rate=improvement_rate(mastered, unique),
        by_category=tuple(counts.items()),
    )

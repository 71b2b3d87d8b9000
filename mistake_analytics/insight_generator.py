"""
Insight Generator

Turns ranked, classified summaries into a prioritized insight feed, and
answers the two attention questions:
- which patterns are critical right now
- whether to warn before a student repeats a known mistake

RULE-BASED ONLY: Every insight comes from one of the fixed rules below.
NO DEDUPLICATION: A pattern that is both frequent and worsening yields two
warnings. NO CAP: callers truncate the ordered list themselves.
"""

from typing import Iterable, List, Optional

from .aggregator import rank_summaries
from .mistake_model import Insight, InsightType, PatternSummary, Trend
from .pattern_catalog import Severity
from .trend_classifier import DEFAULT_MASTERY_MIN_OCCURRENCES


# -----------------------------------------------------------------------------
# Rule Thresholds
# -----------------------------------------------------------------------------
FREQUENT_MIN_OCCURRENCES = 3
IMPROVING_MIN_OCCURRENCES = 2
CRITICAL_MIN_OCCURRENCES = 2

KEEP_PRACTICING_ACTION = "Keep practicing problems in this area to solidify your understanding."
ADVANCE_ACTION = "You can now tackle more advanced problems in this area."


class InsightGenerator:
    """Fixed insight rules over classified summaries."""

    def __init__(
        self,
        mastery_min_occurrences: int = DEFAULT_MASTERY_MIN_OCCURRENCES,
        frequent_min_occurrences: int = FREQUENT_MIN_OCCURRENCES,
        improving_min_occurrences: int = IMPROVING_MIN_OCCURRENCES,
        critical_min_occurrences: int = CRITICAL_MIN_OCCURRENCES,
    ):
        self._mastery_min_occurrences = mastery_min_occurrences
        self._frequent_min_occurrences = frequent_min_occurrences
        self._improving_min_occurrences = improving_min_occurrences
        self._critical_min_occurrences = critical_min_occurrences

    # -------------------------------------------------------------------------
    # Insight Feed
    # -------------------------------------------------------------------------

    def generate(self, summaries: Iterable[PatternSummary]) -> List[Insight]:
        """
        Build the insight feed.

        Summaries are ranked first (severity, then occurrences), then each
        summary is run through the four rules in order:
        1. frequent and not mastered -> warning
        2. improving with some history -> celebration
        3. worsening -> warning
        4. mastered -> celebration
        """
        insights: List[Insight] = []
        for summary in rank_summaries(summaries):
            insights.extend(self._insights_for(summary))
        return insights

    def _insights_for(self, summary: PatternSummary) -> List[Insight]:
        pattern = summary.pattern
        resources = tuple(pattern.related_concepts)
        found: List[Insight] = []

        if summary.occurrences >= self._frequent_min_occurrences and not summary.mastered:
            found.append(Insight(
                type=InsightType.WARNING,
                message=f"You've made this mistake {summary.occurrences} times in different problems.",
                pattern_id=pattern.id,
                actionable=pattern.remediation,
                related_resources=resources,
            ))

        if summary.trend == Trend.IMPROVING and summary.occurrences >= self._improving_min_occurrences:
            found.append(Insight(
                type=InsightType.CELEBRATION,
                message="Great progress! You used to struggle with this but you're getting better.",
                pattern_id=pattern.id,
                actionable=KEEP_PRACTICING_ACTION,
            ))

        if summary.trend == Trend.WORSENING:
            found.append(Insight(
                type=InsightType.WARNING,
                message="This mistake is becoming more frequent. Let's address it now.",
                pattern_id=pattern.id,
                actionable=pattern.remediation,
                related_resources=resources,
            ))

        if summary.mastered:
            found.append(Insight(
                type=InsightType.CELEBRATION,
                message=(
                    "Mastered! You haven't made this mistake in your last "
                    f"{self._mastery_min_occurrences} problems."
                ),
                pattern_id=pattern.id,
                actionable=ADVANCE_ACTION,
            ))

        return found

    # -------------------------------------------------------------------------
    # Attention Queries
    # -------------------------------------------------------------------------

    def select_critical(self, summaries: Iterable[PatternSummary]) -> List[PatternSummary]:
        """High severity, repeated, not mastered and not already improving."""
        return [
            s for s in rank_summaries(summaries)
            if s.pattern.severity == Severity.HIGH
            and s.occurrences >= self._critical_min_occurrences
            and not s.mastered
            and s.trend != Trend.IMPROVING
        ]

    def should_warn(self, summaries: Iterable[PatternSummary], pattern_id: str) -> bool:
        """Inline nudge gate. False when the pattern has no summary."""
        summary = find_summary(summaries, pattern_id)
        if summary is None:
            return False
        return (
            summary.pattern.severity == Severity.HIGH
            and summary.occurrences >= self._critical_min_occurrences
            and not summary.mastered
        )


def find_summary(summaries: Iterable[PatternSummary], pattern_id: str) -> Optional[PatternSummary]:
    for summary in summaries:
        if summary.pattern.id == pattern_id:
            return summary
    return None

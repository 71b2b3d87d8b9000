"""
Trend Classifier

Annotates a PatternSummary with a trend label and a mastery flag, relative to
a given "now", using a fixed recency window.

Rules (applied independently per summary):
- recent = instances at or after now - window
- older  = instances strictly before now - window
- trend defaults to PERSISTENT
- older > 0 and recent == 0       -> IMPROVING
- older > 0 and recent > older    -> WORSENING
- older == 0                      -> stays PERSISTENT (no baseline yet)
- mastered = occurrences >= mastery_min_occurrences and recent == 0

NO PREDICTION: labels describe history, they never extrapolate.
"""

import dataclasses
from datetime import datetime, timedelta, timezone
from typing import Iterable, List, Tuple

from .mistake_model import PatternSummary, Trend, parse_timestamp


# -----------------------------------------------------------------------------
# Constants
# -----------------------------------------------------------------------------
DEFAULT_RECENT_WINDOW_DAYS = 7
DEFAULT_MASTERY_MIN_OCCURRENCES = 5


class TrendClassifier:
    """Fixed-window trend and mastery rules."""

    def __init__(
        self,
        recent_window_days: float = DEFAULT_RECENT_WINDOW_DAYS,
        mastery_min_occurrences: int = DEFAULT_MASTERY_MIN_OCCURRENCES,
    ):
        if recent_window_days <= 0:
            raise ValueError(f"recent_window_days must be positive: {recent_window_days}")
        if mastery_min_occurrences < 1:
            raise ValueError(f"mastery_min_occurrences must be at least 1: {mastery_min_occurrences}")
        self._window = timedelta(days=recent_window_days)
        self._mastery_min_occurrences = mastery_min_occurrences

    @property
    def mastery_min_occurrences(self) -> int:
        return self._mastery_min_occurrences

    def count_windows(self, summary: PatternSummary, now: datetime) -> Tuple[int, int]:
        """
        Return (recent_count, older_count).

        Instances with an unparseable timestamp fall in neither window.
        """
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        cutoff = now - self._window

        recent = 0
        older = 0
        for instance in summary.instances:
            occurred = parse_timestamp(instance.timestamp)
            if occurred is None:
                continue
            if occurred >= cutoff:
                recent += 1
            else:
                older += 1
        return recent, older

    def classify(self, summary: PatternSummary, now: datetime) -> PatternSummary:
        """Return a copy of `summary` with trend and mastered set."""
        recent, older = self.count_windows(summary, now)

        trend = Trend.PERSISTENT
        if older > 0:
            if recent == 0:
                trend = Trend.IMPROVING
            elif recent > older:
                trend = Trend.WORSENING

        mastered = len(summary.instances) >= self._mastery_min_occurrences and recent == 0

        return dataclasses.replace(summary, trend=trend, mastered=mastered)

    def classify_all(self, summaries: Iterable[PatternSummary], now: datetime) -> List[PatternSummary]:
        return [self.classify(summary, now) for summary in summaries]

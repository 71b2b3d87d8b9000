"""
Mistake Analytics - Data Models

Frozen dataclasses and LOCKED enums for mistake instances and everything
derived from them.

- MistakeInstance is written once by the Instance Store and never mutated
- PatternSummary, Insight and MistakeStatistics are recomputed on every read
  and are never persisted
- Inbound record requests are validated with pydantic before any instance
  is created
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, StrictStr

from .pattern_catalog import MistakePattern


# -----------------------------------------------------------------------------
# Trend Enum (LOCKED - EXACTLY 3 VALUES)
# -----------------------------------------------------------------------------
class Trend(str, Enum):
    """How a pattern is moving over the recency window."""
    IMPROVING = "improving"
    PERSISTENT = "persistent"
    WORSENING = "worsening"


# -----------------------------------------------------------------------------
# Insight Type Enum (LOCKED - EXACTLY 3 VALUES)
# -----------------------------------------------------------------------------
class InsightType(str, Enum):
    WARNING = "warning"
    CELEBRATION = "celebration"
    INFO = "info"


# -----------------------------------------------------------------------------
# Timestamp Helpers
# -----------------------------------------------------------------------------
def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse an ISO 8601 timestamp into an aware UTC datetime.

    Naive values are taken to be UTC. Returns None for anything unparseable.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value:
        text = value[:-1] + "+00:00" if value.endswith("Z") else value
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    try:
        return parsed.astimezone(timezone.utc)
    except OverflowError:
        return None


# -----------------------------------------------------------------------------
# Inbound Validation (pydantic)
# -----------------------------------------------------------------------------
class MistakeContext(BaseModel):
    """Circumstances of a mistake. All four fields are required."""
    model_config = ConfigDict(frozen=True, extra="forbid")

    topic: str = Field(..., min_length=1)
    difficulty: str = Field(..., min_length=1)
    effort_count: int = Field(..., ge=0, description="Hints used or attempts made")
    time_spent_seconds: float = Field(..., ge=0)


class MistakeRecordRequest(BaseModel):
    """Request model for recording one mistake."""
    model_config = ConfigDict(frozen=True)

    student_id: str = Field(..., min_length=1)
    pattern_id: str = Field(..., min_length=1)
    problem_id: str = Field(..., min_length=1)
    context: MistakeContext
    problem_text: str = ""
    student_attempt: str = ""
    correct_approach: str = ""


class StoredMistakeRecord(BaseModel):
    """Shape of one persisted instance. String fields are never coerced."""
    model_config = ConfigDict(frozen=True)

    id: StrictStr = Field(..., min_length=1)
    student_id: StrictStr
    pattern_id: StrictStr
    problem_id: StrictStr
    timestamp: StrictStr
    context: MistakeContext
    problem_text: StrictStr = ""
    student_attempt: StrictStr = ""
    correct_approach: StrictStr = ""


# -----------------------------------------------------------------------------
# Mistake Instance (Frozen - Immutable)
# -----------------------------------------------------------------------------
@dataclass(frozen=True)
class MistakeInstance:
    """
    One observed mistake.

    FROZEN: Immutable once created.
    The free-text fields are kept for display only.
    """
    id: str
    student_id: str
    pattern_id: str
    problem_id: str
    timestamp: str  # ISO format, assigned at record time
    context: MistakeContext
    problem_text: str = ""
    student_attempt: str = ""
    correct_approach: str = ""

    def __post_init__(self):
        if not self.id:
            raise ValueError("instance id cannot be empty")
        if parse_timestamp(self.timestamp) is None:
            raise ValueError(f"Invalid timestamp: {self.timestamp!r}")

    @property
    def occurred_at(self) -> datetime:
        return parse_timestamp(self.timestamp)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "student_id": self.student_id,
            "pattern_id": self.pattern_id,
            "problem_id": self.problem_id,
            "timestamp": self.timestamp,
            "context": self.context.model_dump(),
            "problem_text": self.problem_text,
            "student_attempt": self.student_attempt,
            "correct_approach": self.correct_approach,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MistakeInstance":
        """
        Decode a persisted instance.

        Raises:
            ValueError: (pydantic ValidationError) if a field is missing or
                has the wrong type, or if the timestamp is unusable.
        """
        record = StoredMistakeRecord.model_validate(data)
        return cls(
            id=record.id,
            student_id=record.student_id,
            pattern_id=record.pattern_id,
            problem_id=record.problem_id,
            timestamp=record.timestamp,
            context=record.context,
            problem_text=record.problem_text,
            student_attempt=record.student_attempt,
            correct_approach=record.correct_approach,
        )


# -----------------------------------------------------------------------------
# Pattern Summary (Frozen - Derived)
# -----------------------------------------------------------------------------
@dataclass(frozen=True)
class PatternSummary:
    """
    Aggregated view of one pattern for one student.

    Derived, never persisted. `instances` is sorted ascending by timestamp.
    """
    pattern: MistakePattern
    occurrences: int
    first_seen: str
    last_seen: str
    instances: Tuple[MistakeInstance, ...]
    trend: Trend = Trend.PERSISTENT
    mastered: bool = False

    @property
    def pattern_id(self) -> str:
        return self.pattern.id

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pattern": self.pattern.to_dict(),
            "occurrences": self.occurrences,
            "first_seen": self.first_seen,
            "last_seen": self.last_seen,
            "instances": [i.to_dict() for i in self.instances],
            "trend": self.trend.value,
            "mastered": self.mastered,
        }


# -----------------------------------------------------------------------------
# Insight (Frozen - Derived)
# -----------------------------------------------------------------------------
@dataclass(frozen=True)
class Insight:
    """A human-readable takeaway, ready for display."""
    type: InsightType
    message: str
    pattern_id: str
    actionable: str
    related_resources: Optional[Tuple[str, ...]] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "type": self.type.value,
            "message": self.message,
            "pattern_id": self.pattern_id,
            "actionable": self.actionable,
        }
        if self.related_resources is not None:
            data["related_resources"] = list(self.related_resources)
        return data


# -----------------------------------------------------------------------------
# Mistake Statistics (Frozen - Derived)
# -----------------------------------------------------------------------------
@dataclass(frozen=True)
class MistakeStatistics:
    """Dashboard roll-up for one student."""
    total_errors: int = 0
    unique_patterns: int = 0
    mastered_patterns: int = 0
    critical_patterns: int = 0
    most_common_category: Optional[str] = None
    improvement_rate: int = 0
    by_category: Tuple[Tuple[str, int], ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_errors": self.total_errors,
            "unique_patterns": self.unique_patterns,
            "mastered_patterns": self.mastered_patterns,
            "critical_patterns": self.critical_patterns,
            "most_common_category": self.most_common_category,
            "improvement_rate": self.improvement_rate,
            "by_category": dict(self.by_category),
        }


# -----------------------------------------------------------------------------
# Load Result
# -----------------------------------------------------------------------------
@dataclass(frozen=True)
class LoadResult:
    """
    Outcome of reading the store for one student.

    `reset` is True when stored state was discarded (version mismatch or
    unreadable data); `reset_reason` says which.
    """
    instances: List[MistakeInstance] = field(default_factory=list)
    reset: bool = False
    reset_reason: Optional[str] = None

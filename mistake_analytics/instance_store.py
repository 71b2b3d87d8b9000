"""
Mistake Instance Store

Versioned persistence of the per-store mistake log.

CONSTRAINTS:
- APPEND-ONLY: Instances are never edited, only appended or pruned by cleanup
- UNIQUE IDS: Every instance id is unique within a store
- NO SIDE EFFECTS ON READ: load() never writes
- NEVER RAISES FOR STORAGE: Unavailable or corrupted storage degrades to an
  empty log. Only malformed record input raises.

Persisted layout (one record per store key):
    {"version": 1, "instances": [...], "lastCleanup": "<iso>"}

A version mismatch or an unreadable record discards the stored log. The reset
is logged at WARNING, reported through LoadResult and the optional on_reset
callback.
"""

import itertools
import json
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional, Union

from .mistake_model import (
    LoadResult,
    MistakeContext,
    MistakeInstance,
    MistakeRecordRequest,
    utc_now,
)
from .storage_backend import StorageBackend, StorageUnavailableError

logger = logging.getLogger("instance_store")


# -----------------------------------------------------------------------------
# Constants
# -----------------------------------------------------------------------------
STORE_VERSION = 1
DEFAULT_STORE_KEY = "error_patterns"
INSTANCE_ID_PREFIX = "err"

RESET_VERSION_MISMATCH = "version_mismatch"
RESET_UNPARSEABLE = "unparseable"
RESET_UNDECODABLE_INSTANCE = "undecodable_instance"

_STORAGE_ERRORS = (StorageUnavailableError, OSError)


@dataclass
class _StoreState:
    instances: List[MistakeInstance] = field(default_factory=list)
    last_cleanup: Optional[str] = None
    reset_reason: Optional[str] = None
    available: bool = True


def _format_timestamp(moment: datetime) -> str:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).isoformat()


# -----------------------------------------------------------------------------
# Mistake Instance Store
# -----------------------------------------------------------------------------
class MistakeInstanceStore:
    """
    Append-only mistake log bound to one key of a storage backend.

    Every call re-reads the backend, so each load() reflects every earlier
    record() made through any store sharing the same backend and key.

    Args:
        backend: Storage medium. None means no persistent medium is present:
            load() returns [] and writes are skipped.
        key: Storage key holding this store's record.
        clock: Returns the current time. Defaults to UTC now.
        on_reset: Called as on_reset(key, reason) when stored state is discarded.
    """

    def __init__(
        self,
        backend: Optional[StorageBackend],
        key: str = DEFAULT_STORE_KEY,
        clock: Optional[Callable[[], datetime]] = None,
        on_reset: Optional[Callable[[str, str], None]] = None,
        version: int = STORE_VERSION,
    ):
        self._backend = backend
        self._key = key
        self._clock = clock or utc_now
        self._on_reset = on_reset
        self._version = version
        self._sequence = itertools.count(1)

    @property
    def key(self) -> str:
        return self._key

    @property
    def available(self) -> bool:
        return self._backend is not None

    def now(self) -> datetime:
        moment = self._clock()
        if moment.tzinfo is None:
            return moment.replace(tzinfo=timezone.utc)
        return moment

    # -------------------------------------------------------------------------
    # Write Operations
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
        """
        Record one mistake and persist the log.

        The id and timestamp are assigned here; callers cannot supply them.

        Raises:
            ValueError: (pydantic ValidationError) if the input is malformed.
        """
        request = MistakeRecordRequest(
            student_id=student_id,
            pattern_id=pattern_id,
            problem_id=problem_id,
            context=context,
            problem_text=problem_text,
            student_attempt=student_attempt,
            correct_approach=correct_approach,
        )

        state = self._read_state()
        now = self.now()
        existing_ids = {inst.id for inst in state.instances}

        instance_id = self._new_instance_id(now)
        while instance_id in existing_ids:
            instance_id = self._new_instance_id(now)

        instance = MistakeInstance(
            id=instance_id,
            student_id=request.student_id,
            pattern_id=request.pattern_id,
            problem_id=request.problem_id,
            timestamp=_format_timestamp(now),
            context=request.context,
            problem_text=request.problem_text,
            student_attempt=request.student_attempt,
            correct_approach=request.correct_approach,
        )

        if not state.available:
            logger.debug(f"Storage unavailable, mistake {instance.id} not persisted")
            return instance

        state.instances.append(instance)
        if state.last_cleanup is None:
            state.last_cleanup = instance.timestamp
        if self._write_state(state):
            logger.info(f"Recorded mistake pattern {request.pattern_id} for student {request.student_id}")
        return instance

    def cleanup(self, max_age_days: float) -> int:
        """
        Remove instances older than max_age_days and rewrite the log.

        Returns:
            Number of instances removed.
        """
        if max_age_days < 0:
            raise ValueError(f"max_age_days cannot be negative: {max_age_days}")

        state = self._read_state()
        if not state.available:
            return 0

        now = self.now()
        cutoff = now - timedelta(days=max_age_days)
        kept = [inst for inst in state.instances if inst.occurred_at >= cutoff]
        removed = len(state.instances) - len(kept)

        state.instances = kept
        state.last_cleanup = _format_timestamp(now)
        self._write_state(state)

        logger.info(f"Cleanup of {self._key}: removed {removed} instances older than {max_age_days} days")
        return removed

    def clear(self) -> None:
        """Delete the whole persisted record for this store."""
        if self._backend is None:
            return
        try:
            self._backend.remove_item(self._key)
            logger.info(f"Cleared mistake log {self._key}")
        except _STORAGE_ERRORS as e:
            logger.error(f"Failed to clear mistake log {self._key}: {e}")

    # -------------------------------------------------------------------------
    # Read Operations (Read-Only)
    # -------------------------------------------------------------------------

    def load(self, student_id: str) -> List[MistakeInstance]:
        """All instances for a student, in storage order."""
        return self.load_with_status(student_id).instances

    def load_with_status(self, student_id: str) -> LoadResult:
        state = self._read_state()
        return LoadResult(
            instances=[inst for inst in state.instances if inst.student_id == student_id],
            reset=state.reset_reason is not None,
            reset_reason=state.reset_reason,
        )

    def load_all(self) -> List[MistakeInstance]:
        return self._read_state().instances

    def last_cleanup(self) -> Optional[str]:
        return self._read_state().last_cleanup

    # -------------------------------------------------------------------------
    # Internal Helpers
    # -------------------------------------------------------------------------

    def _new_instance_id(self, now: datetime) -> str:
        millis = int(now.timestamp() * 1000)
        return f"{INSTANCE_ID_PREFIX}_{millis}_{next(self._sequence)}_{uuid.uuid4().hex[:9]}"

    def _read_state(self) -> _StoreState:
        if self._backend is None:
            return _StoreState(available=False)

        try:
            raw = self._backend.get_item(self._key)
        except UnicodeDecodeError as e:
            return self._reset(RESET_UNPARSEABLE, str(e))
        except _STORAGE_ERRORS as e:
            logger.error(f"Failed to read mistake log {self._key}: {e}")
            return _StoreState(available=False)

        if raw is None:
            return _StoreState()

        try:
            data = json.loads(raw)
        except (ValueError, RecursionError):
            return self._reset(RESET_UNPARSEABLE)
        if not isinstance(data, dict):
            return self._reset(RESET_UNPARSEABLE)

        stored_version = data.get("version")
        if type(stored_version) is not int or stored_version != self._version:
            return self._reset(
                RESET_VERSION_MISMATCH,
                f"stored version {stored_version!r}, expected {self._version}",
            )

        records = data.get("instances", [])
        if not isinstance(records, list):
            return self._reset(RESET_UNPARSEABLE)
        try:
            instances = [MistakeInstance.from_dict(record) for record in records]
        except (KeyError, TypeError, ValueError) as e:
            return self._reset(RESET_UNDECODABLE_INSTANCE, str(e))

        last_cleanup = data.get("lastCleanup")
        return _StoreState(
            instances=instances,
            last_cleanup=last_cleanup if isinstance(last_cleanup, str) else None,
        )

    def _reset(self, reason: str, detail: str = "") -> _StoreState:
        suffix = f" ({detail})" if detail else ""
        logger.warning(f"Discarding mistake log {self._key}: {reason}{suffix}")
        if self._on_reset is not None:
            try:
                self._on_reset(self._key, reason)
            except Exception:
                logger.exception(f"on_reset callback failed for {self._key}")
        return _StoreState(reset_reason=reason)

    def _write_state(self, state: _StoreState) -> bool:
        payload = {
            "version": self._version,
            "instances": [inst.to_dict() for inst in state.instances],
            "lastCleanup": state.last_cleanup or _format_timestamp(self.now()),
        }
        try:
            self._backend.set_item(self._key, json.dumps(payload))
        except _STORAGE_ERRORS as e:
            logger.error(f"Failed to save mistake log {self._key}: {e}")
            return False
        return True

"""Cruxboard Disagreement Registry.

Per-pair hysteresis deciding when a detected disagreement has persisted long
enough to justify a crux room. Pairs are unordered: ("a", "b") and ("b", "a")
share one record.

A pair is spawn-eligible when all of the following hold:
- it was flagged in at least SPAWN_MIN_WINDOWS consecutive windows,
- the latest detection confidence is at least SPAWN_MIN_CONFIDENCE,
- no crux room is currently open for the pair,
- it never spawned, or SPAWN_COOLDOWN has elapsed since it last did.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Collection
from datetime import UTC, datetime, timedelta

from cruxboard.models.dialogue import CandidateRecord

logger = logging.getLogger(__name__)

SPAWN_MIN_WINDOWS = 2
SPAWN_MIN_CONFIDENCE = 0.8
SPAWN_COOLDOWN = timedelta(minutes=5)

PairKey = tuple[str, str]


def pair_key(first: str, second: str) -> PairKey:
    """Normalize an unordered persona pair."""
    a, b = sorted((first, second))
    return a, b


def _utcnow() -> datetime:
    return datetime.now(UTC)


class DisagreementRegistry:
    """Tracks candidate disagreements and crux-room cooldowns per persona pair."""

    def __init__(self, clock: Callable[[], datetime] | None = None) -> None:
        """Initialize an empty registry.

        Args:
            clock: Returns the current time. Defaults to timezone-aware UTC now.
                Tests inject a controllable clock.
        """
        self._clock = clock or _utcnow
        self._records: dict[PairKey, CandidateRecord] = {}
        self._cooldowns: dict[PairKey, datetime] = {}

    def update(
        self,
        pair: tuple[str, str],
        topic: str,
        confidence: float,
        active_room_pairs: Collection[PairKey],
        short_label: str = "",
    ) -> CandidateRecord | None:
        """Record a detection for a pair.

        Creates the record on first detection, otherwise increments the
        window count. Topic, label and confidence always take the newest
        values.

        Returns:
            The updated record if the pair is now spawn-eligible, else None.
        """
        key = pair_key(*pair)
        now = self._clock()
        existing = self._records.get(key)

        if existing is None:
            record = CandidateRecord(
                pair=key,
                topic=topic,
                short_label=short_label,
                consecutive_windows=1,
                confidence=confidence,
                first_seen_at=now,
                last_seen_at=now,
            )
        else:
            record = existing.model_copy(
                update={
                    "consecutive_windows": existing.consecutive_windows + 1,
                    "topic": topic,
                    "short_label": short_label,
                    "confidence": confidence,
                    "last_seen_at": now,
                }
            )
        self._records[key] = record

        if self._is_spawn_eligible(record, active_room_pairs, now):
            return record
        return None

    def decay(self, pair: tuple[str, str]) -> None:
        """Called when a window does not flag the pair; drops the record at zero."""
        key = pair_key(*pair)
        existing = self._records.get(key)
        if existing is None:
            return
        if existing.consecutive_windows <= 1:
            del self._records[key]
        else:
            self._records[key] = existing.model_copy(
                update={"consecutive_windows": existing.consecutive_windows - 1}
            )

    def record_spawn(self, pair: tuple[str, str]) -> None:
        """Forget the pair's candidate record and start its cooldown."""
        key = pair_key(*pair)
        self._records.pop(key, None)
        self._cooldowns[key] = self._clock()
        logger.info("Crux room spawned for %s|%s; cooldown started", *key)

    def get(self, pair: tuple[str, str]) -> CandidateRecord | None:
        return self._records.get(pair_key(*pair))

    def tracked_pairs(self) -> list[PairKey]:
        return list(self._records)

    def _is_spawn_eligible(
        self,
        record: CandidateRecord,
        active_room_pairs: Collection[PairKey],
        now: datetime,
    ) -> bool:
        if record.consecutive_windows < SPAWN_MIN_WINDOWS:
            return False
        if record.confidence < SPAWN_MIN_CONFIDENCE:
            return False
        if record.pair in active_room_pairs:
            return False
        last_spawn = self._cooldowns.get(record.pair)
        return last_spawn is None or now - last_spawn >= SPAWN_COOLDOWN

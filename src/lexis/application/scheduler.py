"""
SM-2 scheduling engine.

This is a pure computation module with no I/O. Persisting the result is the
caller's job (see ``ReviewRecorder``).
"""

import math
from dataclasses import replace
from datetime import date, datetime, timedelta, timezone

from lexis.domain.constants import (
    DEFAULT_EASINESS,
    FIRST_INTERVAL_DAYS,
    LAPSE_INTERVAL_DAYS,
    LAPSE_QUALITY_THRESHOLD,
    MAX_QUALITY,
    MIN_EASINESS,
    SECOND_INTERVAL_DAYS,
)
from lexis.domain.models import CardMemoryState, Grade


def update_easiness(easiness: float, quality: int) -> float:
    """
    SM-2 easiness update, floored at ``MIN_EASINESS``.

    EF' = EF + (0.1 - (5 - q) * (0.08 + (5 - q) * 0.02))
    """
    miss = MAX_QUALITY - quality
    return max(MIN_EASINESS, easiness + (0.1 - miss * (0.08 + miss * 0.02)))


def round_half_up(value: float) -> int:
    # Intervals are positive; Python's round() would send 2.5 -> 2.
    return int(math.floor(value + 0.5))


def next_state(
    current: CardMemoryState | None,
    grade: Grade,
    today: date,
    *,
    learner_id: str | None = None,
    card_id: str | None = None,
    now: datetime | None = None,
) -> CardMemoryState:
    """
    Compute the memory state that follows ``grade`` on ``today``.

    Args:
        current: Stored state, or None for a never-reviewed card.
        grade: The learner's answer.
        today: Canonical date of the review; the due date is counted from it.
        learner_id: Used when ``current`` is None to key the new state.
        card_id: Used when ``current`` is None to key the new state.
        now: Timestamp recorded as ``updated_at``. Defaults to the current
            UTC time; pass it explicitly for reproducible results.

    Returns:
        A new CardMemoryState. ``current`` is never mutated.
    """
    if current is None:
        current = CardMemoryState(
            learner_id=learner_id,
            card_id=card_id,
            repetition=0,
            easiness=DEFAULT_EASINESS,
            interval_days=0,
        )

    quality = grade.quality
    easiness = update_easiness(current.easiness, quality)

    if quality < LAPSE_QUALITY_THRESHOLD:
        repetition = 0
        interval = LAPSE_INTERVAL_DAYS
    else:
        repetition = current.repetition + 1
        if repetition == 1:
            interval = FIRST_INTERVAL_DAYS
        elif repetition == 2:
            interval = SECOND_INTERVAL_DAYS
        else:
            # Growth uses the updated easiness, not the stored one
            interval = round_half_up(current.interval_days * easiness)

    return replace(
        current,
        learner_id=current.learner_id if current.learner_id is not None else learner_id,
        card_id=current.card_id if current.card_id is not None else card_id,
        repetition=repetition,
        easiness=easiness,
        interval_days=interval,
        due_date=today + timedelta(days=interval),
        last_result=grade,
        updated_at=now or datetime.now(timezone.utc),
    )


def preview(current: CardMemoryState | None, today: date) -> dict[Grade, int]:
    """
    Interval (in days) each grade would produce for ``current``.

    Used to label answer buttons; nothing is persisted.
    """
    stamp = datetime.combine(today, datetime.min.time(), tzinfo=timezone.utc)
    return {g: next_state(current, g, today, now=stamp).interval_days for g in Grade}

"""
Review recorder: the persistence step of a review.

Reads the stored state, runs the scheduler and writes the result back while
holding a lock for the (learner, card) pair.
"""

import asyncio
import logging
import weakref
from collections.abc import Callable
from datetime import date, datetime, timezone

from lexis.domain.models import CardMemoryState, Grade
from lexis.domain.ports import ProgressRepository

from .scheduler import next_state

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ReviewRecorder:
    """
    Applies one grade to one card for one learner, atomically per pair.

    Two concurrent ``record`` calls for the same (learner, card) pair run one
    after the other, so the second always reads the first one's write.
    """

    def __init__(
        self,
        progress_repo: ProgressRepository,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self._repo = progress_repo
        self._clock = clock
        self._locks: weakref.WeakValueDictionary[tuple[str, str], asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    def _lock_for(self, learner_id: str, card_id: str) -> asyncio.Lock:
        key = (learner_id, card_id)
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    async def record(
        self, learner_id: str, card_id: str, grade: Grade, today: date
    ) -> CardMemoryState:
        """
        Grade ``card_id`` for ``learner_id`` and persist the new state.

        Raises:
            StoreUnavailable: Reading or writing the state failed. Nothing
                was written in that case.
        """
        lock = self._lock_for(learner_id, card_id)
        async with lock:
            current = await self._repo.read_memory_state(learner_id, card_id)
            state = next_state(
                current,
                grade,
                today,
                learner_id=learner_id,
                card_id=card_id,
                now=self._clock(),
            )
            try:
                await self._repo.write_memory_state(state)
            except Exception as e:
                logger.error(f"Failed to save progress for card {card_id}: {e}")
                raise

        logger.debug(
            f"Recorded {grade.value} for card {card_id}: "
            f"rep={state.repetition} ef={state.easiness:.2f} "
            f"ivl={state.interval_days}d due={state.due_date}"
        )
        return state

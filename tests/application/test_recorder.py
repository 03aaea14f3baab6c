import asyncio
from datetime import timedelta
from unittest.mock import AsyncMock

import pytest

from lexis.application.recorder import ReviewRecorder
from lexis.domain.errors import StoreUnavailable
from lexis.domain.models import Grade


@pytest.mark.asyncio
async def test_record_creates_state_lazily(store, today, clock):
    recorder = ReviewRecorder(store, clock=clock)

    state = await recorder.record("u1", "w1", Grade.GOOD, today)

    assert store.progress[("u1", "w1")] == state
    assert state.repetition == 1
    assert state.due_date == today + timedelta(days=1)
    assert state.updated_at == clock()


@pytest.mark.asyncio
async def test_record_builds_on_stored_state(store, today, clock):
    recorder = ReviewRecorder(store, clock=clock)

    await recorder.record("u1", "w1", Grade.GOOD, today)
    state = await recorder.record("u1", "w1", Grade.GOOD, today + timedelta(days=1))

    assert state.repetition == 2
    assert state.interval_days == 3


@pytest.mark.asyncio
async def test_concurrent_grades_do_not_lose_progress(store, today, clock):
    """Both reviews must land: the second reads the first one's write."""

    class SlowStore:
        async def read_memory_state(self, learner_id, card_id):
            state = await store.read_memory_state(learner_id, card_id)
            await asyncio.sleep(0.01)
            return state

        async def write_memory_state(self, state):
            await store.write_memory_state(state)

    recorder = ReviewRecorder(SlowStore(), clock=clock)

    await asyncio.gather(
        recorder.record("u1", "w1", Grade.GOOD, today),
        recorder.record("u1", "w1", Grade.GOOD, today),
    )

    assert store.progress[("u1", "w1")].repetition == 2


@pytest.mark.asyncio
async def test_write_failure_propagates(today, clock):
    repo = AsyncMock()
    repo.read_memory_state.return_value = None
    repo.write_memory_state.side_effect = StoreUnavailable("timeout")
    recorder = ReviewRecorder(repo, clock=clock)

    with pytest.raises(StoreUnavailable):
        await recorder.record("u1", "w1", Grade.EASY, today)


@pytest.mark.asyncio
async def test_read_failure_writes_nothing(today, clock):
    repo = AsyncMock()
    repo.read_memory_state.side_effect = StoreUnavailable("timeout")
    recorder = ReviewRecorder(repo, clock=clock)

    with pytest.raises(StoreUnavailable):
        await recorder.record("u1", "w1", Grade.EASY, today)
    repo.write_memory_state.assert_not_awaited()

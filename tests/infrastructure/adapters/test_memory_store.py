from datetime import date, timedelta

import pytest

from lexis.domain.errors import NotFound
from lexis.domain.models import CardMemoryState, Grade, Level, Scope
from lexis.infrastructure.adapters.memory_store import InMemoryStore


def test_seed_file_loading(seed_file):
    store = InMemoryStore.from_seed_file(seed_file)

    assert set(store.courses) == {"c1"}
    assert store.cards["w1"].front == "Sawubona"
    assert store.cards["w1"].back == "Hello"
    assert store.cards["w1"].course_id == "c1"
    assert store.cards["w4"].audio_path == "courses/c1/audio/kunye.mp3"


def test_seed_progress_rows():
    store = InMemoryStore()
    store.load(
        {
            "progress": [
                {
                    "user_id": "u1",
                    "word_id": "w1",
                    "repetition": 2,
                    "easiness": 2.36,
                    "interval_days": 3,
                    "due_date": "2024-03-12",
                    "last_result": "hard",
                }
            ]
        }
    )
    state = store.progress[("u1", "w1")]
    assert state.due_date == date(2024, 3, 12)
    assert state.last_result is Grade.HARD


@pytest.mark.asyncio
async def test_write_then_read(store):
    state = CardMemoryState(learner_id="u1", card_id="w1", repetition=1, interval_days=1)
    await store.write_memory_state(state)

    assert await store.read_memory_state("u1", "w1") == state
    assert await store.read_memory_state("u2", "w1") is None


@pytest.mark.asyncio
async def test_query_cards_due_only(store, today):
    store.progress[("u1", "w2")] = CardMemoryState(
        "u1", "w2", due_date=today + timedelta(days=1)
    )

    cards = await store.query_cards(Scope.level("l1"), due_only=True, today=today, learner_id="u1")

    assert {c.id for c in cards} == {"w1", "w3"}


@pytest.mark.asyncio
async def test_due_only_needs_learner(store, today):
    with pytest.raises(ValueError):
        await store.query_cards(Scope.level("l1"), due_only=True, today=today)


@pytest.mark.asyncio
async def test_unknown_scope_raises_not_found(store, today):
    with pytest.raises(NotFound):
        await store.query_cards(Scope.level("zz"), due_only=False, today=today)
    with pytest.raises(NotFound):
        await store.query_due_counts(Scope.course("zz"), "u1", today)
    with pytest.raises(NotFound):
        await store.list_levels("zz")


@pytest.mark.asyncio
async def test_levels_sorted(store):
    store.add_level(Level(id="l0", course_id="c1", name="Intro", sort=0))
    store.add_level(Level(id="lx", course_id="c1", name="Unsorted"))

    levels = await store.list_levels("c1")

    assert [lvl.id for lvl in levels] == ["l0", "l1", "l2", "lx"]

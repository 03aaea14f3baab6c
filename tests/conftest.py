import json
from datetime import date, datetime, timezone

import pytest

from lexis.domain.models import Card, Course, Level
from lexis.infrastructure.adapters.memory_store import InMemoryStore

TODAY = date(2024, 3, 10)
NOW = datetime(2024, 3, 10, 9, 30, tzinfo=timezone.utc)

SEED = {
    "courses": [{"id": "c1", "title": "siSwati 1", "description": "Basics"}],
    "levels": [
        {"id": "l1", "course_id": "c1", "name": "Greetings", "sort": 1},
        {"id": "l2", "course_id": "c1", "name": "Numbers", "sort": 2},
    ],
    "words": [
        {"id": "w1", "level_id": "l1", "siswati": "Sawubona", "english": "Hello"},
        {"id": "w2", "level_id": "l1", "siswati": "Yebo", "english": "Yes"},
        {"id": "w3", "level_id": "l1", "siswati": "Cha", "english": "No"},
        {"id": "w4", "level_id": "l2", "siswati": "kunye", "english": "one",
         "audio_path": "courses/c1/audio/kunye.mp3"},
    ],
}


@pytest.fixture
def today():
    return TODAY


@pytest.fixture
def clock():
    return lambda: NOW


@pytest.fixture
def store():
    """In-memory store with one course, two levels and four words."""
    s = InMemoryStore()
    s.add_course(Course(id="c1", title="siSwati 1"))
    s.add_level(Level(id="l1", course_id="c1", name="Greetings", sort=1))
    s.add_level(Level(id="l2", course_id="c1", name="Numbers", sort=2))
    s.add_card(Card(id="w1", front="Sawubona", back="Hello", level_id="l1"))
    s.add_card(Card(id="w2", front="Yebo", back="Yes", level_id="l1"))
    s.add_card(Card(id="w3", front="Cha", back="No", level_id="l1"))
    s.add_card(Card(id="w4", front="kunye", back="one", level_id="l2"))
    return s


@pytest.fixture
def seed_file(tmp_path):
    """JSON seed file mirroring the ``store`` fixture."""
    path = tmp_path / "seed.json"
    path.write_text(json.dumps(SEED))
    return path


@pytest.fixture
def mock_home(tmp_path, monkeypatch):
    """Mocks Path.home() to point to a temp dir."""
    home = tmp_path / "home"
    home.mkdir()

    # Mocking HOME to a temp directory to isolate config/logs
    monkeypatch.setenv("HOME", str(home))
    for var in (
        "LEXIS_BACKEND",
        "LEXIS_SEED_FILE",
        "LEXIS_TIMEZONE",
        "LEXIS_SHUFFLE_SEED",
        "LEXIS_SUPABASE_URL",
        "LEXIS_SUPABASE_KEY",
        "LEXIS_VERBOSE",
    ):
        monkeypatch.delenv(var, raising=False)
    return home

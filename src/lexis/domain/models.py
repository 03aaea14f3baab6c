"""
Domain models for vocabulary scheduling.

These are pure data structures with no I/O or external dependencies.
"""

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum

from .constants import DEFAULT_EASINESS


class Grade(str, Enum):
    """Learner's self-assessed recall quality for one review."""

    AGAIN = "again"
    HARD = "hard"
    GOOD = "good"
    EASY = "easy"

    @property
    def quality(self) -> int:
        """SM-2 quality score (0-5)."""
        return _QUALITY[self]


_QUALITY = {Grade.AGAIN: 0, Grade.HARD: 3, Grade.GOOD: 4, Grade.EASY: 5}


@dataclass(frozen=True)
class CardMemoryState:
    """
    Review statistics for one (learner, card) pair.

    Attributes:
        learner_id: Owner of the progress record.
        card_id: The card this state belongs to.
        repetition: Consecutive successful recalls since the last lapse.
        easiness: Recall-ease factor, never below 1.3.
        interval_days: Days between the last review and the due date.
        due_date: Date on/after which the card is eligible for review.
        last_result: Grade of the last review, None if never reviewed.
        updated_at: Time of the last mutation (UTC).
    """

    learner_id: str | None
    card_id: str | None
    repetition: int = 0
    easiness: float = DEFAULT_EASINESS
    interval_days: int = 0
    due_date: date | None = None
    last_result: Grade | None = None
    updated_at: datetime | None = None

    def is_due(self, today: date) -> bool:
        return self.due_date is None or self.due_date <= today


@dataclass(frozen=True)
class Card:
    """A vocabulary card (a "word" in the course editor)."""

    id: str
    front: str
    back: str
    level_id: str
    course_id: str | None = None
    part_of_speech: str | None = None
    audio_path: str | None = None  # Opaque blob-store reference
    audio_url: str | None = None  # Resolved by the store adapter


@dataclass(frozen=True)
class Level:
    id: str
    course_id: str
    name: str
    sort: int | None = None


@dataclass(frozen=True)
class Course:
    id: str
    title: str
    description: str | None = None
    owner: str | None = None
    is_public: bool = True


@dataclass(frozen=True)
class Scope:
    """
    Filter for due-set queries: either a single level or a whole course.

    Use the ``Scope.level(...)`` / ``Scope.course(...)`` constructors.
    """

    kind: str  # "level" | "course"
    id: str

    @classmethod
    def level(cls, level_id: str) -> "Scope":
        return cls(kind="level", id=level_id)

    @classmethod
    def course(cls, course_id: str) -> "Scope":
        return cls(kind="course", id=course_id)

    @property
    def is_level(self) -> bool:
        return self.kind == "level"

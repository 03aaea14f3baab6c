"""
In-memory store: infrastructure adapter holding everything in process.

Implements both ProgressRepository and CardRepository. Used by the test
suite, by the ``memory`` backend and for offline study from a JSON seed file.
"""

import json
import logging
from datetime import date, datetime
from pathlib import Path
from typing import Any

from lexis.domain.constants import DEFAULT_EASINESS
from lexis.domain.errors import NotFound
from lexis.domain.models import Card, CardMemoryState, Course, Grade, Level, Scope
from lexis.domain.ports import CardRepository, ProgressRepository

logger = logging.getLogger(__name__)


class InMemoryStore(ProgressRepository, CardRepository):
    """Dictionary-backed record store."""

    def __init__(self) -> None:
        self.courses: dict[str, Course] = {}
        self.levels: dict[str, Level] = {}
        self.cards: dict[str, Card] = {}
        self.progress: dict[tuple[str, str], CardMemoryState] = {}

    # ------------------------------------------------------------------
    # Seeding
    # ------------------------------------------------------------------

    def add_course(self, course: Course) -> None:
        self.courses[course.id] = course

    def add_level(self, level: Level) -> None:
        self.levels[level.id] = level

    def add_card(self, card: Card) -> None:
        if card.course_id is None and card.level_id in self.levels:
            card = Card(
                id=card.id,
                front=card.front,
                back=card.back,
                level_id=card.level_id,
                course_id=self.levels[card.level_id].course_id,
                part_of_speech=card.part_of_speech,
                audio_path=card.audio_path,
                audio_url=card.audio_url,
            )
        self.cards[card.id] = card

    @classmethod
    def from_seed_file(cls, path: Path) -> "InMemoryStore":
        """
        Build a store from a JSON document with ``courses``, ``levels``,
        ``words`` and (optionally) ``progress`` arrays.
        """
        data = json.loads(Path(path).read_text(encoding="utf-8"))
        store = cls()
        store.load(data)
        logger.info(
            f"Loaded seed {path}: {len(store.courses)} courses, "
            f"{len(store.levels)} levels, {len(store.cards)} words"
        )
        return store

    def load(self, data: dict[str, Any]) -> None:
        for row in data.get("courses", []):
            self.add_course(
                Course(
                    id=str(row["id"]),
                    title=row["title"],
                    description=row.get("description"),
                    owner=row.get("owner"),
                    is_public=row.get("is_public", True),
                )
            )
        for row in data.get("levels", []):
            self.add_level(
                Level(
                    id=str(row["id"]),
                    course_id=str(row["course_id"]),
                    name=row["name"],
                    sort=row.get("sort"),
                )
            )
        for row in data.get("words", []):
            self.add_card(
                Card(
                    id=str(row["id"]),
                    front=row.get("front", row.get("siswati", "")),
                    back=row.get("back", row.get("english", "")),
                    level_id=str(row["level_id"]),
                    course_id=str(row["course_id"]) if row.get("course_id") else None,
                    part_of_speech=row.get("part_of_speech"),
                    audio_path=row.get("audio_path"),
                )
            )
        for row in data.get("progress", []):
            state = CardMemoryState(
                learner_id=str(row["user_id"]),
                card_id=str(row["word_id"]),
                repetition=int(row.get("repetition", 0)),
                easiness=float(row.get("easiness", DEFAULT_EASINESS)),
                interval_days=int(row.get("interval_days", 0)),
                due_date=date.fromisoformat(row["due_date"]) if row.get("due_date") else None,
                last_result=Grade(row["last_result"]) if row.get("last_result") else None,
                updated_at=(
                    datetime.fromisoformat(row["updated_at"]) if row.get("updated_at") else None
                ),
            )
            self.progress[(state.learner_id, state.card_id)] = state

    async def aclose(self) -> None:
        pass

    # ------------------------------------------------------------------
    # ProgressRepository
    # ------------------------------------------------------------------

    async def read_memory_state(self, learner_id: str, card_id: str) -> CardMemoryState | None:
        return self.progress.get((learner_id, card_id))

    async def write_memory_state(self, state: CardMemoryState) -> None:
        self.progress[(state.learner_id, state.card_id)] = state

    # ------------------------------------------------------------------
    # CardRepository
    # ------------------------------------------------------------------

    async def query_cards(
        self,
        scope: Scope,
        *,
        due_only: bool,
        today: date,
        learner_id: str | None = None,
    ) -> list[Card]:
        cards = self._cards_in(scope)
        if not due_only:
            return cards
        if learner_id is None:
            raise ValueError("due_only queries need a learner_id")
        return [c for c in cards if self._is_due(learner_id, c.id, today)]

    async def query_due_counts(self, scope: Scope, learner_id: str, today: date) -> dict[str, int]:
        level_ids = [lvl.id for lvl in self._levels_in(scope)]
        counts = dict.fromkeys(level_ids, 0)
        for card in self._cards_in(scope):
            if card.level_id in counts and self._is_due(learner_id, card.id, today):
                counts[card.level_id] += 1
        return counts

    async def list_courses(self) -> list[Course]:
        return sorted(self.courses.values(), key=lambda c: c.title)

    async def list_levels(self, course_id: str) -> list[Level]:
        if course_id not in self.courses:
            raise NotFound(f"Course '{course_id}' not found")
        return self._levels_in(Scope.course(course_id))

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _is_due(self, learner_id: str, card_id: str, today: date) -> bool:
        state = self.progress.get((learner_id, card_id))
        return state is None or state.is_due(today)

    def _levels_in(self, scope: Scope) -> list[Level]:
        if scope.is_level:
            if scope.id not in self.levels:
                raise NotFound(f"Level '{scope.id}' not found")
            return [self.levels[scope.id]]

        if scope.id not in self.courses:
            raise NotFound(f"Course '{scope.id}' not found")
        levels = [lvl for lvl in self.levels.values() if lvl.course_id == scope.id]
        return sorted(levels, key=lambda lvl: (lvl.sort is None, lvl.sort or 0, lvl.id))

    def _cards_in(self, scope: Scope) -> list[Card]:
        level_ids = {lvl.id for lvl in self._levels_in(scope)}
        return [c for c in self.cards.values() if c.level_id in level_ids]

"""
Review session: one study sitting over a snapshot of due cards.

The queue only shrinks. A graded card leaves the queue even when its new due
date is still today, so a card is shown at most once per session.
"""

import logging
from collections import deque
from dataclasses import dataclass
from datetime import date

from lexis.domain.errors import SessionFinished
from lexis.domain.models import Card, CardMemoryState, Grade, Scope

from .due_selector import DueSetSelector
from .recorder import ReviewRecorder

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReviewOutcome:
    """Result of one ``grade()`` call."""

    card: Card
    grade: Grade
    state: CardMemoryState | None  # None when nothing was persisted (guest)


class ReviewSession:
    """
    Ordered, mutable queue of cards with a flip state.

    Operations on a finished (empty) session raise SessionFinished.
    """

    def __init__(
        self,
        cards: list[Card],
        recorder: ReviewRecorder | None,
        learner_id: str | None,
        today: date,
    ):
        self._queue: deque[Card] = deque(cards)
        self._recorder = recorder
        self.learner_id = learner_id
        self.today = today
        self.position = 0
        self.revealed = False
        self.reviewed: list[ReviewOutcome] = []

    @classmethod
    async def start(
        cls,
        selector: DueSetSelector,
        recorder: ReviewRecorder | None,
        learner_id: str | None,
        scope: Scope,
        today: date,
    ) -> "ReviewSession":
        """Open a session over the cards currently due in ``scope``."""
        cards = await selector.due_cards(learner_id, scope, today)
        logger.info(f"Session started for {scope.kind}:{scope.id} with {len(cards)} cards")
        return cls(cards, recorder, learner_id, today)

    @property
    def queue(self) -> list[Card]:
        return list(self._queue)

    @property
    def remaining(self) -> int:
        return len(self._queue)

    @property
    def is_finished(self) -> bool:
        return not self._queue

    @property
    def current(self) -> Card:
        self._ensure_active()
        return self._queue[self.position]

    def flip(self) -> bool:
        """Toggle front/back of the current card. Returns the new ``revealed``."""
        self._ensure_active()
        self.revealed = not self.revealed
        return self.revealed

    def skip(self) -> None:
        """Move the current card to the back of the queue without grading it."""
        card = self.current
        self._remove_current()
        self._queue.append(card)
        self.position %= len(self._queue)
        self.revealed = False

    async def grade(self, grade: Grade) -> ReviewOutcome:
        """
        Grade the current card and drop it from the queue.

        With a learner, the new state is persisted first; if that fails the
        exception propagates and the session is left exactly as it was.
        """
        card = self.current

        state = None
        if self.learner_id is not None and self._recorder is not None:
            state = await self._recorder.record(self.learner_id, card.id, grade, self.today)

        self._remove_current()
        self.revealed = False
        if self._queue:
            self.position %= len(self._queue)

        outcome = ReviewOutcome(card=card, grade=grade, state=state)
        self.reviewed.append(outcome)
        if self.is_finished:
            logger.info(f"Session finished after {len(self.reviewed)} reviews")
        return outcome

    def _remove_current(self) -> None:
        del self._queue[self.position]
        if not self._queue:
            self.position = 0

    def _ensure_active(self) -> None:
        if not self._queue:
            raise SessionFinished("No cards left in this session")

"""
Due-set selection: which cards a learner should study today.

Coordinates card queries against the repository and applies the
presentation order.
"""

import logging
import random
from datetime import date

from lexis.domain.errors import LexisError, NotFound
from lexis.domain.models import Card, Scope
from lexis.domain.ports import CardRepository

logger = logging.getLogger(__name__)


class DueSetSelector:
    """
    Application service computing due cards and due counts.

    Depends on the CardRepository abstraction, not a concrete adapter.
    """

    def __init__(self, card_repo: CardRepository, rng: random.Random | None = None):
        """
        Args:
            card_repo: The repository (port) for card queries.
            rng: Source of randomness for shuffling; a fresh Random if not provided.
        """
        self._repo = card_repo
        self._rng = rng or random.Random()

    async def due_cards(self, learner_id: str | None, scope: Scope, today: date) -> list[Card]:
        """
        Cards due for ``learner_id`` in ``scope``, in random study order.

        A card is due if the learner has never reviewed it or its due date is
        on or before ``today``. Without a learner (guest mode) every card in
        scope is returned.

        Unknown scopes and failed queries degrade to an empty list.
        """
        try:
            if learner_id is None:
                cards = await self._repo.query_cards(scope, due_only=False, today=today)
            else:
                cards = await self._repo.query_cards(
                    scope, due_only=True, today=today, learner_id=learner_id
                )
        except NotFound:
            logger.info(f"Scope {scope.kind}:{scope.id} not found, nothing is due")
            return []
        except LexisError as e:
            logger.warning(f"Could not load due cards for {scope.kind}:{scope.id}: {e}")
            return []

        return self.shuffle(list(cards))

    async def due_counts(
        self, learner_id: str | None, scope: Scope, today: date
    ) -> dict[str, int]:
        """
        Per-level tally of due cards, ordered by level id.

        Never randomized. Returns an empty mapping for guests and for failed
        queries.
        """
        if learner_id is None:
            return {}

        try:
            counts = await self._repo.query_due_counts(scope, learner_id, today)
        except NotFound:
            logger.info(f"Scope {scope.kind}:{scope.id} not found, no due counts")
            return {}
        except LexisError as e:
            logger.warning(f"Could not load due counts for {scope.kind}:{scope.id}: {e}")
            return {}

        return {level_id: counts[level_id] for level_id in sorted(counts)}

    def shuffle(self, cards: list[Card]) -> list[Card]:
        """Fisher-Yates shuffle in place; returns the same list."""
        for i in range(len(cards) - 1, 0, -1):
            j = self._rng.randint(0, i)
            cards[i], cards[j] = cards[j], cards[i]
        return cards

"""
Ports (interfaces) for the external record store.

These define the contract that infrastructure adapters must implement.
Application services depend on these abstractions, not concrete implementations.
"""

from abc import ABC, abstractmethod
from datetime import date

from .models import Card, CardMemoryState, Course, Level, Scope


class ProgressRepository(ABC):
    """
    Port for reading and writing per-learner card memory state.

    Implementations:
        - InMemoryStore: process-local dictionaries.
        - SupabaseStore: the ``progress`` table over PostgREST.
    """

    @abstractmethod
    async def read_memory_state(self, learner_id: str, card_id: str) -> CardMemoryState | None:
        """
        Fetch the stored state for a (learner, card) pair.

        Returns:
            The stored state, or None if the learner never reviewed the card.

        Raises:
            StoreUnavailable: The store could not be reached.
        """
        pass

    @abstractmethod
    async def write_memory_state(self, state: CardMemoryState) -> None:
        """
        Insert or replace the state for ``(state.learner_id, state.card_id)``.

        Raises:
            StoreUnavailable: The write did not reach the store.
        """
        pass


class CardRepository(ABC):
    """
    Port for read-only access to cards, levels and courses.
    """

    @abstractmethod
    async def query_cards(
        self,
        scope: Scope,
        *,
        due_only: bool,
        today: date,
        learner_id: str | None = None,
    ) -> list[Card]:
        """
        Fetch the cards in scope.

        Args:
            scope: Level or course to search.
            due_only: Keep only cards that are new for the learner or have
                ``due_date <= today``. Requires ``learner_id``.
            today: Canonical date used for the due comparison.
            learner_id: Learner whose progress decides due status.

        Raises:
            NotFound: The scope does not exist.
            StoreUnavailable: The store could not be reached.
        """
        pass

    @abstractmethod
    async def query_due_counts(self, scope: Scope, learner_id: str, today: date) -> dict[str, int]:
        """
        Count due cards per level inside the scope.

        Returns:
            Mapping of level id to due count.
        """
        pass

    @abstractmethod
    async def list_courses(self) -> list[Course]:
        pass

    @abstractmethod
    async def list_levels(self, course_id: str) -> list[Level]:
        """Levels of a course, ordered by their ``sort`` key."""
        pass

    async def is_responsive(self) -> bool:
        """Whether the store can currently answer queries. Local stores always can."""
        return True

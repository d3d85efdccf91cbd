"""Abstract contracts for the decision graph and the history ledger."""

from abc import ABC, abstractmethod

from survival.schemas.progress import NewTransition, TransitionRecord
from survival.schemas.story import DecisionNode


class GraphStore(ABC):
    """Read-only access to one story's decision graph.

    Implementations must not cache across calls.
    """

    @abstractmethod
    async def get_node(self, key: str) -> DecisionNode:
        """Return the node with this ``decision_id``, choices included.

        Raises:
            NotFound: no such node in the story.
            StoreUnavailable: the backend failed.
        """
        ...

    @abstractmethod
    async def get_start_node(self) -> DecisionNode:
        """Return the story's ordinal-0 node."""
        ...


class LedgerStore(ABC):
    """Append-only transition records of one story, keyed by owner email.

    ``atomic`` is True when all writes of one request commit or roll back
    together, so a failed write never leaves a half-finished transition.
    """

    atomic: bool = False

    @abstractmethod
    async def list_by_owner(self, player: str) -> list[TransitionRecord]:
        ...

    @abstractmethod
    async def list_all(self) -> list[TransitionRecord]:
        """Every record in the story, for leaderboard projections."""
        ...

    @abstractmethod
    async def create(self, record: NewTransition) -> TransitionRecord:
        """Persist a record; the store assigns its id and timestamp."""
        ...

    @abstractmethod
    async def mark_complete(self, record_id: int) -> None:
        """Set ``complete=True`` on a record. Raises NotFound if missing."""
        ...

    @abstractmethod
    async def delete_by_owner(self, player: str) -> int:
        """Bulk delete every record of a player; returns how many went."""
        ...

    @abstractmethod
    async def delete(self, record_id: int) -> None:
        ...


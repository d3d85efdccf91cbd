"""SQL-backed graph and ledger stores (SQLAlchemy async).

Both stores only flush; the owning session commits. When the engine's two
ledger writes go through one request session they land in one transaction.
"""

from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from survival.core.errors import NotFound, StoreUnavailable
from survival.core.logging import get_logger
from survival.models.score import ScoreRecord
from survival.models.story import Decision, DecisionChoice, Story
from survival.schemas.progress import NewTransition, TransitionRecord
from survival.schemas.story import Choice, DecisionNode
from survival.stores.base import GraphStore, LedgerStore

logger = get_logger(__name__)


@contextmanager
def _translate_errors(action: str) -> Iterator[None]:
    try:
        yield
    except SQLAlchemyError as e:
        logger.error("database error during %s: %s", action, e)
        raise StoreUnavailable(f"Database unavailable during {action}") from e


def decision_to_node(decision: Decision) -> DecisionNode:
    """Convert an ORM decision (choices and targets loaded) to a DecisionNode."""
    prompts = [
        decision.reflective_prompt_1,
        decision.reflective_prompt_2,
        decision.reflective_prompt_3,
        decision.reflective_prompt_4,
    ]
    return DecisionNode(
        id=decision.id,
        decision_id=decision.decision_id,
        decision_number=decision.decision_number,
        title=decision.title,
        description=decision.description,
        text=decision.text,
        hero_image=decision.hero_image,
        reflective_prompts=[p for p in prompts if p],
        choices=[
            Choice(
                id=c.id,
                source_key=decision.decision_id,
                target_id=c.target.id,
                target_key=c.target.decision_id,
                target_number=c.target.decision_number,
                title=c.title,
                description=c.description,
                morale=c.morale,
                condition=c.condition,
                resources=c.resources,
                morale_effect=c.morale_effect,
                condition_effect=c.condition_effect,
                resources_effect=c.resources_effect,
            )
            for c in decision.choices
        ],
    )


class SqlGraphStore(GraphStore):
    def __init__(self, db: AsyncSession, story_id: int):
        self.db = db
        self.story_id = story_id

    def _node_query(self):
        return (
            select(Decision)
            .where(Decision.story_id == self.story_id)
            .options(selectinload(Decision.choices).selectinload(DecisionChoice.target))
            .execution_options(populate_existing=True)
        )

    async def get_node(self, key: str) -> DecisionNode:
        with _translate_errors("get_node"):
            result = await self.db.execute(self._node_query().where(Decision.decision_id == key))
            decision = result.scalar_one_or_none()
        if decision is None:
            raise NotFound(f"Decision not found: {key}")
        return decision_to_node(decision)

    async def get_start_node(self) -> DecisionNode:
        with _translate_errors("get_start_node"):
            result = await self.db.execute(
                self._node_query().where(Decision.decision_number == 0).order_by(Decision.id)
            )
            decision = result.scalars().first()
        if decision is None:
            raise NotFound(f"Story {self.story_id} has no start decision")
        return decision_to_node(decision)


class SqlLedgerStore(LedgerStore):
    # Writes only flush; get_db commits or rolls back the whole request
    atomic = True

    def __init__(self, db: AsyncSession, story_id: int):
        self.db = db
        self.story_id = story_id

    async def _get_row(self, record_id: int) -> ScoreRecord:
        row = await self.db.get(ScoreRecord, record_id)
        if row is None or row.story_id != self.story_id:
            raise NotFound(f"Score record not found: {record_id}")
        return row

    async def list_by_owner(self, player: str) -> list[TransitionRecord]:
        with _translate_errors("list_by_owner"):
            result = await self.db.execute(
                select(ScoreRecord)
                .where(ScoreRecord.story_id == self.story_id, ScoreRecord.email == player)
                .order_by(ScoreRecord.created_at, ScoreRecord.id)
                .execution_options(populate_existing=True)
            )
            rows = result.scalars().all()
        return [TransitionRecord.model_validate(row) for row in rows]

    async def list_all(self) -> list[TransitionRecord]:
        with _translate_errors("list_all"):
            result = await self.db.execute(
                select(ScoreRecord)
                .where(ScoreRecord.story_id == self.story_id)
                .order_by(ScoreRecord.created_at, ScoreRecord.id)
                .execution_options(populate_existing=True)
            )
            rows = result.scalars().all()
        return [TransitionRecord.model_validate(row) for row in rows]

    async def create(self, record: NewTransition) -> TransitionRecord:
        with _translate_errors("create"):
            row = ScoreRecord(story_id=self.story_id, **record.model_dump())
            self.db.add(row)
            await self.db.flush()
            await self.db.refresh(row)
        return TransitionRecord.model_validate(row)

    async def mark_complete(self, record_id: int) -> None:
        with _translate_errors("mark_complete"):
            row = await self._get_row(record_id)
            row.complete = True
            await self.db.flush()

    async def delete_by_owner(self, player: str) -> int:
        with _translate_errors("delete_by_owner"):
            result = await self.db.execute(
                delete(ScoreRecord).where(
                    ScoreRecord.story_id == self.story_id, ScoreRecord.email == player
                )
            )
            await self.db.flush()
        return result.rowcount or 0

    async def delete(self, record_id: int) -> None:
        with _translate_errors("delete"):
            row = await self._get_row(record_id)
            await self.db.delete(row)
            await self.db.flush()


async def get_story_id(db: AsyncSession, slug: str) -> int:
    """Resolve a story slug to its primary key."""
    with _translate_errors("get_story_id"):
        result = await db.execute(select(Story.id).where(Story.slug == slug))
        story_id = result.scalar_one_or_none()
    if story_id is None:
        raise NotFound(f"Story not found: {slug}")
    return story_id

"""Factory for building a progression engine over a theme's stores."""

import httpx
import redis.asyncio as aioredis
from sqlalchemy.ext.asyncio import AsyncSession

from survival.config import StoryTheme
from survival.core.logging import get_logger
from survival.core.progression_engine import ProgressionEngine
from survival.services.consistency_monitor import ConsistencyMonitor
from survival.stores.base import GraphStore, LedgerStore
from survival.stores.remote import RemoteGraphStore, RemoteLedgerStore, get_remote_client
from survival.stores.sql import SqlGraphStore, SqlLedgerStore, get_story_id

logger = get_logger(__name__)


async def build_stores(
    theme: StoryTheme,
    db: AsyncSession,
    client: httpx.AsyncClient | None = None,
) -> tuple[GraphStore, LedgerStore, int]:
    """Return the graph store, ledger store and story id for a theme."""
    if theme.backend == "remote":
        client = client or get_remote_client(theme)
        story_id = theme.remote_story_id
        return (
            RemoteGraphStore(client, theme, story_id),
            RemoteLedgerStore(client, theme, story_id),
            story_id,
        )

    if theme.backend != "sql":
        logger.warning("Unknown backend '%s' for %s, using sql", theme.backend, theme.name)
    story_id = await get_story_id(db, theme.story_slug)
    return SqlGraphStore(db, story_id), SqlLedgerStore(db, story_id), story_id


async def build_engine(
    theme: StoryTheme,
    db: AsyncSession,
    redis: aioredis.Redis | None = None,
    client: httpx.AsyncClient | None = None,
) -> ProgressionEngine:
    graph, ledger, story_id = await build_stores(theme, db, client)
    monitor = ConsistencyMonitor(redis) if redis is not None else None
    return ProgressionEngine(graph, ledger, story_id=story_id, monitor=monitor)

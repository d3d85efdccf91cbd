"""Shared FastAPI dependencies: player identity, theme and engine."""

import redis.asyncio as aioredis
from fastapi import Depends, Header, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from survival.config import StoryTheme, get_theme
from survival.core.progression_engine import ProgressionEngine
from survival.db.database import get_db
from survival.db.redis import get_redis
from survival.stores.factory import build_engine


async def get_player(x_user_email: str | None = Header(default=None)) -> str:
    """The signed-in player's email, passed through by the auth proxy."""
    if not x_user_email:
        raise HTTPException(status_code=401, detail="Missing X-User-Email header")
    return x_user_email


async def get_story_theme(story: str | None = Query(default=None)) -> StoryTheme:
    return get_theme(story)


async def get_engine(
    theme: StoryTheme = Depends(get_story_theme),
    db: AsyncSession = Depends(get_db),
    redis: aioredis.Redis = Depends(get_redis),
) -> ProgressionEngine:
    return await build_engine(theme, db, redis)

"""Story endpoints - list loaded stories and their themes."""

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from survival.config import STORY_THEMES
from survival.db.database import get_db
from survival.models.story import Story
from survival.schemas.story import StorySummary, ThemeOut

router = APIRouter()


@router.get("/", response_model=list[StorySummary])
async def list_stories(db: AsyncSession = Depends(get_db)):
    result = await db.execute(select(Story).order_by(Story.id))
    return result.scalars().all()


@router.get("/themes", response_model=list[ThemeOut])
async def list_themes():
    """Terminology and colours for each story variant."""
    return [
        ThemeOut(
            name=theme.name,
            story_slug=theme.story_slug,
            primary_color=theme.primary_color,
            terminology=theme.terminology,
            descriptions=theme.descriptions,
        )
        for theme in STORY_THEMES.values()
    ]

"""Story loader - reads story YAML files and seeds the decision graph tables.

A story file lists every decision with its outgoing choices. Loading is
idempotent: decisions are matched by ``decision_id`` and keep their ids, so
existing score records still point at the right rows.
"""

import re
from pathlib import Path

import yaml
from pydantic import ValidationError
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from survival.config import settings
from survival.core.errors import StoryValidationError
from survival.core.logging import get_logger
from survival.models.story import Decision, DecisionChoice, Story
from survival.schemas.story import StoryFile

logger = get_logger(__name__)

DATA_DIR = Path(__file__).parent.parent / "data" / "stories"


def validate_story(story: StoryFile, final_pattern: str | None = None) -> None:
    """Check the graph shape. Raises StoryValidationError on the first problem."""
    final_re = re.compile(final_pattern or settings.FINAL_NODE_PATTERN)

    keys = [d.decision_id for d in story.decisions]
    duplicates = sorted({k for k in keys if keys.count(k) > 1})
    if duplicates:
        raise StoryValidationError(f"{story.slug}: duplicate decisions {duplicates}")

    starts = [d.decision_id for d in story.decisions if d.decision_number == 0]
    if len(starts) != 1:
        raise StoryValidationError(
            f"{story.slug}: expected exactly one start decision, found {starts}"
        )

    known = set(keys)
    for decision in story.decisions:
        for choice in decision.choices:
            if choice.to not in known:
                raise StoryValidationError(
                    f"{story.slug}: {decision.decision_id} leads to unknown decision {choice.to}"
                )
        if not decision.choices and not final_re.search(decision.decision_id):
            raise StoryValidationError(
                f"{story.slug}: {decision.decision_id} is not an ending but has no choices"
            )


class StoryLoader:
    def __init__(self, data_dir: Path = DATA_DIR):
        self.data_dir = data_dir

    def read_story(self, slug: str) -> StoryFile:
        """Parse and validate a story file."""
        file_path = self.data_dir / f"{slug}.yaml"
        if not file_path.exists():
            raise FileNotFoundError(f"Story file not found: {file_path}")

        with open(file_path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f)

        try:
            story = StoryFile(**(raw or {}))
        except ValidationError as e:
            raise StoryValidationError(f"{slug}: {e}") from e
        validate_story(story)
        return story

    def list_story_files(self) -> list[str]:
        """Slugs of all story files on disk."""
        return sorted(p.stem for p in self.data_dir.glob("*.yaml"))

    async def load(self, db: AsyncSession, slug: str) -> Story:
        """Upsert a story file into the database (flushes, does not commit)."""
        story_file = self.read_story(slug)

        result = await db.execute(select(Story).where(Story.slug == story_file.slug))
        story = result.scalar_one_or_none()
        if story is None:
            story = Story(slug=story_file.slug, name=story_file.name)
            db.add(story)
        story.name = story_file.name
        story.description = story_file.description
        await db.flush()

        result = await db.execute(select(Decision).where(Decision.story_id == story.id))
        existing = {d.decision_id: d for d in result.scalars().all()}

        # Choices are rebuilt from scratch every load
        if existing:
            source_ids = [d.id for d in existing.values()]
            await db.execute(delete(DecisionChoice).where(DecisionChoice.source_pk.in_(source_ids)))

        rows: dict[str, Decision] = {}
        for d in story_file.decisions:
            row = existing.pop(d.decision_id, None)
            if row is None:
                row = Decision(story_id=story.id, decision_id=d.decision_id)
                db.add(row)
            prompts = d.reflective_prompts + [None] * (4 - len(d.reflective_prompts))
            row.decision_number = d.decision_number
            row.title = d.title
            row.description = d.description
            row.text = d.text
            row.hero_image = d.hero_image
            (row.reflective_prompt_1, row.reflective_prompt_2,
             row.reflective_prompt_3, row.reflective_prompt_4) = prompts
            rows[d.decision_id] = row

        # Whatever is left in `existing` was removed from the file
        if existing:
            await db.execute(
                delete(Decision).where(Decision.id.in_([d.id for d in existing.values()]))
            )
        await db.flush()

        for d in story_file.decisions:
            for position, c in enumerate(d.choices):
                db.add(DecisionChoice(
                    source_pk=rows[d.decision_id].id,
                    target_pk=rows[c.to].id,
                    position=position,
                    title=c.title,
                    description=c.description,
                    morale=c.morale,
                    condition=c.condition,
                    resources=c.resources,
                    morale_effect=c.effects.get("morale"),
                    condition_effect=c.effects.get("condition"),
                    resources_effect=c.effects.get("resources"),
                ))
        await db.flush()

        logger.info("loaded story %s: %d decisions", story_file.slug, len(story_file.decisions))
        return story

    async def load_all(self, db: AsyncSession) -> list[Story]:
        return [await self.load(db, slug) for slug in self.list_story_files()]


story_loader = StoryLoader()

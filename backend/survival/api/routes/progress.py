"""Progress endpoints - current position, choices, committing a choice, restart."""

from fastapi import APIRouter, Depends

from survival.api.deps import get_engine, get_player
from survival.core.errors import InvalidChoice
from survival.core.logging import get_logger
from survival.core.progression_engine import ProgressionEngine
from survival.core.stats import to_percent
from survival.schemas.progress import (
    CommitChoiceRequest,
    PositionResponse,
    RestartResponse,
    StatsDisplay,
    TransitionRecord,
)
from survival.schemas.story import Choice, NodeView

logger = get_logger(__name__)

router = APIRouter()


@router.get("/position", response_model=PositionResponse)
async def get_position(
    player: str = Depends(get_player), engine: ProgressionEngine = Depends(get_engine)
):
    """Where the player is now, derived from their history."""
    position = await engine.get_current_position(player)
    stats = position.stats
    return PositionResponse(
        decision_id=position.node.decision_id,
        decision_number=position.node.decision_number,
        stats=stats,
        display=StatsDisplay(
            morale=to_percent(stats.morale),
            condition=to_percent(stats.condition),
            resources=stats.resources,
        ),
        is_finished=position.is_finished,
        choices=[c.id for c in position.node.choices],
    )


@router.get("/decisions/{decision_id}", response_model=NodeView)
async def get_decision(
    decision_id: str,
    player: str = Depends(get_player),
    engine: ProgressionEngine = Depends(get_engine),
):
    """A decision, plus the choice the player already made there (if any)."""
    node = await engine.graph.get_node(decision_id)
    made = await engine.choice_already_made_from(decision_id, player)
    chosen = None
    if made is not None:
        chosen = next((c.id for c in node.choices if c.target_key == made.decision_id), None)
    return NodeView(node=node, is_terminal=engine.is_terminal(decision_id), chosen_choice_id=chosen)


@router.get("/decisions/{decision_id}/choices", response_model=list[Choice])
async def list_choices(decision_id: str, engine: ProgressionEngine = Depends(get_engine)):
    return await engine.list_choices(decision_id)


@router.post("/choice", response_model=TransitionRecord, status_code=201)
async def commit_choice(
    req: CommitChoiceRequest,
    player: str = Depends(get_player),
    engine: ProgressionEngine = Depends(get_engine),
):
    """Take a choice. Stats are derived server-side from the player's history.

    Only the current decision, or one the player already chose from, is accepted.
    """
    position = await engine.get_current_position(player)
    if req.decision_id != position.node.decision_id:
        if await engine.choice_already_made_from(req.decision_id, player) is None:
            logger.warning(
                "%s tried to choose from %s while at %s",
                player, req.decision_id, position.node.decision_id,
            )
            raise InvalidChoice(f"Decision {req.decision_id} has not been reached")
    return await engine.commit_choice(player, req.decision_id, req.choice_id)


@router.get("/history", response_model=list[TransitionRecord])
async def get_history(
    player: str = Depends(get_player), engine: ProgressionEngine = Depends(get_engine)
):
    return await engine.history(player)


@router.post("/restart", response_model=RestartResponse)
async def restart(
    player: str = Depends(get_player), engine: ProgressionEngine = Depends(get_engine)
):
    """Wipe the player's history so they start from the first decision."""
    deleted = await engine.restart(player)
    return RestartResponse(message="Progress reset successfully", deleted=deleted)

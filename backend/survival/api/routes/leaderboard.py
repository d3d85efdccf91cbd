"""Leaderboard endpoint."""

from fastapi import APIRouter, Depends

from survival.api.deps import get_engine
from survival.core.progression_engine import ProgressionEngine
from survival.schemas.progress import LeaderboardEntry
from survival.services.leaderboard_service import leaderboard_service

router = APIRouter()


@router.get("/", response_model=list[LeaderboardEntry])
async def get_leaderboard(engine: ProgressionEngine = Depends(get_engine)):
    return await leaderboard_service.standings(engine.ledger)

"""Player stats, ledger records and progression payloads."""

from datetime import datetime

from pydantic import BaseModel, Field

from survival.schemas.story import DecisionNode


class PlayerStats(BaseModel):
    morale: float = Field(ge=0, le=1)
    condition: float = Field(ge=0, le=1)
    resources: int = Field(ge=0)

    model_config = {"frozen": True}


class StatDelta(BaseModel):
    morale: float = 0.0
    condition: float = 0.0
    resources: int = 0

    model_config = {"frozen": True}


class NewTransition(BaseModel):
    """A ledger entry before the store assigns its id and timestamp."""
    email: str
    decision_id: str  # destination key
    decision_ref: int  # destination numeric identity
    decision_number: int = 0
    previous_decision: str  # source key
    morale_before: float
    condition_before: float
    resources_before: int
    morale_after: float
    condition_after: float
    resources_after: int
    complete: bool = False


class TransitionRecord(NewTransition):
    id: int
    story_id: int | None = None
    created_at: datetime

    model_config = {"from_attributes": True}

    @property
    def before(self) -> PlayerStats:
        return PlayerStats(
            morale=self.morale_before,
            condition=self.condition_before,
            resources=self.resources_before,
        )

    @property
    def after(self) -> PlayerStats:
        return PlayerStats(
            morale=self.morale_after,
            condition=self.condition_after,
            resources=self.resources_after,
        )


class Position(BaseModel):
    node: DecisionNode
    stats: PlayerStats
    is_finished: bool
    last_record: TransitionRecord | None = None


class StatsDisplay(BaseModel):
    """Stats as percentages, the way the UI shows them."""
    morale: int
    condition: int
    resources: int


class PositionResponse(BaseModel):
    decision_id: str
    decision_number: int
    stats: PlayerStats
    display: StatsDisplay
    is_finished: bool
    choices: list[int]  # ids of the choices available from here


class CommitChoiceRequest(BaseModel):
    decision_id: str  # the node the player is standing on
    choice_id: int


class RestartResponse(BaseModel):
    message: str
    deleted: int


class LeaderboardEntry(BaseModel):
    rank: int
    email: str
    decision_id: str
    morale_after: float
    condition_after: float
    resources_after: int
    total_score: int

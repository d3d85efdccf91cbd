"""Database models package."""

from survival.models.story import Story, Decision, DecisionChoice
from survival.models.score import ScoreRecord

__all__ = ["Story", "Decision", "DecisionChoice", "ScoreRecord"]

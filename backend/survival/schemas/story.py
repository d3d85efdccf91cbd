"""Decision graph schemas: nodes, choices and story metadata."""

from pydantic import BaseModel, Field

from survival.config import Terminology


class Choice(BaseModel):
    """An outgoing edge of a decision node, with its stat deltas."""
    id: int
    source_key: str
    target_id: int  # numeric identity of the destination node
    target_key: str
    target_number: int = 0
    title: str = ""
    description: str = ""
    morale: float = 0.0
    condition: float = 0.0
    resources: int = 0
    # Narrative effect of each delta, e.g. "The crew cheers up"
    morale_effect: str | None = None
    condition_effect: str | None = None
    resources_effect: str | None = None


class DecisionNode(BaseModel):
    id: int
    decision_id: str
    decision_number: int
    title: str = ""
    description: str = ""
    text: str = ""
    hero_image: str | None = None
    reflective_prompts: list[str] = Field(default_factory=list, max_length=4)
    choices: list[Choice] = Field(default_factory=list)


class NodeView(BaseModel):
    """A node as presented to a player, with their earlier choice if any."""
    node: DecisionNode
    is_terminal: bool
    chosen_choice_id: int | None = None  # set when the node is already completed


class StorySummary(BaseModel):
    id: int
    slug: str
    name: str
    description: str = ""

    model_config = {"from_attributes": True}


class ThemeOut(BaseModel):
    name: str
    story_slug: str
    primary_color: str
    terminology: Terminology
    descriptions: dict[str, str]


class ChoiceSpec(BaseModel):
    """A choice as authored in a story file."""
    to: str  # destination decision_id
    title: str = ""
    description: str = ""
    morale: float = 0.0
    condition: float = 0.0
    resources: int = 0
    effects: dict[str, str] = Field(default_factory=dict)  # stat name -> narrative effect


class DecisionSpec(BaseModel):
    decision_id: str
    decision_number: int
    title: str = ""
    description: str = ""
    text: str = ""
    hero_image: str | None = None
    reflective_prompts: list[str] = Field(default_factory=list, max_length=4)
    choices: list[ChoiceSpec] = Field(default_factory=list)


class StoryFile(BaseModel):
    """Full story definition loaded from YAML."""
    slug: str
    name: str
    description: str = ""
    decisions: list[DecisionSpec]

"""Story models - the decision graph, loaded from YAML story files."""

from sqlalchemy import String, Integer, Float, Text, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from survival.db.database import Base


class Story(Base):
    __tablename__ = "stories"

    id: Mapped[int] = mapped_column(primary_key=True)
    slug: Mapped[str] = mapped_column(String(50), unique=True)  # e.g. "island"
    name: Mapped[str] = mapped_column(String(200))
    description: Mapped[str] = mapped_column(Text, default="")


class Decision(Base):
    """A node in a story's decision graph."""
    __tablename__ = "decisions"
    __table_args__ = (UniqueConstraint("story_id", "decision_id"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    story_id: Mapped[int] = mapped_column(ForeignKey("stories.id", ondelete="CASCADE"))
    decision_id: Mapped[str] = mapped_column(String(100))  # e.g. "START", "D2_AB"
    decision_number: Mapped[int] = mapped_column(Integer, default=0)  # 0 = start node
    title: Mapped[str] = mapped_column(String(200), default="")
    description: Mapped[str] = mapped_column(Text, default="")
    text: Mapped[str] = mapped_column(Text, default="")
    hero_image: Mapped[str | None] = mapped_column(String(500), nullable=True)
    reflective_prompt_1: Mapped[str | None] = mapped_column(Text, nullable=True)
    reflective_prompt_2: Mapped[str | None] = mapped_column(Text, nullable=True)
    reflective_prompt_3: Mapped[str | None] = mapped_column(Text, nullable=True)
    reflective_prompt_4: Mapped[str | None] = mapped_column(Text, nullable=True)

    choices: Mapped[list["DecisionChoice"]] = relationship(
        foreign_keys="DecisionChoice.source_pk",
        order_by="DecisionChoice.position",
        cascade="all, delete-orphan",
    )


class DecisionChoice(Base):
    """An outgoing edge from one decision to another."""
    __tablename__ = "decision_choices"

    id: Mapped[int] = mapped_column(primary_key=True)
    source_pk: Mapped[int] = mapped_column(ForeignKey("decisions.id", ondelete="CASCADE"))
    target_pk: Mapped[int] = mapped_column(ForeignKey("decisions.id", ondelete="CASCADE"))
    position: Mapped[int] = mapped_column(Integer, default=0)  # authored order
    title: Mapped[str] = mapped_column(String(200), default="")
    description: Mapped[str] = mapped_column(Text, default="")

    morale: Mapped[float] = mapped_column(Float, default=0.0)
    condition: Mapped[float] = mapped_column(Float, default=0.0)
    resources: Mapped[int] = mapped_column(Integer, default=0)
    morale_effect: Mapped[str | None] = mapped_column(Text, nullable=True)
    condition_effect: Mapped[str | None] = mapped_column(Text, nullable=True)
    resources_effect: Mapped[str | None] = mapped_column(Text, nullable=True)

    target: Mapped[Decision] = relationship(foreign_keys=[target_pk])

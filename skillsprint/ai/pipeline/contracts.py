"""Shared data contracts for the generation pipelines.

Model output is validated against these schemas after the repair parser has
produced JSON. Field names are camelCase on the wire and snake_case in
Python; ``dump_wire`` renders the camelCase form persisted in ``course_data``.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator, model_validator
from pydantic.alias_generators import to_camel

BlockType = Literal["text", "key_point", "example", "visual_tree", "activity", "reflection"]
QuizType = Literal["multiple_choice", "fill_blank", "ordering"]

MULTIPLE_CHOICE_OPTIONS = 4
PLACEHOLDER_BODY = "Content will be provided when you start this sprint."


class WireModel(BaseModel):
  """Base model accepting both camelCase and snake_case input."""

  model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, str_strip_whitespace=True)

  def dump_wire(self) -> dict[str, Any]:
    return self.model_dump(by_alias=True, exclude_none=True)


class CourseRequest(WireModel):
  """Learner-facing parameters for a course generation job."""

  topic: str = Field(min_length=1)
  audience: str = Field(min_length=1)
  level: str = Field(min_length=1)
  duration: str = Field(min_length=1)
  goals: str = ""


class SprintOutline(WireModel):
  """Sprint stub produced by the outline stage."""

  title: str = Field(min_length=1)
  description: str = ""
  duration: str = "10"
  content_outline: list[str] = Field(default_factory=list)


class ModuleOutline(WireModel):
  title: str = Field(min_length=1)
  description: str = ""
  sprints: list[SprintOutline] = Field(default_factory=list)


class CourseOutline(WireModel):
  """Structured result of the outline stage."""

  title: str = Field(min_length=1)
  description: str = ""
  learning_objectives: list[str] = Field(default_factory=list)
  prerequisites: list[str] | None = None
  modules: list[ModuleOutline] = Field(min_length=1)

  @property
  def sprint_count(self) -> int:
    return sum(len(module.sprints) for module in self.modules)


class ContentBlock(WireModel):
  type: BlockType
  value: str = Field(min_length=1)

  @field_validator("type", mode="before")
  @classmethod
  def _normalize_type(cls, value: Any) -> Any:
    # Models alternate between key_point, key-point and "Key Point".
    if isinstance(value, str):
      return value.strip().lower().replace("-", "_").replace(" ", "_")
    return value


class QuizItem(WireModel):
  """One assessment item. Multiple choice carries four options and an index."""

  question: str = Field(min_length=1)
  type: QuizType = "multiple_choice"
  options: list[str] | None = None
  correct_answer: int | str | None = None
  correct_order: list[int] | None = None
  explanation: str | None = None

  @field_validator("type", mode="before")
  @classmethod
  def _normalize_type(cls, value: Any) -> Any:
    if isinstance(value, str):
      return value.strip().lower().replace("-", "_").replace(" ", "_")
    return value

  @model_validator(mode="after")
  def _check_answer_shape(self) -> QuizItem:
    if self.type == "multiple_choice":
      if not self.options or len(self.options) != MULTIPLE_CHOICE_OPTIONS:
        raise ValueError(f"multiple_choice questions need exactly {MULTIPLE_CHOICE_OPTIONS} options.")
      answer = self.correct_answer
      if isinstance(answer, str) and answer.strip().isdigit():
        answer = int(answer.strip())
      if not isinstance(answer, int) or isinstance(answer, bool) or not 0 <= answer < len(self.options):
        raise ValueError("multiple_choice correctAnswer must be an option index.")
      self.correct_answer = answer
    elif self.type == "fill_blank":
      if self.correct_answer is None or str(self.correct_answer).strip() == "":
        raise ValueError("fill_blank questions need a correctAnswer.")
      self.correct_answer = str(self.correct_answer)
    elif self.type == "ordering":
      if not self.options or self.correct_order is None:
        raise ValueError("ordering questions need options and correctOrder.")
      if sorted(self.correct_order) != list(range(len(self.options))):
        raise ValueError("ordering correctOrder must be a permutation of option indexes.")
    return self


class SprintContent(WireModel):
  """Full body of a generated course sprint."""

  title: str = Field(min_length=1)
  introduction: str = Field(min_length=1)
  content: list[ContentBlock] = Field(min_length=1)
  quiz: list[QuizItem] = Field(min_length=1)
  summary: str | None = None
  next_steps: str | None = None


class PersonalizedSprintContent(WireModel):
  """Reinforcement sprint generated for one weak knowledge area."""

  title: str = Field(min_length=1)
  introduction: str = Field(min_length=1)
  content: list[ContentBlock] = Field(min_length=1)
  quiz: list[QuizItem] = Field(default_factory=list)


QUIZ_ITEMS_ADAPTER: TypeAdapter[list[QuizItem]] = TypeAdapter(list[QuizItem])
LEARNING_OBJECTIVES_ADAPTER: TypeAdapter[list[str]] = TypeAdapter(list[str])


def build_placeholder_sprint(title: str, *, introduction: str | None = None) -> dict[str, Any]:
  """Return the minimal sprint body used when generation fails for one unit."""
  return {
    "title": title,
    "introduction": introduction or f"This sprint focuses on {title}.",
    "content": [{"type": "text", "value": PLACEHOLDER_BODY}],
    "quiz": [],
  }


def is_placeholder_sprint(content: dict[str, Any]) -> bool:
  """Recognize a placeholder by its fixed body text and empty quiz."""
  blocks = content.get("content") or []
  return len(blocks) == 1 and blocks[0].get("value") == PLACEHOLDER_BODY and not content.get("quiz")

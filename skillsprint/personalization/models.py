"""Domain models for personalized learning paths."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class KnowledgeArea:
  """A taxonomy topic joined with one learner's proficiency (0.0-1.0)."""

  id: str
  name: str
  description: str | None
  proficiency_score: float

  def to_wire(self) -> dict[str, Any]:
    return {"id": self.id, "name": self.name, "description": self.description, "proficiency_score": self.proficiency_score}


@dataclass(frozen=True)
class KnowledgeAreaRecord:
  """A catalog row from knowledge_areas, independent of any learner."""

  id: str
  name: str
  description: str | None


@dataclass(frozen=True)
class PerformanceAnalysis:
  """Derived view of a learner's strengths and gaps. Never persisted."""

  weak_areas: tuple[KnowledgeArea, ...]
  strong_areas: tuple[KnowledgeArea, ...]
  recommended_focus: tuple[str, ...]
  completed_sprints: int
  average_score: float
  base_path_id: str | None = None

  def to_wire(self) -> dict[str, Any]:
    payload: dict[str, Any] = {
      "weakAreas": [area.to_wire() for area in self.weak_areas],
      "strongAreas": [area.to_wire() for area in self.strong_areas],
      "recommendedFocus": list(self.recommended_focus),
      "completedSprints": self.completed_sprints,
      "averageScore": self.average_score,
    }
    if self.base_path_id is not None:
      payload["basePathId"] = self.base_path_id
    return payload


@dataclass(frozen=True)
class BaseSprint:
  id: str
  title: str
  description: str | None
  time: str | None
  content: Any
  order_index: int


@dataclass(frozen=True)
class BaseModule:
  id: str
  title: str
  description: str | None
  order_index: int
  sprints: tuple[BaseSprint, ...] = ()


@dataclass(frozen=True)
class BasePath:
  """A catalog learning path with its modules and sprints in display order."""

  id: str
  title: str
  description: str | None
  modules: tuple[BaseModule, ...] = ()


@dataclass(frozen=True)
class NewPersonalizedPath:
  user_id: str
  title: str
  description: str
  base_path_id: str
  learning_objectives: list[str] | None = field(default=None, hash=False)
  is_active: bool = True


@dataclass(frozen=True)
class NewPersonalizedModule:
  personalized_path_id: str
  original_module_id: str | None
  title: str
  description: str | None
  order_index: int
  is_custom: bool


@dataclass(frozen=True)
class NewPersonalizedSprint:
  personalized_module_id: str
  original_sprint_id: str | None
  title: str
  description: str | None
  time: str | None
  content: Any = field(hash=False)
  order_index: int = 0
  is_custom: bool = False
  is_generated: bool = False
  knowledge_area_focus: str | None = None


@dataclass(frozen=True)
class NewQuizQuestion:
  personalized_sprint_id: str
  question: str
  options: list[str] = field(hash=False)
  correct_answer: int | str | None = None
  explanation: str | None = None
  difficulty_level: int = 3
  knowledge_area_id: str | None = None

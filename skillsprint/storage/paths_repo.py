"""Storage interfaces for knowledge proficiency and personalized paths."""

from __future__ import annotations

from typing import Any, Protocol

from skillsprint.personalization.models import BasePath, KnowledgeArea, KnowledgeAreaRecord, NewPersonalizedModule, NewPersonalizedPath, NewPersonalizedSprint, NewQuizQuestion


class PersonalizationRepository(Protocol):
  """Repository contract for the personalized path pipeline."""

  async def list_user_proficiencies(self, user_id: str) -> list[KnowledgeArea]:
    """Return the learner's proficiency rows joined with their knowledge areas."""

  async def list_knowledge_areas(self) -> list[KnowledgeAreaRecord]:
    """Return every knowledge area in the catalog."""

  async def create_knowledge_area(self, name: str, description: str | None) -> KnowledgeAreaRecord:
    """Insert a knowledge area and return it with its generated id."""

  async def create_proficiency(self, user_id: str, knowledge_area_id: str, proficiency_score: float, confidence_level: float) -> None:
    """Insert one user_knowledge_proficiency row."""

  async def list_sprint_scores(self, user_id: str) -> list[float | None]:
    """Return the score of every completed sprint for the learner, newest first."""

  async def get_learning_path(self, path_id: str | None) -> BasePath | None:
    """Load a path with ordered modules and sprints; the first path when id is None."""

  async def create_personalized_path(self, path: NewPersonalizedPath) -> str:
    """Insert a personalized path and return its id."""

  async def create_personalized_module(self, module: NewPersonalizedModule) -> str:
    """Insert a personalized module and return its id."""

  async def create_personalized_sprint(self, sprint: NewPersonalizedSprint) -> str:
    """Insert a personalized sprint and return its id."""

  async def create_quiz_questions(self, questions: list[NewQuizQuestion]) -> None:
    """Insert quiz questions for a generated sprint."""

  async def get_personalized_path_tree(self, path_id: str) -> dict[str, Any] | None:
    """Return the path with nested modules, sprints and quiz questions."""

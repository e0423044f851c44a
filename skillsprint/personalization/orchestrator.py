"""Personalized learning path generation."""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from typing import Any

from pydantic import ValidationError

from skillsprint.ai.json_parser import ResponseParseError, parse_response
from skillsprint.ai.orchestrator import OrchestrationError, describe_validation_error
from skillsprint.ai.pipeline.contracts import LEARNING_OBJECTIVES_ADAPTER, QUIZ_ITEMS_ADAPTER, PersonalizedSprintContent, QuizItem, build_placeholder_sprint
from skillsprint.ai.pipeline.prompts import render_objectives_prompt, render_personalized_sprint_prompt, render_quiz_prompt
from skillsprint.ai.providers.base import DEFAULT_TEMPERATURE, TextModel
from skillsprint.personalization.models import BasePath, KnowledgeArea, NewPersonalizedModule, NewPersonalizedPath, NewPersonalizedSprint, NewQuizQuestion, PerformanceAnalysis
from skillsprint.personalization.performance import analyze_performance
from skillsprint.storage.generation_repo import RecordNotFoundError
from skillsprint.storage.paths_repo import PersonalizationRepository

logger = logging.getLogger(__name__)

REINFORCEMENT_TITLE = "Personalized Reinforcement Module"
REINFORCEMENT_DESCRIPTION = "This module is specially generated to help strengthen your understanding in areas where you need improvement."
REINFORCEMENT_SPRINT_TIME = "20-30 min"
REINFORCEMENT_DIFFICULTY = 3
REINFORCEMENT_QUIZ_COUNT = 5


@dataclass(frozen=True)
class PersonalizedPathResult:
  path: dict[str, Any]
  analysis: PerformanceAnalysis

  def to_wire(self) -> dict[str, Any]:
    return {"personalizedPath": self.path, "performanceAnalysis": self.analysis.to_wire()}


class PersonalizedPathOrchestrator:
  """Clone a base path for a learner and append a generated reinforcement module.

  Model failures degrade: objectives become ``None``, a failed reinforcement
  sprint is replaced by a placeholder and its quiz is skipped. Persistence
  failures are fatal and surface as ``OrchestrationError``.
  """

  def __init__(self, *, repo: PersonalizationRepository, model: TextModel, rng: random.Random | None = None, temperature: float = DEFAULT_TEMPERATURE) -> None:
    self._repo = repo
    self._model = model
    self._rng = rng or random.Random()
    self._temperature = temperature

  async def generate(self, user_id: str, base_path_id: str | None = None) -> PersonalizedPathResult:
    logs: list[str] = []
    analysis = await analyze_performance(self._repo, user_id, base_path_id, rng=self._rng)
    logs.append(f"Analyzed performance: {len(analysis.weak_areas)} weak area(s)")

    base_path = await self._repo.get_learning_path(base_path_id)
    if base_path is None:
      raise RecordNotFoundError("learning_paths", base_path_id or "<first>")
    logs.append(f"Loaded base path {base_path.id}")

    objectives = await self._generate_objectives(user_id, analysis)
    logs.append("Generated learning objectives" if objectives is not None else "Learning objectives unavailable")

    try:
      path_id = await self._persist_path(user_id, base_path, analysis, objectives, logs)
      tree = await self._repo.get_personalized_path_tree(path_id)
    except OrchestrationError:
      raise
    except Exception as exc:  # noqa: BLE001
      logger.error("Personalized path persistence failed user_id=%s error=%s", user_id, exc, exc_info=True)
      raise OrchestrationError(f"Failed to store personalized path: {exc}", logs=logs) from exc

    if tree is None:
      raise OrchestrationError(f"Personalized path {path_id} vanished after creation.", logs=logs)

    logger.info("Personalized path created user_id=%s path_id=%s base_path_id=%s", user_id, path_id, base_path.id)
    return PersonalizedPathResult(path=tree, analysis=analysis)

  async def _persist_path(self, user_id: str, base_path: BasePath, analysis: PerformanceAnalysis, objectives: list[str] | None, logs: list[str]) -> str:
    path_id = await self._repo.create_personalized_path(
      NewPersonalizedPath(
        user_id=user_id,
        title=f"Personalized: {base_path.title}",
        description=f"Your personalized learning journey based on {base_path.title}, adapted to your strengths and areas for improvement.",
        base_path_id=base_path.id,
        learning_objectives=objectives,
      )
    )

    for module_index, module in enumerate(base_path.modules):
      module_id = await self._repo.create_personalized_module(
        NewPersonalizedModule(personalized_path_id=path_id, original_module_id=module.id, title=module.title, description=module.description, order_index=module_index, is_custom=False)
      )
      for sprint_index, sprint in enumerate(module.sprints):
        await self._repo.create_personalized_sprint(
          NewPersonalizedSprint(
            personalized_module_id=module_id,
            original_sprint_id=sprint.id,
            title=sprint.title,
            description=sprint.description,
            time=sprint.time,
            content=sprint.content,
            order_index=sprint_index,
            is_custom=False,
          )
        )
    logs.append(f"Cloned {len(base_path.modules)} module(s)")

    if analysis.weak_areas:
      await self._add_reinforcement_module(path_id, len(base_path.modules), analysis.weak_areas)
      logs.append(f"Added reinforcement module for {len(analysis.weak_areas)} area(s)")

    return path_id

  async def _add_reinforcement_module(self, path_id: str, order_index: int, weak_areas: tuple[KnowledgeArea, ...]) -> None:
    module_id = await self._repo.create_personalized_module(
      NewPersonalizedModule(personalized_path_id=path_id, original_module_id=None, title=REINFORCEMENT_TITLE, description=REINFORCEMENT_DESCRIPTION, order_index=order_index, is_custom=True)
    )

    for index, area in enumerate(weak_areas):
      content = await self._generate_sprint(area)
      description = f"This sprint helps strengthen your understanding of {area.name}."
      if content is None:
        title = f"Reinforcement: {area.name}"
        body = build_placeholder_sprint(title, introduction=f"This sprint focuses on improving your understanding of {area.name}.")
      else:
        title = content.title
        body = content.dump_wire()

      sprint_id = await self._repo.create_personalized_sprint(
        NewPersonalizedSprint(
          personalized_module_id=module_id,
          original_sprint_id=None,
          title=title,
          description=description,
          time=REINFORCEMENT_SPRINT_TIME,
          content=body,
          order_index=index,
          is_custom=True,
          is_generated=True,
          knowledge_area_focus=area.id,
        )
      )
      if content is None:
        continue

      questions = await self._generate_quiz(area)
      if questions:
        await self._repo.create_quiz_questions(
          [
            NewQuizQuestion(
              personalized_sprint_id=sprint_id,
              question=item.question,
              options=list(item.options or []),
              correct_answer=item.correct_answer,
              explanation=item.explanation,
              difficulty_level=REINFORCEMENT_DIFFICULTY,
              knowledge_area_id=area.id,
            )
            for item in questions
          ]
        )

  async def _complete_json(self, prompt: str, context_id: str) -> Any | None:
    raw = await self._model.generate_content(prompt, temperature=self._temperature)
    if raw is None:
      return None
    try:
      return parse_response(raw, context_id)
    except ResponseParseError as exc:
      logger.warning("Discarding unparseable model output: %s", exc)
      return None

  async def _generate_objectives(self, user_id: str, analysis: PerformanceAnalysis) -> list[str] | None:
    parsed = await self._complete_json(render_objectives_prompt(analysis.weak_areas, analysis.strong_areas), f"objectives:{user_id}")
    if parsed is None:
      return None
    try:
      objectives = LEARNING_OBJECTIVES_ADAPTER.validate_python(parsed)
    except ValidationError as exc:
      logger.warning("Learning objectives rejected user_id=%s: %s", user_id, describe_validation_error(exc))
      return None
    return [objective for objective in objectives if objective.strip()] or None

  async def _generate_sprint(self, area: KnowledgeArea) -> PersonalizedSprintContent | None:
    parsed = await self._complete_json(render_personalized_sprint_prompt(area, REINFORCEMENT_DIFFICULTY), f"sprint:{area.id}")
    if parsed is None:
      return None
    try:
      return PersonalizedSprintContent.model_validate(parsed)
    except ValidationError as exc:
      logger.warning("Reinforcement sprint rejected area=%s: %s", area.name, describe_validation_error(exc))
      return None

  async def _generate_quiz(self, area: KnowledgeArea) -> list[QuizItem] | None:
    parsed = await self._complete_json(render_quiz_prompt(area, REINFORCEMENT_DIFFICULTY, REINFORCEMENT_QUIZ_COUNT), f"quiz:{area.id}")
    if parsed is None:
      return None
    try:
      return QUIZ_ITEMS_ADAPTER.validate_python(parsed)
    except ValidationError as exc:
      logger.warning("Quiz questions rejected area=%s: %s", area.name, describe_validation_error(exc))
      return None

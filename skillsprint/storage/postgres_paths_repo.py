"""Postgres-backed repository for the personalized path pipeline."""

from __future__ import annotations

from collections import defaultdict
from datetime import datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import DeclarativeBase

from skillsprint.core.database import get_session_factory
from skillsprint.personalization.models import BaseModule, BasePath, BaseSprint, KnowledgeArea, KnowledgeAreaRecord, NewPersonalizedModule, NewPersonalizedPath, NewPersonalizedSprint, NewQuizQuestion
from skillsprint.schema.sql import (
  KnowledgeAreaRow,
  LearningPath,
  Module,
  PersonalizedLearningPath,
  PersonalizedModule,
  PersonalizedQuizQuestion,
  PersonalizedSprint,
  Sprint,
  UserKnowledgeProficiency,
  UserSprintProgress,
)
from skillsprint.storage.paths_repo import PersonalizationRepository


def _row_to_dict(row: DeclarativeBase) -> dict[str, Any]:
  """Serialize a mapped row into JSON-friendly primitives."""
  payload: dict[str, Any] = {}
  for column in row.__table__.columns:
    value = getattr(row, column.key)
    payload[column.key] = value.isoformat() if isinstance(value, datetime) else value
  return payload


class PostgresPersonalizationRepository(PersonalizationRepository):
  """Persist knowledge proficiency and personalized paths to Postgres."""

  def __init__(self) -> None:
    self._session_factory = get_session_factory()

  async def list_user_proficiencies(self, user_id: str) -> list[KnowledgeArea]:
    async with self._session_factory() as session:
      stmt = (
        select(UserKnowledgeProficiency.knowledge_area_id, UserKnowledgeProficiency.proficiency_score, KnowledgeAreaRow.name, KnowledgeAreaRow.description)
        .join(KnowledgeAreaRow, KnowledgeAreaRow.id == UserKnowledgeProficiency.knowledge_area_id)
        .where(UserKnowledgeProficiency.user_id == user_id)
      )
      result = await session.execute(stmt)
      return [KnowledgeArea(id=str(area_id), name=name, description=description, proficiency_score=float(score)) for area_id, score, name, description in result.all()]

  async def list_knowledge_areas(self) -> list[KnowledgeAreaRecord]:
    async with self._session_factory() as session:
      result = await session.execute(select(KnowledgeAreaRow).order_by(KnowledgeAreaRow.created_at.asc()))
      return [KnowledgeAreaRecord(id=str(row.id), name=row.name, description=row.description) for row in result.scalars().all()]

  async def create_knowledge_area(self, name: str, description: str | None) -> KnowledgeAreaRecord:
    async with self._session_factory() as session:
      row = KnowledgeAreaRow(name=name, description=description)
      session.add(row)
      await session.commit()
      await session.refresh(row)
      return KnowledgeAreaRecord(id=str(row.id), name=row.name, description=row.description)

  async def create_proficiency(self, user_id: str, knowledge_area_id: str, proficiency_score: float, confidence_level: float) -> None:
    async with self._session_factory() as session:
      session.add(UserKnowledgeProficiency(user_id=user_id, knowledge_area_id=knowledge_area_id, proficiency_score=proficiency_score, confidence_level=confidence_level))
      await session.commit()

  async def list_sprint_scores(self, user_id: str) -> list[float | None]:
    async with self._session_factory() as session:
      stmt = select(UserSprintProgress.score).where(UserSprintProgress.user_id == user_id).order_by(UserSprintProgress.completed_at.desc())
      result = await session.execute(stmt)
      return list(result.scalars().all())

  async def get_learning_path(self, path_id: str | None) -> BasePath | None:
    async with self._session_factory() as session:
      if path_id is None:
        result = await session.execute(select(LearningPath).order_by(LearningPath.created_at.asc()).limit(1))
        path = result.scalars().first()
      else:
        path = await session.get(LearningPath, path_id)
      if path is None:
        return None

      module_rows = (await session.execute(select(Module).where(Module.path_id == path.id).order_by(Module.order_index.asc()))).scalars().all()
      module_ids = [row.id for row in module_rows]
      sprints_by_module: dict[str, list[BaseSprint]] = defaultdict(list)
      if module_ids:
        sprint_rows = (await session.execute(select(Sprint).where(Sprint.module_id.in_(module_ids)).order_by(Sprint.order_index.asc()))).scalars().all()
        for sprint in sprint_rows:
          sprints_by_module[sprint.module_id].append(
            BaseSprint(id=str(sprint.id), title=sprint.title, description=sprint.description, time=sprint.time, content=sprint.content, order_index=sprint.order_index)
          )

      modules = tuple(
        BaseModule(id=str(row.id), title=row.title, description=row.description, order_index=row.order_index, sprints=tuple(sprints_by_module.get(row.id, ())))
        for row in module_rows
      )
      return BasePath(id=str(path.id), title=path.title, description=path.description, modules=modules)

  async def create_personalized_path(self, path: NewPersonalizedPath) -> str:
    async with self._session_factory() as session:
      row = PersonalizedLearningPath(
        user_id=path.user_id,
        title=path.title,
        description=path.description,
        base_path_id=path.base_path_id,
        learning_objectives=path.learning_objectives,
        is_active=path.is_active,
      )
      session.add(row)
      await session.commit()
      await session.refresh(row)
      return str(row.id)

  async def create_personalized_module(self, module: NewPersonalizedModule) -> str:
    async with self._session_factory() as session:
      row = PersonalizedModule(
        personalized_path_id=module.personalized_path_id,
        original_module_id=module.original_module_id,
        title=module.title,
        description=module.description,
        order_index=module.order_index,
        is_custom=module.is_custom,
      )
      session.add(row)
      await session.commit()
      await session.refresh(row)
      return str(row.id)

  async def create_personalized_sprint(self, sprint: NewPersonalizedSprint) -> str:
    async with self._session_factory() as session:
      row = PersonalizedSprint(
        personalized_module_id=sprint.personalized_module_id,
        original_sprint_id=sprint.original_sprint_id,
        title=sprint.title,
        description=sprint.description,
        time=sprint.time,
        content=sprint.content,
        order_index=sprint.order_index,
        is_custom=sprint.is_custom,
        is_generated=sprint.is_generated,
        knowledge_area_focus=sprint.knowledge_area_focus,
      )
      session.add(row)
      await session.commit()
      await session.refresh(row)
      return str(row.id)

  async def create_quiz_questions(self, questions: list[NewQuizQuestion]) -> None:
    if not questions:
      return
    async with self._session_factory() as session:
      session.add_all(
        [
          PersonalizedQuizQuestion(
            personalized_sprint_id=question.personalized_sprint_id,
            question=question.question,
            options=question.options,
            correct_answer=question.correct_answer,
            explanation=question.explanation,
            difficulty_level=question.difficulty_level,
            knowledge_area_id=question.knowledge_area_id,
          )
          for question in questions
        ]
      )
      await session.commit()

  async def get_personalized_path_tree(self, path_id: str) -> dict[str, Any] | None:
    async with self._session_factory() as session:
      path = await session.get(PersonalizedLearningPath, path_id)
      if path is None:
        return None

      modules = (await session.execute(select(PersonalizedModule).where(PersonalizedModule.personalized_path_id == path_id).order_by(PersonalizedModule.order_index.asc()))).scalars().all()
      module_ids = [module.id for module in modules]
      sprints = []
      if module_ids:
        sprints = (await session.execute(select(PersonalizedSprint).where(PersonalizedSprint.personalized_module_id.in_(module_ids)).order_by(PersonalizedSprint.order_index.asc()))).scalars().all()
      sprint_ids = [sprint.id for sprint in sprints]
      questions = []
      if sprint_ids:
        questions = (await session.execute(select(PersonalizedQuizQuestion).where(PersonalizedQuizQuestion.personalized_sprint_id.in_(sprint_ids)))).scalars().all()

      questions_by_sprint: dict[str, list[dict[str, Any]]] = defaultdict(list)
      for question in questions:
        questions_by_sprint[question.personalized_sprint_id].append(_row_to_dict(question))

      sprints_by_module: dict[str, list[dict[str, Any]]] = defaultdict(list)
      for sprint in sprints:
        sprint_payload = _row_to_dict(sprint)
        sprint_payload["personalized_quiz_questions"] = questions_by_sprint.get(sprint.id, [])
        sprints_by_module[sprint.personalized_module_id].append(sprint_payload)

      tree = _row_to_dict(path)
      tree["personalized_modules"] = []
      for module in modules:
        module_payload = _row_to_dict(module)
        module_payload["personalized_sprints"] = sprints_by_module.get(module.id, [])
        tree["personalized_modules"].append(module_payload)
      return tree

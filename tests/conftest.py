"""Shared fixtures: in-memory repositories and a scripted text model."""

from __future__ import annotations

import os
from collections.abc import Callable
from dataclasses import replace
from typing import Any

import pytest

# Keep tests hermetic regardless of the developer's .env file.
os.environ.setdefault("SKILLSPRINT_ALLOWED_ORIGINS", "*")
os.environ.setdefault("SKILLSPRINT_LOG_DIR", os.path.join(os.path.dirname(__file__), ".logs"))

from skillsprint.ai.providers.base import DEFAULT_TEMPERATURE, TextModel  # noqa: E402
from skillsprint.jobs.models import GenerationRequestRecord, SprintContentRecord, is_terminal  # noqa: E402
from skillsprint.personalization.models import (  # noqa: E402
  BasePath,
  KnowledgeArea,
  KnowledgeAreaRecord,
  NewPersonalizedModule,
  NewPersonalizedPath,
  NewPersonalizedSprint,
  NewQuizQuestion,
)
from skillsprint.storage.generation_repo import RecordNotFoundError  # noqa: E402


@pytest.fixture
def anyio_backend() -> str:
  return "asyncio"


class InMemoryGenerationRepo:
  """In-memory generation repository mirroring the terminal-row guard of Postgres."""

  def __init__(self) -> None:
    self.records: dict[str, GenerationRequestRecord] = {}
    self.sprints: dict[tuple[str, int, int], SprintContentRecord] = {}
    self.writes: list[dict[str, Any]] = []
    self.status_reads = 0
    self.fail_updates = False

  def seed(self, request_id: str, *, status: str = "pending", progress: int = 0, created_at: str = "2025-01-01T00:00:00+00:00") -> GenerationRequestRecord:
    record = GenerationRequestRecord(request_id=request_id, user_id=None, status=status, progress=progress, request_data={"topic": "Test"}, created_at=created_at, updated_at=created_at)
    self.records[request_id] = record
    return record

  async def create_request(self, record: GenerationRequestRecord) -> None:
    self.records[record.request_id] = record

  async def get_request(self, request_id: str) -> GenerationRequestRecord | None:
    return self.records.get(request_id)

  async def get_status(self, request_id: str) -> str:
    self.status_reads += 1
    record = self.records.get(request_id)
    if record is None:
      raise RecordNotFoundError("course_generation_requests", request_id)
    return record.status

  async def update_request(self, request_id: str, **fields: Any) -> GenerationRequestRecord | None:
    if self.fail_updates:
      raise ConnectionError("database unavailable")
    record = self.records.get(request_id)
    if record is None:
      return None
    # Terminal rows are returned unchanged.
    if is_terminal(record.status):
      return record
    changes = {key: value for key, value in fields.items() if value is not None}
    self.writes.append(changes)
    updated = replace(record, **changes)
    self.records[request_id] = updated
    return updated

  async def list_recent(self, limit: int) -> list[GenerationRequestRecord]:
    return sorted(self.records.values(), key=lambda record: record.created_at, reverse=True)[:limit]

  async def save_sprint_content(self, record: SprintContentRecord) -> None:
    self.sprints[(record.request_id, record.module_index, record.sprint_index)] = record

  async def list_sprint_contents(self, request_id: str) -> list[SprintContentRecord]:
    return [self.sprints[key] for key in sorted(self.sprints) if key[0] == request_id]

  def cancel(self, request_id: str) -> None:
    """Simulate a cancel issued by another process."""
    self.records[request_id] = replace(self.records[request_id], status="cancelled", status_message="Cancelled elsewhere")


class ScriptedModel(TextModel):
  """Return canned responses in call order; ``None`` once the script runs out."""

  def __init__(self, responses: list[str | None | Exception] | None = None, *, configured: bool = True, on_call: Callable[[int], None] | None = None) -> None:
    self.name = "scripted"
    self._responses = list(responses or [])
    self._configured = configured
    self._on_call = on_call
    self.prompts: list[str] = []
    self.temperatures: list[float] = []

  @property
  def is_configured(self) -> bool:
    return self._configured

  async def generate_content(self, prompt: str, temperature: float = DEFAULT_TEMPERATURE) -> str | None:
    self.prompts.append(prompt)
    self.temperatures.append(temperature)
    if self._on_call is not None:
      self._on_call(len(self.prompts))
    if not self._responses:
      return None
    response = self._responses.pop(0)
    if isinstance(response, Exception):
      raise response
    return response


class InMemoryPersonalizationRepo:
  """In-memory personalization repository with sequential ids."""

  def __init__(self) -> None:
    self.areas: list[KnowledgeAreaRecord] = []
    self.proficiencies: dict[str, list[tuple[str, float, float]]] = {}
    self.sprint_scores: dict[str, list[float | None]] = {}
    self.base_paths: list[BasePath] = []
    self.paths: dict[str, dict[str, Any]] = {}
    self.modules: list[dict[str, Any]] = []
    self.sprints: list[dict[str, Any]] = []
    self.questions: list[dict[str, Any]] = []
    self.fail_on_sprint_insert = False
    self._counter = 0

  def _next_id(self, prefix: str) -> str:
    self._counter += 1
    return f"{prefix}-{self._counter}"

  async def list_user_proficiencies(self, user_id: str) -> list[KnowledgeArea]:
    by_id = {area.id: area for area in self.areas}
    return [
      KnowledgeArea(id=area_id, name=by_id[area_id].name, description=by_id[area_id].description, proficiency_score=score) for area_id, score, _confidence in self.proficiencies.get(user_id, [])
    ]

  async def list_knowledge_areas(self) -> list[KnowledgeAreaRecord]:
    return list(self.areas)

  async def create_knowledge_area(self, name: str, description: str | None) -> KnowledgeAreaRecord:
    record = KnowledgeAreaRecord(id=self._next_id("area"), name=name, description=description)
    self.areas.append(record)
    return record

  async def create_proficiency(self, user_id: str, knowledge_area_id: str, proficiency_score: float, confidence_level: float) -> None:
    self.proficiencies.setdefault(user_id, []).append((knowledge_area_id, proficiency_score, confidence_level))

  async def list_sprint_scores(self, user_id: str) -> list[float | None]:
    return list(self.sprint_scores.get(user_id, []))

  async def get_learning_path(self, path_id: str | None) -> BasePath | None:
    if path_id is None:
      return self.base_paths[0] if self.base_paths else None
    return next((path for path in self.base_paths if path.id == path_id), None)

  async def create_personalized_path(self, path: NewPersonalizedPath) -> str:
    path_id = self._next_id("ppath")
    self.paths[path_id] = {
      "id": path_id,
      "user_id": path.user_id,
      "title": path.title,
      "description": path.description,
      "base_path_id": path.base_path_id,
      "learning_objectives": path.learning_objectives,
      "is_active": path.is_active,
    }
    return path_id

  async def create_personalized_module(self, module: NewPersonalizedModule) -> str:
    module_id = self._next_id("pmodule")
    self.modules.append({"id": module_id, **module.__dict__})
    return module_id

  async def create_personalized_sprint(self, sprint: NewPersonalizedSprint) -> str:
    if self.fail_on_sprint_insert:
      raise ConnectionError("insert failed")
    sprint_id = self._next_id("psprint")
    self.sprints.append({"id": sprint_id, **sprint.__dict__})
    return sprint_id

  async def create_quiz_questions(self, questions: list[NewQuizQuestion]) -> None:
    for question in questions:
      self.questions.append({"id": self._next_id("question"), **question.__dict__})

  async def get_personalized_path_tree(self, path_id: str) -> dict[str, Any] | None:
    path = self.paths.get(path_id)
    if path is None:
      return None
    tree = dict(path)
    tree["personalized_modules"] = []
    for module in sorted((m for m in self.modules if m["personalized_path_id"] == path_id), key=lambda m: m["order_index"]):
      module_payload = dict(module)
      module_payload["personalized_sprints"] = []
      for sprint in sorted((s for s in self.sprints if s["personalized_module_id"] == module["id"]), key=lambda s: s["order_index"]):
        sprint_payload = dict(sprint)
        sprint_payload["personalized_quiz_questions"] = [dict(q) for q in self.questions if q["personalized_sprint_id"] == sprint["id"]]
        module_payload["personalized_sprints"].append(sprint_payload)
      tree["personalized_modules"].append(module_payload)
    return tree


@pytest.fixture
def generation_repo() -> InMemoryGenerationRepo:
  return InMemoryGenerationRepo()


@pytest.fixture
def personalization_repo() -> InMemoryPersonalizationRepo:
  return InMemoryPersonalizationRepo()


@pytest.fixture
def scripted_model() -> type[ScriptedModel]:
  """Expose the scripted model class so tests can build one per scenario."""
  return ScriptedModel

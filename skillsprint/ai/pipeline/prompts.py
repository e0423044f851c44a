"""Prompt rendering for the course and personalized path pipelines."""

from __future__ import annotations

from collections.abc import Sequence
from functools import lru_cache
from pathlib import Path

from skillsprint.ai.pipeline.contracts import CourseOutline, CourseRequest, ModuleOutline, SprintOutline
from skillsprint.personalization.models import KnowledgeArea

PROMPTS_DIR = Path(__file__).resolve().parents[1] / "prompts"


@lru_cache(maxsize=8)
def _load_prompt(name: str) -> str:
  try:
    return (PROMPTS_DIR / name).read_text(encoding="utf-8").strip()
  except (FileNotFoundError, PermissionError, UnicodeDecodeError) as exc:
    raise RuntimeError(f"Failed to load prompt '{name}': {exc}") from exc


def _replace_placeholders(template: str, values: dict[str, str]) -> str:
  """Substitute {{PLACEHOLDER}} markers with concrete request values."""
  rendered = template
  for key, value in values.items():
    rendered = rendered.replace(f"{{{{{key}}}}}", value)

  return rendered


def _percent(score: float) -> str:
  return str(round(score * 100))


def _format_areas(areas: Sequence[KnowledgeArea]) -> str:
  if not areas:
    return "- None identified yet"
  return "\n".join(f"- {area.name} (current proficiency: {_percent(area.proficiency_score)}%)" for area in areas)


def render_outline_prompt(request: CourseRequest) -> str:
  """Render the outline prompt from the learner's course request."""
  replacements = {"TOPIC": request.topic, "AUDIENCE": request.audience, "LEVEL": request.level, "DURATION": request.duration, "GOALS": request.goals or "-"}
  return _replace_placeholders(_load_prompt("course_outline.md"), replacements)


def render_sprint_prompt(request: CourseRequest, outline: CourseOutline, module: ModuleOutline, sprint: SprintOutline) -> str:
  """Render the sprint body prompt with its module and course context."""
  replacements = {
    "SPRINT_TITLE": sprint.title,
    "MODULE_TITLE": module.title,
    "COURSE_TITLE": outline.title,
    "CONTENT_OUTLINE": ", ".join(sprint.content_outline) or sprint.description or sprint.title,
    "AUDIENCE": request.audience,
    "LEVEL": request.level,
    "DURATION": sprint.duration or "10",
  }
  return _replace_placeholders(_load_prompt("sprint_content.md"), replacements)


def _area_replacements(area: KnowledgeArea, difficulty: int) -> dict[str, str]:
  return {"AREA_NAME": area.name, "PROFICIENCY_PERCENT": _percent(area.proficiency_score), "DIFFICULTY": str(difficulty), "AREA_DESCRIPTION": area.description or area.name}


def render_personalized_sprint_prompt(area: KnowledgeArea, difficulty: int) -> str:
  return _replace_placeholders(_load_prompt("personalized_sprint.md"), _area_replacements(area, difficulty))


def render_quiz_prompt(area: KnowledgeArea, difficulty: int, count: int) -> str:
  replacements = _area_replacements(area, difficulty)
  replacements["COUNT"] = str(count)
  return _replace_placeholders(_load_prompt("quiz_questions.md"), replacements)


def render_objectives_prompt(weak_areas: Sequence[KnowledgeArea], strong_areas: Sequence[KnowledgeArea]) -> str:
  replacements = {"WEAK_AREAS": _format_areas(weak_areas), "STRONG_AREAS": _format_areas(strong_areas)}
  return _replace_placeholders(_load_prompt("learning_objectives.md"), replacements)

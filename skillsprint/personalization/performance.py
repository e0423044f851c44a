"""Learner performance analysis for personalized paths."""

from __future__ import annotations

import logging
import random

from skillsprint.personalization.models import KnowledgeArea, PerformanceAnalysis
from skillsprint.storage.paths_repo import PersonalizationRepository

logger = logging.getLogger(__name__)

FOCUS_AREA_COUNT = 3
BOOTSTRAP_MAX_SCORE = 0.7
BOOTSTRAP_CONFIDENCE = 0.5

# Seeded into an empty catalog so a first-time learner still gets a path.
DEFAULT_KNOWLEDGE_AREAS: tuple[tuple[str, str], ...] = (
  ("Anatomical Terminology", "Terms used to describe body positions, regions, and directional terms."),
  ("Skeletal System", "Bones, cartilage, and joints of the human body."),
  ("Muscular System", "Muscles and associated tissues that control movement."),
  ("Nervous System", "Brain, spinal cord, nerves, and associated structures."),
  ("Cardiovascular System", "Heart, blood vessels, and blood circulation."),
)


async def bootstrap_proficiencies(repo: PersonalizationRepository, user_id: str, rng: random.Random) -> list[KnowledgeArea]:
  """Create an initial proficiency row per knowledge area for a new learner.

  Scores are drawn uniformly from [0, 0.7) so the weak/strong split is not
  degenerate before any quiz has been taken.
  """
  areas = await repo.list_knowledge_areas()
  if not areas:
    logger.info("Knowledge area catalog empty; seeding %d default areas", len(DEFAULT_KNOWLEDGE_AREAS))
    areas = [await repo.create_knowledge_area(name, description) for name, description in DEFAULT_KNOWLEDGE_AREAS]

  for area in areas:
    await repo.create_proficiency(user_id, area.id, rng.random() * BOOTSTRAP_MAX_SCORE, BOOTSTRAP_CONFIDENCE)

  logger.info("Bootstrapped proficiency user_id=%s areas=%d", user_id, len(areas))
  return await repo.list_user_proficiencies(user_id)


def average_score(scores: list[float | None]) -> float:
  # A completed sprint without a recorded score counts as zero.
  if not scores:
    return 0.0
  return sum(score or 0.0 for score in scores) / len(scores)


def split_focus_areas(areas: list[KnowledgeArea], count: int = FOCUS_AREA_COUNT) -> tuple[tuple[KnowledgeArea, ...], tuple[KnowledgeArea, ...]]:
  """Return (weak, strong): lowest scores ascending, highest scores descending."""
  ordered = sorted(areas, key=lambda area: area.proficiency_score)
  weak = tuple(ordered[:count])
  strong = tuple(reversed(ordered[-count:])) if ordered else ()
  return weak, strong


async def analyze_performance(repo: PersonalizationRepository, user_id: str, base_path_id: str | None = None, *, rng: random.Random | None = None) -> PerformanceAnalysis:
  """Derive weak and strong knowledge areas plus sprint statistics for a learner."""
  scores = await repo.list_sprint_scores(user_id)
  areas = await repo.list_user_proficiencies(user_id)
  if not areas:
    areas = await bootstrap_proficiencies(repo, user_id, rng or random.Random())

  weak, strong = split_focus_areas(areas)
  analysis = PerformanceAnalysis(
    weak_areas=weak,
    strong_areas=strong,
    recommended_focus=tuple(area.id for area in weak),
    completed_sprints=len(scores),
    average_score=average_score(scores),
    base_path_id=base_path_id,
  )
  logger.info("Performance analyzed user_id=%s areas=%d completed_sprints=%d", user_id, len(areas), analysis.completed_sprints)
  return analysis

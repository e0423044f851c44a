from __future__ import annotations

import json
import random

import pytest

from skillsprint.ai.orchestrator import OrchestrationError
from skillsprint.personalization.models import BaseModule, BasePath, BaseSprint, KnowledgeAreaRecord
from skillsprint.personalization.orchestrator import PersonalizedPathOrchestrator
from skillsprint.personalization.performance import DEFAULT_KNOWLEDGE_AREAS, analyze_performance, average_score
from skillsprint.storage.generation_repo import RecordNotFoundError

SCORES = {"area-a": 0.9, "area-b": 0.1, "area-c": 0.5, "area-d": 0.3, "area-e": 0.7}


def _seed_learner(repo, user_id: str = "user-1") -> None:
  for area_id, score in SCORES.items():
    repo.areas.append(KnowledgeAreaRecord(id=area_id, name=f"Area {area_id[-1].upper()}", description=None))
    repo.proficiencies.setdefault(user_id, []).append((area_id, score, 0.5))


def _seed_base_path(repo) -> BasePath:
  path = BasePath(
    id="path-1",
    title="Human Anatomy",
    description="Systems of the body.",
    modules=(
      BaseModule(id="mod-1", title="Bones", description=None, order_index=0, sprints=(BaseSprint(id="spr-1", title="Skull", description=None, time="15 min", content="Skull text", order_index=0),)),
      BaseModule(id="mod-2", title="Muscles", description=None, order_index=1, sprints=()),
    ),
  )
  repo.base_paths.append(path)
  return path


def _sprint_json(title: str) -> str:
  return json.dumps({"title": title, "introduction": "Let's review.", "content": [{"type": "text", "value": "Body"}], "quiz": []})


def _quiz_json(count: int = 5) -> str:
  return json.dumps([{"question": f"Q{index}", "options": ["a", "b", "c", "d"], "correctAnswer": index % 4, "explanation": "because"} for index in range(count)])


def test_average_score_counts_missing_scores_as_zero() -> None:
  assert average_score([]) == 0.0
  assert average_score([0.8, None, 0.6]) == pytest.approx(1.4 / 3)


@pytest.mark.anyio
async def test_analysis_splits_weak_and_strong_areas(personalization_repo) -> None:
  _seed_learner(personalization_repo)
  personalization_repo.sprint_scores["user-1"] = [1.0, 0.5]

  analysis = await analyze_performance(personalization_repo, "user-1", "path-1")

  assert [area.id for area in analysis.weak_areas] == ["area-b", "area-d", "area-c"]
  assert [area.id for area in analysis.strong_areas] == ["area-a", "area-e", "area-c"]
  assert analysis.recommended_focus == ("area-b", "area-d", "area-c")
  assert analysis.completed_sprints == 2
  assert analysis.average_score == pytest.approx(0.75)
  assert analysis.to_wire()["basePathId"] == "path-1"


@pytest.mark.anyio
async def test_empty_catalog_is_seeded_with_default_areas(personalization_repo) -> None:
  analysis = await analyze_performance(personalization_repo, "user-1", rng=random.Random(7))

  assert [area.name for area in personalization_repo.areas] == [name for name, _ in DEFAULT_KNOWLEDGE_AREAS]
  proficiencies = personalization_repo.proficiencies["user-1"]
  assert len(proficiencies) == 5
  assert all(0.0 <= score < 0.7 and confidence == 0.5 for _area, score, confidence in proficiencies)
  assert len(analysis.weak_areas) == 3
  assert "basePathId" not in analysis.to_wire()


@pytest.mark.anyio
async def test_existing_catalog_is_reused_for_new_learners(personalization_repo) -> None:
  personalization_repo.areas.extend([KnowledgeAreaRecord(id="area-x", name="X", description=None), KnowledgeAreaRecord(id="area-y", name="Y", description=None)])

  analysis = await analyze_performance(personalization_repo, "user-2", rng=random.Random(1))

  assert len(personalization_repo.areas) == 2
  assert {area.id for area in analysis.weak_areas} == {"area-x", "area-y"}
  assert len(analysis.strong_areas) == 2


@pytest.mark.anyio
async def test_generate_clones_base_path_and_adds_reinforcement(personalization_repo, scripted_model) -> None:
  _seed_learner(personalization_repo)
  _seed_base_path(personalization_repo)
  objectives = json.dumps(["Identify the bones of the skull", "Explain muscle contraction"])
  model = scripted_model([objectives, _sprint_json("Mastering B"), _quiz_json(), None, _sprint_json("Mastering C"), _quiz_json()])

  result = await PersonalizedPathOrchestrator(repo=personalization_repo, model=model).generate("user-1")

  tree = result.path
  assert tree["title"] == "Personalized: Human Anatomy"
  assert tree["base_path_id"] == "path-1"
  assert tree["learning_objectives"] == ["Identify the bones of the skull", "Explain muscle contraction"]
  modules = tree["personalized_modules"]
  assert [module["title"] for module in modules] == ["Bones", "Muscles", "Personalized Reinforcement Module"]
  assert modules[0]["original_module_id"] == "mod-1"
  assert modules[0]["is_custom"] is False
  assert modules[0]["personalized_sprints"][0]["content"] == "Skull text"
  assert modules[0]["personalized_sprints"][0]["original_sprint_id"] == "spr-1"

  reinforcement = modules[2]
  assert reinforcement["is_custom"] is True
  assert reinforcement["order_index"] == 2
  sprints = reinforcement["personalized_sprints"]
  assert [sprint["title"] for sprint in sprints] == ["Mastering B", "Reinforcement: Area D", "Mastering C"]
  assert [sprint["knowledge_area_focus"] for sprint in sprints] == ["area-b", "area-d", "area-c"]
  assert all(sprint["is_generated"] and sprint["time"] == "20-30 min" for sprint in sprints)
  assert sprints[1]["content"]["introduction"] == "This sprint focuses on improving your understanding of Area D."
  assert sprints[1]["content"]["quiz"] == []

  assert len(sprints[0]["personalized_quiz_questions"]) == 5
  assert sprints[1]["personalized_quiz_questions"] == []
  assert all(question["difficulty_level"] == 3 for question in sprints[0]["personalized_quiz_questions"])
  # Quiz generation is skipped for the placeholder sprint.
  assert len(model.prompts) == 6


@pytest.mark.anyio
async def test_model_failures_degrade_without_failing(personalization_repo, scripted_model) -> None:
  _seed_learner(personalization_repo)
  _seed_base_path(personalization_repo)
  model = scripted_model(configured=False)

  result = await PersonalizedPathOrchestrator(repo=personalization_repo, model=model).generate("user-1", "path-1")

  assert result.path["learning_objectives"] is None
  reinforcement = result.path["personalized_modules"][-1]
  assert [sprint["title"] for sprint in reinforcement["personalized_sprints"]] == ["Reinforcement: Area B", "Reinforcement: Area D", "Reinforcement: Area C"]
  assert personalization_repo.questions == []
  assert result.to_wire()["performanceAnalysis"]["recommendedFocus"] == ["area-b", "area-d", "area-c"]


@pytest.mark.anyio
async def test_missing_base_path_raises_not_found(personalization_repo, scripted_model) -> None:
  _seed_learner(personalization_repo)

  with pytest.raises(RecordNotFoundError):
    await PersonalizedPathOrchestrator(repo=personalization_repo, model=scripted_model()).generate("user-1", "nope")


@pytest.mark.anyio
async def test_persistence_failure_is_fatal(personalization_repo, scripted_model) -> None:
  _seed_learner(personalization_repo)
  _seed_base_path(personalization_repo)
  personalization_repo.fail_on_sprint_insert = True

  with pytest.raises(OrchestrationError) as excinfo:
    await PersonalizedPathOrchestrator(repo=personalization_repo, model=scripted_model()).generate("user-1")
  assert "Failed to store personalized path" in str(excinfo.value)
  assert excinfo.value.logs[0].startswith("Analyzed performance")

from __future__ import annotations

from collections.abc import Iterator

import pytest
from fastapi.testclient import TestClient

from skillsprint.api.deps import get_personalization_repo, get_text_model
from skillsprint.main import app
from skillsprint.personalization.models import BaseModule, BasePath, BaseSprint


@pytest.fixture
def client(personalization_repo, scripted_model) -> Iterator[TestClient]:
  # An unconfigured model exercises the placeholder path without scripting replies.
  model = scripted_model(configured=False)
  app.dependency_overrides[get_personalization_repo] = lambda: personalization_repo
  app.dependency_overrides[get_text_model] = lambda: model
  try:
    yield TestClient(app)
  finally:
    app.dependency_overrides.clear()


def _seed_base_path(repo) -> None:
  sprint = BaseSprint(id="spr-1", title="Skull", description=None, time="15 min", content="Skull text", order_index=0)
  repo.base_paths.append(BasePath(id="path-1", title="Human Anatomy", description=None, modules=(BaseModule(id="mod-1", title="Bones", description=None, order_index=0, sprints=(sprint,)),)))


def test_missing_user_id_is_rejected(client: TestClient) -> None:
  response = client.post("/v1/personalized-paths", json={"basePathId": "path-1"})

  assert response.status_code == 400
  assert response.json()["error"] == "Missing required parameter: userId"


def test_returns_personalized_path_and_analysis(client: TestClient, personalization_repo) -> None:
  _seed_base_path(personalization_repo)

  response = client.post("/v1/personalized-paths", json={"userId": "user-1", "basePathId": "path-1"})

  assert response.status_code == 200
  body = response.json()
  assert body["success"] is True
  path = body["personalizedPath"]
  assert path["title"] == "Personalized: Human Anatomy"
  assert [module["title"] for module in path["personalized_modules"]] == ["Bones", "Personalized Reinforcement Module"]
  assert len(path["personalized_modules"][1]["personalized_sprints"]) == 3
  analysis = body["performanceAnalysis"]
  assert len(analysis["weakAreas"]) == 3
  assert analysis["basePathId"] == "path-1"


def test_unknown_base_path_is_not_found(client: TestClient) -> None:
  response = client.post("/v1/personalized-paths", json={"userId": "user-1", "basePathId": "missing"})

  assert response.status_code == 404

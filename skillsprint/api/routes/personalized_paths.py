import logging

from fastapi import APIRouter, Depends, HTTPException, status

from skillsprint.ai.providers.base import TextModel
from skillsprint.api.deps import get_personalization_repo, get_text_model
from skillsprint.api.models import PersonalizedPathRequest, PersonalizedPathResponse
from skillsprint.config import Settings, get_settings
from skillsprint.personalization.orchestrator import PersonalizedPathOrchestrator
from skillsprint.storage.paths_repo import PersonalizationRepository

router = APIRouter()
logger = logging.getLogger("skillsprint.api.routes.personalized_paths")


@router.post("", response_model=PersonalizedPathResponse)
async def create_personalized_path(  # noqa: B008
  payload: PersonalizedPathRequest,
  settings: Settings = Depends(get_settings),  # noqa: B008
  repo: PersonalizationRepository = Depends(get_personalization_repo),  # noqa: B008
  model: TextModel = Depends(get_text_model),  # noqa: B008
) -> PersonalizedPathResponse:
  """Analyse a learner and build a personalized copy of a base learning path."""
  if not payload.user_id:
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing required parameter: userId")

  orchestrator = PersonalizedPathOrchestrator(repo=repo, model=model, temperature=settings.llm_default_temperature)
  result = await orchestrator.generate(payload.user_id, payload.base_path_id)
  logger.info("Personalized path served user_id=%s weak_areas=%d", payload.user_id, len(result.analysis.weak_areas))
  return PersonalizedPathResponse(success=True, personalized_path=result.path, performance_analysis=result.analysis.to_wire())

import logging

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status
from fastapi.responses import StreamingResponse

from skillsprint.ai.providers.base import TextModel
from skillsprint.api.deps import get_generation_repo, get_text_model
from skillsprint.api.models import CancelCourseResponse, CourseDetailResponse, CourseSummary, GenerateCourseRequest, GenerateCourseResponse
from skillsprint.config import Settings, get_settings
from skillsprint.services import course_requests as course_service
from skillsprint.storage.generation_repo import GenerationRequestsRepository

router = APIRouter()
logger = logging.getLogger("skillsprint.api.routes.courses")


@router.post("/generate", response_model=GenerateCourseResponse, status_code=status.HTTP_202_ACCEPTED)
async def generate_course(  # noqa: B008
  payload: GenerateCourseRequest,
  background_tasks: BackgroundTasks,
  settings: Settings = Depends(get_settings),  # noqa: B008
  repo: GenerationRequestsRepository = Depends(get_generation_repo),  # noqa: B008
  model: TextModel = Depends(get_text_model),  # noqa: B008
) -> GenerateCourseResponse:
  """Create a course generation request and run the pipeline in the background."""
  return await course_service.create_generation_request(payload, settings, background_tasks, repo, model)


@router.post("/{request_id}/cancel", response_model=CancelCourseResponse)
async def cancel_course(  # noqa: B008
  request_id: str,
  repo: GenerationRequestsRepository = Depends(get_generation_repo),  # noqa: B008
) -> CancelCourseResponse:
  """Request cooperative cancellation of a pending or processing generation."""
  return await course_service.cancel_generation_request(request_id, repo)


@router.get("", response_model=list[CourseSummary])
async def list_courses(  # noqa: B008
  settings: Settings = Depends(get_settings),  # noqa: B008
  repo: GenerationRequestsRepository = Depends(get_generation_repo),  # noqa: B008
) -> list[CourseSummary]:
  """List the most recent generation requests, newest first."""
  return await course_service.list_recent_courses(repo, settings.recent_requests_limit)


@router.get("/{request_id}", response_model=CourseDetailResponse)
async def get_course(  # noqa: B008
  request_id: str,
  repo: GenerationRequestsRepository = Depends(get_generation_repo),  # noqa: B008
) -> CourseDetailResponse:
  """Return a generation request with its stored sprint bodies."""
  return await course_service.get_course(request_id, repo)


@router.get("/{request_id}/events")
async def stream_course_events(  # noqa: B008
  request_id: str,
  settings: Settings = Depends(get_settings),  # noqa: B008
  repo: GenerationRequestsRepository = Depends(get_generation_repo),  # noqa: B008
) -> StreamingResponse:
  """Stream status changes as server-sent events until the request is terminal."""
  # Resolve unknown ids before committing to a streaming response.
  if await repo.get_request(request_id) is None:
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Request not found")

  return StreamingResponse(
    course_service.stream_status_events(request_id, repo, settings.events_poll_seconds),
    media_type="text/event-stream",
    headers={"Cache-Control": "no-cache", "Connection": "keep-alive", "X-Accel-Buffering": "no"},
  )

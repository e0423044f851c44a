import asyncio
import json
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from datetime import UTC, datetime

from fastapi import BackgroundTasks, HTTPException, status

from skillsprint.ai.orchestrator import CourseGenerationOrchestrator, GenerationOutcome
from skillsprint.ai.pipeline.contracts import CourseRequest
from skillsprint.ai.providers.base import TextModel
from skillsprint.api.models import CancelCourseResponse, CourseDetailResponse, CourseSummary, GenerateCourseRequest, GenerateCourseResponse
from skillsprint.config import ConfigurationError, Settings, missing_pipeline_env
from skillsprint.jobs.models import GenerationRequestRecord, is_terminal
from skillsprint.storage.generation_repo import GenerationRequestsRepository
from skillsprint.utils.ids import generate_request_id

logger = logging.getLogger(__name__)

_REQUEST_NOT_FOUND_MSG = "Request not found"


class CancellationRejectedError(Exception):
  """Raised when a cancel targets a request that already reached a terminal status."""

  def __init__(self, request_id: str, current_status: str) -> None:
    self.request_id = request_id
    self.current_status = current_status
    super().__init__(f"Request {request_id} is already {current_status} and cannot be cancelled.")


def _now_iso() -> str:
  return datetime.now(UTC).isoformat()


async def create_generation_request(payload: GenerateCourseRequest, settings: Settings, background_tasks: BackgroundTasks, repo: GenerationRequestsRepository, model: TextModel) -> GenerateCourseResponse:
  """Validate configuration, persist a pending request and schedule the pipeline."""
  missing = missing_pipeline_env(settings)
  if missing:
    logger.error("Refusing generation; missing environment variables: %s", ", ".join(missing))
    raise ConfigurationError("Server configuration error: Missing environment variables", details=f"Missing: {', '.join(missing)}")

  if payload.course_request is None:
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid request data: missing courseRequest")

  # Optional probe so a dead credential fails the request instead of the job.
  if settings.llm_preflight and not await model.ping():
    raise ConfigurationError("Gemini API connectivity test failed", details="The model did not answer the connectivity probe.")

  request_id = payload.request_id or generate_request_id()
  now = _now_iso()
  record = GenerationRequestRecord(
    request_id=request_id,
    user_id=payload.user_id,
    status="pending",
    progress=0,
    request_data=payload.course_request.dump_wire(),
    created_at=now,
    updated_at=now,
    status_message="Starting course generation...",
  )
  await repo.create_request(record)
  background_tasks.add_task(run_generation, request_id, payload.course_request, repo, model, settings.llm_default_temperature)
  logger.info("Generation request accepted request_id=%s topic=%s", request_id, payload.course_request.topic)
  return GenerateCourseResponse(message="Course generation started", request_id=request_id, status="pending")


async def run_generation(request_id: str, course_request: CourseRequest, repo: GenerationRequestsRepository, model: TextModel, temperature: float) -> GenerationOutcome:
  """Background entry point; the orchestrator owns every status write."""
  orchestrator = CourseGenerationOrchestrator(repo=repo, model=model, temperature=temperature)
  outcome = await orchestrator.run(request_id, course_request)
  logger.info("Generation finished request_id=%s status=%s llm_calls=%d", request_id, outcome.status, outcome.llm_calls)
  return outcome


async def cancel_generation_request(request_id: str, repo: GenerationRequestsRepository) -> CancelCourseResponse:
  """Mark a pending or processing request as cancelled."""
  record = await repo.get_request(request_id)
  if record is None:
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=_REQUEST_NOT_FOUND_MSG)

  if is_terminal(record.status):
    raise CancellationRejectedError(request_id, record.status)

  updated = await repo.update_request(request_id, status="cancelled", status_message=f"Cancellation requested by user at {_now_iso()}")
  if updated is None:
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=_REQUEST_NOT_FOUND_MSG)

  # The job may have finished between the read and the conditional update.
  if updated.status != "cancelled":
    raise CancellationRejectedError(request_id, updated.status)

  logger.info("Generation request cancelled request_id=%s", request_id)
  return CancelCourseResponse(message="Course generation cancellation requested successfully.", request_id=request_id, new_status="cancelled")


async def get_course(request_id: str, repo: GenerationRequestsRepository) -> CourseDetailResponse:
  record = await repo.get_request(request_id)
  if record is None:
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=_REQUEST_NOT_FOUND_MSG)

  contents = await repo.list_sprint_contents(request_id)
  return CourseDetailResponse(course=record.to_wire(), sprint_contents=[content.to_wire() for content in contents])


async def list_recent_courses(repo: GenerationRequestsRepository, limit: int) -> list[CourseSummary]:
  records = await repo.list_recent(limit)
  return [CourseSummary(id=record.request_id, status=record.status, status_message=record.status_message, created_at=record.created_at, request_data=record.request_data) for record in records]


def _format_event(event: str, payload: dict) -> str:
  return f"event: {event}\ndata: {json.dumps(payload)}\n\n"


async def stream_status_events(
  request_id: str,
  repo: GenerationRequestsRepository,
  poll_seconds: float,
  *,
  sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> AsyncIterator[str]:
  """Yield a server-sent event each time the observable status fields change.

  The stream closes after a terminal status has been sent, or when the row
  disappears.
  """
  last_payload: dict | None = None
  while True:
    try:
      record = await repo.get_request(request_id)
    except Exception as exc:  # noqa: BLE001
      logger.error("Status stream read failed request_id=%s error=%s", request_id, exc)
      yield _format_event("error", {"error": "Failed to read request status"})
      return

    if record is None:
      yield _format_event("error", {"error": _REQUEST_NOT_FOUND_MSG})
      return

    payload = record.to_status_payload()
    if payload != last_payload:
      yield _format_event("status", payload)
      last_payload = payload

    if is_terminal(record.status):
      return

    await sleep(poll_seconds)

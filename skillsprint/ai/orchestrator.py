"""Orchestration for the course generation pipeline.

A run moves one generation request through two stages. The outline stage is
load-bearing: if the model returns nothing usable the request fails. The
sprint stage degrades per unit: a sprint whose body cannot be generated,
parsed or validated is replaced by a placeholder and the job continues.
Cancellation is cooperative and checked before every unit of work.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError

from skillsprint.ai.json_parser import ResponseParseError, parse_response
from skillsprint.ai.pipeline.contracts import CourseOutline, CourseRequest, ModuleOutline, SprintContent, SprintOutline, build_placeholder_sprint, is_placeholder_sprint
from skillsprint.ai.pipeline.prompts import render_outline_prompt, render_sprint_prompt
from skillsprint.ai.providers.base import DEFAULT_TEMPERATURE, TextModel
from skillsprint.jobs.cancellation import CancellationChecker
from skillsprint.jobs.models import GenerationStatus, SprintContentRecord
from skillsprint.jobs.progress import GenerationCancelledError, GenerationProgressTracker
from skillsprint.storage.generation_repo import GenerationRequestsRepository

logger = logging.getLogger(__name__)

OUTLINE_PROGRESS = 20
SPRINT_PROGRESS_SPAN = 80
MISSING_KEY_ERROR = "GEMINI_API_KEY environment variable is not set"


class OrchestrationError(RuntimeError):
  """Raised when a pipeline hits a fatal, non-recoverable error."""

  def __init__(self, message: str, *, logs: list[str] | None = None) -> None:
    super().__init__(message)
    self.logs = list(logs or [])


class StageError(Exception):
  """A stage produced no usable output."""


@dataclass(frozen=True)
class GenerationOutcome:
  """Final state of one orchestration run."""

  request_id: str
  status: GenerationStatus
  error_message: str | None = None
  course_data: dict[str, Any] | None = None
  llm_calls: int = 0


@dataclass
class _SprintUnit:
  module_index: int
  sprint_index: int
  module: ModuleOutline
  sprint: SprintOutline


@dataclass
class _GenerationStats:
  total_sprints: int
  processed_sprints: int = 0
  failed_sprints: int = 0
  sprint_errors: list[str] = field(default_factory=list)

  def to_wire(self) -> dict[str, Any]:
    return {"totalSprints": self.total_sprints, "processedSprints": self.processed_sprints, "failedSprints": self.failed_sprints, "sprintErrors": list(self.sprint_errors)}


def sprint_progress(done: int, total: int) -> int:
  """Progress after ``done`` of ``total`` sprints: 20 + floor(80 * done / total)."""
  if total <= 0:
    return OUTLINE_PROGRESS + SPRINT_PROGRESS_SPAN
  return OUTLINE_PROGRESS + (SPRINT_PROGRESS_SPAN * done) // total


def describe_validation_error(exc: ValidationError, *, limit: int = 3) -> str:
  """Summarize pydantic errors as 'loc: msg' pairs for error_message columns."""
  parts = []
  for error in exc.errors()[:limit]:
    location = ".".join(str(item) for item in error.get("loc", ())) or "<root>"
    parts.append(f"{location}: {error.get('msg')}")
  remaining = exc.error_count() - len(parts)
  if remaining > 0:
    parts.append(f"(+{remaining} more)")
  return "; ".join(parts)


class CourseGenerationOrchestrator:
  """Drive one course generation request from pending to a terminal status."""

  def __init__(self, *, repo: GenerationRequestsRepository, model: TextModel, checker: CancellationChecker | None = None, temperature: float = DEFAULT_TEMPERATURE) -> None:
    self._repo = repo
    self._model = model
    self._checker = checker or CancellationChecker(repo)
    self._temperature = temperature
    self._llm_calls = 0

  async def run(self, request_id: str, course_request: CourseRequest) -> GenerationOutcome:
    """Run the pipeline; never raises for model, parse or cancellation outcomes."""
    self._llm_calls = 0
    tracker = GenerationProgressTracker(request_id=request_id, repo=self._repo)

    # A request cancelled before the job started is left untouched.
    if await self._checker.is_cancelled(request_id):
      logger.info("Generation skipped; request already cancelled request_id=%s", request_id)
      return self._outcome(request_id, "cancelled")

    try:
      return await self._run_stages(request_id, course_request, tracker)
    except GenerationCancelledError:
      logger.info("Generation stopped by cancellation request_id=%s", request_id)
      return self._outcome(request_id, "cancelled")
    except Exception as exc:  # noqa: BLE001
      logger.error("Generation crashed request_id=%s error_type=%s", request_id, type(exc).__name__, exc_info=True)
      return await self._fail_unless_cancelled(request_id, tracker, str(exc) or type(exc).__name__)

  async def _run_stages(self, request_id: str, course_request: CourseRequest, tracker: GenerationProgressTracker) -> GenerationOutcome:
    await tracker.start()

    if not self._model.is_configured:
      logger.error("Generation failed: LLM credentials missing request_id=%s", request_id)
      await tracker.fail(error_message=MISSING_KEY_ERROR, message="Configuration error")
      return self._outcome(request_id, "failed", error_message=MISSING_KEY_ERROR)

    # Stage A: outline.
    if await self._checker.is_cancelled(request_id):
      await tracker.cancel("Processing halted: cancelled before outline generation.")
      return self._outcome(request_id, "cancelled")

    try:
      outline = await self._generate_outline(request_id, course_request)
    except StageError as exc:
      logger.warning("Outline stage failed request_id=%s error=%s", request_id, exc)
      await tracker.fail(error_message=str(exc), message="Failed to generate course outline")
      return self._outcome(request_id, "failed", error_message=str(exc))

    # The outline is kept on the row so a later cancel or crash leaves it in place.
    await tracker.advance(progress=OUTLINE_PROGRESS, message="Course outline generated", course_data=outline.dump_wire())
    logger.info("Outline generated request_id=%s modules=%d sprints=%d", request_id, len(outline.modules), outline.sprint_count)

    # Stage B: sprint bodies in (module, sprint) order.
    course_data = outline.dump_wire()
    units = [_SprintUnit(module_index=mi, sprint_index=si, module=module, sprint=sprint) for mi, module in enumerate(outline.modules) for si, sprint in enumerate(module.sprints)]
    stats = _GenerationStats(total_sprints=len(units))

    for done, unit in enumerate(units, start=1):
      if await self._checker.is_cancelled(request_id):
        await tracker.cancel(f"Processing halted: cancelled before sprint {done} of {stats.total_sprints}.")
        return self._outcome(request_id, "cancelled")

      content, error = await self._generate_sprint(request_id, course_request, outline, unit)
      if error is None:
        stats.processed_sprints += 1
      else:
        stats.failed_sprints += 1
        stats.sprint_errors.append(f'Sprint "{unit.sprint.title}" failed: {error}')
        logger.warning("Sprint replaced by placeholder request_id=%s module=%d sprint=%d error=%s", request_id, unit.module_index, unit.sprint_index, error)

      await self._store_sprint(SprintContentRecord(request_id=request_id, module_index=unit.module_index, sprint_index=unit.sprint_index, content=content, generation_error=error))
      sprint_payload = course_data["modules"][unit.module_index]["sprints"][unit.sprint_index]
      sprint_payload["content"] = content
      sprint_payload["placeholder"] = is_placeholder_sprint(content)

      await tracker.advance(progress=sprint_progress(done, stats.total_sprints), message=f"Generated sprint {done} of {stats.total_sprints}: {unit.sprint.title}")

    if await self._checker.is_cancelled(request_id):
      await tracker.cancel("Processing halted: cancelled before final data assembly.")
      return self._outcome(request_id, "cancelled")

    course_data["generationStats"] = stats.to_wire()
    await tracker.complete(course_data=course_data)
    logger.info("Generation completed request_id=%s processed=%d failed=%d", request_id, stats.processed_sprints, stats.failed_sprints)
    return self._outcome(request_id, "completed", course_data=course_data)

  async def _generate_outline(self, request_id: str, course_request: CourseRequest) -> CourseOutline:
    raw = await self._call_model(render_outline_prompt(course_request))
    if raw is None:
      raise StageError("AI model returned no content for the course outline.")

    try:
      parsed = parse_response(raw, request_id)
    except ResponseParseError as exc:
      raise StageError(f"Invalid JSON response from AI model: {exc}") from exc

    try:
      return CourseOutline.model_validate(parsed)
    except ValidationError as exc:
      raise StageError(f"Invalid structure in AI response for course outline: {describe_validation_error(exc)}") from exc

  async def _generate_sprint(self, request_id: str, course_request: CourseRequest, outline: CourseOutline, unit: _SprintUnit) -> tuple[dict[str, Any], str | None]:
    """Return (content, error). On error the content is a placeholder."""
    placeholder = build_placeholder_sprint(unit.sprint.title)
    raw = await self._call_model(render_sprint_prompt(course_request, outline, unit.module, unit.sprint))
    if raw is None:
      return placeholder, "AI model returned no content."

    context_id = f"{request_id}:{unit.module_index}-{unit.sprint_index}"
    try:
      parsed = parse_response(raw, context_id)
    except ResponseParseError as exc:
      return placeholder, str(exc)

    try:
      content = SprintContent.model_validate(parsed)
    except ValidationError as exc:
      return placeholder, f"Invalid sprint structure: {describe_validation_error(exc)}"

    return content.dump_wire(), None

  async def _call_model(self, prompt: str) -> str | None:
    self._llm_calls += 1
    return await self._model.generate_content(prompt, temperature=self._temperature)

  async def _store_sprint(self, record: SprintContentRecord) -> None:
    try:
      await self._repo.save_sprint_content(record)
    except Exception as exc:  # noqa: BLE001
      logger.error("Failed to store sprint content request_id=%s module=%d sprint=%d error=%s", record.request_id, record.module_index, record.sprint_index, exc)

  async def _fail_unless_cancelled(self, request_id: str, tracker: GenerationProgressTracker, error_message: str) -> GenerationOutcome:
    # A cancel that raced the crash keeps its terminal state.
    if await self._checker.is_cancelled(request_id):
      return self._outcome(request_id, "cancelled")
    try:
      await tracker.fail(error_message=error_message)
    except GenerationCancelledError:
      return self._outcome(request_id, "cancelled")
    return self._outcome(request_id, "failed", error_message=error_message)

  def _outcome(self, request_id: str, status: GenerationStatus, *, error_message: str | None = None, course_data: dict[str, Any] | None = None) -> GenerationOutcome:
    return GenerationOutcome(request_id=request_id, status=status, error_message=error_message, course_data=course_data, llm_calls=self._llm_calls)

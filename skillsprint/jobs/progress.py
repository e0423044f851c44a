"""Progress tracking for course generation requests."""

from __future__ import annotations

import logging
from typing import Any

from skillsprint.jobs.models import GenerationRequestRecord, GenerationStatus, can_transition, is_terminal
from skillsprint.storage.generation_repo import GenerationRequestsRepository

logger = logging.getLogger(__name__)


class GenerationCancelledError(Exception):
  """Raised when a progress write reveals the request was cancelled externally."""


class GenerationProgressTracker:
  """Single writer for one request's status, progress and messages.

  Progress never decreases and status only moves forward. Writes are best
  effort: a failing database write is logged and generation continues, so
  observers may see stale progress until the next successful write.
  """

  def __init__(self, *, request_id: str, repo: GenerationRequestsRepository, initial_status: GenerationStatus = "pending", initial_progress: int = 0) -> None:
    self._request_id = request_id
    self._repo = repo
    self._status: GenerationStatus = initial_status
    self._progress = max(0, min(initial_progress, 100))
    self._history: list[tuple[GenerationStatus, int]] = []

  @property
  def status(self) -> GenerationStatus:
    return self._status

  @property
  def progress(self) -> int:
    return self._progress

  @property
  def history(self) -> list[tuple[GenerationStatus, int]]:
    """Return the (status, progress) pairs this tracker has written."""
    return list(self._history)

  async def _write(self, *, status: GenerationStatus, progress: int | None, message: str | None, **fields: Any) -> GenerationRequestRecord | None:
    if not can_transition(self._status, status):
      logger.warning("Refusing status transition request_id=%s %s -> %s", self._request_id, self._status, status)
      return None

    # Clamp so a caller can never move the bar backwards.
    next_progress = self._progress if progress is None else max(self._progress, min(progress, 100))
    self._status = status
    self._progress = next_progress
    self._history.append((status, next_progress))

    try:
      record = await self._repo.update_request(self._request_id, status=status, progress=next_progress, status_message=message, **fields)
    except Exception as exc:  # noqa: BLE001
      logger.error("Progress write failed request_id=%s status=%s progress=%s error=%s", self._request_id, status, next_progress, exc)
      return None

    if record is None:
      logger.warning("Progress write found no row request_id=%s", self._request_id)
      return None

    if record.status == "cancelled" and status != "cancelled":
      self._status = "cancelled"
      raise GenerationCancelledError(f"Generation request {self._request_id} was cancelled.")

    return record

  async def start(self, message: str = "Starting generation", progress: int = 5) -> GenerationRequestRecord | None:
    """Enter processing."""
    return await self._write(status="processing", progress=progress, message=message)

  async def advance(self, *, progress: int, message: str, **fields: Any) -> GenerationRequestRecord | None:
    """Record progress within processing, optionally with extra row fields such as course_data."""
    return await self._write(status="processing", progress=progress, message=message, **fields)

  async def complete(self, *, course_data: dict[str, Any], message: str = "Course generation completed successfully") -> GenerationRequestRecord | None:
    return await self._write(status="completed", progress=100, message=message, content_generated=True, course_data=course_data)

  async def fail(self, *, error_message: str, message: str = "Course generation failed") -> GenerationRequestRecord | None:
    return await self._write(status="failed", progress=None, message=message, error_message=error_message)

  async def cancel(self, message: str) -> GenerationRequestRecord | None:
    """Mark the request cancelled unless it already reached a terminal state."""
    if is_terminal(self._status):
      return None
    return await self._write(status="cancelled", progress=None, message=message)

"""Domain models for course generation requests."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

GenerationStatus = Literal["pending", "processing", "completed", "failed", "cancelled"]

TERMINAL_STATUSES: frozenset[str] = frozenset({"completed", "failed", "cancelled"})

# Same-status writes are progress updates and always allowed for non-terminal rows.
_FORWARD_TRANSITIONS: dict[str, frozenset[str]] = {
  "pending": frozenset({"processing", "cancelled"}),
  "processing": frozenset({"completed", "failed", "cancelled"}),
}


def is_terminal(status: str) -> bool:
  return status in TERMINAL_STATUSES


def can_transition(current: str, target: str) -> bool:
  """Return True when moving a request from ``current`` to ``target`` is allowed."""
  if is_terminal(current):
    return False
  if current == target:
    return True
  return target in _FORWARD_TRANSITIONS.get(current, frozenset())


@dataclass
class GenerationRequestRecord:
  """Represents one course generation job row."""

  request_id: str
  user_id: str | None
  status: GenerationStatus
  progress: int
  request_data: dict[str, Any]
  created_at: str
  updated_at: str
  status_message: str | None = None
  content_generated: bool = False
  course_data: dict[str, Any] | None = None
  error_message: str | None = None

  def to_status_payload(self) -> dict[str, Any]:
    """Fields a client observes while a job is running."""
    return {"status": self.status, "progress": self.progress, "status_message": self.status_message, "content_generated": self.content_generated, "error_message": self.error_message}

  def to_wire(self) -> dict[str, Any]:
    return {
      "id": self.request_id,
      "user_id": self.user_id,
      "status": self.status,
      "progress": self.progress,
      "status_message": self.status_message,
      "request_data": self.request_data,
      "content_generated": self.content_generated,
      "course_data": self.course_data,
      "error_message": self.error_message,
      "created_at": self.created_at,
      "updated_at": self.updated_at,
    }


@dataclass(frozen=True)
class SprintContentRecord:
  """Generated (or placeholder) body for one sprint of a request."""

  request_id: str
  module_index: int
  sprint_index: int
  content: dict[str, Any] = field(hash=False)
  generation_error: str | None = None

  def to_wire(self) -> dict[str, Any]:
    return {"request_id": self.request_id, "module_index": self.module_index, "sprint_index": self.sprint_index, "content": self.content, "generation_error": self.generation_error}

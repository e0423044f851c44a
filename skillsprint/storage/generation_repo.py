"""Storage interfaces for course generation requests."""

from __future__ import annotations

from typing import Any, Protocol

from skillsprint.jobs.models import GenerationRequestRecord, GenerationStatus, SprintContentRecord


class RecordNotFoundError(LookupError):
  """Raised when a row addressed by id does not exist (or is not visible yet)."""

  def __init__(self, table: str, record_id: str) -> None:
    self.table = table
    self.record_id = record_id
    super().__init__(f"{table} row {record_id} not found.")


class GenerationRequestsRepository(Protocol):
  """Repository contract for generation request persistence."""

  async def create_request(self, record: GenerationRequestRecord) -> None:
    """Persist an initial pending request."""

  async def get_request(self, request_id: str) -> GenerationRequestRecord | None:
    """Fetch a request by identifier."""

  async def get_status(self, request_id: str) -> GenerationStatus:
    """Return only the status column, raising RecordNotFoundError for unknown ids."""

  async def update_request(
    self,
    request_id: str,
    *,
    status: GenerationStatus | None = None,
    progress: int | None = None,
    status_message: str | None = None,
    content_generated: bool | None = None,
    course_data: dict[str, Any] | None = None,
    error_message: str | None = None,
  ) -> GenerationRequestRecord | None:
    """Apply non-None fields unless the row is already terminal; return the current row."""

  async def list_recent(self, limit: int) -> list[GenerationRequestRecord]:
    """Return the newest requests first."""

  async def save_sprint_content(self, record: SprintContentRecord) -> None:
    """Upsert the body for one (module, sprint) position."""

  async def list_sprint_contents(self, request_id: str) -> list[SprintContentRecord]:
    """Return stored sprint bodies ordered by module then sprint index."""

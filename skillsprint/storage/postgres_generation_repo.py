"""Postgres-backed repository for generation requests using SQLAlchemy."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.dialects.postgresql import insert

from skillsprint.core.database import get_session_factory
from skillsprint.jobs.models import TERMINAL_STATUSES, GenerationRequestRecord, GenerationStatus, SprintContentRecord
from skillsprint.schema.sql import CourseGenerationRequest, SprintContent
from skillsprint.storage.generation_repo import GenerationRequestsRepository, RecordNotFoundError


def _iso(value: datetime | None) -> str:
  if value is None:
    return ""
  return value.isoformat()


class PostgresGenerationRequestsRepository(GenerationRequestsRepository):
  """Persist generation requests and sprint bodies to Postgres."""

  def __init__(self) -> None:
    self._session_factory = get_session_factory()

  async def create_request(self, record: GenerationRequestRecord) -> None:
    async with self._session_factory() as session:
      row = CourseGenerationRequest(
        id=record.request_id,
        user_id=record.user_id,
        status=record.status,
        progress=record.progress,
        status_message=record.status_message,
        request_data=record.request_data,
        content_generated=record.content_generated,
        course_data=record.course_data,
        error_message=record.error_message,
      )
      session.add(row)
      await session.commit()

  async def get_request(self, request_id: str) -> GenerationRequestRecord | None:
    async with self._session_factory() as session:
      row = await session.get(CourseGenerationRequest, request_id)
      if row is None:
        return None
      return self._model_to_record(row)

  async def get_status(self, request_id: str) -> GenerationStatus:
    async with self._session_factory() as session:
      result = await session.execute(select(CourseGenerationRequest.status).where(CourseGenerationRequest.id == request_id))
      status = result.scalar_one_or_none()
      if status is None:
        raise RecordNotFoundError("course_generation_requests", request_id)
      return status  # type: ignore[return-value]

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
    values: dict[str, Any] = {
      key: value
      for key, value in {"status": status, "progress": progress, "status_message": status_message, "content_generated": content_generated, "course_data": course_data, "error_message": error_message}.items()
      if value is not None
    }
    async with self._session_factory() as session:
      if values:
        values["updated_at"] = func.now()
        # Guard in the WHERE clause so an external cancel between read and write still wins.
        stmt = (
          update(CourseGenerationRequest)
          .where(CourseGenerationRequest.id == request_id, CourseGenerationRequest.status.notin_(TERMINAL_STATUSES))
          .values(**values)
          .returning(CourseGenerationRequest)
          .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        row = result.scalar_one_or_none()
        await session.commit()
        if row is not None:
          return self._model_to_record(row)

      row = await session.get(CourseGenerationRequest, request_id, populate_existing=True)
      if row is None:
        return None
      return self._model_to_record(row)

  async def list_recent(self, limit: int) -> list[GenerationRequestRecord]:
    async with self._session_factory() as session:
      result = await session.execute(select(CourseGenerationRequest).order_by(CourseGenerationRequest.created_at.desc()).limit(limit))
      return [self._model_to_record(row) for row in result.scalars().all()]

  async def save_sprint_content(self, record: SprintContentRecord) -> None:
    async with self._session_factory() as session:
      stmt = insert(SprintContent).values(request_id=record.request_id, module_index=record.module_index, sprint_index=record.sprint_index, content=record.content, generation_error=record.generation_error)
      stmt = stmt.on_conflict_do_update(constraint="ux_sprint_contents_request_position", set_={"content": stmt.excluded.content, "generation_error": stmt.excluded.generation_error})
      await session.execute(stmt)
      await session.commit()

  async def list_sprint_contents(self, request_id: str) -> list[SprintContentRecord]:
    async with self._session_factory() as session:
      stmt = select(SprintContent).where(SprintContent.request_id == request_id).order_by(SprintContent.module_index.asc(), SprintContent.sprint_index.asc())
      result = await session.execute(stmt)
      return [
        SprintContentRecord(request_id=row.request_id, module_index=row.module_index, sprint_index=row.sprint_index, content=row.content, generation_error=row.generation_error)
        for row in result.scalars().all()
      ]

  def _model_to_record(self, row: CourseGenerationRequest) -> GenerationRequestRecord:
    return GenerationRequestRecord(
      request_id=str(row.id),
      user_id=str(row.user_id) if row.user_id is not None else None,
      status=row.status,  # type: ignore[arg-type]
      progress=row.progress,
      request_data=row.request_data or {},
      created_at=_iso(row.created_at),
      updated_at=_iso(row.updated_at),
      status_message=row.status_message,
      content_generated=row.content_generated,
      course_data=row.course_data,
      error_message=row.error_message,
    )

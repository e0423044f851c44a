from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, StrictStr
from pydantic.alias_generators import to_camel

from skillsprint.ai.pipeline.contracts import CourseRequest
from skillsprint.jobs.models import GenerationStatus


class ApiModel(BaseModel):
  """Request/response base: camelCase on the wire, snake_case in Python."""

  model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class GenerateCourseRequest(ApiModel):
  """Body of POST /v1/courses/generate."""

  request_id: StrictStr | None = Field(default=None, min_length=1, description="Optional client-generated id for the generation request.")
  course_request: CourseRequest | None = Field(default=None, description="Learner-facing parameters for the course.")
  user_id: StrictStr | None = Field(default=None, description="Owner of the request; null for anonymous learners.")


class GenerateCourseResponse(ApiModel):
  message: str
  request_id: str
  status: GenerationStatus


class CancelCourseResponse(ApiModel):
  message: str
  request_id: str
  new_status: GenerationStatus


class CourseSummary(BaseModel):
  """Row shape returned by the recent-requests listing."""

  id: str
  status: GenerationStatus
  status_message: str | None = None
  created_at: str
  request_data: dict[str, Any]


class CourseDetailResponse(ApiModel):
  course: dict[str, Any]
  sprint_contents: list[dict[str, Any]]


class PersonalizedPathRequest(ApiModel):
  """Body of POST /v1/personalized-paths."""

  user_id: StrictStr | None = None
  base_path_id: StrictStr | None = None


class PersonalizedPathResponse(ApiModel):
  success: bool = True
  personalized_path: dict[str, Any]
  performance_analysis: dict[str, Any]

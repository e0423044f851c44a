from __future__ import annotations

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from skillsprint.ai.orchestrator import OrchestrationError
from skillsprint.api.routes import courses, personalized_paths
from skillsprint.config import ConfigurationError, get_settings
from skillsprint.core.exceptions import (
  cancellation_rejected_exception_handler,
  configuration_exception_handler,
  global_exception_handler,
  http_exception_handler,
  orchestration_exception_handler,
  record_not_found_exception_handler,
  request_validation_exception_handler,
)
from skillsprint.core.lifespan import lifespan
from skillsprint.core.middleware import RequestLoggingMiddleware
from skillsprint.services.course_requests import CancellationRejectedError
from skillsprint.storage.generation_repo import RecordNotFoundError

settings = get_settings()

app = FastAPI(title="SkillSprint Engine", version="0.1.0", lifespan=lifespan)

# Browser clients call the API directly with their anon key headers.
app.add_middleware(
  CORSMiddleware,
  allow_origins=list(settings.allowed_origins),
  allow_credentials="*" not in settings.allowed_origins,
  allow_methods=["GET", "POST", "OPTIONS"],
  allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
  expose_headers=["x-request-id"],
)

app.add_exception_handler(Exception, global_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, request_validation_exception_handler)
app.add_exception_handler(ConfigurationError, configuration_exception_handler)
app.add_exception_handler(RecordNotFoundError, record_not_found_exception_handler)
app.add_exception_handler(CancellationRejectedError, cancellation_rejected_exception_handler)
app.add_exception_handler(OrchestrationError, orchestration_exception_handler)

app.add_middleware(RequestLoggingMiddleware)


@app.get("/health", include_in_schema=False)
async def health_check() -> dict[str, str]:
  """Return a simple health status."""
  return {"status": "ok"}


app.include_router(courses.router, prefix="/v1/courses", tags=["courses"])
app.include_router(personalized_paths.router, prefix="/v1/personalized-paths", tags=["personalized-paths"])

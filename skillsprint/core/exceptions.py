import logging
from typing import Any

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from skillsprint.ai.orchestrator import OrchestrationError
from skillsprint.config import ConfigurationError
from skillsprint.services.course_requests import CancellationRejectedError
from skillsprint.storage.generation_repo import RecordNotFoundError


def _coerce_json_safe(value: Any) -> Any:
  """Convert unsupported values into JSON-safe primitives for error responses."""
  if value is None or isinstance(value, bool | int | float | str):
    return value
  if isinstance(value, dict):
    return {str(key): _coerce_json_safe(item) for key, item in value.items()}
  if isinstance(value, list | tuple | set):
    return [_coerce_json_safe(item) for item in value]
  # Serialize exception instances explicitly to avoid leaking non-serializable objects.
  if isinstance(value, BaseException):
    error_message = str(value)
    if error_message:
      return f"{type(value).__name__}: {error_message}"
    return type(value).__name__
  return str(value)


def _error_payload(error: Any, *, request_id: str | None = None, **extra: Any) -> dict[str, Any]:
  """Build the ``{"error": ...}`` body shared by every failure response."""
  payload: dict[str, Any] = {"error": error}
  payload.update(extra)
  # Attach a request id so support can correlate client reports to server logs.
  if request_id:
    payload["requestId"] = request_id
  return payload


def _request_id(request: Request) -> str | None:
  return getattr(request.state, "request_id", None)


def _sanitize_validation_errors(errors: list[dict[str, Any]]) -> list[dict[str, Any]]:
  """Return validation errors without raw input payloads."""
  sanitized: list[dict[str, Any]] = []
  for error in errors:
    scrubbed = {key: value for key, value in error.items() if key != "input"}
    if "ctx" in scrubbed and isinstance(scrubbed["ctx"], dict):
      scrubbed_ctx = dict(scrubbed["ctx"])
      scrubbed_ctx.pop("input", None)
      scrubbed["ctx"] = scrubbed_ctx

    sanitized.append(_coerce_json_safe(scrubbed))

  return sanitized


def _sanitize_http_detail(detail: Any) -> Any:
  """Return an HTTPException detail payload safe for logs."""
  if isinstance(detail, dict):
    return {key: _sanitize_http_detail(value) for key, value in detail.items() if key not in {"input", "body", "payload", "content"}}
  if isinstance(detail, list):
    return [_sanitize_http_detail(item) for item in detail]
  return detail


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
  """Global exception handler to catch unhandled errors."""
  logger = logging.getLogger("uvicorn.error")
  request_id = _request_id(request)
  logger.error("Global exception request_id=%s path=%s error_type=%s", request_id, request.url.path, type(exc).__name__, exc_info=True)
  return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=_error_payload("Internal Server Error", request_id=request_id))


async def request_validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
  """Log request validation errors for debugging without leaking payloads."""
  request_id = _request_id(request)
  sanitized_errors = _sanitize_validation_errors(exc.errors())
  logger = logging.getLogger("uvicorn.error")
  logger.warning("Request validation failed request_id=%s path=%s method=%s errors=%s", request_id, request.url.path, request.method, sanitized_errors)
  return JSONResponse(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, content=_error_payload("Invalid request data", request_id=request_id, details=sanitized_errors))


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
  """Handle FastAPI HTTPExceptions while avoiding leaking internal diagnostics."""
  from skillsprint.config import get_settings

  settings = get_settings()
  request_id = _request_id(request)
  # Log 5xx HTTPExceptions with a traceback for diagnostics; do not expose `exc.detail` to callers.
  if exc.status_code >= 500:
    logger = logging.getLogger("uvicorn.error")
    logger.error("HTTPException request_id=%s path=%s status_code=%s detail=%s", request_id, request.url.path, exc.status_code, exc.detail, exc_info=True)
    return JSONResponse(status_code=exc.status_code, content=_error_payload("Internal Server Error", request_id=request_id), headers=exc.headers)

  if settings.log_http_4xx:
    logger = logging.getLogger("uvicorn.error")
    logger.warning("HTTPException request_id=%s path=%s status_code=%s detail=%s", request_id, request.url.path, exc.status_code, _sanitize_http_detail(exc.detail))

  return JSONResponse(status_code=exc.status_code, content=_error_payload(exc.detail, request_id=request_id), headers=exc.headers)


async def configuration_exception_handler(request: Request, exc: ConfigurationError) -> JSONResponse:
  """Report missing or broken server configuration without exposing secret values."""
  logger = logging.getLogger("uvicorn.error")
  request_id = _request_id(request)
  logger.error("Configuration error request_id=%s path=%s error=%s details=%s", request_id, request.url.path, exc, exc.details)
  extra = {"details": exc.details} if exc.details else {}
  return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=_error_payload(str(exc), request_id=request_id, **extra))


async def record_not_found_exception_handler(request: Request, exc: RecordNotFoundError) -> JSONResponse:
  request_id = _request_id(request)
  logging.getLogger("uvicorn.error").info("Record not found request_id=%s table=%s id=%s", request_id, exc.table, exc.record_id)
  return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content=_error_payload(str(exc), request_id=request_id))


async def cancellation_rejected_exception_handler(request: Request, exc: CancellationRejectedError) -> JSONResponse:
  """Terminal requests cannot be cancelled; report their current status."""
  return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"message": str(exc), "currentStatus": exc.current_status})


async def orchestration_exception_handler(request: Request, exc: OrchestrationError) -> JSONResponse:
  """Return a structured failure response for orchestration errors."""
  logger = logging.getLogger("uvicorn.error")
  request_id = _request_id(request)
  logger.error("Orchestration failure request_id=%s path=%s error_type=%s logs=%s", request_id, request.url.path, type(exc).__name__, exc.logs, exc_info=True)
  # Orchestration logs stay server-side; they may contain learner data.
  return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=_error_payload("Internal Server Error", request_id=request_id))

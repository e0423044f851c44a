"""Application configuration loaded from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from skillsprint.utils.env import default_env_path, load_env_file

load_env_file(default_env_path(), override=False)


@dataclass(frozen=True)
class Settings:
  """Typed settings for the SkillSprint engine."""

  environment: str
  debug: bool
  allowed_origins: tuple[str, ...]
  log_dir: str
  log_max_bytes: int
  log_backup_count: int
  log_http_4xx: bool
  pg_dsn: str | None
  pg_connect_timeout: int
  gemini_api_key: str | None
  gemini_model: str
  llm_max_output_tokens: int
  llm_default_temperature: float
  llm_preflight: bool
  events_poll_seconds: float
  recent_requests_limit: int


@dataclass(frozen=True)
class DatabaseSettings:
  """Typed settings for database connectivity."""

  debug: bool
  pg_dsn: str | None
  pg_connect_timeout: int


def _parse_origins(raw: str | None) -> tuple[str, ...]:
  # Browser clients call the edge endpoints directly, so the default mirrors an open CORS policy.
  if not raw:
    return ("*",)

  origins = [origin.strip() for origin in raw.split(",") if origin.strip()]

  if not origins:
    raise ValueError("SKILLSPRINT_ALLOWED_ORIGINS must include at least one origin.")

  return tuple(origins)


def _parse_bool(raw: str | None) -> bool:
  """Parse a boolean-ish string from environment variables."""

  if raw is None:
    return False

  normalized = raw.strip().lower()
  return normalized in {"1", "true", "yes", "on"}


def _positive_int(name: str, default: str) -> int:
  value = int(os.getenv(name, default))
  if value <= 0:
    raise ValueError(f"{name} must be a positive integer.")
  return value


def _positive_float(name: str, default: str) -> float:
  value = float(os.getenv(name, default))
  if value <= 0:
    raise ValueError(f"{name} must be a positive number.")
  return value


@lru_cache(maxsize=1)
def get_settings() -> Settings:
  """Load settings once per process."""

  environment = os.getenv("SKILLSPRINT_ENV", "development").lower()

  # Toggle verbose SQL output and diagnostics in non-production environments.
  debug = _parse_bool(os.getenv("SKILLSPRINT_DEBUG"))

  log_max_bytes = _positive_int("SKILLSPRINT_LOG_MAX_BYTES", "5242880")  # 5MB default
  log_backup_count = int(os.getenv("SKILLSPRINT_LOG_BACKUP_COUNT", "10"))
  if log_backup_count < 0:
    raise ValueError("SKILLSPRINT_LOG_BACKUP_COUNT must be zero or a positive integer.")

  llm_default_temperature = float(os.getenv("SKILLSPRINT_LLM_TEMPERATURE", "0.7"))
  if not 0.0 <= llm_default_temperature <= 1.0:
    raise ValueError("SKILLSPRINT_LLM_TEMPERATURE must be between 0 and 1.")

  database = get_database_settings()

  return Settings(
    environment=environment,
    debug=debug,
    allowed_origins=_parse_origins(os.getenv("SKILLSPRINT_ALLOWED_ORIGINS")),
    log_dir=(os.getenv("SKILLSPRINT_LOG_DIR") or "./logs").strip(),
    log_max_bytes=log_max_bytes,
    log_backup_count=log_backup_count,
    log_http_4xx=_parse_bool(os.getenv("SKILLSPRINT_LOG_HTTP_4XX")),
    pg_dsn=database.pg_dsn,
    pg_connect_timeout=database.pg_connect_timeout,
    gemini_api_key=_optional_str(os.getenv("GEMINI_API_KEY")),
    gemini_model=(os.getenv("SKILLSPRINT_GEMINI_MODEL") or "gemini-2.5-flash").strip(),
    llm_max_output_tokens=_positive_int("SKILLSPRINT_LLM_MAX_OUTPUT_TOKENS", "32768"),
    llm_default_temperature=llm_default_temperature,
    llm_preflight=_parse_bool(os.getenv("SKILLSPRINT_LLM_PREFLIGHT")),
    events_poll_seconds=_positive_float("SKILLSPRINT_EVENTS_POLL_SECONDS", "1.0"),
    recent_requests_limit=_positive_int("SKILLSPRINT_RECENT_REQUESTS_LIMIT", "10"),
  )


@lru_cache(maxsize=1)
def get_database_settings() -> DatabaseSettings:
  """Load database settings without requiring web-runtime configuration like CORS."""
  debug = _parse_bool(os.getenv("SKILLSPRINT_DEBUG"))
  pg_connect_timeout = _positive_int("SKILLSPRINT_PG_CONNECT_TIMEOUT", "5")

  # Support fallback to DATABASE_URL for hosted Postgres providers.
  pg_dsn = _optional_str(os.getenv("SKILLSPRINT_PG_DSN")) or _optional_str(os.getenv("DATABASE_URL"))

  return DatabaseSettings(debug=debug, pg_dsn=pg_dsn, pg_connect_timeout=pg_connect_timeout)


def missing_pipeline_env(settings: Settings) -> list[str]:
  """Return the names of required generation variables that are unset."""
  missing: list[str] = []
  if not settings.gemini_api_key:
    missing.append("GEMINI_API_KEY")
  if not settings.pg_dsn:
    missing.append("SKILLSPRINT_PG_DSN")
  return missing


def _optional_str(raw: str | None) -> str | None:
  if raw is None:
    return None
  value = raw.strip()
  if value == "":
    return None
  return value


class ConfigurationError(RuntimeError):
  """Raised when the runtime cannot serve a request because of its configuration."""

  def __init__(self, message: str, *, details: str | None = None) -> None:
    super().__init__(message)
    self.details = details

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from urllib.parse import urlparse

from fastapi import FastAPI

from skillsprint.config import get_settings, missing_pipeline_env
from skillsprint.core.database import dispose_engine
from skillsprint.core.logging import initialize_logging


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
  """Set up logging, report configuration gaps and release the pool on shutdown."""
  settings = get_settings()
  logger = logging.getLogger("skillsprint.core.lifespan")

  try:
    initialize_logging(settings)
    logger.info("Startup complete - logging verified.")
  except Exception:  # noqa: BLE001
    logger.warning("Initial logging setup failed; continuing with default handlers.", exc_info=True)

  logger.info("ENV_CHECK environment=%s SKILLSPRINT_PG_DSN=%s model=%s", settings.environment, _redact_dsn(settings.pg_dsn), settings.gemini_model)
  # Missing keys do not block startup; generation requests report them as 500s.
  missing = missing_pipeline_env(settings)
  if missing:
    logger.warning("ENV_CHECK missing=%s; course generation will be refused until they are set.", ",".join(missing))

  yield

  await dispose_engine()
  logger.info("Shutdown complete - database pool released.")


def _redact_dsn(raw: str | None) -> str:
  """Redact credentials from a DSN while keeping host/db visible."""
  if not raw:
    return "<unset>"

  parsed = urlparse(raw)
  if not parsed.scheme:
    return "<invalid>"

  user = parsed.username or ""
  host = parsed.hostname or ""
  port = f":{parsed.port}" if parsed.port else ""
  netloc = f"{user}@{host}{port}" if user else f"{host}{port}"
  database = parsed.path.lstrip("/")
  path = f"/{database}" if database else ""
  return f"{parsed.scheme}://{netloc}{path}"

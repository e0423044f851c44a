"""Shared FastAPI dependencies for repositories and the model client."""

from __future__ import annotations

from functools import lru_cache

from fastapi import Depends

from skillsprint.ai.providers.base import TextModel
from skillsprint.ai.providers.gemini import build_gemini_client
from skillsprint.config import Settings, get_settings
from skillsprint.storage.generation_repo import GenerationRequestsRepository
from skillsprint.storage.paths_repo import PersonalizationRepository
from skillsprint.storage.postgres_generation_repo import PostgresGenerationRequestsRepository
from skillsprint.storage.postgres_paths_repo import PostgresPersonalizationRepository


def get_generation_repo() -> GenerationRequestsRepository:
  """Return the Postgres-backed generation requests repository."""
  return PostgresGenerationRequestsRepository()


def get_personalization_repo() -> PersonalizationRepository:
  return PostgresPersonalizationRepository()


@lru_cache(maxsize=1)
def _cached_text_model(settings: Settings) -> TextModel:
  # One SDK client per settings snapshot; the client keeps its own connection pool.
  return build_gemini_client(settings)


def get_text_model(settings: Settings = Depends(get_settings)) -> TextModel:  # noqa: B008
  """Return the shared Gemini client for the current settings."""
  return _cached_text_model(settings)

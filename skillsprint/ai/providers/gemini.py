"""Gemini text model using the google-genai SDK."""

from __future__ import annotations

import logging
from typing import Any, Final

import httpx
from google import genai
from google.genai import errors, types

from skillsprint.ai.providers.base import DEFAULT_TEMPERATURE, TextModel
from skillsprint.config import Settings

logger = logging.getLogger(__name__)

TOP_P: Final[float] = 0.95
TOP_K: Final[int] = 64
_SAFETY_CATEGORIES: Final[tuple[types.HarmCategory, ...]] = (
  types.HarmCategory.HARM_CATEGORY_HARASSMENT,
  types.HarmCategory.HARM_CATEGORY_HATE_SPEECH,
  types.HarmCategory.HARM_CATEGORY_SEXUALLY_EXPLICIT,
  types.HarmCategory.HARM_CATEGORY_DANGEROUS_CONTENT,
)


def build_safety_settings() -> list[types.SafetySetting]:
  """Block medium-and-above content in every moderated category."""
  return [types.SafetySetting(category=category, threshold=types.HarmBlockThreshold.BLOCK_MEDIUM_AND_ABOVE) for category in _SAFETY_CATEGORIES]


class GeminiClient(TextModel):
  """Single-shot Gemini client. No retries; failures return None."""

  def __init__(self, *, api_key: str | None, model: str, max_output_tokens: int, client: Any | None = None) -> None:
    self.name = model
    self._api_key = api_key
    self._max_output_tokens = max_output_tokens
    # Tests inject a stub exposing ``aio.models.generate_content``.
    self._client = client
    if self._client is None and api_key:
      self._client = genai.Client(api_key=api_key)

  @property
  def is_configured(self) -> bool:
    return self._client is not None

  def _config(self, temperature: float) -> types.GenerateContentConfig:
    return types.GenerateContentConfig(temperature=temperature, max_output_tokens=self._max_output_tokens, top_p=TOP_P, top_k=TOP_K, safety_settings=build_safety_settings())

  async def generate_content(self, prompt: str, temperature: float = DEFAULT_TEMPERATURE) -> str | None:
    """Send one prompt and return the first candidate's text."""
    if self._client is None:
      logger.error("Gemini call skipped: GEMINI_API_KEY is not configured.")
      return None

    if not prompt or not prompt.strip():
      logger.warning("Gemini call skipped: prompt is empty.")
      return None

    temperature = min(max(temperature, 0.0), 1.0)
    try:
      # Use the async client to avoid blocking the asyncio event loop.
      response = await self._client.aio.models.generate_content(model=self.name, contents=prompt, config=self._config(temperature))
    except errors.APIError as exc:
      logger.error("Gemini API error model=%s code=%s status=%s message=%s", self.name, exc.code, exc.status, exc.message)
      return None
    except httpx.HTTPError as exc:
      logger.error("Gemini transport error model=%s error=%s", self.name, exc)
      return None
    except Exception as exc:  # noqa: BLE001
      logger.error("Gemini call failed model=%s error_type=%s", self.name, type(exc).__name__, exc_info=True)
      return None

    text = extract_candidate_text(response)
    if text is None:
      logger.warning("Gemini response missing candidates[0].content.parts[0].text model=%s", self.name)
      return None

    logger.debug("Gemini response model=%s chars=%d", self.name, len(text))
    return text


def extract_candidate_text(response: Any) -> str | None:
  """Walk candidates[0].content.parts[0].text without trusting any level to exist."""
  candidates = getattr(response, "candidates", None) or []
  if not candidates:
    return None

  content = getattr(candidates[0], "content", None)
  parts = getattr(content, "parts", None) or []
  if not parts:
    return None

  text = getattr(parts[0], "text", None)
  if not isinstance(text, str):
    return None

  return text


def build_gemini_client(settings: Settings) -> GeminiClient:
  """Construct the Gemini client from application settings."""
  return GeminiClient(api_key=settings.gemini_api_key, model=settings.gemini_model, max_output_tokens=settings.llm_max_output_tokens)

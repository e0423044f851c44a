"""Base interface for text generation models."""

from __future__ import annotations

from abc import ABC, abstractmethod

DEFAULT_TEMPERATURE = 0.7


class TextModel(ABC):
  """Abstract base class for prompt-in, text-out models.

  Implementations never raise for provider failures. A missing credential,
  a transport error or a response without text all come back as ``None`` so
  the caller can decide between failing a stage and degrading a unit.
  """

  name: str

  @property
  @abstractmethod
  def is_configured(self) -> bool:
    """Return True when the model has the credentials it needs."""

  @abstractmethod
  async def generate_content(self, prompt: str, temperature: float = DEFAULT_TEMPERATURE) -> str | None:
    """Return the first candidate's text, or None when generation failed."""

  async def ping(self) -> bool:
    """Run a minimal generation to verify connectivity."""
    return await self.generate_content("Reply with the single word OK.", temperature=0.0) is not None

"""Identifier utilities."""

from __future__ import annotations

import uuid


def generate_request_id() -> str:
  """Return a new course generation request identifier."""
  return str(uuid.uuid4())


def generate_trace_id() -> str:
  """Return a new identifier for correlating one HTTP exchange in logs."""
  return uuid.uuid4().hex

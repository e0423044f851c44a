"""Cooperative cancellation checks for generation requests."""

from __future__ import annotations

import logging

from skillsprint.storage.generation_repo import GenerationRequestsRepository, RecordNotFoundError

logger = logging.getLogger(__name__)


class CancellationChecker:
  """Poll a request's status between units of work.

  ``is_cancelled`` fails open: any read error is treated as "not cancelled"
  so a transient database hiccup never aborts a job. A missing row is an
  expected race with the request insert and is only logged at debug level.
  """

  def __init__(self, repo: GenerationRequestsRepository) -> None:
    self._repo = repo

  async def is_cancelled(self, request_id: str) -> bool:
    try:
      status = await self._repo.get_status(request_id)
    except RecordNotFoundError:
      logger.debug("Cancellation check found no row request_id=%s; assuming not cancelled.", request_id)
      return False
    except Exception as exc:  # noqa: BLE001
      logger.warning("Cancellation check failed request_id=%s error=%s; assuming not cancelled.", request_id, exc)
      return False

    if status == "cancelled":
      logger.info("Cancellation detected request_id=%s", request_id)
      return True

    return False

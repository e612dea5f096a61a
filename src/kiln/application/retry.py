"""Transparent retry for concurrency conflicts.

Only ``ConcurrencyConflictError`` is retried. Each attempt must open a
fresh unit of work so balances are re-read and re-validated against the
state left by the competing writer.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TypeVar

from kiln.domain.exceptions import ConcurrencyConflictError

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_ATTEMPTS = 3


def retry_on_conflict(operation: Callable[[], T], attempts: int = DEFAULT_ATTEMPTS) -> T:
    attempts = max(attempts, 1)
    for attempt in range(1, attempts + 1):
        try:
            return operation()
        except ConcurrencyConflictError as exc:
            if attempt == attempts:
                logger.error("Giving up after %d conflicting attempts: %s", attempts, exc)
                raise
            logger.warning(
                "Concurrent update detected (attempt %d/%d), retrying: %s",
                attempt,
                attempts,
                exc,
            )
    raise AssertionError("unreachable")

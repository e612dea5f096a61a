"""Application service: Delete Kit use case."""

from __future__ import annotations

import logging
from collections.abc import Callable

from kiln.application.retry import DEFAULT_ATTEMPTS, retry_on_conflict
from kiln.domain.exceptions import EntityNotFoundError
from kiln.domain.repository.unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)


class DeleteKitHandler:

    def __init__(
        self,
        uow_factory: Callable[[], UnitOfWork],
        max_attempts: int = DEFAULT_ATTEMPTS,
    ) -> None:
        self._uow_factory = uow_factory
        self._max_attempts = max_attempts

    def handle(self, kit_id: int) -> None:
        """Delete a kit. Its stock must be released to 0 first."""
        retry_on_conflict(lambda: self._delete(kit_id), self._max_attempts)

    def _delete(self, kit_id: int) -> None:
        with self._uow_factory() as uow:
            kit = uow.kits.get_for_update(kit_id)
            if kit is None:
                raise EntityNotFoundError(f"Kit #{kit_id} not found")
            kit.assert_deletable()
            uow.kits.delete(kit_id)
            uow.commit()
        logger.info("Deleted kit #%d '%s'", kit_id, kit.name)

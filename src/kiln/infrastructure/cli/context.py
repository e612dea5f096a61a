"""Per-invocation state shared by every CLI command."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field

from kiln.domain.repository.unit_of_work import UnitOfWork
from kiln.infrastructure.bootstrap import unit_of_work_factory
from kiln.infrastructure.config import Settings


@dataclass
class CliContext:
    settings: Settings
    actor: str
    _uow_factory: Callable[[], UnitOfWork] | None = field(default=None, repr=False)

    @property
    def uow_factory(self) -> Callable[[], UnitOfWork]:
        # The database is only opened by commands that need it.
        if self._uow_factory is None:
            self._uow_factory = unit_of_work_factory(self.settings)
        return self._uow_factory

    @property
    def max_attempts(self) -> int:
        return self.settings.max_retries

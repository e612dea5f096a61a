"""SQLAlchemy Unit of Work: one session, one database transaction."""

from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session, sessionmaker

from kiln.domain.exceptions import ConcurrencyConflictError
from kiln.domain.repository.unit_of_work import UnitOfWork
from kiln.infrastructure.persistence.sql_catalog_repository import SqlCatalogRepository
from kiln.infrastructure.persistence.sql_kit_repository import (
    SqlKitRepository,
    SqlKitStockAdjustmentRepository,
)
from kiln.infrastructure.persistence.sql_ledger_repository import (
    SqlStageBalanceRepository,
    SqlStageTransactionRepository,
)
from kiln.infrastructure.persistence.sql_order_repository import SqlOrderRepository

logger = logging.getLogger(__name__)

# Lock timeouts, deadlocks and serialization failures surface as
# OperationalError; racing inserts as a unique-key IntegrityError.
CONFLICT_ERRORS = (OperationalError, IntegrityError)

UNIQUE_VIOLATION = "23505"  # SQLSTATE unique_violation


class SqlAlchemyUnitOfWork(UnitOfWork):

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory
        self._session: Session | None = None

    def __enter__(self) -> SqlAlchemyUnitOfWork:
        self._session = self._session_factory()
        self.catalog = SqlCatalogRepository(self._session)
        self.balances = SqlStageBalanceRepository(self._session)
        self.transactions = SqlStageTransactionRepository(self._session)
        self.kits = SqlKitRepository(self._session)
        self.adjustments = SqlKitStockAdjustmentRepository(self._session)
        self.orders = SqlOrderRepository(self._session)
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        try:
            super().__exit__(exc_type, exc, tb)
        finally:
            self._session.close()  # type: ignore[union-attr]
            self._session = None
        if isinstance(exc, CONFLICT_ERRORS) and _is_conflict(exc):
            raise _conflict(exc) from exc

    def commit(self) -> None:
        try:
            self._session.commit()  # type: ignore[union-attr]
        except CONFLICT_ERRORS as exc:
            self._session.rollback()  # type: ignore[union-attr]
            if _is_conflict(exc):
                raise _conflict(exc) from exc
            raise

    def rollback(self) -> None:
        if self._session is not None:
            self._session.rollback()


def _is_conflict(exc: Exception) -> bool:
    if not isinstance(exc, IntegrityError):
        return True
    # Any other integrity violation is raised unchanged.
    orig = exc.orig
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if code is not None:
        return code == UNIQUE_VIOLATION
    return "UNIQUE constraint failed" in str(orig)


def _conflict(exc: Exception) -> ConcurrencyConflictError:
    detail = getattr(exc, "orig", None) or exc
    logger.debug("Database rejected the transaction: %s", detail)
    return ConcurrencyConflictError(f"Concurrent update conflict: {detail}")

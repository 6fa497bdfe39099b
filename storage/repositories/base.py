"""
Base Repository Class.

============================================================
PURPOSE
============================================================
Shared plumbing for the wallet, contribution and cursor
repositories:
- Injected session, never committed here
- One place that maps SQLAlchemy errors to repository errors
- Thin select / update helpers

============================================================
USAGE
============================================================
    class CursorRepository(BaseRepository[ScanCursor]):
        def __init__(self, session: Session):
            super().__init__(session, ScanCursor, "CursorRepository")

============================================================
"""

import logging
from abc import ABC
from contextlib import contextmanager
from typing import Any, Generic, Iterator, List, Optional, Type, TypeVar

from sqlalchemy import func, select
from sqlalchemy.exc import (
    IntegrityError as SQLAlchemyIntegrityError,
    OperationalError,
    SQLAlchemyError,
)
from sqlalchemy.orm import Session

from storage.models.base import Base
from storage.repositories.exceptions import (
    ConnectionError,
    DuplicateRecordError,
    IntegrityError,
    QueryError,
    RecordNotFoundError,
)


T = TypeVar("T", bound=Base)


# SQLSTATE for unique_violation
PG_UNIQUE_VIOLATION = "23505"


def is_unique_violation(error: SQLAlchemyIntegrityError) -> bool:
    """Unique-key collision on PostgreSQL (by SQLSTATE) or SQLite (by message)."""
    if getattr(error.orig, "pgcode", None) == PG_UNIQUE_VIOLATION:
        return True
    message = str(error.orig or error).lower()
    return "unique" in message or "duplicate key" in message


class BaseRepository(ABC, Generic[T]):
    """
    Base class for the contribution store repositories.

    Transaction boundaries belong to the caller (see
    storage.database.session_scope).
    """

    def __init__(self, session: Session, model_class: Type[T], repository_name: str) -> None:
        self._session = session
        self._model_class = model_class
        self._repository_name = repository_name
        self._logger = logging.getLogger(f"repository.{repository_name}")

    # =========================================================
    # ERROR MAPPING
    # =========================================================

    @contextmanager
    def _db_errors(
        self,
        operation: str,
        unique_field: Optional[str] = None,
        context: Optional[dict] = None,
    ) -> Iterator[None]:
        """
        Re-raise SQLAlchemy errors from the block as repository errors.

        Unique violations are expected under concurrent inserts and
        become DuplicateRecordError without an error log.
        """
        context = context or {}
        try:
            yield
        except SQLAlchemyIntegrityError as e:
            if unique_field is not None and is_unique_violation(e):
                self._logger.debug(f"{operation}: {unique_field} already present {context}")
                raise DuplicateRecordError(
                    self._repository_name, unique_field, context.get(unique_field, "?")
                ) from e
            self._logger.error(f"{operation}: constraint violated {context}: {e.orig}")
            raise IntegrityError(self._repository_name, operation, str(e.orig or e)) from e
        except OperationalError as e:
            self._logger.error(f"{operation}: database unreachable: {e}")
            raise ConnectionError(self._repository_name, operation, str(e)) from e
        except SQLAlchemyError as e:
            self._logger.error(f"{operation} failed {context}: {e}", exc_info=True)
            raise QueryError(self._repository_name, operation, str(e)) from e

    # =========================================================
    # HELPERS
    # =========================================================

    def _add(self, entity: T, unique_field: Optional[str] = None, context: Optional[dict] = None) -> T:
        """
        Insert and flush so constraint errors surface at the call.

        On failure the session is rolled back, since a failed flush
        leaves it unusable.
        """
        try:
            with self._db_errors("add", unique_field, context):
                self._session.add(entity)
                self._session.flush()
        except Exception:
            self._session.rollback()
            raise
        return entity

    def _flush(self, operation: str, context: Optional[dict] = None) -> None:
        """Flush pending changes to loaded rows."""
        with self._db_errors(operation, context=context):
            self._session.flush()

    def _get_by_id(self, record_id: Any) -> Optional[T]:
        with self._db_errors("get_by_id", context={"id": record_id}):
            return self._session.get(self._model_class, record_id)

    def _get_by_id_or_raise(self, record_id: Any, id_field: str = "id") -> T:
        entity = self._get_by_id(record_id)
        if entity is None:
            raise RecordNotFoundError(self._repository_name, record_id, id_field)
        return entity

    def _count(self, *criteria: Any) -> int:
        stmt = select(func.count()).select_from(self._model_class).where(*criteria)
        with self._db_errors("count"):
            return self._session.execute(stmt).scalar() or 0

    def _execute_query(self, stmt: Any) -> List[T]:
        with self._db_errors("query"):
            return list(self._session.execute(stmt).scalars().all())

    def _execute_scalar(self, stmt: Any) -> Any:
        with self._db_errors("query_scalar"):
            return self._session.execute(stmt).scalar_one_or_none()

    def _execute_update(self, stmt: Any, operation: str) -> int:
        """UPDATE returning the affected row count."""
        with self._db_errors(operation):
            return self._session.execute(stmt).rowcount or 0

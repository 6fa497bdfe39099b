"""
Repository Layer Exceptions.

============================================================
PURPOSE
============================================================
SQLAlchemy errors never leave a repository raw. They are mapped to:

- DuplicateRecordError: a unique key already holds the row; for
  contributions this is the at-most-once signal, not a failure
- ValidationError: the row was refused before any SQL ran
- StoreFailure subclasses: the store itself misbehaved

Callers above the repositories translate StoreFailure into
core.exceptions.StoreError.

============================================================
"""

from typing import Any, Optional


class RepositoryException(Exception):
    """Root of every repository error."""

    def __init__(
        self,
        message: str,
        repository_name: str,
        operation: str,
        details: Optional[dict] = None,
    ) -> None:
        self.message = message
        self.repository_name = repository_name
        self.operation = operation
        self.details = details or {}
        super().__init__(f"{repository_name}.{operation}: {message}")

    def to_dict(self) -> dict[str, Any]:
        return {
            "error_type": type(self).__name__,
            "repository": self.repository_name,
            "operation": self.operation,
            "message": self.message,
            "details": self.details,
        }


# =============================================================
# ROW-LEVEL OUTCOMES
# =============================================================

class RecordNotFoundError(RepositoryException):
    """Lookup by primary key found nothing."""

    def __init__(self, repository_name: str, record_id: Any, id_field: str = "id") -> None:
        super().__init__(
            f"no row with {id_field}={record_id}",
            repository_name,
            "get",
            {id_field: str(record_id)},
        )
        self.record_id = record_id


class DuplicateRecordError(RepositoryException):
    """Insert hit a unique key (e.g. chain + tx_id + wallet_id)."""

    def __init__(self, repository_name: str, constraint_field: str, value: Any) -> None:
        super().__init__(
            f"{constraint_field}={value} is already recorded",
            repository_name,
            "create",
            {"field": constraint_field, "value": str(value)},
        )
        self.constraint_field = constraint_field
        self.value = value


class ValidationError(RepositoryException):
    """A column value was refused before reaching the database."""

    def __init__(self, repository_name: str, operation: str, field: str, reason: str) -> None:
        super().__init__(
            f"{field} {reason}",
            repository_name,
            operation,
            {"field": field, "reason": reason},
        )
        self.field = field
        self.reason = reason


# =============================================================
# STORE FAILURES
# =============================================================

class StoreFailure(RepositoryException):
    """The database could not complete the statement."""

    label = "store operation failed"

    def __init__(self, repository_name: str, operation: str, original_error: str) -> None:
        super().__init__(
            f"{self.label}: {original_error}",
            repository_name,
            operation,
            {"original_error": original_error},
        )
        self.original_error = original_error


class IntegrityError(StoreFailure):
    """A non-unique constraint (foreign key, check, not-null) rejected the row."""

    label = "constraint violated"


class ConnectionError(StoreFailure):
    """Database unreachable or the connection dropped mid-statement."""

    label = "database unreachable"


class QueryError(StoreFailure):
    """Statement execution failed."""

    label = "query failed"


class TransactionError(StoreFailure):
    """Commit failed; the unit of work was rolled back."""

    label = "commit failed"

    def __init__(self, repository_name: str, operation: str, original_error: str, phase: str = "commit") -> None:
        super().__init__(repository_name, operation, original_error)
        self.phase = phase

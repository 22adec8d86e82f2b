"""Error hierarchy shared by the workflow, its ports and the adapters."""

from __future__ import annotations


class ImportFlowError(RuntimeError):
    """Base class for workflow-level failures."""


class WorkflowError(ImportFlowError):
    """Raised when the wizard session is driven incorrectly."""


class InvalidTransitionError(WorkflowError):
    """Raised when an operation is not allowed in the current state."""

    def __init__(self, operation: str, state: str) -> None:
        super().__init__(f"Cannot {operation} while session is {state}")
        self.operation = operation
        self.state = state


class GuardViolationError(WorkflowError):
    """Raised when a transition guard (input present, selection non-empty) fails."""


class OracleError(ImportFlowError):
    """Raised when the analysis/diff oracle cannot produce a proposal."""


class StoreError(ImportFlowError):
    """Base class for record store failures."""


class RecordWriteError(StoreError):
    """Raised when a single record cannot be written."""

    def __init__(self, message: str, *, table: str | None = None) -> None:
        super().__init__(message)
        self.table = table


class StoreUnavailableError(StoreError):
    """Raised when the store cannot be used at all (network, auth, schema)."""


class OperationCancelledError(ImportFlowError):
    """Raised inside in-flight work once its session has been closed."""


class DuplicateKeyError(ValueError):
    """Raised when a proposal contains the same natural key twice."""

    def __init__(self, key: str) -> None:
        super().__init__(f"Duplicate natural key in proposal: {key}")
        self.key = key


class UnsupportedDocumentError(ValueError):
    """Raised when an input document cannot be read as text."""

"""Cooperative cancellation for in-flight oracle calls and commit writes."""

from __future__ import annotations

from dataclasses import dataclass

from .errors import OperationCancelledError


@dataclass(slots=True)
class CancellationToken:
    """Flag shared between a session and the work it started.

    Cancelling does not abort requests already on the wire; it only tells the
    awaiting code to discard whatever comes back.
    """

    reason: str | None = None
    _cancelled: bool = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self, reason: str | None = None) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        self.reason = reason

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise OperationCancelledError(self.reason or "Operation cancelled")

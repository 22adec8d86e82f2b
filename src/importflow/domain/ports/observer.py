"""Observer port used by wizard sessions to report to their surroundings."""

from __future__ import annotations

import logging
from enum import StrEnum
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from importflow.domain.commit import CommitProgress, CommitResult
    from importflow.domain.workflow import WorkflowState

log = logging.getLogger(__name__)


class NoticeLevel(StrEnum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


@runtime_checkable
class WizardObserver(Protocol):
    """Receives state changes, progress, user notices and change signals."""

    def state_changed(self, old: WorkflowState, new: WorkflowState) -> None: ...

    def progress(self, progress: CommitProgress) -> None: ...

    def notice(self, level: NoticeLevel, message: str) -> None: ...

    def data_changed(self, topics: tuple[str, ...], result: CommitResult) -> None: ...


class NullObserver:
    """Observer that ignores everything."""

    def state_changed(self, old: WorkflowState, new: WorkflowState) -> None:
        _ = (old, new)

    def progress(self, progress: CommitProgress) -> None:
        _ = progress

    def notice(self, level: NoticeLevel, message: str) -> None:
        _ = (level, message)

    def data_changed(self, topics: tuple[str, ...], result: CommitResult) -> None:
        _ = (topics, result)


class LoggingObserver(NullObserver):
    """Observer that mirrors notices and progress into the log."""

    _LEVELS = {
        NoticeLevel.INFO: logging.INFO,
        NoticeLevel.SUCCESS: logging.INFO,
        NoticeLevel.WARNING: logging.WARNING,
        NoticeLevel.ERROR: logging.ERROR,
    }

    def progress(self, progress: CommitProgress) -> None:
        log.info(
            "Commit progress %s/%s (%s%%)",
            progress.processed,
            progress.total,
            progress.percent,
        )

    def notice(self, level: NoticeLevel, message: str) -> None:
        log.log(self._LEVELS[level], message)

    def data_changed(self, topics: tuple[str, ...], result: CommitResult) -> None:
        log.info("Data changed for %s (%s written)", ", ".join(topics), result.written)


if TYPE_CHECKING:
    _null_check: WizardObserver = NullObserver()
    _logging_check: WizardObserver = LoggingObserver()

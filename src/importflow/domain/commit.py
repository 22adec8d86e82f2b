"""Sequential best-effort commit of selected proposal items.

Responsibilities of this stage:
- write selected items strictly in proposal order
- write dependent children after their parent, each independently
- record per-item failures and continue with the next item
- report progress after every top-level item

There is no transaction spanning several items; partial imports are kept.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from .errors import OperationCancelledError, StoreUnavailableError
from .ports.persistence import WriteKind

if TYPE_CHECKING:
    from collections.abc import Sequence

    from .cancellation import CancellationToken
    from .ports.persistence import ItemWriter, WriteOutcome
    from .proposal import ProposedItem

log = getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CommitError:
    label: str
    message: str

    def __str__(self) -> str:
        return f"{self.label}: {self.message}"


@dataclass(frozen=True, slots=True)
class CommitProgress:
    processed: int
    total: int

    @property
    def percent(self) -> int:
        if self.total <= 0:
            return 100
        return round(self.processed / self.total * 100)


@dataclass(slots=True)
class CommitResult:
    """Outcome of one commit attempt. Never merged across attempts."""

    created: int = 0
    updated: int = 0
    skipped: int = 0
    children_created: int = 0
    children_failed: int = 0
    errors: list[CommitError] = field(default_factory=list["CommitError"])

    @property
    def attempted(self) -> int:
        return self.created + self.updated + self.skipped

    @property
    def written(self) -> int:
        return self.created + self.updated + self.children_created

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)

    def error_messages(self) -> list[str]:
        return [str(error) for error in self.errors]


ProgressCallback = Callable[[CommitProgress], None]


@dataclass(slots=True)
class CommitExecutor:
    writer: ItemWriter
    on_progress: ProgressCallback | None = None

    async def run(
        self,
        items: Sequence[ProposedItem],
        *,
        token: CancellationToken | None = None,
    ) -> CommitResult:
        """Write ``items`` one by one and summarise what happened.

        Raises ``StoreUnavailableError`` when the writer is not usable at all,
        and ``OperationCancelledError`` once ``token`` is cancelled.
        """

        result = CommitResult()
        total = len(items)

        try:
            await self.writer.ensure_ready()
        except StoreUnavailableError:
            raise
        except Exception as exc:
            raise StoreUnavailableError(str(exc)) from exc

        for index, item in enumerate(items, start=1):
            _check(token)
            try:
                outcome = await self.writer.write(item, position=index)
            except OperationCancelledError:
                raise
            except Exception as exc:  # noqa: BLE001
                log.warning("Failed to write %s %s: %s", item.kind, item.key, exc)
                result.skipped += 1
                result.errors.append(CommitError(item.label, _describe(exc)))
            else:
                if outcome.kind is WriteKind.UPDATED:
                    result.updated += 1
                else:
                    result.created += 1
                await self._write_children(item, outcome, result, token)

            self._report(CommitProgress(processed=index, total=total))

        log.info(
            "Commit finished: created=%s, updated=%s, skipped=%s, children=%s/%s",
            result.created,
            result.updated,
            result.skipped,
            result.children_created,
            result.children_created + result.children_failed,
        )
        return result

    async def _write_children(
        self,
        item: ProposedItem,
        outcome: WriteOutcome,
        result: CommitResult,
        token: CancellationToken | None,
    ) -> None:
        for position, child in enumerate(item.children, start=1):
            _check(token)
            try:
                child_outcome = await self.writer.write(child, parent=outcome, position=position)
            except OperationCancelledError:
                raise
            except Exception as exc:  # noqa: BLE001
                log.warning("Failed to write %s %s: %s", child.kind, child.key, exc)
                result.children_failed += 1
                result.errors.append(CommitError(child.label, _describe(exc)))
                continue
            result.children_created += 1
            await self._write_children(child, child_outcome, result, token)

    def _report(self, progress: CommitProgress) -> None:
        if self.on_progress is not None:
            self.on_progress(progress)


def _check(token: CancellationToken | None) -> None:
    if token is not None:
        token.raise_if_cancelled()


def _describe(exc: Exception) -> str:
    return str(exc) or type(exc).__name__

"""Wizard session: the staged import/sync state machine.

States and transitions::

    idle --analyze--> fetching --ok--> reviewing --commit--> committing --> done
                         |                 ^  |                   |
                         +--failure--> idle  +-+ (selection)       +--> failed

``close()`` returns to idle from any state and cancels in-flight work.
"""

from __future__ import annotations

from enum import StrEnum
from logging import getLogger
from typing import TYPE_CHECKING

from .cancellation import CancellationToken
from .commit import CommitExecutor, CommitProgress, CommitResult
from .errors import (
    GuardViolationError,
    InvalidTransitionError,
    OperationCancelledError,
    StoreUnavailableError,
)
from .ports.observer import NoticeLevel, NullObserver
from .selection import SelectionSet

if TYPE_CHECKING:
    from collections.abc import Iterable

    from .ports.observer import WizardObserver
    from .ports.oracle import ProposalOracle
    from .proposal import Proposal
    from .selection import GroupState
    from .variants.base import WorkflowVariant

log = getLogger(__name__)


class WorkflowState(StrEnum):
    IDLE = "idle"
    FETCHING = "fetching"
    REVIEWING = "reviewing"
    COMMITTING = "committing"
    DONE = "done"
    FAILED = "failed"


_TRANSITIONS: dict[WorkflowState, frozenset[WorkflowState]] = {
    WorkflowState.IDLE: frozenset({WorkflowState.FETCHING}),
    WorkflowState.FETCHING: frozenset({WorkflowState.REVIEWING, WorkflowState.IDLE}),
    WorkflowState.REVIEWING: frozenset({WorkflowState.REVIEWING, WorkflowState.COMMITTING}),
    WorkflowState.COMMITTING: frozenset({WorkflowState.DONE, WorkflowState.FAILED}),
    WorkflowState.DONE: frozenset(),
    WorkflowState.FAILED: frozenset(),
}


class WizardSession[TInput]:
    """One open wizard. Owns the proposal, the selection and the commit result."""

    def __init__(
        self,
        *,
        variant: WorkflowVariant[TInput],
        oracle: ProposalOracle,
        observer: WizardObserver | None = None,
    ) -> None:
        self.variant = variant
        self.oracle = oracle
        self.observer: WizardObserver = observer or NullObserver()
        self._state = WorkflowState.IDLE
        self._token = CancellationToken()
        self._input: TInput | None = None
        self._proposal: Proposal | None = None
        self._selection = SelectionSet.empty()
        self._link_target: str | None = None
        self._result: CommitResult | None = None
        self._progress: CommitProgress | None = None
        self._error: str | None = None

    # -- read-only views ---------------------------------------------------

    @property
    def state(self) -> WorkflowState:
        return self._state

    @property
    def input(self) -> TInput | None:
        return self._input

    @property
    def proposal(self) -> Proposal | None:
        return self._proposal

    @property
    def selection(self) -> SelectionSet:
        return self._selection

    @property
    def link_target(self) -> str | None:
        return self._link_target

    @property
    def result(self) -> CommitResult | None:
        return self._result

    @property
    def progress(self) -> CommitProgress | None:
        return self._progress

    @property
    def error(self) -> str | None:
        return self._error

    @property
    def can_analyze(self) -> bool:
        return self._state is WorkflowState.IDLE and self._input is not None

    @property
    def can_commit(self) -> bool:
        return self._state is WorkflowState.REVIEWING and self._selection.count() > 0

    @property
    def commit_label(self) -> str:
        count = self._selection.count()
        noun = self.variant.noun if count == 1 else f"{self.variant.noun}s"
        return f"{self.variant.verb} {count} {noun}"

    # -- idle --------------------------------------------------------------

    def provide_input(self, value: TInput) -> None:
        self._require(WorkflowState.IDLE, "provide input")
        self._input = value
        self._error = None

    def clear_input(self) -> None:
        self._require(WorkflowState.IDLE, "clear input")
        self._input = None

    async def analyze(self) -> Proposal | None:
        """Ask the oracle for a proposal and move to review.

        Oracle failures return the session to idle with ``error`` set and
        yield ``None``. Results arriving after ``close()`` are discarded.
        """

        self._require(WorkflowState.IDLE, "analyze")
        if self._input is None:
            raise GuardViolationError("No input provided to analyze")

        token = self._token
        request = self.variant.build_request(self._input)
        self._error = None
        self._transition(WorkflowState.FETCHING)

        try:
            proposal = await self.oracle(request, token=token)
        except OperationCancelledError:
            log.debug("Analysis cancelled for %s", self.variant.name)
            return None
        except Exception as exc:  # noqa: BLE001
            if token.cancelled:
                return None
            log.warning("Analysis failed for %s: %s", self.variant.name, exc)
            self._error = str(exc) or "Failed to analyze input"
            self._transition(WorkflowState.IDLE)
            self.observer.notice(NoticeLevel.ERROR, f"Analysis failed: {self._error}")
            return None

        if token.cancelled:
            log.debug("Discarding proposal that arrived after close")
            return None

        self._proposal = proposal
        self._selection = SelectionSet(
            item.key for item in proposal.items if self.variant.eligible(item)
        )
        self._transition(WorkflowState.REVIEWING)
        log.info(
            "Proposal ready: new=%s, updated=%s, unchanged=%s, selected=%s",
            proposal.summary.new,
            proposal.summary.updated,
            proposal.summary.unchanged,
            self._selection.count(),
        )
        return proposal

    # -- reviewing ---------------------------------------------------------

    def toggle(self, key: str) -> None:
        self._review("toggle selection")
        self._selection.toggle(key)
        self._reviewed()

    def set_many(self, keys: Iterable[str], *, included: bool) -> None:
        self._review("change selection")
        self._selection.set_many(keys, included=included)
        self._reviewed()

    def select_all(self) -> None:
        self._review("select all")
        self._selection.select_all()
        self._reviewed()

    def deselect_all(self) -> None:
        self._review("deselect all")
        self._selection.deselect_all()
        self._reviewed()

    def select_group(self, group: str, *, included: bool) -> None:
        self._review("change group selection")
        members = self._group_keys(group)
        self._selection.set_many(members, included=included)
        self._reviewed()

    def group_state(self, group: str) -> GroupState:
        return self._selection.group_state(self._group_keys(group))

    def link(self, target: str | None) -> None:
        """Choose (or clear) the linked entity used as a commit parameter."""

        self._review("link target")
        self._link_target = target
        self._reviewed()

    # -- committing --------------------------------------------------------

    async def commit(self) -> CommitResult | None:
        """Write the selected items; returns ``None`` on hard failure or close."""

        self._require(WorkflowState.REVIEWING, "commit")
        if not self.can_commit or self._proposal is None:
            raise GuardViolationError("Nothing selected to commit")

        token = self._token
        selected = self._proposal.items_for(self._selection.keys())
        batch = self.variant.prepare_batch(
            self._proposal,
            selected,
            link_target=self._link_target,
        )
        self._result = None
        self._progress = CommitProgress(processed=0, total=len(batch))
        self._transition(WorkflowState.COMMITTING)

        def on_progress(progress: CommitProgress) -> None:
            if token.cancelled:
                return
            self._progress = progress
            self.observer.progress(progress)

        executor = CommitExecutor(writer=self.variant.writer(), on_progress=on_progress)
        try:
            result = await executor.run(batch, token=token)
        except OperationCancelledError:
            log.debug("Commit cancelled for %s", self.variant.name)
            return None
        except StoreUnavailableError as exc:
            if token.cancelled:
                return None
            log.error("Commit could not start for %s: %s", self.variant.name, exc)  # noqa: TRY400
            self._error = str(exc) or "Store unavailable"
            self._transition(WorkflowState.FAILED)
            self.observer.notice(NoticeLevel.ERROR, f"{self.variant.verb} failed: {self._error}")
            return None

        if token.cancelled:
            log.debug("Discarding commit result that arrived after close")
            return None

        self._result = result
        self._transition(WorkflowState.DONE)
        self.observer.data_changed(self.variant.topics, result)
        if result.has_errors:
            self.observer.notice(
                NoticeLevel.WARNING,
                f"{self.variant.verb} finished with {len(result.errors)} error(s)",
            )
        else:
            self.observer.notice(
                NoticeLevel.SUCCESS,
                f"{self.variant.verb} finished: {result.created} created, {result.updated} updated",
            )
        return result

    # -- teardown ----------------------------------------------------------

    def close(self) -> None:
        """Abandon everything and return to idle; always allowed."""

        self._token.cancel("Session closed")
        previous = self._state
        self._token = CancellationToken()
        self._state = WorkflowState.IDLE
        self._input = None
        self._proposal = None
        self._selection = SelectionSet.empty()
        self._link_target = None
        self._result = None
        self._progress = None
        self._error = None
        if previous is not WorkflowState.IDLE:
            log.debug("Session %s: %s -> %s (closed)", self.variant.name, previous, self._state)
            self.observer.state_changed(previous, self._state)

    reset = close

    # -- helpers -----------------------------------------------------------

    def _group_keys(self, group: str) -> tuple[str, ...]:
        if self._proposal is None:
            return ()
        return tuple(item.key for item in self._proposal.items if item.group == group)

    def _review(self, operation: str) -> None:
        self._require(WorkflowState.REVIEWING, operation)

    def _reviewed(self) -> None:
        # Selection and link edits are reported as reviewing -> reviewing.
        self._transition(WorkflowState.REVIEWING)

    def _require(self, state: WorkflowState, operation: str) -> None:
        if self._state is not state:
            raise InvalidTransitionError(operation, self._state)

    def _transition(self, new: WorkflowState) -> None:
        old = self._state
        if new not in _TRANSITIONS[old]:
            raise InvalidTransitionError(f"move to {new}", old)
        self._state = new
        log.debug("Session %s: %s -> %s", self.variant.name, old, new)
        self.observer.state_changed(old, new)

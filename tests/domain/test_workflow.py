from __future__ import annotations

import asyncio

import pytest

from importflow.domain.errors import (
    GuardViolationError,
    InvalidTransitionError,
    OracleError,
)
from importflow.domain.ports.observer import NoticeLevel
from importflow.domain.proposal import Proposal
from importflow.domain.workflow import WizardSession, WorkflowState
from tests.helpers.fakes import (
    FakeOracle,
    FakeVariant,
    FakeWriter,
    RecordingObserver,
    abcd_proposal,
    make_item,
)


def _session(
    oracle: FakeOracle | None = None,
    writer: FakeWriter | None = None,
    observer: RecordingObserver | None = None,
) -> WizardSession[str]:
    return WizardSession(
        variant=FakeVariant(writer_instance=writer or FakeWriter()),
        oracle=oracle or FakeOracle(proposal=abcd_proposal()),
        observer=observer,
    )


def _reviewing(session: WizardSession[str]) -> WizardSession[str]:
    session.provide_input("registry")
    asyncio.run(session.analyze())
    assert session.state is WorkflowState.REVIEWING
    return session


def test_default_selection_is_all_new_items() -> None:
    session = _reviewing(_session())

    assert session.selection.keys() == ("A", "B")
    assert session.commit_label == "Sync 2 Features"


def test_deselect_then_commit_single_item() -> None:
    observer = RecordingObserver()
    session = _reviewing(_session(observer=observer))

    session.toggle("A")
    result = asyncio.run(session.commit())

    assert result is not None
    assert (result.created, result.updated, result.skipped, result.errors) == (1, 0, 0, [])
    assert session.state is WorkflowState.DONE
    assert observer.states[-2:] == [
        (WorkflowState.REVIEWING, WorkflowState.COMMITTING),
        (WorkflowState.COMMITTING, WorkflowState.DONE),
    ]
    assert observer.changes[0][0] == ("things",)
    assert observer.notices[-1][0] is NoticeLevel.SUCCESS


def test_partial_failure_still_finishes_done() -> None:
    proposal = Proposal.from_items([make_item("B"), make_item("E")])
    observer = RecordingObserver()
    session = _reviewing(
        _session(
            oracle=FakeOracle(proposal=proposal),
            writer=FakeWriter(failures={"E": "constraint violation"}),
            observer=observer,
        )
    )

    result = asyncio.run(session.commit())

    assert result is not None
    assert result.created == 1
    assert result.skipped == 1
    assert result.error_messages() == ["E: constraint violation"]
    assert session.state is WorkflowState.DONE
    assert observer.notices[-1][0] is NoticeLevel.WARNING


def test_attempted_matches_selection_size() -> None:
    proposal = Proposal.from_items([make_item(key) for key in "PQRS"])
    session = _reviewing(
        _session(oracle=FakeOracle(proposal=proposal), writer=FakeWriter(failures={"Q": "x"}))
    )
    session.toggle("S")

    result = asyncio.run(session.commit())

    assert result is not None
    assert result.attempted == 3


def test_commit_disabled_iff_selection_empty() -> None:
    session = _reviewing(_session())

    assert session.can_commit
    session.deselect_all()
    assert not session.can_commit
    with pytest.raises(GuardViolationError):
        asyncio.run(session.commit())
    assert session.state is WorkflowState.REVIEWING

    session.select_all()
    assert session.can_commit


def test_idempotent_preview() -> None:
    oracle = FakeOracle(proposal=abcd_proposal())
    first = _reviewing(_session(oracle=oracle))
    second = _reviewing(_session(oracle=oracle))

    assert first.proposal == second.proposal
    assert first.selection.keys() == second.selection.keys()


def test_oracle_failure_returns_to_idle_with_error() -> None:
    observer = RecordingObserver()
    session = _session(oracle=FakeOracle(error=OracleError("model timed out")), observer=observer)
    session.provide_input("document")

    proposal = asyncio.run(session.analyze())

    assert proposal is None
    assert session.state is WorkflowState.IDLE
    assert session.error == "model timed out"
    assert session.proposal is None
    assert session.input == "document"
    assert observer.notices == [(NoticeLevel.ERROR, "Analysis failed: model timed out")]
    assert observer.states == [
        (WorkflowState.IDLE, WorkflowState.FETCHING),
        (WorkflowState.FETCHING, WorkflowState.IDLE),
    ]


def test_analyze_requires_input() -> None:
    session = _session()

    assert not session.can_analyze
    with pytest.raises(GuardViolationError):
        asyncio.run(session.analyze())
    assert session.state is WorkflowState.IDLE


def test_review_operations_outside_reviewing_are_rejected() -> None:
    session = _session()

    with pytest.raises(InvalidTransitionError):
        session.toggle("A")
    with pytest.raises(InvalidTransitionError):
        session.link("release-1")


def test_store_unavailable_moves_to_failed() -> None:
    observer = RecordingObserver()
    session = _reviewing(
        _session(writer=FakeWriter(unavailable="401 unauthorized"), observer=observer)
    )

    result = asyncio.run(session.commit())

    assert result is None
    assert session.state is WorkflowState.FAILED
    assert session.error == "401 unauthorized"
    assert observer.notices[-1] == (NoticeLevel.ERROR, "Sync failed: 401 unauthorized")
    assert observer.changes == []


def test_close_resets_everything() -> None:
    session = _reviewing(_session())
    session.link("release-1")

    session.close()

    assert session.state is WorkflowState.IDLE
    assert session.proposal is None
    assert session.selection.count() == 0
    assert session.link_target is None
    assert session.input is None
    assert session.error is None


def test_group_selection() -> None:
    proposal = Proposal.from_items(
        [
            make_item("a1", group="hr"),
            make_item("a2", group="hr"),
            make_item("p1", group="payroll"),
        ]
    )
    session = _reviewing(_session(oracle=FakeOracle(proposal=proposal)))

    session.select_group("hr", included=False)

    assert session.group_state("hr") == "none"
    assert session.group_state("payroll") == "all"
    session.toggle("a1")
    assert session.group_state("hr") == "some"


def test_close_during_fetch_discards_late_proposal() -> None:
    observer = RecordingObserver()
    oracle = FakeOracle(proposal=abcd_proposal())
    session = _session(oracle=oracle, observer=observer)
    session.provide_input("registry")

    async def scenario() -> Proposal | None:
        oracle.gate = asyncio.Event()
        task = asyncio.create_task(session.analyze())
        await asyncio.sleep(0)
        session.close()
        oracle.gate.set()
        return await task

    proposal = asyncio.run(scenario())

    assert proposal is None
    assert session.state is WorkflowState.IDLE
    assert session.proposal is None
    assert session.selection.count() == 0
    assert observer.states == [
        (WorkflowState.IDLE, WorkflowState.FETCHING),
        (WorkflowState.FETCHING, WorkflowState.IDLE),
    ]


def test_selection_edits_are_reported_as_review_transitions() -> None:
    observer = RecordingObserver()
    session = _reviewing(_session(observer=observer))
    before = len(observer.states)

    session.toggle("A")
    session.select_all()
    session.link("release-1")

    assert observer.states[before:] == [(WorkflowState.REVIEWING, WorkflowState.REVIEWING)] * 3


def test_close_after_done_allows_a_fresh_analysis() -> None:
    oracle = FakeOracle(proposal=abcd_proposal())
    session = _reviewing(_session(oracle=oracle))
    asyncio.run(session.commit())
    assert session.state is WorkflowState.DONE
    assert session.result is not None

    session.close()

    assert session.state is WorkflowState.IDLE
    assert session.result is None
    assert session.progress is None
    assert session.proposal is None
    _reviewing(session)
    assert session.selection.keys() == ("A", "B")
    assert len(oracle.requests) == 2


def test_close_after_failure_allows_a_fresh_analysis() -> None:
    writer = FakeWriter(unavailable="503 service unavailable")
    session = _reviewing(_session(writer=writer))
    asyncio.run(session.commit())
    assert session.state is WorkflowState.FAILED

    session.close()

    assert session.state is WorkflowState.IDLE
    assert session.error is None
    assert session.result is None
    writer.unavailable = None
    _reviewing(session)
    result = asyncio.run(session.commit())
    assert result is not None
    assert session.state is WorkflowState.DONE


def test_close_during_commit_discards_the_result() -> None:
    observer = RecordingObserver()
    writer = FakeWriter()
    session = _reviewing(_session(writer=writer, observer=observer))
    notices_before = list(observer.notices)

    async def scenario() -> object:
        writer.gate = asyncio.Event()
        task = asyncio.create_task(session.commit())
        await asyncio.sleep(0)
        session.close()
        writer.gate.set()
        return await task

    result = asyncio.run(scenario())

    assert result is None
    assert session.state is WorkflowState.IDLE
    assert session.result is None
    assert observer.changes == []
    assert observer.notices == notices_before
    assert (WorkflowState.COMMITTING, WorkflowState.DONE) not in observer.states

"""Application orchestration entry points."""

from __future__ import annotations

from contextlib import asynccontextmanager
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from importflow.adapters.edge_functions import AgreementExtractionOracle, EdgeFunctionClient
from importflow.adapters.postgrest import PostgrestRecordStore
from importflow.adapters.sqlalchemy import SqlAlchemyRecordStore, is_started, startup
from importflow.config.workflow import WorkflowConfig, get_workflow_config
from importflow.domain.errors import GuardViolationError
from importflow.domain.variants.agreement import AgreementImportVariant, read_document
from importflow.domain.variants.registry import RegistryDiffOracle, RegistrySyncVariant
from importflow.domain.workflow import WizardSession, WorkflowState

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Iterable
    from pathlib import Path

    from importflow.domain.commit import CommitResult
    from importflow.domain.ports.observer import WizardObserver
    from importflow.domain.ports.oracle import ProposalOracle
    from importflow.domain.ports.persistence import RecordStore
    from importflow.domain.proposal import Proposal
    from importflow.domain.variants.agreement import AgreementDocument
    from importflow.domain.variants.registry import FeatureRegistry

log = getLogger(__name__)


@dataclass(frozen=True, slots=True)
class WorkflowRun:
    """What a non-interactive run of a wizard session ended with."""

    state: WorkflowState
    proposal: Proposal | None = None
    result: CommitResult | None = None
    error: str | None = None
    committed: bool = False

    @property
    def failed(self) -> bool:
        return self.state is WorkflowState.FAILED or (self.proposal is None and bool(self.error))


def build_record_store(config: WorkflowConfig | None = None) -> RecordStore:
    """Return the configured record store, starting the local database if needed."""

    effective = config or get_workflow_config()
    if effective.store_backend == "postgrest":
        log.info("Using the managed backend record store")
        return PostgrestRecordStore()
    if not is_started():
        startup()
    return SqlAlchemyRecordStore()


def open_agreement_import(
    *,
    agreement_id: str,
    company_id: str,
    store: RecordStore | None = None,
    oracle: ProposalOracle | None = None,
    observer: WizardObserver | None = None,
    config: WorkflowConfig | None = None,
) -> WizardSession[AgreementDocument]:
    effective = config or get_workflow_config()
    variant = AgreementImportVariant(
        store=store or build_record_store(effective),
        agreement_id=agreement_id,
        company_id=company_id,
        rule_description_limit=effective.rule_description_limit,
        default_enforcement_action=effective.default_enforcement_action,
    )
    effective_oracle = oracle or AgreementExtractionOracle(
        agreement_id,
        function_name=effective.analysis_function,
    )
    return WizardSession(variant=variant, oracle=effective_oracle, observer=observer)


def open_registry_sync(
    *,
    registry: FeatureRegistry,
    store: RecordStore | None = None,
    include_updates: bool = False,
    observer: WizardObserver | None = None,
) -> WizardSession[Iterable[str]]:
    effective_store = store or build_record_store()
    variant = RegistrySyncVariant(store=effective_store, include_updates=include_updates)
    oracle = RegistryDiffOracle(registry=registry, store=effective_store)
    return WizardSession(variant=variant, oracle=oracle, observer=observer)


@asynccontextmanager
async def record_store(config: WorkflowConfig | None = None) -> AsyncIterator[RecordStore]:
    """Yield the configured record store and release its HTTP client afterwards."""

    store = build_record_store(config)
    try:
        yield store
    finally:
        if isinstance(store, PostgrestRecordStore):
            await store.aclose()


async def run_agreement_import(
    document_path: Path,
    *,
    agreement_id: str,
    company_id: str,
    exclude: Iterable[str] = (),
    dry_run: bool = False,
    session: WizardSession[AgreementDocument] | None = None,
    observer: WizardObserver | None = None,
) -> WorkflowRun:
    """Analyze one agreement document and import the selected articles."""

    document = read_document(document_path)
    log.info(
        "Importing %s (%.1f KB) into agreement %s",
        document.name,
        document.size_kb,
        agreement_id,
    )
    if session is not None:
        session.provide_input(document)
        return await _drive(session, exclude=exclude, dry_run=dry_run)

    config = get_workflow_config()
    async with record_store(config) as store, EdgeFunctionClient() as functions:
        opened = open_agreement_import(
            agreement_id=agreement_id,
            company_id=company_id,
            store=store,
            oracle=AgreementExtractionOracle(
                agreement_id,
                functions=functions,
                function_name=config.analysis_function,
            ),
            observer=observer,
            config=config,
        )
        opened.provide_input(document)
        return await _drive(opened, exclude=exclude, dry_run=dry_run)


async def run_registry_sync(
    registry: FeatureRegistry,
    *,
    modules: Iterable[str] = (),
    exclude: Iterable[str] = (),
    release_id: str | None = None,
    include_updates: bool = False,
    dry_run: bool = False,
    session: WizardSession[Iterable[str]] | None = None,
    observer: WizardObserver | None = None,
) -> WorkflowRun:
    """Diff the registry against stored features and sync the selected additions."""

    if session is not None:
        session.provide_input(tuple(modules))
        return await _drive(session, exclude=exclude, dry_run=dry_run, link_target=release_id)

    async with record_store() as store:
        opened = open_registry_sync(
            registry=registry,
            store=store,
            include_updates=include_updates,
            observer=observer,
        )
        opened.provide_input(tuple(modules))
        return await _drive(opened, exclude=exclude, dry_run=dry_run, link_target=release_id)


async def _drive[TInput](
    session: WizardSession[TInput],
    *,
    exclude: Iterable[str],
    dry_run: bool,
    link_target: str | None = None,
) -> WorkflowRun:
    proposal = await session.analyze()
    if proposal is None:
        return WorkflowRun(state=session.state, error=session.error)

    excluded = tuple(exclude)
    unknown = [key for key in excluded if proposal.get(key) is None]
    if unknown:
        log.warning("Ignoring unknown keys: %s", ", ".join(unknown))
    session.set_many(excluded, included=False)
    if link_target:
        session.link(link_target)

    if dry_run:
        log.info("Dry run: %s would be committed", session.commit_label)
        run = WorkflowRun(state=session.state, proposal=proposal)
        session.close()
        return run

    try:
        result = await session.commit()
    except GuardViolationError:
        log.warning("Nothing selected; skipping commit")
        run = WorkflowRun(state=session.state, proposal=proposal)
        session.close()
        return run

    return WorkflowRun(
        state=session.state,
        proposal=proposal,
        result=result,
        error=session.error,
        committed=result is not None,
    )

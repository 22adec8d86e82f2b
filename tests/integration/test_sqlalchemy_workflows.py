from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import httpx
import pytest

from importflow.adapters.edge_functions import AgreementExtractionOracle, EdgeFunctionClient
from importflow.adapters.registry_file import load_registry
from importflow.app import open_agreement_import, open_registry_sync
from importflow.config.workflow import WorkflowConfig
from importflow.domain.variants.agreement import (
    ARTICLES_TABLE,
    CLAUSES_TABLE,
    RULES_TABLE,
    AgreementDocument,
)
from importflow.domain.variants.registry import FEATURES_TABLE, RELEASE_FEATURES_TABLE
from importflow.domain.workflow import WorkflowState
from tests.helpers.fakes import RecordingObserver
from tests.helpers.http import make_resilience, mock_client_factory

if TYPE_CHECKING:
    from pathlib import Path

    from importflow.adapters.sqlalchemy import SqlAlchemyRecordStore


@pytest.mark.integration
def test_agreement_import_end_to_end(
    sqlite_store: SqlAlchemyRecordStore,
    analysis_envelope: dict[str, object],
) -> None:
    def handler(_request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=analysis_envelope)

    oracle = AgreementExtractionOracle(
        "agr-1",
        functions=EdgeFunctionClient(
            resilience=make_resilience("https://backend.test/functions/v1/"),
            client_factory=mock_client_factory(handler),
        ),
    )
    observer = RecordingObserver()
    session = open_agreement_import(
        agreement_id="agr-1",
        company_id="co-1",
        store=sqlite_store,
        oracle=oracle,
        observer=observer,
        config=WorkflowConfig(rule_description_limit=40),
    )

    async def scenario() -> None:
        session.provide_input(AgreementDocument(name="cba.txt", content="..."))
        await session.analyze()
        session.toggle("1")
        await session.commit()

    asyncio.run(scenario())

    assert session.state is WorkflowState.DONE
    result = session.result
    assert result is not None
    assert (result.created, result.children_created, result.children_failed) == (2, 4, 0)
    articles = asyncio.run(sqlite_store.select(ARTICLES_TABLE))
    assert sorted(str(row["article_number"]) for row in articles) == ["12", "7"]
    clauses = asyncio.run(sqlite_store.select(CLAUSES_TABLE))
    assert len(clauses) == 2
    rules = asyncio.run(sqlite_store.select(RULES_TABLE, match={"company_id": "co-1"}))
    assert sorted(str(row["enforcement_action"]) for row in rules) == ["block", "warn"]
    assert all(len(str(row["description"])) <= 40 for row in rules)
    assert [progress.percent for progress in observer.progress_events] == [50, 100]
    assert observer.changes[0][0] == (ARTICLES_TABLE, CLAUSES_TABLE, RULES_TABLE)


@pytest.mark.integration
def test_registry_sync_then_resync_detects_updates(
    sqlite_store: SqlAlchemyRecordStore,
    registry_path: Path,
) -> None:
    registry = load_registry(registry_path)

    first = open_registry_sync(registry=registry, store=sqlite_store)

    async def sync_all() -> None:
        first.provide_input(())
        await first.analyze()
        first.link("release-2025-1")
        await first.commit()

    asyncio.run(sync_all())
    assert first.result is not None
    assert first.result.created == 3
    assert len(asyncio.run(sqlite_store.select(RELEASE_FEATURES_TABLE))) == 3

    asyncio.run(
        sqlite_store.update(
            FEATURES_TABLE,
            match={"feature_code": "companies"},
            values={"description": "Edited by hand"},
        )
    )
    second = open_registry_sync(registry=registry, store=sqlite_store, include_updates=True)

    async def resync() -> None:
        second.provide_input(["workforce"])
        proposal = await second.analyze()
        assert proposal is not None
        assert proposal.summary.updated == 1
        assert second.selection.count() == 0
        assert not second.can_commit

    asyncio.run(resync())
    assert second.state is WorkflowState.REVIEWING

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import pytest

from importflow.domain.commit import CommitExecutor
from importflow.domain.errors import UnsupportedDocumentError
from importflow.domain.proposal import ItemStatus, ProposedItem
from importflow.domain.variants.agreement import (
    ARTICLE,
    ARTICLES_TABLE,
    CLAUSE,
    CLAUSES_TABLE,
    RULE,
    RULES_TABLE,
    AgreementDocument,
    AgreementImportVariant,
    read_document,
)
from tests.helpers.fakes import InMemoryRecordStore

if TYPE_CHECKING:
    from pathlib import Path


def _article(number: str, *, clauses: tuple[ProposedItem, ...] = ()) -> ProposedItem:
    return ProposedItem(
        key=number,
        status=ItemStatus.NEW,
        label=f"Article {number}",
        group="wages",
        kind=ARTICLE,
        payload={"article_number": number, "title": f"Title {number}", "category": "wages"},
        children=clauses,
    )


def _clause(article: str, number: str, *, rule: bool = False) -> ProposedItem:
    parameters = {"rule_type": "overtime", "value": 1.5, "unit": "multiplier"}
    children: tuple[ProposedItem, ...] = ()
    if rule:
        children = (
            ProposedItem(
                key=f"{article}/{number}/rule",
                status=ItemStatus.NEW,
                label="rule",
                group="wages",
                kind=RULE,
                payload={
                    "rule_type": "overtime",
                    "rule_name": f"Clause {number}",
                    "content": "x" * 700,
                    "parameters": parameters,
                },
            ),
        )
    return ProposedItem(
        key=f"{article}/{number}",
        status=ItemStatus.NEW,
        label=f"Clause {number}",
        group="wages",
        kind=CLAUSE,
        payload={
            "clause_number": number,
            "title": f"Clause {number}",
            "content": "x" * 700,
            "clause_type": "compensation",
            "is_enforceable": rule,
            "rule_parameters": parameters if rule else None,
        },
        children=children,
    )


def test_writer_inserts_hierarchy_with_parent_ids() -> None:
    store = InMemoryRecordStore()
    variant = AgreementImportVariant(store, "agr-1", "co-1")
    articles = [
        _article("1", clauses=(_clause("1", "1.1", rule=True), _clause("1", "1.2"))),
        _article("2"),
    ]

    result = asyncio.run(CommitExecutor(variant.writer()).run(articles))

    assert (result.created, result.children_created) == (2, 3)
    stored_articles = store.rows(ARTICLES_TABLE)
    assert [row["display_order"] for row in stored_articles] == [1, 2]
    assert stored_articles[0]["agreement_id"] == "agr-1"
    assert stored_articles[0]["content"] is None
    clauses = store.rows(CLAUSES_TABLE)
    assert {row["article_id"] for row in clauses} == {stored_articles[0]["id"]}
    assert [row["display_order"] for row in clauses] == [1, 2]
    (rule,) = store.rows(RULES_TABLE)
    assert rule["clause_id"] == clauses[0]["id"]
    assert rule["company_id"] == "co-1"
    assert rule["enforcement_action"] == "warn"
    assert len(str(rule["description"])) == 500
    assert rule["is_active"] is True


def test_failed_article_skips_its_clauses() -> None:
    store = InMemoryRecordStore(fail_on={(ARTICLES_TABLE, "article_number", "1"): "duplicate"})
    variant = AgreementImportVariant(store, "agr-1", "co-1")

    result = asyncio.run(
        CommitExecutor(variant.writer()).run(
            [_article("1", clauses=(_clause("1", "1.1"),)), _article("2")]
        )
    )

    assert result.created == 1
    assert result.skipped == 1
    assert store.rows(CLAUSES_TABLE) == []
    assert result.error_messages() == ["Article 1: duplicate"]


def test_every_article_is_eligible() -> None:
    variant = AgreementImportVariant(InMemoryRecordStore(), "agr-1", "co-1")

    assert variant.eligible(_article("1"))
    assert not variant.eligible(_clause("1", "1.1"))
    assert variant.topics == (ARTICLES_TABLE, CLAUSES_TABLE, RULES_TABLE)


def test_build_request_carries_content() -> None:
    variant = AgreementImportVariant(InMemoryRecordStore(), "agr-1", "co-1")

    request = variant.build_request(AgreementDocument(name="cba.txt", content="Article 1"))

    assert request.raw_input == "Article 1"
    assert request.source_name == "cba.txt"


def test_read_document_accepts_text(tmp_path: Path) -> None:
    path = tmp_path / "cba.md"
    path.write_text("# Article 1\nWages", encoding="utf-8")

    document = read_document(path)

    assert document.name == "cba.md"
    assert document.content.startswith("# Article 1")


@pytest.mark.parametrize(
    ("name", "content"),
    [("cba.pdf", b"%PDF-1.4"), ("cba.txt", b"\xff\xfe\x00"), ("cba.txt", b"   \n")],
)
def test_read_document_rejects_unusable_input(tmp_path: Path, name: str, content: bytes) -> None:
    path = tmp_path / name
    path.write_bytes(content)

    with pytest.raises(UnsupportedDocumentError):
        read_document(path)

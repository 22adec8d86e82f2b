"""Document import of collective bargaining agreements.

Extracted articles are the selectable items; their clauses and any
clause-derived enforcement rules are written unconditionally underneath them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING, Final

from importflow.domain.errors import RecordWriteError, UnsupportedDocumentError
from importflow.domain.ports.oracle import OracleRequest
from importflow.domain.ports.persistence import WriteKind, WriteOutcome

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path

    from importflow.domain.ports.persistence import RecordStore
    from importflow.domain.proposal import Proposal, ProposedItem

log = getLogger(__name__)

ARTICLES_TABLE: Final[str] = "cba_articles"
CLAUSES_TABLE: Final[str] = "cba_clauses"
RULES_TABLE: Final[str] = "cba_rules"

ARTICLE: Final[str] = "article"
CLAUSE: Final[str] = "clause"
RULE: Final[str] = "rule"

DEFAULT_CATEGORY: Final[str] = "general"
DEFAULT_ENFORCEMENT_ACTION: Final[str] = "warn"
RULE_DESCRIPTION_LIMIT: Final[int] = 500
TEXT_SUFFIXES: Final[frozenset[str]] = frozenset({".txt", ".text", ".md", ".markdown"})


@dataclass(frozen=True, slots=True)
class AgreementDocument:
    name: str
    content: str

    @property
    def size_kb(self) -> float:
        return len(self.content.encode("utf-8")) / 1024


def read_document(path: Path) -> AgreementDocument:
    """Load a text document for analysis, rejecting anything not readable as text."""

    if path.suffix.lower() not in TEXT_SUFFIXES:
        allowed = ", ".join(sorted(TEXT_SUFFIXES))
        raise UnsupportedDocumentError(f"Unsupported document type {path.suffix!r} (use {allowed})")
    try:
        content = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise UnsupportedDocumentError(f"{path.name} is not valid UTF-8 text") from exc
    if not content.strip():
        raise UnsupportedDocumentError(f"{path.name} is empty")
    return AgreementDocument(name=path.name, content=content)


def clause_key(article_number: str, clause_number: str) -> str:
    return f"{article_number}/{clause_number}"


def rule_key(article_number: str, clause_number: str) -> str:
    return f"{clause_key(article_number, clause_number)}/rule"


@dataclass(slots=True)
class AgreementWriter:
    """Inserts articles, clauses and rules for one agreement."""

    store: RecordStore
    agreement_id: str
    company_id: str
    rule_description_limit: int = RULE_DESCRIPTION_LIMIT
    default_enforcement_action: str = DEFAULT_ENFORCEMENT_ACTION

    async def ensure_ready(self) -> None:
        await self.store.ping()

    async def write(
        self,
        item: ProposedItem,
        *,
        parent: WriteOutcome | None = None,
        position: int = 1,
    ) -> WriteOutcome:
        if item.kind == ARTICLE:
            table, values = ARTICLES_TABLE, self._article_values(item, position)
        elif item.kind == CLAUSE:
            table, values = CLAUSES_TABLE, self._clause_values(item, _require(parent), position)
        elif item.kind == RULE:
            table, values = RULES_TABLE, self._rule_values(item, _require(parent))
        else:
            raise RecordWriteError(f"Unsupported item kind: {item.kind}")

        record = await self.store.insert(table, values)
        log.debug("Inserted %s %s into %s", item.kind, item.key, table)
        return WriteOutcome(kind=WriteKind.CREATED, record=record, position=position)

    def _article_values(self, item: ProposedItem, position: int) -> dict[str, object]:
        payload = item.payload
        return {
            "agreement_id": self.agreement_id,
            "article_number": payload["article_number"],
            "title": payload["title"],
            "category": payload.get("category") or DEFAULT_CATEGORY,
            "content": payload.get("content") or None,
            "display_order": position,
        }

    def _clause_values(
        self,
        item: ProposedItem,
        parent: WriteOutcome,
        position: int,
    ) -> dict[str, object]:
        payload = item.payload
        return {
            "article_id": parent.record_id,
            "clause_number": payload["clause_number"],
            "title": payload["title"],
            "content": payload["content"],
            "clause_type": payload["clause_type"],
            "is_enforceable": bool(payload.get("is_enforceable")),
            "rule_parameters": payload.get("rule_parameters"),
            "display_order": position,
        }

    def _rule_values(self, item: ProposedItem, parent: WriteOutcome) -> dict[str, object]:
        payload = item.payload
        parameters = payload.get("parameters")
        enforcement_action = None
        if isinstance(parameters, dict):
            enforcement_action = parameters.get("enforcement_action")
        description = str(payload.get("content") or "")
        return {
            "clause_id": parent.record_id,
            "agreement_id": self.agreement_id,
            "company_id": self.company_id,
            "rule_type": payload["rule_type"],
            "rule_name": payload["rule_name"],
            "description": description[: self.rule_description_limit],
            "parameters": parameters,
            "enforcement_action": enforcement_action or self.default_enforcement_action,
            "is_active": True,
        }


def _require(parent: WriteOutcome | None) -> WriteOutcome:
    if parent is None:
        raise RecordWriteError("Dependent item written without a parent record")
    return parent


@dataclass(slots=True)
class AgreementImportVariant:
    """Every extracted article is selectable and selected by default."""

    store: RecordStore
    agreement_id: str
    company_id: str
    rule_description_limit: int = RULE_DESCRIPTION_LIMIT
    default_enforcement_action: str = DEFAULT_ENFORCEMENT_ACTION
    name: str = field(default="agreement-import", init=False)
    verb: str = field(default="Import", init=False)
    noun: str = field(default="Article", init=False)
    topics: tuple[str, ...] = field(
        default=(ARTICLES_TABLE, CLAUSES_TABLE, RULES_TABLE),
        init=False,
    )

    def build_request(self, value: AgreementDocument) -> OracleRequest:
        return OracleRequest(raw_input=value.content, source_name=value.name)

    def eligible(self, item: ProposedItem) -> bool:
        return item.kind == ARTICLE

    def prepare_batch(
        self,
        proposal: Proposal,
        selected: Sequence[ProposedItem],
        *,
        link_target: str | None = None,
    ) -> list[ProposedItem]:
        _ = (proposal, link_target)
        return list(selected)

    def writer(self) -> AgreementWriter:
        return AgreementWriter(
            store=self.store,
            agreement_id=self.agreement_id,
            company_id=self.company_id,
            rule_description_limit=self.rule_description_limit,
            default_enforcement_action=self.default_enforcement_action,
        )


if TYPE_CHECKING:
    from importflow.domain.ports.persistence import ItemWriter
    from importflow.domain.variants.base import WorkflowVariant

    def _checks(store: RecordStore) -> None:
        _writer: ItemWriter = AgreementWriter(store, "agreement", "company")
        _variant: WorkflowVariant[AgreementDocument] = AgreementImportVariant(
            store, "agreement", "company"
        )

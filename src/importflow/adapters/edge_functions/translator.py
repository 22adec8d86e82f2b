"""Translate agreement analysis payloads into a reviewable proposal."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from importflow.domain.proposal import ItemStatus, Proposal, ProposedItem
from importflow.domain.variants.agreement import (
    ARTICLE,
    CLAUSE,
    DEFAULT_CATEGORY,
    RULE,
    clause_key,
    rule_key,
)

if TYPE_CHECKING:
    from .schema import AgreementAnalysisPayload, ArticlePayload, ClausePayload

log = getLogger(__name__)


def translate_analysis(payload: AgreementAnalysisPayload) -> Proposal:
    """Every extracted article becomes a new item; clauses and rules hang below it."""

    items = [_article_item(article) for article in payload.articles]
    summary = payload.summary
    details: dict[str, str] = {}
    if summary.effective_date:
        details["effective_date"] = summary.effective_date
    if summary.expiry_date:
        details["expiry_date"] = summary.expiry_date

    proposal = Proposal.from_items(
        items,
        aggregates={
            "total_articles": summary.total_articles or len(items),
            "total_clauses": summary.total_clauses
            or sum(len(article.clauses) for article in payload.articles),
            "enforceable_rules_count": summary.enforceable_rules_count,
        },
        highlights=summary.key_provisions,
        details=details,
    )
    log.debug("Translated %s articles into a proposal", len(items))
    return proposal


def _article_item(article: ArticlePayload) -> ProposedItem:
    category = article.category or DEFAULT_CATEGORY
    return ProposedItem(
        key=article.article_number,
        status=ItemStatus.NEW,
        label=f"Article {article.article_number}: {article.title}",
        group=category,
        kind=ARTICLE,
        payload={
            "article_number": article.article_number,
            "title": article.title,
            "category": category,
            "content": article.content,
            "clause_count": len(article.clauses),
        },
        children=tuple(_clause_item(article, clause) for clause in article.clauses),
    )


def _clause_item(article: ArticlePayload, clause: ClausePayload) -> ProposedItem:
    parameters = (
        clause.rule_parameters.model_dump(exclude_none=True) if clause.rule_parameters else None
    )
    children: tuple[ProposedItem, ...] = ()
    if clause.is_enforceable and parameters is not None:
        children = (
            ProposedItem(
                key=rule_key(article.article_number, clause.clause_number),
                status=ItemStatus.NEW,
                label=f"Rule for clause {clause.clause_number}",
                group=article.category or DEFAULT_CATEGORY,
                kind=RULE,
                payload={
                    "rule_type": parameters["rule_type"],
                    "rule_name": clause.title,
                    "content": clause.content,
                    "parameters": parameters,
                },
            ),
        )
    return ProposedItem(
        key=clause_key(article.article_number, clause.clause_number),
        status=ItemStatus.NEW,
        label=f"Clause {clause.clause_number}: {clause.title}",
        group=article.category or DEFAULT_CATEGORY,
        kind=CLAUSE,
        payload={
            "clause_number": clause.clause_number,
            "title": clause.title,
            "content": clause.content,
            "clause_type": clause.clause_type,
            "is_enforceable": clause.is_enforceable,
            "rule_parameters": parameters,
        },
        children=children,
    )

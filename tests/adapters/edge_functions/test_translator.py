from __future__ import annotations

from importflow.adapters.edge_functions import translate_analysis
from importflow.adapters.edge_functions.schema import (
    AgreementAnalysisPayload,
    EdgeFunctionEnvelope,
)
from importflow.domain.proposal import ItemStatus
from importflow.domain.variants.agreement import ARTICLE, CLAUSE, RULE


def _payload(envelope: dict[str, object]) -> AgreementAnalysisPayload:
    parsed = EdgeFunctionEnvelope.model_validate(envelope)
    return AgreementAnalysisPayload.model_validate(parsed.data)


def test_articles_become_new_items_grouped_by_category(
    analysis_envelope: dict[str, object],
) -> None:
    proposal = translate_analysis(_payload(analysis_envelope))

    assert [item.kind for item in proposal] == [ARTICLE, ARTICLE, ARTICLE]
    assert all(item.status is ItemStatus.NEW for item in proposal)
    assert list(proposal.groups()) == ["general", "working_time"]
    wages = proposal.get("12")
    assert wages is not None
    assert wages.group == "general"
    assert wages.children == ()


def test_enforceable_clauses_get_rule_children(analysis_envelope: dict[str, object]) -> None:
    proposal = translate_analysis(_payload(analysis_envelope))

    overtime = proposal.get("7")
    assert overtime is not None
    keys = [node.key for node in overtime.walk()]
    assert keys == ["7", "7/7.1", "7/7.1/rule", "7/7.2", "7/7.2/rule"]
    clause = overtime.children[0]
    assert clause.kind == CLAUSE
    (rule,) = clause.children
    assert rule.kind == RULE
    assert rule.payload["rule_type"] == "overtime_rate"
    assert rule.payload["rule_name"] == "Overtime premium"
    parameters = rule.payload["parameters"]
    assert isinstance(parameters, dict)
    assert parameters["enforcement_action"] == "block"


def test_non_enforceable_clause_has_no_rule(analysis_envelope: dict[str, object]) -> None:
    proposal = translate_analysis(_payload(analysis_envelope))

    recognition = proposal.get("1")
    assert recognition is not None
    (clause,) = recognition.children
    assert clause.children == ()
    assert clause.payload["rule_parameters"] is None


def test_summary_aggregates_highlights_and_dates(analysis_envelope: dict[str, object]) -> None:
    summary = translate_analysis(_payload(analysis_envelope)).summary

    assert summary.new == 3
    assert summary.aggregates == {
        "total_articles": 3,
        "total_clauses": 3,
        "enforceable_rules_count": 2,
    }
    assert summary.highlights == (
        "Overtime at 1.5x after 40 hours",
        "11 hours rest between shifts",
    )
    assert summary.details == {"effective_date": "2025-01-01", "expiry_date": "2027-12-31"}


def test_empty_extraction_yields_empty_proposal() -> None:
    proposal = translate_analysis(AgreementAnalysisPayload())

    assert len(proposal) == 0
    assert proposal.summary.aggregates["total_articles"] == 0

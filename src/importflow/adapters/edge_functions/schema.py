"""Pydantic models describing edge-function payloads."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _to_text(value: object) -> object:
    if isinstance(value, int | float) and not isinstance(value, bool):
        return str(value)
    if isinstance(value, str):
        return value.strip()
    return value


class EdgeBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class EdgeFunctionEnvelope(EdgeBaseModel):
    """``{success, data, error}`` wrapper every analysis function returns."""

    success: bool
    data: Any = None
    error: str | None = None


class RuleParametersPayload(BaseModel):
    # Extra keys are preserved; they are stored verbatim on the rule.
    model_config = ConfigDict(extra="allow")

    rule_type: str
    value: float | str | None = None
    unit: str | None = None
    conditions: str | list[str] | None = None
    enforcement_action: str | None = None


class ClausePayload(EdgeBaseModel):
    clause_number: str
    title: str
    content: str = ""
    clause_type: str = "general"
    is_enforceable: bool = False
    rule_parameters: RuleParametersPayload | None = None

    _normalize_number = field_validator("clause_number", mode="before")(_to_text)


class ArticlePayload(EdgeBaseModel):
    article_number: str
    title: str
    category: str | None = None
    content: str | None = None
    clauses: list[ClausePayload] = Field(default_factory=list["ClausePayload"])

    _normalize_number = field_validator("article_number", mode="before")(_to_text)

    @field_validator("clauses", mode="before")
    @classmethod
    def _null_clauses(cls, value: object) -> object:
        return [] if value is None else value


class AnalysisSummaryPayload(EdgeBaseModel):
    total_articles: int = 0
    total_clauses: int = 0
    enforceable_rules_count: int = 0
    key_provisions: list[str] = Field(default_factory=list["str"])
    effective_date: str | None = None
    expiry_date: str | None = None


class AgreementAnalysisPayload(EdgeBaseModel):
    articles: list[ArticlePayload] = Field(default_factory=list["ArticlePayload"])
    summary: AnalysisSummaryPayload = Field(default_factory=AnalysisSummaryPayload)

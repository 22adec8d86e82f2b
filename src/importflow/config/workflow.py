"""Workflow defaults shared by the import and sync wizards."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final, Literal

from .env import env_choice, env_int

type StoreBackend = Literal["sqlalchemy", "postgrest"]

STORE_BACKENDS: Final[tuple[str, ...]] = ("sqlalchemy", "postgrest")
DEFAULT_RULE_DESCRIPTION_LIMIT: Final[int] = 500
DEFAULT_ENFORCEMENT_ACTION: Final[str] = "warn"
DOCUMENT_ANALYSIS_FUNCTION: Final[str] = "analyze-cba-document"


@dataclass(frozen=True, slots=True)
class WorkflowConfig:
    store_backend: StoreBackend = "sqlalchemy"
    rule_description_limit: int = DEFAULT_RULE_DESCRIPTION_LIMIT
    default_enforcement_action: str = DEFAULT_ENFORCEMENT_ACTION
    analysis_function: str = DOCUMENT_ANALYSIS_FUNCTION


def get_workflow_config() -> WorkflowConfig:
    backend = env_choice("IMPORTFLOW_STORE", STORE_BACKENDS, default="sqlalchemy")
    return WorkflowConfig(
        store_backend="postgrest" if backend == "postgrest" else "sqlalchemy",
        rule_description_limit=env_int(
            "IMPORTFLOW_RULE_DESCRIPTION_LIMIT",
            default=DEFAULT_RULE_DESCRIPTION_LIMIT,
        ),
    )

"""Staged import/sync workflow core.

Layered flow:
1) an oracle turns raw input or a scan scope into a proposal
2) the wizard session seeds a selection set from the proposal
3) the user narrows the selection during review
4) the commit executor writes the selected items one by one
"""

from __future__ import annotations

from .cancellation import CancellationToken
from .commit import CommitError, CommitExecutor, CommitProgress, CommitResult
from .errors import (
    DuplicateKeyError,
    GuardViolationError,
    ImportFlowError,
    InvalidTransitionError,
    OperationCancelledError,
    OracleError,
    RecordWriteError,
    StoreError,
    StoreUnavailableError,
    UnsupportedDocumentError,
    WorkflowError,
)
from .proposal import ItemStatus, Proposal, ProposalSummary, ProposedItem, build_summary
from .selection import SelectionSet
from .workflow import WizardSession, WorkflowState

__all__ = [
    "CancellationToken",
    "CommitError",
    "CommitExecutor",
    "CommitProgress",
    "CommitResult",
    "DuplicateKeyError",
    "GuardViolationError",
    "ImportFlowError",
    "InvalidTransitionError",
    "ItemStatus",
    "OperationCancelledError",
    "OracleError",
    "Proposal",
    "ProposalSummary",
    "ProposedItem",
    "RecordWriteError",
    "SelectionSet",
    "StoreError",
    "StoreUnavailableError",
    "UnsupportedDocumentError",
    "WizardSession",
    "WorkflowError",
    "WorkflowState",
    "build_summary",
]

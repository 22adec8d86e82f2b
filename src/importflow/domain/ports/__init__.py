"""Domain port definitions for adapters."""

from __future__ import annotations

from .observer import LoggingObserver, NoticeLevel, NullObserver, WizardObserver
from .oracle import OracleRequest, ProposalOracle
from .persistence import ItemWriter, Record, RecordStore, WriteKind, WriteOutcome

__all__ = [
    "ItemWriter",
    "LoggingObserver",
    "NoticeLevel",
    "NullObserver",
    "OracleRequest",
    "ProposalOracle",
    "Record",
    "RecordStore",
    "WizardObserver",
    "WriteKind",
    "WriteOutcome",
]

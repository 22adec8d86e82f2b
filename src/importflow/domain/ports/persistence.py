"""Ports for the remote record store and per-item writers."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from importflow.domain.proposal import ProposedItem

type Record = dict[str, object]


@runtime_checkable
class RecordStore(Protocol):
    """Minimal table-oriented contract of the remote data store.

    Every call is its own unit of work; there is no transaction spanning
    several calls. Failures of a single write raise ``RecordWriteError``;
    an unusable store raises ``StoreUnavailableError``.
    """

    async def insert(self, table: str, values: Mapping[str, object]) -> Record: ...

    async def update(
        self,
        table: str,
        *,
        match: Mapping[str, object],
        values: Mapping[str, object],
    ) -> Sequence[Record]: ...

    async def select(
        self,
        table: str,
        *,
        match: Mapping[str, object] | None = None,
    ) -> Sequence[Record]: ...

    async def ping(self) -> None: ...


class WriteKind(StrEnum):
    CREATED = "created"
    UPDATED = "updated"


@dataclass(frozen=True, slots=True, kw_only=True)
class WriteOutcome:
    """What a writer did with one item; handed to the item's children."""

    kind: WriteKind
    record: Record = field(default_factory=dict["str", "object"])
    position: int = 1

    @property
    def record_id(self) -> object:
        return self.record.get("id")


@runtime_checkable
class ItemWriter(Protocol):
    """Writes proposed items (and their children) to the store."""

    async def ensure_ready(self) -> None: ...

    async def write(
        self,
        item: ProposedItem,
        *,
        parent: WriteOutcome | None = None,
        position: int = 1,
    ) -> WriteOutcome: ...


__all__ = ["ItemWriter", "Record", "RecordStore", "WriteKind", "WriteOutcome"]

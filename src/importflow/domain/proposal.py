"""Proposal types returned by an analysis/diff oracle.

A proposal is the read-only contract between:
- the oracle (document extraction, registry diffing)
- the review stage (selection, grouping)
- the commit executor (per-item writes)

It is replaced wholesale on every re-fetch and never mutated in place.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING

from .errors import DuplicateKeyError

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator, Mapping


class ItemStatus(StrEnum):
    """Classification of a proposed item against the stored state."""

    NEW = "new"
    UPDATED = "updated"
    UNCHANGED = "unchanged"


@dataclass(frozen=True, slots=True, kw_only=True)
class ProposedItem:
    """One proposed change, identified by a stable natural key.

    ``children`` are dependent items (e.g. clauses of an article) that are
    written after their parent and are never selectable on their own.
    """

    key: str
    status: ItemStatus
    label: str
    group: str
    kind: str
    payload: Mapping[str, object] = field(default_factory=dict["str", "object"])
    changes: tuple[str, ...] = ()
    children: tuple[ProposedItem, ...] = ()

    def walk(self) -> Iterator[ProposedItem]:
        """Yield this item followed by all descendants, depth first."""

        yield self
        for child in self.children:
            yield from child.walk()


@dataclass(frozen=True, slots=True, kw_only=True)
class ProposalSummary:
    new: int = 0
    updated: int = 0
    unchanged: int = 0
    aggregates: Mapping[str, int] = field(default_factory=dict["str", "int"])
    highlights: tuple[str, ...] = ()
    details: Mapping[str, str] = field(default_factory=dict["str", "str"])

    @property
    def total(self) -> int:
        return self.new + self.updated + self.unchanged


def build_summary(
    items: Iterable[ProposedItem],
    *,
    aggregates: Mapping[str, int] | None = None,
    highlights: Iterable[str] = (),
    details: Mapping[str, str] | None = None,
) -> ProposalSummary:
    """Count top-level items per status and attach domain aggregates."""

    counts = Counter(item.status for item in items)
    return ProposalSummary(
        new=counts[ItemStatus.NEW],
        updated=counts[ItemStatus.UPDATED],
        unchanged=counts[ItemStatus.UNCHANGED],
        aggregates=dict(aggregates or {}),
        highlights=tuple(highlights),
        details=dict(details or {}),
    )


@dataclass(frozen=True, slots=True)
class Proposal:
    items: tuple[ProposedItem, ...]
    summary: ProposalSummary

    def __post_init__(self) -> None:
        seen: set[str] = set()
        for item in self.items:
            for node in item.walk():
                if node.key in seen:
                    raise DuplicateKeyError(node.key)
                seen.add(node.key)

    @classmethod
    def from_items(
        cls,
        items: Iterable[ProposedItem],
        *,
        aggregates: Mapping[str, int] | None = None,
        highlights: Iterable[str] = (),
        details: Mapping[str, str] | None = None,
    ) -> Proposal:
        materialized = tuple(items)
        summary = build_summary(
            materialized,
            aggregates=aggregates,
            highlights=highlights,
            details=details,
        )
        return cls(items=materialized, summary=summary)

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self) -> Iterator[ProposedItem]:
        return iter(self.items)

    def get(self, key: str) -> ProposedItem | None:
        for item in self.items:
            if item.key == key:
                return item
        return None

    def keys(self) -> tuple[str, ...]:
        return tuple(item.key for item in self.items)

    def with_status(self, status: ItemStatus) -> tuple[ProposedItem, ...]:
        return tuple(item for item in self.items if item.status is status)

    def groups(self) -> dict[str, tuple[ProposedItem, ...]]:
        """Group top-level items by their grouping key, in first-seen order."""

        grouped: dict[str, list[ProposedItem]] = {}
        for item in self.items:
            grouped.setdefault(item.group, []).append(item)
        return {group: tuple(members) for group, members in grouped.items()}

    def items_for(self, keys: Iterable[str]) -> tuple[ProposedItem, ...]:
        """Restrict the proposal to ``keys`` while keeping proposal order."""

        wanted = set(keys)
        return tuple(item for item in self.items if item.key in wanted)

"""Contract between the generic wizard session and a concrete workflow."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Sequence

    from importflow.domain.ports.oracle import OracleRequest
    from importflow.domain.ports.persistence import ItemWriter
    from importflow.domain.proposal import Proposal, ProposedItem


@runtime_checkable
class WorkflowVariant[TInput](Protocol):
    """Policy that specialises a wizard session.

    ``eligible`` decides which proposal items may be selected (and are
    selected by default); ``prepare_batch`` turns the selected items into
    the ordered batch handed to the commit executor.
    """

    name: str
    verb: str
    noun: str
    topics: tuple[str, ...]

    def build_request(self, value: TInput) -> OracleRequest: ...

    def eligible(self, item: ProposedItem) -> bool: ...

    def prepare_batch(
        self,
        proposal: Proposal,
        selected: Sequence[ProposedItem],
        *,
        link_target: str | None = None,
    ) -> list[ProposedItem]: ...

    def writer(self) -> ItemWriter: ...

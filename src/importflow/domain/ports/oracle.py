"""Port for the external analysis/diff oracle."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from importflow.domain.cancellation import CancellationToken
    from importflow.domain.proposal import Proposal


@dataclass(frozen=True, slots=True, kw_only=True)
class OracleRequest:
    """Input handed to an oracle: raw user content or a scan scope."""

    raw_input: str | None = None
    scan_scope: frozenset[str] = field(default_factory=frozenset["str"])
    source_name: str | None = None


@runtime_checkable
class ProposalOracle(Protocol):
    """Produce a proposal for ``request``.

    Implementations raise ``OracleError`` when no proposal can be produced.
    """

    async def __call__(
        self,
        request: OracleRequest,
        *,
        token: CancellationToken | None = None,
    ) -> Proposal: ...


__all__ = ["OracleRequest", "ProposalOracle"]

"""Client for the backend's edge functions and the document analysis oracle."""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING, cast

import httpx
from pydantic import ValidationError

from importflow.adapters.http_resilience import ResilientClient
from importflow.config.backend import get_backend_config
from importflow.config.workflow import DOCUMENT_ANALYSIS_FUNCTION
from importflow.domain.errors import DuplicateKeyError, OracleError

from .schema import AgreementAnalysisPayload, EdgeFunctionEnvelope
from .translator import translate_analysis

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from importflow.config.http_resilience import ResilienceConfig
    from importflow.domain.cancellation import CancellationToken
    from importflow.domain.ports.oracle import OracleRequest
    from importflow.domain.proposal import Proposal

log = getLogger(__name__)


class EdgeFunctionError(OracleError):
    """Raised when an edge function fails or reports ``success: false``."""

    def __init__(self, message: str, *, function: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.function = function
        self.status_code = status_code


def _default_resilience_config() -> ResilienceConfig:
    return get_backend_config().functions


def _default_client_factory(config: ResilienceConfig) -> ResilientClient:
    return ResilientClient(config)


@dataclass(slots=True)
class EdgeFunctionClient:
    resilience: ResilienceConfig = field(default_factory=_default_resilience_config)
    client_factory: Callable[[ResilienceConfig], ResilientClient] = field(
        default=_default_client_factory
    )
    _client: ResilientClient | None = field(default=None, init=False, repr=False)

    async def __aenter__(self) -> EdgeFunctionClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._client is not None:
            client, self._client = self._client, None
            await client.aclose()

    def _http(self) -> ResilientClient:
        if self._client is None:
            self._client = self.client_factory(self.resilience)
        return self._client

    async def invoke(self, name: str, body: Mapping[str, object]) -> object:
        """POST ``body`` to the function and return the ``data`` of a successful envelope."""

        try:
            response = await self._http().post(name, json=dict(body))
        except httpx.HTTPError as exc:
            raise EdgeFunctionError(f"Failed to reach {name}: {exc}", function=name) from exc

        if response.is_error:
            raise EdgeFunctionError(
                _error_message(response) or f"{name} failed with HTTP {response.status_code}",
                function=name,
                status_code=response.status_code,
            )

        try:
            envelope = EdgeFunctionEnvelope.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise EdgeFunctionError(f"Unexpected response from {name}", function=name) from exc

        if not envelope.success:
            raise EdgeFunctionError(envelope.error or f"{name} reported failure", function=name)
        return envelope.data


def _error_message(response: httpx.Response) -> str | None:
    try:
        payload = response.json()
    except ValueError:
        return response.text or None
    if isinstance(payload, dict):
        for key in ("error", "message"):
            value = cast("dict[str, object]", payload).get(key)
            if value:
                return str(value)
    return None


@dataclass(slots=True)
class AgreementExtractionOracle:
    """Remote AI extraction of articles, clauses and rules from agreement text."""

    agreement_id: str
    functions: EdgeFunctionClient = field(default_factory=EdgeFunctionClient)
    function_name: str = DOCUMENT_ANALYSIS_FUNCTION

    async def __call__(
        self,
        request: OracleRequest,
        *,
        token: CancellationToken | None = None,
    ) -> Proposal:
        if not request.raw_input:
            raise OracleError("No document content to analyze")

        log.info(
            "Analyzing %s (%s characters)",
            request.source_name or "document",
            len(request.raw_input),
        )
        data = await self.functions.invoke(
            self.function_name,
            {"documentContent": request.raw_input, "agreementId": self.agreement_id},
        )
        if token is not None:
            token.raise_if_cancelled()

        try:
            payload = AgreementAnalysisPayload.model_validate(data)
        except ValidationError as exc:
            raise OracleError(f"Malformed analysis result: {exc.error_count()} error(s)") from exc
        try:
            return translate_analysis(payload)
        except DuplicateKeyError as exc:
            raise OracleError(f"Analysis returned {exc.key!r} more than once") from exc


if TYPE_CHECKING:
    from importflow.domain.ports.oracle import ProposalOracle

    _check: ProposalOracle = AgreementExtractionOracle("agreement")

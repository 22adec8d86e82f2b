"""Record store speaking the PostgREST dialect of the managed backend."""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING, cast

import httpx

from importflow.adapters.http_resilience import ResilientClient
from importflow.config.backend import get_backend_config
from importflow.domain.errors import RecordWriteError, StoreUnavailableError

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping, Sequence

    from importflow.config.http_resilience import ResilienceConfig
    from importflow.domain.ports.persistence import Record

log = getLogger(__name__)

RETURN_REPRESENTATION = {"Prefer": "return=representation"}
_UNAVAILABLE_STATUSES = frozenset({401, 403})
# PostgREST caps unbounded reads at its max-rows setting (1000 on the managed backend).
DEFAULT_PAGE_SIZE = 1000


def _default_resilience_config() -> ResilienceConfig:
    return get_backend_config().rest


def _default_client_factory(config: ResilienceConfig) -> ResilientClient:
    return ResilientClient(config)


def match_params(match: Mapping[str, object]) -> dict[str, str]:
    """Render equality filters as PostgREST ``column=eq.value`` query params."""

    return {name: f"eq.{_literal(value)}" for name, value in match.items()}


def _literal(value: object) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    return str(value)


@dataclass(slots=True)
class PostgrestRecordStore:
    """Record store over the backend REST surface.

    One HTTP client, and therefore one rate limiter, is shared by every call
    until ``aclose()``.
    """

    resilience: ResilienceConfig = field(default_factory=_default_resilience_config)
    client_factory: Callable[[ResilienceConfig], ResilientClient] = field(
        default=_default_client_factory
    )
    page_size: int = DEFAULT_PAGE_SIZE
    _client: ResilientClient | None = field(default=None, init=False, repr=False)

    async def __aenter__(self) -> PostgrestRecordStore:
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

    async def ping(self) -> None:
        # Any table works; the point is to exercise auth and reachability.
        await self._request("GET", "application_features", params={"select": "id", "limit": "1"})

    async def insert(self, table: str, values: Mapping[str, object]) -> Record:
        rows = await self._request(
            "POST",
            table,
            json=dict(values),
            headers=RETURN_REPRESENTATION,
        )
        if not rows:
            raise RecordWriteError(f"Insert into {table} returned no row", table=table)
        return rows[0]

    async def update(
        self,
        table: str,
        *,
        match: Mapping[str, object],
        values: Mapping[str, object],
    ) -> Sequence[Record]:
        if not match:
            raise RecordWriteError("Refusing to update without a match filter", table=table)
        return await self._request(
            "PATCH",
            table,
            params=match_params(match),
            json=dict(values),
            headers=RETURN_REPRESENTATION,
        )

    async def select(
        self,
        table: str,
        *,
        match: Mapping[str, object] | None = None,
    ) -> Sequence[Record]:
        params = {"select": "*", "order": "id.asc", "limit": str(self.page_size)}
        if match:
            params.update(match_params(match))
        rows: list[Record] = []
        while True:
            params["offset"] = str(len(rows))
            try:
                page = await self._request("GET", table, params=params)
            except RecordWriteError as exc:
                raise StoreUnavailableError(f"Could not read {table}: {exc}") from exc
            rows.extend(page)
            if len(page) < self.page_size:
                return rows

    async def _request(
        self,
        method: str,
        table: str,
        *,
        params: Mapping[str, str] | None = None,
        json: object = None,
        headers: Mapping[str, str] | None = None,
    ) -> list[Record]:
        try:
            response = await self._http().request(
                method,
                table,
                params=dict(params) if params else None,
                json=json,
                headers=dict(headers) if headers else None,
            )
        except httpx.HTTPError as exc:
            log.warning("%s %s failed: %s", method, table, exc)
            raise StoreUnavailableError(f"Backend unreachable: {exc}") from exc

        if response.status_code in _UNAVAILABLE_STATUSES:
            raise StoreUnavailableError(
                f"Backend rejected credentials ({response.status_code}): {_error_message(response)}"
            )
        if response.is_error:
            raise RecordWriteError(_error_message(response), table=table)
        if not response.content:
            return []
        payload = response.json()
        if isinstance(payload, list):
            rows = cast("list[Mapping[str, object]]", payload)
            return [dict(row) for row in rows]
        if isinstance(payload, dict):
            return [cast("Record", payload)]
        raise RecordWriteError(f"Unexpected response payload from {table}", table=table)


def _error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(payload, dict):
        data = cast("dict[str, object]", payload)
        message = data.get("message") or data.get("error")
        if message:
            return str(message)
    return response.text or response.reason_phrase


if TYPE_CHECKING:
    from importflow.domain.ports.persistence import RecordStore

    _check: RecordStore = PostgrestRecordStore()

"""
studio.services.integration_client — Test-Query Boundary Call
==============================================================

Forwards a card's test query to the integration service and reports
success, the error text, and wall-clock latency.  This is a thin boundary:
failures come back as a :class:`QueryExecution` value, never as exceptions,
and nothing is retried here.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass

import httpx

from studio.config import StudioConfig

logger = logging.getLogger(__name__)

EXECUTE_QUERY_PATH = "/api/integration/execute-query"


@dataclass(frozen=True, slots=True)
class QueryExecution:
    success: bool
    error_message: str | None = None
    execution_time_ms: float | None = None


def _authorization_header(bearer_token: str | None) -> dict[str, str]:
    token = (bearer_token or "").strip()
    if not token:
        return {}
    if " " not in token:
        token = f"Bearer {token}"
    return {"Authorization": token}


class IntegrationQueryClient:
    """HTTP client for ``POST {base_url}/api/integration/execute-query``.

    *transport* is handed to :class:`httpx.AsyncClient` as-is; tests pass an
    :class:`httpx.MockTransport`.
    """

    def __init__(
        self,
        base_url: str | None,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = (base_url or "").strip().rstrip("/") or None
        self._timeout = timeout
        self._transport = transport

    @classmethod
    def from_config(
        cls, cfg: StudioConfig, transport: httpx.AsyncBaseTransport | None = None
    ) -> IntegrationQueryClient:
        return cls(cfg.integration_service_url, cfg.integration_timeout_seconds, transport)

    @property
    def base_url(self) -> str | None:
        return self._base_url

    async def execute_query(
        self, integration_id: int, query: str, bearer_token: str | None
    ) -> QueryExecution:
        if not self._base_url:
            return QueryExecution(False, "Integration service URL is not configured.")

        url = f"{self._base_url}{EXECUTE_QUERY_PATH}"
        payload = {"integrationId": integration_id, "query": query}
        headers = _authorization_header(bearer_token)

        start = time.perf_counter()
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.post(url, json=payload, headers=headers)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            elapsed = (time.perf_counter() - start) * 1000
            logger.error(
                "Integration service call failed for integration %d: %s", integration_id, exc
            )
            return QueryExecution(False, f"Integration service unavailable: {exc}", elapsed)

        elapsed = (time.perf_counter() - start) * 1000
        if response.is_success:
            return QueryExecution(True, None, elapsed)

        logger.info(
            "Integration query rejected (integration %d, HTTP %d).",
            integration_id, response.status_code,
        )
        return QueryExecution(False, f"Integration query failed: {response.text}", elapsed)

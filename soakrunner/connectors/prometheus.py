"""
Prometheus instant-query metric source.

Each fetch runs ``GET /api/v1/query`` against the configured host. The query
carries a server-side timeout, and the HTTP call has its own, larger bound.
Only single-valued results are accepted: a vector must match exactly one
series, or a scalar must be returned.
"""

from __future__ import annotations

import logging
import math
import time
from typing import Any

import httpx

from soakrunner.connectors.base import MetricSource
from soakrunner.core.errors import MetricFetchError

logger = logging.getLogger(__name__)

QUERY_PATH = "/api/v1/query"


def _format_prom_duration(seconds: float) -> str:
    millis = max(1, int(round(float(seconds) * 1000)))
    if millis % 1000 == 0:
        return f"{millis // 1000}s"
    return f"{millis}ms"


class PrometheusMetricSource(MetricSource):
    """Fetches instant query values from a Prometheus server."""

    def __init__(
        self,
        host: str,
        *,
        query_timeout: float = 5.0,
        call_timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._host = str(host).rstrip("/")
        self._query_timeout = float(query_timeout)
        self._call_timeout = float(call_timeout)
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(self._call_timeout)
        )

    @property
    def host(self) -> str:
        return self._host

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "PrometheusMetricSource":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def fetch(self, query: str) -> float:
        params = {
            "query": query,
            "time": f"{time.time():.3f}",
            "timeout": _format_prom_duration(self._query_timeout),
        }
        try:
            response = await self._client.get(
                f"{self._host}{QUERY_PATH}",
                params=params,
                timeout=self._call_timeout,
            )
        except httpx.TimeoutException as exc:
            raise MetricFetchError(
                f"timeout querying Prometheus: {type(exc).__name__}",
                context={"query": query},
            ) from exc
        except httpx.HTTPError as exc:
            raise MetricFetchError(
                f"error querying Prometheus: {type(exc).__name__}: {exc}",
                context={"query": query},
            ) from exc

        try:
            payload = response.json()
        except ValueError as exc:
            raise MetricFetchError(
                f"invalid JSON from Prometheus (HTTP {response.status_code})",
                context={"query": query},
            ) from exc

        if not isinstance(payload, dict):
            raise MetricFetchError(
                "unexpected Prometheus response shape", context={"query": query}
            )

        status = str(payload.get("status") or "")
        if response.status_code >= 400 or status != "success":
            detail = payload.get("error") or f"HTTP {response.status_code}"
            raise MetricFetchError(
                f"Prometheus query failed: {detail}",
                context={"query": query, "error_type": payload.get("errorType")},
            )

        warnings = payload.get("warnings") or []
        if warnings:
            logger.warning("Prometheus warnings for %r: %s", query, warnings)

        return parse_query_result(payload.get("data") or {}, query=query)


def parse_query_result(data: dict[str, Any], *, query: str = "") -> float:
    """
    Extract a single float from the ``data`` member of a query response.

    Raises:
        MetricFetchError: For empty, ambiguous or unsupported results.
    """
    result_type = str(data.get("resultType") or "")
    result = data.get("result")

    if result_type == "vector":
        samples = list(result or [])
        if len(samples) == 0:
            raise MetricFetchError("no series matched", context={"query": query})
        if len(samples) > 1:
            logger.warning("Too many values for %r: %d", query, len(samples))
            raise MetricFetchError(
                f"ambiguous result: {len(samples)} series",
                context={"query": query},
            )
        sample = samples[0] if isinstance(samples[0], dict) else {}
        return _sample_value(sample.get("value"), query=query)

    if result_type == "scalar":
        return _sample_value(result, query=query)

    raise MetricFetchError(
        f"unsupported result type: {result_type or 'missing'}",
        context={"query": query},
    )


def _sample_value(pair: Any, *, query: str) -> float:
    # Prometheus encodes samples as [<unix ts>, "<value>"].
    if not isinstance(pair, (list, tuple)) or len(pair) != 2:
        raise MetricFetchError("malformed sample", context={"query": query})
    try:
        value = float(pair[1])
    except (TypeError, ValueError) as exc:
        raise MetricFetchError(
            f"non-numeric sample value: {pair[1]!r}", context={"query": query}
        ) from exc
    if math.isnan(value):
        raise MetricFetchError("sample value is NaN", context={"query": query})
    return value

"""API reliability prober.

Fires the probe battery at the external market data providers, records the
outcome of every call as data, aggregates per-provider summaries, ranks the
providers and derives recommendations.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from collections import OrderedDict
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

import httpx

from ..config import DEFAULT_USER_AGENT, ProberConfig
from ..exceptions import ProbeRunException
from .battery import DEFAULT_BATTERY, ProbeSpec
from .models import (
    EndpointOutcome,
    ProbeFailure,
    ProbeReport,
    ProbeResult,
    ProbeSuccess,
    ProviderSummary,
    ReportSummary,
)
from .quality import QualityRegistry, default_registry
from .recommendations import WORKING_THRESHOLD_PERCENT, is_working, rank_providers, recommend

logger = logging.getLogger(__name__)

TRUNCATION_MARKER = "..."


class ProberState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    AGGREGATING = "aggregating"
    REPORTED = "reported"


def truncate_payload(data: Any, limit: int = 1000) -> str:
    """Serialize to JSON and cap the text at `limit` characters plus an ellipsis marker."""
    if isinstance(data, str):
        text = data
    else:
        try:
            text = json.dumps(data, default=str)
        except (TypeError, ValueError):
            text = repr(data)
    if len(text) > limit:
        return text[:limit] + TRUNCATION_MARKER
    return text


def summarize_results(
    results: Sequence[ProbeResult],
    threshold: float = WORKING_THRESHOLD_PERCENT,
) -> Tuple[Dict[str, ProviderSummary], List[ProviderSummary], List[str]]:
    """Group probe results by provider.

    Returns:
        (summaries keyed by provider in first-seen order,
         working providers ranked best first,
         names of providers that are not working)
    """
    grouped: "OrderedDict[str, List[ProbeResult]]" = OrderedDict()
    for result in results:
        grouped.setdefault(result.provider, []).append(result)

    summaries: Dict[str, ProviderSummary] = {}
    for provider, provider_results in grouped.items():
        successes = [r for r in provider_results if r.succeeded]
        total = len(provider_results)

        summaries[provider] = ProviderSummary(
            provider=provider,
            total_calls=total,
            success_count=len(successes),
            failure_count=total - len(successes),
            success_rate_percent=(len(successes) / total * 100) if total else None,
            average_latency_ms=(
                sum(r.latency_ms for r in successes) / len(successes) if successes else None
            ),
            endpoint_breakdown=[
                EndpointOutcome(
                    name=r.endpoint_name,
                    status=r.outcome.status,
                    latency_ms=r.latency_ms,
                    completeness_score=r.completeness_score,
                )
                for r in provider_results
            ],
        )

    working = rank_providers(s for s in summaries.values() if is_working(s, threshold))
    working_names = {s.provider for s in working}
    failed = [name for name in summaries if name not in working_names]
    return summaries, working, failed


class ApiReliabilityProber:
    """Runs the probe battery and builds a ProbeReport.

    The HTTP client is injected by the caller; when omitted the prober
    builds one on first use and closes it in ``close()``. One prober runs
    one battery at a time.

    Example:
        async with httpx.AsyncClient() as http:
            prober = ApiReliabilityProber(client=http)
            report = await prober.run_all_probes()
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        config: Optional[ProberConfig] = None,
        battery: Optional[Sequence[ProbeSpec]] = None,
        quality_registry: Optional[QualityRegistry] = None,
    ):
        self._client = client
        self._owns_client = client is None
        self._config = config or ProberConfig()
        self._battery = list(battery if battery is not None else DEFAULT_BATTERY)
        self._quality = quality_registry or default_registry()
        self._results: List[ProbeResult] = []
        self.state = ProberState.IDLE

    @property
    def results(self) -> List[ProbeResult]:
        return list(self._results)

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            try:
                self._client = httpx.AsyncClient(follow_redirects=True)
            except Exception as e:
                raise ProbeRunException(f"Cannot construct HTTP client: {e}") from e
        return self._client

    async def probe_endpoint(
        self,
        provider: str,
        endpoint_name: str,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> ProbeResult:
        """Issue one GET and capture its outcome as data. Never raises for call failures.

        The result is returned, not recorded; run_all_probes collects results
        in battery order.
        """
        client = self._ensure_client()
        limit = self._config.payload_truncate_chars
        request_headers = {"User-Agent": self._config.user_agent or DEFAULT_USER_AGENT}
        request_headers.update(headers or {})

        outcome: ProbeSuccess | ProbeFailure
        response: Optional[httpx.Response] = None
        requested_at = datetime.now(timezone.utc)
        start = time.perf_counter()
        try:
            response = await client.get(
                url,
                params=params or None,
                headers=request_headers,
                timeout=self._config.timeout_seconds,
            )
            response.raise_for_status()
            payload = response.json()
            outcome = ProbeSuccess(
                status_code=response.status_code,
                payload_summary=truncate_payload(payload, limit),
                quality=self._quality.assess(provider, endpoint_name, payload),
            )
        except httpx.HTTPStatusError as e:
            outcome = ProbeFailure(
                status_code=e.response.status_code,
                error_message=str(e),
                error_code=type(e).__name__,
                error_response=self._error_body(e.response, limit),
            )
        except httpx.HTTPError as e:
            outcome = ProbeFailure(
                error_message=str(e) or type(e).__name__,
                error_code=type(e).__name__,
            )
        except ValueError as e:
            # 2xx with a body that is not JSON
            outcome = ProbeFailure(
                status_code=response.status_code if response is not None else None,
                error_message=f"Invalid JSON payload: {e}",
                error_code="InvalidJSON",
                error_response=self._error_body(response, limit),
            )
        except Exception as e:
            logger.exception(
                f"Unexpected error probing {provider} - {endpoint_name}",
                extra={"event_type": "probe_unexpected_error", "provider": provider, "endpoint": endpoint_name},
            )
            outcome = ProbeFailure(error_message=str(e) or type(e).__name__, error_code=type(e).__name__)
        latency_ms = max(0, int(round((time.perf_counter() - start) * 1000)))

        result = ProbeResult(
            provider=provider,
            endpoint_name=endpoint_name,
            url=url,
            requested_at=requested_at,
            latency_ms=latency_ms,
            outcome=outcome,
        )

        log = logger.info if result.succeeded else logger.warning
        log(
            f"Tested {provider} - {endpoint_name}: {outcome.status} ({latency_ms}ms)",
            extra={
                "event_type": "probe_result",
                "provider": provider,
                "endpoint": endpoint_name,
                "latency_ms": latency_ms,
                "status_code": outcome.status_code,
            },
        )
        return result

    async def _probe_spec(self, spec: ProbeSpec) -> ProbeResult:
        return await self.probe_endpoint(
            spec.provider,
            spec.endpoint_name,
            spec.url,
            spec.resolve_params(),
            spec.headers,
        )

    async def run_all_probes(self, concurrent: bool = False) -> ProbeReport:
        """Run the whole battery and return the report.

        Args:
            concurrent: Dispatch all probes at once instead of one after another.
                Results keep battery order either way.
        """
        if self.state in (ProberState.RUNNING, ProberState.AGGREGATING):
            raise ProbeRunException("A probe run is already in progress")

        self._ensure_client()
        self._results = []
        self.state = ProberState.RUNNING
        logger.info(
            f"Starting API probe run: {len(self._battery)} probes",
            extra={"event_type": "probe_run_start"},
        )

        try:
            if concurrent:
                # gather returns results in battery order regardless of completion order
                results = list(await asyncio.gather(*(self._probe_spec(spec) for spec in self._battery)))
            else:
                results = [await self._probe_spec(spec) for spec in self._battery]
            self._results = results

            self.state = ProberState.AGGREGATING
            report = self.build_report(self._results)
        except BaseException:
            self.state = ProberState.IDLE
            raise

        self.state = ProberState.REPORTED
        logger.info(
            f"Probe run complete: {len(report.summary.working_providers)} working, "
            f"{len(report.summary.failed_providers)} failed",
            extra={"event_type": "probe_run_complete"},
        )
        return report

    def summarize(
        self, results: Optional[Sequence[ProbeResult]] = None
    ) -> Tuple[Dict[str, ProviderSummary], List[ProviderSummary], List[str]]:
        return summarize_results(
            self._results if results is None else results,
            self._config.working_threshold_percent,
        )

    def build_report(self, results: Sequence[ProbeResult]) -> ProbeReport:
        summaries, working, failed = self.summarize(results)
        return ProbeReport(
            tests=list(results),
            summary=ReportSummary(
                total_providers=len(summaries),
                working_providers=[s.provider for s in working],
                failed_providers=failed,
                provider_details=summaries,
            ),
            recommendations=recommend(working, failed),
        )

    @staticmethod
    def _error_body(response: Optional[httpx.Response], limit: int) -> Optional[str]:
        if response is None or not response.content:
            return None
        try:
            return truncate_payload(response.json(), limit)
        except ValueError:
            return truncate_payload(response.text, limit)

    async def close(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self):
        self._ensure_client()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

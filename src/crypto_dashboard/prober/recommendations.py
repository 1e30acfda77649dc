"""Provider ranking and advisory recommendations."""

from __future__ import annotations

import math
from typing import Iterable, List, Sequence

from .battery import BINANCE, COINGECKO
from .models import ProviderSummary, Recommendation, RecommendationKind

WORKING_THRESHOLD_PERCENT = 50.0


def is_working(summary: ProviderSummary, threshold: float = WORKING_THRESHOLD_PERCENT) -> bool:
    return summary.success_rate_percent is not None and summary.success_rate_percent >= threshold


def rank_providers(summaries: Iterable[ProviderSummary]) -> List[ProviderSummary]:
    """Order by success rate descending, then average latency ascending.

    The sort is stable, so equal providers keep their input order.
    """
    def key(summary: ProviderSummary):
        rate = summary.success_rate_percent if summary.success_rate_percent is not None else -1.0
        latency = summary.average_latency_ms if summary.average_latency_ms is not None else math.inf
        return (-rate, latency)

    return sorted(summaries, key=key)


def recommend(
    working: Sequence[ProviderSummary],
    failed: Sequence[str],
    rate_limited_provider: str = COINGECKO,
    geo_restricted_provider: str = BINANCE,
) -> List[Recommendation]:
    """
    Derive recommendations from ranked working providers and failed provider names.

    `working` must already be ranked (see rank_providers).

    The geo-block warning fires whenever `geo_restricted_provider` failed. That is
    a narrow heuristic carried over from observed regional blocking of that
    exchange; the failure may equally be an outage or a network problem.
    """
    recommendations: List[Recommendation] = []

    if not working:
        recommendations.append(Recommendation(
            kind=RecommendationKind.NO_WORKING_PROVIDERS,
            message="No APIs are working reliably. Consider using VPN or different network.",
            action="Check network restrictions and try alternative endpoints",
        ))
    else:
        primary = working[0]
        recommendations.append(Recommendation(
            kind=RecommendationKind.USE_PRIMARY,
            provider=primary.provider,
            success_rate_percent=primary.success_rate_percent,
            average_latency_ms=primary.average_latency_ms,
            message=f"Use {primary.provider} as primary API",
            action=(
                f"{primary.provider} has {primary.success_rate_percent:.1f}% success rate "
                f"with {_format_latency(primary.average_latency_ms)} average response time"
            ),
        ))

        if len(working) > 1:
            backups = [s.provider for s in working[1:]]
            recommendations.append(Recommendation(
                kind=RecommendationKind.USE_FALLBACK_CHAIN,
                providers=backups,
                message="Implement fallback chain",
                action=f"Use {', '.join(backups)} as backup sources",
            ))

    if any(s.provider == rate_limited_provider for s in working):
        recommendations.append(Recommendation(
            kind=RecommendationKind.RATE_LIMIT_ADVICE,
            provider=rate_limited_provider,
            message=f"{rate_limited_provider} rate limiting",
            action="Use 3-5 second delays between requests to avoid 429 errors",
        ))

    if geo_restricted_provider in failed:
        recommendations.append(Recommendation(
            kind=RecommendationKind.GEO_BLOCK_WARNING,
            provider=geo_restricted_provider,
            message=f"{geo_restricted_provider} API possibly blocked",
            action=(
                "Failures may indicate geographic restrictions (unverified heuristic). "
                f"Avoid {geo_restricted_provider} API or use VPN"
            ),
        ))

    return recommendations


def _format_latency(latency_ms) -> str:
    return "n/a" if latency_ms is None else f"{latency_ms:.0f}ms"

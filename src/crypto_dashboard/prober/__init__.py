"""API reliability prober.

Contains:
- ApiReliabilityProber: Runs the probe battery and builds the report
- QualityRegistry: (provider, endpoint) -> required-field predicate
- recommend / rank_providers: Ranking and advisory output
- format_report / save_report: Console and JSON output
"""

from .battery import DEFAULT_BATTERY, PROVIDERS, ProbeSpec
from .models import (
    EndpointOutcome,
    ProbeFailure,
    ProbeReport,
    ProbeResult,
    ProbeSuccess,
    ProviderSummary,
    QualityAssessment,
    Recommendation,
    RecommendationKind,
    ReportSummary,
)
from .prober import ApiReliabilityProber, ProberState, summarize_results, truncate_payload
from .quality import QualityRegistry, completeness_score, default_registry
from .recommendations import is_working, rank_providers, recommend
from .reporting import format_report, save_report

__all__ = [
    # Models
    "ProbeResult",
    "ProbeSuccess",
    "ProbeFailure",
    "QualityAssessment",
    "EndpointOutcome",
    "ProviderSummary",
    "Recommendation",
    "RecommendationKind",
    "ReportSummary",
    "ProbeReport",
    # Battery
    "ProbeSpec",
    "DEFAULT_BATTERY",
    "PROVIDERS",
    # Prober
    "ApiReliabilityProber",
    "ProberState",
    "summarize_results",
    "truncate_payload",
    # Quality
    "QualityRegistry",
    "default_registry",
    "completeness_score",
    # Ranking
    "is_working",
    "rank_providers",
    "recommend",
    # Output
    "format_report",
    "save_report",
]

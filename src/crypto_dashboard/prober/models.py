"""
Pydantic models for probe results, provider summaries and the JSON report.

Field names here are the report file contract; downstream consumers read them
as-is, so renames are breaking changes.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, NonNegativeInt


def _utc_now() -> datetime:
    """Return current UTC datetime."""
    return datetime.now(timezone.utc)


# =============================================================================
# Single probe
# =============================================================================

class QualityAssessment(BaseModel):
    """Shape check of a successful payload. Immutable once computed."""
    model_config = ConfigDict(frozen=True)

    has_required_fields: bool = False
    field_count: NonNegativeInt = 0
    completeness_score: Literal[0, 50, 100] = 0
    issues: List[str] = Field(default_factory=list)


class ProbeSuccess(BaseModel):
    status: Literal["success"] = "success"
    status_code: int
    payload_summary: str
    quality: QualityAssessment


class ProbeFailure(BaseModel):
    status: Literal["failed"] = "failed"
    status_code: Optional[int] = None
    error_message: str
    error_code: Optional[str] = None
    error_response: Optional[str] = None


ProbeOutcome = Annotated[Union[ProbeSuccess, ProbeFailure], Field(discriminator="status")]


class ProbeResult(BaseModel):
    """Outcome of one HTTP call against one provider endpoint."""
    provider: str
    endpoint_name: str
    url: str
    requested_at: datetime = Field(default_factory=_utc_now)
    latency_ms: NonNegativeInt
    outcome: ProbeOutcome

    @property
    def succeeded(self) -> bool:
        return isinstance(self.outcome, ProbeSuccess)

    @property
    def completeness_score(self) -> Optional[int]:
        if isinstance(self.outcome, ProbeSuccess):
            return self.outcome.quality.completeness_score
        return None


# =============================================================================
# Aggregation
# =============================================================================

class EndpointOutcome(BaseModel):
    """Per-endpoint line in a provider summary."""
    name: str
    status: Literal["success", "failed"]
    latency_ms: int
    completeness_score: Optional[int] = None


class ProviderSummary(BaseModel):
    """Aggregate over all probes of one provider in a single run."""
    provider: str
    total_calls: int = 0
    success_count: int = 0
    failure_count: int = 0
    success_rate_percent: Optional[float] = None
    average_latency_ms: Optional[float] = None
    endpoint_breakdown: List[EndpointOutcome] = Field(default_factory=list)


# =============================================================================
# Recommendations
# =============================================================================

class RecommendationKind(str, Enum):
    NO_WORKING_PROVIDERS = "no_working_providers"
    USE_PRIMARY = "use_primary"
    USE_FALLBACK_CHAIN = "use_fallback_chain"
    RATE_LIMIT_ADVICE = "rate_limit_advice"
    GEO_BLOCK_WARNING = "geo_block_warning"


class Recommendation(BaseModel):
    kind: RecommendationKind
    message: str
    action: str
    provider: Optional[str] = None
    providers: List[str] = Field(default_factory=list)
    success_rate_percent: Optional[float] = None
    average_latency_ms: Optional[float] = None


# =============================================================================
# Report
# =============================================================================

class ReportSummary(BaseModel):
    total_providers: int = 0
    working_providers: List[str] = Field(default_factory=list)
    failed_providers: List[str] = Field(default_factory=list)
    provider_details: Dict[str, ProviderSummary] = Field(default_factory=dict)


class ProbeReport(BaseModel):
    """Full output of one prober run."""
    timestamp: datetime = Field(default_factory=_utc_now)
    tests: List[ProbeResult] = Field(default_factory=list)
    summary: ReportSummary = Field(default_factory=ReportSummary)
    recommendations: List[Recommendation] = Field(default_factory=list)

    @property
    def has_working_provider(self) -> bool:
        return bool(self.summary.working_providers)

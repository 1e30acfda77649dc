"""
Console formatting and persistence of probe reports.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Union

from .models import ProbeReport, RecommendationKind

logger = logging.getLogger(__name__)

RULE = "=" * 80

RECOMMENDATION_ICONS = {
    RecommendationKind.NO_WORKING_PROVIDERS: "🚨",
    RecommendationKind.USE_PRIMARY: "🏆",
    RecommendationKind.USE_FALLBACK_CHAIN: "🔄",
    RecommendationKind.RATE_LIMIT_ADVICE: "💡",
    RecommendationKind.GEO_BLOCK_WARNING: "⚠️",
}


def _fmt(value, spec: str, suffix: str = "") -> str:
    if value is None:
        return "n/a"
    return f"{value:{spec}}{suffix}"


def format_report(report: ProbeReport) -> str:
    """
    Render the report as the plain-text summary printed after a run.

    Args:
        report: Completed probe report

    Returns:
        Multi-line string
    """
    summary = report.summary
    lines = [
        RULE,
        "📊 API TEST RESULTS SUMMARY",
        RULE,
        "",
        "📈 Overall Statistics:",
        f"   Total APIs tested: {summary.total_providers}",
        f"   Working APIs: {len(summary.working_providers)}",
        f"   Failed APIs: {len(summary.failed_providers)}",
        "",
        "🔍 API Details:",
    ]

    for name, details in summary.provider_details.items():
        lines.extend([
            "",
            f"   {name}:",
            f"     Success Rate: {_fmt(details.success_rate_percent, '.1f', '%')}",
            f"     Avg Response Time: {_fmt(details.average_latency_ms, '.0f', 'ms')}",
            f"     Working Endpoints: {details.success_count}/{details.total_calls}",
        ])

    lines.extend(["", "💡 Recommendations:"])
    for rec in report.recommendations:
        icon = RECOMMENDATION_ICONS.get(rec.kind, "💡")
        lines.append(f"   {icon} {rec.message}")
        lines.append(f"      → {rec.action}")

    lines.extend(["", RULE])
    return "\n".join(lines)


def save_report(report: ProbeReport, path: Union[str, os.PathLike]) -> Path:
    """Write the report as indented JSON and return the path written."""
    target = Path(path)
    if target.parent and not target.parent.exists():
        target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(report.model_dump_json(indent=2), encoding="utf-8")
    logger.info(f"Results saved to {target}", extra={"event_type": "report_saved"})
    return target

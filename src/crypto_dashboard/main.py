from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import Optional, Sequence

import httpx

from .config import AppConfig, load_config
from .exceptions import CryptoDashboardException
from .logging_config import setup_logging
from .prober import ApiReliabilityProber, ProbeReport, format_report, save_report

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_NO_WORKING_PROVIDERS = 1


async def run_probe(cfg: AppConfig, output_path: Optional[str] = None) -> ProbeReport:
    """Run the probe battery with a process-scoped HTTP client and persist the report."""
    async with httpx.AsyncClient(follow_redirects=True) as client:
        prober = ApiReliabilityProber(client=client, config=cfg.prober)
        report = await prober.run_all_probes()

    print(format_report(report))
    save_report(report, output_path or cfg.prober.output_path)
    return report


def exit_code_for(report: ProbeReport) -> int:
    return EXIT_OK if report.has_working_provider else EXIT_NO_WORKING_PROVIDERS


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point with proper error handling"""
    parser = argparse.ArgumentParser(description="Crypto market data API reliability probe")
    parser.add_argument("--config", default="config.yaml", help="Path to YAML config")
    parser.add_argument("--output", default=None, help="Where to write the JSON report")
    parser.add_argument("--log-level", default=None, help="Override log level (DEBUG, INFO, ...)")
    args = parser.parse_args(argv)

    try:
        cfg = load_config(args.config)
    except CryptoDashboardException as e:
        setup_logging("INFO")
        logger.error(f"Configuration error: {e}", extra={"event_type": "config_error"})
        return EXIT_NO_WORKING_PROVIDERS

    setup_logging(args.log_level or cfg.logging.level, cfg.logging.file)
    logger.info("Testing which APIs work reliably from your location...")

    try:
        report = asyncio.run(run_probe(cfg, args.output))
    except Exception as e:
        logger.error(f"Probe run failed: {e}", extra={"event_type": "probe_run_error"})
        return EXIT_NO_WORKING_PROVIDERS

    code = exit_code_for(report)
    if code == EXIT_OK:
        logger.info(f"Found {len(report.summary.working_providers)} working API(s)")
    else:
        logger.error("No APIs are working. Check your network connection.")
    return code


if __name__ == "__main__":
    sys.exit(main())

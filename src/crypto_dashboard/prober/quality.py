"""Payload quality checks keyed by (provider, endpoint).

Each predicate inspects a decoded JSON payload and returns
``(has_required_fields, field_count)``. Pairs without a registered predicate
score as having no required fields and no counted fields.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Optional, Tuple

from .models import QualityAssessment

logger = logging.getLogger(__name__)

QualityPredicate = Callable[[Any], Tuple[bool, int]]


def completeness_score(has_required_fields: bool, field_count: int) -> int:
    """0 = no fields, 50 = fields but required ones missing, 100 = required fields present."""
    if field_count <= 0:
        return 0
    return 100 if has_required_fields else 50


class QualityRegistry:
    """Mapping of (provider, endpoint) to a required-field predicate.

    Example:
        registry = QualityRegistry()
        registry.register("Binance", "ticker", lambda d: (bool(d.get("price")), len(d)))
        quality = registry.assess("Binance", "ticker", payload)
    """

    def __init__(self, predicates: Optional[Dict[Tuple[str, str], QualityPredicate]] = None):
        self._predicates: Dict[Tuple[str, str], QualityPredicate] = dict(predicates or {})

    def register(self, provider: str, endpoint: str, predicate: QualityPredicate) -> None:
        self._predicates[(provider, endpoint)] = predicate

    def get(self, provider: str, endpoint: str) -> Optional[QualityPredicate]:
        return self._predicates.get((provider, endpoint))

    def __contains__(self, key: Tuple[str, str]) -> bool:
        return key in self._predicates

    def __len__(self) -> int:
        return len(self._predicates)

    def assess(self, provider: str, endpoint: str, payload: Any) -> QualityAssessment:
        """Run the predicate for this pair; predicate errors become issues, never exceptions."""
        predicate = self._predicates.get((provider, endpoint))
        if predicate is None:
            return QualityAssessment()

        try:
            has_required, field_count = predicate(payload)
        except Exception as e:
            logger.warning(
                f"Quality analysis failed for {provider} {endpoint}: {e}",
                extra={"event_type": "quality_analysis_error", "provider": provider, "endpoint": endpoint},
            )
            return QualityAssessment(issues=[f"Data analysis error: {e}"])

        has_required = bool(has_required)
        field_count = max(0, int(field_count))
        return QualityAssessment(
            has_required_fields=has_required,
            field_count=field_count,
            completeness_score=completeness_score(has_required, field_count),
        )


def _coingecko_global(payload: Any) -> Tuple[bool, int]:
    data = (payload or {}).get("data") or {}
    has_required = bool(
        (data.get("market_cap_percentage") or {}).get("btc")
        and (data.get("total_market_cap") or {}).get("usd")
    )
    return has_required, len(data)


def _coingecko_prices(payload: Any) -> Tuple[bool, int]:
    payload = payload or {}
    has_required = bool(
        (payload.get("bitcoin") or {}).get("usd")
        and (payload.get("ethereum") or {}).get("usd")
    )
    return has_required, len(payload)


def _binance_ticker(payload: Any) -> Tuple[bool, int]:
    payload = payload or {}
    return bool(payload.get("symbol") and payload.get("price")), len(payload)


def _binance_24hr_ticker(payload: Any) -> Tuple[bool, int]:
    payload = payload or {}
    return bool(payload.get("symbol") and payload.get("lastPrice")), len(payload)


def _cryptocompare_price(payload: Any) -> Tuple[bool, int]:
    payload = payload or {}
    return bool(payload.get("USD")), len(payload)


def _coincap_assets(payload: Any) -> Tuple[bool, int]:
    assets = (payload or {}).get("data") or []
    first = assets[0] if assets else {}
    return bool(first.get("id") and first.get("priceUsd")), len(first)


def default_registry() -> QualityRegistry:
    """Registry with the predicates for the default probe battery."""
    return QualityRegistry({
        ("CoinGecko", "global"): _coingecko_global,
        ("CoinGecko", "prices"): _coingecko_prices,
        ("Binance", "ticker"): _binance_ticker,
        ("Binance", "24hr_ticker"): _binance_24hr_ticker,
        ("CryptoCompare", "price"): _cryptocompare_price,
        ("CoinCap", "assets"): _coincap_assets,
    })

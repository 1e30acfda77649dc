"""Tests for provider ranking and recommendations."""

from typing import Optional

from crypto_dashboard.prober import (
    ProviderSummary,
    RecommendationKind,
    is_working,
    rank_providers,
    recommend,
)


def summary(provider: str, rate: Optional[float], latency: Optional[float]) -> ProviderSummary:
    return ProviderSummary(
        provider=provider,
        total_calls=2,
        success_count=0,
        failure_count=0,
        success_rate_percent=rate,
        average_latency_ms=latency,
    )


def kinds(recommendations):
    return [r.kind for r in recommendations]


class TestIsWorking:
    def test_threshold_is_inclusive(self):
        assert is_working(summary("A", 50.0, 100.0))
        assert not is_working(summary("A", 49.9, 100.0))

    def test_no_calls_is_not_working(self):
        assert not is_working(summary("A", None, None))

    def test_custom_threshold(self):
        assert not is_working(summary("A", 60.0, 10.0), threshold=75.0)


class TestRankProviders:
    def test_higher_rate_first(self):
        ranked = rank_providers([summary("Low", 60.0, 10.0), summary("High", 100.0, 900.0)])

        assert [s.provider for s in ranked] == ["High", "Low"]

    def test_equal_rate_lower_latency_first(self):
        ranked = rank_providers([summary("Slow", 100.0, 500.0), summary("Fast", 100.0, 120.0)])

        assert [s.provider for s in ranked] == ["Fast", "Slow"]

    def test_ties_keep_input_order(self):
        ranked = rank_providers([summary("First", 100.0, 200.0), summary("Second", 100.0, 200.0)])

        assert [s.provider for s in ranked] == ["First", "Second"]

    def test_missing_latency_sorts_last_within_rate(self):
        ranked = rank_providers([summary("Unknown", 100.0, None), summary("Known", 100.0, 300.0)])

        assert [s.provider for s in ranked] == ["Known", "Unknown"]

    def test_pairwise_order_holds(self):
        ranked = rank_providers([
            summary("C", 75.0, 50.0),
            summary("A", 100.0, 400.0),
            summary("D", 50.0, 10.0),
            summary("B", 100.0, 800.0),
        ])

        for better, worse in zip(ranked, ranked[1:]):
            assert (better.success_rate_percent > worse.success_rate_percent) or (
                better.success_rate_percent == worse.success_rate_percent
                and better.average_latency_ms <= worse.average_latency_ms
            )


class TestRecommend:
    def test_no_working_providers(self):
        recs = recommend([], ["CryptoCompare", "CoinCap"])

        assert kinds(recs) == [RecommendationKind.NO_WORKING_PROVIDERS]

    def test_single_working_provider_has_no_fallback_chain(self):
        recs = recommend([summary("CryptoCompare", 100.0, 150.0)], ["CoinCap"])

        assert kinds(recs) == [RecommendationKind.USE_PRIMARY]
        assert recs[0].provider == "CryptoCompare"
        assert recs[0].success_rate_percent == 100.0
        assert "150ms" in recs[0].action

    def test_fallback_chain_lists_the_rest_in_rank_order(self):
        working = rank_providers([
            summary("CoinCap", 100.0, 300.0),
            summary("CryptoCompare", 100.0, 100.0),
            summary("YahooFinance", 66.7, 50.0),
        ])

        recs = recommend(working, [])

        assert kinds(recs) == [RecommendationKind.USE_PRIMARY, RecommendationKind.USE_FALLBACK_CHAIN]
        assert recs[0].provider == "CryptoCompare"
        assert recs[1].providers == ["CoinCap", "YahooFinance"]

    def test_rate_limit_advice_when_coingecko_works(self):
        recs = recommend([summary("CoinGecko", 100.0, 400.0)], [])

        assert RecommendationKind.RATE_LIMIT_ADVICE in kinds(recs)

    def test_no_rate_limit_advice_when_coingecko_failed(self):
        recs = recommend([summary("CryptoCompare", 100.0, 400.0)], ["CoinGecko"])

        assert RecommendationKind.RATE_LIMIT_ADVICE not in kinds(recs)

    def test_geo_block_warning_when_binance_failed(self):
        recs = recommend([], ["Binance"])

        assert kinds(recs) == [
            RecommendationKind.NO_WORKING_PROVIDERS,
            RecommendationKind.GEO_BLOCK_WARNING,
        ]
        assert recs[-1].provider == "Binance"

    def test_no_geo_block_warning_when_binance_works(self):
        recs = recommend([summary("Binance", 100.0, 80.0)], [])

        assert RecommendationKind.GEO_BLOCK_WARNING not in kinds(recs)

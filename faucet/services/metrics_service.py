"""Prometheus text exposition of faucet statistics.

Values are read from the counter store on every scrape, so all workers
report the same numbers. A fresh registry is built per render; nothing is
registered on the process-global default registry.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Iterable

from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, generate_latest
from prometheus_client.core import CounterMetricFamily, GaugeMetricFamily, Metric

from faucet.schemas.faucet import FaucetStats, HealthStatus

METRICS_CONTENT_TYPE = CONTENT_TYPE_LATEST


class FaucetStatsCollector:
    """Custom collector yielding a snapshot of stats and health."""

    def __init__(self, stats: FaucetStats, health: HealthStatus) -> None:
        self.stats = stats
        self.health = health

    def collect(self) -> Iterable[Metric]:
        yield CounterMetricFamily(
            "faucet_requests_total",
            "Requests that reached the treasury balance check.",
            value=self.stats.total_requests,
        )
        yield CounterMetricFamily(
            "faucet_requests_successful_total",
            "Requests that resulted in a confirmed transfer.",
            value=self.stats.successful_requests,
        )
        yield CounterMetricFamily(
            "faucet_requests_failed_total",
            "Requests that failed at the balance check or on chain.",
            value=self.stats.failed_requests,
        )
        yield CounterMetricFamily(
            "faucet_tokens_distributed_total",
            "Native currency distributed, in whole units.",
            value=float(Decimal(self.stats.total_distributed)),
        )
        yield GaugeMetricFamily(
            "faucet_balance",
            "Treasury balance in whole units.",
            value=float(Decimal(self.stats.faucet_balance)),
        )
        yield GaugeMetricFamily(
            "faucet_healthy",
            "1 when both the chain endpoint and the counter store are reachable.",
            value=1 if self.health.healthy else 0,
        )


def render_metrics(stats: FaucetStats, health: HealthStatus) -> bytes:
    """Render the Prometheus text format for one snapshot."""
    registry = CollectorRegistry()
    registry.register(FaucetStatsCollector(stats, health))
    return generate_latest(registry)

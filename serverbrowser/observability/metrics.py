"""Prometheus metrics for the ingestion core."""

from prometheus_client import Counter, Gauge, Summary

refresh_total = Counter(
    'serverbrowser_refresh',
    'Number of refresh cycles by outcome',
    ['outcome'])

fetch_failures = Counter(
    'serverbrowser_fetch_failures',
    'Number of failed upstream fetches by kind',
    ['kind'])

refresh_skipped = Counter(
    'serverbrowser_refresh_skipped',
    'Number of scheduler ticks skipped because a refresh was running')

samples_rejected = Counter(
    'serverbrowser_samples_rejected',
    'Number of history samples dropped for non-increasing timestamps')

samples_evicted = Counter(
    'serverbrowser_samples_evicted',
    'Number of history samples removed by retention')

servers = Gauge(
    'serverbrowser_servers',
    'Number of servers in the current snapshot')

tracked_series = Gauge(
    'serverbrowser_tracked_series',
    'Number of servers with retained history')

snapshot_generation = Gauge(
    'serverbrowser_snapshot_generation',
    'Generation of the current snapshot')

refresh_duration = Summary(
    'serverbrowser_refresh_duration_seconds',
    'Duration of refresh cycles')
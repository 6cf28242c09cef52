"""Observability: structured logging and Prometheus metrics.

Logging goes through structlog; audit throughput and write failures are
exported as Prometheus counters and histograms.
"""

"""Prometheus instruments.

Instruments register in the default registry under the ``neuralmetrics_``
prefix, so ``generate_latest()`` exposes all of them without extra wiring.
"""

from __future__ import annotations

import re
from typing import Optional, Sequence

from prometheus_client import Counter, Gauge, Histogram

PREFIX = "neuralmetrics"
_VALID_NAME = re.compile(r"^[a-z_][a-z0-9_]*$")


def metric_name(name: str) -> str:
    full = name if name.startswith(f"{PREFIX}_") else f"{PREFIX}_{name}"
    if not _VALID_NAME.match(full):
        raise ValueError(f"Metric name {full!r} must be snake_case")
    return full


def counter(name: str, documentation: str, labelnames: Sequence[str] = ()) -> Counter:
    return Counter(metric_name(name), documentation, labelnames)


def gauge(name: str, documentation: str) -> Gauge:
    return Gauge(metric_name(name), documentation)


def histogram(
    name: str, documentation: str, buckets: Optional[Sequence[float]] = None
) -> Histogram:
    if buckets is None:
        return Histogram(metric_name(name), documentation)
    return Histogram(metric_name(name), documentation, buckets=buckets)

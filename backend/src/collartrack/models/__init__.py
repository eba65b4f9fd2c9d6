from .readings import (
    METRIC_VALUE_FIELDS,
    Metric,
    MetricIn,
    MetricRead,
    Reading,
    ReadingIn,
    ReadingRead,
)

__all__ = [
    "METRIC_VALUE_FIELDS",
    "Metric",
    "MetricIn",
    "MetricRead",
    "Reading",
    "ReadingIn",
    "ReadingRead",
]

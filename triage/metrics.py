"""Metric lookup shared by the classifier, scorer and stats."""

from schemas.signal import Metric
from schemas.telemetry import MonitoringLogEntry

_FIELD_BY_METRIC = {
    Metric.NEURAL_LATENCY_MS: "neural_latency_ms",
    Metric.CPU_USAGE_PCT: "cpu_usage_pct",
    Metric.POWER_USAGE_UW: "power_usage_uw",
}


def metric_value(entry: MonitoringLogEntry, metric: Metric) -> float:
    """Return the reading of `metric` from one log entry.

    Raises:
        KeyError: If metric is not a Metric member. IncidentSignal already
            rejects unknown metrics, so this only fires on programming errors.
            There is no neutral default.
    """
    return getattr(entry, _FIELD_BY_METRIC[metric])

"""Anomaly scorer — per-device exceed ratio.

score = min(1, (max_reading - threshold) / threshold)

where max_reading is the device's highest value for the signal metric.
A device whose peak never rises above the threshold scores 0. A peak at
twice the threshold or more scores 1.
"""

from collections.abc import Sequence

from schemas.signal import IncidentSignal
from schemas.telemetry import MonitoringLogEntry
from triage.metrics import metric_value


class AnomalyScorer:
    """Score one device's evidence against a signal."""

    def score(self, entries: Sequence[MonitoringLogEntry], signal: IncidentSignal) -> float:
        """Return the capped exceed ratio in [0, 1].

        Args:
            entries: One device's readings inside the window. May be empty.
            signal: Supplies the metric and threshold.

        Returns:
            0.0 when there are no readings, when the threshold is not
            positive, or when no reading exceeds the threshold. Otherwise
            the exceed ratio of the peak reading, capped at 1.0.
        """
        if not entries:
            return 0.0

        threshold = signal.threshold
        # IncidentSignal enforces threshold > 0; guard anyway so a model
        # built with model_construct() cannot divide by zero here.
        if threshold <= 0.0:
            return 0.0

        peak = max(metric_value(entry, signal.metric) for entry in entries)
        if peak <= threshold:
            return 0.0

        return min(1.0, (peak - threshold) / threshold)

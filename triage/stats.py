"""Per-device monitoring statistics.

Averages each metric over a device's readings in the window. The hypothesis
agent includes these for the top-ranked devices so the model sees how the
three metrics moved together, not just the one the signal targets.
"""

from collections.abc import Sequence

from gateways.base import EvidenceSet
from schemas.telemetry import MonitoringLogEntry, MonitoringStats


def summarize_device(serial_number: str, entries: Sequence[MonitoringLogEntry]) -> MonitoringStats:
    """Average power, CPU and latency for one device.

    An empty sequence yields zero averages and sample_count 0.
    """
    count = len(entries)
    if count == 0:
        return MonitoringStats(
            serial_number=serial_number,
            sample_count=0,
            avg_power_usage_uw=0.0,
            avg_cpu_usage_pct=0.0,
            avg_neural_latency_ms=0.0,
        )

    return MonitoringStats(
        serial_number=serial_number,
        sample_count=count,
        avg_power_usage_uw=round(sum(e.power_usage_uw for e in entries) / count, 3),
        avg_cpu_usage_pct=round(sum(e.cpu_usage_pct for e in entries) / count, 3),
        avg_neural_latency_ms=round(sum(e.neural_latency_ms for e in entries) / count, 3),
    )


def summarize_evidence(evidence: EvidenceSet, serial_numbers: Sequence[str]) -> list[MonitoringStats]:
    """Summarise the listed devices, in the order given.

    Serials missing from the evidence are summarised as empty.
    """
    return [summarize_device(serial, evidence.get(serial, [])) for serial in serial_numbers]

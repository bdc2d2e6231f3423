"""Risk classifier — deterministic severity classification of an evidence set.

Two numbers drive the decision:
- exceed count: readings, across all devices, at or above the threshold
- distinct devices: how many devices reported inside the window

Rules are checked from most to least severe and the first match wins:
- CRITICAL: exceed count >= 60 and distinct devices >= 5
- HIGH:     exceed count >= 30 and distinct devices >= 3
- MEDIUM:   exceed count >= 10
- LOW:      everything else, including an empty evidence set

No LLM involved. Same input always produces the same output.
"""

from gateways.base import EvidenceSet
from schemas.incident import IncidentAssessment, RiskLevel
from schemas.signal import IncidentSignal
from triage.metrics import metric_value


class RiskClassifier:
    """Map an evidence set and a signal to a RiskLevel."""

    CRITICAL_MIN_EXCEED = 60
    CRITICAL_MIN_DEVICES = 5
    HIGH_MIN_EXCEED = 30
    HIGH_MIN_DEVICES = 3
    MEDIUM_MIN_EXCEED = 10

    def classify(self, evidence: EvidenceSet, signal: IncidentSignal) -> RiskLevel:
        """Classify the evidence for one signal.

        Args:
            evidence: Entries grouped by serial, already inside the window.
            signal: Supplies the metric and threshold.

        Returns:
            The first matching RiskLevel. LOW for empty evidence, without
            looking at any reading.
        """
        if not evidence:
            return RiskLevel.LOW

        return self.classify_counts(
            exceed_count=self.count_exceeding(evidence, signal),
            distinct_devices=len(evidence),
        )

    def classify_counts(self, exceed_count: int, distinct_devices: int) -> RiskLevel:
        """Apply the threshold rules to precomputed counts."""
        if exceed_count >= self.CRITICAL_MIN_EXCEED and distinct_devices >= self.CRITICAL_MIN_DEVICES:
            return RiskLevel.CRITICAL
        if exceed_count >= self.HIGH_MIN_EXCEED and distinct_devices >= self.HIGH_MIN_DEVICES:
            return RiskLevel.HIGH
        if exceed_count >= self.MEDIUM_MIN_EXCEED:
            return RiskLevel.MEDIUM
        return RiskLevel.LOW

    def count_exceeding(self, evidence: EvidenceSet, signal: IncidentSignal) -> int:
        """Count readings at or above the signal threshold, across all devices."""
        return sum(
            1
            for entries in evidence.values()
            for entry in entries
            if metric_value(entry, signal.metric) >= signal.threshold
        )

    def assess(self, evidence: EvidenceSet, signal: IncidentSignal) -> IncidentAssessment:
        """Classify and package the counts that drove the decision."""
        exceed_count = self.count_exceeding(evidence, signal) if evidence else 0
        return IncidentAssessment(
            signal=signal,
            evidence_group_count=len(evidence),
            exceed_count=exceed_count,
            risk_level=self.classify_counts(exceed_count, len(evidence)) if evidence else RiskLevel.LOW,
        )

"""Containment approval policy."""

from schemas.incident import RiskLevel
from schemas.result import HypothesisType


def requires_approval(risk_level: RiskLevel, hypothesis_type: HypothesisType) -> bool:
    """True when a containment plan must be signed off by a human.

    HIGH and CRITICAL incidents always need approval, and so does anything
    attributed to an attack, whatever its size.
    """
    return (
        risk_level.rank >= RiskLevel.HIGH.rank
        or hypothesis_type is HypothesisType.ATTACK_PATTERN
    )

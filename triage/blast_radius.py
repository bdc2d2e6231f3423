"""Blast-radius estimator — summarise the scope of an incident.

Takes the ranked affected-device list and reduces it to a count, the first
few distinct lots and models, and fixed-format geo/time descriptions that
read well in prompts and in the terminal.
"""

from collections.abc import Iterable, Sequence

from schemas.incident import AffectedDevice, EstimatedBlastRadius
from schemas.signal import IncidentSignal


class BlastRadiusEstimator:
    """Aggregate affected devices into an EstimatedBlastRadius."""

    MAX_LISTED = 5  # distinct lots / models reported

    def estimate(
        self,
        affected: Sequence[AffectedDevice] | None,
        signal: IncidentSignal,
    ) -> EstimatedBlastRadius:
        """Build the blast-radius summary.

        Args:
            affected: Ranked affected devices. None is treated as empty.
            signal: Supplies the center, radius and window for the summaries.

        Returns:
            EstimatedBlastRadius with lots and models deduplicated, blank
            values skipped, and capped at MAX_LISTED in input order.
        """
        affected = affected or []

        return EstimatedBlastRadius(
            affected_count=len(affected),
            affected_lots=self._first_distinct(d.lot_number for d in affected),
            affected_models=self._first_distinct(d.model for d in affected),
            geo_summary=(
                f"Within {signal.radius_meters:.0f}m of "
                f"({signal.latitude:.5f}, {signal.longitude:.5f})"
            ),
            time_summary=f"From {signal.from_time.isoformat()} to {signal.to_time.isoformat()}",
        )

    def _first_distinct(self, values: Iterable[str | None]) -> list[str]:
        seen: list[str] = []
        for value in values:
            if value is None or not value.strip() or value in seen:
                continue
            seen.append(value)
            if len(seen) == self.MAX_LISTED:
                break
        return seen

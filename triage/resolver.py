"""Affected-device resolver.

Turns an evidence set into a ranked list of AffectedDevice records by
scoring each device's readings and enriching it with registry metadata.

Per-device work runs concurrently. Each device runs in its own task with its
own exception boundary, so a registry lookup that fails, hangs or comes back
empty degrades that one device to null metadata plus a RegistryResolutionGap
instead of aborting the whole triage.

Ranking is applied after every task has finished, so the output order does
not depend on which lookups happened to return first.
"""

import asyncio
import logging
from dataclasses import dataclass, field

from gateways.base import DeviceRegistry, EvidenceSet
from schemas.incident import AffectedDevice, RegistryResolutionGap
from schemas.signal import IncidentSignal
from schemas.telemetry import MonitoringLogEntry
from triage.anomaly import AnomalyScorer

logger = logging.getLogger(__name__)

DEFAULT_LOOKUP_TIMEOUT_SECONDS = 5.0
DEFAULT_MAX_CONCURRENCY = 16


@dataclass
class DeviceResolution:
    """Result of resolving one evidence set.

    A dataclass rather than a Pydantic model because it is an internal
    pipeline object. The runtime unpacks it into the TriageReport.

    Attributes:
        affected: Devices sorted by anomaly_score descending. Equal scores
            keep evidence-group order.
        gaps: One entry per device with evidence whose registry lookup did
            not produce a record, in evidence-group order.
    """

    affected: list[AffectedDevice] = field(default_factory=list)
    gaps: list[RegistryResolutionGap] = field(default_factory=list)


class AffectedDeviceResolver:
    """Score and enrich every device in an evidence set.

    Attributes:
        registry: Where lot, model and owner metadata comes from.
        scorer: Computes each device's anomaly score.
        lookup_timeout_seconds: Maximum wait for a single registry lookup.
            A lookup that exceeds it becomes a "timeout" gap.
        max_concurrency: Upper bound on registry lookups in flight.
    """

    def __init__(
        self,
        registry: DeviceRegistry,
        scorer: AnomalyScorer | None = None,
        lookup_timeout_seconds: float = DEFAULT_LOOKUP_TIMEOUT_SECONDS,
        max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
    ) -> None:
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1.")
        self.registry = registry
        self.scorer = scorer or AnomalyScorer()
        self.lookup_timeout_seconds = lookup_timeout_seconds
        self.max_concurrency = max_concurrency

    async def resolve(self, evidence: EvidenceSet, signal: IncidentSignal) -> DeviceResolution:
        """Resolve every device in the evidence set.

        Args:
            evidence: Entries grouped by serial. Dict order is the
                tie-break order for equal scores.
            signal: Passed to the scorer.

        Returns:
            DeviceResolution with the ranked list and any registry gaps.
        """
        if not evidence:
            return DeviceResolution()

        # Built per call so concurrent runs never share a limiter.
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async with asyncio.TaskGroup() as tg:
            tasks = [
                tg.create_task(
                    self._resolve_one(serial, entries, signal, semaphore),
                    name=serial,
                )
                for serial, entries in evidence.items()
            ]

        outcomes = [t.result() for t in tasks]

        # list.sort is stable, including with reverse=True.
        affected = sorted(
            (device for device, _ in outcomes),
            key=lambda d: d.anomaly_score,
            reverse=True,
        )
        gaps = [gap for _, gap in outcomes if gap is not None]

        if gaps:
            logger.warning(
                "%d/%d devices could not be resolved in the registry: %s",
                len(gaps),
                len(outcomes),
                ", ".join(g.serial_number for g in gaps),
            )

        return DeviceResolution(affected=affected, gaps=gaps)

    async def _resolve_one(
        self,
        serial_number: str,
        entries: list[MonitoringLogEntry],
        signal: IncidentSignal,
        semaphore: asyncio.Semaphore,
    ) -> tuple[AffectedDevice, RegistryResolutionGap | None]:
        """Score and enrich one device.

        This method never raises for registry problems. Not-found, timeout
        and lookup errors all become a device with null metadata and a gap,
        which keeps one bad lookup from cancelling its siblings in the
        TaskGroup.
        """
        if not entries:
            # No evidence, no claim: zero score and no registry lookup.
            return AffectedDevice(serial_number=serial_number, anomaly_score=0.0), None

        score = self.scorer.score(entries, signal)
        unresolved = AffectedDevice(serial_number=serial_number, anomaly_score=score)

        try:
            async with semaphore:
                record = await asyncio.wait_for(
                    self.registry.resolve_device(serial_number),
                    timeout=self.lookup_timeout_seconds,
                )

        except asyncio.TimeoutError:
            logger.error(
                "Registry lookup for '%s' timed out after %.1fs.",
                serial_number,
                self.lookup_timeout_seconds,
            )
            return unresolved, RegistryResolutionGap(
                serial_number=serial_number,
                reason="timeout",
                detail=f"Registry lookup did not return within {self.lookup_timeout_seconds:.1f}s.",
            )

        except Exception as exc:
            logger.error("Registry lookup for '%s' failed: %s", serial_number, exc)
            return unresolved, RegistryResolutionGap(
                serial_number=serial_number,
                reason="error",
                detail=f"Registry lookup failed: {exc}",
            )

        if record is None:
            return unresolved, RegistryResolutionGap(
                serial_number=serial_number,
                reason="not_found",
                detail=(
                    f"Device '{serial_number}' has {len(entries)} readings in the window "
                    "but no registry record."
                ),
            )

        return AffectedDevice(
            serial_number=serial_number,
            lot_number=record.lot_number,
            model=record.model,
            owner_ref=record.owner_ref,
            anomaly_score=score,
        ), None

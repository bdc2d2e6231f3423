"""Storage gateway interfaces.

The triage core never talks to a database. It depends on two narrow
interfaces, one for telemetry evidence and one for device registry lookups.
Swapping the in-memory demo store for the HTTP store (or anything else)
means writing a new class that satisfies these interfaces, with zero
changes to the pipeline.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterable
from datetime import datetime

from schemas.telemetry import DeviceRecord, GeoPoint, MonitoringLogEntry

EvidenceSet = dict[str, list[MonitoringLogEntry]]


def group_by_device(entries: Iterable[MonitoringLogEntry]) -> EvidenceSet:
    """Group log entries by serial number.

    Groups appear in the order their first entry is encountered, and entries
    keep their relative order inside each group. Every gateway returns its
    evidence through this function so grouping behaves the same everywhere.

    Args:
        entries: Log entries already filtered to the signal window.

    Returns:
        Mapping of serial number to that device's entries. Empty dict for
        empty input.
    """
    grouped: EvidenceSet = {}
    for entry in entries:
        grouped.setdefault(entry.serial_number, []).append(entry)
    return grouped


class EvidenceStore(ABC):
    """Geo- and time-indexed telemetry store."""

    @abstractmethod
    async def find_logs_by_area_and_time(
        self,
        center: GeoPoint,
        radius_meters: float,
        from_time: datetime,
        to_time: datetime,
    ) -> EvidenceSet:
        """Return every entry near center inside the time window.

        Args:
            center: Search center.
            radius_meters: Maximum distance from center. Distance semantics
                (great-circle or projected) are up to the store.
            from_time: Window start, inclusive.
            to_time: Window end, inclusive.

        Returns:
            Entries grouped by serial number. An empty dict is a valid
            answer and must not raise.
        """
        ...


class DeviceRegistry(ABC):
    """Lookup from implant serial to registry metadata."""

    @abstractmethod
    async def resolve_device(self, serial_number: str) -> DeviceRecord | None:
        """Return the record for serial_number, or None when it is unknown.

        Must be idempotent and free of side effects.
        """
        ...

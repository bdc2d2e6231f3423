"""In-memory gateways.

Reference implementations of EvidenceStore and DeviceRegistry backed by
plain lists and dicts. The CLI demo and the API's demo mode run on these,
and the tests use them to pin down the gateway contract (inclusive time
bounds, radial distance filter, grouping by serial).

The evidence store does a linear scan. It is not a spatial index and is not
meant for production-sized datasets.
"""

import math
from collections.abc import Iterable
from datetime import datetime

from gateways.base import DeviceRegistry, EvidenceSet, EvidenceStore, group_by_device
from schemas.telemetry import DeviceRecord, GeoPoint, MonitoringLogEntry

EARTH_RADIUS_METERS = 6_371_008.8  # IUGG mean radius


def haversine_meters(a: GeoPoint, b: GeoPoint) -> float:
    """Great-circle distance between two points, in meters."""
    lat1, lat2 = math.radians(a.latitude), math.radians(b.latitude)
    dlat = lat2 - lat1
    dlon = math.radians(b.longitude - a.longitude)
    h = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
    return 2 * EARTH_RADIUS_METERS * math.asin(min(1.0, math.sqrt(h)))


class InMemoryEvidenceStore(EvidenceStore):
    """EvidenceStore over a fixed list of log entries.

    Attributes:
        _entries: All entries, in insertion order. Query results preserve
            this order within each device group.
    """

    def __init__(self, entries: Iterable[MonitoringLogEntry] = ()) -> None:
        self._entries: list[MonitoringLogEntry] = list(entries)

    def __len__(self) -> int:
        return len(self._entries)

    async def find_logs_by_area_and_time(
        self,
        center: GeoPoint,
        radius_meters: float,
        from_time: datetime,
        to_time: datetime,
    ) -> EvidenceSet:
        matches = (
            entry
            for entry in self._entries
            if from_time <= entry.timestamp <= to_time
            and haversine_meters(center, entry.location) <= radius_meters
        )
        return group_by_device(matches)


class InMemoryDeviceRegistry(DeviceRegistry):
    """DeviceRegistry over a dict keyed by serial number."""

    def __init__(self, records: Iterable[DeviceRecord] = ()) -> None:
        self._records: dict[str, DeviceRecord] = {r.serial_number: r for r in records}

    def __len__(self) -> int:
        return len(self._records)

    async def resolve_device(self, serial_number: str) -> DeviceRecord | None:
        return self._records.get(serial_number)

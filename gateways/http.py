"""HTTP gateways.

EvidenceStore and DeviceRegistry implementations that talk to a telemetry
service over HTTP. The service owns the geospatial index; these classes only
build the query and parse the JSON answer.

Endpoints:
    GET {base_url}/implant-logs?lon=&lat=&radius_meters=&from=&to=
        → JSON list of MonitoringLogEntry objects
    GET {base_url}/devices/{serial_number}
        → JSON DeviceRecord, or 404 when the serial is unknown

Timestamps are sent as ISO-8601 without timezone, matching the naive
timestamps the devices report.

Configuration comes from the environment in main.py:
    EVIDENCE_STORE_URL, DEVICE_REGISTRY_URL, GATEWAY_TIMEOUT_SECONDS
"""

import logging
from datetime import datetime
from typing import Any
from urllib.parse import quote

import httpx

from gateways.base import DeviceRegistry, EvidenceSet, EvidenceStore, group_by_device
from schemas.telemetry import DeviceRecord, GeoPoint, MonitoringLogEntry

logger = logging.getLogger(__name__)

DEFAULT_HTTP_TIMEOUT_SECONDS = 10.0


class _HttpGateway:
    """Shared GET plumbing for the two gateways.

    Without an injected client, every request opens and closes its own
    AsyncClient, so the gateway holds no connection pool that needs closing.
    """

    def __init__(
        self,
        base_url: str,
        client: httpx.AsyncClient | None = None,
        timeout_seconds: float = DEFAULT_HTTP_TIMEOUT_SECONDS,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.client = client
        self.timeout_seconds = timeout_seconds

    async def _get(self, path: str, params: dict[str, Any] | None = None) -> httpx.Response:
        url = f"{self.base_url}{path}"
        if self.client is not None:
            return await self.client.get(url, params=params)
        async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
            return await client.get(url, params=params)


class HttpEvidenceStore(_HttpGateway, EvidenceStore):
    """EvidenceStore backed by a remote telemetry service.

    Attributes:
        base_url: Service root, without trailing slash.
        client: Optional caller-owned async client. Pass one in to reuse a
            connection pool or to inject a mock transport in tests; the
            caller is then responsible for closing it.
    """

    async def find_logs_by_area_and_time(
        self,
        center: GeoPoint,
        radius_meters: float,
        from_time: datetime,
        to_time: datetime,
    ) -> EvidenceSet:
        """Query the service and group the answer by serial.

        Raises:
            httpx.HTTPError: On transport failures or non-2xx responses.
                The runtime converts these into EvidenceRetrievalError.
        """
        response = await self._get(
            "/implant-logs",
            params={
                "lon": center.longitude,
                "lat": center.latitude,
                "radius_meters": radius_meters,
                "from": from_time.isoformat(),
                "to": to_time.isoformat(),
            },
        )
        response.raise_for_status()

        entries = [MonitoringLogEntry.model_validate(row) for row in response.json()]
        logger.debug("Evidence store returned %d entries.", len(entries))
        return group_by_device(entries)


class HttpDeviceRegistry(_HttpGateway, DeviceRegistry):
    """DeviceRegistry backed by a remote registry service."""

    async def resolve_device(self, serial_number: str) -> DeviceRecord | None:
        """Fetch one device record.

        Returns None on 404. A missing device is a valid answer, not an
        error; the resolver records it as a registry gap. The serial is
        escaped as a single path segment.

        Raises:
            httpx.HTTPError: On transport failures or any other non-2xx.
        """
        response = await self._get(f"/devices/{quote(serial_number, safe='')}")
        if response.status_code == 404:
            return None
        response.raise_for_status()
        return DeviceRecord.model_validate(response.json())

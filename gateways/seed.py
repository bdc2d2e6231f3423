"""Deterministic demo dataset.

Builds a small but realistic population of implants, owners and telemetry
for the CLI demo and the API's demo mode. Same `now` in, same data out:
the random generator is seeded with a fixed value.

Three story arcs are layered over a quiet baseline:
    1. Recall-likely: MechaMed limb lot 536 spikes neural latency and CPU
       together in Brooklyn, a tight single-lot cluster.
    2. Attack-likely: a dozen implants from every vendor spike CPU in the
       same Queens window while power stays normal. One extra device in
       that cluster has no registry record, which exercises the
       registry-gap path.
    3. A lone latency outlier in Philadelphia days earlier, to check that
       narrow windows do not pick it up.
"""

import random
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from schemas.telemetry import DeviceRecord, GeoPoint, MonitoringLogEntry

SEED = 7331

NYC_MIDTOWN = GeoPoint(longitude=-73.9855, latitude=40.7580)
NYC_BROOKLYN = GeoPoint(longitude=-73.9780, latitude=40.6782)
NYC_QUEENS = GeoPoint(longitude=-73.7949, latitude=40.7282)
BOS_DOWNTOWN = GeoPoint(longitude=-71.0589, latitude=42.3601)
PHL_CENTER = GeoPoint(longitude=-75.1652, latitude=39.9526)
DC_DOWNTOWN = GeoPoint(longitude=-77.0369, latitude=38.9072)

HOME_CITIES = [NYC_MIDTOWN, PHL_CENTER, BOS_DOWNTOWN, DC_DOWNTOWN]

UNREGISTERED_SERIAL = "XX-000-UNK-000001"

# (device_type, model, manufacturer, lot, serial prefix, count)
_BATCHES = [
    ("limb", "Model-Dvb688", "MechaMed", 536, "MM-536-DVB-", 4),
    ("limb", "Model-Jtv413", "MechaMed", 536, "MM-536-JTV-", 2),
    ("ocular", "Model-gOq543", "SynthForge", 746, "SF-746-OCU-", 4),
    ("cardiac", "Model-Gkf965", "NeuroCore", 289, "NC-289-CAR-", 4),
]

# (device_type, model, manufacturer, lot, serial)
_SINGLES = [
    ("ocular", "Model-fXX373", "NeuroCore", 617, "NC-617-OCU-447327"),
    ("cardiac", "Model-OMt936", "SynthForge", 141, "SF-141-CAR-905785"),
    ("limb", "Model-Yjx053", "MechaMed", 490, "MM-490-LIM-984050"),
    ("cardiac", "Model-mUw025", "MechaMed", 415, "MM-415-CAR-226330"),
    ("ocular", "Model-mZd159", "SynthForge", 664, "SF-664-OCU-624181"),
    ("cardiac", "Model-lkh474", "SynthForge", 197, "SF-197-CAR-941730"),
    ("ocular", "Model-zNd426", "NeuroCore", 816, "NC-816-OCU-566493"),
    ("cardiac", "Model-StO778", "NeuroCore", 459, "NC-459-CAR-107741"),
    ("limb", "Model-VVo800", "NeuroCore", 817, "NC-817-LIM-893238"),
    ("ocular", "Model-SiT679", "MechaMed", 434, "MM-434-OCU-306310"),
    ("cardiac", "Model-ooV123", "MechaMed", 103, "MM-103-CAR-283686"),
    ("ocular", "Model-BCf487", "MechaMed", 124, "MM-124-OCU-629496"),
]

_OWNER_IDS = [
    "Ni-96751543-BP", "NP-59909166-Wg", "gQ-01247486-nk", "Ww-33252326-jv",
    "dJ-71032254-JQ", "Ew-42902984-rX", "Zy-82483905-hw", "fI-88901036-kD",
    "YD-99086969-CP", "MP-66879496-vg", "Qm-10488329-xA", "Jp-22019411-pL",
    "Rt-39012004-fQ", "Vb-48100291-qS", "Ls-58291004-hK", "Az-60439110-eR",
    "NL-77102010-vD", "It-88200194-mT", "Pk-91334022-sN",
]


@dataclass
class DemoDataset:
    """Everything the demo gateways need.

    Attributes:
        entries: Telemetry log entries, baseline first.
        records: Registry records, one per registered implant.
        incident_base: Start of the demo incident hour. The Brooklyn and
            Queens clusters both fall within two hours after it.
    """

    entries: list[MonitoringLogEntry] = field(default_factory=list)
    records: list[DeviceRecord] = field(default_factory=list)
    incident_base: datetime | None = None


def build_demo_dataset(now: datetime) -> DemoDataset:
    """Generate the demo population relative to `now`.

    Args:
        now: Reference time. Seconds and microseconds are dropped.

    Returns:
        A DemoDataset. Calling this twice with the same `now` returns equal
        datasets.
    """
    rng = random.Random(SEED)
    now = now.replace(second=0, microsecond=0)

    records = _build_records(rng)
    entries: list[MonitoringLogEntry] = []

    # Baseline: 3 days, every 3 hours, for every implant.
    for i, record in enumerate(records):
        _add_series(
            entries, rng, record.serial_number, record.owner_ref,
            start=now - timedelta(days=3), points=24, step_minutes=180,
            base=(1.6, 18.0, 18.0), jitter=(0.6, 6.0, 5.0),
            center=HOME_CITIES[i % len(HOME_CITIES)], spread=0.010,
        )

    incident_base = (now - timedelta(days=1)).replace(hour=2, minute=0)

    # Recall-likely: lot 536 spikes latency and CPU together.
    lot_536 = [r for r in records if r.manufacturer == "MechaMed" and r.lot_number == "536"]
    for record in lot_536:
        _add_series(
            entries, rng, record.serial_number, record.owner_ref,
            start=incident_base + timedelta(minutes=10), points=30, step_minutes=2,
            base=(6.8, 92.0, 160.0), jitter=(0.8, 4.0, 12.0),
            center=NYC_BROOKLYN, spread=0.003,
        )

    # Attack-likely: many vendors, CPU high, power normal.
    victims = [r for r in records if r not in lot_536][:12]
    for record in victims:
        _add_series(
            entries, rng, record.serial_number, record.owner_ref,
            start=incident_base + timedelta(minutes=20), points=20, step_minutes=3,
            base=(2.2, 96.0, 85.0), jitter=(0.5, 3.0, 10.0),
            center=NYC_QUEENS, spread=0.004,
        )
    _add_series(
        entries, rng, UNREGISTERED_SERIAL, None,
        start=incident_base + timedelta(minutes=20), points=20, step_minutes=3,
        base=(2.2, 96.0, 85.0), jitter=(0.5, 3.0, 10.0),
        center=NYC_QUEENS, spread=0.004,
    )

    outlier = records[-1]
    _add_series(
        entries, rng, outlier.serial_number, outlier.owner_ref,
        start=(now - timedelta(days=5)).replace(hour=23, minute=15), points=25, step_minutes=4,
        base=(3.5, 55.0, 200.0), jitter=(0.7, 8.0, 18.0),
        center=PHL_CENTER, spread=0.006,
    )

    return DemoDataset(entries=entries, records=records, incident_base=incident_base)


# ── Private helpers ───────────────────────────────────────────────────────────

def _build_records(rng: random.Random) -> list[DeviceRecord]:
    specs = []
    for device_type, model, manufacturer, lot, prefix, count in _BATCHES:
        for _ in range(count):
            serial = f"{prefix}{rng.randrange(100000, 1000000)}"
            specs.append((device_type, model, manufacturer, lot, serial))
    specs.extend(_SINGLES)

    # Owners get one implant each, every third owner gets a second one.
    records = []
    cursor = 0
    for i, owner in enumerate(_OWNER_IDS):
        take = 2 if i % 3 == 0 else 1
        for device_type, model, manufacturer, lot, serial in specs[cursor:cursor + take]:
            records.append(DeviceRecord(
                serial_number=serial,
                lot_number=str(lot),
                model=model,
                owner_ref=owner,
                manufacturer=manufacturer,
                device_type=device_type,
            ))
        cursor += take
        if cursor >= len(specs):
            break
    return records


def _add_series(
    entries: list[MonitoringLogEntry],
    rng: random.Random,
    serial_number: str,
    owner_ref: str | None,
    *,
    start: datetime,
    points: int,
    step_minutes: int,
    base: tuple[float, float, float],
    jitter: tuple[float, float, float],
    center: GeoPoint,
    spread: float,
) -> None:
    """Append `points` readings around `base` values and `center`."""
    power, cpu, latency = base
    power_j, cpu_j, latency_j = jitter
    for k in range(points):
        entries.append(MonitoringLogEntry(
            serial_number=serial_number,
            owner_ref=owner_ref,
            timestamp=start + timedelta(minutes=k * step_minutes),
            power_usage_uw=round(max(0.0, power + rng.uniform(-power_j, power_j)), 3),
            cpu_usage_pct=round(min(100.0, max(0.0, cpu + rng.uniform(-cpu_j, cpu_j))), 2),
            neural_latency_ms=round(max(0.0, latency + rng.uniform(-latency_j, latency_j)), 2),
            location=GeoPoint(
                longitude=center.longitude + rng.uniform(-spread, spread),
                latitude=center.latitude + rng.uniform(-spread, spread),
            ),
        ))

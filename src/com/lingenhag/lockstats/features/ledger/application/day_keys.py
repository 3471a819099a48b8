# src/com/lingenhag/lockstats/features/ledger/application/day_keys.py
from __future__ import annotations

from datetime import datetime, timezone

from com.lingenhag.lockstats.domain.errors import GenesisMismatchError, OutOfOrderEventError
from com.lingenhag.lockstats.domain.models import GenesisDay
from com.lingenhag.lockstats.features.ledger.application.ports import LedgerSessionPort

DAY_KEY_WIDTH = 8
_NOON_OFFSET = 12 * 3600

# Fixed English names, independent of LC_TIME
_WEEKDAYS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")
_MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


def _utc(ts: int) -> datetime:
    return datetime.fromtimestamp(ts, tz=timezone.utc)


def normalize_to_midnight(ts: int) -> int:
    """Kürzt einen Timestamp (Sekunden) auf 00:00 UTC desselben Kalendertags."""
    day = _utc(ts).replace(hour=0, minute=0, second=0, microsecond=0)
    return int(day.timestamp())


def day_label(ts: int) -> str:
    """
    Kalendertag als String, z. B. "Tue Aug 01 2023".
    Wird ausschliesslich für Gleichheitsvergleiche verwendet.
    """
    dt = _utc(ts)
    return f"{_WEEKDAYS[dt.weekday()]} {_MONTHS[dt.month - 1]} {dt.day:02d} {dt.year}"


def days_since_genesis(ts: int, genesis: GenesisDay) -> int:
    """
    Tage seit dem Genesis-Tag, wobei der Genesis-Tag selbst als Tag 1 zählt.

    Der Tag wird vor der Differenzbildung auf 12:00 UTC gesetzt; damit landet
    die Division nie genau auf einer Tagesgrenze, und das Aufrunden liefert
    für den Folgetag des Genesis-Tags stabil 2.
    """
    if day_label(ts) == genesis.label:
        return 1
    noon = normalize_to_midnight(ts) + _NOON_OFFSET
    difference = noon - genesis.timestamp
    return -(-difference // genesis.seconds_per_day)


def encode_day_key(index: int) -> bytes:
    """Fixed-width big-endian key; byte order == numeric order."""
    if index < 0:
        raise ValueError("Day index must be >= 0")
    return index.to_bytes(DAY_KEY_WIDTH, "big")


def decode_day_key(key: bytes) -> int:
    if len(key) != DAY_KEY_WIDTH:
        raise ValueError(f"Day key must be {DAY_KEY_WIDTH} bytes, got {len(key)}")
    return int.from_bytes(key, "big")


def resolve_index(ts: int, session: LedgerSessionPort, genesis: GenesisDay) -> int:
    """
    Liefert den Slot-Index für den Kalendertag von `ts`:
      - Genesis-Tag → 0
      - gleicher Tag wie der neueste Slot (counter - 1) → counter - 1
      - sonst → counter (ein neuer Tag beginnt)
    """
    label = day_label(ts)
    counter = session.get_counter()

    if label == genesis.label:
        if counter is not None and counter.value > 1:
            raise OutOfOrderEventError(f"Genesis day {label!r} is already closed")
        return 0

    if counter is None:
        raise GenesisMismatchError(
            f"First event is on {label!r}, expected genesis day {genesis.label!r}"
        )

    latest = session.get_day(counter.value - 1)
    if latest is None:
        return counter.value
    if latest.day_label == label:
        return counter.value - 1
    if normalize_to_midnight(ts) < latest.normalized_timestamp:
        raise OutOfOrderEventError(
            f"Event on {label!r} is older than the newest day {latest.day_label!r}"
        )
    return counter.value

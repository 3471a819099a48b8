# src/com/lingenhag/lockstats/features/ledger/application/event_feed.py
from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterator, Optional

from com.lingenhag.lockstats.domain.errors import InvalidEventError
from com.lingenhag.lockstats.domain.models import EventKind, LockEvent


_KIND_ALIASES = {
    "lock": EventKind.LOCK,
    "locked": EventKind.LOCK,
    "deposit": EventKind.LOCK,
    "unlock": EventKind.UNLOCK,
    "unlocked": EventKind.UNLOCK,
    "withdraw": EventKind.UNLOCK,
    "withdrawal": EventKind.UNLOCK,
}


def _first(doc: Dict[str, Any], *names: str) -> Any:
    for name in names:
        value = doc.get(name)
        if value is not None:
            return value
    return None


def _to_int(value: Any, field: str) -> int:
    """Akzeptiert int, Dezimal- oder 0x-Hex-Strings (Token-Beträge in wei)."""
    if isinstance(value, bool):
        raise InvalidEventError(f"{field}: boolean is not a number")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            if text.lower().startswith("0x"):
                return int(text, 16)
            return int(text)
        except ValueError as e:
            raise InvalidEventError(f"{field}: invalid integer {value!r}") from e
    raise InvalidEventError(f"{field}: unsupported type {type(value).__name__}")


def _to_timestamp(value: Any) -> int:
    if isinstance(value, str) and not value.strip().lstrip("-").isdigit():
        s = value.strip()
        if s.endswith("Z"):
            s = s[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(s)
        except ValueError as e:
            raise InvalidEventError(f"timestamp: invalid value {value!r}") from e
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return int(dt.timestamp())
    return _to_int(value, "timestamp")


def _optional_int(value: Any, field: str) -> Optional[int]:
    return None if value is None else _to_int(value, field)


def parse_event(doc: Dict[str, Any]) -> LockEvent:
    raw_kind = _first(doc, "kind", "type", "event")
    kind = _KIND_ALIASES.get(str(raw_kind).strip().lower()) if raw_kind is not None else None
    if kind is None:
        raise InvalidEventError(f"kind: expected lock/unlock, got {raw_kind!r}")

    actor = _first(doc, "user", "actor", "address")
    if not isinstance(actor, str) or not actor.strip():
        raise InvalidEventError("actor: missing address")

    amount = _first(doc, "amount")
    if amount is None:
        raise InvalidEventError("amount: missing")

    ts = _first(doc, "blockTimestamp", "block_timestamp", "timestamp")
    if ts is None:
        raise InvalidEventError("timestamp: missing")

    return LockEvent(
        kind=kind,
        actor=actor.strip().lower(),
        amount=_to_int(amount, "amount"),
        timestamp=_to_timestamp(ts),
        deposit_before=_to_int(_first(doc, "depositBefore", "deposit_before") or 0, "deposit_before"),
        when=_optional_int(_first(doc, "when", "schedule"), "when"),
        block_number=_optional_int(_first(doc, "blockNumber", "block_number"), "block_number"),
        tx_hash=_first(doc, "transactionHash", "tx_hash"),
    )


def read_events(path: str | Path) -> Iterator[LockEvent]:
    """Liest Events aus einer JSON-Lines-Datei; Leerzeilen werden übersprungen."""
    with open(path, "r", encoding="utf-8") as handle:
        for line_no, line in enumerate(handle, start=1):
            if not line.strip():
                continue
            try:
                doc = json.loads(line)
            except json.JSONDecodeError as e:
                raise InvalidEventError(f"{path}:{line_no}: invalid JSON ({e.msg})") from e
            if not isinstance(doc, dict):
                raise InvalidEventError(f"{path}:{line_no}: expected a JSON object")
            try:
                yield parse_event(doc)
            except InvalidEventError as e:
                raise InvalidEventError(f"{path}:{line_no}: {e}") from e

"""
Client-held device identity and table access log.

Everything here lives on the customer's device (the customer app keeps it in
the signed cookie session) and reaches the server as an untrusted hint. It
stops casual URL tampering and stale QR sessions; clearing the store defeats
it, so it is never used as a credential.
"""

from __future__ import annotations

import time
from collections import deque
from dataclasses import dataclass
from typing import Any

from .constants import ACCESS_LOG_SIZE, RECENT_ATTEMPT_WINDOW_MS

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def now_ms() -> int:
    return int(time.time() * 1000)


def _to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(_BASE36[remainder])
    return "".join(reversed(digits))


def generate_device_fingerprint(*components: Any) -> str:
    """
    Hash device characteristics (user agent, language, screen, timezone...)
    into a short, semi-stable identifier.

    Uses a 31-multiplier rolling hash wrapped to a signed 32-bit integer. This
    is not cryptographic: two devices can collide and a device can change id.
    """
    raw = "|".join("" if part is None else str(part) for part in components)
    value = 0
    for char in raw:
        value = (value * 31 + ord(char)) & 0xFFFFFFFF
    if value >= 0x80000000:
        value -= 0x100000000
    return _to_base36(abs(value))


@dataclass(frozen=True)
class DeviceAccessRecord:
    fingerprint: str
    table_id: int
    timestamp: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "fingerprint": self.fingerprint,
            "table_id": self.table_id,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DeviceAccessRecord:
        return cls(
            fingerprint=str(data["fingerprint"]),
            table_id=int(data["table_id"]),
            timestamp=int(data["timestamp"]),
        )


@dataclass(frozen=True)
class TableAccessValidation:
    """Validation hints attached to a customer order request."""

    fingerprint: str
    table_access_timestamp: int
    original_table_id: int | None = None


class DeviceSession:
    """
    Per-device fingerprint, per-table access records and the bounded access log.

    The first table a device successfully orders from becomes its original
    table; later orders from the device are redirected there.
    """

    def __init__(
        self,
        fingerprint: str,
        table_access: dict[int, DeviceAccessRecord] | None = None,
        access_log: list[DeviceAccessRecord] | None = None,
        original_table_id: int | None = None,
    ):
        self.fingerprint = fingerprint
        self.table_access: dict[int, DeviceAccessRecord] = dict(table_access or {})
        self.access_log: deque[DeviceAccessRecord] = deque(
            access_log or [], maxlen=ACCESS_LOG_SIZE
        )
        self._original_table_id = original_table_id

    @property
    def original_table_id(self) -> int | None:
        return self._original_table_id

    def record_table_access(self, table_id: int, timestamp: int | None = None) -> DeviceAccessRecord:
        """Remember that this device opened the menu for ``table_id``."""
        record = DeviceAccessRecord(
            fingerprint=self.fingerprint,
            table_id=table_id,
            timestamp=timestamp if timestamp is not None else now_ms(),
        )
        self.table_access[table_id] = record
        self.access_log.append(record)
        return record

    def get_table_access(self, table_id: int) -> DeviceAccessRecord | None:
        return self.table_access.get(table_id)

    def recent_order_attempts(
        self, window_ms: int = RECENT_ATTEMPT_WINDOW_MS, now: int | None = None
    ) -> list[DeviceAccessRecord]:
        cutoff = (now if now is not None else now_ms()) - window_ms
        return [record for record in self.access_log if record.timestamp > cutoff]

    def lock_to_table(self, table_id: int, timestamp: int | None = None) -> None:
        """Called after a successful order. Only the first success sets the lock."""
        timestamp = timestamp if timestamp is not None else now_ms()
        if self._original_table_id is None:
            self._original_table_id = table_id
            self.access_log.appendleft(
                DeviceAccessRecord(self.fingerprint, table_id, timestamp)
            )
        self.record_table_access(table_id, timestamp)

    def to_validation_data(self, table_id: int, now: int | None = None) -> TableAccessValidation:
        access = self.get_table_access(table_id)
        timestamp = access.timestamp if access else (now if now is not None else now_ms())
        return TableAccessValidation(
            fingerprint=self.fingerprint,
            table_access_timestamp=timestamp,
            original_table_id=self._original_table_id,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "fingerprint": self.fingerprint,
            "original_table_id": self._original_table_id,
            "table_access": {
                str(table_id): record.to_dict() for table_id, record in self.table_access.items()
            },
            "access_log": [record.to_dict() for record in self.access_log],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None, fingerprint: str = "") -> DeviceSession:
        """
        Rebuild a session from client storage. Storage is client-controlled, so
        anything malformed yields a fresh session instead of an error.
        """
        if not isinstance(data, dict):
            return cls(fingerprint=fingerprint)
        try:
            original = data.get("original_table_id")
            return cls(
                fingerprint=str(data.get("fingerprint") or fingerprint),
                table_access={
                    int(table_id): DeviceAccessRecord.from_dict(record)
                    for table_id, record in (data.get("table_access") or {}).items()
                },
                access_log=[
                    DeviceAccessRecord.from_dict(record)
                    for record in (data.get("access_log") or [])
                ],
                original_table_id=int(original) if original else None,
            )
        except (KeyError, TypeError, ValueError, AttributeError):
            return cls(fingerprint=fingerprint)

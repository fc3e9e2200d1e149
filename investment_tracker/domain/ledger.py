"""Investment ledger - owns the collection of purchase and sale records"""

import math
import threading
import time
from typing import Any, Iterable, List, Mapping, Optional, Sequence

from investment_tracker.domain.exceptions import NotFoundError, ValidationError
from investment_tracker.domain.models import InvestmentRecord

REQUIRED_FIELDS = ("currency", "fund", "platform", "date")


def _as_number(value: Any, coerce_strings: bool = False) -> Optional[float]:
    """Return value as a float, or None if it is not a usable number"""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif coerce_strings and isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def build_record(
    payload: Mapping[str, Any],
    timestamp: int,
    coerce_strings: bool = False,
) -> InvestmentRecord:
    """
    Validate a raw payload and build an immutable record.

    Amount resolution:
    - unit_price (>= 0) and units both present: amount = unit_price * units
    - otherwise an explicit amount is required, and a negative unit_price
      is discarded along with its units
    Negative units flow through to a negative amount, marking a sale.

    Raises:
        ValidationError: Missing descriptive fields or no resolvable amount
    """
    for name in REQUIRED_FIELDS:
        value = payload.get(name)
        if not isinstance(value, str) or not value.strip():
            raise ValidationError(f"Investment is missing required field '{name}'")

    unit_price = _as_number(payload.get("unit_price"), coerce_strings)
    units = _as_number(payload.get("units"), coerce_strings)
    amount = _as_number(payload.get("amount"), coerce_strings)

    if unit_price is not None and unit_price < 0:
        unit_price = units = None

    if unit_price is not None and units is not None:
        amount = unit_price * units
    elif amount is None:
        raise ValidationError("Investment must include either amount or unitPrice and units")

    return InvestmentRecord(
        id=str(timestamp),
        timestamp=timestamp,
        amount=amount,
        currency=payload["currency"].strip().upper(),
        fund=payload["fund"],
        platform=payload["platform"],
        date=payload["date"],
        unit_price=unit_price,
        units=units,
    )


class Ledger:
    """
    Thread-safe collection of investment records.

    Timestamps are milliseconds since the epoch, bumped so that every record
    created by this ledger gets a strictly greater value than any before it.
    The timestamp doubles as the record identifier.
    """

    def __init__(self, records: Iterable[InvestmentRecord] = ()):
        self._lock = threading.Lock()
        self._records: List[InvestmentRecord] = list(records)
        self._last_timestamp = max((r.timestamp for r in self._records), default=0)

    def _next_timestamp(self) -> int:
        now_ms = time.time_ns() // 1_000_000
        self._last_timestamp = max(now_ms, self._last_timestamp + 1)
        return self._last_timestamp

    def append(self, payload: Mapping[str, Any]) -> InvestmentRecord:
        """
        Validate and add a new record.

        Raises:
            ValidationError: Payload is incomplete; ledger is unchanged
        """
        with self._lock:
            record = build_record(payload, self._next_timestamp())
            self._records.append(record)
            return record

    def remove(self, record_id: str) -> InvestmentRecord:
        """
        Delete a record by identifier.

        Raises:
            NotFoundError: No record has this identifier; ledger is unchanged
        """
        with self._lock:
            for index, record in enumerate(self._records):
                if record.id == record_id:
                    return self._records.pop(index)
        raise NotFoundError(f"Investment {record_id} not found")

    def replace_all(self, payloads: Sequence[Optional[Mapping[str, Any]]]) -> int:
        """
        Discard every record and load a new set (import).

        Invalid entries are skipped rather than rejected. Numeric fields may
        arrive as strings. Returns the number of records imported.
        """
        with self._lock:
            imported: List[InvestmentRecord] = []
            for payload in payloads:
                if not isinstance(payload, Mapping):
                    continue
                try:
                    imported.append(build_record(payload, self._next_timestamp(), coerce_strings=True))
                except ValidationError:
                    continue
            self._records = imported
            return len(imported)

    def restore(self, records: Iterable[InvestmentRecord]) -> None:
        """Put back an earlier snapshot; the timestamp counter keeps advancing"""
        with self._lock:
            self._records = list(records)

    def list(self) -> List[InvestmentRecord]:
        """All records, newest first"""
        with self._lock:
            return sorted(self._records, key=lambda r: r.timestamp, reverse=True)

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

"""RecordStore: in-memory map of records keyed by (issuer name, serial, year).

Every successful mutation rewrites the whole backing file through the
gateway. A failed write is logged and reported via ``Outcome.persisted``
but never undoes the in-memory change.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import replace
from datetime import date
from typing import Callable, Optional

from greb.errors import Duplicate, InvalidInput, InvalidIssuer, NotFound, Outcome
from greb.issuers.registry import IssuerRegistry
from greb.records.gateway import LoadReport, LoadState, PersistenceGateway
from greb.records.models import Record, RecordKey

logger = logging.getLogger(__name__)


def _matches(field: Optional[str], value: Optional[str], strict: bool) -> bool:
    """Strict: case-insensitive equality. Loose: case-insensitive substring."""
    if field is None or value is None:
        return False
    if strict:
        return field.casefold() == value.casefold()
    return value.casefold() in field.casefold()


class RecordStore:
    """Owns the records. Callers get frozen Records in fresh lists."""

    def __init__(self, registry: IssuerRegistry, gateway: PersistenceGateway):
        self.registry = registry
        self.gateway = gateway
        self._records: dict[RecordKey, Record] = {}
        self._lock = threading.RLock()
        self.load_report = LoadReport(LoadState.EMPTY)
        self.last_save_ok = True

    # -- Lifecycle -----------------------------------------------------------

    def load(self) -> LoadReport:
        """Replace the in-memory map with the file's contents."""
        records, report = self.gateway.load()
        with self._lock:
            self._records = records
            self.load_report = report
        return report

    def _persist(self) -> bool:
        self.last_save_ok = self.gateway.save(self._records)
        return self.last_save_ok

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    # -- Keys ----------------------------------------------------------------

    def key_for(self, issuer_name: str, serial: int, year: int) -> RecordKey:
        """Build a key, using the registry's spelling of the issuer when known."""
        issuer = self.registry.resolve_by_name(issuer_name)
        name = issuer.name if issuer is not None else (issuer_name or "").strip()
        return RecordKey(name, serial, year)

    def _validate(self, record: Record) -> Optional[Outcome]:
        if record.issuer is None:
            return Outcome.failure(InvalidIssuer("Record has no issuer."))
        try:
            listed = self.registry.resolve_by_index(record.issuer.index)
        except NotFound:
            return Outcome.failure(
                InvalidIssuer(f"Issuer {record.issuer.index} ({record.issuer.name}) "
                              f"is not in the catalog.")
            )
        if listed != record.issuer:
            return Outcome.failure(
                InvalidIssuer(f"Issuer name {record.issuer.name!r} does not match catalog "
                              f"entry {listed.index} ({listed.name}).")
            )
        if not isinstance(record.serial, int) or isinstance(record.serial, bool):
            return Outcome.failure(InvalidInput("Serial number must be an integer."))
        if not isinstance(record.issue_date, date):
            return Outcome.failure(InvalidInput("Issue date is required."))
        if not record.subject or not record.subject.strip():
            return Outcome.failure(InvalidInput("Subject name must not be empty."))
        return None

    # -- Mutations -----------------------------------------------------------

    def insert(self, record: Record) -> Outcome:
        """Add a record. Fails with Duplicate if its key is taken."""
        invalid = self._validate(record)
        if invalid is not None:
            return invalid

        record = replace(record, subject=record.subject.strip())
        key = record.key()
        with self._lock:
            if key in self._records:
                return Outcome.failure(
                    Duplicate(f"A record already exists for {key.issuer_name} "
                              f"no. {key.serial}/{key.year}.")
                )
            self._records[key] = record
            persisted = self._persist()
        logger.info("Inserted %s", key)
        return Outcome.success(record, persisted=persisted)

    def update(self, record: Record) -> Outcome:
        """Replace the record stored under ``record``'s key.

        The key is derived from the new state, so issuer, serial and year
        cannot change here; a changed key yields NotFound.
        """
        invalid = self._validate(record)
        if invalid is not None:
            return invalid

        record = replace(record, subject=record.subject.strip())
        key = record.key()
        with self._lock:
            if key not in self._records:
                return Outcome.failure(
                    NotFound(f"No record for {key.issuer_name} no. "
                             f"{key.serial}/{key.year} to update.")
                )
            self._records[key] = record
            persisted = self._persist()
        logger.info("Updated %s", key)
        return Outcome.success(record, persisted=persisted)

    def delete(self, issuer_name: str, serial: int, year: int) -> Outcome:
        key = self.key_for(issuer_name, serial, year)
        with self._lock:
            removed = self._records.pop(key, None)
            if removed is None:
                return Outcome.failure(
                    NotFound(f"No record for {key.issuer_name} no. {serial}/{year}.")
                )
            persisted = self._persist()
        logger.info("Deleted %s", key)
        return Outcome.success(removed, persisted=persisted)

    def delete_all(self) -> int:
        """Remove every record. Returns how many there were."""
        with self._lock:
            count = len(self._records)
            self._records.clear()
            self._persist()
        logger.info("Deleted all %d records", count)
        return count

    # -- Queries -------------------------------------------------------------

    def _select(self, predicate: Callable[[Record], bool]) -> list[Record]:
        with self._lock:
            values = list(self._records.values())
        return [r for r in values if predicate(r)]

    def find_by_key(self, issuer_name: str, serial: int, year: int) -> Optional[Record]:
        key = self.key_for(issuer_name, serial, year)
        with self._lock:
            return self._records.get(key)

    def find_all(self) -> list[Record]:
        with self._lock:
            return list(self._records.values())

    def find_by_issuer(self, text: str, strict: bool = False) -> list[Record]:
        return self._select(lambda r: _matches(r.issuer_name, text, strict))

    def find_by_serial(self, serial: int) -> list[Record]:
        return self._select(lambda r: r.serial == serial)

    def find_by_date(self, day: date) -> list[Record]:
        return self._select(lambda r: r.issue_date == day)

    def find_by_date_range(self, start: date, end: date) -> list[Record]:
        """Records issued between ``start`` and ``end``, both inclusive."""
        if start is None or end is None:
            raise InvalidInput("Both start and end dates are required.")
        if start > end:
            raise InvalidInput(
                f"Start date {start.isoformat()} is after end date {end.isoformat()}."
            )
        return self._select(lambda r: start <= r.issue_date <= end)

    def find_by_subject(self, text: str, strict: bool = False) -> list[Record]:
        return self._select(lambda r: _matches(r.subject, text, strict))

    def find_by_year(self, year: int) -> list[Record]:
        return self._select(lambda r: r.issue_date.year == year)

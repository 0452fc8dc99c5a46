"""Request/response facade over the issuer registry and the record store.

This is the only surface a presentation layer should use. Nothing here
raises on bad user input: every operation that can fail returns an
``Outcome`` whose ``reason`` says which rule was broken.

    with GrebService.open(records_path, issuers_path) as greb:
        built = greb.build_record(1, 234, "2000-05-30", "Alana Beatriz Pereira")
        outcome = greb.insert(built.value)
"""

from __future__ import annotations

import logging
import re
from datetime import date
from pathlib import Path
from typing import Any, Optional

from greb.config import ISSUERS_PATH, RECORDS_PATH
from greb.errors import GrebError, InvalidInput, InvalidIssuer, NotFound, Outcome
from greb.issuers.registry import Issuer, IssuerRegistry
from greb.records.gateway import LoadReport, PersistenceGateway
from greb.records.models import Record
from greb.records.store import RecordStore

logger = logging.getLogger(__name__)

_ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def parse_date(value: Any, label: str = "date") -> date:
    """Accept a date or a 'YYYY-MM-DD' string. Raises InvalidInput."""
    if isinstance(value, date):
        return value
    if value is None or not str(value).strip():
        raise InvalidInput(f"The {label} must not be empty.")
    text = str(value).strip()
    if not _ISO_DATE_RE.match(text):
        raise InvalidInput(f"The {label} '{text}' must be in YYYY-MM-DD format.")
    try:
        return date.fromisoformat(text)
    except ValueError:
        raise InvalidInput(f"The {label} '{text}' is not a valid calendar date.") from None


def parse_int(value: Any, label: str) -> int:
    """Accept an int or a string of digits. Raises InvalidInput."""
    if isinstance(value, bool):
        raise InvalidInput(f"The {label} must be a whole number.")
    if isinstance(value, int):
        return value
    if value is None or not str(value).strip():
        raise InvalidInput(f"The {label} must not be empty.")
    try:
        return int(str(value).strip())
    except ValueError:
        raise InvalidInput(f"The {label} '{value}' must be a whole number.") from None


class GrebService:
    """Composition root for one data directory."""

    def __init__(self, registry: IssuerRegistry, store: RecordStore):
        self.registry = registry
        self.store = store
        self._closed = False

    @classmethod
    def open(
        cls,
        records_path: Path = RECORDS_PATH,
        issuers_path: Path = ISSUERS_PATH,
    ) -> "GrebService":
        """Bootstrap the issuer catalog and load the record file."""
        registry = IssuerRegistry(issuers_path)
        registry.bootstrap()
        gateway = PersistenceGateway(registry, records_path)
        store = RecordStore(registry, gateway)
        report = store.load()
        logger.info("Opened record store %s: %s", records_path, report.summary())
        return cls(registry, store)

    def close(self) -> None:
        """Release the store. Data is already on disk after every mutation."""
        if self._closed:
            return
        if self.registry.dirty:
            logger.warning("Issuer catalog has unsaved changes; last write had failed.")
        self._closed = True

    @property
    def closed(self) -> bool:
        return self._closed

    def __enter__(self) -> "GrebService":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def _check_open(self) -> None:
        if self._closed:
            raise RuntimeError("GrebService is closed")

    @property
    def load_report(self) -> LoadReport:
        return self.store.load_report

    # -- Building records ----------------------------------------------------

    def build_record(
        self,
        issuer_index: Any,
        serial: Any,
        issue_date: Any,
        subject: Optional[str],
    ) -> Outcome:
        """Validate raw form values and assemble a Record."""
        self._check_open()
        try:
            index = parse_int(issuer_index, "issuer index")
            number = parse_int(serial, "serial number")
            day = parse_date(issue_date, "issue date")
            if subject is None or not subject.strip():
                raise InvalidInput("The subject name must not be empty.")
            try:
                issuer = self.registry.resolve_by_index(index)
            except NotFound:
                raise InvalidIssuer(f"No issuer with index {index}.") from None
        except GrebError as e:
            return Outcome.failure(e)
        return Outcome.success(Record(issuer, number, day, subject.strip()))

    # -- Mutations -----------------------------------------------------------

    def insert(self, record: Record) -> Outcome:
        self._check_open()
        return self.store.insert(record)

    def update(self, record: Record) -> Outcome:
        self._check_open()
        return self.store.update(record)

    def delete(self, issuer_name: str, serial: Any, year: Any) -> Outcome:
        self._check_open()
        try:
            number = parse_int(serial, "serial number")
            yr = parse_int(year, "year")
        except GrebError as e:
            return Outcome.failure(e)
        return self.store.delete(issuer_name, number, yr)

    def delete_all(self) -> Outcome:
        self._check_open()
        count = self.store.delete_all()
        return Outcome.success(count, persisted=self.store.last_save_ok)

    # -- Queries -------------------------------------------------------------

    def find_by_key(self, issuer_name: str, serial: int, year: int) -> Optional[Record]:
        self._check_open()
        return self.store.find_by_key(issuer_name, serial, year)

    def find_all(self) -> list[Record]:
        self._check_open()
        return self.store.find_all()

    def find_by_issuer(self, text: str, strict: bool = False) -> list[Record]:
        self._check_open()
        return self.store.find_by_issuer(text, strict)

    def find_by_serial(self, serial: int) -> list[Record]:
        self._check_open()
        return self.store.find_by_serial(serial)

    def find_by_date(self, day: date) -> list[Record]:
        self._check_open()
        return self.store.find_by_date(day)

    def find_by_date_range(self, start: Any, end: Any) -> Outcome:
        """Inclusive range search. Fails with InvalidInput when start > end."""
        self._check_open()
        try:
            first = parse_date(start, "start date")
            last = parse_date(end, "end date")
            return Outcome.success(self.store.find_by_date_range(first, last))
        except GrebError as e:
            return Outcome.failure(e)

    def find_by_subject(self, text: str, strict: bool = False) -> list[Record]:
        self._check_open()
        return self.store.find_by_subject(text, strict)

    def find_by_year(self, year: int) -> list[Record]:
        self._check_open()
        return self.store.find_by_year(year)

    # -- Issuers -------------------------------------------------------------

    def register_issuer(self, name: Optional[str]) -> Outcome:
        self._check_open()
        try:
            issuer = self.registry.register(name)
        except GrebError as e:
            return Outcome.failure(e)
        return Outcome.success(issuer, persisted=not self.registry.dirty)

    def list_issuers(self) -> list[Issuer]:
        self._check_open()
        return self.registry.all()

    def resolve_issuer_by_index(self, index: Any) -> Outcome:
        self._check_open()
        try:
            return Outcome.success(self.registry.resolve_by_index(parse_int(index, "issuer index")))
        except GrebError as e:
            return Outcome.failure(e)

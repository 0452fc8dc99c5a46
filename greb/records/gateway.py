"""PersistenceGateway: load and save the record file.

File format (current)::

    {
      "Reitoria|234|2000": {
        "issuer": "Reitoria",
        "serial": 234,
        "issueDate": "2000-05-30",
        "subject": "Alana Beatriz Pereira"
      }
    }

Older files are still accepted on load:

- keys in the ``PortariaPK[emissor=..., numero=..., ano=...]`` form
- payload fields named ``emissor`` / ``numero`` / ``publicacao`` / ``membro``
- the issuer as a numeric code or a legacy abbreviation (see
  ``greb.issuers.legacy``)

Each entry is decoded on its own; a bad entry is logged and skipped, never
aborting the load. Only a file that cannot be read or whose root is not a
JSON object fails the load, and even then the store starts empty.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from pathlib import Path
from typing import Any, Mapping

from greb.atomic import atomic_save
from greb.config import RECORDS_PATH
from greb.errors import PersistenceFailure
from greb.issuers.legacy import (
    SOURCE_FALLBACK,
    SOURCE_INDEX,
    SOURCE_LEGACY,
    SOURCE_NAME,
    CURRENT_DETECTORS,
    DETECTORS,
    DecodedIssuer,
    decode_issuer,
)
from greb.issuers.normalize import normalize_name
from greb.issuers.registry import IssuerRegistry
from greb.records.models import KeyFormatError, Record, RecordKey

logger = logging.getLogger(__name__)

# Current field name first, then the names used by older files
FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "issuer": ("issuer", "emissor"),
    "serial": ("serial", "numero"),
    "issue_date": ("issueDate", "publicacao"),
    "subject": ("subject", "membro"),
}

_ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class LoadState(str, Enum):
    LOADED = "loaded"
    EMPTY = "empty"
    FAILED = "failed"


class EntryError(ValueError):
    """A single stored entry is unusable. The load continues without it."""


@dataclass
class LoadReport:
    """Diagnostics from the last load. Not used for control flow."""

    state: LoadState
    total: int = 0
    loaded: int = 0
    migrated: int = 0
    collapsed: int = 0
    skipped: list[tuple[str, str]] = field(default_factory=list)
    error: str = ""

    @property
    def skipped_count(self) -> int:
        return len(self.skipped)

    def summary(self) -> str:
        if self.state is LoadState.EMPTY:
            return "No record file. Starting empty."
        if self.state is LoadState.FAILED:
            return f"Load failed: {self.error}"
        return (
            f"Loaded {self.loaded} valid records of {self.total} entries "
            f"({self.skipped_count} skipped, {self.collapsed} collapsed, "
            f"{self.migrated} in an older format)."
        )


def _field(payload: Mapping[str, Any], name: str) -> Any:
    for alias in FIELD_ALIASES[name]:
        if alias in payload:
            return payload[alias]
    return None


def _key_matches_issuer(key: RecordKey, decoded: DecodedIssuer, raw_issuer: Any) -> bool:
    """Does the issuer token in the key agree with the payload's issuer?

    Keys written alongside a legacy payload carry the same legacy token
    (the abbreviation or the numeric code), so those are accepted too.
    """
    accepted = {normalize_name(decoded.issuer.name)}
    if decoded.source in (SOURCE_LEGACY, SOURCE_FALLBACK) and isinstance(raw_issuer, str):
        accepted.add(normalize_name(raw_issuer))
    if decoded.source == SOURCE_INDEX:
        accepted.add(str(decoded.issuer.index))
    return normalize_name(key.issuer_name) in accepted


class PersistenceGateway:
    """Reads and writes the JSON record file."""

    def __init__(self, registry: IssuerRegistry, path: Path = RECORDS_PATH):
        self.registry = registry
        self.path = path

    # -- Load ----------------------------------------------------------------

    def load(self) -> tuple[dict[RecordKey, Record], LoadReport]:
        """Read the file into a fresh map. Never raises on bad data."""
        if not self.path.exists():
            logger.info("Record file %s not found. Starting empty.", self.path)
            return {}, LoadReport(LoadState.EMPTY)

        try:
            raw = self._read_root()
        except PersistenceFailure as e:
            logger.error("Failed to load records: %s", e)
            return {}, LoadReport(LoadState.FAILED, error=str(e))

        if raw is None:
            logger.info("Record file %s is empty. Starting empty.", self.path)
            return {}, LoadReport(LoadState.EMPTY)

        self.registry.bootstrap()
        records: dict[RecordKey, Record] = {}
        report = LoadReport(LoadState.LOADED, total=len(raw))

        for key_text, payload in raw.items():
            try:
                record, migrated = self.decode_entry(key_text, payload)
            except (EntryError, KeyFormatError) as e:
                logger.warning("Skipping entry %r: %s", key_text, e)
                report.skipped.append((key_text, str(e)))
                continue

            key = record.key()
            if key in records:
                logger.warning(
                    "Entry %r collapses onto %s already loaded; keeping the later one.",
                    key_text, key,
                )
                report.collapsed += 1
            records[key] = record
            if migrated:
                report.migrated += 1

        report.loaded = len(records)
        logger.info(
            "Loaded %d valid records of %d entries from %s",
            report.loaded, report.total, self.path,
        )
        if report.migrated:
            logger.info(
                "%d entries use an older format and will be rewritten on the next save.",
                report.migrated,
            )
        return records, report

    def _read_root(self) -> dict | None:
        """Parse the file root. None for a blank file; PersistenceFailure otherwise."""
        try:
            text = self.path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise PersistenceFailure(f"cannot read {self.path}: {e}") from e
        if not text.strip():
            return None
        try:
            raw = json.loads(text)
        except json.JSONDecodeError as e:
            raise PersistenceFailure(f"{self.path} is not valid JSON: {e}") from e
        if not isinstance(raw, dict):
            raise PersistenceFailure(
                f"{self.path} must hold a JSON object, got {type(raw).__name__}"
            )
        return raw

    def decode_entry(self, key_text: str, payload: Any) -> tuple[Record, bool]:
        """Turn one stored entry into a Record.

        Returns (record, migrated) where ``migrated`` is True if the entry
        was not in the current format. Raises EntryError or KeyFormatError.
        """
        key = RecordKey.parse(key_text)

        if not isinstance(payload, dict):
            raise EntryError(f"payload is not an object ({type(payload).__name__})")

        raw_issuer = _field(payload, "issuer")
        if raw_issuer is None:
            raise EntryError("missing issuer")
        detectors = CURRENT_DETECTORS if "issuer" in payload else DETECTORS
        decoded = decode_issuer(raw_issuer, self.registry, detectors)
        if decoded is None:
            raise EntryError(f"unresolvable issuer {raw_issuer!r}")

        serial = _field(payload, "serial")
        if serial is None:
            raise EntryError("missing serial number")
        if not isinstance(serial, int) or isinstance(serial, bool):
            raise EntryError(f"serial number must be an integer, got {serial!r}")

        raw_date = _field(payload, "issue_date")
        if not isinstance(raw_date, str) or not raw_date.strip():
            raise EntryError(f"missing or blank issue date ({raw_date!r})")
        raw_date = raw_date.strip()
        if not _ISO_DATE_RE.match(raw_date):
            raise EntryError(f"issue date {raw_date!r} is not YYYY-MM-DD")
        try:
            issue_date = date.fromisoformat(raw_date)
        except ValueError as e:
            raise EntryError(f"invalid issue date {raw_date!r}: {e}") from None

        subject = _field(payload, "subject")
        if not isinstance(subject, str) or not subject.strip():
            raise EntryError("missing or blank subject")

        if not _key_matches_issuer(key, decoded, raw_issuer):
            raise EntryError(
                f"key issuer {key.issuer_name!r} does not match payload issuer "
                f"{decoded.issuer.name!r}"
            )
        if key.serial != serial or key.year != issue_date.year:
            raise EntryError(
                f"key {key.serial}/{key.year} does not match payload "
                f"{serial}/{issue_date.year}"
            )

        record = Record(decoded.issuer, serial, issue_date, subject.strip())
        migrated = (
            decoded.source != SOURCE_NAME
            or "issuer" not in payload
            or key_text != record.key().encode()
        )
        return record, migrated

    # -- Save ----------------------------------------------------------------

    def save(self, records: Mapping[RecordKey, Record]) -> bool:
        """Overwrite the file with a full snapshot. Logs and returns False on error."""
        data = {key.encode(): records[key].to_payload() for key in sorted(records)}
        try:
            atomic_save(self.path, data, f"{len(data)} records")
        except PersistenceFailure as e:
            logger.error("Failed to save records: %s", e)
            return False
        logger.info("Saved %d records to %s", len(data), self.path)
        return True

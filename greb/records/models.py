"""Record entity and its natural key."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date
from typing import Optional

from greb.issuers.registry import Issuer

KEY_SEPARATOR = "|"

# Keys written by the first release: PortariaPK[emissor=Reitoria, numero=234, ano=2000]
_LEGACY_KEY_RE = re.compile(
    r"^\s*PortariaPK\s*\[\s*emissor\s*=\s*(?P<issuer>.*?)\s*,\s*"
    r"numero\s*=\s*(?P<serial>-?\d+)\s*,\s*ano\s*=\s*(?P<year>-?\d+)\s*\]\s*$"
)


class KeyFormatError(ValueError):
    """Raised when a stored key string cannot be parsed."""


@dataclass(frozen=True, order=True)
class RecordKey:
    """Composite identity of a record: (issuer name, serial, year)."""

    issuer_name: str
    serial: int
    year: int

    def encode(self) -> str:
        """'Reitoria|234|2000'"""
        return f"{self.issuer_name}{KEY_SEPARATOR}{self.serial}{KEY_SEPARATOR}{self.year}"

    @classmethod
    def parse(cls, text: str) -> "RecordKey":
        """Parse a stored key in either the current or the legacy form.

        The issuer name may itself contain the separator, so the serial and
        year are split off from the right.
        """
        if not isinstance(text, str) or not text.strip():
            raise KeyFormatError("empty key")

        m = _LEGACY_KEY_RE.match(text)
        if m:
            issuer, serial, year = m.group("issuer"), m.group("serial"), m.group("year")
        else:
            parts = text.rsplit(KEY_SEPARATOR, 2)
            if len(parts) != 3:
                raise KeyFormatError(f"expected issuer|serial|year, got {text!r}")
            issuer, serial, year = parts

        issuer = issuer.strip()
        if not issuer:
            raise KeyFormatError(f"missing issuer in {text!r}")
        try:
            return cls(issuer, int(serial.strip()), int(year.strip()))
        except ValueError:
            raise KeyFormatError(f"serial and year must be integers in {text!r}") from None

    def __str__(self) -> str:
        return self.encode()


@dataclass(frozen=True)
class Record:
    """An administrative order. Changed only through ``RecordStore.update``."""

    issuer: Optional[Issuer]
    serial: int
    issue_date: date
    subject: str

    @property
    def year(self) -> int:
        return self.issue_date.year

    @property
    def issuer_name(self) -> str:
        return self.issuer.name if self.issuer is not None else ""

    def key(self) -> RecordKey:
        """Derive the natural key. Requires an issuer."""
        if self.issuer is None:
            raise ValueError("record has no issuer")
        return RecordKey(self.issuer.name, self.serial, self.issue_date.year)

    def to_payload(self) -> dict:
        """On-disk representation (issuer stored by display name)."""
        return {
            "issuer": self.issuer_name,
            "serial": self.serial,
            "issueDate": self.issue_date.isoformat(),
            "subject": self.subject,
        }

    def to_dict(self) -> dict:
        """Flat view for display, including the issuer index."""
        return {
            "issuer_index": self.issuer.index if self.issuer is not None else None,
            "issuer": self.issuer_name,
            "serial": self.serial,
            "issue_date": self.issue_date.isoformat(),
            "subject": self.subject,
        }

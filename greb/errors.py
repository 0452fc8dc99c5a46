"""Error taxonomy and the typed outcome returned by mutations."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional


class GrebError(Exception):
    """Base class for every failure the store reports to callers."""

    code = "error"


class InvalidInput(GrebError):
    """A required field is empty, malformed, or a range is inverted."""

    code = "invalid_input"


class Duplicate(GrebError):
    """An insert or registration collides with an existing entry."""

    code = "duplicate"


class NotFound(GrebError):
    """No entry exists under the requested key or index."""

    code = "not_found"


class InvalidIssuer(GrebError):
    """The issuer reference is absent or cannot be resolved."""

    code = "invalid_issuer"


class PersistenceFailure(GrebError):
    """Reading or writing a backing file failed."""

    code = "persistence_failure"


@dataclass(frozen=True)
class Outcome:
    """Result of a facade or store operation.

    ``persisted`` is False when the change was applied in memory but the
    backing file could not be rewritten.
    """

    ok: bool
    value: Any = None
    error: Optional[GrebError] = None
    persisted: bool = True

    @classmethod
    def success(cls, value: Any = None, persisted: bool = True) -> "Outcome":
        return cls(ok=True, value=value, persisted=persisted)

    @classmethod
    def failure(cls, error: GrebError) -> "Outcome":
        return cls(ok=False, error=error)

    @property
    def reason(self) -> str:
        """Human-readable explanation ('' on success)."""
        if self.error is None:
            return ""
        return str(self.error) or self.error.code

    def __bool__(self) -> bool:
        return self.ok

"""Issuer-field decoding for historical record files.

Over its lifetime the record file stored the issuer as:

- v1: a free-text abbreviation ("MPF", "MINC", "ifpr", ...)
- v2: a fixed numeric code
- v3: the issuer's display name ("Pró-Reitoria de Pessoas")

``decode_issuer`` runs an ordered chain of detectors over the raw value
and returns the first issuer that resolves, tagged with the detector that
produced it. Nothing here writes to disk: files are migrated lazily, the
next time the store saves.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Optional

from greb.errors import NotFound
from greb.issuers.registry import Issuer, IssuerRegistry

logger = logging.getLogger(__name__)

# Abbreviations found in v1 files -> issuer index
LEGACY_CODES: dict[str, int] = {
    "MPF": 5,
    "MEC": 1,
    "IFPR": 1,
    "MJ": 1,
    "MINC": 3,
    "UFPR": 1,
    "UTFPR": 1,
    "UNICAMP": 1,
    "UEL": 1,
    "UFRGS": 1,
}

# Unrecognized code-shaped strings fall back to Reitoria
LEGACY_DEFAULT_INDEX = 1

_CODE_SHAPE_RE = re.compile(r"^[A-Za-z0-9]{1,12}$")

SOURCE_INDEX = "index"
SOURCE_LEGACY = "legacy_code"
SOURCE_NAME = "name"
SOURCE_FALLBACK = "legacy_fallback"


@dataclass(frozen=True)
class DecodedIssuer:
    issuer: Issuer
    source: str


def looks_like_legacy_code(value: str) -> bool:
    """Short alphanumeric token with no whitespace, e.g. 'MPF' or 'UTFPR'."""
    return bool(_CODE_SHAPE_RE.match(value.strip()))


# ---------------------------------------------------------------------------
# Detectors
# ---------------------------------------------------------------------------

def from_index(raw: Any, registry: IssuerRegistry) -> Optional[DecodedIssuer]:
    """v2: integer issuer code."""
    if not isinstance(raw, int) or isinstance(raw, bool):
        return None
    try:
        return DecodedIssuer(registry.resolve_by_index(raw), SOURCE_INDEX)
    except NotFound:
        return None


def from_legacy_code(raw: Any, registry: IssuerRegistry) -> Optional[DecodedIssuer]:
    """v1: known abbreviation from the legacy table."""
    if not isinstance(raw, str):
        return None
    index = LEGACY_CODES.get(raw.strip().upper())
    if index is None:
        return None
    try:
        return DecodedIssuer(registry.resolve_by_index(index), SOURCE_LEGACY)
    except NotFound:
        logger.warning("Legacy code %r maps to missing issuer %d", raw, index)
        return None


def from_name(raw: Any, registry: IssuerRegistry) -> Optional[DecodedIssuer]:
    """v3: canonical display name, matched after normalization."""
    if not isinstance(raw, str):
        return None
    issuer = registry.resolve_by_name(raw)
    if issuer is None:
        return None
    return DecodedIssuer(issuer, SOURCE_NAME)


def from_legacy_fallback(raw: Any, registry: IssuerRegistry) -> Optional[DecodedIssuer]:
    """v1: unknown abbreviation. Mapped to the default issuer with a warning."""
    if not isinstance(raw, str) or not looks_like_legacy_code(raw):
        return None
    try:
        issuer = registry.resolve_by_index(LEGACY_DEFAULT_INDEX)
    except NotFound:
        return None
    logger.warning(
        "Unknown legacy issuer code %r, using %d (%s)",
        raw, issuer.index, issuer.name,
    )
    return DecodedIssuer(issuer, SOURCE_FALLBACK)


Detector = Callable[[Any, IssuerRegistry], Optional[DecodedIssuer]]

DETECTORS: tuple[Detector, ...] = (
    from_index,
    from_legacy_code,
    from_name,
    from_legacy_fallback,
)

# Payloads under the current ``issuer`` field hold display names
CURRENT_DETECTORS: tuple[Detector, ...] = (
    from_index,
    from_name,
    from_legacy_code,
    from_legacy_fallback,
)


def decode_issuer(
    raw: Any,
    registry: IssuerRegistry,
    detectors: tuple[Detector, ...] = DETECTORS,
) -> Optional[DecodedIssuer]:
    """Run the detector chain. Returns None when no detector resolves ``raw``."""
    for detector in detectors:
        decoded = detector(raw, registry)
        if decoded is not None:
            return decoded
    return None

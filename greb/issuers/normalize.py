"""Name normalization for issuer matching."""

import re
import unicodedata


def strip_accents(text: str) -> str:
    """Drop combining marks: 'Pró-Reitoria' -> 'Pro-Reitoria'."""
    decomposed = unicodedata.normalize("NFD", text)
    return "".join(c for c in decomposed if not unicodedata.combining(c))


def normalize_name(name: str | None) -> str:
    """Normalize an issuer name for comparison.

    Strip diacritics, case-fold, collapse whitespace, trim.
    Punctuation is kept: 'Campus Irati (DG)' and 'Campus Irati' stay distinct.
    """
    if not name:
        return ""
    s = strip_accents(name).casefold().strip()
    s = re.sub(r"\s+", " ", s)
    return s


def is_blank(text: str | None) -> bool:
    return text is None or not text.strip()

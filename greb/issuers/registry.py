"""Issuer registry: the catalog of bodies allowed to emit records.

Each issuer has a stable numeric index and a display name. The catalog
starts from a fixed seed list, grows at runtime through ``register`` and
is persisted as a JSON array::

    [
      {"index": 1, "name": "Reitoria"},
      {"index": 2, "name": "Pró-Reitoria de Ensino"},
      ...
    ]

Indices are assigned as ``max(existing) + 1`` and never reused. Names are
unique after normalization (case, accents, surrounding whitespace).
"""

from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass
from pathlib import Path

from greb.atomic import atomic_save
from greb.config import ISSUERS_PATH
from greb.errors import Duplicate, InvalidInput, NotFound, PersistenceFailure
from greb.issuers.normalize import is_blank, normalize_name

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Issuer:
    """A body that emits records."""

    index: int
    name: str

    def to_dict(self) -> dict:
        return {"index": self.index, "name": self.name}


# Catalog shipped with the first release. Order and indices must match it,
# including index 0 sitting between 7 and 8.
SEED_CATALOG: tuple[tuple[int, str], ...] = (
    (1, "Reitoria"),
    (2, "Pró-Reitoria de Ensino"),
    (3, "Pró-Reitoria de Administração"),
    (4, "Pró-Reitoria de Extensão, Pesquisa, Pós-Graduação e Inovação"),
    (5, "Pró-Reitoria de Pessoas"),
    (6, "Pró-Reitoria de Planejamento e Desenvolvimento Institucional"),
    (7, "Campus Arapongas (DG)"),
    (0, "Campus Assis Chateaubriand (DG)"),
    (8, "Campus Astorga (DG)"),
    (9, "Campus Barracão (DG)"),
    (10, "Campus Campo Largo (DG)"),
    (11, "Campus Capanema (DG)"),
    (12, "Campus Cascavel (DG)"),
    (13, "Campus Colombo (DG)"),
    (14, "Campus Coronel Vivida (DG)"),
    (15, "Campus Curitiba (DG)"),
    (16, "Campus Foz do Iguaçu (DG)"),
    (17, "Campus Goioerê (DG)"),
    (18, "Campus Irati (DG)"),
    (19, "Campus Ivaiporã (DG)"),
    (20, "Campus Jacarezinho (DG)"),
    (21, "Campus Jaguariaíva (DG)"),
    (22, "Campus Londrina (DG)"),
    (23, "Campus Palmas (DG)"),
    (24, "Campus Paranaguá (DG)"),
    (25, "Campus Paranavaí (DG)"),
    (26, "Campus Pinhais (DG)"),
    (27, "Campus Pitanga (DG)"),
    (28, "Campus Ponta Grossa (DG)"),
    (29, "Campus Quedas do Iguaçu (DG)"),
    (30, "Campus Telêmaco Borba (DG)"),
    (31, "Campus Toledo (DG)"),
    (32, "Campus Umuarama (DG)"),
    (33, "Campus União da Vitória (DG)"),
)


def seed_issuers() -> list[Issuer]:
    return [Issuer(index, name) for index, name in SEED_CATALOG]


class IssuerRegistry:
    """JSON-backed, runtime-extensible issuer catalog."""

    def __init__(self, path: Path = ISSUERS_PATH):
        self.path = path
        self._issuers: list[Issuer] = []
        self._loaded = False
        # True while the in-memory catalog has changes the file lacks
        self.dirty = False
        self._lock = threading.RLock()

    # -- Lifecycle -----------------------------------------------------------

    def bootstrap(self) -> None:
        """Load the catalog, seeding it when the file is absent or empty.

        Safe to call repeatedly; only the first call touches the disk.
        """
        with self._lock:
            if self._loaded:
                return

            raw = self._read()
            if raw is None:
                self._issuers = seed_issuers()
                logger.info(
                    "No issuer catalog at %s. Seeding %d issuers.",
                    self.path, len(self._issuers),
                )
                self._save()
            elif raw is False:
                # Damaged file: run on the seed list but leave the file alone
                self._issuers = seed_issuers()
            else:
                self._issuers = self._parse(raw)
                if not self._issuers:
                    logger.warning(
                        "Issuer catalog %s had no usable entries. Using seed list.",
                        self.path,
                    )
                    self._issuers = seed_issuers()
                logger.info("Loaded %d issuers from %s", len(self._issuers), self.path)

            self._loaded = True

    def _read(self) -> list | None | bool:
        """Return the raw array, None when absent/empty, False when unreadable."""
        if not self.path.exists():
            return None
        try:
            text = self.path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.error("Failed to read issuer catalog %s: %s", self.path, e)
            return False
        if not text.strip():
            return None
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            logger.error("Issuer catalog %s is not valid JSON: %s", self.path, e)
            return False
        if not isinstance(data, list):
            logger.error(
                "Issuer catalog %s must be a JSON array, got %s",
                self.path, type(data).__name__,
            )
            return False
        if not data:
            return None
        return data

    @staticmethod
    def _parse(raw: list) -> list[Issuer]:
        issuers: list[Issuer] = []
        seen_indices: set[int] = set()
        seen_names: set[str] = set()
        for pos, entry in enumerate(raw):
            if not isinstance(entry, dict):
                logger.warning("Skipping issuer #%d: not an object (%r)", pos, entry)
                continue
            index = entry.get("index")
            name = entry.get("name")
            if not isinstance(index, int) or isinstance(index, bool):
                logger.warning("Skipping issuer #%d: bad index %r", pos, index)
                continue
            if not isinstance(name, str) or is_blank(name):
                logger.warning("Skipping issuer #%d: bad name %r", pos, name)
                continue
            norm = normalize_name(name)
            if index in seen_indices or norm in seen_names:
                logger.warning(
                    "Skipping issuer #%d (%d, %r): duplicate index or name",
                    pos, index, name,
                )
                continue
            seen_indices.add(index)
            seen_names.add(norm)
            issuers.append(Issuer(index, name.strip()))
        return issuers

    def _save(self) -> bool:
        try:
            atomic_save(self.path, [i.to_dict() for i in self._issuers], "issuer catalog")
        except PersistenceFailure as e:
            logger.error("Failed to save issuer catalog: %s", e)
            self.dirty = True
            return False
        self.dirty = False
        return True

    # -- Lookups -------------------------------------------------------------

    def resolve_by_index(self, index: int) -> Issuer:
        """Return the issuer with ``index``. Raises NotFound."""
        self.bootstrap()
        with self._lock:
            for issuer in self._issuers:
                if issuer.index == index:
                    return issuer
        raise NotFound(f"No issuer with index {index}.")

    def resolve_by_name(self, name: str | None) -> Issuer | None:
        """Advisory lookup by normalized name. Returns None when nothing matches."""
        norm = normalize_name(name)
        if not norm:
            return None
        self.bootstrap()
        with self._lock:
            for issuer in self._issuers:
                if normalize_name(issuer.name) == norm:
                    return issuer
        return None

    def all(self) -> list[Issuer]:
        """Snapshot of the catalog in insertion order."""
        self.bootstrap()
        with self._lock:
            return list(self._issuers)

    def __len__(self) -> int:
        return len(self.all())

    # -- Mutation ------------------------------------------------------------

    def register(self, name: str | None) -> Issuer:
        """Add a new issuer and persist the catalog.

        Raises InvalidInput for a blank name and Duplicate when an issuer
        with the same normalized name already exists.
        """
        if name is None or is_blank(name):
            raise InvalidInput("Issuer name must not be empty.")
        clean = name.strip()
        self.bootstrap()
        with self._lock:
            existing = self.resolve_by_name(clean)
            if existing is not None:
                raise Duplicate(
                    f"Issuer '{clean}' already exists as index {existing.index} "
                    f"('{existing.name}')."
                )
            next_index = max((i.index for i in self._issuers), default=0) + 1
            issuer = Issuer(next_index, clean)
            self._issuers.append(issuer)
            self._save()
        logger.info("Registered issuer %d: %s", issuer.index, issuer.name)
        return issuer

"""Shared fixtures: every test gets its own data directory."""

from __future__ import annotations

import json
from datetime import date
from pathlib import Path

import pytest

from greb.issuers.registry import IssuerRegistry
from greb.records.gateway import PersistenceGateway
from greb.records.models import Record
from greb.records.store import RecordStore
from greb.service import GrebService


@pytest.fixture
def issuers_path(tmp_path: Path) -> Path:
    return tmp_path / "emissores.json"


@pytest.fixture
def records_path(tmp_path: Path) -> Path:
    return tmp_path / "portarias.json"


@pytest.fixture
def registry(issuers_path: Path) -> IssuerRegistry:
    reg = IssuerRegistry(issuers_path)
    reg.bootstrap()
    return reg


@pytest.fixture
def gateway(registry: IssuerRegistry, records_path: Path) -> PersistenceGateway:
    return PersistenceGateway(registry, records_path)


@pytest.fixture
def store(registry: IssuerRegistry, gateway: PersistenceGateway) -> RecordStore:
    s = RecordStore(registry, gateway)
    s.load()
    return s


@pytest.fixture
def service(records_path: Path, issuers_path: Path):
    svc = GrebService.open(records_path, issuers_path)
    yield svc
    svc.close()


@pytest.fixture
def make_record(registry: IssuerRegistry):
    def _make(index: int = 1, serial: int = 234, day: date = date(2000, 5, 30),
              subject: str = "Alana Beatriz Pereira") -> Record:
        return Record(registry.resolve_by_index(index), serial, day, subject)
    return _make


def write_json(path: Path, data) -> None:
    path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")


def read_json(path: Path):
    return json.loads(path.read_text(encoding="utf-8"))

from __future__ import annotations

import pytest

from greb.issuers.legacy import (
    SOURCE_FALLBACK,
    SOURCE_INDEX,
    SOURCE_LEGACY,
    SOURCE_NAME,
    decode_issuer,
    from_index,
    from_legacy_code,
    from_legacy_fallback,
    from_name,
    looks_like_legacy_code,
)
from greb.issuers.registry import IssuerRegistry


def test_from_index(registry: IssuerRegistry) -> None:
    decoded = from_index(3, registry)
    assert decoded is not None
    assert decoded.issuer.name == "Pró-Reitoria de Administração"
    assert decoded.source == SOURCE_INDEX
    assert from_index(999, registry) is None
    assert from_index("3", registry) is None
    assert from_index(True, registry) is None


@pytest.mark.parametrize("code, index", [("MPF", 5), ("minc", 3), (" IFPR ", 1), ("UTFPR", 1)])
def test_from_legacy_code(registry: IssuerRegistry, code: str, index: int) -> None:
    decoded = from_legacy_code(code, registry)
    assert decoded is not None
    assert decoded.issuer.index == index
    assert decoded.source == SOURCE_LEGACY


def test_from_legacy_code_ignores_unknown(registry: IssuerRegistry) -> None:
    assert from_legacy_code("XYZ", registry) is None
    assert from_legacy_code(5, registry) is None


def test_from_name(registry: IssuerRegistry) -> None:
    decoded = from_name("PRÓ-REITORIA DE PESSOAS", registry)
    assert decoded is not None
    assert decoded.issuer.index == 5
    assert decoded.source == SOURCE_NAME
    assert from_name("Nowhere", registry) is None


def test_fallback_only_for_code_shaped_strings(registry: IssuerRegistry) -> None:
    decoded = from_legacy_fallback("UFSC", registry)
    assert decoded is not None
    assert decoded.issuer.index == 1
    assert decoded.source == SOURCE_FALLBACK

    assert from_legacy_fallback("Campus Inexistente (DG)", registry) is None
    assert from_legacy_fallback("", registry) is None


def test_looks_like_legacy_code() -> None:
    assert looks_like_legacy_code("MINC")
    assert looks_like_legacy_code("ufpr")
    assert not looks_like_legacy_code("Pró-Reitoria")
    assert not looks_like_legacy_code("TWO WORDS")
    assert not looks_like_legacy_code("ABCDEFGHIJKLM")


def test_chain_order(registry: IssuerRegistry) -> None:
    assert decode_issuer(5, registry).source == SOURCE_INDEX
    assert decode_issuer("MPF", registry).source == SOURCE_LEGACY
    # A canonical name that is also code-shaped must not hit the fallback
    assert decode_issuer("Reitoria", registry).source == SOURCE_NAME
    assert decode_issuer("QQQ", registry).source == SOURCE_FALLBACK


def test_chain_picks_up_registered_issuers(registry: IssuerRegistry) -> None:
    registry.register("CPPD")
    decoded = decode_issuer("cppd", registry)
    assert decoded.source == SOURCE_NAME
    assert decoded.issuer.name == "CPPD"


@pytest.mark.parametrize("raw", [None, 999, 3.5, "Campus Inexistente (DG)", ["Reitoria"], {"index": 1}])
def test_chain_unresolved(registry: IssuerRegistry, raw) -> None:
    assert decode_issuer(raw, registry) is None

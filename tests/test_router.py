from __future__ import annotations

import pytest

from ckdraw.errors import NotFoundError
from ckdraw.models import SCHEMATIC, SymbolKey
from ckdraw.router import VirtualRouter, canonical_suffix, embedded_path, extract_suffix, parse_suffix
from ckdraw.store.artifacts import ArtifactStore

KEY = SymbolKey("libA", "cellB")


@pytest.fixture
def router() -> VirtualRouter:
    store = ArtifactStore()
    store.replace_all("<schematic/>", {KEY: "<symbol/>", SymbolKey("lib A", "cell#1"): "<spaced/>"})
    return VirtualRouter(store)


def test_prefix_does_not_matter(router: VirtualRouter) -> None:
    a = router.resolve("/embedded/symbols/libA/cellB.drawio")
    b = router.resolve("/deploy/sub/embedded/symbols/libA/cellB.drawio")
    assert a == b == "<symbol/>"


def test_last_marker_wins(router: VirtualRouter) -> None:
    assert router.resolve("/embedded/old/embedded/schematic.drawio") == "<schematic/>"


def test_query_and_fragment_ignored(router: VirtualRouter) -> None:
    assert router.resolve("https://host/app/embedded/schematic.drawio?t=1712#page") == "<schematic/>"


def test_percent_encoding_decoded(router: VirtualRouter) -> None:
    path = embedded_path(SymbolKey("lib A", "cell#1"), base="/app")
    assert "%20" in path and "%23" in path
    assert router.resolve(path) == "<spaced/>"


@pytest.mark.parametrize(
    "path",
    [
        "/embedded/symbols/libA/missing.drawio",
        "/embedded/symbols/libA/cellB.svg",
        "/embedded/symbols/libA.drawio",
        "/embedded/symbols/a/b/c.drawio",
        "/embedded/other.drawio",
        "/static/schematic.drawio",
        "/embedded/symbols/libA/...drawio",
    ],
)
def test_unknown_paths_raise(router: VirtualRouter, path: str) -> None:
    with pytest.raises(NotFoundError):
        router.resolve(path)


def test_missing_schematic_is_not_found() -> None:
    router = VirtualRouter(ArtifactStore())
    with pytest.raises(NotFoundError):
        router.resolve("/embedded/schematic.drawio")


def test_routes_reflect_store_changes(router: VirtualRouter) -> None:
    assert router.routes()[0] == "/embedded/schematic.drawio"
    router.store.put(SymbolKey("new", "sym"), "<new/>")
    assert "/base/embedded/symbols/new/sym.drawio" in router.routes("/base/")
    assert router.resolve("/embedded/symbols/new/sym.drawio") == "<new/>"


def test_suffix_round_trip() -> None:
    assert parse_suffix(canonical_suffix(KEY)) == KEY
    assert parse_suffix(canonical_suffix(SCHEMATIC)) == SCHEMATIC
    assert extract_suffix("x/embedded/schematic.drawio") == "schematic.drawio"

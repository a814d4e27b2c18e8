"""Tests for asset mirroring and filesystem helpers."""

from __future__ import annotations

from pathlib import Path

import pytest

from jspublisher.assets import ASSET_SUFFIXES, AssetMirror
from jspublisher.errors import FilesystemError
from jspublisher.fsutil import copy_tree, iter_files, remove_tree
from jspublisher.models import StagedFile

MIXED_TREE = {
    "logo.png": b"\x89PNG",
    "App.as": b"package {}",
    "App.css": b"body {}",
    "notes.txt": b"todo",
    "images/icon.GIF": b"GIF89a",
    "images/photo.jpg": b"\xff\xd8",
    "images/photo.jpeg": b"\xff\xd8",
    "images/raw.svg": b"<svg/>",
    "data/config.json": b"{}",
    "data/schema.xml": b"<xml/>",
    "empty/.keep": b"",
}


def _write_tree(root: Path, files: dict[str, bytes]) -> None:
    for relative, content in files.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)


def _files(root: Path) -> list[str]:
    return sorted(path.relative_to(root).as_posix() for path in root.rglob("*") if path.is_file())


@pytest.mark.parametrize("workers", [1, 4])
def test_mirror_copies_only_allowed_extensions(tmp_path: Path, workers: int) -> None:
    source = tmp_path / "src"
    _write_tree(source, MIXED_TREE)
    debug = tmp_path / "bin" / "js-debug"
    release = tmp_path / "bin" / "js-release"

    copied = AssetMirror(workers=workers).mirror(source, [debug, release])

    expected = ["data/config.json", "images/icon.GIF", "images/photo.jpg", "logo.png"]
    assert _files(debug) == expected
    assert _files(release) == expected
    assert len(copied) == 2 * len(expected)
    for root in (debug, release):
        for path in root.rglob("*"):
            if path.is_file():
                assert path.suffix.lower() in ASSET_SUFFIXES
    assert (debug / "logo.png").read_bytes() == b"\x89PNG"


def test_mirror_recreates_directory_structure(tmp_path: Path) -> None:
    source = tmp_path / "src"
    _write_tree(source, MIXED_TREE)
    debug = tmp_path / "out"

    AssetMirror(workers=1).mirror(source, [debug])

    assert (debug / "empty").is_dir()
    assert (debug / "data").is_dir()


def test_mirror_skips_output_trees_nested_in_source(tmp_path: Path) -> None:
    source = tmp_path / "project"
    _write_tree(source, {"logo.png": b"png", "bin/js-debug/stale.png": b"old"})
    debug = source / "bin" / "js-debug"
    release = source / "bin" / "js-release"

    AssetMirror(workers=1).mirror(source, [debug, release])

    assert _files(release) == ["logo.png"]
    assert _files(debug) == ["logo.png", "stale.png"]
    assert not (debug / "bin" / "js-debug").exists()


def test_mirror_requires_source_directory(tmp_path: Path) -> None:
    with pytest.raises(FilesystemError):
        AssetMirror().mirror(tmp_path / "missing", [tmp_path / "out"])


def test_staged_file_refuses_to_escape_root(tmp_path: Path) -> None:
    with pytest.raises(FilesystemError):
        StagedFile(source=None, destination=tmp_path / "out" / ".." / "evil.png", root=tmp_path / "out")


def test_copy_tree_overwrites_in_place(tmp_path: Path) -> None:
    source = tmp_path / "lib"
    _write_tree(source, {"goog/base.js": b"new", "goog/dom/dom.js": b"dom"})
    destination = tmp_path / "debug"
    _write_tree(destination, {"goog/base.js": b"old", "goog/extra.js": b"keep"})

    copy_tree(source, destination, workers=2)

    assert (destination / "goog" / "base.js").read_bytes() == b"new"
    assert (destination / "goog" / "extra.js").read_bytes() == b"keep"
    assert (destination / "goog" / "dom" / "dom.js").read_bytes() == b"dom"


def test_iter_files_filters_suffixes_and_exclusions(tmp_path: Path) -> None:
    _write_tree(tmp_path, {"App.js": b"", "app/View.js": b"", "library/goog/base.js": b"", "App.css": b""})

    found = list(iter_files(tmp_path, suffixes={".js"}, exclude=[tmp_path / "library"]))

    assert found == [tmp_path / "App.js", tmp_path / "app" / "View.js"]


def test_remove_tree_ignores_missing_directory(tmp_path: Path) -> None:
    remove_tree(tmp_path / "missing")
    target = tmp_path / "release"
    _write_tree(target, {"old.js": b""})
    remove_tree(target)
    assert not target.exists()


@pytest.mark.parametrize("name", ["logo.PNG", "icon.Gif", "data.JSON", "photo.jpg"])
def test_asset_suffix_match_ignores_case(name: str) -> None:
    assert AssetMirror().is_asset(Path(name))


@pytest.mark.parametrize("name", ["photo.JPEG", "App.CSS", "README"])
def test_non_asset_suffixes_are_rejected(name: str) -> None:
    assert not AssetMirror().is_asset(Path(name))

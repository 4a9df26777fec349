"""Unit tests for Materializer (blueprint_forge.engine.materialize)."""

from __future__ import annotations

import threading
import zipfile
from pathlib import Path

import pytest

from blueprint_forge.engine import Materializer, OutputMerger, VirtualFileTree
from blueprint_forge.errors import MaterializationError
from blueprint_forge.routing import PathCategoryResolver

pytestmark = pytest.mark.unit


@pytest.fixture
def tree() -> VirtualFileTree:
    merger = OutputMerger(PathCategoryResolver(), set())
    merger.write("/README.md", "# Demo\n", "a")
    merger.write("/src/lib/util.ts", "export {}\n", "a")
    merger.write("/public/logo.bin", b"\x00\x01\x02", "b")
    return merger.tree


class TestWriteDirectory:
    def test_writes_files(self, tree: VirtualFileTree, tmp_path: Path):
        target = Materializer().write_directory(tree, tmp_path / "out")
        assert (target / "README.md").read_text(encoding="utf-8") == "# Demo\n"
        assert (target / "src" / "lib" / "util.ts").read_text(encoding="utf-8") == "export {}\n"
        assert (target / "public" / "logo.bin").read_bytes() == b"\x00\x01\x02"

    def test_empty_existing_directory_is_used(self, tree: VirtualFileTree, tmp_path: Path):
        (tmp_path / "out").mkdir()
        target = Materializer().write_directory(tree, tmp_path / "out")
        assert (target / "README.md").exists()

    def test_refuses_non_empty_directory(self, tree: VirtualFileTree, tmp_path: Path):
        target = tmp_path / "out"
        target.mkdir()
        (target / "keep.txt").write_text("mine", encoding="utf-8")
        with pytest.raises(MaterializationError, match="not empty"):
            Materializer().write_directory(tree, target)
        assert (target / "keep.txt").read_text(encoding="utf-8") == "mine"
        assert not (target / "README.md").exists()

    def test_overwrite_replaces_contents(self, tree: VirtualFileTree, tmp_path: Path):
        target = tmp_path / "out"
        target.mkdir()
        (target / "stale.txt").write_text("old", encoding="utf-8")
        Materializer(overwrite=True).write_directory(tree, target)
        assert not (target / "stale.txt").exists()
        assert (target / "README.md").exists()
        assert sorted(p.name for p in tmp_path.iterdir()) == ["out"]

    def test_target_is_a_file(self, tree: VirtualFileTree, tmp_path: Path):
        target = tmp_path / "out"
        target.write_text("x", encoding="utf-8")
        with pytest.raises(MaterializationError, match="not a directory"):
            Materializer(overwrite=True).write_directory(tree, target)

    def test_no_staging_left_behind(self, tree: VirtualFileTree, tmp_path: Path):
        Materializer().write_directory(tree, tmp_path / "out")
        assert [p.name for p in tmp_path.iterdir()] == ["out"]

    def test_cancelled_before_rename(self, tree: VirtualFileTree, tmp_path: Path):
        cancelled = threading.Event()
        cancelled.set()
        with pytest.raises(MaterializationError, match="cancelled"):
            Materializer(cancelled=cancelled).write_directory(tree, tmp_path / "out")
        assert list(tmp_path.iterdir()) == []


class TestWriteArchive:
    def test_writes_sorted_entries(self, tree: VirtualFileTree, tmp_path: Path):
        target = Materializer().write_archive(tree, tmp_path / "out.zip")
        with zipfile.ZipFile(target) as archive:
            assert archive.namelist() == ["README.md", "public/logo.bin", "src/lib/util.ts"]
            assert archive.read("README.md") == b"# Demo\n"
            assert archive.getinfo("README.md").date_time == (1980, 1, 1, 0, 0, 0)

    def test_archive_is_reproducible(self, tree: VirtualFileTree, tmp_path: Path):
        first = Materializer().write_archive(tree, tmp_path / "a.zip")
        second = Materializer().write_archive(tree, tmp_path / "b.zip")
        assert first.read_bytes() == second.read_bytes()

    def test_refuses_existing_archive(self, tree: VirtualFileTree, tmp_path: Path):
        target = tmp_path / "out.zip"
        target.write_bytes(b"old")
        with pytest.raises(MaterializationError, match="already exists"):
            Materializer().write_archive(tree, target)
        assert target.read_bytes() == b"old"

    def test_overwrite_archive(self, tree: VirtualFileTree, tmp_path: Path):
        target = tmp_path / "out.zip"
        target.write_bytes(b"old")
        Materializer(overwrite=True).write_archive(tree, target)
        assert zipfile.is_zipfile(target)
        assert [p.name for p in tmp_path.iterdir()] == ["out.zip"]

    def test_cancelled_archive_keeps_old_file(self, tree: VirtualFileTree, tmp_path: Path):
        target = tmp_path / "out.zip"
        target.write_bytes(b"old")
        cancelled = threading.Event()
        cancelled.set()
        with pytest.raises(MaterializationError, match="cancelled"):
            Materializer(overwrite=True, cancelled=cancelled).write_archive(tree, target)
        assert target.read_bytes() == b"old"
        assert [p.name for p in tmp_path.iterdir()] == ["out.zip"]

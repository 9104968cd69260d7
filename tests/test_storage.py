"""Tests for the file-system capability and path normalization."""

from pathlib import Path

import pytest

from docvault.errors import PathError
from docvault.storage.fs import LocalFileSystem, MemoryFileSystem
from docvault.storage.path import join_path, normalize_path, parent_of


@pytest.mark.parametrize("bad", ["", "   ", "/etc/passwd", "../up", "a/../../b"])
def test_normalize_rejects_unsafe_paths(bad):
    with pytest.raises(PathError):
        normalize_path(bad)


def test_normalize_and_join():
    assert normalize_path("a//b/./c/") == "a/b/c"
    assert normalize_path(".") == "."
    assert join_path("notes", "x.md") == "notes/x.md"
    assert parent_of("notes/x.md") == "notes"
    assert parent_of("x.md") == "."


@pytest.fixture(params=["memory", "local"])
def fs(request, tmp_path: Path):
    if request.param == "memory":
        return MemoryFileSystem()
    return LocalFileSystem(tmp_path)


def test_write_read_and_stat(fs):
    fs.mkdir_all("notes/sub")
    fs.write_file("notes/sub/a.md", "hello")
    assert fs.read_file("notes/sub/a.md") == "hello"
    assert fs.is_file("notes/sub/a.md")
    assert fs.is_dir("notes/sub")
    info = fs.stat("notes/sub/a.md")
    assert info.name == "a.md"
    assert info.path == "notes/sub/a.md"
    assert info.size == 5
    assert info.kind == "file"


def test_write_requires_existing_parent(fs):
    with pytest.raises(OSError):
        fs.write_file("missing/a.md", "x")


def test_read_dir_sorted_and_walk_depth_first(fs):
    fs.mkdir_all("b")
    fs.mkdir_all("a/inner")
    fs.write_file("c.md", "")
    fs.write_file("a/inner/x.md", "")
    fs.write_file("a/y.md", "")

    assert [e.name for e in fs.read_dir(".")] == ["a", "b", "c.md"]
    assert [e.path for e in fs.walk()] == ["a", "a/inner", "a/inner/x.md", "a/y.md", "b", "c.md"]


def test_rename_remove_and_remove_all(fs):
    fs.mkdir_all("a/b")
    fs.write_file("a/b/x.md", "1")
    fs.mkdir_all("z")
    fs.rename("a", "z/a")
    assert fs.read_file("z/a/b/x.md") == "1"
    assert not fs.exists("a")

    with pytest.raises(OSError):
        fs.remove("z/a/b")
    fs.remove("z/a/b/x.md")
    fs.remove("z/a/b")
    assert not fs.exists("z/a/b")

    fs.write_file("z/a/y.md", "2")
    fs.remove_all("z")
    assert not fs.exists("z")


def test_local_rejects_symlinks(tmp_path: Path):
    (tmp_path / "real.md").write_text("x", encoding="utf-8")
    (tmp_path / "link.md").symlink_to(tmp_path / "real.md")
    fs = LocalFileSystem(tmp_path)

    with pytest.raises(PathError):
        fs.read_file("link.md")
    assert [e.name for e in fs.read_dir(".")] == ["real.md"]


def test_local_write_is_atomic_and_leaves_no_temp_files(tmp_path: Path):
    fs = LocalFileSystem(tmp_path)
    fs.write_file("a.md", "one")
    fs.write_file("a.md", "two")
    assert (tmp_path / "a.md").read_text(encoding="utf-8") == "two"
    assert sorted(p.name for p in tmp_path.iterdir()) == ["a.md"]


def test_memory_roots_are_unique():
    assert MemoryFileSystem().root != MemoryFileSystem().root
    assert MemoryFileSystem("named").root == "memory://named"

"""Shared fixtures for treeaudit tests."""

import os
from pathlib import Path

import pytest

from treeaudit.pathfilter import normalize_path


def failing_scandir(*failing_paths):
    """Build an os.scandir replacement that raises PermissionError for some paths."""
    real_scandir = os.scandir
    failing = {str(p) for p in failing_paths}

    def fake_scandir(path):
        if str(path) in failing:
            raise PermissionError(13, "Permission denied", str(path))
        return real_scandir(path)

    return fake_scandir


@pytest.fixture
def deny_scandir():
    """Factory for an os.scandir replacement that fails on the given paths."""
    return failing_scandir


@pytest.fixture
def sample_tree(tmp_path) -> Path:
    """
    A small tree with known sizes and duplicates.

    data/
      top.txt              10 bytes
      sub/a.txt           100 bytes  (same content as b.txt)
      sub/b.txt           100 bytes
      sub/c.txt           100 bytes  (different content)
      docs/report.pdf      50 bytes  (same name/size as archive/report.pdf, different content)
      docs/empty.txt        0 bytes
      archive/report.pdf   50 bytes
      archive/empty.txt     0 bytes
    """
    root = Path(normalize_path(str(tmp_path))) / "data"
    (root / "sub").mkdir(parents=True)
    (root / "docs").mkdir()
    (root / "archive").mkdir()

    (root / "top.txt").write_bytes(b"t" * 10)
    (root / "sub" / "a.txt").write_bytes(b"A" * 100)
    (root / "sub" / "b.txt").write_bytes(b"A" * 100)
    (root / "sub" / "c.txt").write_bytes(b"C" * 100)
    (root / "docs" / "report.pdf").write_bytes(b"x" * 50)
    (root / "docs" / "empty.txt").write_bytes(b"")
    (root / "archive" / "report.pdf").write_bytes(b"y" * 50)
    (root / "archive" / "empty.txt").write_bytes(b"")
    return root


@pytest.fixture
def cache_dir(tmp_path) -> str:
    """Scan cache directory outside the analyzed tree."""
    return str(tmp_path / "cache")


@pytest.fixture
def latin1_tree(tmp_path) -> Path:
    """
    A tree holding a file whose name is Latin-1, not UTF-8.

    data/
      ok.txt              10 bytes
      sub/caf\\xe9.txt     11 bytes
    """
    root = Path(normalize_path(str(tmp_path))) / "data"
    (root / "sub").mkdir(parents=True)
    (root / "ok.txt").write_bytes(b"o" * 10)

    raw_name = os.path.join(os.fsencode(str(root / "sub")), b"caf\xe9.txt")
    try:
        with open(raw_name, "wb") as f:
            f.write(b"c" * 11)
    except (OSError, UnicodeError):
        pytest.skip("filesystem does not accept non-UTF-8 file names")
    return root

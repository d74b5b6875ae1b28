"""Tests for display module."""

import os
from io import StringIO
from unittest.mock import patch

import pytest
from rich.console import Console

from treeaudit.analyzer import analyze
from treeaudit.config import AnalysisConfig
from treeaudit.display import (
    printable_path,
    show_analysis,
    show_directory_tree,
    show_scanning_progress,
    show_warnings,
)
from treeaudit.models import DirectoryNode, DuplicateStrategy, ScanWarning


@pytest.fixture
def recording_console():
    """Replace the module console with one that writes to a buffer."""
    buffer = StringIO()
    with patch("treeaudit.display.console", Console(file=buffer, width=200, color_system=None)):
        yield buffer


class TestShowAnalysis:
    def test_renders_all_sections(self, sample_tree, recording_console):
        config = AnalysisConfig(
            target_path=str(sample_tree),
            use_cache=False,
            duplicate_strategy=DuplicateStrategy.THOROUGH,
        )
        show_analysis(analyze(config))

        output = recording_console.getvalue()
        assert "Summary" in output
        assert "Old Files" in output
        assert "Large Files" in output
        assert "Duplicate Files" in output
        assert "sub" in output

    def test_no_duplicates_message(self, tmp_path, recording_console):
        (tmp_path / "only.txt").write_text("x")
        show_analysis(analyze(AnalysisConfig(target_path=str(tmp_path), use_cache=False)))
        assert "No duplicate files found" in recording_console.getvalue()

    def test_summary_counts_folders(self, sample_tree, recording_console):
        show_analysis(analyze(AnalysisConfig(target_path=str(sample_tree), use_cache=False)))
        assert "Folders: 3" in recording_console.getvalue()

    def test_non_utf8_names_render(self, latin1_tree, recording_console):
        show_analysis(analyze(AnalysisConfig(target_path=str(latin1_tree), use_cache=False)), tree_depth=3)
        assert "Files: 2" in recording_console.getvalue()


class TestPrintablePath:
    def test_plain_path_unchanged(self):
        assert printable_path("/data/ümlaut name.txt") == "/data/ümlaut name.txt"

    def test_markup_escaped(self):
        assert printable_path("/data/[draft]") == "/data/\\[draft]"

    @pytest.mark.skipif(os.name == "nt", reason="POSIX file name bytes")
    def test_undecodable_bytes_shown_as_escapes(self):
        assert printable_path(os.fsdecode(b"/data/caf\xe9.txt")) == "/data/caf\\xe9.txt"


class TestShowDirectoryTree:
    def test_respects_depth(self, recording_console):
        leaf = DirectoryNode(path="/data/middir/leafdir", depth=2, own_files_size=5, total_size=5)
        mid = DirectoryNode(
            path="/data/middir", depth=1, total_size=5, own_folder_count=1, children=(leaf,)
        )
        root = DirectoryNode(path="/data", depth=0, total_size=5, own_folder_count=1, children=(mid,))

        show_directory_tree(root, max_depth=1)

        output = recording_console.getvalue()
        assert "middir" in output
        assert "leafdir" not in output


class TestShowWarnings:
    def test_lists_warnings(self, recording_console):
        show_warnings((ScanWarning(path="/data/locked", reason="Permission denied"),))
        output = recording_console.getvalue()
        assert "/data/locked" in output
        assert "Permission denied" in output

    def test_truncates_long_lists(self, recording_console):
        warnings = tuple(ScanWarning(path=f"/data/{i}", reason="Permission denied") for i in range(30))
        show_warnings(warnings, limit=5)
        assert "25 more" in recording_console.getvalue()

    def test_nothing_for_no_warnings(self, recording_console):
        show_warnings(())
        assert recording_console.getvalue() == ""


class TestScanningProgress:
    def test_creates_progress(self):
        progress = show_scanning_progress()
        task = progress.add_task("Scanning files...", total=None)
        progress.update(task, completed=10)
        assert progress.tasks[0].completed == 10

"""Tests for analysis orchestration."""

import os
import threading
from datetime import datetime, timedelta
from unittest.mock import patch

import pytest

from treeaudit.analyzer import analyze, validate_target
from treeaudit.cache import ScanCache
from treeaudit.config import AnalysisConfig
from treeaudit.exceptions import AnalysisCancelledError, TargetNotAccessibleError
from treeaudit.models import DuplicateStrategy
from treeaudit.pathfilter import PathFilter
from treeaudit.tree import iter_nodes


def make_config(root, cache_dir, **overrides) -> AnalysisConfig:
    values = {"target_path": str(root), "cache_dir": cache_dir, "max_workers": 2}
    values.update(overrides)
    return AnalysisConfig(**values)


class TestValidateTarget:
    def test_missing_target(self, tmp_path):
        with pytest.raises(TargetNotAccessibleError) as exc_info:
            validate_target(str(tmp_path / "missing"), PathFilter())
        assert "does not exist" in exc_info.value.message

    def test_file_target(self, tmp_path):
        target = tmp_path / "file.txt"
        target.write_text("x")
        with pytest.raises(TargetNotAccessibleError):
            validate_target(str(target), PathFilter())

    def test_excluded_target(self, tmp_path):
        with pytest.raises(TargetNotAccessibleError):
            validate_target(str(tmp_path), PathFilter([str(tmp_path)]))

    def test_unlistable_target(self, sample_tree, deny_scandir):
        with patch("os.scandir", side_effect=deny_scandir(str(sample_tree))):
            with pytest.raises(TargetNotAccessibleError) as exc_info:
                validate_target(str(sample_tree), PathFilter())
        assert isinstance(exc_info.value.original_exception, PermissionError)


class TestAnalyze:
    def test_full_analysis(self, sample_tree, cache_dir):
        result = analyze(make_config(sample_tree, cache_dir))

        assert result.target_path == str(sample_tree)
        assert result.file_count == 8
        assert result.total_bytes == 410
        assert result.duplicate_strategy == DuplicateStrategy.FAST
        assert result.wasted_bytes == 50
        assert result.directory_tree.total_size == 410
        assert result.used_cache is False
        assert result.warnings == ()

    def test_thorough_strategy(self, sample_tree, cache_dir):
        config = make_config(sample_tree, cache_dir, duplicate_strategy=DuplicateStrategy.THOROUGH)
        result = analyze(config)

        assert len(result.duplicate_sets) == 1
        assert result.wasted_bytes == 100

    def test_age_and_size_buckets(self, sample_tree, cache_dir):
        old = sample_tree / "sub" / "c.txt"
        two_years_ago = (datetime.now() - timedelta(days=730)).timestamp()
        os.utime(old, (two_years_ago, two_years_ago))

        config = make_config(
            sample_tree,
            cache_dir,
            age_thresholds={"Over1Year": 365, "Over5Years": 1825},
            size_thresholds={"Over60B": 60},
        )
        result = analyze(config)

        ages = {b.name: [r.path for r in b.files] for b in result.age_buckets}
        assert ages == {"Over5Years": [], "Over1Year": [str(old)]}
        assert [b.name for b in result.age_buckets] == ["Over5Years", "Over1Year"]
        assert result.size_buckets[0].file_count == 3

    def test_exclusions_apply_everywhere(self, sample_tree, cache_dir):
        excluded = str(sample_tree / "docs")
        result = analyze(make_config(sample_tree, cache_dir, exclude_paths=[excluded]))
        path_filter = PathFilter([excluded])

        assert result.file_count == 6
        assert result.duplicate_sets == ()
        assert not any(path_filter.is_excluded(n.path) for n in iter_nodes(result.directory_tree))
        assert result.directory_tree.total_size == 360

    def test_second_run_uses_cache(self, sample_tree, cache_dir):
        config = make_config(sample_tree, cache_dir)
        analyze(config)
        (sample_tree / "new.txt").write_bytes(b"n" * 5)

        result = analyze(config)

        assert result.used_cache is True
        assert result.file_count == 8
        # The tree is never cached
        assert result.directory_tree.total_size == 415

    def test_force_rescan_ignores_cache(self, sample_tree, cache_dir):
        analyze(make_config(sample_tree, cache_dir))
        (sample_tree / "new.txt").write_bytes(b"n" * 5)

        result = analyze(make_config(sample_tree, cache_dir, force_rescan=True))

        assert result.used_cache is False
        assert result.file_count == 9
        assert ScanCache(cache_dir).load(str(sample_tree)) is not None
        assert len(ScanCache(cache_dir).load(str(sample_tree))) == 9

    def test_cached_records_respect_new_excludes(self, sample_tree, cache_dir):
        analyze(make_config(sample_tree, cache_dir))
        excluded = str(sample_tree / "sub")

        result = analyze(make_config(sample_tree, cache_dir, exclude_paths=[excluded]))

        assert result.used_cache is True
        assert result.file_count == 5

    def test_cache_disabled(self, sample_tree, cache_dir):
        analyze(make_config(sample_tree, cache_dir, use_cache=False))
        assert ScanCache(cache_dir).load(str(sample_tree)) is None

    def test_idempotent_without_cache(self, sample_tree, cache_dir):
        now = datetime(2026, 1, 1)
        config = make_config(sample_tree, cache_dir, use_cache=False, duplicate_strategy=DuplicateStrategy.THOROUGH)

        first = analyze(config, now=now)
        second = analyze(config, now=now)

        assert first == second

    def test_unreadable_subdirectory_becomes_warning(self, sample_tree, cache_dir, deny_scandir):
        denied = str(sample_tree / "sub")
        with patch("os.scandir", side_effect=deny_scandir(denied)):
            result = analyze(make_config(sample_tree, cache_dir, use_cache=False))

        assert result.file_count == 5
        assert [w.path for w in result.warnings] == [denied]

    def test_missing_target_is_fatal(self, tmp_path, cache_dir):
        with pytest.raises(TargetNotAccessibleError):
            analyze(make_config(tmp_path / "missing", cache_dir))

    def test_cancelled_run_writes_no_cache(self, sample_tree, cache_dir):
        cancel_event = threading.Event()
        cancel_event.set()

        with pytest.raises(AnalysisCancelledError):
            analyze(make_config(sample_tree, cache_dir), cancel_event=cancel_event)

        assert ScanCache(cache_dir).load(str(sample_tree)) is None

    def test_progress_stages(self, sample_tree, cache_dir):
        stages = set()
        lock = threading.Lock()

        def on_progress(stage, count):
            with lock:
                stages.add(stage)

        config = make_config(
            sample_tree, cache_dir, use_cache=False, duplicate_strategy=DuplicateStrategy.THOROUGH
        )
        analyze(config, progress_callback=on_progress)

        assert stages == {"scan", "tree", "hash"}

    def test_unwritable_cache_is_warning(self, sample_tree, cache_dir):
        with patch.object(ScanCache, "save", side_effect=PermissionError(13, "Permission denied")):
            result = analyze(make_config(sample_tree, cache_dir))

        assert result.file_count == 8
        assert len(result.warnings) == 1
        assert "scan cache not saved" in result.warnings[0].reason

    def test_unserializable_cache_is_warning(self, sample_tree, cache_dir):
        with patch.object(ScanCache, "save", side_effect=ValueError("cannot encode path")):
            result = analyze(make_config(sample_tree, cache_dir))

        assert result.file_count == 8
        assert [w.reason for w in result.warnings] == ["scan cache not saved: cannot encode path"]


class TestNonUtf8Names:
    def test_analysis_completes(self, latin1_tree, cache_dir):
        result = analyze(make_config(latin1_tree, cache_dir))

        assert result.file_count == 2
        assert result.total_bytes == 21
        assert result.warnings == ()
        assert [n.name for n in result.directory_tree.children] == ["sub"]

    def test_tree_total_matches_inventory(self, latin1_tree, cache_dir):
        result = analyze(make_config(latin1_tree, cache_dir, use_cache=False))

        assert result.directory_tree.total_size == result.total_bytes
        assert sum(n.own_file_count for n in iter_nodes(result.directory_tree)) == result.file_count

    def test_cached_rerun_matches_fresh_scan(self, latin1_tree, cache_dir):
        now = datetime(2026, 1, 1)
        config = make_config(latin1_tree, cache_dir, duplicate_strategy=DuplicateStrategy.THOROUGH)

        first = analyze(config, now=now)
        second = analyze(config, now=now)

        assert second.used_cache is True
        assert second.size_buckets == first.size_buckets
        assert second.file_count == first.file_count

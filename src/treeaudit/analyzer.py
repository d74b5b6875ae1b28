"""Analysis orchestration for treeaudit."""

import logging
import os
import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from typing import Optional

from treeaudit.cache import ScanCache
from treeaudit.classifier import classify_by_age, classify_by_size
from treeaudit.config import AnalysisConfig
from treeaudit.duplicates import find_duplicates
from treeaudit.exceptions import TargetNotAccessibleError
from treeaudit.models import AnalysisResult, FileRecord, ScanWarning
from treeaudit.pathfilter import PathFilter, normalize_path
from treeaudit.progress import ProgressCallback, check_cancelled
from treeaudit.report import assemble_report
from treeaudit.scanner import scan_inventory
from treeaudit.tree import build_directory_tree

logger = logging.getLogger(__name__)


def validate_target(target: str, path_filter: PathFilter) -> None:
    """
    Check that a normalized target path can be analyzed.

    Raises:
        TargetNotAccessibleError: If the target is missing, not a directory,
            excluded, or cannot be listed
    """
    if not os.path.exists(target):
        raise TargetNotAccessibleError(target, "path does not exist")
    if not os.path.isdir(target):
        raise TargetNotAccessibleError(target, "not a directory")
    if path_filter.is_excluded(target):
        raise TargetNotAccessibleError(target, "target lies under an exclude path")
    try:
        with os.scandir(target):
            pass
    except OSError as e:
        raise TargetNotAccessibleError(target, "directory cannot be listed", e) from e


def _load_inventory(
    target: str,
    config: AnalysisConfig,
    path_filter: PathFilter,
    cache: Optional[ScanCache],
    progress_callback: Optional[ProgressCallback],
    cancel_event: Optional[threading.Event],
) -> tuple[list[FileRecord], list[ScanWarning], bool]:
    """Return (records, warnings, from_cache), preferring a cached scan unless forced."""
    if cache is not None and not config.force_rescan:
        cached = cache.load(target)
        if cached is not None:
            # Exclude paths may have changed since the cache was written
            records = [r for r in cached if not path_filter.is_excluded(r.path)]
            logger.debug("Using cached inventory for %s (%d records)", target, len(records))
            return records, [], True

    outcome = scan_inventory(
        target,
        path_filter,
        max_workers=config.max_workers,
        progress_callback=progress_callback,
        cancel_event=cancel_event,
    )
    return outcome.records, outcome.warnings, False


def analyze(
    config: AnalysisConfig,
    progress_callback: Optional[ProgressCallback] = None,
    cancel_event: Optional[threading.Event] = None,
    cache: Optional[ScanCache] = None,
    now: Optional[datetime] = None,
) -> AnalysisResult:
    """
    Perform a full analysis of one directory subtree.

    The directory tree is aggregated on a second thread while the inventory
    is loaded from cache or scanned. A fresh inventory is written to the
    scan cache only after the whole run has succeeded.

    Args:
        config: Run configuration
        progress_callback: Optional callback(stage, count)
        cancel_event: Set to abort; raises AnalysisCancelledError
        cache: Scan cache to use (default: one in config.cache_dir)
        now: Reference time for age buckets (default: current time)

    Returns:
        AnalysisResult for config.target_path

    Raises:
        TargetNotAccessibleError: If the target cannot be analyzed at all
        AnalysisCancelledError: If cancel_event was set during the run
    """
    target = normalize_path(config.target_path)
    path_filter = PathFilter.from_strings(config.exclude_paths)
    validate_target(target, path_filter)

    if cache is None and config.use_cache:
        cache = ScanCache(config.cache_dir)
    elif not config.use_cache:
        cache = None

    logger.debug(
        "Analyzing %s (strategy=%s, workers=%d, excludes=%s)",
        target,
        config.duplicate_strategy.value,
        config.max_workers,
        list(path_filter.prefixes),
    )

    with ThreadPoolExecutor(max_workers=2) as executor:
        tree_future = executor.submit(
            build_directory_tree, target, path_filter, progress_callback, cancel_event
        )
        records, scan_warnings, used_cache = _load_inventory(
            target, config, path_filter, cache, progress_callback, cancel_event
        )
        tree = tree_future.result()

    age_buckets = classify_by_age(records, config.age_thresholds, now=now)
    size_buckets = classify_by_size(records, config.size_thresholds)
    duplicates = find_duplicates(
        records,
        strategy=config.duplicate_strategy,
        max_workers=config.max_workers,
        progress_callback=progress_callback,
        cancel_event=cancel_event,
    )
    check_cancelled(cancel_event, "report")

    result = assemble_report(
        target,
        records,
        scan_warnings,
        age_buckets,
        size_buckets,
        duplicates,
        tree,
        used_cache=used_cache,
        generated_at=now,
    )

    if cache is not None and not used_cache:
        try:
            cache.save(target, records)
        except (OSError, ValueError) as e:
            cache_file = str(cache.cache_file_for(target))
            reason = getattr(e, "strerror", None) or str(e)
            warning = ScanWarning(path=cache_file, reason=f"scan cache not saved: {reason}")
            result = result.model_copy(update={"warnings": result.warnings + (warning,)})

    return result

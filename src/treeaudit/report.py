"""Assembly of the final analysis result."""

from datetime import datetime
from typing import Iterable, Optional

from treeaudit.exceptions import IncompleteAnalysisError
from treeaudit.models import (
    AnalysisResult,
    Bucket,
    DuplicateReport,
    FileRecord,
    ScanWarning,
    TreeOutcome,
)


def _merge_warnings(*groups: Iterable[ScanWarning]) -> tuple[ScanWarning, ...]:
    """Combine warning lists, dropping exact repeats (scanner and tree see the same paths)."""
    unique = {(w.path, w.reason): w for group in groups for w in group}
    return tuple(unique[key] for key in sorted(unique))


def assemble_report(
    target_path: str,
    records: list[FileRecord],
    scan_warnings: list[ScanWarning],
    age_buckets: list[Bucket],
    size_buckets: list[Bucket],
    duplicates: DuplicateReport,
    tree: TreeOutcome,
    used_cache: bool = False,
    generated_at: Optional[datetime] = None,
) -> AnalysisResult:
    """
    Merge component outputs into one immutable AnalysisResult.

    Raises:
        IncompleteAnalysisError: If the directory tree has no root node
    """
    if tree.root is None:
        raise IncompleteAnalysisError(f"No directory tree could be built for {target_path}")

    return AnalysisResult(
        target_path=target_path,
        generated_at=generated_at or datetime.now(),
        file_count=len(records),
        total_bytes=sum(r.size for r in records),
        age_buckets=tuple(sorted(age_buckets, key=lambda b: -b.threshold)),
        size_buckets=tuple(sorted(size_buckets, key=lambda b: -b.threshold)),
        duplicate_strategy=duplicates.strategy,
        duplicate_sets=tuple(duplicates.sets),
        wasted_bytes=duplicates.wasted_bytes,
        directory_tree=tree.root,
        used_cache=used_cache,
        warnings=_merge_warnings(scan_warnings, tree.warnings, duplicates.warnings),
    )

"""Duplicate file detection for treeaudit.

Two strategies are supported:

* fast: files with the same name and the same size are duplicates. Only
  metadata is compared, so renamed copies are missed and same-named files
  with different content are reported.
* thorough: files are first partitioned by size, then every file in a
  size group with two or more members is hashed with SHA-256 and the
  group is split by digest.

Zero-length files are never reported: they waste no space.

Wasted space counts every member of a set except the first as reclaimable.
Deliberately replicated files (e.g. a backup copy kept for resilience) are
counted as waste too; whether to keep them is the reader's call.
"""

import hashlib
import logging
import os
import threading
import time
from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Iterable, Optional, Union

from treeaudit.models import DuplicateReport, DuplicateSet, DuplicateStrategy, FileRecord, ScanWarning
from treeaudit.progress import ProgressCallback, ProgressCounter, check_cancelled

logger = logging.getLogger(__name__)

HASH_CHUNK_SIZE = 1024 * 1024


def hash_file(path: str, chunk_size: int = HASH_CHUNK_SIZE) -> str:
    """
    Compute the SHA-256 digest of a file's content.

    Raises:
        OSError: If the file cannot be read
    """
    digest = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(chunk_size), b""):
            digest.update(chunk)
    return digest.hexdigest()


def total_wasted_bytes(sets: Iterable[DuplicateSet]) -> int:
    """Sum of reclaimable bytes across duplicate sets."""
    return sum(s.wasted_bytes for s in sets)


def _sort_sets(sets: list[DuplicateSet]) -> list[DuplicateSet]:
    """Most wasteful first; ties broken by key and first path."""
    return sorted(sets, key=lambda s: (-s.wasted_bytes, str(s.match_key), s.members[0].path))


def _still_readable(record: FileRecord) -> Optional[ScanWarning]:
    """Warning for a record whose file has disappeared since the scan, else None."""
    try:
        os.stat(record.path)
    except OSError as e:
        return ScanWarning(path=record.path, reason=e.strerror or type(e).__name__)
    return None


def _find_fast(
    records: list[FileRecord],
    cancel_event: Optional[threading.Event],
) -> tuple[list[DuplicateSet], list[ScanWarning]]:
    groups: dict[tuple[str, int], list[FileRecord]] = defaultdict(list)
    for record in records:
        if record.size > 0:
            groups[(os.path.normcase(record.name), record.size)].append(record)

    sets: list[DuplicateSet] = []
    warnings: list[ScanWarning] = []

    for (_, size), members in groups.items():
        if len(members) < 2:
            continue
        check_cancelled(cancel_event, "duplicates")

        present = []
        for record in members:
            warning = _still_readable(record)
            if warning:
                warnings.append(warning)
            else:
                present.append(record)

        if len(present) >= 2:
            sets.append(
                DuplicateSet(match_key=(present[0].name, size), size=size, members=tuple(present))
            )

    return sets, warnings


def _hash_one(
    record: FileRecord,
    counter: ProgressCounter,
    cancel_event: Optional[threading.Event],
) -> tuple[FileRecord, Union[str, ScanWarning]]:
    check_cancelled(cancel_event, "hash")
    try:
        digest = hash_file(record.path)
    except OSError as e:
        return record, ScanWarning(path=record.path, reason=e.strerror or type(e).__name__)
    finally:
        counter.increment()
    return record, digest


def _find_thorough(
    records: list[FileRecord],
    max_workers: int,
    counter: ProgressCounter,
    cancel_event: Optional[threading.Event],
) -> tuple[list[DuplicateSet], list[ScanWarning]]:
    # First pass: group by size (cheap)
    size_groups: dict[int, list[FileRecord]] = defaultdict(list)
    for record in records:
        if record.size > 0:
            size_groups[record.size].append(record)

    candidates = [r for members in size_groups.values() if len(members) >= 2 for r in members]
    logger.debug("Hashing %d candidate files in %d size groups", len(candidates), len(size_groups))

    # Second pass: hash candidates in parallel; completion order does not matter
    digests: dict[str, str] = {}
    warnings: list[ScanWarning] = []

    with ThreadPoolExecutor(max_workers=max(1, max_workers)) as executor:
        futures = [executor.submit(_hash_one, r, counter, cancel_event) for r in candidates]
        for future in as_completed(futures):
            record, outcome = future.result()
            if isinstance(outcome, ScanWarning):
                warnings.append(outcome)
            else:
                digests[record.path] = outcome

    # Group deterministically: size groups in size order, members in path order
    sets: list[DuplicateSet] = []
    for size in sorted(size_groups):
        members = size_groups[size]
        if len(members) < 2:
            continue

        hash_groups: dict[str, list[FileRecord]] = defaultdict(list)
        for record in members:
            digest = digests.get(record.path)
            if digest is not None:
                hash_groups[digest].append(record)

        for digest, hash_members in hash_groups.items():
            if len(hash_members) >= 2:
                sets.append(DuplicateSet(match_key=digest, size=size, members=tuple(hash_members)))

    return sets, warnings


def find_duplicates(
    records: Iterable[FileRecord],
    strategy: DuplicateStrategy = DuplicateStrategy.FAST,
    max_workers: int = 4,
    progress_callback: Optional[ProgressCallback] = None,
    cancel_event: Optional[threading.Event] = None,
) -> DuplicateReport:
    """
    Group an inventory into duplicate sets.

    Files that can no longer be read (deleted or locked since the scan) are
    dropped from their group and reported as warnings. Two runs over the
    same input produce the same sets in the same order.

    Args:
        records: Inventory to search
        strategy: FAST (name + size) or THOROUGH (content hash)
        max_workers: Number of parallel hashing workers
        progress_callback: Optional callback("hash", files_hashed)
        cancel_event: Set to abort; raises AnalysisCancelledError

    Returns:
        DuplicateReport with sets sorted by wasted bytes, descending
    """
    started = time.monotonic()
    ordered = sorted(records, key=lambda r: r.path)

    if strategy == DuplicateStrategy.THOROUGH:
        counter = ProgressCounter("hash", progress_callback)
        sets, warnings = _find_thorough(ordered, max_workers, counter, cancel_event)
    else:
        sets, warnings = _find_fast(ordered, cancel_event)

    report = DuplicateReport(
        strategy=strategy,
        sets=_sort_sets(sets),
        warnings=sorted(warnings, key=lambda w: w.path),
    )
    logger.debug(
        "Found %d duplicate sets (%s strategy, %d bytes wasted) in %.2fs",
        len(report.sets),
        strategy.value,
        report.wasted_bytes,
        time.monotonic() - started,
    )
    return report

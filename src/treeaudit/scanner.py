"""File inventory scanning for treeaudit."""

import logging
import os
import threading
import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from treeaudit.models import FileRecord, ScanOutcome, ScanWarning
from treeaudit.pathfilter import PathFilter
from treeaudit.progress import ProgressCallback, ProgressCounter, check_cancelled

logger = logging.getLogger(__name__)


@dataclass
class DirectoryListing:
    """Direct contents of one directory."""

    path: str
    files: list[FileRecord] = field(default_factory=list)
    subdirectories: list[str] = field(default_factory=list)
    warnings: list[ScanWarning] = field(default_factory=list)


class VisitedDirectories:
    """
    Thread-safe set of directory identities already walked.

    Identities are (st_dev, st_ino) pairs. Symlinks are never followed, but
    junctions and bind mounts can still expose the same directory twice.
    """

    def __init__(self):
        self._seen: set[tuple[int, int]] = set()
        self._lock = threading.Lock()

    def claim(self, path: str) -> bool:
        """Mark a directory as visited. Returns False if it was seen before."""
        st = os.stat(path, follow_symlinks=False)
        if st.st_ino == 0:
            # Filesystem does not report inode numbers; cannot deduplicate
            return True
        key = (st.st_dev, st.st_ino)
        with self._lock:
            if key in self._seen:
                return False
            self._seen.add(key)
            return True


def _is_link(entry: os.DirEntry) -> bool:
    if entry.is_symlink():
        return True
    is_junction = getattr(entry, "is_junction", None)
    return bool(is_junction and is_junction())


def list_directory(path: str, path_filter: Optional[PathFilter] = None) -> DirectoryListing:
    """
    Enumerate a directory's direct files and subdirectories.

    Excluded entries are dropped before they are stat'ed. Symlinks and
    junctions are skipped. An entry that cannot be stat'ed becomes a
    warning; failure to open the directory itself raises OSError.

    Args:
        path: Directory to enumerate
        path_filter: Optional exclude filter

    Returns:
        DirectoryListing with files, subdirectory paths and warnings
    """
    listing = DirectoryListing(path=path)

    with os.scandir(path) as entries:
        for entry in entries:
            try:
                if _is_link(entry):
                    continue
                if path_filter and path_filter.is_excluded(entry.path):
                    continue

                if entry.is_dir(follow_symlinks=False):
                    listing.subdirectories.append(entry.path)
                elif entry.is_file(follow_symlinks=False):
                    st = entry.stat(follow_symlinks=False)
                    listing.files.append(
                        FileRecord(
                            path=entry.path,
                            size=st.st_size,
                            modified_at=datetime.fromtimestamp(st.st_mtime),
                        )
                    )
            except OSError as e:
                listing.warnings.append(ScanWarning(path=entry.path, reason=_reason(e)))

    return listing


def _reason(error: OSError) -> str:
    """Short description of an OSError for warning records."""
    return error.strerror or type(error).__name__


def _visit(
    directory: str, path_filter: Optional[PathFilter], visited: VisitedDirectories
) -> Optional[DirectoryListing]:
    """List one directory, or return None if it was already walked."""
    if not visited.claim(directory):
        logger.debug("Skipping already visited directory %s", directory)
        return None
    return list_directory(directory, path_filter)


def scan_inventory(
    root: str,
    path_filter: Optional[PathFilter] = None,
    max_workers: int = 4,
    progress_callback: Optional[ProgressCallback] = None,
    cancel_event: Optional[threading.Event] = None,
) -> ScanOutcome:
    """
    Scan every readable file under root.

    The root is listed first. Every subdirectory is then submitted to a
    bounded worker pool as soon as its parent's listing comes back, so a
    single deep subtree still spreads over all workers. Listings are merged
    on the calling thread and sorted by path at the end.

    Args:
        root: Normalized absolute directory path
        path_filter: Optional exclude filter
        max_workers: Number of parallel workers
        progress_callback: Optional callback("scan", files_scanned)
        cancel_event: Set to abort; raises AnalysisCancelledError

    Returns:
        ScanOutcome with records sorted by path and the skipped paths
    """
    check_cancelled(cancel_event, "scan")
    started = time.monotonic()
    counter = ProgressCounter("scan", progress_callback)
    visited = VisitedDirectories()
    records: list[FileRecord] = []
    warnings: list[ScanWarning] = []

    try:
        visited.claim(root)
        top = list_directory(root, path_filter)
    except OSError as e:
        warnings.append(ScanWarning(path=root, reason=_reason(e)))
        return ScanOutcome(records=records, warnings=warnings)

    records.extend(top.files)
    warnings.extend(top.warnings)
    if top.files:
        counter.increment(len(top.files))

    with ThreadPoolExecutor(max_workers=max(1, max_workers)) as executor:
        pending: dict[Future, str] = {
            executor.submit(_visit, subdir, path_filter, visited): subdir for subdir in top.subdirectories
        }
        try:
            while pending:
                done, _ = wait(pending, return_when=FIRST_COMPLETED)
                check_cancelled(cancel_event, "scan")

                for future in done:
                    directory = pending.pop(future)
                    try:
                        listing = future.result()
                    except OSError as e:
                        warnings.append(ScanWarning(path=directory, reason=_reason(e)))
                        continue
                    if listing is None:
                        continue

                    records.extend(listing.files)
                    warnings.extend(listing.warnings)
                    if listing.files:
                        counter.increment(len(listing.files))
                    for subdir in listing.subdirectories:
                        pending[executor.submit(_visit, subdir, path_filter, visited)] = subdir
        except BaseException:
            for future in pending:
                future.cancel()
            raise

    records.sort(key=lambda r: r.path)
    warnings.sort(key=lambda w: w.path)

    logger.debug(
        "Scanned %d files under %s in %.2fs (%d warnings)",
        len(records),
        root,
        time.monotonic() - started,
        len(warnings),
    )
    return ScanOutcome(records=records, warnings=warnings)

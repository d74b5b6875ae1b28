"""Recursive directory size aggregation.

The walk uses an explicit stack rather than Python recursion, so very deep
trees cannot exhaust the interpreter's recursion limit. Nodes are created
top-down as directories are listed, then frozen bottom-up once every child
total is known.
"""

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Generator, Optional

from treeaudit.models import DirectoryNode, ScanWarning, TreeOutcome
from treeaudit.pathfilter import PathFilter
from treeaudit.progress import ProgressCallback, ProgressCounter, check_cancelled
from treeaudit.scanner import VisitedDirectories, list_directory

logger = logging.getLogger(__name__)


@dataclass
class _PendingDirectory:
    path: str
    depth: int
    own_file_count: int
    own_folder_count: int
    own_files_size: int
    child_indices: list[int] = field(default_factory=list)


def build_directory_tree(
    root: str,
    path_filter: Optional[PathFilter] = None,
    progress_callback: Optional[ProgressCallback] = None,
    cancel_event: Optional[threading.Event] = None,
) -> TreeOutcome:
    """
    Aggregate directory sizes under root.

    Every directory is listed exactly once. A directory that cannot be
    listed is left out of its parent's children and reported as a warning;
    it never appears as an empty node.

    Args:
        root: Normalized absolute directory path
        path_filter: Optional exclude filter
        progress_callback: Optional callback("tree", directories_listed)
        cancel_event: Set to abort; raises AnalysisCancelledError

    Returns:
        TreeOutcome whose root is None if root itself could not be listed
    """
    started = time.monotonic()
    counter = ProgressCounter("tree", progress_callback)
    visited = VisitedDirectories()
    warnings: list[ScanWarning] = []
    pending: list[_PendingDirectory] = []

    # (path, depth, index of parent in pending or -1 for the root)
    stack: list[tuple[str, int, int]] = [(root, 0, -1)]

    while stack:
        check_cancelled(cancel_event, "tree")
        path, depth, parent_index = stack.pop()

        try:
            if not visited.claim(path):
                logger.debug("Skipping already visited directory %s", path)
                continue
            listing = list_directory(path, path_filter)
        except OSError as e:
            warnings.append(ScanWarning(path=path, reason=e.strerror or type(e).__name__))
            continue

        warnings.extend(listing.warnings)
        index = len(pending)
        pending.append(
            _PendingDirectory(
                path=path,
                depth=depth,
                own_file_count=len(listing.files),
                own_folder_count=len(listing.subdirectories),
                own_files_size=sum(f.size for f in listing.files),
            )
        )
        if parent_index >= 0:
            pending[parent_index].child_indices.append(index)

        for subdir in reversed(listing.subdirectories):
            stack.append((subdir, depth + 1, index))
        counter.increment()

    warnings.sort(key=lambda w: w.path)
    if not pending:
        return TreeOutcome(root=None, warnings=warnings)

    # Children are always appended after their parent, so walking backwards
    # finishes every child before the node that owns it.
    built: dict[int, DirectoryNode] = {}
    for index in range(len(pending) - 1, -1, -1):
        item = pending[index]
        children = sorted((built.pop(i) for i in item.child_indices), key=lambda n: n.path)
        built[index] = DirectoryNode(
            path=item.path,
            depth=item.depth,
            own_file_count=item.own_file_count,
            own_folder_count=item.own_folder_count,
            own_files_size=item.own_files_size,
            total_size=item.own_files_size + sum(c.total_size for c in children),
            children=tuple(children),
        )

    logger.debug(
        "Aggregated %d directories under %s in %.2fs",
        len(pending),
        root,
        time.monotonic() - started,
    )
    return TreeOutcome(root=built[0], warnings=warnings)


def iter_nodes(root: DirectoryNode) -> Generator[DirectoryNode, None, None]:
    """Yield every node of a tree, parents before children."""
    stack = [root]
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(node.children))

"""Exclude-path filtering shared by every traversal."""

import os
from typing import Iterable


def normalize_path(path: str) -> str:
    """
    Resolve a path to its absolute, normalized form.

    Expands ~ and environment variables, resolves symlinks and relative
    segments, and applies the platform's case rules (a no-op on POSIX).
    """
    expanded = os.path.expanduser(os.path.expandvars(path))
    return os.path.normcase(os.path.realpath(expanded))


class PathFilter:
    """
    Decides whether a path lies under an excluded subtree.

    A path is excluded when it equals an exclude prefix or is nested below
    one. The comparison is done on whole path components, so excluding
    '/data/tmp' does not exclude '/data/tmpfiles'.
    """

    def __init__(self, exclude_paths: Iterable[str] = ()):
        self._prefixes = tuple(sorted({normalize_path(p) for p in exclude_paths}))

    @classmethod
    def from_strings(cls, exclude_paths: Iterable[str]) -> "PathFilter":
        """Build a filter from user-supplied strings, ignoring blank entries."""
        return cls(p.strip() for p in exclude_paths if p and p.strip())

    @property
    def prefixes(self) -> tuple[str, ...]:
        return self._prefixes

    def is_excluded(self, path: str) -> bool:
        """
        Check whether a path is excluded.

        The candidate is normalized the same way as the prefixes, so callers
        may pass paths as returned by os.scandir.
        """
        if not self._prefixes:
            return False
        candidate = os.path.normcase(os.path.abspath(path))
        for prefix in self._prefixes:
            if candidate == prefix:
                return True
            # Root prefix ("/") already ends with a separator
            boundary = prefix if prefix.endswith(os.sep) else prefix + os.sep
            if candidate.startswith(boundary):
                return True
        return False

    def __bool__(self) -> bool:
        return bool(self._prefixes)

    def __repr__(self) -> str:
        return f"PathFilter({list(self._prefixes)!r})"

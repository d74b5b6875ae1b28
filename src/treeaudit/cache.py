"""Persisted scan cache, one JSON document per target path."""

import hashlib
import json
import logging
import os
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, ValidationError

from treeaudit.models import FileRecord
from treeaudit.pathfilter import normalize_path

logger = logging.getLogger(__name__)

CACHE_VERSION = 1
DEFAULT_CACHE_DIR = "~/.treeaudit/cache"


class CachedInventory(BaseModel):
    """
    On-disk layout of a cached scan.

    File names that are not valid UTF-8 reach Python as strings with lone
    surrogates (PEP 383). The document is therefore written with the json
    module's ASCII escaping, which round-trips them as \\udcXX escapes.
    """

    version: int = Field(CACHE_VERSION, description="Cache format version")
    target_path: str = Field(..., description="Resolved target path the scan belongs to")
    created_at: datetime = Field(default_factory=datetime.now)
    records: list[FileRecord] = Field(default_factory=list)


class ScanCache:
    """
    Stores the inventory of one target path between runs.

    The cache never expires on its own; callers decide when to ignore it
    (the forced-rescan flag). Unreadable or corrupt cache files load as
    absent.
    """

    def __init__(self, cache_dir: str = DEFAULT_CACHE_DIR):
        self.cache_dir = Path(os.path.expanduser(os.path.expandvars(cache_dir)))

    def cache_file_for(self, target_path: str) -> Path:
        """Cache file location for a target path."""
        key = hashlib.sha256(os.fsencode(normalize_path(target_path))).hexdigest()
        return self.cache_dir / f"{key}.json"

    def load(self, target_path: str) -> Optional[list[FileRecord]]:
        """
        Load the cached inventory for a target path.

        Returns:
            The cached records, or None if there is no usable cache
        """
        resolved = normalize_path(target_path)
        cache_file = self.cache_file_for(resolved)

        if not cache_file.exists():
            logger.debug("No scan cache for %s", resolved)
            return None

        try:
            cached = CachedInventory.model_validate(json.loads(cache_file.read_bytes()))
        except (OSError, ValueError, ValidationError) as e:
            logger.debug("Ignoring unreadable scan cache %s: %s", cache_file, e)
            return None

        if cached.version != CACHE_VERSION or cached.target_path != resolved:
            logger.debug("Ignoring scan cache %s written for another target/version", cache_file)
            return None

        logger.debug("Loaded %d cached records for %s", len(cached.records), resolved)
        return cached.records

    def save(self, target_path: str, records: list[FileRecord]) -> Path:
        """
        Replace the cached inventory for a target path.

        The document is written to a temporary file in the cache directory
        and moved into place, so readers see either the old or the new scan.

        Returns:
            Path of the written cache file
        """
        resolved = normalize_path(target_path)
        cache_file = self.cache_file_for(resolved)
        self.cache_dir.mkdir(parents=True, exist_ok=True)

        payload = CachedInventory(target_path=resolved, records=list(records))
        fd, tmp_name = tempfile.mkstemp(dir=self.cache_dir, prefix=".scan-", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(payload.model_dump(mode="json"), f)
            os.replace(tmp_name, cache_file)
        except BaseException:
            try:
                os.unlink(tmp_name)
            except OSError:
                pass
            raise

        logger.debug("Saved %d records to %s", len(payload.records), cache_file)
        return cache_file

    def clear(self, target_path: str) -> bool:
        """
        Remove the cached inventory for a target path.

        Returns:
            True if a cache file was removed
        """
        cache_file = self.cache_file_for(target_path)
        try:
            cache_file.unlink()
        except FileNotFoundError:
            return False
        return True

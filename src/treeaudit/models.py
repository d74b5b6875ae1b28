"""Data models for treeaudit."""

from __future__ import annotations

import os
from datetime import datetime
from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from treeaudit.thresholds import format_size


class DuplicateStrategy(str, Enum):
    """Equivalence rule used to group duplicate files."""

    FAST = "fast"  # Same file name and same size
    THOROUGH = "thorough"  # Same SHA-256 content digest


class FileRecord(BaseModel):
    """One scanned file."""

    model_config = ConfigDict(frozen=True)

    path: str = Field(..., description="Absolute path, unique within one scan")
    size: int = Field(..., ge=0, description="Size in bytes")
    modified_at: datetime = Field(..., description="Last modification time")

    @property
    def name(self) -> str:
        """Base name of the file."""
        return os.path.basename(self.path)

    @property
    def size_human(self) -> str:
        return format_size(self.size)


class ScanWarning(BaseModel):
    """A path that was skipped, and why."""

    model_config = ConfigDict(frozen=True)

    path: str = Field(..., description="Path that could not be processed")
    reason: str = Field(..., description="Why the path was skipped")


class Bucket(BaseModel):
    """Files whose age or size exceeds a named threshold.

    Buckets of the same kind overlap: a file above the largest threshold is
    also a member of every smaller threshold's bucket.
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Threshold name, e.g. 'Over1Year'")
    threshold: int = Field(..., description="Threshold in days (age) or bytes (size)")
    files: tuple[FileRecord, ...] = Field(default_factory=tuple)

    @property
    def file_count(self) -> int:
        return len(self.files)

    @property
    def total_bytes(self) -> int:
        """Combined size of all files in the bucket."""
        return sum(f.size for f in self.files)


class DuplicateSet(BaseModel):
    """Two or more files considered equivalent under one strategy."""

    model_config = ConfigDict(frozen=True)

    match_key: Union[tuple[str, int], str] = Field(
        ..., description="(name, size) for the fast strategy, hex digest for thorough"
    )
    size: int = Field(..., ge=0, description="Size shared by every member")
    members: tuple[FileRecord, ...] = Field(..., min_length=2)

    @property
    def count(self) -> int:
        return len(self.members)

    @property
    def wasted_bytes(self) -> int:
        """Bytes held by every copy except the first."""
        return self.size * (self.count - 1)


class DirectoryNode(BaseModel):
    """One directory in the aggregated size tree."""

    model_config = ConfigDict(frozen=True)

    path: str = Field(..., description="Absolute directory path")
    depth: int = Field(..., ge=0, description="Distance from the root (root = 0)")
    own_file_count: int = Field(0, description="Direct files")
    own_folder_count: int = Field(0, description="Direct, non-excluded subdirectories")
    own_files_size: int = Field(0, description="Sum of direct file sizes")
    total_size: int = Field(0, description="own_files_size plus children's total_size")
    children: tuple[DirectoryNode, ...] = Field(default_factory=tuple)

    @property
    def name(self) -> str:
        return os.path.basename(self.path.rstrip(os.sep)) or self.path

    @property
    def size_human(self) -> str:
        return format_size(self.total_size)


class ScanOutcome(BaseModel):
    """Inventory produced by one scan, with the paths it had to skip."""

    records: list[FileRecord] = Field(default_factory=list)
    warnings: list[ScanWarning] = Field(default_factory=list)


class DuplicateReport(BaseModel):
    """Duplicate sets found in an inventory."""

    strategy: DuplicateStrategy
    sets: list[DuplicateSet] = Field(default_factory=list)
    warnings: list[ScanWarning] = Field(default_factory=list)

    @property
    def wasted_bytes(self) -> int:
        return sum(s.wasted_bytes for s in self.sets)


class TreeOutcome(BaseModel):
    """Directory tree, or None when the root itself could not be read."""

    root: Optional[DirectoryNode] = None
    warnings: list[ScanWarning] = Field(default_factory=list)


class AnalysisResult(BaseModel):
    """Complete, immutable result of one analysis run."""

    model_config = ConfigDict(frozen=True)

    target_path: str
    generated_at: datetime = Field(default_factory=datetime.now)
    file_count: int = Field(0, description="Files in the inventory")
    total_bytes: int = Field(0, description="Combined size of the inventory")
    age_buckets: tuple[Bucket, ...] = Field(default_factory=tuple)
    size_buckets: tuple[Bucket, ...] = Field(default_factory=tuple)
    duplicate_strategy: DuplicateStrategy
    duplicate_sets: tuple[DuplicateSet, ...] = Field(default_factory=tuple)
    wasted_bytes: int = Field(0, description="Reclaimable bytes across all duplicate sets")
    directory_tree: DirectoryNode
    used_cache: bool = Field(False, description="Whether the inventory came from the scan cache")
    warnings: tuple[ScanWarning, ...] = Field(default_factory=tuple)

    @property
    def duplicate_file_count(self) -> int:
        """Number of files that belong to some duplicate set."""
        return sum(s.count for s in self.duplicate_sets)

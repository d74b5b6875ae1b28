"""Age and size classification of the inventory."""

from datetime import datetime, timedelta
from typing import Iterable, Optional

from treeaudit.models import Bucket, FileRecord


def _ordered(thresholds: dict[str, int]) -> list[tuple[str, int]]:
    """Largest threshold first; ties keep name order so output is stable."""
    return sorted(thresholds.items(), key=lambda item: (-item[1], item[0]))


def classify_by_age(
    records: Iterable[FileRecord],
    thresholds: dict[str, int],
    now: Optional[datetime] = None,
) -> list[Bucket]:
    """
    Build one bucket per age threshold.

    A file belongs to every bucket whose threshold its age exceeds, so
    buckets overlap. Files with a modification time in the future have a
    negative age and land in no bucket.

    Args:
        records: Inventory to classify
        thresholds: Threshold name -> age in days
        now: Reference time (default: current time)

    Returns:
        Buckets ordered oldest threshold first
    """
    now = now or datetime.now()
    records = list(records)
    buckets = []

    for name, days in _ordered(thresholds):
        cutoff = now - timedelta(days=days)
        files = tuple(r for r in records if r.modified_at < cutoff)
        buckets.append(Bucket(name=name, threshold=days, files=files))

    return buckets


def classify_by_size(records: Iterable[FileRecord], thresholds: dict[str, int]) -> list[Bucket]:
    """
    Build one bucket per size threshold.

    Args:
        records: Inventory to classify
        thresholds: Threshold name -> size in bytes

    Returns:
        Buckets ordered largest threshold first
    """
    records = list(records)
    return [
        Bucket(name=name, threshold=limit, files=tuple(r for r in records if r.size > limit))
        for name, limit in _ordered(thresholds)
    ]

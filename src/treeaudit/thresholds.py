"""Default age and size thresholds for treeaudit."""

import re

KB = 1024
MB = 1024**2
GB = 1024**3
TB = 1024**4

# Age thresholds in days; a file is "older than" a threshold when its age exceeds it
AGE_THRESHOLDS: dict[str, int] = {
    "Over1Year": 365,
    "Over3Years": 3 * 365,
    "Over5Years": 5 * 365,
}

# Size thresholds in bytes; a file is "larger than" a threshold when its size exceeds it
SIZE_THRESHOLDS: dict[str, int] = {
    "Over100MB": 100 * MB,
    "Over500MB": 500 * MB,
    "Over1GB": 1 * GB,
    "Over5GB": 5 * GB,
}

_SIZE_UNITS = {
    "": 1,
    "B": 1,
    "K": KB,
    "KB": KB,
    "M": MB,
    "MB": MB,
    "G": GB,
    "GB": GB,
    "T": TB,
    "TB": TB,
}

_SIZE_PATTERN = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*([A-Za-z]*)\s*$")


def get_age_thresholds() -> dict[str, int]:
    """Get a copy of the default age thresholds."""
    return dict(AGE_THRESHOLDS)


def get_size_thresholds() -> dict[str, int]:
    """Get a copy of the default size thresholds."""
    return dict(SIZE_THRESHOLDS)


def parse_size(text: str) -> int:
    """
    Parse a size such as '500MB', '1.5 GB' or '4096' into bytes.

    Units are binary (1 KB = 1024 bytes) and case-insensitive.

    Raises:
        ValueError: If the text is not a size
    """
    match = _SIZE_PATTERN.match(text)
    if not match:
        raise ValueError(f"Invalid size: {text!r}")

    number, unit = match.groups()
    multiplier = _SIZE_UNITS.get(unit.upper())
    if multiplier is None:
        raise ValueError(f"Unknown size unit in {text!r}")
    return int(float(number) * multiplier)


def parse_named_threshold(text: str, size: bool = False) -> tuple[str, int]:
    """
    Parse a 'Name=value' threshold from the command line.

    Age values are days; size values accept units (see parse_size).
    """
    name, sep, value = text.partition("=")
    name = name.strip()
    if not sep or not name or not value.strip():
        raise ValueError(f"Expected NAME=VALUE, got {text!r}")
    if size:
        return name, parse_size(value)
    days = int(value.strip())
    if days < 0:
        raise ValueError(f"Age threshold must not be negative: {text!r}")
    return name, days


def format_size(size_bytes: int) -> str:
    """Format bytes to human-readable string (binary units)."""
    if size_bytes >= TB:
        return f"{size_bytes / TB:.1f} TB"
    elif size_bytes >= GB:
        return f"{size_bytes / GB:.1f} GB"
    elif size_bytes >= MB:
        return f"{size_bytes / MB:.1f} MB"
    elif size_bytes >= KB:
        return f"{size_bytes / KB:.1f} KB"
    else:
        return f"{size_bytes} B"

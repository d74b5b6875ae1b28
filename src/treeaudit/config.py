"""Configuration for treeaudit runs."""

import json
import logging
import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, ValidationError

from treeaudit.cache import DEFAULT_CACHE_DIR
from treeaudit.models import DuplicateStrategy
from treeaudit.thresholds import get_age_thresholds, get_size_thresholds

logger = logging.getLogger(__name__)

CONFIG_DIR = "~/.treeaudit"
CONFIG_FILE = "config.json"


class AnalysisConfig(BaseModel):
    """Everything one analysis run needs; passed explicitly to analyze()."""

    target_path: str = Field(".", description="Directory to analyze")
    exclude_paths: list[str] = Field(
        default_factory=list,
        description="Subtrees to leave out of the inventory and the tree",
    )
    age_thresholds: dict[str, int] = Field(
        default_factory=get_age_thresholds,
        description="Threshold name -> age in days",
    )
    size_thresholds: dict[str, int] = Field(
        default_factory=get_size_thresholds,
        description="Threshold name -> size in bytes",
    )
    duplicate_strategy: DuplicateStrategy = Field(
        DuplicateStrategy.FAST,
        description="fast (name + size) or thorough (content hash)",
    )
    force_rescan: bool = Field(False, description="Ignore an existing scan cache")
    use_cache: bool = Field(True, description="Read and write the scan cache")
    cache_dir: str = Field(DEFAULT_CACHE_DIR, description="Where scan caches are stored")
    max_workers: int = Field(4, ge=1, description="Parallel workers for scanning and hashing")


def default_config_path() -> Path:
    """Location of the user's configuration file."""
    return Path(os.path.expanduser(CONFIG_DIR)) / CONFIG_FILE


def load_config(path: Optional[Path] = None) -> AnalysisConfig:
    """
    Load configuration from disk.

    A missing, unreadable or invalid file yields the built-in defaults.
    """
    config_path = path or default_config_path()
    if not config_path.exists():
        return AnalysisConfig()

    try:
        with open(config_path, encoding="utf-8") as f:
            return AnalysisConfig.model_validate(json.load(f))
    except (json.JSONDecodeError, OSError, ValidationError) as e:
        logger.debug("Ignoring invalid config file %s: %s", config_path, e)
        return AnalysisConfig()


def save_config(config: AnalysisConfig, path: Optional[Path] = None) -> bool:
    """Save configuration to disk."""
    config_path = path or default_config_path()
    try:
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, "w", encoding="utf-8") as f:
            f.write(config.model_dump_json(indent=2))
        return True
    except OSError:
        return False

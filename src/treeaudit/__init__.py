"""treeaudit - find old, large and duplicate files in a directory tree."""

__version__ = "0.1.0"

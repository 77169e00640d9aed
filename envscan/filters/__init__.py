"""File filtering for the source file lister.

This module provides pathspec-based gitignore filtering using
the mature pathspec library.
"""

from envscan.filters.pathspec_filter import (
    PathspecFilter,
    DEFAULT_IGNORE_PATTERNS,
)

__all__ = [
    "PathspecFilter",
    "DEFAULT_IGNORE_PATTERNS",
]

"""Pathspec-based file filtering.

This module uses the pathspec library for gitignore handling,
supporting negation patterns, double-star globs, and nested gitignore files.
"""

import logging
import os
from pathlib import Path

import pathspec

logger = logging.getLogger(__name__)


# Default ignore patterns when no .gitignore exists
DEFAULT_IGNORE_PATTERNS: list[str] = [
    "node_modules/",
    "bower_components/",
    "jspm_packages/",
    ".git/",
    "dist/",
    "build/",
    "vendor/",
    "*.min.js",
    "coverage/",
    ".nyc_output/",
    ".next/",
    ".nuxt/",
    ".cache/",
]


class PathspecFilter:
    """File filter based on pathspec library with nested gitignore support."""

    def __init__(self, repo_path: Path, include_nested: bool = True):
        """
        Initialize the filter.

        Args:
            repo_path: Scan root
            include_nested: Whether to include nested .gitignore files
        """
        self.repo_path = repo_path
        self._root_spec: pathspec.PathSpec = self._load_root_spec()
        self._nested_specs: dict[Path, pathspec.PathSpec] = {}
        if include_nested:
            self._load_nested_gitignores()

    def _load_root_spec(self) -> pathspec.PathSpec:
        """Load root .gitignore, falling back to the default patterns."""
        gitignore_path = self.repo_path / ".gitignore"
        if gitignore_path.is_file():
            try:
                with open(gitignore_path, encoding="utf-8") as f:
                    return pathspec.PathSpec.from_lines("gitwildmatch", f.readlines())
            except (OSError, UnicodeDecodeError) as e:
                logger.warning(f"Failed to read {gitignore_path}: {e}")
        return pathspec.PathSpec.from_lines("gitwildmatch", DEFAULT_IGNORE_PATTERNS)

    def _load_nested_gitignores(self) -> None:
        """Load nested .gitignore files, never descending into ignored directories."""
        for dirpath, dirnames, filenames in os.walk(self.repo_path):
            current = Path(dirpath)
            if current != self.repo_path and ".gitignore" in filenames:
                self._load_nested_spec(current / ".gitignore")
            # Rules of this directory and its parents are loaded by now
            dirnames[:] = sorted(d for d in dirnames if not self.should_ignore_dir(current / d))

    def _load_nested_spec(self, gitignore_path: Path) -> None:
        try:
            with open(gitignore_path, encoding="utf-8") as f:
                spec = pathspec.PathSpec.from_lines("gitwildmatch", f.readlines())
        except (OSError, UnicodeDecodeError) as e:
            logger.debug(f"Skipping unreadable {gitignore_path}: {e}")
            return
        self._nested_specs[gitignore_path.parent] = spec

    def _relative(self, path: Path) -> Path | None:
        if not path.is_absolute():
            return path
        try:
            return path.relative_to(self.repo_path)
        except ValueError:
            return None

    def _matches(self, relative: Path, suffix: str) -> bool:
        if self._root_spec.match_file(relative.as_posix() + suffix):
            return True
        # Deeper gitignore files first
        for gitignore_dir in sorted(self._nested_specs, key=lambda p: len(p.parts), reverse=True):
            try:
                local = relative.relative_to(gitignore_dir.relative_to(self.repo_path))
            except ValueError:
                continue
            if self._nested_specs[gitignore_dir].match_file(local.as_posix() + suffix):
                return True
        return False

    def should_ignore(self, path: Path) -> bool:
        """Check if a file should be ignored."""
        relative = self._relative(path)
        if relative is None:
            return False
        return self._matches(relative, "")

    def should_ignore_dir(self, path: Path) -> bool:
        """Check if a whole directory should be pruned."""
        relative = self._relative(path)
        if relative is None or relative == Path("."):
            return False
        return self._matches(relative, "/")

"""File filter — decide which discovered files belong in the registry."""

from __future__ import annotations

from pathlib import Path, PurePosixPath
from typing import Iterable

from shadiff.constants import (
    CONFIG_FILE_PATTERNS,
    EXCLUDED_EXTENSIONS,
    EXCLUDED_FILES,
    NEXTJS_CONFIG_FILES,
    PACKAGE_MANIFEST,
)
from shadiff.utils.paths import relative_posix

# Kept when staging a remote tree so manifest reading and Next.js detection work
STAGING_ALWAYS_KEEP = frozenset({PACKAGE_MANIFEST, *NEXTJS_CONFIG_FILES})


class FileFilter:
    """Include/exclude decisions for candidate files.

    A pure function of the path strings and the pattern sets given at
    construction; it never touches the filesystem.
    """

    def __init__(
        self,
        root_dir: str | Path,
        include_patterns: Iterable[str],
        exclude_patterns: Iterable[str],
        excluded_files: frozenset[str] = EXCLUDED_FILES,
        excluded_extensions: frozenset[str] = EXCLUDED_EXTENSIONS,
        config_file_patterns: tuple[str, ...] = CONFIG_FILE_PATTERNS,
    ):
        self.root_dir = Path(root_dir)
        self.include_patterns = frozenset(include_patterns)
        self.exclude_patterns = tuple(p for p in exclude_patterns if p)
        self.excluded_files = excluded_files
        self.excluded_extensions = excluded_extensions
        self.config_file_patterns = config_file_patterns

    def should_include(self, path: str | Path) -> bool:
        """Return True if the file should be bundled into the registry.

        Checks run in a fixed order and the first failing check wins:
        denylisted name, denylisted extension, build-tool config name,
        extension not included, excluded path fragment.
        """
        name = PurePosixPath(Path(path).as_posix()).name
        ext = PurePosixPath(name).suffix

        if name in self.excluded_files:
            return False

        # Compound extensions such as ".d.ts" need a suffix match
        if any(name.endswith(excluded) for excluded in self.excluded_extensions):
            return False

        stem = name[: -len(ext)] if ext else name
        if any(pattern in stem for pattern in self.config_file_patterns):
            return False

        if ext not in self.include_patterns:
            return False

        relative = relative_posix(path, self.root_dir)
        return not self._is_excluded_path(relative)

    def should_stage(self, relative_path: str) -> bool:
        """Return True if a remote file should be written to the staging tree.

        Looser than ``should_include``: manifests and Next.js config files
        are kept so the staged tree can be inspected like a local root.
        The staged tree is filtered again with ``should_include``.
        """
        name = PurePosixPath(relative_path).name

        if self._is_excluded_path(relative_path):
            return False

        if name in STAGING_ALWAYS_KEEP:
            return True

        if name in self.excluded_files:
            return False

        ext = PurePosixPath(name).suffix
        return ext in self.include_patterns or ext == ".json"

    def _is_excluded_path(self, relative_path: str) -> bool:
        return any(pattern in relative_path for pattern in self.exclude_patterns)

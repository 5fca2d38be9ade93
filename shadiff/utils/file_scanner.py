"""File scanner — walk a project tree and list candidate files."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterable

logger = logging.getLogger(__name__)


class FileScanner:
    """Depth-first directory walk with exclude-pattern pruning.

    A directory is skipped (and never descended into) when its name or
    its path below the scan root contains any exclude substring.
    File-level filtering is left to ``FileFilter``.
    """

    def __init__(self, exclude_patterns: Iterable[str]):
        self.exclude_patterns = tuple(p for p in exclude_patterns if p)

    def scan(self, root_dir: str | Path) -> list[Path]:
        """Return absolute paths of every file under *root_dir*.

        Order is the filesystem's listing order. Unreadable directories
        are skipped with a warning.
        """
        root = Path(root_dir).resolve()
        files: list[Path] = []
        self._scan_recursive(root, root, files)
        return files

    def _scan_recursive(self, root: Path, directory: Path, files: list[Path]) -> None:
        try:
            entries = list(os.scandir(directory))
        except OSError as exc:
            logger.warning("Cannot read directory %s: %s", directory, exc)
            return

        for entry in entries:
            path = Path(entry.path)
            try:
                if entry.is_dir():
                    if self._is_excluded_dir(entry.name, path.relative_to(root).as_posix()):
                        logger.debug("Skipping excluded directory %s", path)
                        continue
                    self._scan_recursive(root, path, files)
                elif entry.is_file():
                    files.append(path)
            except OSError as exc:
                logger.warning("Cannot stat %s: %s", entry.path, exc)

    def _is_excluded_dir(self, name: str, relative_path: str) -> bool:
        return any(
            pattern in name or pattern in relative_path
            for pattern in self.exclude_patterns
        )

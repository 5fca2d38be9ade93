"""Detect shadcn/ui primitives that should become registry dependencies."""

from __future__ import annotations

from pathlib import Path, PurePosixPath

from shadiff.constants import SHADCN_COMPONENTS
from shadiff.utils.paths import path_segments, relative_posix


class ShadcnComponentDetector:
    """Recognizes files under ``components/ui`` named after a known primitive.

    Such files are framework-standard and installable by name, so they are
    listed in ``registryDependencies`` instead of being bundled.
    """

    def __init__(self, root_dir: str | Path, catalog: frozenset[str] = SHADCN_COMPONENTS):
        self.root_dir = Path(root_dir)
        self.catalog = catalog

    def is_component(self, path: str | Path) -> bool:
        """True if the path contains the ``components/ui`` segment sequence."""
        segments = path_segments(relative_posix(path, self.root_dir))
        return any(
            segments[i] == "components" and segments[i + 1] == "ui"
            for i in range(len(segments) - 1)
        )

    def component_name(self, path: str | Path) -> str | None:
        """Return the file's base name if it is in the catalog, else None."""
        name = PurePosixPath(Path(path).as_posix()).name
        stem = name.rsplit(".", 1)[0] if "." in name else name
        return stem if stem in self.catalog else None

    def registry_dependency(self, path: str | Path) -> str | None:
        """Return the primitive name when *path* should be diverted, else None."""
        if not self.is_component(path):
            return None
        return self.component_name(path)

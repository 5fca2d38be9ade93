"""Dependency extractor — read package.json and keep project-specific packages."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path

from shadiff.constants import (
    EXCLUDED_DEPENDENCIES,
    EXCLUDED_DEV_DEPENDENCIES,
    PACKAGE_MANIFEST,
)

logger = logging.getLogger(__name__)


@dataclass
class PackageDependencies:
    dependencies: list[str] = field(default_factory=list)
    dev_dependencies: list[str] = field(default_factory=list)


class DependencyExtractor:
    """Extracts sorted dependency names minus ecosystem-standard packages."""

    def __init__(
        self,
        excluded: frozenset[str] = EXCLUDED_DEPENDENCIES,
        excluded_dev: frozenset[str] = EXCLUDED_DEV_DEPENDENCIES,
    ):
        self.excluded = excluded
        self.excluded_dev = excluded_dev

    def extract(self, root_dir: str | Path) -> PackageDependencies:
        """Read ``<root_dir>/package.json``.

        A missing or unreadable manifest yields empty lists and a warning.
        """
        manifest_path = Path(root_dir) / PACKAGE_MANIFEST
        if not manifest_path.is_file():
            logger.warning("package.json not found, using empty dependencies")
            return PackageDependencies()

        try:
            manifest = json.loads(manifest_path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            logger.warning("Error reading package.json: %s", exc)
            return PackageDependencies()

        if not isinstance(manifest, dict):
            logger.warning("package.json is not a JSON object, using empty dependencies")
            return PackageDependencies()

        result = PackageDependencies(
            dependencies=_filtered_names(manifest.get("dependencies"), self.excluded),
            dev_dependencies=_filtered_names(manifest.get("devDependencies"), self.excluded_dev),
        )
        logger.info(
            "Found %d dependencies and %d devDependencies in package.json "
            "(after filtering common packages)",
            len(result.dependencies),
            len(result.dev_dependencies),
        )
        return result


def _filtered_names(section: object, excluded: frozenset[str]) -> list[str]:
    if not isinstance(section, dict):
        return []
    return sorted(name for name in section if name not in excluded)

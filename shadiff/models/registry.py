"""Registry data models — the output document and its file entries."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class Category(Enum):
    """Semantic role of a bundled file."""

    COMPONENT = "component"
    PAGE = "page"
    LAYOUT = "layout"
    LIB = "lib"
    STYLE = "style"
    CONFIG = "config"
    ASSET = "asset"
    APP = "app"


@dataclass(frozen=True)
class RegistryFile:
    """One bundled source file."""

    path: str  # Relative to the scan root, "/" separated
    content: str
    type: str  # registry:* tag
    target: str  # Install location; equals path unless relocated

    def to_dict(self) -> dict:
        return {
            "path": self.path,
            "content": self.content,
            "type": self.type,
            "target": self.target,
        }


@dataclass
class RegistryItem:
    """A whole project packaged as a single registry item."""

    author: str
    name: str = "project"
    title: str = "Complete Project"
    type: str = "registry:block"
    dependencies: list[str] = field(default_factory=list)
    dev_dependencies: list[str] = field(default_factory=list)
    registry_dependencies: list[str] = field(default_factory=list)
    files: list[RegistryFile] = field(default_factory=list)

    def to_dict(self) -> dict:
        """Serialize using the registry's camelCase key names."""
        return {
            "name": self.name,
            "type": self.type,
            "dependencies": self.dependencies,
            "devDependencies": self.dev_dependencies,
            "registryDependencies": self.registry_dependencies,
            "files": [f.to_dict() for f in self.files],
            "author": self.author,
            "title": self.title,
        }

    def files_by_type(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        for f in self.files:
            counts[f.type] = counts.get(f.type, 0) + 1
        return counts

"""File categorizer — assign each bundled file a semantic role.

Categorization sniffs directory conventions only; file contents are never
parsed. Rules are evaluated top to bottom and the first match wins, so a
``components`` folder nested under ``app`` still yields a component.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Callable

from shadiff.constants import COMPONENT_FOLDERS, CONFIG_FILES, LIB_FOLDERS
from shadiff.models.registry import Category
from shadiff.utils.paths import path_segments, relative_posix

CATEGORY_TYPES: dict[Category, str] = {
    Category.COMPONENT: "registry:component",
    Category.PAGE: "registry:page",
    Category.LAYOUT: "registry:component",
    Category.LIB: "registry:lib",
    Category.STYLE: "registry:style",
    Category.CONFIG: "registry:file",
    Category.ASSET: "registry:file",
    Category.APP: "registry:block",
}

DEFAULT_REGISTRY_TYPE = "registry:block"


@dataclass(frozen=True)
class PathInfo:
    """The pieces of a relative path that rules look at."""

    relative: str
    segments: tuple[str, ...]
    filename: str

    @classmethod
    def from_relative(cls, relative: str) -> PathInfo:
        segments = tuple(path_segments(relative))
        return cls(
            relative=relative,
            segments=segments,
            filename=segments[-1] if segments else "",
        )

    def has_any(self, *names: str) -> bool:
        return any(name in self.segments for name in names)

    def filename_is(self, stem: str) -> bool:
        """True if the file is exactly ``<stem>.<ext>``."""
        name = PurePosixPath(self.filename)
        return name.stem == stem and len(name.suffixes) == 1


@dataclass(frozen=True)
class Rule:
    name: str
    matches: Callable[[PathInfo], bool]
    category: Category


def default_rules(
    component_folders: tuple[str, ...] = COMPONENT_FOLDERS,
    lib_folders: tuple[str, ...] = LIB_FOLDERS,
    config_files: frozenset[str] = CONFIG_FILES,
) -> tuple[Rule, ...]:
    """Build the ordered rule table. Order is significant."""
    return (
        Rule("ui-component", lambda p: p.has_any("components") and p.has_any("ui"), Category.COMPONENT),
        Rule("component-layout", lambda p: p.has_any("components") and p.has_any("layout"), Category.LAYOUT),
        Rule("component", lambda p: p.has_any("components"), Category.COMPONENT),
        Rule("app-page", lambda p: p.has_any("app") and p.filename_is("page"), Category.PAGE),
        Rule("app-layout", lambda p: p.has_any("app") and p.filename_is("layout"), Category.LAYOUT),
        Rule("app", lambda p: p.has_any("app"), Category.APP),
        Rule("lib", lambda p: p.has_any("lib", "utils"), Category.LIB),
        Rule("hook", lambda p: p.filename.startswith("use") or p.has_any("hooks"), Category.LIB),
        Rule("data", lambda p: p.has_any("services", "api", "data", "queries"), Category.LIB),
        Rule("state", lambda p: p.has_any("context", "providers", "store", "redux"), Category.LIB),
        Rule(
            "types",
            lambda p: p.has_any("types", "interfaces")
            or p.filename.endswith((".types.ts", ".interface.ts")),
            Category.LIB,
        ),
        Rule("constants", lambda p: p.has_any("constants", "config", "env"), Category.LIB),
        Rule(
            "style",
            lambda p: p.has_any("styles", "css", "theme") or p.relative.endswith(".css"),
            Category.STYLE,
        ),
        Rule("asset", lambda p: p.has_any("public", "assets", "images", "icons"), Category.ASSET),
        Rule("ci", lambda p: p.has_any(".github", ".gitlab", "workflows"), Category.CONFIG),
        Rule("docs", lambda p: p.has_any("docs", "documentation"), Category.CONFIG),
        Rule(
            "test",
            lambda p: p.has_any("test", "tests", "__tests__")
            or ".test." in p.filename
            or ".spec." in p.filename,
            Category.LIB,
        ),
        Rule("component-folder", lambda p: p.has_any(*component_folders), Category.COMPONENT),
        Rule("lib-folder", lambda p: p.has_any(*lib_folders), Category.LIB),
        Rule("config-file", lambda p: p.filename in config_files, Category.CONFIG),
    )


class FileCategorizer:
    """Maps a file path to a ``Category`` and a category to a registry type."""

    def __init__(self, root_dir: str | Path, rules: tuple[Rule, ...] | None = None):
        self.root_dir = Path(root_dir)
        self.rules = rules if rules is not None else default_rules()

    def categorize(self, path: str | Path) -> Category:
        """Return the category of *path* (absolute, or relative to the root)."""
        return self.categorize_relative(relative_posix(path, self.root_dir))

    def categorize_relative(self, relative: str) -> Category:
        info = PathInfo.from_relative(relative)
        for rule in self.rules:
            if rule.matches(info):
                return rule.category

        # src/-rooted layouts: categorize as if src/ were the root
        if info.segments and info.segments[0] == "src" and len(info.segments) > 1:
            return self.categorize_relative("/".join(info.segments[1:]))

        return Category.COMPONENT

    @staticmethod
    def category_to_type(category: Category) -> str:
        return CATEGORY_TYPES.get(category, DEFAULT_REGISTRY_TYPE)

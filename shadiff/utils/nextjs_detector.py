"""Next.js detection and app-directory relocation.

App-router entry files (``page``, ``layout``, ``route``) installed at their
original location would overwrite the consuming project's own routes.
Under the "preserve" strategy they are retargeted below ``examples/``.
"""

from __future__ import annotations

from pathlib import Path

from shadiff.constants import NEXTJS_CONFIG_FILES, NEXTJS_STRATEGIES
from shadiff.errors import ConfigurationError
from shadiff.utils.paths import path_segments, relative_posix

EXAMPLES_DIR = "examples"


def is_next_project(root_dir: str | Path) -> bool:
    """True if a Next.js config file sits directly under *root_dir*."""
    root = Path(root_dir)
    return any((root / name).is_file() for name in NEXTJS_CONFIG_FILES)


def is_in_app_dir(path: str | Path, root_dir: str | Path) -> bool:
    """True if the path has an ``app`` segment anywhere (``app/`` or ``src/app/``)."""
    return "app" in path_segments(relative_posix(path, root_dir))


def relocated_target(path: str | Path, root_dir: str | Path, strategy: str) -> str:
    """Return the install target for *path*, relative to the root."""
    if strategy not in NEXTJS_STRATEGIES:
        raise ConfigurationError(
            f"Invalid Next.js app strategy {strategy!r}; "
            f"expected one of: {', '.join(NEXTJS_STRATEGIES)}"
        )
    relative = relative_posix(path, root_dir)
    if strategy == "preserve" and is_in_app_dir(relative, root_dir):
        return f"{EXAMPLES_DIR}/{relative}"
    return relative

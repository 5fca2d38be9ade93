"""Path helpers shared by the classifiers."""

from __future__ import annotations

from pathlib import Path, PurePosixPath


def relative_posix(path: str | Path, root_dir: str | Path) -> str:
    """Return *path* relative to *root_dir* as a "/"-separated string.

    Relative inputs are taken to be relative to the root already.
    """
    p = Path(path)
    if p.is_absolute():
        try:
            p = p.relative_to(Path(root_dir).resolve())
        except ValueError:
            p = p.relative_to(Path(root_dir).absolute())
    return p.as_posix()


def path_segments(relative_path: str) -> list[str]:
    return [part for part in PurePosixPath(relative_path).parts if part not in ("", ".")]

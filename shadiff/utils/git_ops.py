"""Git operations — shallow-clone a remote repository and collect its files."""

from __future__ import annotations

import logging
import shutil
import tempfile
from pathlib import Path
from urllib.parse import urlparse

from shadiff.constants import CLONABLE_HOSTS, CLONE_SKIP_DIRS, GITHUB_HOSTS
from shadiff.errors import GitCloneError
from shadiff.models.remote import RemoteFile

logger = logging.getLogger(__name__)


def is_clonable_url(url: str) -> bool:
    """True if *url* is on a git host we know how to clone over HTTPS."""
    try:
        hostname = (urlparse(url).hostname or "").lower()
    except ValueError:
        return False
    return hostname in CLONABLE_HOSTS


def get_clone_url(url: str) -> str:
    """Convert a browse URL to ``https://<host>/<owner>/<repo>.git``."""
    parsed = urlparse(url)
    if not parsed.hostname:
        return url
    parts = [p for p in parsed.path.split("/") if p]
    if "-" in parts:
        # GitLab: /<group>/<project>/-/tree/<branch>/...
        parts = parts[: parts.index("-")]
    elif parsed.hostname.lower() in GITHUB_HOSTS:
        # GitHub: /<owner>/<repo>/tree/<branch>/...
        parts = parts[:2]
    path = "/".join(parts)
    if path.endswith(".git"):
        path = path[: -len(".git")]
    return f"https://{parsed.hostname}/{path}.git"


class GitCloner:
    """Shallow-clones into a private temporary directory.

    The clone directory is created on first use and removed after every
    extraction, so ``cleanup`` is only needed after an interrupted run.
    """

    def __init__(self) -> None:
        self.clone_dir: Path | None = None

    def clone_and_extract(
        self,
        clone_url: str,
        branch: str | None = None,
        sub_path: str = "",
    ) -> list[RemoteFile]:
        """Clone *clone_url* (depth 1) and read every text file under *sub_path*.

        A requested branch that does not exist remotely is dropped and the
        host's default branch is cloned instead.

        Raises:
            GitCloneError: git is unavailable, the clone failed, or
                *sub_path* does not exist in the repository.
        """
        try:
            self._clone(clone_url, branch)

            repo_root = self.clone_dir
            scan_path = repo_root / sub_path if sub_path else repo_root
            if not scan_path.is_dir():
                raise GitCloneError(f'Target path "{sub_path}" not found in repository')

            files: list[RemoteFile] = []
            self._collect_files(repo_root, scan_path, clone_url, files)
            return files
        except OSError as exc:
            raise GitCloneError(f"Cannot read cloned repository: {exc}") from exc
        finally:
            self.cleanup()

    def cleanup(self) -> None:
        """Remove the clone directory. Safe to call repeatedly."""
        if self.clone_dir is not None and self.clone_dir.exists():
            shutil.rmtree(self.clone_dir, ignore_errors=True)
        self.clone_dir = None

    def _clone(self, clone_url: str, branch: str | None) -> None:
        try:
            from git import Repo
            from git.exc import GitCommandError, GitError
        except ImportError as exc:
            raise GitCloneError(
                "Git is not available in the system. Install Git or use API mode."
            ) from exc

        self._fresh_clone_dir()
        try:
            if branch:
                Repo.clone_from(clone_url, self.clone_dir, depth=1, branch=branch)
            else:
                Repo.clone_from(clone_url, self.clone_dir, depth=1)
            return
        except GitCommandError as exc:
            if not (branch and _is_missing_branch_error(exc)):
                raise GitCloneError(f"git clone failed: {_short_error(exc)}") from exc
            logger.warning(
                "Branch %r not found on remote, cloning the default branch instead", branch
            )
        except GitError as exc:
            raise GitCloneError(f"git clone failed: {exc}") from exc

        self._fresh_clone_dir()
        try:
            Repo.clone_from(clone_url, self.clone_dir, depth=1)
        except GitError as exc:
            raise GitCloneError(f"git clone failed: {_short_error(exc)}") from exc

    def _fresh_clone_dir(self) -> None:
        self.cleanup()
        self.clone_dir = Path(tempfile.mkdtemp(prefix="shadiff_git_"))

    def _collect_files(
        self,
        repo_root: Path,
        directory: Path,
        source_url: str,
        files: list[RemoteFile],
    ) -> None:
        for item in sorted(directory.iterdir()):
            # .git, .github, .gitlab, .gitignore and friends are VCS metadata
            if item.name.startswith(".git") or item.name in CLONE_SKIP_DIRS:
                continue
            if item.is_dir():
                self._collect_files(repo_root, item, source_url, files)
            elif item.is_file():
                try:
                    content = item.read_text(encoding="utf-8")
                except (OSError, UnicodeDecodeError) as exc:
                    logger.warning("Skipping file %s: %s", item, exc)
                    continue
                files.append(
                    RemoteFile(
                        path=item.relative_to(repo_root).as_posix(),
                        content=content,
                        url=source_url,
                        size=len(content),
                    )
                )


def _is_missing_branch_error(exc: Exception) -> bool:
    message = str(exc)
    return "Remote branch" in message or "not found in upstream" in message


def _short_error(exc: Exception) -> str:
    stderr = getattr(exc, "stderr", "") or ""
    return stderr.strip() or str(exc)


"""Remote fetcher — acquire a repository's files into a local staging directory.

Two strategies:

* **clone** — shallow ``git clone`` of a public GitHub/GitLab repository.
  No per-request API quota, and usually faster for whole repositories.
* **api** — walk the host's tree API and download file contents over HTTPS.
  Used whenever credentials are supplied, for non-git hosts, and as the
  single fallback when cloning fails.

Whichever strategy runs, fetched files are written into one staging
directory that the registry generator then treats like a local root::

    fetcher = RemoteFetcher(parse_remote_url(url), file_filter)
    try:
        staging = await fetcher.download_to_staging()
        ...
    finally:
        fetcher.cleanup()
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import logging
import shutil
import tempfile
from enum import Enum
from pathlib import Path, PurePosixPath
from urllib.parse import quote, urlparse

import httpx

from shadiff import __version__
from shadiff.constants import (
    DEFAULT_BRANCH,
    GITHUB_API_BASE,
    GITHUB_BATCH_SIZE,
    GITLAB_API_BASE,
    REQUEST_TIMEOUT_SECONDS,
)
from shadiff.errors import GitCloneError, RemoteFetchError
from shadiff.models.remote import HostType, RemoteFile, RemoteSourceConfig
from shadiff.remote.sources import repository_parts
from shadiff.utils.file_filter import FileFilter
from shadiff.utils.git_ops import GitCloner, get_clone_url, is_clonable_url

logger = logging.getLogger(__name__)

USER_AGENT = f"shadiff/{__version__}"


class FetchState(Enum):
    IDLE = "idle"
    RESOLVING = "resolving"
    CLONING = "cloning"
    API_FETCHING = "api_fetching"
    MATERIALIZED = "materialized"
    CLEANED_UP = "cleaned_up"


class RemoteFetcher:
    """Fetches a remote source into a staging directory.

    Parameters
    ----------
    config : RemoteSourceConfig
        Resolved remote origin (see ``parse_remote_url``).
    file_filter : FileFilter
        Decides which remote files are staged (``FileFilter.should_stage``).
    transport : httpx.AsyncBaseTransport | None
        Optional transport for the HTTP client; tests pass a
        ``httpx.MockTransport``.
    git_cloner : GitCloner | None
        Optional cloner, created on demand when omitted.
    """

    def __init__(
        self,
        config: RemoteSourceConfig,
        file_filter: FileFilter,
        transport: httpx.AsyncBaseTransport | None = None,
        git_cloner: GitCloner | None = None,
    ) -> None:
        self.config = config
        self.file_filter = file_filter
        self.transport = transport
        self.git_cloner = git_cloner or GitCloner()
        self.staging_dir: Path | None = None
        self.state = FetchState.IDLE

    # ------------------------------------------------------------------
    # Strategy selection
    # ------------------------------------------------------------------

    def should_use_git_cloning(self) -> bool:
        """Clone only unauthenticated GitHub/GitLab sources on a clonable host.

        Credentialed requests go through the API, where auth failures come
        back as clear HTTP errors.
        """
        if self.config.host_type not in (HostType.GITHUB, HostType.GITLAB):
            return False
        if self.config.has_auth:
            return False
        return is_clonable_url(self.config.url)

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    async def download_to_staging(self) -> Path:
        """Fetch the remote files and write them into the staging directory.

        Cloning is tried first when allowed, in a worker thread; any clone
        failure falls back to API mode exactly once. API failures propagate.

        Returns:
            Path to the populated staging directory.

        Raises:
            RemoteFetchError: API mode failed. The staging directory has
                already been removed when this is raised.
        """
        self.state = FetchState.RESOLVING
        try:
            files: list[RemoteFile] | None = None

            if self.should_use_git_cloning():
                self.state = FetchState.CLONING
                try:
                    files = await asyncio.to_thread(self.fetch_using_git_cloning)
                    logger.info("Downloaded %d files using git cloning", len(files))
                except Exception as exc:
                    logger.warning("Git cloning failed: %s", exc)
                    logger.info("Falling back to API calls...")

            if files is None:
                self.state = FetchState.API_FETCHING
                files = await self.fetch_using_api()
                logger.info("Downloaded %d files through the %s API", len(files), self.config.host_type.value)

            staging = self.materialize(files)
            self.state = FetchState.MATERIALIZED
            return staging
        except Exception:
            self.cleanup()
            raise

    # ------------------------------------------------------------------
    # Clone mode
    # ------------------------------------------------------------------

    def fetch_using_git_cloning(self) -> list[RemoteFile]:
        if not is_clonable_url(self.config.url):
            raise GitCloneError("URL is not supported for git cloning")

        clone_url = get_clone_url(self.config.url)
        logger.info("Cloning repository: %s", clone_url)
        all_files = self.git_cloner.clone_and_extract(
            clone_url,
            branch=self.config.branch or None,
            sub_path=self.config.base_path,
        )
        files = [f for f in all_files if self.file_filter.should_stage(f.path)]
        logger.info("Cloned and extracted %d files (%d total)", len(files), len(all_files))
        return files

    # ------------------------------------------------------------------
    # API mode
    # ------------------------------------------------------------------

    async def fetch_using_api(self) -> list[RemoteFile]:
        async with httpx.AsyncClient(
            timeout=REQUEST_TIMEOUT_SECONDS,
            follow_redirects=True,
            max_redirects=1,
            headers={"User-Agent": USER_AGENT},
            transport=self.transport,
        ) as client:
            if self.config.host_type is HostType.GITHUB:
                return await self.fetch_from_github(client)
            if self.config.host_type is HostType.GITLAB:
                return await self.fetch_from_gitlab(client)
            return await self.fetch_from_raw_url(client)

    def api_base_url(self) -> str:
        """Derive the host API URL for the repository (API mode only)."""
        parts = repository_parts(self.config)
        if self.config.host_type is HostType.GITHUB and len(parts) >= 2:
            return f"{GITHUB_API_BASE}/repos/{parts[0]}/{parts[1]}"
        if self.config.host_type is HostType.GITLAB and len(parts) >= 2:
            return f"{GITLAB_API_BASE}/projects/{quote('/'.join(parts), safe='')}"
        return self.config.url

    def auth_headers(self) -> dict[str, str]:
        auth = self.config.auth
        if auth is None:
            return {}
        if auth.token:
            if self.config.host_type is HostType.GITHUB:
                return {"Authorization": f"Bearer {auth.token}"}
            if self.config.host_type is HostType.GITLAB:
                return {"PRIVATE-TOKEN": auth.token}
            return {}
        if auth.username and auth.password:
            credentials = base64.b64encode(f"{auth.username}:{auth.password}".encode()).decode()
            return {"Authorization": f"Basic {credentials}"}
        return {}

    async def fetch_from_github(self, client: httpx.AsyncClient) -> list[RemoteFile]:
        headers = {"Accept": "application/vnd.github.v3+json", **self.auth_headers()}
        api_url = self.api_base_url()
        branch = self.config.branch or DEFAULT_BRANCH
        logger.info("Fetching GitHub repository tree from: %s", api_url)

        try:
            tree_data = await self._get_json(client, f"{api_url}/git/trees/{branch}?recursive=1", headers)
            if not isinstance(tree_data, dict) or not isinstance(tree_data.get("tree"), list):
                raise RemoteFetchError("Malformed tree response")

            if tree_data.get("truncated"):
                logger.warning("Repository tree is truncated, some files may be missing")

            items = [
                item for item in tree_data["tree"]
                if isinstance(item, dict)
                and item.get("type") == "blob"
                and self._wanted(item.get("path", ""))
            ]
            logger.info("Found %d files to process", len(items))

            files: list[RemoteFile] = []
            for start in range(0, len(items), GITHUB_BATCH_SIZE):
                batch = items[start:start + GITHUB_BATCH_SIZE]
                results = await asyncio.gather(
                    *(self._fetch_github_blob(client, item, headers) for item in batch)
                )
                files.extend(f for f in results if f is not None)
                logger.info("Fetched %d/%d files", min(start + GITHUB_BATCH_SIZE, len(items)), len(items))
            return files
        except RemoteFetchError as exc:
            raise RemoteFetchError(f"Failed to fetch from GitHub: {exc}") from exc

    async def _fetch_github_blob(
        self,
        client: httpx.AsyncClient,
        item: dict,
        headers: dict[str, str],
    ) -> RemoteFile | None:
        path = item["path"]
        try:
            blob = await self._get_json(client, item["url"], headers)
            content = blob.get("content", "")
            if blob.get("encoding") == "base64":
                content = base64.b64decode(content).decode("utf-8")
        except (RemoteFetchError, KeyError, AttributeError, binascii.Error, UnicodeDecodeError) as exc:
            logger.warning("Failed to fetch %s: %s", path, exc)
            return None
        return RemoteFile(
            path=path,
            content=content,
            url=item["url"],
            size=item.get("size"),
            sha=item.get("sha", ""),
        )

    async def fetch_from_gitlab(self, client: httpx.AsyncClient) -> list[RemoteFile]:
        headers = self.auth_headers()
        api_url = self.api_base_url()
        branch = self.config.branch or DEFAULT_BRANCH
        logger.info("Fetching GitLab repository tree from: %s", api_url)

        try:
            tree = await self._gitlab_tree(client, api_url, branch, headers)
            items = [
                item for item in tree
                if item.get("type") == "blob" and self._wanted(item.get("path", ""))
            ]
            logger.info("Found %d files to process", len(items))

            files: list[RemoteFile] = []
            for item in items:
                path = item["path"]
                file_url = (
                    f"{api_url}/repository/files/{quote(path, safe='')}/raw"
                    f"?ref={quote(branch, safe='')}"
                )
                try:
                    content = await self._get_text(client, file_url, headers)
                except RemoteFetchError as exc:
                    logger.warning("Failed to fetch %s: %s", path, exc)
                    continue
                files.append(
                    RemoteFile(path=path, content=content, url=file_url, size=item.get("size"), sha=item.get("id", ""))
                )
            return files
        except RemoteFetchError as exc:
            raise RemoteFetchError(f"Failed to fetch from GitLab: {exc}") from exc

    async def _gitlab_tree(
        self,
        client: httpx.AsyncClient,
        api_url: str,
        branch: str,
        headers: dict[str, str],
    ) -> list[dict]:
        """List the whole tree, following GitLab's page headers."""
        tree: list[dict] = []
        page = "1"
        while page:
            url = (
                f"{api_url}/repository/tree?recursive=true&per_page=100"
                f"&ref={quote(branch, safe='')}&page={page}"
            )
            response = await self._get(client, url, headers)
            try:
                data = response.json()
            except ValueError as exc:
                raise RemoteFetchError(f"Malformed tree response: {exc}") from exc
            if not isinstance(data, list):
                raise RemoteFetchError("Malformed tree response")
            tree.extend(item for item in data if isinstance(item, dict))
            page = response.headers.get("x-next-page", "")
        return tree

    async def fetch_from_raw_url(self, client: httpx.AsyncClient) -> list[RemoteFile]:
        logger.info("Fetching raw file from: %s", self.config.url)
        try:
            content = await self._get_text(client, self.config.url, self.auth_headers())
        except RemoteFetchError as exc:
            raise RemoteFetchError(f"Failed to fetch raw file: {exc}") from exc
        filename = PurePosixPath(urlparse(self.config.url).path).name or "index"
        return [RemoteFile(path=filename, content=content, url=self.config.url)]

    def _wanted(self, path: str) -> bool:
        base = self.config.base_path.strip("/")
        if base and not (path == base or path.startswith(base + "/")):
            return False
        return self.file_filter.should_stage(path)

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    async def _get(self, client: httpx.AsyncClient, url: str, headers: dict[str, str]) -> httpx.Response:
        try:
            response = await client.get(url, headers=headers)
        except httpx.TimeoutException as exc:
            raise RemoteFetchError(f"Request timeout: {url}") from exc
        except httpx.HTTPError as exc:
            raise RemoteFetchError(f"Request to {url} failed: {exc}") from exc
        if response.status_code != 200:
            raise RemoteFetchError(f"HTTP {response.status_code}: {response.reason_phrase}")
        return response

    async def _get_text(self, client: httpx.AsyncClient, url: str, headers: dict[str, str]) -> str:
        response = await self._get(client, url, headers)
        return response.text

    async def _get_json(self, client: httpx.AsyncClient, url: str, headers: dict[str, str]):
        response = await self._get(client, url, headers)
        try:
            return response.json()
        except ValueError as exc:
            raise RemoteFetchError(f"Invalid JSON from {url}: {exc}") from exc

    # ------------------------------------------------------------------
    # Staging
    # ------------------------------------------------------------------

    def materialize(self, files: list[RemoteFile]) -> Path:
        """Write *files* under the staging directory, keeping relative paths."""
        staging = self._ensure_staging_dir()
        staging_root = staging.resolve()
        for remote_file in files:
            destination = (staging_root / remote_file.path).resolve()
            if not destination.is_relative_to(staging_root) or destination == staging_root:
                logger.warning("Refusing to stage %s outside the staging directory", remote_file.path)
                continue
            destination.parent.mkdir(parents=True, exist_ok=True)
            destination.write_text(remote_file.content, encoding="utf-8")
        logger.debug("Staged %d files in %s", len(files), staging)
        return staging

    def _ensure_staging_dir(self) -> Path:
        if self.staging_dir is None:
            self.staging_dir = Path(tempfile.mkdtemp(prefix="shadiff_"))
        return self.staging_dir

    def cleanup(self) -> None:
        """Remove the staging and clone directories. Idempotent."""
        if self.staging_dir is not None and self.staging_dir.exists():
            shutil.rmtree(self.staging_dir, ignore_errors=True)
        self.staging_dir = None
        self.git_cloner.cleanup()
        self.state = FetchState.CLEANED_UP

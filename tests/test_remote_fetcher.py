"""Tests for the remote fetcher.

HTTP traffic goes through ``httpx.MockTransport``; cloning is replaced by a
stand-in cloner so no network access is needed.
"""

import base64
import logging
import threading
from urllib.parse import quote

import httpx
import pytest

from shadiff.constants import DEFAULT_EXCLUDE_PATTERNS, DEFAULT_INCLUDE_PATTERNS
from shadiff.errors import GitCloneError, RemoteFetchError
from shadiff.models.remote import HostType, RemoteAuth, RemoteFile
from shadiff.remote.fetcher import FetchState, RemoteFetcher
from shadiff.remote.sources import parse_remote_url
from shadiff.utils.file_filter import FileFilter

GITHUB_API = "https://api.github.com/repos/acme/storefront"
GITLAB_API = "https://gitlab.com/api/v4/projects/acme%2Fstorefront"
TOKEN = RemoteAuth(token="secret")


def _filter():
    return FileFilter(".", DEFAULT_INCLUDE_PATTERNS, DEFAULT_EXCLUDE_PATTERNS)


def _b64(text: str) -> str:
    return base64.b64encode(text.encode("utf-8")).decode("ascii")


class FakeCloner:
    """Records calls; either returns canned files or raises."""

    def __init__(self, files=None, error=None):
        self.files = files or []
        self.error = error
        self.calls = []
        self.cleanups = 0

    def clone_and_extract(self, clone_url, branch=None, sub_path=""):
        self.calls.append((clone_url, branch, sub_path))
        if self.error is not None:
            raise self.error
        return list(self.files)

    def cleanup(self):
        self.cleanups += 1


def _github_handler(contents, requests=None, broken=(), truncated=False):
    """Serve a GitHub tree for *contents* (path -> text) plus blob lookups."""

    tree = [{"path": "app", "type": "tree", "sha": "t0"}]
    blobs = {}
    for i, (path, text) in enumerate(sorted(contents.items())):
        sha = f"sha{i}"
        blobs[sha] = text
        tree.append({
            "path": path,
            "type": "blob",
            "sha": sha,
            "size": len(text),
            "url": f"{GITHUB_API}/git/blobs/{sha}",
        })
    broken_shas = {item["sha"] for item in tree if item["path"] in broken}

    def handler(request: httpx.Request) -> httpx.Response:
        if requests is not None:
            requests.append(request)
        if "/git/trees/" in request.url.path:
            return httpx.Response(200, json={"sha": "root", "tree": tree, "truncated": truncated})
        sha = request.url.path.rsplit("/", 1)[-1]
        if sha in broken_shas:
            return httpx.Response(500)
        return httpx.Response(200, json={"content": _b64(blobs[sha]), "encoding": "base64"})

    return handler


def _staged(staging):
    return {
        p.relative_to(staging).as_posix(): p.read_text(encoding="utf-8")
        for p in staging.rglob("*")
        if p.is_file()
    }


# ── Strategy selection ───────────────────────────────────────────────


def test_should_use_git_cloning():
    def fetcher(url, auth=None):
        return RemoteFetcher(parse_remote_url(url, auth=auth), _filter(), git_cloner=FakeCloner())

    assert fetcher("https://github.com/acme/storefront").should_use_git_cloning()
    assert fetcher("https://gitlab.com/acme/storefront").should_use_git_cloning()
    assert not fetcher("https://github.com/acme/storefront", auth=TOKEN).should_use_git_cloning()
    assert not fetcher("https://raw.githubusercontent.com/acme/x/main/a.tsx").should_use_git_cloning()
    assert not fetcher("https://example.com/a.tsx").should_use_git_cloning()


def test_api_base_url():
    def base(url):
        return RemoteFetcher(parse_remote_url(url), _filter(), git_cloner=FakeCloner()).api_base_url()

    assert base("https://github.com/acme/storefront/tree/main/src") == GITHUB_API
    assert base("https://gitlab.com/acme/storefront") == GITLAB_API
    assert (
        base("https://gitlab.com/acme/frontend/storefront/-/tree/main")
        == "https://gitlab.com/api/v4/projects/acme%2Ffrontend%2Fstorefront"
    )
    assert base("https://example.com/a.tsx") == "https://example.com/a.tsx"


def test_auth_headers():
    def headers(url, auth):
        return RemoteFetcher(parse_remote_url(url, auth=auth), _filter(), git_cloner=FakeCloner()).auth_headers()

    assert headers("https://github.com/acme/x", TOKEN) == {"Authorization": "Bearer secret"}
    assert headers("https://gitlab.com/acme/x", TOKEN) == {"PRIVATE-TOKEN": "secret"}
    assert headers("https://example.com/a.tsx", RemoteAuth(username="user", password="pass")) == {
        "Authorization": "Basic dXNlcjpwYXNz"
    }
    assert headers("https://example.com/a.tsx", TOKEN) == {}
    assert headers("https://github.com/acme/x", None) == {}


# ── Clone mode ───────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_clone_mode_stages_filtered_files():
    cloner = FakeCloner(files=[
        RemoteFile(path="app/page.tsx", content="export default function Page() {}"),
        RemoteFile(path="package.json", content='{"dependencies": {}}'),
        RemoteFile(path="next.config.mjs", content="export default {}"),
        RemoteFile(path="README.md", content="# readme"),
        RemoteFile(path="dist/bundle.js", content=""),
    ])
    requests = []
    transport = httpx.MockTransport(lambda request: requests.append(request) or httpx.Response(500))
    fetcher = RemoteFetcher(
        parse_remote_url("https://github.com/acme/storefront/tree/develop/web"),
        _filter(),
        transport=transport,
        git_cloner=cloner,
    )

    staging = await fetcher.download_to_staging()
    try:
        assert fetcher.state is FetchState.MATERIALIZED
        assert set(_staged(staging)) == {"app/page.tsx", "package.json", "next.config.mjs"}
        assert cloner.calls == [("https://github.com/acme/storefront.git", "develop", "web")]
        assert requests == []
    finally:
        fetcher.cleanup()

    assert not staging.exists()
    assert fetcher.state is FetchState.CLEANED_UP


@pytest.mark.asyncio
async def test_clone_failure_falls_back_to_api(caplog):
    cloner = FakeCloner(error=GitCloneError("git clone failed: repository not found"))
    fetcher = RemoteFetcher(
        parse_remote_url("https://github.com/acme/storefront"),
        _filter(),
        transport=httpx.MockTransport(_github_handler({"components/nav.tsx": "export const Nav = 1"})),
        git_cloner=cloner,
    )

    with caplog.at_level(logging.INFO):
        staging = await fetcher.download_to_staging()
    try:
        assert len(cloner.calls) == 1
        assert _staged(staging) == {"components/nav.tsx": "export const Nav = 1"}
        assert "Falling back to API calls" in caplog.text
    finally:
        fetcher.cleanup()


@pytest.mark.asyncio
async def test_clone_failure_then_api_failure_propagates():
    cloner = FakeCloner(error=GitCloneError("boom"))
    fetcher = RemoteFetcher(
        parse_remote_url("https://github.com/acme/storefront"),
        _filter(),
        transport=httpx.MockTransport(lambda request: httpx.Response(404)),
        git_cloner=cloner,
    )

    with pytest.raises(RemoteFetchError, match="Failed to fetch from GitHub: HTTP 404"):
        await fetcher.download_to_staging()

    assert len(cloner.calls) == 1
    assert fetcher.staging_dir is None
    assert fetcher.state is FetchState.CLEANED_UP


# ── GitHub API ───────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_github_api_fetch():
    requests = []
    contents = {
        "app/page.tsx": "export default function Page() {}",
        "components/nav.tsx": "export const Nav = () => null",
        "package.json": '{"dependencies": {"zod": "^3"}}',
        "README.md": "# readme",
        "node_modules/react/index.js": "module.exports = {}",
        "lib/broken.ts": "never served",
    }
    fetcher = RemoteFetcher(
        parse_remote_url("https://github.com/acme/storefront", auth=TOKEN),
        _filter(),
        transport=httpx.MockTransport(_github_handler(contents, requests, broken={"lib/broken.ts"})),
    )

    staging = await fetcher.download_to_staging()
    try:
        staged = _staged(staging)
        assert set(staged) == {"app/page.tsx", "components/nav.tsx", "package.json"}
        assert staged["components/nav.tsx"] == "export const Nav = () => null"
    finally:
        fetcher.cleanup()

    tree_request = requests[0]
    assert str(tree_request.url) == f"{GITHUB_API}/git/trees/main?recursive=1"
    assert tree_request.headers["Authorization"] == "Bearer secret"
    assert tree_request.headers["Accept"] == "application/vnd.github.v3+json"
    assert tree_request.headers["User-Agent"].startswith("shadiff/")


@pytest.mark.asyncio
async def test_github_api_uses_configured_branch_and_base_path():
    requests = []
    contents = {
        "packages/ui/badge.tsx": "export const Badge = 1",
        "apps/web/page.tsx": "export default 1",
    }
    fetcher = RemoteFetcher(
        parse_remote_url("https://github.com/acme/storefront/tree/develop/packages/ui", auth=TOKEN),
        _filter(),
        transport=httpx.MockTransport(_github_handler(contents, requests)),
    )

    staging = await fetcher.download_to_staging()
    try:
        assert set(_staged(staging)) == {"packages/ui/badge.tsx"}
    finally:
        fetcher.cleanup()

    assert requests[0].url.path.endswith("/git/trees/develop")


@pytest.mark.asyncio
async def test_github_api_reports_batch_progress(caplog):
    contents = {f"components/item{i:02d}.tsx": f"export const Item{i} = {i}" for i in range(25)}
    fetcher = RemoteFetcher(
        parse_remote_url("https://github.com/acme/storefront", auth=TOKEN),
        _filter(),
        transport=httpx.MockTransport(_github_handler(contents, truncated=True)),
    )

    with caplog.at_level(logging.INFO):
        staging = await fetcher.download_to_staging()
    try:
        assert len(_staged(staging)) == 25
    finally:
        fetcher.cleanup()

    assert "Fetched 10/25 files" in caplog.text
    assert "Fetched 20/25 files" in caplog.text
    assert "Fetched 25/25 files" in caplog.text
    assert "truncated" in caplog.text


@pytest.mark.asyncio
async def test_github_tree_timeout():
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    fetcher = RemoteFetcher(
        parse_remote_url("https://github.com/acme/storefront", auth=TOKEN),
        _filter(),
        transport=httpx.MockTransport(handler),
    )

    with pytest.raises(RemoteFetchError, match="Request timeout"):
        await fetcher.download_to_staging()
    assert fetcher.state is FetchState.CLEANED_UP


@pytest.mark.asyncio
async def test_github_malformed_tree():
    fetcher = RemoteFetcher(
        parse_remote_url("https://github.com/acme/storefront", auth=TOKEN),
        _filter(),
        transport=httpx.MockTransport(lambda request: httpx.Response(200, json={"message": "odd"})),
    )

    with pytest.raises(RemoteFetchError, match="Malformed tree response"):
        await fetcher.download_to_staging()


# ── GitLab API ───────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_gitlab_api_follows_pagination():
    requests = []
    pages = {
        "1": [{"id": "a1", "path": "app/page.tsx", "type": "blob"}, {"id": "t", "path": "app", "type": "tree"}],
        "2": [{"id": "b2", "path": "lib/utils.ts", "type": "blob"}],
    }
    contents = {"app/page.tsx": "export default 1", "lib/utils.ts": "export const cn = 1"}

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        url = str(request.url)
        if "/repository/tree" in url:
            page = request.url.params["page"]
            next_page = "2" if page == "1" else ""
            return httpx.Response(200, json=pages[page], headers={"x-next-page": next_page})
        for path, text in contents.items():
            if f"/repository/files/{quote(path, safe='')}/raw" in url:
                return httpx.Response(200, text=text)
        return httpx.Response(404)

    fetcher = RemoteFetcher(
        parse_remote_url("https://gitlab.com/acme/storefront", auth=TOKEN),
        _filter(),
        transport=httpx.MockTransport(handler),
    )

    staging = await fetcher.download_to_staging()
    try:
        assert _staged(staging) == contents
    finally:
        fetcher.cleanup()

    tree_requests = [r for r in requests if "/repository/tree" in str(r.url)]
    assert [r.url.params["page"] for r in tree_requests] == ["1", "2"]
    assert all(r.headers["PRIVATE-TOKEN"] == "secret" for r in requests)


@pytest.mark.asyncio
async def test_gitlab_skips_unreadable_file():
    def handler(request: httpx.Request) -> httpx.Response:
        if "/repository/tree" in str(request.url):
            return httpx.Response(200, json=[
                {"id": "a", "path": "ok.tsx", "type": "blob"},
                {"id": "b", "path": "gone.tsx", "type": "blob"},
            ])
        if "gone.tsx" in str(request.url):
            return httpx.Response(404)
        return httpx.Response(200, text="export const ok = 1")

    fetcher = RemoteFetcher(
        parse_remote_url("https://gitlab.com/acme/storefront", auth=TOKEN),
        _filter(),
        transport=httpx.MockTransport(handler),
    )

    staging = await fetcher.download_to_staging()
    try:
        assert set(_staged(staging)) == {"ok.tsx"}
    finally:
        fetcher.cleanup()


# ── Raw URLs ─────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_raw_url_stages_single_file():
    url = "https://raw.githubusercontent.com/acme/storefront/main/components/nav.tsx"
    fetcher = RemoteFetcher(
        parse_remote_url(url),
        _filter(),
        transport=httpx.MockTransport(lambda request: httpx.Response(200, text="export const Nav = 1")),
    )

    staging = await fetcher.download_to_staging()
    try:
        assert _staged(staging) == {"nav.tsx": "export const Nav = 1"}
    finally:
        fetcher.cleanup()


@pytest.mark.asyncio
async def test_generic_url_without_filename():
    fetcher = RemoteFetcher(
        parse_remote_url("https://example.com/"),
        _filter(),
        transport=httpx.MockTransport(lambda request: httpx.Response(200, text="<html></html>")),
    )

    staging = await fetcher.download_to_staging()
    try:
        assert set(_staged(staging)) == {"index"}
    finally:
        fetcher.cleanup()


@pytest.mark.asyncio
async def test_raw_url_http_error():
    fetcher = RemoteFetcher(
        parse_remote_url("https://example.com/missing.tsx"),
        _filter(),
        transport=httpx.MockTransport(lambda request: httpx.Response(403)),
    )

    with pytest.raises(RemoteFetchError, match="HTTP 403: Forbidden"):
        await fetcher.download_to_staging()


# ── Staging ──────────────────────────────────────────────────────────


def test_materialize_rejects_paths_outside_staging():
    fetcher = RemoteFetcher(parse_remote_url("https://example.com/a.tsx"), _filter(), git_cloner=FakeCloner())
    staging = fetcher.materialize([
        RemoteFile(path="../escaped.tsx", content="nope"),
        RemoteFile(path="nested/../../escaped2.tsx", content="nope"),
        RemoteFile(path="components/ok.tsx", content="yes"),
    ])
    try:
        assert _staged(staging) == {"components/ok.tsx": "yes"}
        assert not (staging.parent / "escaped.tsx").exists()
        assert not (staging.parent / "escaped2.tsx").exists()
    finally:
        fetcher.cleanup()


def test_cleanup_is_idempotent():
    cloner = FakeCloner()
    fetcher = RemoteFetcher(parse_remote_url("https://example.com/a.tsx"), _filter(), git_cloner=cloner)
    staging = fetcher.materialize([RemoteFile(path="a.tsx", content="x")])

    fetcher.cleanup()
    fetcher.cleanup()

    assert not staging.exists()
    assert fetcher.staging_dir is None
    assert cloner.cleanups == 2
    assert fetcher.state is FetchState.CLEANED_UP


def test_host_type_is_preserved_on_config():
    fetcher = RemoteFetcher(parse_remote_url("https://gitlab.com/a/b"), _filter(), git_cloner=FakeCloner())
    assert fetcher.config.host_type is HostType.GITLAB
    assert fetcher.state is FetchState.IDLE


@pytest.mark.asyncio
async def test_any_clone_failure_falls_back_to_api():
    cloner = FakeCloner(error=PermissionError("permission denied reading clone"))
    requests = []
    fetcher = RemoteFetcher(
        parse_remote_url("https://github.com/acme/storefront"),
        _filter(),
        transport=httpx.MockTransport(_github_handler({"lib/utils.ts": "export const cn = 1"}, requests)),
        git_cloner=cloner,
    )

    staging = await fetcher.download_to_staging()
    try:
        assert len(cloner.calls) == 1
        assert requests
        assert _staged(staging) == {"lib/utils.ts": "export const cn = 1"}
    finally:
        fetcher.cleanup()


@pytest.mark.asyncio
async def test_github_tree_skips_non_object_entries():
    def handler(request: httpx.Request) -> httpx.Response:
        if "/git/trees/" in request.url.path:
            return httpx.Response(200, json={"tree": [
                1,
                "components/odd.tsx",
                {"path": "components/nav.tsx", "type": "blob", "url": f"{GITHUB_API}/git/blobs/n1"},
            ]})
        return httpx.Response(200, json={"content": _b64("export const Nav = 1"), "encoding": "base64"})

    fetcher = RemoteFetcher(
        parse_remote_url("https://github.com/acme/storefront", auth=TOKEN),
        _filter(),
        transport=httpx.MockTransport(handler),
    )

    staging = await fetcher.download_to_staging()
    try:
        assert _staged(staging) == {"components/nav.tsx": "export const Nav = 1"}
    finally:
        fetcher.cleanup()


@pytest.mark.asyncio
async def test_clone_runs_in_worker_thread():
    loop_thread = threading.get_ident()
    clone_threads = []

    class RecordingCloner(FakeCloner):
        def clone_and_extract(self, clone_url, branch=None, sub_path=""):
            clone_threads.append(threading.get_ident())
            return super().clone_and_extract(clone_url, branch, sub_path)

    cloner = RecordingCloner(files=[RemoteFile(path="lib/utils.ts", content="export {}")])
    fetcher = RemoteFetcher(parse_remote_url("https://github.com/acme/storefront"), _filter(), git_cloner=cloner)

    staging = await fetcher.download_to_staging()
    try:
        assert set(_staged(staging)) == {"lib/utils.ts"}
        assert clone_threads and clone_threads[0] != loop_thread
    finally:
        fetcher.cleanup()

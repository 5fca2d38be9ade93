"""Resolve a remote URL into a ``RemoteSourceConfig``."""

from __future__ import annotations

from urllib.parse import urlparse

from shadiff.constants import GITHUB_HOSTS, GITLAB_HOSTS, RAW_HOST_MARKERS
from shadiff.errors import ConfigurationError
from shadiff.models.remote import HostType, RemoteAuth, RemoteSourceConfig

BROWSE_MARKERS = ("tree", "blob")


def parse_remote_url(
    url: str,
    auth: RemoteAuth | None = None,
    branch: str = "",
) -> RemoteSourceConfig:
    """Classify *url* by hostname and split off branch and sub-path.

    The original browse URL is kept as-is; API URLs are derived later and
    only if API mode is used. An explicit *branch* wins over one embedded
    in the URL.

    Raises:
        ConfigurationError: *url* is not an absolute http(s) URL.
    """
    try:
        parsed = urlparse(url.strip())
        hostname = (parsed.hostname or "").lower()
    except ValueError as exc:
        raise ConfigurationError(f"Malformed remote URL {url!r}: {exc}") from exc

    if parsed.scheme not in ("http", "https") or not hostname:
        raise ConfigurationError(f"Malformed remote URL {url!r}: expected http(s)://host/...")

    parts = [p for p in parsed.path.split("/") if p]

    if hostname in GITHUB_HOSTS and len(parts) >= 2:
        url_branch, base_path = _split_github_path(parts[2:])
        return RemoteSourceConfig(
            url=url,
            host_type=HostType.GITHUB,
            branch=branch or url_branch,
            auth=auth,
            base_path=base_path,
        )

    if hostname in GITLAB_HOSTS and len(parts) >= 2:
        url_branch, base_path = _split_gitlab_path(parts)
        return RemoteSourceConfig(
            url=url,
            host_type=HostType.GITLAB,
            branch=branch or url_branch,
            auth=auth,
            base_path=base_path,
        )

    if any(marker in hostname for marker in RAW_HOST_MARKERS):
        return RemoteSourceConfig(url=url, host_type=HostType.RAW, branch=branch, auth=auth)

    return RemoteSourceConfig(url=url, host_type=HostType.GENERIC, branch=branch, auth=auth)


def _split_github_path(rest: list[str]) -> tuple[str, str]:
    # /<owner>/<repo>/tree/<branch>/<sub/path>
    if len(rest) >= 2 and rest[0] in BROWSE_MARKERS:
        return rest[1], "/".join(rest[2:])
    return "", "/".join(rest)


def _split_gitlab_path(parts: list[str]) -> tuple[str, str]:
    # /<group>/<project>/-/tree/<branch>/<sub/path>
    if "-" not in parts:
        return "", ""
    rest = parts[parts.index("-") + 1:]
    if len(rest) >= 2 and rest[0] in BROWSE_MARKERS:
        return rest[1], "/".join(rest[2:])
    return "", ""


def repository_parts(config: RemoteSourceConfig) -> list[str]:
    """Return the owner/repo (GitHub) or namespace/project (GitLab) path parts."""
    parts = [p for p in urlparse(config.url).path.split("/") if p]
    if config.host_type is HostType.GITLAB:
        parts = parts[: parts.index("-")] if "-" in parts else parts
    else:
        parts = parts[:2]
    if parts and parts[-1].endswith(".git"):
        parts[-1] = parts[-1][: -len(".git")]
    return parts

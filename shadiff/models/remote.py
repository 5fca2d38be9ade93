"""Remote source models — where a project comes from and what was fetched."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from shadiff.errors import ConfigurationError


class HostType(Enum):
    """Kind of remote origin, decided from the URL's hostname."""

    GITHUB = "github"
    GITLAB = "gitlab"
    RAW = "raw"
    GENERIC = "generic"


@dataclass(frozen=True)
class RemoteAuth:
    """Credentials for a remote host: a token, or a username/password pair."""

    token: str = ""
    username: str = ""
    password: str = ""

    @property
    def is_set(self) -> bool:
        return bool(self.token or (self.username and self.password))

    @classmethod
    def from_dict(cls, data: dict | None) -> RemoteAuth | None:
        if not data:
            return None
        if not isinstance(data, dict):
            raise ConfigurationError("remoteAuth must be an object with token or username/password")
        return cls(
            token=data.get("token") or "",
            username=data.get("username") or "",
            password=data.get("password") or "",
        )

    def to_dict(self) -> dict:
        return {k: v for k, v in (
            ("token", self.token),
            ("username", self.username),
            ("password", self.password),
        ) if v}


@dataclass(frozen=True)
class RemoteSourceConfig:
    """Resolved description of a remote origin. Built once per remote run."""

    url: str
    """Original browse URL, used directly for cloning."""

    host_type: HostType
    branch: str = ""
    auth: RemoteAuth | None = None
    base_path: str = ""
    """Sub-path inside the repository to restrict fetching to."""

    @property
    def has_auth(self) -> bool:
        return self.auth is not None and self.auth.is_set


@dataclass(frozen=True)
class RemoteFile:
    """A file fetched from a remote source, before it is staged on disk."""

    path: str  # Relative to the repository root, "/" separated
    content: str
    url: str = ""
    size: int | None = None
    sha: str = ""

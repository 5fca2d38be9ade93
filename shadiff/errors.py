"""Exception hierarchy for shadiff."""

from __future__ import annotations


class ShadiffError(Exception):
    """Base class for all errors raised by shadiff."""


class ConfigurationError(ShadiffError, ValueError):
    """Invalid options or configuration file. Raised before any I/O."""


class RemoteFetchError(ShadiffError, RuntimeError):
    """A remote source could not be fetched through the host API."""


class GitCloneError(RemoteFetchError):
    """Cloning failed. The fetcher falls back to API mode when it sees this."""

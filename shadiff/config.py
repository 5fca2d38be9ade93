"""Generator options and the ``shadcn-registry.config.json`` file."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path

from shadiff.constants import (
    CONFIG_FILE,
    DEFAULT_AUTHOR,
    DEFAULT_EXCLUDE_PATTERNS,
    DEFAULT_INCLUDE_PATTERNS,
    DEFAULT_NEXTJS_STRATEGY,
    DEFAULT_OUTPUT_FILE,
    DEFAULT_ROOT_DIR,
    NEXTJS_STRATEGIES,
)
from shadiff.errors import ConfigurationError
from shadiff.models.remote import RemoteAuth

# on-disk key -> GeneratorOptions attribute
_FILE_KEYS = {
    "rootDir": "root_dir",
    "outputFile": "output_file",
    "includePatterns": "include_patterns",
    "excludePatterns": "exclude_patterns",
    "author": "author",
    "nextjsAppStrategy": "nextjs_app_strategy",
    "remoteUrl": "remote_url",
    "remoteBranch": "remote_branch",
    "sortFiles": "sort_files",
}


@dataclass
class GeneratorOptions:
    """Everything the registry generator needs. Omitted fields take defaults."""

    root_dir: str = DEFAULT_ROOT_DIR
    output_file: str = DEFAULT_OUTPUT_FILE
    include_patterns: list[str] = field(default_factory=lambda: list(DEFAULT_INCLUDE_PATTERNS))
    exclude_patterns: list[str] = field(default_factory=lambda: list(DEFAULT_EXCLUDE_PATTERNS))
    author: str = DEFAULT_AUTHOR
    nextjs_app_strategy: str = DEFAULT_NEXTJS_STRATEGY
    remote_url: str = ""
    remote_branch: str = ""
    remote_auth: RemoteAuth | None = None
    sort_files: bool = False

    def validate(self) -> None:
        """Raise ``ConfigurationError`` for values no run could succeed with."""
        if self.nextjs_app_strategy not in NEXTJS_STRATEGIES:
            raise ConfigurationError(
                f"Invalid nextjsAppStrategy {self.nextjs_app_strategy!r}; "
                f"expected one of: {', '.join(NEXTJS_STRATEGIES)}"
            )
        if not self.include_patterns:
            raise ConfigurationError("Include patterns cannot be empty")

    @classmethod
    def from_dict(cls, data: dict) -> GeneratorOptions:
        """Build options from config-file keys. Unknown keys are ignored."""
        options = cls()
        for key, attr in _FILE_KEYS.items():
            value = data.get(key)
            if value is None or value == "":
                continue
            if attr.endswith("_patterns"):
                value = _as_pattern_list(key, value)
            setattr(options, attr, value)
        options.remote_auth = RemoteAuth.from_dict(data.get("remoteAuth"))
        return options

    def to_dict(self) -> dict:
        data = {key: getattr(self, attr) for key, attr in _FILE_KEYS.items()}
        data = {k: v for k, v in data.items() if v not in ("", None)}
        if self.remote_auth is not None and self.remote_auth.is_set:
            data["remoteAuth"] = self.remote_auth.to_dict()
        return data


def load_config(path: str | Path = CONFIG_FILE) -> dict:
    """Read the config file. A missing file yields an empty dict."""
    config_path = Path(path)
    if not config_path.exists():
        return {}
    try:
        text = config_path.read_text(encoding="utf-8")
        if not text.strip():
            return {}
        data = json.loads(text)
    except (json.JSONDecodeError, OSError, UnicodeDecodeError) as exc:
        raise ConfigurationError(f"Cannot read {config_path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigurationError(f"{config_path} must contain a JSON object")
    return data


def write_default_config(path: str | Path = CONFIG_FILE) -> Path:
    config_path = Path(path)
    with open(config_path, "w", encoding="utf-8") as f:
        json.dump(GeneratorOptions().to_dict(), f, indent=2)
        f.write("\n")
    return config_path


def merge_options(file_config: dict, overrides: dict) -> GeneratorOptions:
    """Combine config-file values with CLI overrides.

    Precedence: CLI override, then config file, then defaults. ``overrides``
    uses the same camelCase keys as the file plus ``remoteToken``.
    """
    merged = dict(file_config)
    for key, value in overrides.items():
        if value is None or value == "" or key == "remoteToken":
            continue
        merged[key] = value

    token = overrides.get("remoteToken")
    if token:
        merged["remoteAuth"] = {"token": token}

    options = GeneratorOptions.from_dict(merged)
    options.validate()
    return options


def _as_pattern_list(key: str, value) -> list[str]:
    if isinstance(value, str):
        return [p.strip() for p in value.split(",") if p.strip()]
    if isinstance(value, (list, tuple)):
        return [str(p) for p in value]
    raise ConfigurationError(f"{key} must be a list or a comma-separated string")

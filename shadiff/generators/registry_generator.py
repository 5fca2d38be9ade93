"""Registry generator — turn a project tree into a single registry item."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import httpx

from shadiff.config import GeneratorOptions
from shadiff.errors import ConfigurationError
from shadiff.models.registry import RegistryFile, RegistryItem
from shadiff.remote.fetcher import RemoteFetcher
from shadiff.remote.sources import parse_remote_url
from shadiff.utils.dependency_extractor import DependencyExtractor
from shadiff.utils.file_categorizer import FileCategorizer
from shadiff.utils.file_filter import FileFilter
from shadiff.utils.file_scanner import FileScanner
from shadiff.utils.nextjs_detector import is_in_app_dir, is_next_project, relocated_target
from shadiff.utils.paths import relative_posix
from shadiff.utils.shadcn_detector import ShadcnComponentDetector

logger = logging.getLogger(__name__)


class RegistryGenerator:
    """Scans a local or remote project and emits one ``RegistryItem``.

    Options are validated and the remote URL resolved at construction, so
    configuration errors surface before any filesystem or network I/O.
    """

    def __init__(
        self,
        options: GeneratorOptions | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.options = options or GeneratorOptions()
        self.options.validate()
        self.remote_config = None
        if self.options.remote_url:
            self.remote_config = parse_remote_url(
                self.options.remote_url,
                auth=self.options.remote_auth,
                branch=self.options.remote_branch,
            )
        self._transport = transport
        self.dependency_extractor = DependencyExtractor()

    @property
    def output_path(self) -> Path:
        return Path(self.options.output_file).resolve()

    def generate(self, root_dir: str | Path | None = None) -> RegistryItem:
        """Build the registry item for *root_dir* (default: the configured root)."""
        root = Path(root_dir if root_dir is not None else self.options.root_dir).resolve()
        strategy = self.options.nextjs_app_strategy

        logger.info("Scanning project for components...")
        next_project = is_next_project(root)
        if next_project:
            if strategy == "preserve":
                logger.info("Next.js project detected! App directory files will be targeted to examples/")
            else:
                logger.info("Next.js project detected! App directory files keep their original positions")

        scanner = FileScanner(self.options.exclude_patterns)
        file_filter = FileFilter(root, self.options.include_patterns, self.options.exclude_patterns)
        candidates = [f for f in scanner.scan(root) if file_filter.should_include(f)]
        logger.info("Found %d component files", len(candidates))

        deps = self.dependency_extractor.extract(root)
        detector = ShadcnComponentDetector(root)
        categorizer = FileCategorizer(root)

        registry_dependencies: set[str] = set()
        files: list[RegistryFile] = []

        for path in candidates:
            relative = relative_posix(path, root)

            primitive = detector.registry_dependency(relative)
            if primitive:
                registry_dependencies.add(primitive)
                logger.info("Added shadcn component to registry dependencies: %s", primitive)
                continue

            try:
                content = path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as exc:
                logger.warning("Error processing %s: %s", path, exc)
                continue

            category = categorizer.categorize_relative(relative)
            target = relative
            if next_project and is_in_app_dir(relative, root):
                target = relocated_target(relative, root, strategy)
                if target != relative:
                    logger.info("Next.js app file: %s -> %s (preserving original)", relative, target)
                else:
                    logger.info("Next.js app file: %s (will be overwritten)", relative)

            files.append(
                RegistryFile(
                    path=relative,
                    content=content,
                    type=categorizer.category_to_type(category),
                    target=target,
                )
            )
            logger.debug("Processed: %s (%s)", relative, category.value)

        if self.options.sort_files:
            files.sort(key=lambda f: f.path)

        return RegistryItem(
            author=self.options.author,
            dependencies=deps.dependencies,
            dev_dependencies=deps.dev_dependencies,
            registry_dependencies=sorted(registry_dependencies),
            files=files,
        )

    async def generate_from_remote(self) -> RegistryItem:
        """Fetch the remote source into a staging directory and generate from it.

        The staging directory is removed on every exit path.
        """
        if self.remote_config is None:
            raise ConfigurationError("Remote fetcher not configured: no remote URL given")

        logger.info("Fetching files from remote source...")
        fetcher = RemoteFetcher(
            self.remote_config,
            FileFilter(".", self.options.include_patterns, self.options.exclude_patterns),
            transport=self._transport,
        )
        try:
            staging = await fetcher.download_to_staging()
            logger.info("Fetched remote files to %s", staging)
            return self.generate(staging)
        finally:
            fetcher.cleanup()

    def save(self, item: RegistryItem) -> Path:
        """Write *item* as 2-space indented JSON, creating parent directories."""
        output_path = self.output_path
        if not output_path.parent.exists():
            output_path.parent.mkdir(parents=True, exist_ok=True)
            logger.info("Created directory: %s", output_path.parent)

        with open(output_path, "w", encoding="utf-8") as f:
            json.dump(item.to_dict(), f, indent=2, ensure_ascii=False)

        logger.info("Registry saved to %s", output_path)
        return output_path

    async def run(self) -> RegistryItem:
        """Fetch if remote, generate, and save."""
        if self.remote_config is not None:
            item = await self.generate_from_remote()
        else:
            item = self.generate()
        self.save(item)
        return item

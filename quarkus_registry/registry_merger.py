#!/usr/bin/env python3
import copy
import logging
from pathlib import Path
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from .registry_codec import (
    Extension, ExtensionCatalog, RegistryCodecError, dumps_document, load_document
)
from .registry_model import (
    ArtifactCoords, PlatformCatalog, PlatformRelease, RegistryModelError, RetentionPolicy
)
from .registry_version import parse_version


class RegistryIngestionError(Exception):
    """Exception for an input catalog missing required platform-release data."""
    pass


class RegistryStateError(Exception):
    """Exception for previously generated state that cannot be trusted."""
    pass


@dataclass
class MergeRequest:
    """
    Everything supplied for one generation run: platform-release catalogs
    grouped by platform key (in insertion order) and loose extensions.
    """
    catalogs: Dict[str, List[ExtensionCatalog]] = field(default_factory=dict)
    extensions: List[Extension] = field(default_factory=list)

    def add_catalog(self, platform_key: str, catalog: ExtensionCatalog) -> "MergeRequest":
        self.catalogs.setdefault(platform_key, []).append(catalog)
        return self

    def add_extension(self, extension: Extension) -> "MergeRequest":
        self.extensions.append(extension)
        return self

    def catalog_count(self) -> int:
        return sum(len(c) for c in self.catalogs.values())


@dataclass
class MergeResult:
    """Merged catalog plus the inputs that were rejected on the way."""
    catalog: PlatformCatalog
    rejected: List[Tuple[str, str]] = field(default_factory=list)
    added: int = 0
    replaced: int = 0

    def serialize(self) -> str:
        return dumps_document(self.catalog.to_dict())


def release_from_catalog(catalog: ExtensionCatalog) -> Tuple[str, PlatformRelease]:
    """
    Extract the stream id and platform release declared by a catalog.

    Args:
        catalog: Platform release extension catalog

    Returns:
        Tuple of (stream_id, release)

    Raises:
        RegistryIngestionError: If required platform-release fields are missing
    """
    label = catalog.id or "<unnamed catalog>"
    metadata = catalog.platform_release
    if metadata is None:
        raise RegistryIngestionError(f"Catalog {label} has no 'platform-release' metadata")

    version = metadata.get("version")
    if not version:
        raise RegistryIngestionError(f"Catalog {label} platform-release metadata has no 'version'")

    members = metadata.get("members")
    if not isinstance(members, list) or not members:
        raise RegistryIngestionError(f"Catalog {label} platform-release metadata has no 'members'")

    if not catalog.quarkus_core_version:
        raise RegistryIngestionError(f"Catalog {label} has no 'quarkus-core-version'")
    # YAML reads unquoted versions such as 2.10 as numbers
    for key, value in [("quarkus-core-version", catalog.quarkus_core_version),
                       ("upstream-quarkus-core-version", catalog.upstream_quarkus_core_version)]:
        if value is not None and not isinstance(value, str):
            raise RegistryIngestionError(f"Catalog {label} '{key}' must be a string, got {value!r}")

    try:
        member_boms = [str(ArtifactCoords.from_string(str(m))) for m in members]
    except RegistryModelError as e:
        raise RegistryIngestionError(f"Catalog {label}: {e}") from e

    version_key = parse_version(str(version))
    stream_id = str(metadata.get("stream") or version_key.stream_id)
    release = PlatformRelease(
        version=version_key,
        quarkus_core_version=catalog.quarkus_core_version,
        member_boms=member_boms,
        upstream_quarkus_core_version=catalog.upstream_quarkus_core_version,
    )
    return stream_id, release


class CatalogMerger:
    """Folds newly supplied platform releases into an existing platform catalog."""

    def __init__(self, retention: RetentionPolicy = RetentionPolicy.KEEP_ALL,
                 strict: bool = False, seed_platforms: Sequence[str] = ()):
        """
        Initialize the merger.

        Args:
            retention: Release retention policy applied to every stream after merging
            strict: Raise on the first invalid input instead of skipping it
            seed_platforms: Platform keys that always exist in the catalog
        """
        self.logger = logging.getLogger("quarkus.registry.merger")
        self.retention = retention
        self.strict = strict
        self.seed_platforms = list(seed_platforms)

    def load_baseline(self, catalog_path: Optional[Path]) -> PlatformCatalog:
        """
        Load the previously generated catalog, or start an empty one.

        Args:
            catalog_path: Path to the platform catalog JSON file

        Returns:
            PlatformCatalog: Baseline catalog

        Raises:
            RegistryStateError: If the existing file cannot be parsed
        """
        if catalog_path is None or not Path(catalog_path).exists():
            self.logger.info(f"No existing platform catalog at {catalog_path}, starting empty")
            return PlatformCatalog()

        try:
            catalog = PlatformCatalog.from_dict(load_document(catalog_path))
        except (RegistryCodecError, RegistryModelError) as e:
            msg = f"Existing platform catalog {catalog_path} is corrupted: {e}"
            self.logger.error(msg)
            raise RegistryStateError(msg) from e

        self.logger.info(f"Loaded existing platform catalog with {len(catalog.platforms)} platform(s)")
        return catalog

    def merge(self, previous: PlatformCatalog, request: MergeRequest) -> MergeResult:
        """
        Merge a request into a copy of the previous catalog.

        Args:
            previous: Baseline catalog, left untouched
            request: New platform-release catalogs

        Returns:
            MergeResult: The merged catalog and any rejected inputs

        Raises:
            RegistryIngestionError: In strict mode, for the first invalid input
        """
        result = MergeResult(catalog=copy.deepcopy(previous))
        catalog = result.catalog

        for key in self.seed_platforms:
            catalog.get_or_create_platform(key)

        for platform_key, catalogs in request.catalogs.items():
            for extension_catalog in catalogs:
                try:
                    stream_id, release = release_from_catalog(extension_catalog)
                except RegistryIngestionError as e:
                    if self.strict:
                        self.logger.error(str(e))
                        raise
                    self.logger.warning(f"Skipping input for platform {platform_key}: {e}")
                    result.rejected.append((extension_catalog.id or platform_key, str(e)))
                    continue

                platform = catalog.get_or_create_platform(platform_key, extension_catalog.name)
                stream = platform.get_or_create_stream(stream_id)
                if stream.add_or_replace_release(release):
                    result.replaced += 1
                    self.logger.debug(f"Replaced release {release.version} in {platform_key} stream {stream_id}")
                else:
                    result.added += 1
                    self.logger.debug(f"Added release {release.version} to {platform_key} stream {stream_id}")

        for platform in catalog.platforms.values():
            for stream in platform.streams.values():
                stream.apply_retention(self.retention)

        self.logger.info(f"Merged {result.added} new and {result.replaced} replaced release(s), "
                         f"{len(result.rejected)} rejected")
        return result

    def merge_file(self, catalog_path: Optional[Path], request: MergeRequest) -> MergeResult:
        """Load the baseline from ``catalog_path`` and merge ``request`` into it."""
        return self.merge(self.load_baseline(catalog_path), request)


def merge(previous: PlatformCatalog, request: MergeRequest,
          retention: RetentionPolicy = RetentionPolicy.KEEP_ALL, strict: bool = False) -> MergeResult:
    return CatalogMerger(retention=retention, strict=strict).merge(previous, request)

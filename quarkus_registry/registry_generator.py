#!/usr/bin/env python3
import datetime
import logging
from dataclasses import replace
from pathlib import Path
from typing import Dict, Any, List, Optional, Tuple

from .registry_codec import Extension, ExtensionCatalog, dumps_document
from .registry_config import (
    RegistryConfig,
    DEFAULT_PLATFORM_KEY,
    DEFAULT_REGISTRY_ARTIFACT_VERSION,
    DEFAULT_REGISTRY_DESCRIPTOR_ARTIFACT_ID,
    DEFAULT_REGISTRY_PLATFORMS_CATALOG_ARTIFACT_ID,
    DEFAULT_REGISTRY_NON_PLATFORM_EXTENSIONS_CATALOG_ARTIFACT_ID,
)
from .registry_merger import (
    CatalogMerger, MergeRequest, MergeResult, RegistryIngestionError, release_from_catalog
)
from .registry_metadata import SnapshotMetadata, repository_metadata, repository_prefixes, sha1
from .registry_model import ArtifactCoords, PlatformCatalog, RetentionPolicy

SHA1_EXTENSION = ".sha1"


class RegistryGeneratorError(Exception):
    """Exception raised when the registry tree cannot be written."""
    pass


class RegistryGenerator:
    """
    Generates a static Maven repository tree for the given platform release
    catalogs and non-platform extensions, merging with whatever a previous
    run left in the output directory.
    """

    def __init__(self, output_dir: Path, config: Optional[RegistryConfig] = None,
                 now: Optional[datetime.datetime] = None):
        """
        Initialize the registry generator.

        Args:
            output_dir: Root of the generated repository
            config: Generation settings, defaults when omitted
            now: Timestamp used for snapshot versions, current UTC time when omitted
        """
        self.logger = logging.getLogger("quarkus.registry.generator")
        self.output_dir = Path(output_dir)
        self.config = config or RegistryConfig()
        self.now = now or datetime.datetime.now(datetime.timezone.utc)
        self.request = MergeRequest()
        self.result: Optional[MergeResult] = None

    @classmethod
    def from_config(cls, output_dir: Path, config: RegistryConfig,
                    now: Optional[datetime.datetime] = None) -> "RegistryGenerator":
        return cls(output_dir, config, now)

    def add_catalog(self, catalog: ExtensionCatalog, platform_key: Optional[str] = None) -> "RegistryGenerator":
        """
        Add an extension catalog describing a platform release.

        Args:
            catalog: The extension catalog
            platform_key: Platform the release belongs to; read from the
                catalog's platform-release metadata when omitted

        Returns:
            RegistryGenerator: this instance, for chaining

        Raises:
            RegistryIngestionError: If the catalog lacks required platform-release data
        """
        key = platform_key or catalog.platform_key
        if not key:
            raise RegistryIngestionError(f"Catalog {catalog.id or '<unnamed catalog>'} has no platform key")
        release_from_catalog(catalog)
        self.request.add_catalog(key, catalog)
        self.result = None
        return self

    def add_extension(self, extension: Extension) -> "RegistryGenerator":
        """Add an extension that is not part of any platform."""
        self.request.add_extension(extension)
        return self

    def with_group_id(self, group_id: str) -> "RegistryGenerator":
        self.config = replace(self.config, group_id=group_id)
        self.result = None
        return self

    def with_registry_id(self, registry_id: str) -> "RegistryGenerator":
        self.config = replace(self.config, registry_id=registry_id)
        return self

    def with_registry_url(self, registry_url: str) -> "RegistryGenerator":
        self.config = replace(self.config, registry_url=registry_url)
        return self

    def with_supports_non_platforms(self, supports_non_platforms: bool) -> "RegistryGenerator":
        self.config = replace(self.config, supports_non_platforms=supports_non_platforms)
        return self

    def with_quarkus_version_expression(self, expression: Optional[str]) -> "RegistryGenerator":
        self.config = replace(self.config, quarkus_version_expression=expression)
        return self

    def with_quarkus_versions_exclusive_provider(self, exclusive: bool) -> "RegistryGenerator":
        self.config = replace(self.config, quarkus_versions_exclusive_provider=exclusive)
        return self

    def with_retention_policy(self, retention: RetentionPolicy) -> "RegistryGenerator":
        self.config = replace(self.config, retention=retention)
        self.result = None
        return self

    def with_strict(self, strict: bool) -> "RegistryGenerator":
        self.config = replace(self.config, strict=strict)
        self.result = None
        return self

    def with_snapshots(self, snapshots: bool) -> "RegistryGenerator":
        self.config = replace(self.config, snapshots=snapshots)
        return self

    def __enter__(self) -> "RegistryGenerator":
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> bool:
        if exc_type is None:
            self.generate()
        return False

    def generate(self) -> Path:
        """
        Write the registry tree.

        Returns:
            Path: The output directory

        Raises:
            RegistryGeneratorError: If a directory or file cannot be written
            RegistryStateError: If the existing platform catalog is corrupted
            RegistryIngestionError: In strict mode, if an input catalog is invalid
        """
        self.logger.info(f"Generating registry {self.config.registry_id} in {self.output_dir}")
        try:
            self._generate_repository_metadata()
            self._generate_registry_descriptor()
            self._generate_platforms()
            self._generate_non_platform_extensions()
        except OSError as e:
            msg = f"Failed to write registry to {self.output_dir}: {e}"
            self.logger.error(msg)
            raise RegistryGeneratorError(msg) from e
        return self.output_dir

    def artifact_dir(self, artifact_id: str) -> Path:
        return self.output_dir / self.config.group_path / artifact_id / DEFAULT_REGISTRY_ARTIFACT_VERSION

    def platforms_catalog_path(self) -> Path:
        artifact_id = DEFAULT_REGISTRY_PLATFORMS_CATALOG_ARTIFACT_ID
        return self.artifact_dir(artifact_id) / f"{artifact_id}-{DEFAULT_REGISTRY_ARTIFACT_VERSION}.json"

    def merged_catalog(self) -> PlatformCatalog:
        """Merge the accumulated input into the on-disk platform catalog (once per input change)."""
        if self.result is None:
            merger = CatalogMerger(
                retention=self.config.retention,
                strict=self.config.strict,
                seed_platforms=self.config.seed_platforms,
            )
            self.result = merger.merge_file(self.platforms_catalog_path(), self.request)
        return self.result.catalog

    def registry_descriptor(self) -> Dict[str, Any]:
        """The registry descriptor document advertising this registry's artifacts."""
        def artifact(artifact_id: str) -> Dict[str, str]:
            coords = ArtifactCoords(self.config.group_id, artifact_id, "", "json",
                                    DEFAULT_REGISTRY_ARTIFACT_VERSION)
            return {"artifact": str(coords)}

        descriptor: Dict[str, Any] = {
            "descriptor": artifact(DEFAULT_REGISTRY_DESCRIPTOR_ARTIFACT_ID),
            "platforms": artifact(DEFAULT_REGISTRY_PLATFORMS_CATALOG_ARTIFACT_ID),
        }
        if self.config.supports_non_platforms:
            descriptor["non-platform-extensions"] = artifact(
                DEFAULT_REGISTRY_NON_PLATFORM_EXTENSIONS_CATALOG_ARTIFACT_ID)
        if self.config.quarkus_version_expression is not None:
            descriptor["quarkus-versions"] = {
                "recognized-versions-expression": self.config.quarkus_version_expression,
                "exclusive-provider": self.config.quarkus_versions_exclusive_provider,
            }
        descriptor["maven"] = {
            "repository": {
                "id": self.config.registry_id,
                "url": self.config.registry_url,
            }
        }
        return descriptor

    def non_platform_catalog(self, quarkus_version: str) -> Dict[str, Any]:
        """Non-platform extension catalog for one Quarkus core version."""
        catalog_id = ArtifactCoords(self.config.group_id,
                                    DEFAULT_REGISTRY_NON_PLATFORM_EXTENSIONS_CATALOG_ARTIFACT_ID,
                                    quarkus_version, "json", DEFAULT_REGISTRY_ARTIFACT_VERSION)
        return {
            "id": str(catalog_id),
            "platform": False,
            "bom": str(ArtifactCoords.pom(DEFAULT_PLATFORM_KEY, "quarkus-bom", quarkus_version)),
            "quarkus-core-version": quarkus_version,
            "extensions": [e.to_dict() for e in self.request.extensions],
        }

    def _write(self, path: Path, content: str) -> None:
        data = content.encode("utf-8")
        path.write_bytes(data)
        path.with_name(path.name + SHA1_EXTENSION).write_text(sha1(data), encoding="utf-8")

    def _publish(self, directory: Path, metadata: SnapshotMetadata,
                 documents: List[Tuple[Optional[str], str]]) -> None:
        """Write ``maven-metadata.xml`` and each (classifier, content) document with checksums."""
        directory.mkdir(parents=True, exist_ok=True)
        self._write(directory / "maven-metadata.xml", metadata.to_xml())
        for classifier, content in documents:
            if self.config.snapshots:
                self._write(directory / metadata.file_name(classifier, timestamped=True), content)
            self._write(directory / metadata.file_name(classifier), content)
            self.logger.debug(f"Wrote {metadata.file_name(classifier)}")

    def _snapshot_metadata(self, artifact_id: str, classifiers: Optional[List[str]] = None) -> SnapshotMetadata:
        return SnapshotMetadata(
            group_id=self.config.group_id,
            artifact_id=artifact_id,
            timestamp=self.now,
            version=DEFAULT_REGISTRY_ARTIFACT_VERSION,
            classifiers=list(classifiers or []),
        )

    def _generate_repository_metadata(self) -> None:
        meta_dir = self.output_dir / ".meta"
        meta_dir.mkdir(parents=True, exist_ok=True)
        (meta_dir / "prefixes.txt").write_bytes(repository_prefixes(self.config.group_id).encode("utf-8"))
        self._write(meta_dir / "repository-metadata.xml",
                    repository_metadata(self.config.registry_id, self.config.registry_url))
        self.logger.info("Generated repository metadata")

    def _generate_registry_descriptor(self) -> None:
        artifact_id = DEFAULT_REGISTRY_DESCRIPTOR_ARTIFACT_ID
        self._publish(self.artifact_dir(artifact_id),
                      self._snapshot_metadata(artifact_id),
                      [(None, dumps_document(self.registry_descriptor()))])
        self.logger.info("Generated registry descriptor")

    def _generate_platforms(self) -> None:
        artifact_id = DEFAULT_REGISTRY_PLATFORMS_CATALOG_ARTIFACT_ID
        catalog = self.merged_catalog()
        self._publish(self.artifact_dir(artifact_id),
                      self._snapshot_metadata(artifact_id),
                      [(None, self.result.serialize())])
        self.logger.info(f"Generated platform catalog with {len(catalog.platforms)} platform(s)")

    def _generate_non_platform_extensions(self) -> None:
        if not self.config.supports_non_platforms:
            self.logger.info("Non-platform extensions are not supported by this registry, skipping")
            return

        quarkus_versions = self.merged_catalog().quarkus_versions()
        if not quarkus_versions:
            self.logger.info("No Quarkus core versions known yet, skipping non-platform extension catalogs")
            return

        artifact_id = DEFAULT_REGISTRY_NON_PLATFORM_EXTENSIONS_CATALOG_ARTIFACT_ID
        documents = [(qv, dumps_document(self.non_platform_catalog(qv))) for qv in quarkus_versions]
        self._publish(self.artifact_dir(artifact_id),
                      self._snapshot_metadata(artifact_id, quarkus_versions),
                      documents)
        self.logger.info(f"Generated non-platform extension catalogs for {len(quarkus_versions)} "
                         f"Quarkus version(s) with {len(self.request.extensions)} extension(s)")

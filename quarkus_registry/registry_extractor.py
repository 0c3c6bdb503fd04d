#!/usr/bin/env python3
"""
Retrieval of platform descriptors and extension metadata from a Maven
repository. Only the command line front-end uses this module; the merge
and generation code never touches the network.
"""
import io
import logging
import zipfile
from typing import Optional, Tuple

import requests

from .registry_codec import Extension, ExtensionCatalog, RegistryCodecError, loads_document

MAVEN_CENTRAL = "https://repo1.maven.org/maven2/"
REQUEST_TIMEOUT = 30
EXTENSION_DESCRIPTOR = "META-INF/quarkus-extension.yaml"


class RegistryExtractorError(Exception):
    """Exception for descriptors that cannot be downloaded or decoded."""
    pass


def parse_gav(gav: str) -> Tuple[str, str, str, Optional[str]]:
    """
    Split ``groupId:artifactId:version[:classifier]``.

    Raises:
        RegistryExtractorError: If fewer than three parts are given
    """
    parts = gav.strip().split(":")
    if len(parts) not in (3, 4) or not all(parts):
        raise RegistryExtractorError(f"Expected groupId:artifactId:version[:classifier], got '{gav}'")
    classifier = parts[3] if len(parts) == 4 else None
    return parts[0], parts[1], parts[2], classifier


class MetadataExtractor:
    """Downloads extension catalogs and extension descriptors from a Maven repository."""

    def __init__(self, repository: str = MAVEN_CENTRAL, session: Optional[requests.Session] = None,
                 timeout: int = REQUEST_TIMEOUT):
        self.logger = logging.getLogger("quarkus.registry.extractor")
        self.repository = repository if repository.endswith("/") else repository + "/"
        self.session = session or requests.Session()
        self.timeout = timeout

    def _artifact_base(self, group_id: str, artifact_id: str, version: str) -> str:
        return f"{self.repository}{group_id.replace('.', '/')}/{artifact_id}/{version}/{artifact_id}-{version}"

    def catalog_url(self, group_id: str, artifact_id: str, version: str,
                    classifier: Optional[str] = None) -> str:
        base = self._artifact_base(group_id, artifact_id, version)
        return f"{base}-{classifier}.json" if classifier else f"{base}.json"

    def extension_jar_url(self, group_id: str, artifact_id: str, version: str) -> str:
        return self._artifact_base(group_id, artifact_id, version) + ".jar"

    def _get(self, url: str) -> bytes:
        self.logger.debug(f"Downloading {url}")
        try:
            response = self.session.get(url, timeout=self.timeout)
        except requests.Timeout as e:
            msg = f"Request to {url} timed out after {self.timeout} seconds"
            self.logger.error(msg)
            raise RegistryExtractorError(msg) from e
        except requests.RequestException as e:
            msg = f"Request to {url} failed: {e}"
            self.logger.error(msg)
            raise RegistryExtractorError(msg) from e

        if response.status_code != 200:
            msg = f"Request to {url} returned HTTP {response.status_code}"
            self.logger.error(msg)
            raise RegistryExtractorError(msg)
        return response.content

    def extract_extension_catalog(self, group_id: str, artifact_id: str, version: str,
                                  classifier: Optional[str] = None) -> ExtensionCatalog:
        """Download a platform descriptor JSON, e.g. ``quarkus-bom-quarkus-platform-descriptor``."""
        url = self.catalog_url(group_id, artifact_id, version, classifier)
        try:
            return ExtensionCatalog(loads_document(self._get(url)))
        except RegistryCodecError as e:
            raise RegistryExtractorError(f"Invalid extension catalog at {url}: {e}") from e

    def extract_extension(self, group_id: str, artifact_id: str, version: str) -> Extension:
        """Download an extension jar and read its ``quarkus-extension.yaml``."""
        url = self.extension_jar_url(group_id, artifact_id, version)
        content = self._get(url)
        try:
            with zipfile.ZipFile(io.BytesIO(content)) as jar:
                descriptor = jar.read(EXTENSION_DESCRIPTOR)
        except (zipfile.BadZipFile, KeyError) as e:
            raise RegistryExtractorError(f"No {EXTENSION_DESCRIPTOR} in {url}: {e}") from e
        try:
            return Extension(loads_document(descriptor, yaml_format=True))
        except RegistryCodecError as e:
            raise RegistryExtractorError(f"Invalid extension descriptor in {url}: {e}") from e

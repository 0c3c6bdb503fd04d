#!/usr/bin/env python3
import io
import sys
import json
import logging
import zipfile
import unittest
from pathlib import Path
from unittest import mock

import requests

# Add parent directory to path if needed for direct testing
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from quarkus_registry.registry_extractor import (
    EXTENSION_DESCRIPTOR, MetadataExtractor, RegistryExtractorError, parse_gav
)
from quarkus_registry.tests.fixtures import platform_catalog

logger = logging.getLogger("quarkus.registry_tests")

REPOSITORY = "https://repo.example.org/maven2"


def response(status_code: int = 200, content: bytes = b"") -> mock.Mock:
    return mock.Mock(status_code=status_code, content=content)


def jar_with(entries) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as jar:
        for name, content in entries.items():
            jar.writestr(name, content)
    return buffer.getvalue()


class ParseGavTests(unittest.TestCase):
    """Tests for command line artifact coordinates."""

    def test_with_and_without_classifier(self):
        self.assertEqual(parse_gav("io.quarkus:quarkus-core:2.0.3.Final"),
                         ("io.quarkus", "quarkus-core", "2.0.3.Final", None))
        self.assertEqual(parse_gav("io.quarkus.platform:quarkus-bom-quarkus-platform-descriptor:2.0.3.Final:2.0.3.Final"),
                         ("io.quarkus.platform", "quarkus-bom-quarkus-platform-descriptor", "2.0.3.Final", "2.0.3.Final"))

    def test_invalid(self):
        for gav in ["io.quarkus:quarkus-core", "a:b:c:d:e", "a::c"]:
            with self.assertRaises(RegistryExtractorError):
                parse_gav(gav)


class MetadataExtractorTests(unittest.TestCase):
    """Tests for downloading descriptors from a Maven repository."""

    def setUp(self):
        self.session = mock.Mock()
        self.extractor = MetadataExtractor(REPOSITORY, session=self.session, timeout=5)

    def test_urls(self):
        self.assertEqual(
            self.extractor.catalog_url("io.quarkus.platform", "quarkus-bom-quarkus-platform-descriptor",
                                       "2.0.3.Final", "2.0.3.Final"),
            "https://repo.example.org/maven2/io/quarkus/platform/quarkus-bom-quarkus-platform-descriptor/"
            "2.0.3.Final/quarkus-bom-quarkus-platform-descriptor-2.0.3.Final-2.0.3.Final.json")
        self.assertEqual(
            self.extractor.extension_jar_url("io.quarkiverse.foo", "quarkus-foo", "0.1.1"),
            "https://repo.example.org/maven2/io/quarkiverse/foo/quarkus-foo/0.1.1/quarkus-foo-0.1.1.jar")

    def test_extract_extension_catalog(self):
        document = platform_catalog("2.0.3.Final").data
        self.session.get.return_value = response(content=json.dumps(document).encode("utf-8"))

        catalog = self.extractor.extract_extension_catalog("io.quarkus.platform", "quarkus-bom-quarkus-platform-descriptor",
                                                           "2.0.3.Final", "2.0.3.Final")
        self.assertEqual(catalog.platform_key, "io.quarkus.platform")
        self.assertEqual(catalog.quarkus_core_version, "2.0.3.Final")
        self.session.get.assert_called_once_with(
            self.extractor.catalog_url("io.quarkus.platform", "quarkus-bom-quarkus-platform-descriptor",
                                       "2.0.3.Final", "2.0.3.Final"),
            timeout=5)

    def test_extract_extension(self):
        descriptor = "name: Foo\nartifact: io.quarkiverse.foo:quarkus-foo::jar:0.1.1\nmetadata:\n  keywords: [foo]\n"
        self.session.get.return_value = response(content=jar_with({EXTENSION_DESCRIPTOR: descriptor}))

        extension = self.extractor.extract_extension("io.quarkiverse.foo", "quarkus-foo", "0.1.1")
        self.assertEqual(extension.name, "Foo")
        self.assertEqual(extension.artifact, "io.quarkiverse.foo:quarkus-foo::jar:0.1.1")

    def test_jar_without_descriptor(self):
        self.session.get.return_value = response(content=jar_with({"META-INF/MANIFEST.MF": "Manifest-Version: 1.0\n"}))
        with self.assertRaises(RegistryExtractorError):
            self.extractor.extract_extension("io.quarkiverse.foo", "quarkus-foo", "0.1.1")

    def test_invalid_catalog_document(self):
        self.session.get.return_value = response(content=b"[1, 2]")
        with self.assertRaises(RegistryExtractorError):
            self.extractor.extract_extension_catalog("g", "a", "1.0")

    def test_not_found(self):
        self.session.get.return_value = response(status_code=404)
        with self.assertRaises(RegistryExtractorError):
            self.extractor.extract_extension_catalog("g", "a", "1.0")

    def test_connection_errors(self):
        for error in [requests.ConnectionError("refused"), requests.Timeout("slow")]:
            self.session.get.side_effect = error
            with self.assertRaises(RegistryExtractorError):
                self.extractor.extract_extension_catalog("g", "a", "1.0")


if __name__ == "__main__":
    unittest.main()

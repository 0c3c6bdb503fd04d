#!/usr/bin/env python3
import sys
import json
import shutil
import logging
import tempfile
import unittest
from pathlib import Path

# Add parent directory to path if needed for direct testing
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from quarkus_registry.registry_codec import ExtensionCatalog
from quarkus_registry.registry_merger import (
    CatalogMerger, MergeRequest, RegistryIngestionError, RegistryStateError, merge, release_from_catalog
)
from quarkus_registry.registry_model import PlatformCatalog, RetentionPolicy
from quarkus_registry.tests.fixtures import PLATFORM_KEY, platform_catalog

logger = logging.getLogger("quarkus.registry_tests")


def request_for(*catalogs: ExtensionCatalog, platform_key: str = PLATFORM_KEY) -> MergeRequest:
    request = MergeRequest()
    for catalog in catalogs:
        request.add_catalog(platform_key, catalog)
    return request


class ReleaseExtractionTests(unittest.TestCase):
    """Tests for reading platform-release data out of an extension catalog."""

    def test_release_fields(self):
        stream_id, item = release_from_catalog(platform_catalog("2.0.3.Final"))
        self.assertEqual(stream_id, "2.0")
        self.assertEqual(str(item.version), "2.0.3.Final")
        self.assertEqual(item.quarkus_core_version, "2.0.3.Final")
        self.assertEqual(item.member_boms, ["io.quarkus.platform:quarkus-bom::pom:2.0.3.Final"])

    def test_stream_derived_from_version_when_missing(self):
        catalog = platform_catalog("2.2.1.Final")
        del catalog.data["metadata"]["platform-release"]["stream"]
        stream_id, _ = release_from_catalog(catalog)
        self.assertEqual(stream_id, "2.2")

    def test_missing_fields_are_rejected(self):
        no_metadata = platform_catalog("2.0.3.Final")
        no_metadata.data["metadata"] = {}
        no_version = platform_catalog("2.0.3.Final")
        del no_version.data["metadata"]["platform-release"]["version"]
        no_members = platform_catalog("2.0.3.Final")
        no_members.data["metadata"]["platform-release"]["members"] = []
        no_core = platform_catalog("2.0.3.Final")
        del no_core.data["quarkus-core-version"]
        bad_member = platform_catalog("2.0.3.Final", members=["not-coordinates"])
        list_metadata = platform_catalog("2.0.3.Final")
        list_metadata.data["metadata"] = ["not", "a", "mapping"]
        numeric_core = platform_catalog("2.0.3.Final")
        numeric_core.data["quarkus-core-version"] = 2.1
        numeric_upstream = platform_catalog("2.0.3.Final")
        numeric_upstream.data["upstream-quarkus-core-version"] = 2.0

        for catalog in [no_metadata, no_version, no_members, no_core, bad_member,
                        list_metadata, numeric_core, numeric_upstream]:
            with self.assertRaises(RegistryIngestionError):
                release_from_catalog(catalog)


class CatalogMergerTests(unittest.TestCase):
    """Tests for folding new releases into an existing catalog."""

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.merger = CatalogMerger()

    def tearDown(self):
        shutil.rmtree(self.temp_dir)

    def test_merge_into_empty_catalog(self):
        result = self.merger.merge(PlatformCatalog(), request_for(platform_catalog("2.0.3.Final")))
        platform = result.catalog.platform(PLATFORM_KEY)
        self.assertIsNotNone(platform)
        self.assertEqual(str(platform.stream("2.0").recommended_release().version), "2.0.3.Final")
        self.assertEqual((result.added, result.replaced, result.rejected), (1, 0, []))

    def test_merge_leaves_previous_untouched(self):
        previous = self.merger.merge(PlatformCatalog(), request_for(platform_catalog("2.0.3.Final"))).catalog
        before = previous.to_dict()
        self.merger.merge(previous, request_for(platform_catalog("2.1.0.Final")))
        self.assertEqual(previous.to_dict(), before)

    def test_merge_is_idempotent(self):
        request = request_for(platform_catalog("2.0.3.Final"), platform_catalog("2.1.0.CR1"))
        once = self.merger.merge(PlatformCatalog(), request)
        twice = self.merger.merge(once.catalog, request)
        self.assertEqual(once.serialize(), twice.serialize())
        self.assertEqual((twice.added, twice.replaced), (0, 2))

    def test_newer_release_becomes_recommended(self):
        previous = self.merger.merge(PlatformCatalog(), request_for(
            platform_catalog("2.0.3.Final"), platform_catalog("2.1.0.CR1"))).catalog
        merged = self.merger.merge(previous, request_for(platform_catalog("2.1.0.Final"))).catalog

        platform = merged.platform(PLATFORM_KEY)
        self.assertEqual([s.id for s in platform.ordered_streams()], ["2.1", "2.0"])
        stream = platform.stream("2.1")
        self.assertEqual(str(stream.recommended_release().version), "2.1.0.Final")
        self.assertEqual([str(r.version) for r in stream.ordered_releases()], ["2.1.0.Final", "2.1.0.CR1"])

    def test_recommendation_across_streams(self):
        versions = ["2.1.0.CR1", "2.0.2.Final", "2.1.1.Final", "2.0.3.Final"]
        merged = self.merger.merge(PlatformCatalog(), request_for(*map(platform_catalog, versions))).catalog

        platform = merged.platform(PLATFORM_KEY)
        self.assertEqual(str(platform.stream("2.1").recommended_release().version), "2.1.1.Final")
        self.assertEqual(str(platform.stream("2.0").recommended_release().version), "2.0.3.Final")
        self.assertEqual([s.id for s in platform.ordered_streams()], ["2.1", "2.0"])

    def test_latest_only_retention(self):
        merger = CatalogMerger(retention=RetentionPolicy.LATEST_ONLY)
        merged = merger.merge(PlatformCatalog(), request_for(
            platform_catalog("2.1.0.CR1"), platform_catalog("2.1.0.Final"))).catalog
        self.assertEqual([str(r.version) for r in merged.platform(PLATFORM_KEY).stream("2.1").releases],
                         ["2.1.0.Final"])

    def test_platform_name_is_preserved(self):
        named = self.merger.merge(PlatformCatalog(), request_for(
            platform_catalog("2.0.3.Final", name="Quarkus Platform"))).catalog
        merged = self.merger.merge(named, request_for(platform_catalog("2.1.0.Final"))).catalog
        self.assertEqual(merged.platform(PLATFORM_KEY).name, "Quarkus Platform")

    def test_lenient_merge_skips_invalid_input(self):
        broken = platform_catalog("2.1.0.Final")
        del broken.data["quarkus-core-version"]
        with self.assertLogs("quarkus.registry.merger", level="WARNING"):
            result = self.merger.merge(PlatformCatalog(), request_for(broken, platform_catalog("2.0.3.Final")))

        self.assertEqual(len(result.rejected), 1)
        self.assertEqual(result.rejected[0][0], broken.id)
        self.assertEqual(result.added, 1)
        self.assertIsNone(result.catalog.platform(PLATFORM_KEY).stream("2.1"))

    def test_strict_merge_raises(self):
        broken = platform_catalog("2.1.0.Final")
        del broken.data["metadata"]["platform-release"]["version"]
        with self.assertRaises(RegistryIngestionError):
            CatalogMerger(strict=True).merge(PlatformCatalog(), request_for(broken))

    def test_seed_platforms(self):
        merger = CatalogMerger(seed_platforms=["org.acme.platform"])
        result = merger.merge(PlatformCatalog(), request_for(platform_catalog("2.0.3.Final")))
        self.assertIsNotNone(result.catalog.platform("org.acme.platform"))
        self.assertEqual([p.platform_key for p in result.catalog.ordered_platforms()],
                         [PLATFORM_KEY, "org.acme.platform"])

    def test_module_level_merge(self):
        result = merge(PlatformCatalog(), request_for(platform_catalog("2.0.3.Final")),
                       retention=RetentionPolicy.LATEST_ONLY)
        self.assertEqual(result.added, 1)

    def test_load_missing_baseline(self):
        catalog = self.merger.load_baseline(Path(self.temp_dir) / "missing.json")
        self.assertEqual(catalog.platforms, {})

    def test_warm_start_from_file(self):
        catalog_path = Path(self.temp_dir) / "quarkus-platforms.json"
        first = self.merger.merge_file(catalog_path, request_for(platform_catalog("2.0.3.Final")))
        catalog_path.write_text(first.serialize(), encoding="utf-8")

        second = self.merger.merge_file(catalog_path, request_for(platform_catalog("2.1.0.Final")))
        platform = second.catalog.platform(PLATFORM_KEY)
        self.assertEqual(sorted(platform.streams), ["2.0", "2.1"])

    def test_corrupted_baseline(self):
        catalog_path = Path(self.temp_dir) / "quarkus-platforms.json"
        release = {"version": "2.0.3.Final", "quarkus-core-version": 123,
                   "member-boms": ["io.quarkus.platform:quarkus-bom::pom:2.0.3.Final"]}
        for content in ["{not json", json.dumps(["a", "list"]),
                        json.dumps({"platforms": [{"platform-key": "p", "streams": [{"id": "1.0"}]}]}),
                        json.dumps({"platforms": [{"platform-key": "p",
                                                   "streams": [{"id": "2.0", "releases": [release]}]}]})]:
            catalog_path.write_text(content, encoding="utf-8")
            with self.assertRaises(RegistryStateError, msg=content):
                self.merger.load_baseline(catalog_path)

    def test_baseline_with_invalid_utf8(self):
        catalog_path = Path(self.temp_dir) / "quarkus-platforms.json"
        catalog_path.write_bytes(b'{"platforms": [\xff\xfe]}')
        with self.assertRaises(RegistryStateError):
            self.merger.load_baseline(catalog_path)


if __name__ == "__main__":
    unittest.main()

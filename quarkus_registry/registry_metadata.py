#!/usr/bin/env python3
"""
Maven repository index documents: ``maven-metadata.xml`` for snapshot
artifacts, the Nexus ``repository-metadata.xml`` descriptor, and SHA1
checksums for everything written.
"""
import hashlib
import datetime
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from typing import List, Optional, Union

XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>\n'
SNAPSHOT_SUFFIX = "SNAPSHOT"


def sha1(content: Union[str, bytes]) -> str:
    """Lowercase hex SHA1 of the content (UTF-8 encoded when text)."""
    if isinstance(content, str):
        content = content.encode("utf-8")
    return hashlib.sha1(content).hexdigest()


def _to_xml(root: ET.Element) -> str:
    ET.indent(root, space="  ")
    return XML_DECLARATION + ET.tostring(root, encoding="unicode") + "\n"


@dataclass
class SnapshotMetadata:
    """
    Snapshot ``maven-metadata.xml`` for one artifact.

    Every document gets a ``pom`` and an unclassified ``json`` entry, plus one
    ``json`` entry per classifier.
    """
    group_id: str
    artifact_id: str
    timestamp: datetime.datetime
    version: str = "1.0-SNAPSHOT"
    build_number: int = 1
    classifiers: List[str] = field(default_factory=list)

    @property
    def last_updated(self) -> str:
        return self.timestamp.strftime("%Y%m%d%H%M%S")

    @property
    def snapshot_timestamp(self) -> str:
        return self.timestamp.strftime("%Y%m%d.%H%M%S")

    @property
    def snapshot_version(self) -> str:
        """Timestamped version, e.g. ``1.0-20210803.135923-1``."""
        base = self.version[:-len(SNAPSHOT_SUFFIX)] if self.version.endswith(SNAPSHOT_SUFFIX) else self.version + "-"
        return f"{base}{self.snapshot_timestamp}-{self.build_number}"

    def file_name(self, classifier: Optional[str] = None, extension: str = "json",
                  timestamped: bool = False) -> str:
        version = self.snapshot_version if timestamped else self.version
        suffix = f"-{classifier}" if classifier else ""
        return f"{self.artifact_id}-{version}{suffix}.{extension}"

    def to_xml(self) -> str:
        root = ET.Element("metadata")
        ET.SubElement(root, "groupId").text = self.group_id
        ET.SubElement(root, "artifactId").text = self.artifact_id
        ET.SubElement(root, "version").text = self.version
        versioning = ET.SubElement(root, "versioning")
        snapshot = ET.SubElement(versioning, "snapshot")
        ET.SubElement(snapshot, "timestamp").text = self.snapshot_timestamp
        ET.SubElement(snapshot, "buildNumber").text = str(self.build_number)
        ET.SubElement(versioning, "lastUpdated").text = self.last_updated

        snapshot_versions = ET.SubElement(versioning, "snapshotVersions")
        entries = [("pom", None), ("json", None)] + [("json", c) for c in self.classifiers]
        for extension, classifier in entries:
            entry = ET.SubElement(snapshot_versions, "snapshotVersion")
            if classifier:
                ET.SubElement(entry, "classifier").text = classifier
            ET.SubElement(entry, "extension").text = extension
            ET.SubElement(entry, "value").text = self.snapshot_version
            ET.SubElement(entry, "updated").text = self.last_updated
        return _to_xml(root)


def repository_metadata(registry_id: str, registry_url: str) -> str:
    """Nexus-style ``repository-metadata.xml`` describing a maven2 snapshot repository."""
    root = ET.Element("repository-metadata")
    ET.SubElement(root, "version").text = "1.0.0"
    ET.SubElement(root, "id").text = registry_id
    ET.SubElement(root, "url").text = registry_url
    ET.SubElement(root, "layout").text = "maven2"
    ET.SubElement(root, "policy").text = "snapshot"
    return _to_xml(root)


def repository_prefixes(group_id: str) -> str:
    return "## repository-prefixes/2.0\n/" + group_id.replace(".", "/") + "\n"


def snapshot_versions(metadata_xml: str) -> List[str]:
    """Snapshot version values listed in a ``maven-metadata.xml`` document."""
    root = ET.fromstring(metadata_xml)
    return [
        item.text.strip()
        for item in root.findall("versioning/snapshotVersions/snapshotVersion/value")
        if item.text
    ]

"""Shared test data builders."""
import datetime
from typing import List, Optional

from quarkus_registry.registry_codec import Extension, ExtensionCatalog

PLATFORM_KEY = "io.quarkus.platform"
FIXED_NOW = datetime.datetime(2021, 8, 3, 13, 59, 23, tzinfo=datetime.timezone.utc)
SNAPSHOT_VERSION = "1.0-20210803.135923-1"


def platform_catalog(version: str, stream: Optional[str] = None, quarkus_version: Optional[str] = None,
                     platform_key: str = PLATFORM_KEY, members: Optional[List[str]] = None,
                     name: Optional[str] = None) -> ExtensionCatalog:
    """A platform release descriptor as published by the platform build."""
    data = {
        "id": f"io.quarkus.platform:quarkus-bom-quarkus-platform-descriptor:{version}:json:{version}",
        "bom": f"io.quarkus.platform:quarkus-bom::pom:{version}",
        "quarkus-core-version": quarkus_version or version,
        "metadata": {
            "platform-release": {
                "platform-key": platform_key,
                "stream": stream or ".".join(version.split(".")[:2]),
                "version": version,
                "members": members or [f"io.quarkus.platform:quarkus-bom::pom:{version}"],
            }
        },
        "extensions": [],
    }
    if name:
        data["name"] = name
    return ExtensionCatalog(data)


def extension(artifact_id: str, version: str = "0.1.1") -> Extension:
    return Extension({
        "artifact": f"io.quarkiverse.{artifact_id}:quarkus-{artifact_id}::jar:{version}",
        "name": artifact_id.capitalize(),
        "metadata": {"keywords": [artifact_id]},
    })

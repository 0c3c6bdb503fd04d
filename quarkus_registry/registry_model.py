#!/usr/bin/env python3
"""
In-memory model of the platform catalog: platforms, their streams and the
releases within each stream.
"""
import logging
from enum import Enum
from dataclasses import dataclass, field
from typing import Dict, Any, List, Optional, Iterator

from .registry_version import VersionKey, parse_version, to_sortable

logger = logging.getLogger("quarkus.registry.model")


class RegistryModelError(Exception):
    """Exception for invalid platform catalog data or model usage."""
    pass


class RetentionPolicy(Enum):
    """How many releases a stream keeps after a merge."""
    KEEP_ALL = "keep-all"
    LATEST_ONLY = "latest-only"


@dataclass(frozen=True)
class ArtifactCoords:
    """Maven artifact coordinates in ``groupId:artifactId:classifier:type:version`` form."""
    group_id: str
    artifact_id: str
    classifier: str = ""
    type: str = "jar"
    version: str = ""

    @classmethod
    def from_string(cls, coords: str) -> "ArtifactCoords":
        """
        Parse coordinates.

        Accepts ``g:a:v``, ``g:a:c:v`` and ``g:a:c:t:v``.

        Raises:
            RegistryModelError: If the string has fewer than three or more than five parts
        """
        parts = coords.strip().split(":")
        if len(parts) == 3:
            return cls(parts[0], parts[1], version=parts[2])
        if len(parts) == 4:
            return cls(parts[0], parts[1], classifier=parts[2], version=parts[3])
        if len(parts) == 5:
            return cls(parts[0], parts[1], parts[2], parts[3] or "jar", parts[4])
        raise RegistryModelError(f"Invalid artifact coordinates: {coords}")

    @classmethod
    def pom(cls, group_id: str, artifact_id: str, version: str) -> "ArtifactCoords":
        return cls(group_id, artifact_id, "", "pom", version)

    def __str__(self) -> str:
        return f"{self.group_id}:{self.artifact_id}:{self.classifier}:{self.type}:{self.version}"


@dataclass
class PlatformRelease:
    """A released version of a platform within one stream."""
    version: VersionKey
    quarkus_core_version: str
    member_boms: List[str]
    upstream_quarkus_core_version: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "version": str(self.version),
            "quarkus-core-version": self.quarkus_core_version,
        }
        if self.upstream_quarkus_core_version:
            data["upstream-quarkus-core-version"] = self.upstream_quarkus_core_version
        data["member-boms"] = list(self.member_boms)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PlatformRelease":
        for key in ("version", "quarkus-core-version", "upstream-quarkus-core-version"):
            value = data.get(key) if isinstance(data, dict) else None
            if value is not None and not isinstance(value, str):
                raise RegistryModelError(f"Platform release '{key}' must be a string, got {value!r}")
        try:
            return cls(
                version=parse_version(data["version"]),
                quarkus_core_version=data["quarkus-core-version"],
                member_boms=[str(ArtifactCoords.from_string(m)) for m in data["member-boms"]],
                upstream_quarkus_core_version=data.get("upstream-quarkus-core-version"),
            )
        except (KeyError, TypeError, AttributeError) as e:
            raise RegistryModelError(f"Invalid platform release: {e!r}") from e


@dataclass
class PlatformStream:
    """A minor-version line of a platform and its releases."""
    id: str
    releases: List[PlatformRelease] = field(default_factory=list)

    def add_or_replace_release(self, release: PlatformRelease) -> bool:
        """
        Insert a release, replacing any release with an equal version.

        Args:
            release: Release to add

        Returns:
            bool: True if an existing release was replaced
        """
        new_version = release.version.comparable
        for i, existing in enumerate(self.releases):
            if existing.version.comparable == new_version:
                self.releases[i] = release
                return True
        self.releases.append(release)
        return False

    def recommended_release(self) -> PlatformRelease:
        if not self.releases:
            raise RegistryModelError(f"Stream {self.id} has no releases")
        return max(self.releases, key=lambda r: r.version.comparable)

    def ordered_releases(self) -> Iterator[PlatformRelease]:
        """Releases newest first. Call again to restart."""
        yield from sorted(self.releases, key=lambda r: r.version.comparable, reverse=True)

    def apply_retention(self, policy: RetentionPolicy) -> None:
        if policy is RetentionPolicy.LATEST_ONLY and len(self.releases) > 1:
            latest = self.recommended_release()
            logger.debug(f"Collapsing stream {self.id} to {latest.version}")
            self.releases = [latest]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "releases": [r.to_dict() for r in self.ordered_releases()],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PlatformStream":
        try:
            stream = cls(id=str(data["id"]))
            releases = data["releases"]
        except (KeyError, TypeError) as e:
            raise RegistryModelError(f"Invalid platform stream: {e!r}") from e
        if not isinstance(releases, list) or not releases:
            raise RegistryModelError(f"Stream {stream.id} has no releases")
        for release in releases:
            stream.add_or_replace_release(PlatformRelease.from_dict(release))
        return stream


@dataclass
class Platform:
    """A keyed collection of release streams."""
    platform_key: str
    name: Optional[str] = None
    streams: Dict[str, PlatformStream] = field(default_factory=dict)

    def stream(self, stream_id: str) -> Optional[PlatformStream]:
        return self.streams.get(stream_id)

    def get_or_create_stream(self, stream_id: str) -> PlatformStream:
        if stream_id not in self.streams:
            logger.debug(f"Creating stream {stream_id} for platform {self.platform_key}")
            self.streams[stream_id] = PlatformStream(stream_id)
        return self.streams[stream_id]

    def update_name(self, name: Optional[str]) -> None:
        # A blank name never replaces a known one
        if name and name.strip():
            self.name = name.strip()

    def ordered_streams(self) -> List[PlatformStream]:
        """Streams by recommended release, newest first; stream id breaks ties."""
        by_id = sorted(self.streams.values(), key=lambda s: to_sortable(s.id), reverse=True)
        return sorted(by_id, key=lambda s: s.recommended_release().version.comparable, reverse=True)

    def recommended_release(self) -> Optional[PlatformRelease]:
        streams = self.ordered_streams()
        return streams[0].recommended_release() if streams else None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"platform-key": self.platform_key}
        if self.name:
            data["name"] = self.name
        data["streams"] = [s.to_dict() for s in self.ordered_streams()]
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Platform":
        try:
            platform = cls(platform_key=str(data["platform-key"]), name=data.get("name"))
            streams = data.get("streams", [])
        except (KeyError, TypeError, AttributeError) as e:
            raise RegistryModelError(f"Invalid platform: {e!r}") from e
        if not isinstance(streams, list):
            raise RegistryModelError(f"Platform {platform.platform_key} streams must be a list")
        for stream_data in streams:
            stream = PlatformStream.from_dict(stream_data)
            if stream.id in platform.streams:
                raise RegistryModelError(f"Duplicate stream {stream.id} in platform {platform.platform_key}")
            platform.streams[stream.id] = stream
        return platform


@dataclass
class PlatformCatalog:
    """Top-level catalog of platforms, keyed by platform key."""
    platforms: Dict[str, Platform] = field(default_factory=dict)

    def platform(self, platform_key: str) -> Optional[Platform]:
        return self.platforms.get(platform_key)

    def get_or_create_platform(self, platform_key: str, name: Optional[str] = None) -> Platform:
        if not platform_key:
            raise RegistryModelError("Platform key is required")
        platform = self.platforms.get(platform_key)
        if platform is None:
            logger.info(f"Adding platform {platform_key} to catalog")
            platform = Platform(platform_key)
            self.platforms[platform_key] = platform
        platform.update_name(name)
        return platform

    def ordered_platforms(self) -> List[Platform]:
        """Platforms by recommended release, newest first; platforms without releases last."""
        released = [p for p in self.platforms.values() if p.streams]
        empty = [p for p in self.platforms.values() if not p.streams]
        released = sorted(released, key=lambda p: p.recommended_release().version.comparable, reverse=True)
        return released + empty

    def recommended_platform(self) -> Optional[Platform]:
        platforms = self.ordered_platforms()
        return platforms[0] if platforms else None

    def releases(self) -> Iterator[PlatformRelease]:
        for platform in self.platforms.values():
            for stream in platform.streams.values():
                yield from stream.releases

    def quarkus_versions(self) -> List[str]:
        """Distinct Quarkus core versions of all releases, newest first."""
        versions: List[str] = []
        for release in self.releases():
            if release.quarkus_core_version and release.quarkus_core_version not in versions:
                versions.append(release.quarkus_core_version)
        return sorted(versions, key=lambda v: parse_version(v).comparable, reverse=True)

    def to_dict(self) -> Dict[str, Any]:
        return {"platforms": [p.to_dict() for p in self.ordered_platforms()]}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PlatformCatalog":
        if not isinstance(data, dict) or not isinstance(data.get("platforms", []), list):
            raise RegistryModelError("Platform catalog must be an object with a 'platforms' list")
        catalog = cls()
        for platform_data in data.get("platforms", []):
            platform = Platform.from_dict(platform_data)
            if platform.platform_key in catalog.platforms:
                raise RegistryModelError(f"Duplicate platform {platform.platform_key}")
            catalog.platforms[platform.platform_key] = platform
        return catalog

#!/usr/bin/env python3
import json
import logging
from pathlib import Path
from dataclasses import dataclass, field, fields, replace
from typing import Dict, Any, List, Optional

import yaml

from .registry_model import RetentionPolicy

DEFAULT_REGISTRY_GROUP_ID = "io.quarkus.registry"
DEFAULT_REGISTRY_ID = "registry.quarkus.io"
DEFAULT_REGISTRY_MAVEN_REPO_URL = "https://registry.quarkus.io/maven"
DEFAULT_REGISTRY_ARTIFACT_VERSION = "1.0-SNAPSHOT"
DEFAULT_REGISTRY_DESCRIPTOR_ARTIFACT_ID = "quarkus-registry-descriptor"
DEFAULT_REGISTRY_PLATFORMS_CATALOG_ARTIFACT_ID = "quarkus-platforms"
DEFAULT_REGISTRY_NON_PLATFORM_EXTENSIONS_CATALOG_ARTIFACT_ID = "quarkus-non-platform-extensions"
DEFAULT_PLATFORM_KEY = "io.quarkus.platform"

logger = logging.getLogger("quarkus.registry.config")


class RegistryConfigError(Exception):
    """Exception for unreadable or invalid configuration files."""
    pass


@dataclass(frozen=True)
class RegistryConfig:
    """Settings of one registry generation run."""
    group_id: str = DEFAULT_REGISTRY_GROUP_ID
    registry_id: str = DEFAULT_REGISTRY_ID
    registry_url: str = DEFAULT_REGISTRY_MAVEN_REPO_URL
    supports_non_platforms: bool = True
    quarkus_version_expression: Optional[str] = None
    quarkus_versions_exclusive_provider: bool = False
    retention: RetentionPolicy = RetentionPolicy.KEEP_ALL
    strict: bool = False
    snapshots: bool = True
    seed_platforms: List[str] = field(default_factory=list)

    @property
    def group_path(self) -> str:
        return self.group_id.replace(".", "/")

    def with_overrides(self, **overrides: Any) -> "RegistryConfig":
        """Copy with every non-None override applied."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RegistryConfig":
        """
        Build a config from a mapping with kebab-case (or snake_case) keys.

        Raises:
            RegistryConfigError: On unknown keys or an unknown retention policy
        """
        known = {f.name for f in fields(cls)}
        values: Dict[str, Any] = {}
        for key, value in data.items():
            name = str(key).replace("-", "_")
            if name not in known:
                raise RegistryConfigError(f"Unknown configuration key: {key}")
            values[name] = value

        if "retention" in values:
            try:
                values["retention"] = RetentionPolicy(values["retention"])
            except ValueError as e:
                raise RegistryConfigError(f"Unknown retention policy: {values['retention']}") from e
        if "seed_platforms" in values:
            values["seed_platforms"] = list(values["seed_platforms"] or [])
        return cls(**values)


def load_config(config_path: Path) -> RegistryConfig:
    """
    Load a configuration file, YAML or JSON by extension.

    Args:
        config_path: Path to the configuration file

    Returns:
        RegistryConfig: Loaded configuration

    Raises:
        RegistryConfigError: If the file cannot be read or is not a mapping
    """
    config_path = Path(config_path)
    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            if config_path.suffix.lower() == ".json":
                data = json.load(f)
            else:
                data = yaml.safe_load(f)
    except (OSError, json.JSONDecodeError, yaml.YAMLError) as e:
        msg = f"Failed to load config {config_path}: {e}"
        logger.error(msg)
        raise RegistryConfigError(msg) from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise RegistryConfigError(f"Config {config_path} must be a mapping")
    logger.debug(f"Loaded configuration from {config_path}")
    return RegistryConfig.from_dict(data)

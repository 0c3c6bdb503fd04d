#!/usr/bin/env python3
"""
JSON/YAML reading and writing of registry documents.

Extension catalogs and extensions are kept as the plain documents they were
read from; the wrappers below only expose the fields the generator needs.
"""
import json
import logging
from pathlib import Path
from typing import Dict, Any, Optional, Union

import yaml

logger = logging.getLogger("quarkus.registry.codec")

YAML_SUFFIXES = (".yaml", ".yml")


class RegistryCodecError(Exception):
    """Exception for documents that cannot be read or decoded."""
    pass


class ExtensionCatalog:
    """An extension catalog document, usually a platform release descriptor."""

    def __init__(self, data: Dict[str, Any]):
        if not isinstance(data, dict):
            raise RegistryCodecError("Extension catalog must be a mapping")
        self.data = data

    @property
    def id(self) -> Optional[str]:
        return self.data.get("id")

    @property
    def name(self) -> Optional[str]:
        return self.data.get("name")

    @property
    def quarkus_core_version(self) -> Optional[str]:
        return self.data.get("quarkus-core-version")

    @property
    def upstream_quarkus_core_version(self) -> Optional[str]:
        return self.data.get("upstream-quarkus-core-version")

    @property
    def metadata(self) -> Dict[str, Any]:
        metadata = self.data.get("metadata")
        return metadata if isinstance(metadata, dict) else {}

    @property
    def platform_release(self) -> Optional[Dict[str, Any]]:
        release = self.metadata.get("platform-release")
        return release if isinstance(release, dict) else None

    @property
    def platform_key(self) -> Optional[str]:
        release = self.platform_release
        return release.get("platform-key") if release else None

    def __repr__(self):
        return f"ExtensionCatalog({self.id or self.platform_key!r})"


class Extension:
    """A single extension descriptor (``quarkus-extension.yaml`` or its JSON form)."""

    def __init__(self, data: Dict[str, Any]):
        if not isinstance(data, dict):
            raise RegistryCodecError("Extension must be a mapping")
        self.data = data

    @property
    def artifact(self) -> Optional[str]:
        return self.data.get("artifact")

    @property
    def name(self) -> Optional[str]:
        return self.data.get("name")

    def to_dict(self) -> Dict[str, Any]:
        return dict(self.data)

    def __repr__(self):
        return f"Extension({self.artifact!r})"


def loads_document(text: Union[str, bytes], yaml_format: bool = False) -> Dict[str, Any]:
    """
    Decode a JSON (or YAML) document.

    Args:
        text: Document content
        yaml_format: Decode as YAML instead of JSON

    Returns:
        dict: Decoded document

    Raises:
        RegistryCodecError: If the content is not a valid mapping
    """
    try:
        data = yaml.safe_load(text) if yaml_format else json.loads(text)
    except (json.JSONDecodeError, yaml.YAMLError, UnicodeDecodeError) as e:
        raise RegistryCodecError(f"Failed to decode document: {e}") from e
    if not isinstance(data, dict):
        raise RegistryCodecError(f"Expected a mapping, got {type(data).__name__}")
    return data


def load_document(path: Path) -> Dict[str, Any]:
    """Read a JSON or YAML (by suffix) document from a file."""
    path = Path(path)
    try:
        with open(path, 'r', encoding='utf-8') as f:
            content = f.read()
    except (OSError, UnicodeDecodeError) as e:
        msg = f"Failed to read {path}: {e}"
        logger.error(msg)
        raise RegistryCodecError(msg) from e
    try:
        return loads_document(content, yaml_format=path.suffix.lower() in YAML_SUFFIXES)
    except RegistryCodecError as e:
        raise RegistryCodecError(f"{path}: {e}") from e


def load_extension_catalog(path: Path) -> ExtensionCatalog:
    return ExtensionCatalog(load_document(path))


def load_extension(path: Path) -> Extension:
    return Extension(load_document(path))


def dumps_document(document: Dict[str, Any]) -> str:
    """Encode a document as indented JSON. Same input, same bytes."""
    return json.dumps(document, indent=2, ensure_ascii=False, default=str) + "\n"

"""
Quarkus static registry generator

This package builds a static, file-based extension registry: versioned JSON
catalogs plus Maven repository metadata, merged incrementally with the output
of previous runs.
"""

__version__ = "0.1.0"

# Import main components
from .registry_version import ComparableVersion, VersionKey, parse_version, to_sortable, compare_recency
from .registry_model import (
    ArtifactCoords, Platform, PlatformCatalog, PlatformRelease, PlatformStream,
    RetentionPolicy, RegistryModelError,
)
from .registry_codec import Extension, ExtensionCatalog, RegistryCodecError
from .registry_config import RegistryConfig, RegistryConfigError, load_config
from .registry_merger import (
    CatalogMerger, MergeRequest, MergeResult, RegistryIngestionError, RegistryStateError, merge,
)
from .registry_generator import RegistryGenerator, RegistryGeneratorError
from .registry_extractor import MetadataExtractor, RegistryExtractorError
from .registry_cli import main

__all__ = [
    'ComparableVersion', 'VersionKey', 'parse_version', 'to_sortable', 'compare_recency',
    'ArtifactCoords', 'Platform', 'PlatformCatalog', 'PlatformRelease', 'PlatformStream',
    'RetentionPolicy', 'RegistryModelError',
    'Extension', 'ExtensionCatalog', 'RegistryCodecError',
    'RegistryConfig', 'RegistryConfigError', 'load_config',
    'CatalogMerger', 'MergeRequest', 'MergeResult', 'RegistryIngestionError', 'RegistryStateError', 'merge',
    'RegistryGenerator', 'RegistryGeneratorError',
    'MetadataExtractor', 'RegistryExtractorError',
    'main',
]

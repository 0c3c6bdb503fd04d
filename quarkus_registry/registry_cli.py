import sys
import argparse
import logging
from pathlib import Path

from .registry_codec import RegistryCodecError, load_extension, load_extension_catalog
from .registry_config import RegistryConfig, RegistryConfigError, load_config
from .registry_extractor import MAVEN_CENTRAL, MetadataExtractor, RegistryExtractorError, parse_gav
from .registry_generator import RegistryGenerator, RegistryGeneratorError
from .registry_merger import CatalogMerger, RegistryIngestionError, RegistryStateError
from .registry_model import RetentionPolicy

HANDLED_ERRORS = (
    RegistryCodecError,
    RegistryConfigError,
    RegistryExtractorError,
    RegistryGeneratorError,
    RegistryIngestionError,
    RegistryStateError,
)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Quarkus Static Registry Generator')
    subparsers = parser.add_subparsers(dest='command', help='Commands')

    # Generate command
    gen_parser = subparsers.add_parser('generate', help='Merge new releases and write the registry tree')
    gen_parser.add_argument('--output', required=True, help='Registry output directory')
    gen_parser.add_argument('--catalog', action='append', default=[],
                            help='Platform release extension catalog file (JSON or YAML)')
    gen_parser.add_argument('--extension', action='append', default=[],
                            help='Non-platform extension descriptor file (JSON or YAML)')
    gen_parser.add_argument('--catalog-gav', action='append', default=[],
                            help='Platform descriptor to download, groupId:artifactId:version[:classifier]')
    gen_parser.add_argument('--extension-gav', action='append', default=[],
                            help='Extension jar to download, groupId:artifactId:version')
    gen_parser.add_argument('--maven-repository', default=MAVEN_CENTRAL,
                            help='Maven repository used for --catalog-gav and --extension-gav')
    gen_parser.add_argument('--platform-key', help='Platform key for all catalogs (default: from catalog metadata)')
    gen_parser.add_argument('--config', help='Configuration file (YAML or JSON)')
    gen_parser.add_argument('--group-id', help='Group ID of the generated artifacts')
    gen_parser.add_argument('--registry-id', help='Registry ID')
    gen_parser.add_argument('--registry-url', help='Registry Maven repository URL')
    gen_parser.add_argument('--no-non-platforms', dest='supports_non_platforms', action='store_false',
                            default=None, help='Do not advertise or generate non-platform extensions')
    gen_parser.add_argument('--quarkus-version-expression', help='Recognized Quarkus versions expression')
    gen_parser.add_argument('--quarkus-versions-exclusive-provider', action='store_true', default=None,
                            help='This registry is the exclusive provider of the recognized versions')
    gen_parser.add_argument('--retention', choices=[p.value for p in RetentionPolicy],
                            help='Releases kept per stream')
    gen_parser.add_argument('--strict', action='store_true', default=None,
                            help='Fail the whole run on the first invalid catalog')
    gen_parser.add_argument('--no-snapshots', dest='snapshots', action='store_false', default=None,
                            help='Do not write timestamped snapshot files')

    # List platforms command
    list_parser = subparsers.add_parser('list-platforms', help='List platforms of a generated registry')
    list_parser.add_argument('--output', required=True, help='Registry output directory')
    list_parser.add_argument('--group-id', help='Group ID of the generated artifacts')

    # Common args
    parser.add_argument('--log-level',
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                        default='INFO',
                        help='Set the logging level')
    return parser


def resolve_config(args) -> RegistryConfig:
    config = load_config(Path(args.config)) if getattr(args, 'config', None) else RegistryConfig()
    retention = getattr(args, 'retention', None)
    return config.with_overrides(
        group_id=args.group_id,
        registry_id=getattr(args, 'registry_id', None),
        registry_url=getattr(args, 'registry_url', None),
        supports_non_platforms=getattr(args, 'supports_non_platforms', None),
        quarkus_version_expression=getattr(args, 'quarkus_version_expression', None),
        quarkus_versions_exclusive_provider=getattr(args, 'quarkus_versions_exclusive_provider', None),
        retention=RetentionPolicy(retention) if retention else None,
        strict=getattr(args, 'strict', None),
        snapshots=getattr(args, 'snapshots', None),
    )


def run_generate(args) -> int:
    config = resolve_config(args)
    generator = RegistryGenerator.from_config(Path(args.output), config)
    rejected = []

    def add_catalog(catalog, label):
        try:
            generator.add_catalog(catalog, args.platform_key)
        except RegistryIngestionError as e:
            if config.strict:
                raise
            logging.warning(f"Skipping {label}: {e}")
            rejected.append((label, str(e)))

    for catalog_file in args.catalog:
        add_catalog(load_extension_catalog(Path(catalog_file)), catalog_file)
    for extension_file in args.extension:
        generator.add_extension(load_extension(Path(extension_file)))

    if args.catalog_gav or args.extension_gav:
        extractor = MetadataExtractor(args.maven_repository)
        for gav in args.catalog_gav:
            add_catalog(extractor.extract_extension_catalog(*parse_gav(gav)), gav)
        for gav in args.extension_gav:
            group_id, artifact_id, version, _ = parse_gav(gav)
            generator.add_extension(extractor.extract_extension(group_id, artifact_id, version))

    output = generator.generate()
    if generator.result:
        rejected.extend(generator.result.rejected)
    for label, error in rejected:
        print(f"Rejected {label}: {error}")
    print(f"Registry generated in {output}")
    return 1 if rejected else 0


def run_list_platforms(args) -> int:
    config = resolve_config(args)
    generator = RegistryGenerator.from_config(Path(args.output), config)
    catalog_path = generator.platforms_catalog_path()
    if not catalog_path.exists():
        print(f"Platform catalog not found: {catalog_path}")
        return 1

    catalog = CatalogMerger().load_baseline(catalog_path)
    platforms = catalog.ordered_platforms()
    print(f"Platforms ({len(platforms)}):")
    for platform in platforms:
        print(f"  - {platform.platform_key}" + (f" ({platform.name})" if platform.name else ""))
        for stream in platform.ordered_streams():
            recommended = stream.recommended_release()
            print(f"    Stream {stream.id}: recommended {recommended.version} "
                  f"(Quarkus {recommended.quarkus_core_version})")
            print(f"      Releases: {', '.join(str(r.version) for r in stream.ordered_releases())}")
    return 0


def main(argv=None):
    """Main entry point for registry CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    # Configure logging
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    try:
        if args.command == 'generate':
            sys.exit(run_generate(args))
        elif args.command == 'list-platforms':
            sys.exit(run_list_platforms(args))
    except HANDLED_ERRORS as e:
        logging.error(f"Command failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()

"""
Main CLI entry point for IDE configuration conversion.

This module provides the command-line interface for converting IDE and AI
assistant configuration between platforms. It supports:
- Kiro, Claude Code and Cursor projects
- Auto-detection of the source platform
- Compatibility reports without writing anything
- Exporting the canonical context as JSON
- Merge policies for existing files (replace, merge, skip)
- Dry-run mode

Usage:
    python -m cli.main --source-dir ./my-kiro-project --target-dir ./out \
                       --source-format kiro --target-format claude-code
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional, Tuple

from builders import ClaudeCodeBuilder, CursorBuilder, KiroBuilder
from converters import ALL_CONVERTERS
from core.canonical_models import AIPlatform
from core.config import SyncConfig, load_config
from core.errors import TaptikError
from core.file_system import FileSystem
from core.file_writer import MergePolicy
from core.pipeline import ConversionPipeline, PipelineReport
from core.registry import BuilderRegistry, ConverterRegistry
from core.security_patterns import ContentLimits

# Mapping from CLI string to AIPlatform enum (single source of truth)
PLATFORM_MAP = {platform.value: platform for platform in AIPlatform}

MERGE_POLICY_MAP = {policy.value: policy for policy in MergePolicy}


def create_parser() -> argparse.ArgumentParser:
    """
    Create argument parser for CLI.

    Returns:
        Configured ArgumentParser instance
    """
    parser = argparse.ArgumentParser(
        description='Convert IDE and AI assistant configuration between platforms',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Convert a Kiro project into Claude Code files
  %(prog)s --source-dir ./app --target-dir ./app \\
           --source-format kiro --target-format claude-code

  # Show how much of a Cursor setup survives conversion to Kiro
  %(prog)s --source-dir ./app --target-format kiro --report

  # Export the canonical context without converting
  %(prog)s --source-dir ./app --export context.json
        """
    )

    parser.add_argument(
        '--source-dir',
        type=Path,
        help='Project directory containing the source configuration'
    )

    parser.add_argument(
        '--target-dir',
        type=Path,
        help='Directory to deploy converted files into'
    )

    parser.add_argument(
        '--source-format',
        type=str,
        choices=list(PLATFORM_MAP.keys()),
        help='Source platform (auto-detected if not specified)'
    )

    parser.add_argument(
        '--target-format',
        type=str,
        choices=list(PLATFORM_MAP.keys()),
        help='Target platform'
    )

    parser.add_argument(
        '--merge-policy',
        type=str,
        choices=list(MERGE_POLICY_MAP.keys()),
        help='How to treat existing files in the target directory (default: replace)'
    )

    parser.add_argument(
        '--report',
        action='store_true',
        help='Only print the compatibility report; write nothing'
    )

    parser.add_argument(
        '--export',
        type=Path,
        help='Write the canonical context as JSON to this file'
    )

    parser.add_argument(
        '--config',
        type=Path,
        help='YAML configuration file with content limits and defaults'
    )

    parser.add_argument(
        '--list-conversions',
        action='store_true',
        help='List supported platform conversions and exit'
    )

    parser.add_argument(
        '--dry-run',
        action='store_true',
        help='Show what would be done without making changes'
    )

    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Verbose output with detailed logging'
    )

    return parser


def setup_registries(file_system: FileSystem,
                     limits: Optional[ContentLimits] = None) -> Tuple[BuilderRegistry, ConverterRegistry]:
    """
    Initialize builder and converter registries with all available strategies.

    Returns:
        Sealed (BuilderRegistry, ConverterRegistry)
    """
    builders = BuilderRegistry()
    for builder_cls in (KiroBuilder, ClaudeCodeBuilder, CursorBuilder):
        builders.register(builder_cls(file_system, limits))

    converters = ConverterRegistry()
    for converter_cls in ALL_CONVERTERS:
        converters.register(converter_cls(builders.get_builder(converter_cls.target_platform)))

    builders.seal()
    converters.seal()
    return builders, converters


def print_error(error: TaptikError):
    print(f"Error [{error.code}]: {error.message}", file=sys.stderr)
    for issue in getattr(error, 'errors', [])[1:]:
        print(f"  - {issue}", file=sys.stderr)
    if error.suggestion:
        print(f"Suggestion: {error.suggestion}", file=sys.stderr)


def print_report(report: PipelineReport, verbose: bool = False):
    """Print compatibility, conversion and deployment results."""
    for compatibility, conversion in zip(report.compatibility, report.conversions):
        status = 'compatible' if compatibility.compatible else 'not compatible'
        print(f"Compatibility score: {compatibility.score} ({status})")
        if compatibility.supported_features:
            print(f"  Supported: {', '.join(compatibility.supported_features)}")
        for partial in compatibility.partial_support:
            print(f"  Partial ({partial.support_level}): {partial.feature} - {partial.notes}")
        if compatibility.unsupported_features:
            print(f"  Unsupported: {', '.join(compatibility.unsupported_features)}")
        if verbose:
            for warning in conversion.warnings:
                print(f"  Warning: {warning}")

    if report.validation and verbose:
        for warning in report.validation.warnings:
            print(f"Warning: {warning}")

    if report.deployment is not None:
        for path in report.deployment.deployed_files:
            print(f"Wrote {path}")
        for component in report.deployment.skipped_components:
            print(f"Skipped {component} (file exists)")


def export_context(report: PipelineReport, path: Path):
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(report.context.to_dict(), f, indent=2, ensure_ascii=False)
        f.write('\n')


def main(argv: Optional[List[str]] = None):
    """
    Main entry point for CLI.

    Args:
        argv: Command-line arguments (defaults to sys.argv)

    Returns:
        Exit code (0 for success, 1 for error)
    """
    if argv is None:
        argv = sys.argv[1:]

    parser = create_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(levelname)s %(name)s: %(message)s',
    )

    try:
        config = load_config(args.config.expanduser()) if args.config else SyncConfig()
    except (OSError, ValueError) as e:
        print(f"Error: Invalid configuration: {e}", file=sys.stderr)
        return 1

    file_system = FileSystem(home=config.home)
    builders, converters = setup_registries(file_system, config.limits)

    if args.list_conversions:
        for key in converters.list_conversions():
            print(str(key))
        return 0

    if not args.source_dir:
        print("Error: --source-dir is required", file=sys.stderr)
        return 1

    source_dir = args.source_dir.expanduser().resolve()
    if not source_dir.is_dir():
        print(f"Error: Source directory does not exist: {source_dir}", file=sys.stderr)
        return 1

    target_dir = None
    if args.target_dir and not args.report:
        if not args.target_format:
            print("Error: --target-format is required with --target-dir", file=sys.stderr)
            return 1
        target_dir = args.target_dir.expanduser().resolve()
        if target_dir.exists() and not target_dir.is_dir():
            print(f"Error: Target path exists but is not a directory: {target_dir}", file=sys.stderr)
            return 1

    merge_policy = MERGE_POLICY_MAP[args.merge_policy] if args.merge_policy else config.merge_policy

    try:
        pipeline = ConversionPipeline(builders, converters)
        report = pipeline.run(
            source_dir,
            source=PLATFORM_MAP[args.source_format] if args.source_format else None,
            target=PLATFORM_MAP[args.target_format] if args.target_format else None,
            target_path=target_dir,
            merge_policy=merge_policy,
            dry_run=args.dry_run,
        )

        print_report(report, verbose=args.verbose)
        if not report.succeeded:
            print_error(report.error)
            return 1

        if args.export and not args.dry_run:
            export_context(report, args.export.expanduser())
            print(f"Exported context to {args.export}")
        elif args.dry_run and target_dir is not None:
            print(f"Would deploy {report.target.display_name} files to {target_dir}")

        return 0

    except KeyboardInterrupt:
        print("\nConversion cancelled by user", file=sys.stderr)
        return 1
    except TaptikError as e:
        print_error(e)
        return 1
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        if args.verbose:
            import traceback
            traceback.print_exc(file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main())

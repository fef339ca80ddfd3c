"""
Command-line interface for exporting tool libraries.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from ..calculator.output import to_report_json, to_summary
from ..errors import ExportError, InputError, LibraryNotFound, LibraryValidationError
from ..export import JsonLibraryRepository, export_library
from ..io.fusion360 import compile_library
from ..io.loaders import load_aggregate_json
from ..io.package import package_library, save_package, to_tools_json


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="toolcrib-export",
        description="Export a tool library as a Fusion 360 .tools file",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Compile a library aggregate file into ./out/Shop-A.tools
  toolcrib-export shop-a.json -o out

  # Check a library without writing anything
  toolcrib-export shop-a.json --check

  # Also write the raw tools.json next to the archive
  toolcrib-export shop-a.json -o out --json

  # Export from a directory of <id>.json files and record the export
  toolcrib-export --library-dir libraries --library-id shop-a -o out
        """,
    )
    parser.add_argument(
        'library_file',
        nargs='?',
        type=str,
        help='Library aggregate JSON (library, tools, holders, machine, materials, presets)',
    )
    parser.add_argument(
        '--library-dir',
        type=str,
        default=None,
        help='Directory of <library id>.json aggregates; export count is updated there',
    )
    parser.add_argument(
        '--library-id',
        type=str,
        default=None,
        help='Library id to export from --library-dir',
    )
    parser.add_argument(
        '-o', '--output-dir',
        type=str,
        default='.',
        help='Directory for the .tools file (default: current directory)',
    )
    parser.add_argument(
        '--check',
        action='store_true',
        help='Validate and print the summary without writing files or recording an export',
    )
    parser.add_argument(
        '--json',
        action='store_true',
        help='Also write the uncompressed tools.json',
    )
    parser.add_argument(
        '--report',
        type=str,
        default=None,
        help='Write a JSON report of all validation messages to this path',
    )
    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Enable debug logging',
    )
    return parser


def _compile(aggregate):
    library = aggregate.library
    return compile_library(
        library.name,
        aggregate.entries(),
        aggregate.machine,
        materials=aggregate.materials,
        presets=aggregate.presets,
        product_id_source=library.product_id_source,
        material_ids=library.default_material_ids,
    )


def _write_report(path, library_name, messages, document=None) -> None:
    Path(path).write_text(to_report_json(library_name, messages, document), encoding="utf-8")


def _check_from_directory(args, repository) -> int:
    """Compile a stored library without packaging or bookkeeping."""
    try:
        aggregate = repository.fetch_aggregate(args.library_id)
    except LibraryNotFound as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except (InputError, OSError, ValueError) as e:
        print(f"Error loading library: {e}", file=sys.stderr)
        return 1

    name = aggregate.library.name
    result = _compile(aggregate)
    print(to_summary(name, result.document, result.messages))
    if args.report:
        _write_report(args.report, name, result.messages, result.document)
    if not result.valid:
        print(f"\n{len(result.errors)} error(s)", file=sys.stderr)
        return 2
    return 0


def _export_from_directory(args) -> int:
    repository = JsonLibraryRepository(args.library_dir)
    if args.check:
        return _check_from_directory(args, repository)

    try:
        result = export_library(args.library_id, repository)
    except LibraryNotFound as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except LibraryValidationError as e:
        if args.report:
            _write_report(args.report, args.library_id, e.messages)
        print("Library validation failed:", file=sys.stderr)
        for message in e.errors:
            print(f"  ✗ {message}", file=sys.stderr)
        return 2
    except ExportError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    name = result.library_name
    messages = result.warnings + result.infos
    print(to_summary(name, result.document, messages))
    if args.report:
        _write_report(args.report, name, messages, result.document)

    output_dir = Path(args.output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    path = output_dir / result.filename
    path.write_bytes(result.content)
    print(f"\nSaved {path} ({len(result.content) / 1024:.1f} KB), export #{result.export_count}")
    if args.json:
        json_path = output_dir / (Path(result.filename).stem + ".json")
        json_path.write_text(to_tools_json(result.document), encoding="utf-8")
        print(f"Saved {json_path}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    if args.library_dir or args.library_id:
        if not (args.library_dir and args.library_id):
            parser.error("--library-dir and --library-id must be used together")
        if args.library_file:
            parser.error("give either a library file or --library-dir/--library-id, not both")
        return _export_from_directory(args)

    if not args.library_file:
        parser.error("a library file or --library-dir/--library-id is required")

    try:
        aggregate = load_aggregate_json(args.library_file)
    except (OSError, ValueError) as e:
        print(f"Error loading library: {e}", file=sys.stderr)
        return 1

    library = aggregate.library
    result = _compile(aggregate)

    print(to_summary(library.name, result.document, result.messages))

    if args.report:
        _write_report(args.report, library.name, result.messages, result.document)

    if not result.valid:
        print(f"\n{len(result.errors)} error(s); nothing written", file=sys.stderr)
        return 2

    if args.check:
        return 0

    files = package_library(result.document, library.name)
    for path in save_package(files, Path(args.output_dir), include_json=args.json):
        print(f"Saved {path}")
    return 0


if __name__ == '__main__':
    sys.exit(main())

# File: entigen/cli.py
"""
entigen - Command-Line Interface
================================

``argparse`` front end for the generation pipeline.

Usage examples::

    # Generate from a metadata snapshot
    entigen -c entigen.yaml -m metadata.yaml -o ./entities

    # Reflect a live database, keep a snapshot for later offline runs
    entigen -c entigen.yaml -d mssql+pyodbc://... -o ./entities \\
        --dump-metadata metadata.yaml

    # Validate configuration against the schema only
    entigen -c entigen.yaml -m metadata.yaml --validate-only

    # Render without writing
    entigen -c entigen.yaml -m metadata.yaml --dry-run -v

Exit codes:
    0 : success
    1 : validation / configuration error
    2 : generation error
    3 : export error
    4 : input / argument error
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Dict, List, NoReturn, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError

from entigen.exceptions import ConfigShapeError, EntigenError

# ---------------------------------------------------------------------------
# Logger (configured in _setup_logging)
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("entigen")


# ---------------------------------------------------------------------------
# Exit codes
# ---------------------------------------------------------------------------

EXIT_SUCCESS: int = 0
EXIT_VALIDATION_ERROR: int = 1
EXIT_GENERATION_ERROR: int = 2
EXIT_EXPORT_ERROR: int = 3
EXIT_INPUT_ERROR: int = 4


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------


def _setup_logging(verbosity: int) -> None:
    """
    Configure the ``entigen`` logger.

    Args:
        verbosity: 0 = WARNING, 1 = INFO, 2+ = DEBUG.
    """
    if verbosity >= 2:
        level = logging.DEBUG
    elif verbosity >= 1:
        level = logging.INFO
    else:
        level = logging.WARNING

    handler: logging.StreamHandler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)

    fmt: str = "%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s"
    datefmt: str = "%H:%M:%S"
    handler.setFormatter(logging.Formatter(fmt, datefmt=datefmt))

    root_logger: logging.Logger = logging.getLogger("entigen")
    root_logger.setLevel(level)

    # Remove existing handlers to prevent duplication
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.propagate = False


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------


def _build_parser() -> argparse.ArgumentParser:
    """Build and return the argument parser."""
    from entigen import __version__

    parser: argparse.ArgumentParser = argparse.ArgumentParser(
        prog="entigen",
        description=(
            "entigen: TypeORM entity generator.\n\n"
            "Reads relational schema metadata (live database or snapshot) and a "
            "rename/inclusion configuration, resolves every relationship and "
            "writes one TypeORM entity class per configured table."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  %(prog)s -c entigen.yaml -m metadata.yaml -o ./entities\n"
            "  %(prog)s -c entigen.yaml -d sqlite:///app.db -o ./entities --swagger\n"
            "  %(prog)s -c entigen.yaml -m metadata.yaml --validate-only\n"
        ),
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"entigen v{__version__}",
    )

    parser.add_argument(
        "-c", "--config",
        type=str,
        required=True,
        metavar="PATH",
        help="Generator configuration file (YAML or JSON).",
    )

    source = parser.add_mutually_exclusive_group()
    source.add_argument(
        "-m", "--metadata",
        type=str,
        default=None,
        metavar="PATH",
        help="Metadata snapshot file (YAML or JSON).",
    )
    source.add_argument(
        "-d", "--database-url",
        type=str,
        default=None,
        metavar="URL",
        help="SQLAlchemy database URL to reflect (overrides the configuration).",
    )

    parser.add_argument(
        "-o", "--output",
        type=str,
        default=None,
        metavar="DIR",
        help="Output directory for the entity files (overrides the configuration).",
    )

    # --- Modes ---
    mode_group = parser.add_argument_group("operation modes")
    mode_group.add_argument(
        "--validate-only",
        action="store_true",
        default=False,
        help="Only validate the configuration against the schema.",
    )
    mode_group.add_argument(
        "--dry-run",
        action="store_true",
        default=False,
        help="Run the full pipeline but don't write files to disk.",
    )
    mode_group.add_argument(
        "--dump-metadata",
        type=str,
        default=None,
        metavar="PATH",
        help="Also write the loaded metadata rows to a snapshot file.",
    )

    # --- Config overrides ---
    config_group = parser.add_argument_group("configuration overrides")
    config_group.add_argument(
        "--schema",
        type=str,
        default=None,
        metavar="NAME",
        help="Database schema to reflect (dialect default when omitted).",
    )
    config_group.add_argument(
        "--swagger",
        action="store_true",
        default=None,
        help="Emit swagger ApiModelProperty decorators.",
    )

    # --- Behaviour flags ---
    behaviour_group = parser.add_argument_group("behaviour flags")
    behaviour_group.add_argument(
        "--clean",
        action="store_true",
        default=None,
        help="Clean the output directory before writing.",
    )
    behaviour_group.add_argument(
        "--strict-tables",
        action="store_true",
        default=False,
        help="Fail when the configuration names a table the schema lacks.",
    )
    behaviour_group.add_argument(
        "--fail-on-warnings",
        action="store_true",
        default=False,
        help="Treat validation warnings as errors.",
    )

    # --- Verbosity ---
    verbosity_group = parser.add_argument_group("verbosity")
    verbosity_group.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (-v for INFO, -vv for DEBUG).",
    )
    verbosity_group.add_argument(
        "-q", "--quiet",
        action="store_true",
        default=False,
        help="Suppress all output except errors.",
    )

    return parser


def _build_config_overrides(args: argparse.Namespace) -> Dict[str, object]:
    """Build a config override dictionary from CLI arguments."""
    overrides: Dict[str, object] = {}
    if args.swagger:
        overrides["swagger"] = True
    if args.schema is not None:
        overrides["schema_name"] = args.schema
    if args.database_url is not None:
        overrides["database_url"] = args.database_url
    return overrides


def exit_code_for(failed_step: Optional[str], exception: Optional[BaseException]) -> int:
    """Map the failing pipeline step (and its exception) to a process exit code."""
    from entigen import generator as g

    if failed_step is None:
        return EXIT_SUCCESS
    if failed_step == g.STEP_LOAD_CONFIG:
        return EXIT_VALIDATION_ERROR if isinstance(exception, ConfigShapeError) else EXIT_INPUT_ERROR
    if failed_step == g.STEP_LOAD_METADATA:
        return EXIT_INPUT_ERROR
    if failed_step == g.STEP_VALIDATE:
        return EXIT_VALIDATION_ERROR
    if failed_step == g.STEP_EXPORT:
        return EXIT_EXPORT_ERROR
    return EXIT_GENERATION_ERROR


# ---------------------------------------------------------------------------
# Validate-only mode
# ---------------------------------------------------------------------------


def _run_validate_only(args: argparse.Namespace) -> int:
    """Load, assemble and validate; print the findings.  Returns the exit code."""
    from entigen.assembler import assemble_model
    from entigen.generator import load_config_file
    from entigen.introspector import introspect, load_metadata_file
    from entigen.utils import Timer
    from entigen.validators import validate_full

    config_path: Path = Path(args.config)
    try:
        config = load_config_file(config_path)
    except ConfigShapeError as exc:
        logger.error("Invalid configuration: %s", exc)
        return EXIT_VALIDATION_ERROR
    except (FileNotFoundError, ValueError) as exc:
        logger.error("Failed to load configuration: %s", exc)
        return EXIT_INPUT_ERROR

    url: Optional[str] = args.database_url or config.database_url
    try:
        if args.metadata:
            rows = load_metadata_file(Path(args.metadata))
        elif url:
            rows = introspect(url, schema=args.schema or config.schema_name)
        else:
            logger.error("No metadata source: use -m/--metadata or -d/--database-url.")
            return EXIT_INPUT_ERROR
    except (FileNotFoundError, ValueError, SQLAlchemyError) as exc:
        logger.error("Failed to load metadata: %s", exc)
        return EXIT_INPUT_ERROR

    try:
        model = assemble_model(rows)
    except EntigenError as exc:
        logger.error("Inconsistent metadata: %s", exc)
        return EXIT_GENERATION_ERROR

    with Timer("validation") as t:
        result = validate_full(model, config, strict_tables=args.strict_tables)

    print(f"\n{'=' * 50}")
    print("  Configuration Validation Report")
    print(f"{'=' * 50}")
    print(f"  Config:   {config_path.name}")
    print(f"  Tables:   {len(model.tables)} in schema, {len(config.tables)} configured")
    print(f"  Time:     {t.elapsed:.3f}s")
    print(f"  Valid:    {'Yes' if result.is_valid else 'No'}")

    if result.errors:
        print(f"\n  Errors ({len(result.errors)}):")
        for err in result.errors:
            print(f"    ✗ {err}")

    if result.warnings:
        print(f"\n  Warnings ({len(result.warnings)}):")
        for warn in result.warnings:
            print(f"    ! {warn}")

    if result.is_valid and not result.warnings:
        print("\n  All validations passed!")

    print(f"{'=' * 50}\n")

    if not result.is_valid or (args.fail_on_warnings and result.warnings):
        return EXIT_VALIDATION_ERROR
    return EXIT_SUCCESS


# ---------------------------------------------------------------------------
# Full generation mode
# ---------------------------------------------------------------------------


def _run_generation(args: argparse.Namespace) -> int:
    """Run the full generation pipeline.  Returns the exit code."""
    from entigen.generator import EntityGenerator, GenerationReport

    generator: EntityGenerator = EntityGenerator(
        strict_tables=args.strict_tables,
        fail_on_warnings=args.fail_on_warnings,
        clean_output=args.clean,
        dry_run=args.dry_run,
    )

    if args.dry_run:
        logger.info("Dry-run mode: files will not be written to disk.")

    overrides: Dict[str, object] = _build_config_overrides(args)
    report: GenerationReport = generator.generate_from_files(
        config_path=Path(args.config),
        output_dir=Path(args.output) if args.output else None,
        metadata_path=Path(args.metadata) if args.metadata else None,
        database_url=args.database_url,
        schema=args.schema,
        dump_metadata_path=Path(args.dump_metadata) if args.dump_metadata else None,
        config_overrides=overrides or None,
    )

    print(report.summary())

    if report.success:
        return EXIT_SUCCESS
    return exit_code_for(report.failed_step, report.exception)


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------


def cli_main(argv: Optional[Sequence[str]] = None) -> NoReturn:
    """
    Main CLI entry point.

    Can be called from ``__main__.py`` or directly for testing.
    """
    parser: argparse.ArgumentParser = _build_parser()
    args: argparse.Namespace = parser.parse_args(argv)

    if args.quiet:
        verbosity: int = -1
        logging.disable(logging.CRITICAL)
    else:
        verbosity = args.verbose

    _setup_logging(verbosity)

    config_path: Path = Path(args.config).resolve()
    if not config_path.is_file():
        logger.error("Configuration file not found: %s", config_path)
        sys.exit(EXIT_INPUT_ERROR)

    if args.validate_only:
        sys.exit(_run_validate_only(args))

    logger.info("Config:   %s", config_path)
    logger.info("Metadata: %s", args.metadata or args.database_url or "(from configuration)")
    logger.info("Output:   %s", args.output or "(from configuration)")

    exit_code: int = _run_generation(args)

    if exit_code == EXIT_SUCCESS:
        logger.info("Generation completed successfully.")
    else:
        logger.error("Generation failed with exit code %d.", exit_code)

    sys.exit(exit_code)


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "cli_main",
    "exit_code_for",
    "EXIT_SUCCESS",
    "EXIT_VALIDATION_ERROR",
    "EXIT_GENERATION_ERROR",
    "EXIT_EXPORT_ERROR",
    "EXIT_INPUT_ERROR",
]

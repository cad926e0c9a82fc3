# File: relcheck/cli.py
"""
RelCheck - Command-Line Interface
==================================

CLI built with the standard-library ``argparse`` module.

Usage examples::

    # Validate a model file
    python -m relcheck --model model.yaml

    # Verbose output, SQL Server store types
    python -m relcheck -m model.json --dialect mssql -vv

    # Fail on warnings too
    python -m relcheck -m model.yaml --warnings-as-errors

    # Show version
    python -m relcheck --version

Exit codes:
    0 — the model is valid
    1 — validation error (or a warning with --warnings-as-errors)
    4 — input/argument error
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Dict, List, NoReturn, Optional, Sequence

# ---------------------------------------------------------------------------
# Logger (configured in _setup_logging)
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("relcheck")


# ---------------------------------------------------------------------------
# Exit codes
# ---------------------------------------------------------------------------

EXIT_SUCCESS: int = 0
EXIT_VALIDATION_ERROR: int = 1
EXIT_INPUT_ERROR: int = 4


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------


def _setup_logging(verbosity: int) -> None:
    """
    Configure the root relcheck logger based on verbosity level.

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

    root_logger: logging.Logger = logging.getLogger("relcheck")
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
    from relcheck import __version__
    from relcheck.models import DatabaseDialect

    parser: argparse.ArgumentParser = argparse.ArgumentParser(
        prog="relcheck",
        description=(
            "RelCheck — Relational Model Validator.\n\n"
            "Checks that an object-relational mapping model (JSON/YAML) maps "
            "onto a coherent physical schema, including tables shared by "
            "several entity types."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  %(prog)s -m model.yaml\n"
            "  %(prog)s -m model.json --dialect mssql -vv\n"
            "  %(prog)s -m model.yaml --warnings-as-errors\n"
        ),
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"RelCheck v{__version__}",
    )

    parser.add_argument(
        "-m", "--model",
        type=str,
        required=True,
        metavar="PATH",
        help="Path to the model definition file (JSON or YAML).",
    )

    # --- Config overrides ---
    config_group = parser.add_argument_group("configuration overrides")
    config_group.add_argument(
        "--dialect",
        type=str,
        choices=[d.value for d in DatabaseDialect],
        default=None,
        help="Dialect used to resolve default store types.",
    )
    config_group.add_argument(
        "--warnings-as-errors",
        action="store_true",
        default=None,
        help="Exit with a validation error when warnings are reported.",
    )
    config_group.add_argument(
        "--skip-functions",
        action="store_true",
        default=False,
        help="Do not check database function store types.",
    )

    # --- Output ---
    output_group = parser.add_argument_group("output")
    output_group.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (-v for INFO, -vv for DEBUG).",
    )
    output_group.add_argument(
        "-q", "--quiet",
        action="store_true",
        default=False,
        help="Suppress all log output.",
    )

    return parser


def _build_config_overrides(args: argparse.Namespace) -> Dict[str, object]:
    """Collect config values set on the command line."""
    overrides: Dict[str, object] = {}
    if args.dialect is not None:
        overrides["dialect"] = args.dialect
    if args.warnings_as_errors:
        overrides["warnings_as_errors"] = True
    if args.skip_functions:
        overrides["validate_functions"] = False
    return overrides


# ---------------------------------------------------------------------------
# Validation run
# ---------------------------------------------------------------------------


def _run_validation(model_path: Path, args: argparse.Namespace) -> int:
    """Load, validate and report. Returns the exit code."""
    from relcheck.errors import AggregateModelValidationError, ModelValidationError
    from relcheck.loader import load_model
    from relcheck.models import ValidationConfig
    from relcheck.utils import Timer
    from relcheck.validators import DiagnosticsReport, validate_model

    try:
        definition, config = load_model(model_path)
        config = ValidationConfig.model_validate(
            {**config.model_dump(), **_build_config_overrides(args)}
        )
    except (FileNotFoundError, ValueError) as exc:
        logger.error("Failed to load model: %s", exc)
        return EXIT_INPUT_ERROR

    report: DiagnosticsReport = DiagnosticsReport()
    failure: Optional[ModelValidationError] = None
    with Timer("validation") as t:
        try:
            validate_model(definition, config, report)
        except ModelValidationError as exc:
            failure = exc
        except ValueError as exc:
            # references the definition layer could not resolve
            logger.error("Failed to build model: %s", exc)
            return EXIT_INPUT_ERROR

    print(f"\n{'='*50}")
    print("  Model Validation Report")
    print(f"{'='*50}")
    print(f"  File:          {model_path.name}")
    print(f"  Entity types:  {definition.entity_count}")
    print(f"  Dialect:       {config.dialect}")
    print(f"  Time:          {t.elapsed:.3f}s")
    print(f"  Valid:         {'No' if failure else 'Yes'}")

    if failure is not None:
        violations: List[ModelValidationError] = (
            failure.errors
            if isinstance(failure, AggregateModelValidationError)
            else [failure]
        )
        print(f"\n  Errors ({len(violations)}):")
        for violation in violations:
            print(f"    ✗ [{violation.code}] {violation.message}")

    if report.warnings:
        print(f"\n  Warnings ({len(report.warnings)}):")
        for warning in report.warnings:
            print(f"    ⚠ {warning}")

    if failure is None and not report.warnings:
        print("\n  ✅ All validations passed!")

    print(f"{'='*50}\n")

    if failure is not None:
        return EXIT_VALIDATION_ERROR
    if config.warnings_as_errors and report.has_warnings:
        return EXIT_VALIDATION_ERROR
    return EXIT_SUCCESS


def cli_main(argv: Optional[Sequence[str]] = None) -> NoReturn:
    """
    Main CLI entry point.

    Can be called from ``__main__.py`` or directly for testing.

    Args:
        argv: Optional argument list (defaults to sys.argv[1:]).
    """
    parser: argparse.ArgumentParser = _build_parser()
    args: argparse.Namespace = parser.parse_args(argv)

    if args.quiet:
        verbosity: int = -1
        logging.disable(logging.CRITICAL)
    else:
        verbosity = args.verbose

    _setup_logging(verbosity)

    model_path: Path = Path(args.model).resolve()

    if not model_path.exists():
        logger.error("Model file not found: %s", model_path)
        sys.exit(EXIT_INPUT_ERROR)

    if not model_path.is_file():
        logger.error("Model path is not a file: %s", model_path)
        sys.exit(EXIT_INPUT_ERROR)

    logger.info("Model:   %s", model_path)
    exit_code: int = _run_validation(model_path, args)

    if exit_code == EXIT_SUCCESS:
        logger.info("Validation completed successfully.")
    else:
        logger.error("Validation failed with exit code %d.", exit_code)

    sys.exit(exit_code)


def main() -> None:
    """Console-script entry point."""
    cli_main()


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "cli_main",
    "main",
    "EXIT_SUCCESS",
    "EXIT_VALIDATION_ERROR",
    "EXIT_INPUT_ERROR",
]

logger.debug("relcheck.cli loaded.")

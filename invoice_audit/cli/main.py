"""CLI interface for validating normalised invoice records."""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Dict, List, Optional

from ..batch.runner import BatchOutcome, BatchRunner
from ..config.profile_loader import list_available_profiles
from ..config.settings import get_app_name, get_log_level
from ..context import ValidationContext
from ..errors import BatchFatalError, ConfigurationError
from ..models.validation_summary import save_json
from ..summary.aggregator import most_common_discrepancies

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_CRITICAL = 1
EXIT_FATAL = 2


def _parse_assignments(values: Optional[List[str]], option: str) -> Dict[str, float]:
    """Parse KEY=VALUE pairs into a dict of floats.

    Raises:
        ValueError: If a pair is malformed or the value is not a number
    """
    parsed = {}
    for item in values or []:
        key, sep, value = item.partition("=")
        if not sep or not key.strip():
            raise ValueError(f"{option} expects KEY=VALUE, got '{item}'")
        try:
            parsed[key.strip()] = float(value)
        except ValueError:
            raise ValueError(f"{option} value for '{key.strip()}' is not a number: '{value}'")
    return parsed


def build_config_overrides(args: argparse.Namespace) -> Dict[str, Dict[str, float]]:
    """Turn --threshold/--tolerance options into a partial config."""
    overrides = {}
    thresholds = _parse_assignments(args.threshold, "--threshold")
    if thresholds:
        overrides["thresholds"] = thresholds
    tolerances = _parse_assignments(args.tolerance, "--tolerance")
    if tolerances:
        overrides["tolerances"] = tolerances
    return overrides


def load_records(path: Path) -> List[dict]:
    """Load records from a JSON file holding a list or {"records": [...]}.

    Raises:
        ValueError: If the file does not contain a list of records
    """
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, dict):
        data = data.get("records")
    if not isinstance(data, list):
        raise ValueError(f"{path}: expected a JSON list of records or an object with 'records'")
    return data


def print_summary(outcome: BatchOutcome) -> None:
    summary = outcome.summary
    print(f"\nValidation {outcome.status} (batch {outcome.batch_id}):")
    print(f"  Records: {summary.total_records} (valid={summary.valid_records}, invalid={summary.invalid_records})")
    print(
        f"  Discrepancies: {summary.total_discrepancies} "
        f"(critical={summary.critical_count}, high={summary.high_count}, "
        f"medium={summary.medium_count}, low={summary.low_count})"
    )
    print(
        f"  Amount: total={summary.total_discrepancy_amount:.2f}, "
        f"average={summary.average_discrepancy_amount:.2f}, max={summary.max_discrepancy_amount:.2f}"
    )
    if outcome.errors:
        print(f"  Errors: {len(outcome.errors)}")
        for issue in outcome.errors:
            target = f"{issue.record_id}.{issue.field}" if issue.field else issue.record_id
            print(f"    - {target}: {issue.message}")


def _handle_validate(args: argparse.Namespace) -> int:
    try:
        overrides = build_config_overrides(args)
        context = ValidationContext.from_profile(args.profile)
        records = load_records(Path(args.records))
    except (ValueError, OSError, ConfigurationError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_FATAL

    runner = BatchRunner(context)
    try:
        outcome = runner.validate_batch(records, config=overrides or None)
    except BatchFatalError as e:
        print(f"Error ({e.code}): {e.message}", file=sys.stderr)
        return EXIT_FATAL

    print_summary(outcome)

    if args.output:
        output_path = Path(args.output)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        data = outcome.to_dict()
        data["alerts"] = [alert.to_dict() for alert in runner.alerts.prioritized_alerts()]
        data["most_common_discrepancies"] = most_common_discrepancies(outcome.results)
        statistics = runner.get_validation_statistics()
        statistics["summary"] = statistics["summary"].to_dict()
        data["statistics"] = statistics
        data["config"] = context.config.to_dict()
        save_json(data, output_path)
        print(f"Report: {output_path}")

    return EXIT_CRITICAL if outcome.summary.critical_count > 0 else EXIT_OK


def _handle_profiles(args: argparse.Namespace) -> int:
    profiles = list_available_profiles()
    if not profiles:
        print("No profiles found")
        return EXIT_OK
    for name in profiles:
        print(name)
    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="invoice-audit",
        description=f"{get_app_name()} - validate invoice calculations and report discrepancies",
    )
    subparsers = parser.add_subparsers(dest="command")

    validate = subparsers.add_parser("validate", help="Validate a JSON file of invoice records")
    validate.add_argument("records", help="JSON file with a list of normalised invoice records")
    validate.add_argument(
        "--profile",
        type=str,
        default=None,
        help="Validation profile name (default: INVOICE_AUDIT_PROFILE or 'default')",
    )
    validate.add_argument(
        "--threshold",
        action="append",
        metavar="LEVEL=VALUE",
        help="Override a severity threshold, e.g. high=12 (repeatable)",
    )
    validate.add_argument(
        "--tolerance",
        action="append",
        metavar="FIELD=VALUE",
        help="Override a field tolerance, e.g. tax_amount=0.05 (repeatable)",
    )
    validate.add_argument("--output", required=False, help="Write summary, results and alerts as JSON")
    validate.add_argument("--verbose", action="store_true", help="Enable verbose debug output")

    subparsers.add_parser("profiles", help="List available validation profiles")
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        sys.exit(EXIT_FATAL)

    level = logging.DEBUG if getattr(args, "verbose", False) else get_log_level()
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")

    if args.command == "profiles":
        sys.exit(_handle_profiles(args))
    sys.exit(_handle_validate(args))


if __name__ == "__main__":
    main()

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

import yaml

from repmed.analysis.mediation import MediationAnalysis
from repmed.config import AppConfig, default_app_config
from repmed.data.loader import load_dataset
from repmed.data.schemas import DEFAULT_ROLES, ColumnRoles
from repmed.errors import InvalidInputError, MediationError
from repmed.utils.io import write_json, write_jsonl
from repmed.utils.logging import setup_logger
from repmed.utils.logging_config import configure_logging
from repmed.utils.validation import validate_observations


def validate_run_inputs(input_path: str, output_path: str | None, logger) -> tuple[Path, Path | None, int]:
    """Validate input and output paths for the run command.

    Args:
        input_path: Path to input dataset file
        output_path: Optional path to output file
        logger: Logger instance for error logging

    Returns:
        Tuple of (validated_input_path, validated_output_path, exit_code)
        exit_code is 0 for success, 1 for error
    """
    input_path_obj = Path(input_path)
    if not input_path_obj.exists():
        print(f"Error: Input file '{input_path_obj}' not found", file=sys.stderr)
        logger.error("FileNotFoundError: Input file '%s' not found", input_path_obj)
        return input_path_obj, None, 1

    if not input_path_obj.is_file():
        print(f"Error: Input path '{input_path_obj}' is not a file", file=sys.stderr)
        logger.error("ValueError: Input path '%s' is not a file", input_path_obj)
        return input_path_obj, None, 1

    output_path_obj = None
    if output_path:
        output_path_obj = Path(output_path)
        try:
            output_path_obj.parent.mkdir(parents=True, exist_ok=True)
        except PermissionError:
            print(f"Error: Permission denied accessing '{output_path_obj.parent}'", file=sys.stderr)
            logger.error("PermissionError: Cannot write to output directory '%s'", output_path_obj.parent)
            return input_path_obj, None, 1

    return input_path_obj, output_path_obj, 0


def _resolve_roles(args: argparse.Namespace, cfg: AppConfig) -> ColumnRoles:
    mapping = dict(DEFAULT_ROLES.as_dict())
    if cfg.data.columns:
        mapping.update(cfg.data.columns)
    for role in ("m1", "m2", "y1", "y2"):
        value = getattr(args, role, None)
        if value:
            mapping[role] = value
    return ColumnRoles.from_mapping(mapping)


def _add_data_arguments(p: argparse.ArgumentParser) -> None:
    p.add_argument("--input", "-i", required=True, help="Input dataset file (.csv, .tsv or .txt)")
    p.add_argument("--m1", help="Mediator column, first condition (default: M1)")
    p.add_argument("--m2", help="Mediator column, second condition (default: M2)")
    p.add_argument("--y1", help="Outcome column, first condition (default: Y1)")
    p.add_argument("--y2", help="Outcome column, second condition (default: Y2)")
    p.add_argument("--config", "-c", help="Configuration file (.json, .yaml or .yml)")
    p.add_argument("--verbose", "-v", action="store_true", help="Log debug output")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="repmed",
        description="Bootstrap mediation analysis for two-condition within-subjects designs",
        epilog="""Examples:
  # Basic 95% interval with 5000 resamples
  repmed run --input data/study.csv --m1 M1 --m2 M2 --y1 Y1 --y2 Y2

  # Several methods and levels, results written as JSON
  repmed run -i data/study.csv --methods basic percentile bca --levels 0.9 0.95 0.99 -o results/study.json

  # Check that a dataset is usable without resampling
  repmed validate -i data/study.csv
""",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    run_parser = subparsers.add_parser("run", help="Estimate the indirect effect and its intervals")
    _add_data_arguments(run_parser)
    run_parser.add_argument("--replications", "-r", type=int, help="Bootstrap resamples")
    run_parser.add_argument("--levels", nargs="+", type=float, help="Confidence levels in (0, 1)")
    run_parser.add_argument("--methods", nargs="+", help="normal, basic, percentile, bca, studentized")
    run_parser.add_argument("--seed", type=int, help="Random seed")
    run_parser.add_argument("--variance-estimator", choices=["sobel"], help="Per-resample variance for studentized intervals")
    run_parser.add_argument("--workers", type=int, help="Worker threads for resampling")
    run_parser.add_argument("--output", "-o", help="Write the result record to this JSON file")
    run_parser.add_argument("--rows", help="Write interval rows to this JSONL file")
    run_parser.add_argument("--dry-run", action="store_true", help="Validate inputs without resampling")
    run_parser.add_argument("--progress", action="store_true", help="Show a progress bar")

    validate_parser = subparsers.add_parser("validate", help="Validate a dataset")
    _add_data_arguments(validate_parser)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    try:
        cfg = AppConfig.from_file(args.config) if args.config else default_app_config()
    except FileNotFoundError:
        print(f"Error: Config file '{args.config}' not found", file=sys.stderr)
        return 1
    except (json.JSONDecodeError, yaml.YAMLError, ValueError, TypeError) as e:
        if args.config:
            print(f"Error: Invalid config file '{args.config}': {e}", file=sys.stderr)
        else:
            print(f"Error: Invalid configuration: {e}", file=sys.stderr)
        return 1

    level = logging.DEBUG if args.verbose else getattr(logging, cfg.logging.level.upper(), logging.INFO)
    logs_dir = cfg.logging.log_dir if args.config else None
    if cfg.logging.structured:
        log_file = str(cfg.logging.file_path()) if logs_dir else None
        configure_logging(logging.getLevelName(level), log_file=log_file, structured=True)
        logger = logging.getLogger("repmed")
    else:
        logger = setup_logger("repmed", logs_dir=logs_dir, level=level, filename=cfg.logging.filename)

    output_arg = getattr(args, "output", None)
    input_path, output_path, exit_code = validate_run_inputs(args.input, output_arg, logger)
    if exit_code != 0:
        return exit_code

    try:
        roles = _resolve_roles(args, cfg)
        frame = load_dataset(input_path)
        validate_observations(frame, roles)
    except InvalidInputError as e:
        print(f"Error: Invalid data format - {e}", file=sys.stderr)
        logger.error("InvalidInputError during load of '%s': %s", input_path, e)
        return 1

    if args.command == "validate" or args.dry_run:
        print("Validation successful:")
        print(f"  - Input file: {input_path}")
        print(f"  - Subjects: {len(frame)}")
        print(f"  - Columns: {roles.as_dict()}")
        logger.info("Validation successful for '%s'", input_path)
        return 0

    bootstrap_cfg = cfg.bootstrap
    if args.variance_estimator:
        bootstrap_cfg.variance_estimator = args.variance_estimator
    if args.workers:
        bootstrap_cfg.max_workers = args.workers
    if args.progress:
        bootstrap_cfg.progress = True

    try:
        result = MediationAnalysis(bootstrap_cfg).run(
            frame,
            roles.m1,
            roles.m2,
            roles.y1,
            roles.y2,
            replications=args.replications,
            confidence_levels=args.levels,
            methods=args.methods,
            seed=args.seed,
        )
    except MediationError as e:
        print(f"Error: {type(e).__name__}: {e}", file=sys.stderr)
        logger.error("%s during analysis: %s", type(e).__name__, e)
        return 1

    payload = result.to_dict()
    if output_path:
        write_json(output_path, payload)
        logger.info("Result written to %s", output_path)
    else:
        print(json.dumps(payload, indent=2))
    if args.rows:
        write_jsonl(args.rows, (ci.to_dict() for ci in result.intervals))
        logger.info("Interval rows written to %s", args.rows)
    return 0


if __name__ == "__main__":
    sys.exit(main())

"""CLI for ECR Reaper."""

import argparse
import datetime
import logging
import re
import sys
from pathlib import Path
from typing import Any

import structlog
from safir.logging import LogLevel, Profile, configure_logging

from .config import AgeUnit, ReaperConfig
from .exceptions import ConfigError, ReaperError
from .services.reaper import Reaper

LOGGER_NAME = "ecr_reaper"
_ANSI_ESCAPE = re.compile(r"\x1b\[[0-9;]*m")


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Reap expired images from an AWS ECR registry."
    )
    parser.add_argument(
        "-c",
        "--config-file",
        "--file",
        type=Path,
        help="reaper config file (YAML); flags override its settings",
        default=None,
    )
    parser.add_argument("-r", "--region", help="AWS region, e.g. us-east-1")
    parser.add_argument(
        "-a",
        "--retention",
        type=int,
        help="maximum image age, in units of --unit",
        default=None,
    )
    parser.add_argument(
        "-u",
        "--unit",
        choices=[x.value for x in AgeUnit],
        help="unit for --retention and for measuring image age",
        default=None,
    )
    parser.add_argument(
        "-k",
        "--keep-prefixes",
        help=(
            "never delete images with a tag starting with one of these"
            " prefixes (comma-separated list)"
        ),
        default=None,
    )
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument(
        "-x",
        "--dry-run",
        action="store_true",
        help="Dry run only: do not delete any images",
        default=None,
    )
    mode.add_argument(
        "--execute",
        dest="dry_run",
        action="store_false",
        help="Really delete images",
        default=None,
    )
    parser.add_argument("--profile", help="AWS credentials profile")
    parser.add_argument("--endpoint-url", help="ECR API endpoint override")
    parser.add_argument(
        "--input-file",
        type=Path,
        help="use repository data from this JSON snapshot",
    )
    parser.add_argument(
        "--dump-file",
        type=Path,
        help="write a JSON snapshot of the registry here and exit",
    )
    parser.add_argument(
        "--log-file", type=Path, help="file receiving a copy of the log"
    )
    parser.add_argument(
        "--report-file", type=Path, help="write the run report here as JSON"
    )
    parser.add_argument(
        "-d",
        "--debug",
        action="store_true",
        help="Enable debug logging",
        default=None,
    )
    parser.add_argument(
        "-p",
        "--prompt",
        action="store_true",
        help="Ask for region, retention, prefixes, and dry-run interactively",
        default=False,
    )
    return parser.parse_args(argv)


def _prompt(args: argparse.Namespace) -> None:
    """Fill in run parameters from the terminal."""
    unit = args.unit or AgeUnit.DAYS.value
    args.region = input("Enter AWS Region (e.g., us-east-1): ").strip()
    retention = input(f"Enter retention period in {unit} (e.g., 5): ").strip()
    try:
        args.retention = int(retention)
    except ValueError as exc:
        raise ConfigError(
            f"Retention must be an integer, not {retention!r}"
        ) from exc
    args.unit = unit
    args.keep_prefixes = input(
        "Enter comma-separated tag prefixes to keep (e.g., latest,dev,main): "
    ).strip()
    answer = input("Dry-run mode? (yes/no): ").strip()
    args.dry_run = answer.lower() == "yes"


def _build_config(args: argparse.Namespace) -> ReaperConfig:
    data: dict[str, Any] = {}
    if args.config_file:
        cfg = ReaperConfig.from_file(args.config_file)
        data = cfg.model_dump(by_alias=False)
    policy: dict[str, Any] = data.setdefault("policy", {})
    if args.region is not None:
        policy["region"] = args.region
    if args.unit is not None:
        policy["age_unit"] = args.unit
    if args.retention is not None:
        unit = AgeUnit(args.unit or policy.get("age_unit", AgeUnit.DAYS))
        policy["max_age"] = args.retention * unit.delta
        policy["age_unit"] = unit
    if args.keep_prefixes is not None:
        policy["keep_prefixes"] = args.keep_prefixes
    if args.dry_run is not None:
        policy["dry_run"] = args.dry_run
    for key in (
        "profile",
        "endpoint_url",
        "input_file",
        "log_file",
        "report_file",
        "debug",
    ):
        value = getattr(args, key)
        if value is not None:
            data[key] = value
    if "region" not in policy or "max_age" not in policy:
        raise ConfigError(
            "A region and a retention period are required; use --region"
            " and --retention, --prompt, or a config file"
        )
    return ReaperConfig.from_dict(data)


class _PlainFormatter(logging.Formatter):
    """Drop the terminal colour codes of the development log profile."""

    def format(self, record: logging.LogRecord) -> str:
        return _ANSI_ESCAPE.sub("", super().format(record))


def _configure_logging(cfg: ReaperConfig) -> None:
    configure_logging(
        name=LOGGER_NAME,
        profile=Profile.development if cfg.debug else Profile.production,
        log_level=LogLevel.DEBUG if cfg.debug else LogLevel.INFO,
        add_timestamp=True,
    )
    if cfg.log_file:
        handler = logging.FileHandler(cfg.log_file)
        handler.setFormatter(_PlainFormatter("%(message)s"))
        logging.getLogger(LOGGER_NAME).addHandler(handler)


def main(argv: list[str] | None = None) -> int:
    """Enforce the retention policy.

    Returns
    -------
    int
        0 if the run completed cleanly, 1 on a configuration or fatal
        registry error, 2 if the run completed with recorded failures.
    """
    args = _parse_args(argv)
    try:
        if args.prompt:
            _prompt(args)
        cfg = _build_config(args)
    except ConfigError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 1

    _configure_logging(cfg)
    logger = structlog.get_logger(LOGGER_NAME)
    started = datetime.datetime.now(tz=datetime.UTC)

    try:
        reaper = Reaper(cfg)
        if args.dump_file:
            reaper.connect()
            reaper.gateway.dump_images(args.dump_file)
            return 0
        report = reaper.run()
    except ReaperError as exc:
        logger.error(f"Reaper run failed: {exc}")
        return 1

    reaper.report()
    try:
        reaper.write_report()
    except ReaperError as exc:
        logger.error(f"Reaper run failed: {exc}")
        return 1
    elapsed = datetime.datetime.now(tz=datetime.UTC) - started
    logger.info(f"Finished in {elapsed}")
    return 2 if report.failures() else 0

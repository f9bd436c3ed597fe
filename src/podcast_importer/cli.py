from __future__ import annotations

import argparse
import logging
from typing import Any, Callable, Dict, Optional, Sequence, cast

from pydantic import ValidationError

from . import __version__, config, workflow
from .exceptions import ImporterError
from .models import ImportReport
from .report import render_report

_LOGGER = logging.getLogger(__name__)

# Config file keys that differ from the argparse destination
_CONFIG_KEY_ALIASES = {
    "feed_url": "feed",
    "update_existing": "update",
}


def _add_import_arguments(parser: argparse.ArgumentParser) -> None:
    """Add feed and import-behavior arguments to parser."""
    parser.add_argument("--config", default=None, help="Path to configuration file (JSON or YAML)")
    parser.add_argument(
        "-f", "--feed", default=None, help="RSS feed URL (default: RSS_FEED_URL from environment)"
    )
    parser.add_argument(
        "--dry-run", action="store_true", help="Preview import without making changes"
    )
    parser.add_argument(
        "--skip-images", action="store_true", help="Skip downloading and uploading images"
    )
    parser.add_argument(
        "--update",
        action="store_true",
        help="Update existing records (default: skip records that already exist)",
    )
    parser.add_argument(
        "--delay-ms",
        type=int,
        default=None,
        help=f"Pause after each episode in ms (default: {config.DEFAULT_EPISODE_DELAY_MS})",
    )
    parser.add_argument("--version", action="store_true", help="Show program version and exit")


def _add_store_arguments(parser: argparse.ArgumentParser) -> None:
    """Add content store credential arguments to parser."""
    parser.add_argument(
        "--project-id", default=None, help="Sanity project ID (default: SANITY_PROJECT_ID)"
    )
    parser.add_argument(
        "--dataset",
        default=None,
        help=f"Sanity dataset (default: SANITY_DATASET or {config.DEFAULT_STORE_DATASET})",
    )
    parser.add_argument("--token", default=None, help="Sanity write token (default: SANITY_TOKEN)")


def _add_output_arguments(parser: argparse.ArgumentParser) -> None:
    """Add logging, report and HTTP arguments to parser."""
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose logging")
    parser.add_argument(
        "--log-file",
        default=config.DEFAULT_LOG_FILE,
        help=f"Run log file, truncated at start (default: {config.DEFAULT_LOG_FILE})",
    )
    parser.add_argument(
        "--report-file", default=None, help="Write the final import report as JSON to this path"
    )
    parser.add_argument(
        "--log-level",
        default=config.DEFAULT_LOG_LEVEL,
        type=str.upper,
        help="Logging level (e.g., DEBUG, INFO)",
    )
    parser.add_argument("--user-agent", default=None, help="User-Agent header")
    parser.add_argument(
        "--timeout",
        type=int,
        default=config.DEFAULT_TIMEOUT_SECONDS,
        help="Request timeout in seconds",
    )


def _load_and_merge_config(
    parser: argparse.ArgumentParser, config_path: str, argv: Optional[Sequence[str]]
) -> argparse.Namespace:
    """Load configuration file and use it as argument defaults.

    Command-line arguments still take precedence over the file.

    Raises:
        ValueError: If the file is invalid or contains unknown keys
    """
    config_data = config.load_config_file(config_path)
    valid_dests = {action.dest for action in parser._actions if action.dest}

    defaults_updates: Dict[str, Any] = {}
    unknown_keys = []
    for key, value in config_data.items():
        dest = _CONFIG_KEY_ALIASES.get(key, key).replace("-", "_")
        if dest not in valid_dests or dest in ("config", "version", "help"):
            unknown_keys.append(key)
            continue
        defaults_updates[dest] = value
    if unknown_keys:
        raise ValueError("Unknown config option(s): " + ", ".join(sorted(unknown_keys)))

    parser.set_defaults(**defaults_updates)
    return parser.parse_args(argv)


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """Parse CLI arguments, optionally merging configuration file defaults."""
    parser = argparse.ArgumentParser(
        prog="podcast-import",
        description="Import podcast show metadata and episodes from an RSS feed.",
    )

    _add_import_arguments(parser)
    _add_store_arguments(parser)
    _add_output_arguments(parser)

    initial_args, _ = parser.parse_known_args(argv)

    if initial_args.version:
        print(f"podcast_importer {__version__}")
        raise SystemExit(0)

    if initial_args.config:
        return _load_and_merge_config(parser, initial_args.config, argv)
    return parser.parse_args(argv)


def _build_config(args: argparse.Namespace) -> config.Config:
    """Materialize a Config object from parsed arguments.

    Values left as None fall back to the environment inside Config.
    """
    payload: Dict[str, Any] = {
        "feed_url": args.feed,
        "project_id": args.project_id,
        "dataset": args.dataset,
        "token": args.token,
        "dry_run": args.dry_run,
        "skip_images": args.skip_images,
        "update_existing": args.update,
        "verbose": args.verbose,
        "log_level": args.log_level,
        "log_file": args.log_file,
        "report_file": args.report_file,
        "timeout": args.timeout,
        "user_agent": args.user_agent,
        "delay_ms": args.delay_ms,
    }
    # Pydantic's model_validate returns the correct type, but mypy needs help
    return cast(config.Config, config.Config.model_validate(payload))


def _format_validation_error(exc: ValidationError) -> str:
    messages = []
    for err in exc.errors():
        msg = str(err.get("msg", ""))
        messages.append(msg.removeprefix("Value error, "))
    return "; ".join(messages)


def _log_configuration(cfg: config.Config, logger: logging.Logger) -> None:
    logger.debug("Configuration:")
    logger.debug(f"  Feed URL: {cfg.feed_url}")
    logger.debug(f"  Project: {cfg.project_id} (dataset: {cfg.dataset})")
    logger.debug(f"  Dry run: {cfg.dry_run}")
    logger.debug(f"  Skip images: {cfg.skip_images}")
    logger.debug(f"  Update existing: {cfg.update_existing}")
    logger.debug(f"  Log file: {cfg.log_file}")
    if cfg.report_file:
        logger.debug(f"  Report file: {cfg.report_file}")


def main(
    argv: Optional[Sequence[str]] = None,
    *,
    apply_log_level_fn: Optional[Callable[[str], None]] = None,
    run_import_fn: Optional[Callable[[config.Config], ImportReport]] = None,
    logger: Optional[logging.Logger] = None,
) -> int:
    """Entry point for the CLI; returns an exit status code.

    Returns 0 once a run completes, even if some episodes failed (the report
    lists them), and 1 on configuration errors or a fatal feed error.
    """
    log = logger or _LOGGER
    if apply_log_level_fn is None:
        apply_log_level_fn = workflow.apply_log_level
    if run_import_fn is None:
        run_import_fn = workflow.run_import

    try:
        args = parse_args(argv)
    except ValueError as exc:
        log.error(f"Error: {exc}")
        return 1

    try:
        cfg = _build_config(args)
    except ValidationError as exc:
        log.error(f"Invalid configuration: {_format_validation_error(exc)}")
        return 1

    apply_log_level_fn(cfg.log_level)

    log.info("Starting RSS feed import")
    _log_configuration(cfg, log)

    try:
        report = run_import_fn(cfg)
    except ImporterError as exc:
        log.error(f"Import failed: {exc}")
        return 1

    print(render_report(report, dry_run=cfg.dry_run, log_file=cfg.log_file))
    return 0


if __name__ == "__main__":  # pragma: no cover - script entry
    raise SystemExit(main())

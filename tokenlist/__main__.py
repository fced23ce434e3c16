from __future__ import annotations

import argparse
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from secrets import token_hex

from tokenlist import __version__
from tokenlist.cleanup import reset_data
from tokenlist.compose.runner import run_compose, validate_sources
from tokenlist.config import AppConfig, ConfigError, load_config
from tokenlist.discovery.runner import DiscoveryOptions, run_discovery
from tokenlist.io.errors import SchemaError
from tokenlist.io.layout import DataLayout, ensure_layout, resolve_layout
from tokenlist.obs.logging import LogSettings, build_logger, log_event
from tokenlist.obs.metrics import update_http_metrics
from tokenlist.provider.client import BlockberryClient
from tokenlist.provider.errors import ProviderHttpError

EXIT_OK = 0
EXIT_RUN_ERROR = 1
EXIT_CONFIG_ERROR = 2
EXIT_SCHEMA_ERROR = 3
EXIT_VALIDATION_ERROR = 4


def _positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"expected a positive integer, got {value!r}") from exc
    if number < 1:
        raise argparse.ArgumentTypeError("value must be >= 1")
    return number


def _max_pages(value: str) -> int:
    if value.strip().lower() == "all":
        return 0
    try:
        pages = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"expected a page count or 'all', got {value!r}") from exc
    if pages < 0:
        raise argparse.ArgumentTypeError("page count must be >= 0")
    return pages


def parse_args(argv: list[str]) -> argparse.Namespace:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--config", help="Path to config YAML")
    common.add_argument("--root", default=".", help="Directory the data/dist paths are relative to")
    common.add_argument("--log-level", default="INFO", help="Logging level")

    parser = argparse.ArgumentParser(description="Token list curator CLI")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="command", required=True)

    for name, help_text in (
        ("discover", "Discover new tokens from the provider"),
        ("bootstrap", "Discover with the large bootstrap page cap"),
    ):
        sub = subparsers.add_parser(name, parents=[common], help=help_text)
        sub.add_argument("--max-pages", type=_max_pages, help="Pages per run, or 'all'")
        sub.add_argument("--page-size", type=_positive_int, help="Items per page")
        sub.add_argument("--start-page", type=_positive_int, help="Start page when no checkpoint is resumed")
        sub.add_argument("--resume", action=argparse.BooleanOptionalAction, default=None)
        sub.add_argument("--rate-limit-ms", type=int, help="Pause between page fetches")

    subparsers.add_parser("compose", parents=[common], help="Build all.json and strict.json")
    subparsers.add_parser("validate", parents=[common], help="Validate discovered and curated tokens")
    subparsers.add_parser("reset", parents=[common], help="Reset discovered data and checkpoint")

    return parser.parse_args(argv)


def generate_run_id() -> str:
    timestamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%SZ")
    return f"{timestamp}_{token_hex(3)}"


def _discover(
    args: argparse.Namespace,
    config: AppConfig,
    layout: DataLayout,
    logger: logging.Logger,
    run_id: str,
) -> int:
    page_cap = args.max_pages
    if page_cap is None and args.command == "bootstrap":
        page_cap = config.discovery.bootstrap_max_pages
    options = DiscoveryOptions(
        page_cap=page_cap,
        page_size=args.page_size,
        resume=args.resume,
        start_page=args.start_page,
        rate_limit_ms=args.rate_limit_ms,
    )

    api_key = config.provider.resolve_api_key()
    with BlockberryClient(config.provider, api_key=api_key, logger=logger, run_id=run_id) as client:
        try:
            summary = run_discovery(client, config=config, layout=layout, options=options, logger=logger)
        finally:
            update_http_metrics(layout.metrics_path, client.metrics)

    log_event(
        logger,
        logging.INFO,
        "discover_summary",
        "Discovery run finished",
        stop_reason=summary.result.stop_reason,
        pages_fetched=summary.result.pages_fetched,
        new_tokens=summary.new_tokens,
        total_discovered=summary.total_discovered,
        resumable=not summary.result.completed,
    )
    return EXIT_OK


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv if argv is not None else sys.argv[1:])
    run_id = generate_run_id()
    logger = build_logger(LogSettings(level=args.log_level.upper(), run_id=run_id, log_file=None, jsonl=True))

    try:
        loaded = load_config(Path(args.config) if args.config else None)
    except ConfigError as exc:
        log_event(logger, logging.ERROR, "config_invalid", str(exc))
        return EXIT_CONFIG_ERROR
    config = loaded.config

    root = Path(args.root)
    if config.obs.log_file or not config.obs.log_jsonl:
        logger = build_logger(
            LogSettings(
                level=args.log_level.upper(),
                run_id=run_id,
                log_file=root / config.obs.log_file if config.obs.log_file else None,
                jsonl=config.obs.log_jsonl,
            )
        )

    try:
        layout = ensure_layout(resolve_layout(config.paths, root))
    except PermissionError as exc:
        log_event(logger, logging.ERROR, "output_not_writable", str(exc))
        return EXIT_RUN_ERROR

    log_event(
        logger,
        logging.INFO,
        "run_started",
        f"Running {args.command}",
        command=args.command,
        version=__version__,
    )
    try:
        if args.command in {"discover", "bootstrap"}:
            return _discover(args, config, layout, logger, run_id)
        if args.command == "compose":
            run_compose(config=config, layout=layout, logger=logger)
            return EXIT_OK
        if args.command == "validate":
            report = validate_sources(layout=layout, logger=logger)
            return EXIT_OK if report.valid else EXIT_VALIDATION_ERROR
        if args.command == "reset":
            reset_data(layout, logger=logger)
            return EXIT_OK
    except ConfigError as exc:
        log_event(logger, logging.ERROR, "config_invalid", str(exc))
        return EXIT_CONFIG_ERROR
    except SchemaError as exc:
        log_event(logger, logging.ERROR, "schema_invalid", str(exc), path=str(exc.path))
        return EXIT_SCHEMA_ERROR
    except ProviderHttpError as exc:
        log_event(
            logger,
            logging.ERROR,
            "discovery_aborted",
            "Discovery aborted; rerun to resume from the checkpoint",
            error=str(exc),
            error_type=type(exc).__name__,
        )
        return EXIT_RUN_ERROR

    raise ValueError(f"Unsupported command: {args.command}")


if __name__ == "__main__":
    raise SystemExit(main())

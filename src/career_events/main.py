"""CLI entrypoint for refresh, maintenance and inspection commands."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import List

from pydantic import ValidationError

from .cache import JsonFileStore, cache_stats
from .config import MAX_MONTHS, RuntimeConfig, build_runtime_config
from .errors import CareerEventsError
from .maintenance import run_events_agent
from .output import HEALTH_FILENAME, HTML_CACHE_FILENAME, URL_CACHE_FILENAME
from .provider_health import ProviderHealthTracker
from .providers.registry import PROVIDER_IDS
from .refresh import run_refresh
from .reporting import render_health_table, render_refresh_summary
from .settings import load_environment

logger = logging.getLogger("career_events")

QUIET_LOGGERS = ("httpx", "httpcore", "trafilatura")


def configure_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        force=True,
    )
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def _months(value: str) -> int:
    try:
        months = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid month count: {value!r}") from exc
    if not 1 <= months <= MAX_MONTHS:
        raise argparse.ArgumentTypeError(f"months must be between 1 and {MAX_MONTHS}")
    return months


def _load_config(args: argparse.Namespace) -> RuntimeConfig | None:
    load_environment()
    configure_logging(getattr(args, "verbose", False))
    try:
        return build_runtime_config(
            PROVIDER_IDS,
            months=getattr(args, "months", None),
            dry_run=getattr(args, "dry_run", False),
            skip_verify=getattr(args, "skip_verify", False),
            provider_filter=getattr(args, "provider", None),
            verbose=getattr(args, "verbose", False),
        )
    except ValidationError as exc:
        print(f"Invalid configuration: {exc}", file=sys.stderr)
        return None


def cmd_refresh(args: argparse.Namespace) -> int:
    config = _load_config(args)
    if config is None:
        return 1
    try:
        result = run_refresh(config)
    except CareerEventsError as exc:
        logger.error("Refresh aborted: %s", exc)
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    print(render_refresh_summary(result, verbose=config.verbose))
    if args.json:
        print(json.dumps(result.to_metadata(), indent=2, ensure_ascii=False))
    return 0


def cmd_agent(args: argparse.Namespace) -> int:
    config = _load_config(args)
    if config is None:
        return 1
    try:
        report = run_events_agent(config, max_rechecks=args.max_rechecks)
    except CareerEventsError as exc:
        logger.error("Agent pass aborted: %s", exc)
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    print(json.dumps(report.as_dict(), indent=2, ensure_ascii=False))
    return 0


def cmd_provider_health(args: argparse.Namespace) -> int:
    config = _load_config(args)
    if config is None:
        return 1
    tracker = ProviderHealthTracker(
        JsonFileStore(config.events_dir / HEALTH_FILENAME),
        degraded_after=config.health_degraded_after_failures,
        failed_after=config.health_failed_after_failures,
    )
    try:
        if args.reset:
            tracker.reset(args.reset)
            logger.info("Reset health for %s", args.reset)
        records = tracker.all(PROVIDER_IDS)
        summary = tracker.summary(PROVIDER_IDS)
    except CareerEventsError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    if args.json:
        payload = {
            "summary": summary,
            "providers": [record.model_dump(mode="json") for record in records],
        }
        print(json.dumps(payload, indent=2, ensure_ascii=False))
    else:
        print(render_health_table(records))
    return 0


def cmd_cache_stats(args: argparse.Namespace) -> int:
    config = _load_config(args)
    if config is None:
        return 1
    try:
        payload = {
            "url_cache": cache_stats(JsonFileStore(config.events_dir / URL_CACHE_FILENAME)),
            "html_cache": cache_stats(JsonFileStore(config.cache_dir / HTML_CACHE_FILENAME)),
        }
    except CareerEventsError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    print(json.dumps(payload, indent=2, ensure_ascii=False))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="career-events", description="Career events refresh pipeline")
    subparsers = parser.add_subparsers(dest="command", required=True)

    refresh_parser = subparsers.add_parser("events:refresh", help="Fetch, verify, dedupe and publish events")
    refresh_parser.add_argument("--months", type=_months, default=None, help="How far ahead to look (1-24)")
    refresh_parser.add_argument("--dry-run", action="store_true", help="Run everything but do not write events")
    refresh_parser.add_argument("--skip-verify", action="store_true", help="Skip live and content verification")
    refresh_parser.add_argument("--provider", choices=PROVIDER_IDS, default=None, help="Only run this provider")
    refresh_parser.add_argument("--verbose", action="store_true", help="Debug logging and rejection details")
    refresh_parser.add_argument("--json", action="store_true", help="Also print run metadata as JSON")
    refresh_parser.set_defaults(func=cmd_refresh)

    agent_parser = subparsers.add_parser("events:agent", help="Expire, re-check and prune published events")
    agent_parser.add_argument("--dry-run", action="store_true")
    agent_parser.add_argument("--max-rechecks", type=int, default=None)
    agent_parser.add_argument("--verbose", action="store_true")
    agent_parser.set_defaults(func=cmd_agent)

    health_parser = subparsers.add_parser("provider-health", help="Show or reset provider health records")
    health_parser.add_argument("--reset", choices=PROVIDER_IDS, default=None, metavar="NAME")
    health_parser.add_argument("--json", action="store_true")
    health_parser.set_defaults(func=cmd_provider_health)

    cache_parser = subparsers.add_parser("cache-stats", help="Show URL-check and HTML cache statistics")
    cache_parser.set_defaults(func=cmd_cache_stats)

    return parser


def main(argv: List[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    raise SystemExit(main())

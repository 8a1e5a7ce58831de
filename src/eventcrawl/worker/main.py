"""Crawler worker entrypoint: SQS consumer and operator commands.

Usage:
    eventcrawl run            # drain the queue until interrupted
    eventcrawl drain          # process one batch and exit
    eventcrawl crawl-all      # full scan of every crawl target
    eventcrawl policy         # print the crawl role's IAM policy
"""

from __future__ import annotations

import argparse
import json
import signal
import sys
import threading

import structlog

from eventcrawl.access.boundary import AccessBoundary
from eventcrawl.core.config import load_settings
from eventcrawl.core.exceptions import ConfigurationError
from eventcrawl.core.logging import configure_logging
from eventcrawl.crawler.factory import build_coordinator
from eventcrawl.models.crawl import CrawlResult

log = structlog.get_logger()


def _summary(result: CrawlResult) -> dict:
    return {
        "prefixes": len(result.outcomes),
        "failed_prefixes": result.failed_prefixes,
        "failed_objects": [f.model_dump() for f in result.failures],
        "ignored_events": result.ignored_events,
        "acknowledged": result.acknowledged,
    }


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="eventcrawl", description="Event-driven schema crawler")
    parser.add_argument("command", choices=["run", "drain", "crawl-all", "policy"])
    args = parser.parse_args(argv)

    try:
        settings = load_settings()
    except ConfigurationError as exc:
        print(f"configuration error: {exc}", file=sys.stderr)
        return 2
    configure_logging(settings.log_level, settings.log_format)

    if args.command == "policy":
        print(json.dumps(AccessBoundary.from_settings(settings).policy_document(), indent=2))
        return 0

    try:
        coordinator = build_coordinator(settings)
    except ConfigurationError as exc:
        log.error("configuration_invalid", error=str(exc))
        return 2

    if args.command == "drain":
        result = coordinator.drain()
        print(json.dumps(_summary(result), indent=2))
        return 1 if result.failed_prefixes else 0

    if args.command == "crawl-all":
        result = coordinator.crawl_all()
        print(json.dumps(_summary(result), indent=2))
        return 1 if result.failed_prefixes else 0

    stop = threading.Event()
    signal.signal(signal.SIGTERM, lambda *_: stop.set())
    signal.signal(signal.SIGINT, lambda *_: stop.set())
    coordinator.run(stop)
    return 0


if __name__ == "__main__":
    sys.exit(main())

"""Command line entry point for crawling a website into one text document."""

from __future__ import annotations

import argparse
import re
import signal
import sys
import threading
import time
from contextlib import contextmanager
from typing import Iterator, Optional, Sequence

from .spider import SpiderOptions, spider_website

_DURATION_PART = re.compile(r"(\d+\.?\d*|\.\d+)(ns|us|µs|μs|ms|s|m|h)")
_UNIT_SECONDS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "μs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}


def parse_duration(text: str) -> float:
    """Parse a duration such as ``1h30m`` or ``250ms`` into seconds."""
    sign = -1.0 if text.startswith("-") else 1.0
    body = text[1:] if text[:1] in ("+", "-") else text
    if body == "0":
        return 0.0
    if not body:
        raise ValueError(f"invalid duration {text!r}")

    total = 0.0
    pos = 0
    while pos < len(body):
        match = _DURATION_PART.match(body, pos)
        if match is None:
            raise ValueError(f"invalid duration {text!r}")
        total += float(match.group(1)) * _UNIT_SECONDS[match.group(2)]
        pos = match.end()
    return sign * total


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="webspider",
        description="Crawl a website and write its text content as one document.",
    )
    parser.add_argument("-url", "--url", default="", help="Target URL to start crawling from")
    parser.add_argument("-max-pages", "--max-pages", type=int, default=100,
                        help="Maximum number of pages to crawl")
    parser.add_argument("-max-depth", "--max-depth", type=int, default=3,
                        help="Maximum crawl depth")
    parser.add_argument("-timeout", "--timeout", type=parse_duration, default=30.0,
                        help="Timeout for individual page requests, e.g. 30s")
    parser.add_argument("-concurrency", "--concurrency", type=int, default=5,
                        help="Number of concurrent crawlers")
    parser.add_argument("-delay", "--delay", type=parse_duration, default=1.0,
                        help="Delay between requests per crawler, e.g. 1s")
    parser.add_argument("-output", "--output", default="",
                        help="Output file path (default: stdout)")
    return parser


@contextmanager
def _interrupt_watch() -> Iterator[threading.Event]:
    """Record SIGINT/SIGTERM in an event while the block runs."""
    interrupted = threading.Event()
    if threading.current_thread() is not threading.main_thread():
        yield interrupted
        return

    def handler(signum, frame):
        print("\nReceived interrupt signal, shutting down...")
        interrupted.set()

    previous = {sig: signal.signal(sig, handler) for sig in (signal.SIGINT, signal.SIGTERM)}
    try:
        yield interrupted
    finally:
        for sig, old in previous.items():
            if old is not None:
                signal.signal(sig, old)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the crawler from the command line and return the exit status."""
    args = _build_parser().parse_args(argv)

    if not args.url:
        print("Please provide a target URL using the -url flag", file=sys.stderr)
        return 1

    options = SpiderOptions(
        max_pages=args.max_pages,
        max_depth=args.max_depth,
        timeout=args.timeout,
        concurrency=args.concurrency,
        delay_between=args.delay,
        crawl_subdomain=True,
    )

    with _interrupt_watch() as interrupted:
        print(f"Starting crawl of {args.url}...")
        start = time.monotonic()
        try:
            result = spider_website(args.url, options)
        except ValueError as exc:
            print(f"Crawl failed: {exc}", file=sys.stderr)
            return 1
        if interrupted.is_set():
            print("Crawl was interrupted.", file=sys.stderr)
            return 1

    duration = time.monotonic() - start
    print(f"Crawl completed in {duration:.3f}s", file=sys.stderr)
    print(f"Pages crawled successfully: {result.successful_pages}", file=sys.stderr)
    print(f"Pages failed: {len(result.failed_pages)}", file=sys.stderr)

    if args.output:
        try:
            output = open(args.output, "w", encoding="utf-8")
        except OSError as exc:
            print(f"Failed to create output file '{args.output}': {exc}", file=sys.stderr)
            return 1
        try:
            with output:
                output.write(result.content)
        except OSError as exc:
            print(f"Failed to write output: {exc}", file=sys.stderr)
            return 1
    else:
        sys.stdout.write(result.content)
        sys.stdout.flush()

    if result.failed_pages:
        print("\nFailed Pages:", file=sys.stderr)
        for url, error in result.failed_pages.items():
            print(f"  {url}: {error}", file=sys.stderr)

    if result.detected_file_urls:
        print("\nDetected File URLs (not crawled):", file=sys.stderr)
        for file_url in result.detected_file_urls:
            print(f"  {file_url}", file=sys.stderr)

    return 0


if __name__ == "__main__":
    sys.exit(main())
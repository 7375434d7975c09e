"""Crawl a whole site page by page, following internal links up to a depth."""

from __future__ import annotations

import logging
import queue
import re
import threading
import time
from dataclasses import dataclass, field
from typing import Optional, Union
from urllib.parse import SplitResult, parse_qs, unquote, urljoin, urlsplit, urlunsplit

from .crawl import CrawlError, CrawlOptions, CrawlResult, crawl_website

logger = logging.getLogger(__name__)

# How long the dispatcher waits for a new job before checking whether the crawl is idle.
_POLL_INTERVAL = 0.05

_FILE_EXTENSIONS = frozenset({
    ".pdf", ".doc", ".docx",
    ".xls", ".xlsx", ".ppt", ".pptx",
    ".zip", ".rar", ".gz", ".tar",
    ".svg", ".png", ".jpg", ".jpeg", ".gif",
})

# Whitespace here is the ASCII set only.
_SANITIZE = re.compile(r"""^https?://[^\t\n\f\r "')\]}]+""")
_MARKDOWN_LINK = re.compile(r"\[([^\]]*)\]\([^)]*\)")

UrlLike = Union[str, SplitResult]


@dataclass
class SpiderOptions:
    """Settings for a site crawl. Timeout and delay are in seconds."""

    max_pages: int = 100
    max_depth: int = 3
    crawl_subdomain: bool = True
    timeout: float = 30.0
    concurrency: int = 5
    delay_between: float = 1.0


@dataclass
class SpiderResult:
    """Everything gathered by a site crawl. Processing time is in seconds."""

    content: str = ""
    crawled_urls: list[str] = field(default_factory=list)
    detected_file_urls: list[str] = field(default_factory=list)
    total_pages: int = 0
    successful_pages: int = 0
    failed_pages: dict[str, str] = field(default_factory=dict)
    processing_time: float = 0.0


@dataclass(frozen=True)
class _Job:
    url: str
    depth: int


def default_spider_options() -> SpiderOptions:
    """Return the default spider options."""
    return SpiderOptions()


class _Spider:
    """Dispatches page crawls to worker threads and collects their results."""

    def __init__(self, target_url: str, parsed: SplitResult, options: SpiderOptions) -> None:
        self.target_url = target_url
        self.parsed = parsed
        self.options = options
        self.max_pages = max(options.max_pages, 1)
        self.result = SpiderResult()
        self.visited: set[str] = set()
        self.lock = threading.Lock()
        self.jobs: queue.Queue[_Job] = queue.Queue(maxsize=self.max_pages * 2)
        self.slots = threading.Semaphore(max(options.concurrency, 1))
        self.active = 0
        self.threads: list[threading.Thread] = []

    def run(self) -> SpiderResult:
        self.jobs.put(_Job(self.target_url, 0))
        while True:
            try:
                job = self.jobs.get(timeout=_POLL_INTERVAL)
            except queue.Empty:
                with self.lock:
                    idle = self.active == 0
                if idle and self.jobs.empty():
                    logger.debug("No active workers and no pending jobs, finishing crawl")
                    break
                continue

            if self.result.total_pages >= self.max_pages or job.depth > self.options.max_depth:
                continue

            with self.lock:
                if job.url in self.visited:
                    continue
                self.visited.add(job.url)
                self.result.total_pages += 1

            self.slots.acquire()
            with self.lock:
                self.active += 1
            thread = threading.Thread(target=self._work, args=(job,), daemon=True)
            self.threads.append(thread)
            thread.start()

            if self.result.total_pages >= self.max_pages:
                logger.debug(
                    "Reached maximum pages limit (max_pages=%d, total_pages=%d)",
                    self.max_pages,
                    self.result.total_pages,
                )
                break

        for thread in self.threads:
            thread.join()

        with self.lock:
            if self.result.detected_file_urls:
                unique = list(dict.fromkeys(self.result.detected_file_urls))
                logger.info("Detected file URLs that were not crawled: %s", unique)
        return self.result

    def _work(self, job: _Job) -> None:
        try:
            self._process(job)
        finally:
            with self.lock:
                self.active -= 1
            self.slots.release()

    def _process(self, job: _Job) -> None:
        logger.debug("Processing URL %s (depth=%d)", job.url, job.depth)
        if self.options.delay_between > 0:
            time.sleep(self.options.delay_between)

        crawl_options = CrawlOptions(
            timeout=self.options.timeout,
            user_agent="",
            remove_navigation=False,
            remove_footer=False,
            remove_header=False,
            remove_popups=False,
            extract_main_only=False,
            follow_redirects=True,
        )
        try:
            page = crawl_website(job.url, crawl_options)
        except CrawlError as exc:
            with self.lock:
                self.result.failed_pages[job.url] = str(exc)
            logger.debug("Failed to crawl URL %s: %s", job.url, exc)
            return

        with self.lock:
            cleaned = remove_markdown_links(page.content)
            self.result.content += f"\n\n# URL: {job.url}\n\n{cleaned}"
            self.result.crawled_urls.append(job.url)
            self.result.successful_pages += 1
        logger.debug("Successfully crawled URL %s (depth=%d)", job.url, job.depth)

        if job.depth >= self.options.max_depth:
            return

        crawlable, files = extract_crawlable_links(
            page, job.url, self.parsed, self.options.crawl_subdomain
        )
        logger.debug(
            "Extracted links from %s: %d crawlable, %d files",
            job.url,
            len(crawlable),
            len(files),
        )
        with self.lock:
            self.result.detected_file_urls.extend(files)

        for link in crawlable:
            try:
                self.jobs.put_nowait(_Job(link, job.depth + 1))
                logger.debug("Added link to queue: %s (depth=%d)", link, job.depth + 1)
            except queue.Full:
                logger.debug("Queue full, skipping link: %s", link)


def spider_website(target_url: str, options: Optional[SpiderOptions] = None) -> SpiderResult:
    """Crawl ``target_url`` and the pages it links to; raise ValueError for a bad URL."""
    logger.debug("Starting spider for URL: %s", target_url)
    if options is None:
        options = default_spider_options()

    start = time.monotonic()
    try:
        parsed = urlsplit(target_url)
    except ValueError as exc:
        raise ValueError(f"failed to parse target URL: {exc}") from exc

    result = _Spider(target_url, parsed, options).run()
    result.processing_time = time.monotonic() - start
    return result


def _split(url: UrlLike) -> SplitResult:
    return url if isinstance(url, SplitResult) else urlsplit(url)


def _host(url: SplitResult) -> str:
    return url.netloc.rpartition("@")[2]


def extract_crawlable_links(
    crawl_result: CrawlResult,
    base_url: str,
    parsed_base_url: UrlLike,
    crawl_subdomain: bool,
) -> tuple[list[str], list[str]]:
    """Split a page's internal links into pages to crawl and file downloads."""
    parsed_base = _split(parsed_base_url)
    crawlable: dict[str, None] = {}
    files: dict[str, None] = {}

    for link in crawl_result.links.internal:
        href = link.href.strip()
        if not href or href.startswith("#"):
            continue
        sanitized = sanitize_url(href)
        if not sanitized:
            continue
        try:
            resolved = urlsplit(sanitized)
            if not resolved.scheme:
                resolved = urlsplit(urljoin(base_url, sanitized))
        except ValueError:
            continue
        if not should_crawl_url(resolved, parsed_base, crawl_subdomain):
            continue
        clean = urlunsplit(resolved._replace(fragment=""))
        if is_file_url(resolved):
            files[clean] = None
        else:
            crawlable[clean] = None

    return list(crawlable), list(files)


def sanitize_url(raw_url: str) -> str:
    """Return the leading http(s) URL in ``raw_url``, cut at the first stray character."""
    match = _SANITIZE.match(raw_url.strip())
    return match.group(0) if match else ""


def is_file_url(url: UrlLike) -> bool:
    """Tell whether a URL points at a downloadable file rather than a page."""
    parts = _split(url)
    if parse_qs(parts.query, keep_blank_values=True).get("download", [""])[0] == "1":
        return True

    path = unquote(parts.path).lower()
    query = parts.query.lower()

    if any(path.endswith(ext) for ext in _FILE_EXTENSIONS):
        return True
    if "/resource/" in path:
        return True
    return "item=form" in query or "item=statute" in query


def should_crawl_url(target_url: UrlLike, base_url: UrlLike, crawl_subdomain: bool) -> bool:
    """Tell whether ``target_url`` is on the same site as ``base_url``."""
    target_host = _host(_split(target_url)).lower()
    base_host = _host(_split(base_url)).lower()

    if target_host == base_host:
        return True
    if crawl_subdomain:
        target_clean = target_host.removeprefix("www.")
        base_clean = base_host.removeprefix("www.")
        if target_clean.endswith("." + base_clean) or base_clean.endswith("." + target_clean):
            return True
    return False


def remove_markdown_links(content: str) -> str:
    """Replace markdown links with their text."""
    return _MARKDOWN_LINK.sub(r"\1", content)
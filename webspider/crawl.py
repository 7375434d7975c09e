"""Fetch a single page, strip page furniture and extract its text and links."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Optional, Union
from urllib.parse import urljoin, urlsplit

import requests
from bs4 import BeautifulSoup, NavigableString, Tag
from bs4.element import PreformattedString

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
)

_ACCEPT = "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"
_ACCEPT_LANGUAGE = "en-US,en;q=0.5"

_POPUP_SELECTORS = (
    # Cookie consent banners
    "[class*='cookie']", "[id*='cookie']",
    "[class*='consent']", "[id*='consent']",
    "[class*='gdpr']", "[id*='gdpr']",
    "[class*='privacy']", "[id*='privacy']",
    # Modal overlays
    "[class*='modal']", "[id*='modal']",
    "[class*='overlay']", "[id*='overlay']",
    "[class*='popup']", "[id*='popup']",
    "[class*='lightbox']", "[id*='lightbox']",
    # Newsletter signups
    "[class*='newsletter']", "[id*='newsletter']",
    "[class*='subscribe']", "[id*='subscribe']",
    "[class*='signup']", "[id*='signup']",
    # Social sharing overlays
    "[class*='share-overlay']", "[id*='share-overlay']",
    "[class*='social-overlay']", "[id*='social-overlay']",
    # Common overlay patterns
    ".overlay", ".modal", ".popup", ".lightbox",
    "#overlay", "#modal", "#popup", "#lightbox",
    ".fixed", "[style*='position: fixed']",
    "[style*='z-index']",
)

_POPUP_KEYWORDS = (
    "cookie", "consent", "gdpr", "privacy", "modal", "overlay",
    "popup", "newsletter", "subscribe", "signup", "lightbox",
)

_NAV_SELECTORS = (
    "nav", "navigation", ".nav", ".navigation",
    "[role='navigation']", "[class*='nav']", "[id*='nav']",
    ".menu", "[class*='menu']", "[id*='menu']",
    ".sidebar", "[class*='sidebar']", "[id*='sidebar']",
    ".breadcrumb", "[class*='breadcrumb']", "[id*='breadcrumb']",
)

_HEADER_SELECTORS = (
    "header", ".header", "#header",
    "[class*='header']", "[id*='header']",
    ".top-bar", ".topbar", "[class*='top-bar']",
    ".site-header", "[class*='site-header']",
)

_FOOTER_SELECTORS = (
    "footer", ".footer", "#footer",
    "[class*='footer']", "[id*='footer']",
    ".site-footer", "[class*='site-footer']",
    ".bottom", "[class*='bottom']",
)

_UNWANTED_SELECTORS = (
    # Scripts and styles
    "script", "style", "noscript",
    # Ads and tracking
    ".ad", ".ads", "[class*='advertisement']",
    "[class*='google-ad']", "[class*='adsense']",
    "iframe[src*='doubleclick']", "iframe[src*='googlesyndication']",
    # Social widgets
    ".social-widget", "[class*='social-share']",
    ".facebook-widget", ".twitter-widget",
    # Comments
    ".comments", "[class*='comment']", "[id*='comment']",
    ".disqus", "[class*='disqus']",
    # Related/recommended content
    ".related", "[class*='related']",
    ".recommended", "[class*='recommended']",
    ".suggestions", "[class*='suggestions']",
)

_MAIN_SELECTORS = (
    "main", "[role='main']", ".main", "#main",
    "article", ".article", "#article",
    ".content", "#content", ".post", "#post",
    ".entry", "#entry", ".page-content",
    "[class*='main-content']", "[class*='page-content']",
)

_HEADINGS = {"h1", "h2", "h3", "h4", "h5", "h6"}

# ASCII whitespace only, matching the classic \s of RE2.
_MULTIPLE_SPACES = re.compile(r"[\t\n\f\r ]+")
_MULTIPLE_NEWLINES = re.compile(r"\n[\t\n\f\r ]*\n[\t\n\f\r ]*\n")

_READABLE_TAGS = ("p", "pre", "blockquote")
_MIN_PARAGRAPH_LENGTH = 25


class CrawlError(Exception):
    """Raised when a page cannot be fetched or its content cannot be extracted."""


@dataclass
class CrawlOptions:
    """Settings for fetching and cleaning one page. Timeout is in seconds."""

    timeout: float = 30.0
    user_agent: str = DEFAULT_USER_AGENT
    remove_navigation: bool = True
    remove_footer: bool = True
    remove_header: bool = True
    remove_popups: bool = True
    extract_main_only: bool = True
    follow_redirects: bool = True


@dataclass
class LinkData:
    """A hyperlink found on a page."""

    href: str
    text: str
    base_domain: str


@dataclass
class Links:
    """Links on a page, split by whether they point at the page's own host."""

    internal: list[LinkData] = field(default_factory=list)
    external: list[LinkData] = field(default_factory=list)


@dataclass
class CrawlResult:
    """The outcome of crawling a single page."""

    content: str
    crawled_urls: list[str]
    pages_crawled: int
    page_errors: dict[str, str]
    links: Links


def default_crawl_options() -> CrawlOptions:
    """Return the default crawl options."""
    return CrawlOptions()


def crawl_website(target_url: str, options: Optional[CrawlOptions] = None) -> CrawlResult:
    """Fetch ``target_url`` and return its cleaned text and links."""
    if options is None:
        options = default_crawl_options()

    headers = {
        # A None value stops requests from sending its own User-Agent.
        "User-Agent": options.user_agent or None,
        "Accept": _ACCEPT,
        "Accept-Language": _ACCEPT_LANGUAGE,
    }
    timeout = options.timeout if options.timeout and options.timeout > 0 else None

    try:
        response = requests.get(
            target_url,
            headers=headers,
            timeout=timeout,
            allow_redirects=options.follow_redirects,
        )
    except requests.exceptions.InvalidURL as exc:
        raise CrawlError(f"failed to create request: {exc}") from exc
    except requests.RequestException as exc:
        raise CrawlError(f"failed to fetch URL: {exc}") from exc

    with response:
        if response.status_code != 200:
            raise CrawlError(f"received non-OK status code: {response.status_code}")
        body = response.content

    return parse_page(body, target_url, options)


def parse_page(
    html: Union[str, bytes],
    target_url: str,
    options: Optional[CrawlOptions] = None,
) -> CrawlResult:
    """Clean an HTML document and extract its text and links."""
    if options is None:
        options = default_crawl_options()

    soup = BeautifulSoup(html, "html.parser")

    if options.remove_popups:
        remove_popups_and_overlays(soup)
    if options.remove_navigation:
        remove_navigation_elements(soup)
    if options.remove_header:
        remove_header_elements(soup)
    if options.remove_footer:
        remove_footer_elements(soup)
    remove_unwanted_elements(soup)

    if options.extract_main_only:
        try:
            content, links = extract_main_content(soup, target_url)
        except CrawlError:
            content, links = extract_content_manually(soup, target_url)
    else:
        content, links = extract_content_manually(soup, target_url)

    return CrawlResult(
        content=content,
        crawled_urls=[target_url],
        pages_crawled=1,
        page_errors={},
        links=links,
    )


def _remove_all(soup: Tag, selectors: tuple[str, ...]) -> None:
    for selector in selectors:
        for element in soup.select(selector):
            element.extract()


def _attribute_text(element: Tag, name: str) -> str:
    value = element.get(name)
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return " ".join(value)
    return str(value)


def remove_popups_and_overlays(soup: Tag) -> None:
    """Remove cookie banners, modals, overlays and similar elements."""
    for selector in _POPUP_SELECTORS:
        for element in soup.select(selector):
            style = element.get("style")
            if style is not None and "z-index" in _attribute_text(element, "style"):
                element.extract()
                continue
            class_ = _attribute_text(element, "class")
            id_ = _attribute_text(element, "id")
            text = element.get_text().lower()
            if is_popup_element(class_, id_, text):
                element.extract()


def remove_navigation_elements(soup: Tag) -> None:
    """Remove navigation bars, menus, sidebars and breadcrumbs."""
    _remove_all(soup, _NAV_SELECTORS)


def remove_header_elements(soup: Tag) -> None:
    """Remove page headers and top bars."""
    _remove_all(soup, _HEADER_SELECTORS)


def remove_footer_elements(soup: Tag) -> None:
    """Remove page footers."""
    _remove_all(soup, _FOOTER_SELECTORS)


def remove_unwanted_elements(soup: Tag) -> None:
    """Remove scripts, styles, ads, social widgets, comments and related content."""
    _remove_all(soup, _UNWANTED_SELECTORS)


def is_popup_element(class_: str, id_: str, text: str) -> bool:
    """Tell whether class, id or text mention a popup-like keyword."""
    combined = f"{class_} {id_} {text}".lower()
    return any(keyword in combined for keyword in _POPUP_KEYWORDS)


def _readable_root(soup: Tag) -> Tag:
    """Find the element holding the bulk of the page's paragraph text."""
    scores: dict[int, float] = {}
    nodes: dict[int, Tag] = {}
    order: list[int] = []

    def add(node: Optional[Tag], amount: float) -> None:
        if node is None or not isinstance(node, Tag) or isinstance(node, BeautifulSoup):
            return
        key = id(node)
        if key not in scores:
            scores[key] = 0.0
            nodes[key] = node
            order.append(key)
        scores[key] += amount

    for block in soup.find_all(_READABLE_TAGS):
        text = block.get_text(" ", strip=True)
        if len(text) < _MIN_PARAGRAPH_LENGTH:
            continue
        score = 1 + text.count(",") + min(len(text) / 100, 3)
        parent = block.parent
        add(parent, score)
        if parent is not None:
            add(parent.parent, score / 2)

    if not order:
        raise CrawlError("no readable content found")
    best = max(order, key=lambda key: scores[key])
    return nodes[best]


def extract_main_content(soup: Tag, target_url: str) -> tuple[str, Links]:
    """Extract the article body of a page; raise CrawlError if there is none."""
    root = _readable_root(soup)
    article_html = f"<div>{root}</div>"
    content_doc = BeautifulSoup(article_html, "html.parser")
    links = extract_links(content_doc, target_url)
    return html_to_clean_text(content_doc), links


def extract_content_manually(soup: Tag, target_url: str) -> tuple[str, Links]:
    """Extract text and links from the main content area, or the whole body."""
    selection: Optional[Tag] = None
    for selector in _MAIN_SELECTORS:
        selection = soup.select_one(selector)
        if selection is not None:
            break
    if selection is None:
        selection = soup.find("body") or soup

    return html_to_clean_text(selection), extract_links(selection, target_url)


def _host(url: str) -> str:
    return urlsplit(url).netloc.rpartition("@")[2]


def extract_links(element: Tag, base_url: str) -> Links:
    """Collect the links under ``element``, resolved against ``base_url``."""
    links = Links()
    try:
        base_host = _host(base_url)
    except ValueError:
        return links

    for anchor in element.find_all("a", href=True):
        href = _attribute_text(anchor, "href")
        if not href:
            continue
        text = anchor.get_text().strip() or href
        try:
            resolved = urljoin(base_url, href)
            host = _host(resolved)
        except ValueError:
            continue

        link = LinkData(href=resolved, text=text, base_domain=host)
        if host == base_host:
            links.internal.append(link)
        else:
            links.external.append(link)
    return links


def _render(node: Tag) -> str:
    name = node.name
    text = node.get_text().strip()
    if name in _HEADINGS:
        return f"\n\n{'#' * int(name[1])} {text}\n\n"
    if name == "p":
        return f"\n{text}\n"
    if name == "br":
        return "\n"
    if name == "li":
        return f"- {text}\n"
    if name == "blockquote":
        return f"\n> {text}\n"
    if name == "code":
        return f"`{text}`"
    if name == "pre":
        return f"\n```\n{text}\n```\n"
    return f"{text} " if text else ""


def html_to_clean_text(element: Tag) -> str:
    """Turn the children of ``element`` into compact markdown-like text."""
    parts: list[str] = []
    for child in element.contents:
        if isinstance(child, Tag):
            parts.append(_render(child))
        elif isinstance(child, NavigableString) and not isinstance(child, PreformattedString):
            text = child.strip()
            if text:
                parts.append(f"{text} ")

    content = _MULTIPLE_SPACES.sub(" ", "".join(parts))
    content = _MULTIPLE_NEWLINES.sub("\n\n", content)
    return content.strip()
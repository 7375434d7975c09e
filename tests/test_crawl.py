import pytest
import requests
import responses
from bs4 import BeautifulSoup

from webspider.crawl import (
    CrawlError,
    CrawlOptions,
    CrawlResult,
    Links,
    crawl_website,
    default_crawl_options,
    extract_content_manually,
    extract_links,
    extract_main_content,
    html_to_clean_text,
    is_popup_element,
    parse_page,
    remove_footer_elements,
    remove_header_elements,
    remove_navigation_elements,
    remove_popups_and_overlays,
    remove_unwanted_elements,
)

PARAGRAPH_ONE = "The quick brown fox jumps over the lazy dog, again and again."
PARAGRAPH_TWO = "Spiders walk the web, collecting pages, links and plenty of text."

PAGE = f"""
<html>
<head><title>Test</title><script>var x = 1;</script></head>
<body>
<nav>Site menu</nav>
<header>Banner heading</header>
<article>
<p>{PARAGRAPH_ONE}</p>
<p>{PARAGRAPH_TWO} See the <a href="/docs">docs</a>.</p>
</article>
<footer>Footer text</footer>
</body>
</html>
"""


def _soup(html):
    return BeautifulSoup(html, "html.parser")


def test_default_crawl_options_enable_all_cleanup():
    options = default_crawl_options()
    assert options.timeout == 30
    assert options.user_agent.startswith("Mozilla/5.0")
    assert all(
        [
            options.remove_navigation,
            options.remove_footer,
            options.remove_header,
            options.remove_popups,
            options.extract_main_only,
            options.follow_redirects,
        ]
    )


@pytest.mark.parametrize(
    "class_, id_, text, expected",
    [
        ("cookie-banner", "", "", True),
        ("", "NEWSLETTER", "", True),
        ("", "", "please subscribe now", True),
        ("content", "main", "hello world", False),
    ],
)
def test_is_popup_element(class_, id_, text, expected):
    assert is_popup_element(class_, id_, text) is expected


def test_remove_popups_removes_z_index_and_modal():
    soup = _soup(
        '<div style="z-index: 99">Layer</div>'
        '<div class="modal">Sign in</div>'
        '<div class="fixed">Article body</div>'
    )
    remove_popups_and_overlays(soup)
    assert soup.get_text() == "Article body"


def test_remove_navigation_elements():
    soup = _soup('<nav>Links</nav><div class="sidebar">Side</div><p>Keep</p>')
    remove_navigation_elements(soup)
    assert soup.find("nav") is None
    assert soup.get_text() == "Keep"


def test_remove_header_elements():
    soup = _soup('<header>Top</header><div id="page-header">Head</div><p>Keep</p>')
    remove_header_elements(soup)
    assert soup.get_text() == "Keep"


def test_remove_footer_elements():
    soup = _soup('<footer>End</footer><div class="bottom">Low</div><p>Keep</p>')
    remove_footer_elements(soup)
    assert soup.get_text() == "Keep"


def test_remove_unwanted_elements():
    soup = _soup(
        "<script>alert(1)</script><style>p{}</style>"
        '<div class="comments">Nice</div><div class="related">More</div><p>Keep</p>'
    )
    remove_unwanted_elements(soup)
    assert soup.find("script") is None
    assert soup.find("style") is None
    assert soup.get_text() == "Keep"


def test_extract_links_splits_internal_and_external():
    soup = _soup(
        '<a href="/about">About</a>'
        '<a href="https://other.org/x"></a>'
        '<a href="">empty</a>'
    )
    links = extract_links(soup, "https://example.com/blog/post")
    assert len(links.internal) == 1
    assert links.internal[0].href == "https://example.com/about"
    assert links.internal[0].text == "About"
    assert links.internal[0].base_domain == "example.com"
    assert len(links.external) == 1
    assert links.external[0].text == "https://other.org/x"
    assert links.external[0].base_domain == "other.org"


def test_html_to_clean_text_heading_and_paragraph():
    soup = _soup("<div><h2>Title</h2><p>Body</p></div>")
    assert html_to_clean_text(soup.div) == "## Title Body"


def test_html_to_clean_text_pre_block_is_fenced():
    soup = _soup("<div><pre>x = 1</pre></div>")
    text = html_to_clean_text(soup.div)
    assert text.startswith("```")
    assert text.endswith("```")
    assert "x = 1" in text


def test_html_to_clean_text_skips_comments_and_collapses_whitespace():
    soup = _soup("<div><!-- hidden -->  shown\n\n<ul><li>one</li>\n<li>two</li></ul></div>")
    text = html_to_clean_text(soup.div)
    assert "hidden" not in text
    assert text.startswith("shown")
    assert "\n" not in text
    assert "  " not in text
    assert text == text.strip()


def test_extract_content_manually_prefers_main():
    soup = _soup(
        '<body><div>outside</div><main><p>inside</p><a href="/x">x</a></main></body>'
    )
    content, links = extract_content_manually(soup, "https://example.com/")
    assert content.startswith("inside")
    assert "outside" not in content
    assert [link.text for link in links.internal] == ["x"]


def test_extract_content_manually_falls_back_to_body():
    soup = _soup("<body><div>only text</div></body>")
    content, links = extract_content_manually(soup, "https://example.com/")
    assert content == "only text"
    assert links == Links()


def test_extract_main_content_picks_article():
    soup = _soup(
        f"<body><div><p>short</p></div>"
        f"<article><p>{PARAGRAPH_ONE}</p><p>{PARAGRAPH_TWO}</p></article></body>"
    )
    content, _ = extract_main_content(soup, "https://example.com/")
    assert PARAGRAPH_ONE in content
    assert PARAGRAPH_TWO in content
    assert "short" not in content


def test_extract_main_content_raises_without_paragraphs():
    soup = _soup("<body><div>tiny</div></body>")
    with pytest.raises(CrawlError):
        extract_main_content(soup, "https://example.com/")


def test_parse_page_with_defaults_cleans_page():
    result = parse_page(PAGE, "https://example.com/page")
    assert isinstance(result, CrawlResult)
    assert PARAGRAPH_ONE in result.content
    for furniture in ("Site menu", "Banner heading", "Footer text", "var x"):
        assert furniture not in result.content
    assert [link.base_domain for link in result.links.internal] == ["example.com"]
    assert result.links.external == []
    assert result.crawled_urls == ["https://example.com/page"]
    assert result.pages_crawled == 1
    assert result.page_errors == {}


def test_parse_page_without_cleanup_keeps_navigation():
    options = CrawlOptions(
        remove_navigation=False,
        remove_footer=False,
        remove_header=False,
        remove_popups=False,
        extract_main_only=False,
    )
    result = parse_page(PAGE, "https://example.com/page", options)
    assert PARAGRAPH_ONE in result.content
    assert "var x" not in result.content


def test_parse_page_manual_extraction_uses_article():
    options = CrawlOptions(extract_main_only=False)
    result = parse_page(PAGE, "https://example.com/page", options)
    assert PARAGRAPH_TWO in result.content
    assert "Site menu" not in result.content


def test_crawl_website_fetches_and_parses():
    url = "https://example.com/page"
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, url, body=PAGE, status=200, content_type="text/html")
        result = crawl_website(url)
        sent = rsps.calls[0].request.headers
    assert result.crawled_urls == [url]
    assert PARAGRAPH_ONE in result.content
    assert sent["User-Agent"] == default_crawl_options().user_agent
    assert sent["Accept-Language"] == "en-US,en;q=0.5"


def test_crawl_website_non_ok_status():
    url = "https://example.com/missing"
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, url, body="nope", status=404)
        with pytest.raises(CrawlError, match="received non-OK status code: 404"):
            crawl_website(url)


def test_crawl_website_connection_error():
    url = "https://example.com/down"
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, url, body=requests.ConnectionError("boom"))
        with pytest.raises(CrawlError, match="failed to fetch URL"):
            crawl_website(url, CrawlOptions(timeout=5))
# webspider

`webspider` starts at one URL and fetches it. It then follows the links it finds
to other pages on the same host, up to a set depth and a set number of pages.
The text of every page it fetches goes into one document, and each page begins
with a `# URL: ...` heading.

From each page the crawler removes scripts, styles, ads, social widgets,
comment sections and "related content" blocks. It then takes the page's main
content area. That is the first element matching `main`, `article`,
`.content`, `#content` or a similar selector, or the whole `<body>` if none
matches. This area is turned into plain, markdown-like text: headings become
`#` lines, list items become `- ` lines, `<pre>` becomes a fenced block, and
markdown links are reduced to their text.

Links to files are not fetched. These include PDFs, office documents,
archives, images, paths containing `/resource/`, and URLs with `download=1`.
They are collected separately as detected file URLs.

## Installation

```
pip install .
```

To run the tests as well:

```
pip install ".[test]"
pytest
```

## Command line

```
webspider -url https://example.com
```

Options may be given with one dash or two (`-max-pages` or `--max-pages`):

| Option          | Default | Meaning                                      |
|-----------------|---------|----------------------------------------------|
| `-url`          | —       | URL to start crawling from (required)        |
| `-max-pages`    | `100`   | Maximum number of pages to crawl             |
| `-max-depth`    | `3`     | Maximum link depth from the start page       |
| `-timeout`      | `30s`   | Timeout for each page request                |
| `-concurrency`  | `5`     | Number of pages fetched at the same time     |
| `-delay`        | `1s`    | Delay before each request, per worker        |
| `-output`       | stdout  | File to write the collected content to       |

Durations take forms such as `500ms`, `2s`, `1m30s` or `1h`, and `0` turns the
delay off. Pages that fail to load still count towards `-max-pages`.

The collected content goes to standard output, or to the file named by
`-output`. A summary goes to standard error. It gives the time taken, the
number of pages fetched, each failed page with its error, and the file URLs
that were found but not crawled.

The exit status is 0 on success. It is 1 in these cases: no `-url` was given,
the output file could not be written, or the crawl was interrupted with
Ctrl+C or SIGTERM. An interrupt does not stop pages already being fetched.
The crawl runs to its end and the program then exits without writing the
content.

Example:

```
webspider -url https://example.com -max-pages 20 -max-depth 2 -delay 500ms -output site.md
```

## Library use

Crawl a whole site:

```python
from webspider.spider import SpiderOptions, spider_website

result = spider_website("https://example.com", SpiderOptions(max_pages=10, max_depth=1))
print(result.content)
print(result.successful_pages, "of", result.total_pages, "pages crawled")
for url, error in result.failed_pages.items():
    print("failed:", url, error)
print(result.detected_file_urls)
print(f"{result.processing_time:.2f}s")
```

If no options are passed, `default_spider_options()` is used. `SpiderOptions`
holds `max_pages`, `max_depth`, `crawl_subdomain`, `timeout`, `concurrency` and
`delay_between`. Times are in seconds.

The link helpers can be used on their own: `sanitize_url`, `is_file_url`,
`should_crawl_url`, `extract_crawlable_links` and `remove_markdown_links`.

Fetch and clean a single page:

```python
from webspider.crawl import crawl_website, default_crawl_options

page = crawl_website("https://example.com/article", default_crawl_options())
print(page.content)
for link in page.links.internal:
    print(link.href, link.text)
```

With the default `CrawlOptions`, `crawl_website` does more cleaning than the
site crawl does. It also removes navigation, headers, footers, cookie banners
and pop-ups. It then picks the element that holds most of the page's paragraph
text as the article body. If no such element is found, it falls back to the
main content area.

`crawl_website` raises `CrawlError` when the request fails or when the server
answers with a status other than 200. To clean HTML you already have, without
fetching it, call `parse_page(html, target_url, options)`.

## What it does not do

- It does not read `robots.txt` and does not limit its request rate beyond the
  per-worker delay.
- It does not run JavaScript. Pages that build their content in the browser
  come out empty or partial.
- It does not download the file URLs it detects. It only lists them.
- Site crawls follow only links on the exact host of the start URL. Links to
  other hosts and subdomains are not followed.
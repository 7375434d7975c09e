"""Crawl a website and collect the cleaned text of its pages."""

__version__ = "0.1.0"
__all__ = ["crawl", "spider", "cli"]
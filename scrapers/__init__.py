"""
Scrapers Module
文章抓取与正文抽取
"""
from .article_scraper import ArticleScraper, MockSite
from .html_extract import ExtractedPage, extract_page, normalize_text

__all__ = [
    "ArticleScraper",
    "MockSite",
    "ExtractedPage",
    "extract_page",
    "normalize_text",
]

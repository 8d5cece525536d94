"""
HTML Extraction
从原始 HTML 中提取标题、正文与元数据 (BeautifulSoup + lxml)
"""
from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, Iterable, List, Optional
from urllib.parse import unquote, urlparse

from bs4 import BeautifulSoup, Tag

from utils.exceptions import ParseError


NOISE_TAGS = ["script", "style", "nav", "header", "footer", "aside", "form", "iframe", "noscript"]
NOISE_MARKERS = ("sidebar", "comment", "share", "related", "promo")

BLOCK_TAGS = [
    "p", "div", "section", "article", "main", "li", "ul", "ol",
    "h1", "h2", "h3", "h4", "h5", "h6", "blockquote", "pre", "br", "tr",
]

BODY_SELECTORS = [
    "[itemprop=articleBody]",
    "article",
    "[class*=article-body]",
    "[class*=article-content]",
    "[class*=post-content]",
    "[class*=entry-content]",
    "[class*=story-body]",
    "[class*=paywall]",
    "main",
    "[role=main]",
]

DATE_SELECTORS = [
    ("meta[property='article:published_time']", "content"),
    ("meta[name=pubdate]", "content"),
    ("meta[name=date]", "content"),
    ("time[datetime]", "datetime"),
    ("time[pubdate]", "datetime"),
]

_HANGUL_RE = re.compile(r"[\uac00-\ud7a3]")
_HSPACE_RE = re.compile(r"[ \t\r\f\v\xa0]+")
_BLANKS_RE = re.compile(r"\n\s*\n\s*(\n\s*)+")
_LINE_PAD_RE = re.compile(r" *\n *")


@dataclass
class ExtractedPage:
    """单页提取结果"""
    title: str
    content: str
    extraction_method: str
    description: Optional[str] = None
    author: Optional[str] = None
    published_at: Optional[str] = None
    image_url: Optional[str] = None
    language: str = "en"
    source: Optional[str] = None


def normalize_text(text: str) -> str:
    """压缩行内空白, 合并多余空行, 保留段落分隔"""
    text = _HSPACE_RE.sub(" ", text or "")
    text = _LINE_PAD_RE.sub("\n", text)
    text = _BLANKS_RE.sub("\n\n", text)
    return text.strip()


def title_from_url(url: str) -> str:
    """以 URL 路径最后一段生成标题, 如 /news/big-market-rally.html -> Big Market Rally"""
    parsed = urlparse(url)
    segments = [seg for seg in parsed.path.split("/") if seg]
    if not segments:
        return parsed.netloc.replace("www.", "") or "Untitled"
    slug = unquote(segments[-1])
    slug = re.sub(r"\.(html?|php|aspx?)$", "", slug, flags=re.IGNORECASE)
    words = re.sub(r"[-_+]+", " ", slug).strip()
    return words.title() if words else "Untitled"


def _meta(soup: BeautifulSoup, *, name: str = None, prop: str = None) -> Optional[str]:
    attrs = {"property": prop} if prop else {"name": name}
    node = soup.find("meta", attrs=attrs)
    if node is None:
        return None
    value = (node.get("content") or "").strip()
    return value or None


def _is_noise_attr(values: Iterable[str]) -> bool:
    for raw in values:
        token = raw.lower()
        if token == "ad" or token.startswith("ad-") or token.startswith("ads") or "advert" in token:
            return True
        if any(marker in token for marker in NOISE_MARKERS):
            return True
    return False


def _attr_tokens(node: Tag) -> List[str]:
    classes = node.get("class") or []
    if isinstance(classes, str):
        classes = classes.split()
    node_id = node.get("id")
    return list(classes) + ([node_id] if isinstance(node_id, str) else [])


def strip_noise(soup: BeautifulSoup) -> None:
    for tag in soup.find_all(NOISE_TAGS):
        tag.decompose()

    noisy = [
        node for node in soup.find_all(True)
        if node.name not in ("html", "body") and _is_noise_attr(_attr_tokens(node))
    ]
    for node in noisy:
        # 父节点可能已被移除
        if node.decomposed:
            continue
        node.decompose()


def _mark_blocks(soup: BeautifulSoup) -> None:
    for node in soup.find_all(BLOCK_TAGS):
        node.insert_after("\n\n")


def _text(node: Tag) -> str:
    return normalize_text(node.get_text())


def extract_title(soup: BeautifulSoup, url: str) -> str:
    candidates = [
        _meta(soup, prop="og:title"),
        _meta(soup, name="twitter:title"),
    ]
    h1 = soup.find("h1")
    if h1 is not None:
        candidates.append(h1.get_text(" ", strip=True))
    if soup.title is not None and soup.title.string:
        candidates.append(soup.title.string.strip())

    for candidate in candidates:
        if candidate:
            return normalize_text(candidate)
    return title_from_url(url)


def extract_body(soup: BeautifulSoup, min_length: int = 200) -> tuple:
    """按候选选择器查找正文, 返回 (正文, 命中方式)"""
    for selector in BODY_SELECTORS:
        node = soup.select_one(selector)
        if node is None:
            continue
        text = _text(node)
        if len(text) > min_length:
            return text, selector

    # 段落最多的容器: 按父节点整体文本长度比较
    best_parent = None
    best_length = 0
    seen = set()
    for paragraph in soup.find_all("p"):
        parent = paragraph.parent
        if parent is None or id(parent) in seen:
            continue
        seen.add(id(parent))
        length = len(_text(parent))
        if length > best_length:
            best_parent = parent
            best_length = length
    if best_parent is not None:
        return _text(best_parent), "paragraph_parent"

    if soup.body is not None:
        return _text(soup.body), "body"

    # 没有 <body>: <head> 里的 <title> 等不算正文
    root = soup.html or soup
    text = normalize_text("".join(
        child.get_text() for child in root.children
        if isinstance(child, Tag) and child.name != "head"
    ))
    return text, "document"


def _find_date_published(node: Any) -> Optional[str]:
    if isinstance(node, dict):
        value = node.get("datePublished")
        if isinstance(value, str) and value.strip():
            return value.strip()
        for child in node.values():
            found = _find_date_published(child)
            if found:
                return found
    elif isinstance(node, list):
        for child in node:
            found = _find_date_published(child)
            if found:
                return found
    return None


def extract_published_at(soup: BeautifulSoup) -> Optional[str]:
    for selector, attr in DATE_SELECTORS:
        node = soup.select_one(selector)
        if node is not None:
            value = (node.get(attr) or "").strip()
            if value:
                return value

    for script in soup.find_all("script", attrs={"type": "application/ld+json"}):
        raw = script.string or script.get_text()
        if not raw:
            continue
        try:
            payload = json.loads(raw)
        except (json.JSONDecodeError, ValueError):
            continue
        found = _find_date_published(payload)
        if found:
            return found
    return None


def detect_language(soup: BeautifulSoup, text: str) -> str:
    html = soup.find("html")
    if html is not None and html.get("lang"):
        return html["lang"].strip()[:2].lower()

    node = soup.find("meta", attrs={"http-equiv": re.compile("^content-language$", re.I)})
    if node is not None and node.get("content"):
        return node["content"].strip()[:2].lower()

    if _HANGUL_RE.search(text or ""):
        return "ko"
    return "en"


def extract_page(html: str, url: str, min_body_length: int = 200) -> ExtractedPage:
    """
    解析整页 HTML

    Args:
        html: 原始 HTML
        url: 页面地址 (用于标题回退与来源)
        min_body_length: 候选正文节点最短长度

    Returns:
        ExtractedPage

    Raises:
        ParseError: 无法提取任何正文
    """
    soup = BeautifulSoup(html or "", "lxml")

    # 元数据先于去噪读取, script 中的 JSON-LD 会被移除
    published_at = extract_published_at(soup)
    title = extract_title(soup, url)
    description = _meta(soup, name="description") or _meta(soup, prop="og:description")
    author = (
        _meta(soup, name="author")
        or _meta(soup, prop="article:author")
        or _meta(soup, name="byline")
    )
    image_url = _meta(soup, prop="og:image")
    source = _meta(soup, prop="og:site_name") or urlparse(url).netloc.replace("www.", "") or None

    strip_noise(soup)
    _mark_blocks(soup)
    content, method = extract_body(soup, min_length=min_body_length)

    if not content:
        raise ParseError("No extractable content", {"url": url})

    return ExtractedPage(
        title=title,
        content=content,
        extraction_method=method,
        description=description,
        author=author,
        published_at=published_at,
        image_url=image_url,
        language=detect_language(soup, content),
        source=source,
    )

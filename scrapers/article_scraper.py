"""
Article Scraper
任意新闻/博客 URL 抓取: 可访问性探测 -> 下载 -> 正文提取
"""
from __future__ import annotations

import hashlib
from datetime import datetime, timezone
from typing import Dict, Optional, Tuple

import httpx

from config import get_settings
from models import ArticleData
from utils.exceptions import AccessBlocked, FetchError
from utils.logger import get_scraper_logger

from .html_extract import extract_page, title_from_url


logger = get_scraper_logger()

BLOCKED_STATUSES = (403, 451)
HEAD_FALLBACK_STATUSES = (403, 405)


class ArticleScraper:
    """
    通用文章抓取器

    所有网络访问都经过同一个 httpx.Client; 离线模式下注入 MockTransport
    """

    name = "article"

    def __init__(
        self,
        settings=None,
        client: Optional[httpx.Client] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.settings = (settings or get_settings()).scraper
        self._client = client or httpx.Client(
            headers=self._default_headers(),
            follow_redirects=True,
            max_redirects=self.settings.max_redirects,
            timeout=self.settings.fetch_timeout,
            transport=transport,
        )

    @classmethod
    def offline(cls, fixtures: Optional[Dict[str, Tuple[int, str]]] = None, settings=None) -> "ArticleScraper":
        """使用进程内站点模拟的抓取器 (不访问网络)"""
        return cls(settings=settings, transport=httpx.MockTransport(MockSite(fixtures)))

    def _default_headers(self) -> Dict[str, str]:
        return {
            "User-Agent": self.settings.user_agent,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": self.settings.accept_language,
            "Accept-Encoding": "gzip, deflate",
        }

    def close(self) -> None:
        self._client.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    @staticmethod
    def _raise_for_status(url: str, status: int) -> None:
        if status in BLOCKED_STATUSES:
            raise AccessBlocked(f"Access blocked (HTTP {status})", url=url, status=status)
        if status >= 400:
            raise FetchError(f"HTTP {status} while fetching page", url=url, status=status)

    def _probe(self, method: str, url: str) -> int:
        """返回状态码; 网络失败/超时记为 0"""
        try:
            response = self._client.request(method, url, timeout=self.settings.check_timeout)
        except httpx.TooManyRedirects as exc:
            raise FetchError(f"Redirect loop: {exc}", url=url) from exc
        except httpx.TransportError as exc:
            logger.debug(f"{method} probe failed for {url}: {exc}")
            return 0
        return response.status_code

    def check_access(self, url: str) -> int:
        """
        探测 URL 是否可访问

        HEAD 返回 403/405 或网络失败时, 以 GET 复查后再下结论

        Returns:
            最终状态码

        Raises:
            AccessBlocked: 403 / 451
            FetchError: 其他失败
        """
        status = self._probe("HEAD", url)
        if status == 0 or status in HEAD_FALLBACK_STATUSES:
            status = self._probe("GET", url)
        if status == 0:
            raise FetchError("Site is not reachable", url=url)
        self._raise_for_status(url, status)
        return status

    def is_accessible(self, url: str) -> bool:
        try:
            self.check_access(url)
        except FetchError:
            return False
        return True

    def fetch_html(self, url: str) -> Tuple[str, str]:
        """下载页面, 返回 (html, 跳转后的最终 URL)"""
        try:
            response = self._client.get(url)
        except httpx.TooManyRedirects as exc:
            raise FetchError(f"Redirect loop: {exc}", url=url) from exc
        except httpx.TransportError as exc:
            raise FetchError(f"Failed to fetch page: {exc}", url=url) from exc

        self._raise_for_status(url, response.status_code)
        return response.text, str(response.url)

    def scrape(self, url: str) -> ArticleData:
        """
        抓取并解析文章

        Raises:
            FetchError / AccessBlocked: 下载失败
            ParseError: 无法提取正文
        """
        html, final_url = self.fetch_html(url)
        page = extract_page(html, final_url, min_body_length=self.settings.min_body_length)

        logger.info(f"Scraped {final_url}: {len(page.content)} chars via {page.extraction_method}")
        return ArticleData(
            url=url,
            title=page.title,
            content=page.content,
            description=page.description,
            author=page.author,
            published_at=page.published_at,
            image_url=page.image_url,
            language=page.language,
            source=page.source,
            metadata={
                "scraped_at": datetime.now(timezone.utc).isoformat(),
                "content_length": len(page.content),
                "final_url": final_url,
                "extraction_method": page.extraction_method,
            },
        )


_TOPIC_SENTENCES = [
    "Officials confirmed the announcement on {day} after weeks of speculation.",
    "Analysts said the decision could reshape {topic} over the next several years.",
    "Industry groups welcomed the plan but warned that costs remain unclear.",
    "Local residents described a mix of optimism and concern about what comes next.",
    "The report cites data from more than {n} organisations across the region.",
    "Critics argued that the timeline is ambitious given current funding levels.",
    "Supporters pointed to earlier pilot programmes that exceeded expectations.",
    "A follow-up review is scheduled once the first results are published.",
]


class MockSite:
    """
    进程内站点模拟, 供 httpx.MockTransport 使用

    注册过的 URL 返回 (状态码, HTML); 其余 URL 生成由 URL 决定的稳定文章页
    """

    def __init__(self, fixtures: Optional[Dict[str, Tuple[int, str]]] = None):
        self.fixtures = dict(fixtures or {})

    def __call__(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        if url in self.fixtures:
            status, html = self.fixtures[url]
        else:
            status, html = 200, self.render(url)
        body = b"" if request.method == "HEAD" else html.encode("utf-8")
        return httpx.Response(status, content=body, headers={"Content-Type": "text/html; charset=utf-8"})

    @staticmethod
    def render(url: str) -> str:
        title = title_from_url(url)
        digest = hashlib.md5(url.encode("utf-8")).hexdigest()
        seed = int(digest[:8], 16)
        topic = title.lower()

        paragraphs = []
        for i in range(6):
            sentences = [
                _TOPIC_SENTENCES[(seed + i + j) % len(_TOPIC_SENTENCES)].format(
                    day=("Monday", "Tuesday", "Wednesday", "Thursday", "Friday")[(seed + i) % 5],
                    topic=topic,
                    n=10 + (seed + i) % 90,
                )
                for j in range(4)
            ]
            paragraphs.append(f"<p>{title}: {' '.join(sentences)}</p>")

        return (
            "<html lang=\"en\"><head>"
            f"<title>{title}</title>"
            f"<meta property=\"og:title\" content=\"{title}\">"
            f"<meta name=\"description\" content=\"Coverage of {topic}.\">"
            "<meta name=\"author\" content=\"Newsroom Staff\">"
            f"<meta property=\"og:image\" content=\"https://images.example.com/{digest[:12]}.jpg\">"
            "</head><body><nav>Home | World | Business</nav>"
            f"<article><h1>{title}</h1>{''.join(paragraphs)}</article>"
            "<footer>Copyright</footer></body></html>"
        )

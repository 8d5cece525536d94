"""
Validation Agent
URL 格式校验 -> 可访问性探测 -> 抓取 -> 内容检查 -> AI 合理性检查 (软性)
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Optional
from urllib.parse import urlparse

from pydantic import BaseModel, Field

from core import Failure, PipelineContext, Success
from core.contracts import ContextUpdate
from intelligence.llm import BaseLLM
from intelligence.pipeline_helpers import parse_model, truncate_text
from intelligence.prompts import VALIDATION_PROMPT, VALIDATION_SYSTEM
from models import ArticleData
from scrapers.article_scraper import ArticleScraper
from utils.exceptions import ArticleAgentError, ValidationError


logger = logging.getLogger(__name__)


class AIVerdict(BaseModel):
    is_valid: bool = True
    reason: str = ""
    confidence: float = Field(default=0.8, ge=0.0, le=1.0)


class ValidationAgent:
    """First stage: turns a URL into validated ArticleData."""

    name = "validation"

    def __init__(
        self,
        scraper: ArticleScraper,
        llm: Optional[BaseLLM] = None,
        *,
        min_content_length: int = 100,
        blocked_domains: Iterable[str] = ("localhost", "127.0.0.1"),
        ai_check: bool = True,
    ):
        self.scraper = scraper
        self.llm = llm
        self.min_content_length = min_content_length
        self.blocked_domains = {d.lower() for d in blocked_domains}
        self.ai_check = ai_check and llm is not None

    def validate(self, data: Any) -> bool:
        return isinstance(data, str) and bool(data.strip())

    def check_url(self, url: str) -> None:
        parsed = urlparse(url.strip())
        if parsed.scheme not in ("http", "https"):
            raise ValidationError("URL must use http or https", {"url": url})
        if not parsed.netloc or not parsed.hostname:
            raise ValidationError("URL has no host", {"url": url})
        if parsed.hostname.lower() in self.blocked_domains:
            raise ValidationError("URL points to a blocked domain", {"host": parsed.hostname})

    def check_content(self, article: ArticleData) -> None:
        if not article.title.strip():
            raise ValidationError("Article has no title", {"url": article.url})
        if article.content_length < self.min_content_length:
            raise ValidationError(
                f"Article content too short ({article.content_length} < {self.min_content_length} chars)",
                {"url": article.url},
            )

    def ai_verdict(self, article: ArticleData) -> AIVerdict:
        """Soft check; provider trouble never blocks the pipeline."""
        if not self.ai_check:
            return AIVerdict(reason="AI check disabled", confidence=0.8)
        prompt = VALIDATION_PROMPT.format(title=article.title, excerpt=truncate_text(article.content, 2000))
        try:
            reply = self.llm.chat(prompt, system_prompt=VALIDATION_SYSTEM, temperature=0.0, json_mode=True)
        except ArticleAgentError as exc:
            logger.warning(f"AI validation unavailable, accepting article: {exc.message}")
            return AIVerdict(reason=f"AI check failed: {exc.message}", confidence=0.7)
        verdict = parse_model(reply, AIVerdict)
        if verdict is None:
            return AIVerdict(reason="AI check returned malformed output", confidence=0.8)
        return verdict

    def process(self, context: PipelineContext):
        url = context.url
        if not self.validate(url):
            return Failure(messages=["URL is empty"], error_type="ValidationError")

        try:
            self.check_url(url)
            self.scraper.check_access(url)
            article = self.scraper.scrape(url)
            self.check_content(article)
        except ArticleAgentError as exc:
            logger.info(f"Validation failed for {url}: {exc.message}")
            return Failure(messages=[exc.message], error_type=type(exc).__name__)

        verdict = self.ai_verdict(article)
        if not verdict.is_valid:
            logger.warning(f"AI flagged {url} as non-article: {verdict.reason}")

        validation = {
            "url_valid": True,
            "accessible": True,
            "content_length": article.content_length,
            "ai_valid": verdict.is_valid,
            "ai_reason": verdict.reason,
            "confidence": verdict.confidence,
        }
        return Success(
            data={"title": article.title, "source": article.source, "validation": validation},
            side_effects=ContextUpdate(article=article, metadata={"validation": validation}),
        )

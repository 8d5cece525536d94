"""
Thumbnail Agent
配图选择: 生成插图 -> 原文 og:image -> 按分类的占位图
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Tuple

from core import Failure, PipelineContext, Success
from core.contracts import ContextUpdate
from intelligence.media import BaseImageGenerator
from intelligence.pipeline_helpers import is_valid_http_url, looks_placeholder_url, truncate_text
from intelligence.prompts import IMAGE_PROMPT
from models import ArticleData
from utils.exceptions import ArticleAgentError


logger = logging.getLogger(__name__)

PLACEHOLDER_URL = "https://placehold.co/800x500/{bg}/{fg}?text={label}"

CATEGORY_THEMES: Dict[str, Tuple[str, str, str]] = {
    "diplomacy": ("0f172a", "38bdf8", "Diplomacy"),
    "economy": ("0f172a", "34d399", "Economy"),
    "entertainment": ("0f172a", "fb923c", "Entertainment"),
    "technology": ("0f172a", "a78bfa", "Tech"),
    "security": ("0f172a", "f87171", "Security"),
}
DEFAULT_THEME = ("1e293b", "94a3b8", "The+Gist")

STYLE_HINTS = {
    "diplomacy": "geopolitical theme, world map elements, diplomatic imagery",
    "politics": "geopolitical theme, world map elements, diplomatic imagery",
    "economy": "financial theme, charts, currency symbols, economic imagery",
    "finance": "financial theme, charts, currency symbols, economic imagery",
    "entertainment": "entertainment theme, vibrant colors, pop culture elements",
    "technology": "technology theme, digital elements, futuristic imagery",
    "tech": "technology theme, digital elements, futuristic imagery",
    "security": "security theme, strategic imagery, defense elements",
    "military": "security theme, strategic imagery, defense elements",
}

SOURCE_STYLES = {"generated": "illustration", "og:image": "original", "placeholder": "placeholder"}


def placeholder_url(category: str) -> str:
    bg, fg, label = CATEGORY_THEMES.get(category, DEFAULT_THEME)
    return PLACEHOLDER_URL.format(bg=bg, fg=fg, label=label)


def is_original_image(url: Optional[str]) -> bool:
    return is_valid_http_url(url) and not looks_placeholder_url(url)


class ThumbnailAgent:
    """Last stage: picks the image shown with the analysis."""

    name = "illustration"

    def __init__(self, generator: Optional[BaseImageGenerator] = None):
        self.generator = generator

    def validate(self, data: Any) -> bool:
        return isinstance(data, ArticleData)

    @staticmethod
    def build_prompt(article: ArticleData, category: str) -> str:
        text = truncate_text(f"{article.title} {article.description or ''}".strip(), 600, suffix="")
        return IMAGE_PROMPT.format(theme=STYLE_HINTS.get(category, "professional news editorial imagery"), text=text)

    def _generate(self, article: ArticleData, category: str) -> Optional[str]:
        if self.generator is None:
            return None
        try:
            return self.generator.generate(self.build_prompt(article, category))
        except ArticleAgentError as exc:
            logger.warning(f"Image generation failed: {exc.message}")
            return None

    def select(self, article: ArticleData) -> Tuple[str, str]:
        """Returns (image_url, source)."""
        category = str(article.metadata.get("category") or "").lower()

        generated = self._generate(article, category)
        if generated:
            return generated, "generated"
        if is_original_image(article.image_url):
            return article.image_url, "og:image"
        return placeholder_url(category), "placeholder"

    def process(self, context: PipelineContext):
        article = context.article
        if not self.validate(article):
            return Failure(messages=["No article to illustrate; run validation first"], error_type="ValidationError")

        image_url, source = self.select(article)
        logger.info(f"Thumbnail set ({source}) for: {truncate_text(article.title, 50)}")

        return Success(
            data={"image_url": image_url, "source": source, "style": SOURCE_STYLES[source]},
            side_effects=ContextUpdate(article=article.with_image_url(image_url)),
        )

"""
Analysis Agent
文章 -> 翻译摘要 / 要点 / 播报稿 / 批判性分析 (RAG 增强), 可选 TTS 与结果回写知识库
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from core import Failure, PipelineContext, Success
from core.contracts import ContextUpdate
from intelligence.llm import BaseLLM
from intelligence.media import BaseSpeechSynthesizer
from intelligence.pipeline_helpers import clean_list, parse_model, truncate_text
from intelligence.prompts import (
    ANALYSIS_PROMPT,
    ANALYSIS_SYSTEM,
    NARRATION_FIELD,
    NARRATION_INSTRUCTION,
    REVISE_PROMPT,
)
from intelligence.tools.rag_tools import RetrievalAugmenter
from models import AnalysisResult, ArticleData, CriticalAnalysis
from utils.exceptions import ArticleAgentError


logger = logging.getLogger(__name__)

FALLBACK_KEY_POINT = "Review the analysis output."


class AnalysisPayload(BaseModel):
    """Typed view of the model's JSON reply; every field has a default."""

    news_title: Optional[str] = None
    translated_summary: str = ""
    content_summary: Optional[str] = None
    key_points: List[str] = Field(default_factory=list)
    narration: Optional[str] = None
    critical_analysis: Dict[str, Optional[str]] = Field(default_factory=dict)

    @field_validator("key_points", mode="before")
    @classmethod
    def _points(cls, value: Any) -> List[str]:
        return clean_list(value)

    @field_validator("critical_analysis", mode="before")
    @classmethod
    def _critical(cls, value: Any) -> Dict[str, Optional[str]]:
        return value if isinstance(value, dict) else {}


class AnalysisAgent:
    """Second stage: structured analysis of the scraped article."""

    name = "analysis"

    def __init__(
        self,
        llm: BaseLLM,
        rag: Optional[RetrievalAugmenter] = None,
        speech: Optional[BaseSpeechSynthesizer] = None,
        *,
        key_points_count: int = 4,
        max_content_chars: int = 40000,
        enable_narration: bool = True,
        enable_tts: bool = False,
        index_results: bool = True,
        target_language: str = "Korean",
        rag_top_k: int = 3,
    ):
        self.llm = llm
        self.rag = rag
        self.speech = speech
        self.key_points_count = max(4, key_points_count)
        self.max_content_chars = max_content_chars
        self.enable_narration = enable_narration
        self.enable_tts = enable_tts and speech is not None
        self.index_results = index_results
        self.target_language = target_language
        self.rag_top_k = rag_top_k

    def validate(self, data: Any) -> bool:
        return isinstance(data, ArticleData) and bool(data.content.strip())

    def system_prompt(self, article: ArticleData) -> str:
        base = ANALYSIS_SYSTEM.format(language=self.target_language)
        if self.rag is None:
            return base
        query = f"{article.title} {article.content[:500]}"
        return self.rag.augment_prompt(base, self.rag.retrieve(query, top_k=self.rag_top_k))

    def build_prompt(self, article: ArticleData) -> str:
        return ANALYSIS_PROMPT.format(
            title=article.title,
            source=article.source or "unknown",
            author=article.author or "unknown",
            content=truncate_text(article.content, self.max_content_chars),
            language=self.target_language,
            key_points_count=self.key_points_count,
            narration_instruction=NARRATION_INSTRUCTION if self.enable_narration else "",
            narration_field=NARRATION_FIELD if self.enable_narration else "",
        )

    def parse(self, reply: str, article: ArticleData) -> AnalysisResult:
        payload = parse_model(reply, AnalysisPayload)
        if payload is None:
            logger.warning(f"Malformed analysis JSON ({len(reply or '')} chars), using raw text as narration")
            payload = AnalysisPayload(narration=(reply or "").strip(), key_points=[FALLBACK_KEY_POINT])

        narration = payload.narration if self.enable_narration else None
        summary = payload.translated_summary.strip()
        if not summary and narration:
            summary = narration[:200]

        return AnalysisResult(
            news_title=payload.news_title,
            original_title=article.title,
            author=article.author,
            translated_summary=summary,
            content_summary=payload.content_summary,
            key_points=payload.key_points or [FALLBACK_KEY_POINT],
            narration=narration,
            critical_analysis=CriticalAnalysis(
                why_important=payload.critical_analysis.get("why_important"),
                future_prediction=payload.critical_analysis.get("future_prediction"),
            ),
        )

    @staticmethod
    def tts_text(analysis: AnalysisResult) -> str:
        if analysis.narration:
            return analysis.narration
        parts = ["Here is today's analysis.", analysis.translated_summary]
        if analysis.key_points:
            parts.append("The key points.")
            parts.extend(f"{i}. {point}" for i, point in enumerate(analysis.key_points, start=1))
        return " ".join(p for p in parts if p)

    def _attach_audio(self, analysis: AnalysisResult) -> AnalysisResult:
        if not self.enable_tts:
            return analysis
        try:
            return analysis.with_audio_url(self.speech.synthesize(self.tts_text(analysis)))
        except ArticleAgentError as exc:
            logger.warning(f"TTS generation failed: {exc.message}")
            return analysis

    def _index(self, url: str, analysis: AnalysisResult) -> int:
        if self.rag is None or not self.index_results:
            return 0
        text = "\n".join(
            part for part in [analysis.news_title, analysis.translated_summary, *analysis.key_points] if part
        )
        return self.rag.store_analysis(url, text, {"title": analysis.news_title or ""})

    def analyze(self, article: ArticleData) -> AnalysisResult:
        reply = self.llm.chat(self.build_prompt(article), system_prompt=self.system_prompt(article), json_mode=True)
        return self._attach_audio(self.parse(reply, article))

    def revise(self, analysis: AnalysisResult, feedback: str, score: Optional[int] = None) -> AnalysisResult:
        """Rewrite an analysis from editor feedback; the feedback is kept for future retrieval."""
        previous = analysis.model_dump(
            include={"news_title", "translated_summary", "content_summary", "key_points", "narration", "critical_analysis"}
        )
        prompt = REVISE_PROMPT.format(
            previous=json.dumps(previous, ensure_ascii=False, indent=2),
            feedback=feedback,
            score_line=f"Current quality score: {score}/10\n" if score is not None else "",
        )
        system = ANALYSIS_SYSTEM.format(language=self.target_language)
        if self.rag is not None:
            query = f"{analysis.news_title or ''} {feedback[:300]}"
            system = self.rag.augment_prompt(system, self.rag.retrieve(query, top_k=self.rag_top_k))
            self.rag.store_feedback(feedback, {"score": score, "title": analysis.news_title or ""})

        payload = parse_model(self.llm.chat(prompt, system_prompt=system, json_mode=True), AnalysisPayload)
        if payload is None:
            logger.warning("Malformed revision JSON, keeping the previous analysis")
            return analysis

        critical = analysis.critical_analysis
        return analysis.model_copy(update={
            "news_title": payload.news_title or analysis.news_title,
            "translated_summary": payload.translated_summary or analysis.translated_summary,
            "content_summary": payload.content_summary or analysis.content_summary,
            "key_points": payload.key_points or analysis.key_points,
            "narration": payload.narration or analysis.narration,
            "critical_analysis": CriticalAnalysis(
                why_important=payload.critical_analysis.get("why_important") or critical.why_important,
                future_prediction=payload.critical_analysis.get("future_prediction") or critical.future_prediction,
            ),
            "metadata": {**analysis.metadata, "revised": True},
        })

    def process(self, context: PipelineContext):
        article = context.article
        if not self.validate(article):
            return Failure(messages=["No article to analyse; run validation first"], error_type="ValidationError")

        analysis = self.analyze(article)
        indexed = self._index(context.url, analysis)
        logger.info(f"Analysis ready: {len(analysis.key_points)} key points, narration={bool(analysis.narration)}")

        return Success(
            data={
                "key_points": len(analysis.key_points),
                "has_narration": bool(analysis.narration),
                "audio_url": analysis.audio_url,
                "indexed_chunks": indexed,
            },
            side_effects=ContextUpdate(analysis=analysis),
        )

"""Assemble an AnalysisOrchestrator from settings.

Stages are registered by name; the ordered list comes from
``PIPELINE_STAGES`` and collaborators are built once and injected.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence

from config import Settings, get_settings
from core import Stage
from intelligence.agents import (
    AnalysisAgent,
    InterpretAgent,
    LearningAgent,
    ThumbnailAgent,
    ValidationAgent,
)
from intelligence.llm import BaseLLM, get_llm
from intelligence.media import (
    BaseImageGenerator,
    BaseSpeechSynthesizer,
    get_image_generator,
    get_speech_synthesizer,
)
from intelligence.tools import RetrievalAugmenter
from processing import TextChunker, get_embedder
from scrapers import ArticleScraper
from storage import BaseVectorStore, StyleStore, get_vector_store
from utils.exceptions import ConfigurationError

from .service import AnalysisOrchestrator


logger = logging.getLogger(__name__)


@dataclass
class StageDeps:
    """Collaborators shared by the stages of one orchestrator."""

    settings: Settings
    scraper: ArticleScraper
    llm: BaseLLM
    rag: Optional[RetrievalAugmenter]
    image_generator: BaseImageGenerator
    speech: BaseSpeechSynthesizer
    style_store: StyleStore


def _validation(deps: StageDeps) -> Stage:
    return ValidationAgent(
        deps.scraper,
        deps.llm,
        min_content_length=deps.settings.pipeline.min_content_length,
        blocked_domains=deps.settings.pipeline.blocked_domains,
    )


def _analysis(deps: StageDeps) -> Stage:
    config = deps.settings.analysis
    return AnalysisAgent(
        deps.llm,
        deps.rag,
        deps.speech,
        key_points_count=config.key_points_count,
        max_content_chars=config.max_content_chars,
        enable_narration=config.enable_narration,
        enable_tts=config.enable_tts,
        index_results=deps.settings.rag.index_analyses,
        target_language=config.target_language,
        rag_top_k=deps.settings.rag.top_k,
    )


def _interpret(deps: StageDeps) -> Stage:
    return InterpretAgent(
        deps.llm,
        deps.rag,
        top_k=deps.settings.rag.top_k,
        relevance_threshold=deps.settings.rag.similarity_threshold,
    )


def _style(deps: StageDeps) -> Stage:
    return LearningAgent(deps.llm, deps.style_store)


def _illustration(deps: StageDeps) -> Stage:
    return ThumbnailAgent(deps.image_generator)


STAGE_BUILDERS: Dict[str, Callable[[StageDeps], Stage]] = {
    "validation": _validation,
    "analysis": _analysis,
    "interpret": _interpret,
    "style": _style,
    "illustration": _illustration,
}


def resolve_stage_names(settings: Settings, style_store: StyleStore, stages: Optional[Sequence[str]] = None) -> List[str]:
    """Ordered stage names after applying the enable flags and the learned-style check."""
    names = [str(name).strip().lower() for name in (stages or settings.pipeline.stages) if str(name).strip()]
    unknown = [name for name in names if name not in STAGE_BUILDERS]
    if unknown:
        raise ConfigurationError(f"Unknown pipeline stages: {unknown}", {"available": sorted(STAGE_BUILDERS)})

    resolved = []
    for name in names:
        if name == "interpret" and not settings.pipeline.enable_interpret:
            continue
        if name == "illustration" and not settings.pipeline.enable_illustration:
            continue
        if name == "style" and not style_store.has_patterns():
            logger.info("No learned style yet, style stage skipped")
            continue
        if name not in resolved:
            resolved.append(name)
    return resolved


def build_rag(settings: Settings, mock: bool, store: Optional[BaseVectorStore] = None) -> Optional[RetrievalAugmenter]:
    if not settings.rag.enabled:
        return None
    return RetrievalAugmenter(
        embedder=get_embedder(settings, mock=mock),
        store=store or get_vector_store(settings, mock=mock),
        chunker=TextChunker(chunk_size=settings.rag.chunk_size),
    )


def build_pipeline(
    settings: Optional[Settings] = None,
    *,
    mock_mode: Optional[bool] = None,
    stages: Optional[Sequence[str]] = None,
    scraper: Optional[ArticleScraper] = None,
    llm: Optional[BaseLLM] = None,
    rag: Optional[RetrievalAugmenter] = None,
    image_generator: Optional[BaseImageGenerator] = None,
    speech: Optional[BaseSpeechSynthesizer] = None,
    style_store: Optional[StyleStore] = None,
) -> AnalysisOrchestrator:
    """
    构建分析流水线

    Args:
        settings: Settings (默认读取全局配置)
        mock_mode: 强制开启/关闭离线模式 (默认由配置决定)
        stages: 覆盖配置中的阶段顺序
        其余参数: 注入的协作对象, 不传则按配置创建

    Example:
        pipeline = build_pipeline(mock_mode=True)
        result = pipeline.run("https://example.com/news/1")
    """
    settings = settings or get_settings()
    mock = settings.mock_mode if mock_mode is None else mock_mode
    if mock and mock_mode is None and not settings.pipeline.mock_mode and settings.llm.provider != "mock":
        logger.warning("No LLM API key configured, running in mock mode")

    style_store = style_store or StyleStore(settings.storage.style_path)
    deps = StageDeps(
        settings=settings,
        scraper=scraper or (ArticleScraper.offline(settings=settings) if mock else ArticleScraper(settings=settings)),
        llm=llm or get_llm(settings, mock=mock),
        rag=rag if rag is not None else build_rag(settings, mock),
        image_generator=image_generator or get_image_generator(settings, mock=mock),
        speech=speech or get_speech_synthesizer(settings, mock=mock),
        style_store=style_store,
    )

    names = resolve_stage_names(settings, style_store, stages)
    logger.info(f"Pipeline stages: {' -> '.join(names)}")
    return AnalysisOrchestrator(
        [STAGE_BUILDERS[name](deps) for name in names],
        stop_on_failure=settings.pipeline.stop_on_failure,
        mock_mode=mock,
    )

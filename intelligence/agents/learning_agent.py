"""
Learning Agent
从样例文本学习写作风格, 并将学到的风格套用到分析结果上
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Iterable, List, Optional

from pydantic import BaseModel, Field, field_validator

from core import Failure, Partial, PipelineContext, Success
from core.contracts import ContextUpdate
from intelligence.llm import BaseLLM
from intelligence.pipeline_helpers import clean_list, extract_json, parse_model, truncate_text
from intelligence.prompts import STYLE_APPLY_PROMPT, STYLE_CLARITY_PROMPT, STYLE_LEARN_PROMPT
from models import AnalysisResult, CriticalAnalysis
from storage import StyleStore
from utils.exceptions import ArticleAgentError, ValidationError


logger = logging.getLogger(__name__)

DEFAULT_PATTERNS: Dict[str, Any] = {
    "style": {"formality": "formal", "tone": "objective", "detail_level": "moderate"},
    "structure": {
        "intro_style": "Lead with the main point",
        "body_style": "Support with facts",
        "conclusion_style": "Close with an outlook",
        "paragraph_length": "medium",
    },
    "common_patterns": [],
    "emphasis_methods": [],
    "transition_phrases": [],
    "unique_expressions": [],
    "target_audience": "General readers",
    "vocabulary_level": "intermediate",
}


class StyleClarity(BaseModel):
    is_clear: bool = True
    reason: str = ""
    suggested_question: str = ""


class StyledAnalysis(BaseModel):
    translated_summary: str = ""
    key_points: List[str] = Field(default_factory=list)
    critical_analysis: Dict[str, Optional[str]] = Field(default_factory=dict)

    @field_validator("key_points", mode="before")
    @classmethod
    def _points(cls, value: Any) -> List[str]:
        return clean_list(value)

    @field_validator("critical_analysis", mode="before")
    @classmethod
    def _critical(cls, value: Any) -> Dict[str, Optional[str]]:
        return value if isinstance(value, dict) else {}


class LearningAgent:
    """Style stage; skipped by the pipeline factory until patterns exist."""

    name = "style"

    def __init__(self, llm: BaseLLM, store: StyleStore, *, min_summary_length: int = 50, max_sample_chars: int = 3000):
        self.llm = llm
        self.store = store
        self.min_summary_length = min_summary_length
        self.max_sample_chars = max_sample_chars

    def validate(self, data: Any) -> bool:
        return isinstance(data, AnalysisResult) and len(data.translated_summary.strip()) >= self.min_summary_length

    def has_learned_style(self) -> bool:
        return self.store.has_patterns()

    def add_sample(self, text: str, metadata: Optional[Dict[str, Any]] = None) -> int:
        if not text or not text.strip():
            raise ValidationError("Style sample is empty")
        return self.store.add_sample(text.strip(), metadata)

    def learn(self, samples: Optional[Iterable[str]] = None) -> Dict[str, Any]:
        """
        Extract style patterns from samples

        Args:
            samples: 新样例; 为空时使用已保存的样例

        Returns:
            学到的风格模式 (解析失败时为默认模式)
        """
        for text in samples or []:
            self.add_sample(text)

        texts = [s["text"] for s in self.store.samples]
        if not texts:
            raise ValidationError("No style samples to learn from")

        rendered = "\n\n".join(
            f"[Sample {i}]\n{truncate_text(text, self.max_sample_chars)}" for i, text in enumerate(texts, start=1)
        )
        reply = self.llm.chat(STYLE_LEARN_PROMPT.format(samples=rendered), json_mode=True)
        patterns = extract_json(reply)
        if not patterns:
            logger.warning("Style learning returned malformed output, using default patterns")
            patterns = dict(DEFAULT_PATTERNS)

        self.store.save_patterns(patterns)
        logger.info(f"Learned style patterns from {len(texts)} samples")
        return patterns

    def reset(self) -> None:
        self.store.reset()

    def check_clarity(self, analysis: AnalysisResult) -> StyleClarity:
        try:
            reply = self.llm.chat(STYLE_CLARITY_PROMPT.format(summary=truncate_text(analysis.translated_summary, 1500)), json_mode=True)
        except ArticleAgentError as exc:
            logger.warning(f"Clarity check unavailable, continuing: {exc.message}")
            return StyleClarity(reason="check skipped")
        return parse_model(reply, StyleClarity) or StyleClarity(reason="check returned malformed output")

    def apply_style(self, analysis: AnalysisResult, patterns: Dict[str, Any]) -> AnalysisResult:
        critical = analysis.critical_analysis
        prompt = STYLE_APPLY_PROMPT.format(
            patterns=json.dumps(patterns, ensure_ascii=False, indent=2),
            summary=analysis.translated_summary,
            key_points="\n".join(f"- {point}" for point in analysis.key_points),
            why_important=critical.why_important or "",
            future_prediction=critical.future_prediction or "",
        )
        styled = parse_model(self.llm.chat(prompt, json_mode=True), StyledAnalysis)
        if styled is None or not styled.translated_summary.strip():
            logger.warning("Style application returned malformed output, keeping the original analysis")
            return analysis

        return analysis.model_copy(update={
            "translated_summary": styled.translated_summary.strip(),
            "key_points": styled.key_points or analysis.key_points,
            "critical_analysis": CriticalAnalysis(
                why_important=styled.critical_analysis.get("why_important") or critical.why_important,
                future_prediction=styled.critical_analysis.get("future_prediction") or critical.future_prediction,
            ),
            "metadata": {**analysis.metadata, "styled": True},
        })

    def process(self, context: PipelineContext):
        analysis = context.analysis
        if analysis is None:
            return Failure(messages=["No analysis to style; run analysis first"], error_type="ValidationError")

        patterns = self.store.patterns
        if not patterns:
            return Success(data={"styled": False, "reason": "no learned style"})

        if not self.validate(analysis):
            return Partial(
                clarification_question="The analysis is too short to restyle. Could you give more detail on what you want covered?",
                reason=f"Summary shorter than {self.min_summary_length} characters",
            )

        clarity = self.check_clarity(analysis)
        if not clarity.is_clear:
            return Partial(
                clarification_question=clarity.suggested_question or "Which angle should the styled analysis emphasise?",
                reason=clarity.reason,
            )

        styled = self.apply_style(analysis, patterns)
        return Success(
            data={"styled": styled is not analysis, "pattern_groups": sorted(patterns)},
            side_effects=ContextUpdate(analysis=styled),
        )

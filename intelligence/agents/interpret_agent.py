"""
Interpret Agent
解读读者请求或分析摘要; 请求不明确时返回澄清问题
"""

from __future__ import annotations

import logging
from typing import Any, List, Optional

from pydantic import BaseModel, Field, field_validator

from core import Failure, Partial, PipelineContext, Success
from core.contracts import ContextUpdate
from intelligence.llm import BaseLLM
from intelligence.pipeline_helpers import clean_list, parse_model, truncate_text
from intelligence.prompts import INTERPRET_CHECK_PROMPT, INTERPRET_PROMPT
from intelligence.tools.rag_tools import RetrievalAugmenter
from models import KnowledgeChunk
from utils.exceptions import ArticleAgentError


logger = logging.getLogger(__name__)

DEFAULT_QUESTION = "Could you say which aspect of the story you want interpreted (economic impact, political meaning, technology)?"


class TargetCheck(BaseModel):
    is_specific: bool = True
    reason: str = ""
    clarification_question: str = ""


class Interpretation(BaseModel):
    main_topic: str = "General analysis"
    sub_topics: List[str] = Field(default_factory=list)
    analysis_direction: str = ""
    key_questions: List[str] = Field(default_factory=list)
    confidence: float = 0.7

    @field_validator("sub_topics", "key_questions", mode="before")
    @classmethod
    def _lists(cls, value: Any) -> List[str]:
        return clean_list(value)


class InterpretAgent:
    """Optional stage that frames a direction for deeper analysis."""

    name = "interpret"

    def __init__(
        self,
        llm: BaseLLM,
        rag: Optional[RetrievalAugmenter] = None,
        *,
        min_length: int = 5,
        top_k: int = 3,
        relevance_threshold: float = 0.5,
    ):
        self.llm = llm
        self.rag = rag
        self.min_length = min_length
        self.top_k = top_k
        self.relevance_threshold = relevance_threshold

    def validate(self, data: Any) -> bool:
        return isinstance(data, str) and len(data.strip()) >= self.min_length

    def check_target(self, target: str) -> TargetCheck:
        if not self.validate(target):
            return TargetCheck(
                is_specific=False,
                reason="The request is too short to interpret.",
                clarification_question=DEFAULT_QUESTION,
            )
        try:
            reply = self.llm.chat(INTERPRET_CHECK_PROMPT.format(target=truncate_text(target, 2000)), json_mode=True)
        except ArticleAgentError as exc:
            logger.warning(f"Interpretation check unavailable, continuing: {exc.message}")
            return TargetCheck(reason="check skipped")
        return parse_model(reply, TargetCheck) or TargetCheck(reason="check returned malformed output")

    def find_patterns(self, target: str) -> List[KnowledgeChunk]:
        if self.rag is None:
            return []
        return self.rag.search_knowledge(target, top_k=self.top_k, threshold=self.relevance_threshold)

    def interpret(self, target: str, title: str, patterns: List[KnowledgeChunk]) -> Interpretation:
        knowledge = "\n".join(f"- ({round(c.similarity or 0.0, 4)}) {c.text}" for c in patterns) or "(none)"
        prompt = INTERPRET_PROMPT.format(target=truncate_text(target, 2000), title=title, knowledge=knowledge)
        reply = self.llm.chat(prompt, json_mode=True)
        parsed = parse_model(reply, Interpretation)
        if parsed is None:
            return Interpretation(analysis_direction=(reply or "").strip())
        return parsed

    def process(self, context: PipelineContext):
        summary = context.analysis.translated_summary if context.analysis else ""
        target = (context.query or "").strip() or summary.strip()
        if not target and context.analysis is None:
            return Failure(messages=["Nothing to interpret: no query and no analysis"], error_type="ValidationError")

        check = self.check_target(target)
        if not check.is_specific:
            logger.info(f"Interpretation needs clarification: {check.reason}")
            return Partial(
                clarification_question=check.clarification_question or DEFAULT_QUESTION,
                reason=check.reason,
            )

        patterns = self.find_patterns(target)
        title = context.article.title if context.article else ""
        interpretation = self.interpret(target, title, patterns)
        payload = interpretation.model_dump()

        return Success(
            data={
                "interpretation": payload,
                "matched_patterns": [{"id": c.id, "similarity": c.similarity} for c in patterns],
                "confidence": interpretation.confidence,
            },
            side_effects=ContextUpdate(metadata={"interpretation": payload}),
        )

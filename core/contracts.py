"""Canonical data contracts for the article analysis pipeline."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated, Any, Dict, List, Literal, Optional, Protocol, Union, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from models import AnalysisResult, ArticleData, FinalAnalysis


class ContextUpdate(BaseModel):
    """Changes a successful stage asks the orchestrator to merge into the context."""

    model_config = ConfigDict(frozen=True)

    article: Optional[ArticleData] = None
    analysis: Optional[AnalysisResult] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return self.article is None and self.analysis is None and not self.metadata


class Success(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["success"] = "success"
    data: Dict[str, Any] = Field(default_factory=dict)
    side_effects: ContextUpdate = Field(default_factory=ContextUpdate, exclude=True)


class Failure(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["failure"] = "failure"
    messages: List[str] = Field(default_factory=list)
    error_type: Optional[str] = None

    @field_validator("messages", mode="before")
    @classmethod
    def _as_list(cls, value: Any) -> List[str]:
        if isinstance(value, str):
            return [value]
        return list(value or [])

    @property
    def message(self) -> str:
        return "; ".join(self.messages) if self.messages else "stage failed"


class Partial(BaseModel):
    """Stage cannot proceed without more input from the caller."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["partial"] = "partial"
    clarification_question: str
    reason: str = ""


StageResult = Annotated[Union[Success, Failure, Partial], Field(discriminator="kind")]


class PipelineContext(BaseModel):
    """Run-scoped state; every update returns a new context."""

    model_config = ConfigDict(frozen=True)

    url: str
    query: Optional[str] = None
    article: Optional[ArticleData] = None
    analysis: Optional[AnalysisResult] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    processed_by: List[str] = Field(default_factory=list)
    started_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def with_article(self, article: ArticleData) -> PipelineContext:
        return self.model_copy(update={"article": article})

    def with_analysis(self, analysis: AnalysisResult) -> PipelineContext:
        return self.model_copy(update={"analysis": analysis})

    def with_metadata(self, **values: Any) -> PipelineContext:
        return self.model_copy(update={"metadata": {**self.metadata, **values}})

    def mark_processed(self, stage_name: str) -> PipelineContext:
        return self.model_copy(update={"processed_by": [*self.processed_by, stage_name]})

    def apply(self, update: ContextUpdate) -> PipelineContext:
        context = self
        if update.article is not None:
            context = context.with_article(update.article)
        if update.analysis is not None:
            context = context.with_analysis(update.analysis)
        if update.metadata:
            context = context.with_metadata(**update.metadata)
        return context

    @property
    def has_article(self) -> bool:
        return self.article is not None

    @property
    def has_analysis(self) -> bool:
        return self.analysis is not None


@runtime_checkable
class Stage(Protocol):
    """One named step of the pipeline."""

    name: str

    def validate(self, data: Any) -> bool:
        ...

    def process(self, context: PipelineContext) -> Union[Success, Failure, Partial]:
        ...


class PipelineRunResult(BaseModel):
    """Outcome of one orchestrator run."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    success: bool
    error: Optional[str] = None
    failed_stage: Optional[str] = None
    needs_clarification: bool = False
    clarification_question: Optional[str] = None
    clarification_reason: Optional[str] = None
    duration_ms: int = 0
    stage_names: List[str] = Field(default_factory=list, alias="agents")
    stage_results: Dict[str, StageResult] = Field(default_factory=dict, alias="results")
    final_analysis: Optional[FinalAnalysis] = None

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)

"""
Data Models / Schemas
文章与分析结果的统一数据结构
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ArticleData(BaseModel):
    """抓取得到的文章 (不可变, 通过 with_* 产生新副本)"""
    model_config = ConfigDict(frozen=True)

    url: str = Field(..., description="原始链接")
    title: str = Field(..., description="标题")
    content: str = Field(..., description="正文")
    description: Optional[str] = Field(None, description="摘要/描述")
    author: Optional[str] = Field(None, description="作者")
    published_at: Optional[str] = Field(None, description="发布时间 (原始字符串)")
    image_url: Optional[str] = Field(None, description="配图链接")
    language: str = Field(default="en", description="语言代码")
    source: Optional[str] = Field(None, description="来源站点")
    metadata: Dict[str, Any] = Field(default_factory=dict, description="抓取元数据")

    @property
    def content_length(self) -> int:
        return len(self.content)

    @property
    def word_count(self) -> int:
        return len(self.content.split())

    def with_image_url(self, image_url: Optional[str]) -> "ArticleData":
        return self.model_copy(update={"image_url": image_url})

    def with_metadata(self, **values: Any) -> "ArticleData":
        return self.model_copy(update={"metadata": {**self.metadata, **values}})


class CriticalAnalysis(BaseModel):
    """批判性分析"""
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    why_important: Optional[str] = None
    future_prediction: Optional[str] = None


class AnalysisResult(BaseModel):
    """分析阶段产出"""
    model_config = ConfigDict(frozen=True)

    news_title: Optional[str] = Field(None, description="改写后的标题")
    original_title: Optional[str] = Field(None, description="原标题")
    author: Optional[str] = None
    translated_summary: str = Field(default="", description="翻译摘要")
    content_summary: Optional[str] = Field(None, description="内容概述")
    key_points: List[str] = Field(default_factory=list, description="要点")
    narration: Optional[str] = Field(None, description="播报稿")
    critical_analysis: CriticalAnalysis = Field(default_factory=CriticalAnalysis)
    audio_url: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)

    def with_audio_url(self, audio_url: Optional[str]) -> "AnalysisResult":
        return self.model_copy(update={"audio_url": audio_url})

    def with_metadata(self, **values: Any) -> "AnalysisResult":
        return self.model_copy(update={"metadata": {**self.metadata, **values}})


class FinalAnalysisMetadata(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    source_url: str
    processed_at: datetime = Field(default_factory=datetime.now)
    agents_used: List[str] = Field(default_factory=list)
    mock_mode: bool = False


class FinalAnalysis(BaseModel):
    """对外输出的最终分析 (camelCase 序列化)"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    title: str
    translated_summary: str = ""
    key_points: List[str] = Field(default_factory=list)
    narration: str = ""
    audio_url: Optional[str] = None
    image_url: Optional[str] = None
    content_summary: Optional[str] = None
    original_title: Optional[str] = None
    author: Optional[str] = None
    critical_analysis: CriticalAnalysis = Field(default_factory=CriticalAnalysis)
    metadata: FinalAnalysisMetadata

    @classmethod
    def build(
        cls,
        analysis: AnalysisResult,
        article: Optional[ArticleData],
        source_url: str,
        agents_used: List[str],
        mock_mode: bool = False,
    ) -> "FinalAnalysis":
        title = analysis.news_title or (article.title if article else "") or ""
        return cls(
            title=title,
            translated_summary=analysis.translated_summary,
            key_points=list(analysis.key_points),
            narration=analysis.narration or "",
            audio_url=analysis.audio_url,
            image_url=article.image_url if article else None,
            content_summary=analysis.content_summary,
            original_title=analysis.original_title or (article.title if article else None),
            author=analysis.author or (article.author if article else None),
            critical_analysis=analysis.critical_analysis,
            metadata=FinalAnalysisMetadata(
                source_url=source_url,
                agents_used=list(agents_used),
                mock_mode=mock_mode,
            ),
        )

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class KnowledgeChunk(BaseModel):
    """向量库中的知识片段"""
    model_config = ConfigDict(frozen=True)

    id: str
    collection: str
    text: str
    embedding: List[float] = Field(default_factory=list)
    similarity: Optional[float] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)

    def with_similarity(self, similarity: float) -> "KnowledgeChunk":
        return self.model_copy(update={"similarity": similarity})

"""
Data Models
"""
from .schemas import (
    ArticleData,
    AnalysisResult,
    CriticalAnalysis,
    FinalAnalysis,
    FinalAnalysisMetadata,
    KnowledgeChunk,
)

__all__ = [
    "ArticleData",
    "AnalysisResult",
    "CriticalAnalysis",
    "FinalAnalysis",
    "FinalAnalysisMetadata",
    "KnowledgeChunk",
]

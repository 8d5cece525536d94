"""
Agent Tools
检索增强工具
"""
from .rag_tools import (
    ANALYSES_COLLECTION,
    FEEDBACK_COLLECTION,
    KNOWLEDGE_COLLECTION,
    RetrievalAugmenter,
    RetrievedContext,
)

__all__ = [
    "ANALYSES_COLLECTION",
    "FEEDBACK_COLLECTION",
    "KNOWLEDGE_COLLECTION",
    "RetrievalAugmenter",
    "RetrievedContext",
]

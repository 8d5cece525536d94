"""
Processing Module
文档处理模块 - 分块、向量化
"""
from .chunker import TextChunker, DocumentChunk, chunk_text
from .embedder import (
    BaseEmbedder,
    OpenAIEmbedder,
    SiliconFlowEmbedder,
    MockEmbedder,
    get_embedder,
)

__all__ = [
    # Chunker
    "TextChunker",
    "DocumentChunk",
    "chunk_text",
    # Embedder
    "BaseEmbedder",
    "OpenAIEmbedder",
    "SiliconFlowEmbedder",
    "MockEmbedder",
    "get_embedder",
]

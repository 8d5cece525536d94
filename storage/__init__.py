"""
Storage Module
存储模块 - 向量存储与写作风格模式
"""
from .vector_store import (
    BaseVectorStore,
    InMemoryVectorStore,
    QdrantVectorStore,
    get_vector_store,
)
from .style_store import StyleStore

__all__ = [
    "BaseVectorStore",
    "InMemoryVectorStore",
    "QdrantVectorStore",
    "get_vector_store",
    "StyleStore",
]

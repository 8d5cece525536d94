"""
RAG Tools
知识库检索与存储: 分块 -> 向量化 -> 相似度检索 -> 注入提示词
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
import hashlib

from models import KnowledgeChunk
from processing.chunker import TextChunker
from processing.embedder import BaseEmbedder
from storage.vector_store import BaseVectorStore
from utils.exceptions import ArticleAgentError
from utils.logger import get_rag_logger


logger = get_rag_logger()

FEEDBACK_COLLECTION = "editorial_feedback"
ANALYSES_COLLECTION = "analyses"
KNOWLEDGE_COLLECTION = "knowledge"

FEEDBACK_LABEL = "Editorial feedback (past critiques)"
ANALYSES_LABEL = "Reference from past analyses"


@dataclass
class RetrievedContext:
    """两个集合各自的检索结果 (不去重)"""
    feedback: List[KnowledgeChunk] = field(default_factory=list)
    analyses: List[KnowledgeChunk] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.feedback and not self.analyses

    def to_dict(self) -> Dict[str, Any]:
        return {
            "feedback": [chunk.text for chunk in self.feedback],
            "analyses": [chunk.text for chunk in self.analyses],
        }


def _format_score(similarity: Optional[float]) -> str:
    return "?" if similarity is None else f"{round(similarity, 3)}"


def _render_section(label: str, chunks: List[KnowledgeChunk]) -> Optional[str]:
    lines = [f"- [similarity {_format_score(c.similarity)}] {c.text}" for c in chunks if c.text]
    if not lines:
        return None
    return f"## {label}\n" + "\n".join(lines)


class RetrievalAugmenter:
    """
    检索增强

    所有外部调用 (embedding / 向量库) 由注入的 embedder 和 store 负责;
    本类只做分块、编排与提示词拼装
    """

    def __init__(
        self,
        embedder: BaseEmbedder,
        store: BaseVectorStore,
        chunker: Optional[TextChunker] = None,
        enabled: bool = True,
    ):
        self.embedder = embedder
        self.store = store
        self.chunker = chunker or TextChunker()
        self.enabled = enabled

    def _embed(self, text: str) -> List[float]:
        return [float(v) for v in self.embedder.embed_query(text)]

    def store_text(self, collection: str, text: str, metadata: Optional[Dict[str, Any]] = None) -> int:
        """
        分块、向量化并写入集合

        已存在的块不再向量化 (同一文本的块ID相同, 片段只写一次);
        单块向量化或写入失败时跳过该块, 不影响其余块

        Returns:
            本次新写入的块数
        """
        if not self.enabled or not text:
            return 0

        metadata = metadata or {}
        doc_id = metadata.get("doc_id") or hashlib.md5(text.encode("utf-8")).hexdigest()[:12]
        stored = 0
        for piece in self.chunker.chunk(text, doc_id=doc_id, metadata=metadata):
            try:
                if self.store.exists(collection, piece.id):
                    continue
                embedding = self._embed(piece.content)
                if not embedding:
                    continue
                self.store.insert(KnowledgeChunk(
                    id=piece.id,
                    collection=collection,
                    text=piece.content,
                    embedding=embedding,
                    metadata=piece.metadata,
                ))
            except ArticleAgentError as exc:
                logger.warning(f"Skipping chunk {piece.id}: {exc.message}")
                continue
            stored += 1

        logger.info(f"Stored {stored} chunks in '{collection}'")
        return stored

    def store_analysis(self, url: str, text: str, metadata: Optional[Dict[str, Any]] = None) -> int:
        return self.store_text(ANALYSES_COLLECTION, text, {**(metadata or {}), "url": url})

    def store_feedback(self, text: str, metadata: Optional[Dict[str, Any]] = None) -> int:
        return self.store_text(FEEDBACK_COLLECTION, text, metadata)

    def store_knowledge(self, text: str, metadata: Optional[Dict[str, Any]] = None) -> int:
        return self.store_text(KNOWLEDGE_COLLECTION, text, metadata)

    def retrieve(self, query: str, top_k: int = 5) -> RetrievedContext:
        """查询向量只计算一次, 分别检索反馈与历史分析两个集合"""
        if not self.enabled or not query:
            return RetrievedContext()
        try:
            embedding = self._embed(query)
            if not embedding:
                return RetrievedContext()
            return RetrievedContext(
                feedback=self.store.search(FEEDBACK_COLLECTION, embedding, top_k),
                analyses=self.store.search(ANALYSES_COLLECTION, embedding, top_k),
            )
        except ArticleAgentError as exc:
            logger.warning(f"RAG retrieval skipped: {exc.message}")
            return RetrievedContext()

    def search_knowledge(self, text: str, top_k: int = 5, threshold: float = 0.0) -> List[KnowledgeChunk]:
        if not self.enabled or not text:
            return []
        try:
            embedding = self._embed(text)
            results = self.store.search(KNOWLEDGE_COLLECTION, embedding, top_k)
        except ArticleAgentError as exc:
            logger.warning(f"Knowledge search skipped: {exc.message}")
            return []
        return [chunk for chunk in results if (chunk.similarity or 0.0) >= threshold]

    @staticmethod
    def augment_prompt(base_prompt: str, context: RetrievedContext) -> str:
        """把检索结果附加到系统提示词后; 无结果时原样返回"""
        sections = [
            section
            for section in (
                _render_section(FEEDBACK_LABEL, context.feedback),
                _render_section(ANALYSES_LABEL, context.analyses),
            )
            if section
        ]
        if not sections:
            return base_prompt
        return base_prompt + "\n\n--- Retrieved context ---\n" + "\n\n".join(sections)

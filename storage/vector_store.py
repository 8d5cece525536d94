"""
Vector Store
向量存储 - Qdrant (持久化/远程) 与内存实现
"""
from abc import ABC, abstractmethod
from typing import Callable, Dict, List, Optional
from pathlib import Path
from threading import Lock
import logging
import uuid

import numpy as np

from models import KnowledgeChunk
from utils.exceptions import TransportError, VectorStoreError
from utils.retry import ProviderReply, ResilientClient


logger = logging.getLogger(__name__)


class BaseVectorStore(ABC):
    """向量存储抽象基类; 一个实例管理多个集合"""

    @abstractmethod
    def insert(self, chunk: KnowledgeChunk) -> str:
        """写入单个片段, 返回片段ID; 已存在的ID不会被覆盖"""

    @abstractmethod
    def exists(self, collection: str, chunk_id: str) -> bool:
        """片段是否已写入 (片段只写一次)"""

    @abstractmethod
    def search(self, collection: str, query_vector: List[float], top_k: int = 5) -> List[KnowledgeChunk]:
        """按余弦相似度检索, 结果带 similarity, 由高到低排序"""

    @abstractmethod
    def count(self, collection: str) -> int:
        """返回集合中的片段数"""

    @abstractmethod
    def clear(self, collection: str) -> None:
        """清空集合"""

    def insert_many(self, chunks: List[KnowledgeChunk]) -> List[str]:
        return [self.insert(chunk) for chunk in chunks]

    def close(self) -> None:
        return None


class InMemoryVectorStore(BaseVectorStore):
    """
    进程内向量存储 (离线模式/测试)

    写入加锁, 读取基于快照
    """

    def __init__(self):
        self._collections: Dict[str, List[KnowledgeChunk]] = {}
        self._lock = Lock()

    def insert(self, chunk: KnowledgeChunk) -> str:
        if not chunk.embedding:
            raise VectorStoreError("Refusing to store chunk without embedding", {"id": chunk.id})
        with self._lock:
            items = self._collections.setdefault(chunk.collection, [])
            if not any(item.id == chunk.id for item in items):
                items.append(chunk)
        return chunk.id

    def exists(self, collection: str, chunk_id: str) -> bool:
        with self._lock:
            return any(item.id == chunk_id for item in self._collections.get(collection, []))

    def search(self, collection: str, query_vector: List[float], top_k: int = 5) -> List[KnowledgeChunk]:
        with self._lock:
            items = list(self._collections.get(collection, []))
        if not items or not query_vector or top_k <= 0:
            return []

        query = np.asarray(query_vector, dtype=float)
        query_norm = np.linalg.norm(query)
        if query_norm == 0:
            return []

        scored = []
        for item in items:
            vector = np.asarray(item.embedding, dtype=float)
            if vector.shape != query.shape:
                continue
            norm = np.linalg.norm(vector)
            if norm == 0:
                continue
            scored.append((float(np.dot(query, vector) / (query_norm * norm)), item))

        scored.sort(key=lambda pair: pair[0], reverse=True)
        return [item.with_similarity(score) for score, item in scored[:top_k]]

    def count(self, collection: str) -> int:
        with self._lock:
            return len(self._collections.get(collection, []))

    def clear(self, collection: str) -> None:
        with self._lock:
            self._collections.pop(collection, None)


class QdrantVectorStore(BaseVectorStore):
    """
    Qdrant 向量存储

    - url: 远程 Qdrant / Qdrant Cloud
    - persist_directory: 本地嵌入式持久化
    - 都不传: 内存模式
    远程调用经 ResilientClient, 429/5xx 按统一策略重试
    """

    def __init__(
        self,
        persist_directory: Optional[str] = None,
        url: Optional[str] = None,
        api_key: Optional[str] = None,
        retry_client: Optional[ResilientClient] = None,
    ):
        self.persist_directory = persist_directory
        self.url = url
        self.api_key = api_key
        self.retry = retry_client or ResilientClient(provider="qdrant")
        self._known_collections = set()
        self._client = self._init_client()

    def _init_client(self):
        from qdrant_client import QdrantClient

        if self.url:
            logger.info(f"Qdrant connected to: {self.url}")
            return QdrantClient(url=self.url, api_key=self.api_key)
        if self.persist_directory:
            persist_path = Path(self.persist_directory)
            persist_path.mkdir(parents=True, exist_ok=True)
            logger.info(f"Qdrant initialized with persistence at: {persist_path}")
            return QdrantClient(path=str(persist_path))
        logger.info("Qdrant initialized in memory mode")
        return QdrantClient(":memory:")

    def _call(self, func: Callable[[], object]):
        """把 qdrant-client 的异常映射为统一的状态码结果"""
        from qdrant_client.http.exceptions import ResponseHandlingException, UnexpectedResponse

        def operation() -> ProviderReply:
            try:
                return ProviderReply(status=200, payload=func())
            except UnexpectedResponse as exc:
                text = exc.content.decode("utf-8", "replace") if exc.content else str(exc)
                return ProviderReply(status=exc.status_code or 500, text=text, headers=exc.headers or {})
            except ResponseHandlingException as exc:
                raise TransportError(f"qdrant transport failure: {exc}", provider="qdrant") from exc

        return self.retry.call(operation)

    @staticmethod
    def _point_id(chunk_id: str) -> str:
        return str(uuid.uuid5(uuid.NAMESPACE_URL, chunk_id))

    def _ensure_collection(self, collection: str, dimension: int) -> None:
        from qdrant_client.models import Distance, VectorParams

        if collection in self._known_collections:
            return
        if not self._call(lambda: self._client.collection_exists(collection)):
            self._call(lambda: self._client.create_collection(
                collection_name=collection,
                vectors_config=VectorParams(size=dimension, distance=Distance.COSINE),
            ))
            logger.info(f"Created collection '{collection}' with dimension {dimension}")
        self._known_collections.add(collection)

    def insert(self, chunk: KnowledgeChunk) -> str:
        from qdrant_client.models import PointStruct

        if not chunk.embedding:
            raise VectorStoreError("Refusing to store chunk without embedding", {"id": chunk.id})

        self._ensure_collection(chunk.collection, len(chunk.embedding))
        if self.exists(chunk.collection, chunk.id):
            return chunk.id
        # Qdrant payload 不支持 None
        payload = {k: v for k, v in chunk.metadata.items() if v is not None}
        payload.update({"_content": chunk.text, "_id": chunk.id})
        point = PointStruct(id=self._point_id(chunk.id), vector=list(chunk.embedding), payload=payload)
        self._call(lambda: self._client.upsert(collection_name=chunk.collection, points=[point]))
        return chunk.id

    def exists(self, collection: str, chunk_id: str) -> bool:
        if not self._call(lambda: self._client.collection_exists(collection)):
            return False
        points = self._call(lambda: self._client.retrieve(
            collection_name=collection,
            ids=[self._point_id(chunk_id)],
            with_payload=False,
            with_vectors=False,
        ))
        return bool(points)

    def search(self, collection: str, query_vector: List[float], top_k: int = 5) -> List[KnowledgeChunk]:
        if not query_vector or top_k <= 0:
            return []
        if not self._call(lambda: self._client.collection_exists(collection)):
            return []

        response = self._call(lambda: self._client.query_points(
            collection_name=collection,
            query=list(query_vector),
            limit=top_k,
            with_payload=True,
        ))

        results = []
        for hit in response.points:
            payload = dict(hit.payload or {})
            text = payload.pop("_content", "")
            chunk_id = payload.pop("_id", str(hit.id))
            results.append(KnowledgeChunk(
                id=chunk_id,
                collection=collection,
                text=text,
                similarity=float(hit.score),
                metadata=payload,
            ))
        return results

    def count(self, collection: str) -> int:
        if not self._call(lambda: self._client.collection_exists(collection)):
            return 0
        return self._call(lambda: self._client.count(collection_name=collection)).count

    def clear(self, collection: str) -> None:
        if self._call(lambda: self._client.collection_exists(collection)):
            self._call(lambda: self._client.delete_collection(collection))
        self._known_collections.discard(collection)
        logger.info(f"Collection '{collection}' cleared")

    def close(self) -> None:
        self._client.close()


def get_vector_store(settings=None, mock: bool = False) -> BaseVectorStore:
    """
    获取向量存储实例

    Args:
        settings: Settings (默认读取全局配置)
        mock: 离线模式使用内存存储
    """
    if settings is None:
        from config import get_settings
        settings = get_settings()

    storage = settings.storage
    if mock or storage.vector_db_provider == "memory":
        return InMemoryVectorStore()
    if storage.vector_db_provider != "qdrant":
        raise VectorStoreError(f"Unsupported vector store: {storage.vector_db_provider}")

    return QdrantVectorStore(
        persist_directory=None if storage.qdrant_url else storage.vector_db_path,
        url=storage.qdrant_url,
        api_key=storage.qdrant_api_key,
        retry_client=ResilientClient.from_settings("qdrant", settings),
    )

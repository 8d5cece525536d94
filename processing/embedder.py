"""
Embedder
文本向量化: OpenAI 兼容的 /embeddings 接口 (OpenAI, SiliconFlow) 与离线哈希向量
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Dict, Iterator, List, Optional, Tuple, Union
import hashlib
import logging

import numpy as np

from utils.exceptions import ArticleAgentError, EmbeddingError
from utils.retry import ResilientClient


logger = logging.getLogger(__name__)

# provider -> (base_url, default model, batch size)
PROVIDER_PRESETS: Dict[str, Tuple[str, str, int]] = {
    "openai": ("https://api.openai.com/v1", "text-embedding-3-small", 100),
    "siliconflow": ("https://api.siliconflow.cn/v1", "BAAI/bge-m3", 32),
}

MODEL_DIMENSIONS: Dict[str, int] = {
    "text-embedding-3-small": 1536,
    "text-embedding-3-large": 3072,
    "text-embedding-ada-002": 1536,
    "BAAI/bge-m3": 1024,
    "BAAI/bge-large-en-v1.5": 1024,
}


def _as_list(texts: Union[str, List[str]]) -> List[str]:
    return [texts] if isinstance(texts, str) else list(texts)


def _chunks(items: List[str], size: int) -> Iterator[List[str]]:
    for start in range(0, len(items), size):
        yield items[start:start + size]


class BaseEmbedder(ABC):
    """向量化接口; 返回 (n_texts, dimension) 的数组"""

    def __init__(self, model_name: str):
        self.model_name = model_name

    @property
    @abstractmethod
    def dimension(self) -> int:
        ...

    @abstractmethod
    def embed(self, texts: Union[str, List[str]]) -> np.ndarray:
        ...

    def embed_query(self, query: str) -> np.ndarray:
        return self.embed(query)[0]


class OpenAIEmbedder(BaseEmbedder):
    """
    OpenAI 兼容 /embeddings 接口

    请求经 ResilientClient 发出, 429/5xx 按统一策略重试;
    其他失败统一转为 EmbeddingError
    """

    PROVIDER = "openai"

    def __init__(
        self,
        model_name: Optional[str] = None,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        batch_size: Optional[int] = None,
        client: Optional[ResilientClient] = None,
    ):
        default_url, default_model, default_batch = PROVIDER_PRESETS[self.PROVIDER]
        super().__init__(model_name or default_model)
        self.api_key = api_key
        self.base_url = (base_url or default_url).rstrip("/")
        self.batch_size = batch_size or default_batch
        self.client = client or ResilientClient(provider=f"{self.PROVIDER}-embeddings")

    @property
    def dimension(self) -> int:
        return MODEL_DIMENSIONS.get(self.model_name, 1536)

    def embed(self, texts: Union[str, List[str]]) -> np.ndarray:
        if not self.api_key:
            raise EmbeddingError(f"No API key configured for {self.PROVIDER} embeddings", model=self.model_name)

        vectors: List[List[float]] = []
        for batch in _chunks(_as_list(texts), self.batch_size):
            vectors.extend(self._request(batch))
        return np.array(vectors)

    def _request(self, batch: List[str]) -> List[List[float]]:
        body = {"model": self.model_name, "input": batch, "encoding_format": "float"}
        headers = {"Authorization": f"Bearer {self.api_key}"}
        try:
            result = self.client.post_json(f"{self.base_url}/embeddings", body, headers=headers)
            rows = sorted(result["data"], key=lambda row: row["index"])
            return [row["embedding"] for row in rows]
        except ArticleAgentError as exc:
            raise EmbeddingError(f"{self.PROVIDER} embeddings failed: {exc.message}", model=self.model_name) from exc
        except (KeyError, TypeError) as exc:
            raise EmbeddingError(f"Malformed embedding response: {exc}", model=self.model_name) from exc


class SiliconFlowEmbedder(OpenAIEmbedder):
    """SiliconFlow (BGE-M3 等中英文模型)"""

    PROVIDER = "siliconflow"

    @property
    def dimension(self) -> int:
        return MODEL_DIMENSIONS.get(self.model_name, 1024)


class MockEmbedder(BaseEmbedder):
    """
    离线哈希向量

    由词的 md5 决定维度与符号, 相同文本得到相同向量, 词重叠越多余弦相似度越高
    """

    def __init__(self, model_name: str = "mock-hash", dimension: int = 256):
        super().__init__(model_name)
        self._dimension = dimension

    @property
    def dimension(self) -> int:
        return self._dimension

    def _vector(self, text: str) -> np.ndarray:
        vector = np.zeros(self._dimension, dtype=float)
        for token in text.lower().split():
            digest = hashlib.md5(token.encode("utf-8")).digest()
            index = int.from_bytes(digest[:4], "big") % self._dimension
            vector[index] += 1.0 if digest[4] % 2 == 0 else -1.0
        norm = np.linalg.norm(vector)
        return vector / norm if norm > 0 else vector

    def embed(self, texts: Union[str, List[str]]) -> np.ndarray:
        return np.array([self._vector(text) for text in _as_list(texts)])


def get_embedder(settings=None, mock: bool = False, client: Optional[ResilientClient] = None) -> BaseEmbedder:
    """
    获取 Embedder 实例

    配置示例 (.env):
        EMBEDDING_PROVIDER=siliconflow
        EMBEDDING_MODEL_NAME=BAAI/bge-m3
        EMBEDDING_SILICONFLOW_API_KEY=your_key
    """
    if settings is None:
        from config import get_settings
        settings = get_settings()

    config = settings.embedding
    provider = "mock" if mock else (config.provider or "openai").strip().lower()
    if provider == "mock":
        return MockEmbedder()

    classes = {"openai": OpenAIEmbedder, "siliconflow": SiliconFlowEmbedder}
    if provider not in classes:
        raise ValueError(f"Unknown embedding provider: {provider}. Supported: {', '.join([*classes, 'mock'])}")

    api_key = config.siliconflow_api_key if provider == "siliconflow" else (config.openai_api_key or settings.llm.openai_api_key)
    return classes[provider](
        model_name=config.model_name,
        api_key=api_key,
        client=client or ResilientClient.from_settings(f"{provider}-embeddings", settings),
    )

"""
Tests for Processing and Storage modules
"""
import json

import httpx
import numpy as np
import pytest

from conftest import article_body
from models import KnowledgeChunk
from processing import MockEmbedder, TextChunker, chunk_text, get_embedder
from processing.embedder import OpenAIEmbedder, SiliconFlowEmbedder
from storage import InMemoryVectorStore, QdrantVectorStore, StyleStore
from utils.exceptions import EmbeddingError, StorageError, VectorStoreError
from utils.retry import ResilientClient


TEXTS = [
    article_body(500),
    "가나다라마바사아자차카타파하" * 150,
    "Emoji 🚀 mixed with 한국어 text, and commas, everywhere. " * 60,
    "line one\nline two\n\nparagraph two. " * 80,
    "x" * 2500,
    "short",
]


class TestChunker:
    """文本分块测试"""

    @pytest.mark.parametrize("text", TEXTS)
    def test_join_reconstructs_original(self, text):
        assert "".join(chunk_text(text, chunk_size=800)) == text

    @pytest.mark.parametrize("text", TEXTS)
    def test_chunks_respect_bound(self, text):
        for piece in chunk_text(text, chunk_size=300):
            assert 0 < len(piece) <= 300
            assert piece.encode("utf-8").decode("utf-8") == piece

    def test_empty_text(self):
        assert chunk_text("") == []

    def test_cuts_after_sentence_end(self):
        text = "A" * 300 + ". " + "B" * 600
        chunks = chunk_text(text, chunk_size=800)
        assert chunks[0] == "A" * 300 + ". "
        assert chunks[1] == "B" * 600

    def test_early_sentence_end_falls_back_to_soft_break(self):
        text = "Short. " + "abcd, " * 40
        first = chunk_text(text, chunk_size=100)[0]
        assert len(first) > len("Short. ")
        assert first.endswith(" ")

    def test_hard_cut_without_breaks(self):
        assert [len(c) for c in chunk_text("x" * 250, chunk_size=100)] == [100, 100, 50]

    def test_chunk_positions(self):
        text = article_body(300)
        chunks = TextChunker(chunk_size=200).chunk(text, doc_id="doc", metadata={"url": "u"})

        assert chunks[0].id == "doc_0"
        assert chunks[0].start_char == 0
        assert chunks[-1].end_char == len(text)
        for piece in chunks:
            assert text[piece.start_char:piece.end_char] == piece.content
            assert piece.metadata["url"] == "u"

    def test_invalid_size(self):
        with pytest.raises(ValueError):
            TextChunker(chunk_size=0)


class TestEmbedder:
    """向量化测试"""

    def test_mock_embedder_is_deterministic_and_normalised(self):
        embedder = MockEmbedder()
        first = embedder.embed_query("central bank raises interest rates")
        second = embedder.embed_query("central bank raises interest rates")

        assert first.shape == (256,)
        assert np.allclose(first, second)
        assert np.isclose(np.linalg.norm(first), 1.0)

    def test_mock_embedder_similarity_follows_overlap(self):
        embedder = MockEmbedder()
        base, close, far = embedder.embed(["central bank raises rates", "central bank cuts rates", "football final tonight"])
        assert float(base @ close) > float(base @ far)

    def test_get_embedder_mock(self, offline_settings):
        assert isinstance(get_embedder(offline_settings, mock=True), MockEmbedder)

    def test_openai_embedder_without_key(self):
        with pytest.raises(EmbeddingError):
            OpenAIEmbedder(api_key=None).embed("text")

    def _embedder(self, handler, sleeps, **kwargs) -> OpenAIEmbedder:
        client = ResilientClient(
            provider="openai-embeddings",
            sleep=sleeps.append,
            http_client=httpx.Client(transport=httpx.MockTransport(handler)),
        )
        return OpenAIEmbedder(api_key="sk-test", client=client, **kwargs)

    def test_openai_embedder_batches_and_orders(self):
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            body = json.loads(request.content)
            requests.append((str(request.url), request.headers["Authorization"], body))
            rows = [{"index": i, "embedding": [float(len(text)), 1.0]} for i, text in enumerate(body["input"])]
            return httpx.Response(200, json={"data": list(reversed(rows))})

        vectors = self._embedder(handler, [], batch_size=2).embed(["a", "bb", "ccc"])

        assert vectors.tolist() == [[1.0, 1.0], [2.0, 1.0], [3.0, 1.0]]
        assert [len(body["input"]) for _, _, body in requests] == [2, 1]
        assert requests[0][0] == "https://api.openai.com/v1/embeddings"
        assert requests[0][1] == "Bearer sk-test"
        assert requests[0][2]["model"] == "text-embedding-3-small"

    def test_openai_embedder_retries_then_wraps_errors(self):
        sleeps = []
        responses = [httpx.Response(503, text="busy"), httpx.Response(400, json={"error": {"message": "bad input"}})]

        def handler(request: httpx.Request) -> httpx.Response:
            return responses.pop(0)

        with pytest.raises(EmbeddingError) as exc_info:
            self._embedder(handler, sleeps).embed("text")

        assert "bad input" in exc_info.value.message
        assert sleeps == [2.0]

    def test_malformed_embedding_response(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"unexpected": True})

        with pytest.raises(EmbeddingError):
            self._embedder(handler, []).embed("text")

    def test_get_embedder_providers(self, offline_settings):
        offline_settings.embedding.provider = "siliconflow"
        offline_settings.embedding.siliconflow_api_key = "sf-key"
        embedder = get_embedder(offline_settings)

        assert isinstance(embedder, SiliconFlowEmbedder)
        assert embedder.model_name == "BAAI/bge-m3"
        assert embedder.base_url == "https://api.siliconflow.cn/v1"
        assert embedder.dimension == 1024

        offline_settings.embedding.provider = "openai"
        offline_settings.embedding.openai_api_key = "sk-key"
        offline_settings.embedding.model_name = "text-embedding-3-large"
        assert get_embedder(offline_settings).dimension == 3072
        assert "dimension" not in type(offline_settings.embedding).model_fields

        offline_settings.embedding.provider = "unknown"
        with pytest.raises(ValueError):
            get_embedder(offline_settings)


class TestInMemoryVectorStore:
    """内存向量存储测试"""

    def _chunk(self, chunk_id, vector, collection="analyses"):
        return KnowledgeChunk(id=chunk_id, collection=collection, text=f"text {chunk_id}", embedding=vector)

    def test_search_orders_by_cosine(self):
        store = InMemoryVectorStore()
        store.insert_many([
            self._chunk("a", [1.0, 0.0]),
            self._chunk("b", [0.7, 0.7]),
            self._chunk("c", [0.0, 1.0]),
        ])

        results = store.search("analyses", [1.0, 0.1], top_k=2)

        assert [r.id for r in results] == ["a", "b"]
        assert results[0].similarity > results[1].similarity

    def test_collections_are_independent(self):
        store = InMemoryVectorStore()
        store.insert(self._chunk("a", [1.0, 0.0], collection="one"))

        assert store.search("two", [1.0, 0.0]) == []
        assert store.count("one") == 1

    def test_chunks_are_write_once(self):
        store = InMemoryVectorStore()
        assert store.exists("analyses", "a") is False
        store.insert(self._chunk("a", [1.0, 0.0]))
        store.insert(self._chunk("a", [0.0, 1.0]))

        assert store.exists("analyses", "a") is True
        assert store.exists("other", "a") is False
        assert store.count("analyses") == 1
        assert store.search("analyses", [1.0, 0.0])[0].similarity == pytest.approx(1.0)

    def test_rejects_empty_embedding(self):
        with pytest.raises(VectorStoreError):
            InMemoryVectorStore().insert(self._chunk("a", []))

    def test_clear(self):
        store = InMemoryVectorStore()
        store.insert(self._chunk("a", [1.0, 0.0]))
        store.clear("analyses")
        assert store.count("analyses") == 0


class TestStyleStore:
    """写作风格存储测试"""

    def test_patterns_persist_across_instances(self, tmp_path):
        path = tmp_path / "style" / "patterns.json"
        store = StyleStore(str(path))
        assert store.has_patterns() is False

        store.add_sample("First sample text.")
        store.save_patterns({"style": {"tone": "analytical"}})

        reloaded = StyleStore(str(path))
        assert reloaded.has_patterns() is True
        assert reloaded.patterns["style"]["tone"] == "analytical"
        assert [s["text"] for s in reloaded.samples] == ["First sample text."]

        data = json.loads(path.read_text(encoding="utf-8"))
        assert data["sample_count"] == 1
        assert "updated_at" in data

    def test_reset_removes_file(self, tmp_path):
        path = tmp_path / "patterns.json"
        store = StyleStore(str(path))
        store.save_patterns({"style": {}})

        store.reset()

        assert not path.exists()
        assert store.has_patterns() is False
        assert store.samples == []

    def test_unreadable_file_is_ignored(self, tmp_path):
        path = tmp_path / "patterns.json"
        path.write_text("{not json", encoding="utf-8")
        assert StyleStore(str(path)).has_patterns() is False

    def test_save_failure_raises_storage_error(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("file, not a directory", encoding="utf-8")
        store = StyleStore(str(blocker / "patterns.json"))

        with pytest.raises(StorageError):
            store.save_patterns({"style": {}})


class TestQdrantVectorStore:
    """Qdrant 内存模式测试"""

    def test_insert_search_count_clear(self):
        store = QdrantVectorStore()
        store.insert_many([
            KnowledgeChunk(id="a", collection="analyses", text="alpha", embedding=[1.0, 0.0], metadata={"url": "u", "skip": None}),
            KnowledgeChunk(id="b", collection="analyses", text="beta", embedding=[0.0, 1.0]),
        ])

        results = store.search("analyses", [0.9, 0.1], top_k=2)

        assert [r.id for r in results] == ["a", "b"]
        assert results[0].text == "alpha"
        assert results[0].metadata == {"url": "u"}
        assert results[0].similarity > results[1].similarity
        assert store.count("analyses") == 2
        assert store.exists("analyses", "a") is True
        assert store.exists("missing", "a") is False
        assert store.search("missing", [1.0, 0.0]) == []

        store.insert(KnowledgeChunk(id="a", collection="analyses", text="changed", embedding=[0.0, 1.0]))
        assert store.search("analyses", [1.0, 0.0], top_k=1)[0].text == "alpha"

        store.clear("analyses")
        assert store.count("analyses") == 0
        store.close()

    def test_rejects_empty_embedding(self):
        with pytest.raises(VectorStoreError):
            QdrantVectorStore().insert(KnowledgeChunk(id="a", collection="c", text="t"))

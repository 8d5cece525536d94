"""
Text Chunker
文本分块模块 - 在句子边界处切分, 块拼接后与原文完全一致
"""
from dataclasses import dataclass, field
from typing import List, Optional
import hashlib


@dataclass
class DocumentChunk:
    """文档块"""
    id: str                             # 块ID
    content: str                        # 块内容
    metadata: dict = field(default_factory=dict)
    index: int = 0                      # 在原文档中的索引
    start_char: int = 0                 # 起始字符位置
    end_char: int = 0                   # 结束字符位置

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "content": self.content,
            "metadata": self.metadata,
            "index": self.index,
            "start_char": self.start_char,
            "end_char": self.end_char,
        }


class TextChunker:
    """
    文本分块器

    每块不超过 chunk_size 个字符 (按 Unicode 码点计, 不会切开多字节字符)。
    优先在窗口内最后一个句末处切分; 句末位置过早 (小于窗口 min_ratio) 时
    退而在逗号/空格处切分; 都没有则在 chunk_size 处硬切。
    不做 strip, 因此 "".join(chunks) == text。
    """

    SENTENCE_BREAKS = (". ", "? ", "! ", ".\n", "?\n", "!\n", "\n\n", "\n")
    SOFT_BREAKS = (", ", " ")

    def __init__(self, chunk_size: int = 800, min_ratio: float = 0.3):
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        self.chunk_size = chunk_size
        self.min_ratio = min_ratio

    @staticmethod
    def _last_break(window: str, separators) -> int:
        best = -1
        for sep in separators:
            pos = window.rfind(sep)
            if pos >= 0:
                best = max(best, pos + len(sep))
        return best

    def _cut_point(self, window: str) -> int:
        sentence_cut = self._last_break(window, self.SENTENCE_BREAKS)
        if sentence_cut >= self.chunk_size * self.min_ratio:
            return sentence_cut

        soft_cut = self._last_break(window, self.SOFT_BREAKS)
        if soft_cut > 0:
            return soft_cut
        return len(window)

    def split(self, text: str) -> List[str]:
        """切分为字符串列表; 空文本返回空列表"""
        if not text:
            return []

        chunks: List[str] = []
        pos = 0
        length = len(text)
        while pos < length:
            if length - pos <= self.chunk_size:
                chunks.append(text[pos:])
                break
            window = text[pos:pos + self.chunk_size]
            cut = self._cut_point(window)
            chunks.append(window[:cut])
            pos += cut
        return chunks

    def chunk(self, text: str, doc_id: Optional[str] = None, metadata: Optional[dict] = None) -> List[DocumentChunk]:
        """
        切分并附带位置信息

        Args:
            text: 原文
            doc_id: 文档ID (默认取内容哈希)
            metadata: 附加到每个块的元数据

        Returns:
            DocumentChunk 列表
        """
        doc_id = doc_id or hashlib.md5(text.encode("utf-8")).hexdigest()[:12]
        metadata = metadata or {}

        result = []
        offset = 0
        for index, piece in enumerate(self.split(text)):
            result.append(
                DocumentChunk(
                    id=f"{doc_id}_{index}",
                    content=piece,
                    metadata={**metadata, "doc_id": doc_id, "chunk_index": index},
                    index=index,
                    start_char=offset,
                    end_char=offset + len(piece),
                )
            )
            offset += len(piece)
        return result


def chunk_text(text: str, chunk_size: int = 800) -> List[str]:
    """便捷函数"""
    return TextChunker(chunk_size=chunk_size).split(text)

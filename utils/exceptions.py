"""
Custom Exceptions
自定义异常类
"""
from typing import Optional


class ArticleAgentError(Exception):
    """文章分析助手基础异常类"""

    def __init__(self, message: str, details: dict = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self):
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigurationError(ArticleAgentError):
    """配置错误"""
    pass


class FetchError(ArticleAgentError):
    """页面抓取失败"""

    def __init__(self, message: str, url: str = None, status: Optional[int] = None, **kwargs):
        super().__init__(message, kwargs)
        self.url = url
        self.status = status


class AccessBlocked(FetchError):
    """站点拒绝访问 (403 / 451)"""
    pass


class ParseError(ArticleAgentError):
    """无法从 HTML 中提取正文"""
    pass


class ValidationError(ArticleAgentError):
    """输入或内容校验失败"""
    pass


class ProviderError(ArticleAgentError):
    """外部服务返回非成功状态"""

    def __init__(self, message: str, status: int = 0, provider: str = None, **kwargs):
        super().__init__(message, kwargs)
        self.status = status
        self.provider = provider


class RateLimited(ProviderError):
    """429 重试耗尽"""

    def __init__(
        self,
        message: str,
        status: int = 429,
        provider: str = None,
        retry_after: Optional[float] = None,
        **kwargs,
    ):
        super().__init__(message, status=status, provider=provider, **kwargs)
        self.retry_after = retry_after


class ServerError(ProviderError):
    """5xx 重试耗尽"""
    pass


class TransportError(ArticleAgentError):
    """网络层失败 (连接/超时)，不重试"""

    def __init__(self, message: str, provider: str = None, **kwargs):
        super().__init__(message, kwargs)
        self.provider = provider


class StorageError(ArticleAgentError):
    """存储错误"""
    pass


class VectorStoreError(StorageError):
    """向量存储错误"""
    pass


class EmbeddingError(ArticleAgentError):
    """向量化错误"""

    def __init__(self, message: str, model: str = None, **kwargs):
        super().__init__(message, kwargs)
        self.model = model

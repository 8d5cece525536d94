"""
Utils Module
通用工具函数
"""
from .logger import setup_logger, get_logger
from .exceptions import (
    ArticleAgentError,
    AccessBlocked,
    ConfigurationError,
    EmbeddingError,
    FetchError,
    ParseError,
    ProviderError,
    RateLimited,
    ServerError,
    StorageError,
    TransportError,
    ValidationError,
)
from .retry import ProviderReply, ResilientClient

__all__ = [
    "setup_logger",
    "get_logger",
    "ArticleAgentError",
    "AccessBlocked",
    "ConfigurationError",
    "EmbeddingError",
    "FetchError",
    "ParseError",
    "ProviderError",
    "RateLimited",
    "ServerError",
    "StorageError",
    "TransportError",
    "ValidationError",
    "ProviderReply",
    "ResilientClient",
]

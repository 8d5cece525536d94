"""
LLM Factory
工厂函数 - 根据配置自动创建 LLM 实例
"""
from typing import Optional
import logging

from utils.exceptions import ConfigurationError
from utils.retry import ResilientClient

from .base import BaseLLM
from .deepseek_llm import DeepSeekLLM
from .mock_llm import MockLLM
from .openai_llm import OpenAILLM


logger = logging.getLogger(__name__)


# 默认模型配置
DEFAULT_MODELS = {
    "openai": "gpt-4o-mini",
    "deepseek": "deepseek-chat",
    "mock": "mock-llm",
}


def get_llm(
    settings=None,
    provider: Optional[str] = None,
    model: Optional[str] = None,
    mock: bool = False,
    **kwargs,
) -> BaseLLM:
    """
    获取 LLM 实例

    Args:
        settings: Settings (默认读取全局配置)
        provider: LLM 供应商 (openai, deepseek, mock)
        model: 模型名称 (不传则使用默认)
        mock: 强制使用离线 MockLLM
        **kwargs: 额外参数 (temperature, max_tokens 等)

    Example:
        llm = get_llm()
        llm = get_llm(provider="deepseek")
        llm = get_llm(mock=True)
    """
    if settings is None:
        from config import get_settings
        settings = get_settings()

    config = settings.llm
    provider = "mock" if mock else (provider or config.provider)
    model = model or config.model_name or DEFAULT_MODELS.get(provider)

    if provider == "mock":
        return MockLLM(model=model)

    api_keys = {
        "openai": config.openai_api_key,
        "deepseek": config.deepseek_api_key,
    }
    if provider not in api_keys:
        raise ValueError(f"Unsupported LLM provider: {provider}")

    api_key = kwargs.pop("api_key", None) or api_keys[provider]
    if not api_key:
        raise ConfigurationError(f"No API key configured for LLM provider '{provider}'")

    kwargs.setdefault("temperature", config.temperature)
    kwargs.setdefault("max_tokens", config.max_tokens)
    kwargs.setdefault("timeout", config.timeout)
    kwargs.setdefault("retry_client", ResilientClient.from_settings(provider, settings))

    cls = OpenAILLM if provider == "openai" else DeepSeekLLM
    return cls(model=model, api_key=api_key, base_url=config.base_url, **kwargs)

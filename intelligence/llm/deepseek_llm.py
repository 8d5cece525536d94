"""
DeepSeek LLM
OpenAI 兼容接口, 默认 deepseek-chat
"""
from typing import Optional

from .openai_llm import OpenAILLM


class DeepSeekLLM(OpenAILLM):
    """DeepSeek 走 OpenAI SDK, 只替换 base_url 与默认模型"""

    DEFAULT_BASE_URL = "https://api.deepseek.com"

    def __init__(
        self,
        model: str = "deepseek-chat",
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: float = 120.0,
        **kwargs,
    ):
        super().__init__(
            model=model,
            api_key=api_key,
            base_url=base_url or self.DEFAULT_BASE_URL,
            timeout=timeout,
            **kwargs,
        )

    @property
    def provider(self) -> str:
        return "deepseek"

"""
OpenAI LLM
支持 GPT-4o, GPT-4o-mini 等模型
"""
from typing import Any, Callable, List, Optional
import logging

from utils.exceptions import TransportError
from utils.retry import ProviderReply, ResilientClient

from .base import BaseLLM, Message, LLMResponse


logger = logging.getLogger(__name__)


def sdk_operation(func: Callable[[], Any], provider: str) -> Callable[[], ProviderReply]:
    """
    把 openai SDK 调用包装成 ResilientClient 可执行的操作

    SDK 自带重试被关闭, 状态码交给统一策略处理
    """
    import openai

    def operation() -> ProviderReply:
        try:
            return ProviderReply(status=200, payload=func())
        except openai.APIStatusError as exc:
            response = exc.response
            return ProviderReply(
                status=exc.status_code,
                payload=exc.body if isinstance(exc.body, dict) else None,
                text=response.text if response is not None else str(exc),
                headers=response.headers if response is not None else {},
            )
        except openai.APIConnectionError as exc:
            raise TransportError(f"{provider} connection failure: {exc}", provider=provider) from exc

    return operation


class OpenAILLM(BaseLLM):
    """
    OpenAI LLM 实现

    支持模型:
    - gpt-4o-mini (默认, 经济)
    - gpt-4o
    - 任何 OpenAI 兼容接口 (通过 base_url)
    """

    def __init__(
        self,
        model: str = "gpt-4o-mini",
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: int = 4096,
        timeout: float = 60.0,
        retry_client: Optional[ResilientClient] = None,
        **kwargs,
    ):
        super().__init__(model, temperature, max_tokens, timeout, **kwargs)
        self.api_key = api_key
        self.base_url = base_url
        self.retry = retry_client or ResilientClient(provider=self.provider)
        self._client = None

    @property
    def provider(self) -> str:
        return "openai"

    def _get_client(self):
        if self._client is None:
            from openai import OpenAI
            self._client = OpenAI(
                api_key=self.api_key,
                base_url=self.base_url,
                timeout=self.timeout,
                max_retries=0,
            )
        return self._client

    def complete(self, messages: List[Message], **kwargs) -> LLMResponse:
        client = self._get_client()

        request_params = {
            "model": self.model,
            "messages": [m.to_dict() for m in messages],
            "temperature": kwargs.get("temperature", self.temperature),
            "max_tokens": kwargs.get("max_tokens", self.max_tokens),
        }
        if kwargs.get("json_mode"):
            request_params["response_format"] = {"type": "json_object"}

        response = self.retry.call(
            sdk_operation(lambda: client.chat.completions.create(**request_params), self.provider)
        )

        choice = response.choices[0]
        usage = {}
        if response.usage is not None:
            usage = {
                "prompt_tokens": response.usage.prompt_tokens,
                "completion_tokens": response.usage.completion_tokens,
                "total_tokens": response.usage.total_tokens,
            }
        return LLMResponse(
            content=choice.message.content or "",
            model=response.model,
            usage=usage,
            finish_reason=choice.finish_reason,
        )

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

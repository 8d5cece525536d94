"""
Resilient Client
外部服务统一重试策略 (429 / 5xx 指数退避, 其他错误立即失败)
"""
from __future__ import annotations

import json
import re
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Optional

import httpx
from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
)

from utils.exceptions import ProviderError, RateLimited, ServerError, TransportError
from utils.logger import get_provider_logger


logger = get_provider_logger()

_TRY_AGAIN_RE = re.compile(r"try again in (\d+(?:\.\d+)?)\s*s", re.IGNORECASE)
_RETRY_AFTER_RE = re.compile(r"retry-after:\s*(\d+(?:\.\d+)?)", re.IGNORECASE)


@dataclass
class ProviderReply:
    """一次调用的原始结果: HTTP 状态码 + 解析后的负载"""
    status: int
    payload: Any = None
    text: str = ""
    headers: Mapping[str, str] = field(default_factory=dict)

    @classmethod
    def from_response(cls, response: httpx.Response) -> "ProviderReply":
        text = response.text
        try:
            payload = response.json()
        except (json.JSONDecodeError, ValueError):
            payload = None
        return cls(status=response.status_code, payload=payload, text=text, headers=response.headers)


def parse_retry_after(text: str, headers: Optional[Mapping[str, str]] = None) -> Optional[float]:
    """从错误信息或 Retry-After 头中解析建议等待秒数"""
    for pattern in (_TRY_AGAIN_RE, _RETRY_AFTER_RE):
        match = pattern.search(text or "")
        if match:
            return float(match.group(1))

    if headers:
        raw = headers.get("retry-after") or headers.get("Retry-After")
        if raw:
            try:
                return float(raw)
            except ValueError:
                return None
    return None


def extract_error_message(reply: ProviderReply) -> str:
    payload = reply.payload
    if isinstance(payload, dict):
        error = payload.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if isinstance(error, str) and error:
            return error
        if payload.get("message"):
            return str(payload["message"])
    if reply.text:
        return reply.text.strip()[:300]
    return f"HTTP {reply.status}"


class ResilientClient:
    """
    外部 AI 服务调用包装

    - 2xx: 返回解析后的负载
    - 429: 按提示或指数退避等待后重试, 耗尽后抛 RateLimited
    - 5xx: 指数退避重试, 耗尽后抛 ServerError
    - 其他 4xx: 立即抛 ProviderError
    - 网络失败: 立即抛 TransportError
    """

    def __init__(
        self,
        provider: str = "provider",
        max_retries: int = 3,
        max_backoff: float = 30.0,
        timeout: float = 60.0,
        sleep: Callable[[float], None] = time.sleep,
        http_client: Optional[httpx.Client] = None,
    ):
        self.provider = provider
        self.max_retries = max(1, max_retries)
        self.max_backoff = max_backoff
        self.timeout = timeout
        self._sleep = sleep
        self._http = http_client

    @classmethod
    def from_settings(cls, provider: str, settings=None, **kwargs) -> "ResilientClient":
        if settings is None:
            from config import get_settings
            settings = get_settings()
        return cls(
            provider=provider,
            max_retries=settings.retry.max_retries,
            max_backoff=settings.retry.max_backoff,
            **kwargs,
        )

    @property
    def http(self) -> httpx.Client:
        if self._http is None:
            self._http = httpx.Client(timeout=self.timeout)
        return self._http

    def close(self) -> None:
        if self._http is not None:
            self._http.close()
            self._http = None

    def backoff(self, attempt: int) -> float:
        return float(min(2 ** attempt, self.max_backoff))

    def _wait(self, retry_state: RetryCallState) -> float:
        delay = self.backoff(retry_state.attempt_number)
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        hint = getattr(exc, "retry_after", None)
        if hint:
            delay = max(hint, delay)
        return delay

    def _log_retry(self, retry_state: RetryCallState) -> None:
        exc = retry_state.outcome.exception()
        wait = retry_state.next_action.sleep if retry_state.next_action else 0
        logger.warning(
            f"[{self.provider}] attempt {retry_state.attempt_number}/{self.max_retries} "
            f"failed ({exc.message}); retrying in {wait:.1f}s"
        )

    def _check(self, reply: ProviderReply) -> Any:
        status = reply.status
        if 200 <= status < 300:
            return reply.payload if reply.payload is not None else reply.text

        message = extract_error_message(reply)
        if status == 429:
            raise RateLimited(
                f"{self.provider} rate limited: {message}",
                provider=self.provider,
                retry_after=parse_retry_after(reply.text or message, reply.headers),
            )
        if status >= 500:
            raise ServerError(f"{self.provider} server error: {message}", status=status, provider=self.provider)
        raise ProviderError(message, status=status, provider=self.provider)

    def call(self, operation: Callable[[], ProviderReply]) -> Any:
        """
        以重试策略执行一次调用

        Args:
            operation: 无参可调用对象, 返回 ProviderReply; 网络失败时应抛 TransportError

        Returns:
            成功响应的负载
        """
        retrying = Retrying(
            stop=stop_after_attempt(self.max_retries),
            wait=self._wait,
            retry=retry_if_exception_type((RateLimited, ServerError)),
            sleep=self._sleep,
            before_sleep=self._log_retry,
            reraise=True,
        )
        return retrying(lambda: self._check(operation()))

    def request(self, method: str, url: str, **kwargs) -> Any:
        """通过共享 httpx.Client 发送请求"""

        def operation() -> ProviderReply:
            try:
                response = self.http.request(method, url, **kwargs)
            except httpx.TransportError as exc:
                raise TransportError(
                    f"{self.provider} transport failure: {exc}",
                    provider=self.provider,
                    url=url,
                ) from exc
            return ProviderReply.from_response(response)

        return self.call(operation)

    def post_json(self, url: str, body: dict, headers: Optional[dict] = None) -> Any:
        return self.request("POST", url, json=body, headers=headers)

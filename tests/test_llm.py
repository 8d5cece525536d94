"""
Tests for LLM providers and the factory
"""
from __future__ import annotations

import json
from typing import List

import httpx
import pytest
from openai import OpenAI

from config.settings import LLMSettings, Settings
from conftest import article_body
from intelligence.llm import DeepSeekLLM, Message, MockLLM, OpenAILLM, get_llm
from intelligence.media import MockSpeechSynthesizer, OpenAISpeechSynthesizer, get_speech_synthesizer
from intelligence.prompts import ANALYSIS_PROMPT, NARRATION_FIELD, NARRATION_INSTRUCTION
from utils.exceptions import ConfigurationError, ProviderError, TransportError
from utils.retry import ResilientClient


COMPLETION = {
    "id": "chatcmpl-1",
    "object": "chat.completion",
    "created": 0,
    "model": "gpt-4o-mini",
    "choices": [
        {"index": 0, "message": {"role": "assistant", "content": '{"is_valid": true}'}, "finish_reason": "stop"}
    ],
    "usage": {"prompt_tokens": 12, "completion_tokens": 5, "total_tokens": 17},
}


def _openai_llm(handler, sleeps: List[float]) -> OpenAILLM:
    llm = OpenAILLM(api_key="sk-test", retry_client=ResilientClient(provider="openai", sleep=sleeps.append))
    llm._client = OpenAI(
        api_key="sk-test",
        base_url="https://api.test/v1",
        max_retries=0,
        http_client=httpx.Client(transport=httpx.MockTransport(handler)),
    )
    return llm


class TestOpenAILLM:
    """OpenAI SDK 调用经统一重试策略"""

    def test_rate_limit_then_success(self):
        sleeps: List[float] = []
        bodies = []
        responses = [
            httpx.Response(429, json={"error": {"message": "Rate limit reached. Please try again in 3s.", "type": "rate_limit"}}),
            httpx.Response(200, json=COMPLETION),
        ]

        def handler(request: httpx.Request) -> httpx.Response:
            bodies.append(json.loads(request.content))
            return responses.pop(0)

        llm = _openai_llm(handler, sleeps)
        reply = llm.complete([Message.user("Is this an article?")], json_mode=True)

        assert reply.content == '{"is_valid": true}'
        assert reply.usage["total_tokens"] == 17
        assert sleeps == [3.0]
        assert len(bodies) == 2
        assert bodies[0]["response_format"] == {"type": "json_object"}

    def test_bad_request_is_not_retried(self):
        sleeps: List[float] = []
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(400, json={"error": {"message": "Unknown model", "type": "invalid_request_error"}})

        with pytest.raises(ProviderError) as exc_info:
            _openai_llm(handler, sleeps).chat("hello")

        assert exc_info.value.status == 400
        assert exc_info.value.message == "Unknown model"
        assert len(calls) == 1
        assert sleeps == []

    def test_connection_failure_maps_to_transport_error(self):
        sleeps: List[float] = []

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(TransportError):
            _openai_llm(handler, sleeps).chat("hello")
        assert sleeps == []


class TestFactory:
    """LLM 工厂测试"""

    def test_mock_provider(self):
        settings = Settings(llm=LLMSettings(provider="mock"))
        assert isinstance(get_llm(settings), MockLLM)
        assert isinstance(get_llm(Settings(llm=LLMSettings(provider="openai", openai_api_key="k")), mock=True), MockLLM)

    def test_provider_selection(self):
        settings = Settings(llm=LLMSettings(provider="deepseek", deepseek_api_key="k", openai_api_key="k"))

        deepseek = get_llm(settings)
        openai_llm = get_llm(settings, provider="openai")

        assert isinstance(deepseek, DeepSeekLLM)
        assert deepseek.model == "deepseek-chat"
        assert type(openai_llm) is OpenAILLM
        assert openai_llm.retry.max_retries == settings.retry.max_retries

    def test_missing_key(self):
        with pytest.raises(ConfigurationError):
            get_llm(Settings(llm=LLMSettings(provider="openai", openai_api_key=None)))

    def test_unknown_provider(self):
        with pytest.raises(ValueError):
            get_llm(Settings(llm=LLMSettings(provider="acme", openai_api_key="k")))

    def test_speech_synthesizer_selection(self):
        no_key = Settings(llm=LLMSettings(provider="deepseek", deepseek_api_key="k", openai_api_key=None))

        assert get_speech_synthesizer(no_key) is None
        assert isinstance(get_speech_synthesizer(no_key, mock=True), MockSpeechSynthesizer)
        with_key = Settings(llm=LLMSettings(provider="openai", openai_api_key="k"))
        assert isinstance(get_speech_synthesizer(with_key), OpenAISpeechSynthesizer)


class TestMockLLM:
    """离线 LLM 测试"""

    def _analysis_prompt(self, narration: bool = True) -> str:
        return ANALYSIS_PROMPT.format(
            title="Test Headline",
            source="Daily Example",
            author="Jane Reporter",
            content=article_body(500),
            language="Korean",
            key_points_count=5,
            narration_instruction=NARRATION_INSTRUCTION if narration else "",
            narration_field=NARRATION_FIELD if narration else "",
        )

    def test_analysis_reply_follows_prompt(self):
        llm = MockLLM()
        payload = json.loads(llm.chat(self._analysis_prompt()))

        assert payload["news_title"] == "[Mock] Test Headline"
        assert len(payload["key_points"]) == 5
        assert len(payload["narration"]) >= 900
        assert payload["critical_analysis"]["why_important"]
        assert llm.calls and "Test Headline" in llm.calls[0]

    def test_narration_only_when_requested(self):
        payload = json.loads(MockLLM().chat(self._analysis_prompt(narration=False)))
        assert "narration" not in payload

    def test_replies_are_deterministic(self):
        prompt = self._analysis_prompt()
        assert MockLLM().chat(prompt) == MockLLM().chat(prompt)

    def test_unknown_prompt_gets_plain_text(self):
        assert MockLLM().chat("Say something") == "[Mock] Analysis complete."

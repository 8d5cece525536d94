"""
Media Providers
配图生成与语音合成 (OpenAI Images / Audio API) 及离线实现
"""
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional
import hashlib
import logging
import uuid

from utils.retry import ResilientClient

from .llm.openai_llm import sdk_operation


logger = logging.getLogger(__name__)


class BaseImageGenerator(ABC):
    """图像生成抽象基类"""

    @abstractmethod
    def generate(self, prompt: str) -> Optional[str]:
        """返回图片 URL; 服务不可用时返回 None"""


class BaseSpeechSynthesizer(ABC):
    """语音合成抽象基类"""

    @abstractmethod
    def synthesize(self, text: str) -> Optional[str]:
        """返回音频文件的访问路径"""


class _OpenAIMediaClient:
    def __init__(self, api_key: str, retry_client: Optional[ResilientClient] = None, timeout: float = 120.0):
        self.api_key = api_key
        self.timeout = timeout
        self.retry = retry_client or ResilientClient(provider="openai-media")
        self._client = None

    def _get_client(self):
        if self._client is None:
            from openai import OpenAI
            self._client = OpenAI(api_key=self.api_key, timeout=self.timeout, max_retries=0)
        return self._client


class OpenAIImageGenerator(_OpenAIMediaClient, BaseImageGenerator):
    """DALL·E 图像生成"""

    def __init__(self, api_key: str, model: str = "dall-e-3", size: str = "1792x1024", **kwargs):
        super().__init__(api_key, **kwargs)
        self.model = model
        self.size = size

    def generate(self, prompt: str) -> Optional[str]:
        client = self._get_client()
        response = self.retry.call(sdk_operation(
            lambda: client.images.generate(model=self.model, prompt=prompt, size=self.size, n=1),
            "openai-images",
        ))
        if not response.data:
            return None
        return response.data[0].url


class OpenAISpeechSynthesizer(_OpenAIMediaClient, BaseSpeechSynthesizer):
    """OpenAI TTS, 音频写入本地目录"""

    def __init__(
        self,
        api_key: str,
        audio_dir: str = "./data/audio",
        model: str = "tts-1",
        voice: str = "alloy",
        public_prefix: str = "/storage/audio",
        **kwargs,
    ):
        super().__init__(api_key, **kwargs)
        self.audio_dir = Path(audio_dir)
        self.model = model
        self.voice = voice
        self.public_prefix = public_prefix.rstrip("/")

    def synthesize(self, text: str) -> Optional[str]:
        client = self._get_client()
        response = self.retry.call(sdk_operation(
            lambda: client.audio.speech.create(model=self.model, voice=self.voice, input=text, response_format="mp3"),
            "openai-tts",
        ))
        self.audio_dir.mkdir(parents=True, exist_ok=True)
        filename = f"analysis_{uuid.uuid4().hex[:12]}.mp3"
        (self.audio_dir / filename).write_bytes(response.content)
        logger.info(f"Narration audio saved: {filename}")
        return f"{self.public_prefix}/{filename}"


class MockImageGenerator(BaseImageGenerator):
    """离线模式没有图像服务, 由配图阶段走回退路径"""

    def generate(self, prompt: str) -> Optional[str]:
        return None


class MockSpeechSynthesizer(BaseSpeechSynthesizer):
    """返回由文本决定的占位音频路径"""

    def synthesize(self, text: str) -> Optional[str]:
        digest = hashlib.md5(text.encode("utf-8")).hexdigest()[:8]
        return f"/storage/audio/mock_audio_{digest}.mp3?mock=true"


def get_image_generator(settings=None, mock: bool = False) -> BaseImageGenerator:
    if settings is None:
        from config import get_settings
        settings = get_settings()
    if mock or not settings.llm.openai_api_key:
        return MockImageGenerator()
    return OpenAIImageGenerator(
        api_key=settings.llm.openai_api_key,
        model=settings.llm.image_model,
        size=settings.llm.image_size,
        retry_client=ResilientClient.from_settings("openai-images", settings),
    )


def get_speech_synthesizer(settings=None, mock: bool = False) -> Optional[BaseSpeechSynthesizer]:
    """离线模式返回 mock; 未配置 OpenAI key 时返回 None (不生成音频)"""
    if settings is None:
        from config import get_settings
        settings = get_settings()
    if mock:
        return MockSpeechSynthesizer()
    if not settings.llm.openai_api_key:
        logger.warning("TTS disabled: no OpenAI API key configured")
        return None
    return OpenAISpeechSynthesizer(
        api_key=settings.llm.openai_api_key,
        audio_dir=settings.llm.audio_dir,
        model=settings.llm.tts_model,
        voice=settings.llm.tts_voice,
        retry_client=ResilientClient.from_settings("openai-tts", settings),
    )

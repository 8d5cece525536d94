"""
Intelligence Module
智能层 - LLM 抽象 + 媒体生成 + RAG + 流水线阶段
"""
from .llm import (
    BaseLLM,
    OpenAILLM,
    DeepSeekLLM,
    MockLLM,
    get_llm,
)
from .media import (
    BaseImageGenerator,
    BaseSpeechSynthesizer,
    get_image_generator,
    get_speech_synthesizer,
)
from .tools import RetrievalAugmenter, RetrievedContext
from .agents import (
    ValidationAgent,
    AnalysisAgent,
    InterpretAgent,
    LearningAgent,
    ThumbnailAgent,
)

__all__ = [
    # LLM
    "BaseLLM",
    "OpenAILLM",
    "DeepSeekLLM",
    "MockLLM",
    "get_llm",
    # Media
    "BaseImageGenerator",
    "BaseSpeechSynthesizer",
    "get_image_generator",
    "get_speech_synthesizer",
    # RAG
    "RetrievalAugmenter",
    "RetrievedContext",
    # Agents
    "ValidationAgent",
    "AnalysisAgent",
    "InterpretAgent",
    "LearningAgent",
    "ThumbnailAgent",
]

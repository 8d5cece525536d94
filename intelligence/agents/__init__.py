"""
Agents Module
流水线阶段: 校验 -> 分析 -> 解读 -> 风格 -> 配图
"""
from .validation_agent import ValidationAgent
from .analysis_agent import AnalysisAgent
from .interpret_agent import InterpretAgent
from .learning_agent import LearningAgent
from .thumbnail_agent import ThumbnailAgent

__all__ = [
    "ValidationAgent",
    "AnalysisAgent",
    "InterpretAgent",
    "LearningAgent",
    "ThumbnailAgent",
]

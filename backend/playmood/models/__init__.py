"""数据模型模块"""
from playmood.models.emotion import (
    Emotion,
    DurationRange,
    EMOTION_DESCRIPTIONS,
    DEFAULT_EMOTION,
    DEFAULT_TIME_PREFERENCE,
    DEALBREAKER_CHARACTERISTICS,
)

__all__ = [
    "Emotion",
    "DurationRange",
    "EMOTION_DESCRIPTIONS",
    "DEFAULT_EMOTION",
    "DEFAULT_TIME_PREFERENCE",
    "DEALBREAKER_CHARACTERISTICS",
]

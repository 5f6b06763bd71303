"""情绪词表与时长区间"""
from enum import Enum
from typing import Optional, Tuple


class Emotion(str, Enum):
    """
    固定情绪词表（与图谱中的 Emotion 节点一一对应）

    枚举顺序即规范顺序，用于主导情绪并列时的决胜。
    """
    RELAXING = "relaxing"
    CHALLENGING = "challenging"
    EXPLORATORY = "exploratory"
    SOCIAL = "social"
    CREATIVE = "creative"
    CONTEMPLATIVE = "contemplative"
    JOYFUL = "joyful"
    MELANCHOLIC = "melancholic"
    COMPETITIVE = "competitive"

    @classmethod
    def values(cls) -> Tuple[str, ...]:
        return tuple(member.value for member in cls)

    @classmethod
    def is_known(cls, value: Optional[str]) -> bool:
        return value in cls.values()

    @classmethod
    def canonical_index(cls, value: str) -> int:
        """规范顺序下标，未知情绪排在最后"""
        try:
            return cls.values().index(value)
        except ValueError:
            return len(cls.values())


EMOTION_DESCRIPTIONS = {
    Emotion.RELAXING.value: "Calm, stress-free experiences",
    Emotion.CHALLENGING.value: "Experiences that test your skills",
    Emotion.EXPLORATORY.value: "Discovery and curiosity",
    Emotion.SOCIAL.value: "Connecting with other people",
    Emotion.CREATIVE.value: "Expression and building things",
    Emotion.CONTEMPLATIVE.value: "Reflective, thoughtful experiences",
    Emotion.JOYFUL.value: "Fun, upbeat experiences",
    Emotion.MELANCHOLIC.value: "Moving, nostalgic experiences",
    Emotion.COMPETITIVE.value: "Competing and outdoing others",
}


class DurationRange(str, Enum):
    """可用游戏时长（time_preference 取值）"""
    VERY_SHORT = "very_short"  # < 30 min
    SHORT = "short"            # 30-60 min
    MEDIUM = "medium"          # 1-3 h
    LONG = "long"              # 3-8 h
    VERY_LONG = "very_long"    # > 8 h

    @property
    def minutes(self) -> Tuple[int, int]:
        """区间上下界（分钟）"""
        return _DURATION_MINUTES[self]

    @classmethod
    def lookup(cls, value: Optional[str]) -> Optional["DurationRange"]:
        try:
            return cls(value)
        except ValueError:
            return None


_DURATION_MINUTES = {
    DurationRange.VERY_SHORT: (0, 30),
    DurationRange.SHORT: (30, 60),
    DurationRange.MEDIUM: (60, 180),
    DurationRange.LONG: (180, 480),
    DurationRange.VERY_LONG: (480, 9999),
}

DEFAULT_EMOTION = Emotion.RELAXING.value
DEFAULT_TIME_PREFERENCE = DurationRange.MEDIUM.value

# 用户可以选择回避的游戏特征（dealbreakers）
DEALBREAKER_CHARACTERISTICS = ("combat", "difficult", "social", "fast-paced")

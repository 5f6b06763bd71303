"""问卷与情绪画像构建

规则表是纯数据：(question_id, answer_id) -> ((emotion, increment), ...)。
构建画像是纯函数，不访问存储。
"""
import logging
from typing import Dict, Mapping, Tuple
from dataclasses import dataclass, field

from playmood.models.emotion import (
    Emotion,
    DurationRange,
    DEFAULT_EMOTION,
    DEFAULT_TIME_PREFERENCE,
)

logger = logging.getLogger(__name__)

TIME_QUESTION_ID = "time_available"


@dataclass(frozen=True)
class QuestionOption:
    """问卷选项"""
    id: str
    text: str
    emotions: Tuple[Tuple[str, float], ...] = ()


@dataclass(frozen=True)
class Question:
    """问卷题目"""
    id: str
    text: str
    options: Tuple[QuestionOption, ...]


@dataclass
class EmotionProfile:
    """情绪画像"""
    dominant_emotion: str
    time_preference: str
    emotion_weights: Dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "dominant_emotion": self.dominant_emotion,
            "time_preference": self.time_preference,
            "emotion_weights": dict(self.emotion_weights),
        }


QUESTIONNAIRE: Tuple[Question, ...] = (
    Question(
        id="experience_type",
        text="What kind of experience are you looking for right now?",
        options=(
            QuestionOption("relax", "Unwind", (("relaxing", 0.9), ("contemplative", 0.4))),
            QuestionOption("thrill", "Feel some excitement", (("challenging", 0.7), ("joyful", 0.6))),
            QuestionOption("challenge", "Challenge myself", (("challenging", 0.9), ("competitive", 0.5))),
            QuestionOption("explore", "Explore something new", (("exploratory", 0.9), ("creative", 0.4))),
            QuestionOption("connect", "Connect with others", (("social", 0.9), ("joyful", 0.3))),
        ),
    ),
    Question(
        id=TIME_QUESTION_ID,
        text="How much time do you have to play?",
        options=(
            QuestionOption(DurationRange.VERY_SHORT.value, "Less than 30 minutes"),
            QuestionOption(DurationRange.SHORT.value, "30 minutes to an hour"),
            QuestionOption(DurationRange.MEDIUM.value, "One to three hours"),
            QuestionOption(DurationRange.LONG.value, "Three to eight hours"),
            QuestionOption(DurationRange.VERY_LONG.value, "More than eight hours"),
        ),
    ),
    Question(
        id="mood",
        text="How would you describe your mood?",
        options=(
            QuestionOption("energetic", "Energetic", (("joyful", 0.7), ("challenging", 0.6), ("competitive", 0.5))),
            QuestionOption("calm", "Calm", (("relaxing", 0.8), ("contemplative", 0.6))),
            QuestionOption("bored", "Bored", (("exploratory", 0.7), ("challenging", 0.5))),
            QuestionOption("nostalgic", "Nostalgic", (("melancholic", 0.8), ("contemplative", 0.6))),
            QuestionOption("curious", "Curious", (("exploratory", 0.9), ("creative", 0.5))),
            QuestionOption("stressed", "Stressed", (("relaxing", 0.8), ("social", 0.4))),
        ),
    ),
    Question(
        id="preferred_activity",
        text="If you had to pick an activity right now, what would it be?",
        options=(
            QuestionOption("puzzle", "Solve a puzzle", (("challenging", 0.7), ("contemplative", 0.5))),
            QuestionOption("story", "Tell a story", (("creative", 0.8), ("social", 0.6))),
            QuestionOption("build", "Build something", (("creative", 0.9), ("relaxing", 0.4))),
            QuestionOption("compete", "Compete", (("competitive", 0.9), ("challenging", 0.7))),
            QuestionOption("discover", "Discover a new place", (("exploratory", 0.9), ("joyful", 0.4))),
        ),
    ),
    Question(
        id="emotional_goal",
        text="How would you like to feel after playing?",
        options=(
            QuestionOption("accomplishment", "Proud of beating a challenge", (("challenging", 0.9), ("competitive", 0.6))),
            QuestionOption("calm", "Calm and at peace", (("relaxing", 0.9), ("contemplative", 0.6))),
            QuestionOption("wonder", "Full of wonder", (("exploratory", 0.8), ("contemplative", 0.5))),
            QuestionOption("fun", "Happy and entertained", (("joyful", 0.9), ("social", 0.6))),
            QuestionOption("connection", "Moved by a story or its characters", (("melancholic", 0.6), ("contemplative", 0.8))),
        ),
    ),
)


def _answer_table(questions: Tuple[Question, ...]) -> Dict[Tuple[str, str], Tuple[Tuple[str, float], ...]]:
    return {
        (question.id, option.id): option.emotions
        for question in questions
        for option in question.options
        if option.emotions
    }


ANSWER_EMOTIONS = _answer_table(QUESTIONNAIRE)


def accumulate_weights(
    answers: Mapping[str, str],
    table: Mapping[Tuple[str, str], Tuple[Tuple[str, float], ...]] = ANSWER_EMOTIONS
) -> Dict[str, float]:
    """按规则表累加情绪权重，未映射的 (题目, 选项) 直接忽略"""
    weights: Dict[str, float] = {}
    for question_id, answer_id in answers.items():
        contributions = table.get((question_id, answer_id))
        if not contributions:
            continue
        for emotion, increment in contributions:
            weights[emotion] = weights.get(emotion, 0.0) + increment
    return weights


def normalize_weights(weights: Dict[str, float]) -> Dict[str, float]:
    """归一化为总和 1；总和为 0 时原样返回"""
    total = sum(weights.values())
    if total <= 0:
        return dict(weights)
    return {emotion: weight / total for emotion, weight in weights.items()}


def dominant_emotion(weights: Dict[str, float]) -> str:
    """
    取权重最大的情绪

    并列时按 Emotion 枚举的规范顺序取第一个；空表返回默认 "relaxing"。
    """
    if not weights:
        return DEFAULT_EMOTION
    return min(
        weights.items(),
        key=lambda kv: (-kv[1], Emotion.canonical_index(kv[0]), kv[0])
    )[0]


def build_profile(
    answers: Mapping[str, str],
    table: Mapping[Tuple[str, str], Tuple[Tuple[str, float], ...]] = ANSWER_EMOTIONS
) -> EmotionProfile:
    """
    问卷答案 -> 情绪画像

    Args:
        answers: {question_id: answer_id}
        table: 规则表（默认内置问卷）

    Returns:
        EmotionProfile: 主导情绪、时间偏好、归一化权重
    """
    weights = normalize_weights(accumulate_weights(answers, table))
    profile = EmotionProfile(
        dominant_emotion=dominant_emotion(weights),
        time_preference=answers.get(TIME_QUESTION_ID, DEFAULT_TIME_PREFERENCE),
        emotion_weights=weights,
    )
    logger.debug(f"Built profile: {profile.to_dict()}")
    return profile


class EmotionProfileBuilder:
    """可替换规则表的画像构建器"""

    def __init__(self, table: Mapping[Tuple[str, str], Tuple[Tuple[str, float], ...]] = None):
        self.table = dict(table) if table is not None else ANSWER_EMOTIONS

    def build(self, answers: Mapping[str, str]) -> EmotionProfile:
        return build_profile(answers, self.table)

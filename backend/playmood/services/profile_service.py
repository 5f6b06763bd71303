"""问卷提交与画像读取"""
import logging
from typing import List, Mapping, Optional, Sequence
from dataclasses import dataclass, field

from playmood.core.config import settings
from playmood.core.errors import ValidationError
from playmood.models.emotion import DEFAULT_TIME_PREFERENCE
from playmood.services.graph_store import AffinityGraphStore, PROVENANCE_QUESTIONNAIRE
from playmood.services.questionnaire import EmotionProfile, EmotionProfileBuilder
from playmood.services.recommendation_service import Recommendation, RecommendationGenerator

logger = logging.getLogger(__name__)


@dataclass
class QuestionnaireResult:
    """问卷提交结果：画像 + 首批情绪推荐"""
    profile: EmotionProfile
    recommendations: List[Recommendation] = field(default_factory=list)
    dealbreakers: List[str] = field(default_factory=list)


def validate_dealbreakers(dealbreakers: Optional[Sequence[str]]) -> List[str]:
    """dealbreakers 必须是字符串列表；None 视为空"""
    if dealbreakers is None:
        return []
    if not isinstance(dealbreakers, (list, tuple)):
        raise ValidationError("dealbreakers must be a list of characteristics", field="dealbreakers")
    for characteristic in dealbreakers:
        if not isinstance(characteristic, str) or not characteristic:
            raise ValidationError(f"invalid dealbreaker {characteristic!r}", field="dealbreakers")
    return list(dealbreakers)


class ProfileService:
    """问卷 -> 画像 -> 图谱 -> 情绪推荐"""

    def __init__(
        self,
        store: AffinityGraphStore,
        generator: RecommendationGenerator = None,
        builder: EmotionProfileBuilder = None,
        resonance_min_weight: float = None
    ):
        self.store = store
        self.generator = generator or RecommendationGenerator(store)
        self.builder = builder or EmotionProfileBuilder()
        self.resonance_min_weight = (
            resonance_min_weight if resonance_min_weight is not None else settings.RESONANCE_MIN_WEIGHT
        )

    async def submit_questionnaire(
        self,
        user_id: str,
        answers: Mapping[str, str],
        dealbreakers: Optional[Sequence[str]] = None
    ) -> QuestionnaireResult:
        """
        提交问卷

        1. 构建画像（纯计算）
        2. 写入用户画像与情绪状态（强度 = 主导情绪的归一化权重，空画像为 1.0）
        3. 权重高于阈值的情绪写入 RESONATES_WITH
        4. 返回情绪推荐（排除含 dealbreaker 特征的游戏）
        """
        if not user_id:
            raise ValidationError("user_id is required", field="user_id")
        if not isinstance(answers, Mapping):
            raise ValidationError("answers must be a mapping of question id to answer id", field="answers")
        for question_id, answer_id in answers.items():
            if not isinstance(question_id, str) or not isinstance(answer_id, str):
                raise ValidationError(
                    f"answers must map strings to strings, got {question_id!r}: {answer_id!r}",
                    field="answers"
                )
        avoided = validate_dealbreakers(dealbreakers)

        profile = self.builder.build(answers)

        await self.store.upsert_user(user_id)
        await self.store.update_user_profile(user_id, profile.dominant_emotion, profile.time_preference)

        intensity = profile.emotion_weights.get(profile.dominant_emotion, 1.0)
        await self.store.set_emotional_state(
            user_id,
            profile.dominant_emotion,
            intensity,
            provenance=PROVENANCE_QUESTIONNAIRE,
        )

        written = 0
        for emotion, weight in profile.emotion_weights.items():
            if weight > self.resonance_min_weight:
                await self.store.upsert_resonance(user_id, emotion, weight)
                written += 1

        logger.info(
            f"Questionnaire stored for {user_id}: dominant={profile.dominant_emotion}, "
            f"time={profile.time_preference}, {written} resonances"
        )

        recommendations = await self.generator.emotional(user_id, avoided)
        return QuestionnaireResult(profile=profile, recommendations=recommendations, dealbreakers=avoided)

    async def get_profile(self, user_id: str) -> Optional[EmotionProfile]:
        """读取已保存的画像；未知用户或无情绪状态返回 None"""
        user = await self.store.get_user(user_id)
        if user is None:
            return None

        state = await self.store.find_emotional_state(user_id)
        if state is None:
            return None

        return EmotionProfile(
            dominant_emotion=user.dominant_emotion or state.emotion,
            time_preference=user.time_preference or DEFAULT_TIME_PREFERENCE,
            emotion_weights=await self.store.get_resonances(user_id),
        )

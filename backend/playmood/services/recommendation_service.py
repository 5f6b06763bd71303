"""推荐服务 - 情绪 / 社交 / 混合"""
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence
from dataclasses import dataclass, field

from playmood.core.config import settings
from playmood.models.emotion import Emotion
from playmood.services.graph_store import AffinityGraphStore, Item, PROVENANCE_SEED

logger = logging.getLogger(__name__)

REASON_EMOTIONAL = "resonates with your emotion: {emotion}"
REASON_BY_EMOTION = "good for when you feel: {emotion}"
REASON_SOCIAL = "users like you also played this"
REASON_SEED = "liked by a starter profile close to yours"


@dataclass
class Recommendation:
    """单条推荐"""
    item_id: str
    name: str
    description: str
    score: float
    reasons: List[str] = field(default_factory=list)
    genres: List[str] = field(default_factory=list)
    characteristics: List[str] = field(default_factory=list)
    # 社交推荐来源边的 provenance（"shared_likes" / "seed"），情绪推荐为空
    provenances: List[str] = field(default_factory=list)

    @classmethod
    def from_item(
        cls,
        item: Item,
        score: float,
        reason: str,
        provenances: Sequence[str] = ()
    ) -> "Recommendation":
        return cls(
            item_id=item.id,
            name=item.name,
            description=item.description,
            score=score,
            reasons=[reason],
            genres=list(item.genres),
            characteristics=list(item.characteristics),
            provenances=list(provenances),
        )

    @property
    def synthetic(self) -> bool:
        """仅来自种子用户的推荐"""
        return bool(self.provenances) and set(self.provenances) == {PROVENANCE_SEED}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "item_id": self.item_id,
            "name": self.name,
            "description": self.description,
            "score": self.score,
            "reasons": list(self.reasons),
            "genres": list(self.genres),
            "characteristics": list(self.characteristics),
            "provenances": list(self.provenances),
            "synthetic": self.synthetic,
        }


def rank(recommendations: List[Recommendation], limit: int) -> List[Recommendation]:
    """按分数降序（稳定排序），按 item_id 去重保留首个，再截断"""
    ordered = sorted(recommendations, key=lambda r: -r.score)
    seen = set()
    unique = []
    for rec in ordered:
        if rec.item_id in seen:
            continue
        seen.add(rec.item_id)
        unique.append(rec)
    return unique[:limit]


class RecommendationGenerator:
    """
    推荐生成器

    - emotional: 用户当前情绪状态 -> 共鸣游戏
    - by_emotion: 指定情绪 -> 共鸣游戏
    - social: 相似用户喜欢、本人没玩过的游戏
    - mixed: emotional + social 合并排序去重

    读路径失败时记录日志并返回空列表；strict=True 时向上抛出。
    """

    def __init__(
        self,
        store: AffinityGraphStore,
        limit: int = None,
        social_scale: float = None,
        strict: bool = False
    ):
        self.store = store
        self.limit = limit if limit is not None else settings.RECOMMENDATION_LIMIT
        self.social_scale = social_scale if social_scale is not None else settings.SOCIAL_SCORE_SCALE
        self.strict = strict

    async def _guarded(
        self,
        kind: str,
        subject: str,
        fetch: Callable[[], Awaitable[List[Recommendation]]]
    ) -> List[Recommendation]:
        try:
            return await fetch()
        except Exception as e:
            if self.strict:
                raise
            logger.error(f"{kind} recommendations for {subject} failed: {e}")
            return []

    async def emotional(
        self,
        user_id: str,
        dealbreakers: Optional[Sequence[str]] = None
    ) -> List[Recommendation]:
        """基于用户当前情绪状态的推荐"""
        return await self._guarded("Emotional", user_id, lambda: self._emotional(user_id, dealbreakers))

    async def _emotional(
        self,
        user_id: str,
        dealbreakers: Optional[Sequence[str]] = None
    ) -> List[Recommendation]:
        state = await self.store.find_emotional_state(user_id)
        if state is None:
            logger.info(f"No emotional state for {user_id}, no emotional recommendations")
            return []

        scored = await self.store.top_items_resonating_with_user_state(user_id, self.limit, dealbreakers)
        recommendations = [
            Recommendation.from_item(
                s.item,
                s.intensity,
                REASON_EMOTIONAL.format(emotion=state.emotion),
            )
            for s in scored
        ]
        return rank(recommendations, self.limit)

    async def by_emotion(
        self,
        emotion: str,
        dealbreakers: Optional[Sequence[str]] = None
    ) -> List[Recommendation]:
        """指定情绪的推荐"""
        return await self._guarded("By-emotion", emotion, lambda: self._by_emotion(emotion, dealbreakers))

    async def _by_emotion(
        self,
        emotion: str,
        dealbreakers: Optional[Sequence[str]] = None
    ) -> List[Recommendation]:
        if not Emotion.is_known(emotion):
            logger.info(f"Unknown emotion '{emotion}', no recommendations")
            return []

        scored = await self.store.top_items_for_emotion(emotion, self.limit, dealbreakers)
        recommendations = [
            Recommendation.from_item(s.item, s.intensity, REASON_BY_EMOTION.format(emotion=emotion))
            for s in scored
        ]
        return rank(recommendations, self.limit)

    async def social(
        self,
        user_id: str,
        dealbreakers: Optional[Sequence[str]] = None
    ) -> List[Recommendation]:
        """相似用户喜欢的游戏；只来自种子用户的推荐带 seed 标记"""
        return await self._guarded("Social", user_id, lambda: self._social(user_id, dealbreakers))

    async def _social(
        self,
        user_id: str,
        dealbreakers: Optional[Sequence[str]] = None
    ) -> List[Recommendation]:
        votes = await self.store.items_liked_by_similar_users(user_id, self.limit, dealbreakers)
        recommendations = []
        for v in votes:
            seed_only = bool(v.provenances) and set(v.provenances) == {PROVENANCE_SEED}
            recommendations.append(Recommendation.from_item(
                v.item,
                v.similar_user_count * self.social_scale,
                REASON_SEED if seed_only else REASON_SOCIAL,
                provenances=v.provenances,
            ))
        return rank(recommendations, self.limit)

    async def mixed(
        self,
        user_id: str,
        dealbreakers: Optional[Sequence[str]] = None
    ) -> List[Recommendation]:
        """
        混合推荐

        两个列表拼接后按分数排序，同一 item_id 只保留排序后的第一次出现，再取前 N。
        """
        return await self._guarded("Mixed", user_id, lambda: self._mixed(user_id, dealbreakers))

    async def _mixed(
        self,
        user_id: str,
        dealbreakers: Optional[Sequence[str]] = None
    ) -> List[Recommendation]:
        combined = await self._emotional(user_id, dealbreakers) + await self._social(user_id, dealbreakers)
        result = rank(combined, self.limit)
        logger.info(f"Mixed recommendations for {user_id}: {len(combined)} candidates -> {len(result)}")
        return result

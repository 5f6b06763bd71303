"""游玩反馈写入"""
import logging
from typing import Optional
from dataclasses import dataclass

from playmood.core.config import settings
from playmood.core.errors import ValidationError
from playmood.services.graph_store import (
    AffinityGraphStore,
    EmotionalState,
    PlayedItem,
    PROVENANCE_AUTO,
)
from playmood.services.similarity_service import SimilarityEngine, SimilarityUpdate

logger = logging.getLogger(__name__)

MIN_RATING = 1
MAX_RATING = 10


@dataclass
class FeedbackResult:
    """一次反馈写入的结果"""
    played: PlayedItem
    auto_state: Optional[EmotionalState]
    similarity: SimilarityUpdate


def validate_feedback(user_id: str, item_id: str, liked: bool, rating: Optional[int]) -> None:
    if not user_id:
        raise ValidationError("user_id is required", field="user_id")
    if not item_id:
        raise ValidationError("item_id is required", field="item_id")
    if not isinstance(liked, bool):
        raise ValidationError(f"liked must be a boolean, got {liked!r}", field="liked")
    if rating is not None:
        if isinstance(rating, bool) or not isinstance(rating, int):
            raise ValidationError(f"rating must be an integer, got {rating!r}", field="rating")
        if not MIN_RATING <= rating <= MAX_RATING:
            raise ValidationError(
                f"rating must be between {MIN_RATING} and {MAX_RATING}, got {rating}",
                field="rating"
            )


class FeedbackIngestor:
    """
    反馈写入流程（顺序执行，不回滚）

    1. 确保 User / Item 节点存在（未知游戏用占位名称）
    2. upsert PLAYED 边
    3. 用户没有情绪状态时，按游戏最强共鸣情绪自动生成（否则默认 joyful）
    4. 重算该用户的相似度
    """

    def __init__(
        self,
        store: AffinityGraphStore,
        similarity_engine: SimilarityEngine = None,
        auto_intensity: float = None,
        default_emotion: str = None
    ):
        self.store = store
        self.similarity_engine = similarity_engine or SimilarityEngine(store)
        self.auto_intensity = auto_intensity if auto_intensity is not None else settings.AUTO_STATE_INTENSITY
        self.default_emotion = default_emotion or settings.DEFAULT_AUTO_EMOTION

    async def submit(
        self,
        user_id: str,
        item_id: str,
        liked: bool,
        rating: Optional[int] = None
    ) -> FeedbackResult:
        validate_feedback(user_id, item_id, liked, rating)

        await self.store.upsert_user(user_id)
        await self.store.upsert_item(item_id)
        played = await self.store.upsert_played(user_id, item_id, liked, rating)
        logger.info(f"Feedback stored: {user_id} -> {item_id} (liked={liked}, rating={rating})")

        auto_state = await self._ensure_emotional_state(user_id, item_id)

        similarity = await self.similarity_engine.recompute_similarity(user_id, trigger_item_id=item_id)

        return FeedbackResult(played=played, auto_state=auto_state, similarity=similarity)

    async def _ensure_emotional_state(self, user_id: str, item_id: str) -> Optional[EmotionalState]:
        """没有情绪状态时自动生成；已有则返回 None"""
        if await self.store.find_emotional_state(user_id) is not None:
            return None

        resonance = await self.store.top_item_emotion(item_id)
        emotion = resonance.emotion if resonance else self.default_emotion

        state = await self.store.set_emotional_state(
            user_id,
            emotion,
            self.auto_intensity,
            provenance=PROVENANCE_AUTO,
        )
        logger.info(f"Auto-generated emotional state for {user_id}: {emotion}")
        return state

"""用户相似度服务"""
import logging
import random
from typing import List, Optional, Sequence
from dataclasses import dataclass, field

from playmood.core.config import settings
from playmood.services.graph_store import (
    AffinityGraphStore,
    PROVENANCE_SEED,
    PROVENANCE_SHARED_LIKES,
    SimilarTo,
    USER_STATUS_SEED,
)

logger = logging.getLogger(__name__)


@dataclass
class SimilarityUpdate:
    """一次相似度重算的结果"""
    user_id: str
    natural_links: List[SimilarTo] = field(default_factory=list)
    seed_links: List[SimilarTo] = field(default_factory=list)

    @property
    def bootstrapped(self) -> bool:
        return bool(self.seed_links)


class SimilarityEngine:
    """
    相似度引擎 - 由共同喜欢的游戏推导 SIMILAR_TO 边

    策略：
    | 参数 | 默认 | 说明 |
    |------|------|------|
    | min_shared | 1 | 至少共同喜欢的游戏数 |
    | scale | 0.2 | similarity = shared_count * scale（上限 1.0）|
    | seed_probability | 0.3 | 冷启动时每个种子用户的接纳概率 |
    | seed_similarity | 0.4 | 种子边的固定相似度 |

    重算只做 upsert，不删除旧边；失败直接抛出，已写入的边保留。
    """

    def __init__(
        self,
        store: AffinityGraphStore,
        rng: Optional[random.Random] = None,
        min_shared: int = None,
        scale: float = None,
        sample_size: int = None,
        seed_user_ids: Sequence[str] = None,
        seed_probability: float = None,
        seed_similarity: float = None
    ):
        self.store = store
        self.rng = rng or random.Random(settings.SIMILARITY_RANDOM_SEED)
        self.min_shared = min_shared if min_shared is not None else settings.SIMILARITY_MIN_SHARED_ITEMS
        self.scale = scale if scale is not None else settings.SIMILARITY_SCALE
        self.sample_size = sample_size if sample_size is not None else settings.SHARED_ITEMS_SAMPLE_SIZE
        self.seed_user_ids = list(seed_user_ids) if seed_user_ids is not None else list(settings.SEED_USER_IDS)
        self.seed_probability = seed_probability if seed_probability is not None else settings.SEED_ADMISSION_PROBABILITY
        self.seed_similarity = seed_similarity if seed_similarity is not None else settings.SEED_SIMILARITY

    def score(self, shared_count: int) -> float:
        return min(1.0, shared_count * self.scale)

    async def recompute_similarity(
        self,
        user_id: str,
        trigger_item_id: Optional[str] = None
    ) -> SimilarityUpdate:
        """
        重算某个用户的相似度边

        1. 找出与该用户共同喜欢 >= min_shared 个游戏的用户，双向 upsert SIMILAR_TO
        2. 一条自然相似边都没有时，按概率连接种子用户（provenance="seed"）

        Args:
            user_id: 用户 ID
            trigger_item_id: 触发本次重算的游戏（写入种子边的 shared_item_ids）
        """
        update = SimilarityUpdate(user_id=user_id)

        pairs = await self.store.users_with_shared_liked_items(
            min_shared=self.min_shared,
            user_id=user_id,
            sample_size=self.sample_size,
        )
        for pair in pairs:
            similarity = self.score(pair.shared_count)
            shared_ids = pair.shared_item_ids[:self.sample_size]
            edge = await self.store.upsert_similarity(
                user_id,
                pair.other_id,
                similarity=similarity,
                shared_count=pair.shared_count,
                shared_item_ids=shared_ids,
                provenance=PROVENANCE_SHARED_LIKES,
            )
            # 共同喜欢数是对称的，反向边同分；种子用户不反向连接真实用户
            other = await self.store.get_user(pair.other_id)
            if other is not None and other.status == USER_STATUS_SEED:
                logger.debug(f"Skipping reverse similarity from seed user {pair.other_id}")
            else:
                await self.store.upsert_similarity(
                    pair.other_id,
                    user_id,
                    similarity=similarity,
                    shared_count=pair.shared_count,
                    shared_item_ids=shared_ids,
                    provenance=PROVENANCE_SHARED_LIKES,
                )
            update.natural_links.append(edge)
            logger.debug(f"Natural similarity {user_id} <-> {pair.other_id}: "
                         f"{pair.shared_count} shared, score {similarity:.2f}")

        logger.info(f"Similarity recompute for {user_id}: {len(update.natural_links)} natural links")

        if not update.natural_links:
            update.seed_links = await self._bootstrap_with_seeds(user_id, trigger_item_id)

        return update

    async def _bootstrap_with_seeds(
        self,
        user_id: str,
        trigger_item_id: Optional[str]
    ) -> List[SimilarTo]:
        """冷启动：随机连接未关联的种子用户"""
        if not self.seed_user_ids:
            return []

        logger.warning(f"No natural similarity for {user_id}, trying seed users")
        linked = {similar.user_id for similar in await self.store.similar_users(user_id)}
        shared_ids = [trigger_item_id] if trigger_item_id else []

        links = []
        for seed_id in self.seed_user_ids:
            if seed_id == user_id or seed_id in linked:
                continue
            if await self.store.get_user(seed_id) is None:
                logger.debug(f"Seed user {seed_id} missing from graph, skipped")
                continue
            if self.rng.random() >= self.seed_probability:
                continue
            edge = await self.store.upsert_similarity(
                user_id,
                seed_id,
                similarity=self.seed_similarity,
                shared_count=len(shared_ids),
                shared_item_ids=shared_ids,
                provenance=PROVENANCE_SEED,
            )
            links.append(edge)

        logger.info(f"Seed similarity for {user_id}: {len(links)} links")
        return links

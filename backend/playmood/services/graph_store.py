"""亲和图谱存储接口

核心算法只依赖这里声明的语义，不依赖具体查询语言。
实现：Neo4jGraphStore（生产）、InMemoryGraphStore（测试 / 演示）。

节点：User、Item、Emotion
边：
| 边 | 方向 | 键 | 说明 |
|----|------|----|------|
| EMOTIONAL_STATE | User -> Emotion | user | 每个用户至多一条，重写即替换 |
| RESONATES_WITH | User -> Emotion | (user, emotion) | 问卷中的次要情绪 |
| PLAYED | User -> Item | (user, item) | liked / rating / weight |
| SIMILAR_TO | User -> User | (user1, user2) | 有向，可不对称 |
| RESONATES_WITH | Item -> Emotion | (item, emotion) | 人工标注的参考数据，与用户边同名，靠 :Item 标签区分 |

Item 节点上的 genres / characteristics 为字符串列表；推荐查询可传入 dealbreakers，
含任一 dealbreaker 特征的游戏被排除。
"""
from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Dict, Optional, Sequence
from dataclasses import dataclass, field

import numpy as np

LIKED_WEIGHT = 1.0
DISLIKED_WEIGHT = -0.5

PROVENANCE_QUESTIONNAIRE = "questionnaire"
PROVENANCE_AUTO = "auto-generated"
PROVENANCE_SHARED_LIKES = "shared_likes"
PROVENANCE_SEED = "seed"

USER_STATUS_ACTIVE = "active"
USER_STATUS_SEED = "seed"

PLACEHOLDER_DESCRIPTION = "Automatically created from feedback"


def played_weight(liked: bool) -> float:
    """PLAYED 边权重：喜欢 +1.0，否则 -0.5"""
    return LIKED_WEIGHT if liked else DISLIKED_WEIGHT


def clip_intensity(value: float) -> float:
    """强度统一截断到 [0, 1]"""
    return float(np.clip(value, 0.0, 1.0))


@dataclass
class User:
    """用户节点"""
    id: str
    dominant_emotion: Optional[str] = None
    time_preference: Optional[str] = None
    status: str = USER_STATUS_ACTIVE
    registered_at: datetime = field(default_factory=datetime.now)


@dataclass
class Item:
    """游戏节点"""
    id: str
    name: str
    description: str = ""
    genres: List[str] = field(default_factory=list)
    characteristics: List[str] = field(default_factory=list)

    def avoids(self, dealbreakers: Optional[Sequence[str]]) -> bool:
        """不含任何 dealbreaker 特征"""
        return not dealbreakers or not set(dealbreakers) & set(self.characteristics)


@dataclass
class EmotionalState:
    """用户当前情绪状态（EMOTIONAL_STATE 边）"""
    user_id: str
    emotion: str
    intensity: float
    provenance: str = PROVENANCE_QUESTIONNAIRE
    updated_at: datetime = field(default_factory=datetime.now)


@dataclass
class Resonance:
    """情绪共鸣（用户或游戏 -> 情绪）"""
    emotion: str
    intensity: float


@dataclass
class PlayedItem:
    """游玩反馈（PLAYED 边）"""
    user_id: str
    item_id: str
    liked: bool
    rating: Optional[int] = None
    weight: float = LIKED_WEIGHT
    played_at: datetime = field(default_factory=datetime.now)


@dataclass
class SimilarTo:
    """用户相似度（SIMILAR_TO 边）"""
    user_id: str
    other_id: str
    similarity: float
    shared_count: int
    shared_item_ids: List[str] = field(default_factory=list)
    provenance: str = PROVENANCE_SHARED_LIKES
    updated_at: datetime = field(default_factory=datetime.now)


@dataclass
class SimilarUser:
    """相似用户查询结果"""
    user_id: str
    similarity: float
    provenance: str = PROVENANCE_SHARED_LIKES


@dataclass
class ScoredItem:
    """按情绪强度排序的候选游戏"""
    item: Item
    intensity: float
    emotion: str


@dataclass
class ItemVotes:
    """相似用户喜欢的候选游戏"""
    item: Item
    similar_user_count: int
    provenances: List[str] = field(default_factory=list)


@dataclass
class SharedLikes:
    """共同喜欢的游戏统计"""
    user_id: str
    other_id: str
    shared_count: int
    shared_item_ids: List[str] = field(default_factory=list)


@dataclass
class GraphDiagnostics:
    """图谱数据量诊断"""
    users: int = 0
    items: int = 0
    emotions: int = 0
    item_resonances: int = 0
    played: int = 0
    similarities: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {
            "users": self.users,
            "items": self.items,
            "emotions": self.emotions,
            "item_resonances": self.item_resonances,
            "played": self.played,
            "similarities": self.similarities,
        }


class AffinityGraphStore(ABC):
    """
    亲和图谱存储接口（全部为幂等 upsert + 只读查询）

    实现方需保证：
    - (user, item) 与 (user1, user2) 键上的 upsert 为 last-write-wins
    - set_emotional_state 替换而不是追加
    - 连接 / 查询失败抛出 StoreError
    """

    # ---------- 节点 ----------

    @abstractmethod
    async def upsert_user(self, user_id: str, status: str = USER_STATUS_ACTIVE) -> User:
        ...

    @abstractmethod
    async def upsert_item(
        self,
        item_id: str,
        name: Optional[str] = None,
        description: Optional[str] = None,
        genres: Optional[Sequence[str]] = None,
        characteristics: Optional[Sequence[str]] = None
    ) -> Item:
        """不存在时以占位名称 / 描述创建；传入的字段覆盖已有值"""

    @abstractmethod
    async def upsert_emotion(self, emotion: str, description: str = "") -> None:
        ...

    @abstractmethod
    async def get_user(self, user_id: str) -> Optional[User]:
        ...

    @abstractmethod
    async def update_user_profile(
        self,
        user_id: str,
        dominant_emotion: str,
        time_preference: str
    ) -> None:
        ...

    # ---------- 情绪边 ----------

    @abstractmethod
    async def set_emotional_state(
        self,
        user_id: str,
        emotion: str,
        intensity: float,
        provenance: str = PROVENANCE_QUESTIONNAIRE
    ) -> EmotionalState:
        ...

    @abstractmethod
    async def find_emotional_state(self, user_id: str) -> Optional[EmotionalState]:
        ...

    @abstractmethod
    async def upsert_resonance(self, user_id: str, emotion: str, intensity: float) -> None:
        ...

    @abstractmethod
    async def get_resonances(self, user_id: str) -> Dict[str, float]:
        ...

    @abstractmethod
    async def upsert_item_resonance(self, item_id: str, emotion: str, intensity: float) -> None:
        ...

    @abstractmethod
    async def top_item_emotion(self, item_id: str) -> Optional[Resonance]:
        """游戏强度最高的情绪"""

    @abstractmethod
    async def top_items_for_emotion(
        self,
        emotion: str,
        k: int,
        dealbreakers: Optional[Sequence[str]] = None
    ) -> List[ScoredItem]:
        """先排除含 dealbreaker 特征的游戏，再取前 k"""

    @abstractmethod
    async def top_items_resonating_with_user_state(
        self,
        user_id: str,
        k: int,
        dealbreakers: Optional[Sequence[str]] = None
    ) -> List[ScoredItem]:
        ...

    # ---------- 反馈与相似度 ----------

    @abstractmethod
    async def upsert_played(
        self,
        user_id: str,
        item_id: str,
        liked: bool,
        rating: Optional[int] = None
    ) -> PlayedItem:
        ...

    @abstractmethod
    async def users_with_shared_liked_items(
        self,
        min_shared: int,
        user_id: Optional[str] = None,
        sample_size: int = 10
    ) -> List[SharedLikes]:
        """共同喜欢至少 min_shared 个游戏的用户对；给定 user_id 时只返回 user1 == user_id 的对"""

    @abstractmethod
    async def upsert_similarity(
        self,
        user_id: str,
        other_id: str,
        similarity: float,
        shared_count: int,
        shared_item_ids: List[str],
        provenance: str = PROVENANCE_SHARED_LIKES
    ) -> SimilarTo:
        ...

    @abstractmethod
    async def get_similarity(self, user_id: str, other_id: str) -> Optional[SimilarTo]:
        ...

    @abstractmethod
    async def similar_users(self, user_id: str) -> List[SimilarUser]:
        ...

    @abstractmethod
    async def items_liked_by_similar_users(
        self,
        user_id: str,
        k: int,
        dealbreakers: Optional[Sequence[str]] = None
    ) -> List[ItemVotes]:
        """相似用户喜欢、本人未玩过的游戏，按喜欢的相似用户数降序"""

    # ---------- 诊断 ----------

    @abstractmethod
    async def diagnose(self) -> GraphDiagnostics:
        ...

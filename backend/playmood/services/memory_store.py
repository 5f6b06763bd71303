"""内存版亲和图谱存储（测试 / 演示用，单事件循环）"""
import logging
from collections import defaultdict
from dataclasses import replace
from datetime import datetime
from typing import List, Dict, Optional, Sequence, Tuple

from playmood.services.graph_store import (
    AffinityGraphStore,
    EmotionalState,
    GraphDiagnostics,
    Item,
    ItemVotes,
    PlayedItem,
    PLACEHOLDER_DESCRIPTION,
    PROVENANCE_QUESTIONNAIRE,
    PROVENANCE_SHARED_LIKES,
    Resonance,
    ScoredItem,
    SharedLikes,
    SimilarTo,
    SimilarUser,
    User,
    USER_STATUS_ACTIVE,
    clip_intensity,
    played_weight,
)

logger = logging.getLogger(__name__)


class InMemoryGraphStore(AffinityGraphStore):
    """
    用字典模拟图谱

    边全部以各自的 upsert 键存储，因此"每个用户至多一条 EMOTIONAL_STATE"
    和"(user, item) 只有一条 PLAYED"由数据结构本身保证。
    """

    def __init__(self):
        self.users: Dict[str, User] = {}
        self.items: Dict[str, Item] = {}
        self.emotions: Dict[str, str] = {}
        self.emotional_states: Dict[str, EmotionalState] = {}
        self.resonances: Dict[str, Dict[str, float]] = defaultdict(dict)
        self.item_resonances: Dict[str, Dict[str, float]] = defaultdict(dict)
        self.played: Dict[Tuple[str, str], PlayedItem] = {}
        self.similarities: Dict[Tuple[str, str], SimilarTo] = {}

    # ---------- 节点 ----------

    async def upsert_user(self, user_id: str, status: str = USER_STATUS_ACTIVE) -> User:
        user = self.users.get(user_id)
        if user is None:
            user = User(id=user_id, status=status)
            self.users[user_id] = user
            logger.debug(f"Created user {user_id} ({status})")
        return replace(user)

    async def upsert_item(
        self,
        item_id: str,
        name: Optional[str] = None,
        description: Optional[str] = None,
        genres: Optional[Sequence[str]] = None,
        characteristics: Optional[Sequence[str]] = None
    ) -> Item:
        item = self.items.get(item_id)
        if item is None:
            item = Item(
                id=item_id,
                name=name or item_id,
                description=description if description is not None else PLACEHOLDER_DESCRIPTION
            )
            self.items[item_id] = item
        if name is not None:
            item.name = name
        if description is not None:
            item.description = description
        if genres is not None:
            item.genres = list(genres)
        if characteristics is not None:
            item.characteristics = list(characteristics)
        return self._copy_item(item)

    @staticmethod
    def _copy_item(item: Item) -> Item:
        return replace(item, genres=list(item.genres), characteristics=list(item.characteristics))

    async def upsert_emotion(self, emotion: str, description: str = "") -> None:
        self.emotions[emotion] = description

    async def get_user(self, user_id: str) -> Optional[User]:
        user = self.users.get(user_id)
        return replace(user) if user else None

    async def update_user_profile(
        self,
        user_id: str,
        dominant_emotion: str,
        time_preference: str
    ) -> None:
        user = self.users.setdefault(user_id, User(id=user_id))
        user.dominant_emotion = dominant_emotion
        user.time_preference = time_preference

    # ---------- 情绪边 ----------

    async def set_emotional_state(
        self,
        user_id: str,
        emotion: str,
        intensity: float,
        provenance: str = PROVENANCE_QUESTIONNAIRE
    ) -> EmotionalState:
        self.emotions.setdefault(emotion, "")
        state = EmotionalState(
            user_id=user_id,
            emotion=emotion,
            intensity=clip_intensity(intensity),
            provenance=provenance,
        )
        self.emotional_states[user_id] = state
        return replace(state)

    async def find_emotional_state(self, user_id: str) -> Optional[EmotionalState]:
        state = self.emotional_states.get(user_id)
        return replace(state) if state else None

    async def upsert_resonance(self, user_id: str, emotion: str, intensity: float) -> None:
        self.emotions.setdefault(emotion, "")
        self.resonances[user_id][emotion] = clip_intensity(intensity)

    async def get_resonances(self, user_id: str) -> Dict[str, float]:
        return dict(self.resonances.get(user_id, {}))

    async def upsert_item_resonance(self, item_id: str, emotion: str, intensity: float) -> None:
        self.emotions.setdefault(emotion, "")
        self.item_resonances[item_id][emotion] = clip_intensity(intensity)

    async def top_item_emotion(self, item_id: str) -> Optional[Resonance]:
        resonances = self.item_resonances.get(item_id)
        if not resonances:
            return None
        emotion, intensity = sorted(resonances.items(), key=lambda kv: (-kv[1], kv[0]))[0]
        return Resonance(emotion=emotion, intensity=intensity)

    async def top_items_for_emotion(
        self,
        emotion: str,
        k: int,
        dealbreakers: Optional[Sequence[str]] = None
    ) -> List[ScoredItem]:
        scored = [
            ScoredItem(item=self._copy_item(self.items[item_id]), intensity=by_emotion[emotion], emotion=emotion)
            for item_id, by_emotion in self.item_resonances.items()
            if emotion in by_emotion and item_id in self.items and self.items[item_id].avoids(dealbreakers)
        ]
        scored.sort(key=lambda s: (-s.intensity, s.item.id))
        return scored[:k]

    async def top_items_resonating_with_user_state(
        self,
        user_id: str,
        k: int,
        dealbreakers: Optional[Sequence[str]] = None
    ) -> List[ScoredItem]:
        state = self.emotional_states.get(user_id)
        if state is None:
            return []
        return await self.top_items_for_emotion(state.emotion, k, dealbreakers)

    # ---------- 反馈与相似度 ----------

    async def upsert_played(
        self,
        user_id: str,
        item_id: str,
        liked: bool,
        rating: Optional[int] = None
    ) -> PlayedItem:
        played = PlayedItem(
            user_id=user_id,
            item_id=item_id,
            liked=liked,
            rating=rating,
            weight=played_weight(liked),
        )
        self.played[(user_id, item_id)] = played
        return replace(played)

    def _liked_items(self, user_id: str) -> set:
        return {item_id for (uid, item_id), p in self.played.items() if uid == user_id and p.liked}

    async def users_with_shared_liked_items(
        self,
        min_shared: int,
        user_id: Optional[str] = None,
        sample_size: int = 10
    ) -> List[SharedLikes]:
        likers = sorted({uid for (uid, _), p in self.played.items() if p.liked})
        sources = [user_id] if user_id is not None else likers
        pairs = []
        for source in sources:
            source_likes = self._liked_items(source)
            if not source_likes:
                continue
            for other in likers:
                if other == source:
                    continue
                shared = sorted(source_likes & self._liked_items(other))
                if len(shared) >= min_shared:
                    pairs.append(SharedLikes(
                        user_id=source,
                        other_id=other,
                        shared_count=len(shared),
                        shared_item_ids=shared[:sample_size],
                    ))
        return pairs

    async def upsert_similarity(
        self,
        user_id: str,
        other_id: str,
        similarity: float,
        shared_count: int,
        shared_item_ids: List[str],
        provenance: str = PROVENANCE_SHARED_LIKES
    ) -> SimilarTo:
        edge = SimilarTo(
            user_id=user_id,
            other_id=other_id,
            similarity=similarity,
            shared_count=shared_count,
            shared_item_ids=list(shared_item_ids),
            provenance=provenance,
            updated_at=datetime.now(),
        )
        self.similarities[(user_id, other_id)] = edge
        return replace(edge)

    async def get_similarity(self, user_id: str, other_id: str) -> Optional[SimilarTo]:
        edge = self.similarities.get((user_id, other_id))
        return replace(edge) if edge else None

    async def similar_users(self, user_id: str) -> List[SimilarUser]:
        result = [
            SimilarUser(user_id=other, similarity=edge.similarity, provenance=edge.provenance)
            for (uid, other), edge in self.similarities.items()
            if uid == user_id
        ]
        result.sort(key=lambda s: (-s.similarity, s.user_id))
        return result

    async def items_liked_by_similar_users(
        self,
        user_id: str,
        k: int,
        dealbreakers: Optional[Sequence[str]] = None
    ) -> List[ItemVotes]:
        already_played = {item_id for (uid, item_id) in self.played if uid == user_id}
        votes: Dict[str, set] = defaultdict(set)
        provenances: Dict[str, set] = defaultdict(set)
        for similar in await self.similar_users(user_id):
            for item_id in self._liked_items(similar.user_id):
                if item_id in already_played or item_id not in self.items:
                    continue
                if not self.items[item_id].avoids(dealbreakers):
                    continue
                votes[item_id].add(similar.user_id)
                provenances[item_id].add(similar.provenance)

        ranked = sorted(votes.items(), key=lambda kv: (-len(kv[1]), kv[0]))
        return [
            ItemVotes(
                item=self._copy_item(self.items[item_id]),
                similar_user_count=len(voters),
                provenances=sorted(provenances[item_id]),
            )
            for item_id, voters in ranked[:k]
        ]

    # ---------- 诊断 ----------

    async def diagnose(self) -> GraphDiagnostics:
        return GraphDiagnostics(
            users=len(self.users),
            items=len(self.items),
            emotions=len(self.emotions),
            item_resonances=sum(len(v) for v in self.item_resonances.values()),
            played=len(self.played),
            similarities=len(self.similarities),
        )

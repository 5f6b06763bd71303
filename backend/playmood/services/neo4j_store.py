"""图谱存储 - Neo4j 操作"""
import logging
from datetime import datetime
from typing import Any, List, Dict, Optional, Sequence

from neo4j import Query, unit_of_work
from neo4j.exceptions import DriverError, Neo4jError

from playmood.core.config import settings
from playmood.core.errors import StoreError
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

ITEM_FIELDS = (
    "i.id AS id, i.name AS name, i.description AS description, "
    "i.genres AS genres, i.characteristics AS characteristics"
)

# 游戏不含任何 dealbreaker 特征；空列表不过滤
DEALBREAKER_FILTER = (
    "size($dealbreakers) = 0 OR "
    "NONE(dealbreaker IN $dealbreakers WHERE dealbreaker IN coalesce(i.characteristics, []))"
)


def _to_datetime(value: Any) -> datetime:
    """neo4j.time.DateTime -> datetime"""
    if value is None:
        return datetime.now()
    if hasattr(value, "to_native"):
        return value.to_native()
    return value


class Neo4jGraphStore(AffinityGraphStore):
    """
    亲和图谱 Neo4j 实现

    所有写操作都是 MERGE（幂等），在 execute_write 事务函数中执行；
    读操作带超时。驱动异常统一包装为 StoreError。
    """

    def __init__(self, neo4j_driver=None):
        self.driver = neo4j_driver
        self.read_timeout_s = settings.NEO4J_READ_TIMEOUT_S
        self.write_timeout_s = settings.NEO4J_WRITE_TIMEOUT_S

    async def _write(self, operation: str, cypher: str, **params) -> List[Dict[str, Any]]:
        """在写事务中执行单条 Cypher，返回全部记录"""
        if not self.driver:
            raise StoreError(operation, "Neo4j driver not initialized")

        @unit_of_work(timeout=self.write_timeout_s)
        async def work(tx):
            result = await tx.run(cypher, params)
            return await result.data()

        try:
            async with self.driver.session() as session:
                return await session.execute_write(work)
        except (Neo4jError, DriverError) as e:
            logger.error(f"Neo4j write '{operation}' failed: {e}")
            raise StoreError(operation, str(e)) from e

    async def _read(self, operation: str, cypher: str, **params) -> List[Dict[str, Any]]:
        """执行只读 Cypher（带超时）"""
        if not self.driver:
            raise StoreError(operation, "Neo4j driver not initialized")

        try:
            async with self.driver.session() as session:
                result = await session.run(Query(cypher, timeout=self.read_timeout_s), params)
                return await result.data()
        except (Neo4jError, DriverError) as e:
            logger.error(f"Neo4j read '{operation}' failed: {e}")
            raise StoreError(operation, str(e)) from e

    # ---------- 节点 ----------

    async def upsert_user(self, user_id: str, status: str = USER_STATUS_ACTIVE) -> User:
        query = """
        MERGE (u:User {id: $user_id})
        ON CREATE SET
            u.status = $status,
            u.registered_at = datetime()
        ON MATCH SET
            u.last_active_at = datetime()
        RETURN u.id AS id, u.status AS status,
               u.dominant_emotion AS dominant_emotion,
               u.time_preference AS time_preference,
               u.registered_at AS registered_at
        """
        rows = await self._write("upsert_user", query, user_id=user_id, status=status)
        return self._row_to_user(rows[0]) if rows else User(id=user_id, status=status)

    async def upsert_item(
        self,
        item_id: str,
        name: Optional[str] = None,
        description: Optional[str] = None,
        genres: Optional[Sequence[str]] = None,
        characteristics: Optional[Sequence[str]] = None
    ) -> Item:
        query = """
        MERGE (i:Item {id: $item_id})
        ON CREATE SET
            i.name = coalesce($name, $item_id),
            i.description = coalesce($description, $placeholder),
            i.genres = coalesce($genres, []),
            i.characteristics = coalesce($characteristics, [])
        ON MATCH SET
            i.name = coalesce($name, i.name),
            i.description = coalesce($description, i.description),
            i.genres = coalesce($genres, i.genres, []),
            i.characteristics = coalesce($characteristics, i.characteristics, [])
        RETURN i.id AS id, i.name AS name, i.description AS description,
               i.genres AS genres, i.characteristics AS characteristics
        """
        rows = await self._write(
            "upsert_item",
            query,
            item_id=item_id,
            name=name,
            description=description,
            genres=list(genres) if genres is not None else None,
            characteristics=list(characteristics) if characteristics is not None else None,
            placeholder=PLACEHOLDER_DESCRIPTION,
        )
        if not rows:
            return Item(
                id=item_id,
                name=name or item_id,
                description=description or PLACEHOLDER_DESCRIPTION,
                genres=list(genres or []),
                characteristics=list(characteristics or []),
            )
        return self._row_to_item(rows[0])

    async def upsert_emotion(self, emotion: str, description: str = "") -> None:
        query = """
        MERGE (e:Emotion {name: $emotion})
        SET e.description = $description
        """
        await self._write("upsert_emotion", query, emotion=emotion, description=description)

    async def get_user(self, user_id: str) -> Optional[User]:
        query = """
        MATCH (u:User {id: $user_id})
        RETURN u.id AS id, u.status AS status,
               u.dominant_emotion AS dominant_emotion,
               u.time_preference AS time_preference,
               u.registered_at AS registered_at
        """
        rows = await self._read("get_user", query, user_id=user_id)
        return self._row_to_user(rows[0]) if rows else None

    async def update_user_profile(
        self,
        user_id: str,
        dominant_emotion: str,
        time_preference: str
    ) -> None:
        query = """
        MERGE (u:User {id: $user_id})
        SET u.dominant_emotion = $dominant_emotion,
            u.time_preference = $time_preference,
            u.profiled_at = datetime()
        """
        await self._write(
            "update_user_profile",
            query,
            user_id=user_id,
            dominant_emotion=dominant_emotion,
            time_preference=time_preference,
        )

    # ---------- 情绪边 ----------

    async def set_emotional_state(
        self,
        user_id: str,
        emotion: str,
        intensity: float,
        provenance: str = PROVENANCE_QUESTIONNAIRE
    ) -> EmotionalState:
        # 先删除旧状态再创建，保证每个用户只有一条 EMOTIONAL_STATE
        query = """
        MERGE (u:User {id: $user_id})
        WITH u
        OPTIONAL MATCH (u)-[old:EMOTIONAL_STATE]->()
        DELETE old
        WITH DISTINCT u
        MERGE (e:Emotion {name: $emotion})
        CREATE (u)-[r:EMOTIONAL_STATE]->(e)
        SET r.intensity = $intensity,
            r.provenance = $provenance,
            r.updated_at = datetime()
        RETURN e.name AS emotion, r.intensity AS intensity,
               r.provenance AS provenance, r.updated_at AS updated_at
        """
        intensity = clip_intensity(intensity)
        rows = await self._write(
            "set_emotional_state",
            query,
            user_id=user_id,
            emotion=emotion,
            intensity=intensity,
            provenance=provenance,
        )
        logger.info(f"Emotional state for {user_id} set to {emotion} ({intensity:.2f}, {provenance})")
        if not rows:
            return EmotionalState(user_id=user_id, emotion=emotion, intensity=intensity, provenance=provenance)
        return self._row_to_state(user_id, rows[0])

    async def find_emotional_state(self, user_id: str) -> Optional[EmotionalState]:
        query = """
        MATCH (u:User {id: $user_id})-[r:EMOTIONAL_STATE]->(e:Emotion)
        RETURN e.name AS emotion, r.intensity AS intensity,
               r.provenance AS provenance, r.updated_at AS updated_at
        ORDER BY r.updated_at DESC
        LIMIT 1
        """
        rows = await self._read("find_emotional_state", query, user_id=user_id)
        return self._row_to_state(user_id, rows[0]) if rows else None

    async def upsert_resonance(self, user_id: str, emotion: str, intensity: float) -> None:
        query = """
        MERGE (u:User {id: $user_id})
        MERGE (e:Emotion {name: $emotion})
        MERGE (u)-[r:RESONATES_WITH]->(e)
        SET r.intensity = $intensity,
            r.updated_at = datetime()
        """
        await self._write(
            "upsert_resonance",
            query,
            user_id=user_id,
            emotion=emotion,
            intensity=clip_intensity(intensity),
        )

    async def get_resonances(self, user_id: str) -> Dict[str, float]:
        query = """
        MATCH (u:User {id: $user_id})-[r:RESONATES_WITH]->(e:Emotion)
        RETURN e.name AS emotion, r.intensity AS intensity
        """
        rows = await self._read("get_resonances", query, user_id=user_id)
        return {row["emotion"]: float(row["intensity"] or 0.0) for row in rows}

    async def upsert_item_resonance(self, item_id: str, emotion: str, intensity: float) -> None:
        query = """
        MERGE (i:Item {id: $item_id})
        ON CREATE SET i.name = $item_id, i.description = $placeholder
        MERGE (e:Emotion {name: $emotion})
        MERGE (i)-[r:RESONATES_WITH]->(e)
        SET r.intensity = $intensity
        """
        await self._write(
            "upsert_item_resonance",
            query,
            item_id=item_id,
            emotion=emotion,
            intensity=clip_intensity(intensity),
            placeholder=PLACEHOLDER_DESCRIPTION,
        )

    async def top_item_emotion(self, item_id: str) -> Optional[Resonance]:
        query = """
        MATCH (i:Item {id: $item_id})-[r:RESONATES_WITH]->(e:Emotion)
        RETURN e.name AS emotion, r.intensity AS intensity
        ORDER BY r.intensity DESC, e.name ASC
        LIMIT 1
        """
        rows = await self._read("top_item_emotion", query, item_id=item_id)
        if not rows:
            return None
        return Resonance(emotion=rows[0]["emotion"], intensity=float(rows[0]["intensity"] or 0.0))

    async def top_items_for_emotion(
        self,
        emotion: str,
        k: int,
        dealbreakers: Optional[Sequence[str]] = None
    ) -> List[ScoredItem]:
        query = f"""
        MATCH (i:Item)-[r:RESONATES_WITH]->(e:Emotion {{name: $emotion}})
        WHERE {DEALBREAKER_FILTER}
        RETURN {ITEM_FIELDS},
               r.intensity AS intensity, e.name AS emotion
        ORDER BY r.intensity DESC, i.id ASC
        LIMIT $k
        """
        rows = await self._read(
            "top_items_for_emotion",
            query,
            emotion=emotion,
            k=k,
            dealbreakers=list(dealbreakers or []),
        )
        return [self._row_to_scored(row) for row in rows]

    async def top_items_resonating_with_user_state(
        self,
        user_id: str,
        k: int,
        dealbreakers: Optional[Sequence[str]] = None
    ) -> List[ScoredItem]:
        query = f"""
        MATCH (u:User {{id: $user_id}})-[:EMOTIONAL_STATE]->(e:Emotion)<-[r:RESONATES_WITH]-(i:Item)
        WHERE {DEALBREAKER_FILTER}
        RETURN {ITEM_FIELDS},
               r.intensity AS intensity, e.name AS emotion
        ORDER BY r.intensity DESC, i.id ASC
        LIMIT $k
        """
        rows = await self._read(
            "top_items_resonating_with_user_state",
            query,
            user_id=user_id,
            k=k,
            dealbreakers=list(dealbreakers or []),
        )
        return [self._row_to_scored(row) for row in rows]

    # ---------- 反馈与相似度 ----------

    async def upsert_played(
        self,
        user_id: str,
        item_id: str,
        liked: bool,
        rating: Optional[int] = None
    ) -> PlayedItem:
        query = """
        MERGE (u:User {id: $user_id})
        ON CREATE SET u.status = $status, u.registered_at = datetime()
        MERGE (i:Item {id: $item_id})
        ON CREATE SET i.name = $item_id, i.description = $placeholder
        MERGE (u)-[p:PLAYED]->(i)
        SET p.liked = $liked,
            p.rating = $rating,
            p.weight = $weight,
            p.played_at = datetime()
        RETURN p.liked AS liked, p.rating AS rating, p.weight AS weight, p.played_at AS played_at
        """
        weight = played_weight(liked)
        rows = await self._write(
            "upsert_played",
            query,
            user_id=user_id,
            item_id=item_id,
            liked=liked,
            rating=rating,
            weight=weight,
            status=USER_STATUS_ACTIVE,
            placeholder=PLACEHOLDER_DESCRIPTION,
        )
        played_at = _to_datetime(rows[0].get("played_at")) if rows else datetime.now()
        return PlayedItem(
            user_id=user_id,
            item_id=item_id,
            liked=liked,
            rating=rating,
            weight=weight,
            played_at=played_at,
        )

    async def users_with_shared_liked_items(
        self,
        min_shared: int,
        user_id: Optional[str] = None,
        sample_size: int = 10
    ) -> List[SharedLikes]:
        query = """
        MATCH (u1:User)-[:PLAYED {liked: true}]->(i:Item)<-[:PLAYED {liked: true}]-(u2:User)
        WHERE u1 <> u2 AND ($user_id IS NULL OR u1.id = $user_id)
        WITH u1, u2, count(DISTINCT i) AS shared_count, collect(DISTINCT i.id) AS shared_ids
        WHERE shared_count >= $min_shared
        RETURN u1.id AS user_id, u2.id AS other_id, shared_count,
               shared_ids[0..$sample_size] AS shared_item_ids
        ORDER BY user_id, other_id
        """
        rows = await self._read(
            "users_with_shared_liked_items",
            query,
            user_id=user_id,
            min_shared=min_shared,
            sample_size=sample_size,
        )
        return [
            SharedLikes(
                user_id=row["user_id"],
                other_id=row["other_id"],
                shared_count=int(row["shared_count"]),
                shared_item_ids=list(row.get("shared_item_ids") or []),
            )
            for row in rows
        ]

    async def upsert_similarity(
        self,
        user_id: str,
        other_id: str,
        similarity: float,
        shared_count: int,
        shared_item_ids: List[str],
        provenance: str = PROVENANCE_SHARED_LIKES
    ) -> SimilarTo:
        query = """
        MERGE (u1:User {id: $user_id})
        MERGE (u2:User {id: $other_id})
        MERGE (u1)-[s:SIMILAR_TO]->(u2)
        SET s.similarity = $similarity,
            s.shared_count = $shared_count,
            s.shared_item_ids = $shared_item_ids,
            s.provenance = $provenance,
            s.updated_at = datetime()
        RETURN s.updated_at AS updated_at
        """
        rows = await self._write(
            "upsert_similarity",
            query,
            user_id=user_id,
            other_id=other_id,
            similarity=similarity,
            shared_count=shared_count,
            shared_item_ids=list(shared_item_ids),
            provenance=provenance,
        )
        return SimilarTo(
            user_id=user_id,
            other_id=other_id,
            similarity=similarity,
            shared_count=shared_count,
            shared_item_ids=list(shared_item_ids),
            provenance=provenance,
            updated_at=_to_datetime(rows[0].get("updated_at")) if rows else datetime.now(),
        )

    async def get_similarity(self, user_id: str, other_id: str) -> Optional[SimilarTo]:
        query = """
        MATCH (:User {id: $user_id})-[s:SIMILAR_TO]->(:User {id: $other_id})
        RETURN s.similarity AS similarity, s.shared_count AS shared_count,
               s.shared_item_ids AS shared_item_ids, s.provenance AS provenance,
               s.updated_at AS updated_at
        """
        rows = await self._read("get_similarity", query, user_id=user_id, other_id=other_id)
        if not rows:
            return None
        row = rows[0]
        return SimilarTo(
            user_id=user_id,
            other_id=other_id,
            similarity=float(row["similarity"] or 0.0),
            shared_count=int(row["shared_count"] or 0),
            shared_item_ids=list(row.get("shared_item_ids") or []),
            provenance=row.get("provenance") or PROVENANCE_SHARED_LIKES,
            updated_at=_to_datetime(row.get("updated_at")),
        )

    async def similar_users(self, user_id: str) -> List[SimilarUser]:
        query = """
        MATCH (:User {id: $user_id})-[s:SIMILAR_TO]->(o:User)
        RETURN o.id AS user_id, s.similarity AS similarity,
               coalesce(s.provenance, $default_provenance) AS provenance
        ORDER BY similarity DESC, user_id ASC
        """
        rows = await self._read(
            "similar_users",
            query,
            user_id=user_id,
            default_provenance=PROVENANCE_SHARED_LIKES,
        )
        return [
            SimilarUser(
                user_id=row["user_id"],
                similarity=float(row["similarity"] or 0.0),
                provenance=row["provenance"],
            )
            for row in rows
        ]

    async def items_liked_by_similar_users(
        self,
        user_id: str,
        k: int,
        dealbreakers: Optional[Sequence[str]] = None
    ) -> List[ItemVotes]:
        query = f"""
        MATCH (u:User {{id: $user_id}})-[s:SIMILAR_TO]->(o:User)-[:PLAYED {{liked: true}}]->(i:Item)
        WHERE NOT (u)-[:PLAYED]->(i) AND ({DEALBREAKER_FILTER})
        WITH i, count(DISTINCT o) AS similar_user_count,
             collect(DISTINCT coalesce(s.provenance, $default_provenance)) AS provenances
        RETURN {ITEM_FIELDS},
               similar_user_count, provenances
        ORDER BY similar_user_count DESC, id ASC
        LIMIT $k
        """
        rows = await self._read(
            "items_liked_by_similar_users",
            query,
            user_id=user_id,
            k=k,
            dealbreakers=list(dealbreakers or []),
            default_provenance=PROVENANCE_SHARED_LIKES,
        )
        return [
            ItemVotes(
                item=self._row_to_item(row),
                similar_user_count=int(row["similar_user_count"]),
                provenances=sorted(row.get("provenances") or []),
            )
            for row in rows
        ]

    # ---------- 诊断 ----------

    async def diagnose(self) -> GraphDiagnostics:
        query = """
        OPTIONAL MATCH (u:User) WITH count(u) AS users
        OPTIONAL MATCH (i:Item) WITH users, count(i) AS items
        OPTIONAL MATCH (e:Emotion) WITH users, items, count(e) AS emotions
        OPTIONAL MATCH (:Item)-[r:RESONATES_WITH]->(:Emotion)
        WITH users, items, emotions, count(r) AS item_resonances
        OPTIONAL MATCH (:User)-[p:PLAYED]->(:Item)
        WITH users, items, emotions, item_resonances, count(p) AS played
        OPTIONAL MATCH (:User)-[s:SIMILAR_TO]->(:User)
        RETURN users, items, emotions, item_resonances, played, count(s) AS similarities
        """
        rows = await self._read("diagnose", query)
        if not rows:
            return GraphDiagnostics()
        row = rows[0]
        diagnostics = GraphDiagnostics(
            users=int(row["users"]),
            items=int(row["items"]),
            emotions=int(row["emotions"]),
            item_resonances=int(row["item_resonances"]),
            played=int(row["played"]),
            similarities=int(row["similarities"]),
        )
        logger.info(f"Graph diagnostics: {diagnostics.to_dict()}")
        return diagnostics

    # ---------- 记录转换 ----------

    @staticmethod
    def _row_to_user(row: Dict[str, Any]) -> User:
        return User(
            id=row["id"],
            dominant_emotion=row.get("dominant_emotion"),
            time_preference=row.get("time_preference"),
            status=row.get("status") or USER_STATUS_ACTIVE,
            registered_at=_to_datetime(row.get("registered_at")),
        )

    @staticmethod
    def _row_to_item(row: Dict[str, Any]) -> Item:
        return Item(
            id=row["id"],
            name=row.get("name") or row["id"],
            description=row.get("description") or "",
            genres=list(row.get("genres") or []),
            characteristics=list(row.get("characteristics") or []),
        )

    @staticmethod
    def _row_to_state(user_id: str, row: Dict[str, Any]) -> EmotionalState:
        return EmotionalState(
            user_id=user_id,
            emotion=row["emotion"],
            intensity=float(row["intensity"] if row.get("intensity") is not None else 1.0),
            provenance=row.get("provenance") or PROVENANCE_QUESTIONNAIRE,
            updated_at=_to_datetime(row.get("updated_at")),
        )

    @classmethod
    def _row_to_scored(cls, row: Dict[str, Any]) -> ScoredItem:
        return ScoredItem(
            item=cls._row_to_item(row),
            intensity=float(row["intensity"] or 0.0),
            emotion=row["emotion"],
        )

"""参考数据：情绪词表、游戏目录、种子用户

load_reference_data / ensure_seed_users 都是幂等的，可以反复执行。
"""
import logging
from typing import List, Dict, Tuple
from dataclasses import dataclass

from playmood.models.emotion import EMOTION_DESCRIPTIONS
from playmood.services.graph_store import AffinityGraphStore, USER_STATUS_SEED

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CatalogueGame:
    """目录中的游戏：情绪共鸣强度、类型与特征"""
    id: str
    name: str
    description: str
    resonances: Tuple[Tuple[str, float], ...] = ()
    genres: Tuple[str, ...] = ()
    # 可作为 dealbreaker 被回避的特征，词表见 DEALBREAKER_CHARACTERISTICS
    characteristics: Tuple[str, ...] = ()


@dataclass(frozen=True)
class SeedUser:
    """冷启动用的种子用户"""
    id: str
    liked_item_ids: Tuple[str, ...]
    emotion: str
    intensity: float


GAME_CATALOGUE: Tuple[CatalogueGame, ...] = (
    CatalogueGame(
        "game1", "Stardew Valley",
        "A farming sim where you grow crops, fish, mine and make friends.",
        (("relaxing", 0.95), ("creative", 0.6), ("social", 0.5)),
        genres=("simulation", "farming"),
        characteristics=("cozy", "social"),
    ),
    CatalogueGame(
        "game2", "Journey",
        "A wordless pilgrimage across a desert towards a distant mountain.",
        (("contemplative", 0.9), ("relaxing", 0.8), ("melancholic", 0.6)),
        genres=("adventure", "indie"),
        characteristics=("atmospheric", "short"),
    ),
    CatalogueGame(
        "game4", "Animal Crossing: New Horizons",
        "A life sim where you build a community on a deserted island.",
        (("relaxing", 0.9), ("joyful", 0.7), ("creative", 0.6)),
        genres=("simulation", "life"),
        characteristics=("cozy", "social"),
    ),
    CatalogueGame(
        "game11", "Factorio",
        "Build and manage factories with a focus on automation.",
        (("creative", 0.9), ("challenging", 0.6)),
        genres=("strategy", "automation"),
        characteristics=("complex", "combat"),
    ),
    CatalogueGame(
        "game12", "Hades",
        "An action roguelike with rich storytelling and frantic combat.",
        (("challenging", 0.85), ("joyful", 0.5)),
        genres=("roguelike", "action"),
        characteristics=("combat", "difficult", "fast-paced"),
    ),
    CatalogueGame(
        "game13", "Among Us",
        "A social deduction game about finding the impostors in the crew.",
        (("social", 0.95), ("competitive", 0.6), ("joyful", 0.6)),
        genres=("party", "social deduction"),
        characteristics=("social", "fast-paced"),
    ),
    CatalogueGame(
        "game16", "Elden Ring",
        "An open-world action RPG with demanding combat and non-linear exploration.",
        (("challenging", 0.9), ("exploratory", 0.8)),
        genres=("action rpg", "open world"),
        characteristics=("combat", "difficult"),
    ),
    CatalogueGame(
        "game17", "Dark Souls",
        "A punishing action RPG in a decaying, interconnected world.",
        (("challenging", 0.95), ("melancholic", 0.5)),
        genres=("action rpg",),
        characteristics=("combat", "difficult"),
    ),
    CatalogueGame(
        "game18", "Monster Hunter World",
        "Hunt huge monsters alone or with friends and craft gear from them.",
        (("challenging", 0.8), ("social", 0.6), ("competitive", 0.5)),
        genres=("action rpg", "co-op"),
        characteristics=("combat", "social", "difficult"),
    ),
    CatalogueGame(
        "game20", "God of War (2018)",
        "An action adventure with visceral combat and a father-son story.",
        (("exploratory", 0.8), ("challenging", 0.6), ("melancholic", 0.4)),
        genres=("action adventure",),
        characteristics=("combat", "story-rich"),
    ),
    CatalogueGame(
        "game21", "No Man's Sky",
        "Space exploration across a practically infinite procedural universe.",
        (("exploratory", 0.9), ("contemplative", 0.5)),
        genres=("exploration", "survival"),
        characteristics=("atmospheric",),
    ),
    CatalogueGame(
        "game27", "Subnautica",
        "Underwater survival and exploration on an alien planet.",
        (("exploratory", 0.85), ("contemplative", 0.8)),
        genres=("survival", "exploration"),
        characteristics=("atmospheric", "story-rich"),
    ),
    CatalogueGame(
        "game28", "Slay the Spire",
        "A deck-building roguelike with turn-based strategy.",
        (("challenging", 0.9), ("contemplative", 0.4)),
        genres=("roguelike", "deck-building"),
        characteristics=("difficult", "turn-based"),
    ),
    CatalogueGame(
        "game29", "Final Fantasy XIV",
        "An MMORPG with a rich story, many jobs and varied content.",
        (("social", 0.85), ("exploratory", 0.5)),
        genres=("mmorpg",),
        characteristics=("social", "combat", "story-rich"),
    ),
    CatalogueGame(
        "game30", "Satisfactory",
        "A first-person factory builder on an alien planet.",
        (("creative", 0.85), ("relaxing", 0.7)),
        genres=("simulation", "automation"),
        characteristics=("complex",),
    ),
)

SEED_USERS: Tuple[SeedUser, ...] = (
    SeedUser("seed_relaxed", ("game1", "game2", "game4"), "relaxing", 0.8),
    SeedUser("seed_adventurer", ("game16", "game17", "game18"), "challenging", 0.9),
    SeedUser("seed_social", ("game13", "game29", "game18"), "social", 0.85),
)


async def load_reference_data(store: AffinityGraphStore) -> Dict[str, int]:
    """写入情绪节点、游戏节点和游戏 -> 情绪共鸣边"""
    for emotion, description in EMOTION_DESCRIPTIONS.items():
        await store.upsert_emotion(emotion, description)

    resonances = 0
    for game in GAME_CATALOGUE:
        await store.upsert_item(
            game.id,
            name=game.name,
            description=game.description,
            genres=list(game.genres),
            characteristics=list(game.characteristics),
        )
        for emotion, intensity in game.resonances:
            await store.upsert_item_resonance(game.id, emotion, intensity)
            resonances += 1

    stats = {
        "emotions": len(EMOTION_DESCRIPTIONS),
        "items": len(GAME_CATALOGUE),
        "item_resonances": resonances,
    }
    logger.info(f"Reference data loaded: {stats}")
    return stats


async def ensure_seed_users(store: AffinityGraphStore) -> List[str]:
    """
    创建种子用户（status="seed"）及其喜欢的游戏和情绪状态

    种子用户之间不计算相似度，它们只作为新用户冷启动时的连接目标。
    """
    created = []
    for seed in SEED_USERS:
        await store.upsert_user(seed.id, status=USER_STATUS_SEED)
        for item_id in seed.liked_item_ids:
            await store.upsert_played(seed.id, item_id, liked=True)
        await store.set_emotional_state(seed.id, seed.emotion, seed.intensity)
        created.append(seed.id)

    logger.info(f"Seed users ensured: {created}")
    return created

import pytest

from playmood.core.errors import StoreError
from playmood.services.graph_store import PROVENANCE_SEED
from playmood.services.memory_store import InMemoryGraphStore
from playmood.services.recommendation_service import (
    REASON_SEED,
    Recommendation,
    RecommendationGenerator,
    rank,
)


class FailingStore(InMemoryGraphStore):
    async def find_emotional_state(self, user_id):
        raise StoreError("find_emotional_state", "connection refused")

    async def items_liked_by_similar_users(self, user_id, k, dealbreakers=None):
        raise StoreError("items_liked_by_similar_users", "connection refused")

    async def top_items_for_emotion(self, emotion, k, dealbreakers=None):
        raise StoreError("top_items_for_emotion", "connection refused")


async def link_to_seeds(store, user_id):
    await store.upsert_user(user_id)
    await store.upsert_similarity(user_id, "seed_adventurer", 0.4, 0, [], provenance=PROVENANCE_SEED)
    await store.upsert_similarity(user_id, "seed_social", 0.4, 0, [], provenance=PROVENANCE_SEED)


@pytest.mark.asyncio
async def test_emotional_uses_current_state(reference_store):
    await reference_store.upsert_user("u1")
    await reference_store.set_emotional_state("u1", "challenging", 0.8)

    recs = await RecommendationGenerator(reference_store).emotional("u1")

    assert [r.item_id for r in recs] == ["game17", "game16", "game28", "game12", "game18"]
    assert recs[0].score == 0.95
    assert recs[0].name == "Dark Souls"
    assert recs[0].reasons == ["resonates with your emotion: challenging"]


@pytest.mark.asyncio
async def test_emotional_without_state_is_empty(reference_store):
    await reference_store.upsert_user("u1")

    assert await RecommendationGenerator(reference_store).emotional("u1") == []


@pytest.mark.asyncio
async def test_by_emotion(reference_store):
    recs = await RecommendationGenerator(reference_store).by_emotion("social")

    assert [r.item_id for r in recs][:3] == ["game13", "game29", "game18"]
    assert all(r.reasons == ["good for when you feel: social"] for r in recs)
    assert len(recs) <= 5


@pytest.mark.asyncio
async def test_by_unknown_emotion_is_empty(reference_store):
    assert await RecommendationGenerator(reference_store).by_emotion("furious") == []


@pytest.mark.asyncio
async def test_social_scores_by_similar_user_count(seeded_store):
    await link_to_seeds(seeded_store, "u1")

    recs = await RecommendationGenerator(seeded_store).social("u1")

    assert [r.item_id for r in recs] == ["game18", "game13", "game16", "game17", "game29"]
    assert recs[0].score == pytest.approx(0.4)
    assert all(r.score == pytest.approx(0.2) for r in recs[1:])
    assert all(r.reasons == [REASON_SEED] for r in recs)
    assert all(r.synthetic and r.provenances == [PROVENANCE_SEED] for r in recs)


@pytest.mark.asyncio
async def test_social_excludes_already_played(seeded_store):
    await link_to_seeds(seeded_store, "u1")
    await seeded_store.upsert_played("u1", "game18", liked=False)

    recs = await RecommendationGenerator(seeded_store).social("u1")

    assert "game18" not in [r.item_id for r in recs]


@pytest.mark.asyncio
async def test_mixed_is_deduplicated_sorted_and_cut(seeded_store):
    await link_to_seeds(seeded_store, "u1")
    await seeded_store.set_emotional_state("u1", "challenging", 0.8)

    recs = await RecommendationGenerator(seeded_store).mixed("u1")
    ids = [r.item_id for r in recs]

    assert ids == ["game17", "game16", "game28", "game12", "game18"]
    assert len(ids) == len(set(ids))
    assert [r.score for r in recs] == sorted((r.score for r in recs), reverse=True)
    # 去重保留分数更高的情绪推荐
    assert recs[-1].reasons == ["resonates with your emotion: challenging"]


@pytest.mark.asyncio
async def test_mixed_falls_back_to_social_only(seeded_store):
    await link_to_seeds(seeded_store, "u1")

    recs = await RecommendationGenerator(seeded_store).mixed("u1")

    assert [r.item_id for r in recs] == ["game18", "game13", "game16", "game17", "game29"]


def test_rank_keeps_first_after_stable_sort():
    recs = [
        Recommendation("a", "A", "", 0.5, ["first"]),
        Recommendation("b", "B", "", 0.9, ["b"]),
        Recommendation("a", "A", "", 0.5, ["second"]),
        Recommendation("c", "C", "", 0.5, ["c"]),
    ]

    ranked = rank(recs, limit=2)

    assert [r.item_id for r in ranked] == ["b", "a"]
    assert ranked[1].reasons == ["first"]


@pytest.mark.asyncio
async def test_read_failures_degrade_to_empty():
    generator = RecommendationGenerator(FailingStore())

    assert await generator.emotional("u1") == []
    assert await generator.social("u1") == []
    assert await generator.mixed("u1") == []
    assert await generator.by_emotion("relaxing") == []


@pytest.mark.asyncio
async def test_strict_generator_propagates():
    generator = RecommendationGenerator(FailingStore(), strict=True)

    with pytest.raises(StoreError):
        await generator.emotional("u1")
    with pytest.raises(StoreError):
        await generator.social("u1")


@pytest.mark.asyncio
async def test_limit_is_configurable(reference_store):
    recs = await RecommendationGenerator(reference_store, limit=2).by_emotion("relaxing")

    assert [r.item_id for r in recs] == ["game1", "game4"]


@pytest.mark.asyncio
async def test_by_emotion_skips_dealbreakers_before_cut(reference_store):
    recs = await RecommendationGenerator(reference_store, limit=2).by_emotion("relaxing", ["social"])

    assert [r.item_id for r in recs] == ["game2", "game30"]
    assert recs[0].genres == ["adventure", "indie"]
    assert recs[0].characteristics == ["atmospheric", "short"]


@pytest.mark.asyncio
async def test_emotional_skips_dealbreakers(reference_store):
    await reference_store.upsert_user("u1")
    await reference_store.set_emotional_state("u1", "challenging", 0.8)

    recs = await RecommendationGenerator(reference_store).emotional("u1", ["combat"])

    assert [r.item_id for r in recs] == ["game28"]
    assert all("combat" not in r.to_dict()["characteristics"] for r in recs)


@pytest.mark.asyncio
async def test_social_and_mixed_skip_dealbreakers(seeded_store):
    await link_to_seeds(seeded_store, "u1")

    social = await RecommendationGenerator(seeded_store).social("u1", ["combat"])
    mixed = await RecommendationGenerator(seeded_store).mixed("u1", ["combat", "social"])

    assert [r.item_id for r in social] == ["game13"]
    assert mixed == []


@pytest.mark.asyncio
async def test_emotional_recommendations_are_not_synthetic(reference_store):
    await reference_store.upsert_user("u1")
    await reference_store.set_emotional_state("u1", "relaxing", 0.8)

    recs = await RecommendationGenerator(reference_store).emotional("u1")

    assert recs
    assert all(not r.synthetic and r.provenances == [] for r in recs)

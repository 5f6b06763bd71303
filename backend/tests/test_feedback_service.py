import pytest

from playmood.core.errors import ValidationError
from playmood.services.feedback_service import FeedbackIngestor
from playmood.services.graph_store import PLACEHOLDER_DESCRIPTION, PROVENANCE_AUTO
from playmood.services.recommendation_service import REASON_SEED, REASON_SOCIAL, RecommendationGenerator
from playmood.services.reference_data import SEED_USERS
from playmood.services.similarity_service import SimilarityEngine


def make_ingestor(store, rng):
    return FeedbackIngestor(store, SimilarityEngine(store, rng=rng))


@pytest.mark.asyncio
async def test_feedback_creates_auto_state_from_item_resonance(reference_store, never_admit):
    result = await make_ingestor(reference_store, never_admit).submit("u1", "game13", liked=True, rating=9)

    assert result.played.weight == 1.0
    assert result.played.rating == 9
    assert result.auto_state.emotion == "social"
    assert result.auto_state.intensity == pytest.approx(0.7)
    assert result.auto_state.provenance == PROVENANCE_AUTO
    assert list(reference_store.emotional_states) == ["u1"]


@pytest.mark.asyncio
async def test_unknown_item_gets_placeholder_and_default_emotion(store, never_admit):
    result = await make_ingestor(store, never_admit).submit("u1", "mystery", liked=False)

    item = store.items["mystery"]
    assert item.name == "mystery"
    assert item.description == PLACEHOLDER_DESCRIPTION
    assert result.played.weight == -0.5
    assert result.auto_state.emotion == "joyful"
    assert len(store.emotional_states) == 1


@pytest.mark.asyncio
async def test_existing_state_is_kept(reference_store, never_admit):
    await reference_store.upsert_user("u1")
    await reference_store.set_emotional_state("u1", "relaxing", 0.9)

    result = await make_ingestor(reference_store, never_admit).submit("u1", "game17", liked=True)

    assert result.auto_state is None
    state = await reference_store.find_emotional_state("u1")
    assert state.emotion == "relaxing"
    assert state.intensity == 0.9


@pytest.mark.asyncio
async def test_repeated_feedback_keeps_one_played_edge(reference_store, never_admit):
    ingestor = make_ingestor(reference_store, never_admit)

    await ingestor.submit("u1", "game1", liked=True)
    await ingestor.submit("u1", "game1", liked=False, rating=2)

    played = reference_store.played[("u1", "game1")]
    assert len(reference_store.played) == 1
    assert played.liked is False
    assert played.weight == -0.5
    assert len(reference_store.emotional_states) == 1


@pytest.mark.asyncio
async def test_feedback_triggers_similarity(seeded_store, never_admit):
    result = await make_ingestor(seeded_store, never_admit).submit("u1", "game1", liked=True)

    assert [link.other_id for link in result.similarity.natural_links] == ["seed_relaxed"]
    assert (await seeded_store.get_similarity("u1", "seed_relaxed")).shared_count == 1
    assert await seeded_store.get_similarity("seed_relaxed", "u1") is None


@pytest.mark.parametrize(
    "user_id,item_id,liked,rating,field",
    [
        ("", "game1", True, None, "user_id"),
        ("u1", "", True, None, "item_id"),
        ("u1", "game1", "false", None, "liked"),
        ("u1", "game1", 1, None, "liked"),
        ("u1", "game1", None, None, "liked"),
        ("u1", "game1", True, 0, "rating"),
        ("u1", "game1", True, 11, "rating"),
        ("u1", "game1", True, "7", "rating"),
        ("u1", "game1", True, True, "rating"),
    ],
)
@pytest.mark.asyncio
async def test_invalid_feedback_is_rejected_before_writes(store, never_admit, user_id, item_id, liked, rating, field):
    with pytest.raises(ValidationError) as exc_info:
        await make_ingestor(store, never_admit).submit(user_id, item_id, liked=liked, rating=rating)

    assert exc_info.value.field == field
    assert store.users == {}
    assert store.played == {}


@pytest.mark.asyncio
async def test_rating_bounds_are_inclusive(store, never_admit):
    ingestor = make_ingestor(store, never_admit)

    low = await ingestor.submit("u1", "game1", liked=False, rating=1)
    high = await ingestor.submit("u1", "game2", liked=True, rating=10)

    assert (low.played.rating, high.played.rating) == (1, 10)


@pytest.mark.asyncio
async def test_cold_start_social_comes_only_from_seeds(seeded_store, always_admit):
    await make_ingestor(seeded_store, always_admit).submit("newbie", "game21", liked=True)

    recs = await RecommendationGenerator(seeded_store).social("newbie")

    seed_likes = {item_id for seed in SEED_USERS for item_id in seed.liked_item_ids}
    assert recs
    assert {r.item_id for r in recs} <= seed_likes
    assert all(r.synthetic for r in recs)
    assert all(r.reasons == [REASON_SEED] for r in recs)
    assert all(r.to_dict()["provenances"] == ["seed"] for r in recs)
    similar = await seeded_store.similar_users("newbie")
    assert {s.provenance for s in similar} == {"seed"}


@pytest.mark.asyncio
async def test_cold_start_without_admission_has_no_social(seeded_store, never_admit):
    await make_ingestor(seeded_store, never_admit).submit("newbie", "game21", liked=True)

    assert await RecommendationGenerator(seeded_store).social("newbie") == []


@pytest.mark.asyncio
async def test_shared_likes_social_is_not_synthetic(reference_store, never_admit):
    ingestor = make_ingestor(reference_store, never_admit)
    await ingestor.submit("u2", "game1", liked=True)
    await ingestor.submit("u2", "game27", liked=True)
    await ingestor.submit("u1", "game1", liked=True)

    recs = await RecommendationGenerator(reference_store).social("u1")

    assert [r.item_id for r in recs] == ["game27"]
    assert recs[0].reasons == [REASON_SOCIAL]
    assert recs[0].synthetic is False
    assert recs[0].to_dict()["provenances"] == ["shared_likes"]


@pytest.mark.asyncio
async def test_string_liked_does_not_become_a_like(reference_store, never_admit):
    with pytest.raises(ValidationError) as exc_info:
        await make_ingestor(reference_store, never_admit).submit("u1", "game1", liked="false")

    assert exc_info.value.field == "liked"
    assert reference_store.played == {}

"""问卷提交测试"""
import pytest

from playmood.core.errors import ValidationError
from playmood.services.graph_store import PROVENANCE_QUESTIONNAIRE
from playmood.services.profile_service import ProfileService


@pytest.mark.asyncio
async def test_submit_questionnaire_persists_profile(reference_store):
    answers = {
        "experience_type": "explore",
        "time_available": "long",
        "mood": "curious",
        "preferred_activity": "discover",
        "emotional_goal": "wonder",
    }

    result = await ProfileService(reference_store).submit_questionnaire("u1", answers)

    assert result.profile.dominant_emotion == "exploratory"
    assert result.profile.time_preference == "long"

    user = reference_store.users["u1"]
    assert user.dominant_emotion == "exploratory"
    assert user.time_preference == "long"

    state = await reference_store.find_emotional_state("u1")
    assert state.emotion == "exploratory"
    assert state.provenance == PROVENANCE_QUESTIONNAIRE
    assert state.intensity == pytest.approx(result.profile.emotion_weights["exploratory"])

    assert result.recommendations
    assert result.recommendations[0].item_id == "game21"
    assert all(r.reasons == ["resonates with your emotion: exploratory"] for r in result.recommendations)


@pytest.mark.asyncio
async def test_only_significant_emotions_become_resonances(reference_store):
    # relaxing 0.9/1.3 ≈ 0.69, contemplative 0.4/1.3 ≈ 0.31
    await ProfileService(reference_store, resonance_min_weight=0.4).submit_questionnaire(
        "u1", {"experience_type": "relax"}
    )

    resonances = await reference_store.get_resonances("u1")
    assert set(resonances) == {"relaxing"}


@pytest.mark.asyncio
async def test_default_threshold_writes_every_weight_above_tenth(reference_store):
    result = await ProfileService(reference_store).submit_questionnaire(
        "u1", {"experience_type": "relax", "mood": "nostalgic"}
    )

    resonances = await reference_store.get_resonances("u1")
    expected = {e for e, w in result.profile.emotion_weights.items() if w > 0.1}
    assert set(resonances) == expected


@pytest.mark.asyncio
async def test_empty_answers_use_full_intensity(reference_store):
    result = await ProfileService(reference_store).submit_questionnaire("u1", {})

    state = await reference_store.find_emotional_state("u1")
    assert result.profile.dominant_emotion == "relaxing"
    assert state.emotion == "relaxing"
    assert state.intensity == 1.0
    assert await reference_store.get_resonances("u1") == {}


@pytest.mark.asyncio
async def test_resubmission_replaces_state(reference_store):
    service = ProfileService(reference_store)

    await service.submit_questionnaire("u1", {"experience_type": "relax"})
    await service.submit_questionnaire("u1", {"experience_type": "connect"})

    state = await reference_store.find_emotional_state("u1")
    assert state.emotion == "social"
    assert len(reference_store.emotional_states) == 1


@pytest.mark.asyncio
async def test_invalid_submission(store):
    service = ProfileService(store)

    with pytest.raises(ValidationError):
        await service.submit_questionnaire("", {"mood": "calm"})
    with pytest.raises(ValidationError):
        await service.submit_questionnaire("u1", ["mood", "calm"])
    assert store.users == {}


@pytest.mark.asyncio
async def test_get_profile_round_trip(reference_store):
    service = ProfileService(reference_store)
    submitted = await service.submit_questionnaire("u1", {"mood": "calm", "time_available": "short"})

    profile = await service.get_profile("u1")

    assert profile.dominant_emotion == submitted.profile.dominant_emotion == "relaxing"
    assert profile.time_preference == "short"
    assert profile.emotion_weights == pytest.approx(submitted.profile.emotion_weights)


@pytest.mark.asyncio
async def test_get_profile_unknown_user(store):
    service = ProfileService(store)
    await store.upsert_user("no_state")

    assert await service.get_profile("ghost") is None
    assert await service.get_profile("no_state") is None


@pytest.mark.parametrize(
    "answers",
    [
        {"mood": ["calm"]},
        {"mood": None},
        {"mood": 3},
        {1: "calm"},
    ],
)
@pytest.mark.asyncio
async def test_malformed_answers_are_validation_errors(store, answers):
    with pytest.raises(ValidationError) as exc_info:
        await ProfileService(store).submit_questionnaire("u1", answers)

    assert exc_info.value.field == "answers"
    assert store.users == {}
    assert store.emotional_states == {}


@pytest.mark.asyncio
async def test_dealbreakers_exclude_initial_recommendations(reference_store):
    service = ProfileService(reference_store)

    plain = await service.submit_questionnaire("u1", {"experience_type": "relax"})
    avoided = await service.submit_questionnaire("u2", {"experience_type": "relax"}, dealbreakers=["social"])

    assert [r.item_id for r in plain.recommendations][:2] == ["game1", "game4"]
    assert avoided.dealbreakers == ["social"]
    assert avoided.recommendations
    assert all("social" not in r.characteristics for r in avoided.recommendations)
    assert [r.item_id for r in avoided.recommendations] == ["game2", "game30"]


@pytest.mark.parametrize("dealbreakers", ["combat", ["combat", 3], [""]])
@pytest.mark.asyncio
async def test_invalid_dealbreakers(store, dealbreakers):
    with pytest.raises(ValidationError) as exc_info:
        await ProfileService(store).submit_questionnaire("u1", {"mood": "calm"}, dealbreakers=dealbreakers)

    assert exc_info.value.field == "dealbreakers"
    assert store.users == {}

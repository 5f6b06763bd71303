import pytest

from playmood.core.config import settings
from playmood.core.startup_checks import validate_settings
from playmood.models import DurationRange, Emotion


def test_default_settings_pass():
    validate_settings(settings)


@pytest.mark.parametrize("name,value", [
    ("SEED_ADMISSION_PROBABILITY", 1.5),
    ("SEED_SIMILARITY", -0.1),
    ("AUTO_STATE_INTENSITY", 2.0),
    ("RECOMMENDATION_LIMIT", 0),
    ("SIMILARITY_MIN_SHARED_ITEMS", 0),
    ("SIMILARITY_SCALE", 0.0),
    ("DEFAULT_AUTO_EMOTION", "furious"),
    ("RESONANCE_MIN_WEIGHT", -1.0),
])
def test_inconsistent_policy_is_rejected(monkeypatch, name, value):
    monkeypatch.setattr(settings, name, value)

    with pytest.raises(RuntimeError):
        validate_settings(settings)


def test_settings_defaults():
    assert settings.RECOMMENDATION_LIMIT == 5
    assert settings.SIMILARITY_MIN_SHARED_ITEMS == 1
    assert settings.SIMILARITY_SCALE == 0.2
    assert settings.SEED_USER_IDS == ["seed_relaxed", "seed_adventurer", "seed_social"]


def test_emotion_vocabulary_order():
    assert Emotion.values()[:3] == ("relaxing", "challenging", "exploratory")
    assert Emotion.canonical_index("competitive") == 8
    assert Emotion.canonical_index("furious") == len(Emotion.values())
    assert not Emotion.is_known(None)


def test_duration_lookup():
    assert DurationRange.lookup("medium").minutes == (60, 180)
    assert DurationRange.lookup("very_short").minutes == (0, 30)
    assert DurationRange.lookup("forever") is None

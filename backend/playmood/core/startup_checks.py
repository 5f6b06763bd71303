from playmood.models.emotion import Emotion


def validate_settings(settings) -> None:
    for name in ("SEED_ADMISSION_PROBABILITY", "SEED_SIMILARITY", "AUTO_STATE_INTENSITY"):
        value = getattr(settings, name)
        if not 0.0 <= value <= 1.0:
            raise RuntimeError(f"{name} must be within [0, 1], got {value}")

    for name in ("RECOMMENDATION_LIMIT", "SIMILARITY_MIN_SHARED_ITEMS", "SHARED_ITEMS_SAMPLE_SIZE"):
        value = getattr(settings, name)
        if value <= 0:
            raise RuntimeError(f"{name} must be positive, got {value}")

    for name in ("SIMILARITY_SCALE", "SOCIAL_SCORE_SCALE"):
        value = getattr(settings, name)
        if value <= 0:
            raise RuntimeError(f"{name} must be positive, got {value}")

    if not Emotion.is_known(getattr(settings, "DEFAULT_AUTO_EMOTION", None)):
        raise RuntimeError("DEFAULT_AUTO_EMOTION must be one of: " + ", ".join(Emotion.values()))

    if getattr(settings, "RESONANCE_MIN_WEIGHT", 0.0) < 0:
        raise RuntimeError("RESONANCE_MIN_WEIGHT must not be negative")

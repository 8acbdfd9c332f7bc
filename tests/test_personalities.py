import pytest

from core.personalities import (
    DEFAULT_PERSONALITY,
    PERSONALITIES,
    PersonalityId,
    UnknownPersonalityError,
    get_personality,
)


def test_four_fixed_profiles():
    assert set(PERSONALITIES) == {PersonalityId.CALM, PersonalityId.ANGRY, PersonalityId.COOL, PersonalityId.LAZY}
    assert DEFAULT_PERSONALITY == PersonalityId.CALM


@pytest.mark.parametrize("personality, name, voice_id", [
    ("calm", "Winie", "EXAVITQu4vr4xnSDxMaL"),
    ("angry", "Machinegun", "OoML9dLqnpgIRHTDbYtV"),
    ("cool", "Blabla Teacher", "cOaTizLZVRcqrsAePZzS"),
    ("lazy", "Sad Fish", "NIKgtLkviZtZa2AazMVa"),
])
def test_get_personality(personality, name, voice_id):
    profile = get_personality(personality)
    assert profile.display_name == name
    assert profile.voice_id == voice_id
    assert name in profile.system_prompt


def test_lazy_voice_disables_speaker_boost():
    assert get_personality(PersonalityId.LAZY).voice_settings.use_speaker_boost is False
    assert get_personality(PersonalityId.ANGRY).voice_settings.style == 0.9


def test_unknown_personality():
    with pytest.raises(UnknownPersonalityError):
        get_personality("grumpy")


def test_table_is_read_only():
    with pytest.raises(TypeError):
        PERSONALITIES[PersonalityId.CALM] = PERSONALITIES[PersonalityId.LAZY]
    with pytest.raises(Exception):
        PERSONALITIES[PersonalityId.CALM].voice_id = "other"

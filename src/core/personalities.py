"""
Doodle Mentor パーソナリティ定義

講師キャラクターのシステムプロンプトと音声パラメータ（起動時に固定）
"""

from enum import Enum
from types import MappingProxyType
from typing import Mapping, Union

from pydantic import BaseModel, ConfigDict


class PersonalityId(str, Enum):
    """パーソナリティID"""

    CALM = "calm"
    ANGRY = "angry"
    COOL = "cool"
    LAZY = "lazy"


class UnknownPersonalityError(KeyError):
    """未定義のパーソナリティ"""

    pass


class VoiceSettings(BaseModel):
    """ElevenLabs音声合成パラメータ"""

    model_config = ConfigDict(frozen=True)

    stability: float
    similarity_boost: float
    style: float
    use_speaker_boost: bool = True


class PersonalityProfile(BaseModel):
    """パーソナリティ設定"""

    model_config = ConfigDict(frozen=True)

    id: PersonalityId
    display_name: str
    system_prompt: str
    voice_id: str
    voice_settings: VoiceSettings


_PROFILES = (
    PersonalityProfile(
        id=PersonalityId.CALM,
        display_name="Winie",
        system_prompt=(
            "You are Winie, a direct and supportive tutor. Give specific, actionable advice immediately. "
            "Skip explanations, get straight to the solution. Ask one clear follow-up question to check understanding."
        ),
        voice_id="EXAVITQu4vr4xnSDxMaL",  # Bella
        voice_settings=VoiceSettings(stability=0.65, similarity_boost=0.85, style=0.4, use_speaker_boost=True),
    ),
    PersonalityProfile(
        id=PersonalityId.ANGRY,
        display_name="Machinegun",
        system_prompt=(
            "You are Machinegun, an intense drill instructor. Give rapid-fire commands with zero fluff. "
            "Be brutally direct, demand immediate action. Use caps for emphasis when needed."
        ),
        voice_id="OoML9dLqnpgIRHTDbYtV",
        voice_settings=VoiceSettings(stability=0.5, similarity_boost=0.9, style=0.9, use_speaker_boost=True),
    ),
    PersonalityProfile(
        id=PersonalityId.COOL,
        display_name="Blabla Teacher",
        system_prompt=(
            "You are Blabla Teacher, a fact-focused educator. Lead with interesting facts, then give direct instructions. "
            "Be enthusiastic but concise. Focus on delivering knowledge, not small talk."
        ),
        voice_id="cOaTizLZVRcqrsAePZzS",
        voice_settings=VoiceSettings(stability=0.6, similarity_boost=0.85, style=0.7, use_speaker_boost=True),
    ),
    PersonalityProfile(
        id=PersonalityId.LAZY,
        display_name="Sad Fish",
        system_prompt=(
            "You are Sad Fish, a melancholic but insightful tutor. Start with a sigh, then give direct observations "
            "and suggestions. Be contemplative but get to the point quickly."
        ),
        voice_id="NIKgtLkviZtZa2AazMVa",
        voice_settings=VoiceSettings(stability=0.8, similarity_boost=0.75, style=0.4, use_speaker_boost=False),
    ),
)

# 読み取り専用テーブル
PERSONALITIES: Mapping[PersonalityId, PersonalityProfile] = MappingProxyType(
    {profile.id: profile for profile in _PROFILES}
)

DEFAULT_PERSONALITY = PersonalityId.CALM


def get_personality(personality: Union[PersonalityId, str]) -> PersonalityProfile:
    """パーソナリティ設定を取得

    Args:
        personality: パーソナリティIDまたはその文字列

    Returns:
        PersonalityProfile: パーソナリティ設定

    Raises:
        UnknownPersonalityError: 未定義のIDの場合
    """
    try:
        return PERSONALITIES[PersonalityId(personality)]
    except (ValueError, KeyError):
        raise UnknownPersonalityError(f"未定義のパーソナリティです: {personality}")

"""
音声合成クライアント

ElevenLabs Text-to-Speech をパーソナリティの音声設定で呼び出す
"""

import logging
from typing import Optional, Union

import httpx

from .personalities import PersonalityId, get_personality

logger = logging.getLogger(__name__)


class SynthesisError(Exception):
    """音声合成失敗"""

    pass


class ElevenLabsClient:
    """ElevenLabs APIクライアント（MPEG音声を返す）"""

    def __init__(self, api_key: str, base_url: str = "https://api.elevenlabs.io/v1",
                 model_id: str = "eleven_multilingual_v2", timeout_seconds: float = 30.0,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.model_id = model_id
        self._client = httpx.AsyncClient(timeout=timeout_seconds, transport=transport)

    @classmethod
    def from_app_config(cls, speech_config) -> "ElevenLabsClient":
        return cls(
            api_key=speech_config.api_key,
            base_url=speech_config.base_url,
            model_id=speech_config.model_id,
            timeout_seconds=speech_config.timeout_seconds,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def synthesize(self, text: str, personality: Union[PersonalityId, str] = PersonalityId.CALM) -> bytes:
        """
        テキストを音声に変換

        Args:
            text: 読み上げるテキスト
            personality: パーソナリティID（音声IDと音声設定を決める）

        Returns:
            bytes: MPEG音声データ

        Raises:
            SynthesisError: API呼び出しに失敗した場合
        """
        profile = get_personality(personality)
        url = f"{self.base_url}/text-to-speech/{profile.voice_id}"

        try:
            response = await self._client.post(
                url,
                json={
                    "text": text,
                    "model_id": self.model_id,
                    "voice_settings": profile.voice_settings.model_dump(),
                },
                headers={
                    "Accept": "audio/mpeg",
                    "Content-Type": "application/json",
                    "xi-api-key": self.api_key,
                },
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(f"ElevenLabs APIエラー: status={e.response.status_code}, body={e.response.text[:200]}")
            raise SynthesisError("Failed to generate speech") from e
        except httpx.HTTPError as e:
            logger.error(f"ElevenLabs通信エラー: {e}")
            raise SynthesisError("Failed to generate speech") from e

        logger.info(f"音声合成完了: personality={profile.id.value}, bytes={len(response.content)}")
        return response.content

    async def aclose(self):
        await self._client.aclose()

"""
Doodle Mentor チャットAPI

テキスト生成と音声合成をそのまま中継する軽量実装
"""

import base64
import logging
from datetime import datetime

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse, Response

from api.health import get_core_app
from core.litellm_wrapper import GenerationError
from core.speech_client import SynthesisError
from models.api_models import ChatRequest, ChatResponse, ErrorResponse, VoiceRequest

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["chat"])


@router.post("/chat", response_model=ChatResponse)
async def chat(request: ChatRequest, app=Depends(get_core_app)):
    """
    チャットエンドポイント

    includeVoice=true の場合は音声も生成する。
    音声合成に失敗してもテキスト応答は返す（voiceErrorを付与）。
    """
    messages = [message.model_dump() for message in request.messages]
    logger.info(f"チャット開始: personality={request.personality.value}, messages={len(messages)}")

    try:
        text_response = await app.text_client.generate(messages, request.personality)
    except GenerationError as e:
        logger.error(f"チャット処理エラー: {e}")
        error_response = ErrorResponse(
            error="chat_failed",
            message="Failed to process chat request",
            details={"error": str(e)}
        )
        return JSONResponse(status_code=500, content=error_response.model_dump())

    response = ChatResponse(
        message=text_response,
        personality=request.personality,
        timestamp=datetime.now().isoformat(),
    )

    if request.includeVoice:
        try:
            audio = await app.speech_client.synthesize(text_response, request.personality)
            response.audio = base64.b64encode(audio).decode("ascii")
            response.audioFormat = "mp3"
        except SynthesisError as e:
            logger.warning(f"音声生成に失敗しました（テキストのみ返却）: {e}")
            response.voiceError = "Voice generation unavailable"

    return response


@router.post("/voice")
async def voice(request: VoiceRequest, app=Depends(get_core_app)):
    """
    音声のみ生成

    Returns:
        audio/mpeg のバイナリ（失敗時はErrorResponse、クライアントはローカルTTSへフォールバック）
    """
    try:
        audio = await app.speech_client.synthesize(request.text, request.personality)
    except SynthesisError as e:
        logger.error(f"音声生成エラー: {e}")
        error_response = ErrorResponse(
            error="voice_failed",
            message="Failed to generate voice",
            details={"error": str(e)}
        )
        return JSONResponse(status_code=500, content=error_response.model_dump())

    return Response(content=audio, media_type="audio/mpeg")

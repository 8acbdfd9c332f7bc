"""
Doodle Mentor ヘルスチェックAPI

システム状態の監視とヘルスチェック
"""

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from models.api_models import HealthCheckResponse, ErrorResponse

logger = logging.getLogger(__name__)
router = APIRouter(tags=["health"])


def get_core_app(request: Request):
    """CoreAppの依存性注入（FastAPIのstate経由）"""
    return getattr(request.app.state, "core_app", None)


@router.get("/health")
async def health():
    """死活確認（フロントエンドのプローブ用）"""
    return {"status": "OK", "message": "Doodle Mentor AI Backend is running"}


@router.get("/api/health", response_model=HealthCheckResponse)
async def health_check(app=Depends(get_core_app)):
    """
    システムヘルスチェック

    Returns:
        HealthCheckResponse: システム状態情報
    """
    try:
        config = app.config
        from api.websocket_commentary import get_commentary_manager

        return HealthCheckResponse(
            status="healthy",
            text_model=config.text_generation.model,
            ocr_model=config.ocr.model,
            providers={
                "text_generation": bool(config.text_generation.api_key),
                "speech": bool(config.speech.api_key),
                "ocr": bool(config.ocr.api_key),
            },
            active_sessions=get_commentary_manager().active_session_count,
        )

    except Exception as e:
        logger.error(f"ヘルスチェックエラー: {e}")
        error_response = ErrorResponse(
            error="health_check_failed",
            message="ヘルスチェックに失敗しました",
            details={"error": str(e)}
        )
        return JSONResponse(status_code=500, content=error_response.model_dump())

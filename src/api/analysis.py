"""
Doodle Mentor OCR・キャンバス分析API

画像アップロードのOCRと、キャンバス内容に対する講師コメント生成
"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.responses import JSONResponse

from api.health import get_core_app
from core.litellm_wrapper import GenerationError
from core.ocr_client import OCRError
from core.personalities import PersonalityId
from core.prompt_builder import build_canvas_analysis_prompt
from models.api_models import CanvasAnalysisResponse, ErrorResponse, OCRResponse
from utils.image_processor import sniff_mime_type

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["analysis"])


def _error(status_code: int, error: str, message: str, details: Optional[dict] = None) -> JSONResponse:
    error_response = ErrorResponse(error=error, message=message, details=details)
    return JSONResponse(status_code=status_code, content=error_response.model_dump())


async def _read_upload(upload: UploadFile, max_bytes: int):
    """アップロードを読み込む（上限超過ならNone）"""
    data = await upload.read(max_bytes + 1)
    if len(data) > max_bytes:
        return None
    return data


@router.post("/ocr", response_model=OCRResponse)
async def ocr(image: Optional[UploadFile] = File(None), app=Depends(get_core_app)):
    """
    アップロード画像のOCR

    Body: multipart/form-data の image フィールド
    """
    if image is None:
        return _error(400, "bad_request", "Image file is required")

    image_bytes = await _read_upload(image, app.config.max_upload_bytes)
    if image_bytes is None:
        return _error(413, "payload_too_large", "Image file is too large",
                      {"max_bytes": app.config.max_upload_bytes})
    if not image_bytes:
        return _error(400, "bad_request", "Image file is empty")

    mime_type = image.content_type or sniff_mime_type(image_bytes, default="image/jpeg")
    logger.info(f"OCRリクエスト受信: type={mime_type}, size={len(image_bytes)}bytes")

    try:
        result = await app.ocr_client.extract_text(image_bytes, mime_type)
    except OCRError as e:
        logger.error(f"OCR処理エラー: {e}")
        return _error(500, "ocr_failed", "Failed to process OCR request", {"error": str(e)})

    return OCRResponse(
        extractedText=result.text,
        confidence=result.confidence,
        timestamp=datetime.now().isoformat(),
    )


@router.post("/analyze-canvas", response_model=CanvasAnalysisResponse)
async def analyze_canvas(
    canvas: Optional[UploadFile] = File(None),
    personality: str = Form(PersonalityId.CALM.value),
    description: Optional[str] = Form(None),
    extractedText: Optional[str] = Form(None),
    analysisType: Optional[str] = Form(None),
    triggerReason: Optional[str] = Form(None),
    app=Depends(get_core_app),
):
    """
    キャンバス分析

    canvas画像・説明文・抽出テキストのいずれかが必須。
    画像のみの場合はOCRしてからプロンプトを構築する。
    """
    try:
        personality_id = PersonalityId(personality)
    except ValueError:
        return _error(400, "bad_request", f"Unknown personality: {personality}")

    if canvas is None and not description and not extractedText:
        return _error(400, "bad_request", "Canvas image, description, or extracted text is required")

    image_bytes = None
    if canvas is not None:
        image_bytes = await _read_upload(canvas, app.config.max_upload_bytes)
        if image_bytes is None:
            return _error(413, "payload_too_large", "Canvas image is too large",
                          {"max_bytes": app.config.max_upload_bytes})

    # 画像のみの場合はOCRで抽出テキストを補う
    if image_bytes and not extractedText and not description:
        mime_type = canvas.content_type or sniff_mime_type(image_bytes)
        try:
            extractedText = (await app.ocr_client.extract_text(image_bytes, mime_type)).text
        except OCRError as e:
            # 抽出できなくても汎用プロンプトで続行
            logger.warning(f"キャンバス画像のOCRに失敗しました: {e}")

    prompt = build_canvas_analysis_prompt(
        extracted_text=extractedText,
        analysis_type=analysisType,
        description=description,
        trigger_reason=triggerReason,
    )
    logger.info(f"キャンバス分析開始: personality={personality_id.value}, trigger={triggerReason}")

    try:
        analysis = await app.text_client.generate([{"role": "user", "content": prompt}], personality_id)
    except GenerationError as e:
        logger.error(f"キャンバス分析エラー: {e}")
        return _error(500, "analysis_failed", "Failed to analyze canvas", {"error": str(e)})

    return CanvasAnalysisResponse(
        analysis=analysis,
        personality=personality_id,
        timestamp=datetime.now().isoformat(),
        extractedText=extractedText or "",
        analysisType=analysisType or "general",
    )

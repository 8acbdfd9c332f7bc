"""
OCR（Vision）クライアント

手書きのキャンバス画像から文字・数式を抽出する
"""

import logging
import re
from typing import NamedTuple

from utils.image_processor import build_vision_content

from .litellm_wrapper import log_provider_error, setup_provider_api_key

logger = logging.getLogger(__name__)

OCR_INSTRUCTION = (
    "You are helping a student in a competition. Extract ALL text, numbers, equations, and mathematical "
    "expressions from this image. Read everything including handwritten text, math problems, calculations, "
    "formulas, diagrams with labels, and any written work. Be extremely thorough - scan the entire image. "
    "Return exactly what you see written, including partial work and rough calculations. "
    "This is critical for real-time tutoring."
)


class OCRError(Exception):
    """OCR処理失敗"""

    pass


class OCRResult(NamedTuple):
    text: str
    confidence: float


def calculate_confidence(text: str) -> float:
    """抽出結果の文字列特性から信頼度を推定（0〜1）"""
    if not text:
        return 0.0
    if len(text) < 3:
        return 0.3
    if "I cannot" in text or "unable to" in text:
        return 0.1
    if "unclear" in text or "blurry" in text:
        return 0.4

    # 構造化された内容ほど高く
    confidence = 0.7
    if re.search(r"\d+", text, re.ASCII):
        confidence += 0.1
    if re.search(r"[+\-*/=]", text):
        confidence += 0.1
    if re.search(r"[A-Za-z]{3,}", text):
        confidence += 0.1

    return min(confidence, 0.95)


class VisionOCRClient:
    """LiteLLM経由のVisionモデルでOCRを行うクライアント"""

    def __init__(self, model: str, api_key: str = "", max_tokens: int = 1500):
        import litellm

        self.litellm = litellm
        self.model = model
        self.max_tokens = max_tokens
        self.provider = model.split("/")[0] if "/" in model else "openai"
        setup_provider_api_key(self.provider, api_key)
        logger.info(f"🖼️ OCR設定: model={model}")

    @classmethod
    def from_app_config(cls, ocr_config) -> "VisionOCRClient":
        return cls(model=ocr_config.model, api_key=ocr_config.api_key, max_tokens=ocr_config.max_tokens)

    async def extract_text(self, image_bytes: bytes, mime_type: str = "image/jpeg") -> OCRResult:
        """画像から文字を抽出

        Args:
            image_bytes: 画像バイト列
            mime_type: 画像のMIMEタイプ

        Returns:
            OCRResult: 抽出テキストと信頼度

        Raises:
            OCRError: Vision API呼び出しに失敗した場合
        """
        logger.info(f"OCRリクエスト: type={mime_type}, size={len(image_bytes)}bytes")
        try:
            response = await self.litellm.acompletion(
                model=self.model,
                messages=[
                    {"role": "user", "content": build_vision_content(OCR_INSTRUCTION, image_bytes, mime_type)},
                ],
                temperature=0.0,
                max_tokens=self.max_tokens,
            )
            extracted_text = (response.choices[0].message.content or "").strip()
        except Exception as e:
            log_provider_error(e, {"operation": "extract_text", "provider": self.provider, "model": self.model,
                                   "error_type": type(e).__name__, "error_message": str(e)})
            raise OCRError("Failed to extract text from image") from e

        confidence = calculate_confidence(extracted_text)
        logger.info(f"OCR結果: confidence={confidence}, text={extracted_text[:50]}")
        return OCRResult(text=extracted_text, confidence=confidence)

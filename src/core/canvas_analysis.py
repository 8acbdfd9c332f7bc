"""
キャンバス分析サービス

変化検出 → 分析キュー → OCR → 分類 → ライブコメント配信
"""

import logging
from typing import Optional, Protocol, Union

from models.analysis_models import AnalysisResult, CanvasSnapshot
from utils.image_processor import decode_image_payload

from .analysis_queue import AnalysisQueue
from .change_detector import has_significant_change
from .commentary_dispatcher import CommentaryDispatcher, CommentaryObserver
from .config_manager import AnalysisSettings
from .content_classifier import AnalysisType, determine_analysis_type
from .ocr_client import OCRResult
from .personalities import PersonalityId

logger = logging.getLogger(__name__)

SnapshotData = Union[CanvasSnapshot, str, bytes]


class OCRProvider(Protocol):
    async def extract_text(self, image_bytes: bytes, mime_type: str = ...) -> OCRResult:
        ...


class CanvasAnalysisService:
    """
    ブラウザセッション単位のキャンバス分析

    last_analysis / last_image_data はキューのタスク内でのみ更新する。
    """

    def __init__(self, ocr_client: OCRProvider, dispatcher: CommentaryDispatcher,
                 queue: Optional[AnalysisQueue] = None, settings: Optional[AnalysisSettings] = None):
        self.ocr_client = ocr_client
        self.dispatcher = dispatcher
        self.settings = settings or AnalysisSettings()
        self.queue = queue or AnalysisQueue(max_pending=self.settings.max_pending_tasks)
        self._last_analysis: Optional[AnalysisResult] = None
        self._last_image_data: Optional[Union[str, bytes]] = None

    @property
    def last_analysis(self) -> Optional[AnalysisResult]:
        return self._last_analysis

    @property
    def last_image_data(self) -> Optional[Union[str, bytes]]:
        return self._last_image_data

    def set_personality(self, personality: Union[PersonalityId, str]):
        self.dispatcher.set_personality(personality)

    def set_commentary_callback(self, callback: Optional[CommentaryObserver]):
        self.dispatcher.set_observer(callback)

    def has_significant_image_change(self, image_data: Union[str, bytes]) -> bool:
        return has_significant_change(
            image_data,
            self._last_image_data,
            size_threshold=self.settings.size_change_threshold,
            sample_points=self.settings.sample_points,
            sample_length=self.settings.sample_length,
        )

    def analyze_canvas(self, snapshot: SnapshotData) -> Optional[AnalysisResult]:
        """キャンバスを分析（非ブロッキング）

        有意な変化がなければキャッシュ済みの結果をそのまま返す。
        変化があれば分析タスクをキューに積み、直前のキャッシュを返す。
        新しい結果はオブザーバー経由で非同期に届く。

        Args:
            snapshot: キャンバスのスナップショット

        Returns:
            Optional[AnalysisResult]: 直前の分析結果（まだなければNone）
        """
        image_data = snapshot.data if isinstance(snapshot, CanvasSnapshot) else snapshot

        if not self.has_significant_image_change(image_data):
            return self._last_analysis

        async def analysis_task():
            ocr_result = await self.perform_ocr(image_data)

            analysis = AnalysisResult(
                extracted_text=ocr_result.text,
                confidence=ocr_result.confidence,
                analysis_type=determine_analysis_type(
                    ocr_result.text, len(image_data), self.settings.mixed_size_threshold
                ),
            )

            self._last_analysis = analysis
            self._last_image_data = image_data

            if len(analysis.extracted_text) > 1 or analysis.analysis_type == AnalysisType.DRAWING:
                await self.dispatcher.dispatch(analysis)

        self.queue.enqueue(analysis_task)
        return self._last_analysis

    async def analyze_uploaded_image(self, image_bytes: bytes, mime_type: str = "image/png") -> AnalysisResult:
        """アップロード画像を分析（変化検出・キューなし、キャッシュも更新しない）"""
        ocr_result = await self._extract(image_bytes, mime_type)

        analysis = AnalysisResult(
            extracted_text=ocr_result.text,
            confidence=ocr_result.confidence,
            analysis_type=determine_analysis_type(ocr_result.text, 0, self.settings.mixed_size_threshold),
        )

        if len(analysis.extracted_text) > 5:
            await self.dispatcher.dispatch(analysis)

        return analysis

    async def perform_ocr(self, image_data: Union[str, bytes]) -> OCRResult:
        """スナップショットのOCR（失敗時は空テキスト・信頼度0）"""
        try:
            image_bytes, mime_type = decode_image_payload(image_data)
        except ValueError as e:
            logger.error(f"スナップショットの解析に失敗しました: {e}")
            return OCRResult(text="", confidence=0.0)
        return await self._extract(image_bytes, mime_type)

    async def _extract(self, image_bytes: bytes, mime_type: str) -> OCRResult:
        try:
            return await self.ocr_client.extract_text(image_bytes, mime_type)
        except Exception as e:
            logger.error(f"OCR処理に失敗しました: {e}")
            return OCRResult(text="", confidence=0.0)

    async def close(self):
        """セッション終了処理"""
        self.dispatcher.set_observer(None)
        await self.queue.close()

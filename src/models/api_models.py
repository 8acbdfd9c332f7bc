"""
Doodle Mentor API データモデル

FastAPI用のリクエスト/レスポンスモデル定義
"""

from typing import Dict, List, Optional, Literal
from pydantic import BaseModel, Field

from core.personalities import PersonalityId


class ErrorResponse(BaseModel):
    """エラーレスポンス"""
    success: bool = False
    error: str
    message: str
    details: Optional[Dict] = None


class HealthCheckResponse(BaseModel):
    """ヘルスチェックレスポンス"""
    status: str = "healthy"
    version: str = "1.0.0"
    text_model: str = ""
    ocr_model: str = ""
    providers: Dict[str, bool] = Field(default_factory=dict, description="APIキー設定状況")
    active_sessions: int = 0


class PersonalityInfo(BaseModel):
    """パーソナリティ概要"""
    id: PersonalityId
    name: str
    description: str


class PersonalitiesResponse(BaseModel):
    """パーソナリティ一覧レスポンス"""
    personalities: List[PersonalityInfo]


# ===========================================
# チャットAPI用モデル定義
# ===========================================

class ChatMessage(BaseModel):
    """会話メッセージ"""
    role: Literal["user", "assistant"] = Field(..., description="メッセージの役割")
    content: str = Field(..., description="メッセージ内容")


class ChatRequest(BaseModel):
    """チャットAPIリクエスト"""
    messages: List[ChatMessage] = Field(..., description="会話履歴（古い順）")
    personality: PersonalityId = Field(default=PersonalityId.CALM, description="パーソナリティ")
    includeVoice: bool = Field(default=False, description="音声データを含めるか")


class ChatResponse(BaseModel):
    """チャットAPIレスポンス"""
    message: str
    personality: PersonalityId
    timestamp: str
    audio: Optional[str] = Field(default=None, description="Base64エンコードされたMP3")
    audioFormat: Optional[str] = None
    voiceError: Optional[str] = None


class VoiceRequest(BaseModel):
    """音声合成リクエスト"""
    text: str = Field(..., min_length=1, description="読み上げるテキスト")
    personality: PersonalityId = Field(default=PersonalityId.CALM, description="パーソナリティ")


# ===========================================
# OCR・キャンバス分析API用モデル定義
# ===========================================

class OCRResponse(BaseModel):
    """OCRレスポンス"""
    extractedText: str
    confidence: float
    timestamp: str


class CanvasAnalysisResponse(BaseModel):
    """キャンバス分析レスポンス"""
    analysis: str
    personality: PersonalityId
    timestamp: str
    extractedText: str = ""
    analysisType: str = "general"


# ===========================================
# ライブコメントWebSocket用モデル定義
# ===========================================

class CommentaryClientMessage(BaseModel):
    """ライブコメントWebSocketの受信メッセージ"""
    action: Literal["analyze", "upload", "set_personality"]
    image: Optional[str] = Field(default=None, description="data URL形式の画像")
    personality: Optional[PersonalityId] = None

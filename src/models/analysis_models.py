"""
Doodle Mentor キャンバス分析データモデル

スナップショット・分析結果・ライブコメント
"""

from datetime import datetime
from typing import Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from core.content_classifier import AnalysisType, CommentaryType, TriggerReason


class CanvasSnapshot(BaseModel):
    """キャンバスのスナップショット（エンコード済み画像）"""

    data: Union[str, bytes] = Field(..., description="data URL文字列または画像バイト列")
    captured_at: datetime = Field(default_factory=datetime.now, description="取得時刻")

    def __len__(self) -> int:
        return len(self.data)


class AnalysisResult(BaseModel):
    """キャンバス分析結果"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    extracted_text: str = ""
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    timestamp: datetime = Field(default_factory=datetime.now)
    analysis_type: AnalysisType = AnalysisType.DRAWING


class Commentary(BaseModel):
    """ライブコメント（生成後は変更不可）"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    message: str
    type: CommentaryType
    timestamp: datetime = Field(default_factory=datetime.now)
    trigger_reason: TriggerReason

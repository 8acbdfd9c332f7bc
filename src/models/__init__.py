"""Doodle Mentor Data Models"""

from .api_models import (
    HealthCheckResponse,
    ErrorResponse,
    PersonalityInfo,
    PersonalitiesResponse,
    ChatMessage,
    ChatRequest,
    ChatResponse,
    VoiceRequest,
    OCRResponse,
    CanvasAnalysisResponse,
    CommentaryClientMessage,
)
from .analysis_models import (
    CanvasSnapshot,
    AnalysisResult,
    Commentary,
)

__all__ = [
    "HealthCheckResponse",
    "ErrorResponse",
    "PersonalityInfo",
    "PersonalitiesResponse",
    "ChatMessage",
    "ChatRequest",
    "ChatResponse",
    "VoiceRequest",
    "OCRResponse",
    "CanvasAnalysisResponse",
    "CommentaryClientMessage",
    "CanvasSnapshot",
    "AnalysisResult",
    "Commentary",
]

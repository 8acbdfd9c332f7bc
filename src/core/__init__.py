"""Doodle Mentor Core Components"""

from .personalities import (
    PersonalityId,
    PersonalityProfile,
    VoiceSettings,
    PERSONALITIES,
    UnknownPersonalityError,
    get_personality,
)
from .content_classifier import (
    AnalysisType,
    TriggerReason,
    CommentaryType,
    Classification,
    classify_content,
    determine_analysis_type,
)
from .config_manager import (
    AppConfig,
    AnalysisSettings,
    LoggingConfig,
    ConfigurationError,
    find_config_file,
)
from .change_detector import has_significant_change
from .prompt_builder import build_commentary_prompt, build_canvas_analysis_prompt
from .analysis_queue import AnalysisQueue, QueueState
from .litellm_wrapper import LiteLLMWrapper, LiteLLMConfig, GenerationError
from .ocr_client import VisionOCRClient, OCRResult, OCRError
from .speech_client import ElevenLabsClient, SynthesisError
from .commentary_dispatcher import CommentaryDispatcher
from .canvas_analysis import CanvasAnalysisService

__all__ = [
    "PersonalityId",
    "PersonalityProfile",
    "VoiceSettings",
    "PERSONALITIES",
    "UnknownPersonalityError",
    "get_personality",
    "AnalysisType",
    "TriggerReason",
    "CommentaryType",
    "Classification",
    "classify_content",
    "determine_analysis_type",
    "AppConfig",
    "AnalysisSettings",
    "LoggingConfig",
    "ConfigurationError",
    "find_config_file",
    "has_significant_change",
    "build_commentary_prompt",
    "build_canvas_analysis_prompt",
    "AnalysisQueue",
    "QueueState",
    "LiteLLMWrapper",
    "LiteLLMConfig",
    "GenerationError",
    "VisionOCRClient",
    "OCRResult",
    "OCRError",
    "ElevenLabsClient",
    "SynthesisError",
    "CommentaryDispatcher",
    "CanvasAnalysisService",
]

"""
抽出テキストの分類

正規表現ヒューリスティックでコメントのトリガー理由と種別を決める
"""

import re
from enum import Enum
from typing import NamedTuple, Sequence


class AnalysisType(str, Enum):
    """スナップショットの内容種別"""

    TEXT = "text"
    DRAWING = "drawing"
    MIXED = "mixed"


class TriggerReason(str, Enum):
    """コメント生成のトリガー理由"""

    MATH_CONTENT = "math_content_detected"
    QUESTION = "question_detected"
    LEARNING_CONTENT = "learning_content_detected"
    TEXT_WRITTEN = "text_written"
    DRAWING_ACTIVITY = "drawing_activity"
    CANVAS_ACTIVITY = "canvas_activity"


class CommentaryType(str, Enum):
    """コメント種別"""

    ENCOURAGEMENT = "encouragement"
    SUGGESTION = "suggestion"
    CORRECTION = "correction"
    OBSERVATION = "observation"


class Classification(NamedTuple):
    trigger_reason: TriggerReason
    commentary_type: CommentaryType


def _compile(*patterns: str) -> Sequence["re.Pattern[str]"]:
    return tuple(re.compile(p, re.IGNORECASE | re.ASCII) for p in patterns)


MATH_PATTERNS = _compile(
    r"\d+\s*[+\-*/=]\s*\d+",  # 2+3, 5*4
    r"\d+\s*[+\-*/]\s*\d+\s*[+\-*/]\s*\d+",  # 2+3*4
    r"\b(solve|equation|calculate|sum|product|divide|multiply|add|subtract)\b",
    r"\b[a-z]\s*[+\-*/=]\s*\d+",  # x = 5, y + 3
    r"\b\d+[a-z]\b",  # 3x, 5y
    r"\b(fraction|decimal|percentage|percent|ratio|proportion)\b",
    r"\b(geometry|triangle|circle|square|rectangle|area|perimeter|volume)\b",
    r"\b(sin|cos|tan|log|ln)\b",
    r"\d+/\d+",  # 1/2, 3/4
    r"\b(theorem|proof|formula|derivative|integral)\b",
    r"\b\d+\s*degrees?\b",
    r"\b(slope|intercept|linear|quadratic|polynomial)\b",
    r"\^\d+",  # x^2
    r"√\d+",
    r"\b(prime|factor|GCD|LCM)\b",
)

MATH_ERROR_PATTERNS = _compile(
    r"\d+\s*[+\-*/]\s*\d+\s*=\s*[^\d\s]",  # 結果が数値でない
    r"0\s*/\s*\d+\s*=\s*\d+",  # 0の割り算の誤解
    r"\d+\s*\*\s*0\s*=\s*[^0]",  # 0の掛け算の誤り
    r"\d+\s*\+\s*\d+\s*=\s*\d+\s*\*\s*\d+",  # 演算子の取り違え
    r"\b(infinite|undefined|impossible)\b",
)

QUESTION_PATTERNS = _compile(
    r"\b(what|how|why|when|where|which|who)\b",
    r"\?",
    r"\b(help|stuck|confused|don't understand)\b",
)

LEARNING_PATTERNS = _compile(
    r"\b(definition|theorem|rule|formula|principle)\b",
    r"\b(because|therefore|thus|hence|so)\b",
    r"\b(step|method|process|procedure|algorithm)\b",
    r"\b(example|instance|case|scenario)\b",
    r"\b(property|characteristic|feature|attribute)\b",
    r"\b(concept|idea|theory|hypothesis)\b",
    r"\b(remember|recall|know|understand|learn)\b",
)


def _matches_any(patterns: Sequence["re.Pattern[str]"], text: str) -> bool:
    return any(pattern.search(text) for pattern in patterns)


def detect_math_content(text: str) -> bool:
    return _matches_any(MATH_PATTERNS, text)


def detect_potential_math_error(text: str) -> bool:
    return _matches_any(MATH_ERROR_PATTERNS, text)


def detect_question_words(text: str) -> bool:
    return _matches_any(QUESTION_PATTERNS, text)


def detect_learning_keywords(text: str) -> bool:
    return _matches_any(LEARNING_PATTERNS, text)


def classify_content(text: str, analysis_type: AnalysisType) -> Classification:
    """抽出テキストからトリガー理由とコメント種別を決める

    判定は優先順で最初に一致したものを採用する。

    Args:
        text: OCRで抽出したテキスト
        analysis_type: スナップショットの内容種別

    Returns:
        Classification: トリガー理由とコメント種別
    """
    if len(text) > 1:
        if detect_math_content(text):
            if detect_potential_math_error(text):
                return Classification(TriggerReason.MATH_CONTENT, CommentaryType.CORRECTION)
            return Classification(TriggerReason.MATH_CONTENT, CommentaryType.SUGGESTION)
        if detect_question_words(text):
            return Classification(TriggerReason.QUESTION, CommentaryType.SUGGESTION)
        if detect_learning_keywords(text):
            return Classification(TriggerReason.LEARNING_CONTENT, CommentaryType.SUGGESTION)
        return Classification(TriggerReason.TEXT_WRITTEN, CommentaryType.OBSERVATION)

    if analysis_type == AnalysisType.DRAWING:
        return Classification(TriggerReason.DRAWING_ACTIVITY, CommentaryType.SUGGESTION)

    return Classification(TriggerReason.CANVAS_ACTIVITY, CommentaryType.OBSERVATION)


def determine_analysis_type(extracted_text: str, image_size: int, mixed_size_threshold: int = 50000) -> AnalysisType:
    """抽出テキスト量と画像データ長から内容種別を決める（モデル出力は使わない）"""
    has_text = len(re.sub(r"\s", "", extracted_text)) > 5

    if has_text and image_size > mixed_size_threshold:
        return AnalysisType.MIXED
    if has_text:
        return AnalysisType.TEXT
    return AnalysisType.DRAWING

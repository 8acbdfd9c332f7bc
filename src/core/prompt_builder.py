"""
コメント生成用プロンプト

トリガー理由ごとの固定テンプレート（乱数なし）
"""

from typing import Optional, Union

from .content_classifier import TriggerReason

TUTOR_PREAMBLE = "You are a teacher standing next to a student. "

CLOSING_INSTRUCTION = (
    " Be direct, specific, and pedagogical like a real teacher. Keep it short (1-2 sentences) "
    "and always end with a teaching question that makes them think deeper."
)

_TEMPLATES = {
    TriggerReason.MATH_CONTENT: (
        'The student wrote: "{text}". Act like a real math teacher: Check if this is correct, point out any '
        "errors you see, ask what their next step should be, or guide them to think deeper about the problem. "
        "If it's wrong, tell them specifically what's wrong and ask a question to help them figure out the right approach."
    ),
    TriggerReason.QUESTION: (
        'The student wrote a question: "{text}". Don\'t answer directly. Instead, ask them what they think, '
        "what they've tried so far, or guide them to break down the question into smaller parts they can solve."
    ),
    TriggerReason.LEARNING_CONTENT: (
        'Student wrote learning content: "{text}". Act like a teacher checking understanding: Ask them to explain '
        "what this means in their own words, give an example, or connect it to something they already know. "
        "If it's incomplete or unclear, guide them to think deeper."
    ),
    TriggerReason.TEXT_WRITTEN: (
        'Student wrote: "{text}". Check for understanding by asking what they mean, if they can explain it back, '
        "or what the next logical step would be. Point out if anything seems unclear or incorrect."
    ),
    TriggerReason.DRAWING_ACTIVITY: (
        "The student is drawing/sketching. If it looks like a diagram, graph, or visual problem-solving, ask them "
        "to explain what they're showing, check if it's accurate, or guide them to add missing elements. "
        "Don't just praise - teach!"
    ),
}

_DEFAULT_TEMPLATE = (
    "The student is working. Ask them what they're thinking about, what they're trying to solve, "
    "or guide them to the next step in their learning process."
)


def build_commentary_prompt(extracted_text: str, trigger_reason: Union[TriggerReason, str]) -> str:
    """トリガー理由に応じたライブコメント用プロンプトを構築

    Args:
        extracted_text: OCRで抽出したテキスト（そのまま埋め込む）
        trigger_reason: 分類結果のトリガー理由

    Returns:
        str: テキスト生成APIに渡す指示文
    """
    try:
        template = _TEMPLATES.get(TriggerReason(trigger_reason), _DEFAULT_TEMPLATE)
    except ValueError:
        template = _DEFAULT_TEMPLATE

    # 抽出テキストは波括弧を含みうる
    body = template.replace("{text}", extracted_text)
    return TUTOR_PREAMBLE + body + CLOSING_INSTRUCTION


def build_canvas_analysis_prompt(
    extracted_text: Optional[str] = None,
    analysis_type: Optional[str] = None,
    description: Optional[str] = None,
    trigger_reason: Optional[str] = None,
) -> str:
    """キャンバス分析APIのプロンプトを構築

    優先順: トリガー理由 > 抽出テキスト > 説明文 > 汎用
    """
    if trigger_reason:
        return build_commentary_prompt(extracted_text or "", trigger_reason)

    if extracted_text:
        return (
            f'The student has written/drawn the following content: "{extracted_text}". '
            f"Analysis type: {analysis_type or 'mixed'}. "
            "Please provide helpful feedback or guidance based on what they've created. "
            "If it contains math problems, help them solve it step by step using the Socratic method. "
            "If it's text or notes, provide encouraging feedback and suggestions."
        )

    if description:
        return f"Please analyze this student's work: {description}"

    return "Please analyze the student's canvas work and provide feedback."

from core.content_classifier import TriggerReason
from core.prompt_builder import (
    CLOSING_INSTRUCTION,
    TUTOR_PREAMBLE,
    build_canvas_analysis_prompt,
    build_commentary_prompt,
)


def test_question_prompt_does_not_answer_directly():
    prompt = build_commentary_prompt("Why is the sky blue?", TriggerReason.QUESTION)
    assert prompt.startswith(TUTOR_PREAMBLE)
    assert '"Why is the sky blue?"' in prompt
    assert "Don't answer directly" in prompt
    assert "what they've tried so far" in prompt
    assert prompt.endswith(CLOSING_INSTRUCTION)


def test_prompt_is_deterministic_and_accepts_plain_strings():
    first = build_commentary_prompt("2 + 3 = 5", "math_content_detected")
    second = build_commentary_prompt("2 + 3 = 5", TriggerReason.MATH_CONTENT)
    assert first == second
    assert "real math teacher" in first


def test_text_is_embedded_verbatim():
    text = "f(x) = {x | x > 0}"
    prompt = build_commentary_prompt(text, TriggerReason.TEXT_WRITTEN)
    assert f'"{text}"' in prompt


def test_drawing_prompt_does_not_embed_text():
    prompt = build_commentary_prompt("", TriggerReason.DRAWING_ACTIVITY)
    assert "drawing/sketching" in prompt


def test_unknown_reason_uses_generic_template():
    assert "The student is working." in build_commentary_prompt("", "something_else")
    assert "The student is working." in build_commentary_prompt("", TriggerReason.CANVAS_ACTIVITY)


def test_closing_instruction_limits_length_and_asks_question():
    assert "1-2 sentences" in CLOSING_INSTRUCTION
    assert "question" in CLOSING_INSTRUCTION


def test_canvas_analysis_prompt_priority():
    with_reason = build_canvas_analysis_prompt("x = 2", "text", "a house", "question_detected")
    assert with_reason.startswith(TUTOR_PREAMBLE)

    with_text = build_canvas_analysis_prompt("x = 2", None, "a house")
    assert '"x = 2"' in with_text
    assert "Analysis type: mixed." in with_text
    assert "Socratic" in with_text

    with_description = build_canvas_analysis_prompt(description="a house")
    assert with_description == "Please analyze this student's work: a house"

    assert build_canvas_analysis_prompt() == "Please analyze the student's canvas work and provide feedback."

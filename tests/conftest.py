import base64

import pytest
from fastapi.testclient import TestClient

from core.config_manager import AppConfig
from core.litellm_wrapper import GenerationError
from core.ocr_client import OCRError, OCRResult
from core.speech_client import SynthesisError

PNG_HEADER = b"\x89PNG\r\n\x1a\n"


def make_data_url(seed: str, size: int = 3000) -> str:
    """seedごとに中身の異なるPNG風data URLを作る"""
    body = (seed.encode("utf-8") * (size // max(len(seed), 1) + 1))[:size]
    return "data:image/png;base64," + base64.b64encode(PNG_HEADER + body).decode("ascii")


class FakeTextGenerator:
    def __init__(self, reply="What do you think comes next?", fail=False):
        self.reply = reply
        self.fail = fail
        self.calls = []

    async def generate(self, messages, personality="calm"):
        self.calls.append((messages, personality))
        if self.fail:
            raise GenerationError("Failed to generate AI response")
        return self.reply


class FakeOCR:
    def __init__(self, text="12 + 30 = 42", confidence=0.9, fail=False):
        self.text = text
        self.confidence = confidence
        self.fail = fail
        self.calls = []

    async def extract_text(self, image_bytes, mime_type="image/jpeg"):
        self.calls.append((image_bytes, mime_type))
        if self.fail:
            raise OCRError("Failed to extract text from image")
        return OCRResult(text=self.text, confidence=self.confidence)


class FakeSpeech:
    def __init__(self, audio=b"ID3fake-mpeg", fail=False):
        self.audio = audio
        self.fail = fail
        self.calls = []

    async def synthesize(self, text, personality="calm"):
        self.calls.append((text, personality))
        if self.fail:
            raise SynthesisError("Failed to generate speech")
        return self.audio


@pytest.fixture
def text_generator():
    return FakeTextGenerator()


@pytest.fixture
def ocr():
    return FakeOCR()


@pytest.fixture
def speech():
    return FakeSpeech()


@pytest.fixture
def core_app(text_generator, ocr, speech):
    from main import DoodleMentorApp

    app = DoodleMentorApp(config=AppConfig())
    app.text_client = text_generator
    app.ocr_client = ocr
    app.speech_client = speech
    app.build_app()
    return app


@pytest.fixture
def client(core_app):
    with TestClient(core_app.app) as test_client:
        yield test_client

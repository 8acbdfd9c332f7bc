import asyncio

from conftest import FakeOCR, FakeTextGenerator, make_data_url
from core.canvas_analysis import CanvasAnalysisService
from core.commentary_dispatcher import CommentaryDispatcher
from core.content_classifier import AnalysisType, CommentaryType, TriggerReason
from core.personalities import PersonalityId
from models.analysis_models import AnalysisResult, CanvasSnapshot


def _service(ocr=None, generator=None):
    ocr = ocr or FakeOCR()
    generator = generator or FakeTextGenerator()
    service = CanvasAnalysisService(ocr, CommentaryDispatcher(generator))
    return service, ocr, generator


def test_first_snapshot_is_queued_and_commentary_delivered():
    async def scenario():
        service, ocr, generator = _service()
        received = []
        service.set_commentary_callback(received.append)

        returned = service.analyze_canvas(CanvasSnapshot(data=make_data_url("one")))
        await service.queue.join()
        return service, ocr, generator, returned, received

    service, ocr, generator, returned, received = asyncio.run(scenario())
    assert returned is None
    assert len(ocr.calls) == 1
    assert ocr.calls[0][1] == "image/png"
    assert service.last_analysis.extracted_text == "12 + 30 = 42"
    assert service.last_analysis.analysis_type == AnalysisType.TEXT
    assert len(received) == 1
    assert received[0].trigger_reason == TriggerReason.MATH_CONTENT
    assert received[0].type == CommentaryType.SUGGESTION
    assert received[0].message == generator.reply


def test_unchanged_snapshot_returns_cached_result_without_ocr():
    async def scenario():
        service, ocr, _ = _service()
        snapshot = make_data_url("same")
        service.analyze_canvas(snapshot)
        await service.queue.join()
        calls_after_first = len(ocr.calls)

        first = service.analyze_canvas(snapshot)
        second = service.analyze_canvas(snapshot)
        await service.queue.join()
        return service, ocr, calls_after_first, first, second

    service, ocr, calls_after_first, first, second = asyncio.run(scenario())
    assert calls_after_first == 1
    assert first is second
    assert first is service.last_analysis
    assert len(ocr.calls) == 1


def test_changed_snapshot_returns_previous_result():
    async def scenario():
        service, ocr, _ = _service()
        service.analyze_canvas(make_data_url("first"))
        await service.queue.join()
        previous = service.last_analysis

        returned = service.analyze_canvas(make_data_url("second", size=6000))
        await service.queue.join()
        return previous, returned, service.last_analysis, len(ocr.calls)

    previous, returned, latest, ocr_calls = asyncio.run(scenario())
    assert returned is previous
    assert latest is not previous
    assert ocr_calls == 2


def test_failed_generation_leaves_observer_and_cache_untouched():
    async def scenario():
        service, _, generator = _service(generator=FakeTextGenerator(fail=True))
        received = []
        service.set_commentary_callback(received.append)
        service.analyze_canvas(make_data_url("broken"))
        await service.queue.join()
        cached = service.last_analysis
        snapshot = cached.model_copy()
        return service, generator, received, cached, snapshot

    service, generator, received, cached, snapshot = asyncio.run(scenario())
    assert len(generator.calls) == 1
    assert received == []
    assert service.last_analysis is cached
    assert cached == snapshot
    assert service.queue.failed_count == 0


def test_ocr_failure_becomes_empty_drawing_analysis():
    async def scenario():
        service, _, generator = _service(ocr=FakeOCR(fail=True))
        received = []
        service.set_commentary_callback(received.append)
        service.analyze_canvas(make_data_url("sketch"))
        await service.queue.join()
        return service, received

    service, received = asyncio.run(scenario())
    assert service.last_analysis.extracted_text == ""
    assert service.last_analysis.confidence == 0.0
    assert service.last_analysis.analysis_type == AnalysisType.DRAWING
    assert received[0].trigger_reason == TriggerReason.DRAWING_ACTIVITY


def test_undecodable_snapshot_is_treated_as_empty():
    async def scenario():
        service, ocr, _ = _service()
        service.analyze_canvas("data:image/png;base64,@@not-base64@@")
        await service.queue.join()
        return service, ocr

    service, ocr = asyncio.run(scenario())
    assert ocr.calls == []
    assert service.last_analysis.extracted_text == ""


def test_no_commentary_without_observer():
    async def scenario():
        service, _, generator = _service()
        service.analyze_canvas(make_data_url("quiet"))
        await service.queue.join()
        return generator

    assert asyncio.run(scenario()).calls == []


def test_personality_is_forwarded():
    async def scenario():
        service, _, generator = _service()
        service.set_personality("angry")
        service.set_commentary_callback(lambda commentary: None)
        service.analyze_canvas(make_data_url("loud"))
        await service.queue.join()
        return generator

    generator = asyncio.run(scenario())
    assert generator.calls[0][1] == PersonalityId.ANGRY


def test_uploaded_image_is_analyzed_directly():
    async def scenario():
        service, ocr, _ = _service(ocr=FakeOCR(text="What is a prime number?"))
        received = []
        service.set_commentary_callback(received.append)
        result = await service.analyze_uploaded_image(b"\xff\xd8\xffjpeg", "image/jpeg")
        return service, ocr, result, received

    service, ocr, result, received = asyncio.run(scenario())
    assert isinstance(result, AnalysisResult)
    assert result.analysis_type == AnalysisType.TEXT
    assert ocr.calls == [(b"\xff\xd8\xffjpeg", "image/jpeg")]
    assert received[0].trigger_reason == TriggerReason.MATH_CONTENT
    assert service.last_analysis is None


def test_uploaded_image_with_short_text_skips_commentary():
    async def scenario():
        service, _, generator = _service(ocr=FakeOCR(text="hi"))
        service.set_commentary_callback(lambda commentary: None)
        await service.analyze_uploaded_image(b"img", "image/png")
        return generator

    assert asyncio.run(scenario()).calls == []


def test_close_stops_pending_work():
    async def scenario():
        service, ocr, _ = _service()
        service.analyze_canvas(make_data_url("a"))
        await service.close()
        return ocr

    assert asyncio.run(scenario()).calls == []

import asyncio
import json
from types import SimpleNamespace

import httpx
import pytest

from app.core.exceptions import AIAnalysisError
from app.schemas.analysis import AI_DISCLAIMER, MEDICAL_DISCLAIMER
from app.services.ai_service import (
    GENERIC_GUIDANCE,
    REPORT_TYPE_GUIDANCE,
    GeminiAIService,
    build_prompt,
    parse_analysis_response,
    resolve_mime_type,
)


def _service_with_reply(reply=None, error=None, calls=None):
    """GeminiAIService whose client answers with ``reply`` or raises ``error``."""

    async def generate_content(**kwargs):
        if calls is not None:
            calls.append(kwargs)
        if error is not None:
            raise error
        return SimpleNamespace(text=reply)

    service = GeminiAIService()
    service._client = SimpleNamespace(
        aio=SimpleNamespace(models=SimpleNamespace(generate_content=generate_content))
    )
    return service


# ── Parsing ────────────────────────────────────────────────────────
def test_valid_json_is_parsed_without_loss(sample_analysis):
    outcome = parse_analysis_response(json.dumps(sample_analysis), 40.0, "gemini-test")

    assert outcome.kind == "structured"
    assert outcome.model == "gemini-test"
    assert outcome.report.model_dump(by_alias=True, exclude_unset=True) == sample_analysis


def test_fenced_json_is_parsed(sample_analysis):
    raw = "Here is the analysis:\n```json\n" + json.dumps(sample_analysis) + "\n```"
    outcome = parse_analysis_response(raw, 1.0, "gemini-test")

    assert outcome.kind == "structured"
    assert outcome.report.summary.english == sample_analysis["summary"]["english"]
    assert outcome.report.abnormal_values[0].severity == "critical"


def test_json_embedded_in_prose_is_parsed(sample_analysis):
    raw = "Sure! " + json.dumps(sample_analysis) + " Let me know if you need more."
    outcome = parse_analysis_response(raw, 1.0, "gemini-test")
    assert outcome.kind == "structured"


def test_unparseable_reply_becomes_fallback():
    raw = "The report looks mostly fine. " * 40
    outcome = parse_analysis_response(raw, 5.0, "gemini-test")

    assert outcome.kind == "fallback"
    report = outcome.report
    assert report.summary.english == raw[:500] + "..."
    assert report.summary.urdu
    assert report.confidence == 70
    assert len(report.doctor_questions) == 1
    assert report.doctor_questions[0].category == "general"
    assert report.doctor_questions[0].priority == "high"
    assert report.key_findings == []
    assert report.disclaimers.ai_disclaimer == AI_DISCLAIMER
    assert report.disclaimers.medical_disclaimer == MEDICAL_DISCLAIMER
    assert outcome.raw_text == raw


def test_unusable_summary_becomes_fallback():
    raw = json.dumps({"summary": 42, "keyFindings": []})
    outcome = parse_analysis_response(raw, 1.0, "gemini-test")
    assert outcome.kind == "fallback"


def test_off_enum_finding_keeps_structured_result(sample_analysis):
    sample_analysis["keyFindings"].append(
        {"parameter": "LDL", "value": 190, "unit": "mg/dL", "status": "high"}
    )
    outcome = parse_analysis_response(json.dumps(sample_analysis), 1.0, "gemini-test")

    assert outcome.kind == "structured"
    assert outcome.report.summary.english == sample_analysis["summary"]["english"]
    assert [f.status for f in outcome.report.key_findings] == ["abnormal", "abnormal"]


def test_string_confidence_is_coerced(sample_analysis):
    sample_analysis["confidence"] = "85%"
    outcome = parse_analysis_response(json.dumps(sample_analysis), 1.0, "gemini-test")
    assert outcome.kind == "structured"
    assert outcome.report.confidence == 85

    sample_analysis["confidence"] = "very sure"
    outcome = parse_analysis_response(json.dumps(sample_analysis), 1.0, "gemini-test")
    assert outcome.report.confidence == 85


def test_incomplete_items_are_dropped_individually(sample_analysis):
    sample_analysis["followUpSuggestions"].append({"type": "consultation"})
    sample_analysis["doctorQuestions"].append({"category": "general"})
    sample_analysis["recommendations"]["medical"] = "see a doctor"
    outcome = parse_analysis_response(json.dumps(sample_analysis), 1.0, "gemini-test")

    assert outcome.kind == "structured"
    report = outcome.report
    assert [f.timeframe for f in report.follow_up_suggestions] == ["1 week"]
    assert len(report.doctor_questions) == 1
    assert report.recommendations.medical == []
    assert report.recommendations.lifestyle[0].type == "diet"
    assert report.abnormal_values[0].severity == "critical"
    assert report.confidence == 88


def test_bare_string_text_fields_are_accepted(sample_analysis):
    sample_analysis["summary"] = "Mostly normal results."
    sample_analysis["keyFindings"][0]["explanation"] = "Below normal range"
    outcome = parse_analysis_response(json.dumps(sample_analysis), 1.0, "gemini-test")

    assert outcome.kind == "structured"
    assert outcome.report.summary.english == "Mostly normal results."
    assert outcome.report.key_findings[0].explanation.english == "Below normal range"


def test_enum_values_are_normalized(sample_analysis):
    sample_analysis["doctorQuestions"][0]["priority"] = " HIGH "
    outcome = parse_analysis_response(json.dumps(sample_analysis), 1.0, "gemini-test")
    assert outcome.kind == "structured"
    assert outcome.report.doctor_questions[0].priority == "high"


# ── Prompt ─────────────────────────────────────────────────────────
def test_prompt_carries_report_type_guidance():
    prompt = build_prompt("blood_test")
    assert "SPECIFIC INSTRUCTIONS FOR BLOOD_TEST" in prompt
    assert REPORT_TYPE_GUIDANCE["blood_test"] in prompt
    assert AI_DISCLAIMER.english in prompt
    assert '"keyFindings"' in prompt


def test_prompt_falls_back_to_generic_guidance():
    prompt = build_prompt("other")
    assert GENERIC_GUIDANCE in prompt


def test_resolve_mime_type():
    assert resolve_mime_type("application/pdf") == "application/pdf"
    assert resolve_mime_type("PNG") == "image/png"
    assert resolve_mime_type("tiff") == "application/octet-stream"


# ── Adapter ────────────────────────────────────────────────────────
def test_analyze_report_sends_prompt_and_file(sample_analysis):
    calls = []
    service = _service_with_reply(json.dumps(sample_analysis), calls=calls)

    outcome = asyncio.run(
        service.analyze_report(
            file_bytes=b"%PDF-1.4", mime_type="application/pdf", report_type="blood_test"
        )
    )

    assert outcome.kind == "structured"
    assert outcome.processing_time_ms >= 0
    assert len(calls) == 1
    prompt_part, file_part = calls[0]["contents"]
    assert "BLOOD_TEST" in prompt_part.text
    assert file_part.inline_data.data == b"%PDF-1.4"
    assert file_part.inline_data.mime_type == "application/pdf"


def test_analyze_report_downloads_url_first(sample_analysis):
    requested = []

    def handler(request):
        requested.append(str(request.url))
        return httpx.Response(200, content=b"\x89PNG-bytes")

    calls = []
    service = _service_with_reply(json.dumps(sample_analysis), calls=calls)
    service._http_transport = httpx.MockTransport(handler)

    asyncio.run(
        service.analyze_report(
            file_url="https://signed.example/report.png?sig=1",
            mime_type="image/png",
            report_type="x_ray",
        )
    )

    assert requested == ["https://signed.example/report.png?sig=1"]
    assert calls[0]["contents"][1].inline_data.data == b"\x89PNG-bytes"


def test_download_failure_is_an_analysis_error():
    service = _service_with_reply("{}")
    service._http_transport = httpx.MockTransport(lambda request: httpx.Response(403))

    with pytest.raises(AIAnalysisError):
        asyncio.run(
            service.analyze_report(
                file_url="https://signed.example/x.pdf", mime_type="application/pdf",
                report_type="blood_test",
            )
        )


def test_model_errors_are_wrapped():
    service = _service_with_reply(error=RuntimeError("quota exceeded"))

    with pytest.raises(AIAnalysisError, match="quota exceeded"):
        asyncio.run(
            service.analyze_report(
                file_bytes=b"x", mime_type="image/jpeg", report_type="blood_test"
            )
        )


def test_empty_reply_is_an_analysis_error():
    service = _service_with_reply("   ")

    with pytest.raises(AIAnalysisError, match="empty"):
        asyncio.run(
            service.analyze_report(
                file_bytes=b"x", mime_type="image/jpeg", report_type="blood_test"
            )
        )


def test_exactly_one_source_is_required():
    service = _service_with_reply("{}")

    with pytest.raises(ValueError):
        asyncio.run(service.analyze_report(mime_type="image/png", report_type="x_ray"))
    with pytest.raises(ValueError):
        asyncio.run(
            service.analyze_report(
                file_url="https://x", file_bytes=b"x", mime_type="image/png", report_type="x_ray"
            )
        )


def test_connection_check_reports_errors():
    service = _service_with_reply(error=RuntimeError("bad key"))
    result = asyncio.run(service.test_connection())
    assert result == {"status": "error", "error": "bad key"}

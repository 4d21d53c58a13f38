"""
AI Service: Google Gemini Integration (google-genai AsyncClient)
HealthMate API

Sends a medical report (image or PDF) plus a bilingual analysis prompt to
Gemini and turns the free-text reply into a typed AnalysisOutcome.
"""

import re
import json
import time
import logging
import asyncio
from typing import Dict, Optional

import httpx
from google import genai
from google.genai import types
from pydantic import ValidationError

from app.core.config import settings
from app.core.exceptions import AIAnalysisError, ConfigurationError
from app.core.logging_config import RequestLogger
from app.schemas.analysis import (
    AbnormalValue,
    AnalysisOutcome,
    BilingualText,
    Disclaimers,
    DoctorQuestion,
    FallbackAnalysis,
    FollowUpSuggestion,
    KeyFinding,
    LifestyleRecommendation,
    MedicalRecommendation,
    Recommendations,
    ReportAnalysis,
    RiskFactor,
    StructuredAnalysis,
    default_disclaimers,
)

logger = logging.getLogger(__name__)
request_logger = RequestLogger(logger)

FALLBACK_SUMMARY_CHARS = 500
FALLBACK_CONFIDENCE = 70

# ── Prompt ────────────────────────────────────────────────────────
ANALYSIS_PROMPT = """
You are a medical AI assistant helping patients understand their medical reports. Analyze the provided medical document and provide a comprehensive, bilingual (English + Roman Urdu) analysis.

IMPORTANT GUIDELINES:
1. Always provide disclaimers that this is for informational purposes only
2. Never provide specific medical advice or diagnosis
3. Always recommend consulting a healthcare professional
4. Be empathetic and use simple, understandable language
5. Provide both English and Roman Urdu explanations

Please analyze the medical report and provide the following information in a structured JSON format:

{{
  "summary": {{
    "english": "Clear, simple English summary of the report",
    "urdu": "Clear, simple Roman Urdu summary of the report"
  }},
  "keyFindings": [
    {{
      "parameter": "Parameter name (e.g., Hemoglobin, Blood Sugar)",
      "value": "Actual value from report",
      "unit": "Unit of measurement",
      "normalRange": "Normal range for this parameter",
      "status": "normal/abnormal/critical/borderline",
      "explanation": {{
        "english": "Simple English explanation of what this means",
        "urdu": "Simple Roman Urdu explanation of what this means"
      }}
    }}
  ],
  "abnormalValues": [
    {{
      "parameter": "Parameter name",
      "value": "Actual value",
      "unit": "Unit",
      "severity": "low/medium/high/critical",
      "explanation": {{
        "english": "Explanation of why this is abnormal",
        "urdu": "Roman Urdu explanation of why this is abnormal"
      }},
      "recommendation": {{
        "english": "General recommendation (not medical advice)",
        "urdu": "General recommendation in Roman Urdu"
      }}
    }}
  ],
  "doctorQuestions": [
    {{
      "question": {{
        "english": "Question to ask the doctor",
        "urdu": "Question in Roman Urdu"
      }},
      "category": "general/medication/lifestyle/follow_up/symptoms",
      "priority": "low/medium/high"
    }}
  ],
  "recommendations": {{
    "lifestyle": [
      {{
        "type": "diet/exercise/sleep/stress/hydration/other",
        "suggestion": {{
          "english": "Lifestyle suggestion",
          "urdu": "Lifestyle suggestion in Roman Urdu"
        }},
        "priority": "low/medium/high"
      }}
    ],
    "medical": [
      {{
        "suggestion": {{
          "english": "General medical suggestion (not advice)",
          "urdu": "General medical suggestion in Roman Urdu"
        }},
        "urgency": "routine/soon/urgent/emergency"
      }}
    ]
  }},
  "riskFactors": [
    {{
      "factor": {{
        "english": "Risk factor description",
        "urdu": "Risk factor in Roman Urdu"
      }},
      "level": "low/medium/high",
      "description": {{
        "english": "Description of the risk factor",
        "urdu": "Description in Roman Urdu"
      }}
    }}
  ],
  "followUpSuggestions": [
    {{
      "type": "test/consultation/medication_review/lifestyle_check",
      "timeframe": "When to follow up (e.g., 1 week, 1 month)",
      "description": {{
        "english": "What to do for follow up",
        "urdu": "Follow up description in Roman Urdu"
      }},
      "priority": "low/medium/high"
    }}
  ],
  "confidence": 85,
  "disclaimers": {{
    "aiDisclaimer": {{
      "english": "{ai_disclaimer_en}",
      "urdu": "{ai_disclaimer_ur}"
    }},
    "medicalDisclaimer": {{
      "english": "{medical_disclaimer_en}",
      "urdu": "{medical_disclaimer_ur}"
    }}
  }}
}}

SPECIFIC INSTRUCTIONS FOR {report_type}:
{guidance}

Please ensure all responses are medically accurate, empathetic, and helpful while maintaining appropriate disclaimers.
"""

REPORT_TYPE_GUIDANCE: dict[str, str] = {
    "blood_test": """
- Focus on blood parameters like hemoglobin, WBC, RBC, platelets, glucose, cholesterol, etc.
- Explain what each parameter means for overall health
- Highlight any values outside normal ranges
- Suggest lifestyle changes for improving blood health
""",
    "urine_test": """
- Focus on urine parameters like protein, glucose, ketones, specific gravity, etc.
- Explain what abnormal values might indicate
- Suggest hydration and dietary considerations
""",
    "x_ray": """
- Describe what the X-ray shows in simple terms
- Explain any abnormalities or concerns
- Suggest follow-up imaging if needed
""",
    "ct_scan": """
- Explain the CT scan findings in layman's terms
- Highlight any areas of concern
- Suggest appropriate follow-up care
""",
    "mri": """
- Describe MRI findings in simple language
- Explain any abnormalities
- Suggest next steps for care
""",
    "ultrasound": """
- Explain ultrasound findings
- Describe any abnormalities or concerns
- Suggest follow-up care
""",
    "ecg": """
- Explain heart rhythm and electrical activity
- Describe any abnormalities
- Suggest cardiac care recommendations
""",
    "prescription": """
- Explain prescribed medications
- Describe dosage and timing
- Highlight important side effects and interactions
""",
    "discharge_summary": """
- Summarize the hospital stay
- Explain diagnosis and treatment
- Provide follow-up care instructions
""",
    "consultation": """
- Summarize the consultation notes
- Explain doctor's recommendations
- Highlight important follow-up points
""",
}

GENERIC_GUIDANCE = """
- Provide a general analysis of the medical document
- Explain key findings in simple terms
- Suggest appropriate follow-up care
"""

MIME_TYPES: dict[str, str] = {
    "pdf": "application/pdf",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "bmp": "image/bmp",
    "webp": "image/webp",
    "image": "image/jpeg",
}

SAFETY_CATEGORIES = (
    types.HarmCategory.HARM_CATEGORY_HARASSMENT,
    types.HarmCategory.HARM_CATEGORY_HATE_SPEECH,
    types.HarmCategory.HARM_CATEGORY_SEXUALLY_EXPLICIT,
    types.HarmCategory.HARM_CATEGORY_DANGEROUS_CONTENT,
)


def resolve_mime_type(file_type: str) -> str:
    """Accept either a MIME type or a bare extension."""
    if "/" in file_type:
        return file_type.lower()
    return MIME_TYPES.get(file_type.lower(), "application/octet-stream")


def build_prompt(report_type: str) -> str:
    disclaimers = default_disclaimers()
    return ANALYSIS_PROMPT.format(
        report_type=report_type.upper(),
        guidance=REPORT_TYPE_GUIDANCE.get(report_type, GENERIC_GUIDANCE),
        ai_disclaimer_en=disclaimers.ai_disclaimer.english,
        ai_disclaimer_ur=disclaimers.ai_disclaimer.urdu,
        medical_disclaimer_en=disclaimers.medical_disclaimer.english,
        medical_disclaimer_ur=disclaimers.medical_disclaimer.urdu,
    )


# ── JSON extraction ───────────────────────────────────────────────
def _extract_json(raw: str) -> Optional[dict]:
    """3-pass JSON extraction from Gemini response."""
    if not raw:
        return None
    # Pass 1: direct parse
    try:
        parsed = json.loads(raw.strip())
        if isinstance(parsed, dict):
            return parsed
    except json.JSONDecodeError:
        pass
    # Pass 2: strip markdown fences
    cleaned = re.sub(r"```(?:json)?\s*|\s*```", "", raw, flags=re.IGNORECASE).strip()
    try:
        parsed = json.loads(cleaned)
        if isinstance(parsed, dict):
            return parsed
    except json.JSONDecodeError:
        pass
    # Pass 3: extract first {...} block
    m = re.search(r"\{[\s\S]*\}", raw)
    if m:
        try:
            parsed = json.loads(m.group(0))
            if isinstance(parsed, dict):
                return parsed
        except json.JSONDecodeError:
            pass
    logger.warning("JSON extraction failed. Preview: %.200s", raw)
    return None


# ── Schema validation ─────────────────────────────────────────────
# (JSON key, field name, item model) for every list in the reply
_ITEM_LISTS = (
    ("keyFindings", "key_findings", KeyFinding),
    ("abnormalValues", "abnormal_values", AbnormalValue),
    ("doctorQuestions", "doctor_questions", DoctorQuestion),
    ("riskFactors", "risk_factors", RiskFactor),
    ("followUpSuggestions", "follow_up_suggestions", FollowUpSuggestion),
)
_RECOMMENDATION_LISTS = (
    ("lifestyle", LifestyleRecommendation),
    ("medical", MedicalRecommendation),
)


def _lookup(parsed: dict, key: str, field: str):
    return parsed[key] if key in parsed else parsed.get(field)


def _valid_items(items, item_model, label: str, dropped: Dict[str, int]) -> list:
    """Validate list items one by one, counting the ones that don't fit."""
    if items is None:
        return []
    if not isinstance(items, list):
        dropped[label] = dropped.get(label, 0) + 1
        return []
    kept = []
    for item in items:
        try:
            kept.append(item_model.model_validate(item))
        except ValidationError:
            dropped[label] = dropped.get(label, 0) + 1
    return kept


def _validate_report(parsed: dict) -> Optional[ReportAnalysis]:
    """
    Validate the model's JSON against ReportAnalysis.

    Items that don't fit are dropped individually so one stray entry never
    discards the whole reply. Returns None only when the summary itself is
    unusable.
    """
    try:
        return ReportAnalysis.model_validate(parsed)
    except ValidationError as exc:
        logger.info("Gemini JSON needs item-level validation: %d error(s)", exc.error_count())

    try:
        summary = ReportAnalysis.model_validate({"summary": parsed.get("summary")}).summary
    except ValidationError:
        logger.warning("Gemini JSON has an unusable summary")
        return None

    dropped: Dict[str, int] = {}
    fields = {
        field: _valid_items(_lookup(parsed, key, field), model, key, dropped)
        for key, field, model in _ITEM_LISTS
    }

    recommendations = parsed.get("recommendations")
    if not isinstance(recommendations, dict):
        recommendations = {}
    fields["recommendations"] = Recommendations(
        **{
            key: _valid_items(recommendations.get(key), model, f"recommendations.{key}", dropped)
            for key, model in _RECOMMENDATION_LISTS
        }
    )

    disclaimers = parsed.get("disclaimers")
    try:
        fields["disclaimers"] = Disclaimers.model_validate(disclaimers) if disclaimers else None
    except ValidationError:
        dropped["disclaimers"] = 1
        fields["disclaimers"] = None

    if dropped:
        logger.warning("Dropped off-schema items from Gemini JSON: %s", dropped)
    return ReportAnalysis(summary=summary, confidence=parsed.get("confidence"), **fields)


def fallback_report(raw: str) -> ReportAnalysis:
    """Deterministic result used when the reply has no usable JSON."""
    return ReportAnalysis(
        summary=BilingualText(
            english=raw[:FALLBACK_SUMMARY_CHARS] + "...",
            urdu="AI analysis complete. Please consult your doctor for detailed explanation.",
        ),
        doctor_questions=[
            DoctorQuestion(
                question=BilingualText(
                    english="Can you explain the key findings in my report?",
                    urdu="Kya aap mere report ke main findings explain kar sakte hain?",
                ),
                category="general",
                priority="high",
            )
        ],
        confidence=FALLBACK_CONFIDENCE,
        disclaimers=default_disclaimers(),
    )


def parse_analysis_response(raw: str, processing_time_ms: float, model: str) -> AnalysisOutcome:
    """Turn raw model text into a StructuredAnalysis or a FallbackAnalysis."""
    parsed = _extract_json(raw)
    report = _validate_report(parsed) if parsed is not None else None
    if report is not None:
        return StructuredAnalysis(
            report=report,
            raw_text=raw,
            processing_time_ms=processing_time_ms,
            model=model,
        )

    return FallbackAnalysis(
        report=fallback_report(raw),
        raw_text=raw,
        processing_time_ms=processing_time_ms,
        model=model,
    )


# ── AI Service ────────────────────────────────────────────────────
class GeminiAIService:
    """Gemini adapter over google-genai Client.aio (native async)."""

    def __init__(self):
        self._client: Optional[genai.Client] = None
        self._model_name: str = settings.ai_model
        # Overridable for tests (httpx.MockTransport)
        self._http_transport: Optional[httpx.AsyncBaseTransport] = None

    @property
    def model_name(self) -> str:
        return self._model_name

    def _ensure_initialized(self) -> None:
        """Create Client once. Raises ConfigurationError if API key missing."""
        if self._client is not None:
            return
        try:
            api_key = settings.get_ai_api_key()
        except ValueError as e:
            raise ConfigurationError(str(e)) from e
        self._client = genai.Client(api_key=api_key)
        self._model_name = settings.ai_model
        if self._model_name.startswith("models/"):
            self._model_name = self._model_name[len("models/"):]
        logger.info("Gemini client initialized, model: %s", self._model_name)

    def _generation_config(self) -> types.GenerateContentConfig:
        return types.GenerateContentConfig(
            temperature=settings.ai_temperature,
            top_k=settings.ai_top_k,
            top_p=settings.ai_top_p,
            max_output_tokens=settings.ai_max_tokens,
            safety_settings=[
                types.SafetySetting(
                    category=category,
                    threshold=types.HarmBlockThreshold.BLOCK_MEDIUM_AND_ABOVE,
                )
                for category in SAFETY_CATEGORIES
            ],
        )

    async def _download(self, file_url: str) -> bytes:
        async with httpx.AsyncClient(
            timeout=settings.ai_timeout_seconds,
            follow_redirects=True,
            transport=self._http_transport,
        ) as client:
            response = await client.get(file_url)
            response.raise_for_status()
            logger.info("Downloaded report for analysis (%d bytes)", len(response.content))
            return response.content

    # ── Public: analyze ──────────────────────────────────────────
    async def analyze_report(
        self,
        *,
        mime_type: str,
        report_type: str,
        file_url: Optional[str] = None,
        file_bytes: Optional[bytes] = None,
    ) -> AnalysisOutcome:
        """
        Analyze one report file.

        Exactly one of ``file_url`` / ``file_bytes`` is expected; the URL is
        downloaded first. Every failure (download, model, timeout, blocked
        or empty reply) surfaces as AIAnalysisError.
        """
        if (file_url is None) == (file_bytes is None):
            raise ValueError("Provide exactly one of file_url or file_bytes")

        try:
            self._ensure_initialized()
        except ConfigurationError as e:
            raise AIAnalysisError(str(e)) from e

        wall_start = time.monotonic()
        try:
            if file_url is not None:
                file_bytes = await self._download(file_url)

            response = await asyncio.wait_for(
                self._client.aio.models.generate_content(
                    model=self._model_name,
                    contents=[
                        types.Part.from_text(text=build_prompt(report_type)),
                        types.Part.from_bytes(data=file_bytes, mime_type=resolve_mime_type(mime_type)),
                    ],
                    config=self._generation_config(),
                ),
                timeout=settings.ai_timeout_seconds,
            )
            raw = getattr(response, "text", "") or ""
        except asyncio.TimeoutError as exc:
            logger.error("Gemini call timed out after %.0fs", settings.ai_timeout_seconds)
            raise AIAnalysisError("AI analysis timed out") from exc
        except Exception as exc:
            err = str(exc) or repr(exc)
            logger.error("Gemini error %s: %s", type(exc).__name__, err)
            raise AIAnalysisError(f"Failed to analyze medical report: {err}") from exc

        if not raw.strip():
            raise AIAnalysisError("Gemini returned an empty response")

        processing_ms = (time.monotonic() - wall_start) * 1000
        outcome = parse_analysis_response(raw, processing_ms, self._model_name)
        request_logger.log_ai_call(
            self._model_name, report_type, len(file_bytes), processing_ms, outcome.kind
        )
        logger.info(
            "Analysis done: kind=%s | confidence=%.0f | %d chars in %.0fms",
            outcome.kind, outcome.report.confidence, len(raw), processing_ms,
        )
        return outcome

    # ── Public: test connection ───────────────────────────────────
    async def test_connection(self) -> dict:
        try:
            self._ensure_initialized()
            logger.info("Testing Gemini connection with model=%s", self._model_name)
            response = await asyncio.wait_for(
                self._client.aio.models.generate_content(
                    model=self._model_name,
                    contents="Say hello in one sentence.",
                ),
                timeout=30.0,
            )
            reply = getattr(response, "text", "no text") or "no text"
            logger.info("Gemini test OK: %s", reply[:80])
            return {"status": "ok", "model": self._model_name, "response": reply[:300]}
        except ConfigurationError as e:
            return {"status": "error", "error": str(e)}
        except Exception as e:
            err = str(e) or repr(e)
            logger.error("LLM test failed %s: %s", type(e).__name__, err)
            return {"status": "error", "error": err}

    async def close(self) -> None:
        self._client = None
        logger.info("AI service closed")


# Singleton
ai_service = GeminiAIService()

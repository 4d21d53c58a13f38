"""
Shared fixtures: temporary SQLite database, fake storage and AI adapters,
and a TestClient with a registered user.
"""

import asyncio
import json
import os
import tempfile

_DB_DIR = tempfile.mkdtemp(prefix="healthmate-tests-")

# Must be set before anything under app/ is imported
os.environ.update({
    "APP_ENV": "testing",
    "JWT_SECRET_KEY": "test-secret-key-for-the-suite-0123456789abcdef",
    "DATABASE_URL": f"sqlite+aiosqlite:///{os.path.join(_DB_DIR, 'test.db')}",
    "GEMINI_API_KEY": "test-gemini-key",
    "S3_BUCKET_NAME": "test-bucket",
    "AWS_ACCESS_KEY_ID": "test-access-key",
    "AWS_SECRET_ACCESS_KEY": "test-secret-key",
    "RATE_LIMIT_REQUESTS": "1000",
    "BCRYPT_ROUNDS": "4",
    "LOG_FORMAT": "text",
    "UPLOAD_TEMP_DIR": _DB_DIR,
})

import pytest
from fastapi.testclient import TestClient

from app.api.middleware.rate_limiter import limiter
from app.core.exceptions import AIAnalysisError, StorageError
from app.database.session import Base, engine
from app.main import app
from app.models import insight, uploaded_file, user, vitals  # noqa: F401
from app.services import upload_service
from app.services.ai_service import parse_analysis_response
from app.services.storage_service import StoredObject

SAMPLE_ANALYSIS = {
    "summary": {
        "english": "Your blood test shows low hemoglobin and high fasting glucose.",
        "urdu": "Aap ke blood test mein hemoglobin kam aur fasting glucose zyada hai.",
    },
    "keyFindings": [
        {
            "parameter": "Hemoglobin",
            "value": "9.1",
            "unit": "g/dL",
            "normalRange": "12-16",
            "status": "abnormal",
            "explanation": {"english": "Below normal range", "urdu": "Normal se kam"},
        }
    ],
    "abnormalValues": [
        {
            "parameter": "Fasting Glucose",
            "value": 310,
            "unit": "mg/dL",
            "severity": "critical",
            "explanation": {"english": "Very high", "urdu": "Bohat zyada"},
            "recommendation": {"english": "See a doctor soon", "urdu": "Jald doctor se milein"},
        }
    ],
    "doctorQuestions": [
        {
            "question": {"english": "Do I need iron supplements?", "urdu": "Kya mujhe iron lena chahiye?"},
            "category": "medication",
            "priority": "high",
        }
    ],
    "recommendations": {
        "lifestyle": [
            {
                "type": "diet",
                "suggestion": {"english": "Eat iron-rich food", "urdu": "Iron wali ghiza khayein"},
                "priority": "high",
            }
        ],
        "medical": [
            {
                "suggestion": {"english": "Repeat glucose test", "urdu": "Glucose test dobara karwayein"},
                "urgency": "urgent",
            }
        ],
    },
    "riskFactors": [],
    "followUpSuggestions": [
        {
            "type": "test",
            "timeframe": "1 week",
            "description": {"english": "Repeat CBC", "urdu": "CBC dobara"},
            "priority": "medium",
        }
    ],
    "confidence": 88,
}


class FakeStorage:
    """In-memory stand-in for the S3 adapter."""

    def __init__(self):
        self.stored = []
        self.deleted = []
        self.fail_on_calls = set()
        self.calls = 0

    async def store(self, path, folder, desired_id, content_type, file_format):
        index = self.calls
        self.calls += 1
        if index in self.fail_on_calls:
            raise StorageError("simulated outage")
        key = f"{folder}/{desired_id}.{file_format}"
        self.stored.append(key)
        return StoredObject(
            id=key,
            url=f"https://test-bucket.example/{key}",
            format=file_format,
            size=os.path.getsize(path),
        )

    async def delete(self, storage_id):
        self.deleted.append(storage_id)

    async def signed_url(self, storage_id, expires_in=None):
        return f"https://signed.example/{storage_id}?sig=test"


class FakeAI:
    """Returns a structured analysis built from ``payload`` unless told to fail."""

    model_name = "gemini-test"

    def __init__(self):
        self.payload = json.loads(json.dumps(SAMPLE_ANALYSIS))
        self.raw_text = None
        self.fail_on_calls = set()
        self.fail_all = False
        self.calls = []

    async def analyze_report(self, *, mime_type, report_type, file_url=None, file_bytes=None):
        index = len(self.calls)
        self.calls.append({"url": file_url, "mime_type": mime_type, "report_type": report_type})
        if self.fail_all or index in self.fail_on_calls:
            raise AIAnalysisError("simulated network error")
        raw = self.raw_text if self.raw_text is not None else json.dumps(self.payload)
        return parse_analysis_response(raw, 12.5, self.model_name)

    async def close(self):
        pass


async def _reset_schema():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)


@pytest.fixture(autouse=True)
def fresh_database():
    asyncio.run(_reset_schema())
    limiter.reset()
    yield


@pytest.fixture
def fake_storage(monkeypatch):
    fake = FakeStorage()
    monkeypatch.setattr(upload_service, "storage_service", fake)
    return fake


@pytest.fixture
def fake_ai(monkeypatch):
    fake = FakeAI()
    monkeypatch.setattr(upload_service, "ai_service", fake)
    return fake


@pytest.fixture
def client(fake_storage, fake_ai):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def make_user(client):
    """Register an account and return its Authorization header."""

    def _make(email="ayesha@example.com", password="Secret123", name="Ayesha Khan"):
        response = client.post(
            "/api/auth/register",
            json={"name": name, "email": email, "password": password},
        )
        assert response.status_code == 201, response.text
        token = response.json()["data"]["token"]
        return {"Authorization": f"Bearer {token}"}

    return _make


@pytest.fixture
def auth_headers(make_user):
    return make_user()


@pytest.fixture
def upload(client, auth_headers):
    """POST /api/files/upload with (name, bytes, mime) tuples."""

    def _upload(files, headers=None, report_type="blood_test", report_date="2026-10-01"):
        return client.post(
            "/api/files/upload",
            files=[("files", f) for f in files],
            data={"reportType": report_type, "reportDate": report_date},
            headers=headers or auth_headers,
        )

    return _upload


@pytest.fixture
def sample_analysis():
    return json.loads(json.dumps(SAMPLE_ANALYSIS))


@pytest.fixture
def sample_files():
    return {
        "pdf": ("report.pdf", b"%PDF-1.4\n% lab results\n", "application/pdf"),
        "png": ("scan.png", b"\x89PNG\r\n\x1a\nfake-image", "image/png"),
        "jpg": ("page2.jpg", b"\xff\xd8\xff\xe0fake-jpeg", "image/jpeg"),
        "txt": ("notes.txt", b"just some notes", "text/plain"),
    }

import asyncio
import io

from fastapi import UploadFile

from app.core.config import settings
from app.services.upload_service import UploadService


class CountingFile(io.BytesIO):
    """In-memory upload body that remembers how much was asked for."""

    def __init__(self, data):
        super().__init__(data)
        self.requested = []

    def read(self, size=-1):
        self.requested.append(size)
        return super().read(size)


def _file(client, headers, file_id):
    return client.get(f"/api/files/{file_id}", headers=headers)


def _insights_for(client, headers, file_id):
    return client.get(f"/api/insights?fileId={file_id}", headers=headers).json()


def test_disallowed_file_is_skipped_and_pdf_is_kept(client, auth_headers, upload, sample_files, fake_storage):
    response = upload([sample_files["pdf"], sample_files["txt"]])

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["data"]["uploadedFiles"] == 1
    assert [r["name"] for r in body["data"]["rejectedFiles"]] == ["notes.txt"]

    stored = body["data"]["file"]["files"]
    assert len(stored) == 1
    assert stored[0]["originalName"] == "report.pdf"
    assert stored[0]["mimeType"] == "application/pdf"
    assert stored[0]["format"] == "pdf"
    assert stored[0]["size"] == len(sample_files["pdf"][1])
    assert len(fake_storage.stored) == 1


def test_upload_responds_with_uploaded_status_then_settles_as_analyzed(client, auth_headers, upload, sample_files, fake_ai):
    response = upload([sample_files["pdf"]])
    record = response.json()["data"]["file"]
    assert record["status"] == "uploaded"

    # TestClient returns after background tasks complete
    settled = _file(client, auth_headers, record["id"]).json()["data"]
    assert settled["status"] == "analyzed"
    assert settled["analyzedAt"] is not None
    assert settled["analysisCount"] == 1
    snapshot = settled["aiAnalysis"][0]
    assert snapshot["kind"] == "structured"
    assert snapshot["sourceFile"] == record["files"][0]["storageId"]

    assert fake_ai.calls[0]["report_type"] == "blood_test"
    assert fake_ai.calls[0]["url"].startswith("https://signed.example/")

    insights = _insights_for(client, auth_headers, record["id"])
    assert insights["pagination"]["total"] == 1


def test_one_failed_analysis_out_of_three_still_analyzed(client, auth_headers, upload, sample_files, fake_ai):
    fake_ai.fail_on_calls = {1}

    response = upload([sample_files["pdf"], sample_files["png"], sample_files["jpg"]])
    file_id = response.json()["data"]["file"]["id"]
    assert response.json()["data"]["uploadedFiles"] == 3

    settled = _file(client, auth_headers, file_id).json()["data"]
    assert settled["status"] == "analyzed"
    assert settled["analysisCount"] == 2
    assert len(fake_ai.calls) == 3

    insights = _insights_for(client, auth_headers, file_id)
    assert insights["pagination"]["total"] == 2
    assert all(i["fileId"] == file_id for i in insights["data"])


def test_all_analyses_failing_marks_report_failed(client, auth_headers, upload, sample_files, fake_ai):
    fake_ai.fail_all = True

    response = upload([sample_files["pdf"], sample_files["png"]])
    file_id = response.json()["data"]["file"]["id"]

    settled = _file(client, auth_headers, file_id).json()["data"]
    assert settled["status"] == "failed"
    assert settled["errorMessage"]
    assert settled["analysisCount"] == 0
    assert _insights_for(client, auth_headers, file_id)["pagination"]["total"] == 0


def test_storage_failure_skips_only_that_file(client, auth_headers, upload, sample_files, fake_storage):
    fake_storage.fail_on_calls = {0}

    response = upload([sample_files["pdf"], sample_files["png"]])
    body = response.json()["data"]
    assert response.status_code == 201
    assert body["uploadedFiles"] == 1
    assert body["file"]["files"][0]["originalName"] == "scan.png"
    assert body["rejectedFiles"] == [{"name": "report.pdf", "reason": "Storage failed"}]


def test_only_rejected_files_still_creates_empty_record(client, auth_headers, upload, sample_files, fake_ai):
    response = upload([sample_files["txt"]])
    assert response.status_code == 201
    body = response.json()["data"]
    assert body["uploadedFiles"] == 0
    assert body["file"]["status"] == "uploaded"
    assert fake_ai.calls == []


def test_missing_report_type_is_400(client, auth_headers, sample_files):
    response = client.post(
        "/api/files/upload",
        files=[("files", sample_files["pdf"])],
        data={"reportDate": "2026-10-01"},
        headers=auth_headers,
    )
    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert "reportType" in [e["field"] for e in body["errors"]]


def test_unknown_report_type_is_400(client, auth_headers, upload, sample_files):
    response = upload([sample_files["pdf"]], report_type="horoscope")
    assert response.status_code == 400


def test_more_than_five_files_is_400(client, auth_headers, upload, sample_files):
    response = upload([sample_files["pdf"]] * 6)
    assert response.status_code == 400
    assert response.json()["success"] is False


def test_oversized_file_is_rejected(client, auth_headers, upload, sample_files):
    big = ("huge.pdf", b"%PDF" + b"0" * (10 * 1024 * 1024), "application/pdf")
    response = upload([big, sample_files["png"]])
    body = response.json()["data"]
    assert body["uploadedFiles"] == 1
    assert body["rejectedFiles"][0]["name"] == "huge.pdf"


def test_declared_oversize_is_rejected_without_reading():
    body = CountingFile(b"%PDF")
    upload = UploadFile(body, size=settings.max_file_size_bytes + 1, filename="huge.pdf")

    assert asyncio.run(UploadService._read_within_limit(upload)) is None
    assert body.requested == []


def test_undeclared_oversize_stops_reading_past_the_limit():
    limit = settings.max_file_size_bytes
    body = CountingFile(b"0" * (limit + 4096))
    upload = UploadFile(body, filename="huge.pdf")

    assert asyncio.run(UploadService._read_within_limit(upload)) is None
    assert body.requested == [limit + 1]
    assert body.tell() == limit + 1


def test_file_within_limit_is_read_whole():
    upload = UploadFile(CountingFile(b"%PDF-1.4 ok"), filename="ok.pdf")
    assert asyncio.run(UploadService._read_within_limit(upload)) == b"%PDF-1.4 ok"


def test_delete_removes_insights_and_stored_objects(client, auth_headers, upload, sample_files, fake_storage):
    response = upload([sample_files["pdf"], sample_files["png"]])
    record = response.json()["data"]["file"]
    assert _insights_for(client, auth_headers, record["id"])["pagination"]["total"] == 2

    deleted = client.delete(f"/api/files/{record['id']}", headers=auth_headers)
    assert deleted.status_code == 200
    assert deleted.json() == {"success": True, "message": "File deleted successfully", "data": None}

    assert _insights_for(client, auth_headers, record["id"])["pagination"]["total"] == 0
    assert sorted(fake_storage.deleted) == sorted(f["storageId"] for f in record["files"])
    assert _file(client, auth_headers, record["id"]).status_code == 404


def test_files_are_scoped_to_their_owner(client, auth_headers, make_user, upload, sample_files):
    file_id = upload([sample_files["pdf"]]).json()["data"]["file"]["id"]
    intruder = make_user(email="other@example.com")

    assert _file(client, intruder, file_id).status_code == 404
    assert client.delete(f"/api/files/{file_id}", headers=intruder).status_code == 404
    listing = client.get("/api/files", headers=intruder).json()
    assert listing["pagination"]["total"] == 0


def test_list_paginates_and_filters_by_report_type(client, auth_headers, upload, sample_files):
    upload([sample_files["pdf"]], report_type="blood_test")
    upload([sample_files["png"]], report_type="x_ray")
    upload([sample_files["jpg"]], report_type="x_ray")

    page = client.get("/api/files?page=1&limit=2", headers=auth_headers).json()
    assert page["success"] is True
    assert len(page["data"]) == 2
    assert page["pagination"] == {"page": 1, "limit": 2, "total": 3, "pages": 2}

    xrays = client.get("/api/files?reportType=x_ray", headers=auth_headers).json()
    assert xrays["pagination"]["total"] == 2
    assert {f["reportType"] for f in xrays["data"]} == {"x_ray"}


def test_stats_overview(client, auth_headers, upload, sample_files):
    upload([sample_files["pdf"], sample_files["png"]], report_type="blood_test")
    upload([sample_files["jpg"]], report_type="x_ray")

    stats = client.get("/api/files/stats/overview", headers=auth_headers).json()["data"]
    assert stats["totalReports"] == 2
    assert stats["reportTypes"] == ["blood_test", "x_ray"]
    assert stats["byType"] == {"blood_test": 1, "x_ray": 1}
    expected = sum(len(sample_files[k][1]) for k in ("pdf", "png", "jpg"))
    assert stats["totalSize"] == expected


def test_download_redirects_to_signed_url(client, auth_headers, upload, sample_files):
    record = upload([sample_files["pdf"]]).json()["data"]["file"]

    response = client.get(
        f"/api/files/{record['id']}/download", headers=auth_headers, follow_redirects=False
    )
    assert response.status_code == 307
    assert response.headers["location"].startswith("https://signed.example/")

    missing = client.get(
        f"/api/files/{record['id']}/download?index=3", headers=auth_headers, follow_redirects=False
    )
    assert missing.status_code == 404

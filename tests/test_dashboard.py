from datetime import datetime, timedelta, timezone


def _at(hours_ago):
    return (datetime.now(timezone.utc) - timedelta(hours=hours_ago)).isoformat()


def test_empty_dashboard(client, auth_headers):
    response = client.get("/api/user/dashboard", headers=auth_headers)
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["stats"] == {
        "recentFiles": 0, "totalFiles": 0, "recentVitals": 0, "criticalInsights": 0,
    }
    assert data["latestVitals"] == []
    assert data["recentInsights"] == []


def test_dashboard_aggregates(client, auth_headers, upload, sample_files):
    upload([sample_files["pdf"]])
    client.post("/api/vitals", json={"type": "heart_rate", "value": {"numeric": 70}, "recordedAt": _at(2)}, headers=auth_headers)
    client.post("/api/vitals", json={"type": "heart_rate", "value": {"numeric": 74}, "recordedAt": _at(1)}, headers=auth_headers)
    # Older than the recent-vitals window but still the latest glucose reading
    client.post("/api/vitals", json={"type": "blood_sugar", "value": {"numeric": 110}, "recordedAt": _at(24 * 10)}, headers=auth_headers)

    data = client.get("/api/user/dashboard", headers=auth_headers).json()["data"]

    assert data["stats"] == {
        "recentFiles": 1, "totalFiles": 1, "recentVitals": 2, "criticalInsights": 1,
    }
    latest = {v["type"]: v["formattedValue"] for v in data["latestVitals"]}
    assert latest == {"heart_rate": "74 bpm", "blood_sugar": "110 mg/dL"}
    assert len(data["recentInsights"]) == 1
    assert data["recentInsights"][0]["file"]["reportType"] == "blood_test"


def test_dashboard_ignores_other_users(client, auth_headers, make_user, upload, sample_files):
    upload([sample_files["pdf"]])
    other = make_user(email="other@example.com")

    data = client.get("/api/user/dashboard", headers=other).json()["data"]
    assert data["stats"]["totalFiles"] == 0
    assert data["recentInsights"] == []


def test_activity_is_merged_newest_first(client, auth_headers, upload, sample_files):
    client.post("/api/vitals", json={"type": "steps", "value": {"numeric": 4000}, "recordedAt": _at(30)}, headers=auth_headers)
    upload([sample_files["pdf"]])

    response = client.get("/api/user/activity", headers=auth_headers)
    assert response.status_code == 200
    activities = response.json()["data"]["activities"]

    assert sorted(a["type"] for a in activities) == ["file_upload", "insight_generated", "vital_added"]
    assert activities[-1]["type"] == "vital_added"
    timestamps = [a["timestamp"] for a in activities]
    assert timestamps == sorted(timestamps, reverse=True)

    limited = client.get("/api/user/activity?limit=1", headers=auth_headers).json()["data"]
    assert len(limited["activities"]) == 1


def test_export_contains_everything_the_user_owns(client, auth_headers, upload, sample_files):
    upload([sample_files["pdf"], sample_files["png"]])
    client.post("/api/vitals", json={"type": "weight", "value": {"numeric": 68}}, headers=auth_headers)

    response = client.get("/api/user/export-data", headers=auth_headers)
    assert response.status_code == 200
    data = response.json()["data"]

    assert data["user"]["email"] == "ayesha@example.com"
    assert "passwordHash" not in data["user"]
    assert len(data["files"]) == 1
    assert len(data["files"][0]["files"]) == 2
    assert len(data["insights"]) == 2
    assert [v["type"] for v in data["vitals"]] == ["weight"]
    assert data["exportedAt"]

from __future__ import annotations

import pytest

from hse_app.config import settings

REPORT = b"""Total Manhours recorded: 12,345 hrs
Lost Time Injury: 1
Management Walkabout - Planned: 4 Actual: 3
"""


def _save(client, project_id, month_id, body):
    return client.post(f"/api/data/{project_id}/{month_id}", json=body)


def test_health_reports_json_storage(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json() == {"ok": True, "storage": "json"}


def test_config_lists_catalog(client):
    response = client.get("/api/config")
    assert response.status_code == 200
    body = response.json()
    assert set(body["projects"]) == {"sapih-tiram-wangsa", "chenda", "sirung"}
    assert body["projects"]["sirung"]["shortName"] == "SRG"
    assert [c["id"] for c in body["projects"]["sirung"]["contracts"]] == ["P11", "P3", "P6", "P7", "P8", "P9"]
    assert len(body["table1Indicators"]) == 13
    assert len(body["table2Indicators"]) == 6
    assert len(body["months"]) == 10
    assert body["months"][0] == {"id": "Mar-26", "label": "March 2026"}


def test_unsaved_month_returns_null_cells(client):
    response = client.get("/api/data/chenda/Apr-26")
    assert response.status_code == 200
    body = response.json()
    assert body["lastUpdated"] is None
    assert body["table1"]["Manhours"]["P2"] is None
    assert body["table2"]["HSSE Audit"]["P9"] == {"planned": None, "actual": None}


@pytest.mark.parametrize(
    "path",
    [
        "/api/data/nowhere/Mar-26",
        "/api/data/sirung/Jan-99",
        "/api/totals/nowhere/Mar-26",
        "/api/cumulative/nowhere",
        "/api/months/nowhere",
    ],
)
def test_unknown_project_or_month_is_404(client, path):
    assert client.get(path).status_code == 404


def test_save_merges_and_totals(client):
    first = _save(client, "sirung", "Mar-26", {"table1": {"Manhours": {"P11": 1000}, "Loss Time Injury (LTI)": {"P11": 1}}})
    assert first.status_code == 200
    second = _save(
        client,
        "sirung",
        "Mar-26",
        {
            "table1": {"Manhours": {"P3": 2000}, "Loss Time Injury (LTI)": {"P3": 1}},
            "table2": {"HSSE Audit": {"P3": {"planned": 2, "actual": None}}},
        },
    )
    assert second.status_code == 200
    data = second.json()["data"]
    assert second.json()["success"] is True
    assert data["table1"]["Manhours"]["P11"] == 1000
    assert data["table1"]["Manhours"]["P3"] == 2000
    assert data["lastUpdated"] is not None

    totals = client.get("/api/totals/sirung/Mar-26").json()
    assert totals["months"] == ["Mar-26"]
    rows = {row["indicator"]: row for row in totals["table1"]}
    assert rows["Manhours"]["total"] == 3000
    assert rows["Loss Time Injury Frequency (LTIF)"]["derived"] is True
    assert rows["Loss Time Injury Frequency (LTIF)"]["total"] == pytest.approx(666.6667, rel=1e-4)
    assert rows["Fatality"]["total"] is None
    pairs = {row["indicator"]: row for row in totals["table2"]}
    assert pairs["HSSE Audit"]["total"] == {"planned": 2, "actual": None}


def test_save_with_unknown_contract_is_404(client):
    response = _save(client, "sirung", "Mar-26", {"table1": {"Manhours": {"P2": 5}}})
    assert response.status_code == 404
    assert "P2" in response.json()["detail"]


def test_cumulative_and_month_status(client):
    _save(client, "chenda", "Mar-26", {"table1": {"Fatality": {"P2": 5}}})
    _save(client, "chenda", "May-26", {"table2": {"Safety Training": {"P8": {"planned": 1, "actual": 1}}}})
    _save(client, "chenda", "Jun-26", {"table1": {"Fatality": {"P2": 2}}})

    view = client.get("/api/cumulative/chenda").json()
    assert len(view["months"]) == 10
    fatality = next(row for row in view["table1"] if row["indicator"] == "Fatality")
    assert fatality["values"]["P2"] == 7
    assert fatality["total"] == 7

    status = client.get("/api/months/chenda").json()
    assert status["projectId"] == "chenda"
    flags = {month["id"]: month["hasData"] for month in status["months"]}
    assert flags["Mar-26"] is True
    assert flags["Apr-26"] is False
    assert flags["May-26"] is True
    assert flags["Jun-26"] is True


def test_upload_extracts_without_saving(client):
    response = client.post(
        "/api/upload/sirung/Mar-26",
        files={"hsefile": ("march.txt", REPORT, "text/plain")},
        data={"contractId": "P3"},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["filename"] == "march.txt"
    assert body["contractId"] == "P3"
    assert body["extracted"]["table1"]["Manhours"] == 12345
    assert body["extracted"]["table1"]["Loss Time Injury (LTI)"] == 1
    assert body["extracted"]["table2"]["Management Walkabout"] == {"planned": 4, "actual": 3}
    assert body["rawTextPreview"].startswith("Total Manhours")

    stored = client.get("/api/data/sirung/Mar-26").json()
    assert stored["table1"]["Manhours"]["P3"] is None


def test_upload_preview_is_truncated(client, monkeypatch):
    monkeypatch.setattr(settings, "raw_text_preview_chars", 10)
    response = client.post("/api/upload/sirung/Mar-26", files={"hsefile": ("march.txt", REPORT, "text/plain")})
    assert response.status_code == 200
    assert response.json()["rawTextPreview"] == "Total Manh"


def test_upload_without_file_is_400(client):
    response = client.post("/api/upload/sirung/Mar-26", data={"contractId": "P3"})
    assert response.status_code == 400


def test_upload_unknown_contract_is_404(client):
    response = client.post(
        "/api/upload/sirung/Mar-26",
        files={"hsefile": ("march.txt", REPORT, "text/plain")},
        data={"contractId": "P2"},
    )
    assert response.status_code == 404


def test_upload_unsupported_type_is_415(client):
    response = client.post("/api/upload/sirung/Mar-26", files={"hsefile": ("march.doc", b"binary", "application/msword")})
    assert response.status_code == 415


def test_upload_too_large_is_413(client, monkeypatch):
    monkeypatch.setattr(settings, "max_upload_bytes", 16)
    response = client.post("/api/upload/sirung/Mar-26", files={"hsefile": ("march.txt", REPORT, "text/plain")})
    assert response.status_code == 413


def test_upload_unreadable_document_is_422(client):
    response = client.post(
        "/api/upload/sirung/Mar-26",
        files={"hsefile": ("march.xlsx", b"not a workbook", "application/octet-stream")},
    )
    assert response.status_code == 422
    assert response.json()["detail"] == "Failed to extract text"


@pytest.mark.parametrize(
    "body",
    [
        {"table1": {"Manhours": 5}},
        {"table2": {"HSSE Audit": "2/1"}},
        {"table1": ["Manhours"]},
    ],
)
def test_malformed_patch_is_422(client, body):
    response = _save(client, "sirung", "Mar-26", body)
    assert response.status_code == 422
    assert client.get("/api/data/sirung/Mar-26").json()["lastUpdated"] is None

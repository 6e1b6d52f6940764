"""
Unit tests for the dashboard routes.

Authentication is overridden and the store is mocked, so these tests only
exercise routing, validation, error mapping and the alert hook.
"""
import logging
from datetime import datetime, timedelta
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from jmcc_dashboard.auth import get_current_user
from jmcc_dashboard.main import HealthCheckFilter, app
from jmcc_dashboard.services.normalizer import normalize

client = TestClient(app)

DB = "jmcc_dashboard.services.db_operations"
ALERT_CYCLE = "jmcc_dashboard.main.run_alert_cycle"

RECORD_BODY = {
    "tracker": "T-1",
    "sjm": "SJM-7",
    "journey_Plane_No": "JP-100",
    "journey_Plane_Date": "2024-05-01",
    "jp_Status": "In Transit",
    "ivms_Check_Date": "2024-05-01T09:30:00",
    "driver_Name": "A. Driver",
    "remarks": "",
}

@pytest.fixture(autouse=True)
def authenticated():
    """Skip token checks for route tests."""
    app.dependency_overrides[get_current_user] = lambda: {"username": "controller"}
    yield
    app.dependency_overrides.pop(get_current_user, None)

def test_ping():
    """Test the health check."""
    response = client.get("/ping")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}

def test_add_record_triggers_alert_cycle():
    """Test that a successful insert stores every column and schedules alerts."""
    with patch(f"{DB}.insert_record", new_callable=AsyncMock) as mock_insert, \
         patch(ALERT_CYCLE, new_callable=AsyncMock) as mock_cycle:
        response = client.post("/addRecord", json=RECORD_BODY)

    assert response.status_code == 200
    assert response.json() == {"message": "Record added successfully!"}
    columns = mock_insert.call_args[0][0]
    assert columns["journey_plan_no"] == "JP-100"
    assert columns["ivms_check_date"] == datetime(2024, 5, 1, 9, 30)
    assert columns["carrier"] is None
    mock_cycle.assert_called_once()

def test_add_record_store_failure():
    """Test that an insert failure maps to the fixed message and skips alerts."""
    with patch(f"{DB}.insert_record", new_callable=AsyncMock) as mock_insert, \
         patch(ALERT_CYCLE, new_callable=AsyncMock) as mock_cycle:
        mock_insert.side_effect = RuntimeError("duplicate key")
        response = client.post("/addRecord", json=RECORD_BODY)

    assert response.status_code == 500
    assert response.json()["detail"] == "Error inserting record."
    mock_cycle.assert_not_called()

def test_add_record_rejects_bad_date():
    """Test request validation of date columns."""
    body = dict(RECORD_BODY, ivms_Check_Date="yesterday-ish")
    with patch(f"{DB}.insert_record", new_callable=AsyncMock) as mock_insert:
        response = client.post("/addRecord", json=body)
    assert response.status_code == 422
    mock_insert.assert_not_called()

def test_dashboard_uses_frontend_keys():
    """Test that rows are returned with the keys the frontend reads."""
    rows = [{"journey_plan_no": "JP-1", "jp_status": "In Transit", "ivms_check_date": None, "sjm": "S"}]
    with patch(f"{DB}.fetch_all_records", new_callable=AsyncMock) as mock_fetch:
        mock_fetch.return_value = rows
        response = client.get("/dashboard")

    assert response.status_code == 200
    assert response.json() == [
        {"journey_Plane_No": "JP-1", "jp_Status": "In Transit", "ivms_Check_Date": None, "sjm": "S"}
    ]

def test_dashboard_store_failure():
    """Test the fetch error message."""
    with patch(f"{DB}.fetch_all_records", new_callable=AsyncMock) as mock_fetch:
        mock_fetch.side_effect = RuntimeError("timeout")
        response = client.get("/dashboard")
    assert response.status_code == 500
    assert response.json()["detail"] == "Error fetching dashboard data."

def test_modify_record_uses_path_identifier():
    """Test that the path identifier is the one updated."""
    with patch(f"{DB}.update_record", new_callable=AsyncMock) as mock_update, \
         patch(ALERT_CYCLE, new_callable=AsyncMock) as mock_cycle:
        mock_update.return_value = 1
        response = client.put("/modifyRecord/JP-100", json=dict(RECORD_BODY, remarks="done"))

    assert response.status_code == 200
    assert response.json() == {"message": "Record updated successfully!"}
    plan_no, columns = mock_update.call_args[0]
    assert plan_no == "JP-100"
    assert columns["remarks"] == "done"
    mock_cycle.assert_called_once()

def test_modify_missing_record():
    """Test that updating an unknown plan is a 404 without alerts."""
    with patch(f"{DB}.update_record", new_callable=AsyncMock) as mock_update, \
         patch(ALERT_CYCLE, new_callable=AsyncMock) as mock_cycle:
        mock_update.return_value = 0
        response = client.put("/modifyRecord/JP-404", json=RECORD_BODY)

    assert response.status_code == 404
    mock_cycle.assert_not_called()

def test_batch_update():
    """Test that a batch is written at once and alerts run once."""
    records = [dict(RECORD_BODY, journey_Plane_No="JP-1"), dict(RECORD_BODY, journey_Plane_No="JP-2")]
    with patch(f"{DB}.batch_update_records", new_callable=AsyncMock) as mock_batch, \
         patch(ALERT_CYCLE, new_callable=AsyncMock) as mock_cycle:
        mock_batch.return_value = 2
        response = client.put("/batchUpdate", json=records)

    assert response.status_code == 200
    assert response.json() == {"message": "2 record(s) updated successfully!"}
    rows = mock_batch.call_args[0][0]
    assert [row["journey_plan_no"] for row in rows] == ["JP-1", "JP-2"]
    mock_cycle.assert_called_once()

def test_batch_update_requires_identifiers():
    """Test that every record in a batch needs its plan number."""
    records = [RECORD_BODY, {"jp_Status": "Closed"}]
    with patch(f"{DB}.batch_update_records", new_callable=AsyncMock) as mock_batch:
        response = client.put("/batchUpdate", json=records)

    assert response.status_code == 400
    mock_batch.assert_not_called()

def test_delete_record():
    """Test deletion and its not-found case."""
    with patch(f"{DB}.delete_record", new_callable=AsyncMock) as mock_delete:
        mock_delete.return_value = 1
        ok = client.delete("/deleteRecord/JP-1")
        mock_delete.return_value = 0
        missing = client.delete("/deleteRecord/JP-2")

    assert ok.status_code == 200
    assert ok.json() == {"message": "Record deleted successfully!"}
    assert missing.status_code == 404

def test_send_email():
    """Test the ad-hoc e-mail route."""
    with patch("jmcc_dashboard.main.send_email") as mock_send:
        response = client.post("/sendEmail", json={"message": "Convoy held at gate 3"})

    assert response.status_code == 200
    assert response.json() == {"message": "Email sent successfully!"}
    mock_send.assert_called_once_with("Convoy held at gate 3")

def test_send_email_requires_message():
    """Test that an empty message is a 400."""
    response = client.post("/sendEmail", json={})
    assert response.status_code == 400
    assert response.json()["detail"] == "Message content is required."

def test_send_email_failure():
    """Test that a transport failure is a 500."""
    with patch("jmcc_dashboard.main.send_email", MagicMock(side_effect=OSError("relay down"))):
        response = client.post("/sendEmail", json={"message": "hello"})

    assert response.status_code == 500
    assert response.json()["detail"] == "Error sending email."

def test_alert_preview():
    """Test that the preview reports metrics and notifications without sending."""
    overdue = datetime.now() - timedelta(hours=3)
    rows = [{"journey_plan_no": "JP-9", "sjm": "S", "jp_status": "In Transit", "remarks": "", "ivms_check_date": overdue}]
    with patch(f"{DB}.fetch_in_transit_records", new_callable=AsyncMock) as mock_fetch, \
         patch("jmcc_dashboard.services.notifier.smtplib.SMTP") as mock_smtp:
        mock_fetch.return_value = rows
        response = client.get("/alerts")

    assert response.status_code == 200
    body = response.json()
    assert body["metrics"]["critical_check"] == 1
    assert body["metrics"]["live_journeys"] == 1
    assert [n["rule"] for n in body["notifications"]] == ["critical_check"]
    assert "JP-9" in body["notifications"][0]["body"]
    mock_smtp.assert_not_called()

def test_alert_errors_report():
    """Test that tracked failures are exposed."""
    with patch(f"{DB}.delete_record", new_callable=AsyncMock) as mock_delete:
        mock_delete.side_effect = RuntimeError("lock timeout")
        client.delete("/deleteRecord/JP-1")

    response = client.get("/alerts/errors")
    assert response.status_code == 200
    assert response.json()["error_types"] == {"delete": 1}

def test_alert_preview_normalizes_once():
    """Test that the preview normalizes the snapshot a single time."""
    rows = [{"journey_plan_no": "JP-1", "sjm": "S", "jp_status": "In Transit", "remarks": "", "ivms_check_date": None}]
    with patch(f"{DB}.fetch_in_transit_records", new_callable=AsyncMock) as mock_fetch, \
         patch("jmcc_dashboard.services.alert_engine.normalize", wraps=normalize) as mock_normalize:
        mock_fetch.return_value = rows
        response = client.get("/alerts")

    assert response.status_code == 200
    assert response.json()["metrics"]["due_for_checking"] == 1
    assert mock_normalize.call_count == 1

def test_health_check_filter():
    """Test that uvicorn access lines for /ping are dropped and others kept."""
    health_filter = HealthCheckFilter()

    def access_record(path):
        return logging.LogRecord(
            "uvicorn.access", logging.INFO, __file__, 0,
            '%s - "%s %s HTTP/%s" %d', ("127.0.0.1:5000", "GET", path, "1.1", 200), None,
        )

    assert not health_filter.filter(access_record("/ping"))
    assert health_filter.filter(access_record("/dashboard"))
    assert health_filter in logging.getLogger("uvicorn.access").filters

def test_shutdown_disposes_engine():
    """Test that leaving the app lifespan disposes the database engine."""
    with patch(f"{DB}.dispose_engine", new_callable=AsyncMock) as mock_dispose:
        with TestClient(app) as lifespan_client:
            assert lifespan_client.get("/ping").status_code == 200
            mock_dispose.assert_not_awaited()
    mock_dispose.assert_awaited_once()

import asyncio
import time

import pytest
from fastapi.testclient import TestClient

from leaselogic.core.constants import CheckpointKind
from leaselogic.main import create_app
from tests.fakes import SAMPLE_LEASE, no_sleep

ANALYZE_BODY = {
    "fileId": "f1",
    "fileName": "lease.txt",
    "fileSize": len(SAMPLE_LEASE.encode("utf-8")),
    "contentType": "text/plain",
}


def wait_for_terminal(client, analysis_id, timeout=10.0):
    """Poll the status endpoint until the job leaves Running."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        body = client.get(f"/api/status/{analysis_id}").json()
        if body["status"] != "Running":
            return body
        time.sleep(0.05)
    raise AssertionError(f"Analysis {analysis_id} still running after {timeout}s")


@pytest.fixture
def client(settings, registry, file_store):
    app = create_app(settings, registry=registry, file_store=file_store, sleep=no_sleep)
    with TestClient(app) as test_client:
        yield test_client


@pytest.mark.api
class TestAnalysisAPI:
    def test_health(self, client):
        """Test health check endpoint."""
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok", "env": "test"}

    def test_analyze_to_result(self, client):
        """Test a submitted lease runs to completion and its Result is served."""
        response = client.post("/api/analyze", json=ANALYZE_BODY)
        assert response.status_code == 200
        data = response.json()
        analysis_id = data["analysisId"]
        assert data["status"] == "Running"
        assert data["statusUrl"] == f"/api/status/{analysis_id}"
        assert data["resultUrl"] == f"/api/result/{analysis_id}"
        assert data["estimatedDuration"] == "5-10 minutes"
        assert "createdTime" in data

        status = wait_for_terminal(client, analysis_id)
        assert status["status"] == "Completed"
        assert status["progress"] == {
            "currentStep": "Done",
            "percentage": 100,
            "message": "Analysis completed",
        }
        assert status["fileInfo"]["fileName"] == "lease.txt"
        assert status["result"]["analysisId"] == analysis_id
        assert status["error"] is None

        response = client.get(f"/api/result/{analysis_id}")
        assert response.status_code == 200
        result = response.json()
        assert result["analysisResult"]["isLease"] is True
        assert result["analysisResult"]["leaseType"] == "OperatingLease"
        assert result == status["result"]

    def test_failed_analysis_serves_fallback_result(self, client, file_store):
        """Test an unsupported document ends Failed with an error Result."""
        file_store.save("docx-1", b"PK\x03\x04")
        response = client.post("/api/analyze", json={
            "fileId": "docx-1",
            "fileName": "contract.docx",
            "fileSize": 4,
            "contentType": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        })
        analysis_id = response.json()["analysisId"]

        status = wait_for_terminal(client, analysis_id)
        assert status["status"] == "Failed"
        assert status["progress"]["currentStep"] == "Parsing"
        assert status["progress"]["percentage"] == 0
        assert "No text extractor" in status["error"]

        result = client.get(f"/api/result/{analysis_id}").json()
        assert result["analysisResult"]["isLease"] is False
        assert result["analysisResult"]["confidence"] == 0.0

    def test_missing_field(self, client):
        """Test a request without fileId is rejected with 400."""
        body = {key: value for key, value in ANALYZE_BODY.items() if key != "fileId"}
        response = client.post("/api/analyze", json=body)
        assert response.status_code == 400
        assert "fileId" in response.json()["errors"]["fields"]

    def test_blank_field(self, client):
        """Test a blank fileName is rejected with 400."""
        response = client.post("/api/analyze", json={**ANALYZE_BODY, "fileName": ""})
        assert response.status_code == 400
        assert "fileName" in response.json()["detail"]

    def test_unsupported_content_type(self, client):
        """Test unsupported MIME types are rejected with 400."""
        response = client.post("/api/analyze", json={**ANALYZE_BODY, "contentType": "image/png"})
        assert response.status_code == 400
        assert response.json()["detail"].startswith("Unsupported file type")

    def test_file_too_large(self, client):
        """Test files over the size limit are rejected with 400."""
        response = client.post("/api/analyze", json={**ANALYZE_BODY, "fileSize": 52_428_801})
        assert response.status_code == 400
        assert "50MB" in response.json()["detail"]

    def test_unknown_file(self, client):
        """Test a request for a file that was never uploaded returns 404."""
        response = client.post("/api/analyze", json={**ANALYZE_BODY, "fileId": "missing"})
        assert response.status_code == 404
        assert response.json()["errors"] == {"fileId": "missing"}

    @pytest.mark.parametrize("path", ["/api/status/nope", "/api/result/nope"])
    def test_unknown_analysis(self, client, path):
        """Test unknown analysis ids return 404."""
        assert client.get(path).status_code == 404

    def test_terminate_unknown_analysis(self, client):
        """Test terminating an unknown id returns 404."""
        assert client.post("/api/terminate/nope").status_code == 404


@pytest.fixture
def slow_client(settings, registry, activities, file_store):
    """Client whose Parsing phase takes long enough to observe a Running job."""
    async def slow_down(payload):
        await asyncio.sleep(1.0)

    activities[CheckpointKind.PARSING].before = slow_down
    app = create_app(settings, registry=registry, file_store=file_store, sleep=no_sleep)
    with TestClient(app) as test_client:
        yield test_client


@pytest.mark.api
class TestRunningAnalysisAPI:
    def test_result_not_ready_then_terminate(self, slow_client):
        """Test a running job reports its status, then terminates on request."""
        analysis_id = slow_client.post("/api/analyze", json=ANALYZE_BODY).json()["analysisId"]

        response = slow_client.get(f"/api/result/{analysis_id}")
        assert response.status_code == 400
        assert response.json()["status"] == "Running"

        response = slow_client.post(f"/api/terminate/{analysis_id}")
        assert response.status_code == 200
        assert response.json()["analysisId"] == analysis_id

        status = wait_for_terminal(slow_client, analysis_id)
        assert status["status"] == "Terminated"
        assert status["progress"]["percentage"] == 0
        assert status["error"] == "Terminated by external request"

        result = slow_client.get(f"/api/result/{analysis_id}").json()
        assert result["analysisResult"]["summary"]["contractType"] == "解析中止"

        # terminating a finished job is a no-op
        response = slow_client.post(f"/api/terminate/{analysis_id}")
        assert response.status_code == 200
        assert response.json()["status"] == "Terminated"

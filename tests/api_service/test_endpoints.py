"""
HTTP tests for the processing endpoints.

The DI container is patched so every route talks to a real
PostMeetingProcessor over the in-memory store with fake providers.
"""

from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from api_service.src.main import app
from conftest import FakeAnalyzer, FakeTranscriptionProvider, make_meeting
from domain.models import MeetingStatus
from services.processing_service import PostMeetingProcessor
from shared_utils.constants import APIEndpoints

client = TestClient(app)


def _url(template: str, meeting_id: str) -> str:
    return template.format(meeting_id=meeting_id)


@pytest.fixture
def processor(store):
    proc = PostMeetingProcessor(
        store,
        transcription_provider=FakeTranscriptionProvider(),
        analyzer=FakeAnalyzer(),
    )
    yield proc
    proc.shutdown()


@pytest.fixture
def container(processor):
    mock_container = MagicMock()
    mock_container.get_processor.return_value = processor
    mock_container.ai_status.return_value = {
        "isConfigured": True,
        "features": {"summarization": True, "actionItemExtraction": True, "transcription": True},
    }
    with patch("api_service.src.main.get_di_container", return_value=mock_container):
        yield mock_container


def test_health_check():
    response = client.get(APIEndpoints.HEALTH)
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


class TestAIStatus:
    def test_reports_features(self, container) -> None:
        response = client.get(APIEndpoints.AI_STATUS)
        assert response.status_code == 200
        assert response.json()["features"]["actionItemExtraction"] is True

    def test_provider_failure_is_500(self, container) -> None:
        container.ai_status.side_effect = RuntimeError("Provider initialization failed")
        response = client.get(APIEndpoints.AI_STATUS)
        assert response.status_code == 500
        assert response.json()["error"]["code"] == "INTERNAL_ERROR"


class TestProcessEndpoint:
    def test_queues_and_acknowledges(self, container, processor, store) -> None:
        response = client.post(
            _url(APIEndpoints.PROCESS, "m1"),
            json={"audioUrl": "https://cdn.example.com/m1.wav"},
        )
        assert response.status_code == 202
        body = response.json()
        assert body["queued"] is True
        assert body["jobId"].startswith("job_m1_")

        processor.shutdown()
        assert store.get_meeting("m1").status == MeetingStatus.ENDED
        assert store.count_action_items("m1") == 2

    def test_body_is_optional(self, container, processor, store) -> None:
        response = client.post(_url(APIEndpoints.PROCESS, "m2"))
        assert response.status_code == 202
        processor.shutdown()
        assert store.get_meeting("m2").ai_summary is not None

    def test_unknown_meeting_is_404(self, container) -> None:
        response = client.post(_url(APIEndpoints.PROCESS, "missing"))
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOT_FOUND"

    def test_invalid_audio_url_is_400(self, container) -> None:
        response = client.post(_url(APIEndpoints.PROCESS, "m1"), json={"audioUrl": "ftp://x/a.wav"})
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_INPUT"

    def test_invalid_meeting_id_is_400(self, container) -> None:
        response = client.post(_url(APIEndpoints.PROCESS, "bad id"))
        assert response.status_code == 400


class TestProcessingStatusEndpoint:
    def test_unknown_meeting_reports_pending(self, container) -> None:
        response = client.get(_url(APIEndpoints.PROCESSING_STATUS, "missing"))
        assert response.status_code == 200
        assert response.json() == {
            "status": "pending",
            "hasTranscript": False,
            "hasSummary": False,
            "actionItemCount": 0,
            "jobState": None,
        }

    def test_after_processing(self, container, processor) -> None:
        processor.process_meeting("m2")
        body = client.get(_url(APIEndpoints.PROCESSING_STATUS, "m2")).json()
        assert body["status"] == "completed"
        assert body["hasSummary"] is True
        assert body["actionItemCount"] == 2
        assert body["jobState"] == "SUCCEEDED"


class TestReprocessEndpoint:
    def test_returns_result(self, container) -> None:
        response = client.post(_url(APIEndpoints.REPROCESS, "m2"))
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["meetingId"] == "m2"
        assert body["actionItemCount"] == 2
        assert body["summary"]["keyPoints"] == ["API is on track"]

    def test_without_transcript(self, container) -> None:
        body = client.post(_url(APIEndpoints.REPROCESS, "m1")).json()
        assert body["success"] is False
        assert body["errors"] == ["No transcript found for reprocessing"]

    def test_unknown_meeting_is_404(self, container) -> None:
        assert client.post(_url(APIEndpoints.REPROCESS, "missing")).status_code == 404


class TestSummaryEndpoint:
    def test_null_before_processing(self, container) -> None:
        response = client.get(_url(APIEndpoints.SUMMARY, "m1"))
        assert response.status_code == 200
        assert response.json() is None

    def test_after_processing(self, container, processor) -> None:
        processor.process_meeting("m2")
        body = client.get(_url(APIEndpoints.SUMMARY, "m2")).json()
        assert body["title"] == "Weekly sync"
        assert body["sentiment"] == "positive"
        assert body["engagementScore"] == 80

    def test_legacy_text_summary(self, container, store) -> None:
        legacy = make_meeting("m9", status=MeetingStatus.ENDED).model_copy(
            update={"ai_summary": "Old notes", "ai_summary_format": None}
        )
        store.add_meeting(legacy)
        assert client.get(_url(APIEndpoints.SUMMARY, "m9")).json() == {"raw": "Old notes"}

    def test_unknown_meeting_is_404(self, container) -> None:
        assert client.get(_url(APIEndpoints.SUMMARY, "missing")).status_code == 404

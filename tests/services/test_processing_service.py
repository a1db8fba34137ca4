"""
Unit tests for PostMeetingProcessor.

All collaborators are in-memory fakes. No network or database is touched.
"""

import re
import threading
import time
from unittest.mock import MagicMock

import pytest

from conftest import (
    FakeAnalyzer,
    FakeTranscriptionProvider,
    default_items,
    make_meeting,
)
from domain.models import (
    ActionItemStatus,
    MeetingStatus,
    NewActionItem,
    ProcessingJobState,
    ProcessingOptions,
    ProcessingStatus,
)
from services.processing_service import PostMeetingProcessor, build_participant_names
from services.result_persister import deserialize_summary
from shared_utils.error_handler import NotFoundError, PersistenceError


def make_processor(store, transcription_provider=None, analyzer=None, notifier=None, **kwargs):
    return PostMeetingProcessor(
        store,
        transcription_provider=transcription_provider,
        analyzer=analyzer,
        notifier=notifier,
        **kwargs,
    )


# ======================================================================
# Participant names
# ======================================================================

class TestBuildParticipantNames:
    def test_host_first_then_linked_users(self) -> None:
        names = build_participant_names(make_meeting("m1"))
        # guest without a user is skipped; nameless user falls back to label
        assert names == ["Alice", "Bob", "Participant"]

    def test_host_falls_back_to_email_then_label(self) -> None:
        meeting = make_meeting("m1")
        meeting.host = meeting.host.model_copy(update={"name": None})
        assert build_participant_names(meeting)[0] == "alice@example.com"
        meeting.host = meeting.host.model_copy(update={"email": None})
        assert build_participant_names(meeting)[0] == "Host"


# ======================================================================
# process_meeting
# ======================================================================

class TestProcessMeeting:
    def test_meeting_not_found(self, store) -> None:
        result = make_processor(store).process_meeting("nope")
        assert result.success is False
        assert result.errors == ["Meeting not found"]

    def test_no_segments_no_audio_records_skips_only(self, store) -> None:
        asr = FakeTranscriptionProvider()
        analyzer = FakeAnalyzer()
        result = make_processor(store, asr, analyzer).process_meeting("m1")

        assert asr.calls == []
        assert analyzer.calls == []
        assert all("skipped" in e for e in result.errors)
        assert result.success is False
        assert result.summary is None
        assert result.action_item_count is None

        meeting = store.get_meeting("m1")
        assert meeting.status == MeetingStatus.ENDED
        assert meeting.actual_end is not None
        assert meeting.ai_summary is None
        assert store.count_action_items("m1") == 0

    def test_empty_existing_transcript_is_treated_as_missing(self, store) -> None:
        analyzer = FakeAnalyzer()
        result = make_processor(store, None, analyzer).process_meeting(
            "m1", ProcessingOptions(existing_transcript="", skip_transcription=True)
        )
        assert analyzer.calls == []
        assert result.summary is None
        assert "AI analysis skipped: no transcript available" in result.errors

    def test_audio_scenario_persists_three_segments(self, store) -> None:
        asr = FakeTranscriptionProvider()
        analyzer = FakeAnalyzer()
        result = make_processor(store, asr, analyzer).process_meeting(
            "m1", ProcessingOptions(audio_url="https://x/audio.wav")
        )

        assert result.success is True, result.errors
        assert result.transcript_segment_count == 3
        assert len(asr.calls) == 1
        source, config = asr.calls[0]
        assert source == "https://x/audio.wav"
        assert config.diarize and config.punctuate and config.smart_format

        segments = store.list_transcript_segments("m1")
        starts = [s.start_time for s in segments]
        assert starts == [0, 10250, 30500]
        assert starts == sorted(starts)
        assert segments[2].speaker_name == "Unknown"

    def test_audio_scenario_formats_provider_segments_for_analysis(self, store) -> None:
        seen = {}

        class CapturingAnalyzer(FakeAnalyzer):
            def summarize(self, transcript, meeting_title, participant_names):
                seen["transcript"] = transcript
                return super().summarize(transcript, meeting_title, participant_names)

        make_processor(store, FakeTranscriptionProvider(), CapturingAnalyzer()).process_meeting(
            "m1", ProcessingOptions(audio_url="https://x/audio.wav")
        )
        transcript = seen["transcript"]
        assert len(re.findall(r"\[\d{2}:\d{2}\]", transcript)) == 3
        assert transcript.splitlines()[2] == "[00:30] Speaker: Let's wrap up."

    def test_transcription_failure_is_non_fatal(self, store) -> None:
        asr = FakeTranscriptionProvider(error=RuntimeError("boom"))
        analyzer = FakeAnalyzer()
        result = make_processor(store, asr, analyzer).process_meeting(
            "m1", ProcessingOptions(audio_url="https://x/audio.wav")
        )
        assert "Transcription failed: boom" in result.errors
        assert analyzer.calls == []
        assert store.get_meeting("m1").status == MeetingStatus.ENDED

    def test_summary_failure_nulls_analysis(self, store) -> None:
        analyzer = FakeAnalyzer(summary_error=RuntimeError("LLM down"))
        transcript = "[00:00] Alice: " + "x" * 485
        assert len(transcript) == 500

        result = make_processor(store, None, analyzer).process_meeting(
            "m2", ProcessingOptions(existing_transcript=transcript)
        )

        assert result.success is False
        assert result.summary is None
        assert any(e.startswith("AI analysis failed:") for e in result.errors)
        meeting = store.get_meeting("m2")
        assert meeting.status == MeetingStatus.ENDED
        assert meeting.ai_summary is None
        assert store.count_action_items("m2") == 0

    def test_sentiment_failure_falls_back_to_neutral(self, store) -> None:
        analyzer = FakeAnalyzer(sentiment_error=RuntimeError("bad json"))
        result = make_processor(store, None, analyzer).process_meeting("m2")

        assert result.success is True
        stored = deserialize_summary(store.get_meeting("m2").ai_summary)
        assert stored["sentiment"] == "neutral"
        assert stored["engagementScore"] == 50

    def test_action_item_failure_keeps_summary(self, store) -> None:
        analyzer = FakeAnalyzer(items_error=RuntimeError("parse"))
        result = make_processor(store, None, analyzer).process_meeting("m2")

        assert result.summary is not None
        assert result.action_item_count == 0
        assert result.errors == ["Action item extraction failed: parse"]
        assert store.get_meeting("m2").ai_summary is not None

    def test_llm_not_configured(self, store) -> None:
        result = make_processor(store).process_meeting("m2")
        assert result.errors == ["AI analysis skipped: LLM provider not configured"]
        assert store.get_meeting("m2").status == MeetingStatus.ENDED

    def test_existing_segments_are_used_before_audio(self, store) -> None:
        asr = FakeTranscriptionProvider()
        analyzer = FakeAnalyzer()
        result = make_processor(store, asr, analyzer).process_meeting(
            "m2", ProcessingOptions(audio_url="https://x/audio.wav")
        )
        assert asr.calls == []
        assert result.transcript_segment_count is None
        assert result.success is True

    def test_successful_run_persists_everything(self, store) -> None:
        result = make_processor(store, None, FakeAnalyzer()).process_meeting("m2")

        assert result.success is True
        assert result.errors == []
        assert result.action_item_count == 2
        assert result.summary.title == "Weekly sync"
        assert result.processing_time >= 0

        meeting = store.get_meeting("m2")
        assert meeting.ai_summary_format == "json"
        assert meeting.processing_state == ProcessingJobState.SUCCEEDED
        items = store.list_action_items("m2")
        assert {i.title for i in items} == {"Ship API", "Write notes"}
        assert all(i.ai_generated and i.status == ActionItemStatus.PENDING for i in items)

    def test_notifier_called_only_when_requested(self, store) -> None:
        notifier = MagicMock()
        processor = make_processor(store, None, FakeAnalyzer(), notifier)

        processor.process_meeting("m2")
        notifier.notify_meeting_summary.assert_not_called()

        processor.process_meeting("m2", ProcessingOptions(notify_participants=True))
        notifier.notify_meeting_summary.assert_called_once()

    def test_notifier_not_called_without_analysis(self, store) -> None:
        notifier = MagicMock()
        make_processor(store, None, None, notifier).process_meeting(
            "m2", ProcessingOptions(notify_participants=True)
        )
        notifier.notify_meeting_summary.assert_not_called()

    def test_notifier_failure_never_surfaces(self, store) -> None:
        notifier = MagicMock()
        notifier.notify_meeting_summary.side_effect = RuntimeError("smtp down")
        result = make_processor(store, None, FakeAnalyzer(), notifier).process_meeting(
            "m2", ProcessingOptions(notify_participants=True)
        )
        assert result.success is True
        assert result.errors == []

    def test_persistence_failure_is_reported_not_raised(self, store) -> None:
        store.save_analysis = MagicMock(side_effect=PersistenceError("disk full", meeting_id="m2"))
        result = make_processor(store, None, FakeAnalyzer()).process_meeting("m2")

        assert result.success is False
        assert result.errors == ["disk full"]
        assert store.get_meeting("m2").processing_state == ProcessingJobState.FAILED

    def test_failed_run_records_failed_state(self, store) -> None:
        make_processor(store, None, FakeAnalyzer(summary_error=RuntimeError("x"))).process_meeting("m2")
        meeting = store.get_meeting("m2")
        assert meeting.processing_state == ProcessingJobState.FAILED
        assert "AI analysis failed: x" in meeting.processing_error


# ======================================================================
# Idempotence: process twice vs reprocess twice
# ======================================================================

class TestRepeatedRuns:
    def test_process_twice_duplicates_action_items(self, store) -> None:
        processor = make_processor(store, None, FakeAnalyzer())
        options = ProcessingOptions(skip_transcription=True, existing_transcript="[00:00] Alice: hi")
        processor.process_meeting("m2", options)
        processor.process_meeting("m2", options)
        assert store.count_action_items("m2") == 4

    def test_reprocess_twice_does_not_duplicate(self, store) -> None:
        processor = make_processor(store, None, FakeAnalyzer())
        first = processor.reprocess_meeting("m2")
        second = processor.reprocess_meeting("m2")
        assert first.success and second.success
        assert store.count_action_items("m2") == 2


# ======================================================================
# reprocess_meeting
# ======================================================================

class TestReprocessMeeting:
    def test_requires_transcript(self, store) -> None:
        analyzer = FakeAnalyzer()
        result = make_processor(store, None, analyzer).reprocess_meeting("m1")
        assert result.success is False
        assert result.errors == ["No transcript found for reprocessing"]
        assert analyzer.calls == []

    def test_missing_meeting_reports_no_transcript(self, store) -> None:
        result = make_processor(store, None, FakeAnalyzer()).reprocess_meeting("ghost")
        assert result.success is False
        assert result.errors == ["No transcript found for reprocessing"]

    def test_deletes_all_items_including_manual_ones(self, store) -> None:
        store.create_action_item("m2", NewActionItem(title="Manual follow-up", ai_generated=False))
        store.create_action_item("m2", NewActionItem(title="Old AI item", ai_generated=True))

        result = make_processor(store, None, FakeAnalyzer(items=[])).reprocess_meeting("m2")

        assert result.success is True
        assert store.count_action_items("m2") == 0

    def test_count_after_equals_new_extraction(self, store) -> None:
        processor = make_processor(store, None, FakeAnalyzer())
        processor.process_meeting("m2")
        assert store.count_action_items("m2") == 2

        processor_one = make_processor(store, None, FakeAnalyzer(items=default_items()[:1]))
        processor_one.reprocess_meeting("m2")
        assert store.count_action_items("m2") == 1

    def test_uses_stored_transcript_in_start_order(self, store) -> None:
        seen = {}

        class CapturingAnalyzer(FakeAnalyzer):
            def summarize(self, transcript, meeting_title, participant_names):
                seen["transcript"] = transcript
                return super().summarize(transcript, meeting_title, participant_names)

        asr = FakeTranscriptionProvider()
        make_processor(store, asr, CapturingAnalyzer()).reprocess_meeting("m2")

        assert asr.calls == []
        assert seen["transcript"].splitlines() == [
            "[00:00] Alice: Welcome everyone.",
            "[00:15] Alice: Great, thanks Bob.",
            "[01:05] Bob: I will ship the API by Friday.",
        ]

    def test_store_crash_is_reported(self, store) -> None:
        store.delete_action_items = MagicMock(side_effect=PersistenceError("locked"))
        result = make_processor(store, None, FakeAnalyzer()).reprocess_meeting("m2")
        assert result.success is False
        assert result.errors == ["locked"]


# ======================================================================
# Concurrency
# ======================================================================

class TestConcurrentRuns:
    def test_concurrent_process_calls_do_not_double_insert(self, store) -> None:
        gate = threading.Event()
        analyzer = FakeAnalyzer(gate=gate)
        processor = make_processor(store, None, analyzer)
        results = []

        def run() -> None:
            results.append(processor.process_meeting("m2"))

        first = threading.Thread(target=run)
        first.start()
        assert analyzer.entered.wait(timeout=5)

        second = threading.Thread(target=run)
        second.start()
        deadline = time.time() + 5
        while processor._coordinator.coalesced < 1 and time.time() < deadline:
            time.sleep(0.01)

        gate.set()
        first.join(timeout=5)
        second.join(timeout=5)

        assert len(results) == 2
        assert processor._coordinator.coalesced == 1
        assert analyzer.calls.count("summarize") == 1
        assert store.count_action_items("m2") == 2

    def test_reprocess_during_process_joins_without_deleting(self, store) -> None:
        store.create_action_item("m2", NewActionItem(title="Manual follow-up", ai_generated=False))
        gate = threading.Event()
        analyzer = FakeAnalyzer(gate=gate)
        processor = make_processor(store, None, analyzer)
        results = {}

        first = threading.Thread(
            target=lambda: results.__setitem__("process", processor.process_meeting("m2"))
        )
        first.start()
        assert analyzer.entered.wait(timeout=5)

        second = threading.Thread(
            target=lambda: results.__setitem__("reprocess", processor.reprocess_meeting("m2"))
        )
        second.start()
        deadline = time.time() + 5
        while processor._coordinator.coalesced < 1 and time.time() < deadline:
            time.sleep(0.01)

        gate.set()
        first.join(timeout=5)
        second.join(timeout=5)

        assert results["reprocess"] is results["process"]
        assert analyzer.calls.count("summarize") == 1
        assert store.count_action_items("m2") == 3


# ======================================================================
# Status and summary
# ======================================================================

class TestStatusAndSummary:
    def test_status_for_missing_meeting(self, store) -> None:
        report = make_processor(store).get_processing_status("missing-id")
        assert report.model_dump(by_alias=True, exclude={"job_state"}) == {
            "status": ProcessingStatus.PENDING,
            "hasTranscript": False,
            "hasSummary": False,
            "actionItemCount": 0,
        }

    def test_status_after_processing(self, store) -> None:
        processor = make_processor(store, None, FakeAnalyzer())
        processor.process_meeting("m2")
        report = processor.get_processing_status("m2")
        assert report.status == ProcessingStatus.COMPLETED
        assert report.has_transcript and report.has_summary
        assert report.action_item_count == 2
        assert report.job_state == ProcessingJobState.SUCCEEDED

    def test_status_lookup_failure_reports_pending(self) -> None:
        broken = MagicMock()
        broken.get_meeting.side_effect = PersistenceError("down")
        report = make_processor(broken).get_processing_status("m1")
        assert report.status == ProcessingStatus.PENDING

    def test_get_summary(self, store) -> None:
        processor = make_processor(store, None, FakeAnalyzer())
        assert processor.get_summary("m2") is None
        processor.process_meeting("m2")
        assert processor.get_summary("m2")["keyPoints"] == ["API is on track"]

    def test_get_summary_missing_meeting(self, store) -> None:
        with pytest.raises(NotFoundError):
            make_processor(store).get_summary("ghost")


# ======================================================================
# Background queue
# ======================================================================

class TestQueueMeetingForProcessing:
    def test_returns_receipt_and_runs_in_background(self, store) -> None:
        processor = make_processor(store, None, FakeAnalyzer())
        receipt = processor.queue_meeting_for_processing("m2")

        assert receipt.queued is True
        assert re.fullmatch(r"job_m2_\d{13}", receipt.job_id)

        processor.shutdown()
        assert store.count_action_items("m2") == 2
        assert store.get_meeting("m2").processing_state == ProcessingJobState.SUCCEEDED

    def test_recover_requeues_interrupted_runs(self, store) -> None:
        store.set_processing_state("m2", ProcessingJobState.RUNNING)
        processor = make_processor(store, None, FakeAnalyzer())

        receipts = processor.recover_pending()
        processor.shutdown()

        assert [r.job_id.split("_")[1] for r in receipts] == ["m2"]
        assert store.get_meeting("m2").processing_state == ProcessingJobState.SUCCEEDED

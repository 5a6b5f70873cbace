"""Unit tests for the reconciliation coordinator."""

from unittest.mock import MagicMock

import pytest

from sermon_audio.core.events.types import EventType
from sermon_audio.core.exceptions import ReconciliationInProgressError, TransientJobError
from sermon_audio.core.jobs.client import Failed, Finished, JobResult
from sermon_audio.core.jobs.kinds import JobKind
from sermon_audio.refresh.coordinator import ReconciliationResult, has_outstanding_job
from tests.conftest import build_record, build_translation


@pytest.mark.unit
class TestReconcile:
    """Tests for ReconciliationCoordinator.reconcile."""

    def test_only_translations_with_a_job_are_refreshed(self, coordinator, cleaning_client):
        """Translations without a job id never reach the client."""
        en = build_translation("en", cleaning_job_id="job-en")
        de = build_translation("de")
        cleaning_client.set_status("job-en", Finished(JobResult("audio/en.m4a", duration=30.0)))

        result = coordinator.reconcile(build_record(en, de), JobKind.CLEANING)

        assert cleaning_client.calls == ["job-en"]
        assert result.requires_save is True
        assert result.applied == [(en, JobKind.CLEANING)]

    def test_requires_save_when_any_translation_mutated(self, coordinator, cleaning_client):
        """A failure on one translation still marks the record for saving."""
        en = build_translation("en", cleaning_job_id="job-en")
        de = build_translation("de", cleaning_job_id="job-de")
        cleaning_client.set_status("job-de", Failed("bad input"))

        result = coordinator.reconcile(build_record(en, de), JobKind.CLEANING)

        assert result.requires_save is True
        assert result.applied == []
        assert en.cleaning_job_id == "job-en"
        assert de.cleaning_job_failed is True

    def test_pending_jobs_need_no_save(self, coordinator):
        """Pending jobs leave an empty result."""
        record = build_record(build_translation(cleaning_job_id="job-1"))

        result = coordinator.reconcile(record, JobKind.CLEANING)

        assert result == ReconciliationResult()

    def test_transient_error_aborts_the_pass(self, coordinator, cleaning_client):
        """A transient error stops the pass before later translations are applied."""
        en = build_translation("en", cleaning_job_id="job-en")
        de = build_translation("de", cleaning_job_id="job-de")
        cleaning_client.set_status("job-en", TransientJobError("timeout"))
        cleaning_client.set_status("job-de", Finished(JobResult("audio/de.m4a", duration=1.0)))

        with pytest.raises(TransientJobError):
            coordinator.reconcile(build_record(en, de), JobKind.CLEANING)
        assert de.processed_audio_ref is None


@pytest.mark.unit
class TestReconcileOutstanding:
    """Tests for the read-path refresh."""

    def test_refreshes_all_kinds(self, coordinator, cleaning_client, transcription_client, transcript_storage):
        """The read path refreshes cleaning and transcription together."""
        translation = build_translation(cleaning_job_id="job-1", transcription_job_id="tjob-1")
        cleaning_client.set_status("job-1", Finished(JobResult("audio/clean.m4a", duration=5.0)))
        transcript_storage.put(
            "tjob-1.xml",
            '<transcription><segment start="0" end="1">Hi guys!</segment></transcription>',
        )
        transcription_client.set_status("tjob-1", Finished(JobResult("tjob-1.xml")))

        result = coordinator.reconcile_outstanding(build_record(translation))

        assert result.applied == [(translation, JobKind.CLEANING), (translation, JobKind.TRANSCRIPTION)]
        assert translation.processed_audio_ref == "audio/clean.m4a"
        assert translation.transcription_sub_key is not None

    def test_skips_failed_jobs(self, coordinator, cleaning_client):
        """Jobs already marked failed are not queried again."""
        translation = build_translation(cleaning_job_id="job-1", cleaning_job_failed=True)

        result = coordinator.reconcile_outstanding(build_record(translation))

        assert result.requires_save is False
        assert cleaning_client.calls == []

    def test_has_outstanding_job(self):
        """Only an unfailed job id without a result counts as outstanding."""
        assert has_outstanding_job(build_translation(transcription_job_id="t"), JobKind.TRANSCRIPTION)
        assert not has_outstanding_job(build_translation(), JobKind.TRANSCRIPTION)
        assert not has_outstanding_job(
            build_translation(transcription_job_id="t", transcription_sub_key="final/x.html"),
            JobKind.TRANSCRIPTION,
        )

    def test_refresh_on_read_stands_down_while_guarded(self, coordinator, guard, cleaning_client):
        """The read hook does nothing while another pass holds the record."""
        record = build_record(build_translation(cleaning_job_id="job-1"), record_id=7)
        cleaning_client.set_status("job-1", Finished(JobResult("audio/clean.m4a", duration=5.0)))

        with guard.exclusive(7):
            assert coordinator.refresh_on_read(record) is False
        assert cleaning_client.calls == []

        assert coordinator.refresh_on_read(record) is True
        assert not guard.is_active(7)


@pytest.mark.unit
class TestReconcileAndPersist:
    """Tests for the save-then-notify sequence with a mocked store."""

    def test_saves_then_notifies(self, coordinator, cleaning_client):
        """The record is saved before any notification goes out."""
        translation = build_translation(cleaning_job_id="job-1")
        record = build_record(translation, record_id=3)
        cleaning_client.set_status("job-1", Finished(JobResult("audio/clean.m4a", duration=5.0)))
        calls = []
        store = MagicMock()
        store.load.return_value = record
        store.save.side_effect = lambda r: calls.append("save")
        dispatcher = MagicMock()
        dispatcher.dispatch.side_effect = lambda translations, kind: calls.append(("dispatch", kind))

        result = coordinator.reconcile_and_persist(3, JobKind.CLEANING, store, dispatcher)

        assert result.requires_save is True
        assert calls == ["save", ("dispatch", JobKind.CLEANING)]
        dispatcher.dispatch.assert_called_once_with([translation], JobKind.CLEANING)

    def test_no_save_no_notification_when_unchanged(self, coordinator):
        """An unchanged record is neither saved nor announced."""
        store = MagicMock()
        store.load.return_value = build_record(build_translation(cleaning_job_id="job-1"), record_id=3)
        dispatcher = MagicMock()

        coordinator.reconcile_and_persist(3, JobKind.CLEANING, store, dispatcher)

        store.save.assert_not_called()
        dispatcher.dispatch.assert_not_called()

    def test_failed_job_is_saved_but_not_announced(self, coordinator, cleaning_client):
        """A failed job is persisted without an event."""
        store = MagicMock()
        store.load.return_value = build_record(build_translation(cleaning_job_id="job-1"), record_id=3)
        cleaning_client.set_status("job-1", Failed("nope"))
        dispatcher = MagicMock()

        coordinator.reconcile_and_persist(3, JobKind.CLEANING, store, dispatcher)

        store.save.assert_called_once()
        dispatcher.dispatch.assert_not_called()

    def test_missing_record(self, coordinator):
        """A missing record yields None."""
        store = MagicMock()
        store.load.return_value = None

        assert coordinator.reconcile_and_persist(3, JobKind.CLEANING, store, MagicMock()) is None

    def test_save_failure_suppresses_notification(self, coordinator, cleaning_client, guard):
        """A failed save sends nothing and releases the guard."""
        store = MagicMock()
        store.load.return_value = build_record(build_translation(cleaning_job_id="job-1"), record_id=3)
        store.save.side_effect = RuntimeError("database gone")
        cleaning_client.set_status("job-1", Finished(JobResult("audio/clean.m4a", duration=5.0)))
        dispatcher = MagicMock()

        with pytest.raises(RuntimeError):
            coordinator.reconcile_and_persist(3, JobKind.CLEANING, store, dispatcher)
        dispatcher.dispatch.assert_not_called()
        assert not guard.is_active(3)

    def test_concurrent_pass_is_rejected(self, coordinator, guard):
        """A second pass on a guarded record is refused before loading."""
        store = MagicMock()

        with guard.exclusive(3):
            with pytest.raises(ReconciliationInProgressError):
                coordinator.reconcile_and_persist(3, JobKind.CLEANING, store, MagicMock())
        store.load.assert_not_called()

    def test_notifies_on_the_bus(self, coordinator, cleaning_client, dispatcher, published_events):
        """Applied results are published on the event bus."""
        translation = build_translation(cleaning_job_id="job-1")
        store = MagicMock()
        store.load.return_value = build_record(translation, record_id=3)
        cleaning_client.set_status("job-1", Finished(JobResult("audio/clean.m4a", duration=5.0)))

        coordinator.reconcile_and_persist(3, JobKind.CLEANING, store, dispatcher)

        assert [e.type for e in published_events] == [EventType.AUDIO_SPONTANEOUSLY_UPDATED.value]
        assert published_events[0].payload["processed_audio_ref"] == "audio/clean.m4a"

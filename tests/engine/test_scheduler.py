"""Tests for the follow-up scheduler: due selection, skips, errors, and numbering."""

from __future__ import annotations

from datetime import timedelta
from unittest.mock import MagicMock

import pytest

from chaser.domain.errors import (
    FollowupInProgressError,
    MailCredentialMissingError,
    MissingThreadError,
    PreconditionFailedError,
    RequestNotActiveError,
)
from chaser.domain.models import Followup, User, Voice
from chaser.domain.types import FollowupAction, FollowupMode, RequestStatus
from chaser.engine.dispatch import Dispatcher
from chaser.engine.scheduler import FollowupScheduler, skip_reason
from chaser.llm.voices import VoiceCatalog

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def mail() -> MagicMock:
    """Mail collaborator returning fixed draft and message ids."""
    mock = MagicMock()
    mock.create_draft.return_value = "draft-1"
    mock.send_message.return_value = "msg-1"
    return mock


@pytest.fixture
def llm() -> MagicMock:
    """Language model returning a fixed follow-up body."""
    mock = MagicMock()
    mock.generate_followup.return_value = "Just checking in on this invoice."
    return mock


@pytest.fixture
def scheduler(store, mail, llm) -> FollowupScheduler:
    """Scheduler wired to the in-memory store and mocked collaborators."""
    return FollowupScheduler(
        store,
        llm,
        VoiceCatalog(store),
        Dispatcher(store, mail),
        default_voice="assistant",
        lease_seconds=600,
    )


def _record_followup(store, request, sent_at, number=1) -> None:
    store.insert_followup(
        Followup(
            request_id=request.id,
            followup_number=number,
            mode=FollowupMode.DRAFT,
            sent_at=sent_at,
        )
    )


# ---------------------------------------------------------------------------
# skip_reason
# ---------------------------------------------------------------------------


class TestSkipReason:
    """Preconditions that turn a request into a skip."""

    def test_eligible(self, user, make_request):
        assert skip_reason(make_request(), user) is None

    def test_no_user(self, make_request):
        assert skip_reason(make_request(), None) == "no_mail_credential"

    def test_no_credential(self, make_request):
        assert skip_reason(make_request(), User(email="x@y.z")) == "no_mail_credential"

    def test_no_thread(self, user, make_request):
        assert skip_reason(make_request(thread_id=None), user) == "no_thread"

    def test_unknown_recipient(self, user, make_request):
        assert skip_reason(make_request(recipient_email="unknown"), user) == "no_recipient"


# ---------------------------------------------------------------------------
# run_due
# ---------------------------------------------------------------------------


class TestRunDue:
    """Scheduled processing of active requests."""

    def test_first_followup_for_old_request(self, store, scheduler, mail, llm, make_request, now):
        request = make_request(created_at=now - timedelta(days=10))

        summary = scheduler.run_due([request], now)

        assert (summary.processed, summary.skipped, summary.errors, summary.total) == (1, 0, 0, 1)
        params = llm.generate_followup.call_args.args[0]
        assert params.followup_number == 1
        assert params.days_since_initial == 10
        mail.create_draft.assert_called_once()
        mail.send_message.assert_not_called()
        assert store.latest_followup(request.id).followup_number == 1

    def test_interval_boundary(self, store, scheduler, make_request, now):
        due = make_request(followup_interval=5, created_at=now - timedelta(days=5))
        not_due = make_request(followup_interval=5, created_at=now - timedelta(days=4))

        summary = scheduler.run_due([due, not_due], now)

        assert summary.processed == 1
        assert summary.skipped == 1
        assert store.count_followups(due.id) == 1
        assert store.count_followups(not_due.id) == 0

    def test_recent_followup_skipped(self, store, scheduler, llm, make_request, now):
        request = make_request(followup_interval=7)
        _record_followup(store, request, now - timedelta(days=3))

        summary = scheduler.run_due([request], now)

        assert summary.skipped == 1
        llm.generate_followup.assert_not_called()

    def test_send_preference(self, store, scheduler, mail, user, make_request, now):
        store.set_followup_action(user.id, FollowupAction.SEND)
        request = make_request()

        scheduler.run_due([request], now)

        mail.send_message.assert_called_once()
        mail.create_draft.assert_not_called()
        assert store.latest_followup(request.id).mode == FollowupMode.SENT

    def test_precondition_skips(self, store, scheduler, llm, make_request, now):
        requests = [
            make_request(thread_id=None),
            make_request(recipient_email="unknown"),
        ]
        summary = scheduler.run_due(requests, now)
        assert summary.skipped == 2
        assert summary.errors == 0
        llm.generate_followup.assert_not_called()

    def test_user_without_credential_skipped(self, store, scheduler, make_request, now):
        other = store.create_user(User(email="nocred@example.com"))
        summary = scheduler.run_due([make_request(user_id=other.id)], now)
        assert summary.skipped == 1

    def test_busy_lease_skipped(self, store, scheduler, llm, make_request, now):
        request = make_request()
        store.acquire_followup_lease(request.id, "other-trigger", now, 600)

        summary = scheduler.run_due([request], now)

        assert summary.skipped == 1
        assert summary.errors == 0
        llm.generate_followup.assert_not_called()

    def test_failure_counted_and_isolated(self, store, scheduler, llm, make_request, now):
        failing = make_request()
        ok = make_request()
        llm.generate_followup.side_effect = [RuntimeError("model down"), "Body"]

        summary = scheduler.run_due([failing, ok], now)

        assert (summary.processed, summary.errors) == (1, 1)
        assert store.count_followups(failing.id) == 0
        assert store.count_followups(ok.id) == 1
        # The failed request's lease was released.
        assert store.acquire_followup_lease(failing.id, "after-run", now, 600) is True

    def test_duplicate_request_processed_once(self, store, scheduler, make_request, now):
        request = make_request()
        summary = scheduler.run_due([request, request], now)
        assert summary.processed == 1
        assert summary.total == 2
        assert store.count_followups(request.id) == 1

    def test_sequential_numbering_across_runs(
        self, store, scheduler, llm, make_request, now, followups_of
    ):
        request = make_request(followup_interval=7)
        for run in range(3):
            scheduler.run_due([request], now + timedelta(days=7 * run))

        numbers = [f.followup_number for f in followups_of(request.id)]
        assert numbers == [1, 2, 3]
        assert [c.args[0].followup_number for c in llm.generate_followup.call_args_list] == [
            1,
            2,
            3,
        ]

    def test_voice_resolution(self, store, scheduler, llm, make_request, now):
        store.upsert_voice(Voice(name="attorney", label="Attorney", description="Formal."))
        default_request = make_request(voice=None)
        named_request = make_request(voice="attorney")

        scheduler.run_due([named_request, default_request], now)

        voices = [c.args[0].voice for c in llm.generate_followup.call_args_list]
        assert voices[0].label == "Attorney"
        # "assistant" is not in the store or built-ins, so the fallback applies.
        assert voices[1].name == "professional"


# ---------------------------------------------------------------------------
# follow_up_now
# ---------------------------------------------------------------------------


class TestFollowUpNow:
    """Manual trigger ignoring the interval."""

    def test_ignores_interval(self, store, scheduler, user, make_request, now):
        request = make_request(created_at=now - timedelta(hours=1))
        _record_followup(store, request, now - timedelta(minutes=5))

        result = scheduler.follow_up_now(user, request, now)

        assert result.followup_number == 2
        assert result.mode == FollowupMode.DRAFT
        assert result.external_message_id == "draft-1"

    def test_inactive_request(self, scheduler, user, make_request, now):
        request = make_request(status=RequestStatus.CLOSED)
        with pytest.raises(RequestNotActiveError):
            scheduler.follow_up_now(user, request, now)

    def test_no_credential(self, scheduler, make_request, now):
        with pytest.raises(MailCredentialMissingError):
            scheduler.follow_up_now(User(email="x@y.z"), make_request(), now)

    def test_no_thread(self, scheduler, user, make_request, now):
        with pytest.raises(MissingThreadError):
            scheduler.follow_up_now(user, make_request(thread_id=None), now)

    def test_unknown_recipient(self, scheduler, user, make_request, now):
        with pytest.raises(PreconditionFailedError, match="no recipient"):
            scheduler.follow_up_now(user, make_request(recipient_email="unknown"), now)

    def test_lease_busy(self, store, scheduler, user, make_request, now):
        request = make_request()
        store.acquire_followup_lease(request.id, "scheduled-run", now, 600)
        with pytest.raises(FollowupInProgressError):
            scheduler.follow_up_now(user, request, now)
        assert store.count_followups(request.id) == 0

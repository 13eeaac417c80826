"""Tests for GmailGateway against a mocked Gmail service.

The service factory is replaced with one returning a ``MagicMock`` so no
network or real credentials are involved.
"""

from __future__ import annotations

import base64
import email
from unittest.mock import MagicMock

import pytest

from chaser.mail.client import GmailGateway

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _b64(text: str) -> str:
    return base64.urlsafe_b64encode(text.encode()).decode()


def _thread_response() -> dict:
    return {
        "messages": [
            {
                "id": "m1",
                "payload": {
                    "mimeType": "text/plain",
                    "headers": [
                        {"name": "From", "value": "Me <me@freelancer.dev>"},
                        {"name": "To", "value": "Dana <dana@acme.com>"},
                        {"name": "Subject", "value": "Invoice #1042"},
                        {"name": "Date", "value": "Mon, 02 Mar 2026 09:00:00 +0000"},
                        {"name": "Message-ID", "value": "<1@mail>"},
                    ],
                    "body": {"data": _b64("Please pay $1,250.")},
                },
            },
            {
                "id": "m2",
                "payload": {
                    "mimeType": "text/plain",
                    "headers": [{"name": "Message-ID", "value": "<2@mail>"}],
                    "body": {"data": _b64("Reminder.")},
                },
            },
        ]
    }


def _decode_raw(raw: str) -> email.message.Message:
    return email.message_from_bytes(base64.urlsafe_b64decode(raw))


@pytest.fixture
def service() -> MagicMock:
    """Mock Gmail service with thread, label, draft, and send responses wired."""
    svc = MagicMock()
    users = svc.users.return_value
    users.threads.return_value.get.return_value.execute.return_value = _thread_response()
    users.drafts.return_value.create.return_value.execute.return_value = {"id": "draft-1"}
    users.messages.return_value.send.return_value.execute.return_value = {"id": "sent-1"}
    return svc


@pytest.fixture
def gateway(store, settings, service) -> GmailGateway:
    """GmailGateway whose service factory returns the mock service."""
    return GmailGateway(store, settings, service_factory=lambda creds, timeout: service)


# ---------------------------------------------------------------------------
# ensure_label
# ---------------------------------------------------------------------------


class TestEnsureLabel:
    """Tests for ensure_label."""

    def test_cached_label_short_circuits(self, gateway, user, service) -> None:
        assert gateway.ensure_label(user) == "Label_1"
        service.users.assert_not_called()

    def test_finds_existing_label(self, gateway, store, user, service) -> None:
        user = user.model_copy(update={"label_id": None})
        labels = service.users.return_value.labels.return_value
        labels.list.return_value.execute.return_value = {
            "labels": [{"id": "INBOX", "name": "INBOX"}, {"id": "L7", "name": "Payment Chaser"}]
        }

        assert gateway.ensure_label(user) == "L7"
        labels.create.assert_not_called()
        assert store.get_user(user.id).label_id == "L7"

    def test_creates_missing_label(self, gateway, store, user, service) -> None:
        user = user.model_copy(update={"label_id": None})
        labels = service.users.return_value.labels.return_value
        labels.list.return_value.execute.return_value = {"labels": []}
        labels.create.return_value.execute.return_value = {"id": "L9"}

        assert gateway.ensure_label(user) == "L9"
        body = labels.create.call_args.kwargs["body"]
        assert body["name"] == "Payment Chaser"
        assert store.get_user(user.id).label_id == "L9"


# ---------------------------------------------------------------------------
# list_threads_with_label
# ---------------------------------------------------------------------------


class TestListThreads:
    """Tests for list_threads_with_label."""

    def test_follows_pagination(self, gateway, user, service) -> None:
        threads = service.users.return_value.threads.return_value
        threads.list.return_value.execute.side_effect = [
            {"threads": [{"id": "t1"}, {"id": "t2"}], "nextPageToken": "p2"},
            {"threads": [{"id": "t3"}]},
        ]

        assert gateway.list_threads_with_label(user, "L1") == ["t1", "t2", "t3"]
        second_call = threads.list.call_args_list[-1]
        assert second_call.kwargs["pageToken"] == "p2"
        assert second_call.kwargs["labelIds"] == ["L1"]

    def test_no_threads(self, gateway, user, service) -> None:
        threads = service.users.return_value.threads.return_value
        threads.list.return_value.execute.return_value = {}
        assert gateway.list_threads_with_label(user, "L1") == []


# ---------------------------------------------------------------------------
# get_thread_messages
# ---------------------------------------------------------------------------


class TestGetThreadMessages:
    """Tests for get_thread_messages."""

    def test_decodes_messages(self, gateway, user, service) -> None:
        messages = gateway.get_thread_messages(user, "t1")

        assert [m.message_id for m in messages] == ["m1", "m2"]
        first = messages[0]
        assert first.from_header == "Me <me@freelancer.dev>"
        assert first.subject == "Invoice #1042"
        assert first.body == "Please pay $1,250."
        assert first.message_id_header == "<1@mail>"
        assert messages[1].subject == ""
        service.users.return_value.threads.return_value.get.assert_called_with(
            userId="me", id="t1", format="full"
        )


# ---------------------------------------------------------------------------
# create_draft / send_message
# ---------------------------------------------------------------------------


class TestDraftAndSend:
    """Tests for create_draft and send_message."""

    def test_create_draft_threads_reply(self, gateway, user, service) -> None:
        draft_id = gateway.create_draft(
            user, "t1", "dana@acme.com", "Re: Invoice #1042", "Friendly nudge."
        )

        assert draft_id == "draft-1"
        body = service.users.return_value.drafts.return_value.create.call_args.kwargs["body"]
        assert body["message"]["threadId"] == "t1"
        parsed = _decode_raw(body["message"]["raw"])
        assert parsed["To"] == "dana@acme.com"
        assert parsed["From"] == "me@freelancer.dev"
        assert parsed["Subject"] == "Re: Invoice #1042"
        assert parsed["In-Reply-To"] == "<2@mail>"
        assert parsed["References"] == "<1@mail> <2@mail>"
        service.users.return_value.messages.return_value.send.assert_not_called()

    def test_send_message(self, gateway, user, service) -> None:
        message_id = gateway.send_message(
            user, "t1", "dana@acme.com", "Re: Invoice #1042", "Friendly nudge."
        )

        assert message_id == "sent-1"
        body = service.users.return_value.messages.return_value.send.call_args.kwargs["body"]
        assert body["threadId"] == "t1"
        assert "Friendly nudge." in _decode_raw(body["raw"]).get_payload(decode=True).decode()

    def test_missing_id_returns_none(self, gateway, user, service) -> None:
        drafts = service.users.return_value.drafts.return_value
        drafts.create.return_value.execute.return_value = {}
        assert gateway.create_draft(user, "t1", "dana@acme.com", "Re: x", "body") is None

    def test_send_timeout_is_not_retried(self, gateway, user, service) -> None:
        send_execute = service.users.return_value.messages.return_value.send.return_value.execute
        send_execute.side_effect = [TimeoutError("read timed out"), {"id": "sent-2"}]

        with pytest.raises(TimeoutError):
            gateway.send_message(user, "t1", "dana@acme.com", "Re: Invoice #1042", "Nudge.")

        assert send_execute.call_count == 1

    def test_draft_timeout_is_not_retried(self, gateway, user, service) -> None:
        draft_execute = service.users.return_value.drafts.return_value.create.return_value.execute
        draft_execute.side_effect = [TimeoutError("read timed out"), {"id": "draft-2"}]

        with pytest.raises(TimeoutError):
            gateway.create_draft(user, "t1", "dana@acme.com", "Re: Invoice #1042", "Nudge.")

        assert draft_execute.call_count == 1

"""Tests for Pydantic domain models: User, PaymentRequest, Followup, Voice."""

from decimal import Decimal

import pytest
from pydantic import SecretStr, ValidationError

from chaser.domain.models import Followup, PaymentRequest, RunSummary, User, Voice
from chaser.domain.types import FollowupAction, FollowupMode, RequestStatus


class TestUser:
    """Tests for the User model."""

    def test_defaults(self):
        user = User(email="me@example.com")
        assert user.followup_action == FollowupAction.DRAFT
        assert user.label_id is None
        assert user.id

    def test_has_mail_credential(self):
        assert User(email="a@b.c", gmail_access_token=SecretStr("tok")).has_mail_credential
        assert not User(email="a@b.c").has_mail_credential
        assert not User(email="a@b.c", gmail_access_token=SecretStr("")).has_mail_credential

    def test_token_hidden_in_repr(self):
        user = User(email="a@b.c", gmail_access_token=SecretStr("very-secret"))
        assert "very-secret" not in repr(user)

    def test_is_frozen(self):
        user = User(email="a@b.c")
        with pytest.raises(ValidationError):
            user.email = "other@b.c"  # type: ignore[misc]


class TestPaymentRequest:
    """Tests for the PaymentRequest model."""

    def test_valid_creation_with_string_amount(self):
        request = PaymentRequest(user_id="u1", recipient_email="c@x.com", amount="1250.50")
        assert request.amount == Decimal("1250.50")
        assert request.status == RequestStatus.ACTIVE
        assert request.followup_interval == 7

    def test_rejects_float_amount(self):
        with pytest.raises(ValidationError, match="Use Decimal or string, not float"):
            PaymentRequest(user_id="u1", recipient_email="c@x.com", amount=100.0)

    def test_rejects_empty_recipient_email(self):
        with pytest.raises(ValidationError, match="recipient_email must not be empty"):
            PaymentRequest(user_id="u1", recipient_email="   ")

    @pytest.mark.parametrize("interval", [0, 91, -3])
    def test_rejects_interval_out_of_range(self, interval):
        with pytest.raises(ValidationError, match="between 1 and 90"):
            PaymentRequest(user_id="u1", recipient_email="c@x.com", followup_interval=interval)

    @pytest.mark.parametrize("interval", [1, 30, 90])
    def test_accepts_interval_bounds(self, interval):
        request = PaymentRequest(
            user_id="u1", recipient_email="c@x.com", followup_interval=interval
        )
        assert request.effective_interval == interval

    def test_effective_interval_defaults_to_seven(self):
        request = PaymentRequest(user_id="u1", recipient_email="c@x.com", followup_interval=None)
        assert request.effective_interval == 7


class TestFollowup:
    """Tests for the Followup model."""

    def test_number_must_be_positive(self):
        with pytest.raises(ValidationError):
            Followup(request_id="r1", followup_number=0, mode=FollowupMode.DRAFT)

    def test_mode_coerced_from_string(self):
        followup = Followup(request_id="r1", followup_number=1, mode="sent")
        assert followup.mode == FollowupMode.SENT


class TestVoice:
    """Tests for the Voice model."""

    def test_escalates_by_default(self):
        voice = Voice(name="firm", label="Firm", description="Direct.")
        assert voice.escalates is True
        assert voice.sort_order == 0


class TestRunSummary:
    """Tests for the RunSummary counts."""

    def test_all_counts_default_to_zero(self):
        assert RunSummary().model_dump() == {
            "processed": 0,
            "skipped": 0,
            "errors": 0,
            "total": 0,
            "synced": 0,
            "auto_closed": 0,
        }

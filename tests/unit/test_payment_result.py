"""Unit tests for PaymentResult and log masking helpers."""

import pytest

from nearme.services import PaymentErrorKind, PaymentResult
from nearme.utils.security import mask_address, mask_sensitive, mask_signature


class TestPaymentResult:
    """Tests for PaymentResult."""

    def test_ok(self):
        result = PaymentResult.ok({"request_id": "abc"})

        assert result.success is True
        assert result.data == {"request_id": "abc"}
        assert result.error_kind is None
        assert result.retryable is False

    @pytest.mark.parametrize(
        "kind, code, retryable",
        [
            (PaymentErrorKind.INPUT, "invalid-argument", False),
            (PaymentErrorKind.AUTH, "unauthenticated", False),
            (PaymentErrorKind.NOT_FOUND, "not-found", False),
            (PaymentErrorKind.CONFLICT, "failed-precondition", False),
            (PaymentErrorKind.EXPIRED, "failed-precondition", False),
            (PaymentErrorKind.EXTERNAL_VERIFICATION, "failed-precondition", True),
            (PaymentErrorKind.INTERNAL, "internal", True),
        ],
    )
    def test_default_codes(self, kind, code, retryable):
        result = PaymentResult.fail(kind, "boom")

        assert result.success is False
        assert result.error == "boom"
        assert result.error_code == code
        assert result.retryable is retryable

    def test_explicit_code_and_details(self):
        result = PaymentResult.fail(
            PaymentErrorKind.CONFLICT,
            "Payment request already paid",
            code="failed-precondition",
            current_status="paid",
        )

        assert result.details == {"current_status": "paid"}

    def test_permission_denied_override(self):
        result = PaymentResult.fail(
            PaymentErrorKind.AUTH, "Not your merchant", code="permission-denied"
        )

        assert result.error_code == "permission-denied"
        assert result.error_kind == PaymentErrorKind.AUTH


class TestMasking:
    """Tests for log masking helpers."""

    def test_mask_address(self):
        assert (
            mask_address("7xKXtg2CW87d97TXJSDpbD5jBkheTqA83TZRuJosgAsU")
            == "7xKXtg...gAsU"
        )
        assert mask_address(None) == "***"
        assert mask_address("short") == "***"

    def test_mask_signature(self):
        signature = "5VERv8NMvzbJMEkV8xnrLkEaWRtSz9CosKDYjCJjBRnbJLgp8uir"

        assert mask_signature(signature) == "5VERv8NMvz...gp8uir"
        assert mask_signature("") == "***"

    def test_mask_sensitive(self):
        assert mask_sensitive("my_secret_key_1234567890") == "my_s...7890"
        assert mask_sensitive("short") == "***"

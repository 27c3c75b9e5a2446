import unittest

from evatlottery.errors import (
    GENERIC_FAILURE_MESSAGE,
    BackendUnavailableError,
    DuplicateReceiptError,
    InvalidParticipantError,
    InvalidReceiptError,
    LedgerUnavailableError,
    RateLimitedError,
    error_from_payload,
    error_to_payload,
)


class ErrorPayloadTestCase(unittest.TestCase):
    def test_webhook_error_labels(self):
        cases = {
            "Invalid QR code format": InvalidReceiptError,
            "Duplicate scan": DuplicateReceiptError,
            "Rate limited": RateLimitedError,
            "Invalid phone number": InvalidParticipantError,
        }
        for label, cls in cases.items():
            error = error_from_payload({"success": False, "error": label})
            self.assertIsInstance(error, cls, label)

    def test_message_is_preserved(self):
        error = error_from_payload(
            {"success": False, "error": "Duplicate scan", "message": "Already used"}
        )
        self.assertEqual(str(error), "Already used")

    def test_rate_limit_round_trip(self):
        payload = error_to_payload(RateLimitedError(10, retry_after=120.0))
        self.assertEqual(payload["code"], "rate_limited")
        self.assertFalse(payload["success"])

        error = error_from_payload(payload)
        self.assertIsInstance(error, RateLimitedError)
        self.assertEqual(error.limit, 10)
        self.assertEqual(error.retry_after, 120.0)
        self.assertIn("10 scans per hour", str(error))

    def test_rate_limit_without_limit_uses_default(self):
        error = error_from_payload(
            {"success": False, "error": "Rate limited"}, default_limit=10
        )
        self.assertIsInstance(error, RateLimitedError)
        self.assertEqual(error.limit, 10)
        self.assertIn("10 scans per hour", str(error))

    def test_unknown_payload_is_a_backend_fault(self):
        error = error_from_payload({"success": False, "error": "kaboom"})
        self.assertIsInstance(error, BackendUnavailableError)
        self.assertEqual(str(error), GENERIC_FAILURE_MESSAGE)

    def test_internal_errors_hide_detail(self):
        error = LedgerUnavailableError("disk I/O error at /var/lib/ledger.db")
        self.assertEqual(str(error), GENERIC_FAILURE_MESSAGE)
        self.assertIn("disk", error.detail)


if __name__ == "__main__":
    unittest.main()

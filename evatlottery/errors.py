"""Exception hierarchy for the receipt lottery.

Two families matter to callers. :class:`UserFacingError` subclasses are
expected outcomes of a scan (bad code, already redeemed, too many scans) and
carry a message that can be shown as-is. :class:`InternalError` subclasses are
faults; their ``str()`` is always the generic retry message and the detail
only goes to the log.
"""

from __future__ import annotations

from typing import Optional


GENERIC_FAILURE_MESSAGE = "Something went wrong. Please try again."


class LotteryError(Exception):
    """Base exception for all lottery errors."""

    code: str = "error"


class ConfigurationError(LotteryError):
    """Raised when the lottery configuration is invalid."""

    code = "configuration_error"


class UserFacingError(LotteryError):
    """An expected, user-correctable or terminal outcome of a request."""

    code = "user_error"
    default_message = "The request could not be completed."

    def __init__(self, message: Optional[str] = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidReceiptError(UserFacingError):
    code = "invalid_receipt"
    default_message = "This doesn't look like a valid GRA VAT receipt QR code."


class DuplicateReceiptError(UserFacingError):
    code = "duplicate_receipt"
    default_message = "This receipt has already been scanned!"

    def __init__(
        self, message: Optional[str] = None, *, unique_id: Optional[str] = None
    ) -> None:
        self.unique_id = unique_id
        super().__init__(message)


class RateLimitedError(UserFacingError):
    """Too many redemptions inside the rate-limit window.

    Retryable once the oldest counted redemption leaves the window.
    """

    code = "rate_limited"

    def __init__(
        self,
        limit: int,
        *,
        retry_after: Optional[float] = None,
        message: Optional[str] = None,
    ) -> None:
        self.limit = limit
        self.retry_after = retry_after
        super().__init__(
            message
            or f"You've reached the limit of {limit} scans per hour. Try again later!"
        )


class InvalidParticipantError(UserFacingError):
    code = "invalid_participant"
    default_message = "Please enter a valid Ghana phone number."


class PermissionDeniedError(UserFacingError):
    code = "permission_denied"
    default_message = "This action requires an administrator."


class InternalError(LotteryError):
    """A fault that must not leak detail to the caller."""

    code = "internal_error"

    def __init__(self, detail: Optional[str] = None) -> None:
        self.detail = detail
        super().__init__(GENERIC_FAILURE_MESSAGE)


class LedgerUnavailableError(InternalError):
    code = "ledger_unavailable"


class CommitmentError(InternalError):
    code = "commitment_failed"


class BackendUnavailableError(InternalError):
    """The remote backend could not be reached or answered garbage.

    This is the explicit degraded-mode signal; callers must not substitute
    locally simulated results.
    """

    code = "backend_unavailable"


_USER_ERRORS_BY_CODE = {
    cls.code: cls
    for cls in (
        InvalidReceiptError,
        DuplicateReceiptError,
        InvalidParticipantError,
        PermissionDeniedError,
    )
}


def error_from_payload(payload: dict, default_limit: int = 0) -> LotteryError:
    """Rebuild a lottery error from a ``{"success": false, ...}`` payload.

    Accepts both the ``code`` field written by :func:`error_to_payload` and the
    free-text ``error`` labels the webhook workflow returns
    (``"Invalid QR code format"``, ``"Duplicate scan"``, ``"Rate limited"``).
    A rate-limit payload without a ``limit`` field reports ``default_limit``.
    """
    code = str(payload.get("code") or "").strip()
    label = str(payload.get("error") or "").strip().lower()
    message = payload.get("message") or None

    if not code:
        if "duplicate" in label:
            code = DuplicateReceiptError.code
        elif "rate" in label:
            code = RateLimitedError.code
        elif "phone" in label or "participant" in label:
            code = InvalidParticipantError.code
        elif "invalid" in label:
            code = InvalidReceiptError.code

    if code == RateLimitedError.code:
        limit = payload.get("limit")
        return RateLimitedError(
            int(limit) if limit is not None else default_limit,
            retry_after=payload.get("retry_after"),
            message=message,
        )
    cls = _USER_ERRORS_BY_CODE.get(code)
    if cls is not None:
        return cls(message)
    return BackendUnavailableError(f"Unrecognised error payload: {payload!r}")


def error_to_payload(error: LotteryError) -> dict:
    """Serialize ``error`` into the response shape used by the scan endpoint."""
    payload = {"success": False, "code": error.code, "message": str(error)}
    if isinstance(error, RateLimitedError):
        payload["limit"] = error.limit
        payload["retry_after"] = error.retry_after
    return payload


__all__ = [
    "GENERIC_FAILURE_MESSAGE",
    "LotteryError",
    "ConfigurationError",
    "UserFacingError",
    "InvalidReceiptError",
    "DuplicateReceiptError",
    "RateLimitedError",
    "InvalidParticipantError",
    "PermissionDeniedError",
    "InternalError",
    "LedgerUnavailableError",
    "CommitmentError",
    "BackendUnavailableError",
    "error_from_payload",
    "error_to_payload",
]

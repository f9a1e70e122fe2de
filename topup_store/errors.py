"""
Typed failures raised by the transaction engine.

Every error carries a stable ``kind`` from the taxonomy below,
plus an optional finer ``reason`` for callers that need to tell
apart, say, an expired reward from one that was already redeemed.
The StorefrontEngine turns these into OperationResult values;
nothing here is meant to reach an HTTP client as an exception.
"""

import enum


class ErrorKind(str, enum.Enum):
    VALIDATION_ERROR = "ValidationError"
    NOT_FOUND = "NotFound"
    UNAUTHORIZED = "Unauthorized"
    STATE_CONFLICT = "StateConflict"
    LIMIT_EXCEEDED = "LimitExceeded"
    INSUFFICIENT_BALANCE = "InsufficientBalance"
    UPSTREAM_FAILURE = "UpstreamFailure"
    CONFLICT = "Conflict"
    TIMEOUT = "Timeout"


class StoreError(Exception):
    kind: ErrorKind = ErrorKind.VALIDATION_ERROR
    reason: str | None = None

    def __init__(self, message: str, reason: str | None = None):
        super().__init__(message)
        self.message = message
        if reason is not None:
            self.reason = reason


class InvalidRequestError(StoreError):
    kind = ErrorKind.VALIDATION_ERROR


class NotFoundError(StoreError):
    kind = ErrorKind.NOT_FOUND


class UnauthorizedError(StoreError):
    kind = ErrorKind.UNAUTHORIZED


class InvalidTokenError(UnauthorizedError):
    reason = "InvalidToken"


class StateConflictError(StoreError):
    kind = ErrorKind.STATE_CONFLICT


class ExpiredError(StateConflictError):
    reason = "Expired"


class AlreadyRedeemedError(StateConflictError):
    reason = "AlreadyRedeemed"


class LimitExceededError(StoreError):
    kind = ErrorKind.LIMIT_EXCEEDED
    reason = "LimitReached"


class WrongKeyError(InvalidRequestError):
    reason = "WrongKey"


class UnsupportedRewardTypeError(InvalidRequestError):
    reason = "UnsupportedRewardType"


class InsufficientBalanceError(StoreError):
    kind = ErrorKind.INSUFFICIENT_BALANCE


class UpstreamFailureError(StoreError):
    kind = ErrorKind.UPSTREAM_FAILURE


class ConflictError(StoreError):
    kind = ErrorKind.CONFLICT


class StoreTimeoutError(StoreError):
    kind = ErrorKind.TIMEOUT


class VoucherRejection(str, enum.Enum):
    NOT_FOUND = "NotFound"
    ALREADY_REDEEMED = "AlreadyRedeemed"
    LIMIT_REACHED = "LimitReached"
    EXPIRED = "Expired"
    SCOPE_MISMATCH = "ScopeMismatch"
    MIN_QUANTITY = "MinQuantity"
    MIN_SUBTOTAL = "MinSubtotal"
    MIN_FEE = "MinFee"


# Voucher rejections that map onto a broader kind than ValidationError
_VOUCHER_REJECTION_KINDS = {
    VoucherRejection.NOT_FOUND: ErrorKind.NOT_FOUND,
    VoucherRejection.ALREADY_REDEEMED: ErrorKind.STATE_CONFLICT,
    VoucherRejection.LIMIT_REACHED: ErrorKind.LIMIT_EXCEEDED,
    VoucherRejection.EXPIRED: ErrorKind.STATE_CONFLICT,
}


class VoucherInvalidError(StoreError):
    """A voucher cannot be applied to this order."""

    def __init__(self, message: str, rejection: VoucherRejection):
        super().__init__(message, reason=rejection.value)
        self.rejection = rejection
        self.kind = _VOUCHER_REJECTION_KINDS.get(
            rejection, ErrorKind.VALIDATION_ERROR
        )

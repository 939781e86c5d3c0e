# accounting/errors.py
"""
Error taxonomy for ledger operations.

Commands never raise for a business-rule rejection: they return
CommandResult.fail(...) carrying one of the codes below. Each code
belongs to exactly one ErrorKind, and the kind decides how the HTTP
layer renders it.

    VALIDATION  400  the input itself is wrong
    NOT_FOUND   404  a referenced account or entry does not exist
    CONFLICT    409  the request clashes with current state
    PROTECTED   409  the target is locked by a system rule
    INTEGRITY   ---  the books themselves disagree (reported, not refused)
"""

from enum import Enum

from rest_framework import status


class ErrorKind(str, Enum):
    VALIDATION = "VALIDATION"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    PROTECTED = "PROTECTED"
    INTEGRITY = "INTEGRITY"


class ErrorCode(str, Enum):
    # Validation
    INVALID_INPUT = "INVALID_INPUT"
    INVALID_CATEGORY_FOR_TYPE = "INVALID_CATEGORY_FOR_TYPE"
    NORMAL_BALANCE_MISMATCH = "NORMAL_BALANCE_MISMATCH"
    UNBALANCED_ENTRY = "UNBALANCED_ENTRY"
    INSUFFICIENT_LINES = "INSUFFICIENT_LINES"
    INVALID_LINE = "INVALID_LINE"
    ACCOUNT_INACTIVE = "ACCOUNT_INACTIVE"

    # Not found
    ACCOUNT_NOT_FOUND = "ACCOUNT_NOT_FOUND"
    ENTRY_NOT_FOUND = "ENTRY_NOT_FOUND"

    # Conflict
    DUPLICATE_CODE = "DUPLICATE_CODE"
    ENTRY_ALREADY_POSTED = "ENTRY_ALREADY_POSTED"
    ENTRY_NOT_POSTED = "ENTRY_NOT_POSTED"
    ENTRY_ALREADY_REVERSED = "ENTRY_ALREADY_REVERSED"
    REVERSAL_NOT_REVERSIBLE = "REVERSAL_NOT_REVERSIBLE"
    ACCOUNT_IN_USE = "ACCOUNT_IN_USE"
    ACCOUNT_HAS_BALANCE = "ACCOUNT_HAS_BALANCE"

    # Protected
    SYSTEM_ACCOUNT_LOCKED = "SYSTEM_ACCOUNT_LOCKED"
    SYSTEM_ACCOUNT_PROTECTED = "SYSTEM_ACCOUNT_PROTECTED"
    AUTO_ENTRY_IMMUTABLE = "AUTO_ENTRY_IMMUTABLE"
    POSTED_ENTRY_IMMUTABLE = "POSTED_ENTRY_IMMUTABLE"

    # Integrity
    TRIAL_BALANCE_MISMATCH = "TRIAL_BALANCE_MISMATCH"


ERROR_KINDS = {
    ErrorCode.INVALID_INPUT: ErrorKind.VALIDATION,
    ErrorCode.INVALID_CATEGORY_FOR_TYPE: ErrorKind.VALIDATION,
    ErrorCode.NORMAL_BALANCE_MISMATCH: ErrorKind.VALIDATION,
    ErrorCode.UNBALANCED_ENTRY: ErrorKind.VALIDATION,
    ErrorCode.INSUFFICIENT_LINES: ErrorKind.VALIDATION,
    ErrorCode.INVALID_LINE: ErrorKind.VALIDATION,
    ErrorCode.ACCOUNT_INACTIVE: ErrorKind.VALIDATION,
    ErrorCode.ACCOUNT_NOT_FOUND: ErrorKind.NOT_FOUND,
    ErrorCode.ENTRY_NOT_FOUND: ErrorKind.NOT_FOUND,
    ErrorCode.DUPLICATE_CODE: ErrorKind.CONFLICT,
    ErrorCode.ENTRY_ALREADY_POSTED: ErrorKind.CONFLICT,
    ErrorCode.ENTRY_NOT_POSTED: ErrorKind.CONFLICT,
    ErrorCode.ENTRY_ALREADY_REVERSED: ErrorKind.CONFLICT,
    ErrorCode.REVERSAL_NOT_REVERSIBLE: ErrorKind.CONFLICT,
    ErrorCode.ACCOUNT_IN_USE: ErrorKind.CONFLICT,
    ErrorCode.ACCOUNT_HAS_BALANCE: ErrorKind.CONFLICT,
    ErrorCode.SYSTEM_ACCOUNT_LOCKED: ErrorKind.PROTECTED,
    ErrorCode.SYSTEM_ACCOUNT_PROTECTED: ErrorKind.PROTECTED,
    ErrorCode.AUTO_ENTRY_IMMUTABLE: ErrorKind.PROTECTED,
    ErrorCode.POSTED_ENTRY_IMMUTABLE: ErrorKind.PROTECTED,
    ErrorCode.TRIAL_BALANCE_MISMATCH: ErrorKind.INTEGRITY,
}

ERROR_MESSAGES = {
    ErrorCode.INVALID_INPUT: "Invalid input.",
    ErrorCode.INVALID_CATEGORY_FOR_TYPE: "Category is not valid for this account type.",
    ErrorCode.NORMAL_BALANCE_MISMATCH: "Normal balance does not match the account type.",
    ErrorCode.UNBALANCED_ENTRY: "Entry is not balanced.",
    ErrorCode.INSUFFICIENT_LINES: "Journal entry must have at least 2 lines.",
    ErrorCode.INVALID_LINE: "Each line must carry either a debit or a credit, and amounts cannot be negative.",
    ErrorCode.ACCOUNT_INACTIVE: "Cannot post to an inactive account.",
    ErrorCode.ACCOUNT_NOT_FOUND: "Account not found.",
    ErrorCode.ENTRY_NOT_FOUND: "Journal entry not found.",
    ErrorCode.DUPLICATE_CODE: "Account code already exists.",
    ErrorCode.ENTRY_ALREADY_POSTED: "Entry has already been posted.",
    ErrorCode.ENTRY_NOT_POSTED: "Only POSTED entries can be reversed.",
    ErrorCode.ENTRY_ALREADY_REVERSED: "This entry was already reversed.",
    ErrorCode.REVERSAL_NOT_REVERSIBLE: "A reversal entry cannot itself be reversed.",
    ErrorCode.ACCOUNT_IN_USE: "Account is referenced by journal lines.",
    ErrorCode.ACCOUNT_HAS_BALANCE: "Cannot delete an account with a non-zero balance.",
    ErrorCode.SYSTEM_ACCOUNT_LOCKED: "Code, type and normal balance of a system account cannot be changed.",
    ErrorCode.SYSTEM_ACCOUNT_PROTECTED: "System accounts cannot be deleted.",
    ErrorCode.AUTO_ENTRY_IMMUTABLE: "Automatically generated entries cannot be deleted.",
    ErrorCode.POSTED_ENTRY_IMMUTABLE: "Posted entries cannot be deleted. Reverse the entry instead.",
    ErrorCode.TRIAL_BALANCE_MISMATCH: "Trial balance is not balanced. Ledger integrity needs attention.",
}

HTTP_STATUS_BY_KIND = {
    ErrorKind.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorKind.PROTECTED: status.HTTP_409_CONFLICT,
    ErrorKind.INTEGRITY: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def kind_for(code: ErrorCode) -> ErrorKind:
    return ERROR_KINDS.get(code, ErrorKind.VALIDATION)


def message_for(code: ErrorCode) -> str:
    return ERROR_MESSAGES.get(code, str(code.value))


class CommandResult:
    """
    Wrapper for command results with success/failure info.

    Usage:
        result = create_account(actor, code="1-1001", ...)
        if result.success:
            account = result.data
            event = result.event
        else:
            error_message = result.error
            code = result.code        # ErrorCode
            kind = result.kind        # ErrorKind
            details = result.details  # e.g. totals of an unbalanced entry
    """

    def __init__(
        self,
        success: bool,
        data=None,
        error: str = None,
        event=None,
        code: ErrorCode = None,
        details: dict = None,
    ):
        self.success = success
        self.data = data
        self.error = error
        self.event = event  # The emitted event, if any
        self.code = code
        self.details = details or {}

    @property
    def kind(self):
        return kind_for(self.code) if self.code else None

    @classmethod
    def ok(cls, data=None, event=None):
        return cls(success=True, data=data, event=event)

    @classmethod
    def fail(cls, error: str, code: ErrorCode = ErrorCode.INVALID_INPUT, details: dict = None):
        return cls(success=False, error=error, code=code, details=details)

    @classmethod
    def from_code(cls, code: ErrorCode, error: str = None, **details):
        return cls.fail(error or message_for(code), code=code, details=details)

    def error_payload(self) -> dict:
        """Body for an HTTP error response."""
        payload = {
            "detail": self.error,
            "code": self.code.value if self.code else None,
            "kind": self.kind.value if self.kind else None,
        }
        payload.update(self.details)
        return payload

    @property
    def http_status(self) -> int:
        return HTTP_STATUS_BY_KIND.get(self.kind, status.HTTP_400_BAD_REQUEST)

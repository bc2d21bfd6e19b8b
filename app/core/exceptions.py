from fastapi import HTTPException
from app.constants.error_codes import ErrorCode


class AppException(HTTPException):
    def __init__(
        self,
        status_code: int,
        message: str,
        error_code: ErrorCode,
        details: dict | None = None,
    ):
        super().__init__(status_code=status_code, detail=message)
        self.error_code = error_code
        self.details = details

    @property
    def message(self) -> str:
        return self.detail


class InvalidTransition(AppException):
    """A document operation was requested from a status that does not allow it."""

    def __init__(self, document: str, doc_id: int, status, action: str, expected=None):
        status_value = getattr(status, "value", status)
        details = {f"{document.replace(' ', '_')}_id": doc_id, "status": status_value}
        if expected is not None:
            details["expected"] = getattr(expected, "value", expected)

        super().__init__(
            409,
            f"Cannot {action} a {status_value} {document}",
            ErrorCode.INVALID_TRANSITION,
            details=details,
        )


class PartialFailure(AppException):
    """
    A multi-line ledger operation failed part way and was rolled back.

    Nothing from the operation is persisted, so the caller may retry as is.
    """

    def __init__(self, message: str, *, failed_line=None, applied_lines=None, reason=None, **context):
        details = {
            **context,
            "failed_line": failed_line,
            "rolled_back": True,
            "retryable": True,
        }
        if applied_lines is not None:
            details["applied_lines"] = applied_lines
        if reason is not None:
            details["reason"] = reason

        super().__init__(409, message, ErrorCode.PARTIAL_FAILURE, details=details)


def failure_reason(exc: Exception) -> str:
    return getattr(exc, "detail", None) or str(exc)

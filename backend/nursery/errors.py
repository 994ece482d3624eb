"""Domain errors raised by the nursery core and mapped to JSON responses."""
from typing import Any, Optional


class NurseryError(Exception):
    """Base class for user-facing errors.

    Each subclass carries a stable error ``code`` and the HTTP status the API
    layer answers with. The status can be overridden per raise, e.g. a missing
    species referenced from a request body is a 400 rather than a 404.
    """

    code = "NurseryError"
    status_code = 400

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        details: Optional[Any] = None,
    ):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.details = details

    def to_dict(self) -> dict:
        payload = {"success": False, "error": self.code, "message": self.message}
        if self.details is not None:
            payload["details"] = self.details
        return payload


class NotFound(NurseryError):
    code = "NotFound"
    status_code = 404


class DuplicateBatchNumber(NurseryError):
    code = "DuplicateBatchNumber"


class CapacityExceeded(NurseryError):
    code = "CapacityExceeded"


class NotReady(NurseryError):
    code = "NotReady"


class Conflict(NurseryError):
    code = "Conflict"


class InvalidEnum(NurseryError):
    code = "InvalidEnum"


class InvalidStage(InvalidEnum):
    code = "InvalidStage"


class InvalidStatus(InvalidEnum):
    code = "InvalidStatus"


class InvalidPathway(InvalidEnum):
    code = "InvalidPathway"


class SampleSizeExceedsQuantity(NurseryError):
    code = "SampleSizeExceedsQuantity"


class Unauthorized(NurseryError):
    """Caller is authenticated but does not own the record."""

    code = "Unauthorized"
    status_code = 403


class ValidationError(NurseryError):
    code = "ValidationError"

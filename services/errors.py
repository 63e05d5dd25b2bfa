# services/errors.py
from typing import List, Optional, Tuple


class PortalError(Exception):
    """Base for every error a view can surface to the user."""

    default_message = "Something went wrong. Please try again."

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(PortalError):
    """Client-side validation failure. Never reaches the network layer."""

    default_message = "Please fix the highlighted fields."

    def __init__(self, errors: List[Tuple[str, str]], message: Optional[str] = None):
        self.errors = list(errors)
        if message is None and len(self.errors) == 1:
            message = self.errors[0][1]
        super().__init__(message)

    def fields(self) -> List[str]:
        return [field for field, _ in self.errors]

    def to_dict(self):
        return [{"field": field, "message": msg} for field, msg in self.errors]


class NotFound(PortalError):
    default_message = "Resource not found"


class Unauthorized(PortalError):
    default_message = "Your session has expired. Please log in again."


class ServerRejection(PortalError):
    default_message = "The server rejected the request."

    def __init__(self, status_code: int, message: Optional[str] = None):
        self.status_code = status_code
        super().__init__(message)


class NetworkFailure(PortalError):
    default_message = "Unable to reach the server. Check your connection and try again."


class InvalidCode(PortalError):
    default_message = "Invalid join code"


class PermissionDenied(PortalError):
    default_message = "Only the owner can do that."


class RequestAborted(PortalError):
    default_message = "Request cancelled"


class EditorBusy(PortalError):
    default_message = "The worksheet is already being saved."

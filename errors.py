# errors.py

from typing import Any, Dict, Optional


class ContentError(Exception):
    """Base typed error for the content services.

    Carries a stable `code` for programmatic handling, a human readable
    `message`, the HTTP status the web layer should answer with and, for
    validation failures, the offending `field`.
    """

    status_code = 500
    default_code = "content.error"

    def __init__(self, message: str, *, field: Optional[str] = None, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.field = field
        self.code = code or self.default_code

    def to_public_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"detail": self.message, "code": self.code}
        if self.field:
            payload["field"] = self.field
        return payload


class ValidationError(ContentError):
    status_code = 400
    default_code = "request.validation"


class NotFoundError(ContentError):
    status_code = 404
    default_code = "resource.not_found"


class AuthorizationError(ContentError):
    status_code = 403
    default_code = "auth.forbidden"


class ConflictError(ContentError):
    status_code = 409
    default_code = "request.conflict"

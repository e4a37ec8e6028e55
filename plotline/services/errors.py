"""
Domain errors raised by the outline services.

Each error carries the HTTP status it maps to so the API layer can
render it without inspecting the message.
"""


class OutlineError(Exception):
    """Base exception for outline operations."""

    status_code: int = 500
    code: str = "internal_error"

    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)


class ValidationError(OutlineError):
    """A required field is missing or a value is not acceptable."""

    status_code = 400
    code = "validation_error"


class StructuralError(OutlineError):
    """The operation would break the shape of the outline tree."""

    status_code = 400
    code = "structural_error"


class NotFoundError(OutlineError):
    """A referenced record does not exist."""

    status_code = 404
    code = "not_found"


class ConflictError(OutlineError):
    """The record already exists."""

    status_code = 409
    code = "conflict"


def require_fields(values: dict, *names: str) -> None:
    """
    Raise ValidationError when any required field is missing.

    The message lists every required field of the request, not only the
    missing ones. Empty strings count as missing.
    """
    missing = [name for name in names if values.get(name) in (None, "")]
    if missing:
        noun = "field" if len(names) == 1 else "fields"
        raise ValidationError(f"Missing required {noun}: {', '.join(names)}")

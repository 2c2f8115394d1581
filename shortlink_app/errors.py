"""
Error taxonomy for the short link service.

Services raise these; ``main.py`` turns them into JSON responses with the
status code each class carries.
"""


class ShortLinkError(Exception):
    """Base class for expected, user-facing failures."""

    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class NotFoundError(ShortLinkError):
    """Unknown or soft-deleted slug."""

    status_code = 404
    default_message = "URL not found"


class ConflictError(ShortLinkError):
    """Custom slug already taken."""

    status_code = 409
    default_message = "Slug already in use"


class InvalidInputError(ShortLinkError):
    """Malformed URL, slug outside the allowed rules, unknown interval."""

    status_code = 400
    default_message = "Invalid input"


class InternalError(ShortLinkError):
    """Store unavailable or unexpected failure. Message never carries store details."""

    status_code = 500

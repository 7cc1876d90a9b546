"""
Domain errors raised by services and translated to HTTP errors by routes.
"""


class NotFoundError(LookupError):
    """Referenced record does not exist."""


class UploadValidationError(ValueError):
    """Upload rejected before anything was stored."""


class ModerationError(ValueError):
    """Moderation action not allowed in the request's current state."""

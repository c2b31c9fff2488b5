"""
Storefront error taxonomy.

Services raise these; the client facade turns them into ActionResult values
so the presentation layer can show the message inline.
"""


class StorefrontError(ValueError):
    """Base class for expected, user-facing failures."""
    code = "storefront_error"

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class ValidationError(StorefrontError):
    """Empty or malformed input (signup fields, item creation, prices)."""
    code = "invalid_input"


class DuplicateUsername(StorefrontError):
    code = "duplicate_username"


class InvalidCredentials(StorefrontError):
    code = "invalid_credentials"


class Unauthenticated(StorefrontError):
    """No active session; the caller should route to login."""
    code = "unauthenticated"


class Forbidden(StorefrontError):
    """Session exists but is not allowed to perform the action."""
    code = "forbidden"


class NotFound(StorefrontError):
    """Stale or unknown id surfaced to the caller instead of a silent no-op."""
    code = "not_found"


class ChatNotFound(NotFound):
    code = "chat_not_found"

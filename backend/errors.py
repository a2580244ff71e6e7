"""
Error taxonomy for WordPress discovery, connection and query handling.

Every error carries a user-facing message; route handlers render it as
``{"success": False, "error": str(exc)}``.
"""


class WordPressError(Exception):
    """Base class for all recoverable WordPress context errors."""


class ConfigNotFound(WordPressError):
    """No workspace root is available or no wp-config.php was located."""

    def __init__(self, message: str = "Could not find wp-config.php in this workspace or parent directories"):
        super().__init__(message)


class ConnectionFailed(WordPressError):
    """The database driver refused or failed to open a connection."""


class QueryFailed(WordPressError):
    """The database driver failed while executing a statement."""


class UnrecognizedQuery(WordPressError):
    """A free-text query did not match any supported shape."""

"""
Error taxonomy for the IPN ingestion boundary.

Each terminal failure maps to exactly one HTTP status in responses.py.
"""


class IPNError(Exception):
    """Base class for every error raised by the ingestion pipeline."""


class ConfigError(IPNError):
    """Startup configuration is missing or inconsistent."""


class AuthenticationFailure(IPNError):
    """No accepted credential scheme matched (401)."""


class ValidationFailure(IPNError):
    """Non-empty body that is not a usable notification (400)."""


class PersistenceFailure(IPNError):
    """The backend rejected or failed the write (500, sender retries)."""

    def __init__(self, cause: Exception):
        super().__init__(f"Persistence failed: {cause}")
        self.cause = cause


class UnexpectedFault(IPNError):
    """Any other exception escaping the pipeline (500)."""

"""
Exceptions raised by the Airtable client.
"""

from typing import Optional


class AirtableError(Exception):
    """Base class for every error raised by the client."""


class ConfigurationError(AirtableError):
    """Missing or invalid credentials or configuration."""


class TransportError(AirtableError):
    """Network level failure (DNS, connect, timeout). Never retried."""


class RetryExhaustedError(AirtableError):
    """
    Raised when the remote service keeps answering 422 past the retry ceiling.
    """

    def __init__(self, url: str, attempts: int):
        self.url = url
        self.attempts = attempts
        super().__init__(f"Hit max retries when attempting {url} ({attempts} attempts)")


class UnexpectedStatusError(AirtableError):
    """A read returned something other than 200."""

    def __init__(self, status_code: int, url: str, body: Optional[str] = None):
        self.status_code = status_code
        self.url = url
        self.body = body
        super().__init__(f"Invalid status code {status_code} for {url}")


class SerializationError(AirtableError):
    """Payload could not be encoded or a response body could not be decoded."""

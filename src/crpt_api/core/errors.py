"""
Error taxonomy for the document submission client.

Every failure a submission can end in has its own exception type so callers
can tell "not attempted" apart from "attempted and failed".
"""

from typing import Optional


class CrptApiError(Exception):
    """Base class for all errors raised by crpt_api."""


class InvalidConfiguration(CrptApiError, ValueError):
    """Raised at construction time when limits, intervals or endpoints are unusable."""


class Cancelled(CrptApiError):
    """The caller stopped waiting for a permit; nothing was sent."""


class SerializationError(CrptApiError):
    """The document could not be encoded into a request body."""


class TransportError(CrptApiError):
    """The HTTP call failed before a response was received."""


class RemoteRejection(CrptApiError):
    """The remote endpoint answered with a status other than 200."""

    def __init__(self, status_code: int, body: Optional[str] = None):
        self.status_code = status_code
        self.body = body
        super().__init__(f"Request rejected by API, status code: {status_code}")

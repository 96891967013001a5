"""Exception hierarchy for the Yak client."""

from typing import Any, Optional


class YakClientError(Exception):
    """Base class for every error raised by this package."""


class SigningError(YakClientError):
    """The request signature could not be computed.

    This is a configuration problem (missing key, unavailable hash primitive)
    and the client cannot work until it is fixed.
    """


class ClientError(YakClientError):
    """An API call failed."""


class TransportError(ClientError):
    """The request never produced a usable HTTP response (network, DNS, timeout)."""


class ServerError(ClientError):
    """The API answered, but with an error status or an unusable body."""

    def __init__(self, message: str, status: Optional[int] = None, payload: Any = None):
        super().__init__(message)
        self.status = status
        self.payload = payload


class EnrichmentError(YakClientError):
    """Reverse geocoding failed for a single message."""

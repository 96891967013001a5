"""Client for the Yik Yak anonymous message API.

Exposes the signed-request API client, the reverse geocoder used to enrich
messages with an address, and :class:`YakSession`, which ties the two
together into an address-annotated feed.
"""

from yak_client.api.client import YakApiClient
from yak_client.api.errors import (
    ClientError,
    EnrichmentError,
    ServerError,
    SigningError,
    TransportError,
    YakClientError,
)
from yak_client.api.signer import RequestSigner
from yak_client.models.message import Location
from yak_client.session import YakSession, new_identity

__all__ = [
    "ClientError",
    "EnrichmentError",
    "Location",
    "RequestSigner",
    "ServerError",
    "SigningError",
    "TransportError",
    "YakApiClient",
    "YakClientError",
    "YakSession",
    "new_identity",
]

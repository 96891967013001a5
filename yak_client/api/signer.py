"""Request signing for the Yik Yak API.

Every call carries a ``salt`` (the current Unix time in seconds) and a
``hash``: the base64 HMAC-SHA1 of the canonical request path plus the salt,
keyed with the shared client key. The canonical path is ``/api/<page>``
followed by the caller's parameters sorted by name and query-encoded. The
salt and hash themselves are never part of the signed text.
"""

import base64
import hashlib
import hmac
import logging
import time
from typing import Any, Dict, Mapping, Optional, TypedDict
from urllib.parse import quote, urlencode

from yak_client.api.errors import SigningError

logger = logging.getLogger(__name__)

SIGN_BASE = "/api/"

# Characters a JavaScript querystring encoder leaves alone besides [A-Za-z0-9_.-~]
_QUERY_SAFE = "!*'()"


class SignedRequest(TypedDict):
    """Signature fields merged into the outgoing query parameters."""

    salt: str
    hash: str


def format_value(value: Any) -> str:
    """Render a parameter value the way the server renders it when verifying."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def encode_query(params: Mapping[str, Any]) -> str:
    """Percent-encode ``params`` as ``key=value&...`` in their given order."""
    return urlencode(
        [(str(key), format_value(value)) for key, value in params.items()],
        safe=_QUERY_SAFE,
        quote_via=quote,
    )


class RequestSigner:
    """Computes the ``salt``/``hash`` pair that authorizes an API call."""

    def __init__(self, key: str):
        """
        Initialize the signer.

        Args:
            key: Shared secret known to the server

        Raises:
            SigningError: If the key is empty or HMAC-SHA1 is unavailable
        """
        if not key:
            raise SigningError("Signing key must not be empty")
        try:
            hashlib.new("sha1")
        except ValueError as e:
            raise SigningError(f"SHA-1 is not available: {e}") from e
        self._key = key.encode("utf-8")

    @staticmethod
    def canonical_message(page: str, params: Optional[Mapping[str, Any]] = None) -> str:
        """
        Build the exact text the signature covers, without the salt.

        Args:
            page: Endpoint name, without a leading slash
            params: Caller-supplied query parameters

        Returns:
            ``/api/<page>`` plus ``?<sorted query>`` when params are present
        """
        if not page:
            raise SigningError("Cannot sign a request without a page")
        message = SIGN_BASE + page
        if params:
            ordered = dict(sorted(params.items(), key=lambda item: str(item[0])))
            message += "?" + encode_query(ordered)
        return message

    def sign(
        self,
        page: str,
        params: Optional[Mapping[str, Any]] = None,
        now: Optional[float] = None,
    ) -> SignedRequest:
        """
        Sign a request for ``page`` with ``params``.

        Args:
            page: Endpoint name, without a leading slash
            params: Caller-supplied query parameters (not including salt/hash)
            now: Unix time to use as the salt; defaults to the current time

        Returns:
            The ``salt`` and ``hash`` fields to merge into the query
        """
        salt = str(int(time.time() if now is None else now))
        message = self.canonical_message(page, params) + salt
        digest = hmac.new(self._key, message.encode("utf-8"), hashlib.sha1).digest()
        signature = base64.b64encode(digest).decode("ascii")
        logger.debug(f"Signed {page} at salt {salt}")
        return {"salt": salt, "hash": signature}

    def signed_params(
        self,
        page: str,
        params: Optional[Mapping[str, Any]] = None,
        now: Optional[float] = None,
    ) -> Dict[str, Any]:
        """Return a copy of ``params`` with the signature fields merged in."""
        merged: Dict[str, Any] = dict(params or {})
        merged.update(self.sign(page, params, now=now))
        return merged

"""Fakes shared by the test modules."""

import json
from unittest.mock import AsyncMock, MagicMock


def make_http_session(status=200, body=None, text=None, exc=None):
    """
    Build a stand-in for ``aiohttp.ClientSession`` whose ``get`` yields one response.

    Args:
        status: HTTP status of the response
        body: Object returned as JSON (also served as text unless ``text`` is given)
        text: Raw response text, for malformed bodies
        exc: Exception raised by ``get`` instead of returning a response
    """
    response = MagicMock()
    response.status = status
    response.text = AsyncMock(return_value=text if text is not None else json.dumps(body))
    response.json = AsyncMock(return_value=body)

    session = MagicMock()
    if exc is not None:
        session.get.side_effect = exc
    else:
        session.get.return_value.__aenter__.return_value = response
    return session

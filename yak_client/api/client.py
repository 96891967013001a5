"""Yik Yak API client with request signing."""

import asyncio
import json
import logging
from contextlib import nullcontext
from typing import Any, Dict, List, Mapping, Optional

import aiohttp

from yak_client.api.errors import ClientError, ServerError, TransportError
from yak_client.api.signer import RequestSigner, encode_query
from yak_client.config import ApiConfig
from yak_client.models.mapping import add_routing_prefix, comments_to_records, messages_to_records
from yak_client.models.message import CommentRecord, Location, MessageRecord

logger = logging.getLogger(__name__)


class YakApiClient:
    """Issues signed GET requests to the Yik Yak API and maps the responses."""

    def __init__(
        self,
        config: Optional[ApiConfig] = None,
        session: Optional[aiohttp.ClientSession] = None,
        signer: Optional[RequestSigner] = None,
        prometheus_exporter=None,
    ):
        """
        Initialize the API client.

        Args:
            config: API endpoint and signing configuration
            session: HTTP session to use; one is created lazily if omitted
            signer: Request signer; built from ``config.signing_key`` if omitted
            prometheus_exporter: Optional Prometheus exporter for metrics
        """
        self.config = config or ApiConfig()
        self.signer = signer or RequestSigner(self.config.signing_key)
        self.prometheus_exporter = prometheus_exporter
        self._session = session
        self._owns_session = session is None
        self._closed = False

    @property
    def headers(self) -> Dict[str, str]:
        return {
            "User-Agent": self.config.user_agent,
            "Accept-Encoding": "gzip",
        }

    def _get_session(self) -> aiohttp.ClientSession:
        if self._closed:
            raise ClientError("API client is closed")
        if self._session is None:
            timeout = aiohttp.ClientTimeout(total=self.config.request_timeout_sec)
            self._session = aiohttp.ClientSession(timeout=timeout)
        return self._session

    async def close(self) -> None:
        """Close the HTTP session if this client created it."""
        self._closed = True
        if self._session is not None and self._owns_session:
            await self._session.close()
            self._session = None

    async def __aenter__(self) -> "YakApiClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def _record_error(self, page: str, error_type: str) -> None:
        if self.prometheus_exporter:
            self.prometheus_exporter.record_api_error(page, error_type)

    async def get(self, page: str, params: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
        """
        Issue a signed GET request.

        Args:
            page: API page, e.g. 'getMessages'
            params: Caller parameters; ``salt`` and ``hash`` are added here

        Returns:
            The decoded JSON body

        Raises:
            TransportError: If the request could not be completed
            ServerError: On a non-2xx status or a body that is not a JSON object
        """
        query = encode_query(self.signer.signed_params(page, params))
        url = f"{self.config.endpoint_url(page)}?{query}"

        if self.prometheus_exporter:
            self.prometheus_exporter.record_api_request(page)
            timer = self.prometheus_exporter.time_request(page)
        else:
            timer = None

        logger.debug(f"GET {page}")
        try:
            with timer if timer else nullcontext():
                async with self._get_session().get(url, headers=self.headers) as response:
                    status = response.status
                    body = await response.text()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            self._record_error(page, "transport")
            logger.warning(f"Request to {page} failed: {e!r}")
            raise TransportError(f"Request to {page} failed: {e!r}") from e

        if not 200 <= status < 300:
            error_type = "5xx" if 500 <= status < 600 else str(status)
            self._record_error(page, error_type)
            logger.warning(f"{page} returned HTTP {status}")
            raise ServerError(f"{page} returned HTTP {status}", status=status, payload=body)

        try:
            payload = json.loads(body)
        except ValueError as e:
            self._record_error(page, "malformed")
            raise ServerError(f"{page} returned malformed JSON", status=status, payload=body) from e

        if not isinstance(payload, dict):
            self._record_error(page, "malformed")
            raise ServerError(f"{page} returned unexpected JSON", status=status, payload=payload)

        return payload

    def _list_field(self, page: str, payload: Dict[str, Any], key: str) -> List[Any]:
        """Return the list under ``key``, treating a missing or null field as empty."""
        value = payload.get(key)
        if value is None:
            return []
        if not isinstance(value, list):
            self._record_error(page, "malformed")
            raise ServerError(f"{page} returned unexpected JSON", status=200, payload=payload)
        return value

    @staticmethod
    def _identity_params(identity: str, location: Location) -> Dict[str, Any]:
        params = location.to_params()
        params["userID"] = identity
        return params

    async def list_messages(self, identity: str, location: Location) -> List[MessageRecord]:
        """
        Fetch the messages around ``location``.

        Args:
            identity: Anonymous user ID
            location: Where to read messages from

        Returns:
            Message records in server order (most recent first)
        """
        payload = await self.get("getMessages", self._identity_params(identity, location))
        records = messages_to_records(self._list_field("getMessages", payload, "messages"))
        logger.info(f"Fetched {len(records)} messages near {location.latitude}, {location.longitude}")
        return records

    async def list_comments(
        self,
        identity: str,
        location: Location,
        message_id: str,
    ) -> List[CommentRecord]:
        """
        Fetch the comment thread of a message.

        Args:
            identity: Anonymous user ID
            location: Location of the session
            message_id: Message ID without the routing prefix

        Returns:
            Comment records in server order
        """
        params = self._identity_params(identity, location)
        params["messageID"] = add_routing_prefix(message_id)
        payload = await self.get("getComments", params)
        records = comments_to_records(
            self._list_field("getComments", payload, "comments"), message_id
        )
        logger.debug(f"Fetched {len(records)} comments for message {message_id}")
        return records

    async def register_identity(self, identity: str, location: Location) -> Optional[str]:
        """
        Register a new anonymous identity with the server.

        Failures are reported through the return value instead of raising.

        Args:
            identity: Anonymous user ID to register
            location: Location to register from

        Returns:
            None on success, otherwise a description of the server's error
        """
        try:
            payload = await self.get("registerUser", self._identity_params(identity, location))
        except ServerError as e:
            logger.error(f"Error registering user {identity}: {e}")
            return str(e)

        if payload.get("error"):
            logger.error(f"Error registering user {identity}: {payload['error']}")
            return str(payload["error"])

        logger.info(
            f"Registered new user: {identity} @ {location.latitude}, {location.longitude}"
        )
        return None

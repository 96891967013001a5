"""Anonymous Yik Yak session that builds the address-annotated feed."""

import asyncio
import hashlib
import logging
import secrets
from typing import Callable, List, Optional, cast

from yak_client.api.client import YakApiClient
from yak_client.api.errors import YakClientError
from yak_client.config import FeedConfig
from yak_client.geo.geocoder import Geocoder
from yak_client.models.message import CommentRecord, Location, MessageRecord

logger = logging.getLogger(__name__)

FEED_SIZE = 5

RandomSource = Callable[[int], bytes]


def new_identity(rng: RandomSource = secrets.token_bytes) -> str:
    """
    Generate an anonymous user ID.

    Args:
        rng: Returns the requested number of random bytes

    Returns:
        MD5 of 20 random bytes as 32 uppercase hex characters
    """
    return hashlib.md5(rng(20)).hexdigest().upper()


class YakSession:
    """An anonymous identity at a fixed location.

    Use :meth:`create` for a new identity (registered with the server in the
    background) or :meth:`resume` to continue with an identity from a
    previous run. Identity and location never change afterwards.
    """

    def __init__(
        self,
        identity: str,
        location: Location,
        api: YakApiClient,
        geocoder: Geocoder,
        feed_config: Optional[FeedConfig] = None,
        prometheus_exporter=None,
    ):
        self._identity = identity
        self._location = location
        self.api = api
        self.geocoder = geocoder
        self.feed_config = feed_config or FeedConfig()
        self.prometheus_exporter = prometheus_exporter
        self._registration: Optional["asyncio.Task[Optional[str]]"] = None

    @classmethod
    def create(
        cls,
        location: Location,
        api: YakApiClient,
        geocoder: Geocoder,
        feed_config: Optional[FeedConfig] = None,
        prometheus_exporter=None,
        rng: RandomSource = secrets.token_bytes,
    ) -> "YakSession":
        """
        Start a session with a fresh identity.

        Registration is scheduled on the running event loop and is not waited
        for; call :meth:`wait_registered` to join it.
        """
        session = cls(new_identity(rng), location, api, geocoder, feed_config, prometheus_exporter)
        session._registration = asyncio.get_running_loop().create_task(session._register())
        return session

    @classmethod
    def resume(
        cls,
        identity: str,
        location: Location,
        api: YakApiClient,
        geocoder: Geocoder,
        feed_config: Optional[FeedConfig] = None,
        prometheus_exporter=None,
    ) -> "YakSession":
        """Continue a session with an identity that is already registered."""
        return cls(identity, location, api, geocoder, feed_config, prometheus_exporter)

    @property
    def identity(self) -> str:
        return self._identity

    @property
    def location(self) -> Location:
        return self._location

    async def _register(self) -> Optional[str]:
        try:
            return await self.api.register_identity(self._identity, self._location)
        except YakClientError as e:
            logger.error(f"Registration of {self._identity} failed: {e}")
            return str(e)

    async def wait_registered(self) -> Optional[str]:
        """
        Wait for background registration of a fresh identity.

        Returns:
            None if registration succeeded or was never needed, otherwise the error
        """
        if self._registration is None:
            return None
        return await self._registration

    async def _locate(self, message: MessageRecord) -> Optional[str]:
        try:
            return await asyncio.wait_for(
                self.geocoder.resolve_address(message["latitude"], message["longitude"]),
                timeout=self.feed_config.geocode_timeout_sec,
            )
        except asyncio.TimeoutError:
            logger.warning(f"Geocoding message {message['id']} timed out")
        except YakClientError as e:
            logger.warning(f"Geocoding message {message['id']} failed: {e}")

        if self.prometheus_exporter:
            self.prometheus_exporter.record_geocode_failure()
        return None

    async def _comments(self, message: MessageRecord) -> List[CommentRecord]:
        try:
            return await asyncio.wait_for(
                self.api.list_comments(self._identity, self._location, message["id"]),
                timeout=self.feed_config.comment_timeout_sec,
            )
        except asyncio.TimeoutError:
            logger.warning(f"Fetching comments for {message['id']} timed out")
        except YakClientError as e:
            logger.warning(f"Fetching comments for {message['id']} failed: {e}")
        return []

    async def list(self) -> List[MessageRecord]:
        """
        Build the enriched feed for this session's location.

        Takes the five most recent messages, resolves all of their addresses
        concurrently, then fetches all of their comment threads concurrently.
        A failed lookup only blanks that message's address or comments.

        Returns:
            Up to five messages, in server order, with address and comments

        Raises:
            ClientError: If the messages themselves could not be fetched
        """
        messages = await self.api.list_messages(self._identity, self._location)
        recent = messages[:FEED_SIZE]

        addresses = await asyncio.gather(*(self._locate(m) for m in recent))
        enriched = [
            cast(MessageRecord, {**message, "address": address, "comments": []})
            for message, address in zip(recent, addresses)
        ]

        threads = await asyncio.gather(*(self._comments(m) for m in enriched))
        for message, comments in zip(enriched, threads):
            message["comments"] = comments

        if self.prometheus_exporter:
            for message in enriched:
                if message["address"] is not None:
                    self.prometheus_exporter.record_message_enriched()

        logger.info(
            f"Built feed of {len(enriched)} messages "
            f"({sum(1 for m in enriched if m['address'])} with address)"
        )
        return enriched

"""Data models for yaks, their comments and the location they are read from."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, TypedDict


@dataclass(frozen=True)
class Location:
    """A latitude/longitude pair, fixed for the lifetime of a session."""

    latitude: float
    longitude: float

    def to_params(self) -> Dict[str, Any]:
        """Query parameters the API expects for a location."""
        return {"lat": self.latitude, "long": self.longitude}


class CommentRecord(TypedDict):
    """
    A single comment on a yak.
    Belongs to exactly one message, referenced by ``message_id``.
    """
    id: str  # Comment ID with the "R/" routing prefix removed
    message_id: str  # ID of the message this comment belongs to (no prefix)
    content: str
    timestamp: Optional[datetime]  # Aware UTC datetime, None if the server time was unreadable
    like_count: int
    poster_id: str


class MessageRecord(TypedDict):
    """
    A yak as presented to callers.
    ``address`` stays None until reverse geocoding succeeds for this message,
    and ``comments`` stays empty until the comment thread has been joined.
    """
    id: str  # Message ID with the "R/" routing prefix removed
    content: str
    latitude: float
    longitude: float
    timestamp: Optional[datetime]
    like_count: int
    comment_count: int  # Count reported by the server, not len(comments)
    poster_id: str
    handle: Optional[str]
    address: Optional[str]
    comments: List[CommentRecord]

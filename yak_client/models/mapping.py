"""Mapping functions to convert raw Yik Yak API payloads to our data models."""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from yak_client.models.message import CommentRecord, MessageRecord

logger = logging.getLogger(__name__)

ROUTING_PREFIX = "R/"

# Epoch values above this are treated as milliseconds
_MILLISECOND_THRESHOLD = 10 ** 11


def strip_routing_prefix(raw_id: str) -> str:
    """Remove the server's ``R/`` routing marker from an ID, if present."""
    if raw_id.startswith(ROUTING_PREFIX):
        return raw_id[len(ROUTING_PREFIX):]
    return raw_id


def add_routing_prefix(message_id: str) -> str:
    """Add the ``R/`` routing marker expected on submitted ``messageID`` values."""
    return ROUTING_PREFIX + message_id


def parse_time(value: Any) -> Optional[datetime]:
    """
    Convert a server ``time`` field to an aware UTC datetime.

    Args:
        value: Epoch seconds or milliseconds, or a ``YYYY-MM-DD HH:MM:SS`` string

    Returns:
        The parsed datetime, or None if the value cannot be interpreted
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, str):
        text = value.strip()
        try:
            return datetime.strptime(text, "%Y-%m-%d %H:%M:%S").replace(tzinfo=timezone.utc)
        except ValueError:
            pass
        try:
            value = float(text)
        except ValueError:
            logger.warning(f"Unrecognised time value: {value!r}")
            return None

    try:
        seconds = float(value)
    except (TypeError, ValueError):
        logger.warning(f"Unrecognised time value: {value!r}")
        return None

    if abs(seconds) > _MILLISECOND_THRESHOLD:
        seconds /= 1000.0
    try:
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        logger.warning(f"Time value out of range: {value!r}")
        return None


def message_to_record(message: Dict[str, Any]) -> MessageRecord:
    """
    Convert a raw ``getMessages`` entry to a MessageRecord.

    Args:
        message: One element of the ``messages`` array

    Returns:
        A MessageRecord without address or comments
    """
    record: MessageRecord = {
        "id": strip_routing_prefix(str(message["messageID"])),
        "content": message.get("message", ""),
        "latitude": message["latitude"],
        "longitude": message["longitude"],
        "timestamp": parse_time(message.get("time")),
        "like_count": int(message.get("numberOfLikes") or 0),
        "comment_count": int(message.get("comments") or 0),
        "poster_id": message.get("posterID", ""),
        "handle": message.get("handle") or None,
        "address": None,
        "comments": [],
    }
    return record


def comment_to_record(comment: Dict[str, Any], message_id: str) -> CommentRecord:
    """
    Convert a raw ``getComments`` entry to a CommentRecord.

    Args:
        comment: One element of the ``comments`` array
        message_id: Unprefixed ID of the message the thread belongs to

    Returns:
        A CommentRecord linked to ``message_id``
    """
    record: CommentRecord = {
        "id": strip_routing_prefix(str(comment["commentID"])),
        "message_id": message_id,
        "content": comment.get("comment", ""),
        "timestamp": parse_time(comment.get("time")),
        "like_count": int(comment.get("numberOfLikes") or 0),
        "poster_id": comment.get("posterID", ""),
    }
    return record


def messages_to_records(messages: List[Dict[str, Any]]) -> List[MessageRecord]:
    """
    Convert a list of raw messages, skipping entries that cannot be mapped.

    Args:
        messages: The ``messages`` array of a ``getMessages`` response

    Returns:
        List of MessageRecords in server order
    """
    records = []

    for message in messages:
        try:
            records.append(message_to_record(message))
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Failed to convert message {message!r}: {e!r}")

    return records


def comments_to_records(comments: List[Dict[str, Any]], message_id: str) -> List[CommentRecord]:
    """
    Convert a list of raw comments, skipping entries that cannot be mapped.

    Args:
        comments: The ``comments`` array of a ``getComments`` response
        message_id: Unprefixed ID of the message the thread belongs to

    Returns:
        List of CommentRecords in server order
    """
    records = []

    for comment in comments:
        try:
            records.append(comment_to_record(comment, message_id))
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Failed to convert comment on {message_id}: {e!r}")

    return records

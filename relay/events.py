"""Decoding of WhatsApp Cloud API webhook payloads."""

from dataclasses import dataclass
from datetime import datetime, timezone

from relay.errors import MalformedEvent


@dataclass(frozen=True)
class InboundEvent:
    routing_key: str
    sender: str
    text: str
    message_id: str | None = None
    timestamp: datetime | None = None


def _first(items, what: str):
    if not isinstance(items, list) or not items:
        raise MalformedEvent(f"no {what}")
    return items[0]


def _text_field(obj, key: str, allow_empty: bool = False) -> str:
    value = obj.get(key) if isinstance(obj, dict) else None
    if not isinstance(value, str) or not (value or allow_empty):
        raise MalformedEvent(f"missing {key}")
    return value


def _epoch(raw) -> datetime | None:
    # WhatsApp sends epoch seconds as a string
    try:
        return datetime.fromtimestamp(int(raw), tz=timezone.utc)
    except (TypeError, ValueError, OverflowError, OSError):
        return None


def parse_event(payload) -> InboundEvent:
    """
    Pull the first text message out of a webhook body.

    Shape: {object, entry: [{changes: [{value: {metadata: {phone_number_id},
    messages: [{from, text: {body}}]}}]}]}. Only entry[0].changes[0] and
    messages[0] are looked at. Status callbacks, media messages and anything
    else without a text body raise MalformedEvent.
    """
    if not isinstance(payload, dict) or not payload.get("object"):
        raise MalformedEvent("not a webhook event")

    entry = _first(payload.get("entry"), "entry")
    change = _first(entry.get("changes") if isinstance(entry, dict) else None, "changes")
    value = change.get("value") if isinstance(change, dict) else None
    if not isinstance(value, dict):
        raise MalformedEvent("missing value")

    routing_key = _text_field(value.get("metadata"), "phone_number_id")
    message = _first(value.get("messages"), "messages")
    sender = _text_field(message, "from")
    text = _text_field(message.get("text"), "body", allow_empty=True)

    message_id = message.get("id")
    return InboundEvent(
        routing_key=routing_key,
        sender=sender,
        text=text,
        message_id=message_id if isinstance(message_id, str) else None,
        timestamp=_epoch(message.get("timestamp")),
    )

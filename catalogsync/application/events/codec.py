"""Wire codec for catalog events.

Payloads are JSON objects of the form ``{"eventType": str, "data": {...}}``.
Decoding validates the envelope structure first and then the payload of the
variant selected by ``eventType``. Any failure is reported as
:class:`~catalogsync.domain.DecodeError`; event types outside the known set
are not failures and decode to :class:`~catalogsync.domain.UnknownEvent`.
"""

import json
from typing import Any

from pydantic import ValidationError

from ...domain import EVENT_VARIANTS, CatalogEvent, DecodeError, UnknownEvent


def decode_event(body: bytes | str) -> CatalogEvent:
    """Decode a raw queue payload into a typed event.

    Args:
        body: Raw message body, UTF-8 encoded JSON.

    Returns:
        The decoded event variant.

    Raises:
        DecodeError: If the payload is not UTF-8 JSON, is not an object, has
            a non-string ``eventType``, a non-object ``data``, or a ``data``
            object missing fields required by its event type.

    Examples:
        >>> event = decode_event(b'{"eventType": "BOOK_DELETED", "data": {"book_id": "b1"}}')
        >>> type(event).__name__, event.book_id
        ('BookDeleted', 'b1')
    """
    try:
        text = body.decode("utf-8") if isinstance(body, (bytes, bytearray)) else body
        payload: Any = json.loads(text)
    except (UnicodeDecodeError, ValueError) as err:
        raise DecodeError(f"Payload is not valid UTF-8 JSON: {err}") from err

    if not isinstance(payload, dict):
        raise DecodeError(f"Payload must be a JSON object, got {type(payload).__name__}")

    event_type = payload.get("eventType")
    if not isinstance(event_type, str):
        raise DecodeError("Payload field 'eventType' must be a string")

    data = payload.get("data")
    if not isinstance(data, dict):
        raise DecodeError("Payload field 'data' must be an object")

    variant = EVENT_VARIANTS.get(event_type)
    if variant is None:
        return UnknownEvent(event_type=event_type, data=data)

    try:
        return variant.model_validate({"eventType": event_type, "data": data})
    except ValidationError as err:
        raise DecodeError(f"Invalid {event_type} payload: {_describe(err)}") from err


def encode_event(event: CatalogEvent) -> bytes:
    """Encode an event into its wire representation.

    Args:
        event: The event to encode.

    Returns:
        UTF-8 encoded JSON accepted by :func:`decode_event`.
    """
    data = event.data
    if hasattr(data, "model_dump"):
        data = data.model_dump(mode="json", by_alias=True, exclude_unset=True)
    return json.dumps({"eventType": event.event_type, "data": data}).encode("utf-8")


def _describe(err: ValidationError) -> str:
    parts = []
    for error in err.errors():
        location = ".".join(str(part) for part in error["loc"] if part != "data")
        parts.append(f"{location or 'data'}: {error['msg']}")
    return "; ".join(parts)

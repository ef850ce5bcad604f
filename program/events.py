"""Decode bridge events from transaction logs.

Anchor's ``emit!`` writes each event as a ``Program data: <base64>`` log line
whose payload is the event discriminator followed by the Borsh-encoded
event. Decoding is best-effort: anything that does not parse is skipped.
"""

import base64
import binascii
import io
import logging
from typing import Iterable, Iterator, Optional

from construct import Construct, ConstructError
from solders.pubkey import Pubkey

from core.errors import MalformedInputError
from core.types import BridgeEvent, BurnEvent, MintEvent, TransactionRecord
from program.layouts import (
    BURN_EVENT_DISCRIMINATOR,
    BURN_EVENT_LAYOUT,
    DISCRIMINATOR_LEN,
    MINT_EVENT_DISCRIMINATOR,
    MINT_EVENT_LAYOUT,
)

logger = logging.getLogger(__name__)

PROGRAM_DATA_PREFIX = "Program data: "


def _parse_exact(layout: Construct, body: bytes):
    """Parse ``body`` and require every byte to be consumed."""
    stream = io.BytesIO(body)
    try:
        parsed = layout.parse_stream(stream)
    except (ConstructError, UnicodeDecodeError) as e:
        raise MalformedInputError(f"Failed to deserialize event: {e}")
    if stream.read(1):
        raise MalformedInputError("Trailing bytes after event")
    return parsed


def parse_event_data(data: bytes) -> Optional[BridgeEvent]:
    """Classify and deserialize one decoded ``Program data`` payload.

    Returns:
        The event, or None if the discriminator is not a bridge event

    Raises:
        MalformedInputError: If the discriminator matches but the body does not parse
    """
    if len(data) < DISCRIMINATOR_LEN:
        return None

    tag, body = data[:DISCRIMINATOR_LEN], data[DISCRIMINATOR_LEN:]

    if tag == MINT_EVENT_DISCRIMINATOR:
        parsed = _parse_exact(MINT_EVENT_LAYOUT, body)
        return MintEvent(to=str(Pubkey.from_bytes(parsed["to"])), value=parsed["value"])

    if tag == BURN_EVENT_DISCRIMINATOR:
        parsed = _parse_exact(BURN_EVENT_LAYOUT, body)
        return BurnEvent(
            from_address=str(Pubkey.from_bytes(parsed["from"])),
            btc_address=parsed["btc_addr"],
            value=parsed["value"],
            operator_id=parsed["operator_id"],
        )

    return None


def iter_events(logs: Iterable[str]) -> Iterator[BridgeEvent]:
    """Yield every bridge event found in ``logs``, in log order."""
    for line in logs:
        if not line.startswith(PROGRAM_DATA_PREFIX):
            continue

        payload = line[len(PROGRAM_DATA_PREFIX):]
        try:
            data = base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError):
            logger.debug(f"Skipping undecodable program data: {payload[:32]}")
            continue

        try:
            event = parse_event_data(data)
        except MalformedInputError as e:
            logger.debug(f"Skipping malformed event payload: {e}")
            continue

        if event is not None:
            yield event


def decode_event(logs: Iterable[str]) -> Optional[BridgeEvent]:
    """Return the first bridge event in ``logs``, or None.

    Later events in the same transaction are ignored.
    """
    return next(iter_events(logs), None)


def parse_transaction_event(record: TransactionRecord) -> Optional[BridgeEvent]:
    return decode_event(record.logs)


def encode_event(event: BridgeEvent) -> str:
    """Render an event as the ``Program data`` log line Anchor would emit."""
    if isinstance(event, MintEvent):
        data = MINT_EVENT_DISCRIMINATOR + MINT_EVENT_LAYOUT.build({
            "to": bytes(Pubkey.from_string(event.to)),
            "value": event.value,
        })
    elif isinstance(event, BurnEvent):
        data = BURN_EVENT_DISCRIMINATOR + BURN_EVENT_LAYOUT.build({
            "from": bytes(Pubkey.from_string(event.from_address)),
            "btc_addr": event.btc_address,
            "value": event.value,
            "operator_id": event.operator_id,
        })
    else:
        raise TypeError(f"Not a bridge event: {event!r}")

    return PROGRAM_DATA_PREFIX + base64.b64encode(data).decode()

"""
Tests for bridge event log decoding.
"""

import base64
import hashlib

from solders.keypair import Keypair

from core.types import BurnEvent, MintEvent, TransactionRecord
from program.events import (
    PROGRAM_DATA_PREFIX,
    decode_event,
    encode_event,
    iter_events,
    parse_event_data,
    parse_transaction_event,
)
from program.layouts import (
    BURN_EVENT_DISCRIMINATOR,
    MINT_EVENT_DISCRIMINATOR,
)


def _address() -> str:
    return str(Keypair().pubkey())


def _program_data(raw: bytes) -> str:
    return PROGRAM_DATA_PREFIX + base64.b64encode(raw).decode()


class TestDiscriminators:

    def test_anchor_event_discriminators(self):
        assert MINT_EVENT_DISCRIMINATOR == hashlib.sha256(b"event:MintEvent").digest()[:8]
        assert BURN_EVENT_DISCRIMINATOR == hashlib.sha256(b"event:BurnEvent").digest()[:8]


class TestDecodeEvent:

    def test_mint_round_trip(self):
        event = MintEvent(to=_address(), value=123_456_789)

        decoded = decode_event([encode_event(event)])

        assert decoded == event

    def test_burn_payload_decodes(self):
        from_key = Keypair().pubkey()
        btc_addr = "bc1qxyz"
        body = (
            BURN_EVENT_DISCRIMINATOR
            + bytes(from_key)
            + len(btc_addr).to_bytes(4, "little") + btc_addr.encode()
            + (1000).to_bytes(8, "little")
            + (1).to_bytes(8, "little")
        )

        decoded = decode_event([_program_data(body)])

        assert decoded == BurnEvent(
            from_address=str(from_key),
            btc_address="bc1qxyz",
            value=1000,
            operator_id=1,
        )

    def test_lines_without_marker_are_skipped(self):
        event = MintEvent(to=_address(), value=5)
        line = encode_event(event)

        logs = [
            "Program J64ucfNboe9e3FtoeSxMzmkobfTxEkJgiLwY4nYgQLBe invoke [1]",
            "Program log: Instruction: Mint",
            line[len(PROGRAM_DATA_PREFIX):],  # bare payload
            "Program log: " + line[len(PROGRAM_DATA_PREFIX):],
        ]

        assert decode_event(logs) is None

    def test_truncated_payload_is_skipped(self):
        assert decode_event([_program_data(MINT_EVENT_DISCRIMINATOR[:5])]) is None
        assert decode_event([_program_data(b"")]) is None

    def test_discriminator_without_body_is_skipped(self):
        assert decode_event([_program_data(MINT_EVENT_DISCRIMINATOR)]) is None

    def test_short_body_is_skipped(self):
        body = MINT_EVENT_DISCRIMINATOR + bytes(Keypair().pubkey()) + b"\x01\x02"
        assert decode_event([_program_data(body)]) is None

    def test_trailing_bytes_are_rejected(self):
        event = MintEvent(to=_address(), value=7)
        raw = base64.b64decode(encode_event(event)[len(PROGRAM_DATA_PREFIX):])
        assert decode_event([_program_data(raw + b"\x00")]) is None

    def test_invalid_utf8_btc_address_is_skipped(self):
        body = (
            BURN_EVENT_DISCRIMINATOR
            + bytes(Keypair().pubkey())
            + (2).to_bytes(4, "little") + b"\xff\xfe"
            + (1).to_bytes(8, "little")
            + (1).to_bytes(8, "little")
        )
        assert decode_event([_program_data(body)]) is None

    def test_unknown_discriminator_is_skipped(self):
        other = hashlib.sha256(b"event:SomethingElse").digest()[:8]
        assert decode_event([_program_data(other + b"\x00" * 40)]) is None

    def test_malformed_base64_then_valid_mint(self):
        event = MintEvent(to=_address(), value=42)
        logs = [
            PROGRAM_DATA_PREFIX + "!!!not base64!!!",
            encode_event(event),
        ]

        assert decode_event(logs) == event

    def test_first_event_wins(self):
        first = MintEvent(to=_address(), value=1)
        second = BurnEvent(from_address=_address(), btc_address="bc1q", value=2, operator_id=3)
        logs = [encode_event(first), encode_event(second)]

        assert decode_event(logs) == first
        assert list(iter_events(logs)) == [first, second]

    def test_empty_logs(self):
        assert decode_event([]) is None


class TestParseEventData:

    def test_returns_none_for_short_data(self):
        assert parse_event_data(b"\x01\x02") is None

    def test_parse_transaction_record(self):
        event = BurnEvent(from_address=_address(), btc_address="tb1qabc", value=99, operator_id=7)
        record = TransactionRecord(signature="sig", slot=10, logs=[encode_event(event)])

        assert parse_transaction_event(record) == event

from __future__ import annotations

import pytest

from ump_lookup.decoder import UMP_TOPIC, UMPFields, UMPTokenDecoder
from ump_lookup.pushdrop import DecodeError, build_pushdrop_script

PUBKEY = bytes.fromhex("03" + "22" * 32)
PRESENTATION = bytes.fromhex("aa" * 32)
RECOVERY = bytes.fromhex("bb" * 32)


def _ump_script(presentation: bytes = PRESENTATION, recovery: bytes = RECOVERY, extra: int = 3) -> bytes:
    leading = [bytes([0x10 + i]) * 16 for i in range(6)]
    trailing = [b"\x00" * 8 for _ in range(extra)]
    return build_pushdrop_script(PUBKEY, leading + [presentation, recovery] + trailing)


def test_decode_extracts_presentation_and_recovery_hashes() -> None:
    decoder = UMPTokenDecoder()

    fields = decoder.decode(_ump_script(), UMP_TOPIC)

    assert fields == UMPFields(presentation_hash="aa" * 32, recovery_hash="bb" * 32)


def test_decode_accepts_exactly_eight_fields() -> None:
    decoder = UMPTokenDecoder()

    fields = decoder.decode(_ump_script(extra=0), UMP_TOPIC)

    assert fields is not None
    assert fields.recovery_hash == "bb" * 32


def test_decode_ignores_other_topics_without_parsing() -> None:
    decoder = UMPTokenDecoder()

    assert decoder.decode(b"\xff garbage", "tm_other") is None


def test_decode_rejects_tokens_with_too_few_fields() -> None:
    decoder = UMPTokenDecoder()
    script = build_pushdrop_script(PUBKEY, [b"\x01" * 4] * 7)

    with pytest.raises(DecodeError):
        decoder.decode(script, UMP_TOPIC)


def test_decode_propagates_malformed_scripts() -> None:
    decoder = UMPTokenDecoder()

    with pytest.raises(DecodeError):
        decoder.decode(bytes([0x21]) + b"\x02" * 5, UMP_TOPIC)


def test_custom_topic() -> None:
    decoder = UMPTokenDecoder("tm_staging_users")

    assert decoder.accepts("tm_staging_users")
    assert not decoder.accepts(UMP_TOPIC)

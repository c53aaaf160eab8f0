"""Push-drop token codec.

A push-drop token embeds an ordered list of binary fields in an output's
locking script, ahead of the opcodes that drop them again:

    <locking pubkey> OP_CHECKSIG <field 0> ... <field N> OP_2DROP ... [OP_DROP]

Only the lock-before layout is supported; UMP account tokens are always
minted that way. The helpers here parse raw script bytes into chunks, recover
the field list and build new token scripts with minimal pushes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Sequence

logger = logging.getLogger(__name__)

OP_0 = 0x00
OP_PUSHDATA1 = 0x4C
OP_PUSHDATA2 = 0x4D
OP_PUSHDATA4 = 0x4E
OP_1NEGATE = 0x4F
OP_1 = 0x51
OP_16 = 0x60
OP_2DROP = 0x6D
OP_DROP = 0x75
OP_CHECKSIG = 0xAC


class DecodeError(ValueError):
    """Raised when a locking script cannot be decoded as a push-drop token."""


@dataclass(frozen=True)
class ScriptChunk:
    """One opcode from a parsed script, with its pushed bytes if any."""

    op: int
    data: bytes | None = None


@dataclass(frozen=True)
class PushDropToken:
    """Decoded push-drop token: the locking key and the embedded fields."""

    locking_public_key: bytes
    fields: list[bytes] = field(default_factory=list)


def _coerce_script(script: bytes | bytearray | str) -> bytes:
    if isinstance(script, (bytes, bytearray)):
        return bytes(script)
    if isinstance(script, str):
        try:
            return bytes.fromhex(script)
        except ValueError as exc:
            raise DecodeError(f"locking script is not valid hex: {exc}") from exc
    raise DecodeError(f"unsupported locking script type: {type(script).__name__}")


def _read_length(data: bytes, pos: int, width: int) -> int:
    if pos + width > len(data):
        raise DecodeError(f"truncated push length at offset {pos}")
    return int.from_bytes(data[pos : pos + width], "little")


def parse_script(script: bytes | bytearray | str) -> list[ScriptChunk]:
    """Split raw script bytes into opcode chunks.

    Direct pushes (0x01-0x4b) and OP_PUSHDATA1/2/4 carry data; every other
    opcode is returned bare. A push that runs past the end of the script is
    malformed.
    """

    data = _coerce_script(script)
    chunks: list[ScriptChunk] = []
    pos = 0
    while pos < len(data):
        op = data[pos]
        pos += 1

        if 0x01 <= op <= 0x4B:
            length = op
        elif op == OP_PUSHDATA1:
            length = _read_length(data, pos, 1)
            pos += 1
        elif op == OP_PUSHDATA2:
            length = _read_length(data, pos, 2)
            pos += 2
        elif op == OP_PUSHDATA4:
            length = _read_length(data, pos, 4)
            pos += 4
        else:
            chunks.append(ScriptChunk(op=op))
            continue

        end = pos + length
        if end > len(data):
            raise DecodeError(
                f"push of {length} bytes at offset {pos} exceeds script length {len(data)}"
            )
        chunks.append(ScriptChunk(op=op, data=data[pos:end]))
        pos = end
    return chunks


def _chunk_value(chunk: ScriptChunk) -> bytes:
    if chunk.data:
        return chunk.data
    if OP_1 <= chunk.op <= OP_16:
        return bytes([chunk.op - 0x50])
    if chunk.op == OP_0:
        return b"\x00"
    if chunk.op == OP_1NEGATE:
        return b"\x81"
    return b""


def decode_pushdrop(script: bytes | bytearray | str) -> PushDropToken:
    """Decode a lock-before push-drop script into its locking key and fields."""

    chunks = parse_script(script)
    if len(chunks) < 2 or not chunks[0].data:
        raise DecodeError("script does not start with a locking public key push")
    if chunks[1].op != OP_CHECKSIG:
        raise DecodeError("locking public key is not followed by OP_CHECKSIG")

    fields: list[bytes] = []
    for index in range(2, len(chunks)):
        fields.append(_chunk_value(chunks[index]))
        next_op = chunks[index + 1].op if index + 1 < len(chunks) else None
        if next_op in (OP_DROP, OP_2DROP):
            break

    logger.debug("Decoded push-drop token with %d fields", len(fields))
    return PushDropToken(locking_public_key=chunks[0].data, fields=fields)


def _minimal_push(data: bytes) -> bytes:
    if len(data) == 0 or data == b"\x00":
        return bytes([OP_0])
    if len(data) == 1 and 1 <= data[0] <= 16:
        return bytes([OP_1 + data[0] - 1])
    if data == b"\x81":
        return bytes([OP_1NEGATE])
    if len(data) <= 0x4B:
        return bytes([len(data)]) + data
    if len(data) <= 0xFF:
        return bytes([OP_PUSHDATA1, len(data)]) + data
    if len(data) <= 0xFFFF:
        return bytes([OP_PUSHDATA2]) + len(data).to_bytes(2, "little") + data
    return bytes([OP_PUSHDATA4]) + len(data).to_bytes(4, "little") + data


def build_pushdrop_script(locking_public_key: bytes, fields: Sequence[bytes]) -> bytes:
    """Build a lock-before push-drop script carrying ``fields``."""

    if not locking_public_key:
        raise ValueError("locking_public_key must not be empty")

    script = bytearray(_minimal_push(locking_public_key))
    script.append(OP_CHECKSIG)
    for value in fields:
        script.extend(_minimal_push(bytes(value)))

    remaining = len(fields)
    while remaining > 1:
        script.append(OP_2DROP)
        remaining -= 2
    if remaining == 1:
        script.append(OP_DROP)
    return bytes(script)


__all__ = [
    "DecodeError",
    "PushDropToken",
    "ScriptChunk",
    "build_pushdrop_script",
    "decode_pushdrop",
    "parse_script",
]

"""Extract UMP account fields from push-drop locking scripts."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .pushdrop import DecodeError, decode_pushdrop

logger = logging.getLogger(__name__)

UMP_TOPIC = "tm_users"
PRESENTATION_HASH_FIELD = 6
RECOVERY_HASH_FIELD = 7


@dataclass(frozen=True)
class UMPFields:
    """The two UMP token fields the lookup service indexes, as hex."""

    presentation_hash: str
    recovery_hash: str


class UMPTokenDecoder:
    """Decode UMP account tokens admitted under a single topic."""

    def __init__(self, topic: str = UMP_TOPIC) -> None:
        if not topic:
            raise ValueError("UMPTokenDecoder requires a topic")
        self.topic = topic

    def accepts(self, topic: str) -> bool:
        return topic == self.topic

    def decode(self, output_script: bytes | str, topic: str) -> UMPFields | None:
        """Return the indexed fields, or ``None`` when ``topic`` is not tracked.

        Malformed scripts raise :class:`~ump_lookup.pushdrop.DecodeError`.
        """

        if not self.accepts(topic):
            logger.debug("Ignoring output on untracked topic %s", topic)
            return None

        token = decode_pushdrop(output_script)
        needed = RECOVERY_HASH_FIELD + 1
        if len(token.fields) < needed:
            raise DecodeError(
                f"UMP token carries {len(token.fields)} fields; expected at least {needed}"
            )
        return UMPFields(
            presentation_hash=token.fields[PRESENTATION_HASH_FIELD].hex(),
            recovery_hash=token.fields[RECOVERY_HASH_FIELD].hex(),
        )

"""Lookup query shapes accepted by the UMP lookup service.

Callers send loosely-typed mappings such as ``{"presentationHash": "..."}``.
:func:`parse_lookup_query` validates them at the boundary and converts them
into one of three query kinds, each of which knows the record filter it
resolves to.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Union

from .record_store import RecordFilter

PRESENTATION_HASH_KEY = "presentationHash"
RECOVERY_HASH_KEY = "recoveryHash"
OUTPOINT_KEY = "outpoint"
# Consulted in this order; the first key present wins.
QUERY_KEYS = (PRESENTATION_HASH_KEY, RECOVERY_HASH_KEY, OUTPOINT_KEY)


class InvalidQueryError(ValueError):
    """Raised when a lookup query is missing or has an unsupported shape."""


@dataclass(frozen=True)
class ByPresentationHash:
    value: str

    def to_filter(self) -> RecordFilter:
        return RecordFilter(presentation_hash=self.value)


@dataclass(frozen=True)
class ByRecoveryHash:
    value: str

    def to_filter(self) -> RecordFilter:
        return RecordFilter(recovery_hash=self.value)


@dataclass(frozen=True)
class ByOutpoint:
    """Identity query. ``output_index`` is ``None`` when the index could not
    name any output, in which case the query matches nothing."""

    txid: str
    output_index: int | None

    def to_filter(self) -> RecordFilter | None:
        if not self.txid or self.output_index is None:
            return None
        return RecordFilter(txid=self.txid, output_index=self.output_index)


LookupQuery = Union[ByPresentationHash, ByRecoveryHash, ByOutpoint]


def parse_outpoint(raw: str) -> ByOutpoint:
    """Parse ``"<txid>.<outputIndex>"``.

    The txid is the text before the first ``.`` and the index is the text
    between the first and any second ``.``. An index that is not a
    non-negative integer yields a query that matches nothing.
    """

    if not isinstance(raw, str):
        raise InvalidQueryError("outpoint must be a string")
    if not raw:
        raise InvalidQueryError("unsupported query shape")
    txid, _, remainder = raw.partition(".")
    index_text = remainder.split(".", 1)[0]
    output_index = int(index_text) if index_text.isascii() and index_text.isdecimal() else None
    return ByOutpoint(txid=txid, output_index=output_index)


def parse_lookup_query(query: Mapping[str, Any] | None, *, strict: bool = False) -> LookupQuery:
    """Convert a caller-supplied mapping into a :data:`LookupQuery`.

    Empty values count as absent. When several recognised keys are present
    the first in :data:`QUERY_KEYS` order is used and the rest are ignored,
    unless ``strict`` is set, in which case the query is rejected.
    """

    if query is None:
        raise InvalidQueryError("no query supplied")
    if not isinstance(query, Mapping):
        raise InvalidQueryError("unsupported query shape")

    present = [key for key in QUERY_KEYS if query.get(key)]
    if not present:
        raise InvalidQueryError("unsupported query shape")
    if strict and len(present) > 1:
        raise InvalidQueryError(f"ambiguous query: {', '.join(present)}")

    key = present[0]
    value = query[key]
    if key == OUTPOINT_KEY:
        return parse_outpoint(value)
    if not isinstance(value, str):
        raise InvalidQueryError(f"{key} must be a hex string")
    if key == PRESENTATION_HASH_KEY:
        return ByPresentationHash(value)
    return ByRecoveryHash(value)


__all__ = [
    "ByOutpoint",
    "ByPresentationHash",
    "ByRecoveryHash",
    "InvalidQueryError",
    "LookupQuery",
    "QUERY_KEYS",
    "parse_lookup_query",
    "parse_outpoint",
]

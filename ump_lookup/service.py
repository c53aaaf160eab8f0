"""Lookup service for User Management Protocol account tokens.

The overlay host drives this service through four callbacks: outputs are
admitted, spent or evicted, and external callers issue lookups. The service
itself holds no mutable state; every record lives in the store it is given.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, List, Mapping

from .config import LookupConfig, load_lookup_config
from .decoder import UMP_TOPIC, UMPTokenDecoder
from .docs import UMP_LOOKUP_DOCS
from .query import parse_lookup_query
from .record_store import SQLiteUMPRecordStore, UMPRecordStore, UTXOReference

logger = logging.getLogger(__name__)

SERVICE_NAME = "UMP Lookup Service"
SERVICE_SHORT_DESCRIPTION = "Lookup Service for User Management Protocol tokens"


class UMPLookupService:
    """Index UMP tokens by presentation and recovery hash and answer lookups."""

    def __init__(
        self,
        store: UMPRecordStore,
        *,
        topic: str = UMP_TOPIC,
        strict_queries: bool = False,
    ) -> None:
        """Initialize the service.

        Args:
            store: Record store that owns every indexed record.
            topic: The only topic whose admissions and spends are tracked.
            strict_queries: Reject lookups naming more than one query key
                instead of applying key precedence.
        """

        self.store = store
        self.decoder = UMPTokenDecoder(topic)
        self.strict_queries = strict_queries

    @property
    def topic(self) -> str:
        return self.decoder.topic

    def get_documentation(self) -> str:
        return UMP_LOOKUP_DOCS

    def get_metadata(self) -> dict[str, Any]:
        return {"name": SERVICE_NAME, "shortDescription": SERVICE_SHORT_DESCRIPTION}

    def output_added(
        self, txid: str, output_index: int, output_script: bytes | str, topic: str
    ) -> None:
        """Index a newly admitted output.

        Outputs on other topics are ignored. A script that does not decode as
        a UMP token raises :class:`~ump_lookup.pushdrop.DecodeError`.
        """

        fields = self.decoder.decode(output_script, topic)
        if fields is None:
            return
        self.store.insert(txid, output_index, fields.presentation_hash, fields.recovery_hash)
        logger.debug("Admitted UMP token %s.%d", txid, output_index)

    def output_spent(self, txid: str, output_index: int, topic: str) -> None:
        """Forget a spent output. Other topics and unknown outputs are no-ops."""

        if not self.decoder.accepts(topic):
            return
        if self.store.delete_by_identity(txid, output_index):
            logger.debug("Removed spent UMP token %s.%d", txid, output_index)

    def output_evicted(self, txid: str, output_index: int) -> None:
        """Forget an evicted output regardless of topic."""

        if self.store.delete_by_identity(txid, output_index):
            logger.debug("Removed evicted UMP token %s.%d", txid, output_index)

    def lookup(self, query: Mapping[str, Any] | None) -> List[UTXOReference]:
        """Return the newest unspent token matching ``query``, if any.

        Args:
            query: A mapping with one of ``presentationHash``,
                ``recoveryHash`` or ``outpoint`` (``"<txid>.<index>"``).

        Returns:
            A list with zero or one :class:`UTXOReference`. No match is an
            empty list rather than an error.

        Raises:
            InvalidQueryError: If the query is missing or has no usable key.
                An outpoint whose index names no output is not an error; it
                simply matches nothing.
        """

        parsed = parse_lookup_query(query, strict=self.strict_queries)
        record_filter = parsed.to_filter()
        if record_filter is None:
            return []
        record = self.store.find_newest(record_filter)
        if record is None:
            return []
        return [record.reference]


def create_lookup_service(
    db_path: str | Path | None = None,
    *,
    config: LookupConfig | None = None,
) -> UMPLookupService:
    """Build a service backed by a SQLite record store.

    ``db_path`` takes precedence over the configured path. When no ``config``
    is given it is loaded with :func:`~ump_lookup.config.load_lookup_config`.
    """

    resolved = config if config is not None else load_lookup_config()
    store = SQLiteUMPRecordStore(db_path if db_path is not None else resolved.db_path)
    return UMPLookupService(store, topic=resolved.topic, strict_queries=resolved.strict_queries)

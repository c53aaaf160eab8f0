"""User Management Protocol lookup service package."""

from .config import ConfigurationError, LookupConfig, load_lookup_config
from .decoder import UMP_TOPIC, UMPFields, UMPTokenDecoder
from .pushdrop import DecodeError, PushDropToken, build_pushdrop_script, decode_pushdrop
from .query import (
    ByOutpoint,
    ByPresentationHash,
    ByRecoveryHash,
    InvalidQueryError,
    parse_lookup_query,
)
from .record_store import (
    RecordFilter,
    SQLiteUMPRecordStore,
    StorageError,
    UMPRecord,
    UMPRecordStore,
    UTXOReference,
)
from .service import UMPLookupService, create_lookup_service

__all__ = [
    "UMP_TOPIC",
    "ByOutpoint",
    "ByPresentationHash",
    "ByRecoveryHash",
    "ConfigurationError",
    "DecodeError",
    "InvalidQueryError",
    "LookupConfig",
    "PushDropToken",
    "RecordFilter",
    "SQLiteUMPRecordStore",
    "StorageError",
    "UMPFields",
    "UMPLookupService",
    "UMPRecord",
    "UMPRecordStore",
    "UMPTokenDecoder",
    "UTXOReference",
    "build_pushdrop_script",
    "create_lookup_service",
    "decode_pushdrop",
    "load_lookup_config",
    "parse_lookup_query",
]

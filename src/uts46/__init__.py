"""UTS #46 IDNA processing: mapping table, Punycode and ToUnicode/ToASCII."""

from .config import IDNAConfig, load_config
from .exceptions import (
    BadInput,
    ConfigError,
    CorpusError,
    IDNAError,
    MappingTableError,
    OutOfRange,
    Overflow,
    PunycodeError,
    UTS46Error,
    describe_status,
)
from .mapping import MappingTable, get_mapping_table, lookup
from .transform import IDNA, decode, encode, to_ascii, to_unicode
from .typedefs import (
    IDNA2008Status,
    Issue,
    MappingEntry,
    MappingKind,
    MappingRecord,
    ProcessingMode,
    StatusCode,
    TestVector,
    TransformResult,
)

__all__ = [
    "BadInput",
    "ConfigError",
    "CorpusError",
    "IDNA",
    "IDNA2008Status",
    "IDNAConfig",
    "IDNAError",
    "Issue",
    "MappingEntry",
    "MappingKind",
    "MappingRecord",
    "MappingTable",
    "MappingTableError",
    "OutOfRange",
    "Overflow",
    "ProcessingMode",
    "PunycodeError",
    "StatusCode",
    "TestVector",
    "TransformResult",
    "UTS46Error",
    "decode",
    "describe_status",
    "encode",
    "get_mapping_table",
    "load_config",
    "lookup",
    "to_ascii",
    "to_unicode",
]

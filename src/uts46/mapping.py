"""IDNA mapping table.

The table is a flat, sorted list of contiguous code-point ranges searched
with ``bisect``. It is validated once at construction and never mutated,
so a single instance is shared by every transform in the process.
"""

import bisect
import functools
import unicodedata
from collections.abc import Iterable, Iterator

import idna.uts46data
from fastmcp.utilities.logging import get_logger

from .exceptions import MappingTableError, OutOfRange
from .mapping_source import MAX_CODE_POINT, uts46_records, with_idna2008_status
from .typedefs import MappingEntry, MappingRecord

logger = get_logger(__name__)


class MappingTable:
    """Total mapping from Unicode code point to its IDNA classification.

    Attributes:
        starts (list[int]): First code point of every range, ascending.
        entries (list[MappingEntry]): Entry for the range at the same index.
    """

    def __init__(self, records: Iterable[MappingRecord]) -> None:
        """Build the table, checking that the records cover 0..U+10FFFF.

        Args:
            records: Range records sorted by start code point.

        Raises:
            MappingTableError: If the records overlap, leave a gap, are out
                of order, or do not cover the whole code-point space.
        """
        self.starts: list[int] = []
        self.entries: list[MappingEntry] = []
        shared: dict[MappingEntry, MappingEntry] = {}
        expected = 0

        for record in records:
            if record.start != expected:
                kind = "overlap" if record.start < expected else "gap"
                raise MappingTableError(
                    f"Range {record.start:04X}..{record.end:04X} leaves a {kind} "
                    f"(expected start {expected:04X})"
                )
            if record.end < record.start:
                raise MappingTableError(
                    f"Range {record.start:04X}..{record.end:04X} is inverted"
                )
            if record.end > MAX_CODE_POINT:
                raise MappingTableError(
                    f"Range {record.start:04X}..{record.end:04X} exceeds U+10FFFF"
                )
            self.starts.append(record.start)
            self.entries.append(shared.setdefault(record.entry, record.entry))
            expected = record.end + 1

        if expected != MAX_CODE_POINT + 1:
            raise MappingTableError(f"Table stops at {expected:04X}, short of U+10FFFF")

    def lookup(self, code_point: int) -> MappingEntry:
        """Return the entry classifying ``code_point``.

        Raises:
            OutOfRange: If ``code_point`` is not in 0..0x10FFFF.
        """
        if not 0 <= code_point <= MAX_CODE_POINT:
            raise OutOfRange(f"Code point {code_point:#x} is outside 0..0x10FFFF")
        return self.entries[bisect.bisect_right(self.starts, code_point) - 1]

    def ranges(self) -> Iterator[MappingRecord]:
        """Iterate the stored ranges in code-point order."""
        ends = [start - 1 for start in self.starts[1:]] + [MAX_CODE_POINT]
        for start, end, entry in zip(self.starts, ends, self.entries):
            yield MappingRecord(start, end, entry)

    def __len__(self) -> int:
        return len(self.starts)

    def __contains__(self, code_point: object) -> bool:
        return isinstance(code_point, int) and 0 <= code_point <= MAX_CODE_POINT


def _version_tuple(version: str) -> tuple[int, ...]:
    parts = []
    for part in version.split("."):
        if not part.isdigit():
            break
        parts.append(int(part))
    return tuple(parts)


def check_unicode_versions(
    table_version: str | None = None,
    unidata_version: str | None = None,
) -> bool:
    """Warn when ``unicodedata`` is older than the mapping table's data.

    Normalization and bidi classes come from the interpreter's
    ``unicodedata`` while the table comes from ``idna``. Characters added
    between the two versions are then unassigned for normalization and
    bidi but valid in the table.

    Returns:
        bool: True if the versions are compatible or unknown.
    """
    if table_version is None:
        table_version = getattr(idna.uts46data, "__version__", "")
    if unidata_version is None:
        unidata_version = unicodedata.unidata_version

    table_key = _version_tuple(table_version)
    unidata_key = _version_tuple(unidata_version)
    if table_key and unidata_key and unidata_key < table_key:
        logger.warning(
            "unicodedata is Unicode %s but the IDNA mapping table is Unicode %s; "
            "characters added since %s may be checked inconsistently",
            unidata_version,
            table_version,
            unidata_version,
        )
        return False
    return True


@functools.lru_cache(maxsize=None)
def get_mapping_table() -> MappingTable:
    """Return the process-wide table built from the ``idna`` distribution."""
    check_unicode_versions()
    table = MappingTable(with_idna2008_status(uts46_records()))
    logger.info(
        "IDNA mapping table loaded with %d ranges (%d distinct entries)",
        len(table),
        len(set(table.entries)),
    )
    return table


def lookup(code_point: int) -> MappingEntry:
    """Look up ``code_point`` in the shared mapping table."""
    return get_mapping_table().lookup(code_point)

"""Data sources for the IDNA mapping table.

Two sources are supported: the compiled ``uts46data`` table shipped with the
``idna`` distribution (the default), and Unicode's canonical
``IdnaMappingTable.txt``. Both produce ``MappingRecord`` ranges; neither
decides classifications on its own.

``uts46data`` drops the IDNA2008 status flags of valid code points, so
``with_idna2008_status`` puts them back from the IDNA2008 derived property
tables in ``idna.idnadata``.
"""

import bisect
from collections.abc import Iterable, Iterator, Sequence

import idna.idnadata
import idna.uts46data

from .exceptions import MappingTableError
from .typedefs import IDNA2008Status, MappingEntry, MappingKind, MappingRecord

MAX_CODE_POINT = 0x10FFFF

_UTS46DATA_KINDS = {
    "V": MappingKind.VALID,
    "M": MappingKind.MAPPED,
    "D": MappingKind.DEVIATION,
    "X": MappingKind.DISALLOWED,
    "I": MappingKind.IGNORED,
}

_KINDS_WITH_REPLACEMENT = (
    MappingKind.MAPPED,
    MappingKind.DEVIATION,
    MappingKind.DISALLOWED_STD3_MAPPED,
)

_IDNA2008_CLASSES = ("PVALID", "CONTEXTJ", "CONTEXTO")
# Valid in UTS #46 but excluded from every version of IDNA2008
IDNA2008_EXCLUDED = frozenset({0x19DA})


def _make_entry(
    kind: MappingKind,
    replacement: tuple[int, ...] | None = None,
    status: IDNA2008Status | None = None,
) -> MappingEntry:
    if kind is MappingKind.VALID:
        return MappingEntry(kind, status=status or IDNA2008Status.NONE)
    if kind in _KINDS_WITH_REPLACEMENT:
        return MappingEntry(kind, replacement=replacement or ())
    return MappingEntry(kind)


def _merge(records: Iterable[MappingRecord]) -> Iterator[MappingRecord]:
    pending: MappingRecord | None = None
    for record in records:
        if pending is not None and pending.end + 1 == record.start and pending.entry == record.entry:
            pending = MappingRecord(pending.start, record.end, pending.entry)
            continue
        if pending is not None:
            yield pending
        pending = record
    if pending is not None:
        yield pending


def _uts46data_entry(letter: str, mapping: str | None) -> MappingEntry:
    replacement = tuple(map(ord, mapping)) if mapping is not None else None
    if letter == "3":
        # STD3 rows carry a replacement only when the code point is mapped
        if replacement is None:
            return _make_entry(MappingKind.DISALLOWED_STD3_VALID)
        return _make_entry(MappingKind.DISALLOWED_STD3_MAPPED, replacement)
    try:
        kind = _UTS46DATA_KINDS[letter]
    except KeyError:
        raise MappingTableError(f"Unknown uts46data status {letter!r}") from None
    if kind is MappingKind.MAPPED and replacement is None:
        raise MappingTableError("Mapped uts46data row has no replacement")
    return _make_entry(kind, replacement)


def bundled_rows() -> Sequence[tuple]:
    """Return the ``idna`` distribution's table as ``(start, status, mapping)`` rows.

    Releases before 3.17 ship a ``uts46data`` tuple of rows. Later releases
    ship three parallel sequences instead: ``uts46_starts``,
    ``uts46_statuses`` (one status letter per byte) and
    ``uts46_replacements``.
    """
    module = idna.uts46data
    if hasattr(module, "uts46data"):
        return module.uts46data
    try:
        starts = module.uts46_starts
        statuses = module.uts46_statuses
        replacements = module.uts46_replacements
    except AttributeError:
        raise MappingTableError("idna.uts46data has no known table layout") from None
    if isinstance(statuses, (bytes, bytearray)):
        statuses = statuses.decode("ascii")
    if not len(starts) == len(statuses) == len(replacements):
        raise MappingTableError("idna.uts46data parallel tables differ in length")
    return list(zip(starts, statuses, replacements))


def uts46_records(data: Sequence[tuple] | None = None) -> Iterator[MappingRecord]:
    """Yield range records from an ``idna.uts46data``-style table.

    Each row is ``(start, status)`` or ``(start, status, mapping)`` and
    extends up to the start of the next row; the last row runs to
    U+10FFFF. A ``None`` mapping is the same as no mapping.

    Args:
        data: Rows to convert. Defaults to the table bundled with ``idna``.
    """
    rows = bundled_rows() if data is None else data
    for index, row in enumerate(rows):
        start, letter = row[0], row[1]
        mapping = row[2] if len(row) > 2 else None
        end = rows[index + 1][0] - 1 if index + 1 < len(rows) else MAX_CODE_POINT
        yield MappingRecord(start, end, _uts46data_entry(letter, mapping))


def idna2008_segments(
    classes: dict[str, Sequence[int]] | None = None,
    excluded: frozenset[int] = IDNA2008_EXCLUDED,
) -> list[tuple[int, int, IDNA2008Status]]:
    """Split 0..U+10FFFF into runs sharing one IDNA2008 status.

    Code points that IDNA2008 allows (PVALID, CONTEXTJ or CONTEXTO) get
    ``NONE``, the ``excluded`` ones get ``XV8`` and all others ``NV8``.

    Args:
        classes: Derived property ranges in ``idna.intranges`` encoding
            (``start << 32 | end`` with an exclusive end). Defaults to
            ``idna.idnadata.codepoint_classes``.
        excluded: Code points to flag ``XV8``.
    """
    classes = idna.idnadata.codepoint_classes if classes is None else classes
    runs = [
        (encoded >> 32, (encoded & 0xFFFFFFFF) - 1, IDNA2008Status.NONE)
        for name in _IDNA2008_CLASSES
        for encoded in classes.get(name, ())
    ]
    runs.extend((code_point, code_point, IDNA2008Status.XV8) for code_point in excluded)
    runs.sort()

    segments = []
    expected = 0
    for start, end, status in runs:
        start = max(start, expected)
        if end < start:
            continue
        if start > expected:
            segments.append((expected, start - 1, IDNA2008Status.NV8))
        segments.append((start, end, status))
        expected = end + 1
    if expected <= MAX_CODE_POINT:
        segments.append((expected, MAX_CODE_POINT, IDNA2008Status.NV8))
    return segments


def with_idna2008_status(
    records: Iterable[MappingRecord],
    segments: list[tuple[int, int, IDNA2008Status]] | None = None,
) -> Iterator[MappingRecord]:
    """Split valid records so each carries its IDNA2008 status flag.

    Records of any other kind pass through unchanged.

    Args:
        records: Range records in code-point order.
        segments: Output of ``idna2008_segments``. Computed if omitted.
    """
    segments = idna2008_segments() if segments is None else segments
    starts = [segment[0] for segment in segments]

    def split() -> Iterator[MappingRecord]:
        for record in records:
            if record.entry.kind is not MappingKind.VALID:
                yield record
                continue
            index = bisect.bisect_right(starts, record.start) - 1
            start = record.start
            while start <= record.end:
                _, segment_end, status = segments[index]
                end = min(segment_end, record.end)
                yield MappingRecord(start, end, _make_entry(MappingKind.VALID, status=status))
                start = end + 1
                index += 1

    return _merge(split())


def _parse_code_point(text: str, lineno: int) -> int:
    try:
        return int(text, 16)
    except ValueError:
        raise MappingTableError(f"line {lineno}: bad code point {text!r}") from None


def _parse_lines(lines: Iterable[str]) -> Iterator[MappingRecord]:
    for lineno, line in enumerate(lines, start=1):
        line = line.split("#", 1)[0].strip()
        if not line:
            continue
        fields = [part.strip() for part in line.split(";")]
        if len(fields) < 2:
            raise MappingTableError(f"line {lineno}: expected at least two fields")

        first, _, last = fields[0].partition("..")
        start = _parse_code_point(first, lineno)
        end = _parse_code_point(last, lineno) if last else start

        try:
            kind = MappingKind(fields[1])
        except ValueError:
            raise MappingTableError(f"line {lineno}: unknown status {fields[1]!r}") from None

        replacement = None
        if kind in _KINDS_WITH_REPLACEMENT:
            mapping = fields[2] if len(fields) > 2 else ""
            if kind is MappingKind.MAPPED and not mapping:
                raise MappingTableError(f"line {lineno}: mapped range without a mapping")
            replacement = tuple(_parse_code_point(cp, lineno) for cp in mapping.split())

        status = None
        if kind is MappingKind.VALID and len(fields) > 3 and fields[3]:
            try:
                status = IDNA2008Status(fields[3])
            except ValueError:
                raise MappingTableError(
                    f"line {lineno}: unknown IDNA2008 status {fields[3]!r}"
                ) from None

        yield MappingRecord(start, end, _make_entry(kind, replacement, status))


def parse_mapping_table(lines: Iterable[str]) -> Iterator[MappingRecord]:
    """Parse Unicode's ``IdnaMappingTable.txt`` into range records.

    Lines look like ``00DF ; deviation ; 0073 0073`` or
    ``00A1..00A7 ; valid ; ; NV8``. Adjacent ranges with identical entries
    are merged.
    """
    return _merge(_parse_lines(lines))


def load_mapping_table_file(path: str) -> list[MappingRecord]:
    """Read range records from an ``IdnaMappingTable.txt`` file."""
    with open(path, encoding="utf-8") as f:
        return list(parse_mapping_table(f))

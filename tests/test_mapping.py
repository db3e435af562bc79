"""Unit tests for the IDNA mapping table and its data sources."""

import os
import tempfile
from array import array
from unittest.mock import patch

import idna.intranges
import idna.uts46data
import pytest

from uts46 import mapping
from uts46.exceptions import MappingTableError, OutOfRange
from uts46.mapping import MappingTable, check_unicode_versions, get_mapping_table, lookup
from uts46.mapping_source import (
    bundled_rows,
    idna2008_segments,
    load_mapping_table_file,
    parse_mapping_table,
    uts46_records,
    with_idna2008_status,
)
from uts46.typedefs import IDNA2008Status, MappingEntry, MappingKind, MappingRecord

VALID = MappingEntry(MappingKind.VALID, status=IDNA2008Status.NONE)
DISALLOWED = MappingEntry(MappingKind.DISALLOWED)


@pytest.mark.mapping
class TestMappingLookup:
    """Test suite for lookups against the bundled table."""

    @pytest.mark.unit
    def test_ascii_letters(self):
        """Test lowercase letters are valid and uppercase map to lowercase."""
        assert lookup(ord("a")).kind is MappingKind.VALID
        entry = lookup(ord("A"))
        assert entry.kind is MappingKind.MAPPED
        assert entry.text == "a"

    @pytest.mark.unit
    def test_deviations(self):
        """Test the deviation characters and their transitional mappings."""
        sharp_s = lookup(0xDF)
        assert sharp_s.kind is MappingKind.DEVIATION
        assert sharp_s.text == "ss"

        final_sigma = lookup(0x3C2)
        assert final_sigma.kind is MappingKind.DEVIATION
        assert final_sigma.text == "σ"

        for joiner in (0x200C, 0x200D):
            entry = lookup(joiner)
            assert entry.kind is MappingKind.DEVIATION
            assert entry.text == ""

    @pytest.mark.unit
    def test_ignored_and_disallowed(self):
        """Test soft hyphen is ignored and the replacement character is not."""
        assert lookup(0xAD).kind is MappingKind.IGNORED
        assert lookup(0xFFFD).kind is MappingKind.DISALLOWED
        assert lookup(0xD800).kind is MappingKind.DISALLOWED

    @pytest.mark.unit
    def test_compatibility_mappings(self):
        """Test that compatibility characters map to their folded forms."""
        assert lookup(0xFF21).text == "a"
        assert lookup(0x2160).text == "i"
        assert lookup(0x1E9E).text == "ß"

    @pytest.mark.unit
    def test_boundaries(self):
        """Test the first and last code points and the range limits."""
        lookup(0)
        lookup(0x10FFFF)
        with pytest.raises(OutOfRange):
            lookup(0x110000)
        with pytest.raises(OutOfRange):
            lookup(-1)

    @pytest.mark.unit
    def test_out_of_range_is_value_error(self):
        """Test that range errors can be caught as ValueError."""
        with pytest.raises(ValueError):
            lookup(0x7FFFFFFF)

    @pytest.mark.unit
    def test_every_range_boundary(self):
        """Test lookups at both ends of every stored range."""
        table = get_mapping_table()
        for record in table.ranges():
            assert table.lookup(record.start) is record.entry
            assert table.lookup(record.end) is record.entry

    @pytest.mark.unit
    def test_idna2008_status_flags(self):
        """Test that valid entries carry their IDNA2008 status."""
        assert lookup(0xA1).status is IDNA2008Status.NV8
        assert lookup(ord("a")).status is IDNA2008Status.NONE
        assert lookup(ord("-")).status is IDNA2008Status.NONE
        assert lookup(0x19DA).status is IDNA2008Status.XV8
        assert lookup(0xDF).status is None

    @pytest.mark.unit
    def test_table_is_shared(self):
        """Test that the bundled table is built once per process."""
        assert get_mapping_table() is get_mapping_table()
        assert 0x10FFFF in get_mapping_table()
        assert 0x110000 not in get_mapping_table()


@pytest.mark.mapping
class TestMappingTableConstruction:
    """Test suite for building tables from range records."""

    @pytest.mark.unit
    def test_single_range(self):
        """Test a table made of one range covering every code point."""
        table = MappingTable([MappingRecord(0, 0x10FFFF, VALID)])

        assert len(table) == 1
        assert table.lookup(0x1F600) is VALID

    @pytest.mark.unit
    def test_identical_entries_are_shared(self):
        """Test that equal entries are stored as one object."""
        table = MappingTable(
            [
                MappingRecord(0, 0x40, MappingEntry(MappingKind.VALID, status=IDNA2008Status.NONE)),
                MappingRecord(0x41, 0x41, MappingEntry(MappingKind.MAPPED, replacement=(0x61,))),
                MappingRecord(0x42, 0x10FFFF, MappingEntry(MappingKind.VALID, status=IDNA2008Status.NONE)),
            ]
        )

        assert table.entries[0] is table.entries[2]
        assert table.lookup(0x41).text == "a"
        assert table.lookup(0x42).kind is MappingKind.VALID

    @pytest.mark.unit
    def test_ranges_round_trip(self):
        """Test that ranges() reproduces the records the table was built from."""
        records = [
            MappingRecord(0, 0xFF, VALID),
            MappingRecord(0x100, 0x10FFFF, DISALLOWED),
        ]
        assert list(MappingTable(records).ranges()) == records

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "records,message",
        [
            ([MappingRecord(0, 9, VALID), MappingRecord(11, 0x10FFFF, VALID)], "gap"),
            ([MappingRecord(0, 10, VALID), MappingRecord(10, 0x10FFFF, VALID)], "overlap"),
            ([MappingRecord(0, 5, VALID), MappingRecord(6, 4, VALID)], "inverted"),
            ([MappingRecord(0, 0x110000, VALID)], "exceeds"),
            ([MappingRecord(0, 0xFFFF, VALID)], "short"),
            ([], "short"),
        ],
    )
    def test_rejects_bad_coverage(self, records, message):
        """Test that tables which are not a total partition are rejected."""
        with pytest.raises(MappingTableError, match=message):
            MappingTable(records)


@pytest.mark.mapping
class TestUts46DataSource:
    """Test suite for converting idna's compiled uts46data rows."""

    @pytest.mark.unit
    def test_row_conversion(self):
        """Test that each row becomes a range ending before the next row."""
        rows = [
            (0x0, "3"),
            (0x41, "M", "a"),
            (0x42, "V"),
            (0xA0, "3", " "),
            (0xA1, "D", "ss"),
            (0xA2, "I"),
            (0xA3, "X"),
        ]
        records = list(uts46_records(rows))

        assert [(r.start, r.end) for r in records] == [
            (0x0, 0x40),
            (0x41, 0x41),
            (0x42, 0x9F),
            (0xA0, 0xA0),
            (0xA1, 0xA1),
            (0xA2, 0xA2),
            (0xA3, 0x10FFFF),
        ]
        assert [r.entry.kind for r in records] == [
            MappingKind.DISALLOWED_STD3_VALID,
            MappingKind.MAPPED,
            MappingKind.VALID,
            MappingKind.DISALLOWED_STD3_MAPPED,
            MappingKind.DEVIATION,
            MappingKind.IGNORED,
            MappingKind.DISALLOWED,
        ]
        assert records[3].entry.text == " "
        assert MappingTable(records).lookup(0x50).kind is MappingKind.VALID

    @pytest.mark.unit
    def test_unknown_status_letter(self):
        """Test that an unknown status letter is rejected."""
        with pytest.raises(MappingTableError):
            list(uts46_records([(0x0, "Q")]))

    @pytest.mark.unit
    def test_missing_mapping_column(self):
        """Test that a None mapping reads the same as an absent one."""
        records = list(uts46_records([(0x0, "V", None), (0x200C, "D", ""), (0x200E, "X", None)]))

        assert records[0].entry.kind is MappingKind.VALID
        assert records[1].entry.kind is MappingKind.DEVIATION
        assert records[1].entry.text == ""
        assert records[2].entry == DISALLOWED

    @pytest.mark.unit
    def test_installed_layout(self):
        """Test that the table shipped with the installed idna builds."""
        records = list(uts46_records())

        assert records[0].start == 0
        assert records[-1].end == 0x10FFFF
        table = MappingTable(records)
        assert table.lookup(ord("A")).text == "a"
        assert table.lookup(0xDF).kind is MappingKind.DEVIATION
        assert table.lookup(0x200C).text == ""

    @pytest.mark.unit
    def test_parallel_array_layout(self, monkeypatch):
        """Test the starts, statuses and replacements layout of newer idna releases."""
        monkeypatch.delattr(idna.uts46data, "uts46data", raising=False)
        monkeypatch.setattr(idna.uts46data, "uts46_starts", array("I", [0x0, 0x41, 0x42, 0xDF, 0xE0]), raising=False)
        monkeypatch.setattr(idna.uts46data, "uts46_statuses", b"VMVDX", raising=False)
        monkeypatch.setattr(
            idna.uts46data, "uts46_replacements", (None, "a", None, "ss", None), raising=False
        )

        assert bundled_rows()[1] == (0x41, "M", "a")
        table = MappingTable(uts46_records())
        assert table.lookup(0x41).text == "a"
        assert table.lookup(0x50).kind is MappingKind.VALID
        assert table.lookup(0xDF).text == "ss"
        assert table.lookup(0x10FFFF) == DISALLOWED

    @pytest.mark.unit
    def test_unknown_layout(self, monkeypatch):
        """Test that an idna release with neither layout is rejected."""
        for name in ("uts46data", "uts46_starts", "uts46_statuses", "uts46_replacements"):
            monkeypatch.delattr(idna.uts46data, name, raising=False)

        with pytest.raises(MappingTableError, match="layout"):
            bundled_rows()

    @pytest.mark.unit
    def test_parallel_arrays_of_different_length(self, monkeypatch):
        """Test that truncated parallel tables are rejected."""
        monkeypatch.delattr(idna.uts46data, "uts46data", raising=False)
        monkeypatch.setattr(idna.uts46data, "uts46_starts", array("I", [0x0, 0x41]), raising=False)
        monkeypatch.setattr(idna.uts46data, "uts46_statuses", b"V", raising=False)
        monkeypatch.setattr(idna.uts46data, "uts46_replacements", (None, None), raising=False)

        with pytest.raises(MappingTableError, match="length"):
            bundled_rows()


@pytest.mark.mapping
class TestIdna2008Status:
    """Test suite for restoring NV8 and XV8 flags on valid ranges."""

    CLASSES = {
        "PVALID": idna.intranges.intranges_from_list([0x2D, *range(0x30, 0x3A), *range(0x61, 0x7B)]),
        "CONTEXTJ": idna.intranges.intranges_from_list([0x200C, 0x200D]),
        "CONTEXTO": (),
    }

    @pytest.mark.unit
    def test_segments_cover_every_code_point(self):
        """Test that segments partition 0..U+10FFFF in order."""
        segments = idna2008_segments(self.CLASSES, frozenset({0x19DA}))

        assert segments[0] == (0x0, 0x2C, IDNA2008Status.NV8)
        assert segments[1] == (0x2D, 0x2D, IDNA2008Status.NONE)
        assert (0x19DA, 0x19DA, IDNA2008Status.XV8) in segments
        assert segments[-1][1] == 0x10FFFF
        assert all(a[1] + 1 == b[0] for a, b in zip(segments, segments[1:]))

    @pytest.mark.unit
    def test_valid_ranges_are_split(self):
        """Test that only valid records are split and flagged."""
        records = [
            MappingRecord(0x0, 0x40, VALID),
            MappingRecord(0x41, 0x41, MappingEntry(MappingKind.MAPPED, replacement=(0x61,))),
            MappingRecord(0x42, 0x10FFFF, VALID),
        ]
        segments = idna2008_segments(self.CLASSES, frozenset({0x19DA}))
        table = MappingTable(with_idna2008_status(records, segments))

        assert table.lookup(0x21).status is IDNA2008Status.NV8
        assert table.lookup(0x2D).status is IDNA2008Status.NONE
        assert table.lookup(0x35).status is IDNA2008Status.NONE
        assert table.lookup(0x3A).status is IDNA2008Status.NV8
        assert table.lookup(0x41).kind is MappingKind.MAPPED
        assert table.lookup(0x42).status is IDNA2008Status.NV8
        assert table.lookup(0x62).status is IDNA2008Status.NONE
        assert table.lookup(0x19DA).status is IDNA2008Status.XV8
        assert table.lookup(0x200C).status is IDNA2008Status.NONE

    @pytest.mark.unit
    def test_adjacent_pieces_merge(self):
        """Test that neighbouring records with the same flag become one range."""
        records = [MappingRecord(0x0, 0x20, VALID), MappingRecord(0x21, 0x10FFFF, VALID)]
        merged = list(with_idna2008_status(records, [(0x0, 0x10FFFF, IDNA2008Status.NV8)]))

        assert merged == [
            MappingRecord(0x0, 0x10FFFF, MappingEntry(MappingKind.VALID, status=IDNA2008Status.NV8))
        ]


@pytest.mark.mapping
class TestUnicodeVersions:
    """Test suite for the unicodedata and mapping table version check."""

    @pytest.mark.unit
    def test_older_unicodedata_warns(self):
        """Test that an older unicodedata logs a warning."""
        with patch.object(mapping.logger, "warning") as warning:
            assert check_unicode_versions("17.0.0", "14.0.0") is False

        warning.assert_called_once()
        assert "14.0.0" in warning.call_args[0]

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "table_version,unidata_version",
        [("15.1.0", "15.1.0"), ("15.1.0", "16.0.0"), ("", "14.0.0"), ("17.0.0", "")],
    )
    def test_compatible_or_unknown(self, table_version, unidata_version):
        """Test that matching, newer or unknown versions stay quiet."""
        with patch.object(mapping.logger, "warning") as warning:
            assert check_unicode_versions(table_version, unidata_version) is True

        warning.assert_not_called()


MAPPING_TABLE_SAMPLE = """\
# IdnaMappingTable.txt excerpt
0000..002C    ; disallowed_STD3_valid                  # 1.1  <control-0000>..COMMA
002D..002E    ; valid                                  # 1.1  HYPHEN-MINUS..FULL STOP
002F          ; disallowed_STD3_valid                  # 1.1  SOLIDUS
0030..0039    ; valid                                  # 1.1  DIGIT ZERO..DIGIT NINE
003A..0040    ; disallowed_STD3_valid                  # 1.1  COLON..COMMERCIAL AT
0041          ; mapped                 ; 0061          # 1.1  LATIN CAPITAL LETTER A
0042..00A0    ; valid                                  # 1.1
00A1..00A7    ; valid                  ;      ; NV8    # 1.1  INVERTED EXCLAMATION MARK..SECTION SIGN
00A8          ; disallowed_STD3_mapped ; 0020 0308     # 1.1  DIAERESIS
00A9..00DE    ; valid                                  # 1.1
00DF          ; deviation              ; 0073 0073     # 1.1  LATIN SMALL LETTER SHARP S
00E0..0377    ; valid
0378..0379    ; disallowed
037A..10FFFF  ; disallowed
"""


@pytest.mark.mapping
class TestMappingTableFile:
    """Test suite for parsing IdnaMappingTable.txt."""

    @pytest.mark.unit
    def test_parse_fields(self):
        """Test parsing of every field the canonical file uses."""
        table = MappingTable(parse_mapping_table(MAPPING_TABLE_SAMPLE.splitlines()))

        assert table.lookup(0x2F).kind is MappingKind.DISALLOWED_STD3_VALID
        assert table.lookup(0x41).text == "a"
        assert table.lookup(0xA1).status is IDNA2008Status.NV8
        assert table.lookup(0xA8).kind is MappingKind.DISALLOWED_STD3_MAPPED
        assert table.lookup(0xA8).replacement == (0x20, 0x308)
        assert table.lookup(0xDF).kind is MappingKind.DEVIATION
        assert table.lookup(0xDF).text == "ss"
        assert table.lookup(0x10FFFF).kind is MappingKind.DISALLOWED

    @pytest.mark.unit
    def test_adjacent_ranges_merge(self):
        """Test that adjacent lines with identical entries become one range."""
        records = list(parse_mapping_table(MAPPING_TABLE_SAMPLE.splitlines()))

        assert records[-1] == MappingRecord(0x378, 0x10FFFF, DISALLOWED)
        assert all(a.end + 1 == b.start for a, b in zip(records, records[1:]))

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "line",
        [
            "0041 ; mapped",
            "0041 ; remapped ; 0061",
            "00G1 ; valid",
            "00A1 ; valid ; ; NV9",
            "0041",
        ],
    )
    def test_malformed_lines(self, line):
        """Test that malformed lines raise MappingTableError."""
        with pytest.raises(MappingTableError):
            list(parse_mapping_table([line]))

    @pytest.mark.unit
    def test_load_from_file(self):
        """Test loading records from a file on disk."""
        with tempfile.NamedTemporaryFile(
            mode="w", suffix=".txt", delete=False, encoding="utf-8"
        ) as f:
            f.write(MAPPING_TABLE_SAMPLE)
        try:
            table = MappingTable(load_mapping_table_file(f.name))
            assert table.lookup(0x30).kind is MappingKind.VALID
        finally:
            os.unlink(f.name)

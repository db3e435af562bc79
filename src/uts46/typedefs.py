"""Type definitions for IDNA mapping and transform operations.

This module provides the dataclasses and enums that define the structured
values used throughout the UTS #46 implementation. These type definitions
ensure consistent data structures for mapping-table entries, transform
results, and conformance test vectors.

The types defined here are used to:
- Classify code points in the IDNA mapping table
- Carry the best-effort output of a transform alongside its diagnostics
- Describe test vectors replayed by the conformance harness

Note: every type here is immutable. Mapping entries and test vectors are
shared process-wide by reference once loaded.
"""

import enum
from dataclasses import dataclass


class MappingKind(str, enum.Enum):
    """Classification of a code point in the IDNA mapping table."""

    VALID = "valid"
    MAPPED = "mapped"
    DEVIATION = "deviation"
    DISALLOWED = "disallowed"
    IGNORED = "ignored"
    DISALLOWED_STD3_VALID = "disallowed_STD3_valid"
    DISALLOWED_STD3_MAPPED = "disallowed_STD3_mapped"


class IDNA2008Status(str, enum.Enum):
    """IDNA2008 flag carried by valid entries.

    NV8 marks code points valid under UTS #46 but excluded by IDNA2008,
    XV8 marks the reverse.
    """

    NV8 = "NV8"
    XV8 = "XV8"
    NONE = "none"


class ProcessingMode(str, enum.Enum):
    """How deviation characters are handled while mapping."""

    TRANSITIONAL = "transitional"
    NONTRANSITIONAL = "nontransitional"


class StatusCode(str, enum.Enum):
    """Diagnostic codes attached to a transform result."""

    DISALLOWED = "disallowed"
    DISALLOWED_STD3_VALID = "disallowed_STD3_valid"
    DISALLOWED_STD3_MAPPED = "disallowed_STD3_mapped"
    EMPTY_LABEL = "empty_label"
    BIDI = "bidi"
    CONTEXT_J = "context_j"
    LEADING_COMBINING_MARK = "leading_combining_mark"
    PUNYCODE = "punycode"
    NOT_NFC = "not_nfc"
    HYPHEN_3_4 = "hyphen_3_4"
    LEADING_TRAILING_HYPHEN = "leading_trailing_hyphen"
    XN_PREFIX = "xn_prefix"
    FULL_STOP = "full_stop"
    TOO_SHORT = "too_short"
    LABEL_TOO_LONG = "label_too_long"
    DOMAIN_NAME_TOO_LONG = "domain_name_too_long"
    # Informational, never errors
    MAPPED = "mapped"
    DEVIATION = "deviation"
    IGNORED = "ignored"
    VALID = "valid"

    @property
    def is_error(self) -> bool:
        return self not in _INFORMATIONAL


_INFORMATIONAL = frozenset(
    {StatusCode.MAPPED, StatusCode.DEVIATION, StatusCode.IGNORED, StatusCode.VALID}
)


@dataclass(frozen=True)
class MappingEntry:
    """Classification of one contiguous range of code points.

    ``status`` is only meaningful for valid entries and ``replacement`` only
    for mapped, deviation and STD3-mapped entries.
    """

    kind: MappingKind
    status: IDNA2008Status | None = None
    replacement: tuple[int, ...] | None = None

    @property
    def text(self) -> str:
        """The replacement sequence as a string."""
        return "".join(map(chr, self.replacement or ()))


@dataclass(frozen=True)
class MappingRecord:
    """A ``start..end`` range record as supplied by a mapping data source."""

    start: int
    end: int
    entry: MappingEntry


@dataclass(frozen=True)
class Issue:
    """One departure from strict validity found during a transform."""

    status: StatusCode
    label: str
    detail: str = ""

    def __str__(self) -> str:
        text = f"{self.status.value} in label {self.label!r}"
        return f"{text}: {self.detail}" if self.detail else text


@dataclass(frozen=True)
class TransformResult:
    """Stores the result of a to_unicode or to_ascii operation."""

    value: str
    issues: tuple[Issue, ...] = ()
    notes: frozenset[StatusCode] = frozenset()

    @property
    def statuses(self) -> frozenset[StatusCode]:
        return frozenset(issue.status for issue in self.issues)

    @property
    def ok(self) -> bool:
        return not self.issues

    def raise_for_status(self) -> "TransformResult":
        """Raise IDNAError if any error was recorded, else return self."""
        if self.issues:
            from .exceptions import IDNAError

            raise IDNAError(self)
        return self


StatusSets = tuple[frozenset[StatusCode], ...]

SUCCESS: StatusSets = (frozenset(),)


@dataclass(frozen=True)
class TestVector:
    """A conformance test vector.

    Each ``*_statuses`` field holds the admissible status sets: the official
    corpus allows more than one outcome per vector depending on how strict
    an implementation is.
    """

    __test__ = False

    source: str
    to_unicode: str
    to_unicode_statuses: StatusSets = SUCCESS
    to_ascii_n: str | None = None
    to_ascii_n_statuses: StatusSets = SUCCESS
    to_ascii_t: str | None = None
    to_ascii_t_statuses: StatusSets | None = None
    line: int | None = None

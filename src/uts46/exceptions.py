"""Exception handling and error processing for IDNA operations.

This module provides the exception types raised by the UTS #46 engine and
utilities for turning status codes into human-readable messages.

The module serves three main purposes:
1. Define fatal initialization errors for the mapping table and config
2. Define the hard failures of the Punycode codec
3. Map transform status codes to readable descriptions

Note: per-label validation failures are never raised. They are accumulated
as status codes on a TransformResult. Only the strict helpers raise
IDNAError, and only after the transform has completed.
"""

from .typedefs import StatusCode, TransformResult


class UTS46Error(Exception):
    """Base exception for the UTS #46 engine."""


class MappingTableError(UTS46Error):
    """Mapping table data is malformed or does not cover every code point."""


class OutOfRange(UTS46Error, ValueError):
    """A lookup was attempted outside 0x0..0x10FFFF."""


class PunycodeError(UTS46Error, ValueError):
    """Base exception for Punycode transcoding failures."""


class Overflow(PunycodeError):
    """A delta or code point exceeded the representable range."""


class BadInput(PunycodeError):
    """The input cannot be transcoded at all."""


class ConfigError(UTS46Error):
    """Processing options could not be built from configuration."""


class CorpusError(UTS46Error):
    """Test-vector data is malformed."""


class IDNAError(UTS46Error):
    """A transform recorded errors and the caller asked for strict handling."""

    def __init__(self, result: TransformResult) -> None:
        self.result = result
        messages = "; ".join(str(issue) for issue in result.issues)
        super().__init__(f"IDNA processing failed for {result.value!r}: {messages}")


_STATUS_MESSAGES = {
    StatusCode.DISALLOWED: "Contains a disallowed code point",
    StatusCode.DISALLOWED_STD3_VALID: "Contains a code point disallowed by STD3 rules",
    StatusCode.DISALLOWED_STD3_MAPPED: "Contains a code point whose mapping is disallowed by STD3 rules",
    StatusCode.EMPTY_LABEL: "Empty label",
    StatusCode.BIDI: "Violates the Bidi rule",
    StatusCode.CONTEXT_J: "Joiner used outside of a permitted context",
    StatusCode.LEADING_COMBINING_MARK: "Label begins with a combining mark",
    StatusCode.PUNYCODE: "Invalid Punycode or ACE label",
    StatusCode.NOT_NFC: "Label is not in Normalization Form C",
    StatusCode.HYPHEN_3_4: "Hyphen-minus in both the third and fourth position",
    StatusCode.LEADING_TRAILING_HYPHEN: "Label begins or ends with hyphen-minus",
    StatusCode.XN_PREFIX: "Label begins with xn--",
    StatusCode.FULL_STOP: "Label contains a full stop",
    StatusCode.TOO_SHORT: "Domain name is empty",
    StatusCode.LABEL_TOO_LONG: "Label exceeds 63 octets",
    StatusCode.DOMAIN_NAME_TOO_LONG: "Domain name exceeds 253 octets",
    StatusCode.MAPPED: "Code point was mapped",
    StatusCode.DEVIATION: "Deviation character encountered",
    StatusCode.IGNORED: "Code point was ignored",
    StatusCode.VALID: "Valid",
}


def describe_status(status: StatusCode | str) -> str:
    """Convert a status code to a descriptive message."""
    try:
        return _STATUS_MESSAGES[StatusCode(status)]
    except ValueError:
        return f"Unknown status: {status}"

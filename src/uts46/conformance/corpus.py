"""Test-vector sources for the conformance harness.

Vectors are read either from the YAML corpus bundled with the package or
from Unicode's ``IdnaTestV2.txt``. Status codes of the official file
(``P1``, ``V6``, ``B2`` ...) are translated to the ``StatusCode`` sets this
implementation may report for them.
"""

import functools
import os
import re
from collections.abc import Iterable, Iterator
from typing import Any

import yaml
from fastmcp.utilities.logging import get_logger

from ..exceptions import CorpusError
from ..typedefs import SUCCESS, StatusCode, StatusSets, TestVector

logger = get_logger(__name__)

DEFAULT_CORPUS_PATH = os.path.join(os.path.dirname(__file__), "data", "test_vectors.yaml")

_ERROR_CODES = frozenset(code for code in StatusCode if code.is_error)
_DISALLOWED = frozenset(
    {
        StatusCode.DISALLOWED,
        StatusCode.DISALLOWED_STD3_VALID,
        StatusCode.DISALLOWED_STD3_MAPPED,
    }
)

# Validity-criteria numbering moved between UTS #46 revisions, so some
# V codes admit more than one check.
OFFICIAL_STATUS_CODES: dict[str, frozenset[StatusCode]] = {
    "P1": _DISALLOWED,
    "P4": frozenset({StatusCode.PUNYCODE}),
    "V1": frozenset({StatusCode.NOT_NFC}),
    "V2": frozenset({StatusCode.HYPHEN_3_4}),
    "V3": frozenset({StatusCode.LEADING_TRAILING_HYPHEN}),
    "V4": frozenset({StatusCode.XN_PREFIX, StatusCode.FULL_STOP}),
    "V5": frozenset({StatusCode.FULL_STOP, StatusCode.LEADING_COMBINING_MARK}),
    "V6": _DISALLOWED | {StatusCode.LEADING_COMBINING_MARK},
    "V7": _DISALLOWED,
    "V8": frozenset({StatusCode.CONTEXT_J}),
    "U1": frozenset({StatusCode.DISALLOWED_STD3_VALID, StatusCode.DISALLOWED_STD3_MAPPED}),
    "A3": frozenset({StatusCode.PUNYCODE}),
    "A4_1": frozenset({StatusCode.DOMAIN_NAME_TOO_LONG, StatusCode.TOO_SHORT}),
    "A4_2": frozenset({StatusCode.LABEL_TOO_LONG, StatusCode.EMPTY_LABEL}),
    "X4_2": frozenset({StatusCode.EMPTY_LABEL}),
}
OFFICIAL_STATUS_CODES.update({f"B{n}": frozenset({StatusCode.BIDI}) for n in range(1, 7)})
OFFICIAL_STATUS_CODES.update({f"C{n}": frozenset({StatusCode.CONTEXT_J}) for n in range(1, 8)})

_ESCAPE = re.compile(r"\\u([0-9A-Fa-f]{4})|\\x\{([0-9A-Fa-f]+)\}")
_SURROGATE_PAIR = re.compile("[\ud800-\udbff][\udc00-\udfff]")

_VECTOR_KEYS = frozenset(
    {
        "source",
        "to_unicode",
        "to_unicode_statuses",
        "to_ascii_n",
        "to_ascii_n_statuses",
        "to_ascii_t",
        "to_ascii_t_statuses",
    }
)


def unescape(text: str) -> str:
    """Expand ``\\uXXXX`` and ``\\x{X}`` escapes, joining surrogate pairs."""
    text = _ESCAPE.sub(lambda match: chr(int(match.group(1) or match.group(2), 16)), text)
    return _SURROGATE_PAIR.sub(
        lambda match: chr(
            0x10000 + ((ord(match.group(0)[0]) - 0xD800) << 10) + ord(match.group(0)[1]) - 0xDC00
        ),
        text,
    )


def translate_official_codes(codes: Iterable[str]) -> StatusSets:
    """Turn official status codes into admissible status sets."""
    admissible: set[StatusCode] = set()
    for code in codes:
        expansion = OFFICIAL_STATUS_CODES.get(code)
        if expansion is None:
            logger.warning("Unknown IdnaTestV2 status %s admits any error", code)
            expansion = _ERROR_CODES
        admissible |= expansion
    return (frozenset(admissible),) if admissible else SUCCESS


def _text_field(text: str) -> str | None:
    if not text:
        return None
    if text == '""':
        return ""
    return unescape(text)


def _code_field(text: str, lineno: int) -> list[str] | None:
    if not text:
        return None
    if not (text.startswith("[") and text.endswith("]")):
        raise CorpusError(f"line {lineno}: malformed status list {text!r}")
    return [code.strip() for code in text[1:-1].split(",") if code.strip()]


def parse_idna_test_v2(lines: Iterable[str | bytes]) -> Iterator[TestVector]:
    """Parse the rows of ``IdnaTestV2.txt``.

    Rows are ``source; toUnicode; toUnicodeStatus; toAsciiN;
    toAsciiNStatus`` with optional ``toAsciiT; toAsciiTStatus`` columns. A
    blank column repeats the column it defaults to; ``""`` is the empty
    string.
    """
    for lineno, line in enumerate(lines, start=1):
        if isinstance(line, bytes):
            line = line.decode("utf-8")
        line = line.split("#", 1)[0].strip()
        if not line:
            continue
        fields = [part.strip() for part in line.split(";")]
        if len(fields) not in (5, 7):
            raise CorpusError(f"line {lineno}: expected 5 or 7 fields, got {len(fields)}")

        source = _text_field(fields[0]) or ""
        to_unicode = _text_field(fields[1])
        to_unicode = source if to_unicode is None else to_unicode
        unicode_codes = _code_field(fields[2], lineno) or []
        to_ascii_n = _text_field(fields[3])
        to_ascii_n = to_unicode if to_ascii_n is None else to_ascii_n
        ascii_n_codes = _code_field(fields[4], lineno)
        ascii_n_codes = unicode_codes if ascii_n_codes is None else ascii_n_codes

        to_ascii_t = None
        to_ascii_t_statuses = None
        if len(fields) == 7:
            to_ascii_t = _text_field(fields[5])
            to_ascii_t = to_ascii_n if to_ascii_t is None else to_ascii_t
            ascii_t_codes = _code_field(fields[6], lineno)
            ascii_t_codes = ascii_n_codes if ascii_t_codes is None else ascii_t_codes
            to_ascii_t_statuses = _ascii_statuses(unicode_codes, ascii_t_codes)

        yield TestVector(
            source=source,
            to_unicode=to_unicode,
            to_unicode_statuses=translate_official_codes(unicode_codes),
            to_ascii_n=to_ascii_n,
            to_ascii_n_statuses=_ascii_statuses(unicode_codes, ascii_n_codes),
            to_ascii_t=to_ascii_t,
            to_ascii_t_statuses=to_ascii_t_statuses,
            line=lineno,
        )


def _ascii_statuses(unicode_codes: list[str], ascii_codes: list[str]) -> StatusSets:
    # ToASCII runs the ToUnicode steps first, so their errors are admissible too
    if not ascii_codes:
        return SUCCESS
    return translate_official_codes(unicode_codes + ascii_codes)


def load_idna_test_v2(path: str) -> tuple[TestVector, ...]:
    """Read every vector from an ``IdnaTestV2.txt`` file."""
    with open(path, encoding="utf-8") as f:
        vectors = tuple(parse_idna_test_v2(f))
    logger.info("Loaded %d test vectors from %s", len(vectors), path)
    return vectors


def _status_sets(value: Any, where: str) -> StatusSets:
    if value is None:
        return SUCCESS
    if not isinstance(value, list):
        raise CorpusError(f"{where}: status sets must be a list")
    # A flat list of names is shorthand for a single admissible set
    if all(isinstance(item, str) for item in value) and value:
        value = [value]

    sets = []
    for item in value:
        if not isinstance(item, list):
            raise CorpusError(f"{where}: each status set must be a list")
        try:
            codes = frozenset(StatusCode(name) for name in item)
        except ValueError as e:
            raise CorpusError(f"{where}: {e}") from None
        if any(not code.is_error for code in codes):
            raise CorpusError(f"{where}: only error codes may appear in status sets")
        sets.append(codes)
    return tuple(sets) or SUCCESS


def vector_from_dict(data: Any, index: int | None = None) -> TestVector:
    """Build a TestVector from one entry of a YAML corpus.

    Omitted outputs default the way ``IdnaTestV2.txt`` columns do:
    ``to_unicode`` to the source, ``to_ascii_n`` to ``to_unicode``, and each
    status field to the one before it.
    """
    where = f"vector {index}" if index is not None else "vector"
    if not isinstance(data, dict) or not isinstance(data.get("source"), str):
        raise CorpusError(f"{where}: must be a mapping with a string 'source'")
    unknown = sorted(set(data) - _VECTOR_KEYS)
    if unknown:
        raise CorpusError(f"{where}: unknown keys {', '.join(unknown)}")

    source = data["source"]
    to_unicode = data.get("to_unicode", source)
    to_unicode_statuses = _status_sets(data.get("to_unicode_statuses"), where)
    to_ascii_n = data.get("to_ascii_n", to_unicode)
    if "to_ascii_n_statuses" in data:
        to_ascii_n_statuses = _status_sets(data["to_ascii_n_statuses"], where)
    else:
        to_ascii_n_statuses = to_unicode_statuses

    to_ascii_t = data.get("to_ascii_t")
    to_ascii_t_statuses = None
    if "to_ascii_t_statuses" in data:
        to_ascii_t_statuses = _status_sets(data["to_ascii_t_statuses"], where)
    elif to_ascii_t is not None:
        to_ascii_t_statuses = to_ascii_n_statuses

    return TestVector(
        source=source,
        to_unicode=to_unicode,
        to_unicode_statuses=to_unicode_statuses,
        to_ascii_n=to_ascii_n,
        to_ascii_n_statuses=to_ascii_n_statuses,
        to_ascii_t=to_ascii_t,
        to_ascii_t_statuses=to_ascii_t_statuses,
        line=index,
    )


def load_vectors(path: str | None = None) -> tuple[TestVector, ...]:
    """Load a YAML corpus; defaults to the corpus bundled in ``data/``.

    Raises:
        CorpusError: If the file cannot be parsed or an entry is malformed.
    """
    path = path or DEFAULT_CORPUS_PATH
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise CorpusError(f"Error loading test vectors from {path}: {e}") from e

    entries = data.get("vectors") if isinstance(data, dict) else None
    if not isinstance(entries, list):
        raise CorpusError(f"{path}: expected a top-level 'vectors' list")

    vectors = tuple(vector_from_dict(entry, index) for index, entry in enumerate(entries))
    logger.info("Loaded %d test vectors from %s", len(vectors), path)
    return vectors


@functools.lru_cache(maxsize=None)
def default_vectors() -> tuple[TestVector, ...]:
    """The bundled corpus, loaded once per process."""
    return load_vectors()

"""Bidi rule (RFC 5893) and ContextJ rules (RFC 5892, Appendix A).

Bidi classes and combining classes come from ``unicodedata``; joining types
come from the ``idna`` distribution's ``idnadata`` tables.
"""

import functools
import unicodedata
from collections.abc import Callable

import idna.idnadata
import idna.intranges

VIRAMA_COMBINING_CLASS = 9
ZERO_WIDTH_NON_JOINER = 0x200C
ZERO_WIDTH_JOINER = 0x200D

_RTL_CLASSES = frozenset({"R", "AL"})
_BIDI_DOMAIN_CLASSES = frozenset({"R", "AL", "AN"})
_RTL_ALLOWED = frozenset({"R", "AL", "AN", "EN", "ES", "CS", "ET", "ON", "BN", "NSM"})
_RTL_ENDINGS = frozenset({"R", "AL", "EN", "AN"})
_LTR_ALLOWED = frozenset({"L", "EN", "ES", "CS", "ET", "ON", "BN", "NSM"})
_LTR_ENDINGS = frozenset({"L", "EN"})


def is_bidi_domain(labels: list[str]) -> bool:
    """True if any label holds a right-to-left or Arabic-number character."""
    return any(
        unicodedata.bidirectional(char) in _BIDI_DOMAIN_CLASSES
        for label in labels
        for char in label
    )


def bidi_violations(label: str) -> list[str]:
    """Return the RFC 5893 rules (``B1``..``B6``) that ``label`` breaks."""
    if not label:
        return []
    classes = [unicodedata.bidirectional(char) for char in label]
    violations = []

    if classes[0] not in ("L", "R", "AL"):
        violations.append("B1")

    end = len(classes)
    while end > 0 and classes[end - 1] == "NSM":
        end -= 1
    last = classes[end - 1] if end else None

    if classes[0] in _RTL_CLASSES:
        if any(bidi_class not in _RTL_ALLOWED for bidi_class in classes):
            violations.append("B2")
        if last not in _RTL_ENDINGS:
            violations.append("B3")
        if "EN" in classes and "AN" in classes:
            violations.append("B4")
    else:
        if any(bidi_class not in _LTR_ALLOWED for bidi_class in classes):
            violations.append("B5")
        if last not in _LTR_ENDINGS:
            violations.append("B6")

    return violations


@functools.lru_cache(maxsize=None)
def _joining_type_lookup() -> Callable[[int], str | None]:
    table = idna.idnadata.joining_types
    # idna 3.12 to 3.16 build the table lazily behind a function
    if callable(table):
        table = table()
    if any(isinstance(key, str) for key in table):
        # idna 3.17 and later map each joining type to ranges of code points
        ranges = list(table.items())

        def by_range(code_point: int) -> str | None:
            for joining_type, encoded in ranges:
                if idna.intranges.intranges_contain(code_point, encoded):
                    return joining_type
            return None

        return by_range

    def by_code_point(code_point: int) -> str | None:
        value = table.get(code_point)
        # Older idna releases store the joining type as its ordinal
        return chr(value) if isinstance(value, int) else value

    return by_code_point


def _joining_type(char: str) -> str | None:
    return _joining_type_lookup()(ord(char))


def _joins(label: str, positions: range, accepted: str) -> bool:
    for position in positions:
        joining_type = _joining_type(label[position])
        if joining_type == "T":
            continue
        return joining_type is not None and joining_type in accepted
    return False


def contextj_violations(label: str) -> list[int]:
    """Return positions of ZWNJ/ZWJ characters not allowed by ContextJ."""
    violations = []
    for position, char in enumerate(label):
        code_point = ord(char)
        if code_point not in (ZERO_WIDTH_NON_JOINER, ZERO_WIDTH_JOINER):
            continue
        if position > 0 and unicodedata.combining(label[position - 1]) == VIRAMA_COMBINING_CLASS:
            continue
        if (
            code_point == ZERO_WIDTH_NON_JOINER
            and _joins(label, range(position - 1, -1, -1), "LD")
            and _joins(label, range(position + 1, len(label)), "RD")
        ):
            continue
        violations.append(position)
    return violations

"""Bootstring transcoding with the Punycode parameters of RFC 3492.

``encode`` and ``decode`` work on sequences of code points;
``encode_label`` and ``decode_label`` are string conveniences used by the
transform engine. Both directions raise ``Overflow`` or ``BadInput``
instead of producing a partial result.
"""

from collections.abc import Sequence

from .exceptions import BadInput, Overflow

BASE = 36
TMIN = 1
TMAX = 26
SKEW = 38
DAMP = 700
INITIAL_BIAS = 72
INITIAL_N = 0x80
DELIMITER = "-"

# Overflow bound for deltas and code points, as in the RFC reference code
MAXINT = 0x7FFFFFFF

_MAX_CODE_POINT = 0x10FFFF
_DIGITS = "abcdefghijklmnopqrstuvwxyz0123456789"


def _threshold(k: int, bias: int) -> int:
    if k <= bias:
        return TMIN
    if k >= bias + TMAX:
        return TMAX
    return k - bias


def _adapt(delta: int, num_points: int, first_time: bool) -> int:
    delta = delta // DAMP if first_time else delta // 2
    delta += delta // num_points
    k = 0
    while delta > ((BASE - TMIN) * TMAX) // 2:
        delta //= BASE - TMIN
        k += BASE
    return k + ((BASE - TMIN + 1) * delta) // (delta + SKEW)


def _digit_value(char: str) -> int:
    if "a" <= char <= "z":
        return ord(char) - ord("a")
    if "A" <= char <= "Z":
        return ord(char) - ord("A")
    if "0" <= char <= "9":
        return ord(char) - ord("0") + 26
    raise BadInput(f"Invalid Punycode digit {char!r}")


def encode(scalars: Sequence[int]) -> str:
    """Encode a sequence of code points as a Punycode string.

    Args:
        scalars: Code points to encode.

    Returns:
        str: The ASCII Punycode form, lowercase, without any ``xn--`` prefix.

    Raises:
        BadInput: If a value is not a code point.
        Overflow: If a delta exceeds the representable range.
    """
    for value in scalars:
        if not 0 <= value <= _MAX_CODE_POINT:
            raise BadInput(f"{value:#x} is not a Unicode code point")

    output = [chr(value) for value in scalars if value < INITIAL_N]
    basic_count = handled = len(output)
    if basic_count:
        output.append(DELIMITER)

    n = INITIAL_N
    delta = 0
    bias = INITIAL_BIAS
    total = len(scalars)

    while handled < total:
        m = min(value for value in scalars if value >= n)
        if m - n > (MAXINT - delta) // (handled + 1):
            raise Overflow("Punycode delta overflow")
        delta += (m - n) * (handled + 1)
        n = m

        for value in scalars:
            if value < n:
                delta += 1
                if delta > MAXINT:
                    raise Overflow("Punycode delta overflow")
            elif value == n:
                q = delta
                k = BASE
                while True:
                    t = _threshold(k, bias)
                    if q < t:
                        break
                    output.append(_DIGITS[t + (q - t) % (BASE - t)])
                    q = (q - t) // (BASE - t)
                    k += BASE
                output.append(_DIGITS[q])
                bias = _adapt(delta, handled + 1, handled == basic_count)
                delta = 0
                handled += 1

        delta += 1
        n += 1

    return "".join(output)


def decode(text: str) -> list[int]:
    """Decode a Punycode string into code points.

    Everything before the last delimiter is copied literally; the rest is a
    sequence of generalized variable-length integers.

    Raises:
        BadInput: On non-basic literal characters, digits outside base 36,
            an incomplete final digit group, overflow, or a result that is
            not a Unicode scalar value.
    """
    position = text.rfind(DELIMITER)
    if position == -1:
        literal, digits = "", text
    else:
        literal, digits = text[:position], text[position + 1 :]

    output = []
    for char in literal:
        if ord(char) >= INITIAL_N:
            raise BadInput(f"Non-basic code point {char!r} before the delimiter")
        output.append(ord(char))

    n = INITIAL_N
    i = 0
    bias = INITIAL_BIAS
    index = 0

    while index < len(digits):
        old_i = i
        w = 1
        k = BASE
        while True:
            if index >= len(digits):
                raise BadInput("Incomplete Punycode digit group")
            digit = _digit_value(digits[index])
            index += 1
            if digit > (MAXINT - i) // w:
                raise BadInput("Punycode delta overflow")
            i += digit * w
            t = _threshold(k, bias)
            if digit < t:
                break
            if w > MAXINT // (BASE - t):
                raise BadInput("Punycode delta overflow")
            w *= BASE - t
            k += BASE

        length = len(output) + 1
        bias = _adapt(i - old_i, length, old_i == 0)
        if i // length > MAXINT - n:
            raise BadInput("Punycode code point overflow")
        n += i // length
        i %= length
        if n > _MAX_CODE_POINT or 0xD800 <= n <= 0xDFFF:
            raise BadInput(f"Decoded value {n:#x} is not a Unicode scalar value")
        output.insert(i, n)
        i += 1

    return output


def encode_label(label: str) -> str:
    """Punycode-encode the characters of ``label``."""
    return encode([ord(char) for char in label])


def decode_label(text: str) -> str:
    """Punycode-decode ``text`` into a string."""
    return "".join(map(chr, decode(text)))

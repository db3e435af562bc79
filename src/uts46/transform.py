"""UTS #46 ToUnicode and ToASCII processing.

The pipeline is map, normalize, break into labels, convert and validate
each label, then (ToASCII only) Punycode-encode non-ASCII labels and check
DNS lengths. Validation never aborts: every departure from strict validity
is recorded as an Issue on the returned TransformResult, next to the
best-effort output string.
"""

import functools
import re
import unicodedata
from collections.abc import Callable

from fastmcp.utilities.logging import get_logger

from . import punycode, rules
from .config import IDNAConfig
from .exceptions import PunycodeError
from .mapping import MappingTable, get_mapping_table
from .typedefs import Issue, MappingKind, ProcessingMode, StatusCode, TransformResult

logger = get_logger(__name__)

ACE_PREFIX = "xn--"
LABEL_SEPARATOR = "."
MAX_LABEL_LENGTH = 63
MAX_NAME_LENGTH = 253

_STD3_ASCII = frozenset("abcdefghijklmnopqrstuvwxyz0123456789-")
# Names made only of these characters map to themselves
_PLAIN_NAME = re.compile(r"[a-z0-9.\-]*")


def normalize_nfc(text: str) -> str:
    """Normalize ``text`` to Normalization Form C."""
    return unicodedata.normalize("NFC", text)


class IDNA:
    """UTS #46 processor bound to one set of options.

    Instances hold no mutable state and may be shared between threads.

    Attributes:
        config (IDNAConfig): Processing options.
        table (MappingTable): Mapping table used for both mapping and
            validation.
        normalizer (Callable[[str], str]): NFC normalizer.
    """

    def __init__(
        self,
        config: IDNAConfig | None = None,
        table: MappingTable | None = None,
        normalizer: Callable[[str], str] = normalize_nfc,
    ) -> None:
        self.config = config or IDNAConfig.default()
        self.table = table if table is not None else get_mapping_table()
        self.normalizer = normalizer

    def to_unicode(self, name: str) -> TransformResult:
        """Convert ``name`` to its Unicode form.

        ToUnicode always uses nontransitional processing, so deviation
        characters are kept.
        """
        issues: list[Issue] = []
        notes: set[StatusCode] = set()
        labels = self._process(name, ProcessingMode.NONTRANSITIONAL, issues, notes)
        return TransformResult(LABEL_SEPARATOR.join(labels), tuple(issues), frozenset(notes))

    def to_ascii(self, name: str, transitional: bool | None = None) -> TransformResult:
        """Convert ``name`` to its ASCII-compatible form.

        Args:
            name: Domain name to convert.
            transitional: Map deviation characters instead of keeping them.
                Defaults to the configured processing mode.
        """
        if transitional is None:
            transitional = self.config.transitional
        if transitional:
            mode = ProcessingMode.TRANSITIONAL
        else:
            mode = ProcessingMode.NONTRANSITIONAL

        issues: list[Issue] = []
        notes: set[StatusCode] = set()
        labels = [
            self._encode_label(label, issues)
            for label in self._process(name, mode, issues, notes)
        ]
        if self.config.verify_dns_length:
            self._verify_dns_length(labels, issues)
        return TransformResult(LABEL_SEPARATOR.join(labels), tuple(issues), frozenset(notes))

    def _process(
        self,
        name: str,
        mode: ProcessingMode,
        issues: list[Issue],
        notes: set[StatusCode],
    ) -> list[str]:
        labels = self.normalizer(self._map(name, mode, issues, notes)).split(LABEL_SEPARATOR)

        converted = []
        for index, label in enumerate(labels):
            if label:
                converted.append(self._convert_label(label, mode, issues))
                continue
            # The root label after a trailing dot and the empty name are fine
            if index < len(labels) - 1:
                issues.append(Issue(StatusCode.EMPTY_LABEL, label, f"label {index} is empty"))
            converted.append(label)

        if self.config.check_bidi and rules.is_bidi_domain(converted):
            for label in converted:
                failed = rules.bidi_violations(label)
                if failed:
                    issues.append(Issue(StatusCode.BIDI, label, f"fails {', '.join(failed)}"))

        return converted

    def _map(
        self,
        name: str,
        mode: ProcessingMode,
        issues: list[Issue],
        notes: set[StatusCode],
    ) -> str:
        if _PLAIN_NAME.fullmatch(name):
            return name

        std3 = self.config.use_std3_ascii_rules
        output = []
        for char in name:
            entry = self.table.lookup(ord(char))
            kind = entry.kind
            if kind is MappingKind.VALID:
                output.append(char)
            elif kind is MappingKind.MAPPED:
                notes.add(StatusCode.MAPPED)
                output.append(entry.text)
            elif kind is MappingKind.DEVIATION:
                notes.add(StatusCode.DEVIATION)
                output.append(entry.text if mode is ProcessingMode.TRANSITIONAL else char)
            elif kind is MappingKind.IGNORED:
                notes.add(StatusCode.IGNORED)
            elif kind is MappingKind.DISALLOWED_STD3_VALID:
                if std3:
                    issues.append(_code_point_issue(StatusCode.DISALLOWED_STD3_VALID, name, char))
                output.append(char)
            elif kind is MappingKind.DISALLOWED_STD3_MAPPED:
                if std3:
                    issues.append(_code_point_issue(StatusCode.DISALLOWED_STD3_MAPPED, name, char))
                    output.append(char)
                else:
                    notes.add(StatusCode.MAPPED)
                    output.append(entry.text)
            else:
                issues.append(_code_point_issue(StatusCode.DISALLOWED, name, char))
                output.append(char)
        return "".join(output)

    def _convert_label(self, label: str, mode: ProcessingMode, issues: list[Issue]) -> str:
        if not label.startswith(ACE_PREFIX):
            self._validate(label, mode, issues)
            return label

        if not label.isascii():
            issues.append(Issue(StatusCode.PUNYCODE, label, "ACE label contains non-ASCII"))
            return label

        try:
            decoded = punycode.decode_label(label[len(ACE_PREFIX) :])
        except PunycodeError as e:
            logger.debug("Punycode decode failed for %r: %s", label, e)
            if self.config.ignore_invalid_punycode:
                self._validate(label, mode, issues)
            else:
                issues.append(Issue(StatusCode.PUNYCODE, label, str(e)))
            return label

        if not decoded or decoded.isascii():
            issues.append(
                Issue(StatusCode.PUNYCODE, label, "ACE label decodes to an empty or ASCII label")
            )
        self._validate(decoded, ProcessingMode.NONTRANSITIONAL, issues)
        return decoded

    def _validate(self, label: str, mode: ProcessingMode, issues: list[Issue]) -> None:
        """Check the UTS #46 validity criteria for a single label."""
        if not label:
            return

        def record(status: StatusCode, detail: str = "") -> None:
            issues.append(Issue(status, label, detail))

        if self.normalizer(label) != label:
            record(StatusCode.NOT_NFC)
        if self.config.check_hyphens:
            if label[2:4] == "--":
                record(StatusCode.HYPHEN_3_4)
            if label.startswith("-") or label.endswith("-"):
                record(StatusCode.LEADING_TRAILING_HYPHEN)
        elif label.startswith(ACE_PREFIX):
            record(StatusCode.XN_PREFIX)
        if LABEL_SEPARATOR in label:
            record(StatusCode.FULL_STOP)
        if unicodedata.category(label[0]).startswith("M"):
            record(StatusCode.LEADING_COMBINING_MARK, f"U+{ord(label[0]):04X}")

        for char in label:
            status = self._validity_status(char, mode)
            if status is not None:
                record(status, f"U+{ord(char):04X}")

        if self.config.check_joiners:
            for position in rules.contextj_violations(label):
                record(StatusCode.CONTEXT_J, f"U+{ord(label[position]):04X} at {position}")

    def _validity_status(self, char: str, mode: ProcessingMode) -> StatusCode | None:
        kind = self.table.lookup(ord(char)).kind
        std3 = self.config.use_std3_ascii_rules
        if kind is MappingKind.VALID:
            if std3 and char.isascii() and char not in _STD3_ASCII:
                return StatusCode.DISALLOWED_STD3_VALID
            return None
        if kind is MappingKind.DEVIATION:
            return None if mode is ProcessingMode.NONTRANSITIONAL else StatusCode.DISALLOWED
        if kind is MappingKind.DISALLOWED_STD3_VALID:
            return StatusCode.DISALLOWED_STD3_VALID if std3 else None
        if kind is MappingKind.DISALLOWED_STD3_MAPPED and std3:
            return StatusCode.DISALLOWED_STD3_MAPPED
        return StatusCode.DISALLOWED

    def _encode_label(self, label: str, issues: list[Issue]) -> str:
        if label.isascii():
            return label
        try:
            return ACE_PREFIX + punycode.encode_label(label)
        except PunycodeError as e:
            logger.debug("Punycode encode failed for %r: %s", label, e)
            issues.append(Issue(StatusCode.PUNYCODE, label, str(e)))
            return label

    def _verify_dns_length(self, labels: list[str], issues: list[Issue]) -> None:
        if len(labels) > 1 and not labels[-1]:
            issues.append(Issue(StatusCode.EMPTY_LABEL, "", "root label after a trailing dot"))
            labels = labels[:-1]

        for label in labels:
            if len(label) > MAX_LABEL_LENGTH:
                issues.append(
                    Issue(StatusCode.LABEL_TOO_LONG, label, f"{len(label)} octets exceeds 63")
                )

        length = sum(len(label) for label in labels) + len(labels) - 1
        if length > MAX_NAME_LENGTH:
            issues.append(
                Issue(StatusCode.DOMAIN_NAME_TOO_LONG, "", f"{length} octets exceeds 253")
            )
        elif not any(labels):
            issues.append(Issue(StatusCode.TOO_SHORT, "", "domain name is empty"))


def _code_point_issue(status: StatusCode, name: str, char: str) -> Issue:
    return Issue(status, name, f"U+{ord(char):04X}")


@functools.lru_cache(maxsize=None)
def _engine(config: IDNAConfig) -> IDNA:
    return IDNA(config)


def to_unicode(name: str, config: IDNAConfig | None = None) -> TransformResult:
    """Run ToUnicode on ``name`` with ``config`` (defaults if omitted)."""
    return _engine(config or IDNAConfig.default()).to_unicode(name)


def to_ascii(
    name: str,
    transitional: bool | None = None,
    config: IDNAConfig | None = None,
) -> TransformResult:
    """Run ToASCII on ``name``; nontransitional unless asked otherwise."""
    return _engine(config or IDNAConfig.default()).to_ascii(name, transitional)


def encode(
    name: str,
    transitional: bool | None = None,
    config: IDNAConfig | None = None,
) -> str:
    """Return the ASCII form of ``name`` or raise IDNAError."""
    return to_ascii(name, transitional, config).raise_for_status().value


def decode(name: str, config: IDNAConfig | None = None) -> str:
    """Return the Unicode form of ``name`` or raise IDNAError."""
    return to_unicode(name, config).raise_for_status().value

"""Conformance harness: replays test vectors against the transform engine.

Every vector is checked through ToUnicode and nontransitional ToASCII (and
transitional ToASCII when the vector carries an expectation for it). A
failing vector never stops the run; failures are collected per vector and
summarized at the end.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field

from fastmcp.utilities.logging import get_logger

from ..config import IDNAConfig
from ..exceptions import describe_status
from ..transform import IDNA
from ..typedefs import StatusCode, StatusSets, TestVector, TransformResult

logger = get_logger(__name__)


@dataclass(frozen=True)
class VectorOutcome:
    """Stores the result of replaying one test vector."""

    vector: TestVector
    to_unicode: TransformResult
    to_ascii_n: TransformResult
    to_ascii_t: TransformResult | None = None
    failures: tuple[str, ...] = ()

    @property
    def passed(self) -> bool:
        return not self.failures


@dataclass
class HarnessReport:
    """Aggregate of a conformance run."""

    total: int
    passed: int
    failures: list[VectorOutcome] = field(default_factory=list)

    @property
    def failed(self) -> int:
        return len(self.failures)

    @property
    def success(self) -> bool:
        return not self.failures


def statuses_admissible(actual: frozenset[StatusCode], admissible: StatusSets) -> bool:
    """Check a reported status set against the admissible sets.

    An error-free result is admissible when the empty set is. A result with
    errors is admissible when every reported code belongs to one of the
    non-empty admissible sets: the official corpus lets implementations
    report fewer errors than the full list.
    """
    if not actual:
        return not admissible or frozenset() in admissible
    return any(status_set and actual <= status_set for status_set in admissible)


def _format_statuses(statuses: Iterable[StatusCode]) -> str:
    return "{" + ", ".join(sorted(status.value for status in statuses)) + "}"


def _compare(
    operation: str,
    result: TransformResult,
    expected: str,
    admissible: StatusSets,
    failures: list[str],
) -> None:
    if not statuses_admissible(result.statuses, admissible):
        unexpected = [
            f"{status.value} ({describe_status(status)})"
            for status in sorted(result.statuses, key=lambda s: s.value)
        ]
        choices = " | ".join(_format_statuses(status_set) for status_set in admissible)
        failures.append(
            f"{operation}: reported {', '.join(unexpected) or 'no errors'}; admissible {choices}"
        )
        return
    if result.ok and result.value != expected:
        failures.append(f"{operation}: expected {expected!r}, got {result.value!r}")


class ConformanceHarness:
    """Runs test vectors through an IDNA processor.

    Attributes:
        idna (IDNA): Processor under test. Defaults to the strictest
            options, which are the ones the official corpus assumes.
    """

    def __init__(self, idna: IDNA | None = None) -> None:
        self.idna = idna or IDNA(IDNAConfig.most_strict())

    def check(self, vector: TestVector) -> VectorOutcome:
        """Replay a single vector."""
        failures: list[str] = []

        unicode_result = self.idna.to_unicode(vector.source)
        _compare(
            "toUnicode",
            unicode_result,
            vector.to_unicode,
            vector.to_unicode_statuses,
            failures,
        )

        ascii_n = self.idna.to_ascii(vector.source, transitional=False)
        expected_n = vector.to_ascii_n if vector.to_ascii_n is not None else vector.to_unicode
        _compare("toAsciiN", ascii_n, expected_n, vector.to_ascii_n_statuses, failures)

        ascii_t = None
        if vector.to_ascii_t is not None:
            ascii_t = self.idna.to_ascii(vector.source, transitional=True)
            _compare(
                "toAsciiT",
                ascii_t,
                vector.to_ascii_t,
                vector.to_ascii_t_statuses or vector.to_ascii_n_statuses,
                failures,
            )

        if failures:
            logger.debug("Vector %r failed: %s", vector.source, "; ".join(failures))
        return VectorOutcome(vector, unicode_result, ascii_n, ascii_t, tuple(failures))

    def run(self, vectors: Iterable[TestVector]) -> list[VectorOutcome]:
        """Replay every vector; never stops at the first failure."""
        return [self.check(vector) for vector in vectors]


def run(vectors: Iterable[TestVector], idna: IDNA | None = None) -> list[VectorOutcome]:
    """Replay ``vectors`` with a fresh harness."""
    return ConformanceHarness(idna).run(vectors)


def summarize(outcomes: Iterable[VectorOutcome]) -> HarnessReport:
    """Aggregate outcomes into a report and log the totals."""
    outcomes = list(outcomes)
    failures = [outcome for outcome in outcomes if not outcome.passed]
    report = HarnessReport(
        total=len(outcomes),
        passed=len(outcomes) - len(failures),
        failures=failures,
    )
    if failures:
        logger.info(
            "Conformance run: %d of %d vectors failed", report.failed, report.total
        )
    else:
        logger.info("Conformance run: all %d vectors passed", report.total)
    return report

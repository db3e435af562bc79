"""Conformance harness and test-vector sources."""

from .corpus import (
    default_vectors,
    load_idna_test_v2,
    load_vectors,
    parse_idna_test_v2,
    vector_from_dict,
)
from .harness import (
    ConformanceHarness,
    HarnessReport,
    VectorOutcome,
    run,
    statuses_admissible,
    summarize,
)

__all__ = [
    "ConformanceHarness",
    "HarnessReport",
    "VectorOutcome",
    "default_vectors",
    "load_idna_test_v2",
    "load_vectors",
    "parse_idna_test_v2",
    "run",
    "statuses_admissible",
    "summarize",
    "vector_from_dict",
]

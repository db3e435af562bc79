"""Configuration for pytest."""

import os
import sys

import pytest

# Add the src directory to the Python path so the package imports without
# being installed
test_dir = os.path.dirname(os.path.abspath(__file__))
project_root = os.path.dirname(test_dir)
src_dir = os.path.join(project_root, "src")

if src_dir not in sys.path:
    sys.path.insert(0, src_dir)

from uts46 import IDNA, IDNAConfig  # noqa: E402


@pytest.fixture
def strict_idna():
    """Processor with the options the official corpus assumes."""
    return IDNA(IDNAConfig.most_strict())


@pytest.fixture
def lax_idna():
    """Processor with every optional check turned off."""
    return IDNA(IDNAConfig.most_lax())

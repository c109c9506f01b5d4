import sys
import os

import pytest

# Add backend/ to path so tests can import backend modules directly
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "backend"))

# Add scripts/ to path so tests can import script modules directly
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "scripts"))

BUNDLED_PLAN_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "data"))


@pytest.fixture
def plan_dir():
    """The bundled UTN FRRE Sistemas plan (36 courses, ids 101..136)."""
    return BUNDLED_PLAN_DIR

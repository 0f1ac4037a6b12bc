"""Pytest configuration shared by the CineTrack test suite."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

# Make ``app`` importable without an editable install.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


@pytest.fixture
def anyio_backend() -> str:
    """Run AnyIO-marked tests on asyncio only."""

    return "asyncio"

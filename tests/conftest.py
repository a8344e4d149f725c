"""Shared test fixtures."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

# Make _helpers importable from test files
sys.path.insert(0, str(Path(__file__).parent))

from _helpers import make_identity, make_profile, make_session  # noqa: E402

from venuegate.auth.store import AuthStore  # noqa: E402
from venuegate.backend.memory import InMemoryDataAccess  # noqa: E402

__all__ = ["make_identity", "make_profile", "make_session"]


@pytest.fixture
def store() -> AuthStore:
    return AuthStore()


@pytest.fixture
def data() -> InMemoryDataAccess:
    return InMemoryDataAccess()

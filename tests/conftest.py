"""Shared fixtures."""

from __future__ import annotations

import pytest

from .fakes import ENDPOINT


@pytest.fixture
def endpoint() -> str:
    return ENDPOINT

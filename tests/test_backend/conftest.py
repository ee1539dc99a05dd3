"""Fixtures for backend tests."""

from __future__ import annotations

import pytest

from rdfscout.backend.app import create_app
from rdfscout.backend.config import TestConfig

from ..fakes import FakeExecutor


@pytest.fixture()
def app():
    """Create a test Flask application."""
    application = create_app(TestConfig)
    yield application


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


@pytest.fixture()
def use_store(app):
    """Install a scripted executor on the app: ``use_store(handler)``."""

    def _install(handler):
        executor = FakeExecutor(handler)
        app.config["EXECUTOR"] = executor
        return executor

    return _install

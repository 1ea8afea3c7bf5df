"""Global pytest fixtures for the countgate test suite.

Connection settings can come from COUNTGATE_* environment variables, so any
that leak in from the developer's shell or CI are removed before each test.
"""

import os

import pytest


@pytest.fixture(autouse=True)
def clear_countgate_env(monkeypatch):
    for key in list(os.environ):
        if key.startswith("COUNTGATE_"):
            monkeypatch.delenv(key, raising=False)
    yield

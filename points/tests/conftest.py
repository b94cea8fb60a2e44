import os

import pytest


@pytest.fixture(autouse=True)
def clean_point_env(monkeypatch):
    """Keep POINT_* variables from the host out of Settings."""
    for name in list(os.environ):
        if name.upper().startswith("POINT_"):
            monkeypatch.delenv(name)
    yield

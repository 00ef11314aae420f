"""
Config test fixtures: clean environment via monkeypatch.
"""

import pytest


@pytest.fixture
def clean_env(isolated_config):
    """Environment without translator env vars; set vars on the returned monkeypatch."""
    return isolated_config

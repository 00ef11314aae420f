"""
Root conftest.py: sys.path, env vars, shared fixtures.

Sets up the test environment so the translator, config and logging
modules import from the project root.
"""

import os
import sys

import pytest

# Add project root to sys.path so 'mapbox_styles', 'config', etc. are importable
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

TRANSLATOR_ENV_VARS = [
    "MAPBOX_IGNORE_CONVERSION_ERRORS",
    "MAPBOX_OUTPUT_INDENT",
    "DEBUG_LOGGING",
]


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch):
    """
    Every test starts from the default configuration.

    Translator env vars are removed and the config singleton is dropped
    before and after the test.
    """
    from config import reset_config

    for var in TRANSLATOR_ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    reset_config()
    yield monkeypatch
    reset_config()


@pytest.fixture
def strict_translator():
    from mapbox_styles import MapboxStyleTranslator
    return MapboxStyleTranslator(ignore_conversion_errors=False)


@pytest.fixture
def lenient_translator():
    from mapbox_styles import MapboxStyleTranslator
    return MapboxStyleTranslator(ignore_conversion_errors=True)

"""
Unit test fixtures: factory-built style documents.
"""

import pytest

from tests.factories.style_factories import (
    make_mapbox_style,
    make_fill_layer,
    make_line_layer,
    make_circle_layer,
    make_text_layer,
    make_neutral_style,
)


@pytest.fixture
def mapbox_style_data():
    """Randomized Mapbox style with one layer of every supported type."""
    return make_mapbox_style(layers=[
        make_fill_layer(),
        make_line_layer(),
        make_circle_layer(),
        make_text_layer(),
    ])


@pytest.fixture
def neutral_style_data():
    """Randomized neutral style dict."""
    return make_neutral_style()

"""
Pytest configuration for TSPL printer tests.

Provides in-memory connectors and generated images.
"""

from io import BytesIO

import pytest
from PIL import Image

from tsplprinter import DummyConnector, TSPLPrinter


@pytest.fixture
def connector():
    """In-memory connector."""
    return DummyConnector()


@pytest.fixture
def printer(connector):
    """Printer session with default settings."""
    return TSPLPrinter(connector)


@pytest.fixture
def black_square():
    """8x8 all-black RGB image."""
    return Image.new("RGB", (8, 8), color=(0, 0, 0))


@pytest.fixture
def png_bytes():
    """Encode a PIL image as PNG bytes."""
    def _encode(img):
        buf = BytesIO()
        img.save(buf, format="PNG")
        return buf.getvalue()
    return _encode

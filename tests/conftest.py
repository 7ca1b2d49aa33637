"""
Pytest configuration and shared fixtures for Open Canvas tests.

This module provides shared test fixtures and configuration
used across multiple test modules.
"""

from io import BytesIO

import numpy as np
import pytest
from PIL import Image

from OC_Libs.ImageEditingLib.raster_buffer import RasterBuffer
from OC_Libs.SessionLib.preview_timers import CooperativeTimer


@pytest.fixture
def sample_rgba_colors():
    """
    Provide a list of sample RGBA color tuples for testing.

    Returns:
        List of (R, G, B, A) tuples with common test colors
    """
    return [
        (255, 0, 0, 255),    # Red
        (0, 255, 0, 255),    # Green
        (0, 0, 255, 255),    # Blue
        (255, 255, 255, 255),  # White
        (0, 0, 0, 255),      # Black
        (128, 128, 128, 255),  # Gray
    ]


@pytest.fixture
def gray_buffer():
    """4x4 buffer filled with opaque mid gray."""
    return RasterBuffer.filled(4, 4, (128, 128, 128, 255))


@pytest.fixture
def gradient_buffer():
    """
    Provide a 5x4 buffer where every pixel is distinct.

    Red grows along x, green along y, blue is fixed and alpha varies so
    alpha passthrough can be checked.
    """
    height, width = 4, 5
    array = np.zeros((height, width, 4), dtype=np.uint8)
    for y in range(height):
        for x in range(width):
            array[y, x] = (x * 50, y * 60, 90, 200 + x)
    return RasterBuffer.from_array(array)


@pytest.fixture
def cooperative_timer():
    """Manually advanced timer for deterministic scheduling tests."""
    return CooperativeTimer()


@pytest.fixture
def png_bytes():
    """PNG encoding of a small 6x4 red image."""
    output = BytesIO()
    Image.new("RGBA", (6, 4), (255, 0, 0, 255)).save(output, format="PNG")
    return output.getvalue()

"""Shared pytest configuration and fixtures for the serialimage test suite."""

import sys
from datetime import datetime, timezone
from pathlib import Path

import numpy as np
import pytest

# Ensure the project root is in the path for imports
PROJECT_ROOT = Path(__file__).parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from serialimage import (  # noqa: E402
    DynamicSerialImage,
    ElementType,
    ImageMetaData,
    SerialImageBuffer,
    SerialImagePixel,
)


# =============================================================================
# Shared Fixtures
# =============================================================================

ALL_PIXELS = [
    SerialImagePixel(element_type, channels)
    for element_type, channels in [
        (ElementType.U8, 1), (ElementType.U8, 2), (ElementType.U8, 3), (ElementType.U8, 4),
        (ElementType.U16, 1), (ElementType.U16, 2), (ElementType.U16, 3), (ElementType.U16, 4),
        (ElementType.F32, 3), (ElementType.F32, 4),
    ]
]


def make_buffer(pixel: SerialImagePixel, width: int = 3, height: int = 2) -> SerialImageBuffer:
    """Deterministic, non-constant buffer for the given descriptor."""
    count = width * height * pixel.channels
    if pixel.element_type is ElementType.F32:
        data = np.linspace(0.0, 1.0, count, dtype=np.float32)
        data[1] = np.float32(0.1)  # not exactly representable in binary
    else:
        top = pixel.element_type.max_value
        data = (np.arange(count) * 37 % (top + 1)).astype(pixel.element_type.dtype)
    return SerialImageBuffer(data, width, height, pixel.channels, pixel.element_type)


@pytest.fixture
def full_metadata() -> ImageMetaData:
    """Metadata with every field present."""
    meta = ImageMetaData(
        bin_x=2,
        bin_y=2,
        img_top=10,
        img_left=20,
        temperature=-10.5,
        exposure_time=0.125,
        timestamp=datetime(2024, 3, 1, 12, 30, 45, 123456, tzinfo=timezone.utc),
        camera_name="ZWO ASI183MM",
        gain=120,
        offset=30,
        min_gain=0,
        max_gain=570,
    )
    meta.add_extended_attrib("FILTER", "Ha")
    meta.add_extended_attrib("OBSERVER", "night shift")
    return meta


@pytest.fixture
def rgb_2x2() -> SerialImageBuffer:
    """2x2 U8 RGB buffer, row-major and pixel-interleaved."""
    return SerialImageBuffer([1, 2, 3, 4, 5, 6, 7, 8, 9, 10, 11, 12], 2, 2, 3, ElementType.U8)


@pytest.fixture
def gray16_zeros() -> SerialImageBuffer:
    return SerialImageBuffer(np.zeros(100, dtype=np.uint16), 10, 10, 1)


@pytest.fixture
def rgb_image(rgb_2x2, full_metadata) -> DynamicSerialImage:
    return DynamicSerialImage.from_buffer(rgb_2x2, full_metadata)


@pytest.fixture
def clean_env(monkeypatch):
    """Remove every SERIALIMAGE_* variable from the environment."""
    for name in (
        "SERIALIMAGE_LOG_LEVEL",
        "SERIALIMAGE_JSON_INDENT",
        "SERIALIMAGE_FITS_PROGNAME",
        "SERIALIMAGE_FITS_COMPRESS",
        "SERIALIMAGE_FITS_OVERWRITE",
    ):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch

from __future__ import annotations

from typing import Dict

import numpy as np
from PIL import Image as PILImage

from serialimage.errors import ShapeError, UnsupportedShapeError
from serialimage.models.image_buffer import SerialImageBuffer
from serialimage.models.pixel import SerialImagePixel

_MODES: Dict[SerialImagePixel, str] = {
    SerialImagePixel.u8(1): "L",
    SerialImagePixel.u8(2): "LA",
    SerialImagePixel.u8(3): "RGB",
    SerialImagePixel.u8(4): "RGBA",
    SerialImagePixel.u16(1): "I;16",
}

_PIXELS: Dict[str, SerialImagePixel] = {mode: pixel for pixel, mode in _MODES.items()}
_PIXELS["I;16L"] = SerialImagePixel.u16(1)
_PIXELS["I;16B"] = SerialImagePixel.u16(1)


class PilImageRepository:
    """
    Pillow access layer. No Pillow logic outside this file.

    Pillow has no 16-bit multi-channel modes and no float RGB modes, so
    those descriptors are reported as unsupported.
    """

    @staticmethod
    def supports(pixel: SerialImagePixel) -> bool:
        return pixel in _MODES

    @staticmethod
    def mode_for(pixel: SerialImagePixel) -> str:
        try:
            return _MODES[pixel]
        except KeyError:
            raise UnsupportedShapeError(f"Pillow has no image mode for {pixel}") from None

    @staticmethod
    def pixel_for(mode: str) -> SerialImagePixel:
        try:
            return _PIXELS[mode]
        except KeyError:
            raise UnsupportedShapeError(f"Pillow mode {mode!r} is not supported") from None

    @classmethod
    def create_image(cls, buffer: SerialImageBuffer) -> PILImage.Image:
        mode = cls.mode_for(buffer.pixel)
        size = (buffer.width, buffer.height)
        flat = buffer.as_flat()
        if buffer.channels == 1:
            # Single-channel rows have the same layout on both sides: Pillow maps
            # the raw bytes instead of unpacking them.
            raw = flat.astype("<u2").tobytes() if mode == "I;16" else flat.tobytes()
            return PILImage.frombuffer(mode, size, raw, "raw", mode, 0, 1)
        # Multi-channel data is unpacked into Pillow's own pixel layout.
        return PILImage.frombytes(mode, size, flat.tobytes())

    @classmethod
    def read_image(cls, img: PILImage.Image) -> SerialImageBuffer:
        pixel = cls.pixel_for(img.mode)
        width, height = img.size
        flat = np.asarray(img).reshape(-1)
        expected = width * height * pixel.channels
        if flat.size != expected:
            raise ShapeError(
                f"Pillow {img.mode} image of {width}x{height} yielded {flat.size} elements, expected {expected}"
            )
        return SerialImageBuffer(flat, width, height, pixel.channels, pixel.element_type)

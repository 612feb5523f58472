"""
Conversion layer between ``SerialImageBuffer`` and Pillow images.

Every direction validates the shape on the way in; unsupported
element-type / channel combinations raise ``UnsupportedShapeError``.
"""
from __future__ import annotations

import logging

from PIL import Image as PILImage

from serialimage.errors import UnsupportedShapeError
from serialimage.models.image_buffer import SerialImageBuffer
from serialimage.models.pixel import SerialImagePixel
from serialimage.repositories.pil_repository import PilImageRepository

logger = logging.getLogger(__name__)


def is_supported(pixel: SerialImagePixel) -> bool:
    """True if ``pixel`` has a Pillow counterpart in both directions."""
    return PilImageRepository.supports(pixel)


def try_into_external_image(buffer: SerialImageBuffer) -> PILImage.Image:
    """
    Args:
        buffer: Source pixel buffer.

    Returns:
        A new Pillow image holding a copy of the pixels.

    Raises:
        UnsupportedShapeError: if Pillow has no mode for the buffer's descriptor.
    """
    try:
        img = PilImageRepository.create_image(buffer)
    except UnsupportedShapeError:
        logger.warning(f"No Pillow mode for {buffer.pixel}")
        raise
    logger.debug(f"Converted {buffer!r} to Pillow mode {img.mode}")
    return img


def try_from_external_image(img: PILImage.Image) -> SerialImageBuffer:
    """
    Args:
        img: Source Pillow image.

    Returns:
        A new buffer holding a copy of the pixels.

    Raises:
        TypeError: if ``img`` is not a Pillow image.
        UnsupportedShapeError: if the Pillow mode is not modelled.
        ShapeError: if Pillow's pixel data does not match its declared size.
    """
    if not isinstance(img, PILImage.Image):
        raise TypeError(f"Expected a PIL.Image.Image, got {type(img).__name__}")
    try:
        buffer = PilImageRepository.read_image(img)
    except UnsupportedShapeError:
        logger.warning(f"Pillow mode {img.mode!r} has no serial image counterpart")
        raise
    logger.debug(f"Converted Pillow mode {img.mode} to {buffer!r}")
    return buffer

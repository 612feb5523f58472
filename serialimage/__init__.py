"""
serialimage: serializable in-memory raster images with metadata.

A ``DynamicSerialImage`` wraps one ``SerialImageBuffer`` (u8, u16 or f32
elements, 1-4 channels, pixel-interleaved) plus ``ImageMetaData``. It
encodes to field-tagged JSON and converts to and from Pillow images.
"""
import logging

from serialimage.config import Settings, configure_logging
from serialimage.errors import (
    BoundsError,
    ConfigError,
    ConversionError,
    ElementTypeError,
    ExportError,
    ExposureConfigError,
    SerialImageError,
    SerializationError,
    ShapeError,
    UnsupportedElementTypeError,
    UnsupportedShapeError,
)
from serialimage.models.dynamic_image import DynamicSerialImage
from serialimage.models.image_buffer import SerialImageBuffer, rescale
from serialimage.models.image_metadata import ImageMetaData
from serialimage.models.pixel import ElementType, SerialImagePixel
from serialimage.repositories.fits_repository import FitsRepository, export_to_observatory_format
from serialimage.repositories.image_repository import ImageRepository
from serialimage.services.conversion_service import (
    is_supported,
    try_from_external_image,
    try_into_external_image,
)
from serialimage.services.exposure_service import OptimumExposureConfig
from serialimage.services.image_service import ImageService

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = "3.0.0"

__all__ = [
    "BoundsError",
    "ConfigError",
    "ConversionError",
    "DynamicSerialImage",
    "ElementType",
    "ElementTypeError",
    "ExportError",
    "ExposureConfigError",
    "FitsRepository",
    "ImageMetaData",
    "ImageRepository",
    "ImageService",
    "OptimumExposureConfig",
    "SerialImageBuffer",
    "SerialImageError",
    "SerialImagePixel",
    "SerializationError",
    "Settings",
    "ShapeError",
    "UnsupportedElementTypeError",
    "UnsupportedShapeError",
    "configure_logging",
    "export_to_observatory_format",
    "is_supported",
    "rescale",
    "try_from_external_image",
    "try_into_external_image",
]

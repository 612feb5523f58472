"""
Exception hierarchy for serialimage.

Every failure is reported to the immediate caller; nothing here is retried
or downgraded to a default value.
"""
from __future__ import annotations


class SerialImageError(Exception):
    """Base class for all serialimage errors."""


class ShapeError(SerialImageError, ValueError):
    """Buffer length does not match width x height x channels, or the channel
    count is not legal for the element type."""


class BoundsError(SerialImageError, IndexError):
    """Pixel coordinate outside the declared image dimensions."""


class ElementTypeError(SerialImageError, ValueError):
    """Unknown element type, or values not representable in it."""


class ConversionError(SerialImageError):
    """Mapping to or from the external image object failed."""


class UnsupportedShapeError(ConversionError, ValueError):
    """No variant exists on the other side for this element type / channel layout."""


class SerializationError(SerialImageError, ValueError):
    """Encoded form is malformed."""


class ExportError(SerialImageError):
    """FITS export failed: destination unwritable or capability unavailable."""


class UnsupportedElementTypeError(ExportError):
    """No rescale path to the requested FITS element type."""


class ExposureConfigError(SerialImageError, ValueError):
    """Invalid optimum exposure configuration or input."""


class ConfigError(SerialImageError, ValueError):
    """Malformed environment configuration."""

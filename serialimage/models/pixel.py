from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

import numpy as np

from serialimage.errors import ElementTypeError, ShapeError


class ElementType(Enum):
    """Numeric type of a single pixel element."""
    U8 = "u8"
    U16 = "u16"
    F32 = "f32"

    @property
    def dtype(self) -> np.dtype:
        return np.dtype(_DTYPES[self])

    @property
    def element_size(self) -> int:
        """Bytes per element."""
        return self.dtype.itemsize

    @property
    def bits(self) -> int:
        return self.element_size * 8

    @property
    def is_float(self) -> bool:
        return self is ElementType.F32

    @property
    def max_value(self) -> float:
        """Full-scale value: 255, 65535, or 1.0 for normalized floats."""
        if self.is_float:
            return 1.0
        return int(np.iinfo(self.dtype).max)

    @classmethod
    def parse(cls, value: "ElementType | str") -> "ElementType":
        if isinstance(value, ElementType):
            return value
        try:
            return cls(str(value).lower())
        except ValueError as exc:
            raise ElementTypeError(f"Unknown element type: {value!r}") from exc

    @classmethod
    def from_dtype(cls, dtype) -> "ElementType":
        dtype = np.dtype(dtype)
        for element_type, name in _DTYPES.items():
            if dtype == np.dtype(name):
                return element_type
        raise ElementTypeError(f"No element type for dtype {dtype}")


_DTYPES = {
    ElementType.U8: "uint8",
    ElementType.U16: "uint16",
    ElementType.F32: "float32",
}

# F32 grayscale is not supported.
LEGAL_CHANNELS = {
    ElementType.U8: (1, 2, 3, 4),
    ElementType.U16: (1, 2, 3, 4),
    ElementType.F32: (3, 4),
}


@dataclass(frozen=True)
class SerialImagePixel:
    """
    Pixel descriptor: element type plus elements per pixel.

    Channel layouts: 1 = gray, 2 = gray + alpha, 3 = RGB, 4 = RGB + alpha.
    Construction fails with ``ShapeError`` for a channel count the element
    type does not support.
    """
    element_type: ElementType
    channels: int

    def __post_init__(self):
        object.__setattr__(self, "element_type", ElementType.parse(self.element_type))
        if isinstance(self.channels, bool) or not isinstance(self.channels, (int, np.integer)):
            raise ShapeError(f"Channel count must be an integer, got {self.channels!r}")
        object.__setattr__(self, "channels", int(self.channels))
        if self.channels not in LEGAL_CHANNELS[self.element_type]:
            raise ShapeError(
                f"{self.element_type.name} images support {LEGAL_CHANNELS[self.element_type]} "
                f"channels, got {self.channels}"
            )

    @classmethod
    def u8(cls, channels: int) -> "SerialImagePixel":
        return cls(ElementType.U8, channels)

    @classmethod
    def u16(cls, channels: int) -> "SerialImagePixel":
        return cls(ElementType.U16, channels)

    @classmethod
    def f32(cls, channels: int) -> "SerialImagePixel":
        return cls(ElementType.F32, channels)

    @property
    def element_size(self) -> int:
        return self.element_type.element_size

    @property
    def bits(self) -> int:
        return self.element_type.bits

    @property
    def has_alpha(self) -> bool:
        return self.channels in (2, 4)

    @property
    def is_grayscale(self) -> bool:
        return self.channels in (1, 2)

    def __str__(self) -> str:
        return f"{self.element_type.name}({self.channels})"

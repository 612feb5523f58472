from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Sequence, Union

import numpy as np
from PIL import Image as PILImage

from serialimage.errors import ElementTypeError, SerializationError, ShapeError
from serialimage.models.image_buffer import SerialImageBuffer
from serialimage.models.image_metadata import ImageMetaData
from serialimage.models.pixel import ElementType, LEGAL_CHANNELS, SerialImagePixel
from serialimage.services import conversion_service

_REQUIRED_KEYS = ("element_type", "width", "height", "channels", "data")


@dataclass(eq=True)
class DynamicSerialImage:
    """
    Serializable image: one pixel buffer of any supported element type plus
    its metadata. The active variant is the buffer's element type.

    Equality is structural: element type, dimensions, channel layout, every
    element value and the metadata must match.
    """
    buffer: SerialImageBuffer
    metadata: ImageMetaData = field(default_factory=ImageMetaData)

    def __post_init__(self):
        if not isinstance(self.buffer, SerialImageBuffer):
            raise TypeError(f"Expected a SerialImageBuffer, got {type(self.buffer).__name__}")
        if not isinstance(self.metadata, ImageMetaData):
            raise TypeError(f"Expected ImageMetaData, got {type(self.metadata).__name__}")

    @classmethod
    def from_buffer(cls, buffer: SerialImageBuffer, metadata: ImageMetaData | None = None) -> "DynamicSerialImage":
        return cls(buffer, metadata if metadata is not None else ImageMetaData())

    @classmethod
    def from_vec_u8(cls, width: int, height: int, data: Union[Sequence[int], np.ndarray]) -> "DynamicSerialImage":
        """Channel count is len(data) / (width * height): 1, 2, 3 or 4."""
        return cls(SerialImageBuffer.from_vec(width, height, data, ElementType.U8))

    @classmethod
    def from_vec_u16(cls, width: int, height: int, data: Union[Sequence[int], np.ndarray]) -> "DynamicSerialImage":
        """Channel count is len(data) / (width * height): 1, 2, 3 or 4."""
        return cls(SerialImageBuffer.from_vec(width, height, data, ElementType.U16))

    @classmethod
    def from_vec_f32(cls, width: int, height: int, data: Union[Sequence[float], np.ndarray]) -> "DynamicSerialImage":
        """Channel count is len(data) / (width * height): 3 or 4. Grayscale is not supported."""
        return cls(SerialImageBuffer.from_vec(width, height, data, ElementType.F32))

    # ─── Metadata ───────────────────────────────────────────────────
    def get_metadata(self) -> ImageMetaData:
        return self.metadata

    def set_metadata(self, metadata: ImageMetaData) -> None:
        if not isinstance(metadata, ImageMetaData):
            raise TypeError(f"Expected ImageMetaData, got {type(metadata).__name__}")
        self.metadata = metadata

    # ─── Variant access ─────────────────────────────────────────────
    @property
    def element_type(self) -> ElementType:
        return self.buffer.element_type

    @property
    def pixel(self) -> SerialImagePixel:
        return self.buffer.pixel

    @property
    def width(self) -> int:
        return self.buffer.width

    @property
    def height(self) -> int:
        return self.buffer.height

    def as_u8(self) -> Optional[SerialImageBuffer]:
        return self.buffer if self.element_type is ElementType.U8 else None

    def as_u16(self) -> Optional[SerialImageBuffer]:
        return self.buffer if self.element_type is ElementType.U16 else None

    def as_f32(self) -> Optional[SerialImageBuffer]:
        return self.buffer if self.element_type is ElementType.F32 else None

    def into_buffer(self, element_type: ElementType | str) -> SerialImageBuffer:
        """Return the buffer if it is of ``element_type``; no rescaling."""
        element_type = ElementType.parse(element_type)
        if self.element_type is not element_type:
            raise ElementTypeError(
                f"Could not convert {self.element_type.name} image to a {element_type.name} buffer"
            )
        return self.buffer

    def into_luma(self) -> SerialImageBuffer:
        """Grayscale U16 buffer, whatever the active variant."""
        return self.buffer.into_luma()

    def into_luma_alpha(self) -> SerialImageBuffer:
        return self.buffer.into_luma_alpha()

    def set_buffer(self, buffer: SerialImageBuffer) -> None:
        """Replace the whole pixel buffer; the variant follows the new buffer."""
        if not isinstance(buffer, SerialImageBuffer):
            raise TypeError(f"Expected a SerialImageBuffer, got {type(buffer).__name__}")
        self.buffer = buffer

    # ─── External image boundary ────────────────────────────────────
    def try_into_external_image(self) -> PILImage.Image:
        """Copy into a Pillow image. Metadata is not carried over."""
        return conversion_service.try_into_external_image(self.buffer)

    @classmethod
    def try_from_external_image(
        cls,
        img: PILImage.Image,
        metadata: ImageMetaData | None = None,
    ) -> "DynamicSerialImage":
        return cls.from_buffer(conversion_service.try_from_external_image(img), metadata)

    def save(self, path: Union[str, Path], format: str | None = None) -> None:
        """
        Save through Pillow; the image format is derived from the file
        extension unless ``format`` is given.
        """
        self.try_into_external_image().save(path, format=format)

    # ─── Encoded form ───────────────────────────────────────────────
    def to_dict(self) -> Dict[str, Any]:
        """
        Field-tagged mapping. The element type tag comes first so a decoder
        can pick the element type before validating the shape. Float
        elements are emitted as Python floats holding the exact float32 value.
        """
        return {
            "element_type": self.element_type.value,
            "width": self.width,
            "height": self.height,
            "channels": self.buffer.channels,
            "data": self.buffer.as_flat().tolist(),
            "metadata": self.metadata.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DynamicSerialImage":
        """
        Raises:
            SerializationError: if keys are missing, mistyped, or element values
                do not fit the element type.
            ShapeError: if the element count does not match the declared shape,
                or the channel count is illegal for the element type.
        """
        if not isinstance(data, dict):
            raise SerializationError(f"Encoded image must be a mapping, got {type(data).__name__}")
        missing = [key for key in _REQUIRED_KEYS if key not in data]
        if missing:
            raise SerializationError(f"Encoded image is missing {missing}")

        try:
            element_type = ElementType.parse(data["element_type"])
        except ElementTypeError as exc:
            raise SerializationError(str(exc)) from exc

        for key in ("width", "height"):
            if isinstance(data[key], bool) or not isinstance(data[key], int):
                raise SerializationError(f"{key} must be an integer, got {data[key]!r}")

        channels = data["channels"]
        if isinstance(channels, bool) or not isinstance(channels, int):
            raise SerializationError(f"channels must be an integer, got {channels!r}")
        if channels not in LEGAL_CHANNELS[element_type]:
            raise ShapeError(f"{element_type.name} images cannot have {channels} channels")

        values = data["data"]
        if not isinstance(values, list):
            raise SerializationError(f"data must be a list, got {type(values).__name__}")
        if values and not all(
            isinstance(v, (int, float)) and not isinstance(v, bool) for v in values
        ):
            raise SerializationError("data must contain only numbers")
        if element_type.is_float:
            array = np.asarray(values, dtype=np.float64)
        else:
            if not all(isinstance(v, int) for v in values):
                raise SerializationError(f"{element_type.name} data must contain only integers")
            array = np.asarray(values)

        try:
            buffer = SerialImageBuffer(array, data["width"], data["height"], channels, element_type)
        except ElementTypeError as exc:
            raise SerializationError(str(exc)) from exc

        metadata = data.get("metadata")
        return cls(buffer, ImageMetaData.from_dict(metadata) if metadata is not None else ImageMetaData())

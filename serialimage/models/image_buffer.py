from __future__ import annotations

from typing import Sequence, Tuple, Union

import numpy as np

from serialimage.errors import BoundsError, ElementTypeError, ShapeError
from serialimage.models.pixel import ElementType, SerialImagePixel

Number = Union[int, float]

# Rec. 709 red, green, blue weights
LUMA_WEIGHTS = np.array([0.2126, 0.7152, 0.0722])


def _check_dimension(name: str, value) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
        raise ShapeError(f"{name} must be an integer, got {value!r}")
    if value <= 0:
        raise ShapeError(f"{name} must be positive, got {value}")
    return int(value)


def _coerce(values: np.ndarray, element_type: ElementType) -> np.ndarray:
    """Return a private copy of ``values`` as ``element_type``, refusing lossy casts."""
    target = element_type.dtype
    if values.dtype == target:
        return values.copy()
    if values.dtype.kind not in "uif":
        raise ElementTypeError(f"Cannot store {values.dtype} values as {element_type.name}")
    if element_type.is_float:
        finite = np.abs(values[np.isfinite(values)])
        if finite.size and finite.max() > np.finfo(target).max:
            raise ElementTypeError(f"Values beyond the {element_type.name} range cannot be stored")
        return values.astype(target)
    if values.dtype.kind == "f":
        if not np.all(np.isfinite(values)) or np.any(values != np.trunc(values)):
            raise ElementTypeError(f"Non-integer values cannot be stored as {element_type.name}")
    info = np.iinfo(target)
    if values.size and (values.min() < info.min or values.max() > info.max):
        raise ElementTypeError(
            f"Values outside [{info.min}, {info.max}] cannot be stored as {element_type.name}"
        )
    return values.astype(target)


def rescale(values: np.ndarray, source: ElementType, target: ElementType) -> np.ndarray:
    """
    Full-range rescale of a flat element array between element types.

    Policy:
        u8  -> u16 : v * 257                      (0 -> 0, 255 -> 65535)
        u16 -> u8  : (v + 128) // 257             (round to nearest)
        int -> f32 : v / max                      (max = 255 or 65535)
        f32 -> int : rint(clip(v, 0, 1) * max)    (NaN -> 0, +inf -> max)

    Up-then-down returns the original values, and down-up-down equals a
    single down conversion.
    """
    if source is target:
        return values.copy()
    if source is ElementType.U8 and target is ElementType.U16:
        return values.astype(np.uint16) * np.uint16(257)
    if source is ElementType.U16 and target is ElementType.U8:
        return ((values.astype(np.uint32) + 128) // 257).astype(np.uint8)
    if target.is_float:
        return (values.astype(np.float64) / source.max_value).astype(np.float32)
    # f32 -> integer
    scaled = np.nan_to_num(values.astype(np.float64), nan=0.0, posinf=1.0, neginf=0.0)
    return np.rint(np.clip(scaled, 0.0, 1.0) * target.max_value).astype(target.dtype)


class SerialImageBuffer:
    """
    Flat, shape-validated pixel storage for one element type.

    Elements are stored row-major and pixel-interleaved: all channels of a
    pixel are contiguous before the next pixel. The buffer always owns a
    private copy of its elements.
    """

    __hash__ = None

    def __init__(
        self,
        data: Union[Sequence[Number], np.ndarray],
        width: int,
        height: int,
        channels: int,
        element_type: ElementType | str | None = None,
    ):
        width = _check_dimension("width", width)
        height = _check_dimension("height", height)
        values = np.asarray(data)
        if values.ndim != 1:
            raise ShapeError(f"Element data must be flat, got shape {values.shape}")
        if isinstance(channels, bool) or not isinstance(channels, (int, np.integer)):
            raise ShapeError(f"Channel count must be an integer, got {channels!r}")
        expected = width * height * int(channels)
        if values.size != expected:
            raise ShapeError(
                f"Expected {width}x{height}x{channels} = {expected} elements, got {values.size}"
            )
        if element_type is None:
            element_type = ElementType.from_dtype(values.dtype)
        pixel = SerialImagePixel(element_type, channels)

        self._data = _coerce(values, pixel.element_type)
        self._width = width
        self._height = height
        self._pixel = pixel

    @classmethod
    def _wrap(cls, data: np.ndarray, width: int, height: int, pixel: SerialImagePixel) -> "SerialImageBuffer":
        # data must already be a private, flat array of pixel.element_type
        obj = cls.__new__(cls)
        obj._data = data
        obj._width = width
        obj._height = height
        obj._pixel = pixel
        return obj

    # ─── Alternate constructors ─────────────────────────────────────
    @classmethod
    def from_vec(
        cls,
        width: int,
        height: int,
        data: Union[Sequence[Number], np.ndarray],
        element_type: ElementType | str | None = None,
    ) -> "SerialImageBuffer":
        """
        Build a buffer, inferring the channel count from the data length.

        Args:
            width: Image width in pixels.
            height: Image height in pixels.
            data: Flat element sequence of length width * height * channels.
            element_type: Element type; inferred from a numpy dtype when omitted.

        Raises:
            ShapeError: if the length is not a whole number of legal channels.
        """
        width = _check_dimension("width", width)
        height = _check_dimension("height", height)
        values = np.asarray(data)
        pixels = width * height
        if values.ndim != 1 or values.size % pixels:
            raise ShapeError(f"{values.size} elements do not fill a {width}x{height} image")
        return cls(values, width, height, values.size // pixels, element_type)

    @classmethod
    def from_array(cls, array: np.ndarray, element_type: ElementType | str | None = None) -> "SerialImageBuffer":
        """Build a buffer from an (H, W) or (H, W, C) array."""
        array = np.asarray(array)
        if array.ndim == 2:
            channels = 1
        elif array.ndim == 3:
            channels = array.shape[2]
        else:
            raise ShapeError(f"Expected an (H, W) or (H, W, C) array, got shape {array.shape}")
        height, width = array.shape[:2]
        return cls(array.reshape(-1), width, height, channels, element_type)

    @classmethod
    def new(cls, width: int, height: int, pixel: SerialImagePixel) -> "SerialImageBuffer":
        """Zero-filled buffer, to be filled with ``put_pixel``."""
        width = _check_dimension("width", width)
        height = _check_dimension("height", height)
        data = np.zeros(width * height * pixel.channels, dtype=pixel.element_type.dtype)
        return cls._wrap(data, width, height, pixel)

    # ─── Shape ──────────────────────────────────────────────────────
    @property
    def width(self) -> int:
        return self._width

    @property
    def height(self) -> int:
        return self._height

    @property
    def channels(self) -> int:
        return self._pixel.channels

    @property
    def element_type(self) -> ElementType:
        return self._pixel.element_type

    @property
    def pixel(self) -> SerialImagePixel:
        return self._pixel

    @property
    def is_color(self) -> bool:
        return not self._pixel.is_grayscale

    def __len__(self) -> int:
        return self._data.size

    # ─── Element access ─────────────────────────────────────────────
    def as_flat(self) -> np.ndarray:
        """Read-only view of the element sequence (no copy)."""
        view = self._data.view()
        view.flags.writeable = False
        return view

    def to_array(self) -> np.ndarray:
        """Copy of the elements shaped (H, W) for one channel, else (H, W, C)."""
        if self.channels == 1:
            return self._data.reshape(self._height, self._width).copy()
        return self._data.reshape(self._height, self._width, self.channels).copy()

    def _offset(self, x: int, y: int) -> int:
        if isinstance(x, bool) or isinstance(y, bool) or not isinstance(x, (int, np.integer)) \
                or not isinstance(y, (int, np.integer)):
            raise BoundsError(f"Pixel coordinates must be integers, got ({x!r}, {y!r})")
        if not (0 <= x < self._width and 0 <= y < self._height):
            raise BoundsError(f"Pixel ({x}, {y}) outside {self._width}x{self._height} image")
        return (int(y) * self._width + int(x)) * self.channels

    def get_pixel(self, x: int, y: int) -> Tuple[Number, ...]:
        """Return the channel values of pixel (x, y)."""
        start = self._offset(x, y)
        return tuple(self._data[start:start + self.channels].tolist())

    def put_pixel(self, x: int, y: int, values: Sequence[Number]) -> None:
        start = self._offset(x, y)
        values = np.asarray(values).reshape(-1)
        if values.size != self.channels:
            raise ShapeError(f"Expected {self.channels} channel values, got {values.size}")
        self._data[start:start + self.channels] = _coerce(values, self.element_type)

    # ─── Conversion ─────────────────────────────────────────────────
    def convert_element_type(self, target: ElementType | str) -> "SerialImageBuffer":
        """
        Return a new buffer rescaled to ``target`` (see ``rescale`` for the policy).

        Raises:
            ShapeError: if the channel count is not legal for ``target``
                (e.g. grayscale to F32).
        """
        target = ElementType.parse(target)
        pixel = SerialImagePixel(target, self.channels)
        data = rescale(self._data, self.element_type, target)
        return self._wrap(data, self._width, self._height, pixel)

    def into_luma(self) -> "SerialImageBuffer":
        """
        Single-channel U16 copy of the image. Color pixels are weighted with
        the Rec. 709 luma coefficients; alpha is dropped.
        """
        return self._luma(alpha=False)

    def into_luma_alpha(self) -> "SerialImageBuffer":
        """
        Two-channel U16 copy (luma, alpha). Images without alpha get a
        fully opaque alpha channel.
        """
        return self._luma(alpha=True)

    def _luma(self, alpha: bool) -> "SerialImageBuffer":
        data = rescale(self._data, self.element_type, ElementType.U16)
        pixels = data.reshape(-1, self.channels)
        if self.is_color:
            luma = np.rint(pixels[:, :3].astype(np.float64) @ LUMA_WEIGHTS)
            luma = np.clip(luma, 0, 65535).astype(np.uint16)
        else:
            luma = pixels[:, 0].copy()
        if not alpha:
            return self._wrap(luma, self._width, self._height, SerialImagePixel.u16(1))
        if self._pixel.has_alpha:
            opacity = pixels[:, -1]
        else:
            opacity = np.full(luma.size, 65535, dtype=np.uint16)
        data = np.column_stack((luma, opacity)).reshape(-1)
        return self._wrap(data, self._width, self._height, SerialImagePixel.u16(2))

    def copy(self) -> "SerialImageBuffer":
        return self._wrap(self._data.copy(), self._width, self._height, self._pixel)

    def __eq__(self, other) -> bool:
        if not isinstance(other, SerialImageBuffer):
            return NotImplemented
        if (self._pixel, self._width, self._height) != (other._pixel, other._width, other._height):
            return False
        if self.element_type.is_float:
            return bool(np.array_equal(self._data, other._data, equal_nan=True))
        return bool(np.array_equal(self._data, other._data))

    def __repr__(self) -> str:
        return f"SerialImageBuffer({self._pixel}, {self._width}x{self._height})"

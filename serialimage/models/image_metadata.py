from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field, fields
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

import numpy as np

from serialimage.errors import SerializationError

logger = logging.getLogger(__name__)

_INT_FIELDS = ("bin_x", "bin_y", "img_top", "img_left", "gain", "offset", "min_gain", "max_gain")
_FLOAT_FIELDS = ("temperature", "exposure_time")


def _as_int(name: str, value) -> int:
    if isinstance(value, (bool, np.bool_)) or not isinstance(value, (int, np.integer)):
        raise SerializationError(f"Metadata field {name!r} must be an integer, got {value!r}")
    return int(value)


def _as_float(name: str, value) -> float:
    if isinstance(value, (bool, np.bool_)) or not isinstance(value, (int, float, np.integer, np.floating)):
        raise SerializationError(f"Metadata field {name!r} must be a number, got {value!r}")
    value = float(value)
    # finite only
    if not math.isfinite(value):
        raise SerializationError(f"Metadata field {name!r} must be finite, got {value!r}")
    return value


def _as_pairs(value) -> List[Tuple[str, str]]:
    if not isinstance(value, (list, tuple)):
        raise SerializationError(f"extended_metadata must be a list of [key, value] pairs, got {value!r}")
    pairs = []
    for entry in value:
        if not isinstance(entry, (list, tuple)) or len(entry) != 2:
            raise SerializationError(f"extended_metadata entries must be [key, value] pairs, got {entry!r}")
        pairs.append((str(entry[0]), str(entry[1])))
    return pairs


@dataclass
class ImageMetaData:
    """
    Descriptive data attached to an image. Every field is optional; an
    absent field stays absent through encoding and decoding.

    Fields:
        bin_x, bin_y: Binning in X / Y.
        img_top, img_left: Image origin (pixels, binned coordinates).
        temperature: Camera temperature (C).
        exposure_time: Exposure time (seconds).
        timestamp: Capture time.
        camera_name: Name of the camera.
        gain, offset: Raw gain and offset.
        min_gain, max_gain: Raw gain limits.
    """
    bin_x: Optional[int] = None
    bin_y: Optional[int] = None
    img_top: Optional[int] = None
    img_left: Optional[int] = None
    temperature: Optional[float] = None
    exposure_time: Optional[float] = None
    timestamp: Optional[datetime] = None
    camera_name: Optional[str] = None
    gain: Optional[int] = None
    offset: Optional[int] = None
    min_gain: Optional[int] = None
    max_gain: Optional[int] = None
    extended_metadata: List[Tuple[str, str]] = field(default_factory=list, repr=False)

    def __post_init__(self):
        """
        Normalize to JSON-native types (numpy scalars become int / float) so
        every instance encodes and decodes back equal.

        Raises:
            SerializationError: if a field holds a value of the wrong type.
        """
        for name in _INT_FIELDS:
            value = getattr(self, name)
            if value is not None:
                setattr(self, name, _as_int(name, value))
        for name in _FLOAT_FIELDS:
            value = getattr(self, name)
            if value is not None:
                setattr(self, name, _as_float(name, value))
        if self.camera_name is not None and not isinstance(self.camera_name, str):
            raise SerializationError(f"Metadata field 'camera_name' must be a string, got {self.camera_name!r}")
        if self.timestamp is not None and not isinstance(self.timestamp, datetime):
            raise SerializationError(f"Metadata field 'timestamp' must be a datetime, got {self.timestamp!r}")
        self.extended_metadata = _as_pairs(self.extended_metadata)

    def add_extended_attrib(self, key: str, val: str) -> None:
        self.extended_metadata.append((str(key), str(val)))

    def get_extended_data(self) -> List[Tuple[str, str]]:
        return list(self.extended_metadata)

    # ─── Encoded form ───────────────────────────────────────────────
    def to_dict(self) -> Dict[str, Any]:
        """Field-tagged mapping; absent fields are omitted."""
        out: Dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if f.name == "extended_metadata":
                if value:
                    out[f.name] = [[k, v] for k, v in value]
            elif value is None:
                continue
            elif f.name == "timestamp":
                out[f.name] = value.isoformat()
            else:
                out[f.name] = value
        return out

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ImageMetaData":
        if not isinstance(data, dict):
            raise SerializationError(f"Metadata must be a mapping, got {type(data).__name__}")
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            logger.debug(f"Ignoring unknown metadata fields: {unknown}")

        kwargs: Dict[str, Any] = {
            name: data[name]
            for name in _INT_FIELDS + _FLOAT_FIELDS + ("camera_name",)
            if data.get(name) is not None
        }

        timestamp = data.get("timestamp")
        if timestamp is not None:
            try:
                kwargs["timestamp"] = datetime.fromisoformat(timestamp)
            except (TypeError, ValueError) as exc:
                raise SerializationError(f"Bad metadata timestamp: {timestamp!r}") from exc

        kwargs["extended_metadata"] = data.get("extended_metadata") or []
        return cls(**kwargs)

    def __str__(self) -> str:
        def show(value, unit=""):
            return "n/a" if value is None else f"{value}{unit}"

        lines = [
            f"ImageMetaData [{show(self.timestamp)}]:",
            f"\tCamera name: {show(self.camera_name)}",
            f"\tImage Bin: {show(self.bin_x)} x {show(self.bin_y)}",
            f"\tImage Origin: {show(self.img_left)} x {show(self.img_top)}",
            f"\tExposure: {show(self.exposure_time, ' s')}",
            f"\tGain: {show(self.gain)}, Offset: {show(self.offset)}",
            f"\tTemperature: {show(self.temperature, ' C')}",
        ]
        if self.extended_metadata:
            lines.append("\tExtended Metadata:")
            lines.extend(f"\t\t{k}: {v}" for k, v in self.extended_metadata)
        return "\n".join(lines)

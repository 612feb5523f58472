from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional, Union

from serialimage.errors import SerializationError
from serialimage.models.dynamic_image import DynamicSerialImage

logger = logging.getLogger(__name__)


class ImageRepository:
    """
    JSON text and file I/O for DynamicSerialImage.

    ``json`` writes floats with the shortest repr that round-trips, so a
    float32 element widened to a Python float decodes back bit-exactly.
    """

    @staticmethod
    def dumps(image: DynamicSerialImage, indent: Optional[int] = None) -> str:
        return json.dumps(image.to_dict(), indent=indent)

    @staticmethod
    def loads(text: Union[str, bytes]) -> DynamicSerialImage:
        try:
            payload = json.loads(text)
        except json.JSONDecodeError as exc:
            raise SerializationError(f"Invalid JSON: {exc}") from exc
        return DynamicSerialImage.from_dict(payload)

    @classmethod
    def save(cls, image: DynamicSerialImage, path: Union[str, Path], indent: Optional[int] = None) -> Path:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8") as f:
            f.write(cls.dumps(image, indent=indent))
        logger.info(f"Saved {image.pixel} {image.width}x{image.height} image to {path}")
        return path

    @classmethod
    def load(cls, path: Union[str, Path]) -> DynamicSerialImage:
        path = Path(path)
        if not path.is_file():
            raise FileNotFoundError(f"Serialized image not found: {path}")
        with path.open("r", encoding="utf-8") as f:
            image = cls.loads(f.read())
        logger.info(f"Loaded {image.pixel} {image.width}x{image.height} image from {path}")
        return image

"""
FITS export for DynamicSerialImage (optional, needs the ``fits`` extra).

Single-channel images are written as (H, W) arrays, multi-channel images
as planar (C, H, W) cubes. Metadata fields become header cards.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Union

import numpy as np

from serialimage.errors import ElementTypeError, ExportError, ShapeError, UnsupportedElementTypeError
from serialimage.models.dynamic_image import DynamicSerialImage
from serialimage.models.image_metadata import ImageMetaData
from serialimage.models.pixel import ElementType, SerialImagePixel

logger = logging.getLogger(__name__)

# uint16 is stored as int16 with BZERO = 32768 by astropy.
_BITPIX = {
    ElementType.U8: 8,
    ElementType.U16: 16,
    ElementType.F32: -32,
}

_CHANNEL_NAMES = {1: "L", 2: "LA", 3: "RGB", 4: "RGBA"}


def _fits():
    try:
        from astropy.io import fits
    except ImportError as exc:
        raise ExportError("FITS export requires astropy (pip install serialimage[fits])") from exc
    return fits


class FitsRepository:
    """Write-only FITS sink. Never mutates the image it reads."""

    @staticmethod
    def build_header(metadata: ImageMetaData, pixel: SerialImagePixel, progname: Optional[str] = None):
        fits = _fits()
        ts = metadata.timestamp
        cards = [
            ("PROGRAM", progname, "Program that generated the image"),
            ("CAMERA", metadata.camera_name, "Camera name"),
            ("DATE-OBS", ts.isoformat() if ts is not None else None, "Image timestamp"),
            ("EXPTIME", metadata.exposure_time, "Exposure time (s)"),
            ("CCD-TEMP", metadata.temperature, "Camera temperature (C)"),
            ("XBINNING", metadata.bin_x, "Binning in X"),
            ("YBINNING", metadata.bin_y, "Binning in Y"),
            ("XOFFSET", metadata.img_left, "Image left (binned pixels)"),
            ("YOFFSET", metadata.img_top, "Image top (binned pixels)"),
            ("GAIN", metadata.gain, "Gain (raw)"),
            ("OFFSET", metadata.offset, "Offset (raw)"),
            ("GAINMIN", metadata.min_gain, "Minimum gain (raw)"),
            ("GAINMAX", metadata.max_gain, "Maximum gain (raw)"),
            ("CHANNELS", _CHANNEL_NAMES[pixel.channels], "Channel layout of the data planes"),
        ]
        header = fits.Header()
        try:
            for key, value, comment in cards:
                if value is not None:
                    header[key] = (value, comment)
            for key, value in metadata.extended_metadata:
                header[f"HIERARCH {key}"] = value
        except ValueError as exc:
            raise ExportError(f"Metadata cannot be written as FITS header cards: {exc}") from exc
        return header

    @classmethod
    def export(
        cls,
        image: DynamicSerialImage,
        destination: Union[str, Path],
        progname: Optional[str] = None,
        compress: bool = False,
        overwrite: bool = False,
        element_type: ElementType | str | None = None,
    ) -> Path:
        """
        Write ``image`` to a FITS file.

        Args:
            image: Image to export.
            destination: Output file path.
            progname: Value of the PROGRAM card.
            compress: Write a tile-compressed image extension.
            overwrite: Replace an existing file.
            element_type: Rescale to this element type before writing.

        Returns:
            The path written.

        Raises:
            UnsupportedElementTypeError: if there is no rescale path to ``element_type``.
            ExportError: if astropy is missing or the destination cannot be written.
        """
        fits = _fits()
        buffer = image.buffer
        if element_type is not None:
            try:
                target = ElementType.parse(element_type)
                buffer = buffer.convert_element_type(target)
            except (ElementTypeError, ShapeError) as exc:
                raise UnsupportedElementTypeError(
                    f"No rescale path from {image.pixel} to FITS element type {element_type!r}"
                ) from exc
        if buffer.element_type not in _BITPIX:
            raise UnsupportedElementTypeError(f"FITS has no mapping for {buffer.element_type.name}")

        data = buffer.to_array()
        if buffer.channels > 1:
            data = np.ascontiguousarray(np.transpose(data, (2, 0, 1)))

        header = cls.build_header(image.metadata, buffer.pixel, progname)
        if compress:
            hdul = fits.HDUList([fits.PrimaryHDU(), fits.CompImageHDU(data=data, header=header)])
        else:
            hdul = fits.HDUList([fits.PrimaryHDU(data=data, header=header)])

        destination = Path(destination)
        try:
            hdul.writeto(destination, overwrite=overwrite)
        except OSError as exc:
            logger.warning(f"FITS export to {destination} failed: {exc}")
            raise ExportError(f"Could not write FITS file {destination}: {exc}") from exc
        logger.info(f"Wrote {buffer.pixel} FITS image (BITPIX {_BITPIX[buffer.element_type]}) to {destination}")
        return destination

    @classmethod
    def savefits(
        cls,
        image: DynamicSerialImage,
        dir_prefix: Union[str, Path],
        file_prefix: str,
        progname: Optional[str] = None,
        compress: bool = False,
        overwrite: bool = False,
    ) -> Path:
        """
        Save to ``{dir_prefix}/{file_prefix}_{timestamp}.fits``, the timestamp
        coming from the metadata or, when absent, the current UTC time.
        """
        directory = Path(dir_prefix)
        if not directory.is_dir():
            raise ExportError(f"FITS output directory does not exist: {directory}")
        stamp = image.metadata.timestamp or datetime.now(timezone.utc)
        name = f"{file_prefix}_{stamp.strftime('%Y%m%d_%H%M%S_%f')}.fits"
        return cls.export(image, directory / name, progname=progname, compress=compress, overwrite=overwrite)


def export_to_observatory_format(image: DynamicSerialImage, destination: Union[str, Path]) -> Path:
    """Write ``image`` to ``destination`` as FITS with default options."""
    return FitsRepository.export(image, destination)

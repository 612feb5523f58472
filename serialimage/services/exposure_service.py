from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import timedelta
from typing import Sequence, Tuple, Union

import numpy as np

from serialimage.errors import ExposureConfigError
from serialimage.models.image_buffer import SerialImageBuffer
from serialimage.models.pixel import ElementType

logger = logging.getLogger(__name__)

_U16_MAX = 65535.0
_MIN_FRACTION = 1.6e-5  # one count out of 65535
_FLOOR = 1e-5


@dataclass(frozen=True)
class OptimumExposureConfig:
    """
    Configuration used to find the optimum exposure.

    Fields:
        percentile_pix: Percentile of the pixel values compared to the target, in fraction.
        pixel_tgt: Target pixel value, in fraction of full scale.
        pixel_tol: Tolerance on the target pixel value, in fraction of full scale.
        pixel_exclusion: Number of brightest pixels to ignore.
        min_exposure: Minimum allowed exposure.
        max_exposure: Maximum allowed exposure.
        max_bin: Maximum allowed binning.
    """
    percentile_pix: float
    pixel_tgt: float
    pixel_tol: float
    pixel_exclusion: int
    min_exposure: timedelta
    max_exposure: timedelta
    max_bin: int

    def __post_init__(self):
        if self.min_exposure >= self.max_exposure:
            raise ExposureConfigError("Minimum allowed exposure must be less than maximum allowed exposure")

    def _validate(self, pixel_count: int) -> None:
        if not _MIN_FRACTION <= self.pixel_tgt <= 1:
            raise ExposureConfigError("Target pixel value must be between 1.6e-5 and 1")
        if not _MIN_FRACTION <= self.pixel_tol <= 1:
            raise ExposureConfigError("Pixel uncertainty must be between 1.6e-5 and 1")
        if not 0 <= self.percentile_pix <= 1:
            raise ExposureConfigError("Percentile must be between 0 and 1")
        if self.pixel_exclusion < 0 or self.pixel_exclusion >= pixel_count:
            raise ExposureConfigError("Pixel exclusion must be less than the number of pixels")

    def find_optimum_exposure(
        self,
        img: Union[Sequence[int], np.ndarray, SerialImageBuffer],
        exposure: timedelta,
        binning: int,
    ) -> Tuple[timedelta, int]:
        """
        Find the exposure and binning that bring the chosen percentile pixel to
        the target value. Simple linear scaling, no hysteresis.

        Args:
            img: 16-bit luminance values, or a single-channel U16 buffer.
            exposure: Exposure used to take ``img``.
            binning: Binning used to take ``img``.

        Returns:
            (exposure, binning) to use for the next image.
        """
        if isinstance(img, SerialImageBuffer):
            if img.pixel.element_type is not ElementType.U16 or img.channels != 1:
                raise ExposureConfigError(f"Expected a single-channel U16 buffer, got {img.pixel}")
            values = np.sort(img.as_flat())
        else:
            values = np.sort(np.asarray(img, dtype=np.uint16).reshape(-1))
        if values.size == 0:
            raise ExposureConfigError("Image has no pixels")
        self._validate(values.size)

        max_bin = max(self.max_bin, 1)
        change_bin = max_bin >= 2
        pixel_tgt = self.pixel_tgt * _U16_MAX
        pixel_tol = self.pixel_tol * _U16_MAX

        if self.percentile_pix > 0.99999:
            coord = values.size - 1
        else:
            coord = int(math.floor(self.percentile_pix * (values.size - 1)))
        if coord < self.pixel_exclusion:
            coord = values.size - 1 - self.pixel_exclusion
        val = float(values[coord])

        if abs(pixel_tgt - val) < pixel_tol:
            logger.debug(f"Pixel value {val:.0f} within {pixel_tol:.0f} of target {pixel_tgt:.0f}")
            return exposure, binning

        val = max(val, _FLOOR)
        # microsecond resolution
        exposure_s = (exposure // timedelta(microseconds=1)) * 1e-6
        target = timedelta(seconds=abs(pixel_tgt * exposure_s / val))

        if change_bin:
            if target < self.max_exposure:
                while target < self.max_exposure and binning > 2:
                    binning //= 2
                    target *= 4
            else:
                while target > self.max_exposure and binning * 2 <= max_bin:
                    binning *= 2
                    target /= 4

        target = min(max(target, self.min_exposure), self.max_exposure)
        binning = min(max(binning, 1), max_bin)
        logger.debug(f"Pixel value {val:.0f} -> exposure {target.total_seconds():.6f} s, bin {binning}")
        return target, binning

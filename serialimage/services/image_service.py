from __future__ import annotations

import logging
from datetime import timedelta
from pathlib import Path
from typing import Optional, Tuple, Union

from PIL import Image as PILImage

from serialimage.config import Settings
from serialimage.models.dynamic_image import DynamicSerialImage
from serialimage.models.image_metadata import ImageMetaData
from serialimage.repositories.fits_repository import FitsRepository
from serialimage.repositories.image_repository import ImageRepository
from serialimage.services.exposure_service import OptimumExposureConfig

logger = logging.getLogger(__name__)


class ImageService:
    """
    Business-level entry point. Wires the repositories to the settings read
    from the environment; explicit arguments always win over settings.
    """

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or Settings.from_env()
        self.image_repository = ImageRepository()
        self.fits_repository = FitsRepository()
        logger.debug(f"ImageService initialized with {self.settings}")

    # ─── Structured encoding ───────────────────────────────────────
    def encode(self, image: DynamicSerialImage) -> str:
        return self.image_repository.dumps(image, indent=self.settings.json_indent)

    def decode(self, text: Union[str, bytes]) -> DynamicSerialImage:
        return self.image_repository.loads(text)

    def save_json(self, image: DynamicSerialImage, path: Union[str, Path]) -> Path:
        return self.image_repository.save(image, path, indent=self.settings.json_indent)

    def load_json(self, path: Union[str, Path]) -> DynamicSerialImage:
        return self.image_repository.load(path)

    # ─── External image boundary ───────────────────────────────────
    def to_external(self, image: DynamicSerialImage) -> PILImage.Image:
        return image.try_into_external_image()

    def from_external(self, img: PILImage.Image, metadata: ImageMetaData | None = None) -> DynamicSerialImage:
        return DynamicSerialImage.try_from_external_image(img, metadata)

    def save_image(self, image: DynamicSerialImage, path: Union[str, Path]) -> None:
        image.save(path)
        logger.info(f"Saved {image.pixel} image to {path}")

    # ─── FITS ───────────────────────────────────────────────────────
    def export_fits(
        self,
        image: DynamicSerialImage,
        destination: Union[str, Path],
        progname: Optional[str] = None,
        compress: Optional[bool] = None,
        overwrite: Optional[bool] = None,
    ) -> Path:
        return self.fits_repository.export(
            image,
            destination,
            progname=progname if progname is not None else self.settings.fits_progname,
            compress=self.settings.fits_compress if compress is None else compress,
            overwrite=self.settings.fits_overwrite if overwrite is None else overwrite,
        )

    def savefits(
        self,
        image: DynamicSerialImage,
        dir_prefix: Union[str, Path],
        file_prefix: str,
        progname: Optional[str] = None,
        compress: Optional[bool] = None,
        overwrite: Optional[bool] = None,
    ) -> Path:
        return self.fits_repository.savefits(
            image,
            dir_prefix,
            file_prefix,
            progname=progname if progname is not None else self.settings.fits_progname,
            compress=self.settings.fits_compress if compress is None else compress,
            overwrite=self.settings.fits_overwrite if overwrite is None else overwrite,
        )

    # ─── Exposure ───────────────────────────────────────────────────
    def find_optimum_exposure(
        self,
        config: OptimumExposureConfig,
        image: DynamicSerialImage,
        exposure: timedelta,
        binning: int,
    ) -> Tuple[timedelta, int]:
        """Run the exposure search on the luma of ``image``."""
        return config.find_optimum_exposure(image.into_luma(), exposure, binning)

"""Image preprocessing step of the extraction pipeline.

Wraps global binarization and records before/after quality
measurements for diagnostics.
"""

from dataclasses import dataclass

import cv2
import numpy as np

from ktp_ocr.utils.config import PreprocessingConfig
from ktp_ocr.utils.logger import get_logger

from .binarize import (
    DEFAULT_THRESHOLD,
    HIGH_LEVEL,
    LOW_LEVEL,
    binarize_global,
    to_gray,
)

logger = get_logger(__name__)


@dataclass
class QualityMetrics:
    """Before/after image quality measurements."""

    sharpness_before: float
    sharpness_after: float
    contrast_before: float
    contrast_after: float


def calculate_sharpness(image: np.ndarray) -> float:
    """Calculate image sharpness as the variance of the Laplacian.

    Args:
        image: Image with at least three channels.

    Returns:
        Sharpness score (higher means sharper).
    """
    return float(cv2.Laplacian(to_gray(image), cv2.CV_64F).var())


def calculate_contrast(image: np.ndarray) -> float:
    """Calculate contrast as the standard deviation of gray intensities."""
    return float(to_gray(image).std())


class ImagePreprocessor:
    """Converts a color photograph into a black-and-white image for OCR.

    Stateless apart from its settings, so one instance can serve any
    number of concurrent callers.

    Args:
        threshold: Global intensity threshold on a 0-255 scale.
        low: Level for foreground (text) pixels.
        high: Level for background pixels.
    """

    def __init__(
        self,
        threshold: int = DEFAULT_THRESHOLD,
        low: int = LOW_LEVEL,
        high: int = HIGH_LEVEL,
    ) -> None:
        self.threshold = threshold
        self.low = low
        self.high = high

    @classmethod
    def from_config(cls, config: PreprocessingConfig) -> "ImagePreprocessor":
        return cls(
            threshold=config.threshold, low=config.low_level, high=config.high_level
        )

    def preprocess(self, image: np.ndarray) -> np.ndarray:
        """Binarize an image.

        Args:
            image: Input image of shape ``(height, width, channels)``.

        Returns:
            Binarized copy of the image; the input is left untouched.

        Raises:
            InvalidImageError: If the image is empty or has fewer than
                three channels.
        """
        return binarize_global(
            image, threshold=self.threshold, low=self.low, high=self.high
        )

    def process(self, image: np.ndarray) -> tuple[np.ndarray, QualityMetrics]:
        """Binarize an image and measure quality before and after.

        Args:
            image: Input image of shape ``(height, width, channels)``.

        Returns:
            Tuple of (binary_image, quality_metrics).
        """
        binary = self.preprocess(image)
        metrics = QualityMetrics(
            sharpness_before=calculate_sharpness(image),
            sharpness_after=calculate_sharpness(binary),
            contrast_before=calculate_contrast(image),
            contrast_after=calculate_contrast(binary),
        )

        logger.info(
            "Preprocessing complete: sharpness %.1f->%.1f, contrast %.1f->%.1f",
            metrics.sharpness_before,
            metrics.sharpness_after,
            metrics.contrast_before,
            metrics.contrast_after,
        )
        return binary, metrics

"""Global-threshold binarization for ID card photographs.

The gray level of a pixel is the plain mean of its three color
channels, and a single fixed threshold splits the image into
foreground and background. No adaptive or local thresholding is done:
the result is fast and fully predictable, at the cost of accuracy on
unevenly lit photographs.
"""

import numpy as np

from ktp_ocr.errors import InvalidImageError
from ktp_ocr.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_THRESHOLD = 120
LOW_LEVEL = 0
HIGH_LEVEL = 255


def validate_image(image: np.ndarray) -> None:
    """Check that an image can be binarized.

    Args:
        image: Candidate image of shape ``(height, width, channels)``.

    Raises:
        InvalidImageError: If the image is not a 3-D array, is empty, or
            has fewer than three channels.
    """
    if not isinstance(image, np.ndarray) or image.ndim != 3:
        raise InvalidImageError(
            "Expected an image array of shape (height, width, channels)"
        )
    height, width, channels = image.shape
    if height == 0 or width == 0:
        raise InvalidImageError(f"Image has no pixels ({width}x{height})")
    if channels < 3:
        raise InvalidImageError(
            f"Image needs at least 3 color channels, got {channels}"
        )


def channel_sum(image: np.ndarray) -> np.ndarray:
    """Sum the three color channels of every pixel.

    Comparing the sum against ``3 * threshold`` is the exact integer
    form of comparing the channel mean against ``threshold``. Integer
    images are summed as ``int64``, anything else as ``float64``.
    """
    colors = image[..., :3]
    # floats must not be truncated before the comparison
    dtype = np.int64 if np.issubdtype(colors.dtype, np.integer) else np.float64
    return colors.astype(dtype).sum(axis=2)


def to_gray(image: np.ndarray) -> np.ndarray:
    """Return the unweighted channel mean as a float image."""
    return channel_sum(image) / 3.0


def binarize_global(
    image: np.ndarray,
    threshold: int = DEFAULT_THRESHOLD,
    low: int = LOW_LEVEL,
    high: int = HIGH_LEVEL,
) -> np.ndarray:
    """Binarize an image with a fixed global threshold.

    Pixels whose mean intensity is strictly greater than ``threshold``
    become ``high`` on all three color channels; all others become
    ``low``. A fourth (alpha) channel is copied unchanged.

    Args:
        image: Input image with at least three channels.
        threshold: Intensity threshold on a 0-255 scale.
        low: Foreground level.
        high: Background level.

    Returns:
        A new array with the same shape and dtype as ``image``.

    Raises:
        InvalidImageError: If the image fails :func:`validate_image`.
    """
    validate_image(image)

    bright = channel_sum(image) > 3 * threshold
    levels = np.where(bright, high, low).astype(image.dtype)

    result = image.copy()
    result[..., :3] = levels[..., np.newaxis]
    logger.debug(
        "Applied global binarization (threshold=%d, %.1f%% background)",
        threshold,
        100.0 * float(bright.mean()),
    )
    return result

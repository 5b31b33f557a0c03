"""Image export for the tracer's RGBA output buffer.

The buffer written by ``Tracer.update`` is already gamma corrected, so
export is a reshape and a Pillow save.

Example:
    >>> import numpy as np
    >>> from lenstrace.preview.export import save_png
    >>> pixels = np.zeros(320 * 240 * 4, dtype=np.uint8)
    >>> # tracer.update(pixels, 1.0)
    >>> save_png(pixels, 320, 240, "render.png")
"""

from __future__ import annotations

import logging

import numpy as np
import numpy.typing as npt
from PIL import Image as PILImage

logger = logging.getLogger(__name__)


def rgba_buffer_to_image(
    pixels: npt.NDArray[np.uint8],
    width: int,
    height: int,
) -> npt.NDArray[np.uint8]:
    """Reshape a flat RGBA buffer into an image array.

    Args:
        pixels: uint8 array of length width * height * 4, row-major with
            the top row first.
        width: Image width in pixels.
        height: Image height in pixels.

    Returns:
        A (height, width, 4) uint8 view of the buffer.

    Raises:
        ValueError: If the buffer size does not match the dimensions.
    """
    if pixels.size != width * height * 4:
        raise ValueError(
            f"Buffer of {pixels.size} bytes does not hold a {width}x{height} RGBA image"
        )
    return pixels.reshape(height, width, 4)


def save_png(
    pixels: npt.NDArray[np.uint8],
    width: int,
    height: int,
    filepath: str,
) -> None:
    """Save an RGBA output buffer as a PNG file.

    Args:
        pixels: uint8 RGBA buffer as written by Tracer.update().
        width: Image width in pixels.
        height: Image height in pixels.
        filepath: Output file path (should end in .png).
    """
    image = rgba_buffer_to_image(pixels, width, height)
    PILImage.fromarray(np.ascontiguousarray(image)).save(filepath)
    logger.info("Saved %dx%d image to %s", width, height, filepath)


def compute_rmse(
    image_a: npt.NDArray[np.floating[npt.NBitBase]],
    image_b: npt.NDArray[np.floating[npt.NBitBase]],
) -> float:
    """Compute root mean squared error between two images.

    Args:
        image_a: First image array.
        image_b: Second image array (must have same shape as image_a).

    Returns:
        RMSE value (lower is more similar).

    Raises:
        ValueError: If image shapes don't match.
    """
    if image_a.shape != image_b.shape:
        raise ValueError(f"Image shapes must match: {image_a.shape} vs {image_b.shape}")

    diff = image_a.astype(np.float64) - image_b.astype(np.float64)
    return float(np.sqrt(np.mean(diff**2)))

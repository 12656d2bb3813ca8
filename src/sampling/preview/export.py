"""Image export of chi-square histograms.

The observed histogram and the integrated density of a ``ChiSquareTest``
are written side by side into one PNG, both normalized by the same maximum,
so that a mismatch between sampler and density is visible at a glance.

Supported formats:
    - PNG (8-bit grayscale via Pillow)

Example:
    >>> from src.sampling.stats.chi2 import warp_chi2_test
    >>> from src.sampling.preview.export import save_histograms_png
    >>>
    >>> test = warp_chi2_test(WarpKind.COSINE_HEMISPHERE)
    >>> test.run()
    >>> save_histograms_png(test, "cosine_hemisphere.png")
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np
import numpy.typing as npt
from PIL import Image as PILImage

if TYPE_CHECKING:
    from src.sampling.stats.chi2 import ChiSquareTest

# Width in pixels of the gap between the two tables
SEPARATOR_WIDTH = 4


def histogram_to_uint8(
    table: npt.NDArray[np.floating[npt.NBitBase]],
    *,
    scale: float | None = None,
    gamma: float = 2.2,
) -> npt.NDArray[np.uint8]:
    """Convert a table of non-negative counts to an 8-bit image.

    Args:
        table: 2D array of counts or expected frequencies.
        scale: Value mapped to white. Defaults to the table's maximum.
        gamma: Gamma applied after normalization, which brightens sparse
            regions.

    Returns:
        Array of the same shape with dtype uint8. The first table row ends
        up at the bottom of the image.
    """
    values = np.asarray(table, dtype=np.float64)
    if scale is None:
        scale = float(values.max()) if values.size else 0.0
    if scale > 0.0:
        normalized = np.clip(values / scale, 0.0, 1.0)
    else:
        normalized = np.zeros_like(values)
    normalized = np.power(normalized, 1.0 / gamma)
    return np.flipud((normalized * 255).round().astype(np.uint8))


def save_histograms_png(
    test: ChiSquareTest,
    filepath: str,
    *,
    gamma: float = 2.2,
    upscale: int = 4,
) -> None:
    """Save the observed and expected tables of a test as one PNG.

    Args:
        test: A chi-square test that has been run (or at least tabulated).
        filepath: Output file path (should end in .png).
        gamma: Gamma applied to both tables.
        upscale: Integer magnification of each histogram cell.

    Raises:
        ValueError: If the test has not tabulated its histogram and density.
    """
    if test.histogram is None or test.pdf is None:
        raise ValueError("The test must be run before its histograms can be saved")

    scale = float(max(test.histogram.max(), test.pdf.max()))
    observed = histogram_to_uint8(test.histogram, scale=scale, gamma=gamma)
    expected = histogram_to_uint8(test.pdf, scale=scale, gamma=gamma)

    separator = np.full((observed.shape[0], SEPARATOR_WIDTH), 128, dtype=np.uint8)
    image = np.concatenate([observed, separator, expected], axis=1)
    if upscale > 1:
        image = np.kron(image, np.ones((upscale, upscale), dtype=np.uint8))

    pil_image = PILImage.fromarray(image)
    pil_image.save(filepath)


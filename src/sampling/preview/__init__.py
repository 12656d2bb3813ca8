"""Preview module for diagnostic output.

Components:
    export: PNG export of chi-square histograms

Example:
    >>> from src.sampling.preview import save_histograms_png
    >>> save_histograms_png(test, "histograms.png")
"""

from src.sampling.preview.export import (
    histogram_to_uint8,
    save_histograms_png,
)

__all__ = [
    "histogram_to_uint8",
    "save_histograms_png",
]

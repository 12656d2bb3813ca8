"""Analytic warps.

Every warp maps uniform variates on [0, 1)^n onto a target domain, comes
with an exact inverse and reports the density of the mapping.

Components:
    planar: Taichi functions for disk, triangle, tent, Gaussian, linear and
        bilinear warps
    spherical: Taichi functions for sphere, hemisphere, cone, Beckmann and
        von Mises-Fisher warps
    adapters: Warp registry (WarpKind, WarpInfo, WARPS)
    api: Batched Python-scope versions of every warp

Example:
    >>> import numpy as np
    >>> from src.sampling.warp import WarpKind, sample_warp
    >>> dirs = sample_warp(WarpKind.UNIFORM_CONE, np.random.rand(256, 2), 0.5)
"""

from src.sampling.warp.adapters import (
    WARPS,
    WarpArgument,
    WarpInfo,
    WarpKind,
    get_warp_info,
)
from src.sampling.warp.api import invert_warp, sample_warp, warp_pdf

__all__ = [
    "WarpKind",
    "WarpArgument",
    "WarpInfo",
    "WARPS",
    "get_warp_info",
    "sample_warp",
    "invert_warp",
    "warp_pdf",
]

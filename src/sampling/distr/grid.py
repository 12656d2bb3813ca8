"""Tabulated density data shared by the 2D distributions.

A ``Grid`` holds a non-negative array of shape ``(*param_shape, H, W)``.
The last two axes are the rows (y) and columns (x) of one 2D density
*slice*; the leading axes, if any, are extra parameter axes (time,
wavelength, roughness, ...) along which the distributions interpolate.
Each parameter axis has a strictly increasing array of node positions.

Example:
    >>> import numpy as np
    >>> grid = Grid(np.ones((4, 8)))
    >>> grid.width, grid.height, grid.slice_count
    (8, 4, 1)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

import numpy as np
import numpy.typing as npt

from src.sampling.core.errors import ConstructionError

Reconstruction = Literal["constant", "bilinear"]
Bounds = tuple[tuple[float, float], tuple[float, float]]

RECONSTRUCTIONS: tuple[str, ...] = ("constant", "bilinear")

UNIT_BOUNDS: Bounds = ((0.0, 0.0), (1.0, 1.0))


@dataclass(frozen=True)
class Grid:
    """Immutable 2D density table with optional parameter axes.

    Attributes:
        values: Array of shape ``(*param_shape, H, W)``; ``values[..., y, x]``.
        param_values: One strictly increasing 1D array per parameter axis.
        bounds: ``((x_min, y_min), (x_max, y_max))`` of the domain the
            unit square is mapped onto.

    Raises:
        ConstructionError: If the values are negative or non-finite, a slice
            has no positive entry, or the parameter axes are inconsistent.
    """

    values: np.ndarray
    param_values: tuple[np.ndarray, ...] = field(default=())
    bounds: Bounds = UNIT_BOUNDS

    def __post_init__(self) -> None:
        values = np.array(self.values, dtype=np.float64)
        axes = tuple(np.array(axis, dtype=np.float64).ravel() for axis in self.param_values)
        (x_min, y_min), (x_max, y_max) = self.bounds
        bounds = ((float(x_min), float(y_min)), (float(x_max), float(y_max)))

        if values.ndim < 2:
            raise ConstructionError(f"Grid values need at least 2 dimensions, got shape {values.shape}")
        if values.ndim - 2 != len(axes):
            raise ConstructionError(
                f"Grid values of shape {values.shape} need {values.ndim - 2} parameter "
                f"axes, got {len(axes)}"
            )
        if values.shape[-1] < 1 or values.shape[-2] < 1:
            raise ConstructionError(f"Grid resolution must be at least 1x1, got shape {values.shape}")
        if not np.all(np.isfinite(values)):
            raise ConstructionError("Grid values must be finite")
        if np.any(values < 0.0):
            raise ConstructionError("Grid values must be non-negative")

        for k, axis in enumerate(axes):
            if axis.size != values.shape[k]:
                raise ConstructionError(
                    f"Parameter axis {k} has {axis.size} nodes but the grid has "
                    f"{values.shape[k]} slices along it"
                )
            if not np.all(np.isfinite(axis)) or np.any(np.diff(axis) <= 0.0):
                raise ConstructionError(f"Parameter axis {k} must be finite and strictly increasing")

        if not (x_max > x_min and y_max > y_min):
            raise ConstructionError(f"Grid bounds must have positive extent, got {bounds}")

        slice_mass = values.reshape(-1, values.shape[-2], values.shape[-1]).sum(axis=(1, 2))
        if np.any(slice_mass <= 0.0):
            raise ConstructionError("Every grid slice must contain at least one positive value")

        values.setflags(write=False)
        for axis in axes:
            axis.setflags(write=False)
        object.__setattr__(self, "values", values)
        object.__setattr__(self, "param_values", axes)
        object.__setattr__(self, "bounds", bounds)

    @property
    def width(self) -> int:
        return self.values.shape[-1]

    @property
    def height(self) -> int:
        return self.values.shape[-2]

    @property
    def param_shape(self) -> tuple[int, ...]:
        return self.values.shape[:-2]

    @property
    def param_count(self) -> int:
        return len(self.param_values)

    @property
    def slice_count(self) -> int:
        return int(np.prod(self.param_shape, dtype=np.int64))

    @property
    def area(self) -> float:
        (x_min, y_min), (x_max, y_max) = self.bounds
        return (x_max - x_min) * (y_max - y_min)

    def slices(self) -> np.ndarray:
        """Return the values as an array of shape (slice_count, H, W)."""
        return self.values.reshape(self.slice_count, self.height, self.width)

    def check_resolution(self, reconstruction: str) -> None:
        """Check that the grid can be reconstructed in the given mode.

        Bilinear reconstruction treats entries as vertices and needs at
        least 2x2 of them.

        Raises:
            ValueError: If ``reconstruction`` is unknown.
            ConstructionError: If the grid is too small.
        """
        if reconstruction not in RECONSTRUCTIONS:
            raise ValueError(f"Unknown reconstruction: {reconstruction}. Use one of {RECONSTRUCTIONS}")
        if reconstruction == "bilinear" and (self.width < 2 or self.height < 2):
            raise ConstructionError(
                f"Bilinear reconstruction needs at least 2x2 vertices, got {self.width}x{self.height}"
            )

    def with_values(self, values: npt.ArrayLike) -> Grid:
        """Return a grid with new values and the same axes and bounds.

        Raises:
            ConstructionError: If the new values have a different shape or
                are invalid.
        """
        array = np.asarray(values, dtype=np.float64)
        if array.shape != self.values.shape:
            raise ConstructionError(f"Expected values of shape {self.values.shape}, got {array.shape}")
        return Grid(array, self.param_values, self.bounds)


def normalized_slices(grid: Grid, reconstruction: str) -> np.ndarray:
    """Scale every slice so that its reconstruction integrates to one.

    Constant reconstruction integrates to the mean cell value, bilinear
    reconstruction to the mean of the per-cell corner averages. After
    scaling, a slice's values are densities over the unit square, so
    blending slices linearly keeps the result normalized.
    """
    slices = grid.slices()
    if reconstruction == "bilinear":
        cells = slices[:, :-1, :-1] + slices[:, :-1, 1:] + slices[:, 1:, :-1] + slices[:, 1:, 1:]
        integral = cells.mean(axis=(1, 2)) * 0.25
    else:
        integral = slices.mean(axis=(1, 2))
    if np.any(integral <= 0.0):
        raise ConstructionError("Every grid slice must have a positive integral")
    return slices / integral[:, None, None]

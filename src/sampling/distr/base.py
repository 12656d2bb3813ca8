"""Common Python-scope machinery of the tabulated 2D distributions.

Subclasses implement three Taichi functions on unit-square coordinates,

    _sample_unit(u, idx, w) -> (point, pdf)
    _invert_unit(p, idx, w) -> (u, pdf)
    _eval_unit(p, idx, w) -> pdf

where ``idx``/``w`` are the blended slices chosen by the parameter
interpolator, plus ``_load(slices)`` which copies normalized slice data into
their fields. This class maps between the unit square and the grid bounds,
and provides the batched kernels and the NumPy-facing API.
"""

import logging
from typing import Any

import numpy as np
import numpy.typing as npt
import taichi as ti

from src.sampling.core.batch import as_batch, unbatch
from src.sampling.distr.grid import Grid, Reconstruction, normalized_slices
from src.sampling.distr.params import ParamInterpolator

logger = logging.getLogger(__name__)


@ti.data_oriented
class Distribution2D:
    """Base class of ``Hierarchical2D`` and ``Marginal2D``.

    Args:
        grid: Density table.
        reconstruction: "constant" treats entries as cells with constant
            density, "bilinear" treats them as vertices of a bilinear
            interpolant.

    Raises:
        ConstructionError: If the grid is too small for the reconstruction.
        ValueError: If the reconstruction mode is unknown.
    """

    def __init__(self, grid: Grid, reconstruction: Reconstruction = "constant"):
        grid.check_resolution(reconstruction)
        self.grid = grid
        self.reconstruction = reconstruction
        self._bilinear = reconstruction == "bilinear"
        self._params = ParamInterpolator(grid)

        # Cells of the reconstructed density (vertices span one cell fewer)
        self._cells_x = grid.width - 1 if self._bilinear else grid.width
        self._cells_y = grid.height - 1 if self._bilinear else grid.height

        (x_min, y_min), (x_max, y_max) = grid.bounds
        self._origin = (x_min, y_min)
        self._extent = (x_max - x_min, y_max - y_min)
        self._inv_area = 1.0 / grid.area

        self._allocate()
        self._load(normalized_slices(grid, reconstruction))
        logger.debug(
            "Built %s: %dx%d %s grid, %d slice(s), %d parameter axis/axes",
            type(self).__name__,
            grid.width,
            grid.height,
            reconstruction,
            grid.slice_count,
            grid.param_count,
        )

    @property
    def param_count(self) -> int:
        return self._params.count

    def _allocate(self) -> None:
        raise NotImplementedError

    def _load(self, slices: np.ndarray) -> None:
        raise NotImplementedError

    def update(self, values: npt.ArrayLike) -> None:
        """Rebuild the distribution from new grid values of the same shape.

        The caller must make sure no kernel is reading the distribution
        while it is being updated.

        Raises:
            ConstructionError: If the new values are invalid or have a
                different shape.
        """
        grid = self.grid.with_values(values)
        self._load(normalized_slices(grid, self.reconstruction))
        self.grid = grid
        logger.debug("Updated %s", type(self).__name__)

    # -------------------------------------------------------------------------
    # Taichi scope
    # -------------------------------------------------------------------------

    @ti.func
    def _to_bounds(self, p):
        return ti.math.vec2(
            self._origin[0] + p.x * self._extent[0],
            self._origin[1] + p.y * self._extent[1],
        )

    @ti.func
    def _to_unit(self, x):
        return ti.math.vec2(
            (x.x - self._origin[0]) / self._extent[0],
            (x.y - self._origin[1]) / self._extent[1],
        )

    @ti.func
    def sample_func(self, u, param):
        """Warp a uniform sample into the grid bounds.

        ``u[0]`` selects the row (y), ``u[1]`` the column (x).

        Args:
            u: Uniform sample on [0, 1)^2.
            param: Vector of parameter values (``max(K, 1)`` entries).

        Returns:
            Tuple of (point, pdf) with the density per unit area of the
            bounds.
        """
        idx, w = self._params.weights(param)
        p, pdf = self._sample_unit(u, idx, w)
        return self._to_bounds(p), pdf * self._inv_area

    @ti.func
    def invert_func(self, x, param):
        """Map a point in the grid bounds back to its uniform sample.

        Returns:
            Tuple of (sample, pdf).
        """
        idx, w = self._params.weights(param)
        p = self._to_unit(x)
        u, pdf = self._invert_unit(ti.math.clamp(p, 0.0, 1.0), idx, w)
        if not _inside_unit(p):
            pdf = 0.0
        return u, pdf * self._inv_area

    @ti.func
    def eval_func(self, x, param):
        """Density per unit area at a point, zero outside the bounds."""
        idx, w = self._params.weights(param)
        p = self._to_unit(x)
        pdf = 0.0
        if _inside_unit(p):
            pdf = self._eval_unit(p, idx, w) * self._inv_area
        return pdf

    @ti.kernel
    def _sample_kernel(
        self,
        u: ti.types.ndarray(),
        param: ti.types.ndarray(),
        points: ti.types.ndarray(),
        pdf: ti.types.ndarray(),
    ):
        for i in range(u.shape[0]):
            p = ti.Vector.zero(float, self._params.slots)
            for k in ti.static(range(self._params.slots)):
                p[k] = param[i, k]
            x, value = self.sample_func(ti.math.vec2(u[i, 0], u[i, 1]), p)
            points[i, 0] = x.x
            points[i, 1] = x.y
            pdf[i, 0] = value

    @ti.kernel
    def _invert_kernel(
        self,
        x: ti.types.ndarray(),
        param: ti.types.ndarray(),
        u: ti.types.ndarray(),
        pdf: ti.types.ndarray(),
    ):
        for i in range(x.shape[0]):
            p = ti.Vector.zero(float, self._params.slots)
            for k in ti.static(range(self._params.slots)):
                p[k] = param[i, k]
            sample, value = self.invert_func(ti.math.vec2(x[i, 0], x[i, 1]), p)
            u[i, 0] = sample[0]
            u[i, 1] = sample[1]
            pdf[i, 0] = value

    @ti.kernel
    def _eval_kernel(self, x: ti.types.ndarray(), param: ti.types.ndarray(), pdf: ti.types.ndarray()):
        for i in range(x.shape[0]):
            p = ti.Vector.zero(float, self._params.slots)
            for k in ti.static(range(self._params.slots)):
                p[k] = param[i, k]
            pdf[i, 0] = self.eval_func(ti.math.vec2(x[i, 0], x[i, 1]), p)

    # -------------------------------------------------------------------------
    # Python scope
    # -------------------------------------------------------------------------

    def sample(self, u: npt.ArrayLike, param: Any = None) -> tuple[Any, Any]:
        """Draw samples from the distribution.

        Args:
            u: A single uniform sample of shape (2,) or a batch (N, 2).
            param: Parameter values, required when the grid has parameter
                axes: shape (K,) for all samples or (N, K).

        Returns:
            Tuple of (points, pdf): points of shape (N, 2) in the grid
            bounds and densities of shape (N,), or a point and a float for
            a single sample.
        """
        batch, single = as_batch(u, 2, "u")
        params = self._params.prepare(param, batch.shape[0])
        points = np.zeros_like(batch)
        pdf = np.zeros((batch.shape[0], 1), dtype=batch.dtype)
        if batch.shape[0] > 0:
            self._sample_kernel(batch, params, points, pdf)
        return unbatch(points, single), unbatch(pdf, single)

    def invert(self, x: npt.ArrayLike, param: Any = None) -> tuple[Any, Any]:
        """Map points back to the uniform samples that produce them.

        Returns:
            Tuple of (u, pdf) in the same layout as ``sample``.
        """
        batch, single = as_batch(x, 2, "x")
        params = self._params.prepare(param, batch.shape[0])
        u = np.zeros_like(batch)
        pdf = np.zeros((batch.shape[0], 1), dtype=batch.dtype)
        if batch.shape[0] > 0:
            self._invert_kernel(batch, params, u, pdf)
        return unbatch(u, single), unbatch(pdf, single)

    def eval(self, x: npt.ArrayLike, param: Any = None) -> Any:
        """Evaluate the density at points in the grid bounds."""
        batch, single = as_batch(x, 2, "x")
        params = self._params.prepare(param, batch.shape[0])
        pdf = np.zeros((batch.shape[0], 1), dtype=batch.dtype)
        if batch.shape[0] > 0:
            self._eval_kernel(batch, params, pdf)
        return unbatch(pdf, single)


@ti.func
def _inside_unit(p):
    return p.x >= 0.0 and p.x <= 1.0 and p.y >= 0.0 and p.y <= 1.0

"""Marginal/conditional sampling of tabulated 2D densities.

The classic two-step inversion method: a row coordinate is drawn from the
marginal distribution over rows, then a column from the conditional
distribution within that row. Both steps invert a cumulative table by
binary search followed by an exact in-interval inversion (linear for
constant cells, quadratic for bilinear ones).

Cumulative tables are stored unnormalized. Every slice is normalized to the
same integral before the tables are built, so tables of neighbouring
parameter slices can be blended entry by entry.
"""

import numpy as np
import taichi as ti

from src.sampling.core.config import float_dtype
from src.sampling.core.math import lerp, safe_div, vec2
from src.sampling.distr.base import Distribution2D
from src.sampling.distr.grid import Grid, Reconstruction
from src.sampling.warp.planar import interval_to_linear, linear_to_interval


def conditional_cdfs(slices: np.ndarray, bilinear: bool) -> np.ndarray:
    """Per-row cumulative sums along x.

    Constant mode sums cell values (W + 1 entries per row), bilinear mode
    integrates the piecewise-linear row function between vertices (W
    entries per row).
    """
    s, h, w = slices.shape
    if bilinear:
        segments = 0.5 * (slices[:, :, :-1] + slices[:, :, 1:])
    else:
        segments = slices
    cdf = np.zeros((s, h, segments.shape[2] + 1), dtype=np.float64)
    np.cumsum(segments, axis=2, out=cdf[:, :, 1:])
    return cdf


def marginal_cdf(row_integrals: np.ndarray, bilinear: bool) -> np.ndarray:
    """Cumulative sums of the per-row integrals along y."""
    if bilinear:
        segments = 0.5 * (row_integrals[:, :-1] + row_integrals[:, 1:])
    else:
        segments = row_integrals
    cdf = np.zeros((row_integrals.shape[0], segments.shape[1] + 1), dtype=np.float64)
    np.cumsum(segments, axis=1, out=cdf[:, 1:])
    return cdf


@ti.data_oriented
class Marginal2D(Distribution2D):
    """Importance sampling of a 2D grid by marginal and conditional CDFs.

    Args:
        grid: Density table.
        reconstruction: "constant" or "bilinear".

    Raises:
        ConstructionError: If the grid is degenerate.
    """

    def __init__(self, grid: Grid, reconstruction: Reconstruction = "constant"):
        super().__init__(grid, reconstruction)

    def _allocate(self) -> None:
        slices = self.grid.slice_count
        w = self.grid.width
        h = self.grid.height
        self._data_width = w
        # Entries per conditional row and in the marginal table
        self._cond_size = w if self._bilinear else w + 1
        self._marg_size = h if self._bilinear else h + 1

        self._data = ti.field(dtype=float, shape=(slices, w * h))
        self._cond_cdf = ti.field(dtype=float, shape=(slices, h * self._cond_size))
        self._marg_cdf = ti.field(dtype=float, shape=(slices, self._marg_size))

    def _load(self, slices: np.ndarray) -> None:
        n = slices.shape[0]
        cond = conditional_cdfs(slices, self._bilinear)
        marg = marginal_cdf(cond[:, :, -1], self._bilinear)
        self._data.from_numpy(slices.reshape(n, -1).astype(float_dtype()))
        self._cond_cdf.from_numpy(cond.reshape(n, -1).astype(float_dtype()))
        self._marg_cdf.from_numpy(marg.astype(float_dtype()))

    # -------------------------------------------------------------------------
    # Table lookups
    # -------------------------------------------------------------------------

    @ti.func
    def _value(self, x, y, idx, wt):
        return self._params.blend(self._data, y * self._data_width + x, idx, wt)

    @ti.func
    def _marg(self, i, idx, wt):
        return self._params.blend(self._marg_cdf, i, idx, wt)

    @ti.func
    def _row_cdf(self, row, i, idx, wt):
        return self._params.blend(self._cond_cdf, row * self._cond_size + i, idx, wt)

    @ti.func
    def _cond(self, row, fy, i, idx, wt):
        """Conditional CDF entry ``i`` at row ``row`` (+ ``fy`` when bilinear)."""
        value = self._row_cdf(row, i, idx, wt)
        if ti.static(self._bilinear):
            value = lerp(fy, value, self._row_cdf(row + 1, i, idx, wt))
        return value

    @ti.func
    def _find_marginal(self, value, total, idx, wt):
        """Last interval whose start is <= ``value``, skipping empty tails."""
        lo = 0
        hi = self._marg_size - 2
        while lo < hi:
            mid = (lo + hi + 1) // 2
            c = self._marg(mid, idx, wt)
            if c <= value and c < total:
                lo = mid
            else:
                hi = mid - 1
        return lo

    @ti.func
    def _find_conditional(self, row, fy, value, total, idx, wt):
        lo = 0
        hi = self._cond_size - 2
        while lo < hi:
            mid = (lo + hi + 1) // 2
            c = self._cond(row, fy, mid, idx, wt)
            if c <= value and c < total:
                lo = mid
            else:
                hi = mid - 1
        return lo

    # -------------------------------------------------------------------------
    # Sampling
    # -------------------------------------------------------------------------

    @ti.func
    def _sample_unit(self, u, idx, wt):
        total = self._marg(self._marg_size - 1, idx, wt)

        # Row from the marginal
        uy = ti.math.clamp(u[0], 0.0, 1.0) * total
        row = self._find_marginal(uy, total, idx, wt)
        m0 = self._marg(row, idx, wt)
        m1 = self._marg(row + 1, idx, wt)
        fy = ti.math.clamp(safe_div(uy - m0, m1 - m0), 0.0, 1.0)
        if ti.static(self._bilinear):
            r0 = self._row_cdf(row, self._cond_size - 1, idx, wt)
            r1 = self._row_cdf(row + 1, self._cond_size - 1, idx, wt)
            fy = interval_to_linear(fy, r0, r1)

        # Column from the conditional of that row
        row_total = self._cond(row, fy, self._cond_size - 1, idx, wt)
        ux = ti.math.clamp(u[1], 0.0, 1.0) * row_total
        col = self._find_conditional(row, fy, ux, row_total, idx, wt)
        k0 = self._cond(row, fy, col, idx, wt)
        k1 = self._cond(row, fy, col + 1, idx, wt)
        fx = ti.math.clamp(safe_div(ux - k0, k1 - k0), 0.0, 1.0)
        if ti.static(self._bilinear):
            c0 = lerp(fy, self._value(col, row, idx, wt), self._value(col, row + 1, idx, wt))
            c1 = lerp(fy, self._value(col + 1, row, idx, wt), self._value(col + 1, row + 1, idx, wt))
            fx = interval_to_linear(fx, c0, c1)

        p = vec2((col + fx) / self._cells_x, (row + fy) / self._cells_y)
        return p, self._density(col, row, vec2(fx, fy), total, idx, wt)

    @ti.func
    def _density(self, col, row, f, total, idx, wt):
        """Density over the unit square at offset ``f`` of cell (col, row)."""
        value = 0.0
        if ti.static(self._bilinear):
            v00 = self._value(col, row, idx, wt)
            v10 = self._value(col + 1, row, idx, wt)
            v01 = self._value(col, row + 1, idx, wt)
            v11 = self._value(col + 1, row + 1, idx, wt)
            value = lerp(f.y, lerp(f.x, v00, v10), lerp(f.x, v01, v11))
        else:
            value = self._value(col, row, idx, wt)
        return safe_div(value * (self._cells_x * self._cells_y), total)

    @ti.func
    def _cell(self, p):
        col = ti.min(ti.cast(p.x * self._cells_x, ti.i32), self._cells_x - 1)
        row = ti.min(ti.cast(p.y * self._cells_y, ti.i32), self._cells_y - 1)
        f = vec2(p.x * self._cells_x - col, p.y * self._cells_y - row)
        return col, row, ti.math.clamp(f, 0.0, 1.0)

    @ti.func
    def _invert_unit(self, p, idx, wt):
        total = self._marg(self._marg_size - 1, idx, wt)
        col, row, f = self._cell(p)

        m0 = self._marg(row, idx, wt)
        m1 = self._marg(row + 1, idx, wt)
        gy = f.y
        if ti.static(self._bilinear):
            r0 = self._row_cdf(row, self._cond_size - 1, idx, wt)
            r1 = self._row_cdf(row + 1, self._cond_size - 1, idx, wt)
            gy = linear_to_interval(f.y, r0, r1)
        uy = safe_div(m0 + gy * (m1 - m0), total)

        row_total = self._cond(row, f.y, self._cond_size - 1, idx, wt)
        k0 = self._cond(row, f.y, col, idx, wt)
        k1 = self._cond(row, f.y, col + 1, idx, wt)
        gx = f.x
        if ti.static(self._bilinear):
            c0 = lerp(f.y, self._value(col, row, idx, wt), self._value(col, row + 1, idx, wt))
            c1 = lerp(f.y, self._value(col + 1, row, idx, wt), self._value(col + 1, row + 1, idx, wt))
            gx = linear_to_interval(f.x, c0, c1)
        ux = safe_div(k0 + gx * (k1 - k0), row_total)

        return vec2(uy, ux), self._density(col, row, f, total, idx, wt)

    @ti.func
    def _eval_unit(self, p, idx, wt):
        total = self._marg(self._marg_size - 1, idx, wt)
        col, row, f = self._cell(p)
        return self._density(col, row, f, total, idx, wt)

"""Chi-square goodness-of-fit testing of sampling routines.

The test draws many samples, bins them into a histogram over a 1D, planar
or spherical domain, and compares the histogram against the expected bin
frequencies obtained by integrating the claimed density over every bin.
Bins with a small expected frequency are pooled before the chi-square
statistic is computed, and the p-value is compared against a
significance level that is Sidak-corrected for the number of tests run.

Example:
    >>> from src.sampling.stats.chi2 import warp_chi2_test
    >>> from src.sampling.warp import WarpKind
    >>> test = warp_chi2_test(WarpKind.UNIFORM_CONE, cos_cutoff=0.3)
    >>> assert test.run(), "\\n".join(test.messages)
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from enum import IntEnum
from typing import Any

import numpy as np
from scipy import stats

from src.sampling.warp.adapters import WarpKind, get_warp_info
from src.sampling.warp.api import sample_warp, warp_pdf

logger = logging.getLogger(__name__)

# Relative inset of the quadrature nodes from the bin edges
_EDGE_MARGIN = 1e-7

# Convergence tolerance of the per-bin quadrature refinement
_QUAD_RTOL = 1e-4
_QUAD_ATOL = 1e-12

# Upper bound on density evaluations per vectorized call
_MAX_NODES = 1 << 20


class SamplingType(IntEnum):
    """How the uniform input points are generated."""

    INDEPENDENT = 0
    GRID = 1
    STRATIFIED = 2


class LineDomain:
    """Interval domain. Histogram coordinates are (x, 0)."""

    unbounded = False

    def __init__(self, bounds: tuple[float, float] = (-1.0, 1.0)):
        self._bounds = (float(bounds[0]), float(bounds[1]))

    def bounding_box(self) -> tuple[np.ndarray, np.ndarray]:
        return np.array([self._bounds[0], -0.5]), np.array([self._bounds[1], 0.5])

    def aspect(self) -> float | None:
        return None

    def map_forward(self, p: np.ndarray) -> np.ndarray:
        x = np.asarray(p, dtype=np.float64).reshape(-1)
        return np.stack([x, np.zeros_like(x)], axis=1)

    def map_backward(self, p: np.ndarray) -> np.ndarray:
        return np.asarray(p, dtype=np.float64)[:, 0]

    def jacobian(self, p: np.ndarray) -> np.ndarray:
        return np.ones(len(p))


class PlanarDomain:
    """Rectangular domain. Histogram coordinates are the points themselves.

    Args:
        bounds: (min, max) corners of the histogram.
        unbounded: The density has support outside ``bounds``. Samples that
            land there are counted in a tail cell rather than rejected.
    """

    def __init__(
        self,
        bounds: tuple[tuple[float, float], tuple[float, float]] = ((-1.0, -1.0), (1.0, 1.0)),
        unbounded: bool = False,
    ):
        self.unbounded = unbounded
        self._min = np.array(bounds[0], dtype=np.float64)
        self._max = np.array(bounds[1], dtype=np.float64)

    def bounding_box(self) -> tuple[np.ndarray, np.ndarray]:
        return self._min, self._max

    def aspect(self) -> float | None:
        extent = self._max - self._min
        return float(extent[1] / extent[0])

    def map_forward(self, p: np.ndarray) -> np.ndarray:
        return np.asarray(p, dtype=np.float64)

    def map_backward(self, p: np.ndarray) -> np.ndarray:
        return np.asarray(p, dtype=np.float64)

    def jacobian(self, p: np.ndarray) -> np.ndarray:
        return np.ones(len(p))


class SphericalDomain:
    """Unit sphere, binned over (phi, cos(theta)).

    This parameterization is area preserving, so the Jacobian between
    solid angle and histogram coordinates is one.
    """

    unbounded = False

    def bounding_box(self) -> tuple[np.ndarray, np.ndarray]:
        return np.array([-np.pi, -1.0]), np.array([np.pi, 1.0])

    def aspect(self) -> float | None:
        return 0.5

    def map_forward(self, p: np.ndarray) -> np.ndarray:
        v = np.asarray(p, dtype=np.float64)
        return np.stack([np.arctan2(v[:, 1], v[:, 0]), v[:, 2]], axis=1)

    def map_backward(self, p: np.ndarray) -> np.ndarray:
        q = np.asarray(p, dtype=np.float64)
        sin_theta = np.sqrt(np.maximum(1.0 - q[:, 1] ** 2, 0.0))
        return np.stack([np.cos(q[:, 0]) * sin_theta, np.sin(q[:, 0]) * sin_theta, q[:, 1]], axis=1)

    def jacobian(self, p: np.ndarray) -> np.ndarray:
        return np.ones(len(p))


Domain = LineDomain | PlanarDomain | SphericalDomain


def _simpson_weights(intervals: int) -> np.ndarray:
    """Composite Simpson weights on [0, 1] for an even number of intervals."""
    weights = np.ones(intervals + 1)
    weights[1:-1:2] = 4.0
    weights[2:-1:2] = 2.0
    return weights / (3.0 * intervals)


class ChiSquareTest:
    """Pearson's chi-square test of a sampling routine against its density.

    Args:
        domain: Output domain of the sampling routine.
        sample_func: Maps uniform samples of shape (N, sample_dim) to
            points of the domain.
        pdf_func: Evaluates the claimed density at points of the domain.
        sample_dim: Dimension of the uniform input samples.
        sample_count: Number of samples to draw.
        res: Histogram resolution along the first axis. The second follows
            from the domain's aspect ratio.
        ires: Initial number of Simpson intervals per bin and axis (made even).
        max_ires: Largest number of intervals per bin and axis that the
            adaptive refinement may reach.
        sampling_type: How the uniform input points are generated.
        seed: Seed of the random number generator.
        min_expected_frequency: Cells expected to receive fewer samples are
            pooled.

    Attributes:
        messages: Explanatory text collected during the test.
        histogram: Observed bin counts, shape (res_y, res_x).
        pdf: Expected bin counts, shape (res_y, res_x).
        p_value: p-value of the last run.
        tail_count: Samples outside the bounding box of an unbounded domain.
    """

    def __init__(
        self,
        domain: Domain,
        sample_func: Callable[[np.ndarray], Any],
        pdf_func: Callable[[np.ndarray], Any],
        sample_dim: int = 2,
        sample_count: int = 1_000_000,
        res: int = 101,
        ires: int = 4,
        max_ires: int = 64,
        sampling_type: SamplingType = SamplingType.INDEPENDENT,
        seed: int = 0,
        min_expected_frequency: float = 5.0,
    ):
        if sample_dim not in (1, 2):
            raise ValueError(f"sample_dim must be 1 or 2, got {sample_dim}")
        if res < 1 or ires < 1:
            raise ValueError("res and ires must be positive")

        self.domain = domain
        self.sample_func = sample_func
        self.pdf_func = pdf_func
        self.sample_dim = sample_dim
        self.sample_count = sample_count
        self.sampling_type = SamplingType(sampling_type)
        self.seed = seed
        self.min_expected_frequency = min_expected_frequency
        self.ires = ires + ires % 2
        self.max_ires = max(max_ires, self.ires)

        aspect = domain.aspect()
        if aspect is None:
            self.res = (res, 1)
        else:
            self.res = (res, max(int(round(res * aspect)), 1))

        self.bounds = domain.bounding_box()
        self.messages: list[str] = []
        self.histogram: np.ndarray | None = None
        self.pdf: np.ndarray | None = None
        self.p_value: float | None = None
        self.tail_count = 0
        self.fail = False
        self._non_finite = False
        self._negative = False

    def _log(self, message: str) -> None:
        self.messages.append(message)

    def _generate_samples(self) -> np.ndarray:
        rng = np.random.default_rng(self.seed)
        if self.sampling_type == SamplingType.INDEPENDENT:
            return rng.random((self.sample_count, self.sample_dim))

        per_axis = max(int(round(self.sample_count ** (1.0 / self.sample_dim))), 1)
        axes = [np.arange(per_axis, dtype=np.float64)] * self.sample_dim
        grid = np.stack(np.meshgrid(*axes, indexing="ij"), axis=-1).reshape(-1, self.sample_dim)
        if self.sampling_type == SamplingType.GRID:
            offset = 0.5
        else:
            offset = rng.random(grid.shape)
        self.sample_count = grid.shape[0]
        return (grid + offset) / per_axis

    def tabulate_histogram(self) -> np.ndarray:
        """Draw samples and bin them.

        Samples with non-finite coordinates, or outside the bounding box of
        a bounded domain, are counted and mark the test as failed. On an
        unbounded domain, finite samples outside the box land in a single
        tail cell instead.
        """
        samples = self._generate_samples()
        points = np.asarray(self.sample_func(samples), dtype=np.float64)
        coords = self.domain.map_forward(points)

        lo, hi = self.bounds
        t = (coords - lo) / (hi - lo)
        eps = 1e-9
        finite = np.all(np.isfinite(t), axis=1)
        valid = finite & np.all((t >= -eps) & (t <= 1.0 + eps), axis=1)
        if self.domain.unbounded:
            self.tail_count = int(np.count_nonzero(finite & ~valid))
            invalid = int(np.count_nonzero(~finite))
        else:
            self.tail_count = 0
            invalid = int(np.count_nonzero(~valid))
        if invalid > 0:
            self._log(f"Encountered {invalid} sample(s) outside of the domain")
            self.fail = True

        res = np.array(self.res)
        cell = np.clip(np.floor(t[valid] * res).astype(np.int64), 0, res - 1)
        flat = cell[:, 1] * self.res[0] + cell[:, 0]
        counts = np.bincount(flat, minlength=self.res[0] * self.res[1])
        self.histogram = counts.reshape(self.res[1], self.res[0]).astype(np.float64)
        return self.histogram

    def _integrate_bins(self, bins: np.ndarray, ires: int) -> np.ndarray:
        """Integrate the density over the given flat bin indices.

        Uses composite Simpson quadrature with ``ires`` intervals per axis.
        The line domain has a single node row at its center line.
        """
        lo, hi = self.bounds
        cell = (hi - lo) / np.array(self.res)

        # Nodes stay strictly inside the bin so that a density jumping on a
        # bin edge is integrated from the correct side
        nodes = np.linspace(_EDGE_MARGIN, 1.0 - _EDGE_MARGIN, ires + 1)
        wx = _simpson_weights(ires)
        if isinstance(self.domain, LineDomain):
            ny_nodes = np.array([0.5])
            wy = np.ones(1)
            y_scale = 1.0
        else:
            ny_nodes = nodes
            wy = wx
            y_scale = cell[1]

        gx, gy = np.meshgrid(nodes, ny_nodes, indexing="xy")
        gx = gx.reshape(1, -1) * cell[0]
        gy = gy.reshape(1, -1) * cell[1]
        gw = (wy[:, None] * wx[None, :]).reshape(1, -1)

        integral = np.empty(len(bins))
        chunk = max(_MAX_NODES // gw.shape[1], 1)
        for start in range(0, len(bins), chunk):
            part = bins[start:start + chunk]
            ox = lo[0] + (part % self.res[0]).reshape(-1, 1) * cell[0]
            oy = lo[1] + (part // self.res[0]).reshape(-1, 1) * cell[1]
            coords = np.stack([(ox + gx).ravel(), (oy + gy).ravel()], axis=1)

            values = self.domain.map_backward(coords)
            density = np.asarray(self.pdf_func(values), dtype=np.float64).reshape(-1)
            density = density * self.domain.jacobian(coords)
            if not np.all(np.isfinite(density)):
                self._non_finite = True
                density = np.nan_to_num(density, nan=0.0, posinf=0.0, neginf=0.0)
            if np.any(density < 0.0):
                self._negative = True

            integral[start:start + len(part)] = (density.reshape(len(part), -1) * gw).sum(axis=1)
        return integral * cell[0] * y_scale

    def tabulate_pdf(self) -> np.ndarray:
        """Integrate the density over every bin.

        Every bin starts with ``ires`` Simpson intervals per axis. Bins whose
        integral still changes when the interval count is doubled are
        refined again, up to ``max_ires`` intervals. This resolves densities
        with a discontinuity crossing the bin, such as the rim of a disk or
        a cone.
        """
        self._non_finite = False
        self._negative = False

        bins = np.arange(self.res[0] * self.res[1])
        integral = self._integrate_bins(bins, self.ires)
        ires = self.ires
        active = bins
        while active.size > 0 and ires < self.max_ires:
            ires *= 2
            refined = self._integrate_bins(active, ires)
            converged = np.abs(refined - integral[active]) <= _QUAD_RTOL * np.abs(refined) + _QUAD_ATOL
            integral[active] = refined
            active = active[~converged]
        if active.size > 0:
            logger.debug("%d bin(s) not converged at %d intervals", active.size, ires)

        if self._non_finite:
            self._log("The density contains non-finite values")
            self.fail = True
        if self._negative:
            self._log("The density contains negative values")
            self.fail = True

        self.pdf = integral.reshape(self.res[1], self.res[0]) * self.sample_count
        return self.pdf

    def run(self, significance_level: float = 0.01, test_count: int = 1) -> bool:
        """Run the test.

        Args:
            significance_level: Probability of rejecting a correct sampler.
            test_count: Number of tests run in total; the significance level
                is Sidak-corrected for it.

        Returns:
            True if the null hypothesis (the samples follow the density) is
            not rejected.
        """
        if self.histogram is None:
            self.tabulate_histogram()
        if self.pdf is None:
            self.tabulate_pdf()

        observed = self.histogram.ravel()
        expected = self.pdf.ravel()

        pdf_sum = expected.sum() / self.sample_count
        if self.domain.unbounded:
            # Mass beyond the box is whatever the box does not hold
            normalized = pdf_sum <= 1.0 + 1e-2
        else:
            normalized = abs(pdf_sum - 1.0) <= 1e-2
        if not normalized:
            self._log(f"The density integrates to {pdf_sum:.5f} instead of 1")
            self.fail = True

        zero_density = expected <= 0.0
        stray = observed[zero_density].sum()
        if stray > 0:
            self._log(f"Encountered {int(stray)} sample(s) in regions with zero density")
            self.fail = True

        if self.domain.unbounded:
            tail_expected = max(1.0 - pdf_sum, 0.0) * self.sample_count
            observed = np.append(observed, self.tail_count)
            expected = np.append(expected, tail_expected)
            self._log(f"Tail cell: {self.tail_count} sample(s), {tail_expected:.2f} expected")

        if self.fail:
            self.p_value = 0.0
            logger.warning("Chi-square test failed: %s", "; ".join(self.messages))
            return False

        order = np.argsort(expected)
        observed = observed[order]
        expected = expected[order]

        # Pool low-frequency cells until the pooled cell is large enough
        pooled_in = 0.0
        pooled_out = 0.0
        pooled_cells = 0
        chi2_stat = 0.0
        dof = 0
        for obs, exp in zip(observed, expected):
            if exp <= 0.0:
                continue
            if exp < self.min_expected_frequency:
                pooled_in += obs
                pooled_out += exp
                pooled_cells += 1
                if pooled_out >= self.min_expected_frequency:
                    chi2_stat += (pooled_in - pooled_out) ** 2 / pooled_out
                    dof += 1
                    pooled_in = pooled_out = 0.0
            else:
                chi2_stat += (obs - exp) ** 2 / exp
                dof += 1
        if pooled_out > 0.0:
            chi2_stat += (pooled_in - pooled_out) ** 2 / pooled_out
            dof += 1
        if pooled_cells > 0:
            self._log(f"Pooled {pooled_cells} low-frequency cell(s)")

        dof -= 1
        if dof < 1:
            self._log("Not enough degrees of freedom for a chi-square test")
            self.p_value = 0.0
            return False

        self.p_value = float(stats.chi2.sf(chi2_stat, dof))
        alpha = 1.0 - (1.0 - significance_level) ** (1.0 / test_count)
        self._log(f"Chi^2 statistic = {chi2_stat:.4f} (dof = {dof}), p-value = {self.p_value:.6f}")

        if self.p_value < alpha or not np.isfinite(self.p_value):
            self._log(f"Rejected the null hypothesis (p-value < {alpha:.6f})")
            logger.warning("Chi-square test rejected the sampler: %s", "; ".join(self.messages))
            return False

        self._log(f"Accepted the null hypothesis (p-value >= {alpha:.6f})")
        logger.info("Chi-square test passed (p-value = %.6f)", self.p_value)
        return True


def _domain_for(info) -> Domain:
    if info.domain == "line":
        return LineDomain((info.bbox[0][0], info.bbox[1][0]))
    if info.domain == "plane":
        return PlanarDomain(info.bbox, unbounded=info.unbounded)
    return SphericalDomain()


def warp_chi2_test(kind: WarpKind | int, **kwargs: Any) -> ChiSquareTest:
    """Build a chi-square test of a registered warp.

    Keyword arguments naming the warp's shape parameters are bound to it;
    all other keyword arguments are passed to ``ChiSquareTest``.

    Example:
        >>> test = warp_chi2_test(WarpKind.BECKMANN, alpha=0.3, sample_count=100_000)
    """
    info = get_warp_info(kind)
    names = {argument.name for argument in info.arguments}
    arguments = {key: value for key, value in kwargs.items() if key in names}
    options = {key: value for key, value in kwargs.items() if key not in names}
    params = info.bind(**arguments)

    def sample_func(u: np.ndarray) -> Any:
        return sample_warp(info.kind, u, *params)

    def pdf_func(x: np.ndarray) -> Any:
        return warp_pdf(info.kind, x, *params)

    return ChiSquareTest(_domain_for(info), sample_func, pdf_func, sample_dim=info.sample_dim, **options)


def distribution_chi2_test(distr, param: Any = None, **kwargs: Any) -> ChiSquareTest:
    """Build a chi-square test of a ``Hierarchical2D`` or ``Marginal2D``."""

    def sample_func(u: np.ndarray) -> Any:
        return distr.sample(u, param)[0]

    def pdf_func(x: np.ndarray) -> Any:
        return distr.eval(x, param)

    return ChiSquareTest(PlanarDomain(distr.grid.bounds), sample_func, pdf_func, sample_dim=2, **kwargs)

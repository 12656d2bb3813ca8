"""Tests for Grid validation and slice normalization."""

import numpy as np
import pytest


class TestGridConstruction:
    """Tests for valid and invalid grids."""

    def test_properties(self):
        from src.sampling.distr.grid import Grid

        grid = Grid(np.ones((3, 4, 5)), param_values=(np.array([0.0, 0.5, 1.0]),))
        assert (grid.width, grid.height) == (5, 4)
        assert grid.param_shape == (3,)
        assert grid.param_count == 1
        assert grid.slice_count == 3
        assert grid.slices().shape == (3, 4, 5)
        assert grid.area == 1.0

    def test_values_are_read_only_copy(self):
        from src.sampling.distr.grid import Grid

        values = np.ones((2, 2))
        grid = Grid(values)
        values[0, 0] = 5.0
        assert grid.values[0, 0] == 1.0
        with pytest.raises(ValueError):
            grid.values[0, 0] = 3.0

    def test_bounds(self):
        from src.sampling.distr.grid import Grid

        grid = Grid(np.ones((2, 2)), bounds=((-1, 0), (1, 4)))
        assert grid.bounds == ((-1.0, 0.0), (1.0, 4.0))
        assert grid.area == 8.0

    @pytest.mark.parametrize(
        "values",
        [
            np.zeros((4, 4)),
            -np.ones((4, 4)),
            np.full((4, 4), np.nan),
            np.full((4, 4), np.inf),
            np.ones(4),
        ],
    )
    def test_invalid_values_raise(self, values):
        from src.sampling.core.errors import ConstructionError
        from src.sampling.distr.grid import Grid

        with pytest.raises(ConstructionError):
            Grid(values)

    def test_zero_slice_raises(self):
        from src.sampling.core.errors import ConstructionError
        from src.sampling.distr.grid import Grid

        values = np.ones((2, 3, 3))
        values[1] = 0.0
        with pytest.raises(ConstructionError):
            Grid(values, param_values=([0.0, 1.0],))

    def test_parameter_axis_mismatch_raises(self):
        from src.sampling.core.errors import ConstructionError
        from src.sampling.distr.grid import Grid

        with pytest.raises(ConstructionError):
            Grid(np.ones((2, 3, 3)))
        with pytest.raises(ConstructionError):
            Grid(np.ones((2, 3, 3)), param_values=([0.0, 1.0, 2.0],))
        with pytest.raises(ConstructionError):
            Grid(np.ones((2, 3, 3)), param_values=([1.0, 0.0],))

    def test_empty_bounds_raise(self):
        from src.sampling.core.errors import ConstructionError
        from src.sampling.distr.grid import Grid

        with pytest.raises(ConstructionError):
            Grid(np.ones((2, 2)), bounds=((0, 0), (0, 1)))

    def test_bilinear_needs_two_vertices(self):
        from src.sampling.core.errors import ConstructionError
        from src.sampling.distr.grid import Grid

        grid = Grid(np.ones((1, 8)))
        grid.check_resolution("constant")
        with pytest.raises(ConstructionError):
            grid.check_resolution("bilinear")
        with pytest.raises(ValueError):
            grid.check_resolution("cubic")

    def test_with_values_keeps_shape(self):
        from src.sampling.core.errors import ConstructionError
        from src.sampling.distr.grid import Grid

        grid = Grid(np.ones((2, 2)), bounds=((0, 0), (2, 2)))
        updated = grid.with_values(np.full((2, 2), 3.0))
        assert updated.bounds == grid.bounds
        with pytest.raises(ConstructionError):
            grid.with_values(np.ones((3, 3)))


class TestNormalization:
    """Tests for normalized_slices."""

    def test_constant_mean_is_one(self, rng):
        from src.sampling.distr.grid import Grid, normalized_slices

        slices = normalized_slices(Grid(rng.random((5, 7)) + 0.1), "constant")
        assert np.isclose(slices.mean(), 1.0)

    def test_bilinear_integral_is_one(self, rng):
        from src.sampling.distr.grid import Grid, normalized_slices

        slices = normalized_slices(Grid(rng.random((5, 7)) + 0.1), "bilinear")[0]
        cells = (slices[:-1, :-1] + slices[:-1, 1:] + slices[1:, :-1] + slices[1:, 1:]) / 4.0
        assert np.isclose(cells.mean(), 1.0)

"""Tests for the warp registry and the generic warp entry points."""

import numpy as np
import pytest


class TestRegistry:
    """Tests for WarpKind, WarpInfo and WARPS."""

    def test_every_kind_registered(self):
        from src.sampling.warp.adapters import WARPS, WarpKind

        assert set(WARPS) == set(WarpKind)
        for kind, info in WARPS.items():
            assert info.kind == kind

    def test_dimensions_consistent_with_domain(self):
        from src.sampling.warp.adapters import WARPS

        for info in WARPS.values():
            if info.domain == "line":
                assert (info.sample_dim, info.value_dim) == (1, 1)
            elif info.domain == "plane":
                assert (info.sample_dim, info.value_dim) == (2, 2)
            else:
                assert (info.sample_dim, info.value_dim) == (2, 3)
            assert len(info.bbox[0]) == len(info.bbox[1])

    def test_get_warp_info_accepts_int(self):
        from src.sampling.warp.adapters import WarpKind, get_warp_info

        assert get_warp_info(int(WarpKind.BECKMANN)).kind == WarpKind.BECKMANN

    def test_unknown_kind_raises_value_error(self):
        from src.sampling.warp.adapters import get_warp_info

        with pytest.raises(ValueError):
            get_warp_info(99)

    def test_bind_fills_defaults(self):
        from src.sampling.warp.adapters import WarpKind, get_warp_info

        info = get_warp_info(WarpKind.NONUNIFORM_TENT)
        assert info.bind() == (0.0, 0.3, 1.0)
        assert info.bind(b=0.5) == (0.0, 0.5, 1.0)

    def test_bind_rejects_unknown_argument(self):
        from src.sampling.core.errors import ParameterError
        from src.sampling.warp.adapters import WarpKind, get_warp_info

        with pytest.raises(ParameterError):
            get_warp_info(WarpKind.UNIFORM_CONE).bind(alpha=0.2)

    def test_validate_counts_parameters(self):
        from src.sampling.core.errors import ParameterError
        from src.sampling.warp.adapters import WarpKind, get_warp_info

        with pytest.raises(ParameterError):
            get_warp_info(WarpKind.UNIFORM_DISK).validate((1.0,))

    def test_argument_map_and_clamp(self):
        from src.sampling.warp.adapters import WarpArgument

        argument = WarpArgument("x", -1.0, 1.0, 0.0)
        assert argument.map(0.0) == -1.0
        assert argument.map(0.75) == 0.5
        assert argument.clamp(3.0) == 1.0
        assert argument.clamp(-3.0) == -1.0

    def test_unchecked_argument_is_not_validated(self):
        """Test that advisory ranges (e.g. vMF kappa) do not raise."""
        from src.sampling.warp.api import square_to_von_mises_fisher

        v = square_to_von_mises_fisher([0.2, 0.4], 250.0)
        assert np.isclose(np.linalg.norm(v), 1.0)


class TestGenericEntryPoints:
    """Tests for sample_warp, invert_warp and warp_pdf."""

    def test_generic_matches_named(self, rng):
        from src.sampling.warp.adapters import WarpKind
        from src.sampling.warp.api import sample_warp, square_to_cosine_hemisphere

        u = rng.random((64, 2))
        assert np.allclose(sample_warp(WarpKind.COSINE_HEMISPHERE, u), square_to_cosine_hemisphere(u))

    @pytest.mark.parametrize("name", ["UNIFORM_TRIANGLE", "TENT", "UNIFORM_SPHERE", "BECKMANN", "BILINEAR"])
    def test_round_trip_with_defaults(self, name, rng):
        from src.sampling.warp.adapters import WarpKind, get_warp_info
        from src.sampling.warp.api import invert_warp, sample_warp

        info = get_warp_info(WarpKind[name])
        params = info.bind()
        u = 1e-3 + (1.0 - 2e-3) * rng.random((200, info.sample_dim))
        if info.sample_dim == 1:
            u = u[:, 0]
        x = sample_warp(info.kind, u, *params)
        assert np.allclose(invert_warp(info.kind, x, *params), u, atol=1e-5)

    def test_samples_have_positive_density(self, rng):
        from src.sampling.warp.adapters import WARPS
        from src.sampling.warp.api import sample_warp, warp_pdf

        for info in WARPS.values():
            params = info.bind()
            u = 1e-3 + (1.0 - 2e-3) * rng.random((100, info.sample_dim))
            if info.sample_dim == 1:
                u = u[:, 0]
            x = sample_warp(info.kind, u, *params)
            assert np.all(warp_pdf(info.kind, x, *params) > 0.0), info.name

    def test_wrong_shape_raises(self):
        from src.sampling.warp.adapters import WarpKind
        from src.sampling.warp.api import sample_warp

        with pytest.raises(ValueError):
            sample_warp(WarpKind.UNIFORM_DISK, np.zeros((4, 3)))

    def test_empty_batch(self):
        from src.sampling.warp.adapters import WarpKind
        from src.sampling.warp.api import sample_warp

        assert sample_warp(WarpKind.UNIFORM_SPHERE, np.zeros((0, 2))).shape == (0, 3)

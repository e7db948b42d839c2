"""Tests for the HLG transfer curves, OOTF and EOTF."""

import numpy as np
import pytest

from hlg_refmath.colorspace import RefMathColorSpace
from hlg_refmath.errors import HLGDomainError
from hlg_refmath.refmath import SRGB_TO_HLG_SCALER, RefMathHLG


class TestOetf:
    """Scalar OETF / inverse OETF."""

    def test_breakpoint_value(self):
        """OETF(1/12) = sqrt(3/12) = 0.5."""
        assert RefMathHLG.oetf(1.0 / 12.0) == pytest.approx(0.5, abs=1e-12)

    def test_inverse_breakpoint_value(self):
        """inverse OETF(0.5) = 0.25 / 3."""
        assert RefMathHLG.inverse_oetf(0.5) == pytest.approx(0.25 / 3.0, abs=1e-12)

    def test_zero(self):
        assert RefMathHLG.oetf(0.0) == 0.0
        assert RefMathHLG.inverse_oetf(0.0) == 0.0

    def test_nominal_peak(self):
        """Scene light 1.0 encodes to a signal of 1.0."""
        assert RefMathHLG.oetf(1.0) == pytest.approx(1.0, abs=1e-6)
        assert RefMathHLG.inverse_oetf(1.0) == pytest.approx(1.0, abs=1e-6)

    def test_constants(self):
        assert RefMathHLG.B == pytest.approx(0.28466892, abs=1e-8)
        assert RefMathHLG.C == pytest.approx(0.55991073, abs=1e-8)

    def test_roundtrip(self):
        """inverse_oetf(oetf(E)) == E over [0, 10]."""
        for E in np.linspace(0.0, 10.0, 2001):
            assert RefMathHLG.inverse_oetf(RefMathHLG.oetf(E)) == pytest.approx(E, rel=1e-9, abs=1e-15)

    def test_continuity_at_oetf_breakpoint(self):
        below = RefMathHLG.oetf(np.nextafter(1.0 / 12.0, 0.0))
        above = RefMathHLG.oetf(np.nextafter(1.0 / 12.0, 1.0))
        assert above == pytest.approx(below, abs=1e-12)

    def test_continuity_at_inverse_breakpoint(self):
        below = RefMathHLG.inverse_oetf(np.nextafter(0.5, 0.0))
        above = RefMathHLG.inverse_oetf(np.nextafter(0.5, 1.0))
        assert above == pytest.approx(below, abs=1e-12)

    def test_monotonic(self):
        values = [RefMathHLG.oetf(E) for E in np.linspace(0.0, 4.0, 1001)]
        assert np.all(np.diff(values) > 0)

    def test_super_white_signal(self):
        """Signals above 1.0 are allowed and decode above 1.0."""
        assert RefMathHLG.inverse_oetf(1.09) > 1.0

    def test_srgb_to_hlg_scaler(self):
        """Scene light of the 75% HLG reference white."""
        assert SRGB_TO_HLG_SCALER == pytest.approx(0.26497, abs=1e-4)
        assert RefMathHLG.oetf(SRGB_TO_HLG_SCALER) == pytest.approx(0.75, abs=1e-12)


class TestOetfDomain:
    """Domain errors of the scalar curves."""

    @pytest.mark.parametrize("E", [-1e-6, -1.0, float("nan"), float("inf")])
    def test_oetf_rejects(self, E):
        with pytest.raises(HLGDomainError):
            RefMathHLG.oetf(E)

    def test_inverse_oetf_rejects_negative(self):
        with pytest.raises(HLGDomainError):
            RefMathHLG.inverse_oetf(-0.1)

    def test_domain_error_is_value_error(self):
        with pytest.raises(ValueError):
            RefMathHLG.oetf(-1.0)


class TestTripleHelpers:
    """Element-wise application across an RGB triple."""

    def test_to_hlg(self):
        rgb = RefMathHLG.to_hlg([0.0, 1.0 / 12.0, 1.0])
        np.testing.assert_allclose(rgb, [0.0, 0.5, 1.0], atol=1e-6)

    def test_from_hlg(self):
        rgb = RefMathHLG.from_hlg([0.0, 0.5, 0.75])
        np.testing.assert_allclose(rgb, [0.0, 0.25 / 3.0, SRGB_TO_HLG_SCALER], atol=1e-12)

    def test_channels_are_independent(self):
        rgb = RefMathHLG.to_hlg([0.2, 0.0, 0.0])
        assert rgb[1] == 0.0 and rgb[2] == 0.0

    def test_invalid_shape(self):
        with pytest.raises(ValueError, match="3"):
            RefMathHLG.to_hlg([0.1, 0.2])


class TestSystemGamma:
    """OOTF applied to luminance only."""

    @pytest.mark.parametrize("rgb", [[0.0, 0.0, 0.0], [0.2, 0.5, 0.8], [1.0, 1.0, 1.0], [0.9, 0.05, 0.3]])
    def test_identity(self, rgb):
        np.testing.assert_allclose(RefMathHLG.apply_system_gamma(rgb, 1.0), rgb, atol=1e-9)

    def test_luminance_raised_to_gamma(self):
        rgb = [0.3, 0.6, 0.2]
        Y = RefMathColorSpace.bt2020_to_xyz(rgb)[1]
        result = RefMathHLG.apply_system_gamma(rgb, 1.2)
        assert RefMathColorSpace.bt2020_to_xyz(result)[1] == pytest.approx(Y ** 1.2, rel=1e-9)

    def test_x_and_z_untouched(self):
        rgb = [0.3, 0.6, 0.2]
        X, _, Z = RefMathColorSpace.bt2020_to_xyz(rgb)
        X2, _, Z2 = RefMathColorSpace.bt2020_to_xyz(RefMathHLG.apply_system_gamma(rgb, 1.5))
        assert X2 == pytest.approx(X, abs=1e-12)
        assert Z2 == pytest.approx(Z, abs=1e-12)

    def test_non_positive_luminance_is_finite(self):
        result = RefMathHLG.apply_system_gamma([-0.1, -0.1, -0.1], 1.2)
        assert np.all(np.isfinite(result))
        assert RefMathColorSpace.bt2020_to_xyz(result)[1] == pytest.approx(0.0, abs=1e-12)

    def test_rejects_non_positive_gamma(self):
        with pytest.raises(HLGDomainError):
            RefMathHLG.apply_system_gamma([0.5, 0.5, 0.5], 0.0)


class TestEotf:
    """Forward and inverse display-referred transform."""

    def test_black(self):
        np.testing.assert_allclose(RefMathHLG.eotf([0.0, 0.0, 0.0], 0.0, 1.2), [0.0, 0.0, 0.0], atol=1e-15)

    def test_white(self):
        np.testing.assert_allclose(RefMathHLG.eotf([1.0, 1.0, 1.0], 0.0, 1.2), [1.0, 1.0, 1.0], atol=1e-6)

    def test_white_with_black_lift(self):
        """(1-β)·1 + β = 1, so peak white ignores β."""
        np.testing.assert_allclose(RefMathHLG.eotf([1.0, 1.0, 1.0], 0.05, 1.2), [1.0, 1.0, 1.0], atol=1e-6)

    def test_black_lift_raises_black(self):
        result = RefMathHLG.eotf([0.0, 0.0, 0.0], 0.05, 1.0)
        np.testing.assert_allclose(result, [0.05 ** 2 / 3.0] * 3, atol=1e-12)

    def test_negative_signal_clamped(self):
        result = RefMathHLG.eotf([-0.5, -0.2, -1.0], 0.0, 1.2)
        assert np.all(np.isfinite(result))
        np.testing.assert_allclose(result, [0.0, 0.0, 0.0], atol=1e-15)

    def test_gamma_one_matches_inverse_oetf(self):
        signal = [0.2, 0.5, 0.9]
        np.testing.assert_allclose(RefMathHLG.eotf(signal, 0.0, 1.0), RefMathHLG.from_hlg(signal), atol=1e-9)

    def test_inverse_clamps_negative_channel(self):
        result = RefMathHLG.inverse_eotf([-0.05, 0.2, 0.2], 0.0, 1.0)
        assert result[0] == 0.0
        assert result[1] == pytest.approx(RefMathHLG.oetf(0.2), abs=1e-6)
        assert result[2] == pytest.approx(result[1], abs=1e-9)

    @pytest.mark.parametrize("signal", [[0.0, 0.0, 0.0], [0.1, 0.5, 0.9], [1.0, 1.0, 1.0], [0.75, 0.3, 0.6]])
    def test_roundtrip_identity_parameters(self, signal):
        display = RefMathHLG.eotf(signal, 0.0, 1.0)
        np.testing.assert_allclose(RefMathHLG.inverse_eotf(display, 0.0, 1.0), signal, atol=1e-6)

    @pytest.mark.parametrize("signal", [[0.1, 0.5, 0.9], [0.3, 0.3, 0.3], [0.8, 0.2, 0.4]])
    def test_roundtrip_with_lift_and_gamma(self, signal):
        beta, gamma = 0.0279553, 1.2
        display = RefMathHLG.eotf(signal, beta, gamma)
        np.testing.assert_allclose(RefMathHLG.inverse_eotf(display, beta, gamma), signal, atol=1e-9)

    def test_inverse_rejects_full_black_lift(self):
        with pytest.raises(HLGDomainError):
            RefMathHLG.inverse_eotf([0.5, 0.5, 0.5], 1.0, 1.2)

    def test_inverse_rejects_non_positive_gamma(self):
        with pytest.raises(HLGDomainError):
            RefMathHLG.inverse_eotf([0.5, 0.5, 0.5], 0.0, -1.0)

    def test_invalid_shape(self):
        with pytest.raises(ValueError, match="3"):
            RefMathHLG.eotf([0.1, 0.2, 0.3, 0.4], 0.0, 1.2)

import numpy as np
import pytest

from lvox.filters import ProcessSpec, decibels_to_gain
from lvox.module import MicCorrection
from lvox.parameters import ParamID, ParameterState
from lvox.tone import HighPassFilterModule, ParametricEQModule

SR = 48000.0


def _spec(channels=2):
    return ProcessSpec(SR, 4096, channels)


def _sine(freq, n, channels=2, amp=0.5):
    t = np.arange(n) / SR
    return np.tile(amp * np.sin(2 * np.pi * freq * t), (channels, 1))


def _rms(x):
    return float(np.sqrt(np.mean(x ** 2)))


def _hpf(params=None):
    module = HighPassFilterModule(params or ParameterState())
    module.prepare(_spec())
    return module


def _eq(params=None):
    module = ParametricEQModule(params or ParameterState())
    module.prepare(_spec())
    return module


def test_hpf_removes_dc():
    module = _hpf()
    block = np.ones((2, 4000))
    module.process(block)
    np.testing.assert_allclose(block[:, -100:], 0.0, atol=0.01)


def test_hpf_steeper_slope_attenuates_more():
    levels = []
    for slope in (0, 1, 2):
        params = ParameterState()
        params[ParamID.HPF_SLOPE] = slope
        module = _hpf(params)
        block = _sine(40.0, 6000)
        module.process(block)
        levels.append(_rms(block[:, 3000:]))
    assert levels[0] > levels[1] > levels[2]
    assert _hpf().active_sections == 2


def test_hpf_48db_uses_four_sections():
    params = ParameterState()
    params[ParamID.HPF_SLOPE] = 2
    module = _hpf(params)
    module.process(np.zeros((2, 16)))
    assert module.active_sections == 4


def test_hpf_passes_high_frequencies():
    module = _hpf()
    block = _sine(5000.0, 4000)
    reference = _rms(block[:, 2000:])
    module.process(block)
    assert _rms(block[:, 2000:]) == pytest.approx(reference, rel=0.01)


def test_hpf_reset_reproduces_output():
    module = _hpf()
    source = np.random.default_rng(1).standard_normal((2, 500))
    first = source.copy()
    module.process(first)
    module.reset()
    second = source.copy()
    module.process(second)
    np.testing.assert_allclose(first, second)


def test_hpf_mic_correction_raises_cutoff():
    plain = _hpf()
    corrected = _hpf()
    corrected.mic_correction = MicCorrection(hpf_freq_offset=20.0)
    a = _sine(60.0, 6000)
    b = a.copy()
    plain.process(a)
    corrected.process(b)
    assert _rms(b[:, 3000:]) < _rms(a[:, 3000:])


def test_eq_defaults_leave_signal_unchanged():
    module = _eq()
    source = np.random.default_rng(2).standard_normal((2, 400))
    block = source.copy()
    module.process(block)
    np.testing.assert_allclose(block, source, atol=1e-9)


def test_eq_peak_band_gain_at_centre():
    params = ParameterState()
    params[ParamID.EQ_BAND3_GAIN] = 6.0
    module = _eq(params)
    coeffs = module.band_coefficients(2)
    assert coeffs.magnitude_at(3000.0, SR) == pytest.approx(decibels_to_gain(6.0), rel=1e-6)


def test_eq_mic_correction_offsets_gain():
    module = _eq()
    module.mic_correction = MicCorrection(eq_band3_gain_offset=-2.0)
    coeffs = module.band_coefficients(2)
    assert coeffs.magnitude_at(3000.0, SR) == pytest.approx(decibels_to_gain(-2.0), rel=1e-6)


def test_eq_mic_correction_gain_is_clipped():
    params = ParameterState()
    params[ParamID.EQ_BAND3_GAIN] = 18.0
    module = _eq(params)
    module.mic_correction = MicCorrection(eq_band3_gain_offset=5.0)
    coeffs = module.band_coefficients(2)
    assert coeffs.magnitude_at(3000.0, SR) == pytest.approx(decibels_to_gain(18.0), rel=1e-6)


def test_eq_band1_is_low_shelf_by_default():
    params = ParameterState()
    params[ParamID.EQ_BAND1_GAIN] = 12.0
    module = _eq(params)
    coeffs = module.band_coefficients(0)
    assert coeffs.magnitude_at(10.0, SR) == pytest.approx(decibels_to_gain(12.0), rel=0.05)
    assert coeffs.magnitude_at(15000.0, SR) == pytest.approx(1.0, rel=0.01)


def test_eq_inactive_band_is_skipped():
    params = ParameterState()
    params[ParamID.EQ_BAND2_GAIN] = 12.0
    params[ParamID.EQ_BAND2_ACTIVE] = 0
    module = _eq(params)
    source = _sine(500.0, 600)
    block = source.copy()
    module.process(block)
    np.testing.assert_allclose(block, source, atol=1e-9)


def test_eq_active_band_changes_signal():
    params = ParameterState()
    params[ParamID.EQ_BAND2_GAIN] = 12.0
    module = _eq(params)
    block = _sine(500.0, 6000)
    reference = _rms(block[:, 3000:])
    module.process(block)
    assert _rms(block[:, 3000:]) > 2.0 * reference


@pytest.mark.parametrize("index", [-1, 4])
def test_eq_band_index_out_of_range(index):
    with pytest.raises(IndexError):
        _eq().band_coefficients(index)
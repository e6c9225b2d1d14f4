import numpy as np
import pytest

from lvox.dynamics import CompressorModule, DeEsserModule, LimiterModule, NoiseGateModule
from lvox.filters import ProcessSpec, decibels_to_gain
from lvox.parameters import ParamID, ParameterState

SR = 44100.0


def _spec(n=512, ch=2):
    return ProcessSpec(SR, n, ch)


def _sine(freq, amp, n=4000, ch=2):
    t = np.arange(n) / SR
    return np.tile(amp * np.sin(2 * np.pi * freq * t), (ch, 1))


def test_gate_attenuates_quiet_signal():
    gate = NoiseGateModule(ParameterState())
    gate.prepare(_spec())
    block = np.full((2, 20000), 0.001)
    gate.process(block)
    assert abs(block[0, -1]) < 0.0005
    assert gate.current_gain < 0.5


def test_gate_passes_loud_signal():
    gate = NoiseGateModule(ParameterState())
    gate.prepare(_spec())
    block = np.full((2, 5000), 0.5)
    gate.process(block)
    assert block[0, -1] == pytest.approx(0.5, rel=1e-3)


def test_limiter_latency_and_ceiling():
    params = ParameterState()
    lim = LimiterModule(params)
    lim.prepare(_spec())
    assert lim.latency_samples == 44
    block = _sine(200.0, 1.5)
    original = block.copy()
    lim.process(block)
    ceiling = decibels_to_gain(params[ParamID.LIM_CEILING])
    assert np.all(np.abs(block) <= ceiling + 1e-9)
    assert np.all(block[:, :44] == 0.0)


def test_limiter_quiet_passthrough_delayed():
    lim = LimiterModule(ParameterState())
    lim.prepare(_spec())
    block = _sine(200.0, 0.1, n=500)
    original = block.copy()
    lim.process(block)
    assert np.allclose(block[:, 44:], original[:, :-44])
    lim.reset()
    assert lim.gain_reduction == 1.0


def test_compressor_reduces_loud_signal():
    comp = CompressorModule(ParameterState())
    comp.prepare(_spec())
    block = np.full((2, 4000), 0.9)
    comp.process(block)
    assert comp.gain_reduction > 10.0
    assert block[0, -1] < 0.9


def test_compressor_ratio_one_applies_makeup_only():
    params = ParameterState()
    params[ParamID.COMP_RATIO] = 1.0
    params[ParamID.COMP_MAKEUP] = 6.0
    comp = CompressorModule(params)
    comp.prepare(_spec())
    block = _sine(300.0, 0.5, n=1000)
    original = block.copy()
    comp.process(block)
    assert np.allclose(block, original * decibels_to_gain(6.0))


def test_compressor_zero_mix_is_dry():
    params = ParameterState()
    params[ParamID.COMP_MIX] = 0.0
    params[ParamID.COMP_SC_ACTIVE] = 1.0
    comp = CompressorModule(params)
    comp.prepare(_spec())
    block = np.full((2, 1000), 0.9)
    comp.process(block)
    assert np.allclose(block, 0.9)


def test_deesser_never_amplifies():
    de = DeEsserModule(ParameterState())
    de.prepare(_spec())
    block = _sine(6500.0, 0.8)
    original = block.copy()
    de.process(block)
    assert np.all(np.abs(block) <= np.abs(original) + 1e-12)
    assert np.max(np.abs(block[:, -500:])) < 0.8 * 0.9


def test_deesser_listen_outputs_sidechain():
    params = ParameterState()
    params[ParamID.DEESS_LISTEN] = 1.0
    de = DeEsserModule(params)
    de.prepare(_spec())
    block = np.full((2, 3000), 0.5)
    de.process(block)
    assert abs(block[0, -1]) < 1e-3


def test_bypass_flag():
    params = ParameterState()
    comp = CompressorModule(params)
    params[ParamID.COMP_BYPASS] = 1.0
    assert comp.is_bypassed()
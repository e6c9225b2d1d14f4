import numpy as np
import pytest

from lvox.filters import ProcessSpec
from lvox.parameters import ParamID, ParameterState
from lvox.reverb import DattorroPlate, ReverbModule

RATE = 44100.0


def _plate(decay=0.7):
    plate = DattorroPlate()
    plate.prepare(RATE)
    plate.decay = decay
    return plate


def _impulse_response(plate, length):
    out = [plate.process(1.0, 1.0)]
    out += [plate.process(0.0, 0.0) for _ in range(length - 1)]
    return np.array(out)


def _module(channels=2, **values):
    params = ParameterState()
    for key, value in values.items():
        params[key] = value
    module = ReverbModule(params)
    module.prepare(ProcessSpec(RATE, 2048, channels))
    return module


def test_plate_silence_in_silence_out():
    plate = _plate()
    assert all(plate.process(0.0, 0.0) == (0.0, 0.0) for _ in range(200))


def test_plate_impulse_produces_tail():
    response = _impulse_response(_plate(), 3000)
    assert np.all(np.isfinite(response))
    assert np.sum(response ** 2) > 0.0


def test_plate_stereo_outputs_are_decorrelated():
    response = _impulse_response(_plate(), 3000)
    assert not np.allclose(response[:, 0], response[:, 1])


def test_plate_is_deterministic():
    a = _impulse_response(_plate(), 1500)
    b = _impulse_response(_plate(), 1500)
    assert np.array_equal(a, b)


def test_plate_tail_decays():
    response = _impulse_response(_plate(decay=0.5), 22000)
    early = np.sum(response[:2000] ** 2)
    late = np.sum(response[20000:] ** 2)
    assert late < early


def test_plate_reset_clears_tail():
    plate = _plate()
    _impulse_response(plate, 1000)
    plate.reset()
    assert plate.process(0.0, 0.0) == (0.0, 0.0)


@pytest.mark.parametrize(
    ("attribute", "value", "expected"),
    [("decay", 5.0, 0.999), ("decay", -1.0, 0.0), ("damping", 2.0, 1.0),
     ("damping", -0.5, 0.0), ("size", 10.0, 2.0), ("size", 0.0, 0.3)],
)
def test_plate_settings_are_clamped(attribute, value, expected):
    plate = DattorroPlate()
    setattr(plate, attribute, value)
    assert getattr(plate, attribute) == pytest.approx(expected)


def test_module_zero_mix_returns_dry():
    module = _module(**{ParamID.REV_MIX: 0.0})
    rng = np.random.default_rng(1)
    block = rng.uniform(-0.5, 0.5, (2, 512))
    original = block.copy()
    module.process(block)
    assert np.array_equal(block, original)


def test_module_silence_stays_silent():
    module = _module()
    block = np.zeros((2, 512))
    module.process(block)
    np.testing.assert_array_equal(block, np.zeros((2, 512)))


def test_module_full_wet_respects_predelay():
    module = _module(**{ParamID.REV_MIX: 100.0, ParamID.REV_PREDELAY: 20.0})
    block = np.zeros((2, 2048))
    block[:, 0] = 1.0
    module.process(block)
    assert np.max(np.abs(block[:, :800])) < 1e-12
    assert np.sum(block ** 2) > 0.0


def test_module_mono_block():
    module = _module(channels=1, **{ParamID.REV_MIX: 100.0, ParamID.REV_PREDELAY: 0.0})
    block = np.zeros((1, 1024))
    block[0, 0] = 1.0
    module.process(block)
    assert block.shape == (1, 1024)
    assert np.all(np.isfinite(block))
    assert np.sum(block ** 2) > 0.0


def test_module_reset_clears_state():
    module = _module(**{ParamID.REV_MIX: 100.0, ParamID.REV_PREDELAY: 0.0})
    block = np.zeros((2, 512))
    block[:, 0] = 1.0
    module.process(block)
    module.reset()
    silent = np.zeros((2, 256))
    module.process(silent)
    np.testing.assert_array_equal(silent, np.zeros((2, 256)))


def test_module_bypass_follows_parameter():
    module = _module()
    assert module.is_bypassed() is False
    module.params[ParamID.REV_BYPASS] = 1.0
    assert module.is_bypassed() is True
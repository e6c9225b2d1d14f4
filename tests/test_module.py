import numpy as np
import pytest

from lvox.filters import ProcessSpec
from lvox.module import DSPModule, MicCorrection
from lvox.parameters import ParamID, ParameterState


class _Gain(DSPModule):
    def prepare(self, spec):
        self.sample_rate = spec.sample_rate

    def process(self, block):
        block *= 2.0

    def reset(self):
        pass


def test_base_is_abstract():
    with pytest.raises(TypeError):
        DSPModule(ParameterState())


def test_bypass_follows_parameter():
    params = ParameterState()
    m = _Gain(params, ParamID.GATE_BYPASS)
    assert m.is_bypassed() is False
    params[ParamID.GATE_BYPASS] = 1.0
    assert m.is_bypassed() is True


def test_no_bypass_id_never_bypassed():
    m = _Gain(ParameterState(), None)
    assert m.is_bypassed() is False


def test_output_level_is_peak():
    m = _Gain(ParameterState())
    m.prepare(ProcessSpec(48000.0, 4, 2))
    block = np.array([[0.1, -0.7], [0.3, 0.2]])
    m.process(block)
    m.update_output_level(block)
    assert m.output_level == pytest.approx(1.4)
    assert m.sample_rate == 48000.0


def test_mic_correction_defaults():
    mc = MicCorrection()
    assert mc.hpf_freq_offset == 0.0 and mc.sat_drive_offset == 0.0
    assert MicCorrection(comp_ratio_offset=1.0).comp_ratio_offset == 1.0
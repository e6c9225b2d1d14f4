import numpy as np
import pytest

from lvox.parameters import ParamID
from lvox.processor import LVOXProcessor

BYPASSES = (
    ParamID.GATE_BYPASS, ParamID.HPF_BYPASS, ParamID.DEESS_BYPASS, ParamID.EQ_BYPASS,
    ParamID.COMP_BYPASS, ParamID.SAT_BYPASS, ParamID.REV_BYPASS, ParamID.DLY_BYPASS,
    ParamID.LIM_BYPASS,
)


def _prepared(num_channels=2, block=64):
    proc = LVOXProcessor()
    proc.prepare_to_play(44100.0, block, num_channels)
    return proc


def _signal(num_channels=2, n=64, amp=0.5):
    t = np.arange(n) / 44100.0
    rows = [amp * np.sin(2 * np.pi * 440.0 * t) * (1.0 - 0.3 * ch) for ch in range(num_channels)]
    return np.array(rows, dtype=float)


@pytest.mark.parametrize("inp,out,expected", [
    (2, 2, True), (1, 1, True), (2, 1, False), (1, 2, False), (6, 6, False),
])
def test_bus_layouts(inp, out, expected):
    assert LVOXProcessor().is_buses_layout_supported(inp, out) is expected


def test_latency_matches_limiter_look_ahead():
    proc = _prepared()
    assert proc.latency_samples == 44
    assert proc.latency_samples == proc.chain.limiter.latency_samples


def test_silence_stays_silent():
    proc = _prepared()
    buf = np.zeros((2, 64))
    proc.process_block(buf)
    assert np.all(buf == 0.0)
    assert proc.output_level == 0.0
    assert proc.input_level == 0.0


def test_input_levels_measured_before_processing():
    proc = _prepared()
    buf = _signal()
    original = buf.copy()
    proc.process_block(buf)
    assert proc.input_level == pytest.approx(np.max(np.abs(original)))
    assert proc.input_level_l == pytest.approx(np.max(np.abs(original[0])))
    assert proc.input_level_r == pytest.approx(np.max(np.abs(original[1])))
    assert proc.output_level_l == pytest.approx(np.max(np.abs(buf[0])))
    assert proc.output_level == pytest.approx(np.max(np.abs(buf)))


def test_mono_buffer_mirrors_levels():
    proc = _prepared(num_channels=1)
    buf = _signal(num_channels=1)
    proc.process_block(buf)
    assert proc.input_level_r == proc.input_level_l
    assert proc.output_level_r == proc.output_level_l


def test_all_bypassed_passes_signal_through():
    proc = _prepared()
    for pid in BYPASSES:
        proc.params[pid] = 1.0
    buf = _signal()
    original = buf.copy()
    proc.process_block(buf)
    np.testing.assert_allclose(buf, original)
    assert proc.output_level == pytest.approx(proc.input_level)


def test_rejects_bad_buffers():
    proc = _prepared()
    with pytest.raises(ValueError):
        proc.process_block(np.zeros(64))
    with pytest.raises(ValueError):
        proc.process_block(np.zeros((2, 64), dtype=int))


def test_host_bpm_reaches_delay():
    proc = _prepared()
    proc.process_block(np.zeros((2, 16)), bpm=90.0)
    assert proc.chain.delay.host_bpm == 90.0


def test_compressor_gain_reduction_reported():
    proc = _prepared()
    buf = _signal(amp=0.9)
    proc.process_block(buf)
    assert proc.compressor_gain_reduction == proc.chain.compressor.gain_reduction
    assert proc.compressor_gain_reduction > 0.0


def test_module_output_levels():
    proc = _prepared()
    proc.process_block(_signal())
    assert proc.module_output_level(-1) == 0.0
    assert proc.module_output_level(9) == 0.0
    assert proc.module_output_level(8) == pytest.approx(proc.output_level)


def test_state_round_trip():
    proc = LVOXProcessor()
    proc.params[ParamID.GLOBAL_INPUT] = 6.0
    data = proc.get_state_information()
    other = LVOXProcessor()
    other.set_state_information(data)
    assert other.params[ParamID.GLOBAL_INPUT] == pytest.approx(6.0)


@pytest.mark.parametrize("data", [b"not xml at all", b"<OTHER_TAG/>", b"\xff\xfe\x00"])
def test_invalid_state_ignored(data):
    proc = LVOXProcessor()
    proc.params[ParamID.GLOBAL_OUTPUT] = -3.0
    proc.set_state_information(data)
    assert proc.params[ParamID.GLOBAL_OUTPUT] == pytest.approx(-3.0)


def test_switch_slot_keeps_separate_settings():
    proc = LVOXProcessor()
    assert proc.is_slot_a
    proc.params[ParamID.GLOBAL_INPUT] = 3.0
    proc.switch_slot()
    assert not proc.is_slot_a
    assert proc.params[ParamID.GLOBAL_INPUT] == pytest.approx(3.0)
    proc.params[ParamID.GLOBAL_INPUT] = 5.0
    proc.switch_slot()
    assert proc.is_slot_a
    assert proc.params[ParamID.GLOBAL_INPUT] == pytest.approx(3.0)
    proc.switch_slot()
    assert proc.params[ParamID.GLOBAL_INPUT] == pytest.approx(5.0)


def test_copy_a_to_b():
    proc = LVOXProcessor()
    proc.params[ParamID.GLOBAL_INPUT] = 2.0
    proc.copy_a_to_b()
    proc.params[ParamID.GLOBAL_INPUT] = 7.0
    proc.switch_slot()
    assert proc.params[ParamID.GLOBAL_INPUT] == pytest.approx(2.0)
    proc.switch_slot()
    assert proc.params[ParamID.GLOBAL_INPUT] == pytest.approx(7.0)


def test_release_resources_resets_limiter():
    proc = _prepared()
    proc.process_block(_signal(amp=1.5))
    assert proc.chain.limiter.gain_reduction < 1.0
    proc.release_resources()
    assert proc.chain.limiter.gain_reduction == 1.0
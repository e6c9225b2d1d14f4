"""The full processing chain: gain staging, nine modules, and the send/bus mode."""

from __future__ import annotations

import numpy as np

from lvox.delay import DelayModule
from lvox.dynamics import CompressorModule, DeEsserModule, LimiterModule, NoiseGateModule
from lvox.filters import ProcessSpec, SmoothedValue, decibels_to_gain
from lvox.module import DSPModule, MicCorrection
from lvox.parameters import ParamID, ParameterState
from lvox.reverb import ReverbModule
from lvox.saturation import SaturationModule
from lvox.tone import HighPassFilterModule, ParametricEQModule

_MIC_CORRECTIONS = {
    1: MicCorrection(  # UAD Sphere LX (C800)
        hpf_freq_offset=20.0,
        deess_freq_offset=1000.0,
        deess_thresh_offset=-4.0,
        deess_reduction_offset=3.0,
        eq_band3_gain_offset=-2.0,
        eq_band4_gain_offset=2.0,
        comp_attack_offset=2.0,
        sat_drive_offset=-8.0,
    ),
    2: MicCorrection(  # Shure MV7
        deess_thresh_offset=4.0,
        deess_reduction_offset=-2.0,
        eq_band2_gain_offset=-1.5,
        eq_band3_gain_offset=3.0,
        comp_ratio_offset=1.0,
        comp_attack_offset=-3.0,
        sat_drive_offset=10.0,
    ),
}

INLINE_STAGES = 6
GAIN_RAMP_SECONDS = 0.02


def mic_correction_for(mic_index: int) -> MicCorrection:
    """Offsets for the microphone at ``mic_index``; no correction for unknown indices."""
    return _MIC_CORRECTIONS.get(int(mic_index), MicCorrection())


class DSPChain:
    """Gate, HPF, de-esser, EQ, compressor, saturation, reverb, delay and limiter in series."""

    def __init__(self, params: ParameterState) -> None:
        self.params = params
        self.noise_gate = NoiseGateModule(params)
        self.high_pass = HighPassFilterModule(params)
        self.de_esser = DeEsserModule(params)
        self.eq = ParametricEQModule(params)
        self.compressor = CompressorModule(params)
        self.saturation = SaturationModule(params)
        self.reverb = ReverbModule(params)
        self.delay = DelayModule(params)
        self.limiter = LimiterModule(params)
        self.modules: tuple[DSPModule, ...] = (
            self.noise_gate, self.high_pass, self.de_esser, self.eq, self.compressor,
            self.saturation, self.reverb, self.delay, self.limiter,
        )
        self.mic_correction = MicCorrection()
        for module in self.modules:
            module.mic_correction = self.mic_correction
        self._input_gain = SmoothedValue(1.0)
        self._output_gain = SmoothedValue(1.0)

    def prepare(self, spec: ProcessSpec) -> None:
        for module in self.modules:
            module.prepare(spec)
        self._input_gain.reset(spec.sample_rate, GAIN_RAMP_SECONDS)
        self._output_gain.reset(spec.sample_rate, GAIN_RAMP_SECONDS)

    def _update_mic_correction(self) -> None:
        self.mic_correction = mic_correction_for(int(self.params[ParamID.MIC_SELECT]))
        for module in self.modules:
            module.mic_correction = self.mic_correction

    @staticmethod
    def _apply_gain(smoothed: SmoothedValue, block: np.ndarray, decibels: float) -> None:
        smoothed.set_target_value(decibels_to_gain(decibels))
        if smoothed.is_smoothing:
            count = block.shape[1]
            gains = np.fromiter((smoothed.get_next_value() for _ in range(count)), float, count)
            block *= gains
        else:
            block *= smoothed.target_value

    @staticmethod
    def _run(module: DSPModule, block: np.ndarray) -> None:
        if not module.is_bypassed():
            module.process(block)
            module.update_output_level(block)

    def process(self, buffer: np.ndarray) -> None:
        """Process a (channels, samples) buffer in place."""
        p = self.params
        self._update_mic_correction()
        self._apply_gain(self._input_gain, buffer, p[ParamID.GLOBAL_INPUT])

        if p[ParamID.SEND_MODE] <= 0.5:
            for module in self.modules:
                self._run(module, buffer)
        else:
            for module in self.modules[:INLINE_STAGES]:
                self._run(module, buffer)

            reverb_send = buffer * (p[ParamID.SEND_REV_LEVEL] / 100.0)
            delay_send = buffer * (p[ParamID.SEND_DLY_LEVEL] / 100.0)
            if not self.reverb.is_bypassed():
                self.reverb.process(reverb_send)
            if not self.delay.is_bypassed():
                self.delay.process(delay_send)
            buffer += reverb_send
            buffer += delay_send

            if not self.limiter.is_bypassed():
                self.limiter.process(buffer)

        self._apply_gain(self._output_gain, buffer, p[ParamID.GLOBAL_OUTPUT])

    def reset(self) -> None:
        for module in self.modules:
            module.reset()

    def set_host_bpm(self, bpm: float) -> None:
        self.delay.set_host_bpm(bpm)

    def module_output_level(self, index: int) -> float:
        """Peak output of the module at ``index``, or 0.0 for an index out of range."""
        if 0 <= index < len(self.modules):
            return self.modules[index].output_level
        return 0.0
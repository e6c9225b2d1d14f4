"""Dynamics processors: noise gate, limiter, compressor and de-esser."""

from __future__ import annotations

import math

import numpy as np

from lvox.filters import (
    Coefficients, DelayLine, MultiChannelBiquad, ProcessSpec, decibels_to_gain, gain_to_decibels,
)
from lvox.module import DSPModule
from lvox.parameters import ParamID, ParameterState


def _coefficient(sample_rate: float, time_ms: float) -> float:
    return math.exp(-1.0 / (sample_rate * time_ms * 0.001))


def _clip(low: float, high: float, value: float) -> float:
    return min(high, max(low, value))


class NoiseGateModule(DSPModule):
    """Downward expander with an attenuation floor."""

    def __init__(self, params: ParameterState) -> None:
        super().__init__(params, ParamID.GATE_BYPASS)
        self.envelope = 0.0
        self.current_gain = 1.0

    def prepare(self, spec: ProcessSpec) -> None:
        self.sample_rate = spec.sample_rate
        self.reset()

    def process(self, block: np.ndarray) -> None:
        p = self.params
        threshold_db = p[ParamID.GATE_THRESHOLD]
        ratio = p[ParamID.GATE_RATIO]
        threshold = decibels_to_gain(threshold_db)
        range_lin = decibels_to_gain(p[ParamID.GATE_RANGE])
        attack = _coefficient(self.sample_rate, p[ParamID.GATE_ATTACK])
        release = _coefficient(self.sample_rate, p[ParamID.GATE_RELEASE])

        for i in range(block.shape[1]):
            peak = float(np.max(np.abs(block[:, i]))) if block.shape[0] else 0.0
            coeff = attack if peak > self.envelope else release
            self.envelope = coeff * self.envelope + (1.0 - coeff) * peak

            target = 1.0
            if self.envelope < threshold:
                below = gain_to_decibels(self.envelope) - threshold_db
                target = max(decibels_to_gain(below * (1.0 - 1.0 / ratio)), range_lin)

            self.current_gain = self.current_gain * 0.999 + target * 0.001
            block[:, i] *= self.current_gain

    def reset(self) -> None:
        self.envelope = 0.0
        self.current_gain = 1.0


class LimiterModule(DSPModule):
    """Look-ahead peak limiter with instant attack and smooth release."""

    LOOK_AHEAD_MS = 1.0

    def __init__(self, params: ParameterState) -> None:
        super().__init__(params, ParamID.LIM_BYPASS)
        self.gain_reduction = 1.0
        self.latency_samples = 0
        self._delay = DelayLine(512)

    def prepare(self, spec: ProcessSpec) -> None:
        self.sample_rate = spec.sample_rate
        self.gain_reduction = 1.0
        self.latency_samples = int(self.LOOK_AHEAD_MS * 0.001 * self.sample_rate)
        self._delay.prepare(spec.num_channels)
        self._delay.set_maximum_delay(self.latency_samples + 1)
        self._delay.set_delay(self.latency_samples)

    def process(self, block: np.ndarray) -> None:
        ceiling = decibels_to_gain(self.params[ParamID.LIM_CEILING])
        release = _coefficient(self.sample_rate, self.params[ParamID.LIM_RELEASE])

        for i in range(block.shape[1]):
            peak = float(np.max(np.abs(block[:, i]))) if block.shape[0] else 0.0
            target = ceiling / peak if peak > ceiling and peak > 0.0 else 1.0
            if target < self.gain_reduction:
                self.gain_reduction = target
            else:
                self.gain_reduction = release * self.gain_reduction + (1.0 - release) * target

            for ch in range(block.shape[0]):
                self._delay.push_sample(ch, float(block[ch, i]))
                block[ch, i] = self._delay.pop_sample(ch) * self.gain_reduction

    def reset(self) -> None:
        self.gain_reduction = 1.0
        self._delay.reset()


class CompressorModule(DSPModule):
    """Soft-knee compressor with optional sidechain high-pass and parallel mix."""

    def __init__(self, params: ParameterState) -> None:
        super().__init__(params, ParamID.COMP_BYPASS)
        self._sidechain_hpf = MultiChannelBiquad()
        self.envelope = 0.0
        self.gain_reduction = 0.0

    def prepare(self, spec: ProcessSpec) -> None:
        self.sample_rate = spec.sample_rate
        self._sidechain_hpf.prepare(spec.num_channels)
        self.envelope = 0.0
        self.gain_reduction = 0.0

    def process(self, block: np.ndarray) -> None:
        p = self.params
        thresh_db = p[ParamID.COMP_THRESHOLD]
        ratio = p[ParamID.COMP_RATIO]
        attack_ms = p[ParamID.COMP_ATTACK]
        if self.mic_correction is not None:
            ratio = _clip(1.0, 20.0, ratio + self.mic_correction.comp_ratio_offset)
            attack_ms = _clip(0.1, 200.0, attack_ms + self.mic_correction.comp_attack_offset)
        knee_db = p[ParamID.COMP_KNEE]
        makeup = decibels_to_gain(p[ParamID.COMP_MAKEUP])
        mix = p[ParamID.COMP_MIX] / 100.0
        attack = _coefficient(self.sample_rate, attack_ms)
        release = _coefficient(self.sample_rate, p[ParamID.COMP_RELEASE])

        sidechain = block.copy()
        if p[ParamID.COMP_SC_ACTIVE] > 0.5:
            self._sidechain_hpf.coefficients = Coefficients.make_high_pass(
                self.sample_rate, p[ParamID.COMP_SC_FREQ])
            self._sidechain_hpf.process(sidechain)

        dry = block.copy()
        half_knee = knee_db / 2.0
        slope = 1.0 - 1.0 / ratio

        for i in range(block.shape[1]):
            peak = float(np.max(np.abs(sidechain[:, i]))) if block.shape[0] else 0.0
            peak_db = gain_to_decibels(peak)
            coeff = attack if peak_db > self.envelope else release
            self.envelope = coeff * self.envelope + (1.0 - coeff) * peak_db

            reduction = 0.0
            if self.envelope > thresh_db + half_knee:
                reduction = (self.envelope - thresh_db) * slope
            elif self.envelope > thresh_db - half_knee:
                x = self.envelope - thresh_db + half_knee
                reduction = (x * x) / (4.0 * knee_db) * slope

            self.gain_reduction = reduction
            block[:, i] *= decibels_to_gain(-reduction) * makeup

        if mix < 1.0:
            block[:] = dry + mix * (block - dry)

    def reset(self) -> None:
        self._sidechain_hpf.reset()
        self.envelope = 0.0
        self.gain_reduction = 0.0


class DeEsserModule(DSPModule):
    """Band-pass sidechain de-esser with a listen mode."""

    Q = 2.0

    def __init__(self, params: ParameterState) -> None:
        super().__init__(params, ParamID.DEESS_BYPASS)
        self._bandpass = MultiChannelBiquad()
        self.envelope = 0.0

    def prepare(self, spec: ProcessSpec) -> None:
        self.sample_rate = spec.sample_rate
        self._bandpass.prepare(spec.num_channels)
        self.envelope = 0.0

    def process(self, block: np.ndarray) -> None:
        p = self.params
        freq = p[ParamID.DEESS_FREQUENCY]
        thresh_db = p[ParamID.DEESS_THRESHOLD]
        max_reduction = p[ParamID.DEESS_REDUCTION]
        if self.mic_correction is not None:
            mc = self.mic_correction
            freq = _clip(2000.0, 12000.0, freq + mc.deess_freq_offset)
            thresh_db = _clip(-40.0, 0.0, thresh_db + mc.deess_thresh_offset)
            max_reduction = _clip(0.0, 24.0, max_reduction + mc.deess_reduction_offset)
        threshold = decibels_to_gain(thresh_db)

        self._bandpass.coefficients = Coefficients.make_band_pass(self.sample_rate, freq, self.Q)
        sidechain = block.copy()
        self._bandpass.process(sidechain)

        if p[ParamID.DEESS_LISTEN] > 0.5:
            block[:] = sidechain
            return

        attack = _coefficient(self.sample_rate, p[ParamID.DEESS_ATTACK])
        release = _coefficient(self.sample_rate, p[ParamID.DEESS_RELEASE])

        for i in range(block.shape[1]):
            peak = float(np.max(np.abs(sidechain[:, i]))) if block.shape[0] else 0.0
            if peak > self.envelope:
                self.envelope = attack * self.envelope + (1.0 - attack) * peak
            else:
                self.envelope = release * self.envelope

            gain = 1.0
            if self.envelope > threshold:
                over = gain_to_decibels(self.envelope) - thresh_db
                gain = decibels_to_gain(-min(over, max_reduction))
            block[:, i] *= gain

    def reset(self) -> None:
        self._bandpass.reset()
        self.envelope = 0.0
"""Feedback delay with tempo sync and filtered repeats."""

from __future__ import annotations

import numpy as np

from lvox.filters import Biquad, Coefficients, DelayLine, Interpolation, ProcessSpec
from lvox.module import DSPModule
from lvox.parameters import ParamID, ParameterState

# 1/4, 1/8, 1/8D, 1/8T, 1/16, 1/16D, 1/16T as fractions of a beat
NOTE_MULTIPLIERS = (1.0, 0.5, 0.75, 1.0 / 3.0, 0.25, 0.375, 1.0 / 6.0)


class DelayModule(DSPModule):
    """Delay whose feedback path passes through a low-cut and a high-cut filter."""

    def __init__(self, params: ParameterState) -> None:
        super().__init__(params, ParamID.DLY_BYPASS)
        self.host_bpm = 120.0
        self._line = DelayLine(96000, Interpolation.LAGRANGE3)
        self._low_cut: list[Biquad] = []
        self._high_cut: list[Biquad] = []

    def prepare(self, spec: ProcessSpec) -> None:
        self.sample_rate = spec.sample_rate
        self._line.prepare(spec.num_channels)
        self._line.set_maximum_delay(int(self.sample_rate * 2.0 + 1))
        self._low_cut = [Biquad() for _ in range(spec.num_channels)]
        self._high_cut = [Biquad() for _ in range(spec.num_channels)]

    def set_host_bpm(self, bpm: float) -> None:
        self.host_bpm = float(bpm)

    def delay_time_ms(self) -> float:
        """Delay time in milliseconds, from the time control or the synced note."""
        if self.params[ParamID.DLY_SYNC] <= 0.5:
            return self.params[ParamID.DLY_TIME]
        note = int(self.params[ParamID.DLY_NOTE])
        return 60000.0 / self.host_bpm * NOTE_MULTIPLIERS[note]

    def process(self, block: np.ndarray) -> None:
        p = self.params
        feedback = p[ParamID.DLY_FEEDBACK] / 100.0
        mix = p[ParamID.DLY_MIX] / 100.0

        delay_samples = self.delay_time_ms() * 0.001 * self.sample_rate
        delay_samples = min(self.sample_rate * 2.0, max(1.0, delay_samples))
        self._line.set_delay(delay_samples)

        low_cut = Coefficients.make_high_pass(self.sample_rate, p[ParamID.DLY_LOWCUT])
        high_cut = Coefficients.make_low_pass(self.sample_rate, p[ParamID.DLY_HIGHCUT])
        for lc, hc in zip(self._low_cut, self._high_cut):
            lc.coefficients = low_cut
            hc.coefficients = high_cut

        filtered = len(self._low_cut)
        for i in range(block.shape[1]):
            for ch in range(block.shape[0]):
                dry = float(block[ch, i])
                delayed = self._line.pop_sample(ch)
                repeat = delayed * feedback
                if ch < filtered:
                    repeat = self._high_cut[ch].process_sample(
                        self._low_cut[ch].process_sample(repeat))
                self._line.push_sample(ch, dry + repeat)
                block[ch, i] = dry + delayed * mix

    def reset(self) -> None:
        self._line.reset()
        for f in (*self._low_cut, *self._high_cut):
            f.reset()
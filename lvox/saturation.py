"""Oversampled saturation with four waveshaping curves, tone tilt and dry/wet mix."""

from __future__ import annotations

from enum import IntEnum

import numpy as np

from lvox.filters import (
    Biquad, Coefficients, MultiChannelBiquad, ProcessSpec, SmoothedValue, decibels_to_gain,
)
from lvox.module import DSPModule
from lvox.parameters import ParamID, ParameterState


class SaturationType(IntEnum):
    TAPE = 0
    TUBE = 1
    SOFT_CLIP = 2
    HARD_CLIP = 3


def _result(out: np.ndarray):
    return out if out.ndim else float(out)


def process_tape(x, drive):
    """Symmetric tanh saturation."""
    return _result(np.tanh(np.asarray(x, dtype=float) * drive))


def process_tube(x, drive):
    """Soft saturation with an added even-harmonic term."""
    driven = np.asarray(x, dtype=float) * drive
    return _result(driven / (1.0 + np.abs(driven)) + 0.1 * driven * driven)


def process_soft_clip(x, drive):
    """Cubic soft clipper that flattens to +/- 2/3 beyond unity."""
    driven = np.asarray(x, dtype=float) * drive
    clipped = np.where(driven > 0.0, 2.0 / 3.0, -2.0 / 3.0)
    return _result(np.where(np.abs(driven) < 1.0, driven - driven ** 3 / 3.0, clipped))


def process_hard_clip(x, drive):
    """Clamp the driven signal to [-1, 1]."""
    return _result(np.clip(np.asarray(x, dtype=float) * drive, -1.0, 1.0))


_SHAPERS = {
    SaturationType.TAPE: process_tape,
    SaturationType.TUBE: process_tube,
    SaturationType.SOFT_CLIP: process_soft_clip,
    SaturationType.HARD_CLIP: process_hard_clip,
}

_EMPHASIS = {
    SaturationType.TAPE: (3.0, 1500.0),
    SaturationType.TUBE: (2.0, 2500.0),
    SaturationType.SOFT_CLIP: (1.5, 3000.0),
    SaturationType.HARD_CLIP: (1.0, 3000.0),
}


class Oversampler:
    """2x oversampler using zero-stuffing and low-pass interpolation/decimation filters."""

    FACTOR = 2
    _STAGES = 2
    # Cut-off at 90% of the original Nyquist, in units where the oversampled rate is 4.
    _COEFFICIENTS = Coefficients.make_low_pass(4.0, 0.9)

    def __init__(self, num_channels: int = 1) -> None:
        self.num_channels = num_channels
        self._up: list[list[Biquad]] = []
        self._down: list[list[Biquad]] = []
        self._ensure(num_channels)

    def _chain(self) -> list[Biquad]:
        return [Biquad(self._COEFFICIENTS) for _ in range(self._STAGES)]

    def _ensure(self, num_channels: int) -> None:
        while len(self._up) < num_channels:
            self._up.append(self._chain())
            self._down.append(self._chain())
        self.num_channels = max(self.num_channels, num_channels)

    @staticmethod
    def _run(chain: list[Biquad], samples: np.ndarray) -> np.ndarray:
        for stage in chain:
            samples = stage.process(samples)
        return samples

    def process_up(self, block: np.ndarray) -> np.ndarray:
        """Return a (channels, 2 * samples) upsampled copy of ``block``."""
        self._ensure(block.shape[0])
        upsampled = np.zeros((block.shape[0], block.shape[1] * self.FACTOR))
        upsampled[:, ::self.FACTOR] = block * self.FACTOR
        for channel, chain in zip(upsampled, self._up):
            channel[:] = self._run(chain, channel)
        return upsampled

    def process_down(self, upsampled: np.ndarray) -> np.ndarray:
        """Filter and decimate an upsampled block back to the original rate."""
        self._ensure(upsampled.shape[0])
        filtered = np.empty_like(upsampled)
        for channel, source, chain in zip(filtered, upsampled, self._down):
            channel[:] = self._run(chain, source)
        return filtered[:, ::self.FACTOR].copy()

    def reset(self) -> None:
        for chain in (*self._up, *self._down):
            for stage in chain:
                stage.reset()


class SaturationModule(DSPModule):
    """Drive, emphasis, waveshaping, tone tilt, output gain and parallel mix."""

    def __init__(self, params: ParameterState) -> None:
        super().__init__(params, ParamID.SAT_BYPASS)
        self._oversampler = Oversampler(2)
        self._tone = MultiChannelBiquad()
        self._pre_emphasis = MultiChannelBiquad()
        self._de_emphasis = MultiChannelBiquad()
        self._drive = SmoothedValue(1.0)
        self._output = SmoothedValue(1.0)
        self._mix = SmoothedValue(0.5)

    def prepare(self, spec: ProcessSpec) -> None:
        self.sample_rate = spec.sample_rate
        self._oversampler = Oversampler(spec.num_channels)
        for f in (self._tone, self._pre_emphasis, self._de_emphasis):
            f.prepare(spec.num_channels)
        for smoothed in (self._drive, self._output, self._mix):
            smoothed.reset(spec.sample_rate, 0.02)

    @staticmethod
    def _ramp(smoothed: SmoothedValue, shape: tuple[int, int]) -> np.ndarray:
        count = shape[0] * shape[1]
        values = np.fromiter((smoothed.get_next_value() for _ in range(count)), float, count)
        return values.reshape(shape)

    def process(self, block: np.ndarray) -> None:
        p = self.params
        drive_pct = p[ParamID.SAT_DRIVE]
        if self.mic_correction is not None:
            drive_pct = min(100.0, max(0.0, drive_pct + self.mic_correction.sat_drive_offset))
        sat_type = int(p[ParamID.SAT_TYPE])
        tone = p[ParamID.SAT_TONE]

        self._drive.set_target_value(1.0 + drive_pct * 0.09)
        self._output.set_target_value(decibels_to_gain(p[ParamID.SAT_OUTPUT]))
        self._mix.set_target_value(p[ParamID.SAT_MIX] / 100.0)

        dry = block.copy()

        emphasis_db, emphasis_freq = _EMPHASIS.get(sat_type, (0.0, 2000.0))
        amount = emphasis_db * (drive_pct / 100.0)
        os_rate = self.sample_rate * 2.0
        self._pre_emphasis.coefficients = Coefficients.make_high_shelf(
            os_rate, emphasis_freq, 0.7, decibels_to_gain(amount))
        self._de_emphasis.coefficients = Coefficients.make_high_shelf(
            os_rate, emphasis_freq, 0.7, decibels_to_gain(-amount))

        upsampled = self._oversampler.process_up(block)
        self._pre_emphasis.process(upsampled)

        drives = self._ramp(self._drive, upsampled.shape)
        shaper = _SHAPERS.get(sat_type)
        if shaper is not None:
            upsampled[:] = shaper(upsampled, drives)

        self._de_emphasis.process(upsampled)
        block[:] = self._oversampler.process_down(upsampled)

        self._tone.coefficients = Coefficients.make_high_shelf(
            self.sample_rate, 1000.0, 0.7, decibels_to_gain(tone / 100.0 * 6.0))
        self._tone.process(block)

        out_gain = self._ramp(self._output, block.shape)
        mix = self._ramp(self._mix, block.shape)
        wet = block * out_gain
        block[:] = dry + mix * (wet - dry)

    def reset(self) -> None:
        self._oversampler.reset()
        for f in (self._tone, self._pre_emphasis, self._de_emphasis):
            f.reset()
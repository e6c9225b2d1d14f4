"""Plate reverb: a Dattorro-style tank with pre-delay, post filters and dry/wet mix."""

from __future__ import annotations

import numpy as np

from lvox.filters import Coefficients, DelayLine, MultiChannelBiquad, ProcessSpec
from lvox.module import DSPModule
from lvox.parameters import ParamID, ParameterState

# Delay lengths in the reference design are given at this sample rate.
REFERENCE_RATE = 29761.0


def _clip(low: float, high: float, value: float) -> float:
    return min(high, max(low, value))


class _Allpass:
    """Schroeder allpass over a circular buffer."""

    __slots__ = ("buffer", "write_idx", "size", "feedback")

    def __init__(self, num_samples: int = 1, feedback: float = 0.5) -> None:
        self.init(num_samples, feedback)

    def init(self, num_samples: int, feedback: float = 0.5) -> None:
        self.size = max(1, num_samples)
        self.buffer = [0.0] * self.size
        self.write_idx = 0
        self.feedback = feedback

    def process(self, x: float) -> float:
        delayed = self.buffer[self.write_idx]
        v = x + delayed * self.feedback
        self.buffer[self.write_idx] = v
        self.write_idx = (self.write_idx + 1) % self.size
        return delayed - v * self.feedback

    def peek(self, offset: int) -> float:
        return self.buffer[(self.write_idx + offset) % self.size]

    def clear(self) -> None:
        self.buffer = [0.0] * self.size
        self.write_idx = 0


class _DelayBuffer:
    """Plain circular delay buffer with arbitrary read taps."""

    __slots__ = ("buffer", "write_idx", "size")

    def __init__(self, num_samples: int = 1) -> None:
        self.init(num_samples)

    def init(self, num_samples: int) -> None:
        self.size = max(1, num_samples)
        self.buffer = [0.0] * self.size
        self.write_idx = 0

    def push(self, value: float) -> None:
        self.buffer[self.write_idx] = value
        self.write_idx = (self.write_idx + 1) % self.size

    def read(self, offset: int) -> float:
        return self.buffer[(self.write_idx - offset) % self.size]

    def tap(self) -> float:
        return self.buffer[self.write_idx]

    def clear(self) -> None:
        self.buffer = [0.0] * self.size
        self.write_idx = 0


class _OnePole:
    """One-pole low-pass used for damping inside the tank."""

    __slots__ = ("z1", "coeff")

    def __init__(self) -> None:
        self.z1 = 0.0
        self.coeff = 0.5

    def process(self, x: float) -> float:
        self.z1 = x * (1.0 - self.coeff) + self.z1 * self.coeff
        return self.z1

    def clear(self) -> None:
        self.z1 = 0.0


class DattorroPlate:
    """Stereo plate reverb: four input diffusers feeding a two-branch cross-coupled tank."""

    def __init__(self) -> None:
        self.sample_rate = 44100.0
        self._decay = 0.7
        self._damping = 0.5
        self._size = 1.0
        self._input_ap = [_Allpass() for _ in range(4)]
        self._tank_ap = [_Allpass() for _ in range(2)]
        self._tank_delay1 = [_DelayBuffer() for _ in range(2)]
        self._tank_delay2 = [_DelayBuffer() for _ in range(2)]
        self._tank_damp = [_OnePole() for _ in range(2)]

    @property
    def decay(self) -> float:
        return self._decay

    @decay.setter
    def decay(self, value: float) -> None:
        self._decay = _clip(0.0, 0.999, value)

    @property
    def damping(self) -> float:
        return self._damping

    @damping.setter
    def damping(self, value: float) -> None:
        self._damping = _clip(0.0, 1.0, value)

    @property
    def size(self) -> float:
        return self._size

    @size.setter
    def size(self, value: float) -> None:
        self._size = _clip(0.3, 2.0, value)

    def prepare(self, sample_rate: float) -> None:
        self.sample_rate = float(sample_rate)
        scale = self.sample_rate / REFERENCE_RATE

        for ap, length, feedback in zip(self._input_ap, (142.0, 107.0, 379.0, 277.0),
                                        (0.75, 0.75, 0.625, 0.625)):
            ap.init(int(length * scale), feedback)

        self._tank_ap[0].init(int(672.0 * scale), -0.7)
        self._tank_delay1[0].init(int(4453.0 * scale))
        self._tank_delay2[0].init(int(3720.0 * scale))

        self._tank_ap[1].init(int(908.0 * scale), -0.7)
        self._tank_delay1[1].init(int(4217.0 * scale))
        self._tank_delay2[1].init(int(3163.0 * scale))

        self.reset()

    def process(self, input_l: float, input_r: float) -> tuple[float, float]:
        """Run one stereo sample through the plate and return the wet output pair."""
        v = (input_l + input_r) * 0.5
        for ap in self._input_ap:
            v = ap.process(v)

        decay = self._decay
        ap0, ap1 = self._tank_ap
        d1a, d1b = self._tank_delay1
        d2a, d2b = self._tank_delay2
        damp0, damp1 = self._tank_damp

        ap0.feedback = ap1.feedback = -0.7 * _clip(0.1, 0.99, decay)
        damp0.coeff = damp1.coeff = self._damping

        tank0_in = v + d2b.tap() * decay
        tank1_in = v + d2a.tap() * decay

        d1a.push(ap0.process(tank0_in))
        d2a.push(damp0.process(d1a.tap()) * decay)

        d1b.push(ap1.process(tank1_in))
        d2b.push(damp1.process(d1b.tap()) * decay)

        s = int(self.sample_rate / REFERENCE_RATE)
        out_l = (d1a.read(266 * s) + d1a.read(2974 * s)
                 - ap1.peek(1333 * s)
                 + d2b.read(1913 * s)
                 - d1b.read(1996 * s)
                 - ap0.peek(1066 * s)
                 - d2a.read(187 * s))
        out_r = (d1b.read(353 * s) + d1b.read(3627 * s)
                 - ap0.peek(1228 * s)
                 + d2a.read(2656 * s)
                 - d1a.read(2111 * s)
                 - ap1.peek(335 * s)
                 - d2b.read(121 * s))
        return out_l * 0.6, out_r * 0.6

    def reset(self) -> None:
        for part in (*self._input_ap, *self._tank_ap, *self._tank_delay1,
                     *self._tank_delay2, *self._tank_damp):
            part.clear()


class ReverbModule(DSPModule):
    """Pre-delay, plate reverb, low/high cut on the wet signal and a dry/wet mix."""

    def __init__(self, params: ParameterState) -> None:
        super().__init__(params, ParamID.REV_BYPASS)
        self.plate = DattorroPlate()
        self._predelay = DelayLine(44100)
        self._low_cut = MultiChannelBiquad()
        self._high_cut = MultiChannelBiquad()

    def prepare(self, spec: ProcessSpec) -> None:
        self.sample_rate = spec.sample_rate
        self.plate.prepare(spec.sample_rate)
        self._predelay.prepare(spec.num_channels)
        self._predelay.set_maximum_delay(int(self.sample_rate * 0.2 + 1))
        self._low_cut.prepare(spec.num_channels)
        self._high_cut.prepare(spec.num_channels)

    def process(self, block: np.ndarray) -> None:
        p = self.params
        size = p[ParamID.REV_SIZE] / 100.0
        mix = p[ParamID.REV_MIX] / 100.0

        dry = block.copy()

        self._predelay.set_delay(p[ParamID.REV_PREDELAY] * 0.001 * self.sample_rate)
        for ch, channel in enumerate(block):
            for i, sample in enumerate(channel):
                self._predelay.push_sample(ch, float(sample))
                channel[i] = self._predelay.pop_sample(ch)

        self.plate.decay = 0.1 + size * 0.89
        self.plate.damping = p[ParamID.REV_DAMPING] / 100.0
        self.plate.size = 0.5 + size * 1.5

        if block.shape[0] >= 2:
            left, right = block[0], block[1]
            for i in range(block.shape[1]):
                left[i], right[i] = self.plate.process(float(left[i]), float(right[i]))
        elif block.shape[0] == 1:
            mono = block[0]
            for i, sample in enumerate(mono):
                out_l, out_r = self.plate.process(float(sample), float(sample))
                mono[i] = (out_l + out_r) * 0.5

        self._low_cut.coefficients = Coefficients.make_high_pass(
            self.sample_rate, p[ParamID.REV_LOWCUT])
        self._high_cut.coefficients = Coefficients.make_low_pass(
            self.sample_rate, p[ParamID.REV_HIGHCUT])
        self._low_cut.process(block)
        self._high_cut.process(block)

        block[:] = dry + mix * (block - dry)

    def reset(self) -> None:
        self.plate.reset()
        self._predelay.reset()
        self._low_cut.reset()
        self._high_cut.reset()
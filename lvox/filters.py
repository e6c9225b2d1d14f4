"""Decibel helpers and the small DSP building blocks shared by the processing modules."""

from __future__ import annotations

import cmath
import math
from dataclasses import dataclass
from enum import Enum

import numpy as np

DEFAULT_MINUS_INFINITY_DB = -100.0
_BUTTERWORTH_Q = 1.0 / math.sqrt(2.0)


def decibels_to_gain(decibels: float, minus_infinity_db: float = DEFAULT_MINUS_INFINITY_DB) -> float:
    """Convert decibels to a linear gain; anything at or below the floor is silence."""
    if decibels > minus_infinity_db:
        return 10.0 ** (decibels * 0.05)
    return 0.0


def gain_to_decibels(gain: float, minus_infinity_db: float = DEFAULT_MINUS_INFINITY_DB) -> float:
    """Convert a linear gain to decibels, never going below the floor."""
    if gain > 0.0:
        return max(minus_infinity_db, 20.0 * math.log10(gain))
    return minus_infinity_db


@dataclass(frozen=True)
class ProcessSpec:
    """Sample rate, block size and channel count a processor is prepared for."""

    sample_rate: float
    maximum_block_size: int
    num_channels: int


@dataclass(frozen=True)
class Coefficients:
    """Normalised second-order IIR coefficients (a0 == 1)."""

    b0: float
    b1: float
    b2: float
    a1: float
    a2: float

    @classmethod
    def _normalised(cls, b0: float, b1: float, b2: float,
                    a0: float, a1: float, a2: float) -> "Coefficients":
        return cls(b0 / a0, b1 / a0, b2 / a0, a1 / a0, a2 / a0)

    @staticmethod
    def _check(sample_rate: float, frequency: float) -> None:
        if sample_rate <= 0:
            raise ValueError("sample rate must be positive")
        if not 0 < frequency <= sample_rate * 0.5:
            raise ValueError("frequency must lie between 0 and Nyquist")

    @classmethod
    def make_high_pass(cls, sample_rate: float, frequency: float) -> "Coefficients":
        """Second-order Butterworth high-pass."""
        cls._check(sample_rate, frequency)
        n = 1.0 / math.tan(math.pi * frequency / sample_rate)
        n_sq = n * n
        inv_q = 1.0 / _BUTTERWORTH_Q
        c1 = 1.0 / (1.0 + inv_q * n + n_sq)
        return cls(c1 * n_sq, -2.0 * c1 * n_sq, c1 * n_sq,
                   c1 * 2.0 * (1.0 - n_sq), c1 * (1.0 - inv_q * n + n_sq))

    @classmethod
    def make_low_pass(cls, sample_rate: float, frequency: float) -> "Coefficients":
        """Second-order Butterworth low-pass."""
        cls._check(sample_rate, frequency)
        n = 1.0 / math.tan(math.pi * frequency / sample_rate)
        n_sq = n * n
        inv_q = 1.0 / _BUTTERWORTH_Q
        c1 = 1.0 / (1.0 + inv_q * n + n_sq)
        return cls(c1, 2.0 * c1, c1,
                   c1 * 2.0 * (1.0 - n_sq), c1 * (1.0 - inv_q * n + n_sq))

    @classmethod
    def make_band_pass(cls, sample_rate: float, frequency: float, q: float) -> "Coefficients":
        cls._check(sample_rate, frequency)
        n = 1.0 / math.tan(math.pi * frequency / sample_rate)
        n_sq = n * n
        inv_q = 1.0 / q
        c1 = 1.0 / (1.0 + inv_q * n + n_sq)
        return cls(c1 * n * inv_q, 0.0, -c1 * n * inv_q,
                   c1 * 2.0 * (1.0 - n_sq), c1 * (1.0 - inv_q * n + n_sq))

    @classmethod
    def make_peak_filter(cls, sample_rate: float, frequency: float, q: float,
                         gain: float) -> "Coefficients":
        cls._check(sample_rate, frequency)
        a = math.sqrt(max(gain, 1e-6))
        omega = 2.0 * math.pi * frequency / sample_rate
        alpha = math.sin(omega) / (2.0 * q)
        c2 = -2.0 * math.cos(omega)
        return cls._normalised(1.0 + alpha * a, c2, 1.0 - alpha * a,
                               1.0 + alpha / a, c2, 1.0 - alpha / a)

    @classmethod
    def _shelf_terms(cls, sample_rate: float, frequency: float, q: float, gain: float):
        cls._check(sample_rate, frequency)
        a = math.sqrt(max(gain, 1e-6))
        omega = 2.0 * math.pi * frequency / sample_rate
        coso = math.cos(omega)
        beta = math.sin(omega) * math.sqrt(a) / q
        return a, a - 1.0, a + 1.0, coso, beta

    @classmethod
    def make_low_shelf(cls, sample_rate: float, frequency: float, q: float,
                       gain: float) -> "Coefficients":
        a, am1, ap1, coso, beta = cls._shelf_terms(sample_rate, frequency, q, gain)
        am1c = am1 * coso
        return cls._normalised(a * (ap1 - am1c + beta), a * 2.0 * (am1 - ap1 * coso),
                               a * (ap1 - am1c - beta), ap1 + am1c + beta,
                               -2.0 * (am1 + ap1 * coso), ap1 + am1c - beta)

    @classmethod
    def make_high_shelf(cls, sample_rate: float, frequency: float, q: float,
                        gain: float) -> "Coefficients":
        a, am1, ap1, coso, beta = cls._shelf_terms(sample_rate, frequency, q, gain)
        am1c = am1 * coso
        return cls._normalised(a * (ap1 + am1c + beta), a * -2.0 * (am1 + ap1 * coso),
                               a * (ap1 + am1c - beta), ap1 - am1c + beta,
                               2.0 * (am1 - ap1 * coso), ap1 - am1c - beta)

    def magnitude_at(self, frequency: float, sample_rate: float) -> float:
        """Magnitude of the frequency response at ``frequency``."""
        z = cmath.exp(-1j * 2.0 * math.pi * frequency / sample_rate)
        num = self.b0 + self.b1 * z + self.b2 * z * z
        den = 1.0 + self.a1 * z + self.a2 * z * z
        return abs(num / den)


_IDENTITY = Coefficients(1.0, 0.0, 0.0, 0.0, 0.0)


class Biquad:
    """A single-channel transposed direct form II biquad."""

    def __init__(self, coefficients: Coefficients = _IDENTITY) -> None:
        self.coefficients = coefficients
        self._s1 = 0.0
        self._s2 = 0.0

    def process_sample(self, x: float) -> float:
        c = self.coefficients
        y = c.b0 * x + self._s1
        self._s1 = c.b1 * x - c.a1 * y + self._s2
        self._s2 = c.b2 * x - c.a2 * y
        return y

    def process(self, samples) -> np.ndarray:
        """Filter a sequence of samples and return the filtered copy."""
        return np.array([self.process_sample(float(x)) for x in samples], dtype=float)

    def reset(self) -> None:
        self._s1 = 0.0
        self._s2 = 0.0


class MultiChannelBiquad:
    """One biquad per channel, all sharing the same coefficients."""

    def __init__(self, coefficients: Coefficients = _IDENTITY) -> None:
        self.coefficients = coefficients
        self._filters: list[Biquad] = []

    def prepare(self, num_channels: int) -> None:
        self._filters = [Biquad() for _ in range(num_channels)]

    def process(self, block: np.ndarray) -> None:
        """Filter a (channels, samples) block in place."""
        while len(self._filters) < block.shape[0]:
            self._filters.append(Biquad())
        for channel, biquad in zip(block, self._filters):
            biquad.coefficients = self.coefficients
            channel[:] = biquad.process(channel)

    def reset(self) -> None:
        for biquad in self._filters:
            biquad.reset()


class Interpolation(Enum):
    NONE = "none"
    LINEAR = "linear"
    LAGRANGE3 = "lagrange3"


class DelayLine:
    """A multi-channel fractional delay line."""

    def __init__(self, max_delay: int = 0, interpolation: Interpolation = Interpolation.LINEAR) -> None:
        self.interpolation = interpolation
        self._num_channels = 0
        self._delay_int = 0
        self._delay_frac = 0.0
        self.delay = 0.0
        self.set_maximum_delay(max_delay)

    def prepare(self, num_channels: int) -> None:
        self._num_channels = num_channels
        self._allocate()

    def _allocate(self) -> None:
        self._buffer = np.zeros((self._num_channels, self._total_size))
        self._write_pos = [0] * self._num_channels
        self._read_pos = [0] * self._num_channels

    def set_maximum_delay(self, max_delay: int) -> None:
        if max_delay < 0:
            raise ValueError("maximum delay must not be negative")
        self.maximum_delay = int(max_delay)
        self._total_size = max(4, self.maximum_delay + 2)
        self._allocate()
        self.set_delay(min(self.delay, self.maximum_delay))

    def set_delay(self, delay: float) -> None:
        delay = min(float(self.maximum_delay), max(0.0, float(delay)))
        self.delay = delay
        self._delay_int = math.floor(delay)
        self._delay_frac = delay - self._delay_int
        if self.interpolation is Interpolation.LAGRANGE3 and self._delay_int >= 1:
            self._delay_frac += 1.0
            self._delay_int -= 1

    def push_sample(self, channel: int, sample: float) -> None:
        pos = self._write_pos[channel]
        self._buffer[channel, pos] = sample
        self._write_pos[channel] = (pos + self._total_size - 1) % self._total_size

    def pop_sample(self, channel: int) -> float:
        value = self._interpolate(channel)
        self._read_pos[channel] = (self._read_pos[channel] + self._total_size - 1) % self._total_size
        return value

    def _interpolate(self, channel: int) -> float:
        buf = self._buffer[channel]
        size = self._total_size
        start = self._read_pos[channel] + self._delay_int
        frac = self._delay_frac
        if self.interpolation is Interpolation.NONE:
            return float(buf[start % size])
        if self.interpolation is Interpolation.LINEAR:
            v1, v2 = buf[start % size], buf[(start + 1) % size]
            return float(v1 + frac * (v2 - v1))
        v1, v2, v3, v4 = (buf[(start + k) % size] for k in range(4))
        d1, d2, d3 = frac - 1.0, frac - 2.0, frac - 3.0
        c1 = -d1 * d2 * d3 / 6.0
        c2 = d2 * d3 * 0.5
        c3 = -d1 * d3 * 0.5
        c4 = d1 * d2 / 6.0
        return float(v1 * c1 + frac * (v2 * c2 + v3 * c3 + v4 * c4))

    def reset(self) -> None:
        self._allocate()


class SmoothedValue:
    """A value that ramps linearly towards its target."""

    def __init__(self, initial: float = 0.0) -> None:
        self.current_value = float(initial)
        self.target_value = float(initial)
        self._steps_to_target = 0
        self._countdown = 0
        self._step = 0.0

    @property
    def is_smoothing(self) -> bool:
        return self._countdown > 0

    def reset(self, sample_rate: float, ramp_seconds: float) -> None:
        self._steps_to_target = math.floor(ramp_seconds * sample_rate)
        self.current_value = self.target_value
        self._countdown = 0

    def set_target_value(self, value: float) -> None:
        value = float(value)
        if value == self.target_value:
            return
        if self._steps_to_target <= 0:
            self.current_value = self.target_value = value
            self._countdown = 0
            return
        self.target_value = value
        self._countdown = self._steps_to_target
        self._step = (self.target_value - self.current_value) / self._countdown

    def get_next_value(self) -> float:
        if not self.is_smoothing:
            return self.target_value
        self._countdown -= 1
        if self._countdown > 0:
            self.current_value += self._step
        else:
            self.current_value = self.target_value
        return self.current_value
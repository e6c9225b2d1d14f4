"""Tonal shaping stages: the cascaded high-pass filter and the four-band parametric EQ."""

from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np

from lvox.filters import Coefficients, MultiChannelBiquad, ProcessSpec, decibels_to_gain
from lvox.module import DSPModule
from lvox.parameters import ParamID, ParameterState


def _clip(low: float, high: float, value: float) -> float:
    return min(high, max(low, value))


class HighPassFilterModule(DSPModule):
    """High-pass filter built from up to four cascaded second-order sections."""

    MAX_SECTIONS = 4

    def __init__(self, params: ParameterState) -> None:
        super().__init__(params, ParamID.HPF_BYPASS)
        self._sections = [MultiChannelBiquad() for _ in range(self.MAX_SECTIONS)]
        self.active_sections = 2
        self._last: tuple[float, float] | None = (0.0, -1.0)

    def prepare(self, spec: ProcessSpec) -> None:
        self.sample_rate = spec.sample_rate
        for section in self._sections:
            section.prepare(spec.num_channels)
        self._last = None

    def _update_filters(self) -> None:
        freq = self.params[ParamID.HPF_FREQUENCY]
        if self.mic_correction is not None:
            freq = _clip(20.0, 500.0, freq + self.mic_correction.hpf_freq_offset)
        slope = self.params[ParamID.HPF_SLOPE]

        if self._last == (freq, slope):
            return
        self._last = (freq, slope)

        slope_index = int(slope)
        # 12 dB/oct -> 1 section, 24 dB/oct -> 2, 48 dB/oct -> 4
        self.active_sections = 4 if slope_index == 2 else slope_index + 1
        coefficients = Coefficients.make_high_pass(self.sample_rate, freq)
        for section in self._sections[:self.active_sections]:
            section.coefficients = coefficients

    def process(self, block: np.ndarray) -> None:
        self._update_filters()
        for section in self._sections[:self.active_sections]:
            section.process(block)

    def reset(self) -> None:
        for section in self._sections:
            section.reset()
        self._last = None


@dataclass
class _Band:
    index: int
    freq_id: ParamID
    gain_id: ParamID
    q_id: ParamID
    type_id: ParamID
    active_id: ParamID
    filter: MultiChannelBiquad = field(default_factory=MultiChannelBiquad)


_BAND_IDS = (
    (ParamID.EQ_BAND1_FREQ, ParamID.EQ_BAND1_GAIN, ParamID.EQ_BAND1_Q,
     ParamID.EQ_BAND1_TYPE, ParamID.EQ_BAND1_ACTIVE),
    (ParamID.EQ_BAND2_FREQ, ParamID.EQ_BAND2_GAIN, ParamID.EQ_BAND2_Q,
     ParamID.EQ_BAND2_TYPE, ParamID.EQ_BAND2_ACTIVE),
    (ParamID.EQ_BAND3_FREQ, ParamID.EQ_BAND3_GAIN, ParamID.EQ_BAND3_Q,
     ParamID.EQ_BAND3_TYPE, ParamID.EQ_BAND3_ACTIVE),
    (ParamID.EQ_BAND4_FREQ, ParamID.EQ_BAND4_GAIN, ParamID.EQ_BAND4_Q,
     ParamID.EQ_BAND4_TYPE, ParamID.EQ_BAND4_ACTIVE),
)


class ParametricEQModule(DSPModule):
    """Four bands, each a peak, low-shelf or high-shelf filter."""

    def __init__(self, params: ParameterState) -> None:
        super().__init__(params, ParamID.EQ_BYPASS)
        self._bands = tuple(_Band(index, *ids) for index, ids in enumerate(_BAND_IDS))

    def prepare(self, spec: ProcessSpec) -> None:
        self.sample_rate = spec.sample_rate
        for band in self._bands:
            band.filter.prepare(spec.num_channels)

    def band_coefficients(self, index: int) -> Coefficients:
        """Coefficients the band at ``index`` would use with the current settings."""
        if not 0 <= index < len(self._bands):
            raise IndexError(f"no EQ band {index}")
        band = self._bands[index]
        p = self.params
        freq = p[band.freq_id]
        gain_db = p[band.gain_id]
        q = p[band.q_id]
        filter_type = int(p[band.type_id])

        if self.mic_correction is not None:
            mc = self.mic_correction
            offset = (mc.eq_band1_gain_offset, mc.eq_band2_gain_offset,
                      mc.eq_band3_gain_offset, mc.eq_band4_gain_offset)[index]
            gain_db = _clip(-18.0, 18.0, gain_db + offset)

        gain = decibels_to_gain(gain_db)
        if filter_type == 1:
            return Coefficients.make_low_shelf(self.sample_rate, freq, q, gain)
        if filter_type == 2:
            return Coefficients.make_high_shelf(self.sample_rate, freq, q, gain)
        return Coefficients.make_peak_filter(self.sample_rate, freq, q, gain)

    def process(self, block: np.ndarray) -> None:
        for band in self._bands:
            if self.params[band.active_id] > 0.5:
                band.filter.coefficients = self.band_coefficients(band.index)
                band.filter.process(block)

    def reset(self) -> None:
        for band in self._bands:
            band.filter.reset()
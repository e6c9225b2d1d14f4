"""The top-level processor: level metering, host tempo, state persistence and A/B slots."""

from __future__ import annotations

import copy
import xml.etree.ElementTree as ET
from typing import Any

import numpy as np

from lvox.chain import DSPChain
from lvox.filters import ProcessSpec
from lvox.parameters import ParameterState, create_parameter_layout

_SUPPORTED_CHANNEL_COUNTS = (1, 2)


def _peak(samples: np.ndarray) -> float:
    return float(np.max(np.abs(samples))) if samples.size else 0.0


class LVOXProcessor:
    """Runs the vocal chain on (channels, samples) buffers and keeps meters and state."""

    NAME = "LVOX"
    accepts_midi = False
    produces_midi = False
    is_midi_effect = False
    tail_length_seconds = 0.0

    def __init__(self) -> None:
        self.params = ParameterState(create_parameter_layout())
        self.chain = DSPChain(self.params)
        self.latency_samples = 0
        self.num_channels = 2

        self.is_slot_a = True
        self._slot_a: Any = None
        self._slot_b: Any = None

        self.input_level = 0.0
        self.output_level = 0.0
        self.input_level_l = 0.0
        self.input_level_r = 0.0
        self.output_level_l = 0.0
        self.output_level_r = 0.0
        self.compressor_gain_reduction = 0.0

    def prepare_to_play(self, sample_rate: float, samples_per_block: int,
                        num_channels: int = 2) -> None:
        """Prepare the chain and report the limiter's look-ahead as latency."""
        self.num_channels = int(num_channels)
        spec = ProcessSpec(float(sample_rate), int(samples_per_block), self.num_channels)
        self.chain.prepare(spec)
        self.latency_samples = self.chain.limiter.latency_samples

    def release_resources(self) -> None:
        self.chain.reset()

    def is_buses_layout_supported(self, input_channels: int, output_channels: int) -> bool:
        """Mono or stereo, with matching input and output."""
        return output_channels in _SUPPORTED_CHANNEL_COUNTS and output_channels == input_channels

    @staticmethod
    def _channel_levels(buffer: np.ndarray) -> tuple[float, float, float]:
        overall = max((_peak(channel) for channel in buffer), default=0.0)
        if buffer.shape[0] >= 2:
            return overall, _peak(buffer[0]), _peak(buffer[1])
        if buffer.shape[0] == 1:
            left = _peak(buffer[0])
            return overall, left, left
        return overall, 0.0, 0.0

    def process_block(self, buffer: np.ndarray, bpm: float | None = None) -> None:
        """Process a float (channels, samples) buffer in place and update the meters."""
        if not isinstance(buffer, np.ndarray) or buffer.ndim != 2:
            raise ValueError("buffer must be a two-dimensional (channels, samples) array")
        if not np.issubdtype(buffer.dtype, np.floating):
            raise ValueError("buffer must hold floating-point samples")

        overall, left, right = self._channel_levels(buffer)
        self.input_level = overall
        if buffer.shape[0]:
            self.input_level_l, self.input_level_r = left, right

        if bpm is not None:
            self.chain.set_host_bpm(bpm)

        self.chain.process(buffer)
        self.compressor_gain_reduction = self.chain.compressor.gain_reduction

        overall, left, right = self._channel_levels(buffer)
        self.output_level = overall
        if buffer.shape[0]:
            self.output_level_l, self.output_level_r = left, right

    def _state_tag(self) -> str:
        return ET.fromstring(self.params.to_xml()).tag

    def get_state_information(self) -> bytes:
        """Serialise the parameter state as UTF-8 XML."""
        return self.params.to_xml().encode("utf-8")

    def set_state_information(self, data: bytes) -> None:
        """Restore state saved by get_state_information; unreadable data is ignored."""
        try:
            text = bytes(data).decode("utf-8")
            root = ET.fromstring(text)
        except (ValueError, ET.ParseError):
            return
        if root.tag == self._state_tag():
            self.params.load_xml(text)

    def switch_slot(self) -> None:
        """Store the current settings in the active slot and load the other one, if set."""
        if self.is_slot_a:
            self._slot_a = self.params.copy_state()
        else:
            self._slot_b = self.params.copy_state()
        self.is_slot_a = not self.is_slot_a
        incoming = self._slot_a if self.is_slot_a else self._slot_b
        if incoming is not None:
            self.params.replace_state(copy.deepcopy(incoming))

    def copy_a_to_b(self) -> None:
        """Make both slots hold the current settings."""
        self._slot_a = self.params.copy_state()
        self._slot_b = copy.deepcopy(self._slot_a)

    def module_output_level(self, index: int) -> float:
        return self.chain.module_output_level(index)
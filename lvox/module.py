"""Base class for processing modules and the per-microphone correction offsets."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

import numpy as np

from lvox.filters import ProcessSpec
from lvox.parameters import ParameterState


@dataclass(frozen=True)
class MicCorrection:
    """Offsets added to module parameters to suit a particular microphone."""

    hpf_freq_offset: float = 0.0
    deess_freq_offset: float = 0.0
    deess_thresh_offset: float = 0.0
    deess_reduction_offset: float = 0.0
    eq_band1_gain_offset: float = 0.0
    eq_band2_gain_offset: float = 0.0
    eq_band3_gain_offset: float = 0.0
    eq_band4_gain_offset: float = 0.0
    comp_ratio_offset: float = 0.0
    comp_attack_offset: float = 0.0
    sat_drive_offset: float = 0.0


class DSPModule(ABC):
    """A processing stage reading its settings live from a parameter state.

    Blocks are numpy arrays of shape (channels, samples), processed in place.
    """

    def __init__(self, params: ParameterState, bypass_id: str | None = None) -> None:
        self.params = params
        self.bypass_id = str(bypass_id) if bypass_id else None
        self.mic_correction: MicCorrection | None = None
        self.output_level = 0.0
        self.sample_rate = 44100.0

    @abstractmethod
    def prepare(self, spec: ProcessSpec) -> None: ...

    @abstractmethod
    def process(self, block: np.ndarray) -> None: ...

    @abstractmethod
    def reset(self) -> None: ...

    def is_bypassed(self) -> bool:
        return self.bypass_id is not None and self.params[self.bypass_id] > 0.5

    def update_output_level(self, block: np.ndarray) -> None:
        """Record the block's absolute peak as the module's output level."""
        self.output_level = float(np.max(np.abs(block))) if block.size else 0.0
"""Parameter identifiers, ranges, the default layout and the live parameter state."""

from __future__ import annotations

import math
import xml.etree.ElementTree as ET
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum, StrEnum

STATE_TYPE = "LVOX_PARAMS"


class ParamID(StrEnum):
    """Identifiers of every parameter exposed by the processor."""

    GLOBAL_INPUT = "global_input"
    GLOBAL_OUTPUT = "global_output"

    GATE_BYPASS = "gate_bypass"
    GATE_THRESHOLD = "gate_threshold"
    GATE_RATIO = "gate_ratio"
    GATE_ATTACK = "gate_attack"
    GATE_RELEASE = "gate_release"
    GATE_RANGE = "gate_range"

    HPF_BYPASS = "hpf_bypass"
    HPF_FREQUENCY = "hpf_frequency"
    HPF_SLOPE = "hpf_slope"

    DEESS_BYPASS = "deess_bypass"
    DEESS_FREQUENCY = "deess_frequency"
    DEESS_THRESHOLD = "deess_threshold"
    DEESS_REDUCTION = "deess_reduction"
    DEESS_ATTACK = "deess_attack"
    DEESS_RELEASE = "deess_release"
    DEESS_LISTEN = "deess_listen"

    EQ_BYPASS = "eq_bypass"
    EQ_BAND1_FREQ = "eq_band1_freq"
    EQ_BAND1_GAIN = "eq_band1_gain"
    EQ_BAND1_Q = "eq_band1_q"
    EQ_BAND1_TYPE = "eq_band1_type"
    EQ_BAND1_ACTIVE = "eq_band1_active"
    EQ_BAND2_FREQ = "eq_band2_freq"
    EQ_BAND2_GAIN = "eq_band2_gain"
    EQ_BAND2_Q = "eq_band2_q"
    EQ_BAND2_TYPE = "eq_band2_type"
    EQ_BAND2_ACTIVE = "eq_band2_active"
    EQ_BAND3_FREQ = "eq_band3_freq"
    EQ_BAND3_GAIN = "eq_band3_gain"
    EQ_BAND3_Q = "eq_band3_q"
    EQ_BAND3_TYPE = "eq_band3_type"
    EQ_BAND3_ACTIVE = "eq_band3_active"
    EQ_BAND4_FREQ = "eq_band4_freq"
    EQ_BAND4_GAIN = "eq_band4_gain"
    EQ_BAND4_Q = "eq_band4_q"
    EQ_BAND4_TYPE = "eq_band4_type"
    EQ_BAND4_ACTIVE = "eq_band4_active"

    COMP_BYPASS = "comp_bypass"
    COMP_THRESHOLD = "comp_threshold"
    COMP_RATIO = "comp_ratio"
    COMP_ATTACK = "comp_attack"
    COMP_RELEASE = "comp_release"
    COMP_KNEE = "comp_knee"
    COMP_MAKEUP = "comp_makeup"
    COMP_SC_FREQ = "comp_sc_freq"
    COMP_SC_ACTIVE = "comp_sc_active"
    COMP_MIX = "comp_mix"

    SAT_BYPASS = "sat_bypass"
    SAT_DRIVE = "sat_drive"
    SAT_TYPE = "sat_type"
    SAT_TONE = "sat_tone"
    SAT_MIX = "sat_mix"
    SAT_OUTPUT = "sat_output"

    REV_BYPASS = "rev_bypass"
    REV_SIZE = "rev_size"
    REV_DAMPING = "rev_damping"
    REV_PREDELAY = "rev_predelay"
    REV_LOWCUT = "rev_lowcut"
    REV_HIGHCUT = "rev_highcut"
    REV_MIX = "rev_mix"

    DLY_BYPASS = "dly_bypass"
    DLY_TIME = "dly_time"
    DLY_SYNC = "dly_sync"
    DLY_NOTE = "dly_note"
    DLY_FEEDBACK = "dly_feedback"
    DLY_LOWCUT = "dly_lowcut"
    DLY_HIGHCUT = "dly_highcut"
    DLY_MIX = "dly_mix"

    LIM_BYPASS = "lim_bypass"
    LIM_CEILING = "lim_ceiling"
    LIM_RELEASE = "lim_release"

    SEND_MODE = "send_mode"
    SEND_REV_LEVEL = "send_rev_level"
    SEND_DLY_LEVEL = "send_dly_level"

    MIC_SELECT = "mic_select"

    MACRO_WARMTH = "macro_warmth"
    MACRO_PRESENCE = "macro_presence"
    MACRO_COMPRESSION = "macro_compression"
    MACRO_SPACE = "macro_space"


class ParameterKind(Enum):
    FLOAT = "float"
    BOOL = "bool"
    CHOICE = "choice"


@dataclass(frozen=True)
class NormalisableRange:
    """A value range with an optional snapping interval and skew factor."""

    start: float
    end: float
    interval: float = 0.0
    skew: float = 1.0

    def __post_init__(self) -> None:
        if not self.end > self.start:
            raise ValueError("range end must be greater than its start")
        if self.interval < 0:
            raise ValueError("range interval must not be negative")
        if self.skew <= 0:
            raise ValueError("range skew must be positive")

    def convert_to_0to1(self, value: float) -> float:
        proportion = min(1.0, max(0.0, (value - self.start) / (self.end - self.start)))
        if self.skew == 1.0:
            return proportion
        return proportion ** self.skew

    def convert_from_0to1(self, proportion: float) -> float:
        proportion = min(1.0, max(0.0, proportion))
        if self.skew != 1.0 and proportion > 0.0:
            proportion = math.exp(math.log(proportion) / self.skew)
        return self.start + (self.end - self.start) * proportion

    def snap_to_legal_value(self, value: float) -> float:
        if self.interval > 0:
            steps = math.floor((value - self.start) / self.interval + 0.5)
            value = round(self.start + self.interval * steps, 10)
        return min(self.end, max(self.start, value))


@dataclass(frozen=True)
class Parameter:
    """Definition of a single automatable parameter."""

    param_id: str
    name: str
    kind: ParameterKind
    range: NormalisableRange
    default: float
    label: str = ""
    choices: tuple[str, ...] = ()

    def clamp(self, value: float) -> float:
        """Return the legal raw value closest to ``value``."""
        value = float(value)
        if self.kind is ParameterKind.BOOL:
            return 1.0 if value >= 0.5 else 0.0
        if self.kind is ParameterKind.CHOICE:
            return float(min(len(self.choices) - 1, max(0, round(value))))
        return self.range.snap_to_legal_value(value)


@dataclass(frozen=True)
class ParameterGroup:
    group_id: str
    name: str
    parameters: tuple[Parameter, ...] = field(default_factory=tuple)


def _float(pid: ParamID, name: str, value_range: NormalisableRange, default: float,
           label: str = "") -> Parameter:
    return Parameter(str(pid), name, ParameterKind.FLOAT, value_range, default, label)


def _linear(start: float, end: float, interval: float, skew: float = 1.0) -> NormalisableRange:
    return NormalisableRange(start, end, interval, skew)


def _freq_range(start: float, end: float) -> NormalisableRange:
    return NormalisableRange(start, end, 1.0, 0.25)


def _bool(pid: ParamID, name: str, default: bool) -> Parameter:
    return Parameter(str(pid), name, ParameterKind.BOOL, NormalisableRange(0.0, 1.0, 1.0),
                     1.0 if default else 0.0)


def _choice(pid: ParamID, name: str, choices: Iterable[str], default: int) -> Parameter:
    options = tuple(choices)
    return Parameter(str(pid), name, ParameterKind.CHOICE,
                     NormalisableRange(0.0, float(len(options) - 1), 1.0),
                     float(default), choices=options)


_EQ_BANDS = (
    (ParamID.EQ_BAND1_FREQ, ParamID.EQ_BAND1_GAIN, ParamID.EQ_BAND1_Q, ParamID.EQ_BAND1_TYPE,
     ParamID.EQ_BAND1_ACTIVE, 100.0, 1),
    (ParamID.EQ_BAND2_FREQ, ParamID.EQ_BAND2_GAIN, ParamID.EQ_BAND2_Q, ParamID.EQ_BAND2_TYPE,
     ParamID.EQ_BAND2_ACTIVE, 500.0, 0),
    (ParamID.EQ_BAND3_FREQ, ParamID.EQ_BAND3_GAIN, ParamID.EQ_BAND3_Q, ParamID.EQ_BAND3_TYPE,
     ParamID.EQ_BAND3_ACTIVE, 3000.0, 0),
    (ParamID.EQ_BAND4_FREQ, ParamID.EQ_BAND4_GAIN, ParamID.EQ_BAND4_Q, ParamID.EQ_BAND4_TYPE,
     ParamID.EQ_BAND4_ACTIVE, 8000.0, 2),
)

_EQ_FILTER_TYPES = ("Peak", "Low Shelf", "High Shelf")


def _eq_parameters() -> list[Parameter]:
    params = [_bool(ParamID.EQ_BYPASS, "EQ Bypass", False)]
    for freq_id, gain_id, q_id, type_id, active_id, default_freq, default_type in _EQ_BANDS:
        params += [
            _float(freq_id, str(freq_id), _freq_range(20.0, 20000.0), default_freq, "Hz"),
            _float(gain_id, str(gain_id), _linear(-18.0, 18.0, 0.1), 0.0, "dB"),
            _float(q_id, str(q_id), _linear(0.1, 10.0, 0.01, 0.5), 1.0),
            _choice(type_id, str(type_id), _EQ_FILTER_TYPES, default_type),
            _bool(active_id, str(active_id), True),
        ]
    return params


def create_parameter_layout() -> list[ParameterGroup]:
    """Build the full, ordered list of parameter groups."""
    P = ParamID
    groups = [
        ParameterGroup("global", "Global", (
            _float(P.GLOBAL_INPUT, "Input Gain", _linear(-24.0, 24.0, 0.1), 0.0, "dB"),
            _float(P.GLOBAL_OUTPUT, "Output Gain", _linear(-24.0, 24.0, 0.1), 0.0, "dB"),
        )),
        ParameterGroup("gate", "Noise Gate", (
            _bool(P.GATE_BYPASS, "Gate Bypass", False),
            _float(P.GATE_THRESHOLD, "Gate Threshold", _linear(-80.0, 0.0, 0.1), -40.0, "dB"),
            _float(P.GATE_RATIO, "Gate Ratio", _linear(1.0, 100.0, 0.1, 0.5), 10.0),
            _float(P.GATE_ATTACK, "Gate Attack", _linear(0.1, 100.0, 0.1, 0.4), 5.0, "ms"),
            _float(P.GATE_RELEASE, "Gate Release", _linear(1.0, 500.0, 0.1, 0.5), 50.0, "ms"),
            _float(P.GATE_RANGE, "Gate Range", _linear(-80.0, 0.0, 0.1), -80.0, "dB"),
        )),
        ParameterGroup("hpf", "High-Pass Filter", (
            _bool(P.HPF_BYPASS, "HPF Bypass", False),
            _float(P.HPF_FREQUENCY, "HPF Frequency", _freq_range(20.0, 500.0), 80.0, "Hz"),
            _choice(P.HPF_SLOPE, "HPF Slope", ("12 dB/oct", "24 dB/oct", "48 dB/oct"), 1),
        )),
        ParameterGroup("deesser", "De-Esser", (
            _bool(P.DEESS_BYPASS, "De-Esser Bypass", False),
            _float(P.DEESS_FREQUENCY, "De-Esser Freq", _freq_range(2000.0, 12000.0), 6500.0, "Hz"),
            _float(P.DEESS_THRESHOLD, "De-Esser Threshold", _linear(-40.0, 0.0, 0.1), -20.0, "dB"),
            _float(P.DEESS_REDUCTION, "De-Esser Reduction", _linear(0.0, 24.0, 0.1), 6.0, "dB"),
            _float(P.DEESS_ATTACK, "De-Esser Attack", _linear(0.1, 10.0, 0.1, 0.5), 0.5, "ms"),
            _float(P.DEESS_RELEASE, "De-Esser Release", _linear(5.0, 100.0, 0.1, 0.5), 20.0, "ms"),
            _bool(P.DEESS_LISTEN, "De-Esser Listen", False),
        )),
        ParameterGroup("eq", "Parametric EQ", tuple(_eq_parameters())),
        ParameterGroup("comp", "Compressor", (
            _bool(P.COMP_BYPASS, "Comp Bypass", False),
            _float(P.COMP_THRESHOLD, "Comp Threshold", _linear(-60.0, 0.0, 0.1), -18.0, "dB"),
            _float(P.COMP_RATIO, "Comp Ratio", _linear(1.0, 20.0, 0.1, 0.5), 4.0),
            _float(P.COMP_ATTACK, "Comp Attack", _linear(0.1, 200.0, 0.1, 0.4), 10.0, "ms"),
            _float(P.COMP_RELEASE, "Comp Release", _linear(5.0, 1000.0, 0.1, 0.5), 100.0, "ms"),
            _float(P.COMP_KNEE, "Comp Knee", _linear(0.0, 20.0, 0.1), 6.0, "dB"),
            _float(P.COMP_MAKEUP, "Comp Makeup", _linear(0.0, 30.0, 0.1), 0.0, "dB"),
            _float(P.COMP_SC_FREQ, "Comp SC Freq", _freq_range(20.0, 500.0), 80.0, "Hz"),
            _bool(P.COMP_SC_ACTIVE, "Comp SC Active", False),
            _float(P.COMP_MIX, "Comp Mix", _linear(0.0, 100.0, 0.1), 100.0, "%"),
        )),
        ParameterGroup("sat", "Saturation", (
            _bool(P.SAT_BYPASS, "Sat Bypass", False),
            _float(P.SAT_DRIVE, "Sat Drive", _linear(0.0, 100.0, 0.1), 20.0, "%"),
            _choice(P.SAT_TYPE, "Sat Type", ("Tape", "Tube", "Soft Clip", "Hard Clip"), 0),
            _float(P.SAT_TONE, "Sat Tone", _linear(-100.0, 100.0, 0.1), 0.0),
            _float(P.SAT_MIX, "Sat Mix", _linear(0.0, 100.0, 0.1), 50.0, "%"),
            _float(P.SAT_OUTPUT, "Sat Output", _linear(-12.0, 12.0, 0.1), 0.0, "dB"),
        )),
        ParameterGroup("rev", "Reverb", (
            _bool(P.REV_BYPASS, "Rev Bypass", False),
            _float(P.REV_SIZE, "Rev Size", _linear(0.0, 100.0, 0.1), 50.0, "%"),
            _float(P.REV_DAMPING, "Rev Damping", _linear(0.0, 100.0, 0.1), 50.0, "%"),
            _float(P.REV_PREDELAY, "Rev Pre-Delay", _linear(0.0, 200.0, 0.1), 20.0, "ms"),
            _float(P.REV_LOWCUT, "Rev Low Cut", _freq_range(20.0, 1000.0), 100.0, "Hz"),
            _float(P.REV_HIGHCUT, "Rev High Cut", _freq_range(1000.0, 20000.0), 8000.0, "Hz"),
            _float(P.REV_MIX, "Rev Mix", _linear(0.0, 100.0, 0.1), 20.0, "%"),
        )),
        ParameterGroup("dly", "Delay", (
            _bool(P.DLY_BYPASS, "Delay Bypass", False),
            _float(P.DLY_TIME, "Delay Time", _linear(1.0, 2000.0, 0.1, 0.5), 250.0, "ms"),
            _bool(P.DLY_SYNC, "Delay Sync", False),
            _choice(P.DLY_NOTE, "Delay Note",
                    ("1/4", "1/8", "1/8D", "1/8T", "1/16", "1/16D", "1/16T"), 0),
            _float(P.DLY_FEEDBACK, "Delay Feedback", _linear(0.0, 95.0, 0.1), 30.0, "%"),
            _float(P.DLY_LOWCUT, "Delay Low Cut", _freq_range(20.0, 1000.0), 200.0, "Hz"),
            _float(P.DLY_HIGHCUT, "Delay High Cut", _freq_range(1000.0, 20000.0), 6000.0, "Hz"),
            _float(P.DLY_MIX, "Delay Mix", _linear(0.0, 100.0, 0.1), 15.0, "%"),
        )),
        ParameterGroup("lim", "Limiter", (
            _bool(P.LIM_BYPASS, "Limiter Bypass", False),
            _float(P.LIM_CEILING, "Limiter Ceiling", _linear(-12.0, 0.0, 0.1), -0.3, "dB"),
            _float(P.LIM_RELEASE, "Limiter Release", _linear(1.0, 200.0, 0.1, 0.5), 50.0, "ms"),
        )),
        ParameterGroup("send", "Send/Bus", (
            _bool(P.SEND_MODE, "Send Mode", False),
            _float(P.SEND_REV_LEVEL, "Send Rev Level", _linear(0.0, 100.0, 0.1), 30.0, "%"),
            _float(P.SEND_DLY_LEVEL, "Send Dly Level", _linear(0.0, 100.0, 0.1), 20.0, "%"),
        )),
        ParameterGroup("mic", "Mic Select", (
            _choice(P.MIC_SELECT, "Mic Select", ("None", "UAD Sphere LX (C800)", "Shure MV7"), 0),
        )),
        ParameterGroup("macros", "Macros", (
            _float(P.MACRO_WARMTH, "Warmth", _linear(0.0, 100.0, 0.1), 50.0, "%"),
            _float(P.MACRO_PRESENCE, "Presence", _linear(0.0, 100.0, 0.1), 50.0, "%"),
            _float(P.MACRO_COMPRESSION, "Compression", _linear(0.0, 100.0, 0.1), 50.0, "%"),
            _float(P.MACRO_SPACE, "Space", _linear(0.0, 100.0, 0.1), 0.0, "%"),
        )),
    ]
    return groups


class ParameterState:
    """Current raw values of every parameter in a layout."""

    def __init__(self, layout: Iterable[ParameterGroup] | None = None) -> None:
        groups = create_parameter_layout() if layout is None else list(layout)
        self._params: dict[str, Parameter] = {}
        for group in groups:
            for param in group.parameters:
                if param.param_id in self._params:
                    raise ValueError(f"duplicate parameter id: {param.param_id}")
                self._params[param.param_id] = param
        self._values: dict[str, float] = {}
        self.reset()

    def _lookup(self, param_id: str) -> Parameter:
        try:
            return self._params[str(param_id)]
        except KeyError:
            raise KeyError(f"unknown parameter id: {param_id}") from None

    def __getitem__(self, param_id: str) -> float:
        return self._values[self._lookup(param_id).param_id]

    def __setitem__(self, param_id: str, value: float) -> None:
        param = self._lookup(param_id)
        self._values[param.param_id] = param.clamp(value)

    def __contains__(self, param_id: object) -> bool:
        return isinstance(param_id, str) and str(param_id) in self._params

    def parameter(self, param_id: str) -> Parameter:
        return self._lookup(param_id)

    def set_normalised(self, param_id: str, proportion: float) -> None:
        """Set a parameter from a 0..1 position on its range."""
        param = self._lookup(param_id)
        self[param.param_id] = param.range.convert_from_0to1(proportion)

    def copy_state(self) -> dict[str, float]:
        return dict(self._values)

    def replace_state(self, state: Mapping[str, float]) -> None:
        """Take values from ``state``; unknown ids are ignored, missing ones kept."""
        for param_id, value in state.items():
            if param_id in self:
                self[param_id] = value

    def reset(self) -> None:
        self._values = {pid: param.default for pid, param in self._params.items()}

    def to_xml(self) -> str:
        root = ET.Element(STATE_TYPE)
        for param_id, value in self._values.items():
            ET.SubElement(root, "PARAM", id=param_id, value=repr(float(value)))
        return ET.tostring(root, encoding="unicode")

    def load_xml(self, text: str | bytes) -> None:
        """Restore values from text produced by :meth:`to_xml`."""
        try:
            root = ET.fromstring(text)
        except ET.ParseError as exc:
            raise ValueError(f"malformed parameter state: {exc}") from exc
        if root.tag != STATE_TYPE:
            raise ValueError(f"unexpected state element: {root.tag}")
        values: dict[str, float] = {}
        for element in root.iter("PARAM"):
            param_id = element.get("id")
            raw = element.get("value")
            if param_id is None or raw is None:
                continue
            try:
                values[param_id] = float(raw)
            except ValueError as exc:
                raise ValueError(f"bad value for {param_id}: {raw!r}") from exc
        self.replace_state(values)
# lvox

A vocal processing chain for NumPy audio buffers. A signal goes through these stages in order: a noise gate, a high-pass filter, a de-esser, a four-band parametric EQ, a compressor, a saturation stage, a plate reverb, a delay that can follow the host tempo, and a look-ahead limiter. Input and output gain are smoothed. Reverb and delay can run in series or as parallel sends.

## Installation

```
pip install .
```

To run the tests, install the `test` extra and run pytest:

```
pip install .[test]
pytest
```

## Usage

Audio is a floating-point NumPy array with one row per channel, so `shape == (channels, samples)`. Mono and stereo are supported.

```python
import numpy as np
from lvox.processor import LVOXProcessor

proc = LVOXProcessor()
proc.prepare_to_play(48000.0, 512, 2)

proc.params["comp_threshold"] = -24.0
proc.params["rev_mix"] = 30.0

block = np.random.default_rng(0).uniform(-0.5, 0.5, (2, 512)).astype(np.float32)
proc.process_block(block, bpm=120.0)   # processed in place

print(proc.output_level_l, proc.compressor_gain_reduction)
```

`process_block` raises `ValueError` in two cases: the buffer is not a two-dimensional array, or it does not hold floating-point samples.

After each block, the processor updates these members:

- Meters: `input_level`, `output_level`, `input_level_l`, `input_level_r`, `output_level_l` and `output_level_r`.
- `compressor_gain_reduction`, in dB.
- `latency_samples`, which is set by `prepare_to_play` from the limiter's 1 ms look-ahead.

`module_output_level(index)` gives the peak output of each of the nine stages. An index out of range gives `0.0`.

`is_buses_layout_supported(input_channels, output_channels)` accepts two layouts only: mono in and mono out, or stereo in and stereo out.

### Parameters

Every control is a named parameter in a `ParameterState`. The state is built from `create_parameter_layout()` in `lvox.parameters`, and the identifiers are listed in the `ParamID` enum.

- Assigned values are clamped and snapped to the parameter's range.
- Assigning to an unknown id raises `KeyError`.
- `set_normalised(param_id, proportion)` sets a value from a 0..1 position on the range.
- `copy_state()` takes a snapshot and `replace_state()` restores one.
- `to_xml()` and `load_xml()` save and load the whole state as text.

The processor keeps two comparison slots:

- `switch_slot()` stores the current settings in the active slot, then loads the other slot if that slot has been filled.
- `copy_a_to_b()` puts the current settings into both slots.

`get_state_information()` returns the settings as UTF-8 XML bytes, and `set_state_information(data)` restores them. Data that cannot be read is ignored.

### Microphone correction

The `mic_select` parameter chooses one of three settings: none, UAD Sphere LX (C800) or Shure MV7. For the two microphones, small offsets are added to the HPF, de-esser, EQ, compressor and saturation settings. `lvox.chain.mic_correction_for(index)` returns the offsets as a `MicCorrection`.

### Building blocks

You can use the stages on their own:

- `lvox.filters`:
  - decibel conversion
  - biquad design (`Coefficients.make_high_pass`, `make_low_pass`, `make_band_pass`, `make_peak_filter`, `make_low_shelf`, `make_high_shelf`, and `magnitude_at` for the response)
  - `Biquad` and `MultiChannelBiquad`
  - `DelayLine` with no, linear or third-order Lagrange interpolation
  - `SmoothedValue`
- `lvox.reverb.DattorroPlate`: a standalone stereo plate reverb. Its `process(input_l, input_r)` returns the wet output pair.
- `lvox.saturation`:
  - the waveshapers `process_tape`, `process_tube`, `process_soft_clip` and `process_hard_clip`
  - a 2x `Oversampler`
- The module classes: `NoiseGateModule`, `HighPassFilterModule`, `DeEsserModule`, `ParametricEQModule`, `CompressorModule`, `SaturationModule`, `ReverbModule`, `DelayModule` and `LimiterModule`. Each one reads its settings live from a `ParameterState`.

## What it does not do

lvox processes buffers that you hand it. It does not do the following:

- It has no graphical editor, meters display or plugin wrapper.
- It does not read or write audio files or devices.
- It has no preset library.
- The four macro parameters (`macro_warmth`, `macro_presence`, `macro_compression`, `macro_space`) are stored and saved with the state, but the processing chain does not act on them.
# camstages

Post-processing building blocks for camera frames. Each module works on plain
Python data, byte buffers and numpy arrays, so it can sit behind any capture
pipeline.

## What is inside

- `camstages.histogram` – `Histogram`, built from bin counts, with `bins()`,
  `total()`, `cumulative_freq()`, `quantile()` and `inter_quantile_mean()`.
- `camstages.rectangle` – frozen `Point`, `Size` and `Rectangle` dataclasses:
  `Rectangle.scaled_by()`, `bounded_to()`, `translated_by()`, `enclosed_in()`,
  `top_left()`, `size()`, `center()`, and `Size.bounded_to_aspect_ratio()` /
  `Size.centered_to()`.
- `camstages.hdr` – `HdrImage`, a 16-bit YUV420 accumulator. `accumulate()`
  adds 8-bit YUV420 frames, `scale()` rescales, `lp_filter()` runs an
  edge-preserving low-pass filter over the Y plane, `create_tonemap()` returns
  the control points of a global tone curve computed from `TonemapPoint`
  targets, `tonemap()` applies lookup tables and adds back local detail, and
  `extract()` returns an 8-bit YUV420 `bytearray`. `adjust_buffer_count()`
  raises the buffer count for still captures to at least 3.
- `camstages.negate` – `negate()` inverts every byte of a writable buffer
  whose size is a multiple of 4, in place.
- `camstages.motion_detect` – `MotionDetector`, a low-resolution frame
  differencer configured by a `MotionDetectConfig` (build one from a dict
  with `MotionDetectConfig.from_params()`).
- `camstages.detection` – `Detection`, `BBox`, `ObjectDetectionOutput`,
  `parse_detection_tensor()` and `detections_from_tensor()` for decoding
  flat object-detection output tensors, plus `TemporalFilter` (configured by
  `TemporalFilterConfig`) that smooths detections across frames.
- `camstages.object_classify` – `ObjectClassifyConfig`, `read_labels()`,
  `check_label_count()`, `TopResultsTracker` (top-N results with a high and a
  low threshold) and `format_annotation()` for the text label.
- `camstages.imx500` – `convert_inference_coordinates()` from normalised
  inference coordinates to ISP output coordinates, `auto_inference_roi()`,
  `conv_reg_signed()`, `encode_input_tensor()` and `InputTensorSaver` for
  saving input tensors, and `parse_firmware_progress()` / `format_progress()`
  for firmware upload progress text.
- `camstages.hailo_support` – a reusable buffer `Allocator`, `OutTensor` with
  `sort_out_tensors()`, a thread-safe `MessageQueue` of `Msg` values,
  `select_hef_file()`, `post_proc_lib_path()`, `convert_inference_coordinates()`,
  `scaler_crops_from_metadata()`, `pack_rgb_rows()` and `swap_red_blue()`.

## Installing

```
pip install .
```

For the test suite:

```
pip install ".[test]"
pytest
```

## Examples

```python
from camstages.histogram import Histogram

hist = Histogram([0, 10, 20, 10, 0])
print(hist.total())                       # 40
print(hist.quantile(0.5, -1, -1))         # fractional bin at the median
print(hist.inter_quantile_mean(0.25, 0.75))
```

```python
from camstages.negate import negate

frame = bytearray(b"\x00\x10\xff\x80")
negate(frame)
print(frame.hex())   # ffef007f
```

```python
from camstages.motion_detect import MotionDetectConfig, MotionDetector

config = MotionDetectConfig.from_params({"frame_period": 1})
detector = MotionDetector(config, width=128, height=96, stride=128)
detector.process(first_frame, sequence=0)    # first frame: stores reference, returns False
moved = detector.process(next_frame, sequence=1)
```

`HdrImage.create_tonemap()` returns `(input, output)` control points rather
than a lookup table; build the tables that `tonemap()` and `lp_filter()`
take yourself, for example with `numpy.interp` over `range(dynamic_range)`.

## What it does not do

The package does not talk to cameras, sensors or inference accelerators. It
does not capture frames, load network firmware, run neural networks, draw on
images or show windows. Pose estimation decoding is not included. The
functions here take the frames, tensors and metadata such a pipeline produces
and return results for it to use.
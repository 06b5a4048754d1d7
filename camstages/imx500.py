"""Helpers shared by the IMX500 on-sensor inference stages."""

from __future__ import annotations

import re
import threading
from collections.abc import Iterable, Mapping, Sequence
from typing import BinaryIO

from camstages.rectangle import Rectangle, Size

FULL_SENSOR_RESOLUTION = Rectangle(0, 0, 4056, 3040)

_NORM_SIGNED_SHIFT = 8
_NORM_MASK = 0x01FF
_LEADING_UINT = re.compile(r"\d+")


def _int16(value: int) -> int:
    value &= 0xFFFF
    return value - 0x10000 if value & 0x8000 else value


def _int8(value: int) -> int:
    value &= 0xFF
    return value - 0x100 if value & 0x80 else value


def _c_div(a: int, b: int) -> int:
    q = abs(a) // abs(b)
    return q if (a >= 0) == (b > 0) else -q


def _c_round(value: float) -> int:
    magnitude = int(abs(value) + 0.5)
    return -magnitude if value < 0 else magnitude


def conv_reg_signed(reg: int) -> int:
    """Interpret a normalisation register value as a signed 9-bit number."""
    reg = _int16(reg)
    if not (reg >> _NORM_SIGNED_SHIFT) & 1:
        return reg
    return _int16(-((~reg + 1) & _NORM_MASK))


def encode_input_tensor(
    data: Iterable[int],
    norm_val: Sequence[int] = (0, 0, 0, 0),
    norm_shift: Sequence[int] = (0, 0, 0, 0),
    div_val: Sequence[int] = (1, 1, 1, 1),
    div_shift: int = 0,
) -> bytes:
    """Convert raw input tensor samples (RGB interleaved) into the saved byte format."""
    out = bytearray()
    for i, value in enumerate(data):
        channel = i % 3
        sample = _int8(value)
        sample = _int16((sample << (norm_shift[channel] & 0xFF)) - conv_reg_signed(norm_val[channel]))
        sample = _int16(_c_div(sample << div_shift, _int16(div_val[channel])) & 0xFF)
        out.append(sample & 0xFF)
    return bytes(out)


def convert_inference_coordinates(
    coords: Sequence[float],
    scaler_crop: Rectangle,
    isp_output_size: Size,
    sensor_output_size: Size,
    full_sensor_resolution: Rectangle = FULL_SENSOR_RESOLUTION,
) -> Rectangle:
    """Map normalised inference-image coordinates (x, y, w, h) to ISP output coordinates."""
    sensor_crop = scaler_crop.scaled_by(sensor_output_size, full_sensor_resolution.size())
    if len(coords) != 4:
        return Rectangle()

    full_w = full_sensor_resolution.width - 1
    full_h = full_sensor_resolution.height - 1
    obj = Rectangle(
        _c_round(coords[0] * full_w),
        _c_round(coords[1] * full_h),
        _c_round(coords[2] * full_w),
        _c_round(coords[3] * full_h),
    )
    obj_sensor = obj.scaled_by(sensor_output_size, full_sensor_resolution.size())
    obj_bound = obj_sensor.bounded_to(sensor_crop)
    obj_translated = obj_bound.translated_by(-sensor_crop.top_left())
    return obj_translated.scaled_by(isp_output_size, sensor_crop.size())


def auto_inference_roi(
    width: int, height: int, full_sensor_resolution: Rectangle = FULL_SENSOR_RESOLUTION
) -> Rectangle:
    """The largest centred region of the sensor with the aspect ratio width:height."""
    size = full_sensor_resolution.size().bounded_to_aspect_ratio(Size(width, height))
    return size.centered_to(full_sensor_resolution.center()).enclosed_in(full_sensor_resolution)


def _leading_uints(text: str) -> list[int]:
    values = []
    for token in text.split():
        match = _LEADING_UINT.match(token)
        if not match:
            break
        values.append(int(match.group()))
        if match.end() != len(token):
            break
    return values


def parse_firmware_progress(fw_text: str, block_text: str) -> tuple[int, int, bool] | None:
    """Parse firmware upload progress files.

    Returns (current bytes, total bytes, finished) while uploading, else None.
    """
    progress = _leading_uints(fw_text)
    block = _leading_uints(block_text)
    block_progress = block[0] if block else 0
    # [0] == FW state, [1] == current size, [2] == total size.
    if len(progress) != 3 or progress[0] != 2:
        return None
    current = progress[1] + block_progress
    total = progress[2]
    finished = bool(total) and progress[1] == total
    return current, total, finished


def format_progress(current: int, total: int) -> str:
    """The firmware upload progress line."""
    return f"Network Firmware Upload: {current * 100 // total}% ({current // 1024}/{total // 1024} KB)"


class InputTensorSaver:
    """Writes a fixed number of encoded input tensors to a binary stream, then closes it."""

    def __init__(
        self,
        stream: BinaryIO,
        num_tensors: int = 1,
        norm_val: Sequence[int] = (0, 0, 0, 0),
        norm_shift: Sequence[int] = (0, 0, 0, 0),
        div_val: Sequence[int] = (1, 1, 1, 1),
        div_shift: int = 0,
    ) -> None:
        self._stream = stream
        self._remaining = num_tensors
        self.norm_val = list(norm_val)
        self.norm_shift = list(norm_shift)
        self.div_val = list(div_val)
        self.div_shift = div_shift
        self._open = True
        self._lock = threading.Lock()

    @classmethod
    def from_params(cls, params: Mapping, stream: BinaryIO | None = None) -> InputTensorSaver:
        """Build from a ``save_input_tensor`` configuration block."""
        filename = params["filename"]
        if stream is None:
            stream = open(filename, "wb")
        return cls(
            stream,
            int(params.get("num_tensors", 1)),
            list(params.get("norm_val", [0, 0, 0, 0])),
            list(params.get("norm_shift", [0, 0, 0, 0])),
            list(params.get("div_val", [1, 1, 1, 1])),
            int(params.get("div_shift", 0)),
        )

    def is_open(self) -> bool:
        return self._open

    def write(self, data: Iterable[int]) -> None:
        """Encode and append one tensor; closes the stream after the last one."""
        with self._lock:
            if not self._open:
                return
            self._stream.write(
                encode_input_tensor(data, self.norm_val, self.norm_shift, self.div_val, self.div_shift)
            )
            self._remaining -= 1
            if self._remaining == 0:
                self._close_locked()

    def close(self) -> None:
        with self._lock:
            self._close_locked()

    def _close_locked(self) -> None:
        if self._open:
            self._stream.close()
            self._open = False

    def __enter__(self) -> InputTensorSaver:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
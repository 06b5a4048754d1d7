"""Support code shared by the Hailo accelerator inference stages."""

from __future__ import annotations

import math
import threading
from collections import deque
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import numpy as np

from camstages.rectangle import Rectangle, Size


def _round_half_away(value: float) -> int:
    magnitude = math.floor(abs(value) + 0.5)
    return -magnitude if value < 0 else magnitude


@dataclass
class _AllocInfo:
    buffer: bytearray
    free: bool


class Allocator:
    """A pool of byte buffers that are reused once released."""

    def __init__(self) -> None:
        self._allocations: list[_AllocInfo] = []
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._allocations)

    def allocate(self, size: int) -> bytearray:
        """Return a buffer of ``size`` bytes, reusing a released one of that size if any."""
        if size < 0:
            raise ValueError("buffer size must not be negative")
        with self._lock:
            for info in self._allocations:
                if info.free and len(info.buffer) == size:
                    info.free = False
                    return info.buffer
            buffer = bytearray(size)
            self._allocations.append(_AllocInfo(buffer, False))
            return buffer

    def release(self, buffer: bytearray) -> None:
        """Return a buffer to the pool; unknown buffers are ignored."""
        with self._lock:
            for info in self._allocations:
                if info.buffer is buffer:
                    info.free = True
                    return

    def reset(self) -> None:
        """Forget every buffer in the pool."""
        with self._lock:
            self._allocations.clear()


@dataclass
class OutTensor:
    """One output tensor of an inference job; ``shape`` is (height, width, features)."""

    data: Any
    name: str
    quant_info: Any = None
    shape: tuple[int, int, int] = (0, 0, 0)
    format: Any = None

    @property
    def height(self) -> int:
        return self.shape[0]

    @property
    def width(self) -> int:
        return self.shape[1]

    @property
    def features(self) -> int:
        return self.shape[2]

    def __str__(self) -> str:
        return f"OutTensor: h {self.height}, w {self.width}, c {self.features}"


def sort_out_tensors(tensors: Iterable[OutTensor]) -> list[OutTensor]:
    """Order output tensors by increasing width, as the post-processing expects."""
    return sorted(tensors, key=lambda t: t.width)


class MsgType(Enum):
    DISPLAY = "display"
    QUIT = "quit"


@dataclass
class Msg:
    """A message for the display thread."""

    type: MsgType
    payload: Any = None
    size: Size = field(default_factory=Size)
    window_title: str = ""


class MessageQueue:
    """A thread-safe FIFO of messages."""

    def __init__(self) -> None:
        self._queue: deque[Msg] = deque()
        self._cond = threading.Condition()

    def __len__(self) -> int:
        with self._cond:
            return len(self._queue)

    def post(self, msg: Msg) -> None:
        with self._cond:
            self._queue.append(msg)
            self._cond.notify()

    def wait(self, timeout: float | None = None) -> Msg:
        """Remove and return the oldest message, blocking until one arrives."""
        with self._cond:
            if not self._cond.wait_for(lambda: bool(self._queue), timeout):
                raise TimeoutError("no message arrived in time")
            return self._queue.popleft()

    def clear(self, window_title: str | None = None) -> None:
        """Drop every message, or only those for the given window."""
        with self._cond:
            if window_title is None:
                self._queue.clear()
            else:
                self._queue = deque(m for m in self._queue if m.window_title != window_title)


def select_hef_file(is_hailo8: bool, hef_file: str = "", hef_file_8: str = "", hef_file_8l: str = "") -> str:
    """Choose the model file for the detected accelerator."""
    if is_hailo8 and hef_file_8:
        chosen = hef_file_8
    elif hef_file_8l:
        chosen = hef_file_8l
    else:
        chosen = hef_file
    if not chosen:
        raise ValueError("Unable to use a suitable HEF file.")
    return chosen


def post_proc_lib_path(lib_dir: str, lib: str) -> str:
    """Path of a post-processing library inside the library directory."""
    return f"{lib_dir}/{lib}"


def convert_inference_coordinates(
    coords: Sequence[float], scaler_crops: Sequence[Rectangle], isp_output_size: Size
) -> Rectangle:
    """Map normalised (x, y, w, h) on the low res crop to main output coordinates.

    ``scaler_crops`` holds the main stream crop followed by the low res crop.
    """
    if len(coords) != 4 or len(scaler_crops) != 2:
        return Rectangle()
    main_crop, lores_crop = scaler_crops
    obj = Rectangle(
        _round_half_away(coords[0] * (lores_crop.width - 1)),
        _round_half_away(coords[1] * (lores_crop.height - 1)),
        _round_half_away(coords[2] * (lores_crop.width - 1)),
        _round_half_away(coords[3] * (lores_crop.height - 1)),
    )
    translated_l = obj.translated_by(lores_crop.top_left())
    bounded = translated_l.bounded_to(main_crop)
    translated_h = bounded.translated_by(-main_crop.top_left())
    return translated_h.scaled_by(isp_output_size, main_crop.size())


def scaler_crops_from_metadata(
    scaler_crop: Rectangle | None, rpi_scaler_crops: Sequence[Rectangle] | None
) -> list[Rectangle]:
    """The per-stream crops, falling back to the single crop used for both streams."""
    if rpi_scaler_crops is not None:
        return list(rpi_scaler_crops)
    if scaler_crop is not None:
        return [scaler_crop, scaler_crop]
    return []


def pack_rgb_rows(buffer, width: int, height: int, stride: int) -> bytes:
    """Copy an RGB image out of a padded buffer into tightly packed rows."""
    row = width * 3
    if stride < row:
        raise ValueError("stride is smaller than a row of pixels")
    data = np.frombuffer(buffer, dtype=np.uint8)
    if height and data.size < (height - 1) * stride + row:
        raise ValueError("buffer is too small for the image")
    if height == 0:
        return b""
    rows = np.lib.stride_tricks.as_strided(data, shape=(height, row), strides=(stride, 1))
    return rows.tobytes()


def swap_red_blue(image, width: int, height: int):
    """Swap the first and third channel of a packed 3-channel image in place and return it."""
    data = np.frombuffer(image, dtype=np.uint8)
    count = width * height * 3
    if data.size < count:
        raise ValueError("image buffer is too small")
    if data.flags.writeable is False:
        raise TypeError("image buffer must be writable")
    pixels = data[:count].reshape(-1, 3)
    pixels[:, [0, 2]] = pixels[:, [2, 0]]
    return image
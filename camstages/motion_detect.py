"""A simple frame-difference motion detector on a low resolution image."""

from __future__ import annotations

import logging
import threading
from collections.abc import Mapping
from dataclasses import dataclass, fields

import numpy as np

logger = logging.getLogger(__name__)


@dataclass
class MotionDetectConfig:
    """Detector settings; ROI dimensions are fractions of the image size."""

    roi_x: float = 0.0
    roi_y: float = 0.0
    roi_width: float = 1.0
    roi_height: float = 1.0
    hskip: int = 1
    vskip: int = 1
    difference_m: float = 0.1
    difference_c: int = 10
    region_threshold: float = 0.005
    frame_period: int = 5
    verbose: bool = False
    region_name: str = ""

    @classmethod
    def from_params(cls, params: Mapping) -> MotionDetectConfig:
        defaults = cls()
        values = {}
        for field in fields(cls):
            value = params.get(field.name, getattr(defaults, field.name))
            if field.name == "verbose":
                value = bool(int(value))
            elif field.name == "region_name":
                value = str(value)
            elif isinstance(getattr(defaults, field.name), int):
                value = int(value)
            else:
                value = float(value)
            values[field.name] = value
        return cls(**values)


def _clamp(value: int, low: int, high: int) -> int:
    return min(max(value, low), high)


class MotionDetector:
    """Compares each frame's ROI with the previous one and reports motion."""

    def __init__(self, config: MotionDetectConfig, width: int, height: int, stride: int) -> None:
        self.config = config
        self.hskip = max(config.hskip, 1)
        self.vskip = max(config.vskip, 1)
        width //= self.hskip
        height //= self.vskip
        self.lores_stride = stride * self.vskip

        f32 = np.float32
        roi_x = max(int(f32(config.roi_x) * f32(width)), 0)
        roi_y = max(int(f32(config.roi_y) * f32(height)), 0)
        roi_width = max(int(f32(config.roi_width) * f32(width)), 0)
        roi_height = max(int(f32(config.roi_height) * f32(height)), 0)
        threshold = max(int(f32(config.region_threshold) * f32(roi_width) * f32(roi_height)), 0)

        self.roi_x = _clamp(roi_x, 0, width)
        self.roi_y = _clamp(roi_y, 0, height)
        self.roi_width = _clamp(roi_width, 0, width - self.roi_x)
        self.roi_height = _clamp(roi_height, 0, height - self.roi_y)
        self.region_threshold = _clamp(threshold, 0, self.roi_width * self.roi_height)

        if config.verbose:
            logger.info(
                "Lores: %dx%d roi: (%d,%d) %dx%d threshold: %d",
                width, height, self.roi_x, self.roi_y,
                self.roi_width, self.roi_height, self.region_threshold,
            )

        rows = (self.roi_y + np.arange(self.roi_height)) * self.lores_stride + self.roi_x * self.hskip
        cols = np.arange(self.roi_width) * self.hskip
        self._indices = rows[:, None] + cols[None, :]
        self._difference_m = np.float32(config.difference_m)
        self._difference_c = np.float32(config.difference_c)
        self._previous = np.zeros((self.roi_height, self.roi_width), dtype=np.uint8)
        self._first_time = True
        self._motion_detected = False
        self._lock = threading.Lock()

    def process(self, image, sequence: int = 0) -> bool | None:
        """Examine one frame; returns the motion result, or None if the frame is skipped."""
        period = self.config.frame_period
        if period and sequence % period:
            return None

        pixels = np.frombuffer(image, dtype=np.uint8)
        with self._lock:
            current = pixels[self._indices]
            if self._first_time:
                self._first_time = False
                self._previous = current.copy()
                return self._motion_detected

            old = self._previous.astype(np.int32)
            new = current.astype(np.int32)
            limit = self._difference_m * old.astype(np.float32) + self._difference_c
            regions = int(np.count_nonzero(np.abs(new - old) > limit))
            detected = current.size > 0 and regions >= self.region_threshold
            self._previous = current.copy()

            if self.config.verbose and detected != self._motion_detected:
                suffix = f" in region {self.config.region_name}" if self.config.region_name else ""
                logger.info("Motion %s%s", "detected" if detected else "stopped", suffix)

            self._motion_detected = detected
            return detected
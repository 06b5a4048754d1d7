"""HDR accumulation and dynamic range compression on YUV420 frames."""

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass

import numpy as np

from camstages.histogram import Histogram

# Cached values of e^(-x^2) for 0 <= x <= 3, sampled in steps of 0.1.
_WEIGHTS = [math.exp(-d * d / 100.0) for d in range(31)]


def _to_int16(values: np.ndarray) -> np.ndarray:
    """Truncate toward zero and wrap into 16-bit signed integers."""
    return np.trunc(np.asarray(values, dtype=np.float64)).astype(np.int64).astype(np.int16)


def _clamp(value: float, low: float, high: float) -> float:
    if value < low:
        return low
    if high < value:
        return high
    return value


@dataclass
class TonemapPoint:
    """Target position in the dynamic range for an inter-quantile mean of the histogram."""

    q: float
    width: float
    target: float
    max_up: float
    max_down: float

    @classmethod
    def from_params(cls, params: Mapping) -> TonemapPoint:
        return cls(
            q=float(params["q"]),
            width=float(params["width"]),
            target=float(params["target"]),
            max_up=float(params["max_up"]),
            max_down=float(params["max_down"]),
        )


def _iir_pass(
    pixels: list[int],
    threshold: list[float],
    strength: float,
    width: int,
    rows: range,
    cols: range,
    deltas: tuple[int, int, int, int],
) -> tuple[list[float], list[float]]:
    """One direction of the edge-preserving IIR low pass filter."""
    n = len(pixels)
    out = [0.0] * n
    sums = [0.0] * n
    num_weights = len(_WEIGHTS)
    for y in rows:
        base = y * width
        for x in cols:
            off = base + x
            pixel = pixels[off]
            t = threshold[pixel]
            scale = 10 / t if t else math.inf
            px_sum = pixel * strength
            wt_sum = strength
            for delta in deltas:
                p = int(out[off + delta])
                dist = abs(p - pixel) * scale
                if 0 <= dist < num_weights:
                    weight = _WEIGHTS[int(dist)]
                    px_sum += weight * p
                    wt_sum += weight
            out[off] = px_sum / wt_sum if wt_sum else 0.0
            sums[off] = wt_sum
    return out, sums


class HdrImage:
    """A 16-bit YUV420 accumulator image: Y plane followed by U and V planes."""

    def __init__(self, width: int = 0, height: int = 0, num_pixels: int = 0) -> None:
        self.width = width
        self.height = height
        self.pixels = np.zeros(num_pixels, dtype=np.int16)
        self.dynamic_range = 0  # one more than the maximum pixel value

    def clear(self) -> None:
        self.pixels[:] = 0

    def accumulate(self, src, stride: int) -> None:
        """Add an 8-bit YUV420 frame with the given stride into the accumulator."""
        data = np.frombuffer(src, dtype=np.uint8)
        w, h = self.width, self.height
        n = w * h
        w2, s2 = w // 2, stride // 2
        y_idx = np.arange(h)[:, None] * stride + np.arange(w)[None, :]
        uv_idx = stride * h + np.arange(h)[:, None] * s2 + np.arange(w2)[None, :]
        needed = max(
            int(y_idx.max()) + 1 if y_idx.size else 0,
            int(uv_idx.max()) + 1 if uv_idx.size else 0,
        )
        if needed > data.size:
            raise ValueError(f"frame buffer too small: need {needed} bytes, got {data.size}")
        if self.pixels.size < n + h * w2:
            raise ValueError("accumulator image is too small for the frame")

        self.pixels[:n] += data[y_idx].ravel().astype(np.int16)
        self.pixels[n:n + h * w2] += (data[uv_idx].astype(np.int16) - 128).ravel()
        self.dynamic_range += 256

    def lp_filter(self, strength: float, threshold_lut: Sequence[float]) -> HdrImage:
        """Return a smoothed, roughly edge-preserving copy of the Y plane."""
        w, h = self.width, self.height
        n = w * h
        pixels = self.pixels[:n].astype(np.int64).tolist()
        threshold = [float(t) for t in threshold_lut]

        fwd_pixels, fwd_sums = _iir_pass(
            pixels, threshold, strength, w, range(1, h), range(1, w), (-w - 1, -w, -w + 1, -1)
        )
        rev_pixels, rev_sums = _iir_pass(
            pixels, threshold, strength, w, range(h - 2, -1, -1), range(w - 2, -1, -1), (w + 1, w, w - 1, 1)
        )

        fp, fs = np.array(fwd_pixels), np.array(fwd_sums)
        rp, rs = np.array(rev_pixels), np.array(rev_sums)
        total = fs + rs
        combined = np.divide(fp * fs + rp * rs, total, out=np.zeros(n), where=total != 0)

        out = HdrImage(w, h, n)
        out.pixels[:] = _to_int16(combined)
        out.dynamic_range = self.dynamic_range
        return out

    def calculate_histogram(self) -> Histogram:
        """Histogram of the Y plane over the current dynamic range."""
        y = self.pixels[: self.width * self.height].astype(np.int64)
        if y.size and (y.min() < 0 or y.max() >= self.dynamic_range):
            raise ValueError("pixel values lie outside the dynamic range")
        counts = np.bincount(y, minlength=self.dynamic_range)
        return Histogram(counts.tolist())

    def create_tonemap(self, points: Sequence[TonemapPoint], strength: float) -> list[tuple[float, float]]:
        """Control points (input, output) of the global tone curve."""
        maxval = self.dynamic_range - 1
        histogram = self.calculate_histogram()
        tonemap: list[tuple[float, float]] = [(0, 0)]
        for tp in points:
            iqm = histogram.inter_quantile_mean(tp.q - tp.width, tp.q + tp.width)
            target = tp.target * 4096
            target = _clamp(target, iqm * tp.max_down, iqm * tp.max_up)
            target = _clamp(target, 0.0, 4095.0)
            target = iqm + (target - iqm) * strength
            tonemap.append((iqm, target))
        tonemap.append((maxval, maxval))
        return tonemap

    def tonemap(
        self,
        lp: HdrImage,
        tonemap_lut: Sequence[int],
        pos_strength_lut: Sequence[float],
        neg_strength_lut: Sequence[float],
        colour_scale: float,
    ) -> None:
        """Tone map the low pass image and add back the high pass detail, in place."""
        w, h = self.width, self.height
        n = w * h
        if n == 0:
            return
        maxval = self.dynamic_range - 1
        tl = np.asarray(tonemap_lut, dtype=np.int64)
        pos = np.asarray(pos_strength_lut, dtype=np.float64)
        neg = np.asarray(neg_strength_lut, dtype=np.float64)

        y_lp = lp.pixels[:n].astype(np.int64).reshape(h, w)
        y_hp = self.pixels[:n].astype(np.int64).reshape(h, w) - y_lp
        mapped = tl[y_lp]
        strength = np.where(y_hp > 0, pos[y_lp], neg[y_lp])
        detail = np.trunc(strength * y_hp).astype(np.int64)
        y_final = np.clip(mapped + detail, 0, maxval)
        self.pixels[:n] = y_final.ravel().astype(np.int16)

        rows = np.arange(0, h, 2)
        chroma_w = (w + 1) // 2
        base = rows * w // 4 + n
        u_idx = base[:, None] + np.arange(chroma_w)[None, :]
        v_idx = u_idx + n // 4
        f = (y_final[::2, ::2] + 1) / (y_lp[::2, ::2] + 1)
        # Values are non-linear so colours can come out slightly saturated;
        # colour_scale allows that to be tweaked.
        f = (f - 1) * colour_scale + 1
        self.pixels[u_idx] = _to_int16(self.pixels[u_idx].astype(np.float64) * f)
        self.pixels[v_idx] = _to_int16(self.pixels[v_idx].astype(np.float64) * f)

    def extract(self, stride: int) -> bytearray:
        """Write the image out as an 8-bit YUV420 buffer with the given stride."""
        ratio = self.dynamic_range // 256
        if ratio == 0:
            raise ValueError("dynamic range is below 256; nothing to extract")
        w, h = self.width, self.height
        if stride < w:
            raise ValueError("stride is smaller than the image width")
        n = w * h
        out = bytearray(stride * h + 2 * (stride * h // 4))
        dest = np.frombuffer(out, dtype=np.uint8)

        y = np.trunc(self.pixels[:n].astype(np.float64) / ratio)
        y_idx = np.arange(h)[:, None] * stride + np.arange(w)[None, :]
        dest[y_idx] = np.clip(y, 0, 255).astype(np.uint8).reshape(h, w)

        cw, ch, s = w // 2, h // 2, stride // 2
        count = cw * ch
        u = np.trunc(self.pixels[n:n + count].astype(np.float64) / ratio).astype(np.int64)
        v_start = n + n // 4
        v = np.trunc(self.pixels[v_start:v_start + count].astype(np.float64) / ratio).astype(np.int64)
        dest_u = stride * h
        dest_v = dest_u + stride * h // 4
        chroma_idx = np.arange(ch)[:, None] * s + np.arange(cw)[None, :]
        dest[dest_u + chroma_idx] = np.clip(u + 128, 0, 255).astype(np.uint8).reshape(ch, cw)
        dest[dest_v + chroma_idx] = np.clip(v + 128, 0, 255).astype(np.uint8).reshape(ch, cw)
        return out

    def scale(self, factor: float) -> None:
        """Multiply every pixel, and the dynamic range, by ``factor``."""
        self.pixels[:] = _to_int16(self.pixels.astype(np.float64) * factor)
        self.dynamic_range = int(self.dynamic_range * factor)


def adjust_buffer_count(use_case: str, buffer_count: int) -> int:
    """Still captures need at least three buffers to gather frames quickly."""
    if use_case == "still" and buffer_count < 3:
        return 3
    return buffer_count
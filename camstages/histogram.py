"""Cumulative histogram with quantile and inter-quantile mean queries."""

from __future__ import annotations

import math
from collections.abc import Iterable
from itertools import accumulate


class Histogram:
    """A histogram over integer bins, queried through its cumulative counts."""

    def __init__(self, counts: Iterable[int]) -> None:
        self._cumulative = [0, *accumulate(int(c) for c in counts)]
        if len(self._cumulative) < 2:
            raise ValueError("a histogram needs at least one bin")

    def bins(self) -> int:
        """Number of bins."""
        return len(self._cumulative) - 1

    def total(self) -> int:
        """Sum of all bin counts."""
        return self._cumulative[-1]

    def cumulative_freq(self, bin: float) -> int:
        """Cumulative frequency up to a (fractional) point in a bin."""
        if bin <= 0:
            return 0
        if bin >= self.bins():
            return self.total()
        cum = self._cumulative
        b = int(bin)
        return int(cum[b] + (bin - b) * (cum[b + 1] - cum[b]))

    def quantile(self, q: float, first: int | None = None, last: int | None = None) -> float:
        """Return the fractional bin at quantile ``q``, optionally searching only ``first..last``."""
        cum = self._cumulative
        if first is None or first == -1:
            first = 0
        if last is None or last == -1:
            last = len(cum) - 2
        if first > last:
            raise ValueError(f"search range is empty: first={first} last={last}")
        items = int(q * self.total())
        while first < last:
            middle = (first + last) // 2
            if cum[middle + 1] > items:
                last = middle
            else:
                first = middle + 1
        lo, hi = cum[first], cum[first + 1]
        frac = 0.0 if hi == lo else (items - lo) / (hi - lo)
        return first + frac

    def inter_quantile_mean(self, q_lo: float, q_hi: float) -> float:
        """Return the average bin value between two quantiles."""
        if not q_hi > q_lo:
            raise ValueError("q_hi must be greater than q_lo")
        cum = self._cumulative
        p_lo = self.quantile(q_lo)
        p_hi = self.quantile(q_hi, int(p_lo))
        sum_bin_freq = 0.0
        cumul_freq = 0.0
        p_next = math.floor(p_lo) + 1.0
        while p_next <= math.ceil(p_hi):
            bin_index = math.floor(p_lo)
            freq = (cum[bin_index + 1] - cum[bin_index]) * (min(p_next, p_hi) - p_lo)
            sum_bin_freq += bin_index * freq
            cumul_freq += freq
            p_lo = p_next
            p_next += 1.0
        if cumul_freq == 0:
            return math.nan
        # Add 0.5 to give an average for bin mid-points.
        return sum_bin_freq / cumul_freq + 0.5
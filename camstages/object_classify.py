"""Top-N image classification results with hysteresis on the confidence thresholds."""

from __future__ import annotations

import heapq
import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass

import numpy as np

logger = logging.getLogger(__name__)

LABEL_PADDING = 16


@dataclass
class ObjectClassifyConfig:
    """Classifier settings."""

    number_of_results: int = 3
    threshold_high: float = 0.2
    threshold_low: float = 0.1
    display_labels: bool = True
    labels_file: str = "/home/pi/models/labels.txt"

    @classmethod
    def from_params(cls, params: Mapping) -> ObjectClassifyConfig:
        defaults = cls()
        return cls(
            number_of_results=int(params.get("number_of_results", defaults.number_of_results)),
            threshold_high=float(params.get("threshold_high", defaults.threshold_high)),
            threshold_low=float(params.get("threshold_low", defaults.threshold_low)),
            display_labels=bool(int(params.get("display_labels", 1))),
            labels_file=str(params.get("labels_file", defaults.labels_file)),
        )


def read_labels(path) -> tuple[list[str], int]:
    """Read one label per line; returns the labels padded to a multiple of 16, and the real count."""
    try:
        with open(path, encoding="utf-8", newline="") as f:
            text = f.read()
    except OSError as exc:
        raise OSError(f"Failed to load labels file {path}") from exc
    labels = text.split("\n")
    if labels and labels[-1] == "":
        labels.pop()
    count = len(labels)
    labels.extend([""] * (-count % LABEL_PADDING))
    return labels, count


def check_label_count(output_size: int, label_count: int) -> None:
    """Raise if the model output size does not match the number of labels."""
    if output_size != label_count:
        raise ValueError(f"Label count mismatch: model has {output_size} outputs, {label_count} labels")


class TopResultsTracker:
    """Keeps the top-N classes; a class stays listed until it drops below the low threshold."""

    def __init__(self, config: ObjectClassifyConfig, labels: Sequence[str]) -> None:
        self.config = config
        self.labels = list(labels)
        self._top: list[tuple[float, int]] = []

    def update(self, prediction: Sequence[int]) -> list[tuple[str, float]]:
        """Take one set of 8-bit class scores; return (label, confidence) pairs, best first."""
        low = float(np.float32(self.config.threshold_low))
        high = float(np.float32(self.config.threshold_high))
        cap = self.config.number_of_results
        previous = {index for _, index in self._top}

        heap: list[tuple[float, int]] = []
        for i, value in enumerate(prediction):
            confidence = float(np.float32(int(value) / 255.0))
            if confidence < low:
                continue
            if confidence >= high or i in previous:
                heapq.heappush(heap, (confidence, i))
                if cap >= 0 and len(heap) > cap:
                    heapq.heappop(heap)

        self._top = sorted(heap, reverse=True)
        results = [(self.labels[index], confidence) for confidence, index in self._top]
        for label, confidence in results:
            logger.debug("%s : %f", label, confidence)
        return results


def _short_label(label: str) -> str:
    start = label.find(":") + 1
    end = label.find(",")
    if end < start:
        return label[start:]
    return label[start:end]


def format_annotation(results: Sequence[tuple[str, float]]) -> str:
    """Annotation text listing the short label and confidence of each result."""
    parts = [f"{_short_label(label)} {confidence:.2g}" for label, confidence in results]
    return "Detected: " + ", ".join(parts)
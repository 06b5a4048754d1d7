"""Object detection results: tensor decoding and temporal filtering."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field, replace

import numpy as np

from camstages.rectangle import Rectangle, Size

logger = logging.getLogger(__name__)

_UINT32_MASK = 0xFFFFFFFF


@dataclass
class Detection:
    """One detected object, with its box in output image coordinates."""

    category: int
    name: str
    confidence: float
    box: Rectangle = field(default_factory=Rectangle)

    def to_string(self) -> str:
        b = self.box
        return f"{self.name}[{self.category}] ({self.confidence:.2f}) @ {b.x},{b.y} {b.width}x{b.height}"

    def __str__(self) -> str:
        return self.to_string()


@dataclass(frozen=True)
class BBox:
    """A box in normalised inference image coordinates."""

    x0: float
    y0: float
    x1: float
    y1: float


@dataclass
class ObjectDetectionOutput:
    """The decoded contents of an object detection output tensor."""

    num_detections: int = 0
    bboxes: list[BBox] = field(default_factory=list)
    scores: list[float] = field(default_factory=list)
    classes: list[float] = field(default_factory=list)


def parse_detection_tensor(data: Sequence[float], total_detections: int) -> ObjectDetectionOutput:
    """Split a flat tensor of 4 coordinate blocks, scores, classes and a count."""
    t = total_detections
    needed = 6 * t + 1
    if len(data) < needed:
        raise IndexError(f"detection tensor too short: need {needed} values, got {len(data)}")

    bboxes = [
        BBox(
            y0=float(data[i]),
            x0=float(data[i + t]),
            y1=float(data[i + 2 * t]),
            x1=float(data[i + 3 * t]),
        )
        for i in range(t)
    ]
    scores = [float(v) for v in data[4 * t:5 * t]]
    classes = [float(v) for v in data[5 * t:6 * t]]

    num_detections = int(data[6 * t]) & _UINT32_MASK
    if num_detections > t:
        logger.info("Unexpected value for num_detections: %d, setting it to %d", num_detections, t)
        num_detections = t

    return ObjectDetectionOutput(num_detections, bboxes, scores, classes)


def detections_from_tensor(
    tensor: Sequence[float],
    num_tensors: int,
    tensor_data_num: int,
    max_detections: int,
    threshold: float,
    classes: Sequence[str],
    convert: Callable[[list[float]], Rectangle],
) -> list[Detection]:
    """Decode an output tensor into detections.

    ``convert`` maps normalised (x, y, w, h) coordinates to an output rectangle.
    """
    if num_tensors != 4:
        raise ValueError(f"Invalid number of tensors {num_tensors}, expected 4")

    total_detections = tensor_data_num // 4
    expected = 6 * total_detections + 1
    if len(tensor) != expected:
        raise ValueError(f"Invalid tensor size {len(tensor)}, expected {expected}")

    output = parse_detection_tensor(tensor, total_detections)

    objects: list[Detection] = []
    for i in range(min(output.num_detections, max_detections)):
        class_index = int(output.classes[i]) & 0xFF
        score = output.scores[i]
        if score < threshold or class_index >= len(classes):
            continue
        bbox = output.bboxes[i]
        coords = [bbox.x0, bbox.y0, bbox.x1 - bbox.x0, bbox.y1 - bbox.y0]
        objects.append(Detection(class_index, classes[class_index], score, convert(coords)))

    logger.debug("Number of objects detected: %d", len(objects))
    for i, obj in enumerate(objects):
        logger.debug("[%d] : %s", i, obj.to_string())
    return objects


@dataclass
class TemporalFilterConfig:
    """Settings for smoothing detections over consecutive frames."""

    tolerance: float = 0.05
    factor: float = 0.2
    visible_frames: int = 5
    hidden_frames: int = 2

    @classmethod
    def from_params(cls, params: Mapping) -> TemporalFilterConfig | None:
        """Read the ``temporal_filter`` block of stage parameters, or None if it is absent."""
        if "temporal_filter" not in params:
            return None
        block = params["temporal_filter"] or {}
        return cls(
            tolerance=float(block.get("tolerance", 0.05)),
            factor=float(block.get("factor", 0.2)),
            visible_frames=int(block.get("visible_frames", 5)),
            hidden_frames=int(block.get("hidden_frames", 2)),
        )


@dataclass
class _LtObject:
    params: Detection
    visible: int
    hidden: int
    matched: bool


class TemporalFilter:
    """Keeps a long term list of detections, hiding new ones and holding lost ones."""

    def __init__(self, config: TemporalFilterConfig, reveal_when_empty: bool = False) -> None:
        self.config = config
        self.reveal_when_empty = reveal_when_empty
        self._objects: list[_LtObject] = []

    def __len__(self) -> int:
        return len(self._objects)

    def reset(self) -> None:
        self._objects.clear()

    def visible(self) -> list[Detection]:
        """The tracked detections that are not currently hidden."""
        return [replace(obj.params) for obj in self._objects if not obj.hidden]

    def update(self, objects: Sequence[Detection], isp_output_size: Size) -> list[Detection]:
        """Merge this frame's detections into the long term list and return the visible ones."""
        cfg = self.config
        f32 = np.float32
        tolerance = f32(cfg.tolerance)
        factor = f32(cfg.factor)
        limit_w = float(tolerance * f32(isp_output_size.width))
        limit_h = float(tolerance * f32(isp_output_size.height))
        was_empty = not self._objects

        for lt in self._objects:
            lt.matched = False

        for obj in objects:
            matched = False
            for lt in self._objects:
                box, lt_box = obj.box, lt.params.box
                if (
                    obj.category == lt.params.category
                    and abs(box.x - lt_box.x) < limit_w
                    and abs(box.y - lt_box.y) < limit_h
                    and abs(box.width - lt_box.width) < limit_w
                    and abs(box.height - lt_box.height) < limit_h
                ):
                    lt.matched = matched = True

                    def blend(new: int, old: int) -> int:
                        return int(factor * f32(new) + (f32(1) - factor) * f32(old))

                    lt.params.confidence = obj.confidence
                    lt.params.box = Rectangle(
                        blend(box.x, lt_box.x),
                        blend(box.y, lt_box.y),
                        blend(box.width, lt_box.width),
                        blend(box.height, lt_box.height),
                    )
                    lt.visible = cfg.visible_frames
                    lt.hidden = max(0, lt.hidden - 1)
                    break

            if not matched:
                hidden = 0 if (self.reveal_when_empty and was_empty) else cfg.hidden_frames
                self._objects.append(_LtObject(replace(obj), cfg.visible_frames, hidden, True))

        for lt in self._objects:
            if not lt.matched:
                # A still-hidden object must be matched again from scratch before it shows.
                if lt.hidden:
                    lt.visible = 0
                else:
                    lt.visible = (lt.visible - 1) & _UINT32_MASK

        self._objects = [lt for lt in self._objects if lt.matched or lt.visible]
        return self.visible()
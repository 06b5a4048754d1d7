"""Post-processing building blocks for camera frames: histograms, geometry, HDR, motion detection, negation and inference result handling."""

__version__ = "1.6.0"
"""Pixel-level stages: frame conditioning and feature extraction."""

from frame_affect.vision.conditioning import FrameConditioner, equalize_histogram, reduce_noise
from frame_affect.vision.features import FeatureExtractor, count_edges, sobel_magnitude

__all__ = [
    "FeatureExtractor",
    "FrameConditioner",
    "count_edges",
    "equalize_histogram",
    "reduce_noise",
    "sobel_magnitude",
]

"""Feature extraction — brightness, local contrast and gradient statistics.

This module turns a (conditioned) :class:`Frame` plus a region of interest
into a :class:`FeatureVector` suitable for the rule-based scorer.

Key responsibilities
--------------------
1. **Per-pixel statistics** over the frame interior (1-pixel border
   excluded): brightness, 4-neighbour local contrast, Sobel gradient of the
   red channel and edge counting.
2. **Frame-level aggregation** — sums normalised by the full pixel count,
   and by 255 for brightness-like quantities.
3. **Face-region aggregation** — brightness/contrast restricted to the
   region of interest, with a fallback to frame-level values when the
   region is empty.
4. **Degraded mode** — frames too small to have an interior still yield a
   valid vector (gradient-derived fields are 0).
"""

from __future__ import annotations

import math

import numpy as np
import structlog

from frame_affect.models import DominantColor, FeatureVector, Frame, RegionOfInterest

logger = structlog.get_logger(__name__)

# ── Constants ─────────────────────────────────────────────────

EDGE_THRESHOLD = 30.0  # gradient magnitude; an edge needs strictly more
DEFAULT_ROI_FRACTION = 0.6


# ── Pixel-level helpers ──────────────────────────────────────


def brightness_plane(pixels: np.ndarray) -> np.ndarray:
    """Mean of R, G and B for every pixel, as float64."""
    return pixels[..., :3].astype(np.float64).mean(axis=2)


def local_contrast(plane: np.ndarray) -> np.ndarray:
    """|value - mean of 4 neighbours| for every interior pixel of ``plane``.

    Returns an array two rows and two columns smaller than the input.
    """
    centre = plane[1:-1, 1:-1]
    neighbours = (plane[:-2, 1:-1] + plane[2:, 1:-1] + plane[1:-1, :-2] + plane[1:-1, 2:]) / 4
    return np.abs(centre - neighbours)


def sobel_magnitude(channel: np.ndarray) -> np.ndarray:
    """Sobel gradient magnitude for every interior pixel of ``channel``.

    Uses the fixed kernels::

        Gx = [[-1, 0, 1],      Gy = [[ 1,  2,  1],
              [-2, 0, 2],            [ 0,  0,  0],
              [-1, 0, 1]]            [-1, -2, -1]]
    """
    c = channel.astype(np.float64)
    gx = (
        c[:-2, 2:] - c[:-2, :-2]
        + 2 * c[1:-1, 2:] - 2 * c[1:-1, :-2]
        + c[2:, 2:] - c[2:, :-2]
    )
    gy = (
        c[:-2, :-2] - c[2:, :-2]
        + 2 * c[:-2, 1:-1] - 2 * c[2:, 1:-1]
        + c[:-2, 2:] - c[2:, 2:]
    )
    return np.sqrt(gx * gx + gy * gy)


def count_edges(magnitudes: np.ndarray, threshold: float = EDGE_THRESHOLD) -> int:
    """Number of magnitudes strictly greater than ``threshold``."""
    return int(np.count_nonzero(np.asarray(magnitudes) > threshold))


def _unit(value: float) -> float:
    """Clamp into [0, 1]; non-finite values become 0."""
    if not math.isfinite(value):
        return 0.0
    return max(0.0, min(1.0, value))


# ── Extractor ─────────────────────────────────────────────────


class FeatureExtractor:
    """Derive a :class:`FeatureVector` from a frame and a region of interest.

    Parameters
    ----------
    edge_threshold : float
        Gradient magnitude above which an interior pixel counts as an edge.
    roi_fraction : float
        Size of the default centered face crop used when no region is
        supplied, as a fraction of each frame dimension.
    """

    def __init__(
        self,
        edge_threshold: float = EDGE_THRESHOLD,
        roi_fraction: float = DEFAULT_ROI_FRACTION,
    ) -> None:
        self._edge_threshold = edge_threshold
        self._roi_fraction = roi_fraction

    def extract(self, frame: Frame, roi: RegionOfInterest | None = None) -> FeatureVector:
        """Compute the feature vector of ``frame``.

        ``roi`` defaults to a centered crop.  Frames with fewer than three
        rows or columns are handled in degraded mode rather than rejected.
        """
        if roi is None:
            roi = RegionOfInterest.centered(frame.width, frame.height, self._roi_fraction)

        pixels = frame.data
        bright = brightness_plane(pixels)
        pixel_count = frame.pixel_count

        if frame.width < 3 or frame.height < 3:
            logger.debug("features.degraded_frame", width=frame.width, height=frame.height)
            brightness = float(bright.sum()) / pixel_count / 255
            contrast = 0.0
            edge_density = 0.0
            gradient = 0.0
            rgb_sums = pixels[..., :3].astype(np.float64).sum(axis=(0, 1))
        else:
            brightness = float(bright[1:-1, 1:-1].sum()) / pixel_count / 255
            contrast = float(local_contrast(bright).sum()) / pixel_count / 255

            magnitudes = sobel_magnitude(pixels[..., 0])
            edge_density = count_edges(magnitudes, self._edge_threshold) / pixel_count
            gradient = float(magnitudes.sum()) / pixel_count / 255
            rgb_sums = pixels[1:-1, 1:-1, :3].astype(np.float64).sum(axis=(0, 1))

        face_brightness, face_contrast = self._face_statistics(bright, roi)
        if face_brightness is None:
            face_brightness, face_contrast = brightness, contrast

        return FeatureVector(
            brightness=_unit(brightness),
            contrast=_unit(contrast),
            edge_density=_unit(edge_density),
            gradient_magnitude=_unit(gradient),
            face_brightness=_unit(face_brightness),
            face_contrast=_unit(face_contrast),
            dominant_color=DominantColor(
                r=_unit(rgb_sums[0] / pixel_count / 255),
                g=_unit(rgb_sums[1] / pixel_count / 255),
                b=_unit(rgb_sums[2] / pixel_count / 255),
            ),
        )

    @staticmethod
    def _face_statistics(
        bright: np.ndarray,
        roi: RegionOfInterest,
    ) -> tuple[float | None, float | None]:
        """Brightness and contrast inside ``roi`` clipped to the frame.

        Contrast is accumulated over the region's interior but divided by
        the full region pixel count.  Returns ``(None, None)`` when the
        clipped region is empty.
        """
        height, width = bright.shape
        start_x = max(0, math.floor(roi.x))
        end_x = min(width, math.floor(roi.x + roi.width))
        start_y = max(0, math.floor(roi.y))
        end_y = min(height, math.floor(roi.y + roi.height))

        if end_x <= start_x or end_y <= start_y:
            return None, None

        region = bright[start_y:end_y, start_x:end_x]
        count = region.size
        face_brightness = float(region.sum()) / count / 255

        face_contrast = 0.0
        if region.shape[0] >= 3 and region.shape[1] >= 3:
            face_contrast = float(local_contrast(region).sum()) / count / 255

        return face_brightness, face_contrast

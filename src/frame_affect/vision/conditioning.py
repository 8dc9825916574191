"""Frame conditioning — contrast equalisation and noise reduction.

Both stages operate on a copy of the frame's pixels and return a new
:class:`Frame`; the input frame is never touched.  Alpha is preserved
byte-for-byte.
"""

from __future__ import annotations

import numpy as np

from frame_affect.models import Frame

# ── Constants ─────────────────────────────────────────────────

# ITU-R BT.601 luma weights
_LUMA_WEIGHTS = (0.299, 0.587, 0.114)

_BLUR_KERNEL = np.array(
    [
        [1, 2, 1],
        [2, 4, 2],
        [1, 2, 1],
    ],
    dtype=np.float64,
)
_BLUR_KERNEL_SUM = 16.0


def _round_half_up(values: np.ndarray) -> np.ndarray:
    return np.floor(values + 0.5)


def _to_uint8(values: np.ndarray) -> np.ndarray:
    """Round half-to-even and saturate into the 8-bit range."""
    return np.clip(np.rint(values), 0, 255).astype(np.uint8)


def luma(pixels: np.ndarray) -> np.ndarray:
    """Integer luma (0-255) of every pixel of an ``(H, W, >=3)`` array."""
    rgb = pixels[..., :3].astype(np.float64)
    y = rgb[..., 0] * _LUMA_WEIGHTS[0] + rgb[..., 1] * _LUMA_WEIGHTS[1] + rgb[..., 2] * _LUMA_WEIGHTS[2]
    return np.clip(_round_half_up(y), 0, 255).astype(np.int64)


# ── Stages ────────────────────────────────────────────────────


def equalize_histogram(pixels: np.ndarray) -> np.ndarray:
    """Return a copy of ``pixels`` with its luma histogram equalised.

    Each pixel with non-zero luma has R/G/B scaled by
    ``equalised_luma / original_luma`` and clamped to 255.  Pixels with
    zero luma and the alpha channel are left as they are.
    """
    out = pixels.copy()
    gray = luma(pixels)
    pixel_count = gray.size

    histogram = np.bincount(gray.ravel(), minlength=256)
    cdf = np.cumsum(histogram)
    lut = _round_half_up(cdf / pixel_count * 255)

    mask = gray > 0
    if not mask.any():
        return out

    factor = np.ones(gray.shape, dtype=np.float64)
    factor[mask] = lut[gray[mask]] / gray[mask]

    rgb = pixels[..., :3].astype(np.float64) * factor[..., None]
    out[..., :3] = _to_uint8(np.minimum(rgb, 255.0))
    return out


def reduce_noise(pixels: np.ndarray) -> np.ndarray:
    """Return a copy of ``pixels`` blurred with the 3x3 binomial kernel.

    Only interior pixels are filtered; the outermost rows and columns
    come back byte-identical.  Arrays with fewer than three rows or
    columns have no interior and are returned unchanged.
    """
    out = pixels.copy()
    height, width = pixels.shape[:2]
    if height < 3 or width < 3:
        return out

    rgb = pixels[..., :3].astype(np.float64)
    acc = np.zeros((height - 2, width - 2, 3), dtype=np.float64)
    for ky in range(3):
        for kx in range(3):
            acc += _BLUR_KERNEL[ky, kx] * rgb[ky:ky + height - 2, kx:kx + width - 2]

    out[1:-1, 1:-1, :3] = _to_uint8(acc / _BLUR_KERNEL_SUM)
    return out


# ── Conditioner ───────────────────────────────────────────────


class FrameConditioner:
    """Normalise contrast and noise of a raw frame.

    Parameters
    ----------
    equalize : bool
        Apply luma histogram equalisation.
    denoise : bool
        Apply the 3x3 binomial blur to the frame interior.
    """

    def __init__(self, equalize: bool = True, denoise: bool = True) -> None:
        self._equalize = equalize
        self._denoise = denoise

    def condition(self, frame: Frame) -> Frame:
        """Return a conditioned copy of ``frame``."""
        pixels = frame.copy_pixels()
        if self._equalize:
            pixels = equalize_histogram(pixels)
        if self._denoise:
            pixels = reduce_noise(pixels)
        return Frame(width=frame.width, height=frame.height, data=pixels)

# src/lutify/pipeline.py
#
# Per-pixel colour grading:
#
#   1. LUT      sample the atlas (bilinear inside a blue slice, linear
#                between neighbouring slices) and blend with the source
#                colour by strength / 100
#   2. Tone     exposure, contrast, saturation, temperature, tint, in that
#                order, each skipped when its parameter is 0
#   3. Clamp    every channel to [0, 1]; alpha is passed through untouched
#
# Every stage works on arrays of shape (..., 3), so the same code grades one
# pixel, a row band or a whole frame.

import logging
import math
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Optional

import numpy as np

from .atlas import Atlas
from .data import CANONICAL_SIZE, LUMA_WEIGHTS, slice_origins

logger = logging.getLogger(__name__)


@dataclass
class RenderParams:
    """
    Grading controls for one editing session.

    strength is a percentage (0-100) of LUT contribution. The other fields
    are signed offsets: exposure in stops (-2..2), the rest in -1..1.
    The pipeline does not range-check them; see config.clamp_params.
    """

    strength: float = 100.0
    exposure: float = 0.0
    contrast: float = 0.0
    saturation: float = 0.0
    temperature: float = 0.0
    tint: float = 0.0


def _lerp(a, b, t):
    return a + (b - a) * t


# ---------------------------------------------------------------------------
# Atlas sampling
# ---------------------------------------------------------------------------


def _sample_slice(
    pixels: np.ndarray, slices: np.ndarray, red: np.ndarray, green: np.ndarray
) -> np.ndarray:
    """
    Bilinear fetch inside the tiles of `slices` at continuous lattice
    coordinates (red, green) in [0, 63].

    Sampling at the pixel centre (coordinate + 0.5) means the filter blends
    texel floor(x) with floor(x) + 1 by fract(x). The upper neighbour is
    clamped to the tile edge so a slice never bleeds into the next tile.
    """
    x0, y0 = slice_origins(slices)

    r_lo = np.floor(red).astype(np.intp)
    g_lo = np.floor(green).astype(np.intp)
    r_hi = np.minimum(r_lo + 1, CANONICAL_SIZE - 1)
    g_hi = np.minimum(g_lo + 1, CANONICAL_SIZE - 1)
    fr = (red - r_lo)[..., None]
    fg = (green - g_lo)[..., None]

    def texel(r_idx, g_idx):
        return pixels[y0 + g_idx, x0 + r_idx, :3].astype(np.float64) / 255.0

    top = _lerp(texel(r_lo, g_lo), texel(r_hi, g_lo), fr)
    bottom = _lerp(texel(r_lo, g_hi), texel(r_hi, g_hi), fr)
    return _lerp(top, bottom, fg)


def sample_atlas(atlas: Atlas, color) -> np.ndarray:
    """
    Looks up `color` (shape (..., 3), clamped to [0, 1]) in the atlas.

    Blue picks two neighbouring slices (the upper one clamped to 63); red
    and green are filtered bilinearly inside each slice and the two slice
    samples are blended by the fractional part of blue.
    """
    c = np.clip(np.asarray(color, dtype=np.float64), 0.0, 1.0)
    shape = c.shape
    scaled = c.reshape(-1, 3) * (CANONICAL_SIZE - 1)
    red, green, blue = scaled[:, 0], scaled[:, 1], scaled[:, 2]

    slice_index = np.floor(blue)
    slice_frac = (blue - slice_index)[:, None]
    next_slice = np.minimum(slice_index + 1, CANONICAL_SIZE - 1)

    pixels = atlas.pixels
    first = _sample_slice(pixels, slice_index.astype(np.intp), red, green)
    second = _sample_slice(pixels, next_slice.astype(np.intp), red, green)
    return _lerp(first, second, slice_frac).reshape(shape)


# ---------------------------------------------------------------------------
# Tone adjustments
# ---------------------------------------------------------------------------


def adjust_exposure(c: np.ndarray, exposure: float) -> np.ndarray:
    return c * (2.0**exposure)


def adjust_contrast(c: np.ndarray, contrast: float) -> np.ndarray:
    return (c - 0.5) * (1.0 + contrast) + 0.5


def adjust_saturation(c: np.ndarray, saturation: float) -> np.ndarray:
    luma = np.sum(c * LUMA_WEIGHTS, axis=-1, keepdims=True)
    return _lerp(luma, c, 1.0 + saturation)


def adjust_temperature(c: np.ndarray, temperature: float) -> np.ndarray:
    """
    Warm/cool shift. The coefficients are deliberately asymmetric:
    warming adds 0.1 to red and removes 0.05 from blue, cooling moves blue
    by 0.1 and red by 0.05, both evaluated with the signed value.
    """
    c = np.array(c, dtype=np.float64)
    if temperature > 0:
        c[..., 0] += temperature * 0.1
        c[..., 2] -= temperature * 0.05
    else:
        c[..., 2] -= temperature * 0.1
        c[..., 0] += temperature * 0.05
    return c


def adjust_tint(c: np.ndarray, tint: float) -> np.ndarray:
    """Positive tint pushes green; negative tint pushes magenta (red + blue)."""
    c = np.array(c, dtype=np.float64)
    if tint > 0:
        c[..., 1] += tint * 0.1
    else:
        c[..., 0] -= tint * 0.1
        c[..., 2] -= tint * 0.1
    return c


# Fixed order: each stage sees the output of the one before it.
TONE_STAGES = (
    ("exposure", adjust_exposure),
    ("contrast", adjust_contrast),
    ("saturation", adjust_saturation),
    ("temperature", adjust_temperature),
    ("tint", adjust_tint),
)


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------


def apply(atlas: Atlas, params: RenderParams, source_color) -> np.ndarray:
    """
    Grades `source_color` (RGB or RGBA floats, any leading shape) and
    returns the result in the same shape. Pure: no state is kept between
    calls, so pixels can be evaluated in any order or in parallel.
    """
    source = np.asarray(source_color, dtype=np.float64)
    c = np.clip(source[..., :3], 0.0, 1.0)

    if params.strength > 0:
        lut_color = sample_atlas(atlas, c)
        c = _lerp(c, lut_color, params.strength / 100.0)

    for name, stage in TONE_STAGES:
        value = getattr(params, name)
        if value != 0:
            c = stage(c, value)

    c = np.clip(c, 0.0, 1.0)
    if source.shape[-1] == 4:
        c = np.concatenate([c, source[..., 3:]], axis=-1)
    return c


def render(
    atlas: Atlas,
    params: RenderParams,
    pixels: np.ndarray,
    workers: Optional[int] = None,
) -> np.ndarray:
    """
    Grades a whole (height, width, 3 or 4) frame.

    Integer frames are normalised by their dtype's maximum and converted
    back on the way out; float frames are taken as [0, 1]. With workers > 1
    the rows are split into bands and graded on a thread pool.
    """
    pixels = np.asarray(pixels)
    if pixels.ndim != 3 or pixels.shape[-1] not in (3, 4):
        raise ValueError(f"Expected a (height, width, 3|4) frame, got {pixels.shape}")

    integer = np.issubdtype(pixels.dtype, np.integer)
    scale = float(np.iinfo(pixels.dtype).max) if integer else 1.0
    frame = pixels.astype(np.float64) / scale

    height = frame.shape[0]
    if workers is not None and workers > 1 and height > 1:
        logger.debug("Rendering %dx%d frame on %d workers", frame.shape[1], height, workers)
        graded = np.empty_like(frame)
        bands = [b for b in np.array_split(np.arange(height), workers) if len(b)]
        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = {
                pool.submit(apply, atlas, params, frame[band[0] : band[-1] + 1]): band
                for band in bands
            }
            for future in as_completed(futures):
                band = futures[future]
                graded[band[0] : band[-1] + 1] = future.result()
    else:
        logger.debug("Rendering %dx%d frame", frame.shape[1], height)
        graded = apply(atlas, params, frame)

    if integer:
        return np.round(graded * scale).astype(pixels.dtype)
    return graded.astype(pixels.dtype, copy=False)


def preview_frame(pixels: np.ndarray, max_dim: int) -> np.ndarray:
    """
    Low-resolution copy for interactive preview: every n-th pixel on both
    axes, with n chosen so the longer side is at most `max_dim`.
    """
    if max_dim <= 0:
        raise ValueError("max_dim must be positive")
    step = max(1, math.ceil(max(pixels.shape[:2]) / max_dim))
    return pixels[::step, ::step]

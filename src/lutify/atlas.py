# src/lutify/atlas.py
#
# Canonicalises any Lattice into a fixed 512x512 RGBA8 atlas:
#
#   - 64 blue slices, each a 64x64 tile (red along x, green along y)
#   - slices packed into an 8x8 grid by data.slice_tile
#   - alpha is always 255
#
# A 64-point lattice is copied straight in. Any other size is first
# resampled to 64 points per axis with trilinear interpolation, so the
# grading pipeline never has to know the native LUT resolution.

import logging
from dataclasses import dataclass

import numpy as np

from .data import ATLAS_BYTES, ATLAS_SIZE, CANONICAL_SIZE, slice_origin
from .errors import AtlasFormatError
from .parser import Lattice

logger = logging.getLogger(__name__)

ATLAS_SHAPE = (ATLAS_SIZE, ATLAS_SIZE, 4)


@dataclass(frozen=True, eq=False)
class Atlas:
    """A canonical 64^3 LUT packed into a 512x512 RGBA8 image."""

    pixels: np.ndarray

    def __post_init__(self):
        pixels = np.asarray(self.pixels)
        if pixels.shape != ATLAS_SHAPE or pixels.dtype != np.uint8:
            raise AtlasFormatError(
                f"Atlas pixels must be a {ATLAS_SHAPE} uint8 array, "
                f"got {pixels.shape} {pixels.dtype}"
            )
        if pixels.flags.writeable:
            pixels = pixels.copy()
            pixels.setflags(write=False)
        object.__setattr__(self, "pixels", pixels)

    def texel(self, r: int, g: int, b: int) -> np.ndarray:
        """Returns the RGBA8 pixel encoding canonical coordinate (r, g, b)."""
        x0, y0 = slice_origin(b)
        return self.pixels[y0 + g, x0 + r]

    def to_bytes(self) -> bytes:
        """Raw row-major RGBA8 buffer, top row first, no header."""
        return self.pixels.tobytes()

    @classmethod
    def from_bytes(cls, blob: bytes) -> "Atlas":
        """Reloads a blob written by `to_bytes`. No re-parsing needed."""
        if len(blob) != ATLAS_BYTES:
            raise AtlasFormatError(
                f"Atlas blob must be {ATLAS_BYTES} bytes, got {len(blob)}"
            )
        return cls(pixels=np.frombuffer(blob, dtype=np.uint8).reshape(ATLAS_SHAPE))


# ---------------------------------------------------------------------------
# Resampling
# ---------------------------------------------------------------------------


def _lerp(a: np.ndarray, b: np.ndarray, t) -> np.ndarray:
    return a + (b - a) * t


def trilinear_resample(lattice: Lattice, target_size: int = CANONICAL_SIZE) -> np.ndarray:
    """
    Resamples a lattice to `target_size` points per axis.

    Target index t maps to source coordinate t / (target_size - 1) * (size - 1).
    The upper neighbour on each axis is clamped to size - 1 (no wraparound),
    so the corner points of the result are exactly the source corners.
    Interpolation runs along blue first, then green, then red.

    Returns a (target_size, target_size, target_size, 3) float array indexed
    [b, g, r], the same layout as Lattice.table.
    """
    n = lattice.size
    table = lattice.table

    coords = np.arange(target_size) / (target_size - 1) * (n - 1)
    lo = np.floor(coords).astype(np.intp)
    hi = np.minimum(lo + 1, n - 1)
    frac = coords - lo

    def corner(b_idx, g_idx, r_idx):
        return table[b_idx[:, None, None], g_idx[None, :, None], r_idx[None, None, :]]

    fb = frac[:, None, None, None]
    fg = frac[None, :, None, None]
    fr = frac[None, None, :, None]

    # Along blue: four edges of the enclosing cube.
    c00 = _lerp(corner(lo, lo, lo), corner(hi, lo, lo), fb)  # r0 g0
    c01 = _lerp(corner(lo, hi, lo), corner(hi, hi, lo), fb)  # r0 g1
    c10 = _lerp(corner(lo, lo, hi), corner(hi, lo, hi), fb)  # r1 g0
    c11 = _lerp(corner(lo, hi, hi), corner(hi, hi, hi), fb)  # r1 g1

    # Along green, then red.
    c0 = _lerp(c00, c01, fg)
    c1 = _lerp(c10, c11, fg)
    return _lerp(c0, c1, fr)


def quantize(volume: np.ndarray) -> np.ndarray:
    """Scales [0, 1] floats to bytes: floor(v * 255) clamped to [0, 255]."""
    return np.clip(np.floor(volume * 255.0), 0, 255).astype(np.uint8)


def pack_volume(volume8: np.ndarray) -> np.ndarray:
    """
    Lays a (64, 64, 64, 3) uint8 volume indexed [b, g, r] out as atlas pixels.
    Each blue slice becomes one tile: rows are green, columns are red.
    """
    pixels = np.zeros(ATLAS_SHAPE, dtype=np.uint8)
    pixels[..., 3] = 255
    for b in range(CANONICAL_SIZE):
        x0, y0 = slice_origin(b)
        pixels[y0 : y0 + CANONICAL_SIZE, x0 : x0 + CANONICAL_SIZE, :3] = volume8[b]
    return pixels


# ---------------------------------------------------------------------------
# Build
# ---------------------------------------------------------------------------


def build_atlas(lattice: Lattice) -> Atlas:
    """
    Builds the canonical atlas for a lattice that already passed validation.

    64-point lattices take the direct path; every other size is trilinearly
    resampled to 64 points first. Both paths quantise identically.
    """
    if lattice.size <= 0 or len(lattice.samples) == 0:
        logger.warning("Empty lattice (size %d); building a black atlas", lattice.size)
        volume = np.zeros((CANONICAL_SIZE,) * 3 + (3,))
    elif lattice.size == CANONICAL_SIZE:
        logger.debug("Building atlas from 64^3 lattice (direct copy)")
        volume = lattice.table
    else:
        logger.debug(
            "Building atlas from %d^3 lattice (trilinear resample to %d^3)",
            lattice.size,
            CANONICAL_SIZE,
        )
        volume = trilinear_resample(lattice, CANONICAL_SIZE)

    return Atlas(pixels=pack_volume(quantize(volume)))

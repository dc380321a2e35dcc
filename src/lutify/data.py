# src/lutify/data.py

import numpy as np

# ---------------------------------------------------------------------------
# Atlas geometry
# ---------------------------------------------------------------------------

# Every imported LUT is canonicalised to a 64-point cube.
CANONICAL_SIZE = 64

# The 64 blue slices are packed as an 8x8 grid of 64x64 tiles.
GRID_DIM = 8

# 8 tiles * 64 px = 512 px on each side.
ATLAS_SIZE = GRID_DIM * CANONICAL_SIZE

# Raw RGBA8 blob: 512 * 512 * 4 bytes, no header.
ATLAS_BYTES = ATLAS_SIZE * ATLAS_SIZE * 4

# Lattice sizes most grading tools export. Anything else is imported with a
# warning; the resample path handles arbitrary sizes.
CONVENTIONAL_SIZES = (17, 33, 64)

# ---------------------------------------------------------------------------
# Grading constants
# ---------------------------------------------------------------------------

# ITU-R BT.601 luma coefficients, used by the saturation adjustment.
LUMA_WEIGHTS = np.array([0.299, 0.587, 0.114])

DEFAULT_DOMAIN_MIN = (0.0, 0.0, 0.0)
DEFAULT_DOMAIN_MAX = (1.0, 1.0, 1.0)

# ---------------------------------------------------------------------------
# Tile mapping
# ---------------------------------------------------------------------------


def slice_tile(index: int) -> tuple[int, int]:
    """
    Returns the (tile_x, tile_y) grid cell holding blue slice `index`.

    This is the only place the atlas packing is defined: the builder writes
    slices through it and the sampler reads them back through it.
    """
    return index % GRID_DIM, index // GRID_DIM


def slice_origin(index: int) -> tuple[int, int]:
    """Returns the top-left pixel (x, y) of blue slice `index` in the atlas."""
    tile_x, tile_y = slice_tile(index)
    return tile_x * CANONICAL_SIZE, tile_y * CANONICAL_SIZE


def slice_origins(indices: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    """Vectorised `slice_origin` for an integer array of slice indices."""
    tile_x, tile_y = slice_tile(indices)
    return tile_x * CANONICAL_SIZE, tile_y * CANONICAL_SIZE

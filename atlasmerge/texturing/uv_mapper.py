"""
UV Mapper - translates a mesh's own UVs into its atlas tile.

The atlas is a single row of N equal-width tiles. Tile i covers the
horizontal range [i/N, (i+1)/N) of the atlas and the full vertical range, so:

    u' = (u + i) / N
    v' = v

Any u in [0, 1) lands inside tile i, preserving the original intra-texture
mapping. V is untouched because every tile spans the full atlas height.
"""
from typing import Tuple

import numpy as np


def _check_tile(tile_index: int, tile_count: int) -> None:
    if tile_count <= 0:
        raise ValueError(f"tile_count must be positive, got {tile_count}")
    if not 0 <= tile_index < tile_count:
        raise ValueError(f"tile_index {tile_index} outside [0, {tile_count})")


def remap_uv(u: float, v: float, tile_index: int, tile_count: int) -> Tuple[float, float]:
    """
    Map one UV coordinate into tile `tile_index` of `tile_count`.

    Examples:
        >>> remap_uv(0.5, 0.5, 0, 2)
        (0.25, 0.5)
        >>> remap_uv(0.5, 0.5, 1, 2)
        (0.75, 0.5)
    """
    _check_tile(tile_index, tile_count)
    return (u + tile_index) / tile_count, v


def remap_uvs(uvs: np.ndarray, tile_index: int, tile_count: int) -> np.ndarray:
    """
    Vectorized remap_uv over a (V, 2) array. Returns a new float32 array.

    The division runs in float64; rounding back to float32 could still push
    a u just below 1 onto the next tile's first column, so values from
    u in [0, 1) are clamped to the float32 range of their own tile.
    """
    _check_tile(tile_index, tile_count)
    source = np.asarray(uvs, dtype=np.float64)
    out = np.array(source, dtype=np.float32, copy=True)
    out[:, 0] = ((source[:, 0] + tile_index) / tile_count).astype(np.float32)

    low, high = _float32_tile_bounds(tile_index, tile_count)
    inside = (source[:, 0] >= 0.0) & (source[:, 0] < 1.0)
    out[inside, 0] = np.clip(out[inside, 0], low, high)
    return out


def _float32_tile_bounds(tile_index: int, tile_count: int) -> Tuple[np.float32, np.float32]:
    """Smallest and largest float32 inside [i/N, (i+1)/N)."""
    start = tile_index / tile_count
    end = (tile_index + 1) / tile_count

    low = np.float32(start)
    if float(low) < start:
        low = np.nextafter(low, np.float32(np.inf))
    high = np.float32(end)
    if float(high) >= end:
        high = np.nextafter(high, np.float32(0))
    return low, high


def tile_range(tile_index: int, tile_count: int) -> Tuple[float, float]:
    """Half-open [u_min, u_max) range of a tile on the atlas U axis."""
    _check_tile(tile_index, tile_count)
    return tile_index / tile_count, (tile_index + 1) / tile_count

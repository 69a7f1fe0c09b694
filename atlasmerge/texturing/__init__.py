"""
Texturing utilities for scene consolidation.

Includes texture lookup, tile assignment, horizontal atlas building and UV remapping.
"""
from .atlas_builder import AtlasBuilder, AtlasRef
from .locator import TextureLocator
from .tiles import TileAssignment
from .uv_mapper import remap_uv, remap_uvs, tile_range

__all__ = [
    'AtlasBuilder',
    'AtlasRef',
    'TextureLocator',
    'TileAssignment',
    'remap_uv',
    'remap_uvs',
    'tile_range',
]

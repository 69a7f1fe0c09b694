"""
Tile assignment

The ordered mapping from mesh index to atlas tile, built once and handed to
both AtlasBuilder (which decides pixel placement) and MeshCombiner (which
decides UV placement). Keeping a single value for both is what guarantees a
mesh's UVs point at its own texture.

Meshes without texture coordinates take no tile, so they never shift the
tiles of the meshes after them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import cached_property
from pathlib import Path
from typing import Dict, Optional, Sequence, Tuple, Union

from atlasmerge.exceptions import MissingTextureError, TileAssignmentError
from atlasmerge.schema.scene import Mesh
from atlasmerge.texturing.locator import TextureLocator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TileAssignment:
    """
    Ordered (mesh_index, texture_path) pairs; the tile index is the position.

    Example:
        >>> tiles = TileAssignment(((0, Path("a.png")), (2, Path("b.png"))))
        >>> tiles.tile_for(2), tiles.tile_for(1), tiles.tile_count
        (1, None, 2)
    """
    tiles: Tuple[Tuple[int, Path], ...] = ()

    def __post_init__(self):
        previous = -1
        for mesh_index, _ in self.tiles:
            if mesh_index <= previous:
                raise TileAssignmentError(
                    f"Mesh indices must be unique and increasing, got {mesh_index} after {previous}"
                )
            previous = mesh_index

    @classmethod
    def from_meshes(
        cls,
        meshes: Sequence[Mesh],
        source_dir: Union[str, Path],
        locator: Optional[TextureLocator] = None,
    ) -> "TileAssignment":
        """
        Assign one tile per UV-bearing mesh, in mesh order.

        Raises:
            MissingTextureError: A mesh has UVs but no locatable texture
        """
        locator = locator or TextureLocator()
        tiles = []
        for mesh_index, mesh in enumerate(meshes):
            if not mesh.has_uvs:
                logger.warning(f"Mesh '{mesh.name}' has no texture coordinates; it contributes geometry only")
                continue

            texture_path = locator.resolve(mesh, source_dir)
            if texture_path is None:
                material = mesh.material
                if material is not None and material.embedded:
                    raise MissingTextureError(mesh.name, "its texture is embedded in the scene file")
                raise MissingTextureError(mesh.name)

            logger.debug(f"Tile {len(tiles)}: mesh {mesh_index} '{mesh.name}' -> {texture_path}")
            tiles.append((mesh_index, texture_path))

        return cls(tuple(tiles))

    @cached_property
    def _tile_by_mesh(self) -> Dict[int, int]:
        return {mesh_index: tile for tile, (mesh_index, _) in enumerate(self.tiles)}

    @property
    def tile_count(self) -> int:
        return len(self.tiles)

    @property
    def texture_paths(self) -> Tuple[Path, ...]:
        return tuple(path for _, path in self.tiles)

    @property
    def mesh_indices(self) -> Tuple[int, ...]:
        return tuple(mesh_index for mesh_index, _ in self.tiles)

    def tile_for(self, mesh_index: int) -> Optional[int]:
        """Tile index of a mesh, or None if the mesh has no tile."""
        return self._tile_by_mesh.get(mesh_index)

    def __len__(self) -> int:
        return self.tile_count

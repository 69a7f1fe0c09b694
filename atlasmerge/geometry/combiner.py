"""
Mesh combiner

Merges every source mesh into one vertex/face buffer in two passes:

1. Sizing pass (plan): validate every mesh and sum vertex/face counts.
   Nothing is allocated until the whole input has been checked.
2. Copy pass (combine): allocate each buffer once at its exact size, then
   copy mesh i into its pre-computed slice. Face indices are shifted by the
   number of vertices copied before mesh i; UVs are moved into mesh i's atlas
   tile.

Each mesh writes a disjoint slice, so the copy order only matters for the
offsets, which the sizing pass fixes up front.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Optional, Sequence, Tuple

import numpy as np

from atlasmerge.exceptions import (
    CapacityError,
    FaceIndexError,
    NonTriangularFaceError,
    TileAssignmentError,
)
from atlasmerge.schema.scene import CombinedMesh, Material, Mesh, SourceRange
from atlasmerge.texturing.tiles import TileAssignment
from atlasmerge.texturing.uv_mapper import remap_uvs

logger = logging.getLogger(__name__)

INDEX_TYPES: Dict[str, np.dtype] = {
    'uint16': np.dtype(np.uint16),
    'uint32': np.dtype(np.uint32),
}


@dataclass(frozen=True)
class CombinePlan:
    """Result of the sizing pass."""
    vertex_count: int
    face_count: int
    vertex_offsets: Tuple[int, ...]
    face_offsets: Tuple[int, ...]
    has_uvs: bool


class MeshCombiner:
    """
    Combines triangle meshes into a single CombinedMesh.

    Args:
        index_type: 'uint32' (default) or 'uint16'; the combined vertex count
                    must be addressable by it

    Example:
        >>> combiner = MeshCombiner()
        >>> combined = combiner.combine(scene.meshes, TileAssignment.from_meshes(scene.meshes, scene.source_dir))
        >>> combined.vertex_count == sum(m.vertex_count for m in scene.meshes)
        True
    """

    def __init__(self, index_type: str = 'uint32'):
        if index_type not in INDEX_TYPES:
            raise ValueError(f"Unsupported index type: {index_type}. Supported: {', '.join(INDEX_TYPES)}")
        self.index_type = index_type
        self.index_dtype = INDEX_TYPES[index_type]

    @property
    def max_vertex_count(self) -> int:
        """
        Largest vertex count whose indices all fit the index type.

        The type's maximum value is the glTF primitive restart value and may
        not appear in index data, so the last usable index is max - 1.
        """
        return int(np.iinfo(self.index_dtype).max)

    def plan(self, meshes: Sequence[Mesh], assignment: TileAssignment) -> CombinePlan:
        """
        Validate the input and compute exact buffer sizes and offsets.

        Raises:
            NonTriangularFaceError: A mesh has faces with other than 3 indices
            FaceIndexError: A face references a vertex outside its mesh
            TileAssignmentError: Assignment disagrees with the meshes' UVs
            CapacityError: Combined vertex count exceeds the index type
        """
        self._check_assignment(meshes, assignment)

        vertex_offsets = []
        face_offsets = []
        vertex_count = 0
        face_count = 0
        for mesh in meshes:
            self._check_faces(mesh)
            vertex_offsets.append(vertex_count)
            face_offsets.append(face_count)
            vertex_count += mesh.vertex_count
            face_count += mesh.face_count

        if vertex_count > self.max_vertex_count:
            raise CapacityError(
                f"Combined mesh has {vertex_count} vertices; {self.index_type} indices "
                f"address at most {self.max_vertex_count}"
            )

        return CombinePlan(
            vertex_count=vertex_count,
            face_count=face_count,
            vertex_offsets=tuple(vertex_offsets),
            face_offsets=tuple(face_offsets),
            has_uvs=any(mesh.has_uvs for mesh in meshes),
        )

    def combine(
        self,
        meshes: Sequence[Mesh],
        assignment: TileAssignment,
        material: Optional[Material] = None,
        name: str = "combined",
    ) -> CombinedMesh:
        """
        Build one mesh from `meshes`, remapping UVs into their atlas tiles.

        Args:
            meshes: Source meshes in scene order
            assignment: Tile of every UV-bearing mesh (shared with AtlasBuilder)
            material: Material of the combined mesh (normally references the atlas)
            name: Name of the combined mesh

        Returns:
            CombinedMesh whose buffers are the concatenation of the sources
        """
        plan = self.plan(meshes, assignment)

        positions = np.empty((plan.vertex_count, 3), dtype=np.float32)
        faces = np.empty((plan.face_count, 3), dtype=self.index_dtype)
        # UV-less meshes keep (0, 0) so the attribute covers every vertex
        uvs = np.zeros((plan.vertex_count, 2), dtype=np.float32) if plan.has_uvs else None

        sources = []
        for mesh_index, mesh in enumerate(meshes):
            vertex_offset = plan.vertex_offsets[mesh_index]
            face_offset = plan.face_offsets[mesh_index]
            vertex_end = vertex_offset + mesh.vertex_count
            face_end = face_offset + mesh.face_count

            positions[vertex_offset:vertex_end] = mesh.positions

            tile_index = assignment.tile_for(mesh_index)
            if tile_index is not None:
                uvs[vertex_offset:vertex_end] = remap_uvs(mesh.uvs, tile_index, assignment.tile_count)

            faces[face_offset:face_end] = mesh.faces + vertex_offset

            sources.append(SourceRange(
                name=mesh.name,
                vertex_offset=vertex_offset,
                vertex_count=mesh.vertex_count,
                face_offset=face_offset,
                face_count=mesh.face_count,
                tile_index=tile_index,
            ))
            logger.debug(
                f"Mesh {mesh_index} '{mesh.name}': vertices @{vertex_offset}, faces @{face_offset}, tile {tile_index}"
            )

        logger.info(
            f"Combined {len(meshes)} meshes into {plan.vertex_count} vertices / {plan.face_count} faces "
            f"({assignment.tile_count} tiles)"
        )
        return CombinedMesh(
            name=name,
            positions=positions,
            faces=faces,
            uvs=uvs,
            material=material or Material(name=f"{name}_mat"),
            sources=tuple(sources),
        )

    def _check_faces(self, mesh: Mesh) -> None:
        if mesh.face_count and mesh.indices_per_face != 3:
            raise NonTriangularFaceError(mesh.name, mesh.indices_per_face)
        if mesh.face_count == 0:
            return
        low = int(mesh.faces.min())
        high = int(mesh.faces.max())
        if low < 0 or high >= mesh.vertex_count:
            raise FaceIndexError(
                f"Mesh '{mesh.name}' references vertex {high if high >= mesh.vertex_count else low} "
                f"but has {mesh.vertex_count} vertices"
            )

    def _check_assignment(self, meshes: Sequence[Mesh], assignment: TileAssignment) -> None:
        for mesh_index in assignment.mesh_indices:
            if mesh_index >= len(meshes):
                raise TileAssignmentError(f"Tile assigned to mesh {mesh_index} but only {len(meshes)} meshes given")
            if not meshes[mesh_index].has_uvs:
                raise TileAssignmentError(f"Mesh '{meshes[mesh_index].name}' has a tile but no texture coordinates")

        for mesh_index, mesh in enumerate(meshes):
            if mesh.has_uvs and assignment.tile_for(mesh_index) is None:
                raise TileAssignmentError(f"Mesh '{mesh.name}' has texture coordinates but no tile")


def combine_meshes(
    meshes: Sequence[Mesh],
    assignment: TileAssignment,
    material: Optional[Material] = None,
    index_type: str = 'uint32',
) -> CombinedMesh:
    """Convenience wrapper around MeshCombiner(index_type).combine(...)."""
    return MeshCombiner(index_type=index_type).combine(meshes, assignment, material=material)

"""
Scene data model

In-memory representation of an imported scene and of the consolidated mesh
produced from it.

BUFFER LAYOUT:
- positions: (V, 3) float32, one row per vertex
- uvs: (V, 2) float32 or None; a mesh has a UV for every vertex or for none
- faces: (F, 3) integer rows of vertex indices into the owning mesh

UV CONVENTION:
- glTF convention, origin (0, 0) at the TOP-LEFT of the image
- Values are nominally in [0, 1] but are not clamped or validated

IDENTITY:
- A Mesh is identified by its position in Scene.meshes
- That position is what TileAssignment maps to an atlas tile
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple

import numpy as np

from atlasmerge.exceptions import NonTriangularFaceError


@dataclass
class Material:
    """Single-slot material: only the diffuse (base color) texture is considered."""
    name: Optional[str] = None
    diffuse_texture: Optional[str] = None  # URI as stored in the scene file
    embedded: bool = False  # texture lives inside the scene file, not on disk


@dataclass
class Mesh:
    """
    One independently textured triangle mesh.

    Attributes:
        name: Mesh name (from the scene, or generated)
        positions: (V, 3) vertex positions
        faces: (F, k) vertex indices; k must be 3 for the mesh to be combined
        uvs: Optional (V, 2) texture coordinates (channel 0)
        material: Optional material with the diffuse texture reference
        colors: Number of vertex color channels (reported by stats only)
    """
    name: str
    positions: np.ndarray
    faces: np.ndarray
    uvs: Optional[np.ndarray] = None
    material: Optional[Material] = None
    colors: int = 0

    def __post_init__(self):
        self.positions = np.asarray(self.positions, dtype=np.float32).reshape(-1, 3)

        try:
            faces = np.asarray(self.faces, dtype=np.int64)
        except ValueError:
            # Ragged face list (mixed polygon sizes)
            raise NonTriangularFaceError(self.name, detail="faces have mixed index counts")
        if faces.size == 0:
            faces = faces.reshape(0, 3)
        elif faces.ndim != 2:
            raise NonTriangularFaceError(self.name, detail=f"face array has shape {faces.shape}")
        self.faces = faces

        if self.uvs is not None:
            uvs = np.asarray(self.uvs, dtype=np.float32)
            if uvs.shape != (self.vertex_count, 2):
                raise ValueError(
                    f"Mesh '{self.name}': uvs must be ({self.vertex_count}, 2), got {uvs.shape}"
                )
            self.uvs = uvs

    @property
    def vertex_count(self) -> int:
        return int(self.positions.shape[0])

    @property
    def face_count(self) -> int:
        return int(self.faces.shape[0])

    @property
    def indices_per_face(self) -> int:
        return int(self.faces.shape[1])

    @property
    def has_uvs(self) -> bool:
        return self.uvs is not None


@dataclass
class Node:
    """Scene graph node. Only used for reporting; transforms are baked into meshes."""
    name: str
    mesh_indices: List[int] = field(default_factory=list)
    children: List["Node"] = field(default_factory=list)


@dataclass
class Scene:
    """Imported scene: a flat mesh list plus the node tree that referenced them."""
    meshes: List[Mesh]
    root: Node
    source_path: Optional[Path] = None

    @property
    def source_dir(self) -> Path:
        """Directory containing the scene file (texture URIs are relative to it)."""
        if self.source_path is None:
            return Path(".")
        return Path(self.source_path).parent


@dataclass(frozen=True)
class SourceRange:
    """Where one source mesh landed inside a CombinedMesh."""
    name: str
    vertex_offset: int
    vertex_count: int
    face_offset: int
    face_count: int
    tile_index: Optional[int] = None


@dataclass
class CombinedMesh:
    """
    Single mesh built from every source mesh, in mesh-list order.

    Invariants (enforced by MeshCombiner):
    - vertex_count == sum of source vertex counts
    - face_count == sum of source face counts
    - every face index < vertex_count
    """
    name: str
    positions: np.ndarray
    faces: np.ndarray
    uvs: Optional[np.ndarray]
    material: Material
    sources: Tuple[SourceRange, ...] = ()
    primitive: str = "triangles"

    @property
    def vertex_count(self) -> int:
        return int(self.positions.shape[0])

    @property
    def face_count(self) -> int:
        return int(self.faces.shape[0])

    @property
    def index_type(self) -> str:
        return self.faces.dtype.name

"""
Scene statistics

Per-mesh bounding boxes, volumes and a printable node/mesh report:

    Node - root: 0 meshes, 1 children
      Node - crate: 1 meshes, 0 children
        Mesh - crate
          12 faces
          8 vertices
          BBox (-0.500000, ...)  (0.500000, ...)
          ...
"""

from dataclasses import dataclass
from typing import List

import numpy as np

from atlasmerge.exceptions import NonTriangularFaceError
from atlasmerge.schema.scene import Mesh, Node, Scene

INDENT = "  "


@dataclass
class BBox:
    min_x: float = 0.0
    max_x: float = 0.0
    min_y: float = 0.0
    max_y: float = 0.0
    min_z: float = 0.0
    max_z: float = 0.0

    @property
    def extents(self):
        return (self.max_x - self.min_x, self.max_y - self.min_y, self.max_z - self.min_z)


def bounding_box(mesh: Mesh) -> BBox:
    """Axis-aligned bounds of a mesh's vertices (all zero for an empty mesh)."""
    if mesh.vertex_count == 0:
        return BBox()
    lo = mesh.positions.min(axis=0)
    hi = mesh.positions.max(axis=0)
    return BBox(
        min_x=float(lo[0]), max_x=float(hi[0]),
        min_y=float(lo[1]), max_y=float(hi[1]),
        min_z=float(lo[2]), max_z=float(hi[2]),
    )


def face_volume(a, b, c) -> float:
    """Signed volume of the tetrahedron (origin, a, b, c)."""
    return float(
        a[0]*b[1]*c[2] +
        a[1]*b[2]*c[0] +
        a[2]*b[0]*c[1] -
        a[0]*b[2]*c[1] -
        a[1]*b[0]*c[2] -
        a[2]*b[1]*c[0]
    ) / 6


def mesh_volume(mesh: Mesh) -> float:
    """
    Enclosed volume of a closed, consistently wound triangle mesh.

    Sum of signed tetrahedron volumes; meaningless for open meshes.

    Raises:
        NonTriangularFaceError: If the mesh has non-triangle faces
    """
    if mesh.face_count == 0:
        return 0.0
    if mesh.indices_per_face != 3:
        raise NonTriangularFaceError(mesh.name, mesh.indices_per_face)

    points = mesh.positions.astype(np.float64)
    a = points[mesh.faces[:, 0]]
    b = points[mesh.faces[:, 1]]
    c = points[mesh.faces[:, 2]]
    # Scalar triple product a . (b x c) == 6 * signed volume
    return float(np.einsum('ij,ij->i', a, np.cross(b, c)).sum() / 6)


def describe_mesh(mesh: Mesh, depth: int = 0) -> List[str]:
    bb = bounding_box(mesh)
    volume = mesh_volume(mesh)
    dx, dy, dz = bb.extents
    pad = INDENT * depth
    inner = INDENT * (depth + 1)
    return [
        f"{pad}Mesh - {mesh.name}",
        f"{inner}{mesh.face_count} faces",
        f"{inner}{mesh.vertex_count} vertices",
        f"{inner}BBox ({bb.min_x:f}, {bb.min_y:f}, {bb.min_z:f})  ({bb.max_x:f}, {bb.max_y:f}, {bb.max_z:f})",
        f"{inner}X {dx:f}",
        f"{inner}Y {dy:f}",
        f"{inner}Z {dz:f}",
        f"{inner}Volume {volume:f} ({volume / 1000:f})",
        f"{inner}Color channels: {mesh.colors}",
        f"{inner}UV channels: {1 if mesh.has_uvs else 0}",
    ]


def describe_node(node: Node, meshes: List[Mesh], depth: int = 0) -> List[str]:
    lines = [
        f"{INDENT * depth}Node - {node.name}: {len(node.mesh_indices)} meshes, {len(node.children)} children"
    ]
    for mesh_index in node.mesh_indices:
        lines.extend(describe_mesh(meshes[mesh_index], depth + 1))
    for child in node.children:
        lines.extend(describe_node(child, meshes, depth + 1))
    return lines


def describe_scene(scene: Scene) -> List[str]:
    """Indented report of every node and mesh in the scene."""
    return describe_node(scene.root, scene.meshes)

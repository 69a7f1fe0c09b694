"""
GLTF/GLB → Scene importer (pygltflib-based)

Reads a glTF 2.0 scene into the flat mesh list the consolidation core works
on:

- One Mesh per primitive instance (a mesh used by two nodes yields two Meshes)
- Node world transforms are baked into vertex positions
- TRIANGLE_STRIP and TRIANGLE_FAN primitives are expanded to triangle lists
- POINTS and LINES primitives are rejected (NonTriangularFaceError)
- The diffuse texture is the base color texture's image URI
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional, Union

import numpy as np
from pygltflib import GLTF2

from atlasmerge.converters.gltf.format_utils import (
    get_field,
    is_data_uri,
    load_buffers,
    read_accessor,
)
from atlasmerge.exceptions import NonTriangularFaceError, SceneImportError, UnsupportedFormatError
from atlasmerge.geometry.transforms import apply_matrix, column_major_matrix, trs_matrix
from atlasmerge.schema.scene import Material, Mesh, Node, Scene

logger = logging.getLogger(__name__)

IMPORT_EXTENSIONS = ('.gltf', '.glb')

POINTS = 0
LINES = 1
LINE_LOOP = 2
LINE_STRIP = 3
TRIANGLES = 4
TRIANGLE_STRIP = 5
TRIANGLE_FAN = 6


def load_scene(file_path: Union[str, Path]) -> Scene:
    """
    Import a .gltf or .glb file.

    Args:
        file_path: Path to the scene file

    Returns:
        Scene with baked meshes and the node tree that referenced them

    Raises:
        FileNotFoundError: If the file doesn't exist
        UnsupportedFormatError: If the extension is not .gltf/.glb
        SceneImportError: If the file or one of its buffers is unreadable or malformed
        NonTriangularFaceError: If a primitive is points or lines
    """
    path = Path(file_path)
    if not path.exists():
        raise FileNotFoundError(f"Input file not found: {path}")
    if path.suffix.lower() not in IMPORT_EXTENSIONS:
        raise UnsupportedFormatError(
            f"Unsupported input format: {path.suffix or '(none)'}. Supported: {', '.join(IMPORT_EXTENSIONS)}"
        )

    try:
        gltf = GLTF2().load(str(path))
    except (OSError, ValueError, KeyError, TypeError) as e:
        raise SceneImportError(path, f"Cannot parse glTF ({e})") from e
    if gltf is None:
        raise SceneImportError(path, "Cannot parse glTF")

    buffers = load_buffers(gltf, path)
    importer = _SceneBuilder(gltf, buffers, path)
    try:
        scene = importer.build()
    except (ValueError, IndexError, KeyError) as e:
        raise SceneImportError(path, f"Malformed glTF ({e})") from e

    logger.info(f"Imported {len(scene.meshes)} meshes from {path}")
    return scene


class _SceneBuilder:
    """Walks the node graph of one loaded glTF and collects baked meshes."""

    def __init__(self, gltf: GLTF2, buffers: List[bytes], path: Path):
        self.gltf = gltf
        self.buffers = buffers
        self.path = path
        self.meshes: List[Mesh] = []

    def build(self) -> Scene:
        root = Node(name="root")
        for node_index in self._root_nodes():
            root.children.append(self._visit(node_index, np.identity(4), ()))
        return Scene(meshes=self.meshes, root=root, source_path=self.path)

    def _root_nodes(self) -> List[int]:
        gltf = self.gltf
        if gltf.scenes:
            scene_index = gltf.scene if gltf.scene is not None else 0
            return list(gltf.scenes[scene_index].nodes or [])

        # No scene: every node nobody lists as a child
        children = {c for node in (gltf.nodes or []) for c in (node.children or [])}
        return [i for i in range(len(gltf.nodes or [])) if i not in children]

    def _visit(self, node_index: int, parent_matrix: np.ndarray, ancestors: tuple) -> Node:
        if node_index in ancestors:
            raise ValueError(f"node {node_index} is its own ancestor")

        gltf_node = self.gltf.nodes[node_index]
        world = parent_matrix @ self._local_matrix(gltf_node)
        node = Node(name=gltf_node.name or f"node_{node_index}")

        if gltf_node.mesh is not None:
            for mesh in self._meshes_of(gltf_node.mesh, world):
                node.mesh_indices.append(len(self.meshes))
                self.meshes.append(mesh)

        for child_index in gltf_node.children or []:
            node.children.append(self._visit(child_index, world, ancestors + (node_index,)))
        return node

    @staticmethod
    def _local_matrix(gltf_node) -> np.ndarray:
        if gltf_node.matrix:
            return column_major_matrix(gltf_node.matrix)
        return trs_matrix(gltf_node.translation, gltf_node.rotation, gltf_node.scale)

    def _meshes_of(self, mesh_index: int, world: np.ndarray) -> List[Mesh]:
        gltf_mesh = self.gltf.meshes[mesh_index]
        base_name = gltf_mesh.name or f"mesh_{mesh_index}"
        primitives = gltf_mesh.primitives or []

        meshes = []
        for prim_index, prim in enumerate(primitives):
            name = base_name if len(primitives) == 1 else f"{base_name}_{prim_index}"
            meshes.append(self._read_primitive(prim, name, world))
        return meshes

    def _read_primitive(self, prim, name: str, world: np.ndarray) -> Mesh:
        attributes = prim.attributes
        position_index = get_field(attributes, 'POSITION')
        if position_index is None:
            raise ValueError(f"primitive '{name}' has no POSITION attribute")

        positions = read_accessor(self.gltf, self.buffers, position_index).astype(np.float32)
        positions = apply_matrix(positions, world)

        uvs = None
        uv_index = get_field(attributes, 'TEXCOORD_0')
        if uv_index is not None:
            uvs = read_accessor(self.gltf, self.buffers, uv_index).astype(np.float32)

        if prim.indices is not None:
            indices = read_accessor(self.gltf, self.buffers, prim.indices).reshape(-1).astype(np.int64)
        else:
            indices = np.arange(positions.shape[0], dtype=np.int64)

        mode = prim.mode if prim.mode is not None else TRIANGLES
        faces = _triangulate(indices, mode, name)

        return Mesh(
            name=name,
            positions=positions,
            faces=faces,
            uvs=uvs,
            material=self._material(prim.material),
            colors=1 if get_field(attributes, 'COLOR_0') is not None else 0,
        )

    def _material(self, material_index: Optional[int]) -> Optional[Material]:
        if material_index is None:
            return None

        gltf_material = self.gltf.materials[material_index]
        name = gltf_material.name or f"material_{material_index}"
        pbr = get_field(gltf_material, 'pbrMetallicRoughness')
        texture_info = get_field(pbr, 'baseColorTexture')
        texture_index = get_field(texture_info, 'index')
        if texture_index is None:
            return Material(name=name)

        image_index = get_field(self.gltf.textures[texture_index], 'source')
        if image_index is None:
            return Material(name=name)

        image = self.gltf.images[image_index]
        uri = get_field(image, 'uri')
        if uri is None or is_data_uri(uri):
            return Material(name=name, embedded=True)
        return Material(name=name, diffuse_texture=uri)


def _triangulate(indices: np.ndarray, mode: int, name: str) -> np.ndarray:
    """Turn a primitive's index list into (F, 3) triangles."""
    if mode == TRIANGLES:
        if len(indices) % 3:
            raise NonTriangularFaceError(name, detail=f"{len(indices)} indices is not a multiple of 3")
        return indices.reshape(-1, 3)

    count = max(len(indices) - 2, 0)
    i = np.arange(count)
    if mode == TRIANGLE_STRIP:
        # Odd triangles swap their last two vertices to keep the winding
        odd = (i % 2) == 1
        first = indices[i]
        second = np.where(odd, indices[i + 2], indices[i + 1])
        third = np.where(odd, indices[i + 1], indices[i + 2])
        return np.stack([first, second, third], axis=1).reshape(-1, 3)
    if mode == TRIANGLE_FAN:
        first = indices[i + 1]
        second = indices[i + 2]
        third = np.full(count, indices[0] if len(indices) else 0, dtype=np.int64)
        return np.stack([first, second, third], axis=1).reshape(-1, 3)

    raise NonTriangularFaceError(name, detail=f"primitive mode {mode} is not a triangle mode")

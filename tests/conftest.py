"""
Shared fixtures: small glTF scenes and textures written to a temp directory.
"""

import base64
from pathlib import Path

import numpy as np
import pytest
from PIL import Image
from pygltflib import (
    GLTF2,
    Accessor,
    Asset,
    Attributes,
    Buffer,
    BufferView,
    Material,
    Mesh,
    Node,
    PbrMetallicRoughness,
    Primitive,
    Scene,
    Texture,
    TextureInfo,
)
from pygltflib import Image as GLTFImage

from atlasmerge.schema.scene import Material as SceneMaterial
from atlasmerge.schema.scene import Mesh as SceneMesh

FLOAT = 5126
UNSIGNED_INT = 5125

QUAD_POSITIONS = [[0, 0, 0], [1, 0, 0], [1, 1, 0], [0, 1, 0]]
QUAD_FACES = [[0, 1, 2], [0, 2, 3]]
QUAD_UVS = [[0.5, 0.5], [1.0, 0.0], [1.0, 1.0], [0.0, 1.0]]

TRI_POSITIONS = [[0, 0, 1], [1, 0, 1], [0, 1, 1]]
TRI_FACES = [[0, 1, 2]]
TRI_UVS = [[0.5, 0.5], [1.0, 0.0], [0.0, 1.0]]


def make_texture(path, color, size=(8, 8)):
    """Write a solid-color RGBA PNG."""
    path = Path(path)
    Image.new('RGBA', size, color).save(path)
    return path


def make_mesh(name, positions, faces, uvs=None, texture=None):
    material = SceneMaterial(name=f"{name}_mat", diffuse_texture=texture) if texture else None
    return SceneMesh(name=name, positions=positions, faces=faces, uvs=uvs, material=material)


def write_gltf(path, meshes):
    """
    Write a .gltf with one node per mesh description and an inlined buffer.

    Each description is a dict with keys: name, positions, and optionally
    faces (omitted -> non-indexed), uvs, texture (image URI), mode,
    translation, matrix.
    """
    path = Path(path)
    blob = bytearray()
    buffer_views, accessors = [], []
    gltf_meshes, nodes, materials, textures, images = [], [], [], [], []

    def add_accessor(array, component_type, accessor_type):
        offset = len(blob)
        data = array.tobytes()
        blob.extend(data)
        blob.extend(b"\x00" * (-len(blob) % 4))
        buffer_views.append(BufferView(buffer=0, byteOffset=offset, byteLength=len(data)))
        accessors.append(Accessor(
            bufferView=len(buffer_views) - 1,
            componentType=component_type,
            count=len(array),
            type=accessor_type,
        ))
        return len(accessors) - 1

    for desc in meshes:
        positions = np.asarray(desc["positions"], dtype=np.float32)
        attributes = Attributes(POSITION=add_accessor(positions, FLOAT, "VEC3"))
        if desc.get("uvs") is not None:
            attributes.TEXCOORD_0 = add_accessor(np.asarray(desc["uvs"], dtype=np.float32), FLOAT, "VEC2")

        indices = None
        if desc.get("faces") is not None:
            flat = np.asarray(desc["faces"], dtype=np.uint32).reshape(-1)
            indices = add_accessor(flat, UNSIGNED_INT, "SCALAR")

        material = None
        if desc.get("texture") is not None:
            images.append(GLTFImage(uri=desc["texture"]))
            textures.append(Texture(source=len(images) - 1))
            materials.append(Material(
                name=f"{desc['name']}_mat",
                pbrMetallicRoughness=PbrMetallicRoughness(baseColorTexture=TextureInfo(index=len(textures) - 1)),
            ))
            material = len(materials) - 1

        gltf_meshes.append(Mesh(name=desc["name"], primitives=[Primitive(
            attributes=attributes,
            indices=indices,
            material=material,
            mode=desc.get("mode", 4),
        )]))
        node = Node(name=desc["name"], mesh=len(gltf_meshes) - 1)
        if desc.get("translation") is not None:
            node.translation = list(desc["translation"])
        if desc.get("matrix") is not None:
            node.matrix = list(desc["matrix"])
        nodes.append(node)

    uri = "data:application/octet-stream;base64," + base64.b64encode(bytes(blob)).decode('utf-8')
    gltf = GLTF2(
        asset=Asset(version="2.0"),
        buffers=[Buffer(uri=uri, byteLength=len(blob))],
        bufferViews=buffer_views,
        accessors=accessors,
        meshes=gltf_meshes,
        materials=materials,
        textures=textures,
        images=images,
        nodes=nodes,
        scenes=[Scene(nodes=list(range(len(nodes))))],
        scene=0,
    )
    gltf.save_json(str(path))
    return path


@pytest.fixture
def two_mesh_scene(tmp_path):
    """Quad (4 verts / 2 faces, red) and triangle (3 verts / 1 face, blue), both textured."""
    make_texture(tmp_path / "red.png", (255, 0, 0, 255))
    make_texture(tmp_path / "blue.png", (0, 0, 255, 255))
    return write_gltf(tmp_path / "scene.gltf", [
        {"name": "quad", "positions": QUAD_POSITIONS, "faces": QUAD_FACES, "uvs": QUAD_UVS, "texture": "red.png"},
        {"name": "tri", "positions": TRI_POSITIONS, "faces": TRI_FACES, "uvs": TRI_UVS, "texture": "blue.png"},
    ])

"""
CombinedMesh → GLTF/GLB exporter (pygltflib-based)

Writes the consolidated scene:
- one root node referencing one mesh
- one triangle primitive: POSITION, TEXCOORD_0 (when present), indices in
  the combined mesh's index type
- one material whose base color texture is the atlas image, referenced by
  URI so the atlas stays a separate file next to the scene

Output layouts:
- glb2: single binary container
- gltf2: JSON plus a sidecar <stem>.bin
- gltf2-embedded: JSON with the buffer inlined as a data URI
"""

import logging
import mimetypes
from pathlib import Path
from typing import List, Optional, Union

import numpy as np
from pygltflib import (
    GLTF2,
    Accessor,
    Asset,
    Attributes,
    Buffer,
    BufferView,
    Image,
    Material as GLTFMaterial,
    Mesh as GLTFMesh,
    Node,
    PbrMetallicRoughness,
    Primitive,
    Sampler,
    Scene,
    Texture,
    TextureInfo,
)

from atlasmerge import __version__
from atlasmerge.converters.formats import ExportFormat
from atlasmerge.converters.gltf.format_utils import (
    ARRAY_BUFFER,
    ELEMENT_ARRAY_BUFFER,
    FLOAT,
    INDEX_COMPONENT_TYPES,
    align4,
    encode_data_uri,
)
from atlasmerge.exceptions import EmptySceneError, OutputWriteError
from atlasmerge.schema.scene import CombinedMesh

logger = logging.getLogger(__name__)

LINEAR = 9729
LINEAR_MIPMAP_LINEAR = 9987
CLAMP_TO_EDGE = 33071
TRIANGLES = 4


def build_gltf(combined: CombinedMesh, atlas_uri: Optional[str] = None) -> GLTF2:
    """
    Build the in-memory glTF document for a combined mesh.

    The binary blob is attached with set_binary_blob(); callers pick how to
    store it (GLB chunk, sidecar file, or data URI).

    Raises:
        EmptySceneError: If the mesh has no vertices or no faces (glTF has no
                         valid encoding for empty buffers)
    """
    if combined.vertex_count == 0 or combined.face_count == 0:
        raise EmptySceneError(
            f"Mesh '{combined.name}' has {combined.vertex_count} vertices and {combined.face_count} faces; nothing to export"
        )

    blob = bytearray()
    buffer_views: List[BufferView] = []
    accessors: List[Accessor] = []

    def add_view(data: bytes, target: int) -> int:
        offset = len(blob)
        blob.extend(data)
        padded = align4(len(blob))
        if padded != len(blob):
            blob.extend(b"\x00" * (padded - len(blob)))
        buffer_views.append(BufferView(buffer=0, byteOffset=offset, byteLength=len(data), target=target))
        return len(buffer_views) - 1

    positions = np.ascontiguousarray(combined.positions, dtype=np.float32)
    position_view = add_view(positions.tobytes(), ARRAY_BUFFER)
    accessors.append(Accessor(
        bufferView=position_view,
        componentType=FLOAT,
        count=combined.vertex_count,
        type="VEC3",
        min=positions.min(axis=0).tolist(),
        max=positions.max(axis=0).tolist(),
    ))
    attributes = Attributes(POSITION=len(accessors) - 1)

    if combined.uvs is not None:
        uvs = np.ascontiguousarray(combined.uvs, dtype=np.float32)
        uv_view = add_view(uvs.tobytes(), ARRAY_BUFFER)
        accessors.append(Accessor(bufferView=uv_view, componentType=FLOAT, count=combined.vertex_count, type="VEC2"))
        attributes.TEXCOORD_0 = len(accessors) - 1

    indices = np.ascontiguousarray(combined.faces).reshape(-1)
    index_view = add_view(indices.tobytes(), ELEMENT_ARRAY_BUFFER)
    accessors.append(Accessor(
        bufferView=index_view,
        componentType=INDEX_COMPONENT_TYPES[combined.index_type],
        count=int(indices.shape[0]),
        type="SCALAR",
    ))
    index_accessor = len(accessors) - 1

    material = combined.material
    pbr = PbrMetallicRoughness(baseColorFactor=[1.0, 1.0, 1.0, 1.0], metallicFactor=0.0, roughnessFactor=1.0)
    images, samplers, textures = [], [], []
    if atlas_uri is not None:
        images.append(Image(uri=atlas_uri, mimeType=mimetypes.guess_type(atlas_uri)[0], name=material.name))
        samplers.append(Sampler(magFilter=LINEAR, minFilter=LINEAR_MIPMAP_LINEAR, wrapS=CLAMP_TO_EDGE, wrapT=CLAMP_TO_EDGE))
        textures.append(Texture(sampler=0, source=0))
        pbr.baseColorTexture = TextureInfo(index=0)

    gltf = GLTF2(
        asset=Asset(version="2.0", generator=f"atlasmerge {__version__}"),
        buffers=[Buffer(byteLength=len(blob))],
        bufferViews=buffer_views,
        accessors=accessors,
        meshes=[GLTFMesh(
            name=combined.name,
            primitives=[Primitive(attributes=attributes, indices=index_accessor, material=0, mode=TRIANGLES)],
        )],
        materials=[GLTFMaterial(name=material.name, pbrMetallicRoughness=pbr)],
        images=images,
        samplers=samplers,
        textures=textures,
        nodes=[Node(name=combined.name, mesh=0)],
        scenes=[Scene(nodes=[0])],
        scene=0,
    )
    gltf.set_binary_blob(bytes(blob))
    return gltf


def export_scene(
    combined: CombinedMesh,
    output_path: Union[str, Path],
    export_format: ExportFormat,
    atlas_uri: Optional[str] = None,
) -> List[Path]:
    """
    Serialize a combined mesh in the given format.

    Args:
        combined: Mesh to write
        output_path: Scene file path (extension already resolved)
        export_format: Target layout from EXPORT_FORMATS
        atlas_uri: Atlas image URI relative to the scene file, or None

    Returns:
        Every file written, scene file first

    Raises:
        OutputWriteError: If a file cannot be written (files already
                          written by this call are removed)
        EmptySceneError: If the mesh has no vertices or no faces
    """
    output_path = Path(output_path)
    gltf = build_gltf(combined, atlas_uri)
    blob = gltf.binary_blob()

    written: List[Path] = []
    try:
        if export_format.binary:
            gltf.save_binary(str(output_path))
            written.append(output_path)
        elif export_format.embedded:
            gltf.buffers[0].uri = encode_data_uri(blob)
            gltf.save_json(str(output_path))
            written.append(output_path)
        else:
            bin_path = output_path.with_suffix(".bin")
            gltf.buffers[0].uri = bin_path.name
            bin_path.write_bytes(blob)
            written.append(bin_path)
            gltf.save_json(str(output_path))
            written.insert(0, output_path)
    except OSError as e:
        for path in written:
            path.unlink(missing_ok=True)
        if output_path.is_file():
            output_path.unlink()
        raise OutputWriteError(output_path, f"Cannot write scene ({e})") from e

    logger.info(f"Exported {combined.vertex_count} vertices / {combined.face_count} faces to {output_path}")
    return written

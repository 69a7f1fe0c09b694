"""
atlasmerge - Consolidate multi-mesh glTF scenes into one mesh and one texture atlas

Merges every mesh of a scene into a single vertex/face buffer, tiles the
per-mesh diffuse textures into one horizontal atlas, and remaps texture
coordinates so each mesh samples its own tile.
"""

# Defined before the imports below; the exporter stamps it into asset.generator
__version__ = "0.1.0"

from atlasmerge.config import ConsolidateConfig
from atlasmerge.converters.gltf import export_scene, load_scene
from atlasmerge.exceptions import (
    CapacityError,
    ConsolidationError,
    EmptySceneError,
    FaceIndexError,
    InputContractError,
    MissingTextureError,
    NonTriangularFaceError,
    OutputWriteError,
    ResourceError,
    SceneImportError,
    TextureResourceError,
    TileAssignmentError,
    UnsupportedFormatError,
)
from atlasmerge.geometry import MeshCombiner
from atlasmerge.pipeline import ConsolidationResult, consolidate
from atlasmerge.texturing import AtlasBuilder, AtlasRef, TextureLocator, TileAssignment, remap_uv

__all__ = [
    "consolidate",
    "ConsolidationResult",
    "ConsolidateConfig",
    "MeshCombiner",
    "AtlasBuilder",
    "AtlasRef",
    "TextureLocator",
    "TileAssignment",
    "remap_uv",
    "load_scene",
    "export_scene",
    "ConsolidationError",
    "InputContractError",
    "NonTriangularFaceError",
    "FaceIndexError",
    "MissingTextureError",
    "TileAssignmentError",
    "EmptySceneError",
    "ResourceError",
    "TextureResourceError",
    "OutputWriteError",
    "SceneImportError",
    "CapacityError",
    "UnsupportedFormatError",
]

"""
GLTF import/export for scene consolidation

Reads .gltf/.glb scenes into the flat mesh model and writes the combined
mesh back out, using pygltflib for the container format.
"""

from atlasmerge.converters.gltf.importer import load_scene
from atlasmerge.converters.gltf.exporter import build_gltf, export_scene

__all__ = ["load_scene", "build_gltf", "export_scene"]

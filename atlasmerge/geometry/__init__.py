"""Geometry operations: combining, transforms and statistics."""
from .combiner import CombinePlan, MeshCombiner, combine_meshes
from .stats import BBox, bounding_box, describe_scene, face_volume, mesh_volume
from .transforms import scale_scene

__all__ = [
    "CombinePlan",
    "MeshCombiner",
    "combine_meshes",
    "BBox",
    "bounding_box",
    "describe_scene",
    "face_volume",
    "mesh_volume",
    "scale_scene",
]

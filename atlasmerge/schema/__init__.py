"""Scene data model."""
from .scene import (
    Material,
    Mesh,
    Node,
    Scene,
    SourceRange,
    CombinedMesh,
)

__all__ = [
    "Material",
    "Mesh",
    "Node",
    "Scene",
    "SourceRange",
    "CombinedMesh",
]

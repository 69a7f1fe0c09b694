"""Custom exceptions for scene consolidation"""

from pathlib import Path
from typing import Optional, Union


class ConsolidationError(Exception):
    """Base exception for consolidation errors"""
    pass


#########################
# INPUT CONTRACT VIOLATIONS
#########################

class InputContractError(ConsolidationError):
    """Input scene violates a data contract (fatal, nothing is written)"""
    pass


class NonTriangularFaceError(InputContractError):
    """A face does not have exactly 3 indices"""

    def __init__(self, mesh_name: str, index_count: Optional[int] = None, detail: Optional[str] = None):
        self.mesh_name = mesh_name
        self.index_count = index_count
        if detail is None:
            detail = f"face with {index_count} indices" if index_count is not None else "non-triangle faces"
        super().__init__(f"Encountered non-triangle face in mesh '{mesh_name}': {detail}")


class FaceIndexError(InputContractError):
    """A face references a vertex outside its mesh's vertex buffer"""
    pass


class MissingTextureError(InputContractError):
    """A mesh with texture coordinates has no locatable diffuse texture"""

    def __init__(self, mesh_name: str, reason: str = "no diffuse texture"):
        self.mesh_name = mesh_name
        super().__init__(f"Mesh '{mesh_name}' has texture coordinates but {reason}")


class TileAssignmentError(InputContractError):
    """Tile assignment does not agree with the meshes it is applied to"""
    pass


class EmptySceneError(InputContractError):
    """Scene has no triangles to consolidate"""
    pass


#########################
# RESOURCE ERRORS
#########################

class ResourceError(ConsolidationError):
    """File system resource could not be read or written"""

    def __init__(self, path: Union[str, Path], reason: str):
        self.path = Path(path)
        self.reason = reason
        super().__init__(f"{reason}: {self.path}")


class TextureResourceError(ResourceError):
    """Source texture is missing, not a regular file, or undecodable"""
    pass


class OutputWriteError(ResourceError):
    """Output file could not be written"""
    pass


class SceneImportError(ResourceError):
    """Scene file could not be read or is malformed"""
    pass


#########################
# CAPACITY / FORMAT
#########################

class CapacityError(ConsolidationError):
    """Combined geometry does not fit the chosen index representation"""
    pass


class UnsupportedFormatError(ConsolidationError, ValueError):
    """No importer/exporter for the requested format"""
    pass

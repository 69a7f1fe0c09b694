"""
Texture locator

Resolves a mesh's diffuse texture URI to a path on disk. URIs stored in a
scene are relative to the directory of the scene file, never to the working
directory.
"""

import logging
from pathlib import Path
from typing import Optional, Union
from urllib.parse import unquote

from atlasmerge.schema.scene import Mesh

logger = logging.getLogger(__name__)


class TextureLocator:
    """
    Finds the on-disk diffuse texture of a mesh.

    Pure lookup: no file system access, so a resolved path may still be
    missing. AtlasBuilder checks existence before decoding anything.
    """

    def resolve(self, mesh: Mesh, source_dir: Union[str, Path]) -> Optional[Path]:
        """
        Resolve the diffuse texture of `mesh` relative to `source_dir`.

        Returns None (not an error) when the mesh has no texture coordinates,
        no material, no diffuse property, or an embedded texture.
        """
        if not mesh.has_uvs:
            return None

        material = mesh.material
        if material is None:
            return None
        if material.embedded:
            logger.warning(f"Mesh '{mesh.name}' uses an embedded texture; only file textures can be tiled")
            return None
        if not material.diffuse_texture:
            return None

        texture_path = Path(unquote(material.diffuse_texture).replace('\\', '/'))
        if texture_path.is_absolute():
            return texture_path
        return Path(source_dir) / texture_path

"""
Horizontal texture atlas builder.

Tiles one texture per UV-bearing mesh left-to-right into a single image:

    +--------+--------+--------+
    | tile 0 | tile 1 | tile 2 |   <- cell px tall
    +--------+--------+--------+
      cell     cell     cell

Tile order comes from the TileAssignment, which is the same value the mesh
combiner uses to remap UVs. Every source must be readable before anything is
decoded or written: a missing tile would shift nothing but still leave a mesh
pointing at empty pixels.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Tuple, Union

from PIL import Image, UnidentifiedImageError

from atlasmerge.exceptions import OutputWriteError, TextureResourceError, TileAssignmentError
from atlasmerge.texturing.tiles import TileAssignment

logger = logging.getLogger(__name__)

# Formats Pillow writes without an alpha channel
_OPAQUE_EXTENSIONS = {'.jpg', '.jpeg'}


@dataclass(frozen=True)
class AtlasRef:
    """Identity of a written atlas, needed for material assignment."""
    path: Path
    tile_count: int
    cell_size: int

    @property
    def size(self) -> Tuple[int, int]:
        return self.cell_size * self.tile_count, self.cell_size

    @property
    def uri(self) -> str:
        """Atlas file name, for referencing it from a scene next to it."""
        return self.path.name


class AtlasBuilder:
    """
    Builds a single-row atlas from a TileAssignment.

    Args:
        cell_size: Preferred tile edge length in pixels
        max_atlas_width: Cap on the atlas width; cells shrink to fit N tiles
        background: RGBA fill for pixels no tile covers
        upscale_small_tiles: Stretch small textures to the full cell
        jpeg_quality: Quality used when the output is a JPEG
    """

    def __init__(
        self,
        cell_size: int = 2048,
        max_atlas_width: int = 16384,
        background: Tuple[int, int, int, int] = (0, 0, 0, 0),
        upscale_small_tiles: bool = True,
        jpeg_quality: int = 95,
    ):
        self.cell_size = cell_size
        self.max_atlas_width = max_atlas_width
        self.background = tuple(background)
        self.upscale_small_tiles = upscale_small_tiles
        self.jpeg_quality = jpeg_quality

    @classmethod
    def from_config(cls, config) -> "AtlasBuilder":
        return cls(
            cell_size=config.cell_size,
            max_atlas_width=config.max_atlas_width,
            background=config.background,
            upscale_small_tiles=config.upscale_small_tiles,
            jpeg_quality=config.jpeg_quality,
        )

    def cell_size_for(self, tile_count: int) -> int:
        """Edge length of one square cell for `tile_count` tiles."""
        if tile_count <= 0:
            raise TileAssignmentError("Atlas needs at least one tile")
        cell = min(self.cell_size, self.max_atlas_width // tile_count)
        if cell < 1:
            raise TileAssignmentError(
                f"{tile_count} tiles do not fit in an atlas {self.max_atlas_width}px wide"
            )
        return cell

    def check_sources(self, assignment: TileAssignment) -> None:
        """
        Verify every source texture exists, is a regular file, and is readable.

        Raises:
            TextureResourceError: For the first offending path, in tile order
        """
        for path in assignment.texture_paths:
            if not path.exists():
                raise TextureResourceError(path, "Texture file not found")
            if not path.is_file():
                raise TextureResourceError(path, "Texture is not a regular file")
            if not os.access(path, os.R_OK):
                raise TextureResourceError(path, "Texture file is not readable")

    def compose(self, assignment: TileAssignment) -> Image.Image:
        """
        Decode every texture and tile it into an in-memory RGBA canvas.

        Returns:
            Atlas image of size (N * cell, cell)
        """
        tile_count = assignment.tile_count
        cell = self.cell_size_for(tile_count)
        self.check_sources(assignment)

        atlas = Image.new('RGBA', (cell * tile_count, cell), self.background)
        for tile_index, path in enumerate(assignment.texture_paths):
            texture = self._decode(path)
            tile = self._fit_to_cell(texture, cell)
            # Paste inside the cell box only; tiles never overlap
            atlas.paste(tile, (tile_index * cell, 0))
            logger.debug(f"Tile {tile_index}: {path.name} {texture.size} -> cell {cell}x{cell}")

        return atlas

    def build(self, assignment: TileAssignment, output_path: Union[str, Path]) -> AtlasRef:
        """
        Compose the atlas and encode it to `output_path`.

        Raises:
            TileAssignmentError: Empty assignment
            TextureResourceError: A source texture is missing or undecodable
            OutputWriteError: The atlas could not be written
        """
        output_path = Path(output_path)
        atlas = self.compose(assignment)
        cell = self.cell_size_for(assignment.tile_count)

        self._encode(atlas, output_path)
        logger.info(
            f"Packed {assignment.tile_count} textures into {atlas.width}x{atlas.height} atlas: {output_path}"
        )
        return AtlasRef(path=output_path, tile_count=assignment.tile_count, cell_size=cell)

    def _decode(self, path: Path) -> Image.Image:
        try:
            with Image.open(path) as img:
                return img.convert('RGBA')
        except (UnidentifiedImageError, OSError) as e:
            raise TextureResourceError(path, f"Cannot decode texture ({e})") from e

    def _fit_to_cell(self, texture: Image.Image, cell: int) -> Image.Image:
        width, height = texture.size
        if (width, height) == (cell, cell):
            return texture

        smaller = width <= cell and height <= cell
        if smaller and not self.upscale_small_tiles:
            # Left at native size on the background fill
            return texture

        return texture.resize((cell, cell), Image.LANCZOS)

    def _encode(self, atlas: Image.Image, output_path: Path) -> None:
        image = atlas
        save_kwargs = {}
        if output_path.suffix.lower() in _OPAQUE_EXTENSIONS:
            image = atlas.convert('RGB')
            save_kwargs['quality'] = self.jpeg_quality

        try:
            image.save(output_path, **save_kwargs)
        except (OSError, ValueError) as e:
            if output_path.is_file():
                output_path.unlink()
            raise OutputWriteError(output_path, f"Cannot write atlas ({e})") from e

"""
Consolidation settings

All tunables of the pipeline live in one validated model. Values can be
passed directly, or read from ATLASMERGE_* environment variables:

    ATLASMERGE_CELL_SIZE=1024 atlasmerge merge scene.gltf -o merged.glb
"""

from __future__ import annotations

import os
from typing import Literal, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

ENV_PREFIX = "ATLASMERGE_"


class ConsolidateConfig(BaseModel):
    model_config = ConfigDict(extra='forbid')

    cell_size: int = Field(2048, gt=0, description="Preferred edge length in pixels of one square atlas tile.")
    max_atlas_width: int = Field(16384, gt=0, description="Atlas width cap; tiles shrink to N * cell <= this.")
    atlas_suffix: str = Field("_tex", description="Appended to the output stem to name the atlas file.")
    atlas_format: Literal['jpg', 'jpeg', 'png'] = Field('jpg', description="Atlas image format (glTF supports JPEG and PNG).")
    jpeg_quality: int = Field(95, ge=1, le=95, description="Pillow JPEG quality.")
    upscale_small_tiles: bool = Field(True, description="""
        Stretch textures smaller than the cell to fill it.

        When False, small textures are pasted unscaled at the top-left of
        their cell on the background fill, which only keeps UVs correct for
        textures that already match the cell size.
    """)
    background: Tuple[int, int, int, int] = Field((0, 0, 0, 0), description="RGBA fill of unused atlas pixels.")
    index_type: Literal['uint16', 'uint32'] = Field('uint32', description="Index representation of the combined mesh.")
    scale: float = Field(1.0, gt=0, description="Uniform scale applied to every vertex before combining.")

    @field_validator('background', mode='before')
    @classmethod
    def parse_background(cls, v):
        """Accept "r,g,b,a" strings as found in the environment."""
        if isinstance(v, str):
            return tuple(int(c) for c in v.split(','))
        return v

    @field_validator('background')
    @classmethod
    def validate_background(cls, v):
        if any(c < 0 or c > 255 for c in v):
            raise ValueError("background components must be in 0..255")
        return v

    @model_validator(mode='after')
    def validate_cell_size(self):
        if self.cell_size > self.max_atlas_width:
            raise ValueError("cell_size must be <= max_atlas_width")
        return self

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, **overrides) -> "ConsolidateConfig":
        """
        Build a config from ATLASMERGE_* environment variables.

        Args:
            environ: Mapping to read instead of os.environ
            **overrides: Explicit values; these win over the environment

        Example:
            >>> ConsolidateConfig.from_env({"ATLASMERGE_INDEX_TYPE": "uint16"}).index_type
            'uint16'
        """
        if environ is None:
            environ = os.environ

        values = {}
        for name in cls.model_fields:
            raw = environ.get(ENV_PREFIX + name.upper())
            if raw is None:
                continue
            values[name] = raw

        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

    @property
    def atlas_extension(self) -> str:
        return f".{self.atlas_format}"

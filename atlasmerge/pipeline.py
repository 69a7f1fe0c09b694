"""
Scene consolidation pipeline

    scene.gltf ──load──> Scene ──TileAssignment──┬──> AtlasBuilder ──> <stem>_tex.jpg
                                                 │
                                                 └──> MeshCombiner ──> CombinedMesh ──export──> merged.glb

The tile assignment is computed once and shared by the atlas builder and the
combiner. Geometry is validated (sizing pass) before the atlas is written, so
an invalid scene leaves nothing on disk; any later failure removes the files
this call already wrote.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Union

from atlasmerge.config import ConsolidateConfig
from atlasmerge.converters.formats import resolve_output
from atlasmerge.converters.gltf.exporter import export_scene
from atlasmerge.converters.gltf.importer import load_scene
from atlasmerge.exceptions import EmptySceneError
from atlasmerge.geometry.combiner import MeshCombiner
from atlasmerge.geometry.transforms import scale_scene
from atlasmerge.schema.scene import CombinedMesh, Material, Scene
from atlasmerge.texturing.atlas_builder import AtlasBuilder, AtlasRef
from atlasmerge.texturing.tiles import TileAssignment

logger = logging.getLogger(__name__)


@dataclass
class ConsolidationResult:
    """What consolidate() produced."""
    scene_path: Path
    scene: Scene
    combined: CombinedMesh
    atlas: Optional[AtlasRef] = None
    written: List[Path] = field(default_factory=list)


def atlas_path_for(output_path: Path, config: ConsolidateConfig) -> Path:
    """<output dir>/<output stem><suffix>.<format>"""
    return output_path.with_name(f"{output_path.stem}{config.atlas_suffix}{config.atlas_extension}")


def consolidate(
    input_path: Union[str, Path],
    output_path: Union[str, Path],
    config: Optional[ConsolidateConfig] = None,
    format_index: Optional[int] = None,
) -> ConsolidationResult:
    """
    Merge every mesh of a scene into one mesh textured by one atlas.

    Args:
        input_path: Source .gltf/.glb scene
        output_path: Destination scene; its extension selects the export
                     format unless format_index is given
        config: Consolidation settings (defaults when None)
        format_index: Index into EXPORT_FORMATS

    Returns:
        ConsolidationResult with the combined mesh and every file written

    Raises:
        FileNotFoundError: If the input scene doesn't exist
        UnsupportedFormatError: If no exporter matches the output
        InputContractError: Non-triangle faces, bad indices, missing textures,
                            or no triangles at all
        ResourceError: Unreadable textures/scene, or an unwritable output
        CapacityError: Combined vertex count exceeds the index type

    Examples:
        >>> result = consolidate("city/block.gltf", "out/block.glb")
        >>> [p.name for p in result.written]
        ['block_tex.jpg', 'block.glb']
    """
    config = config or ConsolidateConfig()
    input_path = Path(input_path)
    if not input_path.exists():
        raise FileNotFoundError(f"Input file not found: {input_path}")

    # Format problems are reported before any import work
    output_path, export_format = resolve_output(output_path, format_index)

    scene = load_scene(input_path)
    if config.scale != 1.0:
        scale_scene(scene, config.scale)

    assignment = TileAssignment.from_meshes(scene.meshes, scene.source_dir)
    combiner = MeshCombiner(index_type=config.index_type)
    # Sizing pass: contract violations surface before anything is written
    plan = combiner.plan(scene.meshes, assignment)
    if plan.face_count == 0:
        raise EmptySceneError(f"{input_path} has no triangles to consolidate")

    written: List[Path] = []
    try:
        atlas = None
        if assignment.tile_count:
            builder = AtlasBuilder.from_config(config)
            atlas = builder.build(assignment, atlas_path_for(output_path, config))
            written.append(atlas.path)
        else:
            logger.warning("No mesh has texture coordinates; exporting without an atlas")

        material = Material(
            name=f"{output_path.stem}_mat",
            diffuse_texture=atlas.uri if atlas else None,
        )
        combined = combiner.combine(scene.meshes, assignment, material=material, name=output_path.stem)
        written.extend(export_scene(combined, output_path, export_format, atlas.uri if atlas else None))
    except Exception:
        for path in written:
            if path.is_file():
                logger.debug(f"Removing partial output {path}")
                path.unlink()
        raise

    logger.info(f"Consolidated {len(scene.meshes)} meshes from {input_path} into {output_path}")
    return ConsolidationResult(
        scene_path=output_path,
        scene=scene,
        combined=combined,
        atlas=atlas,
        written=written,
    )

"""
atlasmerge Advanced Example

Runs the consolidation steps by hand: the same TileAssignment drives the
atlas builder and the mesh combiner, so every mesh's UVs land on its own tile.
"""

from pathlib import Path

from atlasmerge import (
    AtlasBuilder,
    ConsolidateConfig,
    MeshCombiner,
    TileAssignment,
    export_scene,
    load_scene,
)
from atlasmerge.converters.formats import get_format
from atlasmerge.geometry.stats import describe_scene
from atlasmerge.schema.scene import Material

config = ConsolidateConfig(cell_size=1024, atlas_format='png', index_type='uint32')

# Load and inspect
scene = load_scene("input/scene.gltf")
print("\n".join(describe_scene(scene)))

# One tile per textured mesh, in mesh order
tiles = TileAssignment.from_meshes(scene.meshes, scene.source_dir)
print(f"\n{tiles.tile_count} tiles:")
for mesh_index, path in tiles.tiles:
    print(f"  tile {tiles.tile_for(mesh_index)}: {scene.meshes[mesh_index].name} <- {path.name}")

# Validate geometry before writing anything
combiner = MeshCombiner(index_type=config.index_type)
plan = combiner.plan(scene.meshes, tiles)
print(f"\nCombined size: {plan.vertex_count} vertices, {plan.face_count} faces")

output = Path("output/city.gltf")
atlas = AtlasBuilder.from_config(config).build(tiles, output.with_name("city_tex.png"))
print(f"✅ Saved atlas {atlas.path}")

combined = combiner.combine(scene.meshes, tiles, material=Material(name="city_mat", diffuse_texture=atlas.uri))
for path in export_scene(combined, output, get_format(1), atlas.uri):
    print(f"✅ Saved {path}")

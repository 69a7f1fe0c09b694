"""
atlasmerge Quick Start Example

Merges every mesh of a textured glTF scene into one mesh and one atlas.
"""

from atlasmerge import consolidate

print("Consolidating scene.gltf...")
result = consolidate("input/scene.gltf", "output/merged.glb")
print(f"✅ Saved {result.scene_path} ({result.combined.vertex_count} vertices, {result.combined.face_count} faces)")

if result.atlas is not None:
    width, height = result.atlas.size
    print(f"✅ Atlas {result.atlas.path} ({result.atlas.tile_count} tiles, {width}x{height})")

print("\nDone! Check the output/ directory.")

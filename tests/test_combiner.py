"""
Tests for the mesh combiner (sizing pass + copy pass)
"""

from pathlib import Path
from unittest import mock

import numpy as np
import pytest

from atlasmerge.exceptions import (
    CapacityError,
    FaceIndexError,
    NonTriangularFaceError,
    TileAssignmentError,
)
from atlasmerge.geometry.combiner import MeshCombiner, combine_meshes
from atlasmerge.schema.scene import Material
from atlasmerge.texturing.tiles import TileAssignment

from conftest import (
    QUAD_FACES,
    QUAD_POSITIONS,
    QUAD_UVS,
    TRI_FACES,
    TRI_POSITIONS,
    TRI_UVS,
    make_mesh,
)


def scenario_meshes():
    return [
        make_mesh("quad", QUAD_POSITIONS, QUAD_FACES, QUAD_UVS, "a.png"),
        make_mesh("tri", TRI_POSITIONS, TRI_FACES, TRI_UVS, "b.png"),
    ]


def assignment_for(meshes, tmp_path):
    return TileAssignment.from_meshes(meshes, tmp_path)


class TestCombine:
    """Concatenation, index offsets and UV remapping"""

    def test_two_mesh_scenario(self, tmp_path):
        """4+3 vertices, 2+1 faces, second mesh's indices shifted by 4"""
        meshes = scenario_meshes()
        combined = MeshCombiner().combine(meshes, assignment_for(meshes, tmp_path))

        assert combined.vertex_count == 7
        assert combined.face_count == 3
        assert combined.faces.tolist() == [[0, 1, 2], [0, 2, 3], [4, 5, 6]]
        assert combined.uvs[0].tolist() == pytest.approx([0.25, 0.5])
        assert combined.uvs[4].tolist() == pytest.approx([0.75, 0.5])

    def test_positions_copied_in_order(self, tmp_path):
        """Vertex buffer is the concatenation of source positions"""
        meshes = scenario_meshes()
        combined = MeshCombiner().combine(meshes, assignment_for(meshes, tmp_path))
        expected = np.concatenate([m.positions for m in meshes])
        assert np.array_equal(combined.positions, expected)

    def test_counts_are_sums(self, tmp_path):
        """Combined counts equal the sums over all meshes"""
        meshes = scenario_meshes() + scenario_meshes()
        combined = MeshCombiner().combine(meshes, assignment_for(meshes, tmp_path))
        assert combined.vertex_count == sum(m.vertex_count for m in meshes)
        assert combined.face_count == sum(m.face_count for m in meshes)

    def test_all_indices_in_range(self, tmp_path):
        """Every combined index addresses an existing vertex"""
        meshes = scenario_meshes() * 3
        combined = MeshCombiner().combine(meshes, assignment_for(meshes, tmp_path))
        assert int(combined.faces.max()) < combined.vertex_count
        assert int(combined.faces.min()) >= 0

    def test_uvs_inside_own_tile(self, tmp_path):
        """UVs of the mesh with tile i lie in [i/N, (i+1)/N), V unchanged"""
        meshes = scenario_meshes() * 2
        tiles = assignment_for(meshes, tmp_path)
        combined = MeshCombiner().combine(meshes, tiles)

        for source, mesh in zip(combined.sources, meshes):
            i = source.tile_index
            uvs = combined.uvs[source.vertex_offset:source.vertex_offset + source.vertex_count]
            shifted = (mesh.uvs[:, 0] + i) / tiles.tile_count
            assert np.allclose(uvs[:, 0], shifted)
            assert np.array_equal(uvs[:, 1], mesh.uvs[:, 1])
            in_tile = mesh.uvs[:, 0] < 1.0
            assert np.all(uvs[in_tile, 0] >= i / tiles.tile_count)
            assert np.all(uvs[in_tile, 0] < (i + 1) / tiles.tile_count)

    def test_u_near_one_stays_in_tile(self, tmp_path):
        """A u just below 1 in the last tile stays below 1.0"""
        below_one = float(np.nextafter(np.float32(1), np.float32(0)))
        uvs = [[below_one, 0.5], [0.0, 0.0], [0.0, 1.0]]
        meshes = [
            make_mesh("a", TRI_POSITIONS, TRI_FACES, uvs, "a.png"),
            make_mesh("b", TRI_POSITIONS, TRI_FACES, uvs, "b.png"),
        ]
        combined = MeshCombiner().combine(meshes, assignment_for(meshes, tmp_path))
        assert float(combined.uvs[0, 0]) < 0.5
        assert 0.5 <= float(combined.uvs[3, 0]) < 1.0

    def test_source_ranges(self, tmp_path):
        """Each source records where it landed"""
        meshes = scenario_meshes()
        combined = MeshCombiner().combine(meshes, assignment_for(meshes, tmp_path))
        quad, tri = combined.sources
        assert (quad.vertex_offset, quad.face_offset, quad.tile_index) == (0, 0, 0)
        assert (tri.vertex_offset, tri.face_offset, tri.tile_index) == (4, 2, 1)

    def test_deterministic(self, tmp_path):
        """Same input gives byte-identical buffers"""
        first = MeshCombiner().combine(scenario_meshes(), assignment_for(scenario_meshes(), tmp_path))
        second = MeshCombiner().combine(scenario_meshes(), assignment_for(scenario_meshes(), tmp_path))
        assert first.positions.tobytes() == second.positions.tobytes()
        assert first.faces.tobytes() == second.faces.tobytes()
        assert first.uvs.tobytes() == second.uvs.tobytes()

    def test_uvless_mesh(self, tmp_path):
        """UV-less mesh keeps zero UVs and does not shift later tiles"""
        meshes = [
            make_mesh("quad", QUAD_POSITIONS, QUAD_FACES, QUAD_UVS, "a.png"),
            make_mesh("plain", QUAD_POSITIONS, QUAD_FACES),
            make_mesh("tri", TRI_POSITIONS, TRI_FACES, TRI_UVS, "b.png"),
        ]
        combined = MeshCombiner().combine(meshes, assignment_for(meshes, tmp_path))

        assert combined.vertex_count == 11
        assert np.array_equal(combined.uvs[4:8], np.zeros((4, 2)))
        assert combined.sources[1].tile_index is None
        assert combined.uvs[8].tolist() == pytest.approx([0.75, 0.5])
        assert combined.faces[4].tolist() == [8, 9, 10]

    def test_no_uvs_at_all(self, tmp_path):
        """Without any UV-bearing mesh the combined mesh has no UVs"""
        meshes = [make_mesh("plain", QUAD_POSITIONS, QUAD_FACES)]
        combined = MeshCombiner().combine(meshes, assignment_for(meshes, tmp_path))
        assert combined.uvs is None

    def test_material_and_name(self, tmp_path):
        """Given material is attached, default is named after the mesh"""
        meshes = scenario_meshes()
        tiles = assignment_for(meshes, tmp_path)
        material = Material(name="atlas_mat", diffuse_texture="out_tex.jpg")
        assert MeshCombiner().combine(meshes, tiles, material=material).material is material
        assert MeshCombiner().combine(meshes, tiles, name="city").material.name == "city_mat"

    def test_empty_input(self):
        """No meshes gives an empty combined mesh"""
        combined = MeshCombiner().combine([], TileAssignment())
        assert combined.vertex_count == 0
        assert combined.face_count == 0

    def test_combine_meshes_wrapper(self, tmp_path):
        """Module-level helper honors index_type"""
        meshes = scenario_meshes()
        combined = combine_meshes(meshes, assignment_for(meshes, tmp_path), index_type='uint16')
        assert combined.index_type == 'uint16'


class TestValidation:
    """Errors raised by the sizing pass"""

    def test_quad_face_before_allocation(self, tmp_path):
        """A 4-index face fails before any buffer is allocated"""
        quad = make_mesh("polys", QUAD_POSITIONS, [[0, 1, 2, 3]])
        meshes = scenario_meshes() + [quad]
        tiles = assignment_for(meshes, tmp_path)

        with mock.patch("atlasmerge.geometry.combiner.np.empty") as empty:
            with pytest.raises(NonTriangularFaceError, match="polys"):
                MeshCombiner().combine(meshes, tiles)
            empty.assert_not_called()

    def test_ragged_faces(self):
        """Mixed polygon sizes are rejected when the mesh is built"""
        with pytest.raises(NonTriangularFaceError):
            make_mesh("ragged", QUAD_POSITIONS, [[0, 1, 2], [0, 1, 2, 3]])

    def test_index_out_of_range(self, tmp_path):
        """Faces must reference the mesh's own vertices"""
        meshes = [make_mesh("bad", TRI_POSITIONS, [[0, 1, 3]])]
        with pytest.raises(FaceIndexError, match="bad"):
            MeshCombiner().combine(meshes, assignment_for(meshes, tmp_path))

    def test_negative_index(self, tmp_path):
        meshes = [make_mesh("neg", TRI_POSITIONS, [[0, -1, 2]])]
        with pytest.raises(FaceIndexError):
            MeshCombiner().plan(meshes, assignment_for(meshes, tmp_path))

    def test_uint16_capacity(self, tmp_path):
        """More than 65536 vertices cannot use 16-bit indices"""
        big = make_mesh("big", np.zeros((40000, 3)), [[0, 1, 2]])
        meshes = [big, make_mesh("big2", np.zeros((30000, 3)), [[0, 1, 2]])]
        tiles = assignment_for(meshes, tmp_path)

        with pytest.raises(CapacityError):
            MeshCombiner(index_type='uint16').plan(meshes, tiles)
        assert MeshCombiner(index_type='uint32').plan(meshes, tiles).vertex_count == 70000

    def test_uint16_restart_value_reserved(self, tmp_path):
        """65536 vertices would need index 65535, which glTF reserves"""
        at_limit = [make_mesh("limit", np.zeros((65536, 3)), [[0, 1, 65535]])]
        tiles = assignment_for(at_limit, tmp_path)
        with pytest.raises(CapacityError):
            MeshCombiner(index_type='uint16').plan(at_limit, tiles)

        fits = [make_mesh("fits", np.zeros((65535, 3)), [[0, 1, 65534]])]
        combined = MeshCombiner(index_type='uint16').combine(fits, assignment_for(fits, tmp_path))
        assert int(combined.faces.max()) == 65534
        assert int(combined.faces.max()) < np.iinfo(np.uint16).max

    def test_assignment_must_match_meshes(self, tmp_path):
        """A tile for a UV-less mesh, or a UV mesh without tile, is rejected"""
        meshes = scenario_meshes()
        with pytest.raises(TileAssignmentError):
            MeshCombiner().plan(meshes, TileAssignment(((0, Path("a.png")),)))

        plain = [make_mesh("plain", QUAD_POSITIONS, QUAD_FACES)]
        with pytest.raises(TileAssignmentError):
            MeshCombiner().plan(plain, TileAssignment(((0, Path("a.png")),)))
        with pytest.raises(TileAssignmentError):
            MeshCombiner().plan(plain, TileAssignment(((3, Path("a.png")),)))

    def test_unknown_index_type(self):
        with pytest.raises(ValueError):
            MeshCombiner(index_type='uint8')

    def test_plan_offsets(self, tmp_path):
        """Sizing pass computes exact offsets"""
        meshes = scenario_meshes() * 2
        plan = MeshCombiner().plan(meshes, assignment_for(meshes, tmp_path))
        assert plan.vertex_offsets == (0, 4, 7, 11)
        assert plan.face_offsets == (0, 2, 3, 5)
        assert (plan.vertex_count, plan.face_count) == (14, 6)

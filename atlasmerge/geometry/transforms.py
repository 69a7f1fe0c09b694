"""
Transform utilities for baking scene graph transforms into vertex positions.

Coordinate System:
- glTF: Y-up, right-handed, meters
- Quaternions follow glTF order [x, y, z, w]
- Matrices are 4x4, column vectors (p' = M @ p), as glTF specifies them

Combining meshes drops the node hierarchy, so each mesh's world transform is
applied to its positions at import time.
"""

import math
from typing import Optional, Sequence

import numpy as np

from atlasmerge.schema.scene import Scene


def normalize_quaternion(quat: Sequence[float]) -> list:
    """
    Normalize a quaternion [x, y, z, w] to unit length with w >= 0.

    A zero quaternion becomes the identity.
    """
    x, y, z, w = quat
    magnitude = math.sqrt(x*x + y*y + z*z + w*w)
    if magnitude == 0:
        return [0.0, 0.0, 0.0, 1.0]

    normalized = [x/magnitude, y/magnitude, z/magnitude, w/magnitude]

    # q and -q are the same rotation
    if normalized[3] < 0:
        normalized = [-c for c in normalized]

    return normalized


def quaternion_to_matrix(quat: Sequence[float]) -> np.ndarray:
    """3x3 rotation matrix of a glTF quaternion [x, y, z, w]."""
    x, y, z, w = normalize_quaternion(quat)
    return np.array([
        [1 - 2*(y*y + z*z), 2*(x*y - z*w),     2*(x*z + y*w)],
        [2*(x*y + z*w),     1 - 2*(x*x + z*z), 2*(y*z - x*w)],
        [2*(x*z - y*w),     2*(y*z + x*w),     1 - 2*(x*x + y*y)],
    ], dtype=np.float64)


def trs_matrix(
    translation: Optional[Sequence[float]] = None,
    rotation: Optional[Sequence[float]] = None,
    scale: Optional[Sequence[float]] = None,
) -> np.ndarray:
    """4x4 matrix T * R * S; missing components are identity."""
    matrix = np.identity(4, dtype=np.float64)
    linear = np.identity(3, dtype=np.float64)
    if rotation is not None:
        linear = quaternion_to_matrix(rotation)
    if scale is not None:
        linear = linear @ np.diag([float(s) for s in scale])
    matrix[:3, :3] = linear
    if translation is not None:
        matrix[:3, 3] = [float(t) for t in translation]
    return matrix


def column_major_matrix(values: Sequence[float]) -> np.ndarray:
    """glTF stores node.matrix as 16 floats in column-major order."""
    return np.asarray(values, dtype=np.float64).reshape(4, 4).T


def apply_matrix(positions: np.ndarray, matrix: np.ndarray) -> np.ndarray:
    """Transform (V, 3) points by a 4x4 matrix. Returns float32."""
    if np.allclose(matrix, np.identity(4)):
        return np.asarray(positions, dtype=np.float32)
    points = np.asarray(positions, dtype=np.float64)
    transformed = points @ matrix[:3, :3].T + matrix[:3, 3]
    return transformed.astype(np.float32)


def scale_scene(scene: Scene, factor: float) -> Scene:
    """
    Multiply every vertex position by `factor`, in place.

    Returns the same scene for chaining.
    """
    factor32 = np.float32(factor)
    for mesh in scene.meshes:
        mesh.positions *= factor32
    return scene

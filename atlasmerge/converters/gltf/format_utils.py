"""
GLTF Format Utilities

Helpers for reading and writing glTF binary data with pygltflib:
buffer resolution (GLB chunk, data URIs, external files) and accessor
decoding into numpy arrays.
"""

import base64
import math
from pathlib import Path
from typing import Any, List, Optional
from urllib.parse import unquote

import numpy as np
from pygltflib import GLTF2

from atlasmerge.exceptions import SceneImportError

ARRAY_BUFFER = 34962
ELEMENT_ARRAY_BUFFER = 34963

BYTE = 5120
UNSIGNED_BYTE = 5121
SHORT = 5122
UNSIGNED_SHORT = 5123
UNSIGNED_INT = 5125
FLOAT = 5126

COMPONENT_DTYPES = {
    BYTE: np.dtype(np.int8),
    UNSIGNED_BYTE: np.dtype(np.uint8),
    SHORT: np.dtype(np.int16),
    UNSIGNED_SHORT: np.dtype(np.uint16),
    UNSIGNED_INT: np.dtype(np.uint32),
    FLOAT: np.dtype(np.float32),
}

INDEX_COMPONENT_TYPES = {
    'uint16': UNSIGNED_SHORT,
    'uint32': UNSIGNED_INT,
}

TYPE_WIDTH = {"SCALAR": 1, "VEC2": 2, "VEC3": 3, "VEC4": 4, "MAT2": 4, "MAT3": 9, "MAT4": 16}

DATA_URI_PREFIX = "data:"


def get_field(obj: Any, field_name: str, default: Any = None) -> Any:
    """
    Get field from either dict or pygltflib object format

    Args:
        obj: Dict or object to extract field from
        field_name: Name of field to extract
        default: Default value if field not found

    Returns:
        Field value or default
    """
    if obj is None:
        return default

    if isinstance(obj, dict):
        value = obj.get(field_name)
    else:
        value = getattr(obj, field_name, None)
    # pygltflib leaves unset optional fields as None
    return value if value is not None else default


def is_data_uri(uri: Optional[str]) -> bool:
    return bool(uri) and uri.startswith(DATA_URI_PREFIX)


def decode_data_uri(uri: str) -> bytes:
    """Decode a base64 data URI (data:<mime>;base64,<payload>)."""
    header, _, payload = uri.partition(',')
    if ';base64' not in header:
        raise ValueError("Only base64 data URIs are supported")
    return base64.b64decode(payload)


def encode_data_uri(data: bytes, mime: str = "application/octet-stream") -> str:
    return f"{DATA_URI_PREFIX}{mime};base64,{base64.b64encode(data).decode('utf-8')}"


def load_buffers(gltf: GLTF2, source_path: Path) -> List[bytes]:
    """
    Resolve the bytes of every buffer of a loaded glTF.

    A buffer without a URI is the GLB binary chunk; data URIs are decoded;
    anything else is a file relative to the scene file.
    """
    buffers = []
    for index, buffer in enumerate(gltf.buffers or []):
        uri = buffer.uri
        if uri is None:
            data = gltf.binary_blob() or b""
        elif is_data_uri(uri):
            try:
                data = decode_data_uri(uri)
            except (ValueError, TypeError) as e:
                raise SceneImportError(source_path, f"Malformed data URI in buffer {index} ({e})") from e
        else:
            buffer_path = source_path.parent / unquote(uri)
            try:
                data = buffer_path.read_bytes()
            except OSError as e:
                raise SceneImportError(buffer_path, f"Cannot read buffer {index} ({e})") from e

        if buffer.byteLength is not None and len(data) < buffer.byteLength:
            raise SceneImportError(source_path, f"Buffer {index} is truncated")
        buffers.append(data)
    return buffers


def read_accessor(gltf: GLTF2, buffers: List[bytes], accessor_index: int) -> np.ndarray:
    """
    Decode an accessor into a (count, width) array.

    Handles interleaved views (byteStride) and normalized integer
    attributes (converted to float32 in [0, 1] or [-1, 1]). An accessor
    without a bufferView is all zeros, as glTF specifies.
    """
    accessor = gltf.accessors[accessor_index]
    dtype = COMPONENT_DTYPES.get(accessor.componentType)
    if dtype is None:
        raise ValueError(f"Unsupported accessor componentType {accessor.componentType}")
    width = TYPE_WIDTH[accessor.type]
    count = accessor.count

    if accessor.bufferView is None or count == 0:
        array = np.zeros((count, width), dtype=dtype)
    else:
        view = gltf.bufferViews[accessor.bufferView]
        data = buffers[view.buffer]
        element_size = dtype.itemsize * width
        stride = view.byteStride or element_size
        base = (view.byteOffset or 0) + (accessor.byteOffset or 0)
        end = base + stride * (count - 1) + element_size if count else base
        if end > len(data):
            raise ValueError(f"Accessor {accessor_index} reads past the end of its buffer")

        if stride == element_size:
            array = np.frombuffer(data, dtype=dtype, count=count * width, offset=base).reshape(count, width)
        else:
            array = np.ndarray(
                shape=(count, width),
                dtype=dtype,
                buffer=data,
                offset=base,
                strides=(stride, dtype.itemsize),
            )
        array = array.copy()

    if accessor.normalized and dtype.kind in 'iu':
        info = np.iinfo(dtype)
        array = np.maximum(array.astype(np.float32) / info.max, -1.0).astype(np.float32)

    return array


def align4(n: int) -> int:
    return int(math.ceil(n / 4.0) * 4)

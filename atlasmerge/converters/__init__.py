"""Format converters for atlasmerge scenes"""

from atlasmerge.converters.formats import (
    EXPORT_FORMATS,
    ExportFormat,
    describe_formats,
    find_format_for_extension,
    get_format,
    resolve_output,
)
from atlasmerge.converters.gltf.importer import load_scene
from atlasmerge.converters.gltf.exporter import export_scene

__all__ = [
    "EXPORT_FORMATS",
    "ExportFormat",
    "describe_formats",
    "find_format_for_extension",
    "get_format",
    "resolve_output",
    "load_scene",
    "export_scene",
]

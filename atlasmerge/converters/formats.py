"""
Export format registry

Formats are addressed either by index (as listed by `atlasmerge formats`) or
by the output file's extension.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple, Union

from atlasmerge.exceptions import UnsupportedFormatError


@dataclass(frozen=True)
class ExportFormat:
    id: str
    description: str
    extension: str  # without the dot
    binary: bool = False  # single GLB container
    embedded: bool = False  # buffer inlined as a data URI


EXPORT_FORMATS: Tuple[ExportFormat, ...] = (
    ExportFormat("glb2", "GL Transmission Format v. 2 (binary)", "glb", binary=True),
    ExportFormat("gltf2", "GL Transmission Format v. 2", "gltf"),
    ExportFormat("gltf2-embedded", "GL Transmission Format v. 2 (embedded buffer)", "gltf", embedded=True),
)


def get_format(index: int) -> ExportFormat:
    """Format by its position in EXPORT_FORMATS."""
    if not 0 <= index < len(EXPORT_FORMATS):
        raise UnsupportedFormatError(
            f"Unknown export format index {index}. Valid indices: 0-{len(EXPORT_FORMATS) - 1}"
        )
    return EXPORT_FORMATS[index]


def find_format_for_extension(extension: str) -> Optional[ExportFormat]:
    """First format whose extension matches (case-insensitive, dot optional)."""
    ext = extension.lower().lstrip('.')
    for fmt in EXPORT_FORMATS:
        if fmt.extension == ext:
            return fmt
    return None


def resolve_output(output_path: Union[str, Path], format_index: Optional[int] = None) -> Tuple[Path, ExportFormat]:
    """
    Decide the export format and final output path.

    With a format index, the format's extension is appended when the output
    path has a different one. Without, the extension selects the format.

    Raises:
        UnsupportedFormatError: No extension and no index, or no matching format

    Examples:
        >>> resolve_output("out/merged.glb")[1].id
        'glb2'
        >>> str(resolve_output("out/merged", 1)[0])
        'out/merged.gltf'
    """
    path = Path(output_path)
    ext = path.suffix.lstrip('.')

    if format_index is not None:
        fmt = get_format(format_index)
        if ext.lower() != fmt.extension:
            path = path.with_name(f"{path.name}.{fmt.extension}")
        return path, fmt

    if not ext:
        raise UnsupportedFormatError("No export format specified")
    fmt = find_format_for_extension(ext)
    if fmt is None:
        raise UnsupportedFormatError(f"Couldn't find appropriate exporter for extension {ext}")
    return path, fmt


def describe_formats() -> list:
    """Lines of the `formats` listing."""
    lines = [f"There are {len(EXPORT_FORMATS)} export formats available"]
    for index, fmt in enumerate(EXPORT_FORMATS):
        lines.append(f"{index} - {fmt.description} (.{fmt.extension})")
    return lines

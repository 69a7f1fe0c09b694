"""
atlasmerge CLI - Command-line interface for consolidating glTF scenes
"""

import logging
import sys

import click

from atlasmerge import __version__
from atlasmerge.config import ConsolidateConfig
from atlasmerge.converters.formats import describe_formats
from atlasmerge.converters.gltf.importer import load_scene
from atlasmerge.exceptions import ConsolidationError, InputContractError, ResourceError
from atlasmerge.geometry.stats import describe_scene
from atlasmerge.pipeline import consolidate


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        format="%(levelname)s: %(message)s",
        level=logging.DEBUG if verbose else logging.WARNING,
    )


def _fail(label: str, e: Exception, verbose: bool = False, traceback: bool = False) -> None:
    click.secho(f"{label}: {e}", fg='red', err=True)
    if verbose and traceback:
        import traceback as tb
        tb.print_exc()
    sys.exit(1)


@click.group()
@click.version_option(version=__version__, prog_name="atlasmerge")
def cli():
    """
    atlasmerge - Merge the meshes of a glTF scene into one mesh and one texture atlas.

    Examples:
        atlasmerge merge city.gltf -o city.glb
        atlasmerge stats city.gltf
        atlasmerge formats
    """
    pass


@cli.command()
@click.argument('input_path')
@click.option('-o', '--output', required=True, help='Output scene path (.glb, .gltf)')
@click.option('-f', '--format', 'format_index', type=int, default=None,
              help='Export format index (see `atlasmerge formats`); overrides the output extension')
@click.option('-s', '--scale', type=float, default=None, help='Uniform scale applied to all vertices')
@click.option('-t', '--tree', is_flag=True, help='Print the node/mesh tree of the input scene')
@click.option('--cell-size', type=int, default=None, help='Preferred atlas tile size in pixels (default: 2048)')
@click.option('--index-type', type=click.Choice(['uint16', 'uint32']), default=None,
              help='Index type of the merged mesh (default: uint32)')
@click.option('--verbose', '-v', is_flag=True, help='Show debug logging and tracebacks')
def merge(input_path, output, format_index, scale, tree, cell_size, index_type, verbose):
    """
    Merge every mesh of a scene into one mesh textured by one atlas.

    Examples:
        atlasmerge merge block.gltf -o merged.glb
        atlasmerge merge block.gltf -o merged -f 1
        atlasmerge merge block.glb -o merged.glb -s 0.01 --cell-size 1024
    """
    _configure_logging(verbose)
    try:
        config = ConsolidateConfig.from_env(scale=scale, cell_size=cell_size, index_type=index_type)

        if verbose:
            click.echo(f"Merging: {input_path} → {output}")

        if tree:
            # As imported, before scaling
            for line in describe_scene(load_scene(input_path)):
                click.echo(line)

        result = consolidate(input_path, output, config=config, format_index=format_index)

        if verbose:
            click.echo("\nMerge Statistics:")
            click.echo(f"  Meshes: {len(result.scene.meshes)}")
            click.echo(f"  Vertices: {result.combined.vertex_count}")
            click.echo(f"  Faces: {result.combined.face_count}")
            click.echo(f"  Index type: {result.combined.index_type}")
            if result.atlas is not None:
                width, height = result.atlas.size
                click.echo(f"  Atlas: {result.atlas.tile_count} tiles, {width}x{height}")

        if result.atlas is not None:
            click.echo(f"Atlas saved to: {result.atlas.path}")
        click.secho(f"✓ Success! Merged scene saved to {result.scene_path}", fg='green')

    except FileNotFoundError as e:
        _fail("Error", e)
    except InputContractError as e:
        _fail("Input Error", e)
    except ResourceError as e:
        _fail("Resource Error", e)
    except (ConsolidationError, ValueError) as e:
        _fail("Error", e)
    except Exception as e:
        _fail("Unexpected error", e, verbose, traceback=True)


@cli.command()
@click.argument('input_path')
@click.option('--verbose', '-v', is_flag=True, help='Show debug logging and tracebacks')
def stats(input_path, verbose):
    """
    Print the node tree and per-mesh statistics of a scene.

    Examples:
        atlasmerge stats city.gltf
    """
    _configure_logging(verbose)
    try:
        scene = load_scene(input_path)
        for line in describe_scene(scene):
            click.echo(line)

    except FileNotFoundError as e:
        _fail("Error", e)
    except (ConsolidationError, ValueError) as e:
        _fail("Error", e)
    except Exception as e:
        _fail("Unexpected error", e, verbose, traceback=True)


@cli.command()
def formats():
    """List the available export formats."""
    for line in describe_formats():
        click.echo(line)


def main():
    """Entry point for the CLI"""
    cli()


if __name__ == '__main__':
    main()

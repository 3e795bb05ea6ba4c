"""Print a summary of vmap files: tile spawns, tile indexes, world models and terrain maps."""
from typing import Callable, Dict, List, Optional
from pathlib import Path
import argparse
import sys

from vmaptools import logger
from vmaptools.diagnostics import check_tile_index, diagnose
from vmaptools.errors import DecodeError, DecodeResult, attempt
from vmaptools.mapfile import TerrainGrid
from vmaptools.vmo import WorldModel
from vmaptools.vmtile import VmTile
from vmaptools.vmtileidx import VmTileIndex


LOGGER = logger.get_logger(__name__, alias='<dump>')

FORMATS = ['vmtile', 'vmtileidx', 'vmo', 'map']


def guess_format(path: Path) -> Optional[str]:
    """Pick the file type from the extension."""
    ext = path.suffix.casefold().lstrip('.')
    return ext if ext in FORMATS else None


def dump_tile(path: Path, data: bytes, models_dir: Optional[Path]) -> None:
    """Display a tile, and optionally load the models it references."""
    tile = VmTile.parse(data)
    print(f'{path}: tile {tile.magic!r}, {len(tile.spawns)} spawns')
    for i, spawn in enumerate(tile.spawns):
        bound = f' bound=({spawn.bound})' if spawn.bound is not None else ''
        print(
            f'  [{i}] #{spawn.id} "{spawn.name}" at ({spawn.position}) '
            f'rot=({spawn.rotation}) scale={spawn.scale:g}{bound}'
        )

    # A broken index shouldn't stop the tile itself being shown.
    index_path = path.with_suffix('.vmtileidx')
    index: Optional[VmTileIndex] = None
    if index_path.is_file():
        index_result = attempt(VmTileIndex.parse, index_path.read_bytes(), index_path)
        if index_result.data is not None:
            index = index_result.data
        else:
            LOGGER.warning('Could not parse tile index "{}":\n{}', index_path, index_result.error)
            print(f'  index error: {index_path.name}')

    if models_dir is None:
        if index is not None and not check_tile_index(tile, index):
            print(
                f'  Tile index has {len(index.node_indices)} entries, '
                f'but the tile has {len(tile.spawns)} spawns'
            )
        return
    models: Dict[str, DecodeResult[WorldModel]] = {}
    for spawn in tile.spawns:
        if spawn.name in models:
            continue
        model_path = models_dir / spawn.name
        if model_path.is_file():
            with logger.context(spawn.name):
                models[spawn.name] = attempt(WorldModel.parse, model_path.read_bytes(), model_path)
    loaded, diag = diagnose(tile, models, index)
    print(f'  {diag.summary()}')
    for name in diag.missing_models:
        print(f'  missing: {name}')
    for error in diag.parse_errors:
        print(f'  error: {error}')


def dump_index(path: Path, data: bytes) -> None:
    """Display a tile index."""
    index = VmTileIndex.parse(data)
    print(f'{path}: tile index {index.magic!r}, {len(index.node_indices)} entries')
    print('  ' + ', '.join(map(str, index.node_indices)))


def dump_model(path: Path, data: bytes, strict: bool) -> None:
    """Display a world model."""
    model = WorldModel.parse(data, strict=strict)
    kind = 'M2' if model.is_m2 else 'WMO'
    print(
        f'{path}: {kind} model #{model.root_id}, {len(model.groups)} groups, '
        f'{model.vertex_count:,} vertices, {model.triangle_count:,} triangles'
    )
    for i, group in enumerate(model.groups):
        print(
            f'  [{i}] group #{group.group_id} flags={group.group_flags:08x} '
            f'{len(group.vertices)} verts, {len(group.indices)} tris, bound=({group.bound})'
        )


def dump_map(path: Path, data: bytes) -> None:
    """Display a terrain map."""
    grid = TerrainGrid.parse(data)
    print(f'{path}: map build {grid.header.build}')
    if grid.height_header is not None:
        print(f'  height flags: {grid.height_header.flags!r}')
    print(f'  height range: {grid.grid_height:g} - {grid.grid_max_height:g}')
    if grid.corner_heights is not None:
        print(f'  sampled range: {min(grid.corner_heights):g} - {max(grid.corner_heights):g}')
    if grid.holes is not None:
        holes = sum(grid.is_hole(row, col) for row in range(128) for col in range(128))
        print(f'  {holes} hole cells')
    else:
        print('  no holes')


def main(args: List[str]) -> int:
    """Main script."""
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "-f", "--format",
        help="the file type, instead of guessing from the extension.",
        choices=FORMATS,
    )
    parser.add_argument(
        "-m", "--models",
        help="for tile files, the folder containing model files to load and check.",
        type=Path,
    )
    parser.add_argument(
        "-s", "--strict",
        help="for model files, check declared chunk sizes match the contents.",
        action='store_true',
    )
    parser.add_argument(
        "--log",
        help="also write logs to this file.",
        type=Path,
    )
    parser.add_argument(
        "files",
        help="the files to display.",
        nargs='+',
        type=Path,
    )
    result = parser.parse_args(args)
    logger.init_logging(result.log)

    dumpers: Dict[str, Callable[[Path, bytes], None]] = {
        'vmtile': lambda path, data: dump_tile(path, data, result.models),
        'vmtileidx': dump_index,
        'vmo': lambda path, data: dump_model(path, data, result.strict),
        'map': dump_map,
    }

    failed = False
    for path in result.files:
        fmt = result.format or guess_format(path)
        if fmt is None:
            LOGGER.error('Unknown file type for "{}", pass --format.', path)
            failed = True
            continue
        try:
            data = path.read_bytes()
        except OSError as exc:
            LOGGER.error('Could not read "{}": {}', path, exc)
            failed = True
            continue
        try:
            with logger.context(path.name), DecodeError.apply_filename(path):
                dumpers[fmt](path, data)
        except DecodeError as exc:
            LOGGER.error('Failed to parse {}:\n{}', fmt, exc)
            failed = True
    return 1 if failed else 0


def run() -> None:
    """Entry point for the console script."""
    sys.exit(main(sys.argv[1:]))


if __name__ == '__main__':
    run()

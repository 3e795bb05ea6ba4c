"""Correlate a tile's spawns with the world models they reference, and summarise the result.

This does no file access, the caller supplies decode results for each model file it found.
"""
from typing import Dict, List, Mapping, Optional, Set, Tuple

import attrs

from vmaptools import logger
from vmaptools.errors import DecodeResult
from vmaptools.vmo import WorldModel
from vmaptools.vmtile import ModelSpawn, VmTile
from vmaptools.vmtileidx import VmTileIndex


__all__ = ['LoadedModel', 'TileDiagnostics', 'check_tile_index', 'model_key', 'diagnose']
LOGGER = logger.get_logger(__name__)


def model_key(name: str) -> str:
    """Normalise a spawn or model filename for lookup.

    Spawn names are case-insensitive, and may use either kind of slash.
    """
    return name.replace('\\', '/').casefold()


def check_tile_index(tile: VmTile, index: VmTileIndex) -> bool:
    """Check the tile index has one entry for each spawn in the tile."""
    return len(index.node_indices) == len(tile.spawns)


@attrs.frozen
class LoadedModel:
    """A spawn, along with the model it references if that could be loaded."""
    spawn: ModelSpawn
    model: Optional[WorldModel] = None
    error: Optional[str] = None


@attrs.define
class TileDiagnostics:
    """Counts describing how much of a tile was loaded."""
    total_spawns: int = 0
    loaded_models: int = 0
    missing_models: List[str] = attrs.Factory(list)
    total_triangles: int = 0
    total_vertices: int = 0
    parse_errors: List[str] = attrs.Factory(list)

    def summary(self) -> str:
        """Produce a one-line description."""
        return (
            f'{self.loaded_models}/{self.total_spawns} models loaded, '
            f'{self.total_vertices:,} vertices, {self.total_triangles:,} triangles, '
            f'{len(self.missing_models)} missing, {len(self.parse_errors)} errors'
        )


def diagnose(
    tile: VmTile,
    models: Mapping[str, DecodeResult[WorldModel]],
    index: Optional[VmTileIndex] = None,
) -> Tuple[List[LoadedModel], TileDiagnostics]:
    """Match each spawn to its model, and count what was loaded.

    :param tile: The parsed tile spawn file.
    :param models: Decode results for the available model files, keyed by filename. Keys are
        compared using :py:func:`model_key`.
    :param index: If provided, the tile index is checked to have a matching spawn count.
    """
    lookup: Dict[str, DecodeResult[WorldModel]] = {
        model_key(name): result
        for name, result in models.items()
    }
    diag = TileDiagnostics(total_spawns=len(tile.spawns))
    loaded: List[LoadedModel] = []
    missing_keys: Set[str] = set()

    if index is not None and not check_tile_index(tile, index):
        message = (
            f'Tile index has {len(index.node_indices)} entries, '
            f'but the tile has {len(tile.spawns)} spawns'
        )
        LOGGER.warning(message)
        diag.parse_errors.append(message)

    for spawn in tile.spawns:
        key = model_key(spawn.name)
        try:
            result = lookup[key]
        except KeyError:
            # Report each model once, under the first spelling seen.
            if key not in missing_keys:
                missing_keys.add(key)
                diag.missing_models.append(spawn.name)
            loaded.append(LoadedModel(spawn, error=f'Model "{spawn.name}" not found'))
            continue
        if result.data is not None:
            model = result.data
            diag.loaded_models += 1
            diag.total_vertices += model.vertex_count
            diag.total_triangles += model.triangle_count
            loaded.append(LoadedModel(spawn, model))
        else:
            message = f'{spawn.name}: {result.error}'
            if message not in diag.parse_errors:
                diag.parse_errors.append(message)
            loaded.append(LoadedModel(spawn, error=result.error))

    LOGGER.debug('Tile diagnostics: {}', diag.summary())
    return loaded, diag

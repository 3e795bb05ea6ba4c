"""Readers for the vmap collision files: tile spawns, world models and terrain maps.

Each format is exposed as a class with a ``parse()`` classmethod, taking the complete file
contents as :external:py:class:`bytes`.
"""
from typing import Union
from typing_extensions import TypeAlias
import importlib.metadata as _metadata
import os as _os


__version__: str
try:
    __version__ = _metadata.version('vmaptools')
except _metadata.PackageNotFoundError:  # Running from a source checkout.
    __version__ = '<unknown>'

__all__ = [
    '__version__',
    'StringPath',
    'Vec3', 'AABox',
    'DecodeError', 'DecodeResult', 'attempt',
    'ModelSpawn', 'VmTile', 'VmTileIndex',
    'GroupModel', 'WorldModel',
    'TerrainGrid', 'is_hole',

    # Submodules:
    'binformat', 'const', 'diagnostics', 'errors', 'logger',  # pyright: ignore
    'mapfile', 'math', 'vmo', 'vmtile', 'vmtileidx',  # pyright: ignore
]

StringPath: TypeAlias = Union[str, '_os.PathLike[str]']


# Import these, so people can reference 'vmaptools.VmTile' instead of 'vmaptools.vmtile.VmTile'.
# Should be done after the definitions above, since submodules import them.
# isort: off
from vmaptools.math import Vec3, AABox
from vmaptools.errors import DecodeError, DecodeResult, attempt
from vmaptools.vmtile import ModelSpawn, VmTile
from vmaptools.vmtileidx import VmTileIndex
from vmaptools.vmo import GroupModel, WorldModel
from vmaptools.mapfile import TerrainGrid, is_hole

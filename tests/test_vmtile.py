"""Test parsing tile spawn and tile index files."""
from struct import pack

import pytest

from helpers import SPAWN_FIXED_SIZE, build_index, build_spawn, build_tile, magic8
from vmaptools.binformat import ByteReader
from vmaptools.const import SpawnFlags
from vmaptools.errors import BadMagic, UnexpectedEndOfData
from vmaptools.math import AABox, Vec3
from vmaptools.vmtile import ModelSpawn, VmTile
from vmaptools.vmtileidx import VmTileIndex


def test_parse_basic() -> None:
    """Parse a tile with a bounded and unbounded spawn."""
    data = build_tile([
        build_spawn(
            'World/wmo/Building.wmo.vmo',
            flags=0b011, adt_id=3, spawn_id=1234,
            position=(100.0, 200.0, 300.0),
            rotation=(0.0, 90.0, 0.0),
            scale=1.5,
            bound=((-1.0, -2.0, -3.0), (4.0, 5.0, 6.0)),
        ),
        build_spawn(
            'World/Doodad.m2.vmo',
            flags=0b100, adt_id=4, spawn_id=5678,
            position=(1.0, 2.0, 3.0),
            scale=0.5,
        ),
    ])
    tile = VmTile.parse(data)
    assert tile.magic == 'VMAP_4.E'
    assert len(tile.spawns) == 2
    first, second = tile.spawns
    assert first == ModelSpawn(
        flags=SpawnFlags.HAS_BOUND | SpawnFlags.PARENT_SPAWN,
        adt_id=3,
        id=1234,
        position=Vec3(100.0, 200.0, 300.0),
        rotation=Vec3(0.0, 90.0, 0.0),
        scale=1.5,
        bound=AABox(Vec3(-1.0, -2.0, -3.0), Vec3(4.0, 5.0, 6.0)),
        name='World/wmo/Building.wmo.vmo',
    )
    assert first.has_bound
    assert first.is_parent_spawn
    assert not first.is_path_only

    assert second.bound is None
    assert not second.has_bound
    assert not second.is_parent_spawn
    assert second.is_path_only
    assert second.name == 'World/Doodad.m2.vmo'
    assert second.id == 5678


def test_no_bound_size() -> None:
    """Without the bound flag, no bounding box is read."""
    name = 'model.vmo'
    record = build_spawn(name, flags=0)
    assert len(record) == SPAWN_FIXED_SIZE + len(name)
    reader = ByteReader(record + b'trailing')
    spawn = ModelSpawn.read(reader)
    assert spawn.bound is None
    assert reader.position == SPAWN_FIXED_SIZE + len(name)


def test_bound_size() -> None:
    """With the bound flag, 24 more bytes are read."""
    record = build_spawn('a', flags=1, bound=((1.0, 1.0, 1.0), (2.0, 2.0, 2.0)))
    reader = ByteReader(record)
    spawn = ModelSpawn.read(reader)
    assert spawn.bound == AABox(Vec3(1.0, 1.0, 1.0), Vec3(2.0, 2.0, 2.0))
    assert reader.position == SPAWN_FIXED_SIZE + 24 + 1


def test_degenerate_bound() -> None:
    """Inverted boxes are passed through unchanged."""
    tile = VmTile.parse(build_tile([
        build_spawn('a', flags=1, bound=((5.0, 5.0, 5.0), (-5.0, -5.0, -5.0))),
    ]))
    bound = tile.spawns[0].bound
    assert bound is not None
    assert bound.low == Vec3(5.0, 5.0, 5.0)
    assert not bound.is_valid()


def test_unknown_flags() -> None:
    """Unknown flag bits are preserved."""
    tile = VmTile.parse(build_tile([build_spawn('a', flags=0x84)]))
    spawn = tile.spawns[0]
    assert spawn.flags.value == 0x84
    assert spawn.is_path_only
    assert not spawn.has_bound


def test_deterministic() -> None:
    """Parsing the same data twice gives equal results, different data gives different results."""
    data = build_tile([build_spawn('a', spawn_id=1), build_spawn('b', spawn_id=2)])
    assert VmTile.parse(data) == VmTile.parse(data)
    other = build_tile([build_spawn('a', spawn_id=1), build_spawn('c', spawn_id=2)])
    assert VmTile.parse(data) != VmTile.parse(other)


def test_order_preserved() -> None:
    """Spawns are kept in file order."""
    names = [f'model_{i}.vmo' for i in range(10)]
    tile = VmTile.parse(build_tile([build_spawn(name, spawn_id=i) for i, name in enumerate(names)]))
    assert [spawn.name for spawn in tile.spawns] == names
    assert [spawn.id for spawn in tile.spawns] == list(range(10))


def test_empty_tile() -> None:
    """A tile may have no spawns."""
    assert VmTile.parse(build_tile([])).spawns == ()


@pytest.mark.parametrize('magic', ['VMAP_4.D', 'VMAP_4.E'])
def test_accepted_magics(magic: str) -> None:
    """All accepted versions parse the same way."""
    spawns = [build_spawn('a', flags=1), build_spawn('b', scale=2.0)]
    tile = VmTile.parse(build_tile(spawns, magic=magic))
    assert tile.magic == magic
    assert tile.spawns == VmTile.parse(build_tile(spawns)).spawns


@pytest.mark.parametrize('magic', ['VMAP_4.C', 'VMAP_3.0', 'MAPS', 'VMAP_4.F'])
def test_bad_magic(magic: str) -> None:
    """Other versions are rejected."""
    with pytest.raises(BadMagic, match='Invalid vmtile magic'):
        VmTile.parse(build_tile([], magic=magic))


def test_truncated_name() -> None:
    """Truncating the last name fails, instead of giving a short string."""
    data = build_tile([build_spawn('first'), build_spawn('second')])
    with pytest.raises(UnexpectedEndOfData) as exc_info:
        VmTile.parse(data[:-1])
    assert exc_info.value.path == ['spawn 1']
    assert str(exc_info.value).startswith('spawn 1: Unexpected end of data')


def test_truncated_count() -> None:
    """More spawns declared than present fails."""
    data = magic8('VMAP_4.E') + pack('<I', 3) + build_spawn('only')
    with pytest.raises(UnexpectedEndOfData, match='^spawn 1: '):
        VmTile.parse(data)


def test_parse_index() -> None:
    """Parse a tile index file."""
    index = VmTileIndex.parse(build_index([5, 0, 12, 7]))
    assert index.magic == 'VMAP_4.E'
    assert index.node_indices == (5, 0, 12, 7)

    assert VmTileIndex.parse(build_index([], magic='VMAP_4.D')).node_indices == ()


def test_index_errors() -> None:
    """Test the tile index only fails on bad magic or truncation."""
    with pytest.raises(BadMagic, match='Invalid vmtileidx magic'):
        VmTileIndex.parse(build_index([1, 2], magic='VMAP_9.9'))
    with pytest.raises(UnexpectedEndOfData):
        VmTileIndex.parse(build_index([1, 2, 3])[:-2])
    # Extra data is ignored.
    assert VmTileIndex.parse(build_index([1]) + b'junk').node_indices == (1,)


def test_frozen() -> None:
    """Parsed files can't be modified, and can be hashed."""
    tile = VmTile.parse(build_tile([build_spawn('a', flags=1), build_spawn('b')]))
    assert isinstance(tile.spawns, tuple)
    assert hash(tile) == hash(VmTile.parse(build_tile([build_spawn('a', flags=1), build_spawn('b')])))
    index = VmTileIndex.parse(build_index([1, 2]))
    assert isinstance(index.node_indices, tuple)
    assert {index, tile}

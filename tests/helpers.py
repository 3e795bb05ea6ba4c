"""Helpers for building synthetic files to parse."""
from typing import Iterable, Optional, Sequence, Tuple
from struct import pack

from vmaptools.const import MAP_VERSION, VMAP_MAGIC


__all__ = [
    'magic8', 'build_spawn', 'build_tile', 'build_index',
    'build_bih', 'build_group', 'build_empty_group', 'build_model',
    'build_map', 'build_height_section',
    'SPAWN_FIXED_SIZE',
]

Triple = Tuple[float, float, float]
# flags, adt ID, ID, position, rotation, scale, name length.
SPAWN_FIXED_SIZE = 1 + 1 + 4 + 12 + 12 + 4 + 4


def magic8(text: str) -> bytes:
    """Pad a magic string to 8 bytes with nulls."""
    data = text.encode('ascii')
    assert len(data) <= 8
    return data.ljust(8, b'\0')


def build_spawn(
    name: str,
    *,
    flags: int = 0,
    adt_id: int = 0,
    spawn_id: int = 0,
    position: Triple = (0.0, 0.0, 0.0),
    rotation: Triple = (0.0, 0.0, 0.0),
    scale: float = 1.0,
    bound: Optional[Tuple[Triple, Triple]] = None,
) -> bytes:
    """Build a single spawn record. The bound is written only if the flag bit is set."""
    data = pack('<BBI3f3ff', flags, adt_id, spawn_id, *position, *rotation, scale)
    if flags & 1:
        low, high = bound if bound is not None else ((0.0, 0.0, 0.0), (0.0, 0.0, 0.0))
        data += pack('<6f', *low, *high)
    encoded = name.encode('utf8')
    return data + pack('<I', len(encoded)) + encoded


def build_tile(spawns: Sequence[bytes], magic: str = VMAP_MAGIC) -> bytes:
    """Build a tile spawn file from spawn records."""
    return magic8(magic) + pack('<I', len(spawns)) + b''.join(spawns)


def build_index(indices: Sequence[int], magic: str = VMAP_MAGIC) -> bytes:
    """Build a tile index file."""
    return magic8(magic) + pack(f'<I{len(indices)}I', len(indices), *indices)


def build_bih(tree: Sequence[int] = (), objects: Sequence[int] = ()) -> bytes:
    """Build a BIH tree, without the tag."""
    return (
        pack('<6f', -1.0, -1.0, -1.0, 1.0, 1.0, 1.0)
        + pack(f'<I{len(tree)}I', len(tree), *tree)
        + pack(f'<I{len(objects)}I', len(objects), *objects)
    )


def build_group(
    vertices: Sequence[Triple],
    triangles: Sequence[Tuple[int, int, int]],
    *,
    flags: int = 0,
    group_id: int = 0,
    bih: Optional[bytes] = None,
    liquid: bytes = b'',
    vert_size: Optional[int] = None,
    tri_size: Optional[int] = None,
) -> bytes:
    """Build a group with geometry, including the BIH and liquid chunks."""
    if bih is None:
        bih = build_bih()
    flat_verts = [axis for vert in vertices for axis in vert]
    flat_tris = [ind for tri in triangles for ind in tri]
    if vert_size is None:
        vert_size = 4 + 12 * len(vertices)
    if tri_size is None:
        tri_size = 4 + 12 * len(triangles)
    return (
        pack('<6fII', -1.0, -2.0, -3.0, 1.0, 2.0, 3.0, flags, group_id)
        + b'VERT' + pack(f'<II{len(flat_verts)}f', vert_size, len(vertices), *flat_verts)
        + b'TRIM' + pack(f'<II{len(flat_tris)}I', tri_size, len(triangles), *flat_tris)
        + b'MBIH' + bih
        + b'LIQU' + pack('<I', len(liquid)) + liquid
    )


def build_empty_group(group_id: int = 0, trailing: bytes = b'') -> bytes:
    """Build a group with no vertices, which ends right after the count."""
    return (
        pack('<6fII', 0.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0, group_id)
        + b'VERT' + pack('<II', 4, 0)
        + trailing
    )


def build_model(
    groups: Optional[Iterable[bytes]],
    *,
    flags: int = 0,
    root_id: int = 0,
    gbih: Optional[bytes] = None,
    magic: str = VMAP_MAGIC,
) -> bytes:
    """Build a world model file. If groups is None, the GMOD chunk is left out."""
    data = magic8(magic) + b'WMOD' + pack('<III', 8, flags, root_id)
    if groups is None:
        return data
    group_list = list(groups)
    data += b'GMOD' + pack('<I', len(group_list)) + b''.join(group_list)
    if gbih is not None:
        data += b'GBIH' + gbih
    return data


def build_height_section(
    flags: int,
    grid_height: float,
    grid_max_height: float,
    corners: Sequence[float] = (),
    cells: Sequence[float] = (),
) -> bytes:
    """Build the MHGT section. The samples are packed according to the flags."""
    data = b'MHGT' + pack('<Iff', flags, grid_height, grid_max_height)
    if flags & 1:
        return data
    if flags & 4:
        fmt = 'B'
    elif flags & 2:
        fmt = 'H'
    else:
        fmt = 'f'
    return data + pack(f'<{len(corners)}{fmt}', *corners) + pack(f'<{len(cells)}{fmt}', *cells)


def build_map(
    height: Optional[bytes] = None,
    holes: Optional[bytes] = None,
    *,
    magic: bytes = b'MAPS',
    version: int = MAP_VERSION,
    build: int = 12340,
) -> bytes:
    """Build a terrain map file, with the sections placed after the header."""
    header_size = 4 + 4 * 10
    offset = header_size
    height_offset = height_size = holes_offset = holes_size = 0
    body = b''
    if height is not None:
        height_offset, height_size = offset, len(height)
        body += height
        offset += len(height)
    if holes is not None:
        holes_offset, holes_size = offset, len(holes)
        body += holes
    header = magic + pack(
        '<10I',
        version, build,
        0, 0,  # Area
        height_offset, height_size,
        0, 0,  # Liquid
        holes_offset, holes_size,
    )
    assert len(header) == header_size
    return header + body

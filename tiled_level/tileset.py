"""
Tilesets: inline or external, resolved against the level that uses them

=============================================================================
EMBEDDED vs EXTERNAL TILESETS
=============================================================================

EMBEDDED: The whole tileset is written inside the level file

    "tilesets": [{"firstgid": 1, "name": "terrain", "image": "terrain.png",
                  "tilecount": 64, ...}]

EXTERNAL: The level only holds a reference, the data is in its own file

    "tilesets": [{"firstgid": 1, "source": "terrain.json"}]

    terrain.json:
        {"name": "terrain", "image": "terrain.png", "tilecount": 64, ...}

The same external tileset can be used by many levels, each at a
different firstgid. So firstgid belongs to the REFERENCE and is always
taken from the level, never from the tileset file.

=============================================================================
IMAGE PATHS
=============================================================================

Tiled writes the image path relative to the file it is written in:

    levels/map.json          "source": "../tilesets/terrain.json"
    tilesets/terrain.json    "image": "terrain.png"
                             -> levels/../tilesets/terrain.png

After loading, Tileset.image is already joined with the directory of the
file that mentioned it (the tileset file for external tilesets, the level
file for embedded ones), so callers can open it directly.

=============================================================================
SPRITESHEET LAYOUT
=============================================================================

margin = pixels around the EDGE of the entire image
spacing = pixels BETWEEN tiles

    +--+===+===+===+--+
    |  | 0 | 1 | 2 |  |  <- margin
    +--+===+===+===+--+
    |  | 3 | 4 | 5 |  |
    +--+===+===+===+--+

    tile_x = margin + col * (tilewidth + spacing)
    tile_y = margin + row * (tileheight + spacing)

=============================================================================
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple, Union

from .errors import LoadError, MalformedError, MissingFieldError
from .ids import U32_MAX, GlobalTile, LocalTile
from .values import (
    EMPTY_MAP,
    decode_int,
    decode_local_tile,
    decode_properties,
    decode_sparse_map,
    expect_array,
    expect_object,
    frozen_map,
    get_field,
    get_properties,
    get_str,
    get_u32,
    read_json,
)

logger = logging.getLogger(__name__)

TerrainCorners = Tuple[int, int, int, int]


# =============================================================================
# TERRAIN
# =============================================================================

@dataclass(frozen=True)
class Terrain:
    """Terrain type. tile is the tile shown for it in the editor."""
    name: str
    tile: LocalTile

    @classmethod
    def from_json(cls, value: Any) -> 'Terrain':
        data = expect_object(value, 'terrain')
        return cls(name=get_str(data, 'name'), tile=get_field(data, 'tile', decode_local_tile))


def decode_terrain_corners(value: Any, field: str = 'terrain') -> TerrainCorners:
    """
    Decode the four corner terrains of a tile.

    Order is top-left, top-right, bottom-left, bottom-right. Each entry is
    an index into Tileset.terrains, -1 when that corner has no terrain.
    """
    corners = expect_array(value, field)
    if len(corners) != 4:
        raise MalformedError(f"'{field}' must have 4 corners, got {len(corners)}", field=field)
    a, b, c, d = (decode_int(corner, field) for corner in corners)
    return (a, b, c, d)


def decode_tile_terrain(value: Any, field: str = 'tiles') -> TerrainCorners:
    data = expect_object(value, 'tile terrain entry', field)
    return get_field(data, 'terrain', decode_terrain_corners)


def _decode_terrains(data: Dict[str, Any]) -> Tuple[Terrain, ...]:
    terrains = []
    for i, raw in enumerate(get_field(data, 'terrains', expect_array, [])):
        try:
            terrains.append(Terrain.from_json(raw))
        except MalformedError as e:
            raise e.add_context(f"terrains[{i}]")
    return tuple(terrains)


def _decode_tile_records(data: Dict[str, Any]) -> Tuple[Dict[LocalTile, Dict[str, str]],
                                                        Dict[LocalTile, TerrainCorners]]:
    """
    Per-tile properties and terrain corners.

    Older Tiled writes two sparse maps, 'tileproperties' and 'tiles'. Newer
    Tiled writes 'tiles' as a list of {"id", "terrain", "properties"}
    records instead. Both end up in the same pair of dicts.
    """
    tileproperties = decode_sparse_map(data.get('tileproperties'), decode_properties, 'tileproperties')

    raw_tiles = data.get('tiles')
    if not isinstance(raw_tiles, list):
        return tileproperties, decode_sparse_map(raw_tiles, decode_tile_terrain, 'tiles')

    tiles: Dict[LocalTile, TerrainCorners] = {}
    for i, raw in enumerate(raw_tiles):
        try:
            entry = expect_object(raw, 'tile', 'tiles')
            tile = LocalTile(get_u32(entry, 'id'))
            if 'terrain' in entry:
                tiles[tile] = decode_terrain_corners(entry['terrain'])
            if 'properties' in entry:
                tileproperties[tile] = {**tileproperties.get(tile, {}), **get_properties(entry)}
        except MalformedError as e:
            raise e.add_context(f"tiles[{i}]")

    return tileproperties, tiles


# =============================================================================
# TILESET CLASS
# =============================================================================

@dataclass(frozen=True)
class Tileset:
    """
    Tileset - a spritesheet image cut into a grid of tiles.

    GIDs firstgid .. firstgid + tilecount - 1 belong to this tileset.
    """
    name: str
    firstgid: GlobalTile                    # From the level, never the tileset file
    tilecount: int
    tileheight: int
    tilewidth: int
    columns: int                            # Tiles per image row
    image: Path                             # Already relative to the right directory
    imageheight: int
    imagewidth: int
    margin: int
    spacing: int
    properties: Mapping[str, str] = field(default_factory=dict)
    terrains: Tuple[Terrain, ...] = ()
    tileproperties: Mapping[LocalTile, Mapping[str, str]] = field(default_factory=dict)
    tiles: Mapping[LocalTile, TerrainCorners] = field(default_factory=dict)
    source: Optional[Path] = None           # External file, None if embedded

    def __post_init__(self):
        object.__setattr__(self, 'properties', frozen_map(self.properties))
        object.__setattr__(self, 'tileproperties', frozen_map(
            {tile: frozen_map(props) for tile, props in self.tileproperties.items()}))
        object.__setattr__(self, 'tiles', frozen_map(self.tiles))

    @classmethod
    def from_json(cls, data: Dict[str, Any], firstgid: GlobalTile, base_dir: Path,
                  source: Optional[Path] = None) -> 'Tileset':
        """
        Build a tileset from its JSON object.

        Parameters:
        -----------
        data : dict
            Tileset object. Any firstgid in it is ignored.
        firstgid : GlobalTile
            First Global ID, supplied by the referencing level
        base_dir : Path
            Directory of the file data was read from. The image path is
            joined onto it.
        source : Path, optional
            The external tileset file, if there is one
        """
        tileproperties, tiles = _decode_tile_records(data)

        return cls(
            name=get_str(data, 'name'),
            firstgid=firstgid,
            tilecount=get_u32(data, 'tilecount'),
            tileheight=get_u32(data, 'tileheight'),
            tilewidth=get_u32(data, 'tilewidth'),
            columns=get_u32(data, 'columns'),
            image=base_dir / get_str(data, 'image'),
            imageheight=get_u32(data, 'imageheight'),
            imagewidth=get_u32(data, 'imagewidth'),
            margin=get_u32(data, 'margin'),
            spacing=get_u32(data, 'spacing'),
            properties=get_properties(data),
            terrains=_decode_terrains(data),
            tileproperties=tileproperties,
            tiles=tiles,
            source=source,
        )

    @classmethod
    def from_file(cls, path: Union[str, Path], firstgid: GlobalTile,
                  encoding: str = 'utf-8') -> 'Tileset':
        """Load an external tileset file, placing it at firstgid."""
        path = Path(path)
        try:
            data = expect_object(read_json(path, encoding), 'tileset file')
            if 'firstgid' in data:
                logger.debug("Ignoring firstgid in external tileset %s", path)
            return cls.from_json(data, firstgid, path.parent, source=path)
        except LoadError as e:
            raise e.with_path(path)

    def contains_tile(self, gid: GlobalTile) -> bool:
        """Does gid fall in [firstgid, firstgid + tilecount)?"""
        if gid.value < self.firstgid.value:
            return False
        return gid.value - self.firstgid.value < self.tilecount

    def to_local(self, gid: GlobalTile) -> Optional[LocalTile]:
        if not self.contains_tile(gid):
            return None
        return LocalTile(gid.value - self.firstgid.value)

    def to_global(self, tile: LocalTile) -> GlobalTile:
        return GlobalTile(self.firstgid.value + tile.value)

    def tile_properties(self, tile: LocalTile) -> Mapping[str, str]:
        """Properties of one tile, empty if it has none."""
        return self.tileproperties.get(tile, EMPTY_MAP)

    def tile_rect(self, tile: LocalTile) -> Tuple[int, int, int, int]:
        """
        Pixel rectangle (x, y, width, height) of a tile inside the image.

        Raises ValueError for tiles outside the tileset.
        """
        if tile.value >= self.tilecount:
            raise ValueError(f"{tile!r} is outside tileset '{self.name}' ({self.tilecount} tiles)")
        if self.columns == 0:
            raise ValueError(f"tileset '{self.name}' has no columns")

        row, col = divmod(tile.value, self.columns)
        return (
            self.margin + col * (self.tilewidth + self.spacing),
            self.margin + row * (self.tileheight + self.spacing),
            self.tilewidth,
            self.tileheight,
        )


# =============================================================================
# RESOLVER
# =============================================================================

def _reference_firstgid(data: Dict[str, Any]) -> GlobalTile:
    firstgid = data.get('firstgid')
    if isinstance(firstgid, bool) or not isinstance(firstgid, int) or not 0 <= firstgid <= U32_MAX:
        raise MissingFieldError('firstgid', "tileset reference has no usable 'firstgid'")
    return GlobalTile(firstgid)


def load_tileset(value: Any, level_path: Union[str, Path], encoding: str = 'utf-8') -> Tileset:
    """
    Resolve one entry of a level's "tilesets" array.

    Parameters:
    -----------
    value : Any
        The raw JSON entry, either a full tileset or {"firstgid", "source"}
    level_path : str or Path
        Path of the level file the entry came from
    encoding : str
        Text encoding used to read an external tileset

    Returns:
    --------
    Tileset : with firstgid from the entry and image path resolved

    Raises:
    -------
    LoadError : annotated with the file that was being read
    """
    level_path = Path(level_path)
    base_dir = level_path.parent

    try:
        data = expect_object(value, 'tileset entry')

        if 'source' in data:
            # -----------------------------------------------------------------
            # EXTERNAL TILESET
            # -----------------------------------------------------------------
            source = get_str(data, 'source')
            firstgid = _reference_firstgid(data)
            path = base_dir / source
            logger.debug("Loading external tileset %s at firstgid %d", path, firstgid.value)
            return Tileset.from_file(path, firstgid, encoding)

        # ---------------------------------------------------------------------
        # EMBEDDED TILESET
        # ---------------------------------------------------------------------
        firstgid = GlobalTile(get_u32(data, 'firstgid'))
        return Tileset.from_json(data, firstgid, base_dir)

    except LoadError as e:
        raise e.with_path(level_path)


# =============================================================================
# GID RESOLUTION
# =============================================================================

def resolve(gid: GlobalTile, tilesets: Sequence[Tileset]) -> Optional[Tuple[int, LocalTile]]:
    """
    Find which tileset owns a GID.

    Scans tilesets in order and returns (index, local id) for the FIRST one
    whose range contains gid, or None if none does.

    =======================================================================
    ALGORITHM
    =======================================================================

        Tileset 0: firstgid=1,   tilecount=100
        Tileset 1: firstgid=101, tilecount=50

        GID 50:  1 <= 50 < 101      -> (0, LocalTile(49))
        GID 120: 101 <= 120 < 151   -> (1, LocalTile(19))
        GID 151: in no range        -> None
        GID 0:   in no range        -> None (empty cell)

    First match, not best match: with overlapping ranges the earlier
    tileset wins. Flip flags are not stripped, use gid.without_flags()
    first for flipped tiles.
    """
    for i, tileset in enumerate(tilesets):
        if tileset.contains_tile(gid):
            return i, LocalTile(gid.value - tileset.firstgid.value)
    return None

"""
Level - the root object of a Tiled JSON map

=============================================================================
LOADING
=============================================================================

    level = load_level("levels/map.json")

    for layer in level.tile_layers():
        for gid in layer.data:
            hit = level.resolve(gid)
            if hit:
                index, local = hit
                tileset = level.tilesets[index]

Loading happens in three steps:

1. Read the file and decode the envelope (size, tile size, orientation,
   render order, properties).
2. Decode every layer (see layer.py). Layers keep file order; it is the
   draw order.
3. Resolve every tileset entry (see tileset.py), reading external
   tileset files as needed. Tilesets keep file order; it decides which
   tileset owns which GIDs.

The first failure aborts the load. There are no partial levels.

=============================================================================
RENDER ORDER
=============================================================================

Determines which corner rendering starts from:
- right-down: Left-to-right, top-to-bottom (most common)
- right-up: Left-to-right, bottom-to-top
- left-down: Right-to-left, top-to-bottom
- left-up: Right-to-left, bottom-to-top

=============================================================================
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Iterator, List, Mapping, Optional, Sequence, Tuple, Union

from .config import DEFAULT_OPTIONS, LoaderOptions
from .errors import LoadError, MalformedError, TilesetRangeError
from .ids import GlobalTile, LocalTile
from .layer import Layer, ObjectLayer, TileLayer, decode_layer
from .tileset import Tileset, load_tileset, resolve
from .values import (
    decode_str,
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


class RenderOrder(Enum):
    RIGHT_DOWN = 'right-down'
    RIGHT_UP = 'right-up'
    LEFT_DOWN = 'left-down'
    LEFT_UP = 'left-up'


def decode_render_order(value: Any, field: str = 'renderorder') -> RenderOrder:
    text = decode_str(value, field)
    try:
        return RenderOrder(text)
    except ValueError:
        choices = ', '.join(order.value for order in RenderOrder)
        raise MalformedError(f"'{field}' must be one of {choices}, got '{text}'", field=field) from None


# =============================================================================
# TILESET ORDERING
# =============================================================================

def check_tileset_ranges(tilesets: Sequence[Tileset]):
    """
    Verify tilesets are in ascending firstgid order with no overlap.

    resolve() relies on this: it returns the FIRST tileset containing a
    GID, which is only the right one if ranges are disjoint.
    """
    for i in range(1, len(tilesets)):
        prev, cur = tilesets[i - 1], tilesets[i]
        prev_end = prev.firstgid.value + prev.tilecount
        if cur.firstgid.value < prev_end:
            raise TilesetRangeError(
                f"tileset {i} '{cur.name}' starts at gid {cur.firstgid.value}, inside or before "
                f"tileset {i - 1} '{prev.name}' (gids {prev.firstgid.value}..{prev_end - 1})",
                field='tilesets',
            )


def _load_tileset_entry(index: int, raw: Any, level_path: Path, encoding: str) -> Tileset:
    try:
        return load_tileset(raw, level_path, encoding)
    except LoadError as e:
        raise e.add_context(f"tilesets[{index}]")


def load_tilesets(entries: List[Any], level_path: Path,
                  options: LoaderOptions = DEFAULT_OPTIONS) -> Tuple[Tileset, ...]:
    """
    Resolve a level's raw tileset entries, keeping their order.

    With options.max_workers > 1 external files are read in parallel. The
    result is still in entry order, and if several entries fail the error
    for the lowest index is the one raised.
    """
    if options.max_workers == 1 or len(entries) < 2:
        return tuple(_load_tileset_entry(i, raw, level_path, options.encoding)
                     for i, raw in enumerate(entries))

    with ThreadPoolExecutor(max_workers=options.max_workers) as pool:
        futures = [pool.submit(_load_tileset_entry, i, raw, level_path, options.encoding)
                   for i, raw in enumerate(entries)]
        return tuple(future.result() for future in futures)


# =============================================================================
# LEVEL CLASS
# =============================================================================

@dataclass(frozen=True)
class Level:
    """
    Complete Tiled level.

    Immutable once loaded. layers and tilesets are tuples in file order.
    """
    height: int                                      # Map height in tiles
    width: int                                       # Map width in tiles
    tileheight: int                                  # Tile height in pixels
    tilewidth: int                                   # Tile width in pixels
    orientation: str
    renderorder: RenderOrder
    properties: Mapping[str, str] = field(default_factory=dict)
    layers: Tuple[Layer, ...] = ()
    tilesets: Tuple[Tileset, ...] = ()
    path: Optional[Path] = None                      # File the level came from

    def __post_init__(self):
        object.__setattr__(self, 'properties', frozen_map(self.properties))

    @classmethod
    def from_json(cls, value: Any, path: Union[str, Path],
                  options: Optional[LoaderOptions] = None) -> 'Level':
        """
        Build a level from already-parsed JSON.

        path is the level file location; external tilesets and image
        paths are resolved relative to its directory.
        """
        options = options or DEFAULT_OPTIONS
        path = Path(path)

        try:
            data = expect_object(value, 'level')

            # -----------------------------------------------------------------
            # ENVELOPE
            # -----------------------------------------------------------------
            envelope = dict(
                height=get_u32(data, 'height'),
                width=get_u32(data, 'width'),
                tileheight=get_u32(data, 'tileheight'),
                tilewidth=get_u32(data, 'tilewidth'),
                orientation=get_str(data, 'orientation'),
                renderorder=get_field(data, 'renderorder', decode_render_order),
                properties=get_properties(data),
            )

            # -----------------------------------------------------------------
            # LAYERS
            # -----------------------------------------------------------------
            layers = []
            for i, raw in enumerate(get_field(data, 'layers', expect_array, [])):
                try:
                    layers.append(decode_layer(raw))
                except LoadError as e:
                    raise e.add_context(f"layers[{i}]")

            # -----------------------------------------------------------------
            # TILESETS
            # -----------------------------------------------------------------
            tilesets = load_tilesets(get_field(data, 'tilesets', expect_array, []), path, options)
            if options.check_ranges:
                check_tileset_ranges(tilesets)

        except LoadError as e:
            raise e.with_path(path)

        logger.debug("Loaded %s: %dx%d, %d layers, %d tilesets",
                     path, envelope['width'], envelope['height'], len(layers), len(tilesets))

        return cls(layers=tuple(layers), tilesets=tilesets, path=path, **envelope)

    # -------------------------------------------------------------------------
    # QUERIES
    # -------------------------------------------------------------------------

    @property
    def pixel_width(self) -> int:
        return self.width * self.tilewidth

    @property
    def pixel_height(self) -> int:
        return self.height * self.tileheight

    def resolve(self, gid: GlobalTile) -> Optional[Tuple[int, LocalTile]]:
        """(tileset index, local id) for gid, or None. See tileset.resolve."""
        return resolve(gid, self.tilesets)

    def tileset_for(self, gid: GlobalTile) -> Optional[Tuple[Tileset, LocalTile]]:
        """Like resolve() but returns the Tileset itself."""
        hit = self.resolve(gid)
        if hit is None:
            return None
        index, local = hit
        return self.tilesets[index], local

    def layer_by_name(self, name: str) -> Optional[Layer]:
        for layer in self.layers:
            if layer.name == name:
                return layer
        return None

    def tile_layers(self) -> Iterator[TileLayer]:
        return (layer for layer in self.layers if isinstance(layer, TileLayer))

    def object_layers(self) -> Iterator[ObjectLayer]:
        return (layer for layer in self.layers if isinstance(layer, ObjectLayer))


def load_level(path: Union[str, Path], options: Optional[LoaderOptions] = None) -> Level:
    """
    Load a Tiled JSON level from disk.

    Parameters:
    -----------
    path : str or Path
        Path to the level .json / .tmj file
    options : LoaderOptions, optional
        Loader settings, defaults to LoaderOptions()

    Returns:
    --------
    Level : fully resolved level, tilesets included

    Raises:
    -------
    ReadError : level or tileset file cannot be read
    MalformedError : (and subclasses) a file does not match the format
    TilesetRangeError : tileset gid ranges overlap (with check_ranges)
    """
    options = options or DEFAULT_OPTIONS
    path = Path(path)
    logger.debug("Loading level %s", path)
    return Level.from_json(read_json(path, options.encoding), path, options)

"""
Layers and map objects

=============================================================================
LAYER KINDS
=============================================================================

A level is a stack of layers, drawn bottom to top. Every layer object in
the JSON carries a "type" field that says what the rest of it looks like:

    "tilelayer"    -> TileLayer:   a grid of GIDs, one per cell
    "objectgroup"  -> ObjectLayer: a list of free-positioned objects

    {"type": "tilelayer", "name": "Ground", "width": 3, "height": 2,
     "data": [1, 2, 0,
              4, 5, 6], ...}

We read "type" first and only then decode the rest with the matching
class. Any other value (including Tiled's "imagelayer" and "group") is an
UnknownVariantError rather than something silently dropped.

=============================================================================
TILE DATA ENCODINGS
=============================================================================

Tiled can write tile layer data as:

- A plain array of GIDs (default)
- A base64 string of little-endian uint32s ("encoding": "base64"),
  optionally compressed with zlib or gzip ("compression": ...)

Both end up as the same tuple of GlobalTile, row-major:

    index = y * width + x

=============================================================================
"""

import base64
import gzip
import zlib
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Mapping, Optional, Tuple, Union

import numpy as np

from .errors import MalformedError, MissingDiscriminatorError, MissingFieldError, UnknownVariantError
from .ids import GlobalTile
from .values import (
    decode_bool,
    decode_float,
    decode_global_tile,
    expect_array,
    expect_object,
    frozen_map,
    get_bool,
    get_field,
    get_float,
    get_optional,
    get_properties,
    get_str,
    get_u32,
    json_type_name,
)


# =============================================================================
# OBJECTS
# =============================================================================

@dataclass(frozen=True)
class Point:
    """Polygon vertex, relative to the owning object's x/y."""
    x: float
    y: float

    @classmethod
    def from_json(cls, value: Any, field: str = 'polygon') -> 'Point':
        data = expect_object(value, 'polygon point', field)
        return cls(x=get_float(data, 'x'), y=get_float(data, 'y'))


def _decode_polygon(value: Any, field: str) -> Tuple[Point, ...]:
    points = []
    for i, raw in enumerate(expect_array(value, field)):
        try:
            points.append(Point.from_json(raw, field))
        except MalformedError as e:
            raise e.add_context(f"{field}[{i}]")
    return tuple(points)


@dataclass(frozen=True)
class MapObject:
    """
    Object in an object layer.

    ==========================================================================
    GEOMETRY
    ==========================================================================

    Every object has a rectangle (x, y, width, height). On top of that the
    source file may mark it as:

        Tile object:  gid is set - draw that tile at the rectangle
        Ellipse:      ellipse is True - the rectangle bounds an ellipse
        Polygon:      polygon holds the vertices, relative to (x, y)

    Tiled only ever writes one of them, but nothing here enforces that.
    Whatever optional fields are present get stored.

    ==========================================================================
    """
    id: int
    name: str
    type: str
    x: float
    y: float
    width: float
    height: float
    rotation: float = 0.0                           # Degrees, clockwise
    visible: bool = True
    gid: Optional[GlobalTile] = None
    ellipse: Optional[bool] = None
    polygon: Optional[Tuple[Point, ...]] = None
    properties: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, 'properties', frozen_map(self.properties))

    @classmethod
    def from_json(cls, value: Any) -> 'MapObject':
        data = expect_object(value, 'object')

        # Tiled 1.9 renamed the object 'type' attribute to 'class'
        if 'type' in data:
            obj_type = get_str(data, 'type')
        elif 'class' in data:
            obj_type = get_str(data, 'class')
        else:
            raise MissingFieldError('type')

        return cls(
            id=get_u32(data, 'id'),
            name=get_str(data, 'name'),
            type=obj_type,
            x=get_float(data, 'x'),
            y=get_float(data, 'y'),
            width=get_float(data, 'width'),
            height=get_float(data, 'height'),
            rotation=get_float(data, 'rotation'),
            visible=get_bool(data, 'visible'),
            gid=get_optional(data, 'gid', decode_global_tile),
            ellipse=get_optional(data, 'ellipse', decode_bool),
            polygon=get_optional(data, 'polygon', _decode_polygon),
            properties=get_properties(data),
        )

    @property
    def is_tile(self) -> bool:
        return self.gid is not None

    @property
    def is_ellipse(self) -> bool:
        return bool(self.ellipse)

    @property
    def is_polygon(self) -> bool:
        return self.polygon is not None


# =============================================================================
# TILE DATA
# =============================================================================

def _decompress(raw: bytes, compression: Optional[str]) -> bytes:
    if not compression:
        return raw
    if compression == 'zlib':
        return zlib.decompress(raw)
    if compression == 'gzip':
        return gzip.decompress(raw)
    raise MalformedError(f"unsupported tile data compression '{compression}'", field='compression')


def decode_tile_data(data: Dict[str, Any]) -> Tuple[GlobalTile, ...]:
    """Read the 'data' field of a tile layer in any supported encoding."""
    if 'data' not in data:
        # Infinite maps store 'chunks' instead, which we do not load
        raise MissingFieldError('data')

    raw = data['data']
    encoding = data.get('encoding', 'csv')

    if encoding == 'csv':
        # 'csv' is what Tiled calls the plain JSON array in .json files
        cells = expect_array(raw, 'data')
        return tuple(decode_global_tile(gid, 'data') for gid in cells)

    if encoding == 'base64':
        if not isinstance(raw, str):
            raise MalformedError(f"base64 'data' must be a string, got {json_type_name(raw)}",
                                 field='data')
        try:
            binary = _decompress(base64.b64decode(raw, validate=True), data.get('compression'))
        except (ValueError, zlib.error, OSError, EOFError) as e:
            # ValueError covers binascii.Error and non-ASCII input
            raise MalformedError(f"cannot decode tile data: {e}", field='data') from e

        if len(binary) % 4:
            raise MalformedError(f"tile data is {len(binary)} bytes, not a multiple of 4", field='data')

        # Little-endian uint32 per cell, regardless of host byte order
        gids = np.frombuffer(binary, dtype='<u4')
        return tuple(GlobalTile(int(gid)) for gid in gids)

    raise MalformedError(f"unsupported tile data encoding '{encoding}'", field='encoding')


# =============================================================================
# LAYERS
# =============================================================================

def _common_fields(data: Dict[str, Any], default_size: Optional[int] = None) -> Dict[str, Any]:
    """Fields shared by every layer kind."""
    if default_size is None:
        width = get_u32(data, 'width')
        height = get_u32(data, 'height')
    else:
        width = get_u32(data, 'width', default_size)
        height = get_u32(data, 'height', default_size)

    return dict(
        name=get_str(data, 'name'),
        opacity=get_float(data, 'opacity'),
        visible=get_bool(data, 'visible'),
        width=width,
        height=height,
        x=get_float(data, 'x'),
        y=get_float(data, 'y'),
        offsetx=get_float(data, 'offsetx', 0.0),
        offsety=get_float(data, 'offsety', 0.0),
        id=get_u32(data, 'id', 0),
        properties=get_properties(data),
    )


@dataclass(frozen=True)
class TileLayer:
    """
    Tile layer - a grid of tile references.

    data holds one GlobalTile per cell in row-major order. GlobalTile(0)
    means the cell is empty.
    """
    name: str
    opacity: float
    visible: bool
    width: int
    height: int
    x: float
    y: float
    data: Tuple[GlobalTile, ...] = ()
    offsetx: float = 0.0
    offsety: float = 0.0
    id: int = 0
    properties: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, 'properties', frozen_map(self.properties))

    kind = 'tilelayer'

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> 'TileLayer':
        common = _common_fields(data)
        cells = decode_tile_data(data)

        expected = common['width'] * common['height']
        if len(cells) != expected:
            raise MalformedError(
                f"'data' has {len(cells)} cells, expected {expected} "
                f"({common['width']}x{common['height']})",
                field='data',
            )

        return cls(data=cells, **common)

    def tile_at(self, x: int, y: int) -> Optional[GlobalTile]:
        """
        Get the GID at tile coordinates.

        Returns None when (x, y) is outside the layer, GlobalTile(0) when
        the cell is inside but empty.
        """
        if 0 <= x < self.width and 0 <= y < self.height:
            return self.data[y * self.width + x]
        return None

    def as_array(self) -> np.ndarray:
        """
        Tile data as a (height, width) uint32 array.

        Index as grid[y, x]. Flip flags are kept in the values.
        """
        grid = np.fromiter((gid.value for gid in self.data), dtype=np.uint32, count=len(self.data))
        return grid.reshape((self.height, self.width))


@dataclass(frozen=True)
class ObjectLayer:
    """
    Object layer - contains vector objects.

    Objects are kept in file order. draworder tells the renderer whether
    that order ("index") or the y coordinate ("topdown") decides overlap.
    """
    name: str
    opacity: float
    visible: bool
    width: int
    height: int
    x: float
    y: float
    draworder: str = 'topdown'
    objects: Tuple[MapObject, ...] = ()
    offsetx: float = 0.0
    offsety: float = 0.0
    id: int = 0
    properties: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, 'properties', frozen_map(self.properties))

    kind = 'objectgroup'

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> 'ObjectLayer':
        # Tiled stopped writing width/height for object groups
        common = _common_fields(data, default_size=0)

        objects = []
        for i, raw in enumerate(get_field(data, 'objects', expect_array)):
            try:
                objects.append(MapObject.from_json(raw))
            except MalformedError as e:
                raise e.add_context(f"objects[{i}]")

        return cls(draworder=get_str(data, 'draworder'), objects=tuple(objects), **common)

    def get_object_by_name(self, name: str) -> Optional[MapObject]:
        for obj in self.objects:
            if obj.name == name:
                return obj
        return None


Layer = Union[TileLayer, ObjectLayer]

LAYER_DECODERS: Dict[str, Callable[[Dict[str, Any]], Layer]] = {
    TileLayer.kind: TileLayer.from_json,
    ObjectLayer.kind: ObjectLayer.from_json,
}


def decode_layer(value: Any) -> Layer:
    """
    Decode one layer object into a TileLayer or an ObjectLayer.

    Raises:
    -------
    MissingDiscriminatorError : 'type' is absent or not a string
    UnknownVariantError : 'type' is not a layer kind we load
    MalformedError : the rest of the layer does not match its kind
    """
    data = expect_object(value, 'layer')

    kind = data.get('type')
    if not isinstance(kind, str):
        raise MissingDiscriminatorError("layer has no string 'type' field", field='type')

    decoder = LAYER_DECODERS.get(kind)
    if decoder is None:
        raise UnknownVariantError(kind)

    try:
        return decoder(data)
    except MalformedError as e:
        raise e.add_context(f"{kind} decode failed")

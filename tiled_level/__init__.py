"""
Tiled Level Loader - typed, immutable levels from Tiled JSON maps

Requisitos:
    pip install numpy
"""

from .config import LoaderOptions
from .errors import (
    LoadError, ReadError, MalformedError, MissingDiscriminatorError,
    UnknownVariantError, InvalidKeyError, MissingFieldError, TilesetRangeError
)
from .ids import GlobalTile, LocalTile
from .layer import Layer, TileLayer, ObjectLayer, MapObject, Point, decode_layer
from .tileset import Tileset, Terrain, load_tileset, resolve
from .values import decode_sparse_map
from .level import Level, RenderOrder, load_level

__version__ = "0.1.0"
__all__ = [
    "load_level",
    "resolve",
    "Level",
    "RenderOrder",
    "LoaderOptions",
    "GlobalTile",
    "LocalTile",
    "Layer",
    "TileLayer",
    "ObjectLayer",
    "MapObject",
    "Point",
    "decode_layer",
    "Tileset",
    "Terrain",
    "load_tileset",
    "decode_sparse_map",
    "LoadError",
    "ReadError",
    "MalformedError",
    "MissingDiscriminatorError",
    "UnknownVariantError",
    "InvalidKeyError",
    "MissingFieldError",
    "TilesetRangeError",
]

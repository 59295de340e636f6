"""
Bridge from raw JSON values to typed fields

=============================================================================
WHY NOT JUST data['width']?
=============================================================================

json.load() gives us a tree of dict / list / str / int / float / bool /
None. Reading it with plain indexing works until a file is wrong, and then
the failure is a KeyError or TypeError with no hint of which field, which
layer or which file was at fault.

The helpers here read ONE field each, check its JSON type and raise a
MalformedError (or MissingFieldError) that names the field. The decoders
in layer.py, tileset.py and level.py are built only from these helpers.

=============================================================================
PROPERTIES
=============================================================================

Tiled has written custom properties in two shapes over the years:

    Old (map):   "properties": {"solid": "true", "damage": "10"}
    New (list):  "properties": [{"name": "solid", "type": "bool", "value": true}]

Both decode to a flat str -> str dict. Non-string values are rendered the
way Tiled writes them in its own text fields (true/false, 10, 0.5).

=============================================================================
SPARSE MAPS
=============================================================================

Per-tile data in a tileset is a sparse array indexed by local tile id.
JSON objects only have string keys, so Tiled writes:

    "tileproperties": {"0": {...}, "17": {...}}

decode_sparse_map() turns the keys back into LocalTile ids and rejects
anything that is not a decimal unsigned integer.

=============================================================================
"""

import json
import logging
from pathlib import Path
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Mapping, Optional, TypeVar, Union

from .errors import InvalidKeyError, MalformedError, MissingFieldError, ReadError
from .ids import U32_MAX, GlobalTile, LocalTile

logger = logging.getLogger(__name__)

K = TypeVar('K')
V = TypeVar('V')

_MISSING: Any = object()

JSON_TYPE_NAMES = {
    dict: 'object',
    list: 'array',
    str: 'string',
    int: 'integer',
    float: 'number',
    bool: 'boolean',
    type(None): 'null',
}


def json_type_name(value: Any) -> str:
    return JSON_TYPE_NAMES.get(type(value), type(value).__name__)


# =============================================================================
# FILE INPUT
# =============================================================================

def read_json(path: Union[str, Path], encoding: str = 'utf-8') -> Any:
    """
    Read and parse a JSON file.

    Raises ReadError if the file cannot be read and MalformedError if it
    is not valid JSON. Both carry the path.
    """
    path = Path(path)
    logger.debug("Reading %s", path)

    try:
        with open(path, 'r', encoding=encoding) as f:
            text = f.read()
    except UnicodeDecodeError as e:
        raise MalformedError(f"cannot decode file as {encoding}: {e}", path=path) from e
    except OSError as e:
        raise ReadError(f"cannot read file: {e.strerror or e}", path=path) from e

    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise MalformedError(f"invalid JSON at line {e.lineno} column {e.colno}: {e.msg}",
                             path=path) from e
    except ValueError as e:
        # e.g. integer literals past the interpreter's digit limit
        raise MalformedError(f"invalid JSON: {e}", path=path) from e


# =============================================================================
# SCALAR DECODERS
# =============================================================================
# Each takes a raw value plus the field name used in error messages.

def expect_object(value: Any, what: str, field: Optional[str] = None) -> Dict[str, Any]:
    if not isinstance(value, dict):
        raise MalformedError(f"{what} must be an object, got {json_type_name(value)}", field=field)
    return value


def expect_array(value: Any, field: str) -> List[Any]:
    if not isinstance(value, list):
        raise MalformedError(f"'{field}' must be an array, got {json_type_name(value)}", field=field)
    return value


def decode_u32(value: Any, field: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise MalformedError(f"'{field}' must be an unsigned integer, got {json_type_name(value)}",
                             field=field)
    if not 0 <= value <= U32_MAX:
        raise MalformedError(f"'{field}' out of range for an unsigned 32-bit integer: {value}",
                             field=field)
    return value


def decode_int(value: Any, field: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise MalformedError(f"'{field}' must be an integer, got {json_type_name(value)}", field=field)
    return value


def decode_float(value: Any, field: str) -> float:
    # JSON has no int/float distinction, Tiled writes 0 as well as 0.5
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise MalformedError(f"'{field}' must be a number, got {json_type_name(value)}", field=field)
    return float(value)


def decode_bool(value: Any, field: str) -> bool:
    if not isinstance(value, bool):
        raise MalformedError(f"'{field}' must be a boolean, got {json_type_name(value)}", field=field)
    return value


def decode_str(value: Any, field: str) -> str:
    if not isinstance(value, str):
        raise MalformedError(f"'{field}' must be a string, got {json_type_name(value)}", field=field)
    return value


def decode_global_tile(value: Any, field: str) -> GlobalTile:
    return GlobalTile(decode_u32(value, field))


def decode_local_tile(value: Any, field: str) -> LocalTile:
    return LocalTile(decode_u32(value, field))


# =============================================================================
# FIELD ACCESS
# =============================================================================

def get_field(data: Dict[str, Any], key: str, decode: Callable[[Any, str], V],
              default: Any = _MISSING) -> V:
    """
    Read data[key] through a decoder.

    A missing key raises MissingFieldError unless a default is given. The
    default is returned as-is (not decoded).
    """
    if key not in data:
        if default is _MISSING:
            raise MissingFieldError(key)
        return default
    return decode(data[key], key)


def get_u32(data: Dict[str, Any], key: str, default: Any = _MISSING) -> int:
    return get_field(data, key, decode_u32, default)


def get_float(data: Dict[str, Any], key: str, default: Any = _MISSING) -> float:
    return get_field(data, key, decode_float, default)


def get_bool(data: Dict[str, Any], key: str, default: Any = _MISSING) -> bool:
    return get_field(data, key, decode_bool, default)


def get_str(data: Dict[str, Any], key: str, default: Any = _MISSING) -> str:
    return get_field(data, key, decode_str, default)


def get_optional(data: Dict[str, Any], key: str, decode: Callable[[Any, str], V]) -> Optional[V]:
    """Absent and null both mean None."""
    value = data.get(key)
    if value is None:
        return None
    return decode(value, key)


# =============================================================================
# READ-ONLY MAPS
# =============================================================================

EMPTY_MAP: Mapping[Any, Any] = MappingProxyType({})


def frozen_map(mapping: Mapping[K, V]) -> Mapping[K, V]:
    """Read-only copy of mapping."""
    return MappingProxyType(dict(mapping))


# =============================================================================
# PROPERTIES
# =============================================================================

def _property_text(value: Any, field: str) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if isinstance(value, (int, float)):
        return str(value)
    raise MalformedError(f"'{field}' values must be scalars, got {json_type_name(value)}", field=field)


def decode_properties(value: Any, field: str = 'properties') -> Dict[str, str]:
    """Decode either property shape (see module docstring) into str -> str."""
    if value is None:
        return {}

    if isinstance(value, dict):
        return {name: _property_text(v, field) for name, v in value.items()}

    if isinstance(value, list):
        props: Dict[str, str] = {}
        for i, entry in enumerate(value):
            entry = expect_object(entry, f"'{field}[{i}]'", field)
            name = get_str(entry, 'name')
            # class-typed properties nest objects, which have no flat text form
            props[name] = _property_text(entry.get('value', ''), field)
        return props

    raise MalformedError(f"'{field}' must be an object or array, got {json_type_name(value)}",
                         field=field)


def get_properties(data: Dict[str, Any], key: str = 'properties') -> Dict[str, str]:
    return decode_properties(data.get(key), key)


# =============================================================================
# SPARSE MAPS
# =============================================================================

def parse_local_key(key: str, field: Optional[str] = None) -> LocalTile:
    """Parse a sparse map key such as "17" into LocalTile(17)."""
    # isdigit() alone accepts things like '²', so also insist on ASCII
    if not (key.isascii() and key.isdigit()):
        raise InvalidKeyError(key, field)
    value = int(key)
    if value > U32_MAX:
        raise InvalidKeyError(key, field)
    return LocalTile(value)


def decode_sparse_map(raw: Any, decode_value: Callable[[Any, str], V],
                      field: str) -> Dict[LocalTile, V]:
    """
    Decode a JSON object keyed by decimal local tile ids.

    Parameters:
    -----------
    raw : Any
        The raw JSON value, must be an object (None means empty)
    decode_value : callable
        Decoder applied to each value, called as decode_value(value, field)
    field : str
        Name of the field, used in error messages

    Raises InvalidKeyError on the first key that is not an unsigned
    decimal integer.
    """
    if raw is None:
        return {}

    raw = expect_object(raw, f"'{field}'", field)

    result: Dict[LocalTile, V] = {}
    for key, value in raw.items():
        tile = parse_local_key(key, field)
        try:
            result[tile] = decode_value(value, field)
        except MalformedError as e:
            raise e.add_context(f"{field}[{key!r}]")
    return result

"""
Exceptions raised while loading Tiled levels and tilesets

=============================================================================
CONTEXT CHAINING
=============================================================================

Decoding a level is a nested affair: the level contains tilesets, the
tilesets may live in other files, layers contain objects, objects contain
polygons. A bare "expected an integer" is useless without knowing WHERE.

Every error therefore carries:

- path:    The file being read when the error happened (if known)
- field:   The JSON key that failed to decode (if known)
- context: Labels prepended by the outer decoders as the error bubbles
           up, outermost first

    levels/map.json: tilesets[1]: levels/tiles.json: tiles: invalid key 'abc'

Outer decoders catch LoadError, call add_context() and re-raise the same
object, so the error class (and therefore the kind of failure) is never
lost on the way up.

=============================================================================
"""

from pathlib import Path
from typing import Optional, Tuple, Union


class LoadError(Exception):
    """Base class of every failure raised by tiled_level."""

    def __init__(self, message: str, path: Optional[Union[str, Path]] = None,
                 field: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.path: Optional[Path] = Path(path) if path is not None else None
        # File the error happened in; path moves outwards, origin stays
        self.origin: Optional[Path] = self.path
        self.field = field
        self.context: Tuple[str, ...] = ()

    def add_context(self, label: str) -> 'LoadError':
        """Prepend a location label. Returns self so it can be re-raised."""
        self.context = (label,) + self.context
        return self

    def with_path(self, path: Union[str, Path]) -> 'LoadError':
        """
        Record the file being read. Returns self so it can be re-raised.

        If the error already names a different (nested) file, that file
        moves into the context and path becomes the outer file.
        """
        path = Path(path)
        if self.origin is None:
            self.origin = path
        elif self.path != path:
            self.context = (str(self.path),) + self.context
        self.path = path
        return self

    def __str__(self) -> str:
        parts = []
        if self.path is not None:
            parts.append(str(self.path))
        parts.extend(self.context)
        parts.append(self.message)
        return ': '.join(parts)


class ReadError(LoadError):
    """A level or tileset file could not be opened or read."""


class MalformedError(LoadError):
    """The JSON value does not have the expected shape."""


class MissingDiscriminatorError(MalformedError):
    """A tagged record has no usable tag field."""


class UnknownVariantError(MalformedError):
    """A tagged record has a tag value we do not know."""

    def __init__(self, kind: str, field: str = 'type'):
        super().__init__(f"unknown {field} '{kind}'", field=field)
        self.kind = kind


class InvalidKeyError(MalformedError):
    """A sparse map key is not a decimal unsigned integer."""

    def __init__(self, key: str, field: Optional[str] = None):
        super().__init__(f"invalid key '{key}' (expected an unsigned integer)", field=field)
        self.key = key


class MissingFieldError(MalformedError):
    """A required field is absent."""

    def __init__(self, field: str, message: Optional[str] = None):
        super().__init__(message or f"missing field '{field}'", field=field)


class TilesetRangeError(LoadError):
    """Tileset gid ranges overlap or are not in ascending firstgid order."""

"""Options controlling how levels are loaded."""

from dataclasses import dataclass


@dataclass(frozen=True)
class LoaderOptions:
    """
    Loader settings.

    check_ranges : bool
        After loading, verify that tilesets are sorted by firstgid and
        that their gid ranges do not overlap. Tile resolution picks the
        first tileset that contains a gid, so a file that breaks this
        gives silently wrong tiles. Turn off to accept such files as-is.
    max_workers : int
        Number of threads used to read external tilesets. 1 reads them
        one after the other. The tileset order in the level never
        depends on this.
    encoding : str
        Text encoding of level and tileset files.
    """
    check_ranges: bool = True
    max_workers: int = 1
    encoding: str = 'utf-8'

    def __post_init__(self):
        if self.max_workers < 1:
            raise ValueError(f"max_workers must be at least 1, got {self.max_workers}")


DEFAULT_OPTIONS = LoaderOptions()

"""Tests for tileset decoding and external tileset resolution."""
import pytest

from conftest import tileset_json
from tiled_level import (
    GlobalTile,
    InvalidKeyError,
    LocalTile,
    MalformedError,
    MissingFieldError,
    ReadError,
    Terrain,
    Tileset,
    load_tileset,
)


# =============================================================================
# EMBEDDED
# =============================================================================

def test_inline_tileset(level_path):
    tileset = load_tileset({**tileset_json(), 'firstgid': 1}, level_path)

    assert tileset.name == 'terrain'
    assert tileset.firstgid == GlobalTile(1)
    assert tileset.tilecount == 16
    assert (tileset.tilewidth, tileset.tileheight) == (16, 16)
    assert tileset.columns == 4
    assert (tileset.imagewidth, tileset.imageheight) == (64, 64)
    assert (tileset.margin, tileset.spacing) == (0, 0)
    assert tileset.source is None


def test_inline_image_relative_to_level(level_path):
    tileset = load_tileset({**tileset_json(image='gfx/atlas.png'), 'firstgid': 1}, level_path)
    assert tileset.image == level_path.parent / 'gfx' / 'atlas.png'


def test_inline_needs_firstgid(level_path):
    with pytest.raises(MissingFieldError) as excinfo:
        load_tileset(tileset_json(), level_path)
    assert excinfo.value.field == 'firstgid'
    assert excinfo.value.path == level_path


def test_inline_error_names_level(level_path):
    data = {**tileset_json(), 'firstgid': 1}
    del data['columns']
    with pytest.raises(MissingFieldError) as excinfo:
        load_tileset(data, level_path)
    assert excinfo.value.path == level_path
    assert str(level_path) in str(excinfo.value)


def test_entry_must_be_object(level_path):
    with pytest.raises(MalformedError):
        load_tileset('tiles.json', level_path)


# =============================================================================
# EXTERNAL
# =============================================================================

def test_external_reads_file_next_to_level(write_json, level_path):
    tileset_path = write_json('levels/tiles.json', tileset_json())

    tileset = load_tileset({'source': 'tiles.json', 'firstgid': 5}, level_path)

    assert tileset.firstgid == GlobalTile(5)
    assert tileset.source == tileset_path
    assert tileset.name == 'terrain'


def test_external_firstgid_comes_from_level(write_json, level_path):
    write_json('levels/tiles.json', {**tileset_json(), 'firstgid': 99})
    tileset = load_tileset({'source': 'tiles.json', 'firstgid': 5}, level_path)
    assert tileset.firstgid == GlobalTile(5)


def test_external_image_relative_to_tileset(write_json, level_path):
    write_json('levels/tiles.json', tileset_json(image='atlas.png'))
    tileset = load_tileset({'source': 'tiles.json', 'firstgid': 5}, level_path)
    assert tileset.image == level_path.parent / 'atlas.png'


def test_external_in_other_directory(write_json, level_path, tmp_path):
    level_path.parent.mkdir(parents=True, exist_ok=True)
    write_json('shared/tiles.json', tileset_json(image='img/atlas.png'))
    tileset = load_tileset({'source': '../shared/tiles.json', 'firstgid': 1}, level_path)

    assert tileset.image == level_path.parent / '..' / 'shared' / 'img' / 'atlas.png'
    assert tileset.image.resolve() == (tmp_path / 'shared' / 'img' / 'atlas.png').resolve()


def test_same_external_file_at_two_offsets(write_json, level_path):
    write_json('levels/tiles.json', tileset_json())
    a = load_tileset({'source': 'tiles.json', 'firstgid': 1}, level_path)
    b = load_tileset({'source': 'tiles.json', 'firstgid': 200}, level_path)
    assert (a.firstgid, b.firstgid) == (GlobalTile(1), GlobalTile(200))
    assert a.image == b.image


@pytest.mark.parametrize('entry', [
    {'source': 'tiles.json'},
    {'source': 'tiles.json', 'firstgid': '5'},
    {'source': 'tiles.json', 'firstgid': -1},
    {'source': 'tiles.json', 'firstgid': None},
])
def test_external_needs_numeric_firstgid(write_json, level_path, entry):
    write_json('levels/tiles.json', tileset_json())
    with pytest.raises(MissingFieldError) as excinfo:
        load_tileset(entry, level_path)
    assert excinfo.value.field == 'firstgid'


def test_source_must_be_string(level_path):
    with pytest.raises(MalformedError) as excinfo:
        load_tileset({'source': 3, 'firstgid': 1}, level_path)
    assert excinfo.value.field == 'source'


def test_external_missing_file(level_path):
    with pytest.raises(ReadError) as excinfo:
        load_tileset({'source': 'nope.json', 'firstgid': 1}, level_path)
    error = excinfo.value
    assert error.origin == level_path.parent / 'nope.json'
    assert error.path == level_path
    assert 'nope.json' in str(error)


def test_external_invalid_json(tmp_path, level_path):
    (tmp_path / 'levels').mkdir()
    (tmp_path / 'levels' / 'tiles.json').write_text('{', encoding='utf-8')
    with pytest.raises(MalformedError) as excinfo:
        load_tileset({'source': 'tiles.json', 'firstgid': 1}, level_path)
    assert excinfo.value.origin == level_path.parent / 'tiles.json'


def test_external_bad_sparse_key_names_file(write_json, level_path):
    write_json('levels/tiles.json', tileset_json(tileproperties={'abc': {}}))
    with pytest.raises(InvalidKeyError) as excinfo:
        load_tileset({'source': 'tiles.json', 'firstgid': 1}, level_path)
    assert excinfo.value.key == 'abc'
    assert 'tiles.json' in str(excinfo.value)


def test_from_file_directly(write_json):
    path = write_json('sets/tiles.json', tileset_json())
    tileset = Tileset.from_file(path, GlobalTile(3))
    assert tileset.firstgid == GlobalTile(3)
    assert tileset.image == path.parent / 'atlas.png'


# =============================================================================
# PER-TILE DATA
# =============================================================================

def test_sparse_tile_maps(level_path):
    data = {
        **tileset_json(),
        'firstgid': 1,
        'properties': {'biome': 'forest'},
        'terrains': [{'name': 'grass', 'tile': 0}, {'name': 'water', 'tile': 9}],
        'tileproperties': {'0': {'solid': 'false'}, '17': {'solid': 'true'}},
        'tiles': {'3': {'terrain': [0, 0, 1, -1]}},
    }
    tileset = load_tileset(data, level_path)

    assert tileset.properties == {'biome': 'forest'}
    assert tileset.terrains == (Terrain('grass', LocalTile(0)), Terrain('water', LocalTile(9)))
    assert tileset.tileproperties == {
        LocalTile(0): {'solid': 'false'},
        LocalTile(17): {'solid': 'true'},
    }
    assert tileset.tiles == {LocalTile(3): (0, 0, 1, -1)}
    assert tileset.tile_properties(LocalTile(17)) == {'solid': 'true'}
    assert tileset.tile_properties(LocalTile(2)) == {}


def test_tileset_maps_are_read_only(level_path):
    data = {
        **tileset_json(),
        'firstgid': 1,
        'properties': {'biome': 'forest'},
        'tileproperties': {'3': {'solid': 'true'}},
        'tiles': {'3': {'terrain': [0, 0, 0, 0]}},
    }
    tileset = load_tileset(data, level_path)

    with pytest.raises(TypeError):
        tileset.properties['biome'] = 'desert'
    with pytest.raises(TypeError):
        tileset.tileproperties[LocalTile(4)] = {}
    with pytest.raises(TypeError):
        tileset.tile_properties(LocalTile(3))['solid'] = 'false'
    with pytest.raises(TypeError):
        tileset.tile_properties(LocalTile(9))['solid'] = 'false'
    with pytest.raises(TypeError):
        tileset.tiles[LocalTile(3)] = (1, 1, 1, 1)

    assert tileset.tile_properties(LocalTile(3)) == {'solid': 'true'}
    assert tileset.tile_properties(LocalTile(9)) == {}


def test_terrain_tile_must_be_unsigned(level_path):
    data = {**tileset_json(), 'firstgid': 1, 'terrains': [{'name': 'grass', 'tile': -1}]}
    with pytest.raises(MalformedError) as excinfo:
        load_tileset(data, level_path)
    assert excinfo.value.field == 'tile'
    assert excinfo.value.context == ('terrains[0]',)


def test_per_tile_data_optional(level_path):
    tileset = load_tileset({**tileset_json(), 'firstgid': 1}, level_path)
    assert tileset.properties == {}
    assert tileset.terrains == ()
    assert tileset.tileproperties == {}
    assert tileset.tiles == {}


def test_tiles_list_form(level_path):
    data = {
        **tileset_json(),
        'firstgid': 1,
        'tiles': [
            {'id': 2, 'terrain': [0, 1, 0, 1]},
            {'id': 5, 'properties': [{'name': 'solid', 'type': 'bool', 'value': True}]},
        ],
    }
    tileset = load_tileset(data, level_path)
    assert tileset.tiles == {LocalTile(2): (0, 1, 0, 1)}
    assert tileset.tileproperties == {LocalTile(5): {'solid': 'true'}}


def test_tiles_list_entry_without_id(level_path):
    data = {**tileset_json(), 'firstgid': 1, 'tiles': [{'terrain': [0, 0, 0, 0]}]}
    with pytest.raises(MissingFieldError) as excinfo:
        load_tileset(data, level_path)
    assert excinfo.value.context == ('tiles[0]',)


def test_terrain_needs_four_corners(level_path):
    data = {**tileset_json(), 'firstgid': 1, 'tiles': {'3': {'terrain': [0, 0, 1]}}}
    with pytest.raises(MalformedError):
        load_tileset(data, level_path)


def test_terrain_entry_needs_terrain(level_path):
    data = {**tileset_json(), 'firstgid': 1, 'tiles': {'3': {'animation': []}}}
    with pytest.raises(MissingFieldError):
        load_tileset(data, level_path)


def test_tiles_bad_key(level_path):
    data = {**tileset_json(), 'firstgid': 1, 'tiles': {'x3': {'terrain': [0, 0, 0, 0]}}}
    with pytest.raises(InvalidKeyError):
        load_tileset(data, level_path)


# =============================================================================
# QUERIES
# =============================================================================

def _tileset(**overrides):
    return load_tileset({**tileset_json(**overrides), 'firstgid': 5}, 'map.json')


def test_contains_tile():
    tileset = _tileset()  # gids 5..20
    assert not tileset.contains_tile(GlobalTile(4))
    assert tileset.contains_tile(GlobalTile(5))
    assert tileset.contains_tile(GlobalTile(20))
    assert not tileset.contains_tile(GlobalTile(21))


def test_to_local_and_back():
    tileset = _tileset()
    assert tileset.to_local(GlobalTile(7)) == LocalTile(2)
    assert tileset.to_local(GlobalTile(2)) is None
    assert tileset.to_global(LocalTile(2)) == GlobalTile(7)


def test_tile_rect_plain():
    tileset = _tileset()
    assert tileset.tile_rect(LocalTile(0)) == (0, 0, 16, 16)
    assert tileset.tile_rect(LocalTile(6)) == (32, 16, 16, 16)


def test_tile_rect_margin_and_spacing():
    tileset = _tileset(margin=1, spacing=2)
    assert tileset.tile_rect(LocalTile(5)) == (19, 19, 16, 16)


def test_tile_rect_out_of_range():
    with pytest.raises(ValueError):
        _tileset().tile_rect(LocalTile(16))

"""Shared fixtures and JSON builders for tiled_level tests."""
import json

import pytest


def tileset_json(**overrides):
    """External tileset body (no firstgid): 4x4 tiles of 16px."""
    data = {
        'name': 'terrain',
        'tilecount': 16,
        'tileheight': 16,
        'tilewidth': 16,
        'columns': 4,
        'image': 'atlas.png',
        'imageheight': 64,
        'imagewidth': 64,
        'margin': 0,
        'spacing': 0,
    }
    data.update(overrides)
    return data


def tile_layer_json(**overrides):
    data = {
        'type': 'tilelayer',
        'name': 'Ground',
        'opacity': 1,
        'visible': True,
        'width': 3,
        'height': 2,
        'x': 0,
        'y': 0,
        'data': [1, 2, 0,
                 4, 5, 6],
    }
    data.update(overrides)
    return data


def object_json(**overrides):
    data = {
        'id': 1,
        'name': 'door',
        'type': 'trigger',
        'x': 32,
        'y': 16.5,
        'width': 16,
        'height': 16,
        'rotation': 0,
        'visible': True,
    }
    data.update(overrides)
    return data


def object_layer_json(**overrides):
    data = {
        'type': 'objectgroup',
        'name': 'Objects',
        'draworder': 'topdown',
        'opacity': 1,
        'visible': True,
        'x': 0,
        'y': 0,
        'objects': [object_json()],
    }
    data.update(overrides)
    return data


def level_json(**overrides):
    """Smallest valid level: every scalar, no layers, no tilesets."""
    data = {
        'height': 2,
        'width': 3,
        'orientation': 'orthogonal',
        'renderorder': 'right-down',
        'tileheight': 16,
        'tilewidth': 16,
        'layers': [],
        'tilesets': [],
    }
    data.update(overrides)
    return data


@pytest.fixture
def write_json(tmp_path):
    """Write a JSON document under tmp_path and return its path."""
    def write(relpath, data):
        path = tmp_path / relpath
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(data), encoding='utf-8')
        return path
    return write


@pytest.fixture
def level_path(tmp_path):
    """Where a level file would live; not created."""
    return tmp_path / 'levels' / 'map.json'

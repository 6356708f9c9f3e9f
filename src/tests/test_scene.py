"""Tests for scene construction and the compiled scene layout."""

import numpy as np
import pytest

from clrays.core import Camera, Light, Material, Plane, Scene, Sphere
from clrays.core import scene_compiler as sc
from clrays.errors import SceneLayoutError


def test_empty_scene_header():
    scene = Scene(sky_col=(0.1, 0.2, 0.3))

    params = scene.get_params_buffer()
    items = scene.get_buffers()

    assert params.dtype == np.int32
    assert items.dtype == np.float32
    assert len(params) == sc.PARAMS_LEN
    assert params[sc.PARAM_VERSION] == sc.SCHEMA_VERSION
    assert params[sc.PARAM_SPHERE_COUNT] == 0
    assert params[sc.PARAM_PLANE_COUNT] == 0
    assert params[sc.PARAM_LIGHT_COUNT] == 0
    assert params[sc.PARAM_ITEMS_LEN] == len(items) == sc.SKY_STRIDE + sc.CAMERA_STRIDE
    np.testing.assert_allclose(items[:3], [0.1, 0.2, 0.3])
    sc.validate_scene_buffers(params, items)


def test_sphere_record_layout():
    scene = Scene(camera=Camera(pos=(1, 2, 3), dir=(0, 0, 1), fov=60))
    scene.add(Sphere((0, 1, -4), 2.0, Material(col=(0.5, 0.25, 1.0), reflectivity=0.3, shininess=8)))

    params = scene.get_params_buffer()
    items = scene.get_buffers()

    cam = params[sc.PARAM_CAMERA_OFFSET]
    np.testing.assert_allclose(items[cam:cam + sc.CAMERA_STRIDE], [1, 2, 3, 0, 0, 1, 60])

    start = params[sc.PARAM_SPHERE_OFFSET]
    record = items[start:start + sc.SPHERE_STRIDE]
    np.testing.assert_allclose(record, [0, 1, -4, 2.0, 0.5, 0.25, 1.0, 0.3, 8])


def test_blocks_follow_each_other():
    scene = Scene()
    scene.add(Sphere((0, 0, -3), 1.0)).add(Sphere((2, 0, -3), 0.5))
    scene.add(Plane((0, -1, 0), (0, 1, 0)))
    scene.add(Light((0, 5, 0), 2.0, (1, 1, 0.5)))

    params = scene.get_params_buffer()
    items = scene.get_buffers()

    assert len(scene) == 4
    assert params[sc.PARAM_PLANE_OFFSET] == params[sc.PARAM_SPHERE_OFFSET] + 2 * sc.SPHERE_STRIDE
    assert params[sc.PARAM_LIGHT_OFFSET] == params[sc.PARAM_PLANE_OFFSET] + sc.PLANE_STRIDE
    light = params[sc.PARAM_LIGHT_OFFSET]
    np.testing.assert_allclose(items[light:light + sc.LIGHT_STRIDE], [0, 5, 0, 2.0, 1, 1, 0.5])
    assert params[sc.PARAM_ITEMS_LEN] == len(items)


def test_add_rejects_unknown_items():
    with pytest.raises(TypeError):
        Scene().add(Camera())


def _buffers():
    scene = Scene().add(Sphere((0, 0, -3), 1.0))
    return scene.get_params_buffer(), scene.get_buffers()


def test_validate_rejects_version_mismatch():
    params, items = _buffers()
    params[sc.PARAM_VERSION] = sc.SCHEMA_VERSION + 1

    with pytest.raises(SceneLayoutError, match="schema version"):
        sc.validate_scene_buffers(params, items)


def test_validate_rejects_length_mismatch():
    params, items = _buffers()

    with pytest.raises(SceneLayoutError, match="declares"):
        sc.validate_scene_buffers(params, items[:-1])


def test_validate_rejects_block_overrun():
    params, items = _buffers()
    params[sc.PARAM_SPHERE_COUNT] = 2

    with pytest.raises(SceneLayoutError, match="overruns"):
        sc.validate_scene_buffers(params, items)


def test_validate_rejects_short_header():
    params, items = _buffers()

    with pytest.raises(SceneLayoutError):
        sc.validate_scene_buffers(params[:-1], items)


def test_layout_error_is_value_error():
    params, items = _buffers()
    params[sc.PARAM_LIGHT_COUNT] = -1

    with pytest.raises(ValueError):
        sc.validate_scene_buffers(params, items)

"""
Scene Compiler: Converts the Python scene representation to flat device arrays.
Pure Python - no Taichi code here.

Two arrays are produced:
    scene_params: int32 header (schema version, counts, offsets, total length)
    scene_items:  float32 payload (sky, camera, sphere/plane/light records)
"""

import logging
from typing import Sequence

import numpy as np

from clrays.errors import SceneLayoutError

logger = logging.getLogger(__name__)

# Bumped whenever the layout below changes (must match kernels.py)
SCHEMA_VERSION = 1

# Slots of the scene_params header
PARAM_VERSION = 0
PARAM_SPHERE_COUNT = 1
PARAM_SPHERE_OFFSET = 2
PARAM_PLANE_COUNT = 3
PARAM_PLANE_OFFSET = 4
PARAM_LIGHT_COUNT = 5
PARAM_LIGHT_OFFSET = 6
PARAM_SKY_OFFSET = 7
PARAM_CAMERA_OFFSET = 8
PARAM_ITEMS_LEN = 9
PARAMS_LEN = 10

# Record strides in scene_items (floats)
SKY_STRIDE = 3          # [r, g, b]
CAMERA_STRIDE = 7       # [px, py, pz, dx, dy, dz, fov_degrees]
MATERIAL_STRIDE = 5     # [r, g, b, reflectivity, shininess]
SPHERE_STRIDE = 4 + MATERIAL_STRIDE     # [cx, cy, cz, radius] + material
PLANE_STRIDE = 6 + MATERIAL_STRIDE      # [px, py, pz, nx, ny, nz] + material
LIGHT_STRIDE = 7        # [px, py, pz, intensity, r, g, b]

# Offsets of each material field inside a sphere/plane record's material block
MAT_COLOR = 0
MAT_REFLECTIVITY = 3
MAT_SHININESS = 4


def _material_record(mat) -> list:
    return [*mat.col, mat.reflectivity, mat.shininess]


def compile_items(scene) -> np.ndarray:
    """
    Flatten sky, camera and objects into the float payload.

    Record order is fixed: sky, camera, spheres, planes, lights.
    """
    cam = scene.camera
    items = [*scene.sky_col]
    items += [*cam.pos, *cam.dir, cam.fov]

    for sphere in scene.spheres:
        items += [*sphere.pos, sphere.rad]
        items += _material_record(sphere.mat)

    for plane in scene.planes:
        items += [*plane.pos, *plane.nor]
        items += _material_record(plane.mat)

    for light in scene.lights:
        items += [*light.pos, light.intensity, *light.col]

    return np.asarray(items, dtype=np.float32)


def compile_params(scene) -> np.ndarray:
    """Build the int header describing where each record block lives in the payload."""
    params = np.zeros(PARAMS_LEN, dtype=np.int32)
    offset = SKY_STRIDE + CAMERA_STRIDE

    params[PARAM_VERSION] = SCHEMA_VERSION
    params[PARAM_SKY_OFFSET] = 0
    params[PARAM_CAMERA_OFFSET] = SKY_STRIDE

    params[PARAM_SPHERE_COUNT] = len(scene.spheres)
    params[PARAM_SPHERE_OFFSET] = offset
    offset += len(scene.spheres) * SPHERE_STRIDE

    params[PARAM_PLANE_COUNT] = len(scene.planes)
    params[PARAM_PLANE_OFFSET] = offset
    offset += len(scene.planes) * PLANE_STRIDE

    params[PARAM_LIGHT_COUNT] = len(scene.lights)
    params[PARAM_LIGHT_OFFSET] = offset
    offset += len(scene.lights) * LIGHT_STRIDE

    params[PARAM_ITEMS_LEN] = offset
    logger.debug("Compiled scene params: %d spheres, %d planes, %d lights, %d items",
                 len(scene.spheres), len(scene.planes), len(scene.lights), offset)
    return params


def _check_block(name: str, params: np.ndarray, count_slot: int, offset_slot: int,
                 stride: int, items_len: int):
    count = int(params[count_slot])
    offset = int(params[offset_slot])
    if count < 0 or offset < 0:
        raise SceneLayoutError(f"{name} block has negative count ({count}) or offset ({offset})")
    end = offset + count * stride
    if end > items_len:
        raise SceneLayoutError(
            f"{name} block [{offset}, {end}) overruns scene_items of length {items_len}"
        )


def validate_scene_buffers(params: Sequence[int], items: Sequence[float]):
    """
    Check the scene arrays against the layout the compute program reads.

    Raises:
        SceneLayoutError: on a version mismatch or any block that does not fit
    """
    params = np.asarray(params)
    items_len = len(items)

    if params.ndim != 1 or len(params) != PARAMS_LEN:
        raise SceneLayoutError(f"scene_params must hold {PARAMS_LEN} ints, got shape {params.shape}")
    if params[PARAM_VERSION] != SCHEMA_VERSION:
        raise SceneLayoutError(
            f"scene schema version {params[PARAM_VERSION]} does not match program version {SCHEMA_VERSION}"
        )
    if params[PARAM_ITEMS_LEN] != items_len:
        raise SceneLayoutError(
            f"scene_params declares {params[PARAM_ITEMS_LEN]} items but scene_items holds {items_len}"
        )

    for name, slot, stride in (("sky", PARAM_SKY_OFFSET, SKY_STRIDE),
                               ("camera", PARAM_CAMERA_OFFSET, CAMERA_STRIDE)):
        offset = int(params[slot])
        if offset < 0 or offset + stride > items_len:
            raise SceneLayoutError(f"{name} record at {offset} overruns scene_items of length {items_len}")

    _check_block("sphere", params, PARAM_SPHERE_COUNT, PARAM_SPHERE_OFFSET, SPHERE_STRIDE, items_len)
    _check_block("plane", params, PARAM_PLANE_COUNT, PARAM_PLANE_OFFSET, PLANE_STRIDE, items_len)
    _check_block("light", params, PARAM_LIGHT_COUNT, PARAM_LIGHT_OFFSET, LIGHT_STRIDE, items_len)

"""
Shared fixtures. Taichi runs on CPU so the real kernels execute without a GPU.
"""

import os

# Must be set before clrays.render_server.taichi_tracer is imported (ti.init runs at import)
os.environ['CLRAYS_ARCH'] = 'cpu'

import pytest

from clrays.core import Camera, Light, Material, Scene, Sphere
from clrays.render_server.taichi_tracer import ComputeProgram

SKY = (0.25, 0.5, 0.75)


@pytest.fixture
def program():
    """Fresh program (and command queue) per test."""
    return ComputeProgram()


@pytest.fixture
def queue(program):
    return program.queue


@pytest.fixture
def empty_scene():
    """No objects; every ray sees the sky color."""
    return Scene(sky_col=SKY)


@pytest.fixture
def sphere_scene():
    """Lit red sphere straight ahead of the camera."""
    scene = Scene(sky_col=SKY, camera=Camera(pos=(0, 0, 0), dir=(0, 0, -1), fov=90))
    scene.add(Sphere(pos=(0, 0, -3), rad=1.0, mat=Material(col=(1.0, 0.0, 0.0))))
    scene.add(Light(pos=(0, 0, 0), intensity=4.0))
    return scene

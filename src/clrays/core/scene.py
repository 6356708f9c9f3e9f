"""
Scene object model: plain data that the tracer flattens into device arrays.
"""

from dataclasses import dataclass, field
from typing import List, Tuple

import numpy as np

from .scene_compiler import compile_items, compile_params

Vec3 = Tuple[float, float, float]


@dataclass
class Material:
    col: Vec3 = (1.0, 1.0, 1.0)
    reflectivity: float = 0.0
    shininess: float = 0.0  # 0 disables the specular highlight


@dataclass
class Sphere:
    pos: Vec3
    rad: float
    mat: Material = field(default_factory=Material)


@dataclass
class Plane:
    pos: Vec3
    nor: Vec3
    mat: Material = field(default_factory=Material)


@dataclass
class Light:
    pos: Vec3
    intensity: float
    col: Vec3 = (1.0, 1.0, 1.0)


@dataclass
class Camera:
    pos: Vec3 = (0.0, 0.0, 0.0)
    dir: Vec3 = (0.0, 0.0, -1.0)
    fov: float = 90.0


class Scene:
    """
    Collection of spheres, planes and lights plus sky color and camera.

    Usage:
        scene = Scene(sky_col=(0.2, 0.2, 0.5))
        scene.add(Sphere((0, 0, -5), 1.0))
        items, params = scene.get_buffers(), scene.get_params_buffer()
    """

    def __init__(self, sky_col: Vec3 = (0.0, 0.0, 0.0), camera: Camera = None):
        self.sky_col = tuple(sky_col)
        self.camera = camera if camera is not None else Camera()
        self.spheres: List[Sphere] = []
        self.planes: List[Plane] = []
        self.lights: List[Light] = []

    def add(self, item):
        """Add a Sphere, Plane or Light. Returns the scene for chaining."""
        if isinstance(item, Sphere):
            self.spheres.append(item)
        elif isinstance(item, Plane):
            self.planes.append(item)
        elif isinstance(item, Light):
            self.lights.append(item)
        else:
            raise TypeError(f"Cannot add {type(item).__name__} to a Scene")
        return self

    def get_buffers(self) -> np.ndarray:
        """Flattened float32 payload (sky, camera, objects, lights)."""
        return compile_items(self)

    def get_params_buffer(self) -> np.ndarray:
        """int32 header with schema version, counts and offsets into get_buffers()."""
        return compile_params(self)

    def __len__(self):
        return len(self.spheres) + len(self.planes) + len(self.lights)

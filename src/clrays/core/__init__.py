"""
Scene data model and its flattening into device-compatible arrays.
"""

from .scene import Camera, Light, Material, Plane, Scene, Sphere

__all__ = ['Camera', 'Light', 'Material', 'Plane', 'Scene', 'Sphere']

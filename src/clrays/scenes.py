from clrays.core import Camera, Light, Material, Plane, Scene, Sphere

#------------------------------------------------------------------------

def two_spheres() -> Scene:
    """Floor plane, a matte sphere, a mirror sphere and one point light."""
    scene = Scene(sky_col=(0.2, 0.2, 0.5), camera=Camera(pos=(0, 0, 0), dir=(0, 0, -1), fov=90))

    scene.add(Plane(
        pos=(0, -1, 0),
        nor=(0, 1, 0),
        mat=Material(col=(1.0, 1.0, 1.0), shininess=16.0),
    ))
    scene.add(Sphere(
        pos=(1, 0, -5),
        rad=1.0,
        mat=Material(col=(0.9, 0.3, 0.2), shininess=512.0),
    ))
    scene.add(Sphere(
        pos=(-1, 0, -5),
        rad=1.0,
        mat=Material(col=(0.1, 0.1, 0.9), reflectivity=1.0, shininess=2048.0),
    ))
    scene.add(Light(pos=(0, 2, -3), intensity=100.0, col=(1.0, 1.0, 1.0)))
    return scene

#------------------------------------------------------------------------

def empty(sky_col=(0.25, 0.5, 0.75)) -> Scene:
    """No objects: every pixel is the sky color."""
    return Scene(sky_col=sky_col)

#------------------------------------------------------------------------

SCENES = {
    'two_spheres': two_spheres,
    'empty': empty,
}

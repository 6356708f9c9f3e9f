"""
Taichi Compute Program

All @ti.func and @ti.kernel definitions executed on the device.
Entry points take their bound arguments first and the global work size
(global_x, global_y) last; each invocation of the outer loop is one work item.
"""

import math

import taichi as ti

from clrays.core import scene_compiler as layout

# =============================================================================
# CONSTANTS
# =============================================================================

CHANNELS = 3            # RGB floats per pixel in the accumulation buffer
EPSILON = 0.001
MAX_RENDER_DIST = 1000000.0
MAX_RENDER_DEPTH = 3
AMBIENT = 0.05
DEG_TO_RAD = math.pi / 180.0

# =============================================================================
# SCENE ACCESS
# =============================================================================


@ti.func
def read_vec3(items: ti.template(), offset):
    return ti.math.vec3(items[offset], items[offset + 1], items[offset + 2])


@ti.func
def nearest_hit(ro, rd, params: ti.template(), items: ti.template()):
    """
    Closest intersection of a ray with every sphere and plane.
    Returns (t, normal, color, reflectivity, shininess); t == MAX_RENDER_DIST on miss.
    """
    t = MAX_RENDER_DIST
    nor = ti.math.vec3(0.0)
    col = ti.math.vec3(0.0)
    refl = 0.0
    shin = 0.0

    sphere_offset = params[layout.PARAM_SPHERE_OFFSET]
    for i in range(params[layout.PARAM_SPHERE_COUNT]):
        o = sphere_offset + i * layout.SPHERE_STRIDE
        center = read_vec3(items, o)
        radius = items[o + 3]
        oc = ro - center
        b = oc.dot(rd)
        c = oc.dot(oc) - radius * radius
        disc = b * b - c
        if disc > 0.0:
            s = ti.sqrt(disc)
            hit_t = -b - s
            if hit_t < EPSILON:
                hit_t = -b + s
            if hit_t > EPSILON and hit_t < t:
                m = o + 4
                t = hit_t
                nor = (ro + rd * hit_t - center).normalized()
                col = read_vec3(items, m + layout.MAT_COLOR)
                refl = items[m + layout.MAT_REFLECTIVITY]
                shin = items[m + layout.MAT_SHININESS]

    plane_offset = params[layout.PARAM_PLANE_OFFSET]
    for i in range(params[layout.PARAM_PLANE_COUNT]):
        o = plane_offset + i * layout.PLANE_STRIDE
        point = read_vec3(items, o)
        normal = read_vec3(items, o + 3).normalized()
        denom = normal.dot(rd)
        if ti.abs(denom) > 1e-6:
            hit_t = (point - ro).dot(normal) / denom
            if hit_t > EPSILON and hit_t < t:
                m = o + 6
                t = hit_t
                nor = normal
                col = read_vec3(items, m + layout.MAT_COLOR)
                refl = items[m + layout.MAT_REFLECTIVITY]
                shin = items[m + layout.MAT_SHININESS]

    return t, nor, col, refl, shin


# =============================================================================
# SHADING
# =============================================================================


@ti.func
def shade(hit, rd, nor, col, shin, params: ti.template(), items: ti.template()):
    """Ambient + Lambert diffuse + Phong specular from every unoccluded light."""
    diffuse = ti.math.vec3(AMBIENT)
    specular = ti.math.vec3(0.0)

    light_offset = params[layout.PARAM_LIGHT_OFFSET]
    for i in range(params[layout.PARAM_LIGHT_COUNT]):
        o = light_offset + i * layout.LIGHT_STRIDE
        to_light = read_vec3(items, o) - hit
        dist = to_light.norm()
        ldir = to_light / dist
        angle = nor.dot(ldir)
        if angle > 0.0:
            blocker, _n, _c, _r, _s = nearest_hit(hit + nor * EPSILON, ldir, params, items)
            if blocker >= dist:
                lcol = read_vec3(items, o + 4)
                power = items[o + 3] / (dist * dist)
                diffuse += lcol * (angle * power)
                if shin > 0.0:
                    halfway = (ldir - rd).normalized()
                    specular += lcol * (power * ti.max(nor.dot(halfway), 0.0) ** shin)

    return col * diffuse + specular


@ti.func
def trace(origin, direction, params: ti.template(), items: ti.template()):
    """Iterative Whitted trace: local shading plus mirror bounces up to MAX_RENDER_DEPTH."""
    sky = read_vec3(items, params[layout.PARAM_SKY_OFFSET])
    result = ti.math.vec3(0.0)
    throughput = ti.math.vec3(1.0)
    ro = origin
    rd = direction

    for depth in range(MAX_RENDER_DEPTH + 1):
        t, nor, col, refl, shin = nearest_hit(ro, rd, params, items)
        if depth == MAX_RENDER_DEPTH or t >= MAX_RENDER_DIST:
            result += throughput * sky
            break
        if nor.dot(rd) > 0.0:
            nor = -nor
        hit = ro + rd * t
        result += throughput * shade(hit, rd, nor, col, shin, params, items) * (1.0 - refl)
        if refl <= 0.0:
            break
        throughput *= col * refl
        ro = hit + nor * EPSILON
        rd = (rd - 2.0 * rd.dot(nor) * nor).normalized()

    return result


@ti.func
def camera_ray(gx, gy, width, height, aa, params: ti.template(), items: ti.template()):
    """Primary ray through supersample (gx, gy) of a (width*aa, height*aa) grid."""
    cam = params[layout.PARAM_CAMERA_OFFSET]
    pos = read_vec3(items, cam)
    cd = read_vec3(items, cam + 3).normalized()
    fov = items[cam + 6]

    aspect = ti.cast(width, ti.f32) / ti.cast(height, ti.f32)
    uv_dist = (aspect / 2.0) / ti.tan(fov / 2.0 * DEG_TO_RAD)
    hor = cd.cross(ti.math.vec3(0.0, 1.0, 0.0)).normalized()
    ver = hor.cross(cd).normalized()

    u = (ti.cast(gx, ti.f32) + 0.5) / ti.cast(width * aa, ti.f32) - 0.5
    v = (ti.cast(gy, ti.f32) + 0.5) / ti.cast(height * aa, ti.f32) - 0.5
    to = pos + cd * uv_dist + hor * (u * aspect) - ver * v
    return pos, (to - pos).normalized()


@ti.func
def to_byte(v):
    return ti.cast(ti.min(ti.max(v, 0.0), 1.0) * 255.0, ti.i32)


@ti.func
def pack_color(r, g, b):
    return (to_byte(r) << 16) | (to_byte(g) << 8) | to_byte(b)


# =============================================================================
# ENTRY POINTS
# =============================================================================


@ti.kernel
def clear(buffer: ti.types.ndarray(dtype=ti.f32, ndim=1),
          width: ti.i32,
          height: ti.i32,
          global_x: ti.i32,
          global_y: ti.i32):
    """Zero every channel of each pixel entry of a width x height grid."""
    channels = buffer.shape[0] // (width * height)
    for x, y in ti.ndrange(global_x, global_y):
        if x < width and y < height:
            base = (x + y * width) * channels
            for c in range(channels):
                buffer[base + c] = 0.0


@ti.kernel
def render(out_buffer: ti.types.ndarray(dtype=ti.f32, ndim=1),
           width: ti.i32,
           height: ti.i32,
           aa: ti.i32,
           scene_params: ti.types.ndarray(dtype=ti.i32, ndim=1),
           scene_items: ti.types.ndarray(dtype=ti.f32, ndim=1),
           global_x: ti.i32,
           global_y: ti.i32):
    """
    One invocation per supersample. Each adds color / (aa*aa) into its pixel,
    so a cleared buffer ends up holding the supersample average.
    """
    weight = 1.0 / ti.cast(aa * aa, ti.f32)
    for gx, gy in ti.ndrange(global_x, global_y):
        px = gx // aa
        py = gy // aa
        if px < width and py < height:
            ro, rd = camera_ray(gx, gy, width, height, aa, scene_params, scene_items)
            col = trace(ro, rd, scene_params, scene_items) * weight
            idx = (px + py * width) * CHANNELS
            out_buffer[idx + 0] += col.x
            out_buffer[idx + 1] += col.y
            out_buffer[idx + 2] += col.z


@ti.kernel
def image_from_floatmap(in_buffer: ti.types.ndarray(dtype=ti.f32, ndim=1),
                        out_buffer: ti.types.ndarray(dtype=ti.i32, ndim=1),
                        width: ti.i32,
                        height: ti.i32,
                        global_x: ti.i32,
                        global_y: ti.i32):
    """Pack clamped RGB floats into 0x00RRGGBB ints."""
    for x, y in ti.ndrange(global_x, global_y):
        if x < width and y < height:
            i = x + y * width
            out_buffer[i] = pack_color(in_buffer[i * CHANNELS + 0],
                                       in_buffer[i * CHANNELS + 1],
                                       in_buffer[i * CHANNELS + 2])


@ti.kernel
def raytracing(out_buffer: ti.types.ndarray(dtype=ti.i32, ndim=1),
               width: ti.i32,
               height: ti.i32,
               scene_params: ti.types.ndarray(dtype=ti.i32, ndim=1),
               scene_items: ti.types.ndarray(dtype=ti.f32, ndim=1),
               global_x: ti.i32,
               global_y: ti.i32):
    """One primary ray per pixel, packed straight into 0x00RRGGBB ints."""
    for x, y in ti.ndrange(global_x, global_y):
        if x < width and y < height:
            ro, rd = camera_ray(x, y, width, height, 1, scene_params, scene_items)
            col = trace(ro, rd, scene_params, scene_items)
            out_buffer[x + y * width] = pack_color(col.x, col.y, col.z)

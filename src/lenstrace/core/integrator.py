"""Path tracing integrator for progressive Monte Carlo light transport.

This module owns the render target (a per-pixel exposure buffer of radiance
sums and sample counts) and the light transport itself:

    - iterative path tracing through the stochastic material cascade
    - Russian roulette termination driven by the path throughput
    - optional next event estimation toward one designated light sphere,
      combined with BSDF sampling by the balance heuristic
    - gamma correction into 8-bit RGBA

Radiance is measured on a 0-255 scale: an exposure average of 255 in a
channel maps to a full-intensity output byte.

The batch kernel resamples a run of consecutive cursor positions. The
cursor walks the image in row-major order; each full lap over the image is
a pass, and pass ``k`` (starting at 1) takes ``k`` samples per pixel visit,
so later passes refine the image with growing sample counts.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from lenstrace.core.integrator import expose_batch, setup_render_target
    >>> setup_render_target(320, 240)
    >>> # expose_batch(cursor, count, pixels, ...) once scene and camera are set
"""

import logging

import numpy as np
import taichi as ti
import taichi.math as tm

from lenstrace.camera.thin_lens import get_ray_jittered
from lenstrace.core.ray import cosine_hemisphere_pdf, sample_sphere_cap
from lenstrace.geometry.sphere import Sphere, intersection_distance, outward_normal
from lenstrace.materials.material import (
    EVENT_DIFFUSE,
    MaterialData,
    emit,
    emitted,
    get_material,
    sample_bsdf,
)
from lenstrace.scene.intersection import (
    background,
    intersect_scene,
    is_visible,
    light_enabled,
    light_sphere,
    sphere_centers,
    sphere_material_ids,
    sphere_radii,
)

logger = logging.getLogger(__name__)

# Type alias for 3D vectors
vec3 = tm.vec3

# =============================================================================
# Rendering Constants
# =============================================================================

# Distance new rays are pushed off a surface to avoid self-intersection
RAY_EPSILON = 1e-3

DEFAULT_BOUNCE_LIMIT = 10
DEFAULT_GAMMA = 2.2

# =============================================================================
# Render Target (Exposure Buffer)
# =============================================================================

# Maximum supported image dimensions (preallocated to avoid kernel recompilation)
MAX_IMAGE_WIDTH = 2048
MAX_IMAGE_HEIGHT = 2048

_image_width = ti.field(dtype=ti.i32, shape=())
_image_height = ti.field(dtype=ti.i32, shape=())

# Running radiance sum per pixel, indexed [x, y] with y = 0 at the top
_exposure_sum = ti.Vector.field(3, dtype=ti.f32, shape=(MAX_IMAGE_WIDTH, MAX_IMAGE_HEIGHT))
_exposure_count = ti.field(dtype=ti.i32, shape=(MAX_IMAGE_WIDTH, MAX_IMAGE_HEIGHT))

_render_target_initialized = ti.field(dtype=ti.i32, shape=())


def setup_render_target(width: int, height: int) -> None:
    """Initialize the exposure buffer for an image size.

    The buffers are preallocated to MAX_IMAGE_WIDTH x MAX_IMAGE_HEIGHT;
    this sets the active region and clears it.

    Args:
        width: Image width in pixels.
        height: Image height in pixels.

    Raises:
        ValueError: If a dimension is not positive or exceeds the maximum.
    """
    if width <= 0 or height <= 0:
        raise ValueError(f"Image dimensions must be positive, got {width}x{height}")
    if width > MAX_IMAGE_WIDTH or height > MAX_IMAGE_HEIGHT:
        raise ValueError(
            f"Image dimensions ({width}x{height}) exceed maximum supported "
            f"({MAX_IMAGE_WIDTH}x{MAX_IMAGE_HEIGHT})"
        )

    _image_width[None] = width
    _image_height[None] = height
    _render_target_initialized[None] = 1
    clear_render_target()
    logger.debug("Render target set to %dx%d", width, height)


def clear_render_target() -> None:
    """Reset every exposure sum and count to zero."""
    _exposure_sum.fill(0.0)
    _exposure_count.fill(0)


def reset_render_target() -> None:
    """Forget the active render target (used between independent renders)."""
    _render_target_initialized[None] = 0


def get_image_dimensions() -> tuple[int, int]:
    """Get the current render target dimensions as (width, height)."""
    return int(_image_width[None]), int(_image_height[None])


def _check_render_target_initialized() -> None:
    if _render_target_initialized[None] == 0:
        raise RuntimeError("Render target not set up. Call setup_render_target() first.")


def _check_pixel(x: int, y: int) -> None:
    width, height = get_image_dimensions()
    if not (0 <= x < width and 0 <= y < height):
        raise IndexError(f"Pixel ({x}, {y}) is outside the {width}x{height} image")


# =============================================================================
# Light Transport
# =============================================================================


@ti.func
def _offset_ray_origin(point: vec3, normal: vec3, direction: vec3) -> vec3:
    """Push a new ray origin off the surface, on the side it leaves toward."""
    offset_dir = normal
    if tm.dot(direction, normal) < 0.0:
        offset_dir = -normal
    return point + RAY_EPSILON * offset_dir


@ti.func
def _surface_emission(
    material: MaterialData, normal: vec3, direction: vec3, directional: ti.i32
) -> vec3:
    result = emitted(material)
    if directional == 1:
        result = emit(material, normal, direction)
    return result


@ti.func
def russian_roulette(throughput: vec3, draw: ti.f32):
    """Randomly terminate a path, keeping the estimate unbiased.

    The survival probability is the throughput's Euclidean norm clamped to
    [0, 1]. A surviving path is divided by that probability.

    Args:
        throughput: The path throughput after the latest bounce.
        draw: Uniform draw in [0, 1).

    Returns:
        A tuple of (new_throughput, survived).
    """
    survival = tm.clamp(tm.length(throughput), 0.0, 1.0)
    result = vec3(0.0, 0.0, 0.0)
    survived = 0
    if survival > 0.0 and draw <= survival:
        result = throughput / survival
        survived = 1
    return result, survived


@ti.func
def _sample_light(
    point: vec3,
    normal: vec3,
    weight: vec3,
    directional: ti.i32,
    u: ti.f32,
    v: ti.f32,
):
    """Next event estimation toward the designated light sphere.

    Samples a direction uniformly inside the cone the light subtends from
    ``point`` and, if the light is the first thing that direction hits,
    returns its emission weighted by the balance heuristic against the
    cosine-weighted BSDF density.

    Args:
        point: The diffuse vertex.
        normal: Outward normal at the vertex, on the side the light is sampled from.
        weight: Throughput before the vertex times the diffuse signal.
        directional: Whether emission is cosine attenuated.
        u: Uniform draw for the cone polar angle.
        v: Uniform draw for the cone azimuth.

    Returns:
        A tuple of (contribution, pdf_light). ``pdf_light`` is 0 when the
        vertex lies inside the light sphere and no sample was taken.
    """
    light_id = light_sphere[None]
    light = Sphere(center=sphere_centers[light_id], radius=sphere_radii[light_id])
    to_center = light.center - point
    dist_sq = tm.dot(to_center, to_center)
    radius_sq = light.radius * light.radius

    contribution = vec3(0.0, 0.0, 0.0)
    pdf_light = 0.0
    if dist_sq > radius_sq:
        cos_max = ti.sqrt(1.0 - radius_sq / dist_sq)
        pdf_light = 1.0 / (2.0 * tm.pi * (1.0 - cos_max))
        light_direction = sample_sphere_cap(to_center / ti.sqrt(dist_sq), cos_max, u, v)
        pdf_bsdf = cosine_hemisphere_pdf(normal, light_direction)
        if pdf_bsdf > 0.0:
            origin = point + RAY_EPSILON * normal
            if is_visible(origin, light_direction, light_id) == 1:
                distance = intersection_distance(origin, light_direction, light)
                light_normal = outward_normal(light, origin + distance * light_direction)
                material = get_material(sphere_material_ids[light_id])
                radiance = _surface_emission(material, light_normal, light_direction, directional)
                contribution = weight * radiance * (pdf_bsdf / (pdf_bsdf + pdf_light))
    return contribution, pdf_light


@ti.func
def trace_path(
    origin: vec3,
    direction: vec3,
    bounce_limit: ti.i32,
    use_nee: ti.i32,
    directional: ti.i32,
) -> vec3:
    """Estimate the radiance arriving along a ray.

    Args:
        origin: Ray origin.
        direction: Ray direction (unit length).
        bounce_limit: Maximum number of surface interactions.
        use_nee: 1 to sample the designated light at diffuse vertices.
        directional: 1 for cosine-attenuated emission, 0 for uniform.

    Returns:
        The estimated radiance (RGB, 0-255 scale).
    """
    energy = vec3(0.0, 0.0, 0.0)
    throughput = vec3(1.0, 1.0, 1.0)
    light_id = ti.select(light_enabled[None] == 1, light_sphere[None], -1)
    sample_lights = use_nee == 1 and light_id >= 0

    # MIS state from the previous vertex, set only when it sampled the light
    prev_light_sampled = 0
    prev_pdf_light = 0.0
    prev_normal = vec3(0.0, 0.0, 0.0)

    # Active flag for path continuation (no break inside ti.func loops)
    active = 1

    for _ in range(bounce_limit):
        if active == 1:
            rec = intersect_scene(origin, direction)

            if rec.hit == 0:
                energy += throughput * background(direction)
                active = 0
            else:
                material = get_material(rec.material_id)
                emission = _surface_emission(material, rec.normal, direction, directional)
                mis_weight = 1.0
                if prev_light_sampled == 1 and rec.sphere_id == light_id:
                    pdf_bsdf = cosine_hemisphere_pdf(prev_normal, direction)
                    mis_weight = pdf_bsdf / (pdf_bsdf + prev_pdf_light)
                energy += throughput * emission * mis_weight

                sample = sample_bsdf(
                    material,
                    rec.normal,
                    direction,
                    rec.distance,
                    ti.random(ti.f32),
                    ti.random(ti.f32),
                    ti.random(ti.f32),
                )
                prev_light_sampled = 0

                if sample.alive == 0:
                    active = 0
                else:
                    if sample_lights and sample.event == EVENT_DIFFUSE and rec.sphere_id != light_id:
                        contribution, pdf_light = _sample_light(
                            rec.point,
                            rec.normal,
                            throughput * sample.signal,
                            directional,
                            ti.random(ti.f32),
                            ti.random(ti.f32),
                        )
                        energy += contribution
                        if pdf_light > 0.0:
                            prev_light_sampled = 1
                            prev_pdf_light = pdf_light
                            prev_normal = rec.normal

                    throughput, survived = russian_roulette(
                        throughput * sample.signal, ti.random(ti.f32)
                    )
                    if survived == 0:
                        active = 0
                    else:
                        origin = _offset_ray_origin(rec.point, rec.normal, sample.direction)
                        direction = sample.direction

    return energy


@ti.func
def apply_gamma(value: ti.f32, reciprocal_gamma: ti.f32) -> ti.f32:
    """Gamma-correct one channel: clamp((v/255)^(1/gamma), 0, 1) * 255."""
    return tm.clamp((tm.max(value, 0.0) / 255.0) ** reciprocal_gamma, 0.0, 1.0) * 255.0


# =============================================================================
# Exposure Kernels
# =============================================================================


@ti.func
def _sanitize(color: vec3) -> vec3:
    result = color
    for c in ti.static(range(3)):
        if tm.isnan(result[c]) or tm.isinf(result[c]):
            result[c] = 0.0
    return result


@ti.kernel
def _expose_batch(
    start_index: ti.i32,
    start_pass: ti.i32,
    count: ti.i32,
    width: ti.i32,
    height: ti.i32,
    bounce_limit: ti.i32,
    use_nee: ti.i32,
    directional: ti.i32,
    reciprocal_gamma: ti.f32,
    pixels: ti.types.ndarray(dtype=ti.u8, ndim=1),
):
    total = width * height
    for i in range(count):
        index = start_index + i
        samples = start_pass
        if index >= total:
            index -= total
            samples += 1
        x = index % width
        y = index // width

        for _ in range(samples):
            ray = get_ray_jittered(x, y, width, height)
            radiance = trace_path(ray.origin, ray.direction, bounce_limit, use_nee, directional)
            _exposure_sum[x, y] += _sanitize(radiance)
            _exposure_count[x, y] += 1

        average = _exposure_sum[x, y] / ti.cast(_exposure_count[x, y], ti.f32)
        offset = 4 * index
        for c in ti.static(range(3)):
            pixels[offset + c] = ti.cast(apply_gamma(average[c], reciprocal_gamma), ti.u8)
        pixels[offset + 3] = ti.cast(255, ti.u8)


@ti.kernel
def _add_exposure(x: ti.i32, y: ti.i32, sample: vec3):
    _exposure_sum[x, y] += sample
    _exposure_count[x, y] += 1


# =============================================================================
# Public Rendering API
# =============================================================================


def expose_batch(
    cursor: int,
    count: int,
    pixels: np.ndarray,
    bounce_limit: int = DEFAULT_BOUNCE_LIMIT,
    gamma: float = DEFAULT_GAMMA,
    next_event_estimation: bool = False,
    directional_emission: bool = True,
) -> None:
    """Resample ``count`` consecutive cursor positions starting at ``cursor``.

    Each visited pixel takes ``cursor // (width * height) + 1`` new samples
    and its gamma-corrected average is written to ``pixels`` as RGBA.

    Args:
        cursor: Position of the first pixel visit.
        count: Number of pixel visits, at most width * height so no pixel
            is visited twice in one batch.
        pixels: uint8 array of length width * height * 4.
        bounce_limit: Maximum path length.
        gamma: Display gamma.
        next_event_estimation: Sample the designated light at diffuse vertices.
        directional_emission: Attenuate emission by the cosine at the emitter.

    Raises:
        RuntimeError: If the render target has not been set up.
        ValueError: If count exceeds the number of pixels.
    """
    _check_render_target_initialized()
    width, height = get_image_dimensions()
    total = width * height
    if count < 0 or count > total:
        raise ValueError(f"Batch size {count} must be in [0, {total}]")
    if count == 0:
        return

    _expose_batch(
        cursor % total,
        cursor // total + 1,
        count,
        width,
        height,
        bounce_limit,
        int(next_event_estimation),
        int(directional_emission),
        1.0 / gamma,
        pixels,
    )


def add_exposure(x: int, y: int, sample: tuple[float, float, float]) -> None:
    """Add one radiance sample to a pixel's exposure.

    Raises:
        RuntimeError: If the render target has not been set up.
        IndexError: If the pixel is outside the image.
    """
    _check_render_target_initialized()
    _check_pixel(x, y)
    _add_exposure(x, y, vec3(sample[0], sample[1], sample[2]))


def get_exposure(x: int, y: int) -> tuple[tuple[float, float, float], int]:
    """Get a pixel's radiance sum and sample count.

    Raises:
        RuntimeError: If the render target has not been set up.
        IndexError: If the pixel is outside the image.
    """
    _check_render_target_initialized()
    _check_pixel(x, y)
    total = _exposure_sum[x, y]
    return (float(total[0]), float(total[1]), float(total[2])), int(_exposure_count[x, y])


def get_image_numpy() -> np.ndarray:
    """Get the linear average radiance image.

    Pixels without samples are black.

    Returns:
        float32 array of shape (height, width, 3), row 0 at the top.

    Raises:
        RuntimeError: If the render target has not been set up.
    """
    _check_render_target_initialized()
    width, height = get_image_dimensions()

    sums = _exposure_sum.to_numpy()[:width, :height, :]
    counts = _exposure_count.to_numpy()[:width, :height]
    average = np.zeros_like(sums)
    sampled = counts > 0
    average[sampled] = sums[sampled] / counts[sampled][:, None]

    # Fields are indexed [x, y]; images are [row, column]
    return np.transpose(average, (1, 0, 2)).astype(np.float32)

"""Continuous-parameter material with a stochastically sampled BSDF.

A material has no discrete type. Every interaction picks one outcome from an
ordered cascade driven by the material's weights:

    1. specular reflection   p = mean Schlick reflectance
    2. transmission          p = transparency (0 on total internal reflection)
    3. absorption            p = metalness
    4. diffuse reflection    the remaining probability mass

All outcomes are tested against a single uniform draw. Outcome i fires when
the draw falls below the accumulated mass

    mass_i = (1 - mass_{i-1}) * p_i + mass_{i-1}

and no earlier outcome fired, so each probability is relative to the mass
left over by the outcomes before it.

Rays leaving a medium (hitting the inside of a surface) refract back out,
tinted by a Beer-Lambert style volume term, or die on total internal
reflection.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from lenstrace.materials.material import Material, add_material
    >>> glass = add_material(Material(albedo=(0.9, 0.9, 0.9), refraction_index=1.5,
    ...                               transparency=1.0, glossiness=1.0))
    >>> # sample = sample_bsdf(get_material(glass), normal, direction, length,
    >>> #                      choice, u, v) inside a Taichi kernel
"""

from dataclasses import asdict, dataclass
from typing import Any

import taichi as ti
import taichi.math as tm

from lenstrace.core.ray import (
    component_average,
    max_component,
    reflect,
    refraction,
    sample_cone,
    sample_cosine_hemisphere,
    schlick_reflectance,
)

# Type alias for 3D vectors
vec3 = tm.vec3

# Interaction outcomes, in cascade order
EVENT_SPECULAR = 0
EVENT_TRANSMIT = 1
EVENT_ABSORB = 2
EVENT_DIFFUSE = 3
# Ray hit the inside of a surface and tried to leave the medium
EVENT_EXIT = 4


@dataclass(frozen=True)
class Material:
    """Material parameters as provided by scene construction.

    Attributes:
        albedo: Diffuse reflectance, and the volume tint of transparent media.
        refraction_index: Index of refraction of the interior medium.
        transparency: Probability of transmission, in [0, 1].
        emitted_radiance: Emitted radiance per channel (>= 0).
        fresnel_reflectance: Reflectance at normal incidence (F0) per channel.
        metalness: Absorption probability and specular tint weight, in [0, 1].
        glossiness: 1 for a perfect mirror, 0 for the widest glossy cone.
    """

    albedo: tuple[float, float, float] = (0.8, 0.8, 0.8)
    refraction_index: float = 1.0
    transparency: float = 0.0
    emitted_radiance: tuple[float, float, float] = (0.0, 0.0, 0.0)
    fresnel_reflectance: tuple[float, float, float] = (0.04, 0.04, 0.04)
    metalness: float = 0.0
    glossiness: float = 0.0

    @property
    def is_emissive(self) -> bool:
        """Whether any channel of the emitted radiance is non-zero."""
        return max(self.emitted_radiance) > 0.0

    def to_dict(self) -> dict[str, Any]:
        """Export the parameters as a plain dictionary."""
        data = asdict(self)
        for key, value in data.items():
            if isinstance(value, tuple):
                data[key] = list(value)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Material":
        """Create a material from a dictionary produced by to_dict()."""
        params = dict(data)
        for key in ("albedo", "emitted_radiance", "fresnel_reflectance"):
            if key in params:
                params[key] = tuple(float(c) for c in params[key])
        return cls(**params)


@ti.dataclass
class MaterialData:
    """Material parameters as stored in the GPU-side material table."""

    albedo: vec3
    refraction_index: ti.f32
    transparency: ti.f32
    emitted_radiance: vec3
    fresnel_reflectance: vec3
    metalness: ti.f32
    glossiness: ti.f32


@ti.dataclass
class BSDFSample:
    """Result of one material interaction.

    Attributes:
        direction: The new ray direction (normalized). Zero if not alive.
        signal: Throughput multiplier for the new path segment.
        reflected: 1 for specular-caused events (reflection, transmission,
            exit), 0 for diffuse or absorbing events.
        alive: 0 when the path terminates here (absorption, or total internal
            reflection while leaving a medium).
        event: Which outcome fired (EVENT_* constant).
    """

    direction: vec3
    signal: vec3
    reflected: ti.i32
    alive: ti.i32
    event: ti.i32


# =============================================================================
# Cascaded Outcome Selection
# =============================================================================


@ti.func
def select_interaction(
    choice: ti.f32,
    reflect_p: ti.f32,
    transmit_p: ti.f32,
    absorb_p: ti.f32,
) -> ti.i32:
    """Pick one outcome of the cascade for a single uniform draw.

    Args:
        choice: Uniform draw in [0, 1).
        reflect_p: Probability of specular reflection.
        transmit_p: Probability of transmission given no reflection.
        absorb_p: Probability of absorption given neither of the above.

    Returns:
        EVENT_SPECULAR, EVENT_TRANSMIT, EVENT_ABSORB or EVENT_DIFFUSE.
    """
    weights = ti.Vector([reflect_p, transmit_p, absorb_p])
    event = EVENT_DIFFUSE
    excluded = 0.0
    for i in ti.static(range(3)):
        mass = (1.0 - excluded) * weights[i] + excluded
        if event == EVENT_DIFFUSE and choice < mass:
            event = i
        excluded = mass
    return event


# =============================================================================
# BSDF Sampling and Emission
# =============================================================================


@ti.func
def sample_bsdf(
    material: MaterialData,
    normal: vec3,
    direction: vec3,
    length: ti.f32,
    choice: ti.f32,
    u: ti.f32,
    v: ti.f32,
) -> BSDFSample:
    """Sample one interaction of a ray with a surface.

    Args:
        material: The surface material.
        normal: The outward surface normal (normalized).
        direction: The incoming ray direction (normalized).
        length: Distance the ray travelled to reach the surface. For rays
            leaving a medium this is the path length inside it.
        choice: Uniform draw selecting the cascade outcome.
        u: Uniform draw for direction sampling.
        v: Uniform draw for direction sampling.

    Returns:
        A BSDFSample. Absorption and total internal reflection on exit give
        a dead sample (alive == 0, zero signal).
    """
    white = vec3(1.0, 1.0, 1.0)
    out_direction = vec3(0.0, 0.0, 0.0)
    signal = vec3(0.0, 0.0, 0.0)
    reflected = 0
    alive = 0
    event = EVENT_EXIT

    if tm.dot(direction, normal) < 0.0:
        reflectance = component_average(
            schlick_reflectance(direction, normal, material.fresnel_reflectance)
        )
        transmitted, can_transmit = refraction(direction, normal, 1.0, material.refraction_index)
        transmit_p = ti.select(can_transmit == 1, material.transparency, 0.0)
        event = select_interaction(choice, reflectance, transmit_p, material.metalness)

        if event == EVENT_SPECULAR:
            mirror = reflect(direction, normal)
            out_direction = sample_cone(mirror, 1.0 - material.glossiness, u, v)
            if tm.dot(out_direction, normal) <= 0.0:
                out_direction = mirror
            signal = tm.mix(white, material.fresnel_reflectance, material.metalness)
            reflected = 1
            alive = 1
        elif event == EVENT_TRANSMIT:
            out_direction = transmitted
            signal = white
            reflected = 1
            alive = 1
        elif event == EVENT_DIFFUSE:
            # Cosine-weighted sampling cancels the cosine term
            out_direction = sample_cosine_hemisphere(normal, u, v)
            signal = material.albedo / tm.pi
            alive = 1
    else:
        exited, can_exit = refraction(direction, -normal, material.refraction_index, 1.0)
        if can_exit == 1:
            volume = tm.min((1.0 - material.transparency) * length * length, 1.0)
            out_direction = exited
            signal = tm.mix(white, material.albedo, volume)
            reflected = 1
            alive = 1

    return BSDFSample(
        direction=out_direction,
        signal=signal,
        reflected=reflected,
        alive=alive,
        event=event,
    )


@ti.func
def emitted(material: MaterialData) -> vec3:
    """Emitted radiance without directional attenuation."""
    return material.emitted_radiance


@ti.func
def emit(material: MaterialData, normal: vec3, direction: vec3) -> vec3:
    """Emitted radiance toward a viewer, attenuated by the cosine at the surface.

    Args:
        material: The surface material.
        normal: The outward surface normal (normalized).
        direction: The direction of the ray that hit the surface.

    Returns:
        emitted_radiance * max(dot(normal, -direction), 0), or zero for
        non-emissive materials.
    """
    radiance = vec3(0.0, 0.0, 0.0)
    if max_component(material.emitted_radiance) > 0.0:
        radiance = material.emitted_radiance * tm.max(tm.dot(normal, -direction), 0.0)
    return radiance


# =============================================================================
# Material Field Storage (for scene-level material management)
# =============================================================================

# Maximum number of materials in the scene
MAX_MATERIALS = 256

# Storage for material properties (Structure of Arrays)
material_albedos = ti.Vector.field(3, dtype=ti.f32, shape=MAX_MATERIALS)
material_refraction_indices = ti.field(dtype=ti.f32, shape=MAX_MATERIALS)
material_transparencies = ti.field(dtype=ti.f32, shape=MAX_MATERIALS)
material_emissions = ti.Vector.field(3, dtype=ti.f32, shape=MAX_MATERIALS)
material_fresnels = ti.Vector.field(3, dtype=ti.f32, shape=MAX_MATERIALS)
material_metalness = ti.field(dtype=ti.f32, shape=MAX_MATERIALS)
material_glossiness = ti.field(dtype=ti.f32, shape=MAX_MATERIALS)
num_materials = ti.field(dtype=ti.i32, shape=())


def _check_unit_color(name: str, color: tuple[float, float, float]) -> None:
    for i, component in enumerate(color):
        if component < 0.0 or component > 1.0:
            raise ValueError(f"{name} component {i} = {component} is outside [0, 1].")


def _check_unit_interval(name: str, value: float) -> None:
    if value < 0.0 or value > 1.0:
        raise ValueError(f"{name} = {value} is outside [0, 1].")


def validate_material(material: Material) -> None:
    """Check material parameters against their documented ranges.

    Raises:
        ValueError: If any parameter is out of range.
    """
    _check_unit_color("Albedo", material.albedo)
    _check_unit_color("Fresnel reflectance", material.fresnel_reflectance)
    _check_unit_interval("Transparency", material.transparency)
    _check_unit_interval("Metalness", material.metalness)
    _check_unit_interval("Glossiness", material.glossiness)
    if material.refraction_index <= 0.0:
        raise ValueError(f"Refraction index must be positive, got {material.refraction_index}")
    for i, component in enumerate(material.emitted_radiance):
        if component < 0.0:
            raise ValueError(f"Emitted radiance component {i} = {component} is negative.")


def clear_materials() -> None:
    """Clear all materials.

    Resets the material count to zero. Existing data in the fields will be
    overwritten when new materials are added.
    """
    num_materials[None] = 0


def add_material(material: Material) -> int:
    """Add a material to the material table.

    Args:
        material: The material parameters.

    Returns:
        The index of the added material.

    Raises:
        RuntimeError: If the maximum number of materials is exceeded.
        ValueError: If any parameter is out of range.
    """
    validate_material(material)

    idx = num_materials[None]
    if idx >= MAX_MATERIALS:
        raise RuntimeError(f"Maximum number of materials ({MAX_MATERIALS}) exceeded")

    material_albedos[idx] = list(material.albedo)
    material_refraction_indices[idx] = material.refraction_index
    material_transparencies[idx] = material.transparency
    material_emissions[idx] = list(material.emitted_radiance)
    material_fresnels[idx] = list(material.fresnel_reflectance)
    material_metalness[idx] = material.metalness
    material_glossiness[idx] = material.glossiness
    num_materials[None] = idx + 1
    return idx


def get_material_count() -> int:
    """Get the number of materials in the table."""
    return int(num_materials[None])


@ti.func
def get_material(material_id: ti.i32) -> MaterialData:
    """Load a material from the table by index."""
    return MaterialData(
        albedo=material_albedos[material_id],
        refraction_index=material_refraction_indices[material_id],
        transparency=material_transparencies[material_id],
        emitted_radiance=material_emissions[material_id],
        fresnel_reflectance=material_fresnels[material_id],
        metalness=material_metalness[material_id],
        glossiness=material_glossiness[material_id],
    )

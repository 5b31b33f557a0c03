"""Materials module for the stochastic BSDF.

Components:
    material: Continuous-parameter material, its Taichi-side table, and the
        cascaded BSDF sampler (specular / transmit / absorb / diffuse)

There is a single material model. Plastic, glass, metal and light sources
are all expressed through the same parameters (albedo, refraction index,
transparency, emitted radiance, F0, metalness, glossiness), and the
behaviour of each interaction is chosen stochastically from them.
"""

from .material import (
    EVENT_ABSORB,
    EVENT_DIFFUSE,
    EVENT_EXIT,
    EVENT_SPECULAR,
    EVENT_TRANSMIT,
    MAX_MATERIALS,
    BSDFSample,
    Material,
    MaterialData,
    add_material,
    clear_materials,
    emit,
    emitted,
    get_material,
    get_material_count,
    sample_bsdf,
    select_interaction,
    validate_material,
)

__all__ = [
    "Material",
    "MaterialData",
    "BSDFSample",
    "add_material",
    "clear_materials",
    "get_material",
    "get_material_count",
    "validate_material",
    "sample_bsdf",
    "select_interaction",
    "emit",
    "emitted",
    "MAX_MATERIALS",
    "EVENT_SPECULAR",
    "EVENT_TRANSMIT",
    "EVENT_ABSORB",
    "EVENT_DIFFUSE",
    "EVENT_EXIT",
]

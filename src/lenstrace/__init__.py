"""Progressive Monte Carlo path tracer built on Taichi.

Renders scenes of analytic spheres with a single continuous material model
through a thin-lens camera, refining the image in time-boxed steps.

Subpackages:
    core: Ray utilities, light transport and the progressive Tracer
    geometry: Sphere primitive and intersection
    materials: Material parameters and the cascaded BSDF
    scene: Sphere table, scene manager and the box test scene
    camera: Thin-lens camera with ray generation
    preview: PNG export and the interactive preview window
"""

__version__ = "0.1.0"

"""Camera module for primary ray generation.

Components:
    thin_lens: Thin-lens camera with depth of field. An infinite f-number
        turns it into a pinhole camera.

Ray generation runs inside Taichi kernels; the camera configuration is
uploaded once per render with setup_camera().
"""

from .thin_lens import (
    CameraConfigurationError,
    ThinLensCamera,
    get_camera_info,
    get_ray,
    get_ray_jittered,
    is_camera_configured,
    setup_camera,
)

__all__ = [
    "ThinLensCamera",
    "CameraConfigurationError",
    "setup_camera",
    "is_camera_configured",
    "get_ray",
    "get_ray_jittered",
    "get_camera_info",
]

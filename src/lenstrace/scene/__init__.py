"""Scene module for scene management and ray-scene queries.

Components:
    intersection: Sphere table, nearest-hit queries, shadow visibility,
        the background color and the designated light
    manager: Scene manager coordinating spheres, materials, camera and light
    box: Factory for the box test scene

Scene data lives in module-level Taichi fields (Structure-of-Arrays layout)
so kernels can read it directly. Only one scene is loaded at a time.
"""

from .box import BoxSceneParams, create_box_scene
from .intersection import (
    MAX_SPHERES,
    SceneHitRecord,
    add_sphere,
    background,
    clear_scene,
    disable_light,
    get_background,
    get_sphere_count,
    intersect_scene,
    is_light_enabled,
    is_visible,
    set_background,
    setup_light,
)
from .manager import MaterialInfo, SceneConfig, SceneManager, SphereInfo

__all__ = [
    # Intersection module
    "SceneHitRecord",
    "add_sphere",
    "clear_scene",
    "get_sphere_count",
    "set_background",
    "get_background",
    "background",
    "intersect_scene",
    "is_visible",
    "setup_light",
    "disable_light",
    "is_light_enabled",
    "MAX_SPHERES",
    # Manager module
    "SceneManager",
    "MaterialInfo",
    "SphereInfo",
    "SceneConfig",
    # Box scene
    "BoxSceneParams",
    "create_box_scene",
]

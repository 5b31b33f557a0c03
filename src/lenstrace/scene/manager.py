"""Scene manager coordinating spheres, materials, camera and light.

The SceneManager is the Python-side owner of everything a render reads:
the material table, the sphere table, the camera, the background color and
the optional light sphere used for next event estimation. It keeps a Python
mirror of what it uploaded so a scene can be exported and rebuilt.

The Taichi fields behind a scene are module-level, so only one scene is
live at a time; creating a SceneManager clears whatever was loaded before.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from lenstrace.camera.thin_lens import ThinLensCamera
    >>> from lenstrace.materials.material import Material
    >>> from lenstrace.scene.manager import SceneManager
    >>> scene = SceneManager()
    >>> lamp = scene.add_material(Material(emitted_radiance=(2000.0, 2000.0, 2000.0)))
    >>> light, _ = scene.add_sphere_with_material((0.0, 13.0, -8.0), 10.5, lamp)
    >>> scene.set_light(light)
    >>> scene.set_camera(ThinLensCamera(position=(0.0, 0.0, 7.0)))
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Any

from lenstrace.camera.thin_lens import ThinLensCamera, setup_camera
from lenstrace.materials.material import (
    MAX_MATERIALS,
    Material,
    add_material,
    clear_materials,
    get_material_count,
)
from lenstrace.scene.intersection import (
    MAX_SPHERES,
    add_sphere,
    clear_scene,
    disable_light,
    get_sphere_count,
    set_background,
    setup_light,
)

logger = logging.getLogger(__name__)


@dataclass
class MaterialInfo:
    """Information about a registered material.

    Attributes:
        material_id: Index in the material table.
        material: The material parameters as provided during creation.
    """

    material_id: int
    material: Material


@dataclass
class SphereInfo:
    """Information about a sphere in the scene.

    Attributes:
        sphere_index: The index in the sphere storage arrays.
        center: The center of the sphere.
        radius: The radius of the sphere.
        material_id: The material ID assigned to the sphere.
    """

    sphere_index: int
    center: tuple[float, float, float]
    radius: float
    material_id: int


@dataclass
class SceneConfig:
    """Configuration for scene serialization.

    Attributes:
        materials: Material parameter dictionaries, in table order.
        spheres: Sphere dictionaries (center, radius, material_id).
        camera: Camera parameters, or None when no camera is set. A pinhole
            camera stores its infinite f-number as None so the dictionary
            stays valid JSON.
        light: Index of the light sphere, or None.
        background: Background radiance.
    """

    materials: list[dict[str, Any]] = field(default_factory=list)
    spheres: list[dict[str, Any]] = field(default_factory=list)
    camera: dict[str, Any] | None = None
    light: int | None = None
    background: list[float] = field(default_factory=lambda: [0.0, 0.0, 0.0])


def _as_triple(values) -> tuple[float, float, float]:
    return (float(values[0]), float(values[1]), float(values[2]))


class SceneManager:
    """Builds and owns the scene read by the tracer.

    Attributes:
        materials: MaterialInfo for every registered material.
        spheres: SphereInfo for every sphere in the scene.
        camera: The current camera, or None.
        light_index: Sphere index of the designated light, or None.
        background: The background radiance.

    Example:
        >>> scene = SceneManager()
        >>> red = scene.add_material(Material(albedo=(0.8, 0.1, 0.1)))
        >>> glass = scene.add_material(Material(refraction_index=1.5, transparency=1.0))
        >>> scene.add_sphere_with_material((0.0, 0.0, -8.0), 1.0, red)
        >>> scene.add_sphere_with_material((2.0, 0.0, -8.0), 1.0, glass)
    """

    def __init__(self) -> None:
        """Initialize an empty scene."""
        self.materials: list[MaterialInfo] = []
        self.spheres: list[SphereInfo] = []
        self.camera: ThinLensCamera | None = None
        self.light_index: int | None = None
        self.background: tuple[float, float, float] = (0.0, 0.0, 0.0)
        self._clear_all()

    def _clear_all(self) -> None:
        clear_scene()
        clear_materials()
        disable_light()
        self.materials.clear()
        self.spheres.clear()
        self.camera = None
        self.light_index = None
        self.background = (0.0, 0.0, 0.0)

    def clear(self) -> None:
        """Clear the entire scene.

        Resets the sphere and material tables, the light and the background.
        The camera fields keep their values until the next set_camera().
        """
        self._clear_all()

    # =========================================================================
    # Material Management
    # =========================================================================

    def add_material(self, material: Material) -> int:
        """Add a material to the scene.

        Args:
            material: The material parameters.

        Returns:
            The material ID for this material.

        Raises:
            RuntimeError: If the maximum number of materials is exceeded.
            ValueError: If any parameter is out of range.
        """
        material_id = add_material(material)
        self.materials.append(MaterialInfo(material_id=material_id, material=material))
        return material_id

    def get_material_count(self) -> int:
        """Get the total number of materials in the scene."""
        return get_material_count()

    def get_material_info(self, material_id: int) -> MaterialInfo | None:
        """Get information about a material by ID, or None if not found."""
        if 0 <= material_id < len(self.materials):
            return self.materials[material_id]
        return None

    # =========================================================================
    # Primitive Management
    # =========================================================================

    def add_sphere(
        self,
        center: tuple[float, float, float],
        radius: float,
        material_id: int,
    ) -> int:
        """Add a sphere to the scene.

        Args:
            center: The center point of the sphere as (x, y, z).
            radius: The radius of the sphere (should be positive).
            material_id: The material ID to assign to the sphere.

        Returns:
            The index of the added sphere.

        Raises:
            RuntimeError: If the maximum number of spheres is exceeded.
            ValueError: If material_id is invalid.
        """
        if material_id < 0 or material_id >= get_material_count():
            raise ValueError(f"Invalid material_id: {material_id}")

        center = _as_triple(center)
        sphere_index = add_sphere(center, radius, material_id)
        self.spheres.append(
            SphereInfo(
                sphere_index=sphere_index,
                center=center,
                radius=radius,
                material_id=material_id,
            )
        )
        return sphere_index

    def add_sphere_with_material(
        self,
        center: tuple[float, float, float],
        radius: float,
        material_id: int,
    ) -> tuple[int, int]:
        """Add a sphere with a pre-created material.

        Returns:
            Tuple of (sphere_index, material_id).
        """
        sphere_index = self.add_sphere(center, radius, material_id)
        return sphere_index, material_id

    def add_material_sphere(
        self,
        center: tuple[float, float, float],
        radius: float,
        material: Material,
    ) -> tuple[int, int]:
        """Add a sphere with a new material in one call.

        Returns:
            Tuple of (sphere_index, material_id).
        """
        material_id = self.add_material(material)
        sphere_index = self.add_sphere(center, radius, material_id)
        return sphere_index, material_id

    def get_sphere_count(self) -> int:
        """Get the number of spheres in the scene."""
        return get_sphere_count()

    # =========================================================================
    # Camera, Light and Background
    # =========================================================================

    def set_camera(self, camera: ThinLensCamera) -> None:
        """Use ``camera`` for primary rays and upload it to the GPU."""
        setup_camera(camera)
        self.camera = camera

    def set_light(self, sphere_index: int) -> None:
        """Designate a sphere as the light sampled by next event estimation.

        Args:
            sphere_index: Index of an emissive sphere.

        Raises:
            ValueError: If the index is out of range or the sphere's material
                does not emit light.
        """
        if sphere_index < 0 or sphere_index >= len(self.spheres):
            raise ValueError(f"Invalid light sphere index: {sphere_index}")
        sphere = self.spheres[sphere_index]
        if not self.materials[sphere.material_id].material.is_emissive:
            raise ValueError(f"Sphere {sphere_index} has a non-emissive material")

        setup_light(sphere_index)
        self.light_index = sphere_index
        logger.info("Light set to sphere %d (radius %.3f)", sphere_index, sphere.radius)

    def clear_light(self) -> None:
        """Stop sampling a light directly."""
        disable_light()
        self.light_index = None

    def set_background(self, color: tuple[float, float, float]) -> None:
        """Set the radiance seen by rays that escape the scene."""
        color = _as_triple(color)
        if min(color) < 0.0:
            raise ValueError(f"Background radiance must be non-negative, got {color}")
        set_background(color)
        self.background = color

    # =========================================================================
    # Scene Serialization
    # =========================================================================

    def to_config(self) -> SceneConfig:
        """Export the scene to a configuration object."""
        config = SceneConfig(light=self.light_index, background=list(self.background))

        for info in self.materials:
            config.materials.append(info.material.to_dict())

        for sphere in self.spheres:
            config.spheres.append(
                {
                    "center": list(sphere.center),
                    "radius": sphere.radius,
                    "material_id": sphere.material_id,
                }
            )

        if self.camera is not None:
            camera_config = {
                "position": list(self.camera.position),
                "sensor_size": self.camera.sensor_size,
                "focal_length": self.camera.focal_length,
                "focus_distance": self.camera.focus_distance,
                "fstop": None if math.isinf(self.camera.fstop) else self.camera.fstop,
                "horizontal_angle": self.camera.horizontal_angle,
                "vertical_angle": self.camera.vertical_angle,
            }
            config.camera = camera_config

        return config

    def from_config(self, config: SceneConfig) -> None:
        """Load a scene from a configuration object.

        Clears the current scene and loads the configuration. Materials are
        loaded first since spheres refer to them.

        Raises:
            ValueError: If the configuration contains invalid data.
        """
        self.clear()

        for material_config in config.materials:
            self.add_material(Material.from_dict(material_config))

        for sphere_config in config.spheres:
            self.add_sphere(
                _as_triple(sphere_config.get("center", [0.0, 0.0, 0.0])),
                float(sphere_config.get("radius", 1.0)),
                int(sphere_config.get("material_id", 0)),
            )

        self.set_background(config.background)

        if config.camera is not None:
            camera_params = dict(config.camera)
            camera_params["position"] = _as_triple(camera_params["position"])
            if "fstop" in camera_params and camera_params["fstop"] is None:
                camera_params["fstop"] = math.inf
            self.set_camera(ThinLensCamera(**camera_params))

        if config.light is not None:
            self.set_light(config.light)

    def to_dict(self) -> dict[str, Any]:
        """Export the scene to a dictionary (for JSON serialization)."""
        config = self.to_config()
        return {
            "materials": config.materials,
            "spheres": config.spheres,
            "camera": config.camera,
            "light": config.light,
            "background": config.background,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SceneManager":
        """Build a new scene from a dictionary produced by to_dict()."""
        config = SceneConfig(
            materials=data.get("materials", []),
            spheres=data.get("spheres", []),
            camera=data.get("camera"),
            light=data.get("light"),
            background=data.get("background", [0.0, 0.0, 0.0]),
        )
        scene = cls()
        scene.from_config(config)
        return scene

    # =========================================================================
    # Capacity Information
    # =========================================================================

    @staticmethod
    def get_max_spheres() -> int:
        """Get the maximum number of spheres supported."""
        return MAX_SPHERES

    @staticmethod
    def get_max_materials() -> int:
        """Get the maximum number of materials supported."""
        return MAX_MATERIALS

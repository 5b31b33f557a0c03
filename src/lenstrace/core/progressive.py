"""Time-boxed progressive renderer.

The Tracer walks a cursor over the image in row-major order. Each call to
``update`` resamples pixels at the cursor until its time budget runs out,
writing the refreshed gamma-corrected pixels into the caller's RGBA buffer.
The image is refined by successive passes over all pixels, and pass ``k``
adds ``k`` samples to every pixel it visits.

Rendering can stop after any ``update`` call and resume later from the
cursor. The buffer only ever holds fully written pixels.

Example:
    >>> import numpy as np
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from lenstrace.core.progressive import Tracer
    >>> from lenstrace.scene.box import create_box_scene
    >>>
    >>> scene = create_box_scene()
    >>> tracer = Tracer(scene, 320, 240)
    >>> pixels = np.zeros(320 * 240 * 4, dtype=np.uint8)
    >>> tracer.update(pixels, 0.05)  # one 50 ms tick
"""

import logging
import time
from collections.abc import Callable
from dataclasses import asdict, dataclass
from typing import Any

import numpy as np
import numpy.typing as npt

from lenstrace.core.integrator import (
    DEFAULT_BOUNCE_LIMIT,
    DEFAULT_GAMMA,
    expose_batch,
    get_exposure,
    get_image_numpy,
    setup_render_target,
)
from lenstrace.scene.intersection import is_light_enabled
from lenstrace.scene.manager import SceneManager

logger = logging.getLogger(__name__)

# Clock returning seconds as a float
Clock = Callable[[], float]


@dataclass
class TracerConfig:
    """Rendering options for a Tracer.

    Attributes:
        bounce_limit: Maximum number of surface interactions per path.
        gamma: Display gamma applied when writing the output buffer.
        next_event_estimation: Sample the scene's light at diffuse vertices.
        directional_emission: Attenuate emission by the cosine at the emitter.
        batch_size: Pixel visits per kernel launch. The time budget is
            checked between launches; batches are capped at the image size.
    """

    bounce_limit: int = DEFAULT_BOUNCE_LIMIT
    gamma: float = DEFAULT_GAMMA
    next_event_estimation: bool = False
    directional_emission: bool = True
    batch_size: int = 256

    def __post_init__(self) -> None:
        if self.bounce_limit < 1:
            raise ValueError(f"bounce_limit must be at least 1, got {self.bounce_limit}")
        if not self.gamma > 0.0:
            raise ValueError(f"gamma must be positive, got {self.gamma}")
        if self.batch_size < 1:
            raise ValueError(f"batch_size must be at least 1, got {self.batch_size}")

    def to_dict(self) -> dict[str, Any]:
        """Export the options as a plain dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TracerConfig":
        """Create a config from a dictionary, ignoring unknown keys."""
        known = {key: data[key] for key in cls.__dataclass_fields__ if key in data}
        return cls(**known)


class Tracer:
    """Progressive path tracer over a scene.

    Creating a Tracer resets the shared exposure buffer, so only the most
    recently created Tracer renders correctly.

    Attributes:
        width: Image width in pixels.
        height: Image height in pixels.
        cursor: Number of pixel visits performed so far.
        pass_count: Samples per visit at the current cursor position.
    """

    def __init__(
        self,
        scene: SceneManager,
        width: int,
        height: int,
        config: TracerConfig | None = None,
        clock: Clock = time.perf_counter,
    ) -> None:
        """Initialize the tracer.

        Args:
            scene: The scene to render. Its camera must be set.
            width: Image width in pixels.
            height: Image height in pixels.
            config: Rendering options; defaults to TracerConfig().
            clock: Monotonic clock in seconds, used for time budgets.

        Raises:
            ValueError: If the dimensions are invalid.
            RuntimeError: If the scene has no camera.
        """
        if scene.camera is None:
            raise RuntimeError("Scene has no camera. Call SceneManager.set_camera() first.")

        setup_render_target(width, height)
        self._scene = scene
        self._width = width
        self._height = height
        self._config = config if config is not None else TracerConfig()
        self._clock = clock
        self._cursor = 0

        if self._config.next_event_estimation and not is_light_enabled():
            logger.warning("Next event estimation requested but the scene has no light")

        logger.info(
            "Tracer created: %dx%d, %d spheres, config %s",
            width,
            height,
            scene.get_sphere_count(),
            self._config,
        )

    @property
    def width(self) -> int:
        """Get the image width."""
        return self._width

    @property
    def height(self) -> int:
        """Get the image height."""
        return self._height

    @property
    def config(self) -> TracerConfig:
        """Get the rendering options."""
        return self._config

    @property
    def cursor(self) -> int:
        """Get the number of pixel visits performed so far."""
        return self._cursor

    @property
    def pass_count(self) -> int:
        """Samples each pixel visit takes at the current cursor position."""
        return self._cursor // (self._width * self._height) + 1

    def pixel_for_index(self, index: int) -> tuple[int, int]:
        """Map a cursor position to the pixel it visits as (x, y)."""
        wrapped = index % (self._width * self._height)
        return wrapped % self._width, wrapped // self._width

    def _check_buffer(self, output_buffer: npt.NDArray[np.uint8]) -> None:
        expected = self._width * self._height * 4
        if not isinstance(output_buffer, np.ndarray) or output_buffer.dtype != np.uint8:
            raise ValueError("Output buffer must be a numpy uint8 array")
        if output_buffer.ndim != 1 or output_buffer.shape[0] != expected:
            raise ValueError(
                f"Output buffer must have shape ({expected},), got {output_buffer.shape}"
            )
        if not output_buffer.flags["C_CONTIGUOUS"]:
            raise ValueError("Output buffer must be contiguous")

    def _expose(self, output_buffer: npt.NDArray[np.uint8], count: int) -> None:
        expose_batch(
            self._cursor,
            count,
            output_buffer,
            bounce_limit=self._config.bounce_limit,
            gamma=self._config.gamma,
            next_event_estimation=self._config.next_event_estimation,
            directional_emission=self._config.directional_emission,
        )
        self._cursor += count

    def update(self, output_buffer: npt.NDArray[np.uint8], time_budget: float) -> int:
        """Refine the image for roughly ``time_budget`` seconds.

        Batches are launched while the elapsed time is below the budget; the
        last batch may run past it. A non-positive budget does nothing.

        Args:
            output_buffer: uint8 array of length width * height * 4 (RGBA,
                row-major, top-left origin). Only resampled pixels are written.
            time_budget: Time budget in seconds.

        Returns:
            The number of pixel visits performed.

        Raises:
            ValueError: If the buffer has the wrong dtype or shape.
        """
        self._check_buffer(output_buffer)

        batch = min(self._config.batch_size, self._width * self._height)
        start = self._clock()
        exposed = 0
        while self._clock() - start < time_budget:
            self._expose(output_buffer, batch)
            exposed += batch

        logger.debug(
            "Exposed %d pixels in %.4fs (cursor %d, pass %d)",
            exposed,
            self._clock() - start,
            self._cursor,
            self.pass_count,
        )
        return exposed

    def average_at(self, x: int, y: int) -> tuple[float, float, float]:
        """Linear average radiance of a pixel, black if it has no samples.

        Raises:
            IndexError: If the pixel is outside the image.
        """
        total, count = get_exposure(x, y)
        if count == 0:
            return (0.0, 0.0, 0.0)
        return (total[0] / count, total[1] / count, total[2] / count)

    def sample_count_at(self, x: int, y: int) -> int:
        """Number of samples accumulated for a pixel.

        Raises:
            IndexError: If the pixel is outside the image.
        """
        return get_exposure(x, y)[1]

    def get_image_numpy(self) -> npt.NDArray[np.float32]:
        """Linear average radiance image of shape (height, width, 3)."""
        return get_image_numpy()

    def __repr__(self) -> str:
        return (
            f"Tracer(width={self._width}, height={self._height}, "
            f"cursor={self._cursor}, pass_count={self.pass_count})"
        )

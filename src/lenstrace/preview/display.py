"""Interactive preview window driving the tracer in fixed time ticks.

Every frame calls ``Tracer.update`` with a small time budget, copies the
refreshed RGBA buffer into a display field and presents it with Taichi
GGUI. Closing the window stops rendering; the tracer can be resumed later.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.gpu)
    >>> from lenstrace.core.progressive import Tracer
    >>> from lenstrace.preview.display import PreviewWindow
    >>> from lenstrace.scene.box import create_box_scene
    >>>
    >>> tracer = Tracer(create_box_scene(), 640, 480)
    >>> PreviewWindow(tracer).run()
"""

from __future__ import annotations

import logging
import os
from typing import TYPE_CHECKING

import numpy as np
import numpy.typing as npt
import taichi as ti

if TYPE_CHECKING:
    from lenstrace.core.progressive import Tracer

logger = logging.getLogger(__name__)

# Time budget per displayed frame, in seconds
DEFAULT_TICK_SECONDS = 0.05


def frame_to_display_array(
    pixels: npt.NDArray[np.uint8],
    width: int,
    height: int,
) -> npt.NDArray[np.float32]:
    """Convert an RGBA output buffer to a display field layout.

    Taichi fields use (x, y) indexing with the origin at the bottom left,
    while the buffer is row-major with the top row first.

    Args:
        pixels: uint8 RGBA buffer of length width * height * 4.
        width: Image width in pixels.
        height: Image height in pixels.

    Returns:
        A contiguous float32 array of shape (width, height, 3) in [0, 1].
    """
    image = pixels.reshape(height, width, 4)[:, :, :3].astype(np.float32) / 255.0
    return np.ascontiguousarray(np.transpose(np.flipud(image), (1, 0, 2)))


class PreviewWindow:
    """Taichi GGUI window showing a progressively refined render.

    Attributes:
        tracer: The tracer being displayed.
        pixels: The RGBA buffer the tracer writes into.
        display_image: Taichi field shown on the canvas.
    """

    def __init__(
        self,
        tracer: Tracer,
        *,
        tick_seconds: float = DEFAULT_TICK_SECONDS,
        title: str = "lenstrace",
    ) -> None:
        self.tracer = tracer
        self.pixels = np.zeros(tracer.width * tracer.height * 4, dtype=np.uint8)
        self._tick_seconds = tick_seconds
        self._title = title
        self._window: ti.ui.Window | None = None
        self.display_image: ti.MatrixField = ti.Vector.field(
            3, dtype=ti.f32, shape=(tracer.width, tracer.height)
        )

    @property
    def window(self) -> ti.ui.Window:
        """Get the Taichi GGUI window, creating it on first use."""
        if self._window is None:
            self._window = ti.ui.Window(
                name=self._title,
                res=(self.tracer.width, self.tracer.height),
                vsync=False,
            )
        return self._window

    def step(self) -> int:
        """Render one tick and refresh the display field.

        Returns:
            The number of pixel visits performed during the tick.
        """
        exposed = self.tracer.update(self.pixels, self._tick_seconds)
        self.display_image.from_numpy(
            frame_to_display_array(self.pixels, self.tracer.width, self.tracer.height)
        )
        return exposed

    def run(self) -> None:
        """Render and display until the window is closed."""
        window = self.window
        canvas = window.get_canvas()
        logger.info("Preview started for %r", self.tracer)

        while window.running:
            self.step()
            canvas.set_image(self.display_image)
            window.show()

        logger.info("Preview closed at %r", self.tracer)

    @staticmethod
    def is_display_available() -> bool:
        """Check if a display is available for GUI rendering."""
        if os.name == "nt" or os.uname().sysname == "Darwin":
            return True
        return bool(os.environ.get("DISPLAY") or os.environ.get("WAYLAND_DISPLAY"))

"""Preview module for output and visualization.

Components:
    export: PNG export of the tracer's RGBA buffer (Pillow)
    display: Taichi GGUI window that renders in fixed time ticks

Example:
    >>> from lenstrace.preview import PreviewWindow, save_png
    >>> # PreviewWindow(tracer).run()
    >>> # save_png(window.pixels, tracer.width, tracer.height, "render.png")
"""

from lenstrace.preview.display import DEFAULT_TICK_SECONDS, PreviewWindow, frame_to_display_array
from lenstrace.preview.export import compute_rmse, rgba_buffer_to_image, save_png

__all__ = [
    "PreviewWindow",
    "frame_to_display_array",
    "DEFAULT_TICK_SECONDS",
    "save_png",
    "rgba_buffer_to_image",
    "compute_rmse",
]

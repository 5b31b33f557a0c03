#!/usr/bin/env python3
"""Render the box scene.

Builds the box scene, renders it progressively for a fixed number of
seconds and saves the result. With --preview the render is shown in a
window instead, refined in 50 ms ticks until the window is closed.

Usage:
    python -m examples.render_box [options]

Options:
    --width WIDTH       Image width in pixels (default: 320)
    --height HEIGHT     Image height in pixels (default: 240)
    --seconds SECONDS   Render time for file output (default: 30)
    --output OUTPUT     Output file path (default: box.png)
    --bounces N         Maximum path length (default: 10)
    --nee               Sample the ceiling light directly
    --pinhole           Use a pinhole camera instead of the f/1.4 lens
    --seed SEED         Random seed (default: 0)
    --preview           Show an interactive window
    --verbose           Log every update

Example:
    python -m examples.render_box --width 160 --height 120 --seconds 10 --nee
"""

from __future__ import annotations

import argparse
import logging
import math
import sys
import time
from pathlib import Path

import numpy as np
import taichi as ti

logger = logging.getLogger("render_box")

# Time budget per progress report, in seconds
REPORT_INTERVAL = 1.0


def parse_args() -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Render the box scene.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--width", type=int, default=320, help="Image width in pixels (default: 320)")
    parser.add_argument("--height", type=int, default=240, help="Image height in pixels (default: 240)")
    parser.add_argument(
        "--seconds", type=float, default=30.0, help="Render time for file output (default: 30)"
    )
    parser.add_argument("--output", type=str, default="box.png", help="Output file path (default: box.png)")
    parser.add_argument("--bounces", type=int, default=10, help="Maximum path length (default: 10)")
    parser.add_argument("--nee", action="store_true", help="Sample the ceiling light directly")
    parser.add_argument("--pinhole", action="store_true", help="Use a pinhole camera")
    parser.add_argument("--seed", type=int, default=0, help="Random seed (default: 0)")
    parser.add_argument("--preview", action="store_true", help="Show an interactive window")
    parser.add_argument("--verbose", action="store_true", help="Log every update")
    return parser.parse_args()


def render_box(
    width: int = 320,
    height: int = 240,
    seconds: float = 30.0,
    output_path: str = "box.png",
    bounces: int = 10,
    nee: bool = False,
    pinhole: bool = False,
    preview: bool = False,
) -> Path | None:
    """Render the box scene to a file, or show it in a window.

    Returns:
        Path to the saved image file, or None in preview mode.
    """
    # Lazy imports to allow Taichi initialization first
    from lenstrace.core.progressive import Tracer, TracerConfig
    from lenstrace.preview.display import PreviewWindow
    from lenstrace.preview.export import save_png
    from lenstrace.scene.box import BoxSceneParams, create_box_scene

    params = BoxSceneParams(fstop=math.inf if pinhole else 1.4)
    scene = create_box_scene(params)
    config = TracerConfig(bounce_limit=bounces, next_event_estimation=nee)
    tracer = Tracer(scene, width, height, config)

    if preview:
        if not PreviewWindow.is_display_available():
            raise RuntimeError("No display available for --preview")
        PreviewWindow(tracer).run()
        return None

    pixels = np.zeros(width * height * 4, dtype=np.uint8)
    start = time.perf_counter()
    while time.perf_counter() - start < seconds:
        exposed = tracer.update(pixels, REPORT_INTERVAL)
        logger.info(
            "%.0fs: %d pixels this interval, pass %d",
            time.perf_counter() - start,
            exposed,
            tracer.pass_count,
        )

    output_file = Path(output_path)
    save_png(pixels, width, height, str(output_file))
    logger.info("Saved to %s (%r)", output_file.absolute(), tracer)
    return output_file


def main() -> int:
    """Main entry point."""
    args = parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(name)s %(levelname)s: %(message)s",
    )

    # Taichi falls back to the CPU when no GPU backend is available
    ti.init(arch=ti.gpu, random_seed=args.seed)

    try:
        render_box(
            width=args.width,
            height=args.height,
            seconds=args.seconds,
            output_path=args.output,
            bounces=args.bounces,
            nee=args.nee,
            pinhole=args.pinhole,
            preview=args.preview,
        )
        return 0
    except (RuntimeError, ValueError) as e:
        logger.error("Error: %s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())

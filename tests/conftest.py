"""Pytest configuration for lenstrace tests.

This module provides shared fixtures for all test modules, including
Taichi initialization which must happen once per session.
"""

import pytest
import taichi as ti


@pytest.fixture(scope="session", autouse=True)
def init_taichi_session():
    """Initialize Taichi once for the entire test session.

    Using session scope prevents multiple ti.init() calls which can cause
    segmentation faults due to Taichi runtime conflicts.
    """
    ti.init(arch=ti.cpu, random_seed=42)
    yield


@pytest.fixture(autouse=True)
def clear_all_scene_data():
    """Clear scene, material, light and render target state around each test."""
    # Import here so Taichi is initialized before fields are declared
    from lenstrace.core.integrator import clear_render_target, reset_render_target
    from lenstrace.materials.material import clear_materials
    from lenstrace.scene.intersection import clear_scene, disable_light

    def _clear_all():
        clear_scene()
        clear_materials()
        disable_light()
        clear_render_target()
        reset_render_target()

    _clear_all()
    yield
    _clear_all()

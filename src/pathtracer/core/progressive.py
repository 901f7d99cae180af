"""Progressive renderer for batched sample accumulation.

This module provides a convenient wrapper around the core integrator that supports:
- Rendering a scene's sample budget in batches
- Progress callbacks or a generator for UI updates
- Tone mapping the result into the packed RGB byte layout

The integrator keeps its state in module-level Taichi fields, so only one
renderer is active at a time: constructing a ``ProgressiveRenderer`` loads
its scene and replaces whatever was loaded before.

Output is bit-identical across runs for the same scene, seed and batch size.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from pathtracer.core.progressive import ProgressiveRenderer
    >>> from pathtracer.scene.parser import load_scene_file
    >>>
    >>> renderer = ProgressiveRenderer(load_scene_file("examples/scenes/cornell.txt"))
    >>> renderer.render(batch_size=4)
    >>> pixels = renderer.to_bytes()
"""

import logging
from collections.abc import Callable, Generator

import numpy as np
import numpy.typing as npt

from pathtracer.core.integrator import (
    get_mean_radiance,
    get_total_samples,
    load_scene,
    render_batch,
    reset_accumulation,
)
from pathtracer.core.tonemap import encode_pixels, tone_map
from pathtracer.scene.scene import Scene

logger = logging.getLogger(__name__)

# Type alias for progress callback
# Callback receives (current_samples, total_target_samples)
ProgressCallback = Callable[[int, int], None]


class ProgressiveRenderer:
    """Renders one scene, accumulating samples batch by batch.

    Attributes:
        scene: The scene being rendered.
        seed: Seed of the per-pixel random streams.
    """

    def __init__(self, scene: Scene, seed: int = 0) -> None:
        """Load ``scene`` and seed the random streams.

        Raises:
            ValueError: If the image exceeds the maximum supported size.
            RuntimeError: If the scene has too many primitives.
        """
        self.scene = scene
        self.seed = seed
        load_scene(scene)
        reset_accumulation(seed)

    @property
    def width(self) -> int:
        """Get the image width."""
        return self.scene.width

    @property
    def height(self) -> int:
        """Get the image height."""
        return self.scene.height

    @property
    def sample_count(self) -> int:
        """Get the current number of accumulated samples per pixel."""
        return get_total_samples()

    def reset(self, seed: int | None = None) -> None:
        """Discard accumulated samples and reseed.

        Args:
            seed: New seed, or None to reuse the current one.
        """
        if seed is not None:
            self.seed = seed
        reset_accumulation(self.seed)

    def _batches(self, num_samples: int | None, batch_size: int | None) -> list[int]:
        if num_samples is None:
            num_samples = self.scene.samples
        if batch_size is None:
            batch_size = num_samples
        if batch_size < 1:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        full, rest = divmod(max(num_samples, 0), batch_size)
        return [batch_size] * full + ([rest] if rest else [])

    def render(
        self,
        num_samples: int | None = None,
        batch_size: int | None = None,
        callback: ProgressCallback | None = None,
    ) -> None:
        """Render samples with an optional progress callback.

        Args:
            num_samples: Samples per pixel to add; defaults to the scene's
                sample count.
            batch_size: Samples per kernel launch; defaults to all at once.
            callback: Optional callback called after each batch.
                Receives (current_total_samples, target_total_samples).

        Raises:
            MalformedGeometryError: If a batch met NaN geometry.

        Example:
            >>> def progress(current, target):
            ...     print(f"Progress: {current}/{target} samples")
            >>> renderer.render(batch_size=4, callback=progress)
        """
        for current, target in self.render_progressive(num_samples, batch_size):
            if callback is not None:
                callback(current, target)

    def render_progressive(
        self,
        num_samples: int | None = None,
        batch_size: int | None = None,
    ) -> Generator[tuple[int, int], None, None]:
        """Render samples, yielding progress after each batch.

        This is a generator-based alternative to render() with callbacks.

        Args:
            num_samples: Samples per pixel to add; defaults to the scene's
                sample count.
            batch_size: Samples per kernel launch; defaults to all at once.

        Yields:
            Tuple of (current_total_samples, target_total_samples).
        """
        batches = self._batches(num_samples, batch_size)
        target_samples = self.sample_count + sum(batches)
        for batch in batches:
            render_batch(batch)
            logger.debug("Progress: %d/%d samples", self.sample_count, target_samples)
            yield (self.sample_count, target_samples)

    def get_radiance(self) -> npt.NDArray[np.float32]:
        """Mean linear radiance, shape (height, width, 3)."""
        return get_mean_radiance()

    def get_image_uint8(self) -> npt.NDArray[np.uint8]:
        """Tone-mapped image, shape (height, width, 3), dtype uint8."""
        return tone_map(self.get_radiance())

    def to_bytes(self) -> bytes:
        """Tone-mapped image as ``width * height * 3`` row-major RGB bytes."""
        return encode_pixels(self.get_radiance())

    def __repr__(self) -> str:
        """Return a string representation of the renderer state."""
        return (
            f"ProgressiveRenderer(width={self.width}, height={self.height}, "
            f"samples={self.sample_count}/{self.scene.samples}, seed={self.seed})"
        )


def render_scene(
    scene: Scene,
    seed: int = 0,
    batch_size: int | None = None,
    callback: ProgressCallback | None = None,
) -> bytes:
    """Render ``scene.samples`` samples per pixel and return the pixel bytes.

    Args:
        scene: The scene to render.
        seed: Seed for the per-pixel random streams.
        batch_size: Samples per kernel launch; defaults to all at once.
        callback: Optional progress callback, see ``ProgressiveRenderer.render``.

    Returns:
        ``width * height * 3`` bytes, row-major RGB, row 0 at the top.

    Raises:
        MalformedGeometryError: If rendering met NaN geometry. No partial
            image is returned.
    """
    renderer = ProgressiveRenderer(scene, seed=seed)
    renderer.render(batch_size=batch_size, callback=callback)
    return renderer.to_bytes()

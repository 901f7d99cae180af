"""Command-line entry point: render a scene file to an image.

Usage:
    pathtracer SCENE OUTPUT [options]

Options:
    --samples N       Override the scene's samples per pixel
    --ray-depth N     Override the scene's depth limit
    --seed N          Seed for the random streams (default: 0)
    --arch ARCH       Taichi backend, cpu or gpu (default: cpu)
    --batch-size N    Samples per progress update (default: all at once)
    --quiet           Suppress progress output
    --verbose         Show debug log records

The output format follows the extension: ``.ppm`` writes binary PPM,
anything else PNG.

Example:
    pathtracer examples/scenes/cornell.txt cornell.png --samples 64 --batch-size 8
"""

import argparse
import dataclasses
import logging
import sys
import time
from collections.abc import Sequence
from pathlib import Path

import taichi as ti


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="pathtracer",
        description="Render a scene description with Monte Carlo path tracing.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("scene", type=Path, help="Scene description file")
    parser.add_argument("output", type=Path, help="Output image (.ppm or .png)")
    parser.add_argument(
        "--samples",
        type=int,
        default=None,
        help="Samples per pixel (default: from the scene file)",
    )
    parser.add_argument(
        "--ray-depth",
        type=int,
        default=None,
        help="Maximum path depth (default: from the scene file)",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=0,
        help="Random seed (default: 0)",
    )
    parser.add_argument(
        "--arch",
        choices=("cpu", "gpu"),
        default="cpu",
        help="Taichi backend (default: cpu)",
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        default=None,
        help="Samples per progress update (default: all at once)",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress progress output",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Show debug log records",
    )
    return parser.parse_args(argv)


def init_taichi(arch: str, quiet: bool = False) -> None:
    """Initialise Taichi, falling back to the CPU if no GPU is usable."""
    if arch == "gpu":
        try:
            ti.init(arch=ti.gpu)
            if not quiet:
                print("Using GPU backend")
            return
        except RuntimeError:
            if not quiet:
                print("GPU backend unavailable, falling back to CPU")
    ti.init(arch=ti.cpu)
    if not quiet:
        print("Using CPU backend")


def render_file(
    scene_path: Path,
    output_path: Path,
    samples: int | None = None,
    ray_depth: int | None = None,
    seed: int = 0,
    batch_size: int | None = None,
    quiet: bool = False,
) -> Path:
    """Parse a scene file, render it and write the image.

    Taichi must already be initialised.

    Returns:
        Path to the saved image file.
    """
    # Lazy imports: these modules allocate Taichi fields on import
    from pathtracer.core.progressive import ProgressiveRenderer
    from pathtracer.preview.export import save_image
    from pathtracer.scene.parser import load_scene_file

    scene = load_scene_file(scene_path)
    overrides = {}
    if samples is not None:
        overrides["samples"] = samples
    if ray_depth is not None:
        overrides["ray_depth"] = ray_depth
    if overrides:
        scene = dataclasses.replace(scene, **overrides)

    if not quiet:
        print(
            f"Rendering {scene_path} ({scene.width}x{scene.height}, "
            f"{len(scene.primitives)} primitives, {scene.samples} spp, depth {scene.ray_depth})..."
        )

    start_time = time.time()

    def progress_callback(current: int, target: int) -> None:
        if not quiet:
            elapsed = time.time() - start_time
            progress_pct = (current / target) * 100 if target > 0 else 0
            samples_per_sec = current / elapsed if elapsed > 0 else 0
            print(
                f"\r  Progress: {current}/{target} samples "
                f"({progress_pct:.1f}%) - {samples_per_sec:.1f} spp/s",
                end="",
                flush=True,
            )

    renderer = ProgressiveRenderer(scene, seed=seed)
    renderer.render(batch_size=batch_size, callback=progress_callback)
    if not quiet:
        print()  # Newline after progress

    save_image(output_path, scene.width, scene.height, renderer.to_bytes())

    if not quiet:
        print(f"Saved to: {output_path.absolute()}")
        print(f"Total time: {time.time() - start_time:.2f}s")

    return output_path


def main(argv: Sequence[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    if args.verbose:
        level = logging.DEBUG
    elif args.quiet:
        level = logging.WARNING
    else:
        level = logging.INFO
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")

    try:
        init_taichi(args.arch, quiet=args.quiet)
        render_file(
            args.scene,
            args.output,
            samples=args.samples,
            ray_depth=args.ray_depth,
            seed=args.seed,
            batch_size=args.batch_size,
            quiet=args.quiet,
        )
        return 0
    # Scene format errors are ValueErrors; render and capacity errors are RuntimeErrors
    except (OSError, RuntimeError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())

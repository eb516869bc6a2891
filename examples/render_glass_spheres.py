#!/usr/bin/env python3
"""Render the glass spheres scene.

This script demonstrates end-to-end rendering with the recursive tracer. It
creates the demo scene of nested glass volumes, configures the recursion
budgets, renders the image (or a portion of it, or a sequence of frames) and
saves PNG output.

Usage:
    python -m examples.render_glass_spheres [options]

Options:
    --width WIDTH                 Image width in pixels (default: 320)
    --height HEIGHT               Image height in pixels (default: 240)
    --output OUTPUT               Output file path (default: glass_spheres.png)
    --rect X Y W H                Render only a portion of the image
    --frames N                    Render N frames into --output-dir
    --output-dir DIR              Directory for frame sequences (default: Output)
    --max-reflections N           Outer reflection budget (default: 10)
    --max-inner-reflections N     Inner reflection budget (default: 1)
    --max-refractions N           Refraction budget (default: 10)
    --no-stop-on-overwhite        Keep tracing paths that are already white
    --tone-map METHOD             none, reinhard or exposure (default: none)
    --show                        Display the render in a Matplotlib window
    --paths NX NY                 Plot a NX by NY grid of trace paths
    --verbose                     Enable debug logging
    --quiet                       Suppress progress output

Example:
    python -m examples.render_glass_spheres --width 160 --height 120 --max-refractions 6
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

import taichi as ti


def parse_args() -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Render the glass spheres scene.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--width", type=int, default=320, help="Image width in pixels (default: 320)")
    parser.add_argument("--height", type=int, default=240, help="Image height in pixels (default: 240)")
    parser.add_argument(
        "--output",
        type=str,
        default="glass_spheres.png",
        help="Output file path (default: glass_spheres.png)",
    )
    parser.add_argument(
        "--rect",
        type=int,
        nargs=4,
        metavar=("X", "Y", "W", "H"),
        help="Render only a portion of the image; negative W or H extends to the edge",
    )
    parser.add_argument("--frames", type=int, default=0, help="Render a numbered frame sequence")
    parser.add_argument(
        "--output-dir",
        type=str,
        default="Output",
        help="Directory for frame sequences (default: Output)",
    )
    parser.add_argument("--max-reflections", type=int, default=10, help="Outer reflection budget (default: 10)")
    parser.add_argument(
        "--max-inner-reflections",
        type=int,
        default=1,
        help="Inner reflection budget (default: 1)",
    )
    parser.add_argument("--max-refractions", type=int, default=10, help="Refraction budget (default: 10)")
    parser.add_argument(
        "--no-stop-on-overwhite",
        action="store_true",
        help="Keep tracing paths whose color is already white",
    )
    parser.add_argument(
        "--tone-map",
        choices=("none", "reinhard", "exposure"),
        default="none",
        help="Tone mapping method (default: none)",
    )
    parser.add_argument("--show", action="store_true", help="Display the render in a Matplotlib window")
    parser.add_argument(
        "--paths",
        type=int,
        nargs=2,
        metavar=("NX", "NY"),
        help="Plot a grid of diagnostic trace paths",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("--quiet", action="store_true", help="Suppress progress output")
    return parser.parse_args()


def render_glass_spheres(args: argparse.Namespace) -> list[Path]:
    """Render the glass spheres scene according to parsed arguments.

    Returns:
        Paths of the written images.
    """
    # Lazy imports to allow Taichi initialization first
    from src.glasstrace.core.renderer import IntRect, Renderer
    from src.glasstrace.core.tracer import Raytracer, TracerConfig
    from src.glasstrace.materials.diffuse import DiffuseShader
    from src.glasstrace.preview.display import format_counters, plot_trace_paths, show_render
    from src.glasstrace.preview.export import save_png
    from src.glasstrace.scene.glass_spheres import create_glass_spheres_scene

    config = TracerConfig(
        max_reflections=args.max_reflections,
        max_inner_reflections=args.max_inner_reflections,
        max_refractions=args.max_refractions,
        stop_on_overwhite=not args.no_stop_on_overwhite,
    )
    scene, camera = create_glass_spheres_scene()
    tracer = Raytracer.from_scene(scene, config, default_shader=DiffuseShader())
    renderer = Renderer(tracer)
    rect = IntRect(*args.rect) if args.rect else None

    if not args.quiet:
        print(f"Rendering {args.width}x{args.height} ({scene.get_surface_count()} surfaces)...")

    if args.frames > 0:
        def report(index: int, image) -> None:
            if not args.quiet:
                print(f"  frame {index + 1}/{args.frames} in {renderer.last_render_time:.2f}s")

        paths = renderer.render_frames(
            camera,
            args.width,
            args.height,
            args.frames,
            args.output_dir,
            rect=rect,
            on_frame=report,
            tone_map=args.tone_map,
        )
        image = None
    else:
        image = renderer.render(camera, args.width, args.height, rect)
        output_file = Path(args.output)
        save_png(image, output_file, tone_map=args.tone_map)
        paths = [output_file]

    if not args.quiet:
        print(format_counters(tracer.counters, renderer.last_render_time))
        for path in paths:
            print(f"Saved to: {path.absolute()}")

    if args.show and image is not None:
        show_render(image, counters=tracer.counters, render_time=renderer.last_render_time, tone_map=args.tone_map)

    if args.paths:
        import matplotlib.pyplot as plt

        segments = renderer.collect_trace_paths(camera.with_resolution(args.width, args.height), *args.paths)
        plot_trace_paths(segments)
        plt.show()

    return paths


def main() -> int:
    """Main entry point."""
    args = parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s: %(message)s",
    )

    ti.init(arch=ti.cpu)

    try:
        render_glass_spheres(args)
        return 0
    except (ValueError, RuntimeError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())

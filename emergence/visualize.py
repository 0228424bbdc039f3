"""Rendering, image export and console/interactive display for symbol worlds."""

import numpy as np
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

try:
    import matplotlib.pyplot as plt
    import matplotlib.animation as animation
    HAS_MATPLOTLIB = True
except ImportError:
    HAS_MATPLOTLIB = False

from PIL import Image

from .automaton import World
from .config import ExploreConfig
from .search import explore_seed


def gif_name(symbol_count: int, seed: int) -> str:
    """File stem for a recorded seed."""
    return f"symbols_{symbol_count}--seed_{seed}"


def palette_image(grid: np.ndarray, palette: np.ndarray, cell_size: int = 1) -> np.ndarray:
    """Map symbols to their colors and upscale each cell to ``cell_size`` pixels."""
    img = palette[grid]
    if cell_size > 1:
        img = np.repeat(np.repeat(img, cell_size, axis=0), cell_size, axis=1)
    return img


def cell_size_for_window(world_size: int, window_size: int) -> int:
    """Pixels per cell when drawing a world into a square window."""
    if window_size < world_size:
        raise ValueError(f"window ({window_size}) is smaller than the world ({world_size})")
    return window_size // world_size


def _palette_frame(grid: np.ndarray, palette: np.ndarray, cell_size: int) -> Image.Image:
    """Indexed-color frame; keeps symbol colors exact in GIFs."""
    if cell_size > 1:
        grid = np.repeat(np.repeat(grid, cell_size, axis=0), cell_size, axis=1)
    img = Image.fromarray(np.ascontiguousarray(grid, dtype=np.uint8))
    img.putpalette(palette.astype(np.uint8).ravel().tolist())
    return img


def save_image(grid: np.ndarray, palette: np.ndarray, filepath: str, cell_size: int = 1):
    """Save one frame as PNG."""
    img = Image.fromarray(palette_image(grid, palette, cell_size))
    img.save(filepath)


def save_animation(
    frames: Sequence[np.ndarray],
    palette: np.ndarray,
    filepath: str,
    cell_size: int = 1,
    duration: int = 50,
    loop: int = 0,
):
    """Save recorded frames as an endlessly looping animated GIF."""
    if not frames:
        raise ValueError("no frames to save")

    images = [_palette_frame(frame, palette, cell_size) for frame in frames]
    images[0].save(
        filepath,
        save_all=True,
        append_images=images[1:],
        duration=duration,
        loop=loop,
    )


def draw_to_console(grid: np.ndarray, palette: np.ndarray) -> str:
    """Render the grid as 24-bit ANSI colored blocks, one text row per grid row."""
    lines = []
    for row in grid:
        cells = []
        for v in row:
            r, g, b = palette[v]
            cells.append(f"\033[38;2;{r};{g};{b}m▓▓")
        lines.append("".join(cells) + "\033[0m")
    return "\n".join(lines)


def record_seed(
    seed: int,
    config: Optional[ExploreConfig] = None,
    output_dir: str = "gifs",
    max_frames: int = 1000,
    init_seed: Optional[int] = None,
    cell_size: int = 1,
    save_snapshots: bool = False,
    snapshot_interval: int = 100,
) -> Tuple[str, List[str]]:
    """
    Replay a seed, recording up to ``max_frames`` frames, and write them as a GIF.

    Returns:
        Tuple of (gif_path, list of snapshot paths)
    """
    if config is None:
        config = ExploreConfig()
    config = ExploreConfig(
        world=config.world,
        sample_frame_count=max(config.sample_frame_count, max_frames),
        min_end_cell_diff=config.min_end_cell_diff,
        window=config.window,
        max_recorded_frames=max_frames,
    )
    exploration = explore_seed(seed, config, init_seed=init_seed)

    output_path = Path(output_dir)
    output_path.mkdir(parents=True, exist_ok=True)
    name = gif_name(config.world.symbol_count, seed)

    gif_path = str(output_path / f"{name}.gif")
    save_animation(exploration.frames, exploration.palette, gif_path, cell_size=cell_size)

    snapshot_paths = []
    if save_snapshots:
        for i in range(0, len(exploration.frames), snapshot_interval):
            snapshot_path = str(output_path / f"{name}_step{i:04d}.png")
            save_image(exploration.frames[i], exploration.palette, snapshot_path, cell_size=cell_size)
            snapshot_paths.append(snapshot_path)

    return gif_path, snapshot_paths


def watch(world: World, steps: Optional[int] = None, interval: int = 30):
    """Animate a world live with matplotlib until the window closes or it goes quiet."""
    if not HAS_MATPLOTLIB:
        raise ImportError("Matplotlib required for display. Install with: pip install matplotlib")

    fig, ax = plt.subplots(figsize=(8, 8))
    image = ax.imshow(palette_image(world.data, world.symbol_to_color), interpolation="nearest")
    ax.axis("off")

    def update(_frame):
        if not world.is_quiescent():
            world.step()
            image.set_data(palette_image(world.data, world.symbol_to_color))
        ax.set_title(f"generation {world.generation}")
        return (image,)

    anim = animation.FuncAnimation(fig, update, frames=steps, interval=interval, blit=False)
    plt.tight_layout()
    plt.show()
    return anim

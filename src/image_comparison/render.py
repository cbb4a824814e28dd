"""Difference rendering: marked image, border mismatch, difference image.

Marking partitions the image into fixed 10×10 marking blocks (independent of
the Fuzzy block size) and draws the one-pixel border of every block holding at
least one differing pixel. Remainder blocks on the right/bottom edge use their
clipped span, so nothing is drawn outside the image.

Border colour, per pixel, from the average of reference and candidate:
    - green if red is the largest channel (and blue is not) and green is
      at least 30 below it
    - red otherwise (blue largest, green largest, or green within 30)

Border mismatch: when size reconciliation padded an image, the grown strips
(x >= prior_width, y >= prior_height) are painted solid red.
"""

import numpy as np

from src.utils import color, compute

from .algorithms import DifferenceSet
from .mask import MARKING_BLOCK

GREEN_MARGIN = 30

RED = (255, 0, 0)
GREEN = (0, 255, 0)


def mark_colors(reference: np.ndarray, candidate: np.ndarray) -> np.ndarray:
    """Per-pixel marking colour, (H, W, 3) uint8 (red or green)."""
    avg = (reference[..., :3].astype(np.float64) + candidate[..., :3].astype(np.float64)) / 2.0
    r, g, b = avg[..., 0], avg[..., 1], avg[..., 2]
    biggest = np.maximum(np.maximum(r, g), b)

    use_green = (r == biggest) & (b != biggest) & ((biggest - g) >= GREEN_MARGIN)

    colors = np.empty(avg.shape, dtype=np.uint8)
    colors[...] = RED
    colors[use_green] = GREEN
    return colors


def marking_border_map(differences: DifferenceSet, block_size: int = MARKING_BLOCK) -> np.ndarray:
    """Boolean (H, W) map of the borders of all marking blocks with differences.

    Parameters
    ----------
    differences : DifferenceSet
        Differing pixels
    block_size : int
        Marking block side length, default 10

    Returns
    -------
    np.ndarray
        True on the top/bottom rows and left/right columns of each touched
        block, using the clipped span for remainder blocks
    """
    pixels = np.asarray(differences, dtype=bool)
    h, w = pixels.shape
    touched = compute.blocks_touched(pixels, block_size)
    in_touched = compute.expand_blocks(touched, block_size, h, w)

    xs = np.arange(w)
    ys = np.arange(h)
    local_x = xs % block_size
    local_y = ys % block_size
    span_x = np.array([compute.block_span(block_size, x // block_size, w) for x in xs])
    span_y = np.array([compute.block_span(block_size, y // block_size, h) for y in ys])

    edge_x = (local_x == 0) | (local_x == span_x - 1)
    edge_y = (local_y == 0) | (local_y == span_y - 1)
    border = edge_y[:, None] | edge_x[None, :]
    return border & in_touched


def mark_differences(
    output: np.ndarray,
    reference: np.ndarray,
    candidate: np.ndarray,
    differences: DifferenceSet,
    block_size: int = MARKING_BLOCK
) -> int:
    """Draw marking block borders into `output` in place.

    Returns
    -------
    int
        Number of marking blocks drawn
    """
    border = marking_border_map(differences, block_size)
    colors = mark_colors(reference, candidate)
    output[border] = colors[border]
    return int(compute.blocks_touched(np.asarray(differences, dtype=bool), block_size).sum())


def mark_image_borders(output: np.ndarray, prior_width: int, prior_height: int) -> None:
    """Paint the region grown by size reconciliation solid red, in place."""
    output[:, prior_width:] = RED
    output[prior_height:, :] = RED


def difference_image(reference: np.ndarray, candidate: np.ndarray) -> np.ndarray:
    """Greyscale (H, W) uint8 map; lighter means a larger colour distance."""
    return color.distance_to_grey(color.color_distance(reference[..., :3], candidate[..., :3]))

"""Block geometry and tiling numerics.

Core utilities:
    - block_count(): number of blocks covering a span (ceil division)
    - block_span(): pixel length of block n, clipped at the image border
    - block_slices(): (slice_y, slice_x) for block (bx, by)
    - tile_slices(): all block slices covering an image, row-major
    - block_sums() / block_pixel_counts(): per-block reductions
    - expand_blocks(): block map → full-resolution map (clipped)
    - blocks_touched(): which blocks contain at least one True pixel

Invariants:
    - Block (bx, by) covers [bx*size, (bx+1)*size) × [by*size, (by+1)*size),
      clipped to the image bounds
    - The last block row/column may be a smaller remainder block
    - Arrays are indexed (y, x); public functions take (x, y) / (width, height)
      arguments in that order where both appear
"""

from typing import List, Tuple

import numpy as np


def block_count(span: int, block_size: int) -> int:
    """Number of blocks of size `block_size` needed to cover `span` pixels.

    Parameters
    ----------
    span : int
        Image width or height (pixels)
    block_size : int
        Block side length (pixels), >= 1

    Returns
    -------
    int
        ceil(span / block_size)
    """
    if block_size < 1:
        raise ValueError(f"block_size must be >= 1, got {block_size}")
    return -(-span // block_size)


def block_span(block_size: int, n: int, overall_span: int) -> int:
    """Pixel length of block `n`, clipped at the border.

    Parameters
    ----------
    block_size : int
        Nominal block side length
    n : int
        Block index along the axis
    overall_span : int
        Image width or height

    Returns
    -------
    int
        block_size for interior blocks, the remainder for a partial last block
    """
    if block_size * (n + 1) > overall_span:
        return overall_span % block_size
    return block_size


def block_slices(bx: int, by: int, block_size: int, width: int, height: int) -> Tuple[slice, slice]:
    """Array slices (slice_y, slice_x) covering block (bx, by)."""
    x0 = bx * block_size
    y0 = by * block_size
    return (
        slice(y0, min(y0 + block_size, height)),
        slice(x0, min(x0 + block_size, width)),
    )


def tile_slices(height: int, width: int, block_size: int) -> List[Tuple[slice, slice]]:
    """Generate block slices covering an image.

    Parameters
    ----------
    height : int
        Image height
    width : int
        Image width
    block_size : int
        Block side length

    Returns
    -------
    list[tuple[slice, slice]]
        Row-major list of (slice_y, slice_x); remainder blocks are clipped
    """
    slices = []
    for by in range(block_count(height, block_size)):
        for bx in range(block_count(width, block_size)):
            slices.append(block_slices(bx, by, block_size, width, height))
    return slices


def _pad_to_blocks(arr: np.ndarray, block_size: int) -> np.ndarray:
    h, w = arr.shape[:2]
    pad_h = block_count(h, block_size) * block_size - h
    pad_w = block_count(w, block_size) * block_size - w
    if pad_h == 0 and pad_w == 0:
        return arr
    pad = [(0, pad_h), (0, pad_w)] + [(0, 0)] * (arr.ndim - 2)
    return np.pad(arr, pad, mode='constant', constant_values=0)


def block_sums(arr: np.ndarray, block_size: int) -> np.ndarray:
    """Sum values inside each block.

    Parameters
    ----------
    arr : np.ndarray
        Shape (H, W) or (H, W, C)
    block_size : int
        Block side length

    Returns
    -------
    np.ndarray
        float64, shape (ceil(H/b), ceil(W/b)) or (ceil(H/b), ceil(W/b), C)

    Notes
    -----
    Remainder blocks are zero-padded, so they sum only the pixels present.
    """
    padded = _pad_to_blocks(np.asarray(arr, dtype=np.float64), block_size)
    ph, pw = padded.shape[:2]
    nby, nbx = ph // block_size, pw // block_size
    shaped = padded.reshape((nby, block_size, nbx, block_size) + padded.shape[2:])
    return shaped.sum(axis=(1, 3))


def block_pixel_counts(height: int, width: int, block_size: int) -> np.ndarray:
    """Number of image pixels present in each block, shape (nby, nbx)."""
    rows = np.array(
        [block_span(block_size, n, height) for n in range(block_count(height, block_size))],
        dtype=np.int64,
    )
    cols = np.array(
        [block_span(block_size, n, width) for n in range(block_count(width, block_size))],
        dtype=np.int64,
    )
    return np.outer(rows, cols)


def expand_blocks(block_map: np.ndarray, block_size: int, height: int, width: int) -> np.ndarray:
    """Expand a per-block array back to full resolution.

    Parameters
    ----------
    block_map : np.ndarray
        Shape (nby, nbx) or (nby, nbx, C), any dtype
    block_size : int
        Block side length
    height, width : int
        Target image size; the expanded array is cropped to it

    Returns
    -------
    np.ndarray
        Shape (height, width[, C]); every pixel takes its block's value
    """
    expanded = np.repeat(np.repeat(block_map, block_size, axis=0), block_size, axis=1)
    return expanded[:height, :width]


def blocks_touched(pixel_map: np.ndarray, block_size: int) -> np.ndarray:
    """Boolean per-block map: True where the block holds any True pixel."""
    return block_sums(np.asarray(pixel_map, dtype=bool), block_size) > 0

"""Image transform operations on raw pixel buffers.

Provides:
    - as_rgb_array(): normalise PIL images / arrays to (H, W, 3) uint8
    - copy_image(): independent copy of a buffer
    - increase_image_size(): pad right/bottom with a fill colour
    - reconcile_sizes(): pad a reference/candidate pair to a common size
    - shrink_image(): block-average downsample (partial tiles average present pixels)
    - scale_image(): nearest-neighbour upscale by an integer factor
    - overlay(): alpha "over" compositing of an RGBA layer

Every function returns a new array; inputs are never modified.
"""

from typing import Tuple, Union

import numpy as np
from PIL import Image

from src.utils import compute

ImageInput = Union[np.ndarray, Image.Image]

DEFAULT_FILL = (0, 0, 0)


def as_rgb_array(image: ImageInput) -> np.ndarray:
    """Convert a PIL image or numpy array to an (H, W, 3) uint8 RGB array.

    Greyscale arrays are broadcast to three channels and an alpha channel is
    dropped. Arrays already in the target layout are copied.
    """
    if isinstance(image, Image.Image):
        return np.array(image.convert("RGB"), dtype=np.uint8)

    arr = np.asarray(image)
    if arr.ndim == 2:
        arr = np.repeat(arr[:, :, None], 3, axis=2)
    elif arr.ndim == 3 and arr.shape[2] == 4:
        arr = arr[:, :, :3]
    elif arr.ndim == 3 and arr.shape[2] == 1:
        arr = np.repeat(arr, 3, axis=2)

    if arr.ndim != 3 or arr.shape[2] != 3:
        raise ValueError(f"Expected image shape (H, W), (H, W, 3) or (H, W, 4), got {arr.shape}")
    if arr.shape[0] < 1 or arr.shape[1] < 1:
        raise ValueError(f"Image must be at least 1x1, got {arr.shape[1]}x{arr.shape[0]}")

    if arr.dtype != np.uint8:
        arr = np.clip(arr, 0, 255)
    return np.array(arr, dtype=np.uint8)


def copy_image(image: np.ndarray) -> np.ndarray:
    """Return an independent copy of the pixel buffer."""
    return np.array(image, copy=True)


def increase_image_size(
    image: np.ndarray,
    width: int,
    height: int,
    fill: Tuple[int, ...] = DEFAULT_FILL
) -> np.ndarray:
    """Grow an image to (width, height), keeping it in the top-left corner.

    Parameters
    ----------
    image : np.ndarray
        (H, W, C) uint8
    width, height : int
        Target size; must not be smaller than the current size
    fill : tuple
        Colour of the new pixels, default black

    Returns
    -------
    np.ndarray
        (height, width, C) uint8
    """
    h, w = image.shape[:2]
    if width < w or height < h:
        raise ValueError(f"Cannot shrink {w}x{h} to {width}x{height}")

    out = np.empty((height, width) + image.shape[2:], dtype=image.dtype)
    out[...] = np.asarray(fill, dtype=image.dtype)
    out[:h, :w] = image
    return out


def reconcile_sizes(
    reference: np.ndarray,
    candidate: np.ndarray,
    fill: Tuple[int, ...] = DEFAULT_FILL
) -> Tuple[np.ndarray, np.ndarray, int, int]:
    """Pad the smaller image on each axis so both share one size.

    Parameters
    ----------
    reference, candidate : np.ndarray
        (H, W, 3) uint8, arbitrary sizes >= 1x1

    Returns
    -------
    tuple
        (reference', candidate', prior_width, prior_height)
        prior_width/height are the smaller input extents per axis;
        equal to the final size when nothing was padded.
    """
    rh, rw = reference.shape[:2]
    ch, cw = candidate.shape[:2]
    width = max(rw, cw)
    height = max(rh, ch)

    if (rw, rh) != (width, height):
        reference = increase_image_size(reference, width, height, fill)
    if (cw, ch) != (width, height):
        candidate = increase_image_size(candidate, width, height, fill)

    return reference, candidate, min(rw, cw), min(rh, ch)


def shrink_image(image: np.ndarray, block_size: int) -> np.ndarray:
    """Downsample by averaging each block_size × block_size tile.

    Parameters
    ----------
    image : np.ndarray
        (H, W) or (H, W, C) uint8
    block_size : int
        Tile side length

    Returns
    -------
    np.ndarray
        uint8, shape (ceil(H/b), ceil(W/b)[, C]); border tiles average only
        the pixels present. Averages are rounded to the nearest integer.
    """
    h, w = image.shape[:2]
    if block_size == 1:
        return copy_image(image)

    sums = compute.block_sums(image, block_size)
    counts = compute.block_pixel_counts(h, w, block_size)
    if sums.ndim == 3:
        counts = counts[:, :, None]
    return np.rint(sums / counts).astype(np.uint8)


def scale_image(image: np.ndarray, factor: int, width: int, height: int) -> np.ndarray:
    """Nearest-neighbour upscale by an integer factor, cropped to (width, height)."""
    return compute.expand_blocks(image, factor, height, width)


def overlay(image: np.ndarray, layer: np.ndarray) -> np.ndarray:
    """Composite an RGBA layer over an RGB image ("over" operator).

    Parameters
    ----------
    image : np.ndarray
        (H, W, 3) uint8
    layer : np.ndarray
        (H, W, 4) uint8, same height and width

    Returns
    -------
    np.ndarray
        (H, W, 3) uint8; fully transparent layer pixels leave the image
        untouched, fully opaque ones replace it
    """
    if layer.shape[:2] != image.shape[:2]:
        raise ValueError(f"Layer size {layer.shape[:2]} does not match image size {image.shape[:2]}")

    alpha = layer[:, :, 3:4].astype(np.float64) / 255.0
    blended = layer[:, :, :3].astype(np.float64) * alpha + image.astype(np.float64) * (1.0 - alpha)
    return np.rint(blended).astype(np.uint8)

"""Persisted ignore-mask management.

A mask is an (H, W, 4) RGBA uint8 image the size of the compared pair.
Opaque black pixels (0, 0, 0, 255) are ignored by every comparison; any other
pixel passes through. A fresh mask is transparent white.

Lifecycle:
    - load_or_create_mask(): read the mask for a screenshot, or start blank
      when none exists or its size no longer matches
    - apply_mask(): blacken ignored pixels in reference and candidate alike
    - paint_ignore(): training absorbs differences as 10×10 black blocks
    - close_mask(): optional morphological closing to merge nearby regions
    - save_mask(): atomic PNG write

Masks may also be painted by hand in any image editor.
"""

import logging
from pathlib import Path
from typing import Union

import cv2
import numpy as np

from src.utils import compute, fs

from . import transforms
from .errors import ArtifactIOError

logger = logging.getLogger(__name__)

MARKING_BLOCK = 10
MASK_CLOSE_SCALE = 10

IGNORE_RGBA = (0, 0, 0, 255)
PASS_RGBA = (255, 255, 255, 0)


def blank_mask(width: int, height: int) -> np.ndarray:
    """Fully pass-through mask of the given size."""
    mask = np.empty((height, width, 4), dtype=np.uint8)
    mask[...] = PASS_RGBA
    return mask


def load_or_create_mask(path: Union[str, Path], width: int, height: int) -> np.ndarray:
    """Load the mask at `path`, or return a blank one.

    Parameters
    ----------
    path : Union[str, Path]
        Mask PNG location
    width, height : int
        Size of the reconciled image pair

    Returns
    -------
    np.ndarray
        (height, width, 4) uint8 RGBA mask

    Raises
    ------
    ArtifactIOError
        If the file exists but cannot be decoded

    Notes
    -----
    A mask whose size differs from (width, height) is discarded silently and
    a blank mask is returned instead; it is overwritten on the next training
    run that finds differences.
    """
    path = Path(path)
    if not path.exists():
        return blank_mask(width, height)

    try:
        mask = fs.load_image(path, mode="RGBA")
    except (OSError, ValueError) as e:
        raise ArtifactIOError(f"Failed to read mask image {path}: {e}") from e

    if mask.shape[:2] != (height, width):
        logger.info(
            "Mask %s is %dx%d, images are %dx%d; using a blank mask",
            path, mask.shape[1], mask.shape[0], width, height
        )
        return blank_mask(width, height)
    return mask


def ignore_map(mask: np.ndarray) -> np.ndarray:
    """Boolean (H, W) map, True where the mask pixel is opaque black."""
    return np.all(mask == np.asarray(IGNORE_RGBA, dtype=np.uint8), axis=2)


def apply_mask(image: np.ndarray, mask: np.ndarray) -> np.ndarray:
    """Blacken ignored pixels of `image`; every other pixel is unchanged.

    The same mask applied to reference and candidate guarantees ignored
    pixels compare equal.
    """
    layer = np.zeros(mask.shape[:2] + (4,), dtype=np.uint8)
    layer[ignore_map(mask)] = IGNORE_RGBA
    return transforms.overlay(image, layer)


def paint_ignore(mask: np.ndarray, differences: np.ndarray, block_size: int = MARKING_BLOCK) -> int:
    """Fill every block that contains a difference with opaque black, in place.

    Parameters
    ----------
    mask : np.ndarray
        (H, W, 4) RGBA mask, modified in place
    differences : np.ndarray
        Boolean (H, W) map of differing pixels
    block_size : int
        Block side length, default 10 (marking block)

    Returns
    -------
    int
        Number of blocks painted
    """
    h, w = mask.shape[:2]
    touched = compute.blocks_touched(differences, block_size)
    region = compute.expand_blocks(touched, block_size, h, w)
    mask[region] = IGNORE_RGBA
    return int(touched.sum())


def close_mask(
    mask: np.ndarray,
    kernel_width: int = 3,
    kernel_height: int = 3,
    scale: int = MASK_CLOSE_SCALE
) -> np.ndarray:
    """Merge nearby ignored regions with a morphological closing.

    Parameters
    ----------
    mask : np.ndarray
        (H, W, 4) RGBA mask
    kernel_width, kernel_height : int
        Rectangular structuring element, in downsampled cells
    scale : int
        Downsample factor; one cell covers scale × scale pixels

    Returns
    -------
    np.ndarray
        New mask; ignored pixels are a superset of the input's

    Notes
    -----
    Closing runs on the downsampled ignore map (a cell counts as ignored when
    at least half of its pixels are) so the cost stays proportional to
    H*W / scale^2. The closed map is upscaled with nearest neighbour and
    merged with the original ignore map.
    """
    h, w = mask.shape[:2]
    ignored = ignore_map(mask)

    small = transforms.shrink_image(ignored.astype(np.uint8) * 255, scale)
    small = (small >= 128).astype(np.uint8)

    kernel = cv2.getStructuringElement(cv2.MORPH_RECT, (kernel_width, kernel_height))
    closed = cv2.morphologyEx(small, cv2.MORPH_CLOSE, kernel)

    restored = transforms.scale_image(closed, scale, w, h).astype(bool)

    out = transforms.copy_image(mask)
    out[restored | ignored] = IGNORE_RGBA
    logger.debug(
        "Closed mask: %d -> %d ignored pixels", int(ignored.sum()), int((restored | ignored).sum())
    )
    return out


def save_mask(mask: np.ndarray, path: Union[str, Path]) -> None:
    """Write the mask as RGBA PNG atomically.

    Raises
    ------
    ArtifactIOError
        If the file cannot be written
    """
    try:
        fs.atomic_save_image(mask, path)
    except RuntimeError as e:
        raise ArtifactIOError(f"Failed to write mask image {path}: {e}") from e

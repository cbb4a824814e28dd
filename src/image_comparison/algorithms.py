"""Comparison algorithms: Exact, PixelFuzzy and Fuzzy (block).

Each algorithm consumes two equally sized, already-masked (H, W, 3) uint8
images and returns a DifferenceSet; an empty set means "equal".

    EXACTLY     any RGB channel differs → pixel flagged (zero tolerance)
    PIXELFUZZY  color_distance > color_tolerance → pixel flagged
    FUZZY       both images are shrunk by block-averaging block_size tiles,
                PIXELFUZZY runs on the shrunken pair and every flagged block
                is expanded back to its (clipped) full-resolution rectangle

Fuzzy tolerates sub-block noise such as anti-aliasing and one-pixel shifts;
larger blocks are more tolerant and localise less precisely.

pixel_tolerance_per_block (Fuzzy only): when > 0, a block flagged by its
average colour is kept only if more than that fraction of its pixels differ
individually by more than color_tolerance. At 0 every flagged block is kept.
"""

import logging
from typing import Callable, Dict, Iterable, Tuple

import numpy as np

from src.utils import color, compute
from src.utils.validators import ComparisonAlgorithm, ComparisonConfigV1

from . import transforms

logger = logging.getLogger(__name__)


class DifferenceSet:
    """Unique (x, y) coordinates of differing pixels.

    Stored as a boolean (H, W) map; supports len(), truthiness,
    `(x, y) in diffs`, coords() and numpy conversion.
    """

    __slots__ = ("_pixels",)

    def __init__(self, pixels: np.ndarray):
        pixels = np.asarray(pixels, dtype=bool)
        if pixels.ndim != 2:
            raise ValueError(f"Expected a 2-D pixel map, got shape {pixels.shape}")
        self._pixels = pixels

    @classmethod
    def empty(cls, width: int, height: int) -> "DifferenceSet":
        return cls(np.zeros((height, width), dtype=bool))

    @classmethod
    def from_coords(cls, coords: Iterable[Tuple[int, int]], width: int, height: int) -> "DifferenceSet":
        pixels = np.zeros((height, width), dtype=bool)
        for x, y in coords:
            pixels[y, x] = True
        return cls(pixels)

    @property
    def pixels(self) -> np.ndarray:
        """Read-only boolean (H, W) view."""
        view = self._pixels.view()
        view.flags.writeable = False
        return view

    @property
    def width(self) -> int:
        return self._pixels.shape[1]

    @property
    def height(self) -> int:
        return self._pixels.shape[0]

    def coords(self) -> np.ndarray:
        """(N, 2) int array of (x, y) pairs, row-major order."""
        ys, xs = np.nonzero(self._pixels)
        return np.stack([xs, ys], axis=1)

    def __len__(self) -> int:
        return int(np.count_nonzero(self._pixels))

    def __bool__(self) -> bool:
        return bool(self._pixels.any())

    def __contains__(self, xy) -> bool:
        x, y = xy
        if not (0 <= x < self.width and 0 <= y < self.height):
            return False
        return bool(self._pixels[y, x])

    def __array__(self, dtype=None, copy=None):
        if dtype is None:
            return self._pixels.copy()
        return self._pixels.astype(dtype)

    def __repr__(self) -> str:
        return f"DifferenceSet({len(self)} of {self.width}x{self.height} pixels)"


def _check_pair(reference: np.ndarray, candidate: np.ndarray) -> None:
    if reference.shape != candidate.shape:
        raise ValueError(f"Images must be reconciled first: {reference.shape} vs {candidate.shape}")


def exact_differences(reference: np.ndarray, candidate: np.ndarray) -> DifferenceSet:
    """Flag every pixel whose RGB values differ at all."""
    _check_pair(reference, candidate)
    return DifferenceSet(np.any(reference[..., :3] != candidate[..., :3], axis=-1))


def pixel_fuzzy_differences(
    reference: np.ndarray,
    candidate: np.ndarray,
    color_tolerance: float
) -> DifferenceSet:
    """Flag every pixel whose perceptual distance strictly exceeds the tolerance."""
    _check_pair(reference, candidate)
    return DifferenceSet(color.color_distance(reference[..., :3], candidate[..., :3]) > color_tolerance)


def fuzzy_differences(
    reference: np.ndarray,
    candidate: np.ndarray,
    block_size: int,
    color_tolerance: float,
    pixel_tolerance_per_block: float = 0.0
) -> DifferenceSet:
    """Block-averaged comparison.

    Parameters
    ----------
    reference, candidate : np.ndarray
        (H, W, 3) uint8, same shape
    block_size : int
        Tile side length for the block average
    color_tolerance : float
        Threshold for the averaged block colours
    pixel_tolerance_per_block : float
        Fraction of individually differing pixels a flagged block may hold
        and still be ignored; 0 disables the check

    Returns
    -------
    DifferenceSet
        Every pixel of every flagged block (clipped to the image)
    """
    _check_pair(reference, candidate)
    h, w = reference.shape[:2]

    shrunk_ref = transforms.shrink_image(reference[..., :3], block_size)
    shrunk_cand = transforms.shrink_image(candidate[..., :3], block_size)
    flagged = color.color_distance(shrunk_ref, shrunk_cand) > color_tolerance

    if pixel_tolerance_per_block > 0 and flagged.any():
        over = color.color_distance(reference[..., :3], candidate[..., :3]) > color_tolerance
        fraction = compute.block_sums(over, block_size) / compute.block_pixel_counts(h, w, block_size)
        kept = flagged & (fraction > pixel_tolerance_per_block)
        logger.debug(
            "Pixel tolerance %.4f kept %d of %d flagged blocks",
            pixel_tolerance_per_block, int(kept.sum()), int(flagged.sum())
        )
        flagged = kept

    return DifferenceSet(compute.expand_blocks(flagged, block_size, h, w))


_ALGORITHMS: Dict[ComparisonAlgorithm, Callable[[ComparisonConfigV1, np.ndarray, np.ndarray], DifferenceSet]] = {
    ComparisonAlgorithm.EXACTLY: lambda cfg, ref, cand: exact_differences(ref, cand),
    ComparisonAlgorithm.PIXELFUZZY: lambda cfg, ref, cand: pixel_fuzzy_differences(
        ref, cand, cfg.color_tolerance
    ),
    ComparisonAlgorithm.FUZZY: lambda cfg, ref, cand: fuzzy_differences(
        ref, cand, cfg.block_size, cfg.color_tolerance, cfg.pixel_tolerance_per_block
    ),
}


def find_differences(
    config: ComparisonConfigV1,
    reference: np.ndarray,
    candidate: np.ndarray
) -> DifferenceSet:
    """Run the configured algorithm on a reconciled, masked image pair."""
    return _ALGORITHMS[config.algorithm](config, reference, candidate)

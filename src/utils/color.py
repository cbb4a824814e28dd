"""Perceptual colour distance for screenshot comparison.

Provides:
    - color_distance(): weighted RGB distance normalised to [0, 1]
    - distance_to_grey(): map a normalised distance to a uint8 grey level

Used by:
    - Comparison algorithms: PixelFuzzy threshold, Fuzzy block threshold
    - Difference renderer: greyscale magnitude image

All functions operate on numpy arrays with a trailing channel axis of size 3
(R, G, B), values 0-255. Single triples are accepted and return scalars.

Metric (weighted Euclidean, after http://www.compuphase.com/cmetric.htm):
    rLevel  = (r1 + r2) // 2
    rWeight = 2 + rLevel // 256
    gWeight = 4
    bWeight = 2 + (255 - rLevel) // 256
    dist    = sqrt(rWeight*dr^2 + gWeight*dg^2 + bWeight*db^2)

Weights use floor division, so for valid 0-255 input they reduce to 2/4/2 and
the maximum distance is exactly 255 * sqrt(8) (black vs white).

Invariants:
    - color_distance(a, a) == 0
    - 0 <= color_distance(a, b) <= 1
    - color_distance(a, b) == color_distance(b, a)
"""

from typing import Union

import numpy as np

# 255 * sqrt(2 + 4 + 2): distance between black and white
MAX_COLOR_DISTANCE = 721.2489168102785

ArrayLike = Union[np.ndarray, tuple, list]


def color_distance(c1: ArrayLike, c2: ArrayLike) -> Union[np.ndarray, float]:
    """Compute normalised perceptual distance between two colours.

    Parameters
    ----------
    c1 : array-like
        First colour(s), shape (..., 3), RGB 0-255 (uint8, int or float)
    c2 : array-like
        Second colour(s), same shape as c1

    Returns
    -------
    np.ndarray or float
        Distance in [0, 1], shape (...). A float for single triples.

    Notes
    -----
    Integer inputs are evaluated in exact int64 arithmetic before the square
    root, so results are bit-identical to a scalar double implementation.
    The result is clamped to 1.0.

    Examples
    --------
    >>> color_distance((0, 255, 0), (0, 0, 255))
    0.8660254037844386
    """
    a = np.asarray(c1)
    b = np.asarray(c2)
    if a.shape[-1] != 3 or b.shape[-1] != 3:
        raise ValueError(f"Expected trailing RGB axis of size 3, got {a.shape} and {b.shape}")

    dtype = np.float64 if (a.dtype.kind == 'f' or b.dtype.kind == 'f') else np.int64
    a = a.astype(dtype, copy=False)
    b = b.astype(dtype, copy=False)

    r1, g1, b1 = a[..., 0], a[..., 1], a[..., 2]
    r2, g2, b2 = b[..., 0], b[..., 1], b[..., 2]

    r_level = (r1 + r2) // 2
    r_weight = 2 + r_level // 256
    g_weight = 4
    b_weight = 2 + (255 - r_level) // 256

    dr = r1 - r2
    dg = g1 - g2
    db = b1 - b2

    dist = np.sqrt(r_weight * dr * dr + g_weight * dg * dg + b_weight * db * db)
    normalized = np.minimum(dist / MAX_COLOR_DISTANCE, 1.0)

    if normalized.ndim == 0:
        return float(normalized)
    return normalized


def distance_to_grey(distance: Union[np.ndarray, float]) -> np.ndarray:
    """Map normalised distance to a uint8 grey level.

    Parameters
    ----------
    distance : np.ndarray or float
        Distance in [0, 1]

    Returns
    -------
    np.ndarray
        uint8 grey, 0 (black) = identical, 255 (white) = maximal difference
    """
    d = np.clip(np.asarray(distance, dtype=np.float64), 0.0, 1.0)
    return np.rint(d * 255.0).astype(np.uint8)

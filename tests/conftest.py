"""Shared fixtures: synthetic screenshots and artifact locations."""

from pathlib import Path

import numpy as np
import pytest

WHITE = (255, 255, 255)
BLACK = (0, 0, 0)
GREEN = (0, 255, 0)
BLUE = (0, 0, 255)
RED = (255, 0, 0)


def solid(width, height, rgb=WHITE):
    """(height, width, 3) uint8 image filled with one colour."""
    img = np.empty((height, width, 3), dtype=np.uint8)
    img[...] = rgb
    return img


def paint(img, x, y, w, h, rgb=BLACK):
    """Copy of `img` with the rectangle [x, x+w) × [y, y+h) filled."""
    out = img.copy()
    out[y:y + h, x:x + w] = rgb
    return out


@pytest.fixture
def artifacts(tmp_path):
    """Mask / marked / difference paths inside a fresh directory."""
    return {
        'mask': tmp_path / "mask" / "shot-mask.png",
        'marked': tmp_path / "marked" / "shot-marked.png",
        'difference': tmp_path / "difference" / "shot-difference.png",
    }


@pytest.fixture
def blocked_dir(tmp_path) -> Path:
    """A regular file standing where a directory is expected (writes under it fail)."""
    blocker = tmp_path / "blocker"
    blocker.write_bytes(b"not a directory")
    return blocker

"""Stored reference screenshots and their artifact layout.

A baseline is a reference PNG accepted by a human plus the artifacts the
engine derives from it. Layout, relative to the reference's directory:

    <dir>/<name>.png                          reference
    <dir>/mask/<name>-mask.png                ignore mask (training output)
    <dir>/marked/<name>-marked.png            marked candidate on mismatch
    <dir>/difference/<name>-difference.png    greyscale difference image

StoredReference records the reference's size and sha256 when it is created
or opened, so a reference replaced behind the engine's back is detected
instead of silently compared.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

import numpy as np

from src.utils import fs, hashing
from src.utils.validators import ComparisonConfigV1

from . import transforms
from .engine import ComparisonResult, ImageComparison
from .errors import ArtifactIOError

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


@dataclass(frozen=True)
class ArtifactPaths:
    """Where the engine reads and writes its artifacts for one reference."""
    mask: Path
    marked: Path
    difference: Path

    @classmethod
    def for_reference(cls, reference_path: PathLike) -> "ArtifactPaths":
        reference_path = Path(reference_path)
        root = reference_path.parent
        stem = reference_path.stem
        return cls(
            mask=root / "mask" / f"{stem}-mask.png",
            marked=root / "marked" / f"{stem}-marked.png",
            difference=root / "difference" / f"{stem}-difference.png",
        )


@dataclass(frozen=True)
class StoredReference:
    """A reference image on disk, pinned by content hash."""
    path: Path
    width: int
    height: int
    sha256: str

    @property
    def artifacts(self) -> ArtifactPaths:
        return ArtifactPaths.for_reference(self.path)

    def load(self) -> np.ndarray:
        """Read the reference pixels, verifying the file is unchanged.

        Raises
        ------
        ArtifactIOError
            If the file is missing, unreadable or its hash no longer matches
        """
        try:
            digest = hashing.sha256_file(self.path)
            image = fs.load_image(self.path)
        except OSError as e:
            raise ArtifactIOError(f"Failed to read reference image {self.path}: {e}") from e
        if digest != self.sha256:
            raise ArtifactIOError(
                f"Reference image {self.path} changed on disk "
                f"(expected sha256 {self.sha256[:12]}, got {digest[:12]})"
            )
        return image


def create_baseline(image, path: PathLike) -> StoredReference:
    """Store `image` as the accepted reference at `path` (PNG).

    Parameters
    ----------
    image : np.ndarray or PIL.Image.Image
        Screenshot to accept
    path : PathLike
        Destination; parent directories are created

    Returns
    -------
    StoredReference
        Handle pinned to the written file

    Raises
    ------
    ArtifactIOError
        If the file cannot be written
    """
    path = Path(path)
    pixels = transforms.as_rgb_array(image)
    try:
        fs.atomic_save_image(pixels, path)
    except RuntimeError as e:
        raise ArtifactIOError(f"Failed to write reference image {path}: {e}") from e

    ref = open_baseline(path)
    logger.info("Stored reference %s (%dx%d, sha256 %s)", path, ref.width, ref.height, ref.sha256[:12])
    return ref


def open_baseline(path: PathLike) -> StoredReference:
    """Open an existing reference image and pin its current content."""
    path = Path(path)
    try:
        digest = hashing.sha256_file(path)
        pixels = fs.load_image(path)
    except OSError as e:
        raise ArtifactIOError(f"Failed to read reference image {path}: {e}") from e
    h, w = pixels.shape[:2]
    return StoredReference(path=path, width=w, height=h, sha256=digest)


def compare_to_baseline(
    candidate,
    reference: StoredReference,
    config: Optional[ComparisonConfigV1] = None,
    artifacts: Optional[ArtifactPaths] = None
) -> ComparisonResult:
    """Compare a new screenshot against a stored reference.

    Parameters
    ----------
    candidate : np.ndarray or PIL.Image.Image
        Newly captured screenshot
    reference : StoredReference
        Accepted baseline
    config : ComparisonConfigV1, optional
        Comparison configuration; schema defaults when omitted
    artifacts : ArtifactPaths, optional
        Artifact locations; the standard layout next to the reference when omitted

    Returns
    -------
    ComparisonResult
    """
    artifacts = artifacts or reference.artifacts
    engine = ImageComparison(config)
    return engine.compare(
        reference.load(),
        candidate,
        artifacts.mask,
        artifacts.marked,
        artifacts.difference,
    )

"""Engine facade: one synchronous comparison pipeline per call.

Pipeline (strictly linear, always reaches DONE or raises):
    START → SIZE_RECONCILED → MASKED → COMPARED → RENDERED → DONE

    1. Size reconciliation: pad the smaller image per axis (prior size kept)
    2. Masking: load or create the mask, blacken ignored pixels in both images
    3. Comparison: run the configured algorithm → DifferenceSet
    4. Rendering:
        - training: absorb differences into the mask (+ optional closing),
          save the mask, report equal
        - otherwise: draw marking borders, report not equal
        - size changed: paint grown strips red, force not equal
    5. Artifacts: marked image (and optional difference image) on mismatch

The engine object holds only its immutable config; every call builds a fresh
_ComparisonRun owning the output buffer and the mask, so an engine can be
reused sequentially. Concurrent calls need distinct artifact paths.

Usage:
    from src.image_comparison import ImageComparison

    engine = ImageComparison(algorithm="FUZZY", block_size=10, color_tolerance=0.05)
    result = engine.compare(reference, screenshot, "mask.png", "marked.png")
    if not result:
        print(f"{len(result.differences)} pixels differ")
"""

import enum
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

import numpy as np
from pydantic import ValidationError

from src.utils import fs
from src.utils.profiler import timer
from src.utils.validators import ComparisonConfigV1

from . import mask as mask_ops
from . import render, transforms
from .algorithms import DifferenceSet, find_differences
from .errors import ArtifactIOError, ConfigurationError

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class Stage(enum.IntEnum):
    """Pipeline stages of a single comparison run."""
    START = 0
    SIZE_RECONCILED = 1
    MASKED = 2
    COMPARED = 3
    RENDERED = 4
    DONE = 5


@dataclass(frozen=True)
class ComparisonResult:
    """Outcome of one comparison; truthy iff the images are considered equal."""
    equal: bool
    differences: DifferenceSet
    width: int
    height: int
    prior_width: int
    prior_height: int
    mask_updated: bool = False
    marked_path: Optional[Path] = None
    difference_path: Optional[Path] = None

    @property
    def size_changed(self) -> bool:
        return (self.prior_width, self.prior_height) != (self.width, self.height)

    def __bool__(self) -> bool:
        return self.equal


def default_difference_path(marked_path: PathLike) -> Path:
    """`<dir>/<stem>-difference.png` next to the marked image."""
    marked_path = Path(marked_path)
    return marked_path.with_name(f"{marked_path.stem}-difference.png")


class _ComparisonRun:
    """Mutable working state of exactly one comparison."""

    def __init__(self, config: ComparisonConfigV1):
        self.config = config
        self.stage = Stage.START
        self.reference: Optional[np.ndarray] = None
        self.candidate: Optional[np.ndarray] = None
        self.output: Optional[np.ndarray] = None
        self.mask: Optional[np.ndarray] = None
        self.differences: Optional[DifferenceSet] = None
        self.prior_width = 0
        self.prior_height = 0
        self.equal = True
        self.mask_updated = False

    def _advance(self, stage: Stage) -> None:
        if stage != self.stage + 1:
            raise RuntimeError(f"Invalid stage transition {self.stage.name} -> {stage.name}")
        logger.debug("Stage %s -> %s", self.stage.name, stage.name)
        self.stage = stage

    @property
    def width(self) -> int:
        return self.reference.shape[1]

    @property
    def height(self) -> int:
        return self.reference.shape[0]

    @property
    def size_changed(self) -> bool:
        return (self.prior_width, self.prior_height) != (self.width, self.height)

    def reconcile(self, reference, candidate) -> None:
        ref = transforms.as_rgb_array(reference)
        cand = transforms.as_rgb_array(candidate)
        self.reference, self.candidate, self.prior_width, self.prior_height = (
            transforms.reconcile_sizes(ref, cand)
        )
        if self.size_changed:
            logger.info(
                "Image sizes differ (reference %dx%d, candidate %dx%d); padded to %dx%d",
                ref.shape[1], ref.shape[0], cand.shape[1], cand.shape[0], self.width, self.height
            )
        self._advance(Stage.SIZE_RECONCILED)

    def apply_mask(self, mask_path: PathLike) -> None:
        self.mask = mask_ops.load_or_create_mask(mask_path, self.width, self.height)
        self.reference = mask_ops.apply_mask(self.reference, self.mask)
        self.candidate = mask_ops.apply_mask(self.candidate, self.mask)
        self.output = transforms.copy_image(self.candidate)
        self._advance(Stage.MASKED)

    def compare(self) -> None:
        self.differences = find_differences(self.config, self.reference, self.candidate)
        logger.debug(
            "%s found %d differing pixels", self.config.algorithm.value, len(self.differences)
        )
        self._advance(Stage.COMPARED)

    def render(self, mask_path: PathLike) -> None:
        if self.differences:
            if self.config.training_mode:
                blocks = mask_ops.paint_ignore(self.mask, self.differences)
                if self.config.close_mask:
                    with timer("close_mask"):
                        self.mask = mask_ops.close_mask(
                            self.mask,
                            self.config.close_mask_width,
                            self.config.close_mask_height,
                        )
                mask_ops.save_mask(self.mask, mask_path)
                self.mask_updated = True
                logger.info("Training: masked %d blocks in %s", blocks, mask_path)
            else:
                render.mark_differences(self.output, self.reference, self.candidate, self.differences)
                self.equal = False

        if self.size_changed:
            render.mark_image_borders(self.output, self.prior_width, self.prior_height)
            self.equal = False
        self._advance(Stage.RENDERED)

    def write_artifacts(
        self,
        marked_path: PathLike,
        difference_path: Optional[PathLike]
    ) -> ComparisonResult:
        written_marked = None
        written_difference = None
        if not self.equal:
            written_marked = Path(marked_path)
            _save_artifact(self.output, written_marked, "marked")
            if self.config.difference_image:
                written_difference = Path(difference_path or default_difference_path(marked_path))
                _save_artifact(
                    render.difference_image(self.reference, self.candidate),
                    written_difference,
                    "difference",
                )
        self._advance(Stage.DONE)

        return ComparisonResult(
            equal=self.equal,
            differences=self.differences,
            width=self.width,
            height=self.height,
            prior_width=self.prior_width,
            prior_height=self.prior_height,
            mask_updated=self.mask_updated,
            marked_path=written_marked,
            difference_path=written_difference,
        )


def _save_artifact(image: np.ndarray, path: Path, kind: str) -> None:
    try:
        fs.atomic_save_image(image, path)
    except RuntimeError as e:
        raise ArtifactIOError(f"Failed to write {kind} image {path}: {e}") from e


class ImageComparison:
    """Compare a reference and a candidate image under one configuration.

    Parameters
    ----------
    config : ComparisonConfigV1, optional
        Validated configuration; defaults to the schema defaults
    **overrides
        Field overrides (e.g. algorithm="PIXELFUZZY", color_tolerance=0.1)

    Raises
    ------
    ConfigurationError
        Unknown algorithm or out-of-range value; raised before any image work
    """

    def __init__(self, config: Optional[ComparisonConfigV1] = None, **overrides):
        try:
            if config is None:
                config = ComparisonConfigV1(**overrides)
            elif overrides:
                config = ComparisonConfigV1(**{**config.model_dump(), **overrides})
        except ValidationError as e:
            raise ConfigurationError(f"Invalid comparison configuration: {e}") from e
        self.config = config

    def compare(
        self,
        reference,
        candidate,
        mask_path: PathLike,
        marked_path: PathLike,
        difference_path: Optional[PathLike] = None
    ) -> ComparisonResult:
        """Run the full pipeline on one image pair.

        Parameters
        ----------
        reference : np.ndarray or PIL.Image.Image
            Accepted baseline image
        candidate : np.ndarray or PIL.Image.Image
            Newly captured image
        mask_path : PathLike
            Mask PNG; read if present, written by training runs
        marked_path : PathLike
            Marked image destination (written only on mismatch)
        difference_path : PathLike, optional
            Difference image destination; defaults next to marked_path

        Returns
        -------
        ComparisonResult
            Truthy iff equal

        Raises
        ------
        ArtifactIOError
            Mask unreadable/unwritable or output unwritable
        """
        run = _ComparisonRun(self.config)
        with timer("compare"):
            run.reconcile(reference, candidate)
            run.apply_mask(mask_path)
            with timer(f"algorithm.{self.config.algorithm.value}"):
                run.compare()
            run.render(mask_path)
            result = run.write_artifacts(marked_path, difference_path)

        if result.equal:
            logger.info("Images equal (%s, %dx%d)", self.config.algorithm.value, result.width, result.height)
        else:
            logger.info(
                "Images differ: %d pixels flagged, size changed: %s, marked image: %s",
                len(result.differences), result.size_changed, result.marked_path
            )
        return result

    def is_equal(
        self,
        reference,
        candidate,
        mask_path: PathLike,
        marked_path: PathLike,
        difference_path: Optional[PathLike] = None
    ) -> bool:
        """Boolean shortcut for compare()."""
        return self.compare(reference, candidate, mask_path, marked_path, difference_path).equal

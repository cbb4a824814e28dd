"""Screenshot comparison engine.

Compares a candidate screenshot against a reference under a persisted ignore
mask and explains mismatches visually:
    - Exact, PixelFuzzy and Fuzzy (block-averaged) algorithms
    - Marked image: borders around differing 10×10 blocks, red strips for
      size changes
    - Optional greyscale difference image
    - Training mode: absorb differences into the mask instead of failing

Modules:
    - transforms: buffer ops (pad, shrink, scale, overlay)
    - mask: ignore-mask load/apply/paint/close/save
    - algorithms: DifferenceSet + the three algorithms
    - render: marking borders, border mismatch, difference image
    - engine: ImageComparison facade and ComparisonResult
    - baseline: stored references and artifact layout
    - errors: ConfigurationError, ArtifactIOError

Used by:
    - scripts/compare_screenshots.py: baseline / compare CLI
"""

from .algorithms import DifferenceSet, find_differences
from .baseline import (
    ArtifactPaths,
    StoredReference,
    compare_to_baseline,
    create_baseline,
    open_baseline,
)
from .engine import ComparisonResult, ImageComparison, Stage
from .errors import ArtifactIOError, ComparisonError, ConfigurationError

__all__ = [
    'ArtifactIOError',
    'ArtifactPaths',
    'ComparisonError',
    'ComparisonResult',
    'ConfigurationError',
    'DifferenceSet',
    'ImageComparison',
    'Stage',
    'StoredReference',
    'compare_to_baseline',
    'create_baseline',
    'find_differences',
    'open_baseline',
]

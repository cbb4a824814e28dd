"""YAML schema validation and config loading.

Provides centralized validation of the comparison configuration using pydantic:
    - Comparison schema (image_comparison.v1.yaml): algorithm, block size,
      colour/pixel tolerances, training and mask-closing switches,
      difference image switch

Configs are validated once, when loaded or constructed, so an unknown
algorithm or an out-of-range tolerance fails before any image is processed.
Error messages name the offending key and the accepted values.

Units:
    - block_size, close_mask_width/height: pixels / mask cells
    - color_tolerance, pixel_tolerance_per_block: fraction [0.0, 1.0]

Usage:
    from src.utils import validators

    cfg = validators.load_comparison_config("configs/image_comparison.v1.yaml")
    cfg = validators.ComparisonConfigV1(algorithm="PIXELFUZZY", color_tolerance=0.1)
"""

from enum import Enum
from pathlib import Path
from typing import Any, Dict, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ============================================================================
# COMPARISON SCHEMA V1
# ============================================================================

class ComparisonAlgorithm(str, Enum):
    """Available comparison algorithms."""
    EXACTLY = "EXACTLY"
    PIXELFUZZY = "PIXELFUZZY"
    FUZZY = "FUZZY"


# Accepted spellings → canonical algorithm
_ALGORITHM_ALIASES = {
    "EXACT": ComparisonAlgorithm.EXACTLY,
    "EXACTLY": ComparisonAlgorithm.EXACTLY,
    "PIXELFUZZY": ComparisonAlgorithm.PIXELFUZZY,
    "PIXEL_FUZZY": ComparisonAlgorithm.PIXELFUZZY,
    "PIXELFUZZYEQUAL": ComparisonAlgorithm.PIXELFUZZY,
    "FUZZY": ComparisonAlgorithm.FUZZY,
}


class ComparisonConfigV1(BaseModel):
    """Image comparison configuration (image_comparison.v1.yaml schema).

    Immutable once constructed; one instance may back many comparisons.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="forbid")

    schema_version: str = Field("image_comparison.v1", alias="schema", description="Schema version")
    algorithm: ComparisonAlgorithm = Field(ComparisonAlgorithm.FUZZY, description="Comparison algorithm")
    block_size: int = Field(20, ge=1, le=4096, description="Fuzzy block side length (px)")
    color_tolerance: float = Field(0.05, ge=0.0, le=1.0, description="Max tolerated colour distance")
    pixel_tolerance_per_block: float = Field(
        0.0, ge=0.0, le=1.0,
        description="Fraction of differing pixels tolerated inside a flagged Fuzzy block"
    )
    training_mode: bool = Field(False, description="Absorb differences into the mask")
    close_mask: bool = Field(False, description="Close small gaps in the mask after training")
    close_mask_width: int = Field(3, ge=1, le=101, description="Closing kernel width (mask cells)")
    close_mask_height: int = Field(3, ge=1, le=101, description="Closing kernel height (mask cells)")
    difference_image: bool = Field(False, description="Write greyscale difference image on mismatch")

    @field_validator('schema_version')
    @classmethod
    def validate_schema(cls, v: str) -> str:
        if v != "image_comparison.v1":
            raise ValueError(f"Expected schema 'image_comparison.v1', got '{v}'")
        return v

    @field_validator('algorithm', mode='before')
    @classmethod
    def validate_algorithm(cls, v: Any) -> Any:
        if isinstance(v, ComparisonAlgorithm):
            return v
        if isinstance(v, str):
            key = v.strip().upper()
            if key in _ALGORITHM_ALIASES:
                return _ALGORITHM_ALIASES[key]
        allowed = sorted(a.value for a in ComparisonAlgorithm)
        raise ValueError(f"Specified algorithm not found: {v!r}, expected one of {allowed}")


# ============================================================================
# PUBLIC API
# ============================================================================

def load_comparison_config(path: Union[str, Path]) -> ComparisonConfigV1:
    """Load and validate comparison config from YAML.

    Parameters
    ----------
    path : Union[str, Path]
        Path to image_comparison.v1.yaml file

    Returns
    -------
    ComparisonConfigV1
        Validated comparison configuration

    Raises
    ------
    FileNotFoundError
        If path doesn't exist
    ValueError
        If validation fails (with actionable error message)
    """
    from . import fs

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Comparison config not found: {path}")

    data = fs.load_yaml(path) or {}
    try:
        return ComparisonConfigV1(**data)
    except Exception as e:
        raise ValueError(f"Comparison config validation failed at {path}: {e}") from e


def comparison_config_to_dict(cfg: ComparisonConfigV1) -> Dict[str, Any]:
    """Serialize config to a YAML-ready dict (schema key, enum values as str)."""
    return cfg.model_dump(mode="json", by_alias=True)
